"""
Stateful slide renderer

Markdown is parsed with markdown-it-py into a syntax tree, which is walked
depth-first. Every node is rendered by the handler registered for its type:

    handlers: node type -> (node, ctx) -> html

`ctx` is the slide's RenderContext, passed by reference through the whole
walk. Directive comments mutate it (queue a class, set a caption, open a
column) and later handlers consume what was queued, so document order
matters:

    <!-- @addclass p lead -->
    First paragraph        -> <p class="lead">First paragraph</p>
    Second paragraph       -> <p>Second paragraph</p>

Node types without a handler fall back to markdown-it's own HTML rules.
Block handlers render their children before consuming queued attributes, so
a directive nested inside an element applies to that element.
"""

import base64
import binascii
import html
import re
from typing import Callable, Dict, List, Optional
from urllib.parse import urljoin

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from ..config import appsettings
from ..models.context import RenderContext, SlideContext
from ..models.directives import Command, DirectiveScope, DirectiveType
from ..models.slide import LineRange, RawBlock, SlideData
from .context import slideSource_extract, texDelimiters_convert
from .directives import registry
from .highlight import codeBlock_render
from .log import LOG, LOG_error

Handler = Callable[[SyntaxTreeNode, RenderContext], str]
CommandHandler = Callable[[Command, RenderContext], str]

ABSOLUTE_URL_RE = re.compile(r"^(https?:|/|data:)")
BAD_PROTOCOL_RE = re.compile(r"^(vbscript|javascript|file|data):")
GOOD_DATA_RE = re.compile(r"^data:image/(gif|png|jpeg|webp|svg\+xml);")

# Cover block field order
COVER_FIELDS = ("date", "title", "subtitle", "presenter", "affiliation", "contact")


def link_validate(url: str) -> bool:
    """markdown-it link filter that also admits SVG data URIs (embedded drawio images)"""
    url = url.strip().lower()
    if BAD_PROTOCOL_RE.match(url):
        return bool(GOOD_DATA_RE.match(url))
    return True


def markdown_create() -> MarkdownIt:
    """
    Build the markdown-it parser used for slides.

    CommonMark plus the GitHub flavor used by slide authors: tables,
    strikethrough, bare-URL autolinks and task-list checkboxes. Raw HTML is
    allowed (directives are HTML comments), newlines become <br>, and
    $...$ / $$...$$ is math.
    """
    md = (
        MarkdownIt("commonmark", {"breaks": True, "html": True, "linkify": True})
        .enable(["table", "strikethrough", "linkify"])
        .use(dollarmath_plugin, double_inline=True)
        .use(tasklists_plugin)
    )
    md.validateLink = link_validate
    # scheme-prefixed URLs only; "train.py" in prose stays text
    md.linkify.set({"fuzzy_link": False})
    return md


def ratios_parse(spec: str) -> List[float]:
    """
    Parse a multicolumn ratio list such as "1:2".

    An empty spec means two equal columns; parts that are not numbers
    weigh 1.

    Example:
        >>> ratios_parse("1:2:x")
        [1.0, 2.0, 1.0]
    """
    if not spec:
        return [1.0, 1.0]
    ratios = []
    for part in spec.split(":"):
        try:
            ratios.append(float(part))
        except ValueError:
            ratios.append(1.0)
    return ratios


def flex_format(weight: float) -> str:
    return f"{weight:g}"


def column_open(weight: float) -> str:
    return f'<div class="multicolumn-col" style="flex: {flex_format(weight)}">'


def imageUrl_resolve(href: str, baseUrl: str) -> str:
    """
    Resolve a relative image path against the base directory URL.

    Absolute URLs, root-relative paths and data URIs are returned as-is.

    Example:
        >>> imageUrl_resolve("img/a.png", "http://host/decks/talk")
        'http://host/decks/talk/img/a.png'
    """
    if not baseUrl or ABSOLUTE_URL_RE.match(href):
        return href
    base = baseUrl if baseUrl.endswith("/") else baseUrl + "/"
    return urljoin(base, href)


def drawioPayload_clean(payload: str) -> str:
    """
    Normalize an embedded diagram-editor image payload.

    Whitespace is removed and the base64 body checked. An undecodable
    payload is logged and replaced by "" so the slide still renders.
    """
    cleaned = re.sub(r"\s+", "", payload)
    body = cleaned
    if cleaned.startswith("data:"):
        header, _, body = cleaned.partition(",")
        if not header.endswith(";base64"):
            return cleaned
    try:
        base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        LOG_error(f"Discarding undecodable drawio payload: {e}")
        return ""
    return cleaned


class SlideRenderer:
    """
    Markdown to HTML renderer driven by a per-slide RenderContext

    Example:
        >>> renderer = SlideRenderer()
        >>> block = RawBlock("<!-- @addclass h1 big -->\\n# Hi", 3, 4)
        >>> renderer.slide_render(block, SlideContext(), 1).html
        '<h1 class="big">Hi</h1>\\n'
    """

    def __init__(self) -> None:
        self.md = markdown_create()
        self.handlers: Dict[str, Handler] = {
            "root": self.children_render,
            "inline": self.children_render,
            "html_block": self.html_render,
            "html_inline": self.html_render,
            "heading": self.heading_render,
            "paragraph": self.paragraph_render,
            "bullet_list": self.bulletList_render,
            "ordered_list": self.orderedList_render,
            "list_item": self.listItem_render,
            "blockquote": self.blockquote_render,
            "table": self.table_render,
            "image": self.image_render,
            "fence": self.code_render,
            "code_block": self.code_render,
        }
        self.commands: Dict[DirectiveType, CommandHandler] = {
            DirectiveType.MULTICOLUMN_BEGIN: self.columns_begin,
            DirectiveType.MULTICOLUMN_NEXT: self.columns_next,
            DirectiveType.MULTICOLUMN_END: self.columns_end,
            DirectiveType.ADD_CLASS: self.class_add,
            DirectiveType.ADD_STYLE: self.style_add,
            DirectiveType.CAPTION: self.caption_set,
            DirectiveType.COVER: self.cover_render,
        }

    def handler_register(self, nodeType: str, handler: Handler) -> None:
        """Install or replace the handler for a node type"""
        self.handlers[nodeType] = handler

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def slide_render(
        self,
        block: RawBlock,
        context: SlideContext,
        pageIndex: int,
        baseUrl: str = "",
        cacheBust: int = 0,
    ) -> SlideData:
        """
        Render one slide block to base HTML.

        Args:
            block: Slide source block
            context: GLOBAL context
            pageIndex: 1-based slide index
            baseUrl: Directory URL relative image paths resolve against
            cacheBust: Asset version token appended to image URLs when > 0

        Returns:
            SlideData whose html still holds diagram placeholders
        """
        LOG(f"Rendering slide {pageIndex} (lines {block.startLine}-{block.endLine})", level=3)
        source = slideSource_extract(block.rawContent)
        ctx = RenderContext.slide_begin(context, pageIndex, baseUrl, cacheBust)

        body = self.markdown_render(source.markdown, ctx)
        noteHtml = self.md.render("\n\n".join(source.notes)) if source.notes else ""

        header = source.header if source.header is not None else context.header
        footer = source.footer if source.footer is not None else context.footer

        return SlideData(
            html=body,
            noteHtml=noteHtml,
            raw=block.rawContent,
            className=source.className,
            range=LineRange(block.startLine, block.endLine),
            header=self.inline_render(header) if header else None,
            footer=self.inline_render(footer) if footer else None,
        )

    def markdown_render(self, text: str, ctx: RenderContext) -> str:
        """Parse markdown and walk its syntax tree with the handler mapping"""
        tree = SyntaxTreeNode(self.md.parse(text, {}))
        return self.node_render(tree, ctx)

    def inline_render(self, text: Optional[str]) -> str:
        """Render inline markdown (no block wrapper), with TeX delimiters converted"""
        if not text:
            return ""
        return self.md.renderInline(texDelimiters_convert(text))

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def node_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        handler = self.handlers.get(node.type, self.node_fallback)
        return handler(node, ctx)

    def children_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        return "".join(self.node_render(child, ctx) for child in node.children)

    def node_fallback(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        """Render a node with markdown-it's default HTML rules"""
        renderer = self.md.renderer
        options = self.md.options
        if node.nester_tokens:
            opening, closing = node.nester_tokens
            return (
                renderer.renderToken([opening], 0, options, {})
                + self.children_render(node, ctx)
                + renderer.renderToken([closing], 0, options, {})
            )
        token = node.token
        rule = renderer.rules.get(token.type)
        if rule is not None:
            return rule([token], 0, options, {})
        return renderer.renderToken([token], 0, options, {})

    # ------------------------------------------------------------------
    # Directive comments
    # ------------------------------------------------------------------

    def html_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        """
        Execute a directive comment, or pass raw HTML through.

        GLOBAL directives render to nothing (the preamble scan already
        applied them); unknown comments and other HTML are left verbatim.
        """
        text = node.content
        if not text.strip().startswith("<!--"):
            return text

        command = registry.command_parse(text)
        if command is None:
            return text
        if command.scope == DirectiveScope.GLOBAL:
            return ""

        execute = self.commands.get(command.type)
        return execute(command, ctx) if execute else ""

    def columns_begin(self, command: Command, ctx: RenderContext) -> str:
        ctx.columnsRatio = ratios_parse(command.params)
        ctx.columnIndex = 0
        return '<div class="multicolumn-container">' + column_open(ctx.columnsRatio[0])

    def columns_next(self, command: Command, ctx: RenderContext) -> str:
        if ctx.columnsRatio is None or ctx.columnIndex is None:
            return ""
        ctx.columnIndex += 1
        ratios = ctx.columnsRatio
        weight = ratios[ctx.columnIndex] if ctx.columnIndex < len(ratios) else 1
        return "</div>" + column_open(weight)

    def columns_end(self, command: Command, ctx: RenderContext) -> str:
        if ctx.columnsRatio is None:
            return ""
        ctx.columnsRatio = None
        ctx.columnIndex = None
        return "</div></div>"

    def class_add(self, command: Command, ctx: RenderContext) -> str:
        ctx.class_queue(command.params.tag, command.params.value)
        return ""

    def style_add(self, command: Command, ctx: RenderContext) -> str:
        ctx.style_queue(command.params.tag, command.params.value)
        return ""

    def caption_set(self, command: Command, ctx: RenderContext) -> str:
        ctx.caption = command.params
        return ""

    def cover_render(self, command: Command, ctx: RenderContext) -> str:
        """Cover metadata block, one div per field that is set"""
        parts = []
        for key in COVER_FIELDS:
            value = getattr(ctx.meta, key)
            if value:
                parts.append(f'<div class="{key}">{self.inline_render(value)}</div>')
        return "".join(parts)

    # ------------------------------------------------------------------
    # Block elements
    # ------------------------------------------------------------------

    def heading_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        inner = self.children_render(node, ctx)
        attrs = ctx.attributes_consume(node.tag)
        return f"<{node.tag}{attrs}>{inner}</{node.tag}>\n"

    def paragraph_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        inner = self.children_render(node, ctx)
        # tight list items carry hidden paragraphs: content only, no <p>
        if node.hidden:
            return inner
        attrs = ctx.attributes_consume("p")
        return f"<p{attrs}>{inner}</p>\n"

    def bulletList_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        inner = self.children_render(node, ctx)
        attrs = ctx.attributes_consume("ul", node.attrs.get("class"))
        return f"<ul{attrs}>\n{inner}</ul>\n"

    def orderedList_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        inner = self.children_render(node, ctx)
        attrs = ctx.attributes_consume("ol", node.attrs.get("class"))
        start = node.attrs.get("start")
        startAttr = f' start="{start}"' if start is not None else ""
        return f"<ol{startAttr}{attrs}>\n{inner}</ol>\n"

    def listItem_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        inner = self.children_render(node, ctx)
        attrs = ctx.attributes_consume("li", node.attrs.get("class"))
        return f"<li{attrs}>{inner}</li>\n"

    def blockquote_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        inner = self.children_render(node, ctx)
        attrs = ctx.attributes_consume("blockquote")
        return f"<blockquote{attrs}>\n{inner}</blockquote>\n"

    def table_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        inner = self.children_render(node, ctx)
        attrs = ctx.attributes_consume("table")
        caption = ctx.caption_consume()
        captionHtml = f"<caption>{self.inline_render(caption)}</caption>\n" if caption else ""
        return f"<table{attrs}>\n{captionHtml}{inner}</table>\n"

    # ------------------------------------------------------------------
    # Images and code
    # ------------------------------------------------------------------

    def image_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        """
        Image wrapped in a <figure>, with the pending caption if any.

        An image whose alt text is the drawio marker carries an embedded
        payload instead of a path: it bypasses base URL resolution and
        cache busting.
        """
        src = node.attrs.get("src", "")
        alt = node.content
        if alt == appsettings.drawio_marker:
            src = drawioPayload_clean(src)
            alt = ""
        else:
            src = imageUrl_resolve(src, ctx.baseUrl)
            src = appsettings.cacheBust_apply(src, ctx.cacheBust)

        attrs = ctx.attributes_consume("img")
        altAttr = f' alt="{escapeHtml(alt)}"' if alt else ""
        title = node.attrs.get("title")
        titleAttr = f' title="{escapeHtml(title)}"' if title else ""
        img = f'<img src="{escapeHtml(src)}"{altAttr}{titleAttr}{attrs} />'

        caption = ctx.caption_consume()
        if caption:
            return f"<figure>{img}<figcaption>{self.inline_render(caption)}</figcaption></figure>"
        return f"<figure>{img}</figure>"

    def code_render(self, node: SyntaxTreeNode, ctx: RenderContext) -> str:
        """
        Highlighted code block, or a placeholder for diagram sources.

        Diagram fences (e.g. ```@mermaid) become
        <div class="mermaid">escaped source</div> for the post-processor.
        """
        info = node.info.strip() if node.type == "fence" else ""
        language = info.split()[0] if info else ""
        dialect = appsettings.diagramDialect_find(language)
        if dialect:
            return f'<div class="{dialect}">{html.escape(node.content)}</div>\n'
        return codeBlock_render(node.content, info, ctx.attributes_consume("code"))
