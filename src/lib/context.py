"""
Context construction

GLOBAL context: scan the preamble for directive comments and apply the
GLOBAL ones in document order (later occurrences overwrite earlier ones).

Slide preprocessing: before the markdown renderer sees a slide, strip the
comments that must never reach slide HTML and collect what they carry:

    <!-- @note: text -->     speaker notes (all occurrences, in order)
    <!-- @pageclass name --> slide CSS class (last occurrence wins)
    <!-- @header text -->    per-slide header override (first occurrence)
    <!-- @footer text -->    per-slide footer override (first occurrence)

`<!-- @cover -->` is left in place (the renderer expands it) but also
switches the slide class to the cover class. TeX math delimiters \\( \\) and
\\[ \\] are rewritten to $ and $$ for the math plugin.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import appsettings
from ..models.context import SlideContext
from ..models.directives import DirectiveScope, DirectiveType
from .directives import registry

COMMENT_SCAN_RE = re.compile(r"<!--\s*([\s\S]*?)\s*-->")
NOTE_RE = re.compile(r"<!--\s*@note:\s*([\s\S]*?)\s*-->")
PAGECLASS_RE = re.compile(r"<!--\s*@pageclass\s*([\s\S]*?)\s*-->")
COVER_RE = re.compile(r"<!--\s*@cover\s*-->")
HEADER_RE = re.compile(r"<!--\s*@header\s*([\s\S]*?)\s*-->")
FOOTER_RE = re.compile(r"<!--\s*@footer\s*([\s\S]*?)\s*-->")
TEX_BLOCK_RE = re.compile(r"\\\[([\s\S]*?)\\\]")
TEX_INLINE_RE = re.compile(r"\\\(([\s\S]*?)\\\)")


def globalContext_parse(preamble: str) -> SlideContext:
    """
    Build the GLOBAL context from the preamble block.

    Pure function of the preamble text: parsing the same text twice yields
    equal contexts.

    Args:
        preamble: Raw content of block 0

    Returns:
        SlideContext with defaults overwritten by the GLOBAL directives found

    Example:
        >>> globalContext_parse("<!-- @aspect 4:3 -->").aspectRatio
        (4, 3)
    """
    context = SlideContext()

    for match in COMMENT_SCAN_RE.finditer(preamble):
        command = registry.command_parse(match.group(1))
        if command is None or command.scope != DirectiveScope.GLOBAL:
            continue

        if command.type == DirectiveType.ASPECT:
            context.aspectRatio = command.params
        elif command.type == DirectiveType.THEME:
            context.themeCss = command.params
        elif command.type == DirectiveType.META:
            setattr(context.meta, command.params.key, command.params.value)
        elif command.type == DirectiveType.HEADER:
            context.header = command.params
        elif command.type == DirectiveType.FOOTER:
            context.footer = command.params

    return context


def texDelimiters_convert(text: str) -> str:
    r"""Rewrite \[..\] to $$..$$ and \(..\) to $..$"""
    text = TEX_BLOCK_RE.sub(lambda m: f"$${m.group(1)}$$", text)
    return TEX_INLINE_RE.sub(lambda m: f"${m.group(1)}$", text)


@dataclass
class SlideSource:
    """
    A slide's markdown after preprocessing

    Attributes:
        markdown: Text handed to the renderer
        notes: Speaker note texts, in document order
        className: Slide CSS class
        header: Per-slide header override; None means inherit GLOBAL
        footer: Per-slide footer override; None means inherit GLOBAL
    """
    markdown: str
    notes: List[str] = field(default_factory=list)
    className: str = ""
    header: Optional[str] = None
    footer: Optional[str] = None


def slideSource_extract(raw: str) -> SlideSource:
    """
    Strip notes, page class and header/footer overrides from a slide.

    Args:
        raw: Raw slide block content

    Returns:
        SlideSource with the cleaned markdown and the extracted values

    Example:
        >>> source = slideSource_extract("# Hi\\n<!-- @note: say hi -->")
        >>> source.notes
        ['say hi']
        >>> source.markdown.strip()
        '# Hi'
    """
    notes: List[str] = []
    pageClasses: List[str] = []

    def note_take(match: "re.Match[str]") -> str:
        notes.append(match.group(1).strip())
        return ""

    def pageClass_take(match: "re.Match[str]") -> str:
        pageClasses.append(match.group(1).strip())
        return ""

    markdown = NOTE_RE.sub(note_take, raw)
    markdown = PAGECLASS_RE.sub(pageClass_take, markdown)

    className = pageClasses[-1] if pageClasses else appsettings.default_page_class
    if COVER_RE.search(markdown):
        className = appsettings.cover_page_class

    header = None
    headerMatch = HEADER_RE.search(markdown)
    if headerMatch:
        header = headerMatch.group(1).strip()
        markdown = markdown.replace(headerMatch.group(0), "", 1)

    footer = None
    footerMatch = FOOTER_RE.search(markdown)
    if footerMatch:
        footer = footerMatch.group(1).strip()
        markdown = markdown.replace(footerMatch.group(0), "", 1)

    return SlideSource(
        markdown=texDelimiters_convert(markdown),
        notes=notes,
        className=className,
        header=header,
        footer=footer,
    )
