"""
Diagram post-processor

Second, asynchronous rendering stage. The renderer leaves diagram fences in
the slide HTML as placeholders:

    <div class="mermaid">graph TD; A--&gt;B</div>
    <div class="plantuml">@startuml ... @enduml</div>

DiagramProcessor finds them, renders every placeholder of a slide
concurrently through the renderer registered for its dialect, and swaps in
the result:

    <div class="mermaid-img-wrapper"><img src="data:image/svg+xml;base64,..."/></div>

A failing diagram becomes an inline error block carrying the message and
the diagram source; it never fails the slide or its sibling diagrams.
A blank PlantUML fence is left as the placeholder, without a server request.

Two caches, both content-addressed, safe to fill from a stale run, and
bounded as LRU maps (MDECK_DIAGRAM_CACHE_SIZE, MDECK_HTML_MEMO_SIZE):

    cache     (dialect, source) -> rendered markup
    htmlMemo  base slide HTML   -> final slide HTML (only when every diagram
                                   of that HTML rendered)
"""

import asyncio
import base64
import html
import tempfile
import zlib
from collections import OrderedDict
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import httpx
from bs4 import BeautifulSoup

from ..config import appsettings
from ..models.slide import SlideData
from .log import LOG, LOG_error

SVG_STYLE = "max-width: 100%; height: auto; display: block; margin: 0 auto;"
ERROR_STYLE = (
    "color:red; border:1px solid red; padding:4px; font-size:12px; "
    "white-space:pre-wrap; background-color:#fff0f0;"
)

_PLANTUML_ALPHABET = b"0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"
_BASE64_ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_TO_PLANTUML = bytes.maketrans(_BASE64_ALPHABET, _PLANTUML_ALPHABET)


class DiagramRenderError(Exception):
    """A diagram renderer could not turn source text into markup"""


class DiagramRenderer(Protocol):
    """
    Renders diagram source of one dialect

    Attributes:
        dialect: Placeholder class handled (e.g. "mermaid")
        wrapperClass: Class of the div wrapping rendered markup
    """
    dialect: str
    wrapperClass: str

    async def render(self, source: str) -> Optional[str]:
        """
        Return markup for the diagram, or raise DiagramRenderError.

        None leaves the placeholder in the slide untouched.
        """
        ...


class LruCache(OrderedDict):
    """
    Dict capped at `maxSize` entries, least recently used evicted first

    Example:
        >>> cache = LruCache(2)
        >>> cache["a"], cache["b"] = 1, 2
        >>> cache.get("a")
        1
        >>> cache["c"] = 3
        >>> list(cache)
        ['a', 'c']
    """

    def __init__(self, maxSize: int) -> None:
        super().__init__()
        self.maxSize = maxSize

    def get(self, key, default=None):
        if key not in self:
            return default
        self.move_to_end(key)
        return self[key]

    def __setitem__(self, key, value) -> None:
        super().__setitem__(key, value)
        self.move_to_end(key)
        while len(self) > self.maxSize:
            self.popitem(last=False)


def plantuml_encode(source: str) -> str:
    """
    Encode PlantUML text for the server URL.

    Raw DEFLATE, then base64 re-mapped onto PlantUML's URL-safe alphabet.
    """
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    deflated = compressor.compress(source.encode("utf-8")) + compressor.flush()
    return base64.b64encode(deflated).translate(_BASE64_TO_PLANTUML).decode("ascii")


def svg_extract(document: str) -> Optional[str]:
    """Pull the <svg> element out of an SVG document and make it fit its container"""
    soup = BeautifulSoup(document, "html.parser")
    svg = soup.find("svg")
    if svg is None:
        return None
    svg["style"] = SVG_STYLE
    return str(svg)


class PlantUmlRenderer:
    """
    PlantUML diagrams fetched as SVG from a PlantUML server

    GET <server>/svg/<encoded source>. The HTTP client is created lazily and
    reused; pass `client` to supply one (e.g. with a mock transport).
    """

    dialect = "plantuml"
    wrapperClass = "plantuml-svg-wrapper"

    def __init__(
        self,
        server: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.server = (server or appsettings.plantuml_server).rstrip("/")
        self.timeout = timeout or appsettings.diagram_timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def render(self, source: str) -> Optional[str]:
        if not source.strip():
            return None
        url = f"{self.server}/svg/{plantuml_encode(source)}"
        client = await self._get_client()
        LOG(f"PlantUML request: {url[:80]}...", level=3)
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise DiagramRenderError(f"PlantUML request failed: {e}") from e

        if not response.is_success:
            raise DiagramRenderError(f"PlantUML Server Error: {response.status_code}")

        svg = svg_extract(response.text)
        if svg is None:
            raise DiagramRenderError("PlantUML server returned no SVG")
        return svg


class MermaidRenderer:
    """
    Mermaid diagrams rendered by the mermaid-cli (`mmdc`) process

    The SVG is embedded as a base64 data URI <img>, so diagram styles cannot
    leak into the slide.
    """

    dialect = "mermaid"
    wrapperClass = "mermaid-img-wrapper"

    def __init__(self, command: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.command = command or appsettings.mermaid_command
        self.timeout = timeout or appsettings.diagram_timeout

    async def svg_generate(self, source: str) -> bytes:
        """Run mmdc on the source in a scratch directory and return the SVG bytes"""
        with tempfile.TemporaryDirectory(prefix="mdeck-mermaid-") as workdir:
            inputPath = Path(workdir) / "diagram.mmd"
            outputPath = Path(workdir) / "diagram.svg"
            inputPath.write_text(source, encoding="utf-8")

            try:
                process = await asyncio.create_subprocess_exec(
                    self.command, "-i", str(inputPath), "-o", str(outputPath),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise DiagramRenderError(f"Cannot run {self.command}: {e}") from e

            try:
                _, stderr = await asyncio.wait_for(process.communicate(), self.timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                raise DiagramRenderError(f"{self.command} timed out after {self.timeout}s")

            if process.returncode != 0:
                message = stderr.decode("utf-8", "replace").strip()
                raise DiagramRenderError(message or f"{self.command} exited with status {process.returncode}")
            if not outputPath.exists():
                raise DiagramRenderError(f"{self.command} produced no output")
            return outputPath.read_bytes()

    async def render(self, source: str) -> str:
        svg = await self.svg_generate(source)
        if not svg.strip():
            raise DiagramRenderError("Mermaid produced an empty SVG")
        dataUri = "data:image/svg+xml;base64," + base64.b64encode(svg).decode("ascii")
        return f'<img src="{dataUri}" alt="Mermaid Diagram" style="{SVG_STYLE}" />'


def diagramError_render(dialect: str, message: str, source: str) -> str:
    """Visible error block standing in for a diagram that failed"""
    title = f"{dialect.capitalize()} Error"
    return (
        f'<div class="diagram-error" style="{ERROR_STYLE}">'
        f"{html.escape(title)}:\n{html.escape(message)}\n\n{html.escape(source)}"
        f"</div>"
    )


class DiagramProcessor:
    """
    Replaces diagram placeholders in slide HTML with rendered diagrams

    Example:
        >>> processor = DiagramProcessor([MermaidRenderer(), PlantUmlRenderer()])
        >>> await processor.html_process('<p>no diagrams</p>')
        '<p>no diagrams</p>'
    """

    def __init__(
        self,
        renderers: Optional[Iterable[DiagramRenderer]] = None,
        cacheSize: Optional[int] = None,
        memoSize: Optional[int] = None,
    ) -> None:
        if renderers is None:
            renderers = [MermaidRenderer(), PlantUmlRenderer()]
        self.renderers: Dict[str, DiagramRenderer] = {r.dialect: r for r in renderers}
        self.cache: LruCache = LruCache(cacheSize or appsettings.diagram_cache_size)
        self.htmlMemo: LruCache = LruCache(memoSize or appsettings.html_memo_size)

    def clear(self) -> None:
        self.cache.clear()
        self.htmlMemo.clear()

    async def close(self) -> None:
        """Release renderer resources (HTTP clients)"""
        for renderer in self.renderers.values():
            close = getattr(renderer, "close", None)
            if close is not None:
                await close()

    def placeholders_present(self, htmlText: str) -> bool:
        """Cheap substring test for any placeholder class"""
        return any(f'class="{dialect}"' in htmlText for dialect in self.renderers)

    async def html_process(self, htmlText: str) -> str:
        """
        Render every diagram placeholder in a slide's base HTML.

        Args:
            htmlText: Base slide HTML

        Returns:
            HTML with placeholders replaced by diagram markup or error
            blocks; the input itself when it holds no placeholders
        """
        if not self.placeholders_present(htmlText):
            return htmlText
        memo = self.htmlMemo.get(htmlText)
        if memo is not None:
            return memo

        soup = BeautifulSoup(htmlText, "html.parser")
        nodes = [
            (dialect, node)
            for dialect in self.renderers
            for node in soup.find_all("div", class_=dialect)
        ]
        if not nodes:
            return htmlText

        results = await asyncio.gather(
            *(self.diagram_render(dialect, node.get_text()) for dialect, node in nodes)
        )

        allRendered = True
        for (dialect, node), (markup, rendered) in zip(nodes, results):
            allRendered = allRendered and rendered
            if markup is None:
                continue
            fragment = BeautifulSoup(markup, "html.parser")
            node.replace_with(*list(fragment.contents))

        final = str(soup)
        if allRendered:
            self.htmlMemo[htmlText] = final
        return final

    async def diagram_render(self, dialect: str, source: str) -> Tuple[Optional[str], bool]:
        """
        Render one diagram, through the content cache.

        Returns:
            (markup, rendered) where rendered is False for an error block;
            markup is None when the renderer leaves the placeholder as-is
        """
        renderer = self.renderers[dialect]
        key = (dialect, source)

        markup = self.cache.get(key)
        if markup is None:
            try:
                markup = await renderer.render(source)
            except Exception as e:
                LOG_error(f"{dialect} diagram failed: {e}")
                return diagramError_render(dialect, str(e), source), False
            if markup is None:
                return None, True
            self.cache[key] = markup
        else:
            LOG(f"{dialect} diagram served from cache", level=3)

        return f'<div class="{renderer.wrapperClass}">{markup}</div>', True

    async def slides_process(self, slides: List[SlideData]) -> List[SlideData]:
        """
        Post-process a whole deck; slides are processed concurrently.

        Slides without diagrams come back as the same objects.
        """
        htmls = await asyncio.gather(*(self.html_process(slide.html) for slide in slides))
        return [
            slide if final is slide.html else replace(slide, html=final)
            for slide, final in zip(slides, htmls)
        ]
