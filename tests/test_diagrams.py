"""
Diagram post-processor tests

Renderers are replaced by in-process fakes, except where a test exercises
the PlantUML client against a mock transport or a missing mermaid binary.
"""

import asyncio
import base64
import zlib

import httpx
import pytest

from mdeck.lib.diagrams import (
    DiagramProcessor,
    DiagramRenderError,
    LruCache,
    MermaidRenderer,
    PlantUmlRenderer,
    diagramError_render,
    plantuml_encode,
)
from mdeck.models.slide import LineRange, SlideData


class FakeRenderer:
    """Records sources and returns canned markup"""

    def __init__(self, dialect="mermaid", wrapperClass="mermaid-img-wrapper", fail_on=None, delay=0):
        self.dialect = dialect
        self.wrapperClass = wrapperClass
        self.fail_on = fail_on
        self.delay = delay
        self.sources = []
        self.active = 0
        self.peak = 0

    async def render(self, source):
        self.sources.append(source)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_on and self.fail_on in source:
                raise DiagramRenderError("syntax error")
            return f"<svg>{len(source)}</svg>"
        finally:
            self.active -= 1


def slide_make(html):
    return SlideData(html=html, noteHtml="", raw="", className="normal", range=LineRange(1, 1))


class TestPlaceholderReplacement:
    """Test html_process"""

    @pytest.mark.asyncio
    async def test_no_placeholders_fast_path(self):
        """HTML without placeholders is returned unchanged"""
        renderer = FakeRenderer()
        processor = DiagramProcessor([renderer])
        text = "<p>plain</p>\n"
        assert await processor.html_process(text) is text
        assert renderer.sources == []

    @pytest.mark.asyncio
    async def test_placeholder_replaced(self):
        """A placeholder is swapped for the wrapped rendering"""
        renderer = FakeRenderer()
        processor = DiagramProcessor([renderer])
        result = await processor.html_process('<h1>T</h1>\n<div class="mermaid">A--&gt;B\n</div>\n')
        assert renderer.sources == ["A-->B\n"]
        assert '<div class="mermaid-img-wrapper"><svg>6</svg></div>' in result
        assert 'class="mermaid"' not in result
        assert result.startswith("<h1>T</h1>")

    @pytest.mark.asyncio
    async def test_failure_isolated(self):
        """A failing diagram becomes an error block; its sibling still renders"""
        renderer = FakeRenderer(fail_on="bad")
        processor = DiagramProcessor([renderer])
        result = await processor.html_process(
            '<div class="mermaid">bad graph</div><div class="mermaid">good</div>'
        )
        assert '<div class="diagram-error"' in result
        assert "Mermaid Error:\nsyntax error\n\nbad graph" in result
        assert '<div class="mermaid-img-wrapper"><svg>4</svg></div>' in result

    @pytest.mark.asyncio
    async def test_diagrams_render_concurrently(self):
        """Placeholders of one slide are rendered concurrently"""
        renderer = FakeRenderer(delay=0.01)
        processor = DiagramProcessor([renderer])
        await processor.html_process('<div class="mermaid">one</div><div class="mermaid">two</div>')
        assert renderer.peak == 2

    @pytest.mark.asyncio
    async def test_dialects_routed(self):
        """Each dialect goes to its own renderer"""
        mermaid = FakeRenderer()
        plantuml = FakeRenderer(dialect="plantuml", wrapperClass="plantuml-svg-wrapper")
        processor = DiagramProcessor([mermaid, plantuml])
        result = await processor.html_process(
            '<div class="mermaid">m</div><div class="plantuml">p</div>'
        )
        assert mermaid.sources == ["m"]
        assert plantuml.sources == ["p"]
        assert 'class="plantuml-svg-wrapper"' in result


class TestCaching:
    """Test the content cache and the HTML memo"""

    @pytest.mark.asyncio
    async def test_source_cached_across_slides(self):
        """The same diagram on a different slide is not rendered again"""
        renderer = FakeRenderer()
        processor = DiagramProcessor([renderer])
        await processor.html_process('<div class="mermaid">same</div>')
        await processor.html_process('<p>other</p><div class="mermaid">same</div>')
        assert renderer.sources == ["same"]

    @pytest.mark.asyncio
    async def test_html_memo(self):
        """Identical base HTML is served from the memo"""
        renderer = FakeRenderer()
        processor = DiagramProcessor([renderer])
        text = '<div class="mermaid">x</div>'
        first = await processor.html_process(text)
        second = await processor.html_process(text)
        assert first == second
        assert processor.htmlMemo[text] == first

    @pytest.mark.asyncio
    async def test_failures_not_memoized(self):
        """A failed diagram is retried on the next pass"""
        renderer = FakeRenderer(fail_on="bad")
        processor = DiagramProcessor([renderer])
        text = '<div class="mermaid">bad</div>'
        await processor.html_process(text)
        await processor.html_process(text)
        assert renderer.sources == ["bad", "bad"]
        assert text not in processor.htmlMemo
        assert processor.cache == {}

    @pytest.mark.asyncio
    async def test_clear(self):
        """clear() empties both caches"""
        processor = DiagramProcessor([FakeRenderer()])
        await processor.html_process('<div class="mermaid">x</div>')
        processor.clear()
        assert processor.cache == {}
        assert processor.htmlMemo == {}

    @pytest.mark.asyncio
    async def test_caches_bounded(self):
        """Old diagrams and slide HTML are evicted once the caps are reached"""
        renderer = FakeRenderer()
        processor = DiagramProcessor([renderer], cacheSize=2, memoSize=2)
        for source in ("a", "b", "c"):
            await processor.html_process(f'<div class="mermaid">{source}</div>')
        assert list(processor.cache) == [("mermaid", "b"), ("mermaid", "c")]
        assert len(processor.htmlMemo) == 2
        await processor.html_process('<div class="mermaid">a</div>')
        assert renderer.sources == ["a", "b", "c", "a"]

    def test_lru_order(self):
        """Reading an entry protects it from the next eviction"""
        cache = LruCache(2)
        cache["a"] = 1
        cache["b"] = 2
        assert cache.get("a") == 1
        cache["c"] = 3
        assert list(cache) == ["a", "c"]
        assert cache.get("b") is None


class TestSlides:
    """Test deck-level processing"""

    @pytest.mark.asyncio
    async def test_unchanged_slides_keep_identity(self):
        """Slides without diagrams come back as the same objects"""
        processor = DiagramProcessor([FakeRenderer()])
        plain = slide_make("<p>a</p>")
        diagram = slide_make('<div class="mermaid">x</div>')
        result = await processor.slides_process([plain, diagram])
        assert result[0] is plain
        assert result[1] is not diagram
        assert "mermaid-img-wrapper" in result[1].html


class TestErrorBlock:
    """Test the inline error block"""

    def test_escaped(self):
        """Message and source are escaped"""
        block = diagramError_render("plantuml", "bad <tag>", "a -> b")
        assert block.startswith('<div class="diagram-error" style="color:red;')
        assert "Plantuml Error:\nbad &lt;tag&gt;\n\na -&gt; b" in block


class TestPlantUml:
    """Test the PlantUML server client"""

    def test_encode_is_deflate(self):
        """Encoded text decodes back to the source"""
        encoded = plantuml_encode("Bob -> Alice : hello")
        table = bytes.maketrans(
            b"0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_",
            b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/",
        )
        raw = base64.b64decode(encoded.encode("ascii").translate(table))
        assert zlib.decompress(raw, -15).decode("utf-8") == "Bob -> Alice : hello"

    @pytest.mark.asyncio
    async def test_svg_fetched(self):
        """A successful response yields the styled <svg> element"""
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, text='<?xml version="1.0"?><svg><g></g></svg>')

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        renderer = PlantUmlRenderer(server="http://uml.test/", client=client)
        svg = await renderer.render("A -> B")
        await renderer.close()
        assert requested[0].startswith("http://uml.test/svg/")
        assert svg.startswith('<svg style="max-width: 100%;')

    @pytest.mark.asyncio
    async def test_server_error(self):
        """A non-success status raises DiagramRenderError"""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        renderer = PlantUmlRenderer(server="http://uml.test", client=client)
        with pytest.raises(DiagramRenderError, match="PlantUML Server Error: 500"):
            await renderer.render("A -> B")
        await renderer.close()

    @pytest.mark.asyncio
    async def test_server_error_in_slide(self):
        """Through the processor, a server error becomes an error block"""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        processor = DiagramProcessor([PlantUmlRenderer(server="http://uml.test", client=client)])
        result = await processor.html_process('<div class="plantuml">A -&gt; B</div>')
        await processor.close()
        assert "Plantuml Error:\nPlantUML Server Error: 503\n\nA -&gt; B" in result

    @pytest.mark.asyncio
    async def test_blank_source_skipped(self):
        """An empty PlantUML fence sends no request and stays a placeholder"""
        requested = []

        def handler(request):
            requested.append(request)
            return httpx.Response(500)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        processor = DiagramProcessor([PlantUmlRenderer(server="http://uml.test", client=client)])
        text = '<div class="plantuml">\n  \n</div>'
        result = await processor.html_process(text)
        await processor.close()
        assert requested == []
        assert result == text
        assert "diagram-error" not in result
        assert processor.cache == {}


class TestMermaid:
    """Test the mermaid-cli renderer"""

    @pytest.mark.asyncio
    async def test_missing_command(self):
        """A missing executable raises DiagramRenderError"""
        renderer = MermaidRenderer(command="mdeck-no-such-mmdc")
        with pytest.raises(DiagramRenderError, match="Cannot run"):
            await renderer.render("graph TD; A-->B")
