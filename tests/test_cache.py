"""
Slide cache tests

Tests positional reuse, line-range refresh, and invalidation on GLOBAL,
base URL and cache-bust changes.
"""

from mdeck.lib.cache import SlideCache
from mdeck.lib.context import globalContext_parse
from mdeck.lib.renderer import SlideRenderer
from mdeck.lib.splitter import blocks_split
from mdeck.models.context import SlideContext


class CountingRenderer:
    """Wraps SlideRenderer and records which slide indices were rendered"""

    def __init__(self):
        self.renderer = SlideRenderer()
        self.rendered = []

    def __call__(self, block, context, pageIndex, baseUrl="", cacheBust=0):
        self.rendered.append(pageIndex)
        return self.renderer.slide_render(block, context, pageIndex, baseUrl, cacheBust)


def slide_blocks(document):
    return blocks_split(document)[1:]


class TestReuse:
    """Test hits and misses"""

    def test_first_pass_renders_everything(self):
        """An empty cache misses for every slide"""
        cache = SlideCache()
        render = CountingRenderer()
        cache.slides_resolve(slide_blocks("pre\n---\n# A\n---\n# B"), SlideContext(), render)
        assert render.rendered == [1, 2]
        assert (cache.stats.hits, cache.stats.misses) == (0, 2)

    def test_unchanged_document_hits(self):
        """A second identical pass reuses the very same objects"""
        cache = SlideCache()
        render = CountingRenderer()
        blocks = slide_blocks("pre\n---\n# A\n---\n# B")
        first = cache.slides_resolve(blocks, SlideContext(), render)
        second = cache.slides_resolve(blocks, SlideContext(), render)
        assert render.rendered == [1, 2]
        assert all(a is b for a, b in zip(first, second))
        assert cache.stats.hits == 2
        assert cache.stats.totalMisses == 2

    def test_editing_one_slide(self):
        """Only the edited slide is re-rendered"""
        cache = SlideCache()
        render = CountingRenderer()
        first = cache.slides_resolve(slide_blocks("pre\n---\n# A\n---\n# B"), SlideContext(), render)
        second = cache.slides_resolve(slide_blocks("pre\n---\n# A\n---\n# B changed"), SlideContext(), render)
        assert render.rendered == [1, 2, 2]
        assert second[0] is first[0]
        assert second[1].html == "<h1>B changed</h1>\n"

    def test_inserted_slide_misses_from_position(self):
        """Inserting a slide shifts positions: later slides miss"""
        cache = SlideCache()
        render = CountingRenderer()
        cache.slides_resolve(slide_blocks("pre\n---\n# A\n---\n# B"), SlideContext(), render)
        render.rendered.clear()
        cache.slides_resolve(slide_blocks("pre\n---\n# A\n---\n# New\n---\n# B"), SlideContext(), render)
        assert render.rendered == [2, 3]

    def test_truncation(self):
        """Removing slides leaves only the remaining entries"""
        cache = SlideCache()
        render = CountingRenderer()
        cache.slides_resolve(slide_blocks("pre\n---\n# A\n---\n# B\n---\n# C"), SlideContext(), render)
        slides = cache.slides_resolve(slide_blocks("pre\n---\n# A"), SlideContext(), render)
        assert len(slides) == 1
        assert len(cache.entries) == 1
        assert cache.stats.hits == 1


class TestLineRanges:
    """Test range refresh on reuse"""

    def test_shifted_slide_keeps_html(self):
        """A slide moved down by a preamble edit is reused with a new range"""
        cache = SlideCache()
        render = CountingRenderer()
        first = cache.slides_resolve(slide_blocks("pre\n---\n# A"), SlideContext(), render)
        second = cache.slides_resolve(slide_blocks("pre\nmore\n---\n# A"), SlideContext(), render)
        assert render.rendered == [1]
        assert second[0] is not first[0]
        assert second[0].html is first[0].html
        assert (second[0].range.startLine, second[0].range.endLine) == (4, 4)


class TestInvalidation:
    """Test pass-wide fingerprints"""

    def test_global_change_invalidates(self):
        """A changed GLOBAL context re-renders every slide"""
        cache = SlideCache()
        render = CountingRenderer()
        blocks = slide_blocks("pre\n---\n# A\n---\n# B")
        cache.slides_resolve(blocks, globalContext_parse("<!-- @title One -->"), render)
        cache.slides_resolve(blocks, globalContext_parse("<!-- @title Two -->"), render)
        assert render.rendered == [1, 2, 1, 2]

    def test_equal_global_context_hits(self):
        """Re-parsed but equal preambles keep the cache"""
        cache = SlideCache()
        render = CountingRenderer()
        blocks = slide_blocks("pre\n---\n# A")
        cache.slides_resolve(blocks, globalContext_parse("<!-- @title One -->"), render)
        cache.slides_resolve(blocks, globalContext_parse("<!-- @title One -->"), render)
        assert render.rendered == [1]

    def test_base_url_change_invalidates(self):
        """A new base URL re-renders every slide"""
        cache = SlideCache()
        render = CountingRenderer()
        blocks = slide_blocks("pre\n---\n![a](a.png)")
        cache.slides_resolve(blocks, SlideContext(), render, baseUrl="http://one/")
        slides = cache.slides_resolve(blocks, SlideContext(), render, baseUrl="http://two/")
        assert render.rendered == [1, 1]
        assert 'src="http://two/a.png"' in slides[0].html

    def test_cache_bust_change_invalidates(self):
        """A new cache-bust token re-renders every slide"""
        cache = SlideCache()
        render = CountingRenderer()
        blocks = slide_blocks("pre\n---\n![a](a.png)")
        cache.slides_resolve(blocks, SlideContext(), render, cacheBust=1)
        slides = cache.slides_resolve(blocks, SlideContext(), render, cacheBust=2)
        assert render.rendered == [1, 1]
        assert 'src="a.png?_t=2"' in slides[0].html

    def test_clear(self):
        """clear() forces a full re-render"""
        cache = SlideCache()
        render = CountingRenderer()
        blocks = slide_blocks("pre\n---\n# A")
        cache.slides_resolve(blocks, SlideContext(), render)
        cache.clear()
        cache.slides_resolve(blocks, SlideContext(), render)
        assert render.rendered == [1, 1]
