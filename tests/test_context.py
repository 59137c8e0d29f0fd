"""
Context model tests

Tests the GLOBAL preamble scan, slide preprocessing, and the LOCAL
context's consume-once semantics.
"""

from mdeck.lib.context import globalContext_parse, slideSource_extract, texDelimiters_convert
from mdeck.models.context import RenderContext, SlideContext, SlideMeta


class TestGlobalContext:
    """Test preamble scanning"""

    def test_defaults(self):
        """Empty preamble gives the default context"""
        context = globalContext_parse("")
        assert context.aspectRatio == (16, 9)
        assert context.meta == SlideMeta()
        assert context.themeCss is None
        assert context.header is None

    def test_directives_applied(self):
        """GLOBAL directives populate the context"""
        preamble = "\n".join([
            "<!-- @aspect 4:3 -->",
            "<!-- @theme css/dark.css -->",
            "<!-- @title Deep *Learning* -->",
            "<!-- @presenter A. Person -->",
            "<!-- @header Draft -->",
            "<!-- @footer ACME 2025 -->",
        ])
        context = globalContext_parse(preamble)
        assert context.aspectRatio == (4, 3)
        assert context.themeCss == "css/dark.css"
        assert context.meta.title == "Deep *Learning*"
        assert context.meta.presenter == "A. Person"
        assert context.header == "Draft"
        assert context.footer == "ACME 2025"

    def test_later_occurrence_wins(self):
        """Repeated directives overwrite in document order"""
        context = globalContext_parse("<!-- @aspect 4:3 -->\n<!-- @aspect 1:1 -->")
        assert context.aspectRatio == (1, 1)

    def test_local_directives_ignored(self):
        """LOCAL directives in the preamble do not touch the context"""
        context = globalContext_parse("<!-- @caption nope -->\n<!-- @addclass p x -->")
        assert context == SlideContext()

    def test_idempotent(self):
        """Parsing the same preamble twice gives equal contexts"""
        preamble = "<!-- @aspect 4:3 -->\n<!-- @title T -->"
        first = globalContext_parse(preamble)
        second = globalContext_parse(preamble)
        assert first == second
        assert first.fingerprint() == second.fingerprint()

    def test_fingerprint_changes_with_content(self):
        """Different contexts have different fingerprints"""
        assert globalContext_parse("<!-- @title A -->").fingerprint() != \
            globalContext_parse("<!-- @title B -->").fingerprint()


class TestSlidePreprocessing:
    """Test comments stripped before rendering"""

    def test_notes_extracted(self):
        """Notes are collected in order and removed"""
        source = slideSource_extract("# A\n<!-- @note: first -->\ntext\n<!-- @note:  second  -->")
        assert source.notes == ["first", "second"]
        assert "@note" not in source.markdown

    def test_pageclass_last_wins(self):
        """Last @pageclass sets the class"""
        source = slideSource_extract("<!-- @pageclass dark -->\n<!-- @pageclass wide -->\n# A")
        assert source.className == "wide"
        assert "@pageclass" not in source.markdown

    def test_default_class(self):
        """Slides default to the normal class"""
        assert slideSource_extract("# A").className == "normal"

    def test_cover_class(self):
        """@cover switches the class but stays in the markdown"""
        source = slideSource_extract("<!-- @pageclass dark -->\n<!-- @cover -->")
        assert source.className == "cover"
        assert "<!-- @cover -->" in source.markdown

    def test_header_override_first_occurrence(self):
        """Only the first per-slide @header is taken and removed"""
        source = slideSource_extract("<!-- @header One -->\n<!-- @header Two -->\n# A")
        assert source.header == "One"
        assert "<!-- @header Two -->" in source.markdown
        assert "One" not in source.markdown

    def test_absent_header_inherits(self):
        """No override means None (inherit)"""
        source = slideSource_extract("# A")
        assert source.header is None
        assert source.footer is None

    def test_empty_footer_override(self):
        """An empty override is an empty string, not None"""
        assert slideSource_extract("<!-- @footer -->\n# A").footer == ""

    def test_tex_delimiters(self):
        """TeX math delimiters become dollar delimiters"""
        assert texDelimiters_convert(r"a \(x^2\) b") == "a $x^2$ b"
        assert texDelimiters_convert(r"\[E=mc^2\]") == "$$E=mc^2$$"


class TestRenderContext:
    """Test LOCAL context behavior"""

    def test_slide_begin_copies_global(self):
        """LOCAL context shares GLOBAL values and starts clean"""
        context = globalContext_parse("<!-- @aspect 4:3 -->\n<!-- @title T -->")
        local = RenderContext.slide_begin(context, 3, "http://h/", 7)
        assert local.aspectRatio == (4, 3)
        assert local.meta.title == "T"
        assert local.numberOfPages == 3
        assert local.baseUrl == "http://h/"
        assert local.cacheBust == 7
        assert local.caption is None
        assert local.columnsRatio is None
        assert local.addclasses == {}
        assert local.addstyles == {}

    def test_queue_is_cumulative(self):
        """Queued classes for one tag are space-joined"""
        local = RenderContext()
        local.class_queue("p", "a")
        local.class_queue("P", "b")
        assert local.attributes_consume("p") == ' class="a b"'

    def test_consume_once(self):
        """Consuming removes the queued attributes"""
        local = RenderContext()
        local.class_queue("td", "x")
        local.style_queue("td", "color:red")
        assert local.attributes_consume("td") == ' class="x" style="color:red"'
        assert local.attributes_consume("td") == ""

    def test_existing_classes_kept(self):
        """Queued classes follow the classes an element already carries"""
        local = RenderContext()
        local.class_queue("li", "first")
        assert local.attributes_consume("li", "task-list-item") == ' class="task-list-item first"'
        assert local.attributes_consume("li", "task-list-item") == ' class="task-list-item"'

    def test_other_tags_untouched(self):
        """Consuming one tag leaves other queues alone"""
        local = RenderContext()
        local.class_queue("h1", "big")
        assert local.attributes_consume("p") == ""
        assert local.addclasses == {"h1": "big"}

    def test_caption_consume(self):
        """Caption is read once"""
        local = RenderContext(caption="Fig")
        assert local.caption_consume() == "Fig"
        assert local.caption_consume() is None
