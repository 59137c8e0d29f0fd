"""
Block splitter tests

Tests separator detection, line-number bookkeeping and code-fence immunity.
"""

import pytest

from mdeck.lib.splitter import blocks_split, blocks_join


class TestBasicSplitting:
    """Test simple documents"""

    def test_empty_document(self):
        """Empty document yields one empty block"""
        blocks = blocks_split("")
        assert len(blocks) == 1
        assert blocks[0].rawContent == ""
        assert blocks[0].startLine == 1
        assert blocks[0].endLine == 1

    def test_no_separator(self):
        """Document without separators is a single preamble block"""
        blocks = blocks_split("# Title\ntext")
        assert [b.rawContent for b in blocks] == ["# Title\ntext"]

    def test_preamble_and_two_slides(self):
        """Separators split preamble and slides"""
        blocks = blocks_split("pre\n---\n# One\n---\n# Two")
        assert [b.rawContent for b in blocks] == ["pre", "# One", "# Two"]

    def test_line_ranges(self):
        """Line numbers are 1-based, inclusive, and skip separator lines"""
        blocks = blocks_split("pre\n---\n# One\ntext\n---\n# Two")
        assert (blocks[0].startLine, blocks[0].endLine) == (1, 1)
        assert (blocks[1].startLine, blocks[1].endLine) == (3, 4)
        assert (blocks[2].startLine, blocks[2].endLine) == (6, 6)

    def test_adjacent_ranges_skip_one_line(self):
        """Next block starts two lines after the previous block ends"""
        blocks = blocks_split("a\nb\n---\nc\n---\nd\ne")
        for previous, current in zip(blocks, blocks[1:]):
            assert current.startLine == previous.endLine + 2

    def test_crlf_line_endings(self):
        """CRLF documents split like LF documents"""
        blocks = blocks_split("pre\r\n---\r\n# One")
        assert [b.rawContent for b in blocks] == ["pre", "# One"]


class TestSeparatorEdgeCases:
    """Test separators with unusual surroundings"""

    def test_separator_with_whitespace(self):
        """Separator is compared after trimming"""
        blocks = blocks_split("a\n  ---  \nb")
        assert [b.rawContent for b in blocks] == ["a", "b"]

    def test_longer_rule_is_not_separator(self):
        """Only exactly three dashes separate slides"""
        blocks = blocks_split("a\n----\nb")
        assert len(blocks) == 1

    def test_consecutive_separators_make_blank_slide(self):
        """Two separators in a row produce an empty block"""
        blocks = blocks_split("a\n---\n---\nb")
        assert [b.rawContent for b in blocks] == ["a", "", "b"]

    def test_trailing_separator_emits_empty_block(self):
        """A trailing block is always emitted"""
        blocks = blocks_split("a\n---")
        assert [b.rawContent for b in blocks] == ["a", ""]
        assert blocks[-1].endLine == 2


class TestCodeFences:
    """Test that separators inside code fences are content"""

    def test_separator_inside_fence(self):
        """A --- line inside an open fence is not a separator"""
        blocks = blocks_split("```\n---\n```")
        assert len(blocks) == 1
        assert blocks[0].rawContent == "```\n---\n```"

    def test_separator_after_closed_fence(self):
        """Splitting resumes once the fence closes"""
        blocks = blocks_split("```python\nx = 1\n---\n```\n---\nafter")
        assert len(blocks) == 2
        assert blocks[1].rawContent == "after"

    def test_fence_toggle_is_textual(self):
        """Any fence-marker line toggles, even with a different info string"""
        blocks = blocks_split("```python\n---\n```js\n---\nx")
        assert [b.rawContent for b in blocks] == ["```python\n---\n```js", "x"]

    def test_indented_fence_marker(self):
        """Fence markers are recognized after trimming"""
        blocks = blocks_split("  ```\n---\n  ```\n---\nx")
        assert len(blocks) == 2


class TestJoin:
    """Test reassembly"""

    @pytest.mark.parametrize("document", [
        "pre\n---\n# One\n---\n# Two",
        "a\n---\n---\nb",
        "a\n---",
        "---\n---",
        "a\n---\n\n---\nb",
        "```\n---\n```\n---\nslide",
        "",
    ])
    def test_join_restores_document(self, document):
        """Joining blocks with separators restores the document"""
        assert blocks_join(blocks_split(document)) == document

    def test_zero_line_block_distinct_from_blank_line(self):
        """An empty block between separators differs from a block holding one blank line"""
        zero = blocks_split("a\n---\n---\nb")[1]
        blank = blocks_split("a\n---\n\n---\nb")[1]
        assert zero.rawContent == blank.rawContent == ""
        assert zero.endLine == zero.startLine - 1
        assert blank.endLine == blank.startLine
