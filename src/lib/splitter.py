"""
Block splitter

Splits a markdown deck into RawBlocks on separator lines (`---`).

Block 0 is the preamble: it holds GLOBAL directives and is never rendered.
Blocks 1..n are slide sources. Line numbers are 1-based and inclusive and map
exactly back to the document, so an editor cursor can be mapped to a slide
and back.

Code-fence handling is a textual toggle: any line whose trimmed content
starts with the fence marker flips the in-code state, whatever its info
string or fence length. A `---` line inside an open fence is content.

Example:
    >>> [b.rawContent for b in blocks_split("pre\\n---\\n# One\\n---\\n# Two")]
    ['pre', '# One', '# Two']
"""

import re
from typing import List

from ..config import appsettings
from ..models.slide import RawBlock


def blocks_split(markdown: str) -> List[RawBlock]:
    """
    Split a document into raw blocks.

    Args:
        markdown: Full document text (LF or CRLF line endings)

    Returns:
        Ordered RawBlocks, always at least one (an empty document yields a
        single empty block). A trailing block is emitted even if empty, and
        consecutive separators produce empty (blank slide) blocks.
    """
    lines = re.split(r"\r?\n", markdown)
    separator = appsettings.slide_separator
    fence = appsettings.code_fence

    blocks: List[RawBlock] = []
    current: List[str] = []
    blockStart = 1
    inCodeBlock = False

    for index, line in enumerate(lines):
        lineNumber = index + 1
        trimmed = line.strip()

        if trimmed.startswith(fence):
            inCodeBlock = not inCodeBlock

        if trimmed == separator and not inCodeBlock:
            blocks.append(RawBlock(
                rawContent="\n".join(current),
                startLine=blockStart,
                endLine=lineNumber - 1,
            ))
            current = []
            blockStart = lineNumber + 1
        else:
            current.append(line)

    blocks.append(RawBlock(
        rawContent="\n".join(current),
        startLine=blockStart,
        endLine=len(lines),
    ))
    return blocks


def blocks_join(blocks: List[RawBlock]) -> str:
    """
    Reassemble a document from its blocks, restoring the separators.

    Inverse of blocks_split for documents whose separators are exactly
    `---` (separator lines with surrounding whitespace come back trimmed).
    A block whose range spans no line (endLine < startLine, e.g. between
    two consecutive separators) contributes no line.
    """
    lines: List[str] = []
    for index, block in enumerate(blocks):
        if index:
            lines.append(appsettings.slide_separator)
        if block.endLine >= block.startLine:
            lines.extend(block.rawContent.split("\n"))
    return "\n".join(lines)
