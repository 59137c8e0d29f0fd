"""
Code block highlighting

Fenced code info strings carry up to three optional parts:

    python:train.py {2,4-5} start=10
    ^^^^^^ ^^^^^^^^ ^^^^^^^ ^^^^^^^^
    lang   filename ranges  first line number

The block is highlighted with Pygments (unknown languages fall back to plain
text) and paired with one background row per source line; rows whose line
number falls in the ranges carry the `highlighted-line` class. The rows are
independent of the <pre><code> block so highlight bands survive re-wrapping.
"""

import html
import re
from dataclasses import dataclass, field
from typing import Optional, Set

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, TextLexer
from pygments.util import ClassNotFound

from ..config import appsettings
from .lexer import DeckLexer, get_lexer
from .log import LOG

LANG_RE = re.compile(r"^([^:\s\\{]+)(?::([^:\s\\{]+))?")
RANGE_RE = re.compile(r"\{([\d,\-\s]+)\}")
START_RE = re.compile(r"start[=:](\d+)")


@dataclass
class CodeInfo:
    """
    Parsed fence info string

    Attributes:
        language: Requested language ("text" when none given)
        filename: Optional filename shown above the block
        highlightLines: Line numbers to mark as highlighted
        startLine: Number of the first source line
    """
    language: str = "text"
    filename: Optional[str] = None
    highlightLines: Set[int] = field(default_factory=set)
    startLine: int = 1


def lineRanges_parse(spec: Optional[str]) -> Set[int]:
    """
    Parse a line-range spec such as "2,4-5" (braces optional).

    Singles and inclusive ranges, comma-separated; malformed parts are
    skipped.

    Example:
        >>> sorted(lineRanges_parse("{2,4-5}"))
        [2, 4, 5]
    """
    lines: Set[int] = set()
    if not spec:
        return lines

    for part in spec.strip().strip("{}").split(","):
        part = part.strip()
        if "-" in part:
            start, _, end = part.partition("-")
            try:
                lines.update(range(int(start), int(end) + 1))
            except ValueError:
                continue
        elif part:
            try:
                lines.add(int(part))
            except ValueError:
                continue
    return lines


def infoString_parse(info: str) -> CodeInfo:
    """
    Split a fence info string into language, filename, ranges and start line

    Example:
        >>> info = infoString_parse("python:app.py {1,3-4} start=10")
        >>> (info.language, info.filename, sorted(info.highlightLines), info.startLine)
        ('python', 'app.py', [1, 3, 4], 10)
    """
    result = CodeInfo()
    info = info or ""

    langMatch = LANG_RE.match(info)
    if langMatch:
        result.language = langMatch.group(1)
        result.filename = langMatch.group(2)

    rangeMatch = RANGE_RE.search(info)
    if rangeMatch:
        result.highlightLines = lineRanges_parse(rangeMatch.group(1))

    startMatch = START_RE.search(info)
    if startMatch:
        result.startLine = int(startMatch.group(1))

    return result


def lexer_get(language: str) -> Lexer:
    """
    Get a Pygments lexer, degrading to plain text for unknown languages

    The deck language itself ("mdeck"/"deck") uses DeckLexer.
    """
    if language.lower() in DeckLexer.aliases:
        return get_lexer()
    try:
        return get_lexer_by_name(language)
    except ClassNotFound:
        LOG(f"Unknown highlight language '{language}', using plain text", level=3)
        return TextLexer()


def backgroundRows_render(code: str, info: CodeInfo) -> str:
    """
    One empty row div per source line, marking highlighted lines.

    A trailing empty line (the newline closing the fence body) gets no row.
    """
    lines = re.split(r"\r?\n", code)
    if lines and lines[-1] == "":
        lines.pop()

    rows = []
    for index, _ in enumerate(lines):
        lineNumber = index + info.startLine
        css = "code-bg-row highlighted-line" if lineNumber in info.highlightLines else "code-bg-row"
        rows.append(f'<div class="{css}" data-line-number="{lineNumber}"></div>')
    return "".join(rows)


def codeBlock_render(code: str, infoString: str, attrs: str = "") -> str:
    """
    Render a fenced code block to HTML.

    Args:
        code: Fence body
        infoString: Fence info string
        attrs: Pre-rendered attributes for the wrapper div (queued @addclass/@addstyle)

    Returns:
        Wrapper div holding the optional filename, the background rows and
        the highlighted <pre><code> block
    """
    info = infoString_parse(infoString)
    lexer = lexer_get(info.language)
    language = info.language if not isinstance(lexer, TextLexer) else "text"

    formatter = HtmlFormatter(
        style=appsettings.pygments_style,
        noclasses=appsettings.highlight_inline_styles,
        nowrap=True,
    )
    highlighted = highlight(code, lexer, formatter)

    filename = (
        f'<div class="code-filename">{html.escape(info.filename)}</div>'
        if info.filename else ""
    )

    return (
        f'<div{attrs}>'
        f'<div class="code-block-wrapper">'
        f'{filename}'
        f'<div class="code-background">{backgroundRows_render(code, info)}</div>'
        f'<pre><code class="highlight language-{html.escape(language)}">{highlighted}</code></pre>'
        f'</div>'
        f'</div>\n'
    )
