"""
Slide data models

Types flowing through the compilation pipeline, from raw source blocks to
rendered slides:

    RawBlock  -> SlideData (base HTML)  -> DraftDeck
    DraftDeck -> diagram post-processing -> Deck (final HTML)
"""

from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .context import SlideContext


@dataclass(frozen=True)
class RawBlock:
    """
    A contiguous run of source lines between slide separators

    Attributes:
        rawContent: Block text with the separator lines removed
        startLine: First source line of the block (1-based, inclusive)
        endLine: Last source line of the block (1-based, inclusive)

    Example:
        "a\\n---\\nb" splits into
            RawBlock(rawContent="a", startLine=1, endLine=1)
            RawBlock(rawContent="b", startLine=3, endLine=3)
    """
    rawContent: str
    startLine: int
    endLine: int


@dataclass(frozen=True)
class LineRange:
    """Inclusive 1-based source line range of a slide"""
    startLine: int
    endLine: int

    def contains(self, line: int) -> bool:
        return self.startLine <= line <= self.endLine


@dataclass(frozen=True)
class SlideData:
    """
    Rendered slide

    Attributes:
        html: Slide body HTML (base HTML before diagram post-processing,
              final HTML after)
        noteHtml: Speaker notes rendered to HTML ("" when the slide has none)
        raw: Exact source block content; primary cache key
        className: Slide CSS class ("normal", "cover" or an @pageclass value)
        range: Source line range, used for editor cursor synchronization
        header: Header rendered as inline HTML, None when absent
        footer: Footer rendered as inline HTML, None when absent
    """
    html: str
    noteHtml: str
    raw: str
    className: str
    range: LineRange
    header: Optional[str] = None
    footer: Optional[str] = None


@dataclass
class DraftDeck:
    """
    Output of the synchronous compilation stage

    Slides carry base HTML; diagram placeholders are still unresolved.

    Attributes:
        generation: Monotonic run number assigned by the compiler
        context: GLOBAL context parsed from the preamble
        blocks: Every block of the document, preamble included
        slides: One SlideData per slide block (blocks[1:])
    """
    generation: int
    context: "SlideContext"
    blocks: List[RawBlock]
    slides: List[SlideData] = field(default_factory=list)


@dataclass
class Deck:
    """
    Output of the asynchronous post-processing stage

    Attributes:
        generation: Run number of the DraftDeck this deck was produced from
        context: GLOBAL context parsed from the preamble
        slides: Slides with diagram placeholders replaced by rendered markup
        pageNumbers: Display page number per slide, None for hidden/cover slides
    """
    generation: int
    context: "SlideContext"
    slides: List[SlideData]
    pageNumbers: List[Optional[int]] = field(default_factory=list)
