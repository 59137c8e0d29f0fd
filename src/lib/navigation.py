"""
Slide navigation helpers

Maps between editor cursor lines and slides using the line ranges the
splitter records, and assigns display page numbers.

Page numbers count only "logical" slides: a slide containing
`<!-- @hide -->` or `<!-- @cover -->` gets no number and does not advance
the count.

    slide 1  <!-- @cover -->   -> None
    slide 2  # Agenda          -> 1
    slide 3  <!-- @hide -->    -> None
    slide 4  # Results         -> 2
"""

import re
from typing import List, Optional

from ..models.slide import SlideData

HIDE_RE = re.compile(r"<!--\s+@hide\s+-->")
COVER_RE = re.compile(r"<!--\s+@cover\s+-->", re.IGNORECASE)


def slide_isHidden(slide: SlideData) -> bool:
    return bool(HIDE_RE.search(slide.raw))


def slide_isCover(slide: SlideData) -> bool:
    return bool(COVER_RE.search(slide.raw))


def pageNumbers_assign(slides: List[SlideData]) -> List[Optional[int]]:
    """
    Display page number for every slide, None for hidden and cover slides.

    Args:
        slides: Slides in deck order

    Returns:
        List aligned with slides
    """
    numbers: List[Optional[int]] = []
    count = 0
    for slide in slides:
        if slide_isHidden(slide) or slide_isCover(slide):
            numbers.append(None)
        else:
            count += 1
            numbers.append(count)
    return numbers


def slideIndex_findByLine(slides: List[SlideData], line: int) -> Optional[int]:
    """
    Index of the slide whose source range holds a 1-based document line.

    Lines in the preamble or on a separator belong to no slide.
    """
    for index, slide in enumerate(slides):
        if slide.range.contains(line):
            return index
    return None


def slideLine_find(slides: List[SlideData], index: int) -> Optional[int]:
    """First source line of a slide, for moving the editor cursor to it"""
    if 0 <= index < len(slides):
        return slides[index].range.startLine
    return None
