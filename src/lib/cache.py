"""
Incremental slide cache

Rendering runs on every debounced edit, so unchanged slides are reused
instead of re-rendered. Entries are stored by slide position:

    entries[i] -> SlideData last rendered for slide i

A stored slide is reused when all three pass-wide fingerprints (GLOBAL
context, base URL, cache-bust token) are unchanged AND its raw text equals
the new block's text exactly. On reuse only the line range is refreshed.
Inserting a slide therefore misses from that position onward while earlier
positions keep hitting; any GLOBAL change misses everywhere.
"""

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from ..models.context import SlideContext
from ..models.slide import LineRange, RawBlock, SlideData
from .log import LOG

Fingerprint = Tuple[str, str, int]
SlideRenderFn = Callable[[RawBlock, SlideContext, int, str, int], SlideData]


@dataclass
class CacheStats:
    """Hit/miss counters of the last pass and since creation"""
    hits: int = 0
    misses: int = 0
    totalHits: int = 0
    totalMisses: int = 0


class SlideCache:
    """
    Positional memo of rendered slides

    Example:
        >>> cache = SlideCache()
        >>> slides = cache.slides_resolve(blocks[1:], context, renderer.slide_render)
        >>> cache.stats.misses
        3
        >>> again = cache.slides_resolve(blocks[1:], context, renderer.slide_render)
        >>> again[0] is slides[0]
        True
    """

    def __init__(self) -> None:
        self.entries: List[SlideData] = []
        self.fingerprint: Optional[Fingerprint] = None
        self.stats = CacheStats()

    def clear(self) -> None:
        """Drop every entry; the next pass renders everything"""
        self.entries = []
        self.fingerprint = None

    def slides_resolve(
        self,
        blocks: List[RawBlock],
        context: SlideContext,
        render: SlideRenderFn,
        baseUrl: str = "",
        cacheBust: int = 0,
    ) -> List[SlideData]:
        """
        Produce one SlideData per slide block, rendering only what changed.

        Args:
            blocks: Slide blocks (preamble excluded), in document order
            context: GLOBAL context of this pass
            render: Function rendering one block (SlideRenderer.slide_render)
            baseUrl: Base URL of this pass
            cacheBust: Cache-bust token of this pass

        Returns:
            SlideData list aligned with blocks; the cache now holds exactly
            these entries
        """
        fingerprint: Fingerprint = (context.fingerprint(), baseUrl, cacheBust)
        reusable = fingerprint == self.fingerprint
        if not reusable and self.entries:
            LOG("Global inputs changed, slide cache invalidated", level=2)

        self.stats.hits = self.stats.misses = 0
        slides: List[SlideData] = []

        for index, block in enumerate(blocks):
            cached = self.entries[index] if reusable and index < len(self.entries) else None
            if cached is not None and cached.raw == block.rawContent:
                slides.append(self.range_refresh(cached, block))
                self.stats.hits += 1
            else:
                slides.append(render(block, context, index + 1, baseUrl, cacheBust))
                self.stats.misses += 1

        self.entries = slides
        self.fingerprint = fingerprint
        self.stats.totalHits += self.stats.hits
        self.stats.totalMisses += self.stats.misses
        LOG(f"Slide cache: {self.stats.hits} hit(s), {self.stats.misses} miss(es)", level=2)
        return slides

    @staticmethod
    def range_refresh(slide: SlideData, block: RawBlock) -> SlideData:
        """Same slide with the block's current line range (the very same object when unchanged)"""
        if slide.range.startLine == block.startLine and slide.range.endLine == block.endLine:
            return slide
        return replace(slide, range=LineRange(block.startLine, block.endLine))
