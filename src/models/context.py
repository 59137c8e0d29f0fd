"""
Slide context models

Two-tier rendering state:

    SlideContext (GLOBAL) - built once from the preamble, shared by all slides
    RenderContext (LOCAL) - fresh per slide, mutated by renderer handlers as
                            they visit nodes in document order

The queued fields of RenderContext (caption, addclasses, addstyles) are
write-once-read-once: every consumer deletes what it reads, so a queued
value applies to the next matching element only.
"""

import json
from dataclasses import dataclass, field, fields, asdict
from typing import Dict, List, Optional, Tuple


@dataclass
class SlideMeta:
    """Presentation metadata rendered by @cover"""
    title: Optional[str] = None
    subtitle: Optional[str] = None
    date: Optional[str] = None
    presenter: Optional[str] = None
    affiliation: Optional[str] = None
    contact: Optional[str] = None


@dataclass
class SlideContext:
    """
    GLOBAL context derived from the preamble

    Attributes:
        aspectRatio: Slide canvas ratio (width, height), default 16:9
        meta: Cover-page metadata
        themeCss: Stylesheet path or URL from @theme
        header: Deck-wide header markdown from @header
        footer: Deck-wide footer markdown from @footer
    """
    aspectRatio: Tuple[int, int] = (16, 9)
    meta: SlideMeta = field(default_factory=SlideMeta)
    themeCss: Optional[str] = None
    header: Optional[str] = None
    footer: Optional[str] = None

    def fingerprint(self) -> str:
        """
        Serialize the context for cache invalidation.

        Two contexts with equal fingerprints render every slide identically.
        """
        return json.dumps(asdict(self), sort_keys=True)


@dataclass
class RenderContext(SlideContext):
    """
    LOCAL context for one slide render pass

    A shallow copy of the GLOBAL fields plus ephemeral renderer state.

    Attributes:
        numberOfPages: 1-based index of the slide being rendered
        caption: Pending caption for the next table or image
        columnsRatio: Flex weights of the open multicolumn container
        columnIndex: Index of the currently open column
        addclasses: Tag name -> queued class string
        addstyles: Tag name -> queued inline style string
        baseUrl: Directory URL relative image paths resolve against
        cacheBust: Asset version token appended to image URLs (0 = none)
    """
    numberOfPages: int = 0
    caption: Optional[str] = None
    columnsRatio: Optional[List[float]] = None
    columnIndex: Optional[int] = None
    addclasses: Dict[str, str] = field(default_factory=dict)
    addstyles: Dict[str, str] = field(default_factory=dict)
    baseUrl: str = ""
    cacheBust: int = 0

    @classmethod
    def slide_begin(
        cls,
        context: SlideContext,
        pageIndex: int,
        baseUrl: str = "",
        cacheBust: int = 0,
    ) -> "RenderContext":
        """
        Start a clean LOCAL context for one slide.

        Args:
            context: GLOBAL context
            pageIndex: 1-based slide index
            baseUrl: Base URL for relative image paths
            cacheBust: Asset version token

        Returns:
            RenderContext sharing the GLOBAL values, with no queued state
        """
        shared = {f.name: getattr(context, f.name) for f in fields(SlideContext)}
        return cls(**shared, numberOfPages=pageIndex, baseUrl=baseUrl, cacheBust=cacheBust)

    def class_queue(self, tag: str, value: str) -> None:
        """Append classes for the next <tag> (space-joined with any already queued)"""
        tag = tag.lower()
        queued = self.addclasses.get(tag)
        self.addclasses[tag] = f"{queued} {value}" if queued else value

    def style_queue(self, tag: str, value: str) -> None:
        """Append inline style for the next <tag> (space-joined with any already queued)"""
        tag = tag.lower()
        queued = self.addstyles.get(tag)
        self.addstyles[tag] = f"{queued} {value}" if queued else value

    def attributes_consume(self, tag: str, classes: Optional[str] = None) -> str:
        """
        Take the queued class/style for a tag and render them as attributes.

        Args:
            tag: HTML tag name about to be emitted
            classes: Classes the element already carries (e.g. task-list
                     items); queued classes are appended after them

        Returns:
            Attribute string with a leading space (e.g. ' class="red"'),
            or "" when nothing is queued

        Example:
            >>> ctx = RenderContext()
            >>> ctx.class_queue('p', 'red')
            >>> ctx.attributes_consume('p')
            ' class="red"'
            >>> ctx.attributes_consume('p')
            ''
        """
        tag = tag.lower()
        parts = []
        queued = self.addclasses.pop(tag, None)
        classes = " ".join(c for c in (classes, queued) if c)
        if classes:
            parts.append(f'class="{classes}"')
        styles = self.addstyles.pop(tag, None)
        if styles:
            parts.append(f'style="{styles}"')
        return " " + " ".join(parts) if parts else ""

    def caption_consume(self) -> Optional[str]:
        """Take the pending caption, leaving none behind"""
        caption, self.caption = self.caption, None
        return caption
