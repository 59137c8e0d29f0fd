"""
Deck compiler

Drives the compilation pipeline for one document text:

    text
     -> blocks_split                     RawBlock[] (block 0 = preamble)
     -> globalContext_parse(block 0)     SlideContext (rebuilt only when the
                                         preamble text changes)
     -> SlideCache + SlideRenderer       DraftDeck (base HTML)   [sync]
     -> DiagramProcessor                 Deck (final HTML)       [async]

Every run gets a generation number. A run whose generation is no longer the
latest when its diagrams finish is stale: its Deck is discarded (None) so an
older, slower run can never overwrite a newer result.
"""

import html
import json
from dataclasses import asdict
from typing import Any, Dict, Optional

from ..models.context import SlideContext
from ..models.slide import Deck, DraftDeck
from .cache import SlideCache
from .context import globalContext_parse
from .diagrams import DiagramProcessor
from .log import LOG
from .navigation import pageNumbers_assign
from .renderer import SlideRenderer
from .splitter import blocks_split


class DeckRenderError(Exception):
    """The document could not be rendered at all"""


class Compiler:
    """
    Incremental markdown deck compiler

    Holds the caches that make recompiling after a small edit cheap, so one
    instance should live as long as the document is being edited.

    Example:
        >>> compiler = Compiler()
        >>> deck = asyncio.run(compiler.deck_compile(text, baseUrl="/files/talk/"))
        >>> len(deck.slides), deck.context.aspectRatio
        (2, (4, 3))
    """

    def __init__(
        self,
        renderer: Optional[SlideRenderer] = None,
        cache: Optional[SlideCache] = None,
        diagrams: Optional[DiagramProcessor] = None,
    ) -> None:
        """
        Initialize compiler

        Args:
            renderer: Slide renderer (default: a new SlideRenderer)
            cache: Slide cache (default: a new, empty SlideCache)
            diagrams: Diagram post-processor (default: Mermaid + PlantUML)
        """
        self.renderer = renderer or SlideRenderer()
        self.cache = cache or SlideCache()
        self.diagrams = diagrams or DiagramProcessor()
        self.generation = 0
        self.preamble: Optional[str] = None
        self.context = SlideContext()

    def context_resolve(self, preamble: str) -> SlideContext:
        """GLOBAL context for a preamble, reusing the last one when the text is unchanged"""
        if preamble != self.preamble:
            self.context = globalContext_parse(preamble)
            self.preamble = preamble
            LOG("Preamble changed, GLOBAL context rebuilt", level=2)
        return self.context

    def blocks_compile(self, text: str, baseUrl: str = "", cacheBust: int = 0) -> DraftDeck:
        """
        Synchronous stage: split, build context, render changed slides.

        Args:
            text: Full document text
            baseUrl: Directory URL relative image paths resolve against
            cacheBust: Asset version token (0 = none)

        Returns:
            DraftDeck carrying a fresh generation number

        Raises:
            DeckRenderError: the splitter or renderer failed unexpectedly
        """
        self.generation += 1
        generation = self.generation

        try:
            blocks = blocks_split(text)
            context = self.context_resolve(blocks[0].rawContent)
            slides = self.cache.slides_resolve(
                blocks[1:], context, self.renderer.slide_render, baseUrl, cacheBust
            )
        except Exception as e:
            raise DeckRenderError(f"could not render this document: {e}") from e

        LOG(f"Generation {generation}: {len(slides)} slide(s) from {len(blocks)} block(s)", level=2)
        return DraftDeck(generation=generation, context=context, blocks=blocks, slides=slides)

    def generation_isCurrent(self, generation: int) -> bool:
        return generation == self.generation

    async def deck_finalize(self, draft: DraftDeck) -> Optional[Deck]:
        """
        Asynchronous stage: render diagrams, then publish unless stale.

        Returns:
            Final Deck, or None when a newer run started meanwhile
        """
        slides = await self.diagrams.slides_process(draft.slides)
        if not self.generation_isCurrent(draft.generation):
            LOG(f"Discarding stale generation {draft.generation} (current {self.generation})", level=2)
            return None
        return Deck(
            generation=draft.generation,
            context=draft.context,
            slides=slides,
            pageNumbers=pageNumbers_assign(slides),
        )

    async def deck_compile(self, text: str, baseUrl: str = "", cacheBust: int = 0) -> Optional[Deck]:
        """Run both stages; None if superseded while rendering diagrams"""
        draft = self.blocks_compile(text, baseUrl, cacheBust)
        return await self.deck_finalize(draft)

    async def close(self) -> None:
        await self.diagrams.close()


def deck_toDict(deck: Deck) -> Dict[str, Any]:
    """Plain-data form of a deck (for slides.json)"""
    return {
        "generation": deck.generation,
        "context": asdict(deck.context),
        "slides": [
            dict(asdict(slide), pageNumber=number)
            for slide, number in zip(deck.slides, deck.pageNumbers)
        ],
    }


def deck_toJson(deck: Deck, indent: Optional[int] = 2) -> str:
    return json.dumps(deck_toDict(deck), indent=indent, ensure_ascii=False)


def htmlDocument_build(deck: Deck, themeHref: Optional[str] = None) -> str:
    """
    Build a standalone HTML preview of a deck

    Args:
        deck: Finalized deck
        themeHref: Stylesheet href; defaults to the deck's @theme value

    Returns:
        Complete HTML document, one <section> per slide
    """
    context = deck.context
    width, height = context.aspectRatio
    title = html.escape(context.meta.title or "mdeck presentation")
    href = themeHref if themeHref is not None else context.themeCss
    themeLink = f'\n    <link rel="stylesheet" href="{html.escape(href)}">' if href else ""

    sections = []
    for index, (slide, number) in enumerate(zip(deck.slides, deck.pageNumbers), start=1):
        header = f'\n            <header class="slide-header">{slide.header}</header>' if slide.header else ""
        footer = slide.footer or ""
        page = f'<span class="page-number">{number}</span>' if number is not None else ""
        notes = f'\n            <aside class="notes">{slide.noteHtml}</aside>' if slide.noteHtml else ""
        sections.append(f"""        <section class="slide {slide.className}" id="slide-{index}"
                 data-start-line="{slide.range.startLine}" data-end-line="{slide.range.endLine}">{header}
            <div class="slide-content">
{slide.html}
            </div>
            <footer class="slide-footer">{footer}{page}</footer>{notes}
        </section>""")

    body = "\n".join(sections)

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>{themeLink}
    <style>
        .slide {{ aspect-ratio: {width} / {height}; position: relative; overflow: hidden; }}
        .multicolumn-container {{ display: flex; gap: 1em; }}
        .code-block-wrapper {{ position: relative; }}
        .code-background {{ position: absolute; inset: 0; pointer-events: none; }}
        .code-bg-row.highlighted-line {{ background: rgba(255, 255, 0, 0.15); }}
        .notes {{ display: none; }}
    </style>
</head>
<body>
    <div class="presentation-viewport">
        <div class="metaData" id="numberOfSlides" style="display: none;">{len(deck.slides)}</div>
        <div class="metaData" id="slideIDprefix" style="display: none;">slide-</div>

{body}
    </div>
</body>
</html>
"""
