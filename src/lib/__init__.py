"""
mdeck - Markdown slide deck compiler

Compiles a markdown document with directive comments into independently
renderable slides.
"""

__version__ = "0.4.0"
__author__ = "mdeck developers"

from .splitter import blocks_split, blocks_join
from .directives import DirectiveRegistry, command_parse
from .context import globalContext_parse, slideSource_extract
from .renderer import SlideRenderer
from .cache import SlideCache
from .diagrams import (
    DiagramProcessor,
    DiagramRenderError,
    MermaidRenderer,
    PlantUmlRenderer,
)
from .compiler import Compiler, DeckRenderError, htmlDocument_build, deck_toJson
from .session import DeckSession
from .navigation import pageNumbers_assign, slideIndex_findByLine, slideLine_find
from .log import LOG, LOG_error, state_connectToLogger

__all__ = [
    "blocks_split",
    "blocks_join",
    "DirectiveRegistry",
    "command_parse",
    "globalContext_parse",
    "slideSource_extract",
    "SlideRenderer",
    "SlideCache",
    "DiagramProcessor",
    "DiagramRenderError",
    "MermaidRenderer",
    "PlantUmlRenderer",
    "Compiler",
    "DeckRenderError",
    "htmlDocument_build",
    "deck_toJson",
    "DeckSession",
    "pageNumbers_assign",
    "slideIndex_findByLine",
    "slideLine_find",
    "LOG",
    "LOG_error",
    "state_connectToLogger",
    "__version__",
]
