"""
Models package for mdeck

Contains data structures and type definitions for the compilation pipeline.
"""

from .state import ProgramState, pipeline
from .directives import (
    Command,
    DirectiveScope,
    DirectiveSpec,
    DirectiveType,
    MetaParams,
    TagParams,
    META_KEYS,
)
from .context import SlideMeta, SlideContext, RenderContext
from .slide import RawBlock, LineRange, SlideData, DraftDeck, Deck

__all__ = [
    "ProgramState",
    "pipeline",
    "Command",
    "DirectiveScope",
    "DirectiveSpec",
    "DirectiveType",
    "MetaParams",
    "TagParams",
    "META_KEYS",
    "SlideMeta",
    "SlideContext",
    "RenderContext",
    "RawBlock",
    "LineRange",
    "SlideData",
    "DraftDeck",
    "Deck",
]
