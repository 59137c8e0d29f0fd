"""
mdeck - Markdown slide deck compiler

Splits a markdown document into slides, applies the directive comments it
carries, and renders each slide to HTML with incremental recompilation.
"""

__version__ = "0.4.0"
__author__ = "mdeck developers"

from .lib import Compiler, DeckSession, DeckRenderError, LOG, state_connectToLogger

__all__ = ["Compiler", "DeckSession", "DeckRenderError", "LOG", "state_connectToLogger", "__version__"]
