"""
Centralized logging using Loguru with context-aware verbosity.

This module provides a LOG() function that respects the current ProgramState's
verbosity level without requiring explicit state passing. The compilation
pipeline runs inside library calls (renderer handlers, the diagram
post-processor) that never see the CLI state, so the state travels in a
context variable instead.

Usage:
    from mdeck.lib.log import LOG, state_connectToLogger

    # At start of the CLI pipeline:
    state_connectToLogger(state)

    # Anywhere in that context:
    LOG("Compiled 12 slides", level=1)
    LOG("Slide cache: 11 hits, 1 miss", level=2)
    LOG("Unknown highlight language 'foo', using plain text", level=3)

Without a connected state (library use, tests) LOG() is silent.
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

# Context variable to hold current ProgramState
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <7}</level> │ "
    "<cyan>{module: <10}</cyan>:<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=logger_format, level="TRACE")

# Verbosity level -> loguru level name
_LEVEL_NAMES = {1: "INFO", 2: "DEBUG", 3: "TRACE"}


def state_connectToLogger(state: Any) -> None:
    """
    Connect a ProgramState to the logging context.

    Args:
        state: ProgramState instance with verbosity attribute
    """
    _program_state.set(state)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)
        **kwargs: Additional loguru metadata

    Verbosity levels:
        1 = Normal output (default)
        2 = Verbose (-v)
        3 = Debug (-vv or higher)
    """
    state = _program_state.get()

    if state and hasattr(state, 'verbosity') and state.verbosity >= level:
        name = _LEVEL_NAMES.get(level, "TRACE")
        logger.opt(depth=1).log(name, message, **kwargs)


def LOG_error(message: str, **kwargs: Any) -> None:
    """
    Log a recoverable error whenever a state is connected.

    Used for failures the pipeline absorbs (a bad drawio payload, a diagram
    that failed to render) so they surface even at default verbosity.
    """
    state = _program_state.get()

    if state and getattr(state, 'verbosity', 0) >= 1:
        logger.opt(depth=1).error(message, **kwargs)
