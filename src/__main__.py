#!/usr/bin/env python3
"""
mdeck - Markdown slide deck compiler

Compiles one markdown document into a deck of slides. Slides are separated
by `---` lines; directives live in HTML comments:

    <!-- @aspect 4:3 -->
    <!-- @title Quarterly Review -->
    ---
    <!-- @cover -->
    ---
    # Results
    <!-- @begin multicolumn 2:1 -->
    ...

As with its sibling tools, the command line follows the ChRIS "plugin"
pattern: positional input and output directories plus options.

Usage:
    mdeck inputdir/ outputdir/ --inputFile talk.md

Outputs (in outputdir/outputSubdir):
    slides.json   deck context, per-slide HTML, notes, ranges, page numbers
    index.html    standalone preview of the deck
    css/theme.css copy of a local @theme stylesheet, when there is one

Examples:
    # Basic compilation
    mdeck . output/ --inputFile talk.md

    # Images served from elsewhere, recompiling on every save
    mdeck . output/ --inputFile talk.md --baseUrl http://localhost:8000/talk/ --watch

    # Verbose output
    mdeck . output/ --inputFile talk.md -vv
"""

import asyncio
import shutil
import sys
import time
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter
from pathlib import Path

from chris_plugin import chris_plugin

from .config import appsettings
from .lib import (
    Compiler,
    DeckRenderError,
    deck_toJson,
    htmlDocument_build,
    LOG,
    __version__,
    state_connectToLogger,
)
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
               _           _
  _ __ ___   __| | ___  ___| | __
 | '_ ` _ \ / _` |/ _ \/ __| |/ /
 | | | | | | (_| |  __/ (__|   <
 |_| |_| |_|\__,_|\___|\___|_|\_\

  Markdown slide deck compiler
"""

# Define CLI arguments
parser = ArgumentParser(
    description="mdeck - Markdown slide deck compiler with directive comments",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--inputFile", required=True, type=str, help="Input markdown deck (relative to inputdir)"
)

parser.add_argument(
    "--baseUrl",
    default="",
    type=str,
    help="URL that relative image paths are resolved against",
)

parser.add_argument(
    "--outputSubdir",
    default=".",
    type=str,
    help="Subdirectory within outputdir for the compiled deck",
)

parser.add_argument(
    "--watch",
    action="store_true",
    help="Keep running and recompile whenever the input file changes",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve all file paths.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - inputSourceFile: Resolved path to the markdown deck
            - htmlOutputdir: Created output directory path
            - envOK: True if environment is valid

    Exits:
        1 if the input file is not found
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    input_file = state.inputdir / state.inputFile
    if not input_file.is_file():
        print(f"Error: Input file not found: {input_file}", file=sys.stderr)
        sys.exit(1)
    state.inputSourceFile = input_file
    LOG(f"Input file: {input_file}", level=2)

    state.htmlOutputdir = state.outputdir / state.outputSubdir
    state.htmlOutputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Output directory: {state.htmlOutputdir}", level=2)

    state.envOK = True
    return state


def source_read(inputstate: ProgramState) -> ProgramState:
    """
    Read the markdown deck from disk.

    Returns:
        ProgramState with added fields:
            - sourceText: Deck text
            - sourceMtime: File modification time at read

    Exits:
        1 if the file cannot be read
    """

    state = inputstate.copy()

    LOG("Reading source file...", level=1)

    try:
        state.sourceMtime = state.inputSourceFile.stat().st_mtime
        state.sourceText = state.inputSourceFile.read_text(encoding="utf-8")
        LOG(f"Read {len(state.sourceText)} characters from {state.inputSourceFile.name}", level=2)
    except OSError as e:
        print(f"Error reading input file: {e}", file=sys.stderr)
        sys.exit(1)
    return state


async def deck_build(compiler: Compiler, text: str, baseUrl: str):
    """Compile inside one event loop, releasing the diagram HTTP client afterwards"""
    try:
        return await compiler.deck_compile(text, baseUrl)
    finally:
        await compiler.close()


def deck_compile(inputstate: ProgramState) -> ProgramState:
    """
    Compile the deck text, rendering diagrams.

    The Compiler is kept on the state so watch-mode recompiles reuse its
    slide and diagram caches.

    Returns:
        ProgramState with added fields:
            - compiler: Compiler instance
            - deck: Final Deck

    Exits:
        1 if the document cannot be rendered
    """

    state = inputstate.copy()

    LOG("Compiling slides...", level=1)

    if state.compiler is None:
        state.compiler = Compiler()

    try:
        state.deck = asyncio.run(deck_build(state.compiler, state.sourceText or "", state.baseUrl))
    except DeckRenderError as e:
        print(f"Compilation error: {e}", file=sys.stderr)
        if state.verbosity >= 3:
            import traceback

            traceback.print_exc()
        sys.exit(1)

    stats = state.compiler.cache.stats
    LOG(f"Compiled {len(state.deck.slides)} slides ({stats.hits} cached, {stats.misses} rendered)", level=2)
    return state


def theme_copy(state: ProgramState) -> str:
    """
    Copy a local @theme stylesheet next to the preview.

    Returns:
        Stylesheet href for index.html ("" when there is no theme; URLs are
        returned unchanged)
    """
    theme = state.deck.context.themeCss
    if not theme:
        return ""
    if theme.startswith(("http:", "https:", "/")):
        return theme

    source = state.inputSourceFile.parent / theme
    if not source.is_file():
        LOG(f"Warning: theme stylesheet {source} not found", level=1)
        return theme

    destination = state.htmlOutputdir / "css" / "theme.css"
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    LOG(f"Copied theme CSS: {source.name}", level=2)
    return "css/theme.css"


def deck_write(inputstate: ProgramState) -> ProgramState:
    """
    Write slides.json and index.html.

    Returns:
        ProgramState with added field:
            - compileResult: Dict containing:
                - status: bool
                - output_file: str (path to index.html)
                - json_file: str (path to slides.json)
                - slide_count: int
    """

    state = inputstate.copy()

    json_file = state.htmlOutputdir / "slides.json"
    json_file.write_text(deck_toJson(state.deck), encoding="utf-8")
    LOG(f"Wrote {json_file}", level=2)

    themeHref = theme_copy(state)
    output_file = state.htmlOutputdir / "index.html"
    output_file.write_text(htmlDocument_build(state.deck, themeHref=themeHref or None), encoding="utf-8")
    LOG(f"Wrote {output_file}", level=2)

    state.compileResult = {
        "status": True,
        "output_file": str(output_file),
        "json_file": str(json_file),
        "slide_count": len(state.deck.slides),
    }
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display compilation results to user.

    Exits:
        1 if compileResult is None
    """
    state: ProgramState = inputstate.copy()
    if not state.compileResult:
        print("Error: Compilation failed", file=sys.stderr)
        sys.exit(1)

    LOG("✓ Compilation successful!", level=1)
    LOG(f"  Output: {state.compileResult['output_file']}", level=1)
    LOG(f"  Slides: {state.compileResult['slide_count']}", level=1)
    return state


def changes_watch(inputstate: ProgramState) -> ProgramState:
    """
    Recompile whenever the input file's modification time changes.

    Runs until interrupted; a no-op without --watch.
    """
    state = inputstate.copy()
    if not state.watch:
        return state

    LOG(f"Watching {state.inputSourceFile} (Ctrl-C to stop)", level=1)
    try:
        while True:
            time.sleep(appsettings.watch_interval)
            try:
                mtime = state.inputSourceFile.stat().st_mtime
            except OSError:
                continue
            if mtime != state.sourceMtime:
                state = pipeline(state, source_read, deck_compile, deck_write, results_report)
    except KeyboardInterrupt:
        LOG("Stopped watching", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="mdeck - Markdown slide deck compiler",
    category="Visualization",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - compile a markdown deck to slides.json + index.html.

    Pipeline:
        1. env_check: Validate paths and environment
        2. source_read: Read the deck text
        3. deck_compile: Render slides and diagrams
        4. deck_write: Write slides.json, index.html and the theme
        5. results_report: Display results to user
        6. changes_watch: With --watch, repeat 2-5 on every file change
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, source_read, deck_compile, deck_write, results_report, changes_watch)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
