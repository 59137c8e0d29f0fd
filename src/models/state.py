"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing transformation stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, Dict, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the CLI pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the compilation progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, inputFile, baseUrl, outputSubdir, watch
        - env_check: inputSourceFile, htmlOutputdir, envOK
        - source_read: sourceText, sourceMtime
        - deck_compile: deck (compiler is created on first use and reused)
        - deck_write: compileResult
        - results_report: (no additions)
        - changes_watch: (with --watch, repeats source_read..results_report)

    Attributes:
        inputdir: Directory containing the markdown deck
        outputdir: Base output directory for compiled files
        verbosity: Logging verbosity level (1-3)
        inputFile: Markdown deck filename (relative to inputdir)
        baseUrl: URL prefix used to resolve relative image paths
        outputSubdir: Subdirectory within outputdir for output
        watch: Recompile whenever the deck file changes
        envOK: Environment validation passed
        inputSourceFile: Resolved path to the deck file
        htmlOutputdir: Final output directory (outputdir + outputSubdir)
        sourceText: Deck text as last read from disk
        sourceMtime: Modification time of sourceFile at last read
        compiler: Compiler instance (holds the incremental caches)
        deck: Final compiled deck
        compileResult: Write results (output files, slide count, status)
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    inputFile: str = field(default="")
    baseUrl: str = field(default="")
    outputSubdir: str = field(default=".")
    watch: bool = field(default=False)

    # Pipeline state
    envOK: bool = field(default=False)
    inputSourceFile: Path = field(default=Path("/"))
    htmlOutputdir: Path = field(default=Path("/"))
    sourceText: Optional[str] = field(default=None)
    sourceMtime: float = field(default=0.0)
    compiler: Optional[Any] = field(default=None)  # Compiler at runtime
    deck: Optional[Any] = field(default=None)  # Deck at runtime
    compileResult: Optional[Dict] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Merges CLI options with explicitly provided directories to create
        the initial program state for the compilation pipeline.

        Args:
            options: Parsed CLI arguments (inputFile, baseUrl, etc.)
            inputdir: Directory containing source files
            outputdir: Directory for compilation output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        import dataclasses

        options_dict = vars(options)
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Drop argparse extras the state bus doesn't know about
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}
        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Args:
        initial_state: Starting ProgramState
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final ProgramState after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            source_read,
            deck_compile,
            deck_write,
            results_report
        )
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
