"""
Directive specification and command models

Defines the scopes and types of the embedded directive language
(`<!-- @directive params -->`) and the structures the parser produces.
"""

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional


class DirectiveScope(Enum):
    """
    Scope of a directive

    GLOBAL directives are honored only when found in the preamble (block 0)
    and affect every slide. LOCAL directives are executed by the renderer
    while it walks the slide they appear in.
    """
    GLOBAL = "GLOBAL"
    LOCAL = "LOCAL"


class DirectiveType(Enum):
    """Command types produced by the directive parser"""
    ASPECT = "ASPECT"
    THEME = "THEME"
    META = "META"
    HEADER = "HEADER"
    FOOTER = "FOOTER"
    CAPTION = "CAPTION"
    MULTICOLUMN_BEGIN = "MULTICOLUMN_BEGIN"
    MULTICOLUMN_NEXT = "MULTICOLUMN_NEXT"
    MULTICOLUMN_END = "MULTICOLUMN_END"
    ADD_CLASS = "ADD_CLASS"
    ADD_STYLE = "ADD_STYLE"
    COVER = "COVER"


# Metadata keys accepted by @title/@subtitle/@date/@presenter/@contact/@affiliation
META_KEYS = ("date", "title", "subtitle", "presenter", "contact", "affiliation")


@dataclass(frozen=True)
class MetaParams:
    """Params of a META command (e.g. @title Hello -> key='title', value='Hello')"""
    key: str
    value: str


@dataclass(frozen=True)
class TagParams:
    """Params of ADD_CLASS / ADD_STYLE (tag is lower-cased)"""
    tag: str
    value: str


@dataclass(frozen=True)
class Command:
    """
    A parsed directive

    Attributes:
        type: What the directive does
        scope: GLOBAL or LOCAL
        params: Type-dependent payload:
            ASPECT            -> (width, height) tuple of ints
            THEME/HEADER/FOOTER/CAPTION -> str
            META              -> MetaParams
            MULTICOLUMN_BEGIN -> str ratio spec ("" when omitted)
            ADD_CLASS/ADD_STYLE -> TagParams
            others            -> None
    """
    type: DirectiveType
    scope: DirectiveScope
    params: Any = None


@dataclass
class DirectiveSpec:
    """
    Specification for a directive

    Attributes:
        name: Directive name as written after '@' (e.g. "aspect", "begin multicolumn")
        type: Command type produced on match
        scope: GLOBAL or LOCAL
        pattern: Regex matched against the whole trimmed comment content
        params: Builds the command params from the regex match
        description: Human-readable description
        examples: Example usage strings
    """
    name: str
    type: DirectiveType
    scope: DirectiveScope
    pattern: str
    params: Callable[["re.Match[str]"], Any] = lambda match: None
    description: str = ""
    examples: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.regex = re.compile(self.pattern)

    def match(self, text: str) -> Optional[Command]:
        """
        Match the trimmed directive text against this spec

        Args:
            text: Trimmed comment content (e.g. "@aspect 4:3")

        Returns:
            Command on a full match, None otherwise
        """
        found = self.regex.fullmatch(text)
        if not found:
            return None
        return Command(type=self.type, scope=self.scope, params=self.params(found))
