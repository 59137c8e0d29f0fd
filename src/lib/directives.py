"""
Directive parser

Recognizes the fixed directive vocabulary written inside HTML comments:

    <!-- @aspect 4:3 -->              GLOBAL  slide canvas ratio
    <!-- @theme css/dark.css -->      GLOBAL  external stylesheet
    <!-- @title Deep Learning -->     GLOBAL  cover metadata (also @subtitle,
                                              @date, @presenter, @contact,
                                              @affiliation)
    <!-- @header *Draft* -->          GLOBAL  header/footer (per-slide
    <!-- @footer ACME 2025 -->                 overrides are handled by
                                              slide preprocessing)
    <!-- @caption Results -->         LOCAL   caption for next table/image
    <!-- @begin multicolumn 1:2 -->   LOCAL   open a flex column container
    <!-- @nextcolumn -->              LOCAL   next column
    <!-- @end multicolumn -->         LOCAL   close the container
    <!-- @addclass p lead -->         LOCAL   class for the next <p>
    <!-- @addstyle h1 color:red -->   LOCAL   style for the next <h1>
    <!-- @cover -->                   LOCAL   render the cover metadata block

Text that matches none of these yields None; the renderer then passes the
comment through untouched.
"""

import re
from typing import Dict, List, Optional

from ..models.directives import (
    Command,
    DirectiveScope,
    DirectiveSpec,
    DirectiveType,
    MetaParams,
    TagParams,
    META_KEYS,
)

COMMENT_RE = re.compile(r"^<!--\s*([\s\S]*?)\s*-->$")


class DirectiveRegistry:
    """
    Registry of directive specifications

    Specs are tried in registration order; the first full match wins.
    """

    def __init__(self) -> None:
        """Initialize the registry and register all built-in directives"""
        self.specs: Dict[str, DirectiveSpec] = {}
        self.globalDirectives_register()
        self.localDirectives_register()

    def register(self, spec: DirectiveSpec) -> None:
        """Register a directive specification"""
        self.specs[spec.name] = spec

    def spec_get(self, name: str) -> Optional[DirectiveSpec]:
        """Get full directive specification by name"""
        return self.specs.get(name)

    def directives_listByScope(self, scope: DirectiveScope) -> List[DirectiveSpec]:
        """Get all directives of a scope"""
        return [spec for spec in self.specs.values() if spec.scope == scope]

    def names_list(self) -> List[str]:
        """First word of every directive name (e.g. 'begin' for 'begin multicolumn')"""
        return sorted({name.split()[0] for name in self.specs})

    def command_parse(self, text: Optional[str]) -> Optional[Command]:
        """
        Parse directive text into a Command

        Accepts either the bare comment content ("@aspect 4:3") or a whole
        comment ("<!-- @aspect 4:3 -->"); surrounding whitespace is ignored.

        Args:
            text: Directive text

        Returns:
            Command, or None when the text is not a known directive

        Example:
            >>> registry = DirectiveRegistry()
            >>> registry.command_parse("<!-- @aspect 4:3 -->").params
            (4, 3)
            >>> registry.command_parse("<!-- just a comment -->") is None
            True
        """
        if not text:
            return None
        content = text.strip()
        wrapped = COMMENT_RE.match(content)
        if wrapped:
            content = wrapped.group(1).strip()
        if not content:
            return None

        for spec in self.specs.values():
            command = spec.match(content)
            if command is not None:
                return command
        return None

    def globalDirectives_register(self) -> None:
        """Register deck-wide directives (honored in the preamble only)"""

        self.register(DirectiveSpec(
            name='aspect',
            type=DirectiveType.ASPECT,
            scope=DirectiveScope.GLOBAL,
            pattern=r'@aspect\s+(\d+):(\d+)',
            params=lambda m: (int(m.group(1)), int(m.group(2))),
            description='Slide canvas aspect ratio',
            examples=['<!-- @aspect 4:3 -->'],
        ))

        self.register(DirectiveSpec(
            name='theme',
            type=DirectiveType.THEME,
            scope=DirectiveScope.GLOBAL,
            pattern=r'@theme\s+(.+)',
            params=lambda m: m.group(1).strip(),
            description='External stylesheet path or URL',
            examples=['<!-- @theme themes/night.css -->'],
        ))

        self.register(DirectiveSpec(
            name='meta',
            type=DirectiveType.META,
            scope=DirectiveScope.GLOBAL,
            pattern=r'@(' + '|'.join(META_KEYS) + r')\s+(.*)',
            params=lambda m: MetaParams(key=m.group(1), value=m.group(2)),
            description='Cover-page metadata field',
            examples=['<!-- @title Quarterly Review -->', '<!-- @presenter J. Doe -->'],
        ))

        self.register(DirectiveSpec(
            name='header',
            type=DirectiveType.HEADER,
            scope=DirectiveScope.GLOBAL,
            pattern=r'@header\s*([\s\S]*)',
            params=lambda m: m.group(1).strip(),
            description='Header text shown on every slide',
            examples=['<!-- @header **ACME** confidential -->'],
        ))

        self.register(DirectiveSpec(
            name='footer',
            type=DirectiveType.FOOTER,
            scope=DirectiveScope.GLOBAL,
            pattern=r'@footer\s*([\s\S]*)',
            params=lambda m: m.group(1).strip(),
            description='Footer text shown on every slide',
            examples=['<!-- @footer 2025 ACME Corp -->'],
        ))

    def localDirectives_register(self) -> None:
        """Register slide-scoped directives (executed by the renderer in-stream)"""

        self.register(DirectiveSpec(
            name='caption',
            type=DirectiveType.CAPTION,
            scope=DirectiveScope.LOCAL,
            pattern=r'@caption\s+(.*)',
            params=lambda m: m.group(1),
            description='Caption for the next table or image',
            examples=['<!-- @caption Figure 1: *Throughput* -->'],
        ))

        self.register(DirectiveSpec(
            name='begin multicolumn',
            type=DirectiveType.MULTICOLUMN_BEGIN,
            scope=DirectiveScope.LOCAL,
            pattern=r'@begin\s+multicolumn(?:\s+(.*))?',
            params=lambda m: (m.group(1) or '').strip(),
            description='Open a multi-column layout (ratio list, default 1:1)',
            examples=['<!-- @begin multicolumn 2:1 -->'],
        ))

        self.register(DirectiveSpec(
            name='nextcolumn',
            type=DirectiveType.MULTICOLUMN_NEXT,
            scope=DirectiveScope.LOCAL,
            pattern=r'@nextcolumn',
            description='Advance to the next column',
            examples=['<!-- @nextcolumn -->'],
        ))

        self.register(DirectiveSpec(
            name='end multicolumn',
            type=DirectiveType.MULTICOLUMN_END,
            scope=DirectiveScope.LOCAL,
            pattern=r'@end\s+multicolumn',
            description='Close the multi-column layout',
            examples=['<!-- @end multicolumn -->'],
        ))

        self.register(DirectiveSpec(
            name='addclass',
            type=DirectiveType.ADD_CLASS,
            scope=DirectiveScope.LOCAL,
            pattern=r'@addclass\s+(\S+)\s+(.*)',
            params=lambda m: TagParams(tag=m.group(1).lower(), value=m.group(2)),
            description='Add classes to the next element with the given tag',
            examples=['<!-- @addclass ul two-col -->'],
        ))

        self.register(DirectiveSpec(
            name='addstyle',
            type=DirectiveType.ADD_STYLE,
            scope=DirectiveScope.LOCAL,
            pattern=r'@addstyle\s+(\S+)\s+(.*)',
            params=lambda m: TagParams(tag=m.group(1).lower(), value=m.group(2)),
            description='Add inline style to the next element with the given tag',
            examples=['<!-- @addstyle table font-size:0.8em; -->'],
        ))

        self.register(DirectiveSpec(
            name='cover',
            type=DirectiveType.COVER,
            scope=DirectiveScope.LOCAL,
            pattern=r'@cover',
            description='Render the cover metadata block',
            examples=['<!-- @cover -->'],
        ))


# Shared default registry; the grammar is fixed, so one instance serves all renders
registry = DirectiveRegistry()


def command_parse(text: Optional[str]) -> Optional[Command]:
    """Parse directive text with the default registry"""
    return registry.command_parse(text)
