"""
Custom Pygments lexer for deck source highlighting

Highlights mdeck source (markdown with directive comments) when a slide
shows deck source itself, e.g. in a ```mdeck fence.

Token types:
- Comment.Preproc: Directive comment delimiters
- Keyword.Declaration: GLOBAL directive names (@aspect, @title, ...)
- Name.Decorator: Layout directive names (@begin, @nextcolumn, @end)
- Name.Function: Element directive names (@addclass, @caption, ...)
- String: Directive arguments
- Generic.Heading: Headings and slide separators
- Comment: Plain HTML comments
"""

from pygments.lexer import RegexLexer, bygroups
from pygments.token import (
    Text,
    Punctuation,
    Name,
    String,
    Keyword,
    Comment,
    Generic,
    Number,
)

from ..models.directives import META_KEYS

_GLOBAL_NAMES = "|".join(("aspect", "theme", "header", "footer") + META_KEYS)
_LAYOUT_NAMES = "begin|nextcolumn|end"
_ELEMENT_NAMES = "addclass|addstyle|caption|cover|note:?|pageclass"


class DeckLexer(RegexLexer):
    """
    Lexer for mdeck markdown sources

    Example:
        <!-- @aspect 4:3 -->
        ---
        # Title

    Tokens:
        <!-- → Comment.Preproc
        @aspect → Keyword.Declaration
        4:3 → String
        --- → Generic.Heading
        # Title → Generic.Heading
    """

    name = 'mdeck'
    aliases = ['mdeck', 'deck']
    filenames = ['*.deck.md']

    tokens = {
        'root': [
            # Directive comments
            (r'(<!--)(\s*)(@(?:' + _GLOBAL_NAMES + r'))\b',
             bygroups(Comment.Preproc, Text, Keyword.Declaration), 'directive'),
            (r'(<!--)(\s*)(@(?:' + _LAYOUT_NAMES + r'))\b',
             bygroups(Comment.Preproc, Text, Name.Decorator), 'directive'),
            (r'(<!--)(\s*)(@(?:' + _ELEMENT_NAMES + r'))',
             bygroups(Comment.Preproc, Text, Name.Function), 'directive'),

            # Plain comments
            (r'<!--[\s\S]*?-->', Comment),

            # Slide separator
            (r'^---[ \t]*$', Generic.Heading),

            # Headings
            (r'^#{1,6}[ \t].*$', Generic.Heading),

            # Fence delimiters with info string
            (r'^(\s*```)(.*)$', bygroups(Punctuation, Name.Attribute)),

            # Inline code and math
            (r'`[^`\n]+`', String.Backtick),
            (r'\$\$[\s\S]*?\$\$', Number),
            (r'\$[^$\n]+\$', Number),

            # Emphasis
            (r'\*\*[^*\n]+\*\*', Generic.Strong),
            (r'\*[^*\n]+\*', Generic.Emph),

            # HTML tags pass through
            (r'<[^>!]+>', Name.Builtin),

            (r'[^<`$*\n#-]+', Text),
            (r'\n', Text),
            (r'.', Text),
        ],

        'directive': [
            (r'-->', Comment.Preproc, '#pop'),
            (r'[^-]+', String),
            (r'-', String),
        ],
    }


def get_lexer() -> DeckLexer:
    """
    Get the DeckLexer instance

    Returns:
        DeckLexer instance ready for use with Pygments
    """
    return DeckLexer()
