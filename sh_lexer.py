# ============================================================================
# SCRIPT LEXER
# ============================================================================

from __future__ import annotations

import re

from pygments.lexer import RegexLexer, bygroups, default, include
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
)
from rich.style import Style
from rich.syntax import Syntax, SyntaxTheme

# Custom token types so Rich and Pygments know about them
Name.Argument = Token.Name.Argument
Name.Variable.Prompted = Token.Name.Variable.Prompted
String.Prompt = Token.Literal.String.Prompt


class ScriptLexer(RegexLexer):
    """
    Lexer for the POSIX sh scripts please generates.

    Besides ordinary shell, it picks out the shebang and the
    `read -p "..." VAR` lines that `please ask` turns into, so prompted
    variables stand out in previews:
    ```python
    console.print(highlight_script(text))
    ```
    """

    name = "please script"
    aliases = ["please-sh"]
    filenames = ["*.sh"]

    flags = re.MULTILINE

    tokens = {
        "_base": [
            (r"\\.", String.Escape),
            (r"\$\(\(", Operator, "arithmetic_expansion"),
            (r"\$\(", String.Interpol, "command_substitution"),
            (r"`[^`]*`", String.Backtick),
            (r"\$\{[^}]*\}", Name.Variable),
            (r"\$[a-zA-Z0-9_@*#?$!-]+", Name.Variable),
            (r"'[^']*'", String.Single),
            (r'"', String.Double, "string_double"),
        ],
        "root": [
            (r"\A#!.*$", Comment.Hashbang),
            (r"#.*$", Comment.Single),
            # read -p "prompt" VAR
            (
                r"\b(read)(\s+)(-p)(\s+)",
                bygroups(Name.Builtin, Text, Name.Attribute, Text),
                "read_prompt",
            ),
            (r"\s+", Text),
            (r"\b(set)(\s+)(-[a-zA-Z]+)", bygroups(Name.Builtin, Text, Name.Attribute)),
            (
                r"\b(if|fi|else|elif|then|for|in|while|until|do|done|case|esac)\b",
                Keyword.Reserved,
            ),
            (r"(\d*)(>>|>&|<&|<<-?|[<>])", bygroups(Number.Integer, Operator)),
            (r"\|\|?|&&|&", Operator),
            (r"[;()\[\]{}]", Punctuation),
            (r"\b[0-9]+\b", Number.Integer),
            include("_base"),
            (
                r"\b(echo|printf|cd|pwd|export|unset|readonly|source|exit|return|read|test|shift)\b",
                Name.Builtin,
                "cmdtail",
            ),
            (r"[a-zA-Z0-9_./-]+", Name.Function, "cmdtail"),
            (r".", Text),
        ],
        "cmdtail": [
            (r"\n", Text, "#pop"),
            (r"[|]", Operator, "#pop"),
            (r"[;&]", Punctuation, "#pop"),
            (r"[ \t]+", Text),
            (r"(?:--?|\+)[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"=", Operator),
            (r"\b[0-9]+\b", Number.Integer),
            include("_base"),
            (r"[^=\s;&|(){}<>\[\]\"'$`\\]+", Name.Argument),
            # redirects, brackets, closing `)` of a substitution
            default("#pop"),
        ],
        "read_prompt": [
            (r'"(?:\\.|[^"\\])*"', String.Prompt),
            (r"'[^']*'", String.Prompt),
            (r"[ \t]+", Text),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable.Prompted),
            (r"\n", Text, "#pop"),
            default("#pop"),
        ],
        "string_double": [
            (r'"', String.Double, "#pop"),
            (r'\\(["$`\\])', String.Escape),
            (r"\$\(", String.Interpol, "command_substitution"),
            (r"\$\{[^}]*\}", Name.Variable),
            (r"\$[a-zA-Z0-9_@*#?$!-]+", Name.Variable),
            (r'[^"\\$]+', String.Double),
            (r"[\\$]", String.Double),
        ],
        "command_substitution": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
        "arithmetic_expansion": [
            (r"\)\)", Operator, "#pop"),
            (r"[-+*/%&|<>!=^]+", Operator),
            (r"[(),]", Punctuation),
            (r"\b[0-9]+\b", Number.Integer),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable),
            (r"\s+", Text),
        ],
    }


class ScriptTheme(SyntaxTheme):
    """
    Rich theme for script previews, on the Monokai Pro palette.

    Only the tokens ScriptLexer emits are styled; subtypes fall back to their
    parent (String.Double -> String), anything else gets `default_style`.
    """

    _BACKGROUND = "#2d2a2e"
    _FOREGROUND = "#fcfcfa"
    _MUTED = "#727072"
    _COMMAND = "#a9dc76"
    _FLAG = "#fc9867"
    _LITERAL = "#ffd866"
    _EXPANSION = "#ab9df2"
    _BUILTIN = "#78dce8"
    _CONTROL = "#ff6188"

    background_color = _BACKGROUND
    default_style = Style(color=_FOREGROUND)

    styles = {
        Comment: Style(color=_MUTED, italic=True),
        Comment.Hashbang: Style(color=_MUTED, bold=True),
        # what `please ask` turned into
        String.Prompt: Style(color=_LITERAL, italic=True),
        Name.Variable.Prompted: Style(color=_FLAG, bold=True, underline=True),
        Name.Function: Style(color=_COMMAND, bold=True),
        Name.Builtin: Style(color=_BUILTIN, italic=True),
        Name.Attribute: Style(color=_FLAG),
        Name.Argument: Style(color=_EXPANSION),
        Name.Variable: Style(color=_BUILTIN),
        Keyword: Style(color=_CONTROL, bold=True),
        Operator: Style(color=_CONTROL),
        Number: Style(color=_BUILTIN),
        String: Style(color=_LITERAL),
        String.Escape: Style(color=_EXPANSION),
        String.Interpol: Style(color=_EXPANSION, bold=True),
        String.Backtick: Style(color=_EXPANSION, bold=True),
    }

    @classmethod
    def get_style_for_token(cls, t):
        while t not in cls.styles and t.parent is not None:
            t = t.parent
        return cls.styles.get(t, cls.default_style)

    @classmethod
    def get_background_style(cls):
        return Style(bgcolor=cls._BACKGROUND)


def highlight_script(content: str, line_numbers: bool = True) -> Syntax:
    """→ Rich renderable for a generated script"""
    return Syntax(content, ScriptLexer(), theme=ScriptTheme(), line_numbers=line_numbers)
