"""Tokenizer for tensor expressions."""

from __future__ import annotations

import re
from dataclasses import dataclass

from evalexpr.eval.errors import LexerError
from evalexpr.utils.location import Location


@dataclass(frozen=True)
class Token:
    type: str
    value: str
    location: Location

    def __str__(self) -> str:
        if self.type == "EOF":
            return "end of input"
        return repr(self.value)


class Lexer:
    """Regex based tokenizer.

    Whitespace is dropped; the token stream always ends with an EOF token.
    """

    # Order matters: multi-character operators before their prefixes
    TOKEN_PATTERNS = [
        ("WHITESPACE", r"\s+"),
        ("NUMBER", r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"),
        ("STRING", r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\''),
        ("IDENT", r"[A-Za-z_][A-Za-z0-9_]*"),
        ("AND", r"&&"),
        ("OR", r"\|\|"),
        ("EQ", r"=="),
        ("NE", r"!="),
        ("LE", r"<="),
        ("GE", r">="),
        ("LT", r"<"),
        ("GT", r">"),
        ("PLUS", r"\+"),
        ("MINUS", r"-"),
        ("STAR", r"\*"),
        ("SLASH", r"/"),
        ("PERCENT", r"%"),
        ("CARET", r"\^"),
        ("BANG", r"!"),
        ("LPAREN", r"\("),
        ("RPAREN", r"\)"),
        ("LBRACKET", r"\["),
        ("RBRACKET", r"\]"),
        ("LBRACE", r"\{"),
        ("RBRACE", r"\}"),
        ("COMMA", r","),
        ("COLON", r":"),
    ]

    _pattern = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in TOKEN_PATTERNS))

    def __init__(self, source: str) -> None:
        self.source = source

    def tokenize(self) -> list[Token]:
        """Convert the source into a token list.

        Raises:
            LexerError: on a character that starts no token
        """
        tokens: list[Token] = []
        pos = 0
        while pos < len(self.source):
            match = self._pattern.match(self.source, pos)
            if match is None or match.lastgroup is None:
                loc = Location.from_offset(self.source, pos)
                raise LexerError(f"unexpected character: {self.source[pos]!r}", loc)
            if match.lastgroup != "WHITESPACE":
                loc = Location.from_offset(self.source, pos)
                tokens.append(Token(match.lastgroup, match.group(), loc))
            pos = match.end()
        tokens.append(Token("EOF", "", Location.from_offset(self.source, pos)))
        return tokens


def unquote(text: str) -> str:
    """Strip the quotes of a STRING token and resolve backslash escapes."""
    return re.sub(r"\\(.)", r"\1", text[1:-1])
