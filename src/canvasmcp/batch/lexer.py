"""Tokenizer for batch design scripts."""

from dataclasses import dataclass
from enum import Enum


class TokenKind(str, Enum):
    IDENT = "ident"
    HASH_IDENT = "hash_ident"  # #name
    STRING = "string"
    NUMBER = "number"
    PUNCT = "punct"
    NEWLINE = "newline"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str | float | int
    start: int
    end: int


class ScriptSyntaxError(Exception):
    """Malformed batch script."""

    def __init__(self, message: str, position: int, text: str = "", at_end: bool = False):
        self.position = position
        self.line = text.count("\n", 0, position) + 1
        self.column = position - (text.rfind("\n", 0, position) + 1) + 1
        self.at_end = at_end
        self.statement = ""
        super().__init__(f"{message} (line {self.line}, column {self.column})")


PUNCTUATION = frozenset("(){}[],:=;")

_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _is_ident_part(ch: str) -> bool:
    return ch.isalnum() or ch in "_$-"


class Lexer:
    """Splits script text into tokens. Newlines are significant (separators)."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.tokens: list[Token] = []

    def error(self, message: str, position: int | None = None, at_end: bool = False) -> ScriptSyntaxError:
        return ScriptSyntaxError(message, self.pos if position is None else position, self.text, at_end)

    def tokenize(self) -> list[Token]:
        """
        Tokenize the whole text.

        Raises:
            ScriptSyntaxError: On an unexpected character or unterminated string.
                ``at_end`` is set when the text simply stops mid-token.
        """
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "\n":
                self.tokens.append(Token(TokenKind.NEWLINE, "\n", self.pos, self.pos + 1))
                self.pos += 1
            elif ch.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end
            elif ch in PUNCTUATION:
                self.tokens.append(Token(TokenKind.PUNCT, ch, self.pos, self.pos + 1))
                self.pos += 1
            elif ch in "\"'":
                self._string(ch)
            elif ch == "-" or ch.isdigit():
                self._number()
            elif ch == "#":
                start = self.pos
                self.pos += 1
                if self.pos >= len(text):
                    raise self.error("Expected binding name after '#'", start, at_end=True)
                if not _is_ident_start(text[self.pos]):
                    raise self.error("Expected binding name after '#'", start)
                name = self._ident_text()
                self.tokens.append(Token(TokenKind.HASH_IDENT, name, start, self.pos))
            elif _is_ident_start(ch):
                start = self.pos
                name = self._ident_text()
                self.tokens.append(Token(TokenKind.IDENT, name, start, self.pos))
            else:
                raise self.error(f"Unexpected character {ch!r}")
        self.tokens.append(Token(TokenKind.EOF, "", len(text), len(text)))
        return self.tokens

    def _ident_text(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and _is_ident_part(self.text[self.pos]):
            self.pos += 1
        return self.text[start : self.pos]

    def _string(self, quote: str) -> None:
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        text = self.text
        while True:
            if self.pos >= len(text):
                raise self.error("Unterminated string", start, at_end=True)
            ch = text[self.pos]
            if ch == quote:
                self.pos += 1
                break
            if ch == "\n":
                raise self.error("Unterminated string", start)
            if ch == "\\":
                self.pos += 1
                if self.pos >= len(text):
                    raise self.error("Unterminated string", start, at_end=True)
                esc = text[self.pos]
                if esc == "u":
                    digits = text[self.pos + 1 : self.pos + 5]
                    if len(digits) < 4 and self.pos + 1 + len(digits) >= len(text):
                        raise self.error("Unterminated string", start, at_end=True)
                    try:
                        chars.append(chr(int(digits, 16)))
                    except ValueError:
                        raise self.error(f"Invalid unicode escape \\u{digits}") from None
                    self.pos += 5
                    continue
                if esc not in _ESCAPES:
                    raise self.error(f"Invalid escape \\{esc}")
                chars.append(_ESCAPES[esc])
                self.pos += 1
                continue
            chars.append(ch)
            self.pos += 1
        self.tokens.append(Token(TokenKind.STRING, "".join(chars), start, self.pos))

    def _number(self) -> None:
        start = self.pos
        text = self.text
        if text[self.pos] == "-":
            self.pos += 1
        digits_start = self.pos
        while self.pos < len(text) and text[self.pos].isdigit():
            self.pos += 1
        if self.pos == digits_start:
            if self.pos >= len(text):
                raise self.error("Incomplete number", start, at_end=True)
            raise self.error("Expected digits after '-'", start)
        is_float = False
        if self.pos < len(text) and text[self.pos] == ".":
            is_float = True
            self.pos += 1
            while self.pos < len(text) and text[self.pos].isdigit():
                self.pos += 1
        if self.pos < len(text) and text[self.pos] in "eE":
            is_float = True
            self.pos += 1
            if self.pos < len(text) and text[self.pos] in "+-":
                self.pos += 1
            exp_start = self.pos
            while self.pos < len(text) and text[self.pos].isdigit():
                self.pos += 1
            if self.pos == exp_start:
                raise self.error("Malformed exponent", start, at_end=self.pos >= len(text))
        literal = text[start : self.pos]
        try:
            value: float | int = float(literal) if is_float else int(literal)
        except ValueError:
            raise self.error(f"Malformed number {literal!r}", start) from None
        self.tokens.append(Token(TokenKind.NUMBER, value, start, self.pos))


def tokenize(text: str) -> list[Token]:
    return Lexer(text).tokenize()
