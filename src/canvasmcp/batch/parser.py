"""
Batch script parser.

Recursive descent over the token stream::

    script     := { sep } [ statement { sep+ statement } ] { sep }
    statement  := [ IDENT "=" ] call
    call       := OP "(" [ value { "," value } [","] ] ")"
    value      := STRING | NUMBER | true | false | null | undefined | _
                | "#" IDENT | IDENT | object | array

Only the six operation names are callable; nothing else in the language
evaluates. Bare identifiers and ``#name`` both become ``Binding`` nodes.
Object and array nesting is capped at ``max_depth``.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from ..core.validate import MAX_DATA_DEPTH
from .lexer import Lexer, ScriptSyntaxError, Token, TokenKind

OPERATIONS = frozenset({"I", "C", "R", "M", "D", "U"})

# Keyword literals. ``undefined`` and ``_`` are placeholders (None).
KEYWORDS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "_": None,
}


@dataclass(frozen=True)
class Binding:
    """Reference to a name bound by an earlier statement (or a bare id)."""

    name: str


@dataclass
class Statement:
    callee: str
    args: list[Any] = field(default_factory=list)
    variable: str | None = None
    source: str = ""

    def arg(self, index: int, default: Any = None) -> Any:
        return self.args[index] if index < len(self.args) else default


class Parser:
    """Parses a token list into Statements."""

    def __init__(self, text: str, tokens: list[Token], max_depth: int = MAX_DATA_DEPTH):
        self.text = text
        self.tokens = tokens
        self.index = 0
        self.max_depth = max_depth
        self.depth = 0

    # -- token helpers ------------------------------------------------------

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind is not TokenKind.EOF:
            self.index += 1
        return token

    def _is_punct(self, value: str) -> bool:
        return self.current.kind is TokenKind.PUNCT and self.current.value == value

    def _error(self, message: str) -> ScriptSyntaxError:
        token = self.current
        at_end = token.kind is TokenKind.EOF
        return ScriptSyntaxError(message, token.start, self.text, at_end=at_end)

    def _expect(self, value: str) -> Token:
        if not self._is_punct(value):
            found = "end of script" if self.current.kind is TokenKind.EOF else repr(self.current.value)
            raise self._error(f"Expected {value!r}, found {found}")
        return self._advance()

    def _skip_separators(self) -> int:
        count = 0
        while self.current.kind is TokenKind.NEWLINE or self._is_punct(";"):
            self._advance()
            count += 1
        return count

    # -- grammar ------------------------------------------------------------

    def parse(self, partial: bool = False) -> list[Statement]:
        statements: list[Statement] = []
        self._skip_separators()
        while self.current.kind is not TokenKind.EOF:
            try:
                statements.append(self.statement())
            except ScriptSyntaxError as e:
                if partial and e.at_end:
                    break
                raise
            if self.current.kind is TokenKind.EOF:
                break
            if self._skip_separators() == 0:
                raise self._error("Expected newline or ';' between statements")
        return statements

    def statement(self) -> Statement:
        start = self.current.start
        try:
            variable = None
            if (
                self.current.kind is TokenKind.IDENT
                and self.tokens[self.index + 1].kind is TokenKind.PUNCT
                and self.tokens[self.index + 1].value == "="
            ):
                variable = str(self._advance().value)
                if variable in KEYWORDS or variable in ("document", "root"):
                    raise ScriptSyntaxError(
                        f"Cannot assign to reserved name {variable!r}", start, self.text
                    )
                self._advance()

            callee_token = self.current
            if callee_token.kind is not TokenKind.IDENT:
                raise self._error("Expected an operation (I, C, R, M, D or U)")
            callee = str(callee_token.value)
            if callee not in OPERATIONS:
                error = self._error(f"Unknown operation {callee!r}")
                # a name still streaming in (``ab`` of ``abc = I(...)``)
                error.at_end = self.tokens[self.index + 1].kind is TokenKind.EOF
                raise error
            self._advance()

            self._expect("(")
            args = self._sequence(")")
            end = self._expect(")").end
        except ScriptSyntaxError as e:
            e.statement = self.text[start : self.current.end].strip()
            raise
        return Statement(callee=callee, args=args, variable=variable, source=self.text[start:end].strip())

    def _sequence(self, closer: str) -> list[Any]:
        """Comma separated values up to ``closer`` (trailing comma allowed)."""
        items: list[Any] = []
        self._skip_newlines()
        while not self._is_punct(closer):
            items.append(self.value())
            self._skip_newlines()
            if self._is_punct(","):
                self._advance()
                self._skip_newlines()
            elif not self._is_punct(closer):
                raise self._error(f"Expected ',' or {closer!r}")
        return items

    def _skip_newlines(self) -> None:
        while self.current.kind is TokenKind.NEWLINE:
            self._advance()

    def value(self) -> Any:
        token = self.current
        if token.kind in (TokenKind.STRING, TokenKind.NUMBER):
            self._advance()
            return token.value
        if token.kind is TokenKind.HASH_IDENT:
            self._advance()
            return Binding(str(token.value))
        if token.kind is TokenKind.IDENT:
            self._advance()
            name = str(token.value)
            if name in KEYWORDS:
                return KEYWORDS[name]
            return Binding(name)
        if self._is_punct("{"):
            with self._nested():
                return self._object()
        if self._is_punct("["):
            with self._nested():
                self._advance()
                items = self._sequence("]")
                self._expect("]")
            return items
        if token.kind is TokenKind.EOF:
            raise self._error("Unexpected end of script")
        raise self._error(f"Unexpected {token.value!r}")

    @contextmanager
    def _nested(self) -> Iterator[None]:
        self.depth += 1
        try:
            if self.depth > self.max_depth:
                raise self._error(f"Data nesting depth {self.depth} exceeds maximum {self.max_depth}")
            yield
        finally:
            self.depth -= 1

    def _object(self) -> dict[str, Any]:
        self._expect("{")
        obj: dict[str, Any] = {}
        self._skip_newlines()
        while not self._is_punct("}"):
            key_token = self.current
            if key_token.kind in (TokenKind.IDENT, TokenKind.STRING):
                key = str(key_token.value)
            elif key_token.kind is TokenKind.HASH_IDENT:
                key = f"#{key_token.value}"
            else:
                raise self._error("Expected object key")
            self._advance()
            self._expect(":")
            self._skip_newlines()
            obj[key] = self.value()
            self._skip_newlines()
            if self._is_punct(","):
                self._advance()
                self._skip_newlines()
            elif not self._is_punct("}"):
                raise self._error("Expected ',' or '}'")
        self._expect("}")
        return obj


def parse_script(text: str, partial: bool = False, max_depth: int = MAX_DATA_DEPTH) -> list[Statement]:
    """
    Parse a batch script.

    Args:
        text: Script source
        partial: Text may still be streaming in. An incomplete trailing
            statement is dropped instead of raising.

    Raises:
        ScriptSyntaxError: On malformed input (strict mode, or any error
            before the trailing statement in partial mode, or nesting
            deeper than ``max_depth``)
    """
    lexer = Lexer(text)
    try:
        tokens = lexer.tokenize()
    except ScriptSyntaxError as e:
        if not (partial and e.at_end):
            raise
        tokens = [*lexer.tokens, Token(TokenKind.EOF, "", len(text), len(text))]

    return Parser(text, tokens, max_depth).parse(partial)
