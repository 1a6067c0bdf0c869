"""Tests for the batch script lexer and parser."""

import pytest

from canvasmcp.batch import Binding, ScriptSyntaxError, TokenKind, parse_script, tokenize


@pytest.mark.unit
class TestLexer:
    def test_token_kinds(self):
        kinds = [token.kind for token in tokenize('a=I(#b, "x", 1)\n')]
        assert kinds == [
            TokenKind.IDENT,
            TokenKind.PUNCT,
            TokenKind.IDENT,
            TokenKind.PUNCT,
            TokenKind.HASH_IDENT,
            TokenKind.PUNCT,
            TokenKind.STRING,
            TokenKind.PUNCT,
            TokenKind.NUMBER,
            TokenKind.PUNCT,
            TokenKind.NEWLINE,
            TokenKind.EOF,
        ]

    def test_numbers(self):
        values = [t.value for t in tokenize("1 -2 3.5 -1.5e2") if t.kind is TokenKind.NUMBER]
        assert values == [1, -2, 3.5, -150.0]
        assert isinstance(values[0], int)

    def test_string_escapes(self):
        (token, _) = tokenize(r'"a\"bA\n"')
        assert token.value == 'a"bA\n'

    def test_single_quotes(self):
        assert tokenize("'it'")[0].value == "it"

    def test_comments_skipped(self):
        kinds = [t.kind for t in tokenize("// note\nD(#a)")]
        assert kinds[0] is TokenKind.NEWLINE
        assert TokenKind.IDENT in kinds

    def test_unterminated_string(self):
        with pytest.raises(ScriptSyntaxError) as exc_info:
            tokenize('I(document, {name: "abc')
        assert exc_info.value.at_end

    def test_unexpected_character(self):
        with pytest.raises(ScriptSyntaxError) as exc_info:
            tokenize("I(document) @")
        assert not exc_info.value.at_end
        assert exc_info.value.column == 13


@pytest.mark.unit
class TestParser:
    def test_statement_shapes(self):
        """Assignments, bindings, objects and arrays."""
        (statement,) = parse_script('card=I(document, {name: "Card", rect: {x: 0, y: 0, w: 10, h: 10}, tags: [1, 2,]})')
        assert statement.callee == "I"
        assert statement.variable == "card"
        assert statement.args[0] == Binding("document")
        assert statement.args[1]["rect"]["w"] == 10
        assert statement.args[1]["tags"] == [1, 2]

    def test_keyword_literals(self):
        (statement,) = parse_script("M(#a, undefined, _, null, true, false)")
        assert statement.args == [Binding("a"), None, None, None, True, False]

    def test_quoted_ids_are_literals(self):
        (statement,) = parse_script('D("layer_1")')
        assert statement.args == ["layer_1"]

    def test_separators(self):
        """Newlines and semicolons separate statements."""
        statements = parse_script('\n\nD(#a); D(#b)\n\nD(#c)\n')
        assert [s.args[0].name for s in statements] == ["a", "b", "c"]

    def test_multiline_arguments(self):
        statements = parse_script('U(#a, {\n  name: "x",\n  rotation: 45\n})')
        assert statements[0].args[1] == {"name": "x", "rotation": 45}

    def test_hash_object_keys(self):
        (statement,) = parse_script('I(document, {ref: #c, descendants: {#label: {text: "Go"}}})')
        assert statement.args[1]["ref"] == Binding("c")
        assert statement.args[1]["descendants"] == {"#label": {"text": "Go"}}

    def test_source_text_kept(self):
        (statement,) = parse_script('  x=D(#a)  ')
        assert statement.source == "x=D(#a)"

    def test_unknown_operation(self):
        """Errors report line and column."""
        with pytest.raises(ScriptSyntaxError) as exc_info:
            parse_script("D(#a)\nX(#b)")
        error = exc_info.value
        assert (error.line, error.column) == (2, 1)
        assert "Unknown operation 'X'" in str(error)
        assert error.statement == "X"

    def test_missing_separator(self):
        with pytest.raises(ScriptSyntaxError, match="Expected newline or ';'"):
            parse_script("D(#a) D(#b)")

    def test_reserved_assignment(self):
        with pytest.raises(ScriptSyntaxError, match="reserved name"):
            parse_script("document=I(root)")

    def test_missing_colon(self):
        with pytest.raises(ScriptSyntaxError):
            parse_script("I(document, {name \"x\"})")

    def test_nesting_limit(self):
        (statement,) = parse_script("U(#a, [[{k: [1]}]])", max_depth=4)
        assert statement.args[1] == [[{"k": [1]}]]

        with pytest.raises(ScriptSyntaxError, match="nesting depth 4 exceeds maximum 3") as exc:
            parse_script("U(#a, [[{k: [1]}]])", max_depth=3)
        assert exc.value.column == 13

    def test_deep_nesting_is_a_syntax_error(self):
        """Runaway nesting stops at the limit instead of exhausting the stack."""
        script = "I(document, " + "[" * 5000 + "]" * 5000 + ")"
        with pytest.raises(ScriptSyntaxError, match="nesting depth 21 exceeds maximum 20"):
            parse_script(script)
        with pytest.raises(ScriptSyntaxError):
            parse_script(script[:2000], partial=True)

    def test_empty_script(self):
        assert parse_script("") == []
        assert parse_script("\n ; \n") == []


@pytest.mark.unit
class TestPartialParsing:
    """Streaming input: a trailing incomplete statement is dropped."""

    @pytest.mark.parametrize(
        "tail",
        [
            "U(#a",
            "U(#a, {na",
            'U(#a, {name: "Hea',
            "U(#a, {name: -",
            "b",
            "b = ",
            "#",
        ],
    )
    def test_incomplete_tail_dropped(self, tail):
        statements = parse_script(f'a=I(document, {{name: "A"}})\n{tail}', partial=True)
        assert len(statements) == 1
        assert statements[0].variable == "a"

    def test_strict_mode_raises(self):
        with pytest.raises(ScriptSyntaxError):
            parse_script('a=I(document, {name: "A"})\nU(#a')

    def test_errors_before_tail_still_raise(self):
        """Only an error at the end of the text is forgiven."""
        with pytest.raises(ScriptSyntaxError):
            parse_script('D(#a) @\nU(#a', partial=True)
