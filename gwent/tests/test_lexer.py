"""
Tests for the lexer.

Tests:
- Keyword, literal and operator recognition
- Greedy longest match for multi-character operators
- Comments and whitespace
- Positions
- Recovery from bad input
"""

import pytest

from ..card_schema.tokens import SourcePosition, TokenType
from ..compiler.diagnostics import DiagnosticSink, DiagnosticStage
from ..compiler.lexer import tokenize


def types_of(source: str) -> list[TokenType]:
    return [t.type for t in tokenize(source)]


class TestRecognition:
    """Tests for individual token kinds."""

    def test_declaration_and_field_keywords(self):
        """Declaration and capitalised field words are keywords."""
        assert types_of("effect card Name Params Action OnActivation PostAction") == [
            TokenType.EFFECT_DECL,
            TokenType.CARD_DECL,
            TokenType.NAME,
            TokenType.PARAMS,
            TokenType.ACTION,
            TokenType.ON_ACTIVATION,
            TokenType.POST_ACTION,
            TokenType.EOF,
        ]

    def test_keywords_are_case_sensitive(self):
        """`name` and `Effect` differ from `Name` and `effect`."""
        assert types_of("name Effect") == [TokenType.IDENTIFIER, TokenType.EFFECT, TokenType.EOF]

    def test_literals(self):
        tokens = tokenize('42 "hello" true false target_1')
        assert [t.type for t in tokens] == [
            TokenType.NUMBER,
            TokenType.STRING,
            TokenType.TRUE,
            TokenType.FALSE,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]
        assert tokens[0].lexeme == "42"
        assert tokens[1].lexeme == "hello"
        assert tokens[4].lexeme == "target_1"

    def test_string_escapes(self):
        tokens = tokenize(r'"a\"b\n"')
        assert tokens[0].lexeme == 'a"b\n'

    def test_symbolic_logic_spellings(self):
        """&&, || and ! are the same tokens as and, or, not."""
        assert types_of("a && b || !c") == types_of("a and b or not c")


class TestLongestMatch:
    """Multi-character operators win over their prefixes."""

    @pytest.mark.parametrize("source,expected", [
        ("++", TokenType.INCREMENT),
        ("+=", TokenType.PLUS_EQUAL),
        ("--", TokenType.DECREMENT),
        ("-=", TokenType.MINUS_EQUAL),
        ("<=", TokenType.LESS_EQ),
        (">=", TokenType.MORE_EQ),
        ("==", TokenType.EQUAL),
        ("!=", TokenType.NOT_EQUAL),
        ("=>", TokenType.ARROW),
        ("@@", TokenType.SPACE_CONCATENATION),
    ])
    def test_operator(self, source, expected):
        assert types_of(source) == [expected, TokenType.EOF]

    def test_adjacent_operators(self):
        """`i++<5` is i, ++, <, 5."""
        assert types_of("i++<5") == [
            TokenType.IDENTIFIER,
            TokenType.INCREMENT,
            TokenType.LESS,
            TokenType.NUMBER,
            TokenType.EOF,
        ]


class TestLayout:
    """Comments, whitespace and positions."""

    def test_comments_are_discarded(self):
        source = "a // line comment\n/* block\ncomment */ b"
        assert types_of(source) == [TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF]

    def test_positions_are_one_based(self):
        tokens = tokenize("card {\n  Name")
        assert tokens[0].position == SourcePosition(1, 1)
        assert tokens[1].position == SourcePosition(1, 6)
        assert tokens[2].position == SourcePosition(2, 3)

    def test_empty_source_is_just_eof(self):
        tokens = tokenize("")
        assert [t.type for t in tokens] == [TokenType.EOF]


class TestRecovery:
    """Bad input is reported and scanning continues."""

    def test_unrecognized_character(self):
        sink = DiagnosticSink()
        tokens = tokenize("a $ b", sink)

        assert [t.type for t in tokens] == [TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF]
        assert len(sink) == 1
        diagnostic = next(iter(sink))
        assert diagnostic.stage == DiagnosticStage.LEXICAL
        assert diagnostic.position == SourcePosition(1, 3)
        assert "'$'" in diagnostic.message

    def test_unterminated_string(self):
        sink = DiagnosticSink()
        tokens = tokenize('"open\nnext', sink)

        assert tokens[0].type == TokenType.STRING
        assert tokens[1].lexeme == "next"
        assert [d.message for d in sink] == ["Unterminated string literal"]

    def test_unterminated_block_comment(self):
        sink = DiagnosticSink()
        tokens = tokenize("a /* never closed", sink)

        assert [t.type for t in tokens] == [TokenType.IDENTIFIER, TokenType.EOF]
        assert [d.message for d in sink] == ["Unterminated block comment"]

    @pytest.mark.parametrize("digit", ["²", "٣", "７"])
    def test_non_ascii_digits_are_not_numbers(self, digit):
        """Numbers are ASCII only; other Unicode digits are reported."""
        sink = DiagnosticSink()
        tokens = tokenize(f"1{digit}", sink)

        assert [(t.type, t.lexeme) for t in tokens] == [(TokenType.NUMBER, "1"), (TokenType.EOF, "")]
        assert [d.message for d in sink] == [f"Unrecognized character '{digit}'"]
