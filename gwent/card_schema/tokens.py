"""
Tokens - Terminal vocabulary of the card-script language.

Every token carries its type, the exact source text it was built from and
the position it starts at. Keywords are case sensitive.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class TokenType(Enum):
    """Closed set of terminals produced by the lexer."""
    # Declarations
    EFFECT_DECL = "effect"
    CARD_DECL = "card"

    # Punctuation
    LBRACE = "{"
    RBRACE = "}"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    COMMA = ","
    COLON = ":"
    SEMICOLON = ";"
    POINT = "."
    ARROW = "=>"

    # Statements
    FOR = "for"
    IN = "in"
    WHILE = "while"
    IF = "if"
    ELSE = "else"

    # Literals
    NUMBER = "number"
    STRING = "string"
    TRUE = "true"
    FALSE = "false"
    IDENTIFIER = "identifier"
    EOF = "eof"

    # Arithmetic and text operators
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POW = "^"
    CONCATENATION = "@"
    SPACE_CONCATENATION = "@@"

    # Comparison and logic
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS = "<"
    MORE = ">"
    LESS_EQ = "<="
    MORE_EQ = ">="
    AND = "and"
    OR = "or"
    NOT = "not"

    # Assignment
    ASSIGN = "="
    PLUS_EQUAL = "+="
    MINUS_EQUAL = "-="
    INCREMENT = "++"
    DECREMENT = "--"

    # Field keywords
    NAME = "Name"
    PARAMS = "Params"
    ACTION = "Action"
    TYPE = "Type"
    FACTION = "Faction"
    POWER = "Power"
    RANGE = "Range"
    ON_ACTIVATION = "OnActivation"
    EFFECT = "Effect"
    SELECTOR = "Selector"
    SOURCE = "Source"
    SINGLE = "Single"
    PREDICATE = "Predicate"
    POST_ACTION = "PostAction"
    DESCRIPTION = "Description"

    # Parameter type keywords
    NUMBER_TYPE = "Number"
    STRING_TYPE = "String"
    BOOL_TYPE = "Bool"

    # Member keywords
    OWNER = "Owner"
    TRIGGER_PLAYER = "TriggerPlayer"
    DECK = "Deck"
    DECK_OF_PLAYER = "DeckOfPlayer"
    GRAVEYARD = "GraveYard"
    GRAVEYARD_OF_PLAYER = "GraveYardOfPlayer"
    FIELD = "Field"
    FIELD_OF_PLAYER = "FieldOfPlayer"
    HAND = "Hand"
    HAND_OF_PLAYER = "HandOfPlayer"
    BOARD = "Board"
    FIND = "Find"
    PUSH = "Push"
    SEND_BOTTOM = "SendBottom"
    POP = "Pop"
    SHUFFLE = "Shuffle"
    ADD = "Add"
    REMOVE = "Remove"


# Word-like tokens, looked up after an identifier has been scanned.
KEYWORDS: dict[str, TokenType] = {
    "effect": TokenType.EFFECT_DECL,
    "card": TokenType.CARD_DECL,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "while": TokenType.WHILE,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "and": TokenType.AND,
    "or": TokenType.OR,
    "not": TokenType.NOT,
}
KEYWORDS.update({
    t.value: t
    for t in TokenType
    if t.value[:1].isupper()
})

# Symbolic operators, longest first so multi-character operators win
# over their single-character prefixes.
SYMBOLS: list[tuple[str, TokenType]] = sorted(
    [
        (t.value, t)
        for t in TokenType
        if not t.value[:1].isalnum() and t.value[:1] != "_"
    ]
    + [("&&", TokenType.AND), ("||", TokenType.OR), ("!", TokenType.NOT)],
    key=lambda pair: -len(pair[0]),
)


@dataclass(frozen=True)
class SourcePosition:
    """1-based line/column of the first character of a token."""
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Token:
    """A single lexed terminal. Immutable once produced."""
    type: TokenType
    lexeme: str
    position: SourcePosition

    def __str__(self) -> str:
        if self.type == TokenType.EOF:
            return "end of file"
        return f"'{self.lexeme}'"
