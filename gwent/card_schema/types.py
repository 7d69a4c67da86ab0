"""
Type System - Value kinds and the lookup tables shared by parser,
checker and executor.

Tables:
- PRECEDENCE: binding strength of every binary operator
- OPERATOR_TYPES: operand/result kinds of every operator
- KEYWORD_KINDS: intrinsic kind of keyword tokens
- MEMBERS: members callable on each receiver kind, with signatures
- PARAM_KINDS: kinds allowed in effect parameter declarations
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from .tokens import TokenType


class ValueKind(Enum):
    """Kinds of values an expression can produce."""
    INT = "Int"
    BOOL = "Bool"
    STRING = "String"
    PLAYER = "Player"
    PREDICATE = "Predicate"
    CARD = "Card"
    CARD_COLLECTION = "CardCollection"
    VOID = "Void"
    CONTEXT = "Context"
    UNASSIGNED = "Unassigned"

    def __str__(self) -> str:
        return self.value


# 32-bit signed range of Int values
INT_MIN = -2 ** 31
INT_MAX = 2 ** 31 - 1


def compatible(actual: ValueKind, expected: ValueKind) -> bool:
    """Unassigned stands for an already-reported error and matches anything."""
    if actual == ValueKind.UNASSIGNED or expected == ValueKind.UNASSIGNED:
        return True
    return actual == expected


PRECEDENCE: dict[TokenType, int] = {
    TokenType.AND: 1,
    TokenType.OR: 1,
    TokenType.EQUAL: 2,
    TokenType.NOT_EQUAL: 2,
    TokenType.LESS_EQ: 2,
    TokenType.MORE_EQ: 2,
    TokenType.MORE: 2,
    TokenType.LESS: 2,
    TokenType.PLUS: 3,
    TokenType.MINUS: 3,
    TokenType.CONCATENATION: 3,
    TokenType.SPACE_CONCATENATION: 3,
    TokenType.MULTIPLY: 4,
    TokenType.DIVIDE: 4,
    TokenType.POW: 5,
    TokenType.POINT: 6,
}

BINARY_OPERATORS = frozenset(PRECEDENCE) - {TokenType.POINT}


@dataclass(frozen=True)
class OperatorSignature:
    """
    Operand and result kind of an operator.

    operand is None when the operands only need to agree with each other
    (equality works on any kind).
    """
    operand: ValueKind | None
    result: ValueKind


_INT_TO_INT = OperatorSignature(ValueKind.INT, ValueKind.INT)
_INT_TO_BOOL = OperatorSignature(ValueKind.INT, ValueKind.BOOL)
_BOOL_TO_BOOL = OperatorSignature(ValueKind.BOOL, ValueKind.BOOL)
_STRING_TO_STRING = OperatorSignature(ValueKind.STRING, ValueKind.STRING)
_SAME_TO_BOOL = OperatorSignature(None, ValueKind.BOOL)

OPERATOR_TYPES: dict[TokenType, OperatorSignature] = {
    TokenType.PLUS_EQUAL: _INT_TO_INT,
    TokenType.MINUS_EQUAL: _INT_TO_INT,
    TokenType.PLUS: _INT_TO_INT,
    TokenType.MINUS: _INT_TO_INT,
    TokenType.MULTIPLY: _INT_TO_INT,
    TokenType.DIVIDE: _INT_TO_INT,
    TokenType.POW: _INT_TO_INT,
    TokenType.INCREMENT: _INT_TO_INT,
    TokenType.DECREMENT: _INT_TO_INT,
    TokenType.LESS_EQ: _INT_TO_BOOL,
    TokenType.MORE_EQ: _INT_TO_BOOL,
    TokenType.LESS: _INT_TO_BOOL,
    TokenType.MORE: _INT_TO_BOOL,
    TokenType.AND: _BOOL_TO_BOOL,
    TokenType.OR: _BOOL_TO_BOOL,
    TokenType.NOT: _BOOL_TO_BOOL,
    TokenType.CONCATENATION: _STRING_TO_STRING,
    TokenType.SPACE_CONCATENATION: _STRING_TO_STRING,
    TokenType.EQUAL: _SAME_TO_BOOL,
    TokenType.NOT_EQUAL: _SAME_TO_BOOL,
}


KEYWORD_KINDS: dict[TokenType, ValueKind] = {
    # Strings
    TokenType.NAME: ValueKind.STRING,
    TokenType.FACTION: ValueKind.STRING,
    TokenType.TYPE: ValueKind.STRING,
    TokenType.RANGE: ValueKind.STRING,
    TokenType.STRING_TYPE: ValueKind.STRING,
    TokenType.SOURCE: ValueKind.STRING,
    TokenType.EFFECT: ValueKind.STRING,

    # Players
    TokenType.OWNER: ValueKind.PLAYER,
    TokenType.TRIGGER_PLAYER: ValueKind.PLAYER,

    # Numbers
    TokenType.POWER: ValueKind.INT,
    TokenType.PLUS: ValueKind.INT,
    TokenType.MINUS: ValueKind.INT,
    TokenType.INCREMENT: ValueKind.INT,
    TokenType.DECREMENT: ValueKind.INT,
    TokenType.NUMBER_TYPE: ValueKind.INT,

    # Predicates
    TokenType.PREDICATE: ValueKind.PREDICATE,

    # Booleans
    TokenType.NOT: ValueKind.BOOL,
    TokenType.BOOL_TYPE: ValueKind.BOOL,
    TokenType.SINGLE: ValueKind.BOOL,

    # Card collections
    TokenType.DECK: ValueKind.CARD_COLLECTION,
    TokenType.DECK_OF_PLAYER: ValueKind.CARD_COLLECTION,
    TokenType.GRAVEYARD: ValueKind.CARD_COLLECTION,
    TokenType.GRAVEYARD_OF_PLAYER: ValueKind.CARD_COLLECTION,
    TokenType.FIELD: ValueKind.CARD_COLLECTION,
    TokenType.FIELD_OF_PLAYER: ValueKind.CARD_COLLECTION,
    TokenType.HAND: ValueKind.CARD_COLLECTION,
    TokenType.HAND_OF_PLAYER: ValueKind.CARD_COLLECTION,
    TokenType.BOARD: ValueKind.CARD_COLLECTION,
    TokenType.FIND: ValueKind.CARD_COLLECTION,

    # Cards
    TokenType.POP: ValueKind.CARD,

    # Voids
    TokenType.SEND_BOTTOM: ValueKind.VOID,
    TokenType.PUSH: ValueKind.VOID,
    TokenType.SHUFFLE: ValueKind.VOID,
    TokenType.ADD: ValueKind.VOID,
    TokenType.REMOVE: ValueKind.VOID,
}


@dataclass(frozen=True)
class MemberSignature:
    """
    A member callable on a receiver kind.

    params is None for properties (accessed without parentheses) and a
    tuple of argument kinds for methods.
    """
    params: tuple[ValueKind, ...] | None
    result: ValueKind
    assignable: bool = False

    @property
    def is_method(self) -> bool:
        return self.params is not None


def _property(member: TokenType, assignable: bool = False) -> MemberSignature:
    return MemberSignature(None, KEYWORD_KINDS[member], assignable)


def _method(member: TokenType, *params: ValueKind) -> MemberSignature:
    return MemberSignature(tuple(params), KEYWORD_KINDS[member])


MEMBERS: dict[ValueKind, dict[TokenType, MemberSignature]] = {
    ValueKind.CARD: {
        TokenType.NAME: _property(TokenType.NAME),
        TokenType.OWNER: _property(TokenType.OWNER),
        TokenType.POWER: _property(TokenType.POWER, assignable=True),
        TokenType.FACTION: _property(TokenType.FACTION),
        TokenType.RANGE: _property(TokenType.RANGE),
        TokenType.TYPE: _property(TokenType.TYPE),
    },
    ValueKind.CONTEXT: {
        TokenType.DECK: _property(TokenType.DECK),
        TokenType.DECK_OF_PLAYER: _method(TokenType.DECK_OF_PLAYER, ValueKind.PLAYER),
        TokenType.GRAVEYARD: _property(TokenType.GRAVEYARD),
        TokenType.GRAVEYARD_OF_PLAYER: _method(TokenType.GRAVEYARD_OF_PLAYER, ValueKind.PLAYER),
        TokenType.FIELD: _property(TokenType.FIELD),
        TokenType.FIELD_OF_PLAYER: _method(TokenType.FIELD_OF_PLAYER, ValueKind.PLAYER),
        TokenType.HAND: _property(TokenType.HAND),
        TokenType.HAND_OF_PLAYER: _method(TokenType.HAND_OF_PLAYER, ValueKind.PLAYER),
        TokenType.BOARD: _property(TokenType.BOARD),
        TokenType.TRIGGER_PLAYER: _property(TokenType.TRIGGER_PLAYER),
    },
    ValueKind.CARD_COLLECTION: {
        TokenType.FIND: _method(TokenType.FIND, ValueKind.PREDICATE),
        TokenType.PUSH: _method(TokenType.PUSH, ValueKind.CARD),
        TokenType.SEND_BOTTOM: _method(TokenType.SEND_BOTTOM, ValueKind.CARD),
        TokenType.POP: _method(TokenType.POP),
        TokenType.SHUFFLE: _method(TokenType.SHUFFLE),
        TokenType.ADD: _method(TokenType.ADD, ValueKind.CARD),
        TokenType.REMOVE: _method(TokenType.REMOVE, ValueKind.CARD),
    },
}

# Every token that may follow a '.'.
MEMBER_TOKENS = frozenset(
    member for members in MEMBERS.values() for member in members
)

# Context properties usable on their own inside an effect body, e.g.
# `Field.Find(...)` as shorthand for `context.Field.Find(...)`.
IMPLICIT_CONTEXT_MEMBERS = frozenset(
    member
    for member, signature in MEMBERS[ValueKind.CONTEXT].items()
    if not signature.is_method
)


def possible_members(kind: ValueKind) -> list[TokenType]:
    """Members legally accessible on a value of the given kind."""
    return list(MEMBERS.get(kind, {}))


def lookup_member(kind: ValueKind, member: TokenType) -> MemberSignature | None:
    """Signature of member on kind, or None when the kind lacks it."""
    return MEMBERS.get(kind, {}).get(member)


PARAM_KINDS: dict[TokenType, ValueKind] = {
    TokenType.NUMBER_TYPE: ValueKind.INT,
    TokenType.STRING_TYPE: ValueKind.STRING,
    TokenType.BOOL_TYPE: ValueKind.BOOL,
}
