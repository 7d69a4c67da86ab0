"""Card schema - vocabulary, type tables and syntax tree of the card-script language."""

from .tokens import Token, TokenType, SourcePosition
from .types import ValueKind, OPERATOR_TYPES, KEYWORD_KINDS, MEMBERS, PRECEDENCE
from .effect_dsl import (
    EffectDeclaration,
    Activation,
    Selector,
    CardBlock,
)
from .card import (
    CardDefinition,
    CardType,
    Faction,
    Range,
    BoardZone,
    ZoneKind,
    UnitKind,
    SuperPower,
)

__all__ = [
    "Token",
    "TokenType",
    "SourcePosition",
    "ValueKind",
    "OPERATOR_TYPES",
    "KEYWORD_KINDS",
    "MEMBERS",
    "PRECEDENCE",
    "EffectDeclaration",
    "Activation",
    "Selector",
    "CardBlock",
    "CardDefinition",
    "CardType",
    "Faction",
    "Range",
    "BoardZone",
    "ZoneKind",
    "UnitKind",
    "SuperPower",
]
