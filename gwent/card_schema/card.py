"""
Card Definitions - The compiled, immutable description of a card.

Categories, factions, ranges and board zones are closed enumerations.
Derived attributes (board zones, unit kind, super power) come from
CARD_TYPE_TRAITS, which has exactly one entry per CardType.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from .effect_dsl import Activation


class CardType(Enum):
    """Card categories recognised in a card file's `Type` field."""
    GOLD = "Oro"
    SILVER = "Plata"
    WEATHER = "Clima"
    RAISE = "Aumento"
    LEADER = "Lider"
    CLEARANCE = "Despeje"


class Faction(Enum):
    GRYFFINDOR = "Gryffindor"
    SLYTHERIN = "Slytherin"


class Range(Enum):
    """Board rows a card can be played to."""
    MELEE = "Melee"
    RANGED = "Ranged"
    SIEGE = "Siege"


class ZoneKind(Enum):
    """Board areas a card can occupy."""
    CLIMATE = "climate"
    UNIT = "unit"
    LEADER = "leader"
    RAISE = "raise"


class UnitKind(Enum):
    GOLDEN = "golden"
    SILVER = "silver"
    NONE = "none"


class SuperPower(Enum):
    """Built-in behaviour a card type has on top of its scripted effects."""
    WEATHER = "weather"
    RAISE = "raise"
    CLEARANCE = "clearance"
    NONE = "none"


@dataclass(frozen=True)
class BoardZone:
    """A zone kind, qualified by a row for unit and raise zones."""
    kind: ZoneKind
    range: Range | None = None

    def __str__(self) -> str:
        if self.range is None:
            return self.kind.value
        return f"{self.kind.value}:{self.range.value}"


@dataclass(frozen=True)
class CardTypeTraits:
    zone_kind: ZoneKind
    per_range: bool  # One zone per declared range
    unit_kind: UnitKind
    super_power: SuperPower

    @property
    def needs_range(self) -> bool:
        return self.per_range

    @property
    def needs_power(self) -> bool:
        return self.per_range


CARD_TYPE_TRAITS: dict[CardType, CardTypeTraits] = {
    CardType.GOLD: CardTypeTraits(ZoneKind.UNIT, True, UnitKind.GOLDEN, SuperPower.NONE),
    CardType.SILVER: CardTypeTraits(ZoneKind.UNIT, True, UnitKind.SILVER, SuperPower.NONE),
    CardType.WEATHER: CardTypeTraits(ZoneKind.CLIMATE, False, UnitKind.NONE, SuperPower.WEATHER),
    CardType.RAISE: CardTypeTraits(ZoneKind.RAISE, True, UnitKind.NONE, SuperPower.RAISE),
    CardType.LEADER: CardTypeTraits(ZoneKind.LEADER, False, UnitKind.NONE, SuperPower.NONE),
    CardType.CLEARANCE: CardTypeTraits(ZoneKind.CLIMATE, False, UnitKind.NONE, SuperPower.CLEARANCE),
}


@dataclass(frozen=True)
class CardDefinition:
    """
    A compiled card.

    Note: This is the definition, not a card in play.
    Runtime instances live in engine_core.state.Card.
    """
    name: str
    card_type: CardType
    faction: Faction
    power: int
    ranges: tuple[Range, ...] = ()
    activations: tuple[Activation, ...] = ()
    description: str = ""

    @property
    def traits(self) -> CardTypeTraits:
        return CARD_TYPE_TRAITS[self.card_type]

    @property
    def zones(self) -> tuple[BoardZone, ...]:
        traits = self.traits
        if traits.per_range:
            return tuple(BoardZone(traits.zone_kind, r) for r in self.ranges)
        return (BoardZone(traits.zone_kind),)

    @property
    def unit_kind(self) -> UnitKind:
        return self.traits.unit_kind

    @property
    def super_power(self) -> SuperPower:
        return self.traits.super_power

    @property
    def range_text(self) -> str:
        return ",".join(r.value for r in self.ranges)


def default_description(card_type: CardType) -> str:
    return f"Compiled card of type {card_type.value}"
