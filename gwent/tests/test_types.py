"""
Tests for the type tables and card categories.

Tests:
- Member table agrees with keyword kinds
- Operator table covers every binary operator
- Unassigned compatibility
- Card type traits are exhaustive
"""

import pytest

from ..card_schema.card import (
    CARD_TYPE_TRAITS,
    BoardZone,
    CardDefinition,
    CardType,
    Faction,
    Range,
    SuperPower,
    UnitKind,
    ZoneKind,
    default_description,
)
from ..card_schema.tokens import TokenType
from ..card_schema.types import (
    BINARY_OPERATORS,
    IMPLICIT_CONTEXT_MEMBERS,
    KEYWORD_KINDS,
    MEMBER_TOKENS,
    MEMBERS,
    OPERATOR_TYPES,
    PRECEDENCE,
    ValueKind,
    compatible,
    lookup_member,
    possible_members,
)


class TestMemberTable:
    """The member table is the single source of member signatures."""

    def test_results_match_keyword_kinds(self):
        """Every member's result kind is its keyword's intrinsic kind."""
        for receiver, members in MEMBERS.items():
            for member, signature in members.items():
                assert signature.result == KEYWORD_KINDS[member], (receiver, member)

    def test_lookup_round_trip(self):
        """possible_members and lookup_member agree for every receiver kind."""
        for kind in ValueKind:
            for member in possible_members(kind):
                assert lookup_member(kind, member) is MEMBERS[kind][member]
            for member in MEMBER_TOKENS - set(possible_members(kind)):
                assert lookup_member(kind, member) is None

    def test_kinds_without_members(self):
        for kind in (ValueKind.INT, ValueKind.STRING, ValueKind.BOOL, ValueKind.PLAYER, ValueKind.VOID):
            assert possible_members(kind) == []

    def test_only_power_is_assignable(self):
        assignable = [
            (kind, member)
            for kind, members in MEMBERS.items()
            for member, signature in members.items()
            if signature.assignable
        ]
        assert assignable == [(ValueKind.CARD, TokenType.POWER)]

    def test_player_methods(self):
        signature = lookup_member(ValueKind.CONTEXT, TokenType.HAND_OF_PLAYER)
        assert signature.is_method
        assert signature.params == (ValueKind.PLAYER,)
        assert signature.result == ValueKind.CARD_COLLECTION

    def test_implicit_context_members_are_properties(self):
        assert IMPLICIT_CONTEXT_MEMBERS == {
            TokenType.DECK,
            TokenType.GRAVEYARD,
            TokenType.FIELD,
            TokenType.HAND,
            TokenType.BOARD,
            TokenType.TRIGGER_PLAYER,
        }


class TestOperatorTable:
    """Every binary operator has a precedence and a signature."""

    def test_binary_operators_typed(self):
        for operator in BINARY_OPERATORS:
            assert operator in OPERATOR_TYPES, operator

    def test_point_binds_tightest(self):
        assert PRECEDENCE[TokenType.POINT] == max(PRECEDENCE.values())
        assert TokenType.POINT not in BINARY_OPERATORS

    def test_equality_accepts_any_matching_kinds(self):
        assert OPERATOR_TYPES[TokenType.EQUAL].operand is None
        assert OPERATOR_TYPES[TokenType.EQUAL].result == ValueKind.BOOL


class TestCompatibility:
    """Unassigned marks an already-reported error and matches anything."""

    @pytest.mark.parametrize("kind", list(ValueKind))
    def test_unassigned_matches(self, kind):
        assert compatible(ValueKind.UNASSIGNED, kind)
        assert compatible(kind, ValueKind.UNASSIGNED)

    def test_distinct_kinds_incompatible(self):
        assert not compatible(ValueKind.INT, ValueKind.STRING)
        assert compatible(ValueKind.CARD, ValueKind.CARD)


class TestCardTraits:
    """Derived card attributes come from one exhaustive table."""

    def test_every_card_type_has_traits(self):
        assert set(CARD_TYPE_TRAITS) == set(CardType)

    @pytest.mark.parametrize("card_type,zone_kind,unit_kind,super_power", [
        (CardType.GOLD, ZoneKind.UNIT, UnitKind.GOLDEN, SuperPower.NONE),
        (CardType.SILVER, ZoneKind.UNIT, UnitKind.SILVER, SuperPower.NONE),
        (CardType.WEATHER, ZoneKind.CLIMATE, UnitKind.NONE, SuperPower.WEATHER),
        (CardType.RAISE, ZoneKind.RAISE, UnitKind.NONE, SuperPower.RAISE),
        (CardType.LEADER, ZoneKind.LEADER, UnitKind.NONE, SuperPower.NONE),
        (CardType.CLEARANCE, ZoneKind.CLIMATE, UnitKind.NONE, SuperPower.CLEARANCE),
    ])
    def test_traits(self, card_type, zone_kind, unit_kind, super_power):
        traits = CARD_TYPE_TRAITS[card_type]
        assert traits.zone_kind == zone_kind
        assert traits.unit_kind == unit_kind
        assert traits.super_power == super_power

    def test_zones_per_range(self):
        card = CardDefinition(
            name="Beluga",
            card_type=CardType.GOLD,
            faction=Faction.GRYFFINDOR,
            power=10,
            ranges=(Range.MELEE, Range.SIEGE),
        )
        assert card.zones == (BoardZone(ZoneKind.UNIT, Range.MELEE), BoardZone(ZoneKind.UNIT, Range.SIEGE))
        assert card.range_text == "Melee,Siege"
        assert str(card.zones[0]) == "unit:Melee"

    def test_single_zone_types(self):
        card = CardDefinition(
            name="Niebla",
            card_type=CardType.WEATHER,
            faction=Faction.SLYTHERIN,
            power=0,
            ranges=(Range.RANGED,),
        )
        assert card.zones == (BoardZone(ZoneKind.CLIMATE),)

    def test_default_description(self):
        assert default_description(CardType.LEADER) == "Compiled card of type Lider"
