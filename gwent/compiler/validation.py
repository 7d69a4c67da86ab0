"""
Card Validation - Turns a parsed card block into a CardDefinition.

Checks:
- Name, Type and Faction are present
- Type and Faction name known categories
- Power is an Int constant (required for unit and raise cards)
- Range lists known rows without duplicates (required where the card
  type places one zone per row)
- Every activation passes the type checker

A block that collects any diagnostic yields no definition.
"""

from __future__ import annotations
from enum import Enum
import logging

from ..card_schema.card import (
    CARD_TYPE_TRAITS,
    CardDefinition,
    CardType,
    Faction,
    Range,
    default_description,
)
from ..card_schema.effect_dsl import CardBlock, Expression
from ..card_schema.tokens import SourcePosition
from .checker import Checker
from .diagnostics import DiagnosticSink, RuntimeFault

logger = logging.getLogger(__name__)


def validate_card(block: CardBlock, checker: Checker) -> CardDefinition | None:
    """
    Validate a card block, reporting into the checker's sink.

    Returns the compiled definition, or None when the block (or anything
    found here) has errors.
    """
    sink = checker.sink
    mark = sink.mark()
    label = block.name or "<unnamed>"

    if not block.name and "name" not in block.placeholders:
        sink.semantic("Card is missing 'Name'", block.position)

    card_type = _category(block, sink, CardType, "card_type", "Type", label)
    faction = _category(block, sink, Faction, "faction", "Faction", label)
    traits = CARD_TYPE_TRAITS[card_type] if card_type is not None else None

    checker.check_card(block)

    ranges = _ranges(block, sink, label, required=traits is not None and traits.needs_range)

    power = 0
    if block.power is None:
        if traits is not None and traits.needs_power:
            sink.semantic(
                f"Card '{label}' of type {card_type.value} requires 'Power'", block.position
            )
    elif "power" not in block.placeholders and not sink.since(mark):
        power = fold_power(block.power, sink, block.position_of("power"))

    if block.has_errors or sink.since(mark):
        logger.debug("Card %s rejected", label)
        return None

    return CardDefinition(
        name=block.name,
        card_type=card_type,
        faction=faction,
        power=power,
        ranges=tuple(ranges),
        activations=tuple(block.activations),
        description=block.description if block.description is not None else default_description(card_type),
    )


def _category(
    block: CardBlock,
    sink: DiagnosticSink,
    enum_type: type[Enum],
    attribute: str,
    field_name: str,
    label: str,
):
    """Map a header string onto one of the closed card enumerations."""
    if attribute in block.placeholders:
        return None
    value = getattr(block, attribute)
    if value is None:
        sink.semantic(f"Card '{label}' is missing '{field_name}'", block.position)
        return None
    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        sink.semantic(
            f"Card '{label}' has unknown {field_name} '{value}', expected one of {choices}",
            block.position_of(attribute),
        )
        return None


def _ranges(block: CardBlock, sink: DiagnosticSink, label: str, required: bool) -> list[Range]:
    if "ranges" in block.placeholders:
        return []
    if not block.ranges:
        if required:
            sink.semantic(
                f"Card '{label}' of type {block.card_type} requires at least one 'Range'",
                block.position_of("ranges"),
            )
        return []

    ranges: list[Range] = []
    for name in block.ranges:
        try:
            row = Range(name)
        except ValueError:
            sink.semantic(
                f"Card '{label}' has unknown Range '{name}', expected Melee, Ranged or Siege",
                block.position_of("ranges"),
            )
            continue
        if row in ranges:
            sink.semantic(f"Card '{label}' lists Range '{name}' twice", block.position_of("ranges"))
            continue
        ranges.append(row)
    return ranges


def fold_power(expression: Expression, sink: DiagnosticSink, position: SourcePosition | None) -> int:
    """Evaluate a checked Power expression to its constant value."""
    # Imported here: the engine depends on the compiler's diagnostics module.
    from ..engine_core.expression import ExpressionContext, ExpressionEvaluator

    try:
        return ExpressionEvaluator().evaluate(expression, ExpressionContext())
    except RuntimeFault as fault:
        sink.semantic(f"'Power' cannot be evaluated: {fault.message}", position)
        return 0
