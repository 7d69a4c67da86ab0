"""
Effect DSL - Syntax tree for card scripts.

The parser builds these nodes, the checker annotates each expression with
its ValueKind in place, and the executor walks them against a live game.

Node families:
- Expressions: literals, names, operators, member chains, predicates
- Statements: assignment, conditional, while loop, loop over a collection
- Declarations: effects, activations (effect invocations on a card),
  selectors and raw card blocks

Nodes own their children; there are no back references.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Union

from .tokens import SourcePosition, TokenType
from .types import ValueKind


@dataclass(eq=False)
class Node:
    """Base for every syntax node. kind is filled in by the checker."""
    kind: ValueKind = field(default=ValueKind.UNASSIGNED, init=False)


# ============================================================================
# Expressions
# ============================================================================

@dataclass(eq=False)
class Literal(Node):
    value: int | str | bool = 0
    position: SourcePosition | None = None


@dataclass(eq=False)
class Identifier(Node):
    name: str = ""
    position: SourcePosition | None = None


@dataclass(eq=False)
class KeywordRef(Node):
    """A context property used bare, e.g. `Hand` for `context.Hand`."""
    keyword: TokenType = TokenType.HAND
    position: SourcePosition | None = None


@dataclass(eq=False)
class Unary(Node):
    operator: TokenType = TokenType.NOT
    operand: Expression | None = None
    position: SourcePosition | None = None


@dataclass(eq=False)
class Increment(Node):
    """`++x`, `x++`, `--x`, `x--`."""
    operator: TokenType = TokenType.INCREMENT
    target: Expression | None = None
    prefix: bool = True
    position: SourcePosition | None = None


@dataclass(eq=False)
class Binary(Node):
    operator: TokenType = TokenType.PLUS
    left: Expression | None = None
    right: Expression | None = None
    position: SourcePosition | None = None


@dataclass(eq=False)
class MemberAccess(Node):
    """
    `receiver.Member` (args is None) or `receiver.Member(args)`.

    Chains nest to the left: `Field.Find(p).Pop()` is
    MemberAccess(MemberAccess(KeywordRef(Field), Find, [p]), Pop, []).
    """
    receiver: Expression | None = None
    member: TokenType = TokenType.NAME
    args: list[Expression] | None = None
    position: SourcePosition | None = None


@dataclass(eq=False)
class Lambda(Node):
    """Single-parameter predicate: `(unit) => unit.Power > 2`."""
    parameter: str = ""
    body: Expression | None = None
    position: SourcePosition | None = None


Expression = Union[
    Literal, Identifier, KeywordRef, Unary, Increment, Binary, MemberAccess, Lambda
]


# ============================================================================
# Statements
# ============================================================================

@dataclass(eq=False)
class ExpressionStatement(Node):
    expression: Expression | None = None
    position: SourcePosition | None = None


@dataclass(eq=False)
class Assignment(Node):
    target: Expression | None = None
    operator: TokenType = TokenType.ASSIGN  # =, += or -=
    value: Expression | None = None
    position: SourcePosition | None = None


@dataclass(eq=False)
class If(Node):
    condition: Expression | None = None
    then_body: list[Statement] = field(default_factory=list)
    else_body: list[Statement] = field(default_factory=list)
    position: SourcePosition | None = None


@dataclass(eq=False)
class While(Node):
    condition: Expression | None = None
    body: list[Statement] = field(default_factory=list)
    position: SourcePosition | None = None


@dataclass(eq=False)
class ForEach(Node):
    variable: str = ""
    iterable: Expression | None = None
    body: list[Statement] = field(default_factory=list)
    position: SourcePosition | None = None


Statement = Union[ExpressionStatement, Assignment, If, While, ForEach]


# ============================================================================
# Declarations
# ============================================================================

@dataclass(eq=False)
class ParamDeclaration(Node):
    name: str = ""
    param_kind: ValueKind = ValueKind.INT
    position: SourcePosition | None = None


@dataclass(eq=False)
class EffectDeclaration(Node):
    """
    A named, parameterised effect script.

    Action: (targets, context) => { ... } binds the selected targets
    (CardCollection) and the game context (Context) under the given names.
    """
    name: str = ""
    params: list[ParamDeclaration] = field(default_factory=list)
    targets_name: str = "targets"
    context_name: str = "context"
    body: list[Statement] = field(default_factory=list)
    position: SourcePosition | None = None

    # Set by the parser when the declaration had syntax errors
    has_errors: bool = field(default=False, init=False)

    def param(self, name: str) -> ParamDeclaration | None:
        for param in self.params:
            if param.name == name:
                return param
        return None


SELECTOR_SOURCES = (
    "hand", "otherHand",
    "deck", "otherDeck",
    "field", "otherField",
    "graveyard", "otherGraveyard",
    "board",
    "parent",
)


@dataclass(eq=False)
class Selector(Node):
    """Chooses the targets an effect receives."""
    source: str = ""
    single: Expression | None = None
    predicate: Lambda | None = None
    position: SourcePosition | None = None


@dataclass(eq=False)
class Activation(Node):
    """
    One entry of a card's OnActivation list: invoke an effect with
    arguments on the targets picked by the selector, then run the
    optional post-action.
    """
    effect_name: str = ""
    arguments: dict[str, Expression] = field(default_factory=dict)
    selector: Selector | None = None
    post_action: Activation | None = None
    position: SourcePosition | None = None

    # Resolved by the checker
    effect: EffectDeclaration | None = field(default=None, init=False)


@dataclass(eq=False)
class CardBlock(Node):
    """
    Raw header of a `card { ... }` block, before validation.

    Header values keep whatever the parser read (or a placeholder when
    the field was malformed); validation turns them into a CardDefinition.
    """
    name: str | None = None
    card_type: str | None = None
    faction: str | None = None
    power: Expression | None = None
    ranges: list[str] | None = None
    description: str | None = None
    activations: list[Activation] = field(default_factory=list)
    field_positions: dict[str, SourcePosition] = field(default_factory=dict)
    position: SourcePosition | None = None

    # Header fields whose value could not be parsed; they hold defaults
    placeholders: set[str] = field(default_factory=set, init=False)
    has_errors: bool = field(default=False, init=False)

    def position_of(self, field_name: str) -> SourcePosition | None:
        return self.field_positions.get(field_name, self.position)


def walk(node: Any):
    """Yield node and every syntax node below it, depth first."""
    if isinstance(node, list):
        for item in node:
            yield from walk(item)
        return
    if isinstance(node, dict):
        for item in node.values():
            yield from walk(item)
        return
    if not isinstance(node, Node):
        return
    yield node
    for name, value in vars(node).items():
        if name in ("kind", "effect"):
            continue
        if isinstance(value, (Node, list, dict)):
            yield from walk(value)
