"""
Expression Evaluator for the effect DSL.

Evaluates checked expression trees against a live game.

Supports:
- Literals: integers, strings, booleans
- Variables, in nested scopes
- Context shorthands: Hand, Field, Board, TriggerPlayer, ...
- Member access and calls on cards, the context and card collections
- Arithmetic (+ - * / ^), comparisons, and/or/not, string @ and @@
- Pre/post increment and decrement of variables and card Power
- Predicates: (card) => condition

Anything that cannot be carried out raises RuntimeFault.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, TYPE_CHECKING

from ..card_schema.tokens import TokenType
from ..card_schema.types import INT_MAX, INT_MIN
from ..card_schema.effect_dsl import (
    Binary,
    Expression,
    Identifier,
    Increment,
    KeywordRef,
    Lambda,
    Literal,
    MemberAccess,
    Unary,
)
from ..compiler.diagnostics import RuntimeFault
from .state import BoardView, Card, GameContext, Player, Zone

if TYPE_CHECKING:
    from ..card_schema.tokens import SourcePosition


class Environment:
    """Variables of one scope, falling back to the enclosing scope."""

    def __init__(self, parent: Environment | None = None):
        self.parent = parent
        self.values: dict[str, Any] = {}

    def child(self) -> Environment:
        return Environment(parent=self)

    def declare(self, name: str, value: Any):
        self.values[name] = value

    def _owner(self, name: str) -> Environment | None:
        env: Environment | None = self
        while env is not None:
            if name in env.values:
                return env
            env = env.parent
        return None

    def get(self, name: str, position: SourcePosition | None = None) -> Any:
        owner = self._owner(name)
        if owner is None:
            raise RuntimeFault(f"Undefined variable '{name}'", position)
        return owner.values[name]

    def assign(self, name: str, value: Any):
        """Update the scope that defines name, or declare it here."""
        owner = self._owner(name) or self
        owner.values[name] = value


@dataclass
class ExpressionContext:
    """
    Context for evaluating expressions.

    Provides access to:
    - The game (None while folding constants at compile time)
    - Variables of the running effect
    - The card whose activation is running
    """
    game: GameContext | None = None
    variables: Environment = field(default_factory=Environment)
    source_card: Card | None = None

    def with_variables(self, variables: Environment) -> ExpressionContext:
        return ExpressionContext(game=self.game, variables=variables, source_card=self.source_card)

    def require_game(self, position: SourcePosition | None) -> GameContext:
        if self.game is None:
            raise RuntimeFault("No game is available here", position)
        return self.game


def check_int(value: Any, position: SourcePosition | None = None) -> Any:
    """Fault when an Int result leaves the 32-bit range; other values pass through."""
    if type(value) is int and not INT_MIN <= value <= INT_MAX:
        raise RuntimeFault("Integer overflow", position)
    return value


def _truncating_divide(left: int, right: int, position) -> int:
    if right == 0:
        raise RuntimeFault("Division by zero", position)
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def _power(left: int, right: int, position) -> int:
    if right < 0:
        raise RuntimeFault(f"Negative exponent {right}", position)
    # |left| >= 2 leaves the Int range well before exponent 32
    if abs(left) > 1 and right >= 32:
        raise RuntimeFault("Integer overflow", position)
    return left ** right


_ARITHMETIC: dict[TokenType, Callable[[Any, Any, Any], Any]] = {
    TokenType.PLUS: lambda l, r, _: l + r,
    TokenType.MINUS: lambda l, r, _: l - r,
    TokenType.MULTIPLY: lambda l, r, _: l * r,
    TokenType.DIVIDE: _truncating_divide,
    TokenType.POW: _power,
    TokenType.CONCATENATION: lambda l, r, _: f"{l}{r}",
    TokenType.SPACE_CONCATENATION: lambda l, r, _: f"{l} {r}",
    TokenType.EQUAL: lambda l, r, _: l == r,
    TokenType.NOT_EQUAL: lambda l, r, _: l != r,
    TokenType.LESS: lambda l, r, _: l < r,
    TokenType.MORE: lambda l, r, _: l > r,
    TokenType.LESS_EQ: lambda l, r, _: l <= r,
    TokenType.MORE_EQ: lambda l, r, _: l >= r,
}

_INT_OPERATORS = frozenset({
    TokenType.PLUS,
    TokenType.MINUS,
    TokenType.MULTIPLY,
    TokenType.DIVIDE,
    TokenType.POW,
})


def _format(value: Any) -> str:
    """String form used by @ and @@: lowercase booleans like the literals."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ExpressionEvaluator:
    """
    Evaluates DSL expression trees.

    Usage:
        evaluator = ExpressionEvaluator()
        value = evaluator.evaluate(expression, ExpressionContext(game=state))
    """

    def evaluate(self, expression: Expression, context: ExpressionContext) -> Any:
        handlers: dict[type, Callable[[Any, ExpressionContext], Any]] = {
            Literal: self._eval_literal,
            Identifier: self._eval_identifier,
            KeywordRef: self._eval_keyword,
            Unary: self._eval_unary,
            Increment: self._eval_increment,
            Binary: self._eval_binary,
            MemberAccess: self._eval_member,
            Lambda: self._eval_lambda,
        }
        return handlers[type(expression)](expression, context)

    def evaluate_condition(self, expression: Expression, context: ExpressionContext) -> bool:
        """Evaluate an expression as a boolean condition."""
        return bool(self.evaluate(expression, context))

    def assign(self, target: Expression, value: Any, context: ExpressionContext):
        """Store value into a variable or a card's Power."""
        if isinstance(target, Identifier):
            context.variables.assign(target.name, value)
            return
        if isinstance(target, MemberAccess) and target.member == TokenType.POWER and target.args is None:
            card = self.evaluate(target.receiver, context)
            if not isinstance(card, Card):
                raise RuntimeFault("Only a card's Power can be assigned", target.position)
            card.power = value
            return
        raise RuntimeFault("Invalid assignment target", getattr(target, "position", None))

    # =========================================================================
    # Handlers
    # =========================================================================

    def _eval_literal(self, literal: Literal, context: ExpressionContext) -> Any:
        return literal.value

    def _eval_identifier(self, identifier: Identifier, context: ExpressionContext) -> Any:
        return context.variables.get(identifier.name, identifier.position)

    def _eval_keyword(self, keyword: KeywordRef, context: ExpressionContext) -> Any:
        game = context.require_game(keyword.position)
        return self._context_member(game, keyword.keyword, None, keyword.position)

    def _eval_unary(self, unary: Unary, context: ExpressionContext) -> Any:
        operand = self.evaluate(unary.operand, context)
        if unary.operator == TokenType.NOT:
            return not operand
        return check_int(-operand, unary.position)

    def _eval_increment(self, increment: Increment, context: ExpressionContext) -> int:
        old = self.evaluate(increment.target, context)
        new = old + 1 if increment.operator == TokenType.INCREMENT else old - 1
        check_int(new, increment.position)
        self.assign(increment.target, new, context)
        return new if increment.prefix else old

    def _eval_binary(self, binary: Binary, context: ExpressionContext) -> Any:
        left = self.evaluate(binary.left, context)

        # Short-circuit
        if binary.operator == TokenType.AND:
            return bool(left) and self.evaluate_condition(binary.right, context)
        if binary.operator == TokenType.OR:
            return bool(left) or self.evaluate_condition(binary.right, context)

        right = self.evaluate(binary.right, context)
        if binary.operator in (TokenType.CONCATENATION, TokenType.SPACE_CONCATENATION):
            left, right = _format(left), _format(right)
        try:
            result = _ARITHMETIC[binary.operator](left, right, binary.position)
        except TypeError as e:
            raise RuntimeFault(
                f"Cannot apply '{binary.operator.value}' to {_format(left)} and {_format(right)}",
                binary.position,
            ) from e
        if binary.operator in _INT_OPERATORS:
            check_int(result, binary.position)
        return result

    def _eval_lambda(self, predicate: Lambda, context: ExpressionContext) -> Callable[[Card], bool]:
        def matches(card: Card) -> bool:
            scope = context.variables.child()
            scope.declare(predicate.parameter, card)
            return self.evaluate_condition(predicate.body, context.with_variables(scope))
        return matches

    def _eval_member(self, access: MemberAccess, context: ExpressionContext) -> Any:
        receiver = self.evaluate(access.receiver, context)
        args = [self.evaluate(a, context) for a in access.args] if access.args is not None else None

        if isinstance(receiver, Card):
            return self._card_member(receiver, access.member, access.position)
        if isinstance(receiver, GameContext):
            return self._context_member(receiver, access.member, args, access.position)
        if isinstance(receiver, (Zone, BoardView)):
            return self._collection_member(receiver, access.member, args or [], access.position)
        raise RuntimeFault(
            f"Cannot access '{access.member.value}' on {_format(receiver)}", access.position
        )

    # =========================================================================
    # Members
    # =========================================================================

    def _card_member(self, card: Card, member: TokenType, position) -> Any:
        properties = {
            TokenType.NAME: lambda: card.name,
            TokenType.OWNER: lambda: card.owner,
            TokenType.POWER: lambda: card.power,
            TokenType.FACTION: lambda: card.faction,
            TokenType.RANGE: lambda: card.range_text,
            TokenType.TYPE: lambda: card.card_type,
        }
        if member not in properties:
            raise RuntimeFault(f"A card has no member '{member.value}'", position)
        return properties[member]()

    def _context_member(self, game: GameContext, member: TokenType, args: list | None, position) -> Any:
        if member == TokenType.TRIGGER_PLAYER:
            return game.trigger_player
        if member == TokenType.BOARD:
            return game.board

        zones = {
            TokenType.DECK: game.deck,
            TokenType.HAND: game.hand,
            TokenType.FIELD: game.field,
            TokenType.GRAVEYARD: game.graveyard,
        }
        of_player = {
            TokenType.DECK_OF_PLAYER: game.deck,
            TokenType.HAND_OF_PLAYER: game.hand,
            TokenType.FIELD_OF_PLAYER: game.field,
            TokenType.GRAVEYARD_OF_PLAYER: game.graveyard,
        }
        if member in zones:
            return zones[member](game.trigger_player)
        if member in of_player:
            player = args[0] if args else None
            if not isinstance(player, Player):
                raise RuntimeFault(f"'{member.value}' needs a player", position)
            return of_player[member](player)
        raise RuntimeFault(f"The context has no member '{member.value}'", position)

    def _collection_member(self, zone: Zone | BoardView, member: TokenType, args: list, position) -> Any:
        try:
            if member == TokenType.FIND:
                return zone.find(args[0])
            if member == TokenType.POP:
                return zone.pop()
            if member == TokenType.SHUFFLE:
                zone.shuffle()
                return None

            card_methods = {
                TokenType.PUSH: zone.push,
                TokenType.ADD: zone.add,
                TokenType.SEND_BOTTOM: zone.send_bottom,
                TokenType.REMOVE: zone.remove,
            }
            if member not in card_methods:
                raise RuntimeFault(f"A card collection has no member '{member.value}'", position)
            card = args[0] if args else None
            if not isinstance(card, Card):
                raise RuntimeFault(f"'{member.value}' needs a card", position)
            card_methods[member](card)
            return None
        except RuntimeFault as fault:
            if fault.position is None:
                fault.position = position
            raise


# Convenience function
def evaluate_expression(
    expression: Expression,
    game: GameContext | None = None,
    variables: dict[str, Any] | None = None,
) -> Any:
    """
    Evaluate an expression, optionally against a game.

    Args:
        expression: Checked expression tree
        game: Game the expression may read, or None for constants
        variables: Optional variables visible to the expression

    Returns:
        Evaluated value
    """
    env = Environment()
    for name, value in (variables or {}).items():
        env.declare(name, value)
    return ExpressionEvaluator().evaluate(expression, ExpressionContext(game=game, variables=env))
