"""
Effect Resolver - Runs compiled card activations against a game.

For each activation the executor:
1. Resolves the selector into a target collection
2. Binds targets, the context and the effect arguments
3. Runs the effect body statement by statement
4. Runs the post-action, whose `parent` source is the targets just used

A runtime fault ends only the effect it happened in: execute returns an
ExecutionResult carrying the fault as a RUNTIME diagnostic and never
raises. Loops are bounded so a broken script cannot hang the game.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging

from ..card_schema.effect_dsl import (
    Activation,
    Assignment,
    ExpressionStatement,
    ForEach,
    If,
    Selector,
    Statement,
    While,
)
from ..card_schema.tokens import TokenType
from ..compiler.diagnostics import Diagnostic, DiagnosticSink, RuntimeFault
from .. import config
from .expression import Environment, ExpressionContext, ExpressionEvaluator, check_int
from .state import BoardView, Card, GameContext, Zone

logger = logging.getLogger(__name__)

ERROR_HEADER = "Error executing effect:"


@dataclass
class ExecutionResult:
    """
    Outcome of running one activation (and its post-actions).

    On failure, messages is the error header, the fault message, then
    every diagnostic of that execution.
    """
    success: bool
    diagnostics: list[Diagnostic] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    effect_name: str = ""


@dataclass
class EffectContext:
    """
    State of one activation while it runs.
    """
    activation: Activation
    game: GameContext
    source_card: Card | None = None
    parent_targets: Zone | None = None
    targets: Zone | None = None


@dataclass
class EffectExecutor:
    """
    Executes activations.

    Usage:
        executor = EffectExecutor()
        result = executor.execute(activation, game)
        if not result.success:
            print("\\n".join(result.messages))
    """
    max_iterations: int = field(default_factory=lambda: config.MAX_LOOP_ITERATIONS)
    evaluator: ExpressionEvaluator = field(default_factory=ExpressionEvaluator)

    def execute(
        self,
        activation: Activation,
        game: GameContext,
        source_card: Card | None = None,
    ) -> ExecutionResult:
        """Run one activation. Faults are returned, never raised."""
        sink = DiagnosticSink()
        try:
            self._run_activation(EffectContext(activation=activation, game=game, source_card=source_card))
        except RuntimeFault as fault:
            sink.runtime(fault.message, fault.position)
            logger.warning("Effect %s failed: %s", activation.effect_name, fault.message)
            return ExecutionResult(
                success=False,
                diagnostics=list(sink),
                messages=[ERROR_HEADER, fault.message, *(str(d) for d in sink)],
                effect_name=activation.effect_name,
            )
        logger.debug("Effect %s completed", activation.effect_name)
        return ExecutionResult(success=True, effect_name=activation.effect_name)

    def execute_card(self, card: Card, game: GameContext) -> list[ExecutionResult]:
        """Run every activation of card in order; a failing one does not stop the rest."""
        return [
            self.execute(activation, game, source_card=card)
            for activation in card.definition.activations
        ]

    # =========================================================================
    # Activations
    # =========================================================================

    def _run_activation(self, context: EffectContext):
        activation = context.activation
        effect = activation.effect
        if effect is None:
            raise RuntimeFault(f"Effect '{activation.effect_name}' is not compiled", activation.position)

        context.targets = self.select_targets(activation.selector, context)

        variables = Environment()
        variables.declare(effect.targets_name, context.targets)
        variables.declare(effect.context_name, context.game)
        constants = ExpressionContext(game=context.game, source_card=context.source_card)
        for name, argument in activation.arguments.items():
            variables.declare(name, self.evaluator.evaluate(argument, constants))

        self.run_statements(
            effect.body,
            ExpressionContext(game=context.game, variables=variables, source_card=context.source_card),
        )

        if activation.post_action is not None:
            self._run_activation(EffectContext(
                activation=activation.post_action,
                game=context.game,
                source_card=context.source_card,
                parent_targets=context.targets,
            ))

    def select_targets(self, selector: Selector | None, context: EffectContext) -> Zone:
        """
        Targets chosen by selector.

        No selector means no targets, except in a post-action, which then
        reuses its parent's targets.
        """
        if selector is None:
            if context.parent_targets is not None:
                return context.parent_targets
            return Zone(name="targets")

        source = self._source_zone(selector, context)
        expressions = ExpressionContext(game=context.game, source_card=context.source_card)
        predicate: Callable[[Card], bool] = lambda card: True
        if selector.predicate is not None:
            predicate = self.evaluator.evaluate(selector.predicate, expressions)
        targets = source.find(predicate)

        if selector.single is not None and self.evaluator.evaluate_condition(selector.single, expressions):
            targets.cards = targets.cards[:1]
        return targets

    def _source_zone(self, selector: Selector, context: EffectContext) -> Zone | BoardView:
        game = context.game
        if selector.source == "parent":
            if context.parent_targets is None:
                raise RuntimeFault("Source 'parent' is only valid inside a PostAction", selector.position)
            return context.parent_targets
        if selector.source == "board":
            return game.board

        player = game.trigger_player
        source = selector.source
        if source.startswith("other"):
            player = game.opponent(player)
            source = source[len("other"):].lower()
        zones = {
            "hand": game.hand,
            "deck": game.deck,
            "field": game.field,
            "graveyard": game.graveyard,
        }
        if source not in zones:
            raise RuntimeFault(f"Unknown selector source '{selector.source}'", selector.position)
        return zones[source](player)

    # =========================================================================
    # Statements
    # =========================================================================

    def run_statements(self, statements: list[Statement], context: ExpressionContext):
        for statement in statements:
            self.run_statement(statement, context)

    def run_statement(self, statement: Statement, context: ExpressionContext):
        handlers: dict[type, Callable[[Any, ExpressionContext], None]] = {
            ExpressionStatement: self._run_expression,
            Assignment: self._run_assignment,
            If: self._run_if,
            While: self._run_while,
            ForEach: self._run_for_each,
        }
        handlers[type(statement)](statement, context)

    def _run_expression(self, statement: ExpressionStatement, context: ExpressionContext):
        self.evaluator.evaluate(statement.expression, context)

    def _run_assignment(self, statement: Assignment, context: ExpressionContext):
        value = self.evaluator.evaluate(statement.value, context)
        if statement.operator == TokenType.PLUS_EQUAL:
            value = self.evaluator.evaluate(statement.target, context) + value
        elif statement.operator == TokenType.MINUS_EQUAL:
            value = self.evaluator.evaluate(statement.target, context) - value
        check_int(value, statement.position)
        self.evaluator.assign(statement.target, value, context)

    def _run_if(self, statement: If, context: ExpressionContext):
        branch = statement.then_body if self.evaluator.evaluate_condition(statement.condition, context) else statement.else_body
        self.run_statements(branch, context.with_variables(context.variables.child()))

    def _run_while(self, statement: While, context: ExpressionContext):
        iterations = 0
        while self.evaluator.evaluate_condition(statement.condition, context):
            iterations = self._count_iteration(iterations, statement)
            self.run_statements(statement.body, context.with_variables(context.variables.child()))

    def _run_for_each(self, statement: ForEach, context: ExpressionContext):
        collection = self.evaluator.evaluate(statement.iterable, context)
        if not isinstance(collection, (Zone, BoardView)):
            raise RuntimeFault("Only card collections can be looped over", statement.position)

        iterations = 0
        # Snapshot: the body may move cards in or out of the collection
        for card in list(collection.cards):
            iterations = self._count_iteration(iterations, statement)
            scope = context.variables.child()
            scope.declare(statement.variable, card)
            self.run_statements(statement.body, context.with_variables(scope))

    def _count_iteration(self, iterations: int, statement: While | ForEach) -> int:
        iterations += 1
        if iterations > self.max_iterations:
            raise RuntimeFault(
                f"Loop exceeded {self.max_iterations} iterations", statement.position
            )
        return iterations


# Convenience function
def execute_activation(
    activation: Activation,
    game: GameContext,
    source_card: Card | None = None,
) -> ExecutionResult:
    """
    Run one activation with a default executor.
    """
    return EffectExecutor().execute(activation, game, source_card=source_card)
