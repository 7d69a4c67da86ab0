"""
Engine Core - Runs compiled card effects against a live game.

The engine is the runtime that:
1. Holds the game (players, zones, card instances)
2. Evaluates DSL expressions
3. Resolves selectors and runs effect bodies
4. Reports runtime faults per effect instead of raising
"""

from .state import GameContext, GameState, PlayerState, Player, Card, Zone, BoardView
from .expression import ExpressionEvaluator, ExpressionContext, Environment, evaluate_expression
from .effect_resolver import EffectExecutor, EffectContext, ExecutionResult, execute_activation

__all__ = [
    "GameContext",
    "GameState",
    "PlayerState",
    "Player",
    "Card",
    "Zone",
    "BoardView",
    "ExpressionEvaluator",
    "ExpressionContext",
    "Environment",
    "evaluate_expression",
    "EffectExecutor",
    "EffectContext",
    "ExecutionResult",
    "execute_activation",
]
