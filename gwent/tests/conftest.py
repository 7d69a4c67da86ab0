"""
Pytest fixtures for Gwent tests.
"""

import random
from pathlib import Path

import pytest

from ..compiler import CardCompiler, CompilationResult
from ..engine_core.state import Card, GameState, Player, PlayerState, Zone

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def cards_path() -> Path:
    """Path of the sample card file."""
    return DATA_DIR / "cards.txt"


@pytest.fixture
def cards_source(cards_path: Path) -> str:
    return cards_path.read_text(encoding="utf-8")


@pytest.fixture
def compiler() -> CardCompiler:
    return CardCompiler()


@pytest.fixture
def compiled(compiler: CardCompiler, cards_path: Path) -> CompilationResult:
    """The sample card file, compiled."""
    return compiler.compile(cards_path)


@pytest.fixture
def players() -> tuple[Player, Player]:
    return Player("p1", "Alice"), Player("p2", "Bob")


@pytest.fixture
def game(compiled: CompilationResult, players) -> GameState:
    """
    Two-player game built from the sample cards.

    Alice (trigger player): deck [Niebla, Basilisco], hand [Beluga],
    field [Beluga].
    Bob: deck [Beluga], field [Basilisco (3), Niebla (0)].
    """
    alice, bob = players
    beluga = compiled.card("Beluga")
    basilisco = compiled.card("Basilisco")
    niebla = compiled.card("Niebla")

    alice_state = PlayerState(
        player=alice,
        deck=Zone(name="deck", cards=[
            Card.from_definition(niebla, alice),
            Card.from_definition(basilisco, alice),
        ]),
        hand=Zone(name="hand", cards=[Card.from_definition(beluga, alice)]),
        field=Zone(name="field", cards=[Card.from_definition(beluga, alice)]),
    )
    bob_state = PlayerState(
        player=bob,
        deck=Zone(name="deck", cards=[Card.from_definition(beluga, bob)]),
        field=Zone(name="field", cards=[
            Card.from_definition(basilisco, bob),
            Card.from_definition(niebla, bob),
        ]),
    )
    return GameState([alice_state, bob_state], rng=random.Random(1))
