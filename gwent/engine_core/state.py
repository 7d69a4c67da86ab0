"""
Game State - The live game an effect runs against.

GameContext is the interface effects see: the trigger player, their
opponent, and each player's deck, hand, field and graveyard, plus the
board (both fields together). GameState is the in-memory implementation
used by the CLI sandbox and the tests.

Zones are mutable: effects change them in place. Cards compare by
identity, so two copies of the same definition are different cards.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterator
import itertools
import random

from ..card_schema.card import CardDefinition
from ..compiler.diagnostics import RuntimeFault

_instance_ids = itertools.count(1)


@dataclass(eq=False)
class Player:
    player_id: str
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class Card:
    """
    A card instance in the game.

    Note: This is a runtime instance, not the definition.
    The definition lives in CompilationResult.cards.
    """
    definition: CardDefinition
    owner: Player
    power: int
    instance_id: str = ""

    @classmethod
    def from_definition(cls, definition: CardDefinition, owner: Player) -> Card:
        return cls(
            definition=definition,
            owner=owner,
            power=definition.power,
            instance_id=f"{definition.name}#{next(_instance_ids)}",
        )

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def faction(self) -> str:
        return self.definition.faction.value

    @property
    def card_type(self) -> str:
        return self.definition.card_type.value

    @property
    def range_text(self) -> str:
        return self.definition.range_text

    def __str__(self) -> str:
        return f"{self.name} ({self.power})"


@dataclass(eq=False)
class Zone:
    """
    An ordered pile of cards; the end of the list is the top.

    Can represent: deck, hand, field, graveyard, or the detached result
    of a Find.
    """
    name: str
    cards: list[Card] = field(default_factory=list)
    rng: random.Random | None = None

    @property
    def count(self) -> int:
        return len(self.cards)

    @property
    def is_empty(self) -> bool:
        return len(self.cards) == 0

    @property
    def top_card(self) -> Card | None:
        return self.cards[-1] if self.cards else None

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __contains__(self, card: Card) -> bool:
        return any(c is card for c in self.cards)

    def push(self, card: Card):
        self.cards.append(card)

    def add(self, card: Card):
        """Same placement as push: the card goes on top."""
        self.push(card)

    def send_bottom(self, card: Card):
        self.cards.insert(0, card)

    def pop(self) -> Card:
        if not self.cards:
            raise RuntimeFault(f"Cannot pop from empty {self.name}")
        return self.cards.pop()

    def remove(self, card: Card):
        for index, candidate in enumerate(self.cards):
            if candidate is card:
                del self.cards[index]
                return
        raise RuntimeFault(f"Card '{card.name}' is not in {self.name}")

    def shuffle(self):
        (self.rng or random).shuffle(self.cards)

    def find(self, predicate: Callable[[Card], bool]) -> Zone:
        """New detached zone holding the matching cards, in order."""
        return Zone(name=self.name, cards=[c for c in self.cards if predicate(c)], rng=self.rng)


@dataclass(eq=False)
class BoardView:
    """
    Both fields seen as one collection.

    Reads, Find, Pop, Remove and Shuffle act on the underlying fields.
    Cards cannot be placed on the board directly; they go to a field.
    """
    fields: list[Zone]
    name: str = "board"

    @property
    def cards(self) -> list[Card]:
        return [card for zone in self.fields for card in zone.cards]

    @property
    def count(self) -> int:
        return sum(zone.count for zone in self.fields)

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __contains__(self, card: Card) -> bool:
        return any(card in zone for zone in self.fields)

    def _refuse_add(self, card: Card):
        raise RuntimeFault(f"Cannot place '{card.name}' on the board directly, use a field")

    push = add = send_bottom = _refuse_add

    def pop(self) -> Card:
        for zone in reversed(self.fields):
            if not zone.is_empty:
                return zone.pop()
        raise RuntimeFault("Cannot pop from empty board")

    def remove(self, card: Card):
        for zone in self.fields:
            if card in zone:
                zone.remove(card)
                return
        raise RuntimeFault(f"Card '{card.name}' is not on the board")

    def shuffle(self):
        for zone in self.fields:
            zone.shuffle()

    def find(self, predicate: Callable[[Card], bool]) -> Zone:
        return Zone(name=self.name, cards=[c for c in self.cards if predicate(c)])


CardCollection = Zone | BoardView


class GameContext(ABC):
    """What an effect can see and change while it runs."""

    @property
    @abstractmethod
    def trigger_player(self) -> Player:
        """The player whose card is being activated."""

    @abstractmethod
    def opponent(self, player: Player) -> Player: ...

    @abstractmethod
    def deck(self, player: Player) -> Zone: ...

    @abstractmethod
    def hand(self, player: Player) -> Zone: ...

    @abstractmethod
    def field(self, player: Player) -> Zone: ...

    @abstractmethod
    def graveyard(self, player: Player) -> Zone: ...

    @property
    @abstractmethod
    def board(self) -> BoardView: ...


@dataclass
class PlayerState:
    """
    State for a single player.
    """
    player: Player
    deck: Zone = field(default_factory=lambda: Zone(name="deck"))
    hand: Zone = field(default_factory=lambda: Zone(name="hand"))
    graveyard: Zone = field(default_factory=lambda: Zone(name="graveyard"))
    # Declared last: the attribute name shadows dataclasses.field in this body
    field: Zone = field(default_factory=lambda: Zone(name="field"))

    def zones(self) -> dict[str, Zone]:
        return {
            "deck": self.deck,
            "hand": self.hand,
            "field": self.field,
            "graveyard": self.graveyard,
        }


class GameState(GameContext):
    """
    In-memory two-player game.

    Usage:
        state = GameState.sandbox(result.cards, seed=7)
        executor.execute_card(card, state)
    """

    def __init__(self, players: list[PlayerState], trigger_index: int = 0, rng: random.Random | None = None):
        if len(players) != 2:
            raise ValueError("A game needs exactly two players")
        self.players = players
        self.trigger_index = trigger_index
        self.rng = rng or random.Random()
        for state in players:
            for zone in state.zones().values():
                zone.rng = self.rng

    @classmethod
    def sandbox(
        cls,
        definitions: list[CardDefinition],
        seed: int | None = None,
        hand_size: int = 5,
    ) -> GameState:
        """Two players, each with one copy of every definition dealt into a shuffled deck."""
        rng = random.Random(seed)
        players = [
            PlayerState(player=Player("p1", "Player 1")),
            PlayerState(player=Player("p2", "Player 2")),
        ]
        state = cls(players, rng=rng)
        for player_state in players:
            for definition in definitions:
                player_state.deck.push(Card.from_definition(definition, player_state.player))
            player_state.deck.shuffle()
            for _ in range(min(hand_size, player_state.deck.count)):
                player_state.hand.push(player_state.deck.pop())
        return state

    def state_of(self, player: Player) -> PlayerState:
        for state in self.players:
            if state.player is player:
                return state
        raise RuntimeFault(f"Player '{player}' is not in this game")

    @property
    def trigger_player(self) -> Player:
        return self.players[self.trigger_index].player

    def opponent(self, player: Player) -> Player:
        index = 1 if self.state_of(player) is self.players[0] else 0
        return self.players[index].player

    def deck(self, player: Player) -> Zone:
        return self.state_of(player).deck

    def hand(self, player: Player) -> Zone:
        return self.state_of(player).hand

    def field(self, player: Player) -> Zone:
        return self.state_of(player).field

    def graveyard(self, player: Player) -> Zone:
        return self.state_of(player).graveyard

    @property
    def board(self) -> BoardView:
        return BoardView(fields=[state.field for state in self.players])

    def zone_sizes(self) -> dict[str, dict[str, int]]:
        """Card count per zone per player, for reports."""
        return {
            state.player.name: {name: zone.count for name, zone in state.zones().items()}
            for state in self.players
        }
