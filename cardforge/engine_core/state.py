"""
Game State - The authoritative game document.

Design principles:
- Document-shaped: one mutable GameSession per game, stored in the
  DocumentStore and only changed through the engine
- Serializable: plain dataclasses, enums and ids
- Zone-exclusive: every instance id lives in exactly one of the shared
  deck, a hand, a battlefield or the shared graveyard
- Append-only log: GameLogEntry records are never edited or removed
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterator
from copy import deepcopy
from enum import Enum
import time

from ..catalog.cards import CardKind


class GameStatus(Enum):
    """High-level game status. FINISHED is terminal."""
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class LogAction(Enum):
    """What a game log entry records."""
    GAME_START = "game_start"
    PLAY_CARD = "play_card"
    ATTACK = "attack"
    END_TURN = "end_turn"
    TAKE_DAMAGE = "take_damage"
    HEAL = "heal"
    DRAW_CARD = "draw_card"
    GAIN_ENERGY = "gain_energy"
    DESTROY = "destroy"
    ABILITY = "ability"
    EFFECT = "effect"
    EFFECT_FAILED = "effect_failed"
    ACTION_FAILED = "action_failed"
    GAME_END = "game_end"


@dataclass(frozen=True)
class GameLogEntry:
    """An immutable audit record in the game log."""
    player_id: str
    action: LogAction
    description: str
    amount: int | None = None
    target_id: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class CardInstance:
    """
    A card on a battlefield.

    Note: This is a runtime instance, not the definition.
    `kind` is copied from the definition when the instance is materialized
    so targeting never needs the catalog.
    """
    instance_id: str
    definition_id: str
    kind: CardKind
    current_health: int
    sapped: bool = False

    @property
    def is_creature(self) -> bool:
        return self.kind == CardKind.CREATURE

    @property
    def is_artifact(self) -> bool:
        return self.kind == CardKind.ARTIFACT


@dataclass
class Zone:
    """
    An ordered zone of instance ids.

    Used for the shared deck, hands and the shared graveyard.
    The front of the deck is the top.
    """
    name: str
    cards: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.cards)

    @property
    def is_empty(self) -> bool:
        return len(self.cards) == 0

    def add(self, instance_id: str) -> None:
        self.cards.append(instance_id)

    def remove(self, instance_id: str) -> bool:
        """Remove an instance; returns False if it was not here."""
        if instance_id not in self.cards:
            return False
        self.cards.remove(instance_id)
        return True

    def contains(self, instance_id: str) -> bool:
        return instance_id in self.cards

    def take_top(self) -> str | None:
        """Remove and return the top card, or None if empty."""
        if not self.cards:
            return None
        return self.cards.pop(0)


@dataclass
class PlayerState:
    """State for a single player."""
    player_id: str
    name: str = ""
    health: int = 0
    max_health: int = 0
    energy: int = 0
    max_energy: int = 0

    hand: Zone = field(default_factory=lambda: Zone(name="hand"))
    battlefield: list[CardInstance] = field(default_factory=list)

    @property
    def is_defeated(self) -> bool:
        return self.health <= 0

    @property
    def creatures(self) -> list[CardInstance]:
        return [c for c in self.battlefield if c.is_creature]

    @property
    def artifacts(self) -> list[CardInstance]:
        return [c for c in self.battlefield if c.is_artifact]

    def get_instance(self, instance_id: str) -> CardInstance | None:
        for instance in self.battlefield:
            if instance.instance_id == instance_id:
                return instance
        return None

    def remove_instance(self, instance_id: str) -> CardInstance | None:
        """Take an instance off the battlefield."""
        for index, instance in enumerate(self.battlefield):
            if instance.instance_id == instance_id:
                return self.battlefield.pop(index)
        return None


@dataclass
class GameSession:
    """
    Complete game document at a point in time.

    This is the canonical state the engine operates on.
    """
    game_id: str
    status: GameStatus = GameStatus.WAITING
    players: list[PlayerState] = field(default_factory=list)
    current_player_index: int = 0
    turn: int = 0

    # Shared zones
    deck: Zone = field(default_factory=lambda: Zone(name="deck"))
    graveyard: Zone = field(default_factory=lambda: Zone(name="graveyard"))

    # instance id -> card definition id, for every instance in the game
    instance_definitions: dict[str, str] = field(default_factory=dict)

    game_log: list[GameLogEntry] = field(default_factory=list)

    selected_deck_id: str | None = None
    rematch_game_id: str | None = None

    # Random seed for determinism
    random_seed: int = 0

    created_at: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def current_player(self) -> PlayerState | None:
        """Get the current player."""
        if not self.players:
            return None
        return self.players[self.current_player_index]

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def is_playing(self) -> bool:
        return self.status == GameStatus.PLAYING

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    def get_player(self, player_id: str) -> PlayerState | None:
        """Get player by ID."""
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def opponents_of(self, player_id: str) -> list[PlayerState]:
        """Every other player, in seat order."""
        return [p for p in self.players if p.player_id != player_id]

    def find_instance(self, instance_id: str) -> tuple[PlayerState, CardInstance] | None:
        """Find a battlefield instance and its owner."""
        for player in self.players:
            instance = player.get_instance(instance_id)
            if instance is not None:
                return player, instance
        return None

    def definition_id_for(self, instance_id: str) -> str | None:
        return self.instance_definitions.get(instance_id)

    def zones_of(self, instance_id: str) -> list[str]:
        """Names of every zone holding an instance (one, if the game is sound)."""
        found = []
        if self.deck.contains(instance_id):
            found.append("deck")
        if self.graveyard.contains(instance_id):
            found.append("graveyard")
        for player in self.players:
            if player.hand.contains(instance_id):
                found.append(f"hand:{player.player_id}")
            if player.get_instance(instance_id) is not None:
                found.append(f"battlefield:{player.player_id}")
        return found

    def all_instance_ids(self) -> Iterator[str]:
        """Every instance id currently in a zone."""
        yield from self.deck.cards
        for player in self.players:
            yield from player.hand.cards
            for instance in player.battlefield:
                yield instance.instance_id
        yield from self.graveyard.cards

    def append_log(
        self,
        player_id: str,
        action: LogAction,
        description: str,
        amount: int | None = None,
        target_id: str | None = None,
    ) -> GameLogEntry:
        entry = GameLogEntry(
            player_id=player_id,
            action=action,
            description=description,
            amount=amount,
            target_id=target_id,
        )
        self.game_log.append(entry)
        return entry

    def clone(self) -> GameSession:
        """Deep copy the document."""
        return deepcopy(self)
