"""
Pytest fixtures for Cardforge tests.
"""

import pytest

from ..catalog.cards import CardDefinition
from ..catalog.library import build_standard_library
from ..catalog.repository import DefinitionCache, InMemoryCardRepository
from ..engine_core.engine import GameEngine
from ..engine_core.state import CardInstance, GameSession, GameStatus, PlayerState
from ..session.store import DocumentStore


class GameBuilder:
    """
    Builds a PLAYING two-player game with hand-placed cards.

    alice is seated first and it is her turn. Both players start at
    25/25 health and 5/5 energy with empty zones.
    """

    def __init__(self, cards: list[CardDefinition]):
        self.cards = {card.card_id: card for card in cards}
        self.state = GameSession(
            game_id="test_game",
            status=GameStatus.PLAYING,
            players=[
                PlayerState(player_id="alice", name="Alice", health=25, max_health=25, energy=5, max_energy=5),
                PlayerState(player_id="bob", name="Bob", health=25, max_health=25, energy=5, max_energy=5),
            ],
            turn=1,
            random_seed=7,
        )
        self._counter = 0

    def _instance_id(self, card_id: str) -> str:
        self._counter += 1
        return f"{card_id}_{self._counter}"

    def hand(self, player_id: str, card_id: str) -> str:
        """Put a card in a player's hand; returns its instance id."""
        instance_id = self._instance_id(card_id)
        self.state.instance_definitions[instance_id] = card_id
        self.state.get_player(player_id).hand.add(instance_id)
        return instance_id

    def deck(self, card_id: str) -> str:
        """Put a card at the bottom of the shared deck."""
        instance_id = self._instance_id(card_id)
        self.state.instance_definitions[instance_id] = card_id
        self.state.deck.add(instance_id)
        return instance_id

    def unit(self, player_id: str, card_id: str, health: int | None = None, sapped: bool = False) -> str:
        """Put a creature or artifact on a player's battlefield."""
        card = self.cards[card_id]
        instance_id = self._instance_id(card_id)
        self.state.instance_definitions[instance_id] = card_id
        self.state.get_player(player_id).battlefield.append(
            CardInstance(
                instance_id=instance_id,
                definition_id=card_id,
                kind=card.kind,
                current_health=card.entry_health if health is None else health,
                sapped=sapped,
            )
        )
        return instance_id

    def energy(self, player_id: str, energy: int, max_energy: int | None = None) -> None:
        player = self.state.get_player(player_id)
        player.energy = energy
        player.max_energy = energy if max_energy is None else max_energy

    def health(self, player_id: str, health: int) -> None:
        self.state.get_player(player_id).health = health


@pytest.fixture
def library() -> list[CardDefinition]:
    """The built-in card set."""
    return build_standard_library()


@pytest.fixture
def cards_by_id(library) -> dict[str, CardDefinition]:
    return {card.card_id: card for card in library}


@pytest.fixture
def repository(library) -> InMemoryCardRepository:
    """Repository holding the built-in card set."""
    return InMemoryCardRepository(library)


@pytest.fixture
def definitions(repository) -> DefinitionCache:
    """Definition cache over the built-in set."""
    return DefinitionCache(repository)


@pytest.fixture
def store() -> DocumentStore:
    """An empty document store."""
    return DocumentStore()


@pytest.fixture
def game(library) -> GameBuilder:
    """A PLAYING two-player game to arrange cards in."""
    return GameBuilder(library)


@pytest.fixture
def make_engine(store, definitions):
    """Store a game document and return an engine running it."""

    def build(state: GameSession) -> GameEngine:
        handle = store.create(state, doc_id=state.game_id)
        return GameEngine(handle, definitions, store=store)

    return build
