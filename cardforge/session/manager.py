"""
Game Manager - Creates games and decks and hands out engines.

LIFECYCLE:
1. A deck is stored (create_deck, or the built-in standard deck)
2. A game is created in WAITING with its players and seed
3. engine_for(game_id) gives the GameEngine that runs every action
4. The game finishes when a player is defeated; a rematch is a new game
5. end_game removes the game document and its engine

PERSISTENCE RULES:
- Games and decks are documents in one DocumentStore
- Each game gets its own DefinitionCache, so definitions load once per game
"""

from __future__ import annotations
from typing import Iterable
import logging
import random

from ..catalog.cards import DeckEntry, DeckList
from ..catalog.library import standard_deck
from ..catalog.repository import CardRepository, DefinitionCache
from ..catalog.validation import validate_deck
from ..config import RulesConfig
from ..engine_core.engine import GameEngine
from ..engine_core.interpreter import EffectInterpreter
from ..engine_core.state import GameSession, GameStatus, PlayerState
from ..errors import DocumentNotFoundError, EngineValidationError
from .store import DocumentStore

logger = logging.getLogger(__name__)


class GameManager:
    """
    Manages games.

    Responsibilities:
    - Store deck lists
    - Create waiting games
    - Keep one GameEngine per game
    - Clean up ended games
    """

    def __init__(
        self,
        repository: CardRepository,
        store: DocumentStore | None = None,
        rules: RulesConfig | None = None,
    ):
        self.repository = repository
        self.store = store or DocumentStore()
        self.rules = rules or RulesConfig()
        self.interpreter = EffectInterpreter()
        self._engines: dict[str, GameEngine] = {}

    # =========================================================================
    # Decks
    # =========================================================================

    async def create_deck(
        self,
        name: str,
        entries: Iterable[DeckEntry],
        deck_id: str | None = None,
    ) -> DeckList:
        """
        Validate and store a deck list.

        Raises:
            CatalogValidationError: if the deck names unknown cards or
                has bad quantities
        """
        deck = DeckList(
            deck_id=deck_id or self.store.new_id("deck"),
            name=name,
            entries=list(entries),
        )
        known = await self.repository.fetch_many(entry.card_id for entry in deck.entries)
        validate_deck(deck, set(known)).raise_if_invalid()

        self.store.create(deck, doc_id=deck.deck_id)
        logger.info("Stored deck %s (%d cards)", deck.deck_id, deck.size)
        return deck

    def ensure_standard_deck(self) -> DeckList:
        """Store the built-in standard deck if it is not stored yet."""
        deck = standard_deck()
        if deck.deck_id not in self.store:
            self.store.create(deck, doc_id=deck.deck_id)
        return deck

    def get_deck(self, deck_id: str) -> DeckList | None:
        """Get a deck by ID."""
        try:
            deck = self.store.find(deck_id).doc()
        except DocumentNotFoundError:
            return None
        return deck if isinstance(deck, DeckList) else None

    def list_decks(self) -> list[str]:
        return [doc_id for doc_id in self.store.list_ids() if self.get_deck(doc_id) is not None]

    # =========================================================================
    # Games
    # =========================================================================

    def create_game(
        self,
        player_ids: list[str],
        names: list[str] | None = None,
        deck_id: str | None = None,
        seed: int | None = None,
        game_id: str | None = None,
    ) -> GameSession:
        """
        Create a new waiting game.

        Args:
            player_ids: Seat order; the first player starts
            names: Optional display names, one per player
            deck_id: Deck to start with later
            seed: Shuffle seed; random if not given

        Returns:
            Snapshot of the new game
        """
        if len(player_ids) < 2:
            raise EngineValidationError("At least two players are required", "NOT_ENOUGH_PLAYERS")
        if len(set(player_ids)) != len(player_ids):
            raise EngineValidationError("Player ids must be unique", "DUPLICATE_PLAYER")
        if names is not None and len(names) != len(player_ids):
            raise EngineValidationError("One name per player is required", "INVALID_ACTION")

        names = names or list(player_ids)
        game = GameSession(
            game_id=game_id or self.store.new_id("game"),
            players=[
                PlayerState(player_id=player_id, name=name)
                for player_id, name in zip(player_ids, names)
            ],
            selected_deck_id=deck_id,
            random_seed=seed if seed is not None else random.randrange(2 ** 31),
        )
        handle = self.store.create(game, doc_id=game.game_id)
        logger.info("Created game %s for %s", game.game_id, ", ".join(player_ids))
        return handle.doc()

    def get_game(self, game_id: str) -> GameSession | None:
        """Get a snapshot of a game by ID."""
        try:
            game = self.store.find(game_id).doc()
        except DocumentNotFoundError:
            return None
        return game if isinstance(game, GameSession) else None

    def engine_for(self, game_id: str) -> GameEngine:
        """
        Get the engine for a game.

        Raises:
            DocumentNotFoundError: if no game has this id
        """
        engine = self._engines.get(game_id)
        if engine is not None:
            return engine

        if self.get_game(game_id) is None:
            raise DocumentNotFoundError(game_id)
        engine = GameEngine(
            self.store.find(game_id),
            DefinitionCache(self.repository),
            interpreter=self.interpreter,
            rules=self.rules,
            store=self.store,
        )
        self._engines[game_id] = engine
        return engine

    def list_games(self, status: GameStatus | None = None) -> list[str]:
        """List IDs of stored games, optionally only those in one status."""
        found = []
        for doc_id in self.store.list_ids():
            game = self.get_game(doc_id)
            if game is None:
                continue
            if status is None or game.status == status:
                found.append(doc_id)
        return found

    def end_game(self, game_id: str) -> bool:
        """
        Remove a game and its engine.

        Returns:
            False if there was no such game
        """
        if self.get_game(game_id) is None:
            return False
        self._engines.pop(game_id, None)
        self.store.delete(game_id)
        logger.info("Ended game %s", game_id)
        return True
