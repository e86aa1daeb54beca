"""
API Service - Business logic layer between the HTTP app and the engine.

The service:
1. Translates requests into GameManager / GameEngine calls
2. Turns request targets into a PresetTargetSelector
3. Converts game documents into response models
4. Maps engine failures to ErrorResponse values

This layer is framework-agnostic; create_app() only routes to it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from .. import __version__
from ..catalog.cards import CardDefinition, DeckEntry, DeckList
from ..catalog.effect_dsl import Target, TargetKind
from ..catalog.library import build_standard_library
from ..catalog.repository import InMemoryCardRepository
from ..config import RulesConfig
from ..engine_core.engine import GameEngine
from ..engine_core.state import GameSession
from ..engine_core.targeting import PresetTargetSelector
from ..errors import CatalogValidationError, DocumentNotFoundError, EngineValidationError
from ..session.manager import GameManager
from .schemas import (
    # Requests
    AttackCreatureRequest,
    AttackPlayerRequest,
    CreateDeckRequest,
    CreateGameRequest,
    EndTurnRequest,
    HealRequest,
    PlayCardRequest,
    StartGameRequest,
    # Responses
    ActionResponse,
    CardListResponse,
    DeckResponse,
    ErrorResponse,
    GameListResponse,
    GameStateResponse,
    HealthResponse,
    RematchResponse,
    # Shared
    CardInfo,
    DeckEntryModel,
    HandCardInfo,
    LogEntryInfo,
    PlayerInfo,
    TargetModel,
    UnitInfo,
    # Enums
    ErrorCode,
    error_code_for,
)

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        game = service.create_game(CreateGameRequest(player_ids=["p1", "p2"]))
        await service.start_game(game.game_id, StartGameRequest())
        await service.play_card(game.game_id, PlayCardRequest(...))
    """
    cards: list[CardDefinition] = field(default_factory=build_standard_library)
    manager: GameManager | None = None

    def __post_init__(self):
        self._cards_by_id = {card.card_id: card for card in self.cards}
        if self.manager is None:
            self.manager = GameManager(
                InMemoryCardRepository(self.cards),
                rules=RulesConfig.from_env(),
            )
        self.manager.ensure_standard_deck()

    # =========================================================================
    # Catalog and decks
    # =========================================================================

    def health(self) -> HealthResponse:
        return HealthResponse(status="ok", service="cardforge", version=__version__)

    def list_cards(self) -> CardListResponse:
        cards = [self._card_info(card) for card in self.cards]
        return CardListResponse(cards=cards, count=len(cards))

    async def create_deck(self, request: CreateDeckRequest) -> DeckResponse | ErrorResponse:
        """Validate and store a deck list."""
        if request.deck_id and request.deck_id in self.manager.store:
            return ErrorResponse(
                error=f"Document {request.deck_id} already exists",
                error_code=ErrorCode.VALIDATION_ERROR,
            )
        try:
            deck = await self.manager.create_deck(
                request.name,
                [DeckEntry(card_id=e.card_id, quantity=e.quantity) for e in request.entries],
                deck_id=request.deck_id,
            )
        except CatalogValidationError as e:
            return ErrorResponse(
                error="Deck failed validation",
                error_code=ErrorCode.VALIDATION_ERROR,
                details={"errors": e.errors},
            )
        return self._deck_response(deck)

    # =========================================================================
    # Games
    # =========================================================================

    def create_game(self, request: CreateGameRequest) -> GameStateResponse | ErrorResponse:
        """Create a waiting game."""
        if request.deck_id and self.manager.get_deck(request.deck_id) is None:
            return ErrorResponse(
                error=f"Deck {request.deck_id} not found",
                error_code=ErrorCode.DECK_NOT_FOUND,
            )
        try:
            game = self.manager.create_game(
                request.player_ids,
                names=request.names,
                deck_id=request.deck_id,
                seed=request.seed,
            )
        except EngineValidationError as e:
            return ErrorResponse(error=str(e), error_code=error_code_for(e.error_code))
        return self.game_state(game)

    def get_game(self, game_id: str) -> GameStateResponse | ErrorResponse:
        game = self.manager.get_game(game_id)
        if game is None:
            return self._game_not_found(game_id)
        return self.game_state(game)

    def list_games(self) -> GameListResponse:
        games = self.manager.list_games()
        return GameListResponse(games=games, count=len(games))

    def end_game(self, game_id: str) -> bool:
        return self.manager.end_game(game_id)

    async def start_game(self, game_id: str, request: StartGameRequest) -> ActionResponse | ErrorResponse:
        engine = self._engine(game_id)
        if isinstance(engine, ErrorResponse):
            return engine
        deck_id = (
            request.deck_id
            or engine.snapshot().selected_deck_id
            or self.manager.ensure_standard_deck().deck_id
        )
        ok = await engine.start_game_with_deck(deck_id)
        return self._action_result(engine, ok)

    async def create_rematch(self, game_id: str) -> RematchResponse | ErrorResponse:
        engine = self._engine(game_id)
        if isinstance(engine, ErrorResponse):
            return engine
        rematch_id = await engine.create_rematch_game()
        if rematch_id is None:
            return ErrorResponse(
                error=engine.last_error or "Could not create rematch",
                error_code=error_code_for(engine.last_error_code),
            )
        return RematchResponse(success=True, game_id=game_id, rematch_game_id=rematch_id)

    # =========================================================================
    # Player actions
    # =========================================================================

    async def play_card(self, game_id: str, request: PlayCardRequest) -> ActionResponse | ErrorResponse:
        engine = self._engine(game_id)
        if isinstance(engine, ErrorResponse):
            return engine
        ok = await engine.play_card(
            request.player_id, request.instance_id, self._selector(request.targets)
        )
        return self._action_result(engine, ok)

    async def attack_player(self, game_id: str, request: AttackPlayerRequest) -> ActionResponse | ErrorResponse:
        engine = self._engine(game_id)
        if isinstance(engine, ErrorResponse):
            return engine
        ok = await engine.attack_player_with_creature(
            request.player_id,
            request.instance_id,
            request.target_player_id,
            self._selector(request.targets),
        )
        return self._action_result(engine, ok)

    async def attack_creature(self, game_id: str, request: AttackCreatureRequest) -> ActionResponse | ErrorResponse:
        engine = self._engine(game_id)
        if isinstance(engine, ErrorResponse):
            return engine
        ok = await engine.attack_creature_with_creature(
            request.player_id,
            request.instance_id,
            request.target_player_id,
            request.target_instance_id,
            self._selector(request.targets),
        )
        return self._action_result(engine, ok)

    async def end_turn(self, game_id: str, request: EndTurnRequest) -> ActionResponse | ErrorResponse:
        engine = self._engine(game_id)
        if isinstance(engine, ErrorResponse):
            return engine
        ok = await engine.end_player_turn(request.player_id, self._selector(request.targets))
        return self._action_result(engine, ok)

    async def heal_creatures(self, game_id: str, request: HealRequest) -> ActionResponse | ErrorResponse:
        engine = self._engine(game_id)
        if isinstance(engine, ErrorResponse):
            return engine
        ok = await engine.heal_creatures(request.player_id)
        return self._action_result(engine, ok)

    # =========================================================================
    # Conversion helpers
    # =========================================================================

    def game_state(self, game: GameSession) -> GameStateResponse:
        """Convert a game document into its response model."""
        current = game.current_player
        return GameStateResponse(
            game_id=game.game_id,
            status=game.status.value,
            turn=game.turn,
            current_player_id=current.player_id if current and game.is_playing else None,
            players=[
                PlayerInfo(
                    player_id=player.player_id,
                    name=player.name,
                    health=player.health,
                    max_health=player.max_health,
                    energy=player.energy,
                    max_energy=player.max_energy,
                    is_current_turn=current is player and game.is_playing,
                    hand_count=player.hand.count,
                    hand=[self._hand_card(game, instance_id) for instance_id in player.hand.cards],
                    battlefield=[
                        UnitInfo(
                            instance_id=instance.instance_id,
                            card_id=instance.definition_id,
                            name=self._card_name(instance.definition_id),
                            kind=instance.kind.value,
                            attack=self._card_attack(instance.definition_id),
                            current_health=instance.current_health,
                            sapped=instance.sapped,
                        )
                        for instance in player.battlefield
                    ],
                )
                for player in game.players
            ],
            deck_count=game.deck.count,
            graveyard=list(game.graveyard.cards),
            log=[
                LogEntryInfo(
                    player_id=entry.player_id,
                    action=entry.action.value,
                    description=entry.description,
                    amount=entry.amount,
                    target_id=entry.target_id,
                    timestamp=entry.timestamp,
                )
                for entry in game.game_log
            ],
            selected_deck_id=game.selected_deck_id,
            rematch_game_id=game.rematch_game_id,
            defeated_player_ids=[p.player_id for p in game.players if game.is_finished and p.is_defeated],
        )

    def _action_result(self, engine: GameEngine, ok: bool) -> ActionResponse | ErrorResponse:
        """
        Build the response for an engine call.

        A failed spell effect still changed the game, so it is reported
        as an unsuccessful action with the new state rather than an error.
        """
        if ok or engine.last_error_code == ErrorCode.EFFECT_FAILED.value:
            return ActionResponse(
                success=ok,
                game_id=engine.game_id,
                error=None if ok else engine.last_error,
                error_code=None if ok else ErrorCode.EFFECT_FAILED,
                game_state=self.game_state(engine.snapshot()),
            )
        return ErrorResponse(
            error=engine.last_error or "Action failed",
            error_code=error_code_for(engine.last_error_code),
        )

    def _engine(self, game_id: str) -> GameEngine | ErrorResponse:
        try:
            return self.manager.engine_for(game_id)
        except DocumentNotFoundError:
            return self._game_not_found(game_id)

    @staticmethod
    def _game_not_found(game_id: str) -> ErrorResponse:
        return ErrorResponse(error=f"Game {game_id} not found", error_code=ErrorCode.GAME_NOT_FOUND)

    @staticmethod
    def _selector(targets: list[TargetModel]) -> PresetTargetSelector:
        return PresetTargetSelector(
            Target(TargetKind(t.kind.value), t.player_id, t.instance_id) for t in targets
        )

    def _card_info(self, card: CardDefinition) -> CardInfo:
        return CardInfo(
            card_id=card.card_id,
            name=card.name,
            kind=card.kind.value,
            cost=card.cost,
            attack=card.attack,
            health=card.health,
            description=card.description,
            abilities=[a.description for a in card.triggered_abilities if a.description],
        )

    def _hand_card(self, game: GameSession, instance_id: str) -> HandCardInfo:
        card_id = game.definition_id_for(instance_id)
        card = self._cards_by_id.get(card_id) if card_id else None
        return HandCardInfo(
            instance_id=instance_id,
            card_id=card_id,
            name=card.name if card else None,
            cost=card.cost if card else None,
        )

    def _card_name(self, card_id: str) -> str | None:
        card = self._cards_by_id.get(card_id)
        return card.name if card else None

    def _card_attack(self, card_id: str) -> int | None:
        card = self._cards_by_id.get(card_id)
        return card.attack if card else None

    @staticmethod
    def _deck_response(deck: DeckList) -> DeckResponse:
        return DeckResponse(
            deck_id=deck.deck_id,
            name=deck.name,
            size=deck.size,
            entries=[DeckEntryModel(card_id=e.card_id, quantity=e.quantity) for e in deck.entries],
        )
