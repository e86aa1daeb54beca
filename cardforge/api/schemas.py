"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between game clients and the engine.
Targets an effect needs are sent up front in the request body; the engine
re-validates every one of them.

Error Codes:
- GAME_NOT_FOUND / DECK_NOT_FOUND: No document with that id
- NOT_YOUR_TURN: The acting player is not the current player
- CARD_NOT_IN_HAND / CARD_NOT_FOUND: The card is not where the action needs it
- INSUFFICIENT_ENERGY: The card costs more than the player's energy
- INVALID_TARGET: The attack target is not allowed
- EFFECT_FAILED: The spell resolved but its effect failed (card is spent)
- VALIDATION_ERROR: Request or deck failed validation
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class GameStatusValue(str, Enum):
    """Game status values."""
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class CardKindValue(str, Enum):
    """Card kinds."""
    CREATURE = "creature"
    SPELL = "spell"
    ARTIFACT = "artifact"


class TargetKindValue(str, Enum):
    """What a target points at."""
    PLAYER = "player"
    CREATURE = "creature"
    ARTIFACT = "artifact"


class ErrorCode(str, Enum):
    """Structured error codes."""
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    DECK_NOT_FOUND = "DECK_NOT_FOUND"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    DUPLICATE_PLAYER = "DUPLICATE_PLAYER"
    NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
    GAME_NOT_STARTED = "GAME_NOT_STARTED"
    GAME_ALREADY_STARTED = "GAME_ALREADY_STARTED"
    GAME_FINISHED = "GAME_FINISHED"
    GAME_NOT_FINISHED = "GAME_NOT_FINISHED"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
    CARD_NOT_FOUND = "CARD_NOT_FOUND"
    NOT_A_SPELL = "NOT_A_SPELL"
    NOT_A_CREATURE = "NOT_A_CREATURE"
    CREATURE_SAPPED = "CREATURE_SAPPED"
    INSUFFICIENT_ENERGY = "INSUFFICIENT_ENERGY"
    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    INVALID_TARGET = "INVALID_TARGET"
    DEFINITION_NOT_FOUND = "DEFINITION_NOT_FOUND"
    EMPTY_DECK = "EMPTY_DECK"
    EFFECT_FAILED = "EFFECT_FAILED"
    INVALID_ACTION = "INVALID_ACTION"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_code_for(code: Optional[str]) -> ErrorCode:
    """Map an engine error code to an API error code."""
    try:
        return ErrorCode(code)
    except ValueError:
        return ErrorCode.INVALID_ACTION


# =============================================================================
# Shared Models
# =============================================================================

class TargetModel(BaseModel):
    """A player or a battlefield unit."""
    kind: TargetKindValue
    player_id: str
    instance_id: Optional[str] = Field(None, description="Required for creature and artifact targets")


class CardInfo(BaseModel):
    """Card definition for display."""
    card_id: str
    name: str
    kind: CardKindValue
    cost: int
    attack: Optional[int] = None
    health: Optional[int] = None
    description: str = ""
    abilities: list[str] = Field(default_factory=list, description="Triggered ability descriptions")


class HandCardInfo(BaseModel):
    """A card in a player's hand."""
    instance_id: str
    card_id: Optional[str] = None
    name: Optional[str] = None
    cost: Optional[int] = None


class UnitInfo(BaseModel):
    """A card on a battlefield."""
    instance_id: str
    card_id: str
    name: Optional[str] = None
    kind: CardKindValue
    attack: Optional[int] = None
    current_health: int
    sapped: bool = False


class PlayerInfo(BaseModel):
    """Player state for display."""
    player_id: str
    name: str
    health: int
    max_health: int
    energy: int
    max_energy: int
    is_current_turn: bool = False
    hand_count: int = 0
    hand: list[HandCardInfo] = Field(default_factory=list)
    battlefield: list[UnitInfo] = Field(default_factory=list)


class LogEntryInfo(BaseModel):
    """A game log entry."""
    player_id: str
    action: str
    description: str
    amount: Optional[int] = None
    target_id: Optional[str] = None
    timestamp: float


class DeckEntryModel(BaseModel):
    """A card and how many copies of it."""
    card_id: str
    quantity: int = Field(1, ge=1)


# =============================================================================
# Request Models
# =============================================================================

class CreateDeckRequest(BaseModel):
    """Request to store a deck list."""
    name: str = Field(..., min_length=1)
    entries: list[DeckEntryModel] = Field(..., min_length=1)
    deck_id: Optional[str] = Field(None, description="Pick the id; generated if omitted")


class CreateGameRequest(BaseModel):
    """Request to create a waiting game."""
    player_ids: list[str] = Field(..., min_length=2, description="Seat order; the first player starts")
    names: Optional[list[str]] = Field(None, description="Display names, one per player")
    deck_id: Optional[str] = Field(None, description="Deck to start with")
    seed: Optional[int] = Field(None, description="Seed for a reproducible shuffle")


class StartGameRequest(BaseModel):
    """Request to start a waiting game."""
    deck_id: Optional[str] = Field(
        None, description="Defaults to the game's deck, then the standard deck"
    )


class PlayCardRequest(BaseModel):
    """Request to play a card from hand."""
    player_id: str
    instance_id: str
    targets: list[TargetModel] = Field(default_factory=list)


class AttackPlayerRequest(BaseModel):
    """Request to attack a player with a creature."""
    player_id: str
    instance_id: str
    target_player_id: str
    targets: list[TargetModel] = Field(default_factory=list)


class AttackCreatureRequest(BaseModel):
    """Request to attack a unit with a creature."""
    player_id: str
    instance_id: str
    target_player_id: str
    target_instance_id: str
    targets: list[TargetModel] = Field(default_factory=list)


class EndTurnRequest(BaseModel):
    """Request to end the current turn."""
    player_id: str
    targets: list[TargetModel] = Field(default_factory=list)


class HealRequest(BaseModel):
    """Request to heal a player's creatures."""
    player_id: str


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class CardListResponse(BaseModel):
    """The card catalog."""
    cards: list[CardInfo]
    count: int


class DeckResponse(BaseModel):
    """A stored deck."""
    deck_id: str
    name: str
    size: int
    entries: list[DeckEntryModel]


class GameStateResponse(BaseModel):
    """Complete game state for display."""
    game_id: str
    status: GameStatusValue
    turn: int
    current_player_id: Optional[str] = None
    players: list[PlayerInfo] = Field(default_factory=list)
    deck_count: int = 0
    graveyard: list[str] = Field(default_factory=list)
    log: list[LogEntryInfo] = Field(default_factory=list)
    selected_deck_id: Optional[str] = None
    rematch_game_id: Optional[str] = None
    defeated_player_ids: list[str] = Field(default_factory=list)
    api_version: str = "v1"


class ActionResponse(BaseModel):
    """
    Result of a player action.

    success is false when a spell was cast but its effect failed; the
    state still changed (card and energy spent).
    """
    success: bool
    game_id: str
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    game_state: Optional[GameStateResponse] = None
    api_version: str = "v1"


class RematchResponse(BaseModel):
    """Response after creating a rematch."""
    success: bool
    game_id: str
    rematch_game_id: str


class GameListResponse(BaseModel):
    """Response listing games."""
    games: list[str]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
