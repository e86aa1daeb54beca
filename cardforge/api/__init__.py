"""
API Module - HTTP interface for game clients.

Exposes the engine via REST API. A client:
1. Lists cards and stores deck lists
2. Creates a game and starts it with a deck
3. Plays cards, attacks and ends turns
4. Reads the game state (including the game log) after every action

Games live in memory for the lifetime of the service.
"""

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
    GameStateResponse,
    RematchResponse,
    # Shared
    ErrorCode,
    TargetModel,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "AttackCreatureRequest",
    "AttackPlayerRequest",
    "CreateDeckRequest",
    "CreateGameRequest",
    "EndTurnRequest",
    "HealRequest",
    "PlayCardRequest",
    "StartGameRequest",
    # Responses
    "ActionResponse",
    "CardListResponse",
    "DeckResponse",
    "ErrorResponse",
    "GameStateResponse",
    "RematchResponse",
    # Shared
    "ErrorCode",
    "TargetModel",
    # Service
    "APIService",
    "create_app",
]
