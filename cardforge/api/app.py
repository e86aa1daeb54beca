"""
FastAPI Application - REST API for game clients.

Endpoints:
    GET    /api/v1/health                       Service health
    GET    /api/v1/cards                        Card catalog
    POST   /api/v1/decks                        Store a deck list
    GET    /api/v1/games                        List games
    POST   /api/v1/games                        Create a waiting game
    GET    /api/v1/games/{id}                   Get game state
    DELETE /api/v1/games/{id}                   End (remove) a game
    POST   /api/v1/games/{id}/start             Start with a deck
    POST   /api/v1/games/{id}/play              Play a card from hand
    POST   /api/v1/games/{id}/attack/player     Attack a player
    POST   /api/v1/games/{id}/attack/creature   Attack a unit
    POST   /api/v1/games/{id}/end-turn          End the current turn
    POST   /api/v1/games/{id}/heal              Heal a player's creatures
    POST   /api/v1/games/{id}/rematch           Create a rematch game

Effects that need a choice read it from the request's `targets` list;
the engine re-validates every supplied target.

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union

from ..config import ALLOWED_ORIGINS


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from .schemas import (
        # Request models
        AttackCreatureRequest,
        AttackPlayerRequest,
        CreateDeckRequest,
        CreateGameRequest,
        EndTurnRequest,
        HealRequest,
        PlayCardRequest,
        StartGameRequest,
        # Response models
        ActionResponse,
        CardListResponse,
        DeckResponse,
        ErrorResponse,
        GameListResponse,
        GameStateResponse,
        HealthResponse,
        RematchResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="Cardforge Engine API",
        description="""
Turn-based card game rules engine.

## Targets

Spells and abilities that need a choice take it from the `targets`
list of the action request, in order. Targets are always re-validated;
illegal ones are dropped, and a spell left without targets fails.

## Error Codes

| Code | Description |
|------|-------------|
| `GAME_NOT_FOUND` | Game does not exist |
| `NOT_YOUR_TURN` | Acting player is not the current player |
| `INSUFFICIENT_ENERGY` | Card costs more than the player has |
| `INVALID_TARGET` | Attack target not allowed |
| `EFFECT_FAILED` | Spell was cast but its effect failed |
        """,
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()

    # =========================================================================
    # Error helpers
    # =========================================================================

    not_found_codes = {ErrorCode.GAME_NOT_FOUND, ErrorCode.DECK_NOT_FOUND}

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def respond(result):
        """Pass models through; turn ErrorResponse values into JSON errors."""
        if isinstance(result, ErrorResponse):
            status_code = 404 if result.error_code in not_found_codes else 400
            return make_error_response(
                result.error_code, result.error, status_code, result.details
            )
        return result

    # =========================================================================
    # Catalog Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["Service"],
        summary="Health check",
    )
    async def health() -> HealthResponse:
        return api_service.health()

    @app.get(
        "/api/v1/cards",
        response_model=CardListResponse,
        tags=["Catalog"],
        summary="List the card catalog",
    )
    async def list_cards() -> CardListResponse:
        return api_service.list_cards()

    @app.post(
        "/api/v1/decks",
        response_model=DeckResponse,
        responses={400: {"model": ErrorResponse, "description": "Deck failed validation"}},
        tags=["Catalog"],
        summary="Store a deck list",
    )
    async def create_deck(body: CreateDeckRequest) -> Union[DeckResponse, JSONResponse]:
        """Store a deck; every card must exist in the catalog."""
        return respond(await api_service.create_deck(body))

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/games",
        response_model=GameListResponse,
        tags=["Games"],
        summary="List games",
    )
    async def list_games() -> GameListResponse:
        return api_service.list_games()

    @app.post(
        "/api/v1/games",
        response_model=GameStateResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid players"},
            404: {"model": ErrorResponse, "description": "Deck not found"},
        },
        tags=["Games"],
        summary="Create a waiting game",
    )
    async def create_game(body: CreateGameRequest) -> Union[GameStateResponse, JSONResponse]:
        return respond(api_service.create_game(body))

    @app.get(
        "/api/v1/games/{game_id}",
        response_model=GameStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Get game state",
    )
    async def get_game(game_id: str) -> Union[GameStateResponse, JSONResponse]:
        return respond(api_service.get_game(game_id))

    @app.delete(
        "/api/v1/games/{game_id}",
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="End a game",
    )
    async def end_game(game_id: str):
        if not api_service.end_game(game_id):
            return make_error_response(
                ErrorCode.GAME_NOT_FOUND, f"Game {game_id} not found", status_code=404
            )
        return {"success": True, "game_id": game_id}

    @app.post(
        "/api/v1/games/{game_id}/start",
        response_model=ActionResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Start a waiting game",
    )
    async def start_game(
        game_id: str,
        body: Optional[StartGameRequest] = None,
    ) -> Union[ActionResponse, JSONResponse]:
        """Deal the deck and start the first turn."""
        return respond(await api_service.start_game(game_id, body or StartGameRequest()))

    @app.post(
        "/api/v1/games/{game_id}/rematch",
        response_model=RematchResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Create a rematch of a finished game",
    )
    async def rematch(game_id: str) -> Union[RematchResponse, JSONResponse]:
        return respond(await api_service.create_rematch(game_id))

    # =========================================================================
    # Action Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games/{game_id}/play",
        response_model=ActionResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Actions"],
        summary="Play a card from hand",
    )
    async def play_card(game_id: str, body: PlayCardRequest) -> Union[ActionResponse, JSONResponse]:
        """
        Play a creature, artifact or spell.

        A spell whose effect fails still costs its card and energy; the
        response then has `success=false` and `error_code=EFFECT_FAILED`.
        """
        return respond(await api_service.play_card(game_id, body))

    @app.post(
        "/api/v1/games/{game_id}/attack/player",
        response_model=ActionResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Actions"],
        summary="Attack a player with a creature",
    )
    async def attack_player(
        game_id: str, body: AttackPlayerRequest
    ) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.attack_player(game_id, body))

    @app.post(
        "/api/v1/games/{game_id}/attack/creature",
        response_model=ActionResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Actions"],
        summary="Attack a creature or artifact with a creature",
    )
    async def attack_creature(
        game_id: str, body: AttackCreatureRequest
    ) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.attack_creature(game_id, body))

    @app.post(
        "/api/v1/games/{game_id}/end-turn",
        response_model=ActionResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Actions"],
        summary="End the current turn",
    )
    async def end_turn(game_id: str, body: EndTurnRequest) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.end_turn(game_id, body))

    @app.post(
        "/api/v1/games/{game_id}/heal",
        response_model=ActionResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Actions"],
        summary="Heal a player's damaged creatures",
    )
    async def heal(game_id: str, body: HealRequest) -> Union[ActionResponse, JSONResponse]:
        return respond(await api_service.heal_creatures(game_id, body))

    return app
