"""
Configuration - Environment-driven settings and rules constants.

Environment variables:
    CARDFORGE_ENV                      deployment environment name
    CARDFORGE_LOG_LEVEL                stdlib logging level name
    ALLOWED_ORIGINS                    comma-separated CORS origins
    CARDFORGE_STARTING_HEALTH          health and max health at game start
    CARDFORGE_STARTING_ENERGY          energy and max energy at game start
    CARDFORGE_ENERGY_INCREMENT         max energy gained when a round wraps
    CARDFORGE_MAX_ENERGY_CAP           upper bound for max energy
    CARDFORGE_OPENING_HAND             cards dealt to every player
    CARDFORGE_FIRST_PLAYER_BONUS_DRAW  extra cards for the first player
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import os

# Environment configuration
CARDFORGE_ENV = os.getenv("CARDFORGE_ENV", "development")
CARDFORGE_LOG_LEVEL = os.getenv("CARDFORGE_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass(frozen=True)
class RulesConfig:
    """
    Numeric rules constants for a game.

    The defaults are the standard duel rules; tests and the API may
    pass their own instance to the engine.
    """
    starting_health: int = 25
    starting_energy: int = 1
    energy_increment: int = 1
    max_energy_cap: int = 10
    opening_hand_size: int = 5
    first_player_bonus_draw: int = 1
    creature_heal_per_turn: int = 1

    @classmethod
    def from_env(cls) -> RulesConfig:
        """Build a config from CARDFORGE_* environment variables."""
        return cls(
            starting_health=_env_int("CARDFORGE_STARTING_HEALTH", cls.starting_health),
            starting_energy=_env_int("CARDFORGE_STARTING_ENERGY", cls.starting_energy),
            energy_increment=_env_int("CARDFORGE_ENERGY_INCREMENT", cls.energy_increment),
            max_energy_cap=_env_int("CARDFORGE_MAX_ENERGY_CAP", cls.max_energy_cap),
            opening_hand_size=_env_int("CARDFORGE_OPENING_HAND", cls.opening_hand_size),
            first_player_bonus_draw=_env_int(
                "CARDFORGE_FIRST_PLAYER_BONUS_DRAW", cls.first_player_bonus_draw
            ),
        )


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the CLI and the HTTP app."""
    level_name = (level or CARDFORGE_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
