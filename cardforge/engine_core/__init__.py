"""
Engine Core - Deterministic card game rules.

The engine is the runtime that:
1. Keeps the game document (zones, players, log)
2. Validates targets
3. Interprets spell and ability effects into queued operations
4. Applies operations, resolves combat and fires triggers
5. Runs the turn state machine behind the GameEngine façade
"""

from .state import (
    CardInstance,
    GameLogEntry,
    GameSession,
    GameStatus,
    LogAction,
    PlayerState,
    Zone,
)
from .operations import ApplyReport, Operation, OperationType, apply_operations
from .targeting import (
    FirstLegalTargetSelector,
    PresetTargetSelector,
    TargetValidation,
    get_auto_targets,
    get_valid_targets,
    validate_target,
)
from .effect_api import SpellEffectAPI, TriggerContext, TriggeredAbilityAPI
from .interpreter import EffectInterpreter, InvocationResult
from .triggers import TriggerDispatcher
from .combat import CombatResolver, CombatResult
from .turns import TurnController
from .engine import GameEngine

__all__ = [
    "CardInstance",
    "GameLogEntry",
    "GameSession",
    "GameStatus",
    "LogAction",
    "PlayerState",
    "Zone",
    "ApplyReport",
    "Operation",
    "OperationType",
    "apply_operations",
    "FirstLegalTargetSelector",
    "PresetTargetSelector",
    "TargetValidation",
    "get_auto_targets",
    "get_valid_targets",
    "validate_target",
    "SpellEffectAPI",
    "TriggerContext",
    "TriggeredAbilityAPI",
    "EffectInterpreter",
    "InvocationResult",
    "TriggerDispatcher",
    "CombatResolver",
    "CombatResult",
    "TurnController",
    "GameEngine",
]
