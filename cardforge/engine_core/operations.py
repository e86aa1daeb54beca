"""
Operations - Deferred mutations queued by effects, and the applier.

Effects never change the game document. They queue Operations through
their API, and the engine applies the whole queue afterwards in one pass.

Operations are a closed tagged union:
- damage_player / heal_player      player health, clamped to [0, max]
- damage_creature / heal_creature  unit health; lethal damage destroys
- destroy_creature                 battlefield -> graveyard
- log                              a game log entry
- draw_card / gain_energy          owner-only resources for triggered abilities
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping
import logging

from .state import GameSession, LogAction
from . import mutations

logger = logging.getLogger(__name__)


class OperationType(Enum):
    """Types of queued operation."""
    DAMAGE_PLAYER = "damage_player"
    DAMAGE_CREATURE = "damage_creature"
    HEAL_PLAYER = "heal_player"
    HEAL_CREATURE = "heal_creature"
    DESTROY_CREATURE = "destroy_creature"
    LOG = "log"
    DRAW_CARD = "draw_card"
    GAIN_ENERGY = "gain_energy"


@dataclass(frozen=True)
class Operation:
    """
    A queued mutation.

    player_id is the affected player (the unit's owner for unit
    operations, the acting player for log entries).
    """
    op_type: OperationType
    player_id: str
    instance_id: str | None = None
    amount: int = 0
    description: str | None = None

    @classmethod
    def damage_player(cls, player_id: str, amount: int) -> Operation:
        return cls(OperationType.DAMAGE_PLAYER, player_id, amount=amount)

    @classmethod
    def damage_creature(cls, player_id: str, instance_id: str, amount: int) -> Operation:
        return cls(OperationType.DAMAGE_CREATURE, player_id, instance_id=instance_id, amount=amount)

    @classmethod
    def heal_player(cls, player_id: str, amount: int) -> Operation:
        return cls(OperationType.HEAL_PLAYER, player_id, amount=amount)

    @classmethod
    def heal_creature(cls, player_id: str, instance_id: str, amount: int) -> Operation:
        return cls(OperationType.HEAL_CREATURE, player_id, instance_id=instance_id, amount=amount)

    @classmethod
    def destroy_creature(cls, player_id: str, instance_id: str) -> Operation:
        return cls(OperationType.DESTROY_CREATURE, player_id, instance_id=instance_id)

    @classmethod
    def log(cls, player_id: str, description: str) -> Operation:
        return cls(OperationType.LOG, player_id, description=description)

    @classmethod
    def draw_card(cls, player_id: str) -> Operation:
        return cls(OperationType.DRAW_CARD, player_id, amount=1)

    @classmethod
    def gain_energy(cls, player_id: str, amount: int) -> Operation:
        return cls(OperationType.GAIN_ENERGY, player_id, amount=amount)


@dataclass
class ApplyReport:
    """What an apply pass did."""
    applied: int = 0
    skipped: list[Operation] = field(default_factory=list)
    destroyed: list[str] = field(default_factory=list)


def apply_operations(
    state: GameSession,
    operations: list[Operation],
    max_health: Mapping[str, int] | None = None,
) -> ApplyReport:
    """
    Apply queued operations in enqueue order.

    Synchronous, never suspends. Operations whose player or instance is
    gone (for example destroyed earlier in the same batch) are skipped.

    Args:
        state: Document to mutate in place
        operations: Operations in the order they were queued
        max_health: Definition health per instance id, used to clamp
            heal_creature; the applier has no catalog access

    Returns:
        ApplyReport with counts, skipped operations and destroyed units
    """
    applier = _Applier(state, max_health or {})
    for operation in operations:
        handler = applier.handler_for(operation.op_type)
        if handler(operation):
            applier.report.applied += 1
        else:
            logger.debug("Skipped %s: target no longer present", operation.op_type.value)
            applier.report.skipped.append(operation)
    return applier.report


class _Applier:
    """One apply pass; handlers return False when they skip."""

    def __init__(self, state: GameSession, max_health: Mapping[str, int]):
        self.state = state
        self.max_health = max_health
        self.report = ApplyReport()

    def handler_for(self, op_type: OperationType) -> Callable[[Operation], bool]:
        handlers = {
            OperationType.DAMAGE_PLAYER: self._damage_player,
            OperationType.DAMAGE_CREATURE: self._damage_creature,
            OperationType.HEAL_PLAYER: self._heal_player,
            OperationType.HEAL_CREATURE: self._heal_creature,
            OperationType.DESTROY_CREATURE: self._destroy_creature,
            OperationType.LOG: self._log,
            OperationType.DRAW_CARD: self._draw_card,
            OperationType.GAIN_ENERGY: self._gain_energy,
        }
        return handlers[op_type]

    def _player_exists(self, player_id: str) -> bool:
        return self.state.get_player(player_id) is not None

    def _damage_player(self, op: Operation) -> bool:
        if not self._player_exists(op.player_id):
            return False
        mutations.deal_damage_to_player(self.state, op.player_id, op.amount)
        return True

    def _damage_creature(self, op: Operation) -> bool:
        remaining = mutations.damage_creature(self.state, op.player_id, op.instance_id, op.amount)
        if remaining is None:
            return False
        if remaining == 0:
            mutations.destroy_creature(self.state, op.player_id, op.instance_id)
            self.report.destroyed.append(op.instance_id)
        return True

    def _heal_player(self, op: Operation) -> bool:
        if not self._player_exists(op.player_id):
            return False
        mutations.heal_player(self.state, op.player_id, op.amount)
        return True

    def _heal_creature(self, op: Operation) -> bool:
        owner = self.state.get_player(op.player_id)
        if owner is None or owner.get_instance(op.instance_id) is None:
            return False
        mutations.heal_creature(
            self.state,
            op.player_id,
            op.instance_id,
            op.amount,
            max_health=self.max_health.get(op.instance_id),
        )
        self.state.append_log(
            op.player_id,
            LogAction.HEAL,
            f"Creature healed for {op.amount} health",
            amount=op.amount,
            target_id=op.instance_id,
        )
        return True

    def _destroy_creature(self, op: Operation) -> bool:
        if not mutations.destroy_creature(self.state, op.player_id, op.instance_id):
            return False
        self.report.destroyed.append(op.instance_id)
        return True

    def _log(self, op: Operation) -> bool:
        self.state.append_log(op.player_id, LogAction.EFFECT, op.description or "")
        return True

    def _draw_card(self, op: Operation) -> bool:
        if not self._player_exists(op.player_id):
            return False
        mutations.draw_card(self.state, op.player_id)
        return True

    def _gain_energy(self, op: Operation) -> bool:
        if not self._player_exists(op.player_id):
            return False
        mutations.gain_energy(self.state, op.player_id, op.amount)
        return True
