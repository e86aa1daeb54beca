"""
Effect API - The only surface an effect can act through.

An API object belongs to exactly one invocation. It exposes:
- a read-only snapshot of the game (a private copy, so writes cannot
  reach the document)
- select_targets, re-scoped to the caster and always re-validated
- mutation methods that only append Operations to a private queue

Spells get SpellEffectAPI. Triggered abilities get TriggeredAbilityAPI,
which adds the owner-only draw_card and gain_energy capabilities.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any
import logging

from ..catalog.effect_dsl import Target, TargetSelector
from ..errors import CapabilityError, EffectExecutionError
from .operations import Operation
from .state import GameSession
from .targeting import (
    TargetSelectorFn,
    filter_selection,
    get_auto_targets,
    no_targets,
    with_candidates,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TriggerContext:
    """
    What a deal_damage / take_damage ability learns about its event.

    damage_target is the other side of the fight: for deal_damage the unit
    or player the source hit, for take_damage the creature that hit the
    source. Spell damage has no combatant, so only damage_amount is set.
    """
    damage_target: Target | None = None
    damage_amount: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "damage_target": self.damage_target.to_dict() if self.damage_target else None,
            "damage_amount": self.damage_amount,
        }


class SpellEffectAPI:
    """Capability-scoped API for spell effects."""

    def __init__(
        self,
        snapshot: GameSession,
        caster_id: str,
        target_selector: TargetSelectorFn | None = None,
    ):
        self._snapshot = snapshot
        self.caster_id = caster_id
        self._target_selector = target_selector or no_targets
        self._queue: list[Operation] = []

    @property
    def state(self) -> GameSession:
        """The read-only view of the game at invocation time."""
        return self._snapshot

    @property
    def operations(self) -> list[Operation]:
        """A copy of the queued operations, in enqueue order."""
        return list(self._queue)

    @property
    def source_instance_id(self) -> str | None:
        return None

    @property
    def trigger_context(self) -> TriggerContext | None:
        return None

    def discard(self) -> None:
        """Drop everything queued so far."""
        self._queue.clear()

    # =========================================================================
    # Target selection
    # =========================================================================

    async def select_targets(self, selector: TargetSelector) -> list[Target]:
        """
        Ask for targets.

        The selector is re-scoped to the caster, offered its legal
        candidates, and whatever comes back is validated again.
        """
        scoped = with_candidates(selector, self._snapshot, self.caster_id)

        auto = get_auto_targets(scoped, self._snapshot, self.caster_id)
        if auto is not None:
            return auto
        if not scoped.candidates:
            return []

        answer = await self._target_selector(scoped)
        accepted = filter_selection(answer or [], scoped, self._snapshot, self.caster_id)
        if len(accepted) != len(answer or []):
            logger.debug(
                "Rejected %d selected target(s) for %s",
                len(answer or []) - len(accepted),
                self.caster_id,
            )
        return accepted

    # =========================================================================
    # Queued mutations
    # =========================================================================

    def deal_damage_to_player(self, player_id: str, amount: int) -> None:
        self._queue.append(Operation.damage_player(player_id, self._amount(amount)))

    def deal_damage_to_creature(self, player_id: str, instance_id: str, amount: int) -> None:
        self._queue.append(
            Operation.damage_creature(player_id, instance_id, self._amount(amount))
        )

    def heal_player(self, player_id: str, amount: int) -> None:
        self._queue.append(Operation.heal_player(player_id, self._amount(amount)))

    def heal_creature(self, player_id: str, instance_id: str, amount: int) -> None:
        self._queue.append(
            Operation.heal_creature(player_id, instance_id, self._amount(amount))
        )

    def destroy_creature(self, player_id: str, instance_id: str) -> None:
        self._queue.append(Operation.destroy_creature(player_id, instance_id))

    def log(self, description: str) -> None:
        self._queue.append(Operation.log(self.caster_id, str(description)))

    def draw_card(self) -> None:
        raise CapabilityError("draw_card is only available to triggered abilities")

    def gain_energy(self, amount: int) -> None:
        raise CapabilityError("gain_energy is only available to triggered abilities")

    @staticmethod
    def _amount(amount: Any) -> int:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise EffectExecutionError(f"Invalid amount: {amount!r}")
        return amount


class TriggeredAbilityAPI(SpellEffectAPI):
    """API for triggered abilities, owned by the instance's controller."""

    def __init__(
        self,
        snapshot: GameSession,
        owner_id: str,
        source_instance_id: str,
        target_selector: TargetSelectorFn | None = None,
        trigger_context: TriggerContext | None = None,
    ):
        super().__init__(snapshot, owner_id, target_selector)
        self._source_instance_id = source_instance_id
        self._trigger_context = trigger_context

    @property
    def source_instance_id(self) -> str | None:
        return self._source_instance_id

    @property
    def trigger_context(self) -> TriggerContext | None:
        return self._trigger_context

    def draw_card(self) -> None:
        self._queue.append(Operation.draw_card(self.caster_id))

    def gain_energy(self, amount: int) -> None:
        self._queue.append(Operation.gain_energy(self.caster_id, self._amount(amount)))
