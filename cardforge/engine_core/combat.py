"""
Combat Resolver - Creature attacks against players and other units.

Per attack, in order:
1. Validate, then sap the attacker
2. Log the attack
3. deal_damage triggers for the attacker (and the defender, if it counters)
4. take_damage triggers for the defender (and the attacker, if countered)
5. Apply the attacker's damage to the target, then the counter damage to
   the attacker if it is still on the battlefield

Only creatures with attack > 0 counter. Artifacts never do, whatever their
definition says. A take_damage ability sees the other combatant as its
damage_target.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..catalog.cards import CardDefinition, TriggerEvent
from ..catalog.effect_dsl import Target, TargetKind
from ..catalog.repository import DefinitionCache
from ..errors import EngineValidationError
from . import mutations
from .effect_api import TriggerContext
from .state import CardInstance, GameSession, LogAction, PlayerState
from .targeting import TargetSelectorFn, selector_for_attack, validate_target
from .triggers import TriggerDispatcher

logger = logging.getLogger(__name__)


@dataclass
class CombatResult:
    """What an attack did."""
    attacker_damage: int = 0
    counter_damage: int = 0
    countered: bool = False
    destroyed: list[str] = field(default_factory=list)


class CombatResolver:
    """Resolves attacks on the engine's working copy in place."""

    def __init__(self, definitions: DefinitionCache, triggers: TriggerDispatcher):
        self.definitions = definitions
        self.triggers = triggers

    async def attack_player(
        self,
        state: GameSession,
        attacker_id: str,
        instance_id: str,
        target_player_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> CombatResult:
        """Attack a player with a creature."""
        attacker, _, definition = await self._ready_attacker(state, attacker_id, instance_id)
        target = Target(TargetKind.PLAYER, target_player_id)
        self._check_target(state, definition, attacker_id, target)

        damage = definition.attack_value
        mutations.sap_creature(attacker, instance_id)
        state.append_log(
            attacker_id,
            LogAction.ATTACK,
            f"{definition.name} attacked player for {damage} damage",
            amount=damage,
            target_id=target_player_id,
        )

        await self.triggers.execute_triggered_abilities_for_creature(
            state,
            TriggerEvent.DEAL_DAMAGE,
            attacker_id,
            instance_id,
            TriggerContext(damage_target=target, damage_amount=damage),
            target_selector,
        )

        if not state.is_finished:
            mutations.deal_damage_to_player(state, target_player_id, damage)
        return CombatResult(attacker_damage=damage)

    async def attack_creature(
        self,
        state: GameSession,
        attacker_id: str,
        instance_id: str,
        target_player_id: str,
        target_instance_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> CombatResult:
        """Attack a creature or artifact with a creature."""
        attacker, _, definition = await self._ready_attacker(state, attacker_id, instance_id)

        defender_owner = state.get_player(target_player_id)
        defender = defender_owner.get_instance(target_instance_id) if defender_owner else None
        if defender is None:
            raise EngineValidationError("Target not found on battlefield", "TARGET_NOT_FOUND")
        target = Target(defender.kind.target_kind, target_player_id, target_instance_id)
        self._check_target(state, definition, attacker_id, target)

        defender_definition = await self._definition(state, target_instance_id)
        attack_damage = definition.attack_value
        can_counter = defender.is_creature and defender_definition.attack_value > 0
        counter_damage = defender_definition.attack_value if can_counter else 0

        mutations.sap_creature(attacker, instance_id)
        if can_counter:
            narrative = (
                f"{definition.name} and {defender_definition.name} fight! "
                f"{definition.name} deals {attack_damage}, "
                f"{defender_definition.name} deals {counter_damage} damage"
            )
        else:
            narrative = f"{definition.name} attacked {defender_definition.name} for {attack_damage} damage"
        state.append_log(
            attacker_id,
            LogAction.ATTACK,
            narrative,
            amount=attack_damage,
            target_id=target_instance_id,
        )

        attacker_target = Target(TargetKind.CREATURE, attacker_id, instance_id)
        await self._damage_triggers(
            state,
            TriggerEvent.DEAL_DAMAGE,
            (attacker_id, instance_id, target, attack_damage),
            (target_player_id, target_instance_id, attacker_target, counter_damage) if can_counter else None,
            target_selector,
        )
        await self._damage_triggers(
            state,
            TriggerEvent.TAKE_DAMAGE,
            (target_player_id, target_instance_id, attacker_target, attack_damage),
            (attacker_id, instance_id, target, counter_damage) if can_counter else None,
            target_selector,
        )

        result = CombatResult(
            attacker_damage=attack_damage,
            counter_damage=counter_damage,
            countered=can_counter,
        )
        if state.is_finished:
            return result

        if self._damage_unit(state, target_player_id, target_instance_id, attack_damage):
            result.destroyed.append(target_instance_id)
        if can_counter and attacker.get_instance(instance_id) is not None:
            if self._damage_unit(state, attacker_id, instance_id, counter_damage):
                result.destroyed.append(instance_id)
        return result

    async def _damage_triggers(
        self,
        state: GameSession,
        event: TriggerEvent,
        primary: tuple[str, str, Target, int],
        secondary: tuple[str, str, Target, int] | None,
        target_selector: TargetSelectorFn | None,
    ) -> None:
        """Fire one damage event for the primary side, then the countering side."""
        for side in (primary, secondary):
            if side is None:
                continue
            player_id, instance_id, other, amount = side
            await self.triggers.execute_triggered_abilities_for_creature(
                state,
                event,
                player_id,
                instance_id,
                TriggerContext(damage_target=other, damage_amount=amount),
                target_selector,
            )

    def _damage_unit(self, state: GameSession, player_id: str, instance_id: str, amount: int) -> bool:
        """Apply combat damage; returns True if the damage destroyed the unit."""
        if not mutations.deal_damage_to_creature(state, player_id, instance_id, amount):
            return False
        return state.get_player(player_id).get_instance(instance_id) is None

    async def _ready_attacker(
        self,
        state: GameSession,
        attacker_id: str,
        instance_id: str,
    ) -> tuple[PlayerState, CardInstance, CardDefinition]:
        attacker = state.get_player(attacker_id)
        if attacker is None:
            raise EngineValidationError(f"Player {attacker_id} not found", "PLAYER_NOT_FOUND")
        instance = attacker.get_instance(instance_id)
        if instance is None:
            raise EngineValidationError("Attacker not found on battlefield", "CARD_NOT_FOUND")
        if not instance.is_creature:
            raise EngineValidationError("Only creatures can attack", "NOT_A_CREATURE")
        if instance.sapped:
            raise EngineValidationError("Creature is sapped", "CREATURE_SAPPED")
        definition = await self._definition(state, instance_id)
        return attacker, instance, definition

    async def _definition(self, state: GameSession, instance_id: str) -> CardDefinition:
        definition_id = state.definition_id_for(instance_id)
        definition = await self.definitions.get(definition_id) if definition_id else None
        if definition is None:
            raise EngineValidationError(
                f"No card definition for {instance_id}", "DEFINITION_NOT_FOUND"
            )
        return definition

    def _check_target(
        self,
        state: GameSession,
        definition: CardDefinition,
        attacker_id: str,
        target: Target,
    ) -> None:
        selector = selector_for_attack(definition, attacker_id)
        validation = validate_target(target, selector, state, attacker_id)
        if not validation.is_valid:
            raise EngineValidationError(validation.reason or "Invalid target", "INVALID_TARGET")
