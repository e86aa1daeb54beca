"""
Trigger Dispatcher - Fires triggered abilities for game events.

For an event and a player, every instance on that player's battlefield is
visited in battlefield (insertion) order, and each of its abilities whose
trigger matches runs as its own invocation:

1. The interpreter runs the ability against a fresh snapshot
2. On success its operations are applied and "<Card>: <description>" logged
3. On failure nothing is applied and "<Card>: <description> failed" logged

A failing ability never stops the rest of the pass. Instances removed by
an earlier firing in the same pass are skipped, and nothing fires once
the game is finished.
"""

from __future__ import annotations
from typing import Iterable
import logging

from ..catalog.cards import CardDefinition, TriggerEvent, TriggeredAbility
from ..catalog.repository import DefinitionCache
from .effect_api import TriggerContext, TriggeredAbilityAPI
from .interpreter import EffectInterpreter
from .operations import Operation, OperationType, apply_operations
from .state import GameSession, LogAction
from .targeting import TargetSelectorFn

logger = logging.getLogger(__name__)


async def heal_limits(
    definitions: DefinitionCache,
    state: GameSession,
    operations: Iterable[Operation],
) -> dict[str, int]:
    """Definition health for every unit a batch of operations heals."""
    limits: dict[str, int] = {}
    for operation in operations:
        if operation.op_type != OperationType.HEAL_CREATURE or operation.instance_id is None:
            continue
        definition_id = state.definition_id_for(operation.instance_id)
        definition = await definitions.get(definition_id) if definition_id else None
        if definition is not None:
            limits[operation.instance_id] = definition.entry_health
    return limits


def ability_label(definition: CardDefinition, ability: TriggeredAbility) -> str:
    if ability.description:
        return f"{definition.name}: {ability.description}"
    return definition.name


class TriggerDispatcher:
    """
    Dispatches trigger events to battlefield instances.

    Works on the engine's working copy of the document in place.
    """

    def __init__(
        self,
        definitions: DefinitionCache,
        interpreter: EffectInterpreter | None = None,
    ):
        self.definitions = definitions
        self.interpreter = interpreter or EffectInterpreter()

    async def execute_triggered_abilities(
        self,
        state: GameSession,
        event: TriggerEvent,
        player_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> int:
        """
        Fire every matching ability on a player's battlefield.

        Returns:
            Number of abilities that fired successfully
        """
        player = state.get_player(player_id)
        if player is None:
            return 0

        fired = 0
        for instance_id in [instance.instance_id for instance in player.battlefield]:
            if state.is_finished:
                break
            if player.get_instance(instance_id) is None:
                continue
            fired += await self._fire_instance(
                state, event, player_id, instance_id, target_selector, None
            )
        return fired

    async def execute_triggered_abilities_for_creature(
        self,
        state: GameSession,
        event: TriggerEvent,
        player_id: str,
        instance_id: str,
        context: TriggerContext | None = None,
        target_selector: TargetSelectorFn | None = None,
    ) -> int:
        """
        Fire the matching abilities of a single instance.

        The context is how deal_damage / take_damage abilities learn
        what was hit and for how much.
        """
        player = state.get_player(player_id)
        if player is None or player.get_instance(instance_id) is None:
            return 0
        return await self._fire_instance(
            state, event, player_id, instance_id, target_selector, context
        )

    async def _fire_instance(
        self,
        state: GameSession,
        event: TriggerEvent,
        player_id: str,
        instance_id: str,
        target_selector: TargetSelectorFn | None,
        context: TriggerContext | None,
    ) -> int:
        definition_id = state.definition_id_for(instance_id)
        definition = await self.definitions.get(definition_id) if definition_id else None
        if definition is None:
            logger.debug("No definition for instance %s, skipping triggers", instance_id)
            return 0

        player = state.get_player(player_id)
        fired = 0
        for ability in definition.abilities_for(event):
            if state.is_finished or player.get_instance(instance_id) is None:
                break
            if await self._fire(
                state, definition, ability, player_id, instance_id, target_selector, context
            ):
                fired += 1
        return fired

    async def _fire(
        self,
        state: GameSession,
        definition: CardDefinition,
        ability: TriggeredAbility,
        player_id: str,
        instance_id: str,
        target_selector: TargetSelectorFn | None,
        context: TriggerContext | None,
    ) -> bool:
        label = ability_label(definition, ability)
        api = TriggeredAbilityAPI(
            snapshot=state.clone(),
            owner_id=player_id,
            source_instance_id=instance_id,
            target_selector=target_selector,
            trigger_context=context,
        )

        result = await self.interpreter.execute(ability.effect, api, label)
        if not result.success:
            state.append_log(player_id, LogAction.EFFECT_FAILED, f"{label} failed")
            return False

        limits = await heal_limits(self.definitions, state, result.operations)
        apply_operations(state, result.operations, limits)
        state.append_log(player_id, LogAction.ABILITY, label, target_id=instance_id)
        logger.debug("Fired %s (%s) for %s", label, ability.trigger.value, player_id)
        return True
