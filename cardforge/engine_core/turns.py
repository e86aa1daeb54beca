"""
Turn Controller - The end-of-turn / start-of-turn state machine.

Game status: WAITING -> PLAYING -> FINISHED (terminal). Within PLAYING,
ending a turn runs, in order:

1. Log "Ended turn"
2. end_turn triggers for the current player
3. Advance the seat (wrapping to the first seat increments the turn)
4. start_turn triggers for the next player
5. The next player draws one card
6. Refresh (un-sap) the next player's units
7. Heal the next player's creatures, never above their definition health
8. Restore energy: on wrap every player's max energy grows first and
   everyone is restored, otherwise only the next player

The sequence stops as soon as the game is finished.
"""

from __future__ import annotations
import logging

from ..catalog.cards import TriggerEvent
from ..catalog.repository import DefinitionCache
from ..config import RulesConfig
from . import mutations
from .state import GameSession, LogAction
from .targeting import TargetSelectorFn
from .triggers import TriggerDispatcher

logger = logging.getLogger(__name__)


class TurnController:
    """Runs turn transitions on the engine's working copy in place."""

    def __init__(
        self,
        definitions: DefinitionCache,
        triggers: TriggerDispatcher,
        rules: RulesConfig | None = None,
    ):
        self.definitions = definitions
        self.triggers = triggers
        self.rules = rules or RulesConfig()

    async def end_turn(
        self,
        state: GameSession,
        player_id: str,
        target_selector: TargetSelectorFn | None = None,
    ) -> bool:
        """
        End the current player's turn and start the next one.

        Returns:
            True if the seat order wrapped to a new round
        """
        state.append_log(player_id, LogAction.END_TURN, "Ended turn")

        await self.triggers.execute_triggered_abilities(
            state, TriggerEvent.END_TURN, player_id, target_selector
        )
        if state.is_finished:
            return False

        wrapped = mutations.advance_to_next_player(state)
        next_player = state.current_player
        logger.debug("Turn passes to %s (turn %d)", next_player.player_id, state.turn)

        await self.triggers.execute_triggered_abilities(
            state, TriggerEvent.START_TURN, next_player.player_id, target_selector
        )
        if state.is_finished:
            return wrapped

        mutations.draw_card(state, next_player.player_id)
        mutations.refresh_creatures(next_player)
        await self.heal_creatures(state, next_player.player_id)

        if wrapped:
            mutations.increase_max_energy(
                state, self.rules.energy_increment, self.rules.max_energy_cap
            )
            for player in state.players:
                mutations.restore_energy(player)
        else:
            mutations.restore_energy(next_player)
        return wrapped

    async def heal_creatures(self, state: GameSession, player_id: str) -> int:
        """
        Heal each damaged creature of a player, up to its definition health.

        Artifacts are never healed this way.

        Returns:
            Number of creatures healed
        """
        player = state.get_player(player_id)
        if player is None:
            return 0

        amount = self.rules.creature_heal_per_turn
        healed = 0
        for creature in player.creatures:
            definition_id = state.definition_id_for(creature.instance_id)
            definition = await self.definitions.get(definition_id) if definition_id else None
            if definition is None or creature.current_health >= definition.entry_health:
                continue
            if mutations.heal_creature(
                state, player_id, creature.instance_id, amount, max_health=definition.entry_health
            ):
                healed += 1

        if healed:
            state.append_log(
                player_id,
                LogAction.HEAL,
                f"{healed} creature(s) healed {amount} health",
                amount=healed,
            )
        return healed
