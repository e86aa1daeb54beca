"""
Tests for the effect interpreter and the effect APIs.

Tests:
- Targeted spells queue operations for selected targets
- All-or-nothing: failures discard the whole queue
- Capability scoping (spells cannot draw or gain energy)
- Loops, conditionals, variables and message placeholders
- The snapshot is never written
"""

import asyncio

import pytest

from ..catalog.effect_dsl import (
    Effect,
    Target,
    TargetKind,
    TargetSelector,
    deal_damage_step,
    draw_card_step,
    fail_step,
    for_each_step,
    gain_energy_step,
    heal_step,
    log_step,
    select_targets_step,
    set_variable_step,
)
from ..engine_core.effect_api import SpellEffectAPI, TriggerContext, TriggeredAbilityAPI
from ..engine_core.interpreter import EffectInterpreter
from ..engine_core.operations import Operation, OperationType
from ..engine_core.targeting import PresetTargetSelector


def run(effect, api):
    return asyncio.run(EffectInterpreter().execute(effect, api))


class TestSpellEffects:
    """Tests for spell effects from the standard set."""

    def test_plasma_burst_hits_selected_player(self, game, cards_by_id):
        """The chosen target takes the damage, then the spell logs."""
        api = SpellEffectAPI(
            game.state.clone(), "alice", PresetTargetSelector([Target(TargetKind.PLAYER, "bob")])
        )

        result = run(cards_by_id["card_002"].spell_effect, api)

        assert result.success
        assert result.operations == [
            Operation.damage_player("bob", 3),
            Operation.log("alice", "Plasma Burst deals 3 damage"),
        ]

    def test_illegal_selection_fails(self, game, cards_by_id):
        """A selector answer that breaks the rules is dropped; nothing is left to hit."""
        api = SpellEffectAPI(
            game.state.clone(), "alice", PresetTargetSelector([Target(TargetKind.PLAYER, "alice")])
        )

        result = run(cards_by_id["card_002"].spell_effect, api)

        assert not result.success
        assert result.operations == []

    def test_no_answer_fails(self, game, cards_by_id):
        """Without a selector a mandatory choice fails."""
        result = run(cards_by_id["card_002"].spell_effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert not result.success
        assert result.error == "No valid targets selected"

    def test_system_crash_auto_targets(self, game, cards_by_id):
        """A lone enemy artifact is chosen without asking."""
        artifact = game.unit("bob", "card_010")
        game.unit("alice", "card_004")

        result = run(cards_by_id["card_012"].spell_effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert result.success
        assert result.operations == [Operation.destroy_creature("bob", artifact)]

    def test_chain_lightning_loops_enemy_creatures(self, game, cards_by_id):
        """Every enemy creature is hit, artifacts and own units are not."""
        first = game.unit("bob", "card_001")
        second = game.unit("bob", "card_011")
        game.unit("bob", "card_004")
        game.unit("alice", "card_001")

        result = run(cards_by_id["card_016"].spell_effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert result.success
        assert result.operations == [
            Operation.damage_creature("bob", first, 2),
            Operation.damage_creature("bob", second, 2),
            Operation.damage_player("bob", 1),
            Operation.log("alice", "Lightning arcs across the battlefield"),
        ]

    @pytest.mark.parametrize("health,damage", [(9, 4), (10, 2)])
    def test_overload_condition(self, game, cards_by_id, health, damage):
        """Overload hits harder when the caster is low."""
        game.health("alice", health)

        result = run(cards_by_id["card_020"].spell_effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert result.operations == [Operation.damage_player("bob", damage)]


class TestAllOrNothing:
    """Tests for failure handling."""

    def test_fail_step_discards_queue(self, game):
        """Operations queued before a failure are thrown away."""
        effect = Effect(
            effect_id="fizzle",
            name="Fizzle",
            steps=[deal_damage_step("hit", "opponents", 1), fail_step("stop", "Fizzled")],
        )
        api = SpellEffectAPI(game.state.clone(), "alice")

        result = run(effect, api)

        assert not result.success
        assert result.error == "Fizzled"
        assert api.operations == []

    def test_exception_discards_queue(self, game):
        """An unknown reference fails the effect instead of raising."""
        effect = Effect(
            effect_id="broken",
            name="Broken",
            steps=[deal_damage_step("hit", "opponents", 1), deal_damage_step("oops", "nowhere", 1)],
        )

        result = run(effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert not result.success
        assert "nowhere" in result.error
        assert result.operations == []

    def test_spell_cannot_draw(self, game):
        """draw_card is not available to spells."""
        effect = Effect(effect_id="greedy", name="Greedy", steps=[draw_card_step("draw", 1)])

        result = run(effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert not result.success
        assert "draw_card" in result.error

    def test_spell_cannot_gain_energy(self, game):
        effect = Effect(effect_id="charge", name="Charge", steps=[gain_energy_step("charge", 1)])

        result = run(effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert not result.success

    def test_step_limit(self, game):
        """Runaway effects fail once the step limit is reached."""
        effect = Effect(
            effect_id="chatty",
            name="Chatty",
            steps=[log_step(f"say_{n}", "hello") for n in range(5)],
        )
        api = SpellEffectAPI(game.state.clone(), "alice")

        result = asyncio.run(EffectInterpreter(max_steps=3).execute(effect, api))

        assert not result.success

    def test_snapshot_not_written(self, game):
        """Effects only queue; the document they read is unchanged."""
        snapshot = game.state.clone()
        api = SpellEffectAPI(snapshot, "alice")
        effect = Effect(effect_id="hit", name="Hit", steps=[deal_damage_step("hit", "opponents", 5)])

        run(effect, api)

        assert snapshot.get_player("bob").health == 25


class TestTriggeredAbilityEffects:
    """Tests for the triggered-ability API."""

    def test_owner_can_draw_and_gain(self, game):
        unit = game.unit("alice", "card_009")
        effect = Effect(
            effect_id="boost",
            name="Boost",
            steps=[draw_card_step("draw", 2), gain_energy_step("charge", 1)],
        )
        api = TriggeredAbilityAPI(game.state.clone(), "alice", unit)

        result = run(effect, api)

        assert [op.op_type for op in result.operations] == [
            OperationType.DRAW_CARD,
            OperationType.DRAW_CARD,
            OperationType.GAIN_ENERGY,
        ]
        assert all(op.player_id == "alice" for op in result.operations)

    def test_siphon_reads_damage_amount(self, game, cards_by_id):
        """Context values flow into amounts."""
        unit = game.unit("alice", "card_019")
        ability = cards_by_id["card_019"].triggered_abilities[0]
        api = TriggeredAbilityAPI(
            game.state.clone(),
            "alice",
            unit,
            trigger_context=TriggerContext(
                damage_target=Target(TargetKind.PLAYER, "bob"), damage_amount=2
            ),
        )

        result = run(ability.effect, api)

        assert result.operations == [Operation.heal_player("alice", 2)]

    def test_source_reference(self, game):
        unit = game.unit("alice", "card_013", health=1)
        effect = Effect(effect_id="mend", name="Mend", steps=[heal_step("mend", "source", 1)])

        result = run(effect, TriggeredAbilityAPI(game.state.clone(), "alice", unit))

        assert result.operations == [Operation.heal_creature("alice", unit, 1)]


class TestVariables:
    """Tests for variables and message formatting."""

    def test_set_variable_and_format(self, game):
        game.unit("bob", "card_001")
        game.unit("bob", "card_011")
        effect = Effect(
            effect_id="count",
            name="Count",
            steps=[
                set_variable_step("total", "total", "count(enemy_creatures) + 1"),
                deal_damage_step("hit", "opponents", "$total"),
                log_step("say", "Hit for {total}"),
            ],
        )

        result = run(effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert result.operations == [
            Operation.damage_player("bob", 3),
            Operation.log("alice", "Hit for 3"),
        ]

    def test_custom_store_as(self, game):
        """Selections can be stored under another variable."""
        effect = Effect(
            effect_id="pick",
            name="Pick",
            steps=[
                select_targets_step("choose", TargetSelector(can_target_self=False), store_as="victim"),
                deal_damage_step("hit", "$victim", 2),
            ],
        )
        api = SpellEffectAPI(
            game.state.clone(), "alice", PresetTargetSelector([Target(TargetKind.PLAYER, "bob")])
        )

        result = run(effect, api)

        assert result.operations == [Operation.damage_player("bob", 2)]

    def test_loop_variable_restored(self, game):
        """Loops over nothing leave no variable behind and still succeed."""
        effect = Effect(
            effect_id="none",
            name="None",
            steps=[for_each_step("loop", "unit", "enemy_creatures", [deal_damage_step("x", "$unit", 1)])],
        )

        result = run(effect, SpellEffectAPI(game.state.clone(), "alice"))

        assert result.success
        assert result.operations == []
