"""
Tests for turn transitions.

Tests:
- Seat advancement and round wrapping
- Energy growth on wrap
- Draw, refresh and creature healing for the next player
- end_turn / start_turn triggers
- A defeat during turn triggers stops the rest of the turn
- heal_creatures as a standalone action
"""

import asyncio

import pytest

from ..catalog.cards import CardDefinition, CardKind, TriggerEvent, TriggeredAbility
from ..catalog.effect_dsl import Effect, deal_damage_step
from ..config import RulesConfig
from ..engine_core.state import GameStatus, LogAction


class TestEndTurn:
    """Tests for end_player_turn."""

    def test_passes_to_next_player(self, game, make_engine):
        """Ending the first seat's turn keeps the round number."""
        engine = make_engine(game.state)

        assert asyncio.run(engine.end_player_turn("alice"))

        state = engine.snapshot()
        assert state.current_player.player_id == "bob"
        assert state.turn == 1
        assert state.game_log[0].action == LogAction.END_TURN

    def test_wrap_grows_energy(self, game, make_engine):
        """Wrapping to the first seat increments the turn and max energy for everyone."""
        game.energy("alice", 0, max_energy=5)
        game.energy("bob", 2, max_energy=5)
        game.state.current_player_index = 1
        engine = make_engine(game.state)

        assert asyncio.run(engine.end_player_turn("bob"))

        state = engine.snapshot()
        assert state.current_player.player_id == "alice"
        assert state.turn == 2
        for player in state.players:
            assert player.max_energy == 6
            assert player.energy == 6

    def test_energy_cap(self, game, make_engine):
        game.energy("alice", 10, max_energy=10)
        game.energy("bob", 10, max_energy=10)
        game.state.current_player_index = 1
        engine = make_engine(game.state)

        asyncio.run(engine.end_player_turn("bob"))

        assert engine.snapshot().get_player("alice").max_energy == 10

    def test_next_player_without_wrap_restores_only_them(self, game, make_engine):
        game.energy("alice", 1, max_energy=5)
        game.energy("bob", 0, max_energy=4)
        engine = make_engine(game.state)

        asyncio.run(engine.end_player_turn("alice"))

        state = engine.snapshot()
        assert state.get_player("bob").energy == 4
        assert state.get_player("alice").energy == 1

    def test_next_player_draws(self, game, make_engine):
        top = game.deck("card_001")
        engine = make_engine(game.state)

        asyncio.run(engine.end_player_turn("alice"))

        state = engine.snapshot()
        assert state.get_player("bob").hand.cards == [top]
        assert state.deck.is_empty

    def test_empty_deck_draw_is_fine(self, game, make_engine):
        engine = make_engine(game.state)

        assert asyncio.run(engine.end_player_turn("alice"))
        assert engine.snapshot().get_player("bob").hand.count == 0

    def test_refresh_and_heal_next_player(self, game, make_engine):
        """The next player's units are un-sapped and creatures heal by 1."""
        creature = game.unit("bob", "card_008", health=2, sapped=True)
        full = game.unit("bob", "card_011", sapped=True)
        core = game.unit("bob", "card_017", health=1)
        engine = make_engine(game.state)

        asyncio.run(engine.end_player_turn("alice"))

        bob = engine.snapshot().get_player("bob")
        assert not bob.get_instance(creature).sapped
        assert bob.get_instance(creature).current_health == 3
        assert bob.get_instance(full).current_health == 2
        assert bob.get_instance(core).current_health == 1

    def test_end_turn_trigger_fires_for_current_player(self, game, make_engine):
        game.unit("alice", "card_013")
        wounded = game.unit("alice", "card_008", health=1)
        engine = make_engine(game.state)

        asyncio.run(engine.end_player_turn("alice"))

        assert engine.snapshot().get_player("alice").get_instance(wounded).current_health == 3

    def test_start_turn_trigger_fires_for_next_player(self, game, make_engine):
        game.unit("bob", "card_009")
        first = game.deck("card_001")
        second = game.deck("card_002")
        engine = make_engine(game.state)

        asyncio.run(engine.end_player_turn("alice"))

        assert engine.snapshot().get_player("bob").hand.cards == [first, second]

    def test_only_current_player_can_end(self, game, make_engine):
        engine = make_engine(game.state)

        assert not asyncio.run(engine.end_player_turn("bob"))
        assert engine.last_error_code == "NOT_YOUR_TURN"

    def test_finished_game_rejects(self, game, make_engine):
        game.state.status = GameStatus.FINISHED
        engine = make_engine(game.state)

        assert not asyncio.run(engine.end_player_turn("alice"))
        assert engine.last_error_code == "GAME_FINISHED"


def _bomb(card_id: str, trigger: TriggerEvent) -> CardDefinition:
    """An artifact that deals 5 to every opponent on the given turn event."""
    return CardDefinition(
        card_id=card_id,
        name="Bomb",
        kind=CardKind.ARTIFACT,
        cost=1,
        triggered_abilities=(
            TriggeredAbility(
                trigger=trigger,
                description="Detonate",
                effect=Effect(effect_id=card_id, name="Bomb", steps=[deal_damage_step("boom", "opponents", 5)]),
            ),
        ),
    )


class TestDefeatDuringTurnChange:
    """A player defeated by a turn trigger ends the game on the spot."""

    @pytest.fixture
    def bombs(self, repository, game):
        for card in (_bomb("test_end_bomb", TriggerEvent.END_TURN), _bomb("test_start_bomb", TriggerEvent.START_TURN)):
            repository.add(card)
            game.cards[card.card_id] = card

    def test_end_turn_trigger_defeat(self, game, make_engine, bombs):
        game.unit("alice", "test_end_bomb")
        game.health("bob", 3)
        game.energy("bob", 0, max_energy=5)
        top = game.deck("card_001")
        engine = make_engine(game.state)

        assert asyncio.run(engine.end_player_turn("alice"))

        state = engine.snapshot()
        assert state.status == GameStatus.FINISHED
        assert state.current_player_index == 0
        assert state.deck.cards == [top]
        assert state.get_player("bob").hand.count == 0
        assert state.get_player("bob").energy == 0
        assert [e.action for e in state.game_log].count(LogAction.GAME_END) == 1

    def test_start_turn_trigger_defeat(self, game, make_engine, bombs):
        game.unit("bob", "test_start_bomb")
        wounded = game.unit("bob", "card_008", health=2, sapped=True)
        game.health("alice", 4)
        game.energy("bob", 0, max_energy=5)
        top = game.deck("card_001")
        engine = make_engine(game.state)

        assert asyncio.run(engine.end_player_turn("alice"))

        state = engine.snapshot()
        bob = state.get_player("bob")
        assert state.status == GameStatus.FINISHED
        assert state.get_player("alice").health == 0
        assert state.current_player_index == 1
        assert state.deck.cards == [top]
        assert bob.hand.count == 0
        assert bob.energy == 0
        assert bob.get_instance(wounded).sapped
        assert bob.get_instance(wounded).current_health == 2
        assert [e.action for e in state.game_log].count(LogAction.GAME_END) == 1


class TestHealCreatures:
    """Tests for the heal_creatures action."""

    def test_heals_damaged_creatures(self, game, make_engine):
        wounded = game.unit("bob", "card_003", health=2)
        engine = make_engine(game.state)

        assert asyncio.run(engine.heal_creatures("bob"))

        state = engine.snapshot()
        assert state.get_player("bob").get_instance(wounded).current_health == 3
        assert state.game_log[-1].action == LogAction.HEAL

    def test_custom_heal_amount_clamped(self, game, store, definitions):
        from ..engine_core.engine import GameEngine

        wounded = game.unit("alice", "card_008", health=3)
        handle = store.create(game.state, doc_id=game.state.game_id)
        engine = GameEngine(handle, definitions, rules=RulesConfig(creature_heal_per_turn=5), store=store)

        asyncio.run(engine.heal_creatures("alice"))

        assert engine.snapshot().get_player("alice").get_instance(wounded).current_health == 4

    def test_nothing_to_heal_logs_nothing(self, game, make_engine):
        game.unit("alice", "card_001")
        engine = make_engine(game.state)

        assert asyncio.run(engine.heal_creatures("alice"))
        assert engine.snapshot().game_log == []

    def test_unknown_player(self, game, make_engine):
        engine = make_engine(game.state)

        assert not asyncio.run(engine.heal_creatures("carol"))
        assert engine.last_error_code == "PLAYER_NOT_FOUND"
