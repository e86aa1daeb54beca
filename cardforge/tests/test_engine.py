"""
Tests for the GameEngine façade.

Tests:
- Playing creatures and artifacts
- Casting spells, including failed effects
- Precondition failures commit nothing
- One commit per action, rollback on unexpected errors
- Starting games from stored decks
- Rematches
"""

import asyncio

import pytest

from ..catalog.cards import CardDefinition, CardKind, DeckEntry, DeckList, TriggerEvent, TriggeredAbility
from ..catalog.effect_dsl import Effect, Target, TargetKind, deal_damage_step
from ..catalog.repository import CardRepository, DefinitionCache
from ..engine_core.engine import GameEngine
from ..engine_core.state import GameSession, GameStatus, LogAction, PlayerState
from ..engine_core.targeting import PresetTargetSelector


@pytest.fixture
def raider_card(repository, game) -> CardDefinition:
    """A 2-cost 3/2 creature."""
    card = CardDefinition(card_id="test_raider", name="Raider", kind=CardKind.CREATURE, cost=2, attack=3, health=2)
    repository.add(card)
    game.cards[card.card_id] = card
    return card


@pytest.fixture
def watcher_card(repository, game) -> CardDefinition:
    """A creature that pings opponents whenever one of them plays a card."""
    card = CardDefinition(
        card_id="test_watcher",
        name="Watcher",
        kind=CardKind.CREATURE,
        cost=2,
        attack=1,
        health=1,
        triggered_abilities=(
            TriggeredAbility(
                trigger=TriggerEvent.PLAY_CARD,
                description="Punish",
                effect=Effect(effect_id="punish", name="Watcher", steps=[deal_damage_step("ping", "opponents", 1)]),
            ),
        ),
    )
    repository.add(card)
    game.cards[card.card_id] = card
    return card


class ExplodingRepository(CardRepository):
    """A repository whose backend is down."""

    async def fetch(self, card_id):
        raise RuntimeError("catalog offline")


def waiting_game(game_id: str = "waiting_game", seed: int = 42) -> GameSession:
    return GameSession(
        game_id=game_id,
        players=[PlayerState(player_id="alice", name="Alice"), PlayerState(player_id="bob", name="Bob")],
        random_seed=seed,
    )


def small_deck() -> DeckList:
    return DeckList(
        deck_id="small",
        name="Small Deck",
        entries=[DeckEntry("card_001", 6), DeckEntry("card_006", 6)],
    )


class TestPlayPermanents:
    """Tests for playing creatures and artifacts."""

    def test_play_creature(self, game, make_engine, raider_card):
        """Hand shrinks, battlefield grows, energy is paid, the creature is sapped."""
        card = game.hand("alice", raider_card.card_id)
        engine = make_engine(game.state)

        ok = asyncio.run(engine.play_card("alice", card))

        alice = engine.snapshot().get_player("alice")
        assert ok
        assert alice.hand.count == 0
        assert len(alice.battlefield) == 1
        assert alice.energy == 3
        unit = alice.get_instance(card)
        assert unit.sapped
        assert unit.current_health == 2
        assert unit.kind == CardKind.CREATURE

    def test_play_logs_card(self, game, make_engine):
        card = game.hand("alice", "card_001")
        engine = make_engine(game.state)

        asyncio.run(engine.play_card("alice", card))

        entry = engine.snapshot().game_log[-1]
        assert entry.action == LogAction.PLAY_CARD
        assert entry.description == "Played Cyber Drone"
        assert entry.amount == 2
        assert entry.target_id == card

    def test_artifact_enters_unsapped(self, game, make_engine):
        core = game.hand("alice", "card_017")
        enhancer = game.hand("alice", "card_004")
        engine = make_engine(game.state)

        asyncio.run(engine.play_card("alice", core))
        asyncio.run(engine.play_card("alice", enhancer))

        alice = engine.snapshot().get_player("alice")
        assert not alice.get_instance(core).sapped
        assert alice.get_instance(core).current_health == 2
        assert alice.get_instance(enhancer).current_health == 1

    def test_opponent_play_card_triggers(self, game, make_engine, watcher_card):
        """Playing a permanent fires play_card abilities of opponents."""
        game.unit("bob", watcher_card.card_id)
        card = game.hand("alice", "card_001")
        engine = make_engine(game.state)

        asyncio.run(engine.play_card("alice", card))

        assert engine.snapshot().get_player("alice").health == 24

    def test_own_play_does_not_trigger_own_watcher(self, game, make_engine, watcher_card):
        game.unit("alice", watcher_card.card_id)
        card = game.hand("alice", "card_001")
        engine = make_engine(game.state)

        asyncio.run(engine.play_card("alice", card))

        assert engine.snapshot().get_player("bob").health == 25


class TestPlayValidation:
    """Tests for rejected plays."""

    def test_card_not_in_hand(self, game, make_engine):
        card = game.hand("bob", "card_001")
        engine = make_engine(game.state)

        assert not asyncio.run(engine.play_card("alice", card))
        assert engine.last_error_code == "CARD_NOT_IN_HAND"

    def test_insufficient_energy_commits_nothing(self, game, make_engine):
        card = game.hand("alice", "card_007")
        engine = make_engine(game.state)
        before = engine.handle.version

        assert not asyncio.run(engine.play_card("alice", card))
        assert engine.last_error_code == "INSUFFICIENT_ENERGY"
        assert engine.handle.version == before
        assert engine.snapshot().get_player("alice").hand.cards == [card]

    def test_game_not_started(self, game, make_engine):
        card = game.hand("alice", "card_001")
        game.state.status = GameStatus.WAITING
        engine = make_engine(game.state)

        assert not asyncio.run(engine.play_card("alice", card))
        assert engine.last_error_code == "GAME_NOT_STARTED"

    def test_cast_spell_rejects_creature(self, game, make_engine):
        card = game.hand("alice", "card_001")
        engine = make_engine(game.state)

        assert not asyncio.run(engine.cast_spell("alice", card))
        assert engine.last_error_code == "NOT_A_SPELL"

    def test_unknown_definition(self, game, make_engine):
        card = game.hand("alice", "card_001")
        game.state.instance_definitions[card] = "card_999"
        engine = make_engine(game.state)

        assert not asyncio.run(engine.play_card("alice", card))
        assert engine.last_error_code == "DEFINITION_NOT_FOUND"


class TestSpells:
    """Tests for casting spells."""

    def test_data_spike(self, game, make_engine):
        card = game.hand("alice", "card_006")
        engine = make_engine(game.state)

        assert asyncio.run(engine.cast_spell("alice", card))

        state = engine.snapshot()
        assert state.get_player("bob").health == 24
        assert state.get_player("alice").energy == 4
        assert state.graveyard.cards == [card]
        assert state.game_log[-1].description == "Cast Data Spike"

    def test_targeted_spell_destroys_creature(self, game, make_engine):
        card = game.hand("alice", "card_002")
        victim = game.unit("bob", "card_011")
        engine = make_engine(game.state)
        selector = PresetTargetSelector([Target(TargetKind.CREATURE, "bob", victim)])

        assert asyncio.run(engine.play_card("alice", card, selector))

        state = engine.snapshot()
        assert state.get_player("bob").battlefield == []
        assert state.graveyard.cards == [card, victim]

    def test_failed_effect_still_spends_card(self, game, make_engine):
        """A spell without a target fails but its card and energy are gone."""
        card = game.hand("alice", "card_002")
        engine = make_engine(game.state)

        ok = asyncio.run(engine.cast_spell("alice", card))

        state = engine.snapshot()
        assert not ok
        assert engine.last_error_code == "EFFECT_FAILED"
        assert state.get_player("alice").hand.count == 0
        assert state.get_player("alice").energy == 2
        assert state.graveyard.cards == [card]
        assert state.get_player("bob").health == 25
        assert state.game_log[-1].action == LogAction.EFFECT_FAILED
        assert state.game_log[-1].description == "Plasma Burst failed"

    def test_take_damage_triggers_on_spell_damage(self, game, make_engine):
        """Chain Lightning makes a Retaliator strike back."""
        card = game.hand("alice", "card_016")
        retaliator = game.unit("bob", "card_018")
        engine = make_engine(game.state)

        assert asyncio.run(engine.cast_spell("alice", card))

        state = engine.snapshot()
        assert state.get_player("alice").health == 24
        assert state.get_player("bob").health == 24
        assert state.get_player("bob").get_instance(retaliator).current_health == 1

    def test_lethal_spell_finishes_game(self, game, make_engine):
        card = game.hand("alice", "card_006")
        other = game.hand("alice", "card_001")
        game.health("bob", 1)
        engine = make_engine(game.state)

        asyncio.run(engine.cast_spell("alice", card))

        assert engine.snapshot().status == GameStatus.FINISHED
        assert not asyncio.run(engine.play_card("alice", other))
        assert engine.last_error_code == "GAME_FINISHED"


class TestTransactions:
    """Tests for commit and rollback behavior."""

    def test_one_commit_per_action(self, game, make_engine):
        card = game.hand("alice", "card_016")
        game.unit("bob", "card_018")
        engine = make_engine(game.state)
        commits = []
        engine.handle.subscribe(commits.append)

        asyncio.run(engine.cast_spell("alice", card))

        assert len(commits) == 1

    def test_unexpected_error_rolls_back(self, game, store):
        """An exception discards the working copy and logs the failure."""
        card = game.hand("alice", "card_001")
        handle = store.create(game.state, doc_id=game.state.game_id)
        engine = GameEngine(handle, DefinitionCache(ExplodingRepository()), store=store)

        ok = asyncio.run(engine.play_card("alice", card))

        state = engine.snapshot()
        assert not ok
        assert engine.last_error_code == "INTERNAL_ERROR"
        assert state.get_player("alice").hand.cards == [card]
        assert state.get_player("alice").energy == 5
        assert state.game_log[-1].action == LogAction.ACTION_FAILED
        assert state.game_log[-1].description == "Failed to play card: catalog offline"

    def test_trigger_entry_points(self, game, make_engine):
        game.unit("alice", "card_004")
        wounded = game.unit("alice", "card_008", health=1)
        engine = make_engine(game.state)

        assert asyncio.run(engine.execute_triggered_abilities(TriggerEvent.START_TURN, "alice"))
        assert engine.snapshot().get_player("alice").get_instance(wounded).current_health == 2
        assert not asyncio.run(
            engine.execute_triggered_abilities_for_creature(TriggerEvent.TAKE_DAMAGE, "alice", "ghost")
        )
        assert engine.last_error_code == "CARD_NOT_FOUND"


class TestStartGame:
    """Tests for start_game_with_deck."""

    @pytest.fixture
    def waiting_engine(self, store, make_engine):
        store.create(small_deck(), doc_id="small")
        return make_engine(waiting_game())

    def test_deals_opening_hands(self, waiting_engine):
        """Five cards each, one bonus card for the first player."""
        assert asyncio.run(waiting_engine.start_game_with_deck("small"))

        state = waiting_engine.snapshot()
        assert state.status == GameStatus.PLAYING
        assert state.turn == 1
        assert state.current_player.player_id == "alice"
        assert state.get_player("alice").hand.count == 6
        assert state.get_player("bob").hand.count == 5
        assert state.deck.count == 1
        for player in state.players:
            assert player.health == player.max_health == 25
            assert player.energy == player.max_energy == 1

    def test_unique_instances_in_one_zone(self, waiting_engine):
        asyncio.run(waiting_engine.start_game_with_deck("small"))

        state = waiting_engine.snapshot()
        ids = list(state.all_instance_ids())
        assert len(ids) == 12
        assert len(set(ids)) == 12
        assert set(ids) == set(state.instance_definitions)
        assert all(len(state.zones_of(i)) == 1 for i in ids)

    def test_start_logged(self, waiting_engine):
        asyncio.run(waiting_engine.start_game_with_deck("small"))

        entry = waiting_engine.snapshot().game_log[-1]
        assert entry.action == LogAction.GAME_START
        assert entry.description == "Game started with Small Deck"
        assert entry.amount == 12

    def test_same_seed_same_deal(self, definitions):
        from ..session.store import DocumentStore

        hands = []
        for _ in range(2):
            store = DocumentStore()
            store.create(small_deck(), doc_id="small")
            engine = GameEngine(store.create(waiting_game(), doc_id="waiting_game"), definitions, store=store)
            asyncio.run(engine.start_game_with_deck("small"))
            hands.append(engine.snapshot().get_player("alice").hand.cards)

        assert hands[0] == hands[1]

    def test_cannot_start_twice(self, waiting_engine):
        asyncio.run(waiting_engine.start_game_with_deck("small"))

        assert not asyncio.run(waiting_engine.start_game_with_deck("small"))
        assert waiting_engine.last_error_code == "GAME_ALREADY_STARTED"

    def test_missing_deck(self, waiting_engine):
        assert not asyncio.run(waiting_engine.start_game_with_deck("nope"))
        assert waiting_engine.last_error_code == "DECK_NOT_FOUND"

    def test_unknown_card_in_deck(self, store, make_engine):
        store.create(DeckList("odd", "Odd", [DeckEntry("card_999", 3)]), doc_id="odd")
        engine = make_engine(waiting_game())

        assert not asyncio.run(engine.start_game_with_deck("odd"))
        assert engine.last_error_code == "DEFINITION_NOT_FOUND"
        assert engine.snapshot().status == GameStatus.WAITING

    def test_empty_deck(self, store, make_engine):
        store.create(DeckList("empty", "Empty"), doc_id="empty")
        engine = make_engine(waiting_game())

        assert not asyncio.run(engine.start_game_with_deck("empty"))
        assert engine.last_error_code == "EMPTY_DECK"


class TestRematch:
    """Tests for create_rematch_game."""

    def test_rematch_after_finish(self, game, store, make_engine):
        game.state.status = GameStatus.FINISHED
        game.state.selected_deck_id = "standard"
        engine = make_engine(game.state)

        rematch_id = asyncio.run(engine.create_rematch_game())

        assert rematch_id in store
        rematch = store.find(rematch_id).doc()
        assert rematch.status == GameStatus.WAITING
        assert [p.player_id for p in rematch.players] == ["alice", "bob"]
        assert rematch.random_seed == 8
        assert rematch.selected_deck_id == "standard"
        assert rematch.metadata["rematch_of"] == "test_game"
        assert engine.snapshot().rematch_game_id == rematch_id

    def test_rematch_is_idempotent(self, game, make_engine):
        game.state.status = GameStatus.FINISHED
        engine = make_engine(game.state)

        first = asyncio.run(engine.create_rematch_game())
        second = asyncio.run(engine.create_rematch_game())

        assert first == second

    def test_rematch_requires_finished(self, game, make_engine):
        engine = make_engine(game.state)

        assert asyncio.run(engine.create_rematch_game()) is None
        assert engine.last_error_code == "GAME_NOT_FINISHED"
