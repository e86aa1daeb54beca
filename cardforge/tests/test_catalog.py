"""
Tests for the card catalog.

Tests:
- The built-in set is valid
- Validation catches malformed cards, effects and decks
- JSON catalogs load back to the same definitions
- The definition cache loads each card once
"""

import asyncio
import json

import pytest

from ..catalog.cards import CardDefinition, CardKind, DeckEntry, DeckList
from ..catalog.effect_dsl import (
    Effect,
    EffectStep,
    StepType,
    TargetSelector,
    deal_damage_step,
    draw_card_step,
    select_targets_step,
)
from ..catalog.library import build_standard_library, standard_deck
from ..catalog.loader import dump_catalog, load_catalog, parse_cards
from ..catalog.repository import DefinitionCache, InMemoryCardRepository
from ..catalog.validation import validate_card, validate_catalog, validate_deck
from ..errors import CatalogValidationError


class TestStandardLibrary:
    """Tests for the built-in set."""

    def test_library_is_valid(self, library):
        result = validate_catalog(library)

        assert result.valid, result.errors

    def test_card_ids_unique(self, library):
        ids = [card.card_id for card in library]
        assert len(ids) == 20
        assert len(set(ids)) == 20

    def test_standard_deck(self, library):
        deck = standard_deck()

        assert deck.deck_id == "standard"
        assert deck.size == 43
        assert validate_deck(deck, {card.card_id for card in library}).valid

    def test_stats(self, cards_by_id):
        drone = cards_by_id["card_001"]
        assert (drone.kind, drone.cost, drone.attack, drone.health) == (CardKind.CREATURE, 2, 2, 1)
        assert cards_by_id["card_004"].kind == CardKind.ARTIFACT
        assert cards_by_id["card_002"].spell_effect is not None


class TestCardValidation:
    """Tests for validate_card and validate_catalog."""

    def test_creature_needs_health(self):
        card = CardDefinition(card_id="c1", name="Bad", kind=CardKind.CREATURE, cost=1, attack=1)

        result = validate_card(card)

        assert not result.valid
        assert any("health" in e for e in result.errors)

    def test_negative_cost(self):
        card = CardDefinition(card_id="c1", name="Bad", kind=CardKind.ARTIFACT, cost=-1)

        assert not validate_card(card).valid

    def test_spell_cannot_draw(self):
        """Owner-only steps are rejected in spell effects."""
        card = CardDefinition(
            card_id="s1",
            name="Greedy",
            kind=CardKind.SPELL,
            spell_effect=Effect(effect_id="greedy", name="Greedy", steps=[draw_card_step("draw", 2)]),
        )

        result = validate_card(card)

        assert not result.valid
        assert any("draw_card" in e for e in result.errors)

    def test_unknown_target_reference(self):
        card = CardDefinition(
            card_id="s1",
            name="Wild",
            kind=CardKind.SPELL,
            spell_effect=Effect(effect_id="wild", name="Wild", steps=[deal_damage_step("hit", "everyone", 1)]),
        )

        assert any("unknown target" in e for e in validate_card(card).errors)

    def test_duplicate_step_ids(self):
        card = CardDefinition(
            card_id="s1",
            name="Twice",
            kind=CardKind.SPELL,
            spell_effect=Effect(
                effect_id="twice",
                name="Twice",
                steps=[deal_damage_step("hit", "opponents", 1), deal_damage_step("hit", "opponents", 1)],
            ),
        )

        assert any("Duplicate step_id" in e for e in validate_card(card).errors)

    def test_select_without_selector(self):
        card = CardDefinition(
            card_id="s1",
            name="Lost",
            kind=CardKind.SPELL,
            spell_effect=Effect(
                effect_id="lost",
                name="Lost",
                steps=[EffectStep(step_type=StepType.SELECT_TARGETS, step_id="pick")],
            ),
        )

        assert not validate_card(card).valid

    def test_duplicate_card_ids(self):
        card = CardDefinition(card_id="c1", name="One", kind=CardKind.CREATURE, attack=1, health=1)

        result = validate_catalog([card, card])

        assert "Duplicate card id 'c1'" in result.errors

    def test_spell_without_effect_warns(self):
        card = CardDefinition(card_id="s1", name="Blank", kind=CardKind.SPELL)

        result = validate_card(card)

        assert result.valid
        assert result.warnings

    def test_empty_catalog_warns(self):
        assert validate_catalog([]).warnings


class TestDeckValidation:
    """Tests for validate_deck."""

    def test_unknown_card(self):
        deck = DeckList("d1", "Deck", [DeckEntry("card_999", 2)])

        result = validate_deck(deck, {"card_001"})

        assert not result.valid
        with pytest.raises(CatalogValidationError) as excinfo:
            result.raise_if_invalid()
        assert excinfo.value.errors == result.errors

    def test_empty_deck(self):
        assert not validate_deck(DeckList("d1", "Deck"), {"card_001"}).valid


class TestLoader:
    """Tests for JSON catalogs."""

    def test_dump_and_load(self, tmp_path):
        cards = build_standard_library()
        path = tmp_path / "catalog.json"
        path.write_text(dump_catalog(cards, [standard_deck()]))

        loaded_cards, loaded_decks = load_catalog(path)

        assert loaded_cards == cards
        assert loaded_decks[0].size == 43

    def test_selector_fields_survive(self):
        step = select_targets_step("pick", TargetSelector(can_target_self=False, auto_target=True), store_as="victim")

        data = json.loads(json.dumps(step.to_dict()))
        restored = EffectStep.from_dict(data)

        assert restored.selector.can_target_self is False
        assert restored.selector.auto_target
        assert restored.params["store_as"] == "victim"

    def test_invalid_card(self):
        with pytest.raises(ValueError) as excinfo:
            parse_cards({"cards": [{"card_id": "x", "kind": "creature"}]})
        assert "index 0" in str(excinfo.value)

    def test_unknown_step_type(self):
        with pytest.raises(ValueError):
            EffectStep.from_dict({"type": "teleport"})


class TestDefinitionCache:
    """Tests for the load-once cache."""

    def test_fetches_once(self, library):
        repository = InMemoryCardRepository(library)
        cache = DefinitionCache(repository)

        asyncio.run(cache.get("card_001"))
        asyncio.run(cache.get("card_001"))

        assert repository.fetch_count == 1
        assert cache.get_cached("card_001").name == "Cyber Drone"

    def test_unknown_not_cached(self, library):
        repository = InMemoryCardRepository(library)
        cache = DefinitionCache(repository)

        assert asyncio.run(cache.get("card_999")) is None
        repository.add(CardDefinition(card_id="card_999", name="Late", kind=CardKind.ARTIFACT))

        assert asyncio.run(cache.get("card_999")).name == "Late"

    def test_preload(self, repository):
        cache = DefinitionCache(repository)

        count = asyncio.run(cache.preload(["card_001", "card_002", "card_001"]))

        assert count == 2
        assert cache.size == 2
