"""
Catalog Validation - Schema validation for card definitions and decks.

Validates that:
1. Required fields are present and stats make sense for the card kind
2. Effect DSL is well-formed (required step fields, unique step ids)
3. Spells do not use owner-only capabilities
4. Decks only reference known cards
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable

from .cards import CardDefinition, CardKind, DeckList
from .effect_dsl import Effect, EffectStep, StepType
from ..errors import CatalogValidationError

TARGET_REFERENCES = {
    "self", "opponents", "all_players", "source", "damage_target",
    "own_creatures", "enemy_creatures", "all_creatures", "own_units", "enemy_units",
}

OWNER_ONLY_STEPS = {StepType.DRAW_CARD, StepType.GAIN_ENERGY}
AMOUNT_STEPS = {StepType.DEAL_DAMAGE, StepType.HEAL, StepType.GAIN_ENERGY}
TARGETED_STEPS = {StepType.DEAL_DAMAGE, StepType.HEAL, StepType.DESTROY}


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]

    def raise_if_invalid(self) -> None:
        if not self.valid:
            raise CatalogValidationError(self.errors)


def validate_catalog(cards: Iterable[CardDefinition]) -> ValidationResult:
    """
    Validate a complete card catalog.

    Returns ValidationResult with errors and warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []

    seen: set[str] = set()
    count = 0
    for card in cards:
        count += 1
        if card.card_id in seen:
            errors.append(f"Duplicate card id '{card.card_id}'")
        seen.add(card.card_id)

        result = validate_card(card)
        errors.extend(result.errors)
        warnings.extend(result.warnings)

    if count == 0:
        warnings.append("No cards defined - catalog is empty")

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def validate_card(card: CardDefinition) -> ValidationResult:
    """Validate a single card definition."""
    errors: list[str] = []
    warnings: list[str] = []
    label = card.card_id or "<unnamed>"

    if not card.card_id:
        errors.append("Card has empty ID")
    if not card.name:
        errors.append(f"Card '{label}' has empty name")
    if card.cost < 0:
        errors.append(f"Card '{label}' has negative cost")

    if card.kind == CardKind.CREATURE:
        if card.attack is None or card.attack < 0:
            errors.append(f"Creature '{label}' needs a non-negative attack")
        if card.health is None or card.health < 1:
            errors.append(f"Creature '{label}' needs health of at least 1")
    elif card.kind == CardKind.ARTIFACT:
        if card.attack:
            warnings.append(f"Artifact '{label}' has attack; artifacts never deal combat damage")
    elif card.kind == CardKind.SPELL:
        if card.spell_effect is None:
            warnings.append(f"Spell '{label}' has no effect")
        if card.triggered_abilities:
            warnings.append(
                f"Spell '{label}' has triggered abilities; spells never reach the battlefield"
            )

    if card.spell_effect is not None:
        if card.kind != CardKind.SPELL:
            errors.append(f"Card '{label}' has a spell effect but is a {card.kind.value}")
        effect_errors = _validate_effect_structure(card.spell_effect, owner_capabilities=False)
        errors.extend([f"Card '{label}': {e}" for e in effect_errors])

    for ability in card.triggered_abilities:
        effect_errors = _validate_effect_structure(ability.effect, owner_capabilities=True)
        errors.extend([f"Card '{label}' ({ability.trigger.value}): {e}" for e in effect_errors])
        if not ability.description:
            warnings.append(f"Card '{label}' has a {ability.trigger.value} ability without description")

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def validate_deck(deck: DeckList, known_card_ids: set[str]) -> ValidationResult:
    """Validate a deck against the ids a repository knows."""
    errors: list[str] = []
    warnings: list[str] = []

    for entry in deck.entries:
        if entry.card_id not in known_card_ids:
            errors.append(f"Deck '{deck.deck_id}' references unknown card '{entry.card_id}'")
        if entry.quantity < 1:
            errors.append(f"Deck '{deck.deck_id}' has quantity {entry.quantity} for '{entry.card_id}'")
    if deck.size == 0:
        errors.append(f"Deck '{deck.deck_id}' is empty")

    return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)


def _validate_effect_structure(effect: Effect, owner_capabilities: bool) -> list[str]:
    """Validate effect DSL structure."""
    errors = []

    if not effect.effect_id:
        errors.append("Effect has empty effect_id")

    step_ids: set[str] = set()
    for step in _walk(effect.steps):
        if step.step_id in step_ids:
            errors.append(f"Duplicate step_id '{step.step_id}' in effect '{effect.effect_id}'")
        step_ids.add(step.step_id)
        errors.extend(_validate_step(step, owner_capabilities))

    return errors


def _validate_step(step: EffectStep, owner_capabilities: bool) -> list[str]:
    """Validate a single effect step (nested steps are walked by the caller)."""
    errors = []

    if step.step_type in OWNER_ONLY_STEPS and not owner_capabilities:
        errors.append(f"Step '{step.step_id}' uses {step.step_type.value}, which spells cannot")

    if step.step_type in TARGETED_STEPS:
        if not step.target:
            errors.append(f"Step '{step.step_id}' has no target")
        elif not step.target.startswith("$") and step.target not in TARGET_REFERENCES:
            errors.append(f"Step '{step.step_id}' has unknown target '{step.target}'")

    if step.step_type in AMOUNT_STEPS and "amount" not in step.params:
        errors.append(f"Step '{step.step_id}' has no amount")

    if step.step_type == StepType.SELECT_TARGETS:
        if step.selector is None:
            errors.append(f"Select step '{step.step_id}' has no selector")
        elif step.selector.target_count < 1:
            errors.append(f"Select step '{step.step_id}' must select at least one target")

    if step.step_type == StepType.LOG and not step.params.get("message"):
        errors.append(f"Log step '{step.step_id}' has no message")

    if step.step_type == StepType.SET_VARIABLE and not step.params.get("name"):
        errors.append(f"Set-variable step '{step.step_id}' has no name")

    if step.step_type == StepType.CONDITIONAL and not step.condition:
        errors.append(f"Conditional step '{step.step_id}' has no condition")

    if step.step_type == StepType.FOR_EACH:
        if not step.loop_variable:
            errors.append(f"For-each step '{step.step_id}' has no loop_variable")
        if not step.loop_source:
            errors.append(f"For-each step '{step.step_id}' has no loop_source")

    return errors


def _walk(steps: list[EffectStep]):
    for step in steps:
        yield step
        yield from _walk(step.then_steps + step.else_steps + step.loop_steps)
