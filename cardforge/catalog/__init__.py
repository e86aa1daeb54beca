"""
Card Catalog - Definitions, the effect DSL, validation and repositories.
"""

from .cards import (
    AttackTargeting,
    CardDefinition,
    CardKind,
    DeckEntry,
    DeckList,
    TriggerEvent,
    TriggeredAbility,
)
from .effect_dsl import (
    Condition,
    Effect,
    EffectStep,
    StepType,
    Target,
    TargetKind,
    TargetSelector,
    TargetType,
)
from .library import build_standard_library, standard_deck
from .loader import dump_catalog, load_catalog
from .repository import CardRepository, DefinitionCache, InMemoryCardRepository
from .validation import ValidationResult, validate_card, validate_catalog, validate_deck

__all__ = [
    "AttackTargeting",
    "CardDefinition",
    "CardKind",
    "DeckEntry",
    "DeckList",
    "TriggerEvent",
    "TriggeredAbility",
    "Condition",
    "Effect",
    "EffectStep",
    "StepType",
    "Target",
    "TargetKind",
    "TargetSelector",
    "TargetType",
    "build_standard_library",
    "standard_deck",
    "dump_catalog",
    "load_catalog",
    "CardRepository",
    "DefinitionCache",
    "InMemoryCardRepository",
    "ValidationResult",
    "validate_card",
    "validate_catalog",
    "validate_deck",
]
