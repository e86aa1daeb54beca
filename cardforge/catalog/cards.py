"""
Card definitions - The immutable catalog entries every instance points to.

Definitions never change during a game. Instances (engine_core.state)
carry the mutable parts: current health and the sapped flag.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .effect_dsl import Effect, TargetKind, TargetSelector, TargetType


class CardKind(Enum):
    """The closed set of card kinds."""
    CREATURE = "creature"
    SPELL = "spell"
    ARTIFACT = "artifact"

    @property
    def is_permanent(self) -> bool:
        """Permanents stay on the battlefield after being played."""
        return self in (CardKind.CREATURE, CardKind.ARTIFACT)

    @property
    def target_kind(self) -> TargetKind | None:
        """The target kind an instance of this card is addressed as."""
        return {
            CardKind.CREATURE: TargetKind.CREATURE,
            CardKind.ARTIFACT: TargetKind.ARTIFACT,
            CardKind.SPELL: None,
        }[self]


class TriggerEvent(Enum):
    """Events that fire triggered abilities."""
    START_TURN = "start_turn"
    END_TURN = "end_turn"
    PLAY_CARD = "play_card"
    DEAL_DAMAGE = "deal_damage"
    TAKE_DAMAGE = "take_damage"


@dataclass(frozen=True)
class TriggeredAbility:
    """An effect that fires when its trigger event happens."""
    trigger: TriggerEvent
    effect: Effect
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger": self.trigger.value,
            "description": self.description,
            "effect": self.effect.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TriggeredAbility:
        return cls(
            trigger=TriggerEvent(data["trigger"]),
            effect=Effect.from_dict(data.get("effect", {})),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class AttackTargeting:
    """
    Restrictions on what a creature may attack.

    Unset flags allow the kind; the default is any enemy player,
    creature or artifact.
    """
    can_target_players: bool | None = None
    can_target_creatures: bool | None = None
    can_target_artifacts: bool | None = None
    restricted_types: tuple[TargetKind, ...] | None = None
    description: str | None = None

    def to_selector(self, source_id: str | None = None) -> TargetSelector:
        return TargetSelector(
            target_count=1,
            target_type=TargetType.ANY,
            can_target_self=False,
            can_target_players=self.can_target_players,
            can_target_creatures=self.can_target_creatures,
            can_target_artifacts=self.can_target_artifacts,
            restricted_types=self.restricted_types,
            description=self.description or "Choose a target to attack",
            source_id=source_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_target_players": self.can_target_players,
            "can_target_creatures": self.can_target_creatures,
            "can_target_artifacts": self.can_target_artifacts,
            "restricted_types": (
                [kind.value for kind in self.restricted_types]
                if self.restricted_types is not None else None
            ),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttackTargeting:
        restricted = data.get("restricted_types")
        return cls(
            can_target_players=data.get("can_target_players"),
            can_target_creatures=data.get("can_target_creatures"),
            can_target_artifacts=data.get("can_target_artifacts"),
            restricted_types=(
                tuple(TargetKind(kind) for kind in restricted)
                if restricted is not None else None
            ),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class CardDefinition:
    """
    A card in the catalog.

    Note: This is the definition, not a runtime instance.
    Instances reference it by card_id.
    """
    card_id: str
    name: str
    kind: CardKind
    cost: int = 0
    attack: int | None = None
    health: int | None = None
    description: str = ""
    triggered_abilities: tuple[TriggeredAbility, ...] = ()
    spell_effect: Effect | None = None
    attack_targeting: AttackTargeting | None = None

    @property
    def is_creature(self) -> bool:
        return self.kind == CardKind.CREATURE

    @property
    def is_spell(self) -> bool:
        return self.kind == CardKind.SPELL

    @property
    def is_artifact(self) -> bool:
        return self.kind == CardKind.ARTIFACT

    @property
    def attack_value(self) -> int:
        return self.attack or 0

    @property
    def entry_health(self) -> int:
        """Health an instance enters the battlefield with."""
        return self.health or 1

    def abilities_for(self, event: TriggerEvent) -> list[TriggeredAbility]:
        """Get the triggered abilities matching an event, in card order."""
        return [a for a in self.triggered_abilities if a.trigger == event]

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "name": self.name,
            "kind": self.kind.value,
            "cost": self.cost,
            "attack": self.attack,
            "health": self.health,
            "description": self.description,
            "triggered_abilities": [a.to_dict() for a in self.triggered_abilities],
            "spell_effect": self.spell_effect.to_dict() if self.spell_effect else None,
            "attack_targeting": (
                self.attack_targeting.to_dict() if self.attack_targeting else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CardDefinition:
        spell_effect = data.get("spell_effect")
        attack_targeting = data.get("attack_targeting")
        return cls(
            card_id=data["card_id"],
            name=data["name"],
            kind=CardKind(data["kind"]),
            cost=int(data.get("cost", 0)),
            attack=data.get("attack"),
            health=data.get("health"),
            description=data.get("description", ""),
            triggered_abilities=tuple(
                TriggeredAbility.from_dict(a) for a in data.get("triggered_abilities", [])
            ),
            spell_effect=Effect.from_dict(spell_effect) if spell_effect else None,
            attack_targeting=(
                AttackTargeting.from_dict(attack_targeting) if attack_targeting else None
            ),
        )


@dataclass(frozen=True)
class DeckEntry:
    """A definition and how many copies of it a deck holds."""
    card_id: str
    quantity: int = 1


@dataclass
class DeckList:
    """
    A deck document, stored in the document store.

    Expanded into unique instances when a game starts with it.
    """
    deck_id: str
    name: str
    entries: list[DeckEntry] = field(default_factory=list)

    @property
    def size(self) -> int:
        return sum(entry.quantity for entry in self.entries)

    def card_ids(self) -> list[str]:
        """Expand quantities into one definition id per copy, in entry order."""
        expanded: list[str] = []
        for entry in self.entries:
            expanded.extend([entry.card_id] * entry.quantity)
        return expanded
