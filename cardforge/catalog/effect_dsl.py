"""
Effect DSL - Typed, step-based effects for spells and triggered abilities.

Card designers describe what a spell or ability does as data, never as code.
The interpreter walks the steps and queues Operations through a
capability-scoped API; nothing here can touch game state directly.

Effects are:
- Step-based: each step is one queued mutation or one control-flow node
- Closed: only the StepType members below exist
- Serializable: effects round-trip through plain dicts for JSON catalogs
- Deterministic: given the same state and target choices, the same
  operations are queued

Target references (the `target` field of a step, or a FOR_EACH source):
    "self"            the caster / owning player
    "opponents"       every other player
    "all_players"     every player, in seat order
    "source"          the instance that owns a triggered ability
    "damage_target"   the target carried by a deal_damage/take_damage trigger
    "own_creatures"   creatures on the caster's battlefield
    "enemy_creatures" creatures on every other battlefield
    "all_creatures"   creatures on every battlefield
    "own_units"       creatures and artifacts on the caster's battlefield
    "enemy_units"     creatures and artifacts on every other battlefield
    "$name"           a variable bound by SELECT_TARGETS, SET_VARIABLE or FOR_EACH
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StepType(Enum):
    """Types of effect steps."""
    # Queued mutations
    DEAL_DAMAGE = "deal_damage"
    HEAL = "heal"
    DESTROY = "destroy"
    LOG = "log"

    # Owner-only mutations (triggered abilities)
    DRAW_CARD = "draw_card"
    GAIN_ENERGY = "gain_energy"

    # Player choices
    SELECT_TARGETS = "select_targets"

    # Control flow
    SET_VARIABLE = "set_variable"
    CONDITIONAL = "conditional"
    FOR_EACH = "for_each"
    FAIL = "fail"


class TargetType(Enum):
    """Kinds of target a selector may ask for."""
    ANY = "any"
    PLAYER = "player"
    CREATURE = "creature"
    ARTIFACT = "artifact"


class TargetKind(Enum):
    """Kinds of concrete target."""
    PLAYER = "player"
    CREATURE = "creature"
    ARTIFACT = "artifact"


@dataclass(frozen=True)
class Target:
    """
    A concrete target: a player, or a unit on a player's battlefield.

    Examples:
        Target(TargetKind.PLAYER, "alice")
        Target(TargetKind.CREATURE, "bob", "inst_4_a1b2c3")
    """
    kind: TargetKind
    player_id: str
    instance_id: str | None = None

    @property
    def is_player(self) -> bool:
        return self.kind == TargetKind.PLAYER

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "player_id": self.player_id,
            "instance_id": self.instance_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Target:
        return cls(
            kind=TargetKind(data.get("kind", data.get("type"))),
            player_id=data["player_id"],
            instance_id=data.get("instance_id"),
        )


@dataclass
class TargetSelector:
    """
    Describes which targets an effect or attack may choose.

    Permission flags left as None fall back to the target_type filter:
    a flag only narrows the selection when it is explicitly False.

    Examples:
    - TargetSelector(target_type=TargetType.ANY, description="Deal 3 damage")
    - TargetSelector(target_type=TargetType.CREATURE, can_target_self=False)
    - TargetSelector(target_type=TargetType.ARTIFACT, auto_target=True)
    """
    target_count: int = 1
    target_type: TargetType = TargetType.ANY
    can_target_self: bool | None = None
    can_target_players: bool | None = None
    can_target_creatures: bool | None = None
    can_target_artifacts: bool | None = None
    restricted_types: tuple[TargetKind, ...] | None = None
    description: str = ""
    auto_target: bool = False
    source_id: str | None = None
    optional: bool = False

    # Legal targets offered to the chooser; filled in when a selection is requested
    candidates: tuple[Target, ...] = ()

    def allows_kind(self, kind: TargetKind) -> bool:
        """
        Check the kind filter, the permission flags and the allow-list.

        restricted_types only narrows units; players answer to
        can_target_players alone.
        """
        if self.target_type != TargetType.ANY and self.target_type.value != kind.value:
            return False
        flags = {
            TargetKind.PLAYER: self.can_target_players,
            TargetKind.CREATURE: self.can_target_creatures,
            TargetKind.ARTIFACT: self.can_target_artifacts,
        }
        if flags[kind] is False:
            return False
        if (
            kind != TargetKind.PLAYER
            and self.restricted_types is not None
            and kind not in self.restricted_types
        ):
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_count": self.target_count,
            "target_type": self.target_type.value,
            "can_target_self": self.can_target_self,
            "can_target_players": self.can_target_players,
            "can_target_creatures": self.can_target_creatures,
            "can_target_artifacts": self.can_target_artifacts,
            "restricted_types": (
                [kind.value for kind in self.restricted_types]
                if self.restricted_types is not None else None
            ),
            "description": self.description,
            "auto_target": self.auto_target,
            "optional": self.optional,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TargetSelector:
        restricted = data.get("restricted_types")
        return cls(
            target_count=int(data.get("target_count", 1)),
            target_type=TargetType(data.get("target_type", "any")),
            can_target_self=data.get("can_target_self"),
            can_target_players=data.get("can_target_players"),
            can_target_creatures=data.get("can_target_creatures"),
            can_target_artifacts=data.get("can_target_artifacts"),
            restricted_types=(
                tuple(TargetKind(kind) for kind in restricted)
                if restricted is not None else None
            ),
            description=data.get("description", ""),
            auto_target=bool(data.get("auto_target", False)),
            optional=bool(data.get("optional", False)),
        )


@dataclass
class Condition:
    """
    A condition evaluated against the effect's read-only view.

    Expression syntax supports:
    - Comparisons: ==, !=, <, >, <=, >=
    - Boolean: and, or, not
    - Arithmetic: +, -, *
    - Accessors: caster.health, opponent.energy, context.damage_amount
    - Functions: count(), min(), max(), abs()
    """
    expression: Any
    description: str = ""


@dataclass
class EffectStep:
    """
    A single step in an effect.

    Design principle: each step should be:
    - Independently testable
    - Deterministic given state + target choices
    - Free of direct state access (mutations are queued)
    """
    step_type: StepType
    step_id: str  # Unique within the effect for debugging/logging

    # Target reference (see module docstring)
    target: str | None = None

    # Parameters (interpretation depends on step_type)
    params: dict[str, Any] = field(default_factory=dict)

    # For SELECT_TARGETS
    selector: TargetSelector | None = None

    # For conditional steps
    condition: Condition | None = None
    then_steps: list[EffectStep] = field(default_factory=list)
    else_steps: list[EffectStep] = field(default_factory=list)

    # For loop steps
    loop_variable: str | None = None
    loop_source: str | None = None
    loop_steps: list[EffectStep] = field(default_factory=list)
    max_iterations: int | None = None  # Safety bound

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.step_type.value, "id": self.step_id}
        if self.target is not None:
            data["target"] = self.target
        data.update(self.params)
        if self.selector is not None:
            data["selector"] = self.selector.to_dict()
        if self.condition is not None:
            data["condition"] = self.condition.expression
        if self.then_steps:
            data["then"] = [step.to_dict() for step in self.then_steps]
        if self.else_steps:
            data["else"] = [step.to_dict() for step in self.else_steps]
        if self.loop_variable is not None:
            data["loop_variable"] = self.loop_variable
        if self.loop_source is not None:
            data["loop_source"] = self.loop_source
        if self.loop_steps:
            data["steps"] = [step.to_dict() for step in self.loop_steps]
        if self.max_iterations is not None:
            data["max_iterations"] = self.max_iterations
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> EffectStep:
        structural = {
            "type", "id", "target", "selector", "condition", "then", "else",
            "loop_variable", "loop_source", "steps", "max_iterations",
        }
        try:
            step_type = StepType(data["type"])
        except (KeyError, ValueError):
            raise ValueError(f"Unknown step type: {data.get('type')!r}")

        selector = data.get("selector")
        condition = data.get("condition")
        return cls(
            step_type=step_type,
            step_id=data.get("id", f"step_{index}"),
            target=data.get("target"),
            params={k: v for k, v in data.items() if k not in structural},
            selector=TargetSelector.from_dict(selector) if selector is not None else None,
            condition=Condition(expression=condition) if condition is not None else None,
            then_steps=_steps_from_list(data.get("then", [])),
            else_steps=_steps_from_list(data.get("else", [])),
            loop_variable=data.get("loop_variable"),
            loop_source=data.get("loop_source"),
            loop_steps=_steps_from_list(data.get("steps", [])),
            max_iterations=data.get("max_iterations"),
        )


@dataclass
class Effect:
    """
    A complete spell effect or triggered-ability body.

    The interpreter runs the steps in order. Reaching the end means
    success; a FAIL step (or an empty target selection) means failure.
    """
    effect_id: str
    name: str
    description: str = ""
    steps: list[EffectStep] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "effect_id": self.effect_id,
            "name": self.name,
            "description": self.description,
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Effect:
        return cls(
            effect_id=data.get("effect_id", data.get("name", "effect")),
            name=data.get("name", ""),
            description=data.get("description", ""),
            steps=_steps_from_list(data.get("steps", [])),
        )


def _steps_from_list(items: list[dict[str, Any]]) -> list[EffectStep]:
    return [EffectStep.from_dict(item, index) for index, item in enumerate(items)]


# ============================================================================
# Factory functions for common effect patterns
# ============================================================================

def select_targets_step(
    step_id: str,
    selector: TargetSelector,
    store_as: str = "targets",
) -> EffectStep:
    """Create a target selection step; the result is bound to $store_as."""
    return EffectStep(
        step_type=StepType.SELECT_TARGETS,
        step_id=step_id,
        selector=selector,
        params={"store_as": store_as},
    )


def deal_damage_step(step_id: str, target: str, amount: Any) -> EffectStep:
    """Create a damage step against players or units."""
    return EffectStep(
        step_type=StepType.DEAL_DAMAGE,
        step_id=step_id,
        target=target,
        params={"amount": amount},
    )


def heal_step(step_id: str, target: str, amount: Any) -> EffectStep:
    """Create a heal step for players or creatures."""
    return EffectStep(
        step_type=StepType.HEAL,
        step_id=step_id,
        target=target,
        params={"amount": amount},
    )


def destroy_step(step_id: str, target: str) -> EffectStep:
    """Create a destroy step for units."""
    return EffectStep(step_type=StepType.DESTROY, step_id=step_id, target=target)


def log_step(step_id: str, message: str) -> EffectStep:
    """Create a log step. {placeholders} are filled from variables."""
    return EffectStep(
        step_type=StepType.LOG,
        step_id=step_id,
        params={"message": message},
    )


def draw_card_step(step_id: str, count: Any = 1) -> EffectStep:
    """Create a draw step for the ability's owner."""
    return EffectStep(
        step_type=StepType.DRAW_CARD,
        step_id=step_id,
        params={"count": count},
    )


def gain_energy_step(step_id: str, amount: Any = 1) -> EffectStep:
    """Create an energy gain step for the ability's owner."""
    return EffectStep(
        step_type=StepType.GAIN_ENERGY,
        step_id=step_id,
        params={"amount": amount},
    )


def set_variable_step(step_id: str, name: str, value: Any) -> EffectStep:
    """Create a step binding $name to an evaluated expression."""
    return EffectStep(
        step_type=StepType.SET_VARIABLE,
        step_id=step_id,
        params={"name": name, "value": value},
    )


def conditional_step(
    step_id: str,
    condition_expr: Any,
    then_steps: list[EffectStep],
    else_steps: list[EffectStep] | None = None,
) -> EffectStep:
    """Create a conditional step."""
    return EffectStep(
        step_type=StepType.CONDITIONAL,
        step_id=step_id,
        condition=Condition(expression=condition_expr),
        then_steps=then_steps,
        else_steps=else_steps or [],
    )


def for_each_step(
    step_id: str,
    loop_var: str,
    source: str,
    steps: list[EffectStep],
    max_iterations: int = 100,
) -> EffectStep:
    """Create a for-each loop over a target reference."""
    return EffectStep(
        step_type=StepType.FOR_EACH,
        step_id=step_id,
        loop_variable=loop_var,
        loop_source=source,
        loop_steps=steps,
        max_iterations=max_iterations,
    )


def fail_step(step_id: str, reason: str = "") -> EffectStep:
    """Create a step that ends the effect as failed."""
    return EffectStep(
        step_type=StepType.FAIL,
        step_id=step_id,
        params={"reason": reason},
    )
