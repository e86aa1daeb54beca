"""
Targeting - Enumerates and validates legal targets.

The same checks serve three callers:
- effects asking the Target Selector for a choice (candidates are offered,
  answers are re-validated)
- attacks, whose target comes straight from the client
- auto-targeting, which only resolves when exactly one candidate exists

source_id is always a player id: the caster of a spell, the owner of an
ability or the attacking player. The self/enemy rule is relative to it.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Iterable

from ..catalog.cards import CardDefinition
from ..catalog.effect_dsl import Target, TargetKind, TargetSelector, TargetType
from .state import GameSession

# The collaborator that answers selections: async (selector) -> targets
TargetSelectorFn = Callable[[TargetSelector], Awaitable[list[Target]]]


@dataclass
class TargetValidation:
    """Outcome of validating a single target."""
    is_valid: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> TargetValidation:
        return cls(is_valid=True)

    @classmethod
    def fail(cls, reason: str) -> TargetValidation:
        return cls(is_valid=False, reason=reason)


def get_valid_targets(
    selector: TargetSelector,
    state: GameSession,
    source_id: str | None = None,
) -> list[Target]:
    """
    Enumerate every legal target, players first, then units per seat
    in battlefield order.
    """
    source = source_id or selector.source_id
    targets: list[Target] = []

    if selector.allows_kind(TargetKind.PLAYER):
        for player in state.players:
            if selector.can_target_self is False and player.player_id == source:
                continue
            targets.append(Target(TargetKind.PLAYER, player.player_id))

    for player in state.players:
        if selector.can_target_self is False and player.player_id == source:
            continue
        for instance in player.battlefield:
            kind = instance.kind.target_kind
            if kind is not None and selector.allows_kind(kind):
                targets.append(Target(kind, player.player_id, instance.instance_id))

    return targets


def validate_target(
    target: Target,
    selector: TargetSelector,
    state: GameSession,
    source_id: str | None = None,
) -> TargetValidation:
    """Re-check a single target against the selector and the current state."""
    source = source_id or selector.source_id
    owner = state.get_player(target.player_id)
    if owner is None:
        return TargetValidation.fail("Player not found in game")

    if target.is_player:
        if not selector.allows_kind(TargetKind.PLAYER):
            return TargetValidation.fail("Target type not allowed")
        if selector.can_target_self is False and target.player_id == source:
            return TargetValidation.fail("Cannot target self")
        return TargetValidation.ok()

    instance = owner.get_instance(target.instance_id) if target.instance_id else None
    if instance is None:
        return TargetValidation.fail("Creature not found on battlefield")
    if instance.kind.target_kind != target.kind:
        return TargetValidation.fail("Card type mismatch")
    if not selector.allows_kind(target.kind):
        return TargetValidation.fail("Target type not allowed")
    if selector.can_target_self is False and target.player_id == source:
        return TargetValidation.fail("Cannot target your own units")
    return TargetValidation.ok()


def get_auto_targets(
    selector: TargetSelector,
    state: GameSession,
    source_id: str | None = None,
) -> list[Target] | None:
    """
    Resolve a selection without asking anyone.

    Only single-target selectors marked auto_target with exactly one
    candidate resolve; anything ambiguous returns None.
    """
    if not selector.auto_target or selector.target_count != 1:
        return None
    candidates = get_valid_targets(selector, state, source_id)
    if len(candidates) != 1:
        return None
    return candidates


def filter_selection(
    targets: Iterable[Target],
    selector: TargetSelector,
    state: GameSession,
    source_id: str | None = None,
) -> list[Target]:
    """Keep the valid, distinct targets of an answer, up to target_count."""
    accepted: list[Target] = []
    for target in targets:
        if target in accepted:
            continue
        if validate_target(target, selector, state, source_id).is_valid:
            accepted.append(target)
        if len(accepted) >= selector.target_count:
            break
    return accepted


def selector_for_attack(definition: CardDefinition, source_id: str) -> TargetSelector:
    """Build the selector describing what a creature may attack."""
    if definition.attack_targeting is not None:
        return definition.attack_targeting.to_selector(source_id)
    return TargetSelector(
        target_count=1,
        target_type=TargetType.ANY,
        can_target_self=False,
        can_target_players=True,
        can_target_creatures=True,
        can_target_artifacts=True,
        description="Choose a target to attack",
        source_id=source_id,
    )


def with_candidates(
    selector: TargetSelector,
    state: GameSession,
    source_id: str,
) -> TargetSelector:
    """Re-scope a selector to a source and attach its legal candidates."""
    scoped = replace(selector, source_id=source_id)
    return replace(scoped, candidates=tuple(get_valid_targets(scoped, state, source_id)))


# =============================================================================
# Target Selector implementations
# =============================================================================

class PresetTargetSelector:
    """
    Answers selections from targets supplied up front (HTTP requests).

    Each selection takes the unused preset targets its selector allows,
    in the order they were supplied.
    """

    def __init__(self, targets: Iterable[Target] = ()):
        self._remaining = list(targets)

    async def __call__(self, selector: TargetSelector) -> list[Target]:
        chosen: list[Target] = []
        for target in list(self._remaining):
            if len(chosen) >= selector.target_count:
                break
            if selector.allows_kind(target.kind):
                chosen.append(target)
                self._remaining.remove(target)
        return chosen


class FirstLegalTargetSelector:
    """
    Picks the first legal candidates, preferring enemy targets.

    Deterministic; used by the simulation and by tests.
    """

    async def __call__(self, selector: TargetSelector) -> list[Target]:
        enemies = [t for t in selector.candidates if t.player_id != selector.source_id]
        friends = [t for t in selector.candidates if t.player_id == selector.source_id]
        return (enemies + friends)[:selector.target_count]


async def no_targets(selector: TargetSelector) -> list[Target]:
    """Selector for callers that cannot answer; every selection comes back empty."""
    return []
