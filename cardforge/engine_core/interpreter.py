"""
Effect Interpreter - Runs DSL effects against a capability-scoped API.

This module handles:
- Walking effect steps in order
- Resolving target references against the invocation's snapshot
- Awaiting target selection (the only suspension point)
- Conditionals, loops and variables

The interpreter never touches the game document. Every mutation goes into
the API's private queue. An invocation either succeeds with its whole
queue, or fails with nothing: a FAIL step, an empty mandatory selection or
any exception discards the queue.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
import logging
import re

from ..catalog.effect_dsl import Effect, EffectStep, StepType, Target, TargetKind
from ..errors import EffectExecutionError
from .effect_api import SpellEffectAPI
from .expression import ExpressionContext, ExpressionEvaluator
from .operations import Operation

logger = logging.getLogger(__name__)


@dataclass
class InvocationResult:
    """Outcome of running one effect invocation."""
    success: bool
    operations: list[Operation] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def succeeded(cls, operations: list[Operation]) -> InvocationResult:
        return cls(success=True, operations=operations)

    @classmethod
    def failed(cls, error: str) -> InvocationResult:
        return cls(success=False, error=error)


@dataclass
class StepResult:
    """Result of resolving a single step."""
    ok: bool = True
    reason: str | None = None

    @classmethod
    def failure(cls, reason: str) -> StepResult:
        return cls(ok=False, reason=reason)


@dataclass
class _Frame:
    """Per-invocation interpreter state."""
    api: SpellEffectAPI
    expressions: ExpressionContext
    steps_run: int = 0


class EffectInterpreter:
    """
    Interprets effects.

    Stateless between invocations; one interpreter can serve a whole game.
    """

    def __init__(self, evaluator: ExpressionEvaluator | None = None, max_steps: int = 500):
        self.evaluator = evaluator or ExpressionEvaluator()
        self.max_steps = max_steps

    async def execute(
        self,
        effect: Effect,
        api: SpellEffectAPI,
        label: str | None = None,
    ) -> InvocationResult:
        """
        Run an effect to completion.

        Args:
            effect: The effect to run
            api: The invocation's API; its queue holds the result
            label: Name used in diagnostics

        Returns:
            InvocationResult with the queued operations on success
        """
        label = label or effect.name or effect.effect_id
        frame = _Frame(api=api, expressions=self._expression_context(api))
        frame.expressions.resolve_reference = lambda name: self._resolve_reference(name, frame)

        try:
            result = await self._run_steps(effect.steps, frame)
        except Exception as e:
            api.discard()
            logger.warning("Effect %s raised %s: %s", label, type(e).__name__, e)
            return InvocationResult.failed(str(e) or type(e).__name__)

        if not result.ok:
            api.discard()
            logger.info("Effect %s failed: %s", label, result.reason)
            return InvocationResult.failed(result.reason or "Effect failed")

        return InvocationResult.succeeded(api.operations)

    def _expression_context(self, api: SpellEffectAPI) -> ExpressionContext:
        return ExpressionContext(
            game_state=api.state,
            caster_id=api.caster_id,
            trigger=api.trigger_context,
            source_instance_id=api.source_instance_id,
        )

    async def _run_steps(self, steps: list[EffectStep], frame: _Frame) -> StepResult:
        for step in steps:
            frame.steps_run += 1
            if frame.steps_run > self.max_steps:
                raise EffectExecutionError(f"Effect exceeded {self.max_steps} steps")
            result = await self._resolve_step(step, frame)
            if not result.ok:
                return result
        return StepResult()

    async def _resolve_step(self, step: EffectStep, frame: _Frame) -> StepResult:
        """
        Resolve a single effect step.

        Returns StepResult indicating outcome.
        """
        handlers: dict[StepType, Callable[[EffectStep, _Frame], Awaitable[StepResult]]] = {
            StepType.DEAL_DAMAGE: self._step_deal_damage,
            StepType.HEAL: self._step_heal,
            StepType.DESTROY: self._step_destroy,
            StepType.LOG: self._step_log,
            StepType.DRAW_CARD: self._step_draw_card,
            StepType.GAIN_ENERGY: self._step_gain_energy,
            StepType.SELECT_TARGETS: self._step_select_targets,
            StepType.SET_VARIABLE: self._step_set_variable,
            StepType.CONDITIONAL: self._step_conditional,
            StepType.FOR_EACH: self._step_for_each,
            StepType.FAIL: self._step_fail,
        }
        return await handlers[step.step_type](step, frame)

    # =========================================================================
    # Mutation steps
    # =========================================================================

    async def _step_deal_damage(self, step: EffectStep, frame: _Frame) -> StepResult:
        amount = self._amount(step, frame)
        for target in self._step_targets(step, frame):
            if target.is_player:
                frame.api.deal_damage_to_player(target.player_id, amount)
            else:
                frame.api.deal_damage_to_creature(target.player_id, target.instance_id, amount)
        return StepResult()

    async def _step_heal(self, step: EffectStep, frame: _Frame) -> StepResult:
        amount = self._amount(step, frame)
        for target in self._step_targets(step, frame):
            if target.is_player:
                frame.api.heal_player(target.player_id, amount)
            else:
                frame.api.heal_creature(target.player_id, target.instance_id, amount)
        return StepResult()

    async def _step_destroy(self, step: EffectStep, frame: _Frame) -> StepResult:
        for target in self._step_targets(step, frame):
            if target.is_player:
                raise EffectExecutionError(f"Step '{step.step_id}' cannot destroy a player")
            frame.api.destroy_creature(target.player_id, target.instance_id)
        return StepResult()

    async def _step_log(self, step: EffectStep, frame: _Frame) -> StepResult:
        message = str(step.params.get("message", ""))
        frame.api.log(self._format_message(message, frame))
        return StepResult()

    async def _step_draw_card(self, step: EffectStep, frame: _Frame) -> StepResult:
        count = self.evaluator.evaluate_int(step.params.get("count", 1), frame.expressions)
        for _ in range(max(0, count)):
            frame.api.draw_card()
        return StepResult()

    async def _step_gain_energy(self, step: EffectStep, frame: _Frame) -> StepResult:
        frame.api.gain_energy(self._amount(step, frame))
        return StepResult()

    # =========================================================================
    # Choice and control flow
    # =========================================================================

    async def _step_select_targets(self, step: EffectStep, frame: _Frame) -> StepResult:
        if step.selector is None:
            raise EffectExecutionError(f"Select step '{step.step_id}' has no selector")

        targets = await frame.api.select_targets(step.selector)
        if not targets and not step.selector.optional:
            return StepResult.failure("No valid targets selected")

        frame.expressions.set_variable(step.params.get("store_as", "targets"), targets)
        return StepResult()

    async def _step_set_variable(self, step: EffectStep, frame: _Frame) -> StepResult:
        name = step.params.get("name")
        if not name:
            raise EffectExecutionError(f"Set-variable step '{step.step_id}' has no name")
        value = self.evaluator.evaluate(step.params.get("value"), frame.expressions)
        frame.expressions.set_variable(name, value)
        return StepResult()

    async def _step_conditional(self, step: EffectStep, frame: _Frame) -> StepResult:
        """Handle conditional step."""
        if step.condition is None:
            raise EffectExecutionError(f"Conditional step '{step.step_id}' has no condition")

        if self.evaluator.evaluate_condition(step.condition.expression, frame.expressions):
            return await self._run_steps(step.then_steps, frame)
        return await self._run_steps(step.else_steps, frame)

    async def _step_for_each(self, step: EffectStep, frame: _Frame) -> StepResult:
        """
        Handle for-each loop step.

        Binds each target of the source to the loop variable in turn.
        """
        loop_var = step.loop_variable or "item"
        if not step.loop_source:
            raise EffectExecutionError(f"For-each step '{step.step_id}' has no loop_source")

        items = self._resolve_reference(step.loop_source, frame)
        max_iterations = step.max_iterations or 100
        previous = frame.expressions.variables.get(loop_var)

        for item in items[:max_iterations]:
            frame.expressions.set_variable(loop_var, item)
            result = await self._run_steps(step.loop_steps, frame)
            if not result.ok:
                return result

        if previous is None:
            frame.expressions.variables.pop(loop_var, None)
        else:
            frame.expressions.set_variable(loop_var, previous)
        return StepResult()

    async def _step_fail(self, step: EffectStep, frame: _Frame) -> StepResult:
        return StepResult.failure(step.params.get("reason") or "Effect failed")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _amount(self, step: EffectStep, frame: _Frame) -> int:
        if "amount" not in step.params:
            raise EffectExecutionError(f"Step '{step.step_id}' has no amount")
        amount = self.evaluator.evaluate_int(step.params["amount"], frame.expressions)
        return max(0, amount)

    def _step_targets(self, step: EffectStep, frame: _Frame) -> list[Target]:
        if not step.target:
            raise EffectExecutionError(f"Step '{step.step_id}' has no target")
        return self._resolve_reference(step.target, frame)

    def _resolve_reference(self, reference: str, frame: _Frame) -> list[Target]:
        """Turn a target reference into concrete targets on the snapshot."""
        state = frame.api.state
        caster = frame.api.caster_id

        if reference.startswith("$"):
            value = frame.expressions.get_variable(reference)
            if isinstance(value, Target):
                return [value]
            if isinstance(value, (list, tuple)) and all(isinstance(v, Target) for v in value):
                return list(value)
            raise EffectExecutionError(f"Variable {reference} does not hold targets")

        def units(players, creatures_only: bool) -> list[Target]:
            found = []
            for player in players:
                for instance in player.battlefield:
                    if creatures_only and not instance.is_creature:
                        continue
                    found.append(
                        Target(instance.kind.target_kind, player.player_id, instance.instance_id)
                    )
            return found

        own = [p for p in state.players if p.player_id == caster]
        enemies = state.opponents_of(caster)

        if reference == "self":
            return [Target(TargetKind.PLAYER, caster)]
        if reference == "opponents":
            return [Target(TargetKind.PLAYER, p.player_id) for p in enemies]
        if reference == "all_players":
            return [Target(TargetKind.PLAYER, p.player_id) for p in state.players]
        if reference == "own_creatures":
            return units(own, creatures_only=True)
        if reference == "enemy_creatures":
            return units(enemies, creatures_only=True)
        if reference == "all_creatures":
            return units(state.players, creatures_only=True)
        if reference == "own_units":
            return units(own, creatures_only=False)
        if reference == "enemy_units":
            return units(enemies, creatures_only=False)
        if reference == "source":
            source_id = frame.api.source_instance_id
            found = state.find_instance(source_id) if source_id else None
            if found is None:
                raise EffectExecutionError("Effect has no source instance")
            owner, instance = found
            return [Target(instance.kind.target_kind, owner.player_id, instance.instance_id)]
        if reference == "damage_target":
            context = frame.api.trigger_context
            if context is None or context.damage_target is None:
                raise EffectExecutionError("Effect has no damage target")
            return [context.damage_target]

        raise EffectExecutionError(f"Unknown target reference {reference!r}")

    def _format_message(self, message: str, frame: _Frame) -> str:
        """Fill {name} placeholders from variables and the trigger context."""
        values: dict[str, Any] = {}
        context = frame.api.trigger_context
        if context is not None:
            values["damage_amount"] = context.damage_amount
        values.update(frame.expressions.variables)

        def substitute(match: re.Match) -> str:
            key = match.group(1)
            if key not in values:
                return match.group(0)
            value = values[key]
            if isinstance(value, list):
                return str(len(value))
            return str(value)

        return re.sub(r"\{(\w+)\}", substitute, message)
