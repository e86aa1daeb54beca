"""
Minimal Expression Evaluator for the Effect DSL.

Evaluates expressions used in effect steps for conditions and amounts.

Supports:
- Literals: integers, strings, booleans
- Property access: caster.health, opponent.energy, context.damage_amount
- Comparisons: ==, !=, <, >, <=, >=
- Boolean operators: and, or, not
- Simple arithmetic: +, -, *, / (integer division)
- Functions: count(), min(), max(), abs()

Roots available to property paths:
    caster / self   the PlayerState of the caster or ability owner
    opponent        the first opponent in seat order
    game            the read-only GameSession snapshot
    context         the trigger context (damage_target, damage_amount)
    source          the CardInstance owning a triggered ability
    <variable>      anything bound during the effect ("$" prefix optional)

Expression syntax is intentionally simple - no full parser needed.
Uses JSON AST format for complex expressions. Only public attributes can
be read; anything unresolvable raises ExpressionError.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, TYPE_CHECKING
import re

from ..errors import ExpressionError

if TYPE_CHECKING:
    from .state import GameSession, PlayerState


@dataclass
class ExpressionContext:
    """
    Context for evaluating expressions.

    Provides access to:
    - The read-only game snapshot
    - The caster (or ability owner)
    - Variables bound during the effect
    - The trigger context and source instance for triggered abilities
    """
    game_state: GameSession
    caster_id: str
    variables: dict[str, Any] = field(default_factory=dict)
    trigger: Any | None = None  # TriggerContext
    source_instance_id: str | None = None
    resolve_reference: Callable[[str], Any] | None = None  # target references such as "enemy_creatures"

    def get_player(self, player_id: str | None = None) -> PlayerState | None:
        """Get a player by ID, or the caster if None."""
        pid = player_id or self.caster_id
        return self.game_state.get_player(pid)

    def get_variable(self, name: str) -> Any:
        """Get a variable value."""
        return self.variables.get(name.lstrip("$"))

    def set_variable(self, name: str, value: Any):
        """Set a variable value."""
        self.variables[name.lstrip("$")] = value


class ExpressionEvaluator:
    """
    Evaluates DSL expressions.

    Expressions can be:
    - Simple values: 3, "red", true
    - Property paths: caster.health, context.damage_amount
    - Comparisons: caster.health < 10
    - Boolean: count(enemy_creatures) > 0 and caster.energy >= 2
    - Arithmetic: context.damage_amount + 1
    """

    _INT_LITERAL = re.compile(r"-?\d+")
    _CALL = re.compile(r"(\w+)\((.*)\)")

    def evaluate(self, expr: str | int | bool | dict, context: ExpressionContext) -> Any:
        """
        Evaluate an expression.

        Args:
            expr: Expression string, literal, or JSON AST
            context: Evaluation context

        Returns:
            Evaluated value
        """
        # Handle literals
        if isinstance(expr, (int, float, bool)) or expr is None:
            return expr

        if isinstance(expr, dict):
            return self._evaluate_ast(expr, context)

        if not isinstance(expr, str):
            return expr

        expr = expr.strip()
        if not expr:
            raise ExpressionError("Empty expression")

        # Try literal parsing
        if self._INT_LITERAL.fullmatch(expr):
            return int(expr)

        if len(expr) >= 2 and expr[0] == expr[-1] and expr[0] in "\"'":
            return expr[1:-1]

        if expr.lower() == "true":
            return True
        if expr.lower() == "false":
            return False

        # Boolean operators bind loosest
        if re.search(r"\s+or\s+", expr, flags=re.IGNORECASE):
            parts = re.split(r"\s+or\s+", expr, flags=re.IGNORECASE)
            return any(self.evaluate(p, context) for p in parts)

        if re.search(r"\s+and\s+", expr, flags=re.IGNORECASE):
            parts = re.split(r"\s+and\s+", expr, flags=re.IGNORECASE)
            return all(self.evaluate(p, context) for p in parts)

        if expr.lower().startswith("not "):
            return not self.evaluate(expr[4:], context)

        # Comparisons
        for op in [">=", "<=", "==", "!=", ">", "<"]:
            if op in expr:
                left, right = expr.split(op, 1)
                return self._compare(
                    self.evaluate(left, context), self.evaluate(right, context), op
                )

        # Arithmetic, left-associative; * and / bind tighter than + and -
        for ops in ("+-", "*/"):
            index = self._top_level_index(expr, ops)
            if index > 0:
                left = self.evaluate(expr[:index], context)
                right = self.evaluate(expr[index + 1:], context)
                return self._arithmetic(left, right, expr[index])

        # Function calls
        func_match = self._CALL.fullmatch(expr)
        if func_match:
            args = [a for a in func_match.group(2).split(",") if a.strip()]
            values = [self.evaluate(a, context) for a in args]
            return self._call_function(func_match.group(1), values)

        # Property access
        return self._resolve_property(expr, context)

    def evaluate_condition(self, expr: str | dict, context: ExpressionContext) -> bool:
        """Evaluate an expression as a boolean condition."""
        return bool(self.evaluate(expr, context))

    def evaluate_int(self, expr: str | int | dict, context: ExpressionContext) -> int:
        """Evaluate an expression that must produce a whole number."""
        value = self.evaluate(expr, context)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ExpressionError(f"Expected a number from {expr!r}, got {value!r}")
        return int(value)

    @staticmethod
    def _top_level_index(expr: str, ops: str) -> int:
        """Rightmost binary operator from `ops` outside parentheses, or -1."""
        depth = 0
        for index in range(len(expr) - 1, -1, -1):
            char = expr[index]
            if char == ")":
                depth += 1
            elif char == "(":
                depth -= 1
            elif char in ops and depth == 0:
                previous = expr[:index].rstrip()
                if char == "-" and (not previous or previous[-1] in "+-*/(,"):
                    continue  # unary minus
                return index
        return -1

    def _compare(self, left: Any, right: Any, op: str) -> bool:
        """Perform comparison operation."""
        try:
            if op == "==":
                return left == right
            elif op == "!=":
                return left != right
            elif op == "<":
                return left < right
            elif op == ">":
                return left > right
            elif op == "<=":
                return left <= right
            elif op == ">=":
                return left >= right
        except TypeError:
            raise ExpressionError(f"Cannot compare {left!r} {op} {right!r}")
        raise ExpressionError(f"Unknown comparison operator {op!r}")

    def _arithmetic(self, left: Any, right: Any, op: str) -> Any:
        numbers = (int, float)
        if not isinstance(left, numbers) or not isinstance(right, numbers):
            raise ExpressionError(f"Cannot compute {left!r} {op} {right!r}")
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "/":
            if right == 0:
                raise ExpressionError(f"Division by zero in {left!r} / {right!r}")
            return int(left // right)
        return left * right

    def _call_function(self, func_name: str, args: list[Any]) -> Any:
        """Call a built-in function."""
        if func_name == "count":
            # count(collection) - size of a list or zone
            if len(args) != 1:
                raise ExpressionError("count() takes one argument")
            coll = args[0]
            if hasattr(coll, "count") and isinstance(coll.count, int):
                return coll.count
            if hasattr(coll, "__len__"):
                return len(coll)
            raise ExpressionError(f"Cannot count {coll!r}")

        elif func_name in ("max", "min"):
            numeric = [v for v in args if isinstance(v, (int, float)) and not isinstance(v, bool)]
            if not numeric:
                return 0
            return max(numeric) if func_name == "max" else min(numeric)

        elif func_name == "abs":
            if len(args) != 1 or not isinstance(args[0], (int, float)):
                raise ExpressionError("abs() takes one number")
            return abs(args[0])

        raise ExpressionError(f"Unknown function {func_name!r}")

    def _resolve_property(self, path: str, context: ExpressionContext) -> Any:
        """
        Resolve a property path like 'caster.hand.count'.
        """
        parts = path.split(".")
        root = parts[0].lstrip("$")

        if root in ("caster", "self"):
            obj = context.get_player()
        elif root == "opponent":
            opponents = context.game_state.opponents_of(context.caster_id)
            obj = opponents[0] if opponents else None
        elif root == "game":
            obj = context.game_state
        elif root == "context":
            obj = context.trigger
        elif root == "source":
            found = (
                context.game_state.find_instance(context.source_instance_id)
                if context.source_instance_id else None
            )
            obj = found[1] if found else None
        elif root in context.variables:
            obj = context.variables[root]
        elif context.resolve_reference is not None:
            obj = context.resolve_reference(root)
        else:
            raise ExpressionError(f"Unknown name {root!r}")

        # Navigate property path
        for part in parts[1:]:
            if obj is None:
                raise ExpressionError(f"Cannot read {part!r} of nothing in {path!r}")
            if part.startswith("_"):
                raise ExpressionError(f"Private attribute {part!r} is not readable")

            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            elif hasattr(obj, part):
                obj = getattr(obj, part)
            else:
                raise ExpressionError(f"Unknown property {part!r} in {path!r}")

        return obj

    def _evaluate_ast(self, ast: dict, context: ExpressionContext) -> Any:
        """
        Evaluate a JSON AST expression.

        AST format:
        {"op": "compare", "left": ..., "right": ..., "operator": ">="}
        {"op": "and", "operands": [...]}
        {"op": "call", "function": "count", "args": [...]}
        {"op": "property", "path": "caster.health"}
        {"op": "literal", "value": 5}
        """
        op = ast.get("op")

        if op == "literal":
            return ast.get("value")

        elif op == "property":
            return self._resolve_property(ast.get("path", ""), context)

        elif op == "compare":
            left = self.evaluate(ast.get("left"), context)
            right = self.evaluate(ast.get("right"), context)
            return self._compare(left, right, ast.get("operator", "=="))

        elif op == "and":
            return all(self.evaluate(o, context) for o in ast.get("operands", []))

        elif op == "or":
            return any(self.evaluate(o, context) for o in ast.get("operands", []))

        elif op == "not":
            return not self.evaluate(ast.get("operand"), context)

        elif op == "call":
            args = [self.evaluate(a, context) for a in ast.get("args", [])]
            return self._call_function(ast.get("function", ""), args)

        elif op in ("add", "subtract", "multiply", "divide"):
            left = self.evaluate(ast.get("left"), context)
            right = self.evaluate(ast.get("right"), context)
            symbol = {"add": "+", "subtract": "-", "multiply": "*", "divide": "/"}[op]
            return self._arithmetic(left, right, symbol)

        raise ExpressionError(f"Unknown expression node {op!r}")


# Convenience function
def evaluate_expression(
    expr: str | int | bool | dict,
    game_state: GameSession,
    caster_id: str,
    variables: dict | None = None,
) -> Any:
    """
    Evaluate an expression in a game context.

    Args:
        expr: Expression to evaluate
        game_state: Current game snapshot
        caster_id: ID of the caster or ability owner
        variables: Optional variables dict

    Returns:
        Evaluated value
    """
    context = ExpressionContext(
        game_state=game_state,
        caster_id=caster_id,
        variables=variables or {},
    )
    return ExpressionEvaluator().evaluate(expr, context)
