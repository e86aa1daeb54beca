"""
Tests for the expression evaluator.

Tests:
- Literals and arithmetic
- Property access on the snapshot
- Comparisons and boolean operators
- Functions
- Errors for unknown or private names
"""

import pytest

from ..engine_core.expression import ExpressionContext, ExpressionEvaluator, evaluate_expression
from ..errors import ExpressionError


class TestLiterals:
    """Tests for literal values."""

    @pytest.mark.parametrize("expr,expected", [
        (3, 3),
        ("7", 7),
        ("-2", -2),
        ("'red'", "red"),
        ("true", True),
        ("False", False),
    ])
    def test_literal(self, game, expr, expected):
        assert evaluate_expression(expr, game.state, "alice") == expected

    def test_arithmetic_left_associative(self, game):
        assert evaluate_expression("10 - 3 - 2", game.state, "alice") == 5
        assert evaluate_expression("2 + 3 * 4", game.state, "alice") == 14

    def test_arithmetic_inside_call(self, game):
        assert evaluate_expression("max(1, 7 - 2) + 1", game.state, "alice") == 6

    @pytest.mark.parametrize("expr,expected", [
        ("7 / 2", 3),
        ("8 * 2 / 4", 4),
        ("8 / 2 * 2", 8),
        ("1 + 9 / 3", 4),
        ("10 / -5", -2),
    ])
    def test_division(self, game, expr, expected):
        assert evaluate_expression(expr, game.state, "alice") == expected

    def test_division_ast(self, game):
        ast = {"op": "divide", "left": {"op": "literal", "value": 9}, "right": {"op": "literal", "value": 2}}

        assert evaluate_expression(ast, game.state, "alice") == 4

    def test_division_by_zero(self, game):
        with pytest.raises(ExpressionError):
            evaluate_expression("caster.health / 0", game.state, "alice")


class TestProperties:
    """Tests for property paths."""

    def test_caster_health(self, game):
        game.health("alice", 9)
        assert evaluate_expression("caster.health", game.state, "alice") == 9

    def test_opponent_is_first_enemy(self, game):
        game.health("bob", 12)
        assert evaluate_expression("opponent.health", game.state, "alice") == 12

    def test_zone_count(self, game):
        game.hand("alice", "card_001")
        game.hand("alice", "card_002")
        assert evaluate_expression("caster.hand.count", game.state, "alice") == 2

    def test_variables(self, game):
        assert evaluate_expression("$bonus + 1", game.state, "alice", {"bonus": 2}) == 3

    def test_context_damage_amount(self, game):
        from ..engine_core.effect_api import TriggerContext

        context = ExpressionContext(
            game_state=game.state,
            caster_id="alice",
            trigger=TriggerContext(damage_amount=4),
        )
        assert ExpressionEvaluator().evaluate("context.damage_amount", context) == 4

    def test_unknown_name(self, game):
        with pytest.raises(ExpressionError):
            evaluate_expression("mystery.value", game.state, "alice")

    def test_private_attribute_blocked(self, game):
        with pytest.raises(ExpressionError):
            evaluate_expression("caster.__class__", game.state, "alice")


class TestConditions:
    """Tests for comparisons and boolean logic."""

    def test_comparison(self, game):
        game.health("alice", 9)
        assert evaluate_expression("caster.health < 10", game.state, "alice") is True
        assert evaluate_expression("caster.health >= 10", game.state, "alice") is False

    def test_and_or_not(self, game):
        assert evaluate_expression("true and not false", game.state, "alice") is True
        assert evaluate_expression("false or 1 == 1", game.state, "alice") is True

    def test_ast_compare(self, game):
        expr = {
            "op": "compare",
            "operator": ">=",
            "left": {"op": "property", "path": "caster.energy"},
            "right": {"op": "literal", "value": 5},
        }
        assert evaluate_expression(expr, game.state, "alice") is True

    def test_incomparable_values(self, game):
        with pytest.raises(ExpressionError):
            evaluate_expression("'a' < 3", game.state, "alice")


class TestFunctions:
    """Tests for built-in functions."""

    def test_count_with_reference(self, game):
        game.unit("bob", "card_001")
        game.unit("bob", "card_011")
        context = ExpressionContext(
            game_state=game.state,
            caster_id="alice",
            resolve_reference=lambda name: game.state.get_player("bob").creatures,
        )
        assert ExpressionEvaluator().evaluate("count(enemy_creatures) > 1", context) is True

    def test_min_max_abs(self, game):
        assert evaluate_expression("max(2, 5)", game.state, "alice") == 5
        assert evaluate_expression("min(2, 5)", game.state, "alice") == 2
        assert evaluate_expression("abs(-3)", game.state, "alice") == 3

    def test_unknown_function(self, game):
        with pytest.raises(ExpressionError):
            evaluate_expression("explode(1)", game.state, "alice")

    def test_evaluate_int_rejects_text(self, game):
        context = ExpressionContext(game_state=game.state, caster_id="alice")
        with pytest.raises(ExpressionError):
            ExpressionEvaluator().evaluate_int("'three'", context)
