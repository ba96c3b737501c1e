"""Tests for the validation rule compiler."""

import pytest

from cmdprobe.core.expression_parser import ExpressionError, compile_rule


class TestComparisons:
    """Test comparison operators against the ``value`` name."""

    def test_numeric_bounds(self) -> None:
        """Chained and combined comparisons."""
        rule = compile_rule("value > 0 and value < 100")
        assert rule({"value": 42}) is True
        assert rule({"value": 0}) is False
        assert rule({"value": 100}) is False

    def test_membership(self) -> None:
        """``in`` against a literal list."""
        rule = compile_rule("value in ['utf-8', 'latin-1']")
        assert rule({"value": "utf-8"}) is True
        assert rule({"value": "ascii"}) is False

    def test_not_in(self) -> None:
        """``not in`` against a literal tuple."""
        rule = compile_rule("value not in ('', 'none')")
        assert rule({"value": "x"}) is True
        assert rule({"value": "none"}) is False

    def test_is_none(self) -> None:
        """Identity comparison with None."""
        rule = compile_rule("value is None or value >= 1")
        assert rule({"value": None}) is True
        assert rule({"value": 0}) is False

    def test_mixed_type_comparison_fails_rule(self) -> None:
        """Comparing incompatible types fails instead of raising."""
        rule = compile_rule("value > 3")
        assert rule({"value": "abc"}) is False


class TestScopeAccess:
    """Test attribute and subscript access into args and context."""

    def test_context_attribute(self) -> None:
        """Dotted names read nested mappings."""
        rule = compile_rule("context.workspace == True")
        assert rule({"value": "x", "context": {"workspace": True}}) is True
        assert rule({"value": "x", "context": {}}) is False

    def test_args_subscript(self) -> None:
        """Subscripts read mapping keys."""
        rule = compile_rule("args['mode'] == 'fast' or value is None")
        assert rule({"value": None, "args": {"mode": "slow"}}) is True
        assert rule({"value": 1, "args": {"mode": "fast"}}) is True
        assert rule({"value": 1, "args": {"mode": "slow"}}) is False

    def test_missing_name_is_none(self) -> None:
        """Unknown names resolve to None."""
        rule = compile_rule("missing is None")
        assert rule({}) is True

    def test_arithmetic(self) -> None:
        """Arithmetic inside comparisons."""
        rule = compile_rule("value % 2 == 0")
        assert rule({"value": 4}) is True
        assert rule({"value": 3}) is False

    def test_division_by_zero_fails_rule(self) -> None:
        """Evaluation errors make the predicate return False."""
        rule = compile_rule("1 / value > 0")
        assert rule({"value": 0}) is False


class TestRejectedExpressions:
    """Test that unsafe or malformed rules do not compile."""

    @pytest.mark.parametrize(
        "expression",
        [
            "__import__('os').system('true')",
            "len(value) > 3",
            "[x for x in value]",
            "lambda: 1",
        ],
    )
    def test_disallowed_constructs(self, expression: str) -> None:
        """Calls, comprehensions and lambdas are rejected."""
        with pytest.raises(ExpressionError):
            compile_rule(expression)

    def test_syntax_error(self) -> None:
        """Syntax errors are reported with the expression."""
        with pytest.raises(ExpressionError, match="Syntax error"):
            compile_rule("value >")

    def test_empty_expression(self) -> None:
        """Empty rules are rejected."""
        with pytest.raises(ExpressionError, match="cannot be empty"):
            compile_rule("   ")
