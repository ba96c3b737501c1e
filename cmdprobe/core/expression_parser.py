"""Safe predicate compiler for parameter validation rules.

Rules attached to manual parameter entries are short Python expressions such
as ``"value > 0"`` or ``"value in ['utf-8', 'latin-1']"``. They are parsed
with :mod:`ast` and only comparisons, boolean logic, basic arithmetic,
literals, names, attribute reads and subscripts are accepted. Calls,
comprehensions and lambdas never compile.

Names resolve against the mapping handed to the predicate. The validator
provides ``value`` (the argument under test), ``args`` (all candidate
arguments) and ``context`` (the execution context). Missing names, keys and
attributes read as ``None``.

Examples
--------
>>> rule = compile_rule("context.workspace == True")
>>> rule({"value": "x", "context": {"workspace": True}})
True
"""

import ast
import operator
from collections.abc import Callable, Mapping
from typing import Any

from cmdprobe.core.logging import get_logger

__all__ = ["compile_rule", "ExpressionError"]

logger = get_logger(__name__)

Predicate = Callable[[Mapping[str, Any]], bool]


class ExpressionError(Exception):
    """Raised when a rule expression cannot be compiled."""

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"Cannot compile rule {expression!r}: {reason}")


_OPERATORS: dict[type[ast.AST], Callable[..., Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_STRUCTURAL = (
    ast.Expression,
    ast.Compare,
    ast.BoolOp,
    ast.And,
    ast.Or,
    ast.UnaryOp,
    ast.BinOp,
    ast.Attribute,
    ast.Subscript,
    ast.Name,
    ast.Constant,
    ast.Load,
    ast.Tuple,
    ast.List,
    ast.Dict,
)


def _check(tree: ast.AST, expression: str) -> None:
    for node in ast.walk(tree):
        if isinstance(node, ast.Call):
            raise ExpressionError(expression, "function calls are not allowed")
        if not isinstance(node, _STRUCTURAL) and type(node) not in _OPERATORS:
            raise ExpressionError(expression, f"{type(node).__name__} is not allowed")


def _read(container: Any, key: Any) -> Any:
    """Forgiving lookup: anything unreachable is ``None``."""
    if isinstance(container, Mapping):
        return container.get(key)
    if isinstance(container, (list, tuple)) and isinstance(key, int):
        return container[key] if -len(container) <= key < len(container) else None
    if container is not None and isinstance(key, str):
        return getattr(container, key, None)
    return None


class _Evaluator(ast.NodeVisitor):
    """Walks a checked rule tree against one scope."""

    def __init__(self, scope: Mapping[str, Any]) -> None:
        self.scope = scope

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        return self.scope.get(node.id)

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        return _read(self.visit(node.value), node.attr)

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        return _read(self.visit(node.value), self.visit(node.slice))

    def visit_List(self, node: ast.List) -> list[Any]:
        return [self.visit(item) for item in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> tuple[Any, ...]:
        return tuple(self.visit(item) for item in node.elts)

    def visit_Dict(self, node: ast.Dict) -> dict[Any, Any]:
        return {
            self.visit(k) if k is not None else None: self.visit(v)
            for k, v in zip(node.keys, node.values, strict=True)
        }

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        stop_on = isinstance(node.op, ast.Or)
        result: Any = not stop_on
        for operand in node.values:
            result = self.visit(operand)
            if bool(result) is stop_on:
                break
        return result

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        return _OPERATORS[type(node.op)](self.visit(node.operand))

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        return _OPERATORS[type(node.op)](self.visit(node.left), self.visit(node.right))

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op, right_node in zip(node.ops, node.comparators, strict=True):
            right = self.visit(right_node)
            try:
                holds = _OPERATORS[type(op)](left, right)
            except TypeError:
                # None or mixed-type operands fail the rule
                return False
            if not holds:
                return False
            left = right
        return True


def compile_rule(expression: str) -> Predicate:
    """Compile a rule string into a predicate over a scope mapping.

    Parameters
    ----------
    expression : str
        Rule such as ``"value >= 1"`` or ``"value in ['a', 'b']"``

    Returns
    -------
    Callable[[Mapping[str, Any]], bool]
        Predicate returning True when the rule holds. Evaluation problems
        such as division by zero make it return False.

    Raises
    ------
    ExpressionError
        If the expression is empty, has a syntax error or uses a disallowed
        construct

    Examples
    --------
    >>> rule = compile_rule("value >= 1")
    >>> rule({"value": 3}), rule({"value": 0})
    (True, False)
    """
    source = (expression or "").strip()
    if not source:
        raise ExpressionError(expression, "Expression cannot be empty")

    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        raise ExpressionError(source, f"Syntax error: {e.msg}") from e
    _check(tree, source)

    def predicate(scope: Mapping[str, Any]) -> bool:
        try:
            return bool(_Evaluator(scope).visit(tree))
        except Exception as e:
            logger.warning("Rule {rule!r} could not be evaluated: {error}", rule=source, error=e)
            return False

    return predicate
