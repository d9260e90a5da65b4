"""
Condition language for tension rules.

Rule conditions are small boolean expressions over the patch fact context,
for example::

    patch_size > 10000
    patch_content.includes('rapidhash') && package_category == 'security'

Conditions are parsed with ``ast`` in ``eval`` mode after normalizing the
JavaScript-style operators found in existing rule files, checked against a
whitelist of node types, and then interpreted node by node. Nothing is ever
passed to ``eval``/``exec``.

Allowed:
- literals: numbers, strings, booleans, None, lists and tuples of literals
- names bound in the fact context
- ``and`` / ``or`` / ``not`` and comparisons (``== != < <= > >= in not in``)
- unary minus on numeric literals
- ``x.length`` and the string/list methods in ``METHODS``
"""

import ast
import operator
import re
from typing import Any, Callable, Dict, Mapping

from patchgate.core.errors import ExpressionError

_STRING_LITERAL_RE = re.compile(r"(\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*')")

# Applied in order, only outside string literals.
_JS_REWRITES = [
    (re.compile(r"===?"), "=="),
    (re.compile(r"!=="), "!="),
    (re.compile(r"&&"), " and "),
    (re.compile(r"\|\|"), " or "),
    (re.compile(r"!(?!=)"), " not "),
    (re.compile(r"\btrue\b"), "True"),
    (re.compile(r"\bfalse\b"), "False"),
    (re.compile(r"\bnull\b"), "None"),
]

_COMPARE_OPS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

METHODS: Dict[str, Callable[..., Any]] = {
    "includes": lambda obj, item: item in obj,
    "startsWith": lambda obj, prefix: obj.startswith(prefix),
    "startswith": lambda obj, prefix: obj.startswith(prefix),
    "endsWith": lambda obj, suffix: obj.endswith(suffix),
    "endswith": lambda obj, suffix: obj.endswith(suffix),
    "toLowerCase": lambda obj: obj.lower(),
    "lower": lambda obj: obj.lower(),
    "toUpperCase": lambda obj: obj.upper(),
    "upper": lambda obj: obj.upper(),
    "count": lambda obj, item: obj.count(item),
}

_ALLOWED_NODES = (
    ast.Expression,
    ast.BoolOp,
    ast.And,
    ast.Or,
    ast.UnaryOp,
    ast.Not,
    ast.USub,
    ast.UAdd,
    ast.Compare,
    ast.Constant,
    ast.Name,
    ast.Load,
    ast.List,
    ast.Tuple,
    ast.Attribute,
    ast.Call,
    *_COMPARE_OPS.keys(),
)


def normalize(condition: str) -> str:
    """Rewrite JavaScript-style operators into Python syntax."""
    parts = _STRING_LITERAL_RE.split(condition)
    for i in range(0, len(parts), 2):  # even indices are outside literals
        segment = parts[i]
        for pattern, replacement in _JS_REWRITES:
            segment = pattern.sub(replacement, segment)
        parts[i] = segment
    return "".join(parts).strip()


def _check(node: ast.AST) -> None:
    if not isinstance(node, _ALLOWED_NODES):
        raise ExpressionError(f"Forbidden construct: {type(node).__name__}")

    if isinstance(node, ast.Constant) and not isinstance(
        node.value, (str, int, float, bool, type(None))
    ):
        raise ExpressionError(f"Unsupported literal: {node.value!r}")

    if isinstance(node, ast.UnaryOp) and not isinstance(node.op, ast.Not):
        operand = node.operand
        if not (
            isinstance(operand, ast.Constant)
            and isinstance(operand.value, (int, float))
            and not isinstance(operand.value, bool)
        ):
            raise ExpressionError("Unary minus is only allowed on numeric literals")

    if isinstance(node, ast.Attribute) and node.attr != "length":
        raise ExpressionError(f"Attribute access not allowed: .{node.attr}")

    if isinstance(node, ast.Call):
        if node.keywords:
            raise ExpressionError("Keyword arguments not allowed")
        func = node.func
        if not isinstance(func, ast.Attribute):
            raise ExpressionError("Only whitelisted methods may be called")
        if func.attr not in METHODS:
            raise ExpressionError(f"Method not allowed: .{func.attr}()")
        _check(func.value)
        for arg in node.args:
            _check(arg)
        return

    for child in ast.iter_child_nodes(node):
        _check(child)


class Condition:
    """A compiled, side-effect free rule condition."""

    def __init__(self, source: str):
        self.source = source
        normalized = normalize(source)
        if not normalized:
            raise ExpressionError("Empty condition")
        try:
            self.tree = ast.parse(normalized, mode="eval")
            _check(self.tree)
        except SyntaxError as e:
            raise ExpressionError(f"Syntax error in {source!r}: {e.msg}") from e
        except (MemoryError, RecursionError) as e:
            raise ExpressionError(f"Condition too complex: {source!r}") from e

    def evaluate(self, bindings: Mapping[str, Any]) -> bool:
        try:
            return bool(self._eval(self.tree.body, bindings))
        except ExpressionError:
            raise
        except (TypeError, ValueError, AttributeError, MemoryError, RecursionError) as e:
            raise ExpressionError(f"Cannot evaluate {self.source!r}: {e}") from e

    def _eval(self, node: ast.AST, env: Mapping[str, Any]) -> Any:
        if isinstance(node, ast.Constant):
            return node.value

        if isinstance(node, ast.Name):
            if node.id not in env:
                raise ExpressionError(f"Unknown field: {node.id}")
            return env[node.id]

        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                result: Any = True
                for value in node.values:
                    result = self._eval(value, env)
                    if not result:
                        return result
                return result
            result = False
            for value in node.values:
                result = self._eval(value, env)
                if result:
                    return result
            return result

        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPS[type(node.op)](self._eval(node.operand, env))

        if isinstance(node, ast.Compare):
            left = self._eval(node.left, env)
            for op, comparator in zip(node.ops, node.comparators):
                right = self._eval(comparator, env)
                if not _COMPARE_OPS[type(op)](left, right):
                    return False
                left = right
            return True

        if isinstance(node, (ast.List, ast.Tuple)):
            return [self._eval(elt, env) for elt in node.elts]

        if isinstance(node, ast.Attribute):
            return len(self._eval(node.value, env))

        if isinstance(node, ast.Call):
            args = [self._eval(arg, env) for arg in node.args]
            target = self._eval(node.func.value, env)
            return METHODS[node.func.attr](target, *args)

        raise ExpressionError(f"Unsupported construct: {type(node).__name__}")


def compile_condition(source: str) -> Condition:
    return Condition(source)


def evaluate_condition(source: str, bindings: Mapping[str, Any]) -> bool:
    """Compile and evaluate in one step; raises ExpressionError on any failure."""
    return Condition(source).evaluate(bindings)
