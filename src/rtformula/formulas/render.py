"""Text rendering and reference extraction for expression trees."""

from __future__ import annotations

import math
from decimal import Decimal

from rtformula.formulas.errors import InternalInconsistencyError
from rtformula.formulas.nodes import (
    FUNCTION_OPS,
    Aggregate,
    Binary,
    Literal,
    Node,
    Unary,
    UnaryOp,
    Variable,
)
from rtformula.formulas.tokens import is_reserved_name

_UNARY_TEXT: dict[UnaryOp, str] = {op: name for name, op in FUNCTION_OPS.items()}
_UNARY_TEXT[UnaryOp.negate] = "-"

_OVERFLOW_DIGITS = "1" + "0" * 400


def _format_number(value: float) -> str:
    """Positional notation, never an exponent (the lexer has none)."""
    if math.isinf(value):
        # digits that overflow to inf again when parsed
        text = _OVERFLOW_DIGITS
        return text if value > 0 else f"-({text})"
    text = repr(value)
    if "e" not in text:
        return text
    return format(Decimal(text), "f")


def render(tree: Node) -> str:
    """Render a tree as fully parenthesized formula text.

    The output tokenizes and validates again, and builds an equivalent
    tree, e.g. ``(3+x)*5^-log(y)`` renders as
    ``((3.0+x)*(5.0^-(log(y))))``.
    """
    if isinstance(tree, Literal):
        return _format_number(tree.value)
    if isinstance(tree, Variable):
        return tree.name
    if isinstance(tree, Unary):
        return f"{_UNARY_TEXT[tree.op]}({render(tree.operand)})"
    if isinstance(tree, Binary):
        return f"({render(tree.left)}{tree.op.value}{render(tree.right)})"
    if isinstance(tree, Aggregate):
        return f"{tree.op.value}({tree.var},{render(tree.limit)},{render(tree.body)})"
    raise InternalInconsistencyError(f"Unknown node type: {type(tree).__name__}")


def extract_refs(tree: Node) -> set[str]:
    """Collect the variable names a tree reads from the variable store.

    Reserved names (``r``, ``pi``, ``e``) are excluded, as are aggregate
    counters inside the body that binds them.

    Args:
        tree: Root node.

    Returns:
        Set of referenced variable names.
    """
    refs: set[str] = set()
    _collect(tree, frozenset(), refs)
    return refs


def _collect(node: Node, bound: frozenset[str], refs: set[str]) -> None:
    if isinstance(node, Literal):
        return
    if isinstance(node, Variable):
        if node.name not in bound and not is_reserved_name(node.name):
            refs.add(node.name)
    elif isinstance(node, Unary):
        _collect(node.operand, bound, refs)
    elif isinstance(node, Binary):
        _collect(node.left, bound, refs)
        _collect(node.right, bound, refs)
    elif isinstance(node, Aggregate):
        _collect(node.limit, bound, refs)
        _collect(node.body, bound | {node.var}, refs)
    else:
        raise InternalInconsistencyError(f"Unknown node type: {type(node).__name__}")
