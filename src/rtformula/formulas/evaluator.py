"""Tree-walking evaluator for expression trees.

Arithmetic follows IEEE-754 (computed through numpy with floating-point
warnings silenced) so that, in strict mode, domain faults surface as
``nan``/``inf`` results instead of Python exceptions.  In safe mode
(the default) those cases evaluate to ``0.0``.

Evaluation is depth-first and left to right.  Aggregates bind their
counter in the caller's variable store for the duration of the loop and
restore whatever was there before, on every exit path.
"""

from __future__ import annotations

import math
import random
from typing import Callable, MutableMapping

import numpy as np

from rtformula.formulas.errors import (
    InternalInconsistencyError,
    UnknownVariableError,
)
from rtformula.formulas.nodes import (
    Aggregate,
    AggregateOp,
    Binary,
    BinaryOp,
    Literal,
    Node,
    Unary,
    UnaryOp,
    Variable,
)
from rtformula.formulas.tokens import RANDOM_NAME

# Absolute tolerance under which two values compare equal.
TOLERANCE = 1e-5

# Safe mode: factorial arguments outside 0..12 evaluate to 0.0.
_MAX_SAFE_FACTORIAL = 12

_MISSING = object()

_UNARY_FUNCS: dict[UnaryOp, Callable[[np.float64], np.float64]] = {
    UnaryOp.sqrt: np.sqrt,
    UnaryOp.log10: np.log10,
    UnaryOp.ln: np.log,
    UnaryOp.sin: np.sin,
    UnaryOp.cos: np.cos,
    UnaryOp.tan: np.tan,
    UnaryOp.sinh: np.sinh,
    UnaryOp.cosh: np.cosh,
    UnaryOp.tanh: np.tanh,
    UnaryOp.asin: np.arcsin,
    UnaryOp.acos: np.arccos,
    UnaryOp.atan: np.arctan,
    UnaryOp.abs: np.abs,
    UnaryOp.ceil: np.ceil,
    UnaryOp.floor: np.floor,
}

# Safe mode: operand values outside the real domain evaluate to 0.0.
_OUT_OF_DOMAIN: dict[UnaryOp, Callable[[float], bool]] = {
    UnaryOp.sqrt: lambda x: x < 0,
    UnaryOp.log10: lambda x: x <= 0,
    UnaryOp.ln: lambda x: x <= 0,
    UnaryOp.tan: lambda x: np.cos(x) == 0,
    UnaryOp.asin: lambda x: x > 1 or x < -1,
    UnaryOp.acos: lambda x: x > 1 or x < -1,
}


def evaluate_formula(
    tree: Node,
    variables: MutableMapping[str, float],
    strict: bool = False,
    rng: random.Random | None = None,
) -> float:
    """Evaluate an expression tree.

    Args:
        tree: Root node from :func:`~rtformula.formulas.builder.build_tree`.
        variables: Variable store.  Read for plain variables; ``sum`` and
            ``mult`` temporarily bind their counter in it.
        strict: If True, domain faults yield ``nan``/``inf``; otherwise
            they yield ``0.0``.
        rng: Source for the ``r`` variable.  Defaults to the ``random``
            module's shared generator.

    Returns:
        The value as a float.

    Raises:
        UnknownVariableError: If a variable is missing from *variables*.
    """
    sample = rng.random if rng is not None else random.random
    with np.errstate(all="ignore"):
        return float(_eval(tree, variables, strict, sample))


def _finish(value: float, strict: bool) -> float:
    if not strict and math.isnan(value):
        return 0.0
    return value


def _eval(
    node: Node,
    store: MutableMapping[str, float],
    strict: bool,
    sample: Callable[[], float],
) -> float:
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Variable):
        return _eval_variable(node.name, store, sample)
    if isinstance(node, Unary):
        return _eval_unary(node.op, _eval(node.operand, store, strict, sample), strict)
    if isinstance(node, Binary):
        left = _eval(node.left, store, strict, sample)
        right = _eval(node.right, store, strict, sample)
        return _eval_binary(node.op, left, right, strict)
    if isinstance(node, Aggregate):
        return _eval_aggregate(node, store, strict, sample)
    raise InternalInconsistencyError(f"Unknown node type: {type(node).__name__}")


def _eval_variable(
    name: str, store: MutableMapping[str, float], sample: Callable[[], float]
) -> float:
    if name == RANDOM_NAME:
        return sample()
    lowered = name.lower()
    if lowered == "pi":
        return math.pi
    if lowered == "e":
        return math.e
    if name in store:
        return float(store[name])
    raise UnknownVariableError(name, available=sorted(store.keys()))


def _factorial(x: float) -> float:
    """floor(x)! as a float; 1 for floor(x) <= 1."""
    if math.isnan(x):
        return math.nan
    if math.isinf(x):
        return math.inf if x > 0 else 1.0
    result = 1.0
    k = math.floor(x)
    while k > 1 and not math.isinf(result):
        result *= k
        k -= 1
    return result


def _eval_unary(op: UnaryOp, x: float, strict: bool) -> float:
    if op == UnaryOp.negate:
        return -x
    if op == UnaryOp.factorial:
        if not strict and (x < 0 or x > _MAX_SAFE_FACTORIAL):
            return 0.0
        return _finish(_factorial(x), strict)

    if not strict:
        guard = _OUT_OF_DOMAIN.get(op)
        if guard is not None and guard(x):
            return 0.0

    fn = _UNARY_FUNCS.get(op)
    if fn is None:
        raise InternalInconsistencyError(f"Unknown unary operator: {op!r}")
    return _finish(float(fn(np.float64(x))), strict)


def _equal(a: float, b: float) -> bool:
    return abs(a - b) < TOLERANCE


def _eval_binary(op: BinaryOp, a: float, b: float, strict: bool) -> float:
    # Comparisons
    if op == BinaryOp.eq:
        return 1.0 if _equal(a, b) else 0.0
    if op == BinaryOp.ne:
        return 0.0 if _equal(a, b) else 1.0
    if op == BinaryOp.gt:
        return 1.0 if not _equal(a, b) and a > b else 0.0
    if op == BinaryOp.lt:
        return 1.0 if not _equal(a, b) and a < b else 0.0

    # Arithmetic
    x, y = np.float64(a), np.float64(b)
    if op == BinaryOp.add:
        result = x + y
    elif op == BinaryOp.sub:
        result = x - y
    elif op == BinaryOp.mul:
        result = x * y
    elif op == BinaryOp.div:
        if b == 0 and not strict:
            return 0.0
        result = x / y
    elif op == BinaryOp.mod:
        if b == 0 and not strict:
            return 0.0
        result = np.fmod(np.fmod(x, y) + y, y)
    elif op == BinaryOp.pow:
        result = np.power(x, y)
    else:
        raise InternalInconsistencyError(f"Unknown binary operator: {op!r}")
    return _finish(float(result), strict)


def _eval_aggregate(
    node: Aggregate,
    store: MutableMapping[str, float],
    strict: bool,
    sample: Callable[[], float],
) -> float:
    limit = _eval(node.limit, store, strict, sample)
    is_sum = node.op == AggregateOp.sum
    total = 0.0 if is_sum else 1.0

    previous = store.get(node.var, _MISSING)
    counter = 1.0
    try:
        while counter <= limit:
            store[node.var] = counter
            value = _eval(node.body, store, strict, sample)
            total = total + value if is_sum else total * value
            counter += 1.0
    finally:
        if previous is _MISSING:
            store.pop(node.var, None)
        else:
            store[node.var] = previous
    return total
