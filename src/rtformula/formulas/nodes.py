"""Expression tree nodes.

A tree is a closed, discriminated union of frozen models.  Every
operation on trees (evaluation, rendering, reference extraction)
matches on the node type exhaustively; a new node kind means extending
:data:`Node` and each of those match sites.
"""

from __future__ import annotations

import typing
from enum import Enum
from typing import Annotated, Union

from pydantic import BaseModel, ConfigDict, Field


class UnaryOp(str, Enum):
    negate = "negate"
    sqrt = "sqrt"
    log10 = "log10"
    ln = "ln"
    sin = "sin"
    cos = "cos"
    tan = "tan"
    sinh = "sinh"
    cosh = "cosh"
    tanh = "tanh"
    asin = "asin"
    acos = "acos"
    atan = "atan"
    abs = "abs"
    ceil = "ceil"
    floor = "floor"
    factorial = "factorial"


class BinaryOp(str, Enum):
    add = "+"
    sub = "-"
    mul = "*"
    div = "/"
    mod = "%"
    pow = "^"
    eq = "="
    ne = "!="
    gt = ">"
    lt = "<"


class AggregateOp(str, Enum):
    sum = "sum"
    mult = "mult"


# Function-token text -> unary opcode.  "log" is base 10.
FUNCTION_OPS: dict[str, UnaryOp] = {
    "sqrt": UnaryOp.sqrt,
    "log": UnaryOp.log10,
    "ln": UnaryOp.ln,
    "sin": UnaryOp.sin,
    "cos": UnaryOp.cos,
    "tan": UnaryOp.tan,
    "sinh": UnaryOp.sinh,
    "cosh": UnaryOp.cosh,
    "tanh": UnaryOp.tanh,
    "asin": UnaryOp.asin,
    "acos": UnaryOp.acos,
    "atan": UnaryOp.atan,
    "abs": UnaryOp.abs,
    "ceil": UnaryOp.ceil,
    "floor": UnaryOp.floor,
    "!": UnaryOp.factorial,
}


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class Literal(_Node):
    """A constant number."""

    kind: typing.Literal["literal"] = "literal"
    value: float


class Variable(_Node):
    """A named value resolved at evaluation time."""

    kind: typing.Literal["variable"] = "variable"
    name: str


class Unary(_Node):
    kind: typing.Literal["unary"] = "unary"
    op: UnaryOp
    operand: Node


class Binary(_Node):
    kind: typing.Literal["binary"] = "binary"
    op: BinaryOp
    left: Node
    right: Node


class Aggregate(_Node):
    """``sum``/``mult`` of *body* over ``var = 1 .. floor(limit)``."""

    kind: typing.Literal["aggregate"] = "aggregate"
    op: AggregateOp
    var: str
    limit: Node
    body: Node


Node = Annotated[
    Union[Literal, Variable, Unary, Binary, Aggregate],
    Field(discriminator="kind"),
]

Unary.model_rebuild()
Binary.model_rebuild()
Aggregate.model_rebuild()
