"""Assemble an expression tree from postfix tokens."""

from __future__ import annotations

from typing import Sequence

from rtformula.formulas.errors import (
    InternalInconsistencyError,
    InvalidBoundVariableError,
)
from rtformula.formulas.nodes import (
    FUNCTION_OPS,
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
from rtformula.formulas.tokens import (
    AGGREGATE_FUNCTIONS,
    PrecedenceClass,
    Token,
    is_number,
    is_reserved_name,
)

_BINARY_OPS: dict[str, BinaryOp] = {op.value: op for op in BinaryOp}


def _pop(stack: list[Node], token: Token) -> Node:
    if not stack:
        raise InternalInconsistencyError(
            f"operator {token.text!r} is missing an operand", detail=token
        )
    return stack.pop()


def _binds(node: Node, name: str) -> bool:
    """Return True if an aggregate inside *node* binds *name*."""
    if isinstance(node, Aggregate):
        return node.var == name or _binds(node.limit, name) or _binds(node.body, name)
    if isinstance(node, Binary):
        return _binds(node.left, name) or _binds(node.right, name)
    if isinstance(node, Unary):
        return _binds(node.operand, name)
    return False


def _aggregate(op: AggregateOp, counter: Node, limit: Node, body: Node) -> Aggregate:
    if not isinstance(counter, Variable):
        if isinstance(counter, Literal):
            raise InvalidBoundVariableError(
                f"{counter.value:g}", "a number was given instead of a variable"
            )
        raise InvalidBoundVariableError(counter.kind, "the counter must be a plain variable")
    name = counter.name
    if is_reserved_name(name):
        raise InvalidBoundVariableError(name, "reserved names cannot be used as counters")
    if _binds(body, name):
        raise InvalidBoundVariableError(name, "already bound by an enclosing sum/mult")
    return Aggregate(op=op, var=name, limit=limit, body=body)


def build_tree(postfix: Sequence[Token]) -> Node:
    """Build an expression tree from a postfix token sequence.

    Args:
        postfix: Output of :func:`~rtformula.formulas.postfix.to_postfix`.

    Returns:
        The root node.

    Raises:
        InvalidBoundVariableError: If a ``sum``/``mult`` counter is a
            number, a reserved name, or shadows an enclosing counter.
        InternalInconsistencyError: If the postfix sequence is malformed.
    """
    stack: list[Node] = []

    for token in postfix:
        klass = token.precedence
        if klass == PrecedenceClass.OPERAND:
            if is_number(token.text):
                stack.append(Literal(value=float(token.text)))
            else:
                stack.append(Variable(name=token.text))
        elif klass == PrecedenceClass.FUNCTION and token.text in AGGREGATE_FUNCTIONS:
            body = _pop(stack, token)
            limit = _pop(stack, token)
            counter = _pop(stack, token)
            stack.append(_aggregate(AggregateOp(token.text), counter, limit, body))
        elif klass == PrecedenceClass.FUNCTION:
            op = FUNCTION_OPS.get(token.text)
            if op is None:
                raise InternalInconsistencyError(
                    f"unknown function {token.text!r}", detail=token
                )
            stack.append(Unary(op=op, operand=_pop(stack, token)))
        elif klass == PrecedenceClass.UNARY_MINUS:
            stack.append(Unary(op=UnaryOp.negate, operand=_pop(stack, token)))
        elif klass.is_binary:
            bop = _BINARY_OPS.get(token.text)
            if bop is None:
                raise InternalInconsistencyError(
                    f"unknown operator {token.text!r}", detail=token
                )
            right = _pop(stack, token)
            left = _pop(stack, token)
            stack.append(Binary(op=bop, left=left, right=right))
        else:
            raise InternalInconsistencyError(
                f"unexpected {token.text!r} in postfix sequence", detail=token
            )

    if len(stack) != 1:
        raise InternalInconsistencyError(
            f"expected one root node, found {len(stack)}", detail=stack
        )
    return stack[0]
