"""Infix to postfix (Reverse Polish) reordering of validated tokens."""

from __future__ import annotations

from typing import Sequence

from rtformula.formulas.tokens import (
    CLOSE_PAREN,
    COMMA,
    OPEN_PAREN,
    PrecedenceClass,
    Token,
)


def _pop_to_open_paren(stack: list[Token], output: list[Token]) -> None:
    while stack and stack[-1] != OPEN_PAREN:
        output.append(stack.pop())


def to_postfix(tokens: Sequence[Token]) -> list[Token]:
    """Reorder a validated token sequence into postfix order.

    Operator-precedence (shunting-yard) conversion keyed on
    :class:`PrecedenceClass`.  Binary operators of equal precedence come
    out left-associative; prefix operators (unary minus, functions) are
    pushed without popping since they have no left operand.  Parentheses
    and argument commas never reach the output.

    Args:
        tokens: Output of :func:`~rtformula.formulas.grammar.validate`.

    Returns:
        Tokens in postfix order.
    """
    output: list[Token] = []
    stack: list[Token] = []

    for token in tokens:
        klass = token.precedence
        if klass == PrecedenceClass.OPERAND:
            output.append(token)
        elif token == CLOSE_PAREN:
            _pop_to_open_paren(stack, output)
            if stack:
                stack.pop()
        elif token == COMMA:
            # The enclosing "(" stays until the aggregate's closing ")".
            _pop_to_open_paren(stack, output)
        elif klass.is_prefix or token == OPEN_PAREN:
            stack.append(token)
        else:
            while (
                stack
                and stack[-1].precedence >= klass
                and stack[-1].precedence != PrecedenceClass.STRUCTURAL
            ):
                output.append(stack.pop())
            stack.append(token)

    while stack:
        output.append(stack.pop())
    return output
