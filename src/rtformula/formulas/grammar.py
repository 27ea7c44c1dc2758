"""Recursive-descent validation of token sequences.

Grammar::

    Sequence  := Primary (BinaryOp Primary)*
    Primary   := Operand
               | "(" Sequence ")"
               | "-" Primary
               | FuncName "(" Sequence ")"
               | AggName "(" Operand "," Sequence "," Sequence ")"
    BinaryOp  := "=" | "!=" | ">" | "<" | "+" | "-" | "*" | "/" | "%" | "^"

No tree is built here.  Each production takes the index of the next
unread token and returns the index after what it consumed; ``Sequence``
additionally returns its boundary token, the first token that is not a
binary operator, so enclosing productions can check their own closing
delimiter.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from rtformula.formulas.errors import (
    UnevenParenthesesError,
    UnexpectedEndOfInputError,
    UnexpectedTokenError,
    UnknownVariableError,
)
from rtformula.formulas.tokens import (
    AGGREGATE_FUNCTIONS,
    CLOSE_PAREN,
    COMMA,
    CONSTANT_NAMES,
    END_TOKEN,
    OPEN_PAREN,
    RANDOM_NAME,
    UNARY_MINUS_TEXT,
    PrecedenceClass,
    Token,
    is_number,
)


class _Validator:
    """Single-use recognizer over one token sequence."""

    def __init__(self, tokens: Sequence[Token]) -> None:
        self.tokens = tokens
        self.negations: set[int] = set()

    def _peek(self, pos: int) -> Token:
        if pos < len(self.tokens):
            return self.tokens[pos]
        return END_TOKEN

    def _next(self, pos: int, wanted: str) -> tuple[Token, int]:
        if pos >= len(self.tokens):
            raise UnexpectedEndOfInputError(wanted)
        return self.tokens[pos], pos + 1

    @staticmethod
    def _expect(actual: Token, wanted: Token) -> None:
        if actual == wanted:
            return
        if wanted == CLOSE_PAREN:
            raise UnevenParenthesesError(actual.column)
        if actual.precedence == PrecedenceClass.END:
            raise UnexpectedEndOfInputError(wanted.text)
        raise UnexpectedTokenError(actual.text, wanted.text, actual.column)

    def sequence(self, pos: int) -> tuple[int, Token]:
        """Consume ``Primary (BinaryOp Primary)*``; return (pos, boundary)."""
        pos = self.primary(pos)
        boundary = self._peek(pos)
        while boundary.precedence.is_binary:
            pos = self.primary(pos + 1)
            boundary = self._peek(pos)
        return pos, boundary

    def primary(self, pos: int) -> int:
        token, pos = self._next(pos, "operand")
        klass = token.precedence

        if klass == PrecedenceClass.OPERAND:
            return pos

        if klass == PrecedenceClass.FUNCTION and token.text in AGGREGATE_FUNCTIONS:
            return self._aggregate(pos)

        if token == OPEN_PAREN:
            pos, boundary = self.sequence(pos)
            if boundary != CLOSE_PAREN:
                raise UnevenParenthesesError(boundary.column)
            return pos + 1

        if (klass == PrecedenceClass.ADDITIVE and token.text == "-") or (
            klass == PrecedenceClass.UNARY_MINUS
        ):
            self.negations.add(pos - 1)
            return self.primary(pos)

        if klass == PrecedenceClass.FUNCTION:
            opener, pos = self._next(pos, OPEN_PAREN.text)
            self._expect(opener, OPEN_PAREN)
            pos, boundary = self.sequence(pos)
            self._expect(boundary, CLOSE_PAREN)
            return pos + 1

        raise UnexpectedTokenError(token.text, "operand", token.column)

    def _aggregate(self, pos: int) -> int:
        opener, pos = self._next(pos, OPEN_PAREN.text)
        self._expect(opener, OPEN_PAREN)

        counter, pos = self._next(pos, "variable")
        if counter.precedence != PrecedenceClass.OPERAND:
            raise UnexpectedTokenError(counter.text, "variable", counter.column)

        separator, pos = self._next(pos, COMMA.text)
        self._expect(separator, COMMA)

        pos, boundary = self.sequence(pos)
        self._expect(boundary, COMMA)
        pos, boundary = self.sequence(pos + 1)
        self._expect(boundary, CLOSE_PAREN)
        return pos + 1


def validate(tokens: Sequence[Token]) -> list[Token]:
    """Check a token sequence against the formula grammar.

    Args:
        tokens: Output of :func:`~rtformula.formulas.lexer.tokenize`.

    Returns:
        A new token list in which every prefix ``-`` has been replaced by
        the internal unary-minus token.  The input is left untouched.

    Raises:
        UnexpectedEndOfInputError: If the formula stops mid-construct.
        UnevenParenthesesError: If a parenthesis is never closed.
        UnexpectedTokenError: For any other misplaced token, including
            trailing tokens after a complete formula.
    """
    validator = _Validator(tokens)
    _, boundary = validator.sequence(0)
    if boundary.precedence != PrecedenceClass.END:
        raise UnexpectedTokenError(boundary.text, position=boundary.column)

    result: list[Token] = []
    for i, token in enumerate(tokens):
        if i in validator.negations:
            token = Token(
                text=UNARY_MINUS_TEXT,
                precedence=PrecedenceClass.UNARY_MINUS,
                column=token.column,
            )
        result.append(token)
    return result


def check_variables(tokens: Sequence[Token], declared: Iterable[str]) -> list[Token]:
    """Ensure every operand is a declared name, a number or a reserved name.

    ``e`` and ``pi`` are accepted in any case, the random sample ``r``
    only in lower case.

    Args:
        tokens: A token sequence (validated or not).
        declared: Names the caller will provide at evaluation time.

    Returns:
        The tokens, unchanged.

    Raises:
        UnknownVariableError: For the first operand that is none of these.
    """
    names = list(declared)
    allowed = set(names)
    for token in tokens:
        if token.precedence != PrecedenceClass.OPERAND:
            continue
        text = token.text
        if (
            text in allowed
            or is_number(text)
            or text.lower() in CONSTANT_NAMES
            or text == RANDOM_NAME
        ):
            continue
        raise UnknownVariableError(text, available=names)
    return list(tokens)
