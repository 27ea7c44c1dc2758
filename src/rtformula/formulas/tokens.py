"""Token model shared by the lexer, validator, postfix converter and builder."""

from __future__ import annotations

import re
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PrecedenceClass(IntEnum):
    """Lexical category of a token, doubling as its binding strength.

    Classes 1-4 are binary infix operators ordered by binding strength
    (``POWER`` tightest).  ``UNARY_MINUS`` is produced only by the grammar
    validator; ``FUNCTION`` tokens are always followed by ``(``.
    """

    OPERAND = 0
    COMPARISON = 1
    ADDITIVE = 2
    MULTIPLICATIVE = 3
    POWER = 4
    UNARY_MINUS = 5
    FUNCTION = 6
    STRUCTURAL = 7
    END = 8

    @property
    def is_binary(self) -> bool:
        return PrecedenceClass.COMPARISON <= self <= PrecedenceClass.POWER

    @property
    def is_prefix(self) -> bool:
        return self in (PrecedenceClass.UNARY_MINUS, PrecedenceClass.FUNCTION)


class Token(BaseModel):
    """A classified slice of formula text.

    Two tokens are equal iff ``text`` and ``precedence`` match; ``column``
    is informational only.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    precedence: PrecedenceClass
    column: int | None = Field(default=None, repr=False)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return self.text == other.text and self.precedence == other.precedence

    def __hash__(self) -> int:
        return hash((self.text, int(self.precedence)))

    def __str__(self) -> str:
        return f"{self.text},{int(self.precedence)}"


# Functions taking one parenthesized argument.  "!" is lexed separately.
UNARY_FUNCTIONS = frozenset({
    "sqrt", "log", "ln",
    "sin", "cos", "tan",
    "sinh", "cosh", "tanh",
    "asin", "acos", "atan",
    "abs", "ceil", "floor",
    "!",
})

AGGREGATE_FUNCTIONS = frozenset({"sum", "mult"})

FUNCTION_NAMES = UNARY_FUNCTIONS | AGGREGATE_FUNCTIONS

# Names resolved by the evaluator itself instead of the variable store.
RANDOM_NAME = "r"
CONSTANT_NAMES = frozenset({"pi", "e"})

NUMBER_RE = re.compile(r"\d+\.?\d*|\.\d+")

UNARY_MINUS_TEXT = "--"

END_TOKEN = Token(text="end of formula", precedence=PrecedenceClass.END)
OPEN_PAREN = Token(text="(", precedence=PrecedenceClass.STRUCTURAL)
CLOSE_PAREN = Token(text=")", precedence=PrecedenceClass.STRUCTURAL)
COMMA = Token(text=",", precedence=PrecedenceClass.STRUCTURAL)


def is_number(text: str) -> bool:
    """Return True if *text* is a numeric literal as produced by the lexer."""
    return NUMBER_RE.fullmatch(text) is not None


def is_reserved_name(name: str) -> bool:
    """Return True for ``r`` and (case-insensitively) ``pi`` / ``e``."""
    return name == RANDOM_NAME or name.lower() in CONSTANT_NAMES
