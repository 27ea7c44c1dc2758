"""Error types for formula scanning, validation, tree building and evaluation."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of failure kinds a pipeline stage can report."""

    empty_input = "empty_input"
    unrecognized_character = "unrecognized_character"
    unexpected_token = "unexpected_token"
    uneven_parentheses = "uneven_parentheses"
    unexpected_end_of_input = "unexpected_end_of_input"
    unknown_variable = "unknown_variable"
    invalid_bound_variable = "invalid_bound_variable"
    internal_inconsistency = "internal_inconsistency"


class FormulaError(Exception):
    """Base class for all user-facing formula errors."""

    kind: ErrorKind


class FormulaSyntaxError(FormulaError):
    """Lexical or grammatical error in formula text.

    Attributes:
        position: 1-based column where the error was detected, if known.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        full = message
        if position is not None:
            full += f" (at column {position})"
        super().__init__(full)


class EmptyInputError(FormulaSyntaxError):
    """The formula text is empty."""

    kind = ErrorKind.empty_input

    def __init__(self) -> None:
        super().__init__("Formula is empty")


class UnrecognizedCharacterError(FormulaSyntaxError):
    """A character matches none of the lexical rules.

    Attributes:
        char: The offending character.
    """

    kind = ErrorKind.unrecognized_character

    def __init__(self, char: str, position: int | None = None) -> None:
        self.char = char
        super().__init__(f"Unexpected character: {char!r}", position)


class UnexpectedTokenError(FormulaSyntaxError):
    """A token appears where the grammar does not allow it.

    Attributes:
        actual: Text of the token that was found.
        wanted: Description of what the grammar expected, if any.
    """

    kind = ErrorKind.unexpected_token

    def __init__(
        self, actual: str, wanted: str | None = None, position: int | None = None
    ) -> None:
        self.actual = actual
        self.wanted = wanted
        if wanted is None:
            msg = f"Unexpected symbol: {actual!r}"
        else:
            msg = f"Unexpected symbol: expected {wanted!r}, got {actual!r}"
        super().__init__(msg, position)


class UnevenParenthesesError(FormulaSyntaxError):
    """An opened parenthesis is never closed."""

    kind = ErrorKind.uneven_parentheses

    def __init__(self, position: int | None = None) -> None:
        super().__init__("Number of parentheses is uneven", position)


class UnexpectedEndOfInputError(FormulaSyntaxError):
    """The formula ends in the middle of a construct."""

    kind = ErrorKind.unexpected_end_of_input

    def __init__(self, wanted: str | None = None) -> None:
        self.wanted = wanted
        msg = "Unexpected end of formula"
        if wanted is not None:
            msg += f", expected {wanted!r}"
        super().__init__(msg)


class UnknownVariableError(FormulaError):
    """Reference to a variable that is neither declared nor bound.

    Attributes:
        name: The unresolved variable.
        available: Names that were available at the time.
    """

    kind = ErrorKind.unknown_variable

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available or []
        msg = f"Unknown variable: {name!r}"
        if self.available:
            msg += f". Available: {self.available}"
        super().__init__(msg)


class InvalidBoundVariableError(FormulaError):
    """The counter of a ``sum``/``mult`` aggregate cannot be bound.

    Attributes:
        name: The rejected counter (a literal's text when not a variable).
    """

    kind = ErrorKind.invalid_bound_variable

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        super().__init__(f"Invalid counting variable {name!r}: {reason}")


class InternalInconsistencyError(RuntimeError):
    """A pipeline stage produced output the next stage cannot consume.

    This signals a defect in rtformula itself, never a bad formula, and is
    therefore not a :class:`FormulaError`.
    """

    kind = ErrorKind.internal_inconsistency

    def __init__(self, message: str, detail: Any = None) -> None:
        self.detail = detail
        super().__init__(f"Internal inconsistency: {message}")

