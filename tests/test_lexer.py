"""Tests for lexical scanning of formula text."""

from __future__ import annotations

import pytest

from rtformula.formulas import (
    EmptyInputError,
    ErrorKind,
    PrecedenceClass,
    Token,
    UnrecognizedCharacterError,
    tokenize,
)


def _texts(formula: str) -> list[str]:
    return [t.text for t in tokenize(formula)]


def _classes(formula: str) -> list[int]:
    return [int(t.precedence) for t in tokenize(formula)]


# ────────────────────────────────────────────────────────────────
# Token model
# ────────────────────────────────────────────────────────────────


class TestToken:
    def test_equality_ignores_column(self) -> None:
        a = Token(text="x", precedence=PrecedenceClass.OPERAND, column=1)
        b = Token(text="x", precedence=PrecedenceClass.OPERAND, column=9)
        assert a == b
        assert hash(a) == hash(b)

    def test_class_is_part_of_identity(self) -> None:
        minus = Token(text="-", precedence=PrecedenceClass.ADDITIVE)
        other = Token(text="-", precedence=PrecedenceClass.UNARY_MINUS)
        assert minus != other

    def test_str(self) -> None:
        assert str(Token(text="log", precedence=PrecedenceClass.FUNCTION)) == "log,6"

    def test_frozen(self) -> None:
        tok = Token(text="x", precedence=PrecedenceClass.OPERAND)
        with pytest.raises(Exception):
            tok.text = "y"  # type: ignore[misc]

    def test_binary_classes(self) -> None:
        binary = [c for c in PrecedenceClass if c.is_binary]
        assert binary == [
            PrecedenceClass.COMPARISON,
            PrecedenceClass.ADDITIVE,
            PrecedenceClass.MULTIPLICATIVE,
            PrecedenceClass.POWER,
        ]


# ────────────────────────────────────────────────────────────────
# Reference sequence
# ────────────────────────────────────────────────────────────────


class TestReferenceFormula:
    def test_thirteen_tokens(self) -> None:
        assert _texts("(3 + x)*5^-log(y)") == [
            "(", "3", "+", "x", ")", "*", "5", "^", "-", "log", "(", "y", ")",
        ]

    def test_classes(self) -> None:
        assert _classes("(3 + x)*5^-log(y)") == [7, 0, 2, 0, 7, 3, 0, 4, 2, 6, 7, 0, 7]

    def test_columns_are_one_based(self) -> None:
        toks = tokenize("(3 + x)")
        assert [t.column for t in toks] == [1, 2, 4, 6, 7]


# ────────────────────────────────────────────────────────────────
# Numbers
# ────────────────────────────────────────────────────────────────


class TestNumbers:
    @pytest.mark.parametrize("text", ["12", "12.", "12.5", ".5", "0"])
    def test_number_forms(self, text: str) -> None:
        toks = tokenize(text)
        assert len(toks) == 1
        assert toks[0].text == text
        assert toks[0].precedence == PrecedenceClass.OPERAND

    def test_second_point_starts_new_number(self) -> None:
        assert _texts("1.2.3") == ["1.2", ".3"]

    def test_no_sign(self) -> None:
        assert _texts("-4") == ["-", "4"]

    def test_lone_point_rejected(self) -> None:
        with pytest.raises(UnrecognizedCharacterError):
            tokenize(".")


# ────────────────────────────────────────────────────────────────
# Names and functions
# ────────────────────────────────────────────────────────────────


class TestNames:
    def test_function_is_class_six(self) -> None:
        toks = tokenize("sqrt(x)")
        assert toks[0] == Token(text="sqrt", precedence=PrecedenceClass.FUNCTION)

    def test_function_case_folded(self) -> None:
        assert _texts("SIN(x)")[0] == "sin"
        assert _texts("CosH(x)")[0] == "cosh"

    def test_identifier_keeps_case(self) -> None:
        assert _texts("Rate") == ["Rate"]

    def test_function_prefix_identifier(self) -> None:
        assert _texts("sinx") == ["sinx"]
        assert _classes("sinx") == [0]

    def test_function_then_digits(self) -> None:
        assert _texts("sin2") == ["sin", "2"]
        assert _classes("sin2") == [6, 0]

    def test_identifier_with_digits(self) -> None:
        assert _texts("x1+y22") == ["x1", "+", "y22"]

    def test_longer_function_names(self) -> None:
        assert _texts("sinh(x)")[0] == "sinh"
        assert _texts("asin(x)")[0] == "asin"
        assert _texts("ln(x)")[0] == "ln"

    def test_aggregates(self) -> None:
        assert _classes("sum(i,3,i)") == [6, 7, 0, 7, 0, 7, 0, 7]
        assert _texts("MULT(i,3,i)")[0] == "mult"


# ────────────────────────────────────────────────────────────────
# Operators
# ────────────────────────────────────────────────────────────────


class TestOperators:
    def test_not_equal_is_one_token(self) -> None:
        toks = tokenize("x!=1")
        assert toks[1] == Token(text="!=", precedence=PrecedenceClass.COMPARISON)

    def test_bang_is_function(self) -> None:
        toks = tokenize("!(5)")
        assert toks[0] == Token(text="!", precedence=PrecedenceClass.FUNCTION)

    def test_operator_classes(self) -> None:
        assert _classes("= > < + - * / % ^ ( ) ,") == [1, 1, 1, 2, 2, 3, 3, 3, 4, 7, 7, 7]

    def test_whitespace_discarded(self) -> None:
        assert _texts(" x \t+\n 1 ") == ["x", "+", "1"]


# ────────────────────────────────────────────────────────────────
# Errors
# ────────────────────────────────────────────────────────────────


class TestLexErrors:
    def test_empty(self) -> None:
        with pytest.raises(EmptyInputError) as exc_info:
            tokenize("")
        assert exc_info.value.kind == ErrorKind.empty_input

    def test_whitespace_only(self) -> None:
        with pytest.raises(EmptyInputError):
            tokenize("   ")

    def test_unrecognized_character(self) -> None:
        with pytest.raises(UnrecognizedCharacterError) as exc_info:
            tokenize("x + $y")
        assert exc_info.value.char == "$"
        assert exc_info.value.position == 5
        assert "column 5" in str(exc_info.value)

    def test_first_offender_reported(self) -> None:
        with pytest.raises(UnrecognizedCharacterError) as exc_info:
            tokenize("a & b # c")
        assert exc_info.value.char == "&"
