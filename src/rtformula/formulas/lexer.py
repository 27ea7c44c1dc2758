"""Lark-based lexical scanner for runtime formulas.

Only lark's ``basic`` lexer is used: the grammar below declares terminals
and a trivial start rule so lark keeps every terminal.  Structure is
checked afterwards by :mod:`rtformula.formulas.grammar`.

Lexical rules:
- Numbers: digits with at most one decimal point (``12``, ``12.``, ``.5``)
- Function names (any case): a letter run that is exactly a known name
- Identifiers: a letter run followed by letters or digits (``x1``)
- ``!=`` is a comparison, a lone ``!`` is the factorial function
"""

from __future__ import annotations

import logging

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from rtformula.formulas.errors import EmptyInputError, UnrecognizedCharacterError
from rtformula.formulas.tokens import PrecedenceClass, Token

logger = logging.getLogger(__name__)

# FUNC wins over NAME through its priority; the lookahead makes "sinx"
# an identifier while "sin2" is still "sin" followed by "2".
GRAMMAR = r"""
start: (NUMBER | FUNC | NAME | COMPARISON | BANG | ADDITIVE | MULTIPLICATIVE | POWER | STRUCTURAL)*

FUNC.2: /(?:sqrt|log|ln|sinh|sin|cosh|cos|tanh|tan|asin|acos|atan|abs|ceil|floor|sum|mult)(?![^\W\d_])/i
NAME.1: /[^\W\d_][^\W_]*/
NUMBER: /\d+\.?\d*|\.\d+/

COMPARISON: "!=" | "=" | ">" | "<"
BANG: "!"
ADDITIVE: "+" | "-"
MULTIPLICATIVE: "*" | "/" | "%"
POWER: "^"
STRUCTURAL: "(" | ")" | ","

%import common.WS
%ignore WS
"""

_TERMINAL_CLASSES: dict[str, PrecedenceClass] = {
    "NUMBER": PrecedenceClass.OPERAND,
    "NAME": PrecedenceClass.OPERAND,
    "FUNC": PrecedenceClass.FUNCTION,
    "BANG": PrecedenceClass.FUNCTION,
    "COMPARISON": PrecedenceClass.COMPARISON,
    "ADDITIVE": PrecedenceClass.ADDITIVE,
    "MULTIPLICATIVE": PrecedenceClass.MULTIPLICATIVE,
    "POWER": PrecedenceClass.POWER,
    "STRUCTURAL": PrecedenceClass.STRUCTURAL,
}

_lexer = Lark(GRAMMAR, parser="lalr", lexer="basic", start="start")


def tokenize(text: str) -> list[Token]:
    """Split formula text into classified tokens.

    Args:
        text: The formula, e.g. ``"(3 + x)*5^-log(y)"``.

    Returns:
        Tokens in source order, whitespace discarded.

    Raises:
        EmptyInputError: If *text* contains no tokens.
        UnrecognizedCharacterError: On the first character no rule accepts.
    """
    if len(text) == 0:
        raise EmptyInputError()

    tokens: list[Token] = []
    try:
        for raw in _lexer.lex(text):
            klass = _TERMINAL_CLASSES[raw.type]
            value = str(raw)
            if raw.type == "FUNC":
                value = value.lower()
            tokens.append(Token(text=value, precedence=klass, column=raw.column))
    except UnexpectedCharacters as exc:
        raise UnrecognizedCharacterError(exc.char, position=exc.column) from exc

    if not tokens:
        raise EmptyInputError()

    logger.debug("tokenized %r into %d tokens", text, len(tokens))
    return tokens
