"""Runtime formula parsing and evaluation.

Public API::

    from rtformula.formulas import parse_formula, evaluate_formula, render
"""

from rtformula.formulas.builder import build_tree
from rtformula.formulas.errors import (
    EmptyInputError,
    ErrorKind,
    FormulaError,
    FormulaSyntaxError,
    InternalInconsistencyError,
    InvalidBoundVariableError,
    UnevenParenthesesError,
    UnexpectedEndOfInputError,
    UnexpectedTokenError,
    UnknownVariableError,
    UnrecognizedCharacterError,
)
from rtformula.formulas.evaluator import evaluate_formula
from rtformula.formulas.grammar import check_variables, validate
from rtformula.formulas.lexer import tokenize
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
from rtformula.formulas.parser import FormulaCheck, check_formula, parse_formula
from rtformula.formulas.postfix import to_postfix
from rtformula.formulas.render import extract_refs, render
from rtformula.formulas.tokens import PrecedenceClass, Token

__all__ = [
    "Aggregate",
    "AggregateOp",
    "Binary",
    "BinaryOp",
    "EmptyInputError",
    "ErrorKind",
    "FormulaCheck",
    "FormulaError",
    "FormulaSyntaxError",
    "InternalInconsistencyError",
    "InvalidBoundVariableError",
    "Literal",
    "Node",
    "PrecedenceClass",
    "Token",
    "Unary",
    "UnaryOp",
    "UnevenParenthesesError",
    "UnexpectedEndOfInputError",
    "UnexpectedTokenError",
    "UnknownVariableError",
    "UnrecognizedCharacterError",
    "Variable",
    "build_tree",
    "check_formula",
    "check_variables",
    "evaluate_formula",
    "extract_refs",
    "parse_formula",
    "render",
    "to_postfix",
    "tokenize",
    "validate",
]
