"""Text-to-tree pipeline: tokenize, validate, check, reorder, build."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from rtformula.formulas.builder import build_tree
from rtformula.formulas.errors import ErrorKind, FormulaError, FormulaSyntaxError
from rtformula.formulas.grammar import check_variables, validate
from rtformula.formulas.lexer import tokenize
from rtformula.formulas.nodes import Node
from rtformula.formulas.postfix import to_postfix

logger = logging.getLogger(__name__)


class FormulaCheck(BaseModel):
    """Outcome of :func:`check_formula`: a tree, or the kind of failure."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    tree: Optional[Node] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    position: Optional[int] = None


def parse_formula(text: str, declared: Iterable[str] | None = None) -> Node:
    """Parse formula text into an expression tree.

    Args:
        text: The formula, e.g. ``"(x=5)*6+(y%2=1)*4"``.
        declared: Variable names the caller will supply.  When None the
            variable check is skipped and unknown names only fail at
            evaluation time.

    Returns:
        The root node of the tree.

    Raises:
        FormulaError: Any error of the closed taxonomy in
            :mod:`rtformula.formulas.errors`, raised by the first stage
            that rejects the formula.
    """
    tokens = validate(tokenize(text))
    if declared is not None:
        check_variables(tokens, declared)
    tree = build_tree(to_postfix(tokens))
    logger.debug("parsed %r (%d tokens)", text, len(tokens))
    return tree


def check_formula(text: str, declared: Iterable[str] | None = None) -> FormulaCheck:
    """Like :func:`parse_formula`, but report user errors as a value.

    Internal inconsistencies are still raised: they are defects, not
    properties of the formula.
    """
    try:
        tree = parse_formula(text, declared)
    except FormulaError as exc:
        position = exc.position if isinstance(exc, FormulaSyntaxError) else None
        return FormulaCheck(
            ok=False, error_kind=exc.kind, message=str(exc), position=position
        )
    return FormulaCheck(ok=True, tree=tree)
