"""Stateful wrapper pairing one formula tree with its variable store."""

from __future__ import annotations

import logging
import random
from typing import Iterable, MutableMapping

from rtformula.formulas.errors import FormulaError, UnknownVariableError
from rtformula.formulas.evaluator import evaluate_formula
from rtformula.formulas.nodes import Node
from rtformula.formulas.parser import FormulaCheck, check_formula, parse_formula
from rtformula.formulas.render import render
from rtformula.logging.events import (
    EventLevel,
    EventType,
    emit,
    emit_info,
    make_formula_event,
)

logger = logging.getLogger(__name__)


class RuntimeFormula:
    """A user-defined formula kept as a tree for quick re-evaluation.

    The variable store is owned by the instance (or shared, if one is
    passed in) and may be rebound freely between evaluations.  Arithmetic
    is safe by default: domain faults evaluate to ``0.0`` instead of
    ``nan``/``inf``.
    """

    def __init__(
        self,
        variables: MutableMapping[str, float] | None = None,
        *,
        strict: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        self._variables: MutableMapping[str, float] = variables if variables is not None else {}
        self._tree: Node | None = None
        self._strict = strict
        self._rng = rng

    @classmethod
    def from_tree(
        cls,
        tree: Node,
        variables: MutableMapping[str, float] | None = None,
        **kwargs,
    ) -> RuntimeFormula:
        """Wrap an already-built tree."""
        formula = cls(variables, **kwargs)
        formula._tree = tree
        return formula

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def all_vars(self) -> MutableMapping[str, float]:
        return self._variables

    def put_var(self, name: str, value: float) -> None:
        self._variables[name] = float(value)

    def get_var(self, name: str) -> float:
        if name not in self._variables:
            raise UnknownVariableError(name, available=sorted(self._variables))
        return self._variables[name]

    # ------------------------------------------------------------------
    # Formula
    # ------------------------------------------------------------------

    @property
    def tree(self) -> Node | None:
        return self._tree

    @property
    def strict(self) -> bool:
        return self._strict

    def set_strict(self, strict: bool) -> None:
        """Choose between strict (``nan``/``inf``) and safe (``0.0``) arithmetic."""
        self._strict = strict
        message = (
            "Operations causing numeric faults will return nan/inf"
            if strict
            else "Operations causing numeric faults will return 0"
        )
        emit_info(EventType.mode_changed, message, {"strict": strict})

    def set_formula(self, text: str, declared: Iterable[str] | None = None) -> None:
        """Parse *text* and make it the current formula.

        On failure the previous formula is kept and the error is raised.

        Raises:
            FormulaError: If any pipeline stage rejects the formula.
        """
        try:
            tree = parse_formula(text, declared)
        except FormulaError as exc:
            emit(make_formula_event(
                EventType.formula_rejected,
                EventLevel.warning,
                str(exc),
                formula=text,
                error_code=exc.kind.value,
            ))
            raise
        self._tree = tree
        emit(make_formula_event(
            EventType.formula_parsed,
            EventLevel.info,
            "Formula accepted",
            formula=text,
            extra={"rendered": render(tree)},
        ))

    def check(self, text: str, declared: Iterable[str] | None = None) -> FormulaCheck:
        """Validate *text* without replacing the current formula."""
        return check_formula(text, declared)

    def calc_value(self) -> float:
        """Evaluate the current formula against the variable store.

        Raises:
            ValueError: If no formula has been set.
            UnknownVariableError: If a referenced variable is unbound.
        """
        if self._tree is None:
            raise ValueError("No formula has been set")
        try:
            value = evaluate_formula(self._tree, self._variables, self._strict, self._rng)
        except UnknownVariableError as exc:
            emit(make_formula_event(
                EventType.formula_eval_failed,
                EventLevel.error,
                str(exc),
                formula=render(self._tree),
                strict=self._strict,
                error_code=exc.kind.value,
            ))
            raise
        logger.debug("evaluated %s -> %r", self.formula_to_string(), value)
        return value

    def calc_value_int(self) -> int:
        """:meth:`calc_value` truncated toward zero.

        Raises:
            ValueError: If the value is ``nan``.
            OverflowError: If the value is infinite.
        """
        return int(self.calc_value())

    def formula_to_string(self) -> str:
        if self._tree is None:
            return "None"
        return render(self._tree)

    def __str__(self) -> str:
        return f"{self.formula_to_string()}\n{dict(self._variables)}"
