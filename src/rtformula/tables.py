"""Row-wise evaluation of one formula over a polars DataFrame."""

from __future__ import annotations

import random

import polars as pl

from rtformula.formulas.errors import UnknownVariableError
from rtformula.formulas.evaluator import evaluate_formula
from rtformula.formulas.nodes import Node
from rtformula.formulas.render import extract_refs, render
from rtformula.logging.events import EventLevel, EventType, emit, make_formula_event


def evaluate_table(
    tree: Node,
    df: pl.DataFrame,
    output: str = "result",
    strict: bool = False,
    rng: random.Random | None = None,
) -> pl.DataFrame:
    """Evaluate *tree* once per row, using the row's columns as variables.

    Only the columns the formula references are read; they must be
    numeric.  A row with a null in any referenced column gets a null
    result.

    Args:
        tree: Parsed formula.
        df: Input rows.
        output: Name of the Float64 result column (replaced if present).
        strict: Strict (``nan``/``inf``) rather than safe arithmetic.
        rng: Source for the ``r`` variable.

    Returns:
        *df* with the result column appended.

    Raises:
        UnknownVariableError: If the formula references a column *df*
            does not have.
        ValueError: If a referenced column is not numeric.
    """
    refs = sorted(extract_refs(tree))
    for name in refs:
        if name not in df.columns:
            raise UnknownVariableError(name, available=list(df.columns))
        dtype = df.schema[name]
        if not (dtype.is_numeric() or dtype == pl.Null):
            raise ValueError(f"Column {name!r} must be numeric, got {dtype}")

    values: list[float | None] = []
    for row in df.iter_rows(named=True):
        store = {name: row[name] for name in refs}
        if any(v is None for v in store.values()):
            values.append(None)
            continue
        values.append(evaluate_formula(tree, store, strict, rng))

    emit(make_formula_event(
        EventType.table_evaluated,
        EventLevel.info,
        f"Evaluated {len(values)} rows",
        formula=render(tree),
        strict=strict,
        extra={"rows": len(values), "output": output},
    ))
    return df.with_columns(pl.Series(output, values, dtype=pl.Float64))
