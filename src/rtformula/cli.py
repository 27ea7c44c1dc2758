"""Command-line interface for rtformula."""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Any

import click

from rtformula import __version__
from rtformula.formulas.errors import FormulaError


@click.group()
@click.version_option(version=__version__, prog_name="rtformula")
def main() -> None:
    """rtformula -- parse, check and evaluate runtime-defined formulas.

    Pipeline: tokenize -> validate -> check variables -> postfix -> tree
    """


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_assignments(items: tuple[str, ...]) -> dict[str, float]:
    values: dict[str, float] = {}
    for item in items:
        if "=" not in item:
            raise click.ClickException(f"Invalid --var format: {item!r}. Use name=value.")
        k, v = item.split("=", 1)
        try:
            values[k.strip()] = float(v)
        except ValueError:
            raise click.ClickException(f"Invalid --var value for {k!r}: {v!r} is not a number.")
    return values


def _formula_error(exc: FormulaError) -> click.ClickException:
    return click.ClickException(f"[{exc.kind.value}] {exc}")


def _load(config_path: str | None) -> dict[str, Any]:
    from rtformula.project import configure_logging, load_config

    path = Path(config_path) if config_path else None
    try:
        config = load_config(path)
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e))
    base_dir = None
    if path is not None:
        base_dir = path if path.is_dir() else path.parent
    configure_logging(config, base_dir)
    return config


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


@main.command()
@click.argument("formula")
@click.option("--postfix", is_flag=True, help="Validate and show tokens in postfix order.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def tokens(formula: str, postfix: bool, as_json: bool) -> None:
    """Show the tokens of FORMULA as text,class pairs."""
    from rtformula.formulas import to_postfix, tokenize, validate

    try:
        toks = tokenize(formula)
        if postfix:
            toks = to_postfix(validate(toks))
    except FormulaError as e:
        raise _formula_error(e)

    if as_json:
        out = [{"text": t.text, "class": int(t.precedence)} for t in toks]
        click.echo(json.dumps(out, indent=2))
        return
    for t in toks:
        click.echo(str(t))


@main.command()
@click.argument("formula")
@click.option("--declare", "declared", multiple=True, help="Declare a variable name (repeatable).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def check(formula: str, declared: tuple[str, ...], as_json: bool) -> None:
    """Validate FORMULA; exit status 1 if it is rejected.

    Without --declare, unknown variable names are not checked.
    """
    from rtformula.formulas import check_formula, render

    result = check_formula(formula, list(declared) if declared else None)
    if as_json:
        click.echo(result.model_dump_json(indent=2))
        if not result.ok:
            raise SystemExit(1)
        return
    if not result.ok:
        raise click.ClickException(f"[{result.error_kind.value}] {result.message}")
    click.echo(f"ok: {render(result.tree)}")


@main.command()
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output the tree as JSON.")
def render(formula: str, as_json: bool) -> None:
    """Print FORMULA fully parenthesized, as the tree sees it."""
    from rtformula.formulas import parse_formula
    from rtformula.formulas import render as render_tree

    try:
        tree = parse_formula(formula)
    except FormulaError as e:
        raise _formula_error(e)
    if as_json:
        click.echo(tree.model_dump_json(indent=2))
    else:
        click.echo(render_tree(tree))


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--var", "assignments", multiple=True, help="Set a variable as name=value (repeatable).")
@click.option("--declare", "declared", multiple=True, help="Declare a variable name (repeatable).")
@click.option("--strict/--safe", "strict", default=None, help="Numeric faults give nan/inf (strict) or 0 (safe).")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="rtformula.yaml or its directory.")
@click.option("--seed", default=None, type=int, help="Seed for the random variable r.")
def eval_(
    formula: str,
    assignments: tuple[str, ...],
    declared: tuple[str, ...],
    strict: bool | None,
    config_path: str | None,
    seed: int | None,
) -> None:
    """Evaluate FORMULA and print its value."""
    from rtformula.logging.events import EventLevel, EventType, emit, make_formula_event
    from rtformula.runtime import RuntimeFormula

    config = _load(config_path)
    variables = dict(config["variables"])
    variables.update(_parse_assignments(assignments))
    names = list(declared) if declared else config["declared"]
    if strict is None:
        strict = config["strict"]

    rng = random.Random(seed) if seed is not None else None
    rf = RuntimeFormula(variables, strict=strict, rng=rng)
    try:
        rf.set_formula(formula, names)
        value = rf.calc_value()
    except FormulaError as e:
        raise _formula_error(e)

    emit(make_formula_event(
        EventType.formula_evaluated,
        EventLevel.info,
        "Formula evaluated",
        formula=rf.formula_to_string(),
        strict=strict,
        extra={"value": repr(value), "variables": sorted(variables)},
    ))
    click.echo(repr(value))


@main.command()
@click.argument("formula")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", default="result", show_default=True, help="Name of the result column.")
@click.option("--strict/--safe", "strict", default=None, help="Numeric faults give nan/inf (strict) or 0 (safe).")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="rtformula.yaml or its directory.")
@click.option("--out", "out_path", default=None, type=click.Path(dir_okay=False), help="Write CSV here instead of stdout.")
def table(
    formula: str,
    csv_path: str,
    output: str,
    strict: bool | None,
    config_path: str | None,
    out_path: str | None,
) -> None:
    """Evaluate FORMULA once per row of CSV_PATH (columns are variables)."""
    import polars as pl

    from rtformula.formulas import parse_formula
    from rtformula.tables import evaluate_table

    config = _load(config_path)
    if strict is None:
        strict = config["strict"]

    try:
        df = pl.read_csv(csv_path)
    except (pl.exceptions.PolarsError, OSError) as e:
        raise click.ClickException(f"Cannot read {csv_path}: {e}")
    try:
        tree = parse_formula(formula, config["declared"])
        result = evaluate_table(tree, df, output=output, strict=strict)
    except FormulaError as e:
        raise _formula_error(e)
    except ValueError as e:
        raise click.ClickException(str(e))

    if out_path:
        result.write_csv(out_path)
        click.echo(f"Wrote {len(result)} rows to {out_path}")
    else:
        click.echo(result.write_csv(), nl=False)
