"""Event model and the process-wide ``emit()`` entry points.

Timestamps are UTC ISO-8601 ending in ``Z``.  Nothing in this module
raises into the caller: a formula that parsed or evaluated must not fail
because its log line could not be written.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Parsing
    formula_parsed = "formula_parsed"
    formula_rejected = "formula_rejected"

    # Evaluation
    formula_evaluated = "formula_evaluated"
    formula_eval_failed = "formula_eval_failed"
    table_evaluated = "table_evaluated"

    # Settings
    mode_changed = "mode_changed"


# ---------------------------------------------------------------------------
# Context sanitizing
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 256
_TRUNCATED = "...[truncated]"


def truncate_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* with strings cut to 256 characters.

    Formula texts and variable listings are user-controlled and can be
    arbitrarily long.  Nested dicts and lists are handled.
    """
    return {k: _truncate_value(v) for k, v in context.items()}


def _truncate_value(v: Any) -> Any:
    if isinstance(v, dict):
        return truncate_context(v)
    if isinstance(v, list):
        return [_truncate_value(item) for item in v]
    if isinstance(v, str) and len(v) > _MAX_VALUE_LEN:
        return v[:_MAX_VALUE_LEN] + _TRUNCATED
    return v


# ---------------------------------------------------------------------------
# Attribution
# ---------------------------------------------------------------------------

# Context keys each event type must carry to be traceable to a formula.
_EVENT_REQUIRED_KEYS: dict[str, frozenset[str]] = {
    EventType.formula_parsed.value: frozenset({"formula"}),
    EventType.formula_rejected.value: frozenset({"formula"}),
    EventType.formula_evaluated.value: frozenset({"formula"}),
    EventType.formula_eval_failed.value: frozenset({"formula"}),
    EventType.table_evaluated.value: frozenset({"formula", "rows"}),
    EventType.mode_changed.value: frozenset({"strict"}),
}


def _validate_attribution(event: FormulaEvent) -> FormulaEvent:
    """Downgrade *event* to a warning if required context keys are absent.

    The missing keys are recorded under ``_missing_attribution``.
    """
    required = _EVENT_REQUIRED_KEYS.get(EventType(event.event_type).value, frozenset())
    missing = required.difference(event.context)
    if not missing:
        return event
    context = {**event.context, "_missing_attribution": sorted(missing)}
    return event.model_copy(update={"level": EventLevel.warning, "context": context})


def make_formula_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    formula: str,
    strict: bool | None = None,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> FormulaEvent:
    """Build an event whose context names the formula it concerns.

    Args:
        event_type: What happened.
        level: Severity.
        message: Human-readable summary.
        formula: Source text or rendered tree.
        strict: Arithmetic mode, recorded when given.
        error_code: An ``ErrorKind`` value for failures.
        extra: Additional context entries.
    """
    context: dict[str, Any] = {"formula": formula}
    if strict is not None:
        context["strict"] = strict
    context.update(extra or {})
    return FormulaEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=context,
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class FormulaEvent(BaseModel):
    """One line of the event log."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


# ---------------------------------------------------------------------------
# Process-wide sink
# ---------------------------------------------------------------------------

_sink: Any = None  # EventSink, or None to discard events


def set_log_dir(
    log_dir: Path | str | None,
    *,
    fsync: bool = False,
    tail_bytes: int | None = None,
) -> None:
    """Send subsequent events to ``<log_dir>/events.ndjson``.

    Passing None disables logging again.  Until this is called events
    are discarded.
    """
    global _sink
    from rtformula.logging.sink import EventSink

    _sink = None if log_dir is None else EventSink(Path(log_dir), fsync=fsync, tail_bytes=tail_bytes)


def get_sink() -> Any:
    return _sink


_STDERR_INTERVAL_SECS = 60.0
_last_stderr_ts = 0.0


def _stderr_warning(msg: str) -> None:
    """Report a logging failure on stderr, at most once a minute."""
    global _last_stderr_ts
    now = time.monotonic()
    if now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[rtformula] {msg}", file=sys.stderr)
    except Exception:
        pass


# ---------------------------------------------------------------------------
# Emitting
# ---------------------------------------------------------------------------


def emit(event: FormulaEvent) -> None:
    """Truncate, check attribution and write *event* to the sink.

    Never raises.  Failures produce a rate-limited stderr warning.
    """
    try:
        sink = get_sink()
        if sink is None:
            return
        event = event.model_copy(update={"context": truncate_context(event.context)})
        sink.write(_validate_attribution(event))
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def _emit_at(
    level: EventLevel,
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None,
    error_code: str | None,
) -> None:
    emit(FormulaEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=context or {},
        error_code=error_code,
    ))


def emit_info(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    _emit_at(EventLevel.info, event_type, message, context, None)


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    _emit_at(EventLevel.warning, event_type, message, context, error_code)


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    _emit_at(EventLevel.error, event_type, message, context, error_code)
