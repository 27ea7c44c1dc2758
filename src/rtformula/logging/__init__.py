"""Structured event logging for rtformula.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from rtformula.logging.events import (
    EventLevel,
    EventType,
    FormulaEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    get_sink,
    make_formula_event,
    set_log_dir,
    truncate_context,
)
from rtformula.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "FormulaEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "get_sink",
    "make_formula_event",
    "set_log_dir",
    "truncate_context",
]
