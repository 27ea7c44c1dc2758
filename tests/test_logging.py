"""Tests for the rtformula structured event logging system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def sink(log_dir: Path):
    from rtformula.logging.sink import EventSink

    return EventSink(log_dir)


@pytest.fixture
def module_sink(log_dir: Path):
    """Route module-level emit() to *log_dir* for one test."""
    import rtformula.logging.events as mod

    old_sink = mod._sink
    mod.set_log_dir(log_dir)
    yield mod.get_sink()
    mod._sink = old_sink


def _event(message: str = "m", **kwargs):
    from rtformula.logging.events import EventLevel, EventType, FormulaEvent

    kwargs.setdefault("level", EventLevel.info)
    kwargs.setdefault("event_type", EventType.formula_parsed)
    return FormulaEvent(message=message, **kwargs)


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestFormulaEvent:
    def test_event_defaults(self) -> None:
        evt = _event("hello")
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "formula_parsed"
        assert evt.context == {}
        assert evt.error_code is None

    def test_all_event_types_exist(self) -> None:
        from rtformula.logging.events import EventType

        expected = {
            "formula_parsed", "formula_rejected",
            "formula_evaluated", "formula_eval_failed", "table_evaluated",
            "mode_changed",
        }
        assert {e.value for e in EventType} == expected

    def test_make_formula_event(self) -> None:
        from rtformula.logging.events import EventLevel, EventType, make_formula_event

        evt = make_formula_event(
            EventType.formula_rejected,
            EventLevel.warning,
            "bad",
            formula="(x",
            strict=False,
            error_code="uneven_parentheses",
            extra={"position": 2},
        )
        assert evt.context == {"formula": "(x", "strict": False, "position": 2}
        assert evt.error_code == "uneven_parentheses"

    def test_strict_omitted_when_none(self) -> None:
        from rtformula.logging.events import EventLevel, EventType, make_formula_event

        evt = make_formula_event(EventType.formula_parsed, EventLevel.info, "ok", formula="x")
        assert "strict" not in evt.context


class TestTruncation:
    def test_long_values_truncated(self) -> None:
        from rtformula.logging.events import truncate_context

        out = truncate_context({"formula": "x+" * 500, "n": 3})
        assert out["formula"].endswith("...[truncated]")
        assert len(out["formula"]) == 256 + len("...[truncated]")
        assert out["n"] == 3

    def test_nested(self) -> None:
        from rtformula.logging.events import truncate_context

        out = truncate_context({"vars": {"names": ["a" * 300, "b"]}})
        assert out["vars"]["names"][0].endswith("...[truncated]")
        assert out["vars"]["names"][1] == "b"


# ---------------------------------------------------------------------------
# B) Filesystem NDJSON sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def test_write_creates_log(self, sink, log_dir) -> None:
        sink.write(_event("parsed"))
        lines = (log_dir / "events.ndjson").read_text().strip().splitlines()
        assert len(lines) == 1
        parsed = json.loads(lines[0])
        assert parsed["message"] == "parsed"
        assert parsed["level"] == "info"

    def test_json_sort_keys(self, sink, log_dir) -> None:
        sink.write(_event())
        parsed = json.loads((log_dir / "events.ndjson").read_text().strip())
        keys = list(parsed.keys())
        assert keys == sorted(keys)

    def test_read_most_recent_first(self, sink) -> None:
        for i in range(5):
            sink.write(_event(f"formula {i}"))
        events = sink.read()
        assert [e["message"] for e in events] == [f"formula {i}" for i in range(4, -1, -1)]

    def test_read_filters(self, sink) -> None:
        from rtformula.logging.events import EventLevel, EventType

        sink.write(_event("ok"))
        sink.write(_event("bad", level=EventLevel.error, event_type=EventType.formula_eval_failed))

        assert [e["message"] for e in sink.read(level="error")] == ["bad"]
        assert [e["message"] for e in sink.read(event_type="formula_parsed")] == ["ok"]

    def test_read_limit(self, sink) -> None:
        for i in range(10):
            sink.write(_event(f"f{i}"))
        assert len(sink.read(limit=3)) == 3

    def test_read_missing_log_returns_empty(self, sink) -> None:
        assert sink.read() == []

    def test_skips_corrupt_lines(self, sink, log_dir) -> None:
        sink.write(_event("first"))
        with open(log_dir / "events.ndjson", "a") as f:
            f.write("{not json\n")
        sink.write(_event("second"))
        assert [e["message"] for e in sink.read()] == ["second", "first"]

    def test_tail_bytes_bounds_read(self, log_dir) -> None:
        from rtformula.logging.sink import EventSink

        small = EventSink(log_dir, tail_bytes=400)
        for i in range(50):
            small.write(_event(f"formula {i}"))
        events = small.read()
        assert 0 < len(events) < 50
        assert events[0]["message"] == "formula 49"


# ---------------------------------------------------------------------------
# C) Module-level emit helpers (safety)
# ---------------------------------------------------------------------------


class TestEmitHelpers:
    def test_emit_without_log_dir_is_noop(self) -> None:
        import rtformula.logging.events as mod

        old_sink = mod._sink
        mod._sink = None
        try:
            mod.emit_info(mod.EventType.mode_changed, "test", {"strict": True})
        finally:
            mod._sink = old_sink

    def test_emit_info(self, module_sink, log_dir) -> None:
        from rtformula.logging.events import EventType, emit_info

        emit_info(EventType.mode_changed, "hello from test", {"strict": False})
        lines = (log_dir / "events.ndjson").read_text().strip().splitlines()
        assert len(lines) == 1
        assert "hello from test" in lines[0]

    def test_emit_error_sets_error_code(self, module_sink) -> None:
        from rtformula.logging.events import EventType, emit_error

        emit_error(
            EventType.formula_eval_failed,
            "boom",
            {"formula": "x"},
            error_code="unknown_variable",
        )
        parsed = module_sink.read()[0]
        assert parsed["error_code"] == "unknown_variable"
        assert parsed["level"] == "error"

    def test_emit_warning(self, module_sink) -> None:
        from rtformula.logging.events import EventType, emit_warning

        emit_warning(EventType.formula_rejected, "rejected", {"formula": "(x"})
        assert module_sink.read()[0]["level"] == "warning"

    def test_emit_never_raises(self, capsys) -> None:
        import rtformula.logging.events as mod

        class _Broken:
            def write(self, event) -> None:
                raise OSError("disk full")

        old_sink = mod._sink
        old_ts = mod._last_stderr_ts
        mod._sink = _Broken()
        mod._last_stderr_ts = 0.0
        try:
            mod.emit_info(mod.EventType.mode_changed, "x", {"strict": True})
        finally:
            mod._sink = old_sink
            mod._last_stderr_ts = old_ts
        assert "logging failed" in capsys.readouterr().err

    def test_emit_truncates(self, module_sink) -> None:
        from rtformula.logging.events import EventType, emit_info

        emit_info(EventType.formula_parsed, "long", {"formula": "y" * 1000})
        assert module_sink.read()[0]["context"]["formula"].endswith("...[truncated]")


# ---------------------------------------------------------------------------
# D) Attribution
# ---------------------------------------------------------------------------


class TestAttribution:
    def test_missing_formula_downgrades(self, module_sink) -> None:
        from rtformula.logging.events import EventType, emit_info

        emit_info(EventType.formula_parsed, "no context")
        parsed = module_sink.read()[0]
        assert parsed["level"] == "warning"
        assert parsed["context"]["_missing_attribution"] == ["formula"]

    def test_table_event_needs_rows(self, module_sink) -> None:
        from rtformula.logging.events import EventType, emit_info

        emit_info(EventType.table_evaluated, "done", {"formula": "x"})
        parsed = module_sink.read()[0]
        assert parsed["context"]["_missing_attribution"] == ["rows"]

    def test_complete_event_untouched(self, module_sink) -> None:
        from rtformula.logging.events import EventType, emit_info

        emit_info(EventType.mode_changed, "strict", {"strict": True})
        parsed = module_sink.read()[0]
        assert parsed["level"] == "info"
        assert "_missing_attribution" not in parsed["context"]
