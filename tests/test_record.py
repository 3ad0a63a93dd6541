"""Tests for trace records."""
import json
import os

import pytest

from tracelog.record import TraceRecord, mark_trace


class TestTraceRecord:
    def test_compact_json_keeps_key_order(self):
        r = TraceRecord(pid=7, tid=8, ts=1.5, name="db:query", ph="B")
        assert r.to_json() == '{"pid":7,"tid":8,"ts":1.5,"name":"db:query","ph":"B"}'

    def test_non_ascii_names_are_not_escaped(self):
        r = TraceRecord(pid=1, tid=1, ts=0.0, name="señal", ph="E")
        assert "señal" in r.to_json()
        assert json.loads(r.to_json())["name"] == "señal"

    def test_phase_must_be_single_character(self):
        with pytest.raises(ValueError):
            TraceRecord(pid=1, tid=1, ts=0.0, name="x", ph="BE")
        with pytest.raises(ValueError):
            TraceRecord(pid=1, tid=1, ts=0.0, name="x", ph="")

    def test_records_are_immutable(self):
        r = TraceRecord(pid=1, tid=1, ts=0.0, name="x", ph="B")
        with pytest.raises(AttributeError):
            r.name = "y"

    def test_mark_trace_uses_process_and_clock(self):
        r = mark_trace("op", "B", clock=lambda: 42)
        assert r.pid == os.getpid()
        assert isinstance(r.tid, int)
        assert r.ts == 42.0
        assert (r.name, r.ph) == ("op", "B")
