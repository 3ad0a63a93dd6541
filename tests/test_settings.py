"""Tests for settings-driven construction."""
import pytest

from perf.traces import PerformanceTraces
from settings import Settings
from tracelog.errors import ConfigurationError
from tracelog.rotating import RotatingTraceLog


class TestSettings:
    def test_env_overrides(self, monkeypatch, trace_path):
        monkeypatch.setenv("PERFTRACE_TRACE_PATH", trace_path)
        monkeypatch.setenv("PERFTRACE_TRACE_MAX_FILE_SIZE", "2048")
        monkeypatch.setenv("PERFTRACE_TRACE_MAX_FILES", "3")
        s = Settings(_env_file=None)
        assert s.trace_path == trace_path
        assert s.trace_max_file_size == 2048
        assert s.trace_enabled()

    def test_writer_from_settings(self, trace_path):
        s = Settings(_env_file=None, trace_path=trace_path, trace_max_file_size=10,
                     trace_max_files=2, trace_retry_s=0.5, sink_high_water_mark=64)
        w = RotatingTraceLog.from_settings(s)
        assert (w.filename, w.max_file_size, w.max_files, w.retry_delay) == (trace_path, 10, 2, 0.5)
        assert w.sink_factory(trace_path).high_water_mark == 64

    def test_emitter_from_settings(self, trace_path):
        traces = PerformanceTraces.from_settings(Settings(_env_file=None, trace_path=trace_path))
        assert traces.filename == trace_path
        assert not traces.console

    def test_emitter_without_outputs(self, monkeypatch):
        monkeypatch.delenv("PERFTRACE_TRACE_PATH", raising=False)
        monkeypatch.delenv("PERFTRACE_TRACE_CONSOLE", raising=False)
        with pytest.raises(ConfigurationError):
            PerformanceTraces.from_settings(Settings(_env_file=None))
