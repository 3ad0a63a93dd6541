"""Shared fixtures: in-memory sink and async helpers."""
import asyncio
import json
from pathlib import Path

import pytest

from sink.base import AppendSink, SinkClosedError


class MemorySink(AppendSink):
    """Append sink kept in memory; can fail on end() and apply backpressure."""

    def __init__(self, path, hwm=None, fail_end=False):
        super().__init__()
        self.path = path
        self.hwm = hwm
        self.fail_end = fail_end
        self.data = []
        self.buffered = 0
        self._open = False
        self.closed_by_force = False

    @property
    def is_open(self):
        return self._open

    async def open(self):
        self._open = True

    def write(self, data):
        if not self._open:
            raise SinkClosedError("memory sink closed")
        self.data.append(data)
        if self.hwm is None:
            return True
        self.buffered += len(data)
        return self.buffered < self.hwm

    def release(self):
        self.buffered = 0
        self._emit("drain")

    async def end(self):
        if self.fail_end:
            raise OSError("disk full")
        self._emit("finish")

    async def close(self):
        self._open = False
        self._emit("close")

    def force_close(self):
        self._open = False
        self.closed_by_force = True

    def text(self):
        return "".join(self.data)


class SinkFactory:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.sinks = []

    def __call__(self, path):
        s = MemorySink(path, **self.kwargs)
        self.sinks.append(s)
        return s

    @property
    def last(self):
        return self.sinks[-1]


@pytest.fixture
def memory_sinks():
    return SinkFactory


@pytest.fixture
def trace_path(tmp_path):
    return str(tmp_path / "trace.json")


@pytest.fixture
def read_names():
    def _read(path):
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return [e["name"] for e in data["traceEvents"]]
    return _read


@pytest.fixture
def wait_until():
    async def _wait(pred, timeout=3.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not pred():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.01)
    return _wait
