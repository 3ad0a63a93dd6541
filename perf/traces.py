import functools
import inspect
import logging
from contextlib import contextmanager
from typing import Callable, Optional

from tracelog.errors import ConfigurationError
from tracelog.record import BEGIN, END, TraceRecord, mark_trace, now_ms
from tracelog.rotating import RotatingTraceLog

logger = logging.getLogger(__name__)

class PerformanceTraces:
    """
    emisor de trace events: archivo rotativo, consola, o ambos.
    la instrumentación es explícita (timerify / span), no se interceptan llamadas.
    """
    def __init__(self, filename: Optional[str] = None, console: Optional[bool] = None,
                 max_file_size: Optional[int] = None, max_files: Optional[int] = None,
                 retry_delay: Optional[float] = None,
                 writer: Optional[RotatingTraceLog] = None,
                 clock: Callable[[], float] = now_ms):
        self.console = bool(console)
        self.clock = clock
        self.dropped = 0
        self.file = writer
        if self.file is None and filename:
            self.file = RotatingTraceLog(filename, max_file_size=max_file_size,
                                         max_files=max_files, retry_delay=retry_delay)
        if self.file is None and not self.console:
            raise ConfigurationError("You need to choose the logger: filename or console")

    @classmethod
    def from_settings(cls, s) -> "PerformanceTraces":
        writer = RotatingTraceLog.from_settings(s) if s.trace_path else None
        return cls(console=s.trace_console, writer=writer)

    @property
    def filename(self) -> Optional[str]:
        return self.file.filename if self.file else None

    async def open(self):
        if self.file:
            await self.file.open()

    async def close(self):
        if not self.file:
            return
        await self.file.wait_idle()
        if self.file.active:
            await self.file.close()
        else:
            # el writer nunca abrió: lo encolado no llega a ningún archivo
            self.dropped += len(self.file.pending)
            self.file.pending.clear()
            self.file.cancel_retry()
        if self.dropped:
            logger.warning("%d trace records dropped (writer not open)", self.dropped)

    def trace(self, name: str, phase: str) -> TraceRecord:
        mark = mark_trace(name, phase, self.clock)
        if self.file and not self.file.write_trace(mark):
            self.dropped += 1
        if self.console:
            print(mark.to_json(), flush=True)
        return mark

    def begin(self, name: str) -> TraceRecord:
        return self.trace(name, BEGIN)

    def end(self, name: str) -> TraceRecord:
        return self.trace(name, END)

    @contextmanager
    def span(self, name: str):
        self.begin(name)
        try:
            yield
        finally:
            self.end(name)

    def timerify(self, fn: Optional[Callable] = None, name: str = ""):
        """
        decorador: @traces.timerify o @traces.timerify(name="db").
        emite B antes y E después (también si levanta), sync o async.
        """
        if fn is None:
            return functools.partial(self.timerify, name=name)

        fullname = f"{name}:{getattr(fn, '__qualname__', getattr(fn, '__name__', 'fn'))}"

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                with self.span(fullname):
                    return await fn(*args, **kwargs)
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            with self.span(fullname):
                return fn(*args, **kwargs)
        return wrapper
