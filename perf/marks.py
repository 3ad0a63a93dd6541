import itertools
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

from sink.file_sink import FileAppendSink
from tracelog.errors import ConfigurationError
from tracelog.record import now_ms

logger = logging.getLogger(__name__)

@dataclass
class Measure:
    name: str
    start_ms: float
    duration_ms: float

class MarkSession:
    """
    marks y measures de reloj de pared.
    cada start() suma un sufijo ":<n>" propio de la sesión para no chocar nombres.
    """
    def __init__(self, clock: Callable[[], float] = now_ms,
                 on_measure: Optional[Callable[[Measure], None]] = None):
        self.clock = clock
        self.on_measure = on_measure
        self._ids = itertools.count()
        self._records: List[Measure] = []

    def start(self, name: str) -> Callable[[str], Measure]:
        name = f"{name}:{next(self._ids)}"
        last = self.clock()

        def mark(label: str) -> Measure:
            nonlocal last
            now = self.clock()
            m = Measure(f"{name}-{label}", last, now - last)
            last = now
            self._records.append(m)
            if self.on_measure:
                self.on_measure(m)
            return m

        return mark

    def take_records(self) -> List[Measure]:
        out, self._records = self._records, []
        return out

class PerformanceLogger:
    """
    escribe cada measure apenas se toma: "<name> - X.XX ms" a consola y/o archivo.
    el archivo va por un FileAppendSink, así ningún write bloquea el loop.
    """
    def __init__(self, filename: Optional[str] = None, console: bool = True):
        if not filename and not console:
            raise ConfigurationError("You need to choose the logger: filename or console")
        self.filename = filename
        self.console = console
        self.session: Optional[MarkSession] = None
        self._sink: Optional[FileAppendSink] = None
        self._written: Set[int] = set()
        self._previous: Optional[Callable[[Measure], None]] = None

    @staticmethod
    def format(m: Measure) -> str:
        return f"{m.name} - {m.duration_ms:.2f} ms"

    async def open(self, session: Optional[MarkSession] = None) -> MarkSession:
        if self.filename:
            sink = FileAppendSink(self.filename)
            await sink.open()
            sink.once("error", self._on_error)
            self._sink = sink
        self.session = session or MarkSession()
        # lo que la sesión ya juntó sale ahora; lo nuevo, al momento
        for m in self.session.take_records():
            self.observe(m)
        previous = self._previous = self.session.on_measure

        def on_measure(m: Measure):
            self._written.add(id(m))
            self.observe(m)
            if previous:
                previous(m)

        self.session.on_measure = on_measure
        return self.session

    def observe(self, m: Measure):
        line = self.format(m)
        if self.console:
            print(line)
        if self._sink is not None and self._sink.is_open:
            self._sink.write(line + "\n")

    def _on_error(self, error: BaseException):
        logger.warning("performance log %s failed: %s", self.filename, error)

    async def flush(self):
        if self._sink is not None and self._sink.is_open:
            await self._sink.flush()

    async def close(self):
        if self.session:
            for m in self.session.take_records():
                if id(m) not in self._written:
                    self.observe(m)
            self.session.on_measure = self._previous
        self._written.clear()
        sink, self._sink = self._sink, None
        if sink is not None:
            try:
                await sink.end()
            finally:
                await sink.close()
        self.session = None
