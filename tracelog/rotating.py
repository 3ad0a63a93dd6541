import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Callable, Deque, Optional

from pydantic import BaseModel, Field, ValidationError

from sink import fs
from sink.base import AppendSink
from sink.file_sink import FileAppendSink
from .errors import ConfigurationError, FatalCloseError, RotationError, TraceLogError, TransientIOError
from .naming import list_rotated, next_sequence_id, rotated_filename
from .record import TraceRecord

logger = logging.getLogger(__name__)

HEADER = '{"traceEvents": ['
TRAILER = "]}"

class TraceLogOptions(BaseModel):
    filename: str = Field(min_length=1)
    max_file_size: int = Field(default=100_000_000, ge=1)
    max_files: int = Field(default=0, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)

class TraceLogState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    ACTIVE = "active"
    CLOSING = "closing"
    ROTATING = "rotating"

class RotatingTraceLog:
    """
    escribe trace events en formato {"traceEvents": [...]} y rota por tamaño.

    write_trace() nunca bloquea: escribe directo al sink o encola (abriendo,
    rotando, reintento pendiente o drain pausado por backpressure). el orden de
    los registros aceptados es siempre el orden de llamada.
    todas las operaciones corren en un único event loop.
    """
    def __init__(self, filename: Optional[str] = None, *,
                 max_file_size: Optional[int] = None,
                 max_files: Optional[int] = None,
                 retry_delay: Optional[float] = None,
                 sink_factory: Optional[Callable[[str], AppendSink]] = None):
        if not filename:
            raise ConfigurationError("filename is required")
        opts = dict(filename=filename, max_file_size=max_file_size,
                    max_files=max_files, retry_delay=retry_delay)
        try:
            self.options = TraceLogOptions(**{k: v for k, v in opts.items() if v is not None})
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        self.filename = self.options.filename
        self.max_file_size = self.options.max_file_size
        self.max_files = self.options.max_files
        self.retry_delay = self.options.retry_delay
        self.sink_factory = sink_factory or FileAppendSink

        self._sink: Optional[AppendSink] = None
        self.current_file_size = 0
        self.sequence_id = 0
        self._sequence_checked = False

        self.closed = True
        self.opening = False
        self.closing = False
        self.rotating = False
        self.header_written = False
        self.first_entry_written = False

        self.pending: Deque[TraceRecord] = deque()
        self._awaiting_drain = False
        self._retry_task: Optional[asyncio.Task] = None
        self._rotation_task: Optional[asyncio.Task] = None
        self._rotation_hold_until = 0.0
        self._retired = False

        self.last_io_error: Optional[TransientIOError] = None
        self.last_rotation_error: Optional[RotationError] = None

    @classmethod
    def from_settings(cls, s, sink_factory: Optional[Callable[[str], AppendSink]] = None) -> "RotatingTraceLog":
        if sink_factory is None:
            hwm = s.sink_high_water_mark
            sink_factory = lambda path: FileAppendSink(path, high_water_mark=hwm)
        return cls(s.trace_path, max_file_size=s.trace_max_file_size, max_files=s.trace_max_files,
                   retry_delay=s.trace_retry_s, sink_factory=sink_factory)

    # ----- estado -----
    @property
    def state(self) -> TraceLogState:
        if self.rotating: return TraceLogState.ROTATING
        if self.closing: return TraceLogState.CLOSING
        if self.opening: return TraceLogState.OPENING
        if self.closed: return TraceLogState.CLOSED
        return TraceLogState.ACTIVE

    @property
    def active(self) -> bool:
        return self._sink is not None and not self.closed

    @property
    def retry_pending(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    # ----- open / close -----
    async def open(self):
        if self._sink is not None or not self.closed:
            raise TraceLogError(f"already open: {self.filename}")
        if self.opening:
            raise TraceLogError(f"open already in progress: {self.filename}")

        self.opening = True
        self._retired = False
        try:
            if not self._sequence_checked:
                # no pisar rotados de una corrida anterior
                on_disk = await asyncio.to_thread(next_sequence_id, self.filename)
                self.sequence_id = max(self.sequence_id, on_disk)
                self._sequence_checked = True
            self.current_file_size = await fs.stat_size(self.filename)
            sink = self.sink_factory(self.filename)
            try:
                info = await fs.resume_trace_file(self.filename)
                await sink.open()
            except OSError as e:
                self._transient(f"open {self.filename} failed", e)
                self.retry()
                return
        finally:
            self.opening = False

        self.current_file_size = info.size
        self.header_written = info.header_written
        self.first_entry_written = info.has_entries
        self._sink = sink
        self.closed = False
        self._awaiting_drain = False
        sink.once("error", self.handle_error)
        self.cancel_retry()
        logger.debug("trace log open %s (size=%d, pending=%d)", self.filename, self.current_file_size, len(self.pending))
        self._drain()

    async def close(self):
        """
        cierre del usuario: si hay una rotación en vuelo la espera y cierra el
        archivo reabierto. después no hay reaperturas ni reintentos hasta otro open().
        """
        waited = False
        if self.rotating and self._rotation_task is not asyncio.current_task():
            await self.wait_idle()
            waited = True
        if not self.active:
            if not waited:
                raise TraceLogError(f"not open: {self.filename}")
            # la rotación no pudo reabrir: queda retirado igual
            self._retired = True
            self.cancel_retry()
            if self.pending:
                logger.warning("%s closed with %d records still queued", self.filename, len(self.pending))
            return
        self._retired = True
        await self._close_sink()

    async def _close_sink(self):
        if self.closed or self._sink is None:
            raise TraceLogError(f"not open: {self.filename}")

        sink = self._sink
        self.closing = True
        sink.remove_all_listeners("error")
        sink.remove_all_listeners("drain")
        self._awaiting_drain = False
        try:
            if not self.rotating:
                while self.pending:
                    self._write_now(self.pending.popleft())
            if not self.header_written:
                sink.write(HEADER)
                self.header_written = True
            sink.write(TRAILER)
            await sink.end()
            await sink.close()
        except OSError as e:
            try:
                sink.force_close()
            except OSError as e2:
                logger.debug("secondary close error ignored: %s", e2)
            raise FatalCloseError(f"close {self.filename} failed: {e}") from e
        finally:
            self.closing = False
            self._sink = None
            self.closed = True
            self.header_written = False
            self.first_entry_written = False

    # ----- escritura -----
    def write_trace(self, record: TraceRecord) -> bool:
        """False si no hay dónde escribir ni encolar (el caller descarta el registro)."""
        if self.rotating:
            self.pending.append(record)
            return True
        if self.closing:
            return False
        if self.opening or self.retry_pending:
            self.pending.append(record)
            return True
        if not self.active:
            return False
        if self.pending:
            self.pending.append(record)
            return True
        self._write_now(record)
        return True

    def _write_now(self, record: TraceRecord) -> bool:
        line = record.to_json()
        sink = self._sink
        if self.first_entry_written:
            ok = sink.write("," + line)
        else:
            if not self.header_written:
                sink.write(HEADER)
                self.header_written = True
            ok = sink.write(line)
            self.first_entry_written = True

        self.current_file_size += len(line.encode("utf-8"))
        if self.current_file_size >= self.max_file_size:
            self._schedule_rotation()
        return ok

    def _drain(self):
        sink = self._sink
        while self.pending and not self.rotating and sink is not None and sink is self._sink:
            ok = self._write_now(self.pending.popleft())
            if not ok and self.pending and not self.rotating:
                self._wait_for_drain(sink)
                break

    def _wait_for_drain(self, sink: AppendSink):
        if self._awaiting_drain:
            return
        self._awaiting_drain = True
        sink.once("drain", self._on_drain)

    def _on_drain(self):
        self._awaiting_drain = False
        if self.active and not self.closing:
            self._drain()

    # ----- rotación -----
    def _begin_rotation(self) -> bool:
        if self.rotating or self.closing:
            return False
        if not self.active:
            return False
        self.rotating = True
        return True

    def _schedule_rotation(self):
        loop = asyncio.get_running_loop()
        if loop.time() < self._rotation_hold_until:
            return
        if not self._begin_rotation():
            return
        self._rotation_task = loop.create_task(self._rotate())
        self._rotation_task.add_done_callback(self._rotation_done)

    async def rotate(self):
        if not self._begin_rotation():
            return
        self._rotation_task = asyncio.get_running_loop().create_task(self._rotate())
        self._rotation_task.add_done_callback(self._rotation_done)
        await asyncio.wait({self._rotation_task})

    def _rotation_done(self, task: asyncio.Task):
        if not task.cancelled() and task.exception() is not None:
            logger.error("rotation of %s crashed", self.filename, exc_info=task.exception())

    async def _rotate(self):
        try:
            await self._close_sink()
        except FatalCloseError as e:
            logger.error("rotation aborted: %s", e)
            self.rotating = False
            self.retry()
            return

        rotated = rotated_filename(self.filename, self.sequence_id)
        try:
            await fs.rename(self.filename, rotated)
        except OSError as e:
            # el archivo queda sin sufijo y se retoma en el open; no se consume el id
            self.last_rotation_error = RotationError(self.filename, rotated, e)
            self._rotation_hold_until = asyncio.get_running_loop().time() + self.retry_delay
            logger.warning("%s; resuming %s", self.last_rotation_error, self.filename)
        else:
            logger.info("rotated %s -> %s", self.filename, rotated)
            self.sequence_id += 1
            self.current_file_size = 0
            await self._prune()

        self.rotating = False
        try:
            await self.open()
        except OSError as e:
            self._transient(f"reopen {self.filename} failed", e)
            self.retry()

    async def _prune(self):
        if self.max_files <= 0:
            return
        rotated = await asyncio.to_thread(list_rotated, self.filename)
        for seq, path in rotated[:-self.max_files]:
            try:
                await fs.remove(path)
                logger.info("pruned %s", path)
            except OSError as e:
                logger.warning("prune %s failed: %s", path, e)

    async def wait_idle(self):
        while self._rotation_task is not None and not self._rotation_task.done():
            await asyncio.wait({self._rotation_task})

    # ----- errores / reintentos -----
    def handle_error(self, error: BaseException):
        sink, self._sink = self._sink, None
        self._transient(f"trace sink error on {self.filename}", error)
        if sink is not None:
            try:
                sink.force_close()
            except OSError as e:
                logger.debug("secondary close error ignored: %s", e)
        self.closed = True
        self.header_written = False
        self.first_entry_written = False
        self._awaiting_drain = False
        self.retry()

    def _transient(self, msg: str, cause: BaseException):
        self.last_io_error = TransientIOError(f"{msg}: {cause}")
        self.last_io_error.__cause__ = cause
        logger.warning("%s, retrying in %.1fs", self.last_io_error, self.retry_delay)

    def retry(self):
        if self.retry_pending or self._retired:
            return
        self._retry_task = asyncio.get_running_loop().create_task(self._retry_after(self.retry_delay))

    async def _retry_after(self, delay: float):
        await asyncio.sleep(delay)
        self._retry_task = None
        if not self.closed or self.opening or self.rotating or self._retired:
            return
        try:
            await self.open()
        except OSError as e:
            self._transient(f"stat {self.filename} failed", e)
            self.retry()

    def cancel_retry(self):
        task, self._retry_task = self._retry_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
