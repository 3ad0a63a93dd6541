import asyncio
import logging
from collections import deque
from typing import Deque, Optional
from .base import AppendSink, SinkClosedError

logger = logging.getLogger(__name__)

class FileAppendSink(AppendSink):
    def __init__(self, path: str, high_water_mark: int = 16384):
        super().__init__()
        self.path = path
        self.high_water_mark = int(high_water_mark)
        self._fh = None
        self._chunks: Deque[bytes] = deque()
        self._buffered = 0
        self._flusher: Optional[asyncio.Task] = None
        self._error: Optional[BaseException] = None
        self._need_drain = False
        self._ending = False

    @property
    def is_open(self) -> bool:
        return self._fh is not None

    @property
    def buffered(self) -> int:
        return self._buffered

    async def open(self):
        if self._fh is not None:
            raise SinkClosedError(f"sink already open: {self.path}")
        self._fh = await asyncio.to_thread(open, self.path, "ab")
        self._error = None
        self._ending = False
        logger.debug("sink open %s", self.path)

    def write(self, data: str) -> bool:
        if self._fh is None or self._ending:
            raise SinkClosedError(f"write after end: {self.path}")
        chunk = data.encode("utf-8")
        self._chunks.append(chunk)
        self._buffered += len(chunk)
        self._kick()
        ok = self._buffered < self.high_water_mark
        if not ok:
            self._need_drain = True
        return ok

    def _kick(self):
        if self._error is not None:
            return
        if self._flusher is None or self._flusher.done():
            self._flusher = asyncio.get_running_loop().create_task(self._flush_loop())

    async def _flush_loop(self):
        fh = self._fh
        while self._chunks and self._fh is fh:
            batch = b"".join(self._chunks)
            self._chunks.clear()
            try:
                await asyncio.to_thread(fh.write, batch)
            except (OSError, ValueError) as e:
                # ValueError: handle cerrado por debajo (force_close)
                self._error = e if isinstance(e, OSError) else SinkClosedError(str(e))
                logger.warning("sink write failed %s: %s", self.path, e)
                self._emit("error", self._error)
                return
            self._buffered = max(self._buffered - len(batch), 0)
        if self._need_drain and self._buffered < self.high_water_mark:
            self._need_drain = False
            self._emit("drain")

    async def flush(self):
        """espera a que se vacíe el buffer y hace flush a nivel OS; se puede seguir escribiendo."""
        if self._fh is None:
            raise SinkClosedError(f"flush on closed sink: {self.path}")
        while self._flusher is not None and not self._flusher.done():
            await self._flusher
        if self._error is not None:
            raise self._error
        await asyncio.to_thread(self._fh.flush)

    async def end(self):
        if self._fh is None:
            raise SinkClosedError(f"end on closed sink: {self.path}")
        self._ending = True
        await self.flush()
        self._emit("finish")

    async def close(self):
        fh, self._fh = self._fh, None
        if fh is None:
            return
        try:
            await asyncio.to_thread(fh.close)
        finally:
            self._chunks.clear()
            self._buffered = 0
        self._emit("close")

    def force_close(self):
        fh, self._fh = self._fh, None
        self._chunks.clear()
        self._buffered = 0
        if fh is not None:
            fh.close()
