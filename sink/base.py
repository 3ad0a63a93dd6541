from typing import Callable, Dict, List

class SinkError(OSError):
    pass

class SinkClosedError(SinkError):
    pass

class AppendSink:
    """
    sink secuencial en modo append.
    write() nunca pierde datos: devuelve False cuando el buffer pasó la marca (backpressure).
    notificaciones: 'error', 'drain', 'finish', 'close' (one-shot, estilo once()).
    """
    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    async def open(self): ...
    def write(self, data: str) -> bool: ...
    async def end(self): ...
    async def close(self): ...
    def force_close(self): ...

    @property
    def is_open(self) -> bool: ...

    def once(self, event: str, cb: Callable):
        self._listeners.setdefault(event, []).append(cb)

    def remove_all_listeners(self, event: str):
        self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def _emit(self, event: str, *args) -> bool:
        cbs = self._listeners.pop(event, [])
        for cb in cbs:
            cb(*args)
        return bool(cbs)
