import asyncio
import os
from dataclasses import dataclass

TRAILER = b"]}"
_TAIL = 64

@dataclass
class ResumeInfo:
    size: int
    header_written: bool
    has_entries: bool

async def stat_size(path: str) -> int:
    try:
        st = await asyncio.to_thread(os.stat, path)
    except FileNotFoundError:
        return 0
    return st.st_size

async def rename(old: str, new: str):
    await asyncio.to_thread(os.rename, old, new)

async def remove(path: str):
    await asyncio.to_thread(os.remove, path)

def _resume(path: str) -> ResumeInfo:
    if not os.path.exists(path):
        return ResumeInfo(0, False, False)
    with open(path, "r+b") as f:
        size = f.seek(0, os.SEEK_END)
        if size == 0:
            return ResumeInfo(0, False, False)
        start = max(size - _TAIL, 0)
        f.seek(start)
        tail = f.read().rstrip()
        if tail.endswith(TRAILER):
            # reabrimos el array: solo se recorta el cierre "]}"
            tail = tail[:-len(TRAILER)]
            size = start + len(tail)
            f.truncate(size)
        body = tail.rstrip()
        return ResumeInfo(size, True, not body.endswith(b"["))

async def resume_trace_file(path: str) -> ResumeInfo:
    """
    prepara un archivo existente para seguir agregando registros.
    nunca trunca contenido previo salvo el cierre final del array.
    """
    return await asyncio.to_thread(_resume, path)
