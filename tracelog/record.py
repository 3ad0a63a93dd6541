import json
import os
import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict

BEGIN = "B"
END = "E"

def now_ms() -> float:
    return time.perf_counter() * 1000.0

@dataclass(frozen=True)
class TraceRecord:
    pid: int
    tid: int
    ts: float      # ms, reloj monotónico
    name: str
    ph: str        # "B" | "E"

    def __post_init__(self):
        if not isinstance(self.ph, str) or len(self.ph) != 1:
            raise ValueError(f"phase must be a single character, got {self.ph!r}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

def mark_trace(name: str, phase: str, clock: Callable[[], float] = now_ms) -> TraceRecord:
    return TraceRecord(
        pid=os.getpid(),
        tid=threading.get_native_id(),
        ts=float(clock()),
        name=name,
        ph=phase,
    )
