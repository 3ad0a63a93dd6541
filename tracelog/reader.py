import json
import os
from typing import Dict, Iterable, List, Tuple

import pandas as pd

from .naming import list_rotated
from .rotating import TRAILER

COLUMNS = ["pid", "tid", "ts", "name", "ph"]

def load_events(path: str) -> List[dict]:
    """lee un archivo terminado o el activo (sin "]}" todavía)."""
    with open(path, "r", encoding="utf-8") as f:
        text = f.read().strip()
    if not text:
        return []
    if not text.endswith(TRAILER):
        text += TRAILER
    return json.loads(text).get("traceEvents", [])

def trace_files(filename: str) -> List[str]:
    # rotados en orden de secuencia, el activo al final
    files = [p for _, p in list_rotated(filename)]
    if os.path.exists(filename):
        files.append(filename)
    return files

def events_frame(paths: Iterable[str]) -> pd.DataFrame:
    frames = []
    for p in paths:
        ev = load_events(p)
        if not ev:
            continue
        df = pd.DataFrame(ev, columns=COLUMNS)
        df["file"] = os.path.basename(p)
        frames.append(df)
    if not frames:
        return pd.DataFrame(columns=COLUMNS + ["file"])
    return pd.concat(frames, ignore_index=True)

def durations(frame: pd.DataFrame) -> pd.DataFrame:
    """
    empareja B/E por (pid, tid, name) con una pila; los eventos sin pareja se ignoran.
    """
    open_: Dict[Tuple[int, int, str], List[float]] = {}
    rows = []
    for r in frame.itertuples(index=False):
        key = (r.pid, r.tid, r.name)
        if r.ph == "B":
            open_.setdefault(key, []).append(float(r.ts))
        elif r.ph == "E" and open_.get(key):
            start = open_[key].pop()
            rows.append(dict(name=r.name, start_ms=start, duration_ms=float(r.ts) - start))
    return pd.DataFrame(rows, columns=["name", "start_ms", "duration_ms"])

def summarize(frame: pd.DataFrame) -> pd.DataFrame:
    d = durations(frame)
    if d.empty:
        return pd.DataFrame(columns=["name", "count", "total_ms", "mean_ms", "max_ms"])
    g = d.groupby("name")["duration_ms"]
    out = pd.DataFrame({
        "count": g.count(),
        "total_ms": g.sum(),
        "mean_ms": g.mean(),
        "max_ms": g.max(),
    }).reset_index()
    return out.sort_values("total_ms", ascending=False, ignore_index=True)
