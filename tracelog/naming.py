import os
import re
from typing import List, Tuple

def split_name(filename: str) -> Tuple[str, str, str]:
    dir_ = os.path.dirname(filename)
    base, ext = os.path.splitext(os.path.basename(filename))
    return dir_, base, ext

def rotated_filename(filename: str, seq: int) -> str:
    # trace.json -> trace.0.json ; trace -> trace.0
    dir_, base, ext = split_name(filename)
    return os.path.join(dir_, f"{base}.{int(seq)}{ext}")

def list_rotated(filename: str) -> List[Tuple[int, str]]:
    dir_, base, ext = split_name(filename)
    pat = re.compile(re.escape(base) + r"\.(\d+)" + re.escape(ext) + r"$")
    try:
        names = os.listdir(dir_ or ".")
    except FileNotFoundError:
        return []
    out = []
    for n in names:
        m = pat.match(n)
        if m:
            out.append((int(m.group(1)), os.path.join(dir_, n)))
    return sorted(out)

def next_sequence_id(filename: str) -> int:
    rotated = list_rotated(filename)
    return rotated[-1][0] + 1 if rotated else 0
