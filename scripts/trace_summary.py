import sys
from settings import settings
from tracelog.reader import events_frame, summarize, trace_files

"""
cómo usar:
  python scripts/trace_summary.py [ARCHIVO]
    => lee el activo y sus rotados y muestra duraciones por nombre
"""

def main():
    path = sys.argv[1] if len(sys.argv) > 1 else settings.trace_path
    if not path:
        print("usage: python scripts/trace_summary.py <TRACE_FILE>")
        return
    files = trace_files(path)
    if not files:
        print(f"no trace files for {path}")
        return
    df = events_frame(files)
    print(f"{len(files)} files, {len(df)} events")
    out = summarize(df)
    if out.empty:
        print("no complete B/E pairs")
    else:
        print(out.to_string(index=False, float_format=lambda x: f"{x:.2f}"))

if __name__ == "__main__":
    main()
