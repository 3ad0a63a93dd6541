import asyncio, random, sys
from settings import settings
from perf.traces import PerformanceTraces
from util.logs import setup_logging

"""
cómo usar:
  python scripts/trace_demo.py [ARCHIVO] [MAX_BYTES] [N]
    => genera N operaciones async con B/E y rota cada MAX_BYTES
tips:
  - con MAX_BYTES chico (ej 2000) se ven varias rotaciones: trace.0.json, trace.1.json...
  - PERFTRACE_TRACE_CONSOLE=true en .env para ver cada evento por stdout.
"""

async def main():
    setup_logging(settings.log_level)
    path = sys.argv[1] if len(sys.argv) > 1 else (settings.trace_path or "assets/trace.json")
    max_bytes = int(sys.argv[2]) if len(sys.argv) > 2 else settings.trace_max_file_size
    n = int(sys.argv[3]) if len(sys.argv) > 3 else 200

    traces = PerformanceTraces(filename=path, console=settings.trace_console,
                               max_file_size=max_bytes, max_files=settings.trace_max_files,
                               retry_delay=settings.trace_retry_s)
    await traces.open()

    @traces.timerify(name="demo")
    async def fetch(i: int):
        await asyncio.sleep(random.uniform(0.001, 0.01))
        return i

    @traces.timerify(name="demo")
    def parse(i: int):
        return sum(range(i * 100))

    try:
        for i in range(n):
            with traces.span(f"step:{i % 5}"):
                parse(await fetch(i))
    finally:
        await traces.close()
    print(f"done: {n} ops -> {path} (rotations={traces.file.sequence_id}, dropped={traces.dropped})")

if __name__ == "__main__":
    asyncio.run(main())
