import logging

FMT = "%(asctime)s %(levelname)s %(name)s %(message)s"

def setup_logging(level: str = "INFO"):
    root = logging.getLogger()
    # idempotente: streamlit re-ejecuta el script en cada interacción
    if not root.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(FMT))
        root.addHandler(h)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
