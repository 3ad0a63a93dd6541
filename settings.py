from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="PERFTRACE_", extra="ignore")

    # trace file
    trace_path: Optional[str] = None       # archivo activo; None = solo consola
    trace_console: bool = False
    trace_max_file_size: int = 100_000_000 # bytes antes de rotar
    trace_max_files: int = 0               # rotados a conservar, 0 = todos
    trace_retry_s: float = 1.0             # espera fija entre reintentos de open

    # sink
    sink_high_water_mark: int = 16384

    # logging
    log_level: str = "INFO"

    def trace_enabled(self) -> bool:
        return bool(self.trace_path) or self.trace_console

settings = Settings()
