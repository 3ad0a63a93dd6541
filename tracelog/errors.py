class TraceLogError(Exception):
    pass

class ConfigurationError(TraceLogError, ValueError):
    pass

class TransientIOError(TraceLogError):
    """fallo de open o error async del sink; se reintenta, nunca llega al caller."""

class FatalCloseError(TraceLogError):
    pass

class RotationError(TraceLogError):
    def __init__(self, src: str, dst: str, cause: BaseException):
        super().__init__(f"rename {src} -> {dst} failed: {cause}")
        self.src = src
        self.dst = dst
        self.cause = cause
