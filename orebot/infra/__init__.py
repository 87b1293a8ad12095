from .log import get_logger
from .retry import backoff_delay, retry_async
from .telemetry import RuntimeEventLogger

__all__ = ["get_logger", "backoff_delay", "retry_async", "RuntimeEventLogger"]
