from __future__ import annotations

import logging
import sys

_LOG_FMT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"


def _coerce_level(level: str | int | None) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(str(level).strip().upper())
    if isinstance(numeric, int):
        return numeric
    raise ValueError(f"Unknown log level: {level!r}")


def get_logger(name: str, level: str | int | None = "INFO") -> logging.Logger:
    """Return a named logger with a single stderr handler attached."""
    log = logging.getLogger(name)
    log.setLevel(_coerce_level(level))
    if not any(getattr(h, "_orebot_handler", False) for h in log.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FMT, datefmt=_DATE_FMT))
        handler._orebot_handler = True  # type: ignore[attr-defined]
        log.addHandler(handler)
        log.propagate = False
    return log
