from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Any


class RuntimeEventLogger:
    """Append-only JSONL log of scheduler and submission events.

    One row per event, so the decision timeline of a run can be replayed
    after the fact. Passing ``data_dir=None`` gives a sink that drops rows.
    """

    def __init__(self, data_dir: str | None, filename: str = "runtime_events.jsonl"):
        self.path: Path | None = None
        if data_dir:
            self.path = Path(data_dir) / filename
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def emit(self, event: str, **fields: Any) -> None:
        if self.path is None:
            return
        payload = {
            "ts": round(time.time(), 3),
            "event": event,
            **fields,
        }
        row = json.dumps(payload, separators=(",", ":"), ensure_ascii=True, default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(row + "\n")

