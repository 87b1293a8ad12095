from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class SnapshotStore:
    """Status JSON written atomically for external viewers."""

    def __init__(self, data_dir: str, filename: str = "status_snapshot.json"):
        self.path = Path(data_dir) / filename

    def write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str))
        tmp.replace(self.path)

