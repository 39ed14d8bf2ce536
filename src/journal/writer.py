"""
Import journal: append-only JSON lines, one per store-changing event.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


def _serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "__dict__") and not isinstance(obj, type):
        return {k: _serialize(v) for k, v in vars(obj).items() if not k.startswith("_")}
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(x) for x in obj]
    return obj


class JournalWriter:
    """Append-only journal. Each line is a JSON object with event type and payload."""

    def __init__(self, path: str | Path, *, echo_stdout: bool = False) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._echo = echo_stdout

    def _write(self, event_type: str, payload: dict) -> None:
        record = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event_type, **payload}
        line = json.dumps(_serialize(record)) + "\n"
        with open(self._path, "a") as f:
            f.write(line)
        if self._echo:
            print(line.rstrip())

    def import_completed(
        self,
        source: str,
        fmt: str,
        orders: int,
        trades: int,
        new: int,
        duplicates: int,
        unmatched: int,
        **extra: Any,
    ) -> None:
        self._write(
            "import_completed",
            {
                "source": source,
                "format": fmt,
                "orders": orders,
                "trades": trades,
                "new": new,
                "duplicates": duplicates,
                "unmatched": unmatched,
                **extra,
            },
        )

    def store_cleared(self, removed: int, **extra: Any) -> None:
        self._write("store_cleared", {"removed": removed, **extra})

    def sync(self, direction: str, remote: str, count: int, **extra: Any) -> None:
        self._write("sync", {"direction": direction, "remote": remote, "count": count, **extra})

    def restore(self, source: str, new: int, duplicates: int, **extra: Any) -> None:
        self._write("restore", {"source": source, "new": new, "duplicates": duplicates, **extra})
