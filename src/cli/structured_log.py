"""
Structured JSON event logger.

Emits one JSON object per line to stderr, for log aggregators or for piping
CLI runs into other tools.

Optional webhook: when configured, alert events (persist_failed, sync_failed,
error) are POSTed to the URL.
"""

from __future__ import annotations

import json
import logging
import sys
import urllib.request
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("tradelog.events")

ALERT_EVENTS = frozenset({"persist_failed", "sync_failed", "error"})


class StructuredEventLogger:
    """Emit structured JSON events to stderr and optional webhook."""

    def __init__(
        self,
        command: str,
        *,
        enabled: bool = True,
        webhook_url: str = "",
        stream: Any = None,
    ) -> None:
        self._command = command
        self._enabled = enabled
        self._webhook_url = webhook_url.strip()
        self._stream = stream or sys.stderr

    def _emit(self, event_type: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "command": self._command,
            **fields,
        }
        if self._enabled:
            self._stream.write(json.dumps(record) + "\n")
            self._stream.flush()

        if self._webhook_url and event_type in ALERT_EVENTS:
            self._post_webhook(record)

        return record

    def _post_webhook(self, record: dict) -> None:
        try:
            data = json.dumps(record).encode("utf-8")
            req = urllib.request.Request(
                self._webhook_url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            urllib.request.urlopen(req, timeout=5)
        except Exception as exc:
            logger.warning("Webhook POST failed: %s", exc)

    def import_start(self, source: str, fmt: str) -> dict:
        return self._emit("import_start", source=source, format=fmt)

    def import_complete(
        self,
        orders: int,
        trades: int,
        new: int,
        duplicates: int,
        unmatched: int,
    ) -> dict:
        return self._emit(
            "import_complete",
            orders=orders,
            trades=trades,
            new=new,
            duplicates=duplicates,
            unmatched=unmatched,
        )

    def persist_failed(self, path: str, reason: str) -> dict:
        return self._emit("persist_failed", path=path, reason=reason)

    def store_cleared(self, removed: int) -> dict:
        return self._emit("store_cleared", removed=removed)

    def sync_complete(self, direction: str, count: int) -> dict:
        return self._emit("sync_complete", direction=direction, count=count)

    def sync_failed(self, direction: str, reason: str) -> dict:
        return self._emit("sync_failed", direction=direction, reason=reason)

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)
