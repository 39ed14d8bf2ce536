"""
Persist and load the trade store (SQLite). One JSON record per trade.

Load fails safe: a missing, corrupt or unreadable file yields an empty store
and a warning. Save rewrites the whole table in a single transaction, so a
failed save leaves the previous contents in place.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from data.codec import DocumentError, store_from_document, store_to_document, trade_to_record
from trade_core.migrations import CURRENT_SCHEMA_VERSION
from trade_core.store import TradeStore

logger = logging.getLogger("tradelog.repository")


class PersistenceError(Exception):
    """Raised when the store cannot be written. The in-memory store is unaffected."""


class TradeRepository:
    """SQLite-backed trade store. Single writer (one process)."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self._path), timeout=10.0)

    def _init_schema(self, c: sqlite3.Connection) -> None:
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS trades (
                seq INTEGER PRIMARY KEY,
                id TEXT NOT NULL,
                record TEXT NOT NULL
            )
            """
        )
        c.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )

    def load(self) -> TradeStore:
        """Return the persisted store, or an empty one if nothing usable is on disk."""
        if not self._path.exists():
            return TradeStore()
        try:
            with self._conn() as c:
                self._init_schema(c)
                meta = dict(c.execute("SELECT key, value FROM meta").fetchall())
                rows = c.execute("SELECT record FROM trades ORDER BY seq ASC").fetchall()
            doc = {
                "version": int(meta.get("schema_version", CURRENT_SCHEMA_VERSION)),
                "last_updated": meta.get("last_updated"),
                "trades": [json.loads(r[0]) for r in rows],
            }
            store = store_from_document(doc)
        except (sqlite3.Error, ValueError, DocumentError) as exc:
            logger.warning("Could not load trade store from %s (%s); starting empty", self._path, exc)
            return TradeStore()
        logger.info("Loaded %d trades from %s", len(store), self._path)
        return store

    def save(self, store: TradeStore) -> TradeStore:
        """Replace the persisted store with *store*. Returns it stamped with ``last_updated``.

        Raises
        ------
        PersistenceError
            If the database cannot be opened or written.
        """
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        stamped = TradeStore.from_trades(store.trades, last_updated=now)
        doc = store_to_document(stamped)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._conn() as c:
                self._init_schema(c)
                c.execute("DELETE FROM trades")
                c.executemany(
                    "INSERT INTO trades (seq, id, record) VALUES (?, ?, ?)",
                    [(i, t.id, json.dumps(trade_to_record(t))) for i, t in enumerate(stamped.trades)],
                )
                c.executemany(
                    "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                    [
                        ("schema_version", str(doc["version"])),
                        ("last_updated", doc["last_updated"]),
                        ("total_trades", str(doc["total_trades"])),
                    ],
                )
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"Could not save trade store to {self._path}: {exc}") from exc
        logger.info("Saved %d trades to %s", len(stamped), self._path)
        return stamped

    def clear(self) -> None:
        """Delete every persisted trade."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._conn() as c:
                self._init_schema(c)
                c.execute("DELETE FROM trades")
                c.execute(
                    "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                    ("total_trades", "0"),
                )
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"Could not clear trade store at {self._path}: {exc}") from exc

    def count(self) -> int:
        if not self._path.exists():
            return 0
        try:
            with self._conn() as c:
                self._init_schema(c)
                row = c.execute("SELECT COUNT(*) FROM trades").fetchone()
        except sqlite3.Error:
            return 0
        return row[0] if row else 0
