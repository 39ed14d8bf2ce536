"""
Push/pull the trade store to a KeyValueRemote.

push: drop fingerprint duplicates locally, then write the whole document.
pull: read the remote document and merge it with ``merge_remote`` (skip on
known trade id, tracked order IDs, or known fingerprint).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from data.codec import DocumentError, store_to_document, trades_from_document
from data.remote import KeyValueRemote
from trade_core.store import MergeResult, TradeStore, dedupe_by_fingerprint, merge_remote

logger = logging.getLogger("tradelog.sync")

TRADE_DATABASE_KEY = "tradeDatabase"


@dataclass(frozen=True)
class PushResult:
    store: TradeStore
    pushed_count: int
    duplicates_removed: int


def push(store: TradeStore, remote: KeyValueRemote, *, key: str = TRADE_DATABASE_KEY) -> PushResult:
    """Write the deduplicated store to *remote*. Raises RemoteSyncError on transport failure."""
    unique = dedupe_by_fingerprint(store.trades)
    removed = len(store) - len(unique)
    cleaned = TradeStore.from_trades(unique, last_updated=store.last_updated) if removed else store
    if removed:
        logger.info("Removed %d duplicate trades before push", removed)
    remote.put(key, store_to_document(cleaned))
    logger.info("Pushed %d trades to remote key %s", len(cleaned), key)
    return PushResult(store=cleaned, pushed_count=len(cleaned), duplicates_removed=removed)


def pull(store: TradeStore, remote: KeyValueRemote, *, key: str = TRADE_DATABASE_KEY) -> MergeResult:
    """Merge the remote copy into *store*. An absent or unreadable remote document merges nothing."""
    doc = remote.get(key)
    if not doc:
        logger.info("No remote trades under key %s", key)
        return MergeResult(store=store, new_count=0, duplicate_count=0)
    try:
        remote_trades = trades_from_document(doc)
    except DocumentError as exc:
        logger.warning("Remote document under %s ignored: %s", key, exc)
        return MergeResult(store=store, new_count=0, duplicate_count=0)
    result = merge_remote(store, remote_trades)
    logger.info("Merged %d trades from remote (local now has %d)", result.new_count, len(result.store))
    return result
