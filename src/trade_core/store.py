"""
Trade Store: append-only, deduplicated collection of PricedTrades.

TradeStore is an immutable value; ``merge``, ``merge_remote`` and ``clear``
are pure functions returning a new store. There is no module-level state:
whoever owns a store serializes merges against it (one merge in flight).

Identity:
    - order IDs (primary): a trade is a duplicate when its entry/exit pair is
      already stored, or when an order it fully consumed is already tracked.
      Partial-fill slices share the parent order's ID, so a partial leg's ID
      alone is not evidence of a duplicate.
    - content fingerprint (fallback): trades with no resolvable order ID are
      still added (fail open) under ``untracked_{fingerprint}`` and are
      deduplicated by fingerprint only. The remote-sync path checks the
      fingerprint for every trade.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable

from trade_core.contracts import Order, PricedTrade
from trade_core.identity import (
    TRADE_ID_PREFIX,
    UNTRACKED_ID_PREFIX,
    attached_order_ids,
    fingerprint,
    pair_key,
    resolve_order_ids,
    trade_id,
    whole_leg_ids,
)

logger = logging.getLogger("tradelog.store")


@dataclass(frozen=True)
class TradeStore:
    trades: tuple[PricedTrade, ...] = ()
    order_ids: frozenset[str] = frozenset()
    pair_keys: frozenset[str] = frozenset()
    fingerprints: frozenset[str] = frozenset()
    trade_ids: frozenset[str] = frozenset()
    last_updated: datetime | None = None

    @classmethod
    def from_trades(cls, trades: Iterable[PricedTrade], *, last_updated: datetime | None = None) -> TradeStore:
        """Rebuild the ID and fingerprint sets from a persisted trade list."""
        idx = _Index()
        for t in trades:
            idx.add(t)
        return idx.freeze(last_updated)

    def __len__(self) -> int:
        return len(self.trades)

    @property
    def untracked_count(self) -> int:
        return sum(1 for t in self.trades if t.untracked)


@dataclass(frozen=True)
class MergeResult:
    store: TradeStore
    new_count: int
    duplicate_count: int
    added: tuple[PricedTrade, ...] = ()
    untracked_count: int = 0


@dataclass
class _Index:
    trades: list[PricedTrade] = field(default_factory=list)
    order_ids: set[str] = field(default_factory=set)
    pair_keys: set[str] = field(default_factory=set)
    fingerprints: set[str] = field(default_factory=set)
    trade_ids: set[str] = field(default_factory=set)

    @classmethod
    def of(cls, store: TradeStore) -> _Index:
        return cls(
            trades=list(store.trades),
            order_ids=set(store.order_ids),
            pair_keys=set(store.pair_keys),
            fingerprints=set(store.fingerprints),
            trade_ids=set(store.trade_ids),
        )

    def add(self, trade: PricedTrade) -> None:
        self.trades.append(trade)
        self.order_ids.update(oid for oid in trade.all_order_ids if oid)
        self.order_ids.update(oid for oid in (trade.entry_order_id, trade.exit_order_id) if oid)
        key = pair_key(trade.entry_order_id, trade.exit_order_id)
        if key:
            self.pair_keys.add(key)
        self.fingerprints.add(fingerprint(trade))
        if trade.id:
            self.trade_ids.add(trade.id)

    def has_orders(self, trade: PricedTrade, ids: tuple[str, ...]) -> bool:
        key = pair_key(trade.entry_order_id, trade.exit_order_id)
        if key and key in self.pair_keys:
            return True
        return any(oid in self.order_ids for oid in whole_leg_ids(trade, ids))

    def freeze(self, last_updated: datetime | None) -> TradeStore:
        return TradeStore(
            trades=tuple(self.trades),
            order_ids=frozenset(self.order_ids),
            pair_keys=frozenset(self.pair_keys),
            fingerprints=frozenset(self.fingerprints),
            trade_ids=frozenset(self.trade_ids),
            last_updated=last_updated,
        )


def _usable_trade_id(tid: str) -> bool:
    return bool(tid) and tid.startswith(TRADE_ID_PREFIX) and "_undefined" not in tid and "_None" not in tid


def _with_identity(trade: PricedTrade, ids: tuple[str, ...]) -> PricedTrade:
    entry_id, exit_id = trade.entry_order_id, trade.exit_order_id
    # Legs are only filled from resolved IDs when neither side is attached.
    if not entry_id and not exit_id:
        entry_id = ids[0]
        exit_id = ids[1] if len(ids) > 1 else ""
    tid = trade.id if _usable_trade_id(trade.id) else trade_id(entry_id, exit_id)
    return replace(trade, id=tid, entry_order_id=entry_id, exit_order_id=exit_id, all_order_ids=ids)


def merge(
    store: TradeStore,
    new_trades: Iterable[PricedTrade],
    new_orders: Iterable[Order] = (),
) -> MergeResult:
    """Set-union *new_trades* into *store*; re-running with the same input adds nothing."""
    orders = list(new_orders)
    idx = _Index.of(store)
    added: list[PricedTrade] = []
    duplicates = untracked = 0

    for trade in new_trades:
        ids = resolve_order_ids(trade, orders)
        if not ids:
            fp = fingerprint(trade)
            if fp in idx.fingerprints:
                duplicates += 1
                continue
            logger.warning("Trade %s has no resolvable order IDs; tracking by fingerprint only", trade.id or fp)
            tracked = replace(trade, id=f"{UNTRACKED_ID_PREFIX}{fp}", all_order_ids=())
            untracked += 1
        else:
            tracked = _with_identity(trade, ids)
            if idx.has_orders(tracked, ids):
                duplicates += 1
                continue
        idx.add(tracked)
        added.append(tracked)

    logger.info(
        "Merge: %d new, %d duplicates, store now %d trades / %d order IDs",
        len(added), duplicates, len(idx.trades), len(idx.order_ids),
    )
    return MergeResult(
        store=idx.freeze(store.last_updated),
        new_count=len(added),
        duplicate_count=duplicates,
        added=tuple(added),
        untracked_count=untracked,
    )


def merge_remote(store: TradeStore, remote_trades: Iterable[PricedTrade]) -> MergeResult:
    """Merge trades pulled from a remote copy: skip on known id, known orders, or known fingerprint."""
    idx = _Index.of(store)
    added: list[PricedTrade] = []
    duplicates = 0

    for trade in remote_trades:
        if trade.id and trade.id in idx.trade_ids:
            duplicates += 1
            continue
        ids = attached_order_ids(trade)
        if ids and idx.has_orders(trade, ids):
            duplicates += 1
            continue
        if fingerprint(trade) in idx.fingerprints:
            duplicates += 1
            continue
        tracked = replace(trade, all_order_ids=ids) if ids else trade
        idx.add(tracked)
        added.append(tracked)

    logger.info("Remote merge: %d new, %d duplicates", len(added), duplicates)
    return MergeResult(
        store=idx.freeze(store.last_updated),
        new_count=len(added),
        duplicate_count=duplicates,
        added=tuple(added),
        untracked_count=sum(1 for t in added if t.untracked),
    )


def dedupe_by_fingerprint(trades: Iterable[PricedTrade]) -> list[PricedTrade]:
    """First occurrence of each fingerprint, in order. Used before pushing to a remote."""
    seen: set[str] = set()
    out: list[PricedTrade] = []
    for t in trades:
        fp = fingerprint(t)
        if fp in seen:
            continue
        seen.add(fp)
        out.append(t)
    return out


def clear(store: TradeStore) -> TradeStore:
    """Explicit "clear all": the only operation that removes trades."""
    logger.info("Clearing trade store (%d trades)", len(store))
    return TradeStore()
