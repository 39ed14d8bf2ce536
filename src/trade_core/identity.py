"""
Trade identity: structured ids, content fingerprints, and order-ID resolution.

Resolution priority for a trade's order IDs:
    1. IDs already attached (stored ``all_order_ids``, entry/exit order IDs,
       or the nested order objects)
    2. IDs parsed back out of a ``trade_{entryId}_{exitId}`` id
    3. Fuzzy fallback over the import's orders: placing time within 60s and
       fill price within 0.01 of the trade's entry or exit

The fuzzy step is a best-effort fallback for legacy/incomplete records. When
several orders cluster tightly in time and price it can attach the wrong one.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable

from trade_core.contracts import Order, PricedTrade
from trade_core.instruments import normalize_symbol

TRADE_ID_PREFIX = "trade_"
UNTRACKED_ID_PREFIX = "untracked_"

FUZZY_TIME_WINDOW = timedelta(seconds=60)
FUZZY_PRICE_TOLERANCE = 0.01

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")
_PLACEHOLDER_IDS = {"", "undefined", "null", "none"}
_IBKR_ID_RE = re.compile(r"ibkr_\d+_(?:buy|sell)_\d+(?:\.\d+)?_\d+(?:\.\d+)?_\d+", re.IGNORECASE)


def trade_id(entry_order_id: str, exit_order_id: str) -> str:
    return f"{TRADE_ID_PREFIX}{entry_order_id}_{exit_order_id}"


def pair_key(entry_order_id: str, exit_order_id: str) -> str | None:
    """Identity of one lot-closing step; None unless both legs are known."""
    if not entry_order_id or not exit_order_id:
        return None
    return f"{entry_order_id}|{exit_order_id}"


def epoch_ms(ts: datetime | None) -> int:
    """Milliseconds since the epoch; naive timestamps are read as UTC."""
    if ts is None:
        return 0
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(ts.timestamp() * 1000)


def _cents(price: float | None) -> int:
    # half-up, not banker's rounding
    return int(math.floor((price or 0.0) * 100 + 0.5))


def fingerprint(trade: PricedTrade) -> str:
    """Content identity: symbol + entry/exit timestamps + entry/exit price in cents."""
    sym = _NON_ALNUM_RE.sub("", normalize_symbol(trade.contract))
    return "_".join(
        str(part)
        for part in (
            sym,
            epoch_ms(trade.entry_time),
            epoch_ms(trade.exit_time),
            _cents(trade.entry_price),
            _cents(trade.exit_price),
        )
    )


def _dedupe(ids: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for oid in ids:
        if oid and oid not in seen:
            seen[oid] = None
    return tuple(seen)


def attached_order_ids(trade: PricedTrade) -> tuple[str, ...]:
    if trade.all_order_ids:
        return _dedupe(trade.all_order_ids)
    ids = [trade.entry_order_id, trade.exit_order_id]
    if not any(ids):
        ids = [
            trade.entry_order.order_id if trade.entry_order else "",
            trade.exit_order.order_id if trade.exit_order else "",
        ]
    return _dedupe(ids)


def ids_from_trade_id(tid: str) -> tuple[str, ...]:
    """``trade_123_456`` -> ``("123", "456")``.

    IBKR order IDs carry underscores of their own and are recovered whole;
    other IDs containing ``_`` do not survive this.
    """
    if not tid or not tid.startswith(TRADE_ID_PREFIX):
        return ()
    body = tid[len(TRADE_ID_PREFIX):]
    if "ibkr_" in body:
        return _dedupe(_IBKR_ID_RE.findall(body))
    parts = body.split("_")
    return _dedupe(p for p in parts if p.lower() not in _PLACEHOLDER_IDS)


def fuzzy_order_ids(trade: PricedTrade, orders: Iterable[Order]) -> tuple[str, ...]:
    found: list[str] = []
    for order in orders:
        if not order.order_id or order.placing_time is None or not order.fill_price:
            continue
        if _near(order, trade.entry_time, trade.entry_price):
            found.append(order.order_id)
        elif _near(order, trade.exit_time, trade.exit_price):
            found.append(order.order_id)
    return _dedupe(found)


def _near(order: Order, ts: datetime | None, price: float) -> bool:
    if ts is None:
        return False
    return (
        abs(epoch_ms(order.placing_time) - epoch_ms(ts)) < FUZZY_TIME_WINDOW.total_seconds() * 1000
        and abs(order.fill_price - price) < FUZZY_PRICE_TOLERANCE
    )


def resolve_order_ids(trade: PricedTrade, orders: Iterable[Order] = ()) -> tuple[str, ...]:
    """Order IDs for *trade*, by priority (attached, parsed from id, fuzzy)."""
    ids = attached_order_ids(trade)
    if ids:
        return ids
    ids = ids_from_trade_id(trade.id)
    if ids:
        return ids
    return fuzzy_order_ids(trade, orders)


def whole_leg_ids(trade: PricedTrade, resolved: tuple[str, ...]) -> tuple[str, ...]:
    """Resolved IDs whose order was fully consumed by this trade.

    A partial-fill slice shares its parent order's ID with sibling slices, so
    that ID alone does not identify the trade. Legs without an order object
    (legacy records) count as whole.
    """
    partial = {
        leg.order_id
        for leg in (trade.entry_order, trade.exit_order)
        if leg is not None and leg.quantity < leg.full_quantity
    }
    return tuple(oid for oid in resolved if oid not in partial)
