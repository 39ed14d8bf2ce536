"""
Versioned migrations for persisted trade documents.

Schema versions:
    1  legacy camelCase document (``{"trades": [...], "version": "1.0"}``).
       Older matching paired orders by adjacency, so short trades were
       sometimes stored with the buy as entry. The v1 -> v2 step re-derives
       side and swaps entry/exit using order-type heuristics.
    2  current snake_case records (see data.codec).

Migrations are pure and idempotent: a v2 document passes through unchanged,
and the v1 side correction is a fixed point on its own output.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any

CURRENT_SCHEMA_VERSION = 2

_ENTRY_TYPES = {"limit", "stop"}
_EXIT_TYPES = {"stop loss", "stop-loss", "take profit", "take-profit"}


class MigrationError(ValueError):
    """Raised for a document whose schema version cannot be migrated."""


def schema_version(doc: dict[str, Any]) -> int:
    raw = doc.get("version")
    if raw is None:
        return 1
    try:
        return int(float(raw))
    except (TypeError, ValueError) as exc:
        raise MigrationError(f"Unrecognised schema version: {raw!r}") from exc


def is_entry_order_type(order_type: str | None) -> bool:
    """Limit and Stop orders are placed in advance (entries); Market, Stop Loss, Take Profit exit."""
    t = (order_type or "").strip().lower()
    if t in _EXIT_TYPES:
        return False
    return t in _ENTRY_TYPES


def correct_legacy_side(trade: dict[str, Any]) -> dict[str, Any]:
    """Re-derive side for one v1 trade; swap entry/exit when the stored exit was the real entry."""
    t = dict(trade)
    first, second = t.get("entryOrder"), t.get("exitOrder")
    if not first or not second:
        return t

    first_entry = is_entry_order_type(first.get("type"))
    second_entry = is_entry_order_type(second.get("type"))

    if second_entry and not first_entry:
        t["side"] = "SHORT" if (second.get("side") or "").lower() == "sell" else "LONG"
        t["entryOrder"], t["exitOrder"] = second, first
        t["entryPrice"], t["exitPrice"] = t.get("exitPrice"), t.get("entryPrice")
        t["entryTime"], t["exitTime"] = t.get("exitTime"), t.get("entryTime")
        t["entryOrderId"], t["exitOrderId"] = t.get("exitOrderId"), t.get("entryOrderId")
    elif first_entry and not second_entry:
        t["side"] = "SHORT" if (first.get("side") or "").lower() == "sell" else "LONG"
    else:
        t["side"] = t.get("side") or "LONG"
    return t


def _num(value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = "".join(ch for ch in str(value) if ch.isdigit() or ch in ".-")
    try:
        return float(cleaned)
    except ValueError:
        return None


def _seconds_between(start: Any, end: Any) -> float:
    try:
        a = datetime.fromisoformat(str(start).replace("Z", "+00:00"))
        b = datetime.fromisoformat(str(end).replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    return max((b - a).total_seconds(), 0.0)


def _v1_order(order: dict[str, Any] | None) -> dict[str, Any] | None:
    if not order:
        return None
    qty = int(_num(order.get("qty", order.get("quantity"))) or 0)
    return {
        "symbol": order.get("symbol", ""),
        "side": (order.get("side") or "").lower(),
        "order_type": (order.get("type") or "").lower(),
        "quantity": qty,
        "fill_price": _num(order.get("fillPrice")),
        "status": (order.get("status") or "").lower(),
        "placing_time": order.get("placingTime"),
        "order_id": str(order.get("orderId") or ""),
        "commission": _num(order.get("commission")),
        "margin": _num(order.get("margin")),
        "leverage": order.get("leverage") or None,
        "broker": order.get("broker", ""),
        "original_quantity": order.get("originalQuantity"),
    }


def _v1_trade_to_v2(trade: dict[str, Any]) -> dict[str, Any]:
    t = correct_legacy_side(trade)
    entry_order = _v1_order(t.get("entryOrder"))
    exit_order = _v1_order(t.get("exitOrder"))
    return {
        "id": t.get("id", ""),
        "side": (t.get("side") or "LONG").lower(),
        "contract": t.get("contract") or (entry_order or {}).get("symbol", ""),
        "quantity": int(_num(t.get("quantity")) or 0),
        "entry_price": _num(t.get("entryPrice")) or 0.0,
        "exit_price": _num(t.get("exitPrice")) or 0.0,
        "entry_time": t.get("entryTime"),
        "exit_time": t.get("exitTime"),
        "point_difference": _num(t.get("pointDifference")) or 0.0,
        "gross_profit": _num(t.get("grossProfit")) or 0.0,
        "total_commission": _num(t.get("totalCommission")) or 0.0,
        "net_profit": _num(t.get("netProfit")) or 0.0,
        "status": (t.get("status") or "LOSE").lower(),
        "duration_seconds": _seconds_between(t.get("entryTime"), t.get("exitTime")),
        "entry_order": entry_order,
        "exit_order": exit_order,
        "entry_order_id": str(t.get("entryOrderId") or (entry_order or {}).get("order_id") or ""),
        "exit_order_id": str(t.get("exitOrderId") or (exit_order or {}).get("order_id") or ""),
        "all_order_ids": [str(oid) for oid in (t.get("allOrderIds") or []) if oid],
        "margin": _num(t.get("margin")),
        "leverage": t.get("leverage") or None,
        "broker": t.get("broker") or (entry_order or {}).get("broker", ""),
        "multiplier": _num(t.get("multiplier")) or 1.0,
    }


def _v1_to_v2(doc: dict[str, Any]) -> dict[str, Any]:
    trades = doc.get("trades")
    if not isinstance(trades, list):
        raise MigrationError("Legacy document has no trade list")
    return {
        "version": 2,
        "last_updated": doc.get("lastUpdated"),
        "total_trades": len(trades),
        "trades": [_v1_trade_to_v2(t) for t in trades if isinstance(t, dict)],
    }


_STEPS = {1: _v1_to_v2}


def migrate_document(doc: dict[str, Any]) -> dict[str, Any]:
    """Bring *doc* to the current schema version. Does not mutate its argument."""
    out = copy.deepcopy(doc)
    version = schema_version(out)
    if version > CURRENT_SCHEMA_VERSION:
        raise MigrationError(f"Document schema v{version} is newer than supported v{CURRENT_SCHEMA_VERSION}")
    if version not in _STEPS and version != CURRENT_SCHEMA_VERSION:
        raise MigrationError(f"No migration path from schema v{version}")
    while version < CURRENT_SCHEMA_VERSION:
        out = _STEPS[version](out)
        version = schema_version(out)
    return out
