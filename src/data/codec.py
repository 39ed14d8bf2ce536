"""
Trade document codec: TradeStore <-> JSON-compatible dict.

Document shape (schema v2)::

    {"version": 2, "last_updated": "...", "total_trades": N, "trades": [record, ...]}

Timestamps are ISO-8601 strings; durations are seconds. Older documents are
brought forward by trade_core.migrations before decoding.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from trade_core.contracts import Order, PricedTrade, TradeSide, TradeStatus
from trade_core.migrations import CURRENT_SCHEMA_VERSION, migrate_document
from trade_core.store import TradeStore

logger = logging.getLogger("tradelog.codec")


class DocumentError(ValueError):
    """A trade document or record could not be decoded."""


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    # naive UTC throughout
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def _opt_float(value: Any) -> float | None:
    return float(value) if value is not None and value != "" else None


def order_to_record(order: Order) -> dict[str, Any]:
    return {
        "symbol": order.symbol,
        "side": order.side,
        "order_type": order.order_type,
        "quantity": order.quantity,
        "fill_price": order.fill_price,
        "status": order.status,
        "placing_time": _ts(order.placing_time),
        "order_id": order.order_id,
        "commission": order.commission,
        "margin": order.margin,
        "leverage": order.leverage,
        "broker": order.broker,
        "original_quantity": order.original_quantity,
    }


def order_from_record(rec: dict[str, Any] | None) -> Order | None:
    if not rec:
        return None
    original = rec.get("original_quantity")
    return Order(
        symbol=rec.get("symbol", ""),
        side=rec.get("side", ""),
        order_type=rec.get("order_type", ""),
        quantity=int(rec.get("quantity") or 0),
        fill_price=_opt_float(rec.get("fill_price")),
        status=rec.get("status", ""),
        placing_time=_parse_ts(rec.get("placing_time")),
        order_id=str(rec.get("order_id") or ""),
        commission=_opt_float(rec.get("commission")),
        margin=_opt_float(rec.get("margin")),
        leverage=rec.get("leverage") or None,
        broker=rec.get("broker", ""),
        original_quantity=int(original) if original is not None else None,
    )


def trade_to_record(trade: PricedTrade) -> dict[str, Any]:
    return {
        "id": trade.id,
        "side": trade.side.value,
        "contract": trade.contract,
        "quantity": trade.quantity,
        "entry_price": trade.entry_price,
        "exit_price": trade.exit_price,
        "entry_time": _ts(trade.entry_time),
        "exit_time": _ts(trade.exit_time),
        "point_difference": trade.point_difference,
        "gross_profit": trade.gross_profit,
        "total_commission": trade.total_commission,
        "net_profit": trade.net_profit,
        "status": trade.status.value,
        "duration_seconds": trade.duration.total_seconds(),
        "entry_order": order_to_record(trade.entry_order) if trade.entry_order else None,
        "exit_order": order_to_record(trade.exit_order) if trade.exit_order else None,
        "entry_order_id": trade.entry_order_id,
        "exit_order_id": trade.exit_order_id,
        "all_order_ids": list(trade.all_order_ids),
        "margin": trade.margin,
        "leverage": trade.leverage,
        "broker": trade.broker,
        "multiplier": trade.multiplier,
    }


def trade_from_record(rec: dict[str, Any]) -> PricedTrade:
    """Decode one v2 record. Raises DocumentError on a malformed record."""
    try:
        return PricedTrade(
            id=str(rec.get("id") or ""),
            entry_price=float(rec["entry_price"]),
            exit_price=float(rec["exit_price"]),
            quantity=int(rec["quantity"]),
            entry_time=_parse_ts(rec.get("entry_time")),
            exit_time=_parse_ts(rec.get("exit_time")),
            side=TradeSide(str(rec.get("side", "long")).lower()),
            contract=rec.get("contract", ""),
            point_difference=float(rec.get("point_difference") or 0.0),
            gross_profit=float(rec.get("gross_profit") or 0.0),
            total_commission=float(rec.get("total_commission") or 0.0),
            net_profit=float(rec.get("net_profit") or 0.0),
            status=TradeStatus(str(rec.get("status", "lose")).lower()),
            duration=timedelta(seconds=float(rec.get("duration_seconds") or 0.0)),
            entry_order=order_from_record(rec.get("entry_order")),
            exit_order=order_from_record(rec.get("exit_order")),
            entry_order_id=str(rec.get("entry_order_id") or ""),
            exit_order_id=str(rec.get("exit_order_id") or ""),
            all_order_ids=tuple(str(oid) for oid in rec.get("all_order_ids") or () if oid),
            margin=_opt_float(rec.get("margin")),
            leverage=rec.get("leverage") or None,
            broker=rec.get("broker", ""),
            multiplier=float(rec.get("multiplier") or 1.0),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise DocumentError(f"Malformed trade record {rec.get('id', '?')!r}: {exc}") from exc


def store_to_document(store: TradeStore, trades: list[PricedTrade] | None = None) -> dict[str, Any]:
    """Encode *store* (or an explicit trade list, e.g. a deduplicated push set)."""
    items = list(store.trades) if trades is None else trades
    return {
        "version": CURRENT_SCHEMA_VERSION,
        "last_updated": _ts(store.last_updated),
        "total_trades": len(items),
        "trades": [trade_to_record(t) for t in items],
    }


def trades_from_document(doc: dict[str, Any]) -> list[PricedTrade]:
    """Migrate *doc* to the current schema and decode its trades.

    Malformed records are skipped with a warning; a document that is not a
    mapping or cannot be migrated raises DocumentError.
    """
    if not isinstance(doc, dict):
        raise DocumentError(f"Trade document must be a mapping, got {type(doc).__name__}")
    try:
        current = migrate_document(doc)
    except ValueError as exc:
        raise DocumentError(str(exc)) from exc

    trades: list[PricedTrade] = []
    for rec in current.get("trades") or []:
        if not isinstance(rec, dict):
            continue
        try:
            trades.append(trade_from_record(rec))
        except DocumentError as exc:
            logger.warning("Skipping record: %s", exc)
    return trades


def store_from_document(doc: dict[str, Any]) -> TradeStore:
    trades = trades_from_document(doc)
    last = doc.get("last_updated") or doc.get("lastUpdated")
    return TradeStore.from_trades(trades, last_updated=_parse_ts(last))
