"""
Interactive Brokers trade-history adapter.

Columns: Symbol, Side, Qty, Fill Price, Time, Net Amount, Commission.
Every row is an executed fill. IBKR names futures by expiry (``"Mar20 '26"``),
so the product is recovered from the implied multiplier
``|net amount| / (fill price × qty)`` through the registry rule table.
"""

from __future__ import annotations

import logging
from collections import Counter

from data.normalizer import (
    ParseResult,
    ParseStats,
    cell,
    chronological_orders,
    parse_int,
    parse_money,
    parse_price,
    parse_timestamp,
    read_table,
    require_columns,
)
from trade_core.contracts import FILLED, Order
from trade_core.identity import epoch_ms
from trade_core.instruments import ContractRegistry, Resolution

logger = logging.getLogger("tradelog.normalizer")

BROKER = "IBKR"

REQUIRED_COLUMNS = ("Symbol", "Side", "Qty", "Fill Price", "Time")

_SIDES = {"buy", "sell", "bot", "sld"}
_SIDE_ALIASES = {"bot": "buy", "sld": "sell"}


def resolve_symbol(
    registry: ContractRegistry,
    raw_symbol: str,
    fill_price: float,
    qty: int,
    net_amount: float | None,
) -> tuple[str, Resolution | None]:
    """Registry symbol for an IBKR row, or the raw symbol when it cannot be named safely."""
    if not net_amount or not fill_price or qty <= 0:
        return raw_symbol, None
    implied = abs(net_amount) / (fill_price * qty)
    resolution = registry.resolve_by_multiplier(implied, fill_price)
    if resolution.symbol is None or resolution.ambiguous:
        return raw_symbol, resolution
    return resolution.symbol, resolution


def _order_id(ts_ms: int, side: str, qty: int, price: float, occurrence: int) -> str:
    return f"ibkr_{ts_ms}_{side}_{qty}_{price}_{occurrence}"


def parse_ibkr(text: str, registry: ContractRegistry) -> ParseResult:
    header, rows = read_table(text)
    require_columns(header, REQUIRED_COLUMNS, "Interactive Brokers")

    stats = ParseStats(format="ibkr", total_lines=len(rows))
    orders: list[Order] = []
    warnings: list[str] = []
    seen: Counter[str] = Counter()

    for lineno, row in enumerate(rows, start=2):
        raw_symbol = cell(row, header, "Symbol")
        side = cell(row, header, "Side").lower()
        qty = parse_int(cell(row, header, "Qty", "Quantity"))
        fill_price = parse_price(cell(row, header, "Fill Price", "Price"))
        ts = parse_timestamp(cell(row, header, "Time", "Date/Time"))

        if not raw_symbol or side not in _SIDES or qty <= 0 or not fill_price or ts is None:
            stats.errors += 1
            logger.debug("Line %d: invalid IBKR row", lineno)
            continue

        side = _SIDE_ALIASES.get(side, side)
        net_amount = parse_money(cell(row, header, "Net Amount"))
        commission = parse_money(cell(row, header, "Commission"))

        symbol, resolution = resolve_symbol(registry, raw_symbol, fill_price, qty, net_amount)
        if resolution is not None and resolution.warning:
            warnings.append(f"line {lineno}: {raw_symbol} @ {fill_price}: {resolution.warning}")
        elif resolution is None or resolution.symbol is None:
            warnings.append(f"line {lineno}: could not resolve instrument for {raw_symbol}")

        content_key = f"{epoch_ms(ts)}_{side}_{qty}_{fill_price}"
        seen[content_key] += 1

        orders.append(
            Order(
                symbol=symbol,
                side=side,
                order_type="market",
                quantity=qty,
                fill_price=fill_price,
                status=FILLED,
                placing_time=ts,
                order_id=_order_id(epoch_ms(ts), side, qty, fill_price, seen[content_key]),
                commission=commission or None,
                margin=abs(net_amount) if net_amount else None,
                broker=BROKER,
            )
        )

    stats.valid_orders = len(orders)
    for w in warnings:
        logger.warning("IBKR %s", w)
    logger.info("IBKR: %d valid, %d errors (of %d lines)", stats.valid_orders, stats.errors, stats.total_lines)
    return ParseResult(orders=chronological_orders(orders), stats=stats, warnings=warnings)
