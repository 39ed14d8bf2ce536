"""
TradingView paper-trading order history adapter.

Columns: Symbol, Side, Type, Qty, Limit Price, Stop Price, Fill Price,
Status, Commission, Placing Time, Closing Time, Order ID, Level ID,
Leverage, Margin. The export lists newest orders first.
"""

from __future__ import annotations

import logging

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

logger = logging.getLogger("tradelog.normalizer")

BROKER = "TradingView"

REQUIRED_COLUMNS = ("Symbol", "Side", "Type", "Qty", "Fill Price", "Status", "Placing Time", "Order ID")

_SIDES = {"buy", "sell"}


def _row_to_order(row: list[str], header: dict[str, int]) -> Order:
    commission_raw = cell(row, header, "Commission")
    return Order(
        symbol=cell(row, header, "Symbol"),
        side=cell(row, header, "Side").lower(),
        order_type=cell(row, header, "Type").lower(),
        quantity=parse_int(cell(row, header, "Qty", "Quantity")),
        fill_price=parse_price(cell(row, header, "Fill Price")),
        status=cell(row, header, "Status"),
        placing_time=parse_timestamp(cell(row, header, "Placing Time", "Time")),
        order_id=cell(row, header, "Order ID"),
        commission=parse_price(commission_raw) if commission_raw else None,
        margin=parse_money(cell(row, header, "Margin")),
        leverage=cell(row, header, "Leverage") or None,
        broker=BROKER,
    )


def _is_valid(order: Order) -> bool:
    return bool(
        order.symbol
        and order.order_id
        and order.side in _SIDES
        and order.fill_price is not None
        and order.quantity > 0
        and order.placing_time is not None
        and order.status.strip().lower() == FILLED
    )


def parse_tradingview(text: str) -> ParseResult:
    header, rows = read_table(text)
    require_columns(header, REQUIRED_COLUMNS, "TradingView")

    stats = ParseStats(format="tradingview", total_lines=len(rows))
    orders: list[Order] = []

    for lineno, row in enumerate(rows, start=2):
        if len(row) < len(header):
            stats.errors += 1
            logger.debug("Line %d: expected %d cells, got %d", lineno, len(header), len(row))
            continue
        order = _row_to_order(row, header)
        if order.status.strip().lower() == "cancelled":
            stats.skipped_cancelled += 1
            continue
        if not _is_valid(order):
            stats.errors += 1
            logger.debug("Line %d: invalid order %s", lineno, order.order_id or "?")
            continue
        orders.append(order)

    stats.valid_orders = len(orders)
    logger.info(
        "TradingView: %d valid, %d cancelled skipped, %d errors (of %d lines)",
        stats.valid_orders, stats.skipped_cancelled, stats.errors, stats.total_lines,
    )
    # newest-first export; reverse before the stable sort so ties keep execution order
    return ParseResult(orders=chronological_orders(list(reversed(orders))), stats=stats)
