"""
Trade Matcher: chronological Order stream -> round-trip Trades via FIFO lots.

One FIFO queue of open lots per symbol. Same-side orders scale in; an
opposite-side order closes the oldest lots first, emitting one Trade per lot
it touches, and any leftover quantity flips the position. Lots still open at
the end are reported as residual open quantity, never as Trades.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from trade_core.contracts import (
    Lot,
    MatchResult,
    OpenPosition,
    Order,
    OrderSide,
    Trade,
    TradeSide,
)
from trade_core.identity import trade_id
from trade_core.instruments import normalize_symbol

logger = logging.getLogger("tradelog.matcher")

_SIDES = {OrderSide.BUY.value, OrderSide.SELL.value}


def _qualifies(order: Order) -> bool:
    return (
        order.fill_price is not None
        and order.placing_time is not None
        and order.is_filled()
        and order.quantity > 0
        and (order.side or "").lower() in _SIDES
    )


def _sort_key(order: Order) -> tuple:
    # placing time, then fill price, then order id: identical on every run
    return (order.placing_time, order.fill_price, order.order_id)


def _side_of(order: Order) -> str:
    return order.side.lower()


def _trade_side(opening: Order) -> TradeSide:
    return TradeSide.LONG if _side_of(opening) == OrderSide.BUY.value else TradeSide.SHORT


def _make_trade(lot: Lot, exit_order: Order, qty: int, contract: str) -> Trade:
    entry = lot.order.slice(qty)
    exit_ = exit_order.slice(qty)
    margin_source = lot.order if lot.order.margin else exit_order
    return Trade(
        id=trade_id(lot.order.order_id, exit_order.order_id),
        entry_order=entry,
        exit_order=exit_,
        entry_price=lot.price,
        exit_price=exit_order.fill_price,
        quantity=qty,
        entry_time=lot.order.placing_time,
        exit_time=exit_order.placing_time,
        side=_trade_side(lot.order),
        contract=contract,
        margin=margin_source.margin or None,
        leverage=lot.order.leverage or exit_order.leverage or None,
        broker=lot.order.broker or exit_order.broker,
        reference_quantity=margin_source.full_quantity,
    )


def match(orders: Iterable[Order]) -> MatchResult:
    """Convert filled orders into FIFO-matched Trades (prices/quantities only).

    Orders without a fill price or placing time, or not in "filled" status,
    are dropped silently and counted in ``dropped_count``.
    """
    all_orders = list(orders)
    qualifying = [o for o in all_orders if _qualifies(o)]
    dropped = len(all_orders) - len(qualifying)
    qualifying.sort(key=_sort_key)

    queues: dict[str, deque[Lot]] = {}
    trades: list[Trade] = []

    for order in qualifying:
        symbol = normalize_symbol(order.symbol)
        queue = queues.setdefault(symbol, deque())

        if not queue or _side_of(queue[0].order) == _side_of(order):
            queue.append(Lot(quantity=order.quantity, price=order.fill_price, order=order))
            continue

        remaining = order.quantity
        while remaining > 0 and queue:
            lot = queue[0]
            close_qty = min(remaining, lot.quantity)
            trades.append(_make_trade(lot, order, close_qty, symbol))
            lot.quantity -= close_qty
            remaining -= close_qty
            if lot.quantity == 0:
                queue.popleft()

        if remaining > 0:
            # flipped: the leftover opens a lot on the other side
            queue.append(Lot(quantity=remaining, price=order.fill_price, order=order))

    open_positions = [
        OpenPosition(
            symbol=symbol,
            side=_trade_side(queue[0].order),
            quantity=sum(lot.quantity for lot in queue),
            lots=tuple(queue),
        )
        for symbol, queue in queues.items()
        if queue
    ]

    logger.info(
        "Matched %d trades from %d orders (%d dropped, %d symbols left open)",
        len(trades), len(all_orders), dropped, len(open_positions),
    )
    return MatchResult(trades=trades, open_positions=open_positions, dropped_count=dropped)
