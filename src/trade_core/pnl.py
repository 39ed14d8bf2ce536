"""
P&L Calculator: Trade -> PricedTrade, and aggregate Summary over PricedTrades.

    LONG:  point difference = exit - entry
    SHORT: point difference = entry - exit
    gross = points × quantity × effective multiplier
    net   = gross - commission

Commission: when either leg carries a non-zero broker commission, each leg's
value is apportioned by quantity / original quantity (one parent order split
across several trades pays its commission once). Otherwise the registry rate
is charged for both sides of every contract.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from trade_core.contracts import (
    DateRange,
    Order,
    PricedTrade,
    Summary,
    Trade,
    TradeSide,
    TradeStatus,
)
from trade_core.instruments import ContractRegistry


def _leg_commission(order: Order, quantity: int) -> float:
    if not order.commission:
        return 0.0
    full = order.full_quantity
    if full <= 0:
        return 0.0
    return abs(order.commission) * quantity / full


def trade_commission(trade: Trade, registry: ContractRegistry) -> float:
    legs = (trade.entry_order, trade.exit_order)
    if any(leg.commission for leg in legs):
        return sum(_leg_commission(leg, trade.quantity) for leg in legs)
    return registry.specs_for(trade.contract).commission * 2 * trade.quantity


def price(trade: Trade, registry: ContractRegistry) -> PricedTrade:
    """Compute point difference, gross/net profit, commission and duration."""
    if trade.side == TradeSide.SHORT:
        points = trade.entry_price - trade.exit_price
    else:
        points = trade.exit_price - trade.entry_price
    multiplier = registry.effective_multiplier(trade)
    gross = points * trade.quantity * multiplier
    commission = trade_commission(trade, registry)
    net = gross - commission
    return PricedTrade(
        id=trade.id,
        entry_price=trade.entry_price,
        exit_price=trade.exit_price,
        quantity=trade.quantity,
        entry_time=trade.entry_time,
        exit_time=trade.exit_time,
        side=trade.side,
        contract=trade.contract,
        point_difference=points,
        gross_profit=gross,
        total_commission=commission,
        net_profit=net,
        status=TradeStatus.WIN if net > 0 else TradeStatus.LOSE,
        duration=trade.exit_time - trade.entry_time,
        entry_order=trade.entry_order,
        exit_order=trade.exit_order,
        entry_order_id=trade.entry_order.order_id,
        exit_order_id=trade.exit_order.order_id,
        margin=trade.margin,
        leverage=trade.leverage,
        broker=trade.broker,
        multiplier=multiplier,
    )


def price_all(trades: Iterable[Trade], registry: ContractRegistry) -> list[PricedTrade]:
    return [price(t, registry) for t in trades]


def format_duration(duration: timedelta) -> str:
    """``2d 3h 5m``, ``3h 5m`` or ``5m``."""
    minutes = max(int(duration.total_seconds() // 60), 0)
    hours, mins = divmod(minutes, 60)
    days, hrs = divmod(hours, 24)
    if days > 0:
        return f"{days}d {hrs}h {mins}m"
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


# ---------------------------------------------------------------------------
# Aggregate summary
# ---------------------------------------------------------------------------


def chronological(trades: Iterable[PricedTrade]) -> list[PricedTrade]:
    def key(t: PricedTrade) -> tuple:
        ts = t.exit_time or t.entry_time
        return (ts is None, ts or datetime.min, t.id)

    return sorted(trades, key=key)


def profit_factor(trades: Sequence[PricedTrade]) -> float:
    """Winning net / |losing net|; +inf with wins and no losses; 0 with no trades."""
    win_sum = sum(t.net_profit for t in trades if t.is_win)
    loss_sum = abs(sum(t.net_profit for t in trades if not t.is_win))
    if loss_sum > 0:
        return win_sum / loss_sum
    return math.inf if win_sum > 0 else 0.0


def sharpe_ratio(profits: Sequence[float]) -> float:
    """mean / population stdev of per-trade net profit; 0 below 2 trades or without variance."""
    if len(profits) < 2:
        return 0.0
    mean = sum(profits) / len(profits)
    variance = sum((p - mean) ** 2 for p in profits) / len(profits)
    std = math.sqrt(variance)
    return mean / std if std > 0 else 0.0


def max_drawdown(profits: Sequence[float]) -> float:
    """Largest peak-to-trough drop of the cumulative net-profit curve (>= 0)."""
    running = peak = worst = 0.0
    for p in profits:
        running += p
        peak = max(peak, running)
        worst = max(worst, peak - running)
    return worst


def longest_streak(trades: Sequence[PricedTrade], *, wins: bool) -> int:
    best = current = 0
    for t in trades:
        if t.is_win == wins:
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


def summarize(trades: Iterable[PricedTrade]) -> Summary:
    """Aggregate statistics. Empty input yields an all-zero Summary."""
    ordered = chronological(trades)
    n = len(ordered)
    if n == 0:
        return Summary()

    profits = [t.net_profit for t in ordered]
    winners = [t for t in ordered if t.is_win]
    losers = [t for t in ordered if not t.is_win]
    total_net = sum(profits)
    total_gross = sum(t.gross_profit for t in ordered)
    entry_times = sorted(t.entry_time for t in ordered if t.entry_time is not None)

    return Summary(
        total_trades=n,
        total_net_profit=total_net,
        total_gross_profit=total_gross,
        total_commission=sum(t.total_commission for t in ordered),
        average_net_profit=total_net / n,
        average_gross_profit=total_gross / n,
        win_count=len(winners),
        loss_count=len(losers),
        win_rate=len(winners) / n * 100,
        best_trade=max(profits),
        worst_trade=min(profits),
        average_win=sum(t.net_profit for t in winners) / len(winners) if winners else 0.0,
        average_loss=sum(t.net_profit for t in losers) / len(losers) if losers else 0.0,
        profit_factor=profit_factor(ordered),
        sharpe_ratio=sharpe_ratio(profits),
        max_drawdown=max_drawdown(profits),
        longest_win_streak=longest_streak(ordered, wins=True),
        longest_loss_streak=longest_streak(ordered, wins=False),
        date_range=DateRange(entry_times[0], entry_times[-1]) if entry_times else None,
    )
