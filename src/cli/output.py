"""
Human-readable trade journal output for the terminal.

Every CLI command uses these formatters. Journal receives the same data.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Sequence

from trade_core.contracts import PricedTrade, Summary
from trade_core.pnl import format_duration

if TYPE_CHECKING:
    from data.normalizer import ParseResult
    from trade_core.pipeline import ImportResult


def _money(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def _ratio(value: float) -> str:
    return "inf" if math.isinf(value) else f"{value:.2f}"


def _ts(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def format_import_report(parsed: ParseResult, result: ImportResult, *, dry_run: bool = False) -> str:
    """Format one import: parse stats, match outcome and merge outcome."""
    stats = parsed.stats
    merge = result.merge
    title = "Import (dry run)" if dry_run else "Import"
    lines = [
        f"=== {title}: {stats.format} ===",
        f"Lines        : {stats.total_lines}",
        f"Orders       : {stats.valid_orders} valid, {stats.skipped_cancelled} cancelled, {stats.errors} rejected",
        f"Trades       : {result.report_line()}",
        f"New          : {merge.new_count}",
        f"Duplicates   : {merge.duplicate_count}",
    ]
    if merge.untracked_count:
        lines.append(f"Untracked    : {merge.untracked_count} (deduplicated by content only)")
    for pos in result.processed.open_positions:
        lines.append(f"Still open   : {pos.symbol} {pos.side.value} {pos.quantity}")
    for warning in parsed.warnings:
        lines.append(f"  warning: {warning}")
    lines.append(f"Store        : {len(merge.store)} trades")
    lines.append("===")
    return "\n".join(lines)


def format_summary(summary: Summary, *, title: str = "Summary") -> str:
    """Format aggregate statistics."""
    if summary.total_trades == 0:
        return f"=== {title} ===\nNo trades.\n==="
    lines = [
        f"=== {title} ===",
        f"Trades       : {summary.total_trades} (W:{summary.win_count} / L:{summary.loss_count})",
        f"Win rate     : {summary.win_rate:.1f}%",
        f"Net P&L      : {_money(summary.total_net_profit)}",
        f"Gross P&L    : {_money(summary.total_gross_profit)}",
        f"Commission   : {_money(summary.total_commission)}",
        f"Avg trade    : {_money(summary.average_net_profit)}",
        f"Avg win/loss : {_money(summary.average_win)} / {_money(summary.average_loss)}",
        f"Best/worst   : {_money(summary.best_trade)} / {_money(summary.worst_trade)}",
        f"Profit factor: {_ratio(summary.profit_factor)}",
        f"Sharpe       : {summary.sharpe_ratio:.2f}",
        f"Max drawdown : {_money(summary.max_drawdown)}",
        f"Streaks      : {summary.longest_win_streak} wins / {summary.longest_loss_streak} losses",
    ]
    if summary.date_range:
        lines.append(f"Period       : {_ts(summary.date_range.start)} -> {_ts(summary.date_range.end)}")
    lines.append("===")
    return "\n".join(lines)


def format_trade(trade: PricedTrade) -> str:
    return (
        f"  {_ts(trade.entry_time)}  {trade.contract:<8} {trade.side.value.upper():<5} "
        f"{trade.quantity:>3} @ {trade.entry_price:.2f} -> {trade.exit_price:.2f}  "
        f"{trade.point_difference:+.2f} pts  net {_money(trade.net_profit)}  "
        f"{trade.status.value.upper():<4} {format_duration(trade.duration)}"
    )


def format_trades(trades: Sequence[PricedTrade]) -> str:
    if not trades:
        return "No trades in store."
    lines = [f"=== Trades ({len(trades)}) ==="]
    lines.extend(format_trade(t) for t in trades)
    lines.append("===")
    return "\n".join(lines)
