"""
Pipeline orchestrator: chains Matcher -> P&L -> Store merge.

Pure: no I/O. The caller reads and normalizes the file beforehand and
persists ``ImportResult.store`` afterwards, only once merge has returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from trade_core.contracts import OpenPosition, Order, PricedTrade, Summary
from trade_core.instruments import ContractRegistry
from trade_core.matcher import match
from trade_core.pnl import price_all, summarize
from trade_core.store import MergeResult, TradeStore, merge


@dataclass(frozen=True)
class ProcessResult:
    """Matched and priced trades for one batch of orders, plus what stayed open."""

    trades: list[PricedTrade] = field(default_factory=list)
    open_positions: list[OpenPosition] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    dropped_count: int = 0

    @property
    def unmatched_count(self) -> int:
        """Orders that produced no trade: dropped ones plus lots left open."""
        return self.dropped_count + sum(len(p.lots) for p in self.open_positions)


@dataclass(frozen=True)
class ImportResult:
    processed: ProcessResult
    merge: MergeResult

    @property
    def store(self) -> TradeStore:
        return self.merge.store

    def report_line(self) -> str:
        return (
            f"{len(self.processed.trades)} trades processed, "
            f"{self.processed.unmatched_count} orders could not be matched"
        )


def process_orders(orders: Sequence[Order], registry: ContractRegistry) -> ProcessResult:
    """Match *orders* FIFO, price every trade, and summarize the batch."""
    matched = match(orders)
    priced = price_all(matched.trades, registry)
    return ProcessResult(
        trades=priced,
        open_positions=matched.open_positions,
        summary=summarize(priced),
        dropped_count=matched.dropped_count,
    )


def run_import(store: TradeStore, orders: Sequence[Order], registry: ContractRegistry) -> ImportResult:
    """normalize -> match -> price -> merge, minus the normalize and persist ends.

    The input store is not modified; the merged store is on the result.
    """
    processed = process_orders(orders, registry)
    merged = merge(store, processed.trades, orders)
    return ImportResult(processed=processed, merge=merged)
