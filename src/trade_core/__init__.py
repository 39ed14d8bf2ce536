"""
trade-core: pure trade-journal engine.

No I/O, no network, no side effects. Consumes normalized Orders, produces
FIFO-matched Trades, P&L and a deduplicated TradeStore. Fully deterministic
and unit-testable.
"""

from trade_core.contracts import (
    MatchResult,
    OpenPosition,
    Order,
    PricedTrade,
    Summary,
    Trade,
    TradeSide,
    TradeStatus,
)
from trade_core.instruments import ContractRegistry, normalize_symbol
from trade_core.matcher import match
from trade_core.pipeline import process_orders, run_import
from trade_core.pnl import price, summarize
from trade_core.store import MergeResult, TradeStore, merge

__all__ = [
    "ContractRegistry",
    "match",
    "MatchResult",
    "merge",
    "MergeResult",
    "normalize_symbol",
    "OpenPosition",
    "Order",
    "price",
    "PricedTrade",
    "process_orders",
    "run_import",
    "Summary",
    "summarize",
    "Trade",
    "TradeSide",
    "TradeStatus",
    "TradeStore",
]
