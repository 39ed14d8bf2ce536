"""
Data contracts for trade-core: Order, Lot, Trade, PricedTrade, Summary.

trade-core consumes normalized Orders and produces Trades/PricedTrades.
No I/O; these are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class TradeSide(str, Enum):
    """Side of a round-trip, taken from the order that opened the lot."""

    LONG = "long"
    SHORT = "short"


class TradeStatus(str, Enum):
    WIN = "win"
    LOSE = "lose"


FILLED = "filled"


@dataclass(frozen=True)
class Order:
    """A single execution event as produced by the order normalizer.

    Copies with an adjusted ``quantity`` are made when a lot is partially
    closed; ``original_quantity`` then carries the parent order's full size.
    """

    symbol: str
    side: str  # "buy" | "sell"
    order_type: str  # "market" | "limit" | "stop" | "stop loss" | "take profit"
    quantity: int
    fill_price: float | None
    status: str
    placing_time: datetime | None
    order_id: str
    commission: float | None = None
    margin: float | None = None
    leverage: str | None = None
    broker: str = ""
    original_quantity: int | None = None

    @property
    def full_quantity(self) -> int:
        return self.original_quantity if self.original_quantity is not None else self.quantity

    def is_filled(self) -> bool:
        return (self.status or "").strip().lower() == FILLED

    def slice(self, quantity: int) -> Order:
        """Copy of this order carrying *quantity* and the parent's full size."""
        return replace(self, quantity=quantity, original_quantity=self.full_quantity)


@dataclass
class Lot:
    """Open, not-yet-closed quantity of a position. Mutated only by the matcher."""

    quantity: int
    price: float
    order: Order


@dataclass(frozen=True)
class OpenPosition:
    """Residual quantity left in a symbol's queue after matching."""

    symbol: str
    side: TradeSide
    quantity: int
    lots: tuple[Lot, ...] = ()


@dataclass(frozen=True)
class Trade:
    """A completed round-trip (or partial-fill slice of one), before P&L."""

    id: str
    entry_order: Order
    exit_order: Order
    entry_price: float
    exit_price: float
    quantity: int
    entry_time: datetime
    exit_time: datetime
    side: TradeSide
    contract: str
    margin: float | None = None
    leverage: str | None = None
    broker: str = ""
    reference_quantity: int | None = None  # full size of the order the margin belongs to


@dataclass(frozen=True)
class PricedTrade:
    """Trade plus P&L. ``entry_order``/``exit_order`` may be absent on legacy records."""

    id: str
    entry_price: float
    exit_price: float
    quantity: int
    entry_time: datetime | None
    exit_time: datetime | None
    side: TradeSide
    contract: str
    point_difference: float
    gross_profit: float
    total_commission: float
    net_profit: float
    status: TradeStatus
    duration: timedelta
    entry_order: Order | None = None
    exit_order: Order | None = None
    entry_order_id: str = ""
    exit_order_id: str = ""
    margin: float | None = None
    leverage: str | None = None
    broker: str = ""
    multiplier: float = 1.0
    all_order_ids: tuple[str, ...] = ()

    @property
    def is_win(self) -> bool:
        return self.status == TradeStatus.WIN

    @property
    def untracked(self) -> bool:
        """True when no order ID could be attached; dedup falls back to fingerprint."""
        return not self.all_order_ids


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Summary:
    """Aggregate statistics over a set of priced trades. All zero when empty."""

    total_trades: int = 0
    total_net_profit: float = 0.0
    total_gross_profit: float = 0.0
    total_commission: float = 0.0
    average_net_profit: float = 0.0
    average_gross_profit: float = 0.0
    win_count: int = 0
    loss_count: int = 0
    win_rate: float = 0.0  # percent
    best_trade: float = 0.0
    worst_trade: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    profit_factor: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    longest_win_streak: int = 0
    longest_loss_streak: int = 0
    date_range: DateRange | None = None


@dataclass(frozen=True)
class MatchResult:
    """Output of the matcher: closed trades plus whatever stayed open."""

    trades: list[Trade] = field(default_factory=list)
    open_positions: list[OpenPosition] = field(default_factory=list)
    dropped_count: int = 0

    @property
    def open_quantity(self) -> int:
        return sum(p.quantity for p in self.open_positions)
