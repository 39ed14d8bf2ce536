"""Pytest fixtures: order sequences and broker exports for deterministic tests."""

from datetime import datetime

import pytest

from trade_core.contracts import Order
from trade_core.instruments import ContractRegistry


def _ts(month: int, day: int, hour: int = 9, minute: int = 30, second: int = 0) -> datetime:
    return datetime(2026, month, day, hour, minute, second)


def make_order(
    side: str,
    qty: int,
    price: float,
    ts: datetime,
    order_id: str,
    *,
    symbol: str = "CME_MINI:ES1!",
    order_type: str = "market",
    commission: float | None = None,
    margin: float | None = None,
    leverage: str | None = None,
    status: str = "Filled",
) -> Order:
    return Order(
        symbol=symbol,
        side=side,
        order_type=order_type,
        quantity=qty,
        fill_price=price,
        status=status,
        placing_time=ts,
        order_id=order_id,
        commission=commission,
        margin=margin,
        leverage=leverage,
        broker="TradingView",
    )


@pytest.fixture
def registry() -> ContractRegistry:
    return ContractRegistry.default()


@pytest.fixture
def round_trip() -> list[Order]:
    """Buy 5 ES @ 6970.75, sell 5 @ 6976.75: +6 points."""
    return [
        make_order("buy", 5, 6970.75, _ts(2, 9, 16, 31), "2741028262", order_type="limit"),
        make_order("sell", 5, 6976.75, _ts(2, 9, 16, 40), "2741094918"),
    ]


@pytest.fixture
def scale_out_short() -> list[Order]:
    """Sell 5 @ 100, then buy back 2 @ 101, 2 @ 102, 1 @ 103."""
    return [
        make_order("sell", 5, 100.0, _ts(3, 2, 10, 0), "s1", symbol="XYZ"),
        make_order("buy", 2, 101.0, _ts(3, 2, 10, 5), "b1", symbol="XYZ"),
        make_order("buy", 2, 102.0, _ts(3, 2, 10, 10), "b2", symbol="XYZ"),
        make_order("buy", 1, 103.0, _ts(3, 2, 10, 15), "b3", symbol="XYZ"),
    ]


TRADINGVIEW_CSV = """Symbol,Side,Type,Qty,Limit Price,Stop Price,Fill Price,Status,Commission,Placing Time,Closing Time,Order ID,Level ID,Leverage,Margin
CME_MINI:ES1!,Sell,Market,5,,,6997.25,Filled,,2/10/26 15:56,2/10/26 15:56,2744987017,,20:01,"87,465.63 USD"
CME_MINI:ES1!,Buy,Limit,5,6994.5,,6994,Filled,,2/10/26 15:54,2/10/26 15:55,2744962758,,20:01,"87,431.25 USD"
CME_MINI:ES1!,Sell,Market,5,,,6994.25,Filled,,2/10/26 15:32,2/10/26 15:32,2744711867,,20:01,"87,428.13 USD"
CME_MINI:ES1!,Buy,Limit,5,6992.5,,6992.5,Filled,,2/10/26 15:31,2/10/26 15:31,2744692729,,20:01,"87,406.25 USD"
CME_MINI:ES1!,Sell,Limit,5,7050,,,Cancelled,,2/10/26 15:00,2/10/26 15:20,2744600001,,20:01,
CME_MINI:ES1!,Sell,Market,5,,,6979.5,Filled,,2/10/26 14:32,2/10/26 14:32,2744427309,,20:01,"87,243.75 USD"
CME_MINI:ES1!,Buy,Limit,5,6979.75,,6979.75,Filled,,2/10/26 14:25,2/10/26 14:25,2744396661,,20:01,"87,246.88 USD"
CME_MINI:ES1!,Sell,Market,5,,,6996,Filled,,2/10/26 10:26,2/10/26 10:26,2743783687,,20:01,"87,450.00 USD"
CME_MINI:ES1!,Buy,Limit,5,6996.75,,6996.25,Filled,,2/10/26 10:23,2/10/26 10:23,2743777657,,20:01,"87,459.38 USD"
CME_MINI:ES1!,Sell,Market,5,,,6976.75,Filled,,2/9/26 16:40,2/9/26 16:40,2741094918,,20:01,"87,209.38 USD"
CME_MINI:ES1!,Buy,Limit,5,6971,,6970.75,Filled,,2/9/26 16:31,2/9/26 16:31,2741028262,,20:01,"87,137.50 USD"
"""

# five long round trips on ES, net of 2.50/side/contract
TRADINGVIEW_NET = 1475.0 - 87.5 - 87.5 + 412.5 + 787.5

IBKR_CSV = """Symbol,Side,Qty,Fill Price,Time,Net Amount,Commission
Mar20 '26,BUY,2,6950.25,2026-02-11 09:31:05,"695,025.00",-1.24
Mar20 '26,SELL,2,6955.50,2026-02-11 09:45:10,"695,550.00",-1.24
Mar20 '26,BUY,1,21010.00,2026-02-11 10:00:00,"420,200.00",-2.25
Mar20 '26,SELL,1,21020.00,2026-02-11 10:30:00,"420,400.00",-2.25
"""


@pytest.fixture
def tradingview_csv() -> str:
    return TRADINGVIEW_CSV


@pytest.fixture
def ibkr_csv() -> str:
    return IBKR_CSV
