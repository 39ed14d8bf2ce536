"""Tests for P&L pricing and the aggregate summary."""

import math
from datetime import datetime, timedelta

import pytest

from conftest import make_order
from trade_core.contracts import PricedTrade, Summary, TradeSide, TradeStatus
from trade_core.matcher import match
from trade_core.pnl import (
    format_duration,
    max_drawdown,
    price,
    price_all,
    profit_factor,
    sharpe_ratio,
    summarize,
)


def _priced(net: float, exit_minute: int, *, entry_minute: int = 0) -> PricedTrade:
    entry = datetime(2026, 3, 2, 9, entry_minute)
    exit_ = datetime(2026, 3, 2, 10, exit_minute)
    return PricedTrade(
        id=f"t{exit_minute}",
        entry_price=100.0,
        exit_price=100.0,
        quantity=1,
        entry_time=entry,
        exit_time=exit_,
        side=TradeSide.LONG,
        contract="ES1!",
        point_difference=0.0,
        gross_profit=net,
        total_commission=0.0,
        net_profit=net,
        status=TradeStatus.WIN if net > 0 else TradeStatus.LOSE,
        duration=exit_ - entry,
    )


class TestPrice:
    def test_es_round_trip(self, round_trip, registry) -> None:
        t = price(match(round_trip).trades[0], registry)
        assert t.point_difference == pytest.approx(6.0)
        assert t.gross_profit == pytest.approx(1500.0)
        assert t.total_commission == pytest.approx(25.0)
        assert t.net_profit == pytest.approx(1475.0)
        assert t.status == TradeStatus.WIN
        assert t.multiplier == 50.0
        assert t.duration == timedelta(minutes=9)

    def test_short_points_are_entry_minus_exit(self, scale_out_short, registry) -> None:
        priced = price_all(match(scale_out_short).trades, registry)
        assert [t.point_difference for t in priced] == [-1.0, -2.0, -3.0]
        # unknown symbol: multiplier 1, no commission
        assert [t.net_profit for t in priced] == [-2.0, -4.0, -3.0]
        assert all(t.status == TradeStatus.LOSE for t in priced)

    def test_zero_net_is_a_loss(self, registry) -> None:
        orders = [
            make_order("buy", 1, 100.0, datetime(2026, 3, 2, 9), "a", symbol="XYZ"),
            make_order("sell", 1, 100.0, datetime(2026, 3, 2, 10), "b", symbol="XYZ"),
        ]
        t = price(match(orders).trades[0], registry)
        assert t.net_profit == 0.0
        assert t.status == TradeStatus.LOSE

    def test_broker_commission_is_apportioned(self, registry) -> None:
        orders = [
            make_order("buy", 10, 6000.0, datetime(2026, 3, 2, 9), "big", commission=10.0),
            make_order("sell", 6, 6001.0, datetime(2026, 3, 2, 10), "x1"),
            make_order("sell", 4, 6002.0, datetime(2026, 3, 2, 11), "x2"),
        ]
        priced = price_all(match(orders).trades, registry)
        assert [t.total_commission for t in priced] == [pytest.approx(6.0), pytest.approx(4.0)]
        assert sum(t.total_commission for t in priced) == pytest.approx(10.0)

    def test_unknown_symbol_uses_default_spec(self, registry) -> None:
        orders = [
            make_order("buy", 2, 10.0, datetime(2026, 3, 2, 9), "a", symbol="NYSE:FOO"),
            make_order("sell", 2, 12.0, datetime(2026, 3, 2, 10), "b", symbol="NYSE:FOO"),
        ]
        t = price(match(orders).trades[0], registry)
        assert t.gross_profit == pytest.approx(4.0)
        assert t.total_commission == 0.0

    def test_margin_corrects_wrong_multiplier(self, registry) -> None:
        # a MES fill mislabelled as ES: margin implies 5, not 50
        margin = 6000.0 * 2 * 5 / 20
        orders = [
            make_order("buy", 2, 6000.0, datetime(2026, 3, 2, 9), "a", margin=margin, leverage="20:01"),
            make_order("sell", 2, 6010.0, datetime(2026, 3, 2, 10), "b"),
        ]
        t = price(match(orders).trades[0], registry)
        assert t.multiplier == pytest.approx(5.0)
        assert t.gross_profit == pytest.approx(100.0)

    def test_small_margin_deviation_keeps_registry_multiplier(self, registry) -> None:
        margin = 6000.25 * 2 * 50 / 20
        orders = [
            make_order("buy", 2, 6000.0, datetime(2026, 3, 2, 9), "a", margin=margin, leverage="20:01"),
            make_order("sell", 2, 6010.0, datetime(2026, 3, 2, 10), "b"),
        ]
        assert price(match(orders).trades[0], registry).multiplier == 50.0


class TestSummary:
    def test_empty_summary_is_all_zero(self) -> None:
        s = summarize([])
        assert s == Summary()
        assert s.total_trades == 0
        assert s.win_rate == 0.0
        assert s.profit_factor == 0.0
        assert s.date_range is None

    def test_profit_factor_infinite_without_losses(self) -> None:
        s = summarize([_priced(100.0, 1), _priced(50.0, 2)])
        assert math.isinf(s.profit_factor)
        assert s.win_rate == 100.0

    def test_profit_factor_ratio(self) -> None:
        trades = [_priced(300.0, 1), _priced(-100.0, 2), _priced(-50.0, 3)]
        assert profit_factor(trades) == pytest.approx(2.0)

    def test_only_losses_profit_factor_zero(self) -> None:
        assert profit_factor([_priced(-10.0, 1)]) == 0.0

    def test_aggregates(self) -> None:
        trades = [_priced(100.0, 1), _priced(-40.0, 2), _priced(60.0, 3), _priced(-20.0, 4)]
        s = summarize(trades)
        assert s.total_trades == 4
        assert s.total_net_profit == pytest.approx(100.0)
        assert s.win_count == 2
        assert s.loss_count == 2
        assert s.win_rate == pytest.approx(50.0)
        assert s.best_trade == 100.0
        assert s.worst_trade == -40.0
        assert s.average_win == pytest.approx(80.0)
        assert s.average_loss == pytest.approx(-30.0)
        assert s.average_net_profit == pytest.approx(25.0)

    def test_drawdown_and_streaks_follow_exit_order(self) -> None:
        # given out of order; by exit time: +100, -30, -50, +10, +20
        trades = [_priced(10.0, 4), _priced(100.0, 1), _priced(-50.0, 3), _priced(20.0, 5), _priced(-30.0, 2)]
        s = summarize(trades)
        assert s.max_drawdown == pytest.approx(80.0)
        assert s.longest_win_streak == 2
        assert s.longest_loss_streak == 2

    def test_sharpe_uses_population_stdev(self) -> None:
        # mean 1, population stdev 1
        assert sharpe_ratio([0.0, 2.0]) == pytest.approx(1.0)
        assert sharpe_ratio([5.0]) == 0.0
        assert sharpe_ratio([3.0, 3.0]) == 0.0

    def test_max_drawdown_monotonic_gain(self) -> None:
        assert max_drawdown([1.0, 2.0, 3.0]) == 0.0

    def test_date_range_spans_entries(self) -> None:
        s = summarize([_priced(1.0, 5, entry_minute=10), _priced(1.0, 6, entry_minute=2)])
        assert s.date_range.start == datetime(2026, 3, 2, 9, 2)
        assert s.date_range.end == datetime(2026, 3, 2, 9, 10)


@pytest.mark.parametrize(
    "delta,expected",
    [
        (timedelta(minutes=5), "5m"),
        (timedelta(hours=3, minutes=5), "3h 5m"),
        (timedelta(days=2, hours=3, minutes=5), "2d 3h 5m"),
        (timedelta(seconds=30), "0m"),
    ],
)
def test_format_duration(delta: timedelta, expected: str) -> None:
    assert format_duration(delta) == expected
