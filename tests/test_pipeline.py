"""Integration tests: broker export through normalize -> match -> price -> merge."""

from datetime import datetime

import pytest

from conftest import TRADINGVIEW_NET, make_order
from data.normalizer import parse_orders
from trade_core.pipeline import process_orders, run_import
from trade_core.store import TradeStore


class TestProcessOrders:
    def test_tradingview_export_end_to_end(self, tradingview_csv: str, registry) -> None:
        parsed = parse_orders(tradingview_csv, "tradingview")
        result = process_orders(parsed.orders, registry)
        assert len(result.trades) == 5
        assert result.open_positions == []
        assert result.unmatched_count == 0
        assert result.summary.total_trades == 5
        assert result.summary.total_net_profit == pytest.approx(TRADINGVIEW_NET)
        assert result.summary.win_count == 3
        assert result.summary.loss_count == 2
        assert all(t.multiplier == pytest.approx(50.0) for t in result.trades)

    def test_ibkr_export_end_to_end(self, ibkr_csv: str, registry) -> None:
        parsed = parse_orders(ibkr_csv, "ibkr", registry)
        result = process_orders(parsed.orders, registry)
        by_symbol = {t.contract: t for t in result.trades}
        assert set(by_symbol) == {"ES1!", "NQ1!"}
        assert by_symbol["ES1!"].gross_profit == pytest.approx(525.0)
        assert by_symbol["ES1!"].net_profit == pytest.approx(522.52)
        assert by_symbol["NQ1!"].gross_profit == pytest.approx(200.0)
        assert by_symbol["NQ1!"].net_profit == pytest.approx(195.5)

    def test_unmatched_counts_open_lots(self, registry) -> None:
        base = datetime(2026, 3, 2, 10)
        orders = [
            make_order("buy", 2, 100.0, base, "a", symbol="XYZ"),
            make_order("buy", 1, 101.0, base.replace(minute=1), "b", symbol="XYZ"),
            make_order("sell", 1, 102.0, base.replace(minute=2), "c", symbol="XYZ"),
        ]
        result = process_orders(orders, registry)
        assert len(result.trades) == 1
        # "a" partially open, "b" fully open
        assert result.unmatched_count == 2

    def test_empty_batch(self, registry) -> None:
        result = process_orders([], registry)
        assert result.trades == []
        assert result.summary.total_trades == 0
        assert result.unmatched_count == 0


class TestRunImport:
    def test_first_import_adds_everything(self, tradingview_csv: str, registry) -> None:
        orders = parse_orders(tradingview_csv).orders
        result = run_import(TradeStore(), orders, registry)
        assert result.merge.new_count == 5
        assert result.merge.duplicate_count == 0
        assert len(result.store) == 5
        assert result.report_line() == "5 trades processed, 0 orders could not be matched"

    def test_reimport_is_a_no_op(self, tradingview_csv: str, registry) -> None:
        orders = parse_orders(tradingview_csv).orders
        first = run_import(TradeStore(), orders, registry)
        second = run_import(first.store, orders, registry)
        assert second.merge.new_count == 0
        assert second.merge.duplicate_count == 5
        assert second.store.trades == first.store.trades

    def test_overlapping_export_adds_only_new_trades(self, tradingview_csv: str, registry) -> None:
        orders = parse_orders(tradingview_csv).orders
        first = run_import(TradeStore(), orders[:4], registry)
        assert first.merge.new_count == 2
        second = run_import(first.store, orders, registry)
        assert second.merge.new_count == 3
        assert len(second.store) == 5

    def test_input_store_not_modified(self, round_trip, registry) -> None:
        store = TradeStore()
        run_import(store, round_trip, registry)
        assert len(store) == 0
