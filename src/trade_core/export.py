"""Flat tabular projection of priced trades for reporting tools."""

from __future__ import annotations

import csv
from datetime import datetime
from typing import IO, Iterable

from trade_core.contracts import PricedTrade
from trade_core.pnl import chronological

EXPORT_COLUMNS = [
    "Date", "EntryDate", "ExitDate", "Side", "Status", "Contract",
    "Quantity", "Entry", "Exit", "Return", "Commission", "Currency",
]


def _fmt_ts(ts: datetime | None) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else ""


def export_row(trade: PricedTrade, currency: str = "USD") -> dict[str, object]:
    return {
        "Date": _fmt_ts(trade.exit_time),
        "EntryDate": _fmt_ts(trade.entry_time),
        "ExitDate": _fmt_ts(trade.exit_time),
        "Side": trade.side.value.upper(),
        "Status": trade.status.value.upper(),
        "Contract": trade.contract,
        "Quantity": trade.quantity,
        "Entry": trade.entry_price,
        "Exit": trade.exit_price,
        "Return": round(trade.net_profit, 2),
        "Commission": round(trade.total_commission, 2),
        "Currency": currency,
    }


def write_csv(trades: Iterable[PricedTrade], stream: IO[str], currency: str = "USD") -> int:
    """Write one row per trade (chronological). Returns the number of rows written."""
    writer = csv.DictWriter(stream, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    count = 0
    for t in chronological(trades):
        writer.writerow(export_row(t, currency))
        count += 1
    return count
