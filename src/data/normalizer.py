"""
Order Normalizer: broker CSV export -> chronological list of Orders.

Adapters live in data.tradingview and data.ibkr; this module holds the
shared result types, cell parsers and format dispatch. Bad rows are counted
and dropped, never raised. Only an unrecognisable file layout raises
NormalizerError.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from trade_core.contracts import Order

if TYPE_CHECKING:
    from trade_core.instruments import ContractRegistry

FORMATS = ("auto", "tradingview", "ibkr")

_SLASH_RE = re.compile(r"(\d+)/(\d+)/(\d+)\s+(\d+):(\d+)(?::(\d+))?")
_DASH_RE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})\s+(\d+):(\d+)(?::(\d+))?")
_NUMERIC_RE = re.compile(r"[^\d.\-]")
_NULL_PRICES = {"", "-", "\u2013"}


class NormalizerError(Exception):
    """Raised when a file is empty, of unknown format, or missing required columns."""


@dataclass
class ParseStats:
    format: str
    total_lines: int = 0
    valid_orders: int = 0
    skipped_cancelled: int = 0
    errors: int = 0


@dataclass
class ParseResult:
    orders: list[Order]
    stats: ParseStats
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Cell parsers
# ---------------------------------------------------------------------------


def parse_price(raw: str | None) -> float | None:
    """``"6,994.50"`` -> 6994.5. Blank, dash and mangled cells are None."""
    if raw is None:
        return None
    text = raw.strip()
    if text in _NULL_PRICES or "\ufffd" in text:
        return None
    cleaned = _NUMERIC_RE.sub("", text)
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_money(raw: str | None) -> float | None:
    """``"87,465.63 USD"`` -> 87465.63."""
    return parse_price(raw)


def parse_int(raw: str | None) -> int:
    if not raw or not raw.strip():
        return 0
    cleaned = re.sub(r"[^\d\-]", "", raw.split(".")[0])
    try:
        return int(cleaned)
    except ValueError:
        return 0


def parse_timestamp(raw: str | None) -> datetime | None:
    """Parse ``M/D/YY H:MM[:SS]``, ``YYYY-MM-DD H:MM[:SS]`` or ISO-8601. None when unparseable."""
    if not raw or not raw.strip():
        return None
    text = raw.strip()
    try:
        m = _SLASH_RE.search(text)
        if m:
            month, day, year, hour, minute, second = m.groups()
            yr = int(year)
            if yr < 100:
                yr += 2000 if yr < 50 else 1900
            return datetime(yr, int(month), int(day), int(hour), int(minute), int(second or 0))
        m = _DASH_RE.search(text)
        if m:
            year, month, day, hour, minute, second = m.groups()
            return datetime(int(year), int(month), int(day), int(hour), int(minute), int(second or 0))
        ts = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


# ---------------------------------------------------------------------------
# Table access
# ---------------------------------------------------------------------------


def header_key(name: str) -> str:
    """Case- and space-insensitive header key: ``"Fill Price"`` -> ``"fillprice"``."""
    return re.sub(r"\s+", "", name.strip().lower())


def read_table(text: str) -> tuple[dict[str, int], list[list[str]]]:
    """Split CSV text into a header-key -> column index map and the non-blank data rows."""
    rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    rows = [r for r in rows if any(cell.strip() for cell in r)]
    if not rows:
        raise NormalizerError("CSV file is empty")
    header = {header_key(h): i for i, h in enumerate(rows[0]) if h.strip()}
    return header, rows[1:]


def require_columns(header: dict[str, int], required: tuple[str, ...], fmt: str) -> None:
    missing = [name for name in required if header_key(name) not in header]
    if missing:
        raise NormalizerError(f"Invalid {fmt} CSV: missing column(s) {', '.join(missing)}")


def cell(row: list[str], header: dict[str, int], *names: str) -> str:
    """First present column among *names*; empty string when none is."""
    for name in names:
        idx = header.get(header_key(name))
        if idx is not None and idx < len(row):
            return row[idx].strip()
    return ""


def chronological_orders(orders: list[Order]) -> list[Order]:
    # stable: equal timestamps keep file order
    return sorted(orders, key=lambda o: o.placing_time or datetime.min)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def detect_format(text: str) -> str:
    first = text.lstrip("\ufeff").split("\n", 1)[0].lower()
    if "net amount" in first and "status" not in first:
        return "ibkr"
    return "tradingview"


def parse_orders(
    text: str,
    fmt: str = "auto",
    registry: ContractRegistry | None = None,
) -> ParseResult:
    """Normalize a broker export into Orders.

    Parameters
    ----------
    text:
        Full CSV file content.
    fmt:
        ``auto``, ``tradingview`` or ``ibkr``.
    registry:
        Used by the IBKR adapter to name instruments from their implied
        multiplier. Defaults to the bundled instrument config.
    """
    if fmt not in FORMATS:
        raise NormalizerError(f"Unsupported format: {fmt}")
    if not text or not text.strip():
        raise NormalizerError("CSV file is empty")
    if fmt == "auto":
        fmt = detect_format(text)

    if fmt == "ibkr":
        from data.ibkr import parse_ibkr
        from trade_core.instruments import ContractRegistry

        return parse_ibkr(text, registry or ContractRegistry.default())

    from data.tradingview import parse_tradingview

    return parse_tradingview(text)
