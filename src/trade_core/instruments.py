"""
Contract Registry: instrument symbol -> {multiplier, commission per side}.

Unknown symbols resolve to the default spec and never block processing.
Also holds the price-range rule table used to name an instrument from its
implied multiplier (broker exports that omit the product symbol).
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from config.instruments import ContractSpec, InstrumentConfig, load_instrument_config
from trade_core.contracts import Trade

logger = logging.getLogger("tradelog.instruments")

_PREFIX_RE = re.compile(r"^[A-Z0-9_]+:")
_NUM_RE = re.compile(r"\d+(?:\.\d+)?")


def normalize_symbol(raw: str | None) -> str:
    """Strip an ``EXCHANGE:`` prefix: ``"CME_MINI:ES1!"`` -> ``"ES1!"``."""
    if not raw:
        return ""
    return _PREFIX_RE.sub("", raw.strip())


def parse_leverage(leverage: str | None) -> float | None:
    """Ratio from strings like ``"20:01"``, ``"20:1"`` or ``"20"``. None when unusable."""
    if not leverage:
        return None
    nums = _NUM_RE.findall(str(leverage))
    if not nums:
        return None
    first = float(nums[0])
    second = float(nums[1]) if len(nums) > 1 else 1.0
    if second <= 0:
        return None
    ratio = first / second
    return ratio if ratio > 0 else None


@dataclass(frozen=True)
class Resolution:
    """Outcome of multiplier/price-range disambiguation."""

    symbol: str | None
    candidates: tuple[str, ...] = ()
    ambiguous: bool = False

    @property
    def warning(self) -> str | None:
        if self.ambiguous:
            return f"ambiguous instrument: {', '.join(self.candidates)} (picked {self.symbol})"
        if self.symbol is None and self.candidates:
            return f"no price range matched candidates {', '.join(self.candidates)}"
        return None


class ContractRegistry:
    """Static lookup of contract specs built from an InstrumentConfig."""

    def __init__(self, config: InstrumentConfig) -> None:
        self._config = config

    @classmethod
    def default(cls) -> ContractRegistry:
        return cls(load_instrument_config())

    @property
    def config(self) -> InstrumentConfig:
        return self._config

    @property
    def symbols(self) -> list[str]:
        return list(self._config.contracts)

    def specs_for(self, raw_symbol: str | None) -> ContractSpec:
        return self._config.contracts.get(normalize_symbol(raw_symbol), self._config.default)

    def is_known(self, raw_symbol: str | None) -> bool:
        return normalize_symbol(raw_symbol) in self._config.contracts

    def effective_multiplier(self, trade: Trade) -> float:
        """Registry multiplier, replaced by the margin-implied one on a material deviation.

        implied = margin × leverage / (reference quantity × entry price). Only a
        deviation above the configured tolerance (10% by default) switches, so
        fill-vs-margin price rounding on resting orders does not.
        """
        base = self.specs_for(trade.contract).multiplier
        ratio = parse_leverage(trade.leverage)
        ref_qty = trade.reference_quantity or trade.quantity
        if not trade.margin or ratio is None or ref_qty <= 0 or trade.entry_price <= 0:
            return base
        implied = (trade.margin * ratio) / (ref_qty * trade.entry_price)
        if abs(implied - base) / base > self._config.multiplier_correction_tolerance:
            logger.debug(
                "Multiplier correction for %s: registry %.4g -> implied %.4g",
                trade.contract, base, implied,
            )
            return implied
        return base

    def resolve_by_multiplier(self, multiplier: float, price: float) -> Resolution:
        """Name an instrument from its multiplier, disambiguated by price range.

        Best effort: when several contracts still match, the first one in
        registry order is picked and the result is flagged ambiguous.
        """
        candidates = [
            spec for spec in self._config.contracts.values()
            if math.isclose(spec.multiplier, multiplier, rel_tol=0.05)
        ]
        if not candidates:
            return Resolution(symbol=None)
        names = tuple(s.symbol for s in candidates)
        in_range = [s for s in candidates if s.price_range is None or s.price_range.contains(price)]
        if not in_range:
            return Resolution(symbol=None, candidates=names)
        if len(in_range) > 1:
            return Resolution(
                symbol=in_range[0].symbol,
                candidates=tuple(s.symbol for s in in_range),
                ambiguous=True,
            )
        return Resolution(symbol=in_range[0].symbol, candidates=names)
