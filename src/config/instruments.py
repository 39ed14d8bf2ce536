"""
Instrument registry config: JSON file -> frozen dataclass tree, validated against JSON Schema.

Default values:  docs/config/instruments.default.json
Schema:          docs/config/instruments.schema.json

Overrides: pass ``overrides_path`` (or set ``instruments.overrides_path`` in
config.yaml) to a partial JSON file. Only the keys you want to change need to
be present; they are deep-merged on top of the defaults before schema
validation, so a new contract can be added with a single entry.

The ``price_range`` of each contract is a best-effort heuristic tuned to
current market levels. It will drift; keep it in the override file rather
than in code.

Usage:
    from config.instruments import load_instrument_config
    cfg = load_instrument_config()
    cfg.contracts["ES1!"].multiplier  # -> 50.0
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema

logger = logging.getLogger("tradelog.config")


def _find_project_root() -> Path:
    """Walk up from this file looking for pyproject.toml; fall back to CWD when installed."""
    candidate = Path(__file__).resolve().parent
    for _ in range(10):
        if (candidate / "pyproject.toml").exists():
            return candidate
        parent = candidate.parent
        if parent == candidate:
            break
        candidate = parent
    return Path.cwd()


_PROJECT_ROOT = _find_project_root()

DEFAULT_INSTRUMENTS_PATH = _PROJECT_ROOT / "docs" / "config" / "instruments.default.json"
DEFAULT_INSTRUMENTS_SCHEMA_PATH = _PROJECT_ROOT / "docs" / "config" / "instruments.schema.json"


@dataclass(frozen=True)
class PriceRange:
    """Half-open range [low, high). ``None`` means unbounded on that side."""

    low: float | None = None
    high: float | None = None

    def contains(self, price: float) -> bool:
        if self.low is not None and price < self.low:
            return False
        if self.high is not None and price >= self.high:
            return False
        return True


@dataclass(frozen=True)
class ContractSpec:
    symbol: str
    multiplier: float
    commission: float  # per contract, per side
    name: str = ""
    price_range: PriceRange | None = None


@dataclass(frozen=True)
class InstrumentConfig:
    version: str
    default: ContractSpec
    multiplier_correction_tolerance: float
    contracts: dict[str, ContractSpec]


class InstrumentConfigError(Exception):
    """Raised when instrument config loading or validation fails."""


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overrides* into a copy of *base* (override keys win)."""
    merged = dict(base)
    for key, val in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = val
    return merged


def _read_json(path: Path, what: str) -> dict[str, Any]:
    if not path.exists():
        raise InstrumentConfigError(f"{what} not found: {path}")
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise InstrumentConfigError(f"{what} is not valid JSON: {exc}") from exc


def _validate_schema(data: dict[str, Any], schema_path: Path) -> None:
    schema = _read_json(schema_path, "Schema file")
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise InstrumentConfigError(f"Instrument config validation failed: {exc.message}") from exc


def _build_spec(symbol: str, raw: dict[str, Any]) -> ContractSpec:
    rng = raw.get("price_range")
    return ContractSpec(
        symbol=symbol,
        multiplier=float(raw["multiplier"]),
        commission=float(raw["commission"]),
        name=raw.get("name", ""),
        price_range=PriceRange(rng[0], rng[1]) if rng else None,
    )


def _build_config(data: dict[str, Any]) -> InstrumentConfig:
    default_raw = data["default"]
    return InstrumentConfig(
        version=data["version"],
        default=_build_spec("", {**default_raw, "name": default_raw.get("name", "Unknown")}),
        multiplier_correction_tolerance=float(data["multiplier_correction_tolerance"]),
        contracts={sym: _build_spec(sym, raw) for sym, raw in data["contracts"].items()},
    )


def load_instrument_config(
    config_path: str | Path | None = None,
    schema_path: str | Path | None = None,
    overrides_path: str | Path | None = None,
) -> InstrumentConfig:
    """Load and validate the instrument registry.

    Raises
    ------
    InstrumentConfigError
        If a file is missing, unparseable, or fails schema validation.
    """
    cfg_path = Path(config_path) if config_path else DEFAULT_INSTRUMENTS_PATH
    sch_path = Path(schema_path) if schema_path else DEFAULT_INSTRUMENTS_SCHEMA_PATH

    data = _read_json(cfg_path, "Instrument config file")

    if overrides_path:
        override_file = Path(overrides_path)
        overrides = _read_json(override_file, "Instrument override file")
        data = _deep_merge(data, overrides)
        logger.info("Loaded instrument overrides: %s", override_file.name)

    _validate_schema(data, sch_path)
    return _build_config(data)
