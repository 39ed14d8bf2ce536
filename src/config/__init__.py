"""
Configuration loaders.

App config:         reads config.yaml, resolves env vars for secrets.
Instrument config:  reads instruments.default.json (plus overrides), validates against JSON Schema.
"""

from config.instruments import (
    ContractSpec,
    InstrumentConfig,
    InstrumentConfigError,
    PriceRange,
    load_instrument_config,
)
from config.loader import (
    AlertingConfig,
    AppConfig,
    ImportConfig,
    InstrumentsConfig,
    JournalConfig,
    RemoteConfig,
    StoreConfig,
    load_config,
)

__all__ = [
    # App config (YAML)
    "AlertingConfig",
    "AppConfig",
    "ImportConfig",
    "InstrumentsConfig",
    "JournalConfig",
    "RemoteConfig",
    "StoreConfig",
    "load_config",
    # Instrument registry (JSON + schema)
    "ContractSpec",
    "InstrumentConfig",
    "InstrumentConfigError",
    "PriceRange",
    "load_instrument_config",
]
