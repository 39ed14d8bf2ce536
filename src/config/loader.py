"""
Config loader: YAML file -> frozen dataclass tree.

The remote sync token is resolved from the environment (TRADELOG_REMOTE_TOKEN).
Config file holds only non-secret values.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

REMOTE_KINDS = ("none", "directory", "http")
IMPORT_FORMATS = ("auto", "tradingview", "ibkr")


@dataclass(frozen=True)
class StoreConfig:
    path: str = "data/trades.db"


@dataclass(frozen=True)
class JournalConfig:
    path: str = "data/journal.jsonl"
    echo_stdout: bool = False


@dataclass(frozen=True)
class ImportConfig:
    default_format: str = "auto"


@dataclass(frozen=True)
class InstrumentsConfig:
    overrides_path: str = ""


@dataclass(frozen=True)
class RemoteConfig:
    kind: str = "none"
    location: str = ""
    token: str = ""

    @property
    def enabled(self) -> bool:
        return self.kind != "none" and bool(self.location)


@dataclass(frozen=True)
class AlertingConfig:
    structured_logs: bool = True
    webhook_url: str = ""


@dataclass(frozen=True)
class AppConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    journal: JournalConfig = field(default_factory=JournalConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)
    instruments: InstrumentsConfig = field(default_factory=InstrumentsConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    alerting: AlertingConfig = field(default_factory=AlertingConfig)
    currency: str = "USD"


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """
    Load configuration from a YAML file.

    The remote auth token is resolved from the TRADELOG_REMOTE_TOKEN
    environment variable (a .env file is honoured by the CLI).
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    s_raw = raw.get("store") or {}
    store_cfg = StoreConfig(path=str(s_raw.get("path", "data/trades.db")))

    j_raw = raw.get("journal") or {}
    j_cfg = JournalConfig(
        path=j_raw.get("path", "data/journal.jsonl"),
        echo_stdout=bool(j_raw.get("echo_stdout", False)),
    )

    i_raw = raw.get("import") or {}
    fmt = str(i_raw.get("default_format", "auto")).lower()
    if fmt not in IMPORT_FORMATS:
        raise ValueError(f"import.default_format must be one of {', '.join(IMPORT_FORMATS)}, got {fmt!r}")
    i_cfg = ImportConfig(default_format=fmt)

    in_raw = raw.get("instruments") or {}
    in_cfg = InstrumentsConfig(overrides_path=str(in_raw.get("overrides_path") or ""))

    r_raw = raw.get("remote") or {}
    kind = str(r_raw.get("kind", "none")).lower()
    if kind not in REMOTE_KINDS:
        raise ValueError(f"remote.kind must be one of {', '.join(REMOTE_KINDS)}, got {kind!r}")
    r_cfg = RemoteConfig(
        kind=kind,
        location=str(r_raw.get("location") or ""),
        token=os.environ.get("TRADELOG_REMOTE_TOKEN", ""),
    )

    a_raw = raw.get("alerting") or {}
    a_cfg = AlertingConfig(
        structured_logs=bool(a_raw.get("structured_logs", True)),
        webhook_url=str(a_raw.get("webhook_url") or ""),
    )

    return AppConfig(
        store=store_cfg,
        journal=j_cfg,
        imports=i_cfg,
        instruments=in_cfg,
        remote=r_cfg,
        alerting=a_cfg,
        currency=str(raw.get("currency", "USD")),
    )
