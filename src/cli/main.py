"""
CLI entry point: tradelog import | summary | trades | export | clear | sync | backup | restore | health.

Every command loads config from --config (default config.yaml), prints a
human-readable report, and logs store changes to the journal.
"""

import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from config import load_config

load_dotenv()

logger = logging.getLogger("tradelog")


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


def _load(ctx: click.Context):
    try:
        return load_config(ctx.obj["config_path"])
    except (FileNotFoundError, ValueError) as exc:
        _fail(str(exc))


def _events(cfg, command: str):
    from cli.structured_log import StructuredEventLogger

    return StructuredEventLogger(
        command,
        enabled=cfg.alerting.structured_logs,
        webhook_url=cfg.alerting.webhook_url,
    )


def _registry(cfg, events):
    from config.instruments import InstrumentConfigError, load_instrument_config
    from trade_core.instruments import ContractRegistry

    try:
        inst = load_instrument_config(overrides_path=cfg.instruments.overrides_path or None)
    except InstrumentConfigError as exc:
        events.error("instrument config", str(exc))
        _fail(str(exc))
    return ContractRegistry(inst)


def _save(repo, store, events):
    from data.trade_repository import PersistenceError

    try:
        return repo.save(store)
    except PersistenceError as exc:
        events.persist_failed(str(repo.path), str(exc))
        _fail(f"{exc} (nothing was written; re-run the command to retry)")


def _filtered(store, symbol: str | None):
    from trade_core.instruments import normalize_symbol
    from trade_core.pnl import chronological

    trades = chronological(store.trades)
    if symbol:
        wanted = normalize_symbol(symbol)
        trades = [t for t in trades if normalize_symbol(t.contract) == wanted]
    return trades


@click.group()
@click.option("--config", "config_path", default="config.yaml", help="Path to config file.")
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """tradelog: FIFO trade journal for futures order exports."""
    _setup_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------- tradelog import ----------


@cli.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["auto", "tradingview", "ibkr"]),
    default=None,
    help="Export format (default: import.default_format from config).",
)
@click.option("--dry-run", is_flag=True, default=False, help="Match and report without saving.")
@click.pass_context
def import_orders(ctx: click.Context, file: str, fmt: str | None, dry_run: bool) -> None:
    """Import a broker order export: normalize, match FIFO, price, merge, save.

    Re-importing the same or an overlapping file adds no duplicates.
    """
    cfg = _load(ctx)
    from cli.output import format_import_report
    from data.normalizer import NormalizerError, parse_orders
    from data.trade_repository import TradeRepository
    from journal import JournalWriter
    from trade_core.pipeline import run_import

    events = _events(cfg, "import")
    registry = _registry(cfg, events)
    fmt = fmt or cfg.imports.default_format

    events.import_start(file, fmt)
    text = Path(file).read_text(encoding="utf-8-sig", errors="replace")
    try:
        parsed = parse_orders(text, fmt, registry)
    except NormalizerError as exc:
        events.error("normalize", str(exc))
        _fail(str(exc))

    repo = TradeRepository(cfg.store.path)
    result = run_import(repo.load(), parsed.orders, registry)
    click.echo(format_import_report(parsed, result, dry_run=dry_run))

    unmatched = result.processed.unmatched_count
    events.import_complete(
        orders=len(parsed.orders),
        trades=len(result.processed.trades),
        new=result.merge.new_count,
        duplicates=result.merge.duplicate_count,
        unmatched=unmatched,
    )
    if dry_run:
        return

    if result.merge.new_count:
        _save(repo, result.store, events)
    journal = JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout)
    journal.import_completed(
        source=str(file),
        fmt=parsed.stats.format,
        orders=len(parsed.orders),
        trades=len(result.processed.trades),
        new=result.merge.new_count,
        duplicates=result.merge.duplicate_count,
        unmatched=unmatched,
        warnings=parsed.warnings,
    )


# ---------- tradelog summary ----------


@cli.command()
@click.option("--symbol", default=None, help="Only trades on this contract (e.g. ES1!).")
@click.pass_context
def summary(ctx: click.Context, symbol: str | None) -> None:
    """Show aggregate statistics for stored trades."""
    cfg = _load(ctx)
    from cli.output import format_summary
    from data.trade_repository import TradeRepository
    from trade_core.pnl import summarize

    store = TradeRepository(cfg.store.path).load()
    trades = _filtered(store, symbol)
    click.echo(format_summary(summarize(trades), title=f"Summary: {symbol}" if symbol else "Summary"))


# ---------- tradelog trades ----------


@cli.command()
@click.option("--symbol", default=None, help="Only trades on this contract.")
@click.option("--last", "last_n", default=None, type=int, help="Only show the last N trades.")
@click.pass_context
def trades(ctx: click.Context, symbol: str | None, last_n: int | None) -> None:
    """List stored trades in exit-time order."""
    cfg = _load(ctx)
    from cli.output import format_trades
    from data.trade_repository import TradeRepository

    store = TradeRepository(cfg.store.path).load()
    rows = _filtered(store, symbol)
    if last_n is not None:
        rows = rows[-last_n:] if last_n > 0 else []
    click.echo(format_trades(rows))


# ---------- tradelog export ----------


@cli.command()
@click.argument("out", type=click.Path(dir_okay=False))
@click.pass_context
def export(ctx: click.Context, out: str) -> None:
    """Write stored trades to a CSV file (one row per trade)."""
    cfg = _load(ctx)
    from data.trade_repository import TradeRepository
    from trade_core.export import write_csv

    store = TradeRepository(cfg.store.path).load()
    out_path = Path(out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", newline="") as f:
        count = write_csv(store.trades, f, currency=cfg.currency)
    click.echo(f"Exported {count} trades to {out_path}")


# ---------- tradelog clear ----------


@cli.command()
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_context
def clear(ctx: click.Context, yes: bool) -> None:
    """Delete every stored trade."""
    cfg = _load(ctx)
    from data.trade_repository import PersistenceError, TradeRepository
    from journal import JournalWriter

    events = _events(cfg, "clear")
    repo = TradeRepository(cfg.store.path)
    existing = repo.count()
    if not yes:
        click.confirm(f"Delete all {existing} stored trades?", abort=True)
    try:
        repo.clear()
    except PersistenceError as exc:
        events.persist_failed(str(repo.path), str(exc))
        _fail(str(exc))
    events.store_cleared(existing)
    JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout).store_cleared(existing)
    click.echo(f"Cleared {existing} trades.")


# ---------- tradelog sync ----------


@cli.command()
@click.argument("direction", type=click.Choice(["pull", "push"]))
@click.pass_context
def sync(ctx: click.Context, direction: str) -> None:
    """Pull remote trades into the local store, or push the local store to the remote."""
    cfg = _load(ctx)
    from data import get_remote
    from data.remote import RemoteSyncError
    from data.sync import pull, push
    from data.trade_repository import TradeRepository
    from journal import JournalWriter

    events = _events(cfg, "sync")
    remote = get_remote(cfg.remote.kind, cfg.remote.location, cfg.remote.token)
    if remote is None:
        _fail("remote sync is not configured (set remote.kind and remote.location)")

    repo = TradeRepository(cfg.store.path)
    store = repo.load()
    try:
        if direction == "pull":
            result = pull(store, remote)
            count = result.new_count
            if count:
                _save(repo, result.store, events)
            click.echo(f"Pulled {count} new trades ({result.duplicate_count} already present).")
        else:
            pushed = push(store, remote)
            count = pushed.pushed_count
            if pushed.duplicates_removed:
                _save(repo, pushed.store, events)
            click.echo(f"Pushed {count} trades ({pushed.duplicates_removed} duplicates removed).")
    except RemoteSyncError as exc:
        events.sync_failed(direction, str(exc))
        _fail(str(exc))

    events.sync_complete(direction, count)
    JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout).sync(
        direction, f"{cfg.remote.kind}:{cfg.remote.location}", count
    )


# ---------- tradelog backup / restore ----------


@cli.command()
@click.argument("out", type=click.Path(dir_okay=False))
@click.pass_context
def backup(ctx: click.Context, out: str) -> None:
    """Write the stored trade document to a JSON file."""
    cfg = _load(ctx)
    from data.codec import store_to_document
    from data.trade_repository import TradeRepository

    store = TradeRepository(cfg.store.path).load()
    out_path = Path(out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w") as f:
        json.dump(store_to_document(store), f, indent=2)
    click.echo(f"Backed up {len(store)} trades to {out_path}")


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def restore(ctx: click.Context, source: str) -> None:
    """Merge a backup (current or legacy format) into the store. Existing trades are kept."""
    cfg = _load(ctx)
    from data.codec import DocumentError, trades_from_document
    from data.trade_repository import TradeRepository
    from journal import JournalWriter
    from trade_core.store import merge_remote

    events = _events(cfg, "restore")
    try:
        with open(source) as f:
            doc = json.load(f)
        restored = trades_from_document(doc)
    except (ValueError, DocumentError) as exc:
        events.error("restore", str(exc))
        _fail(f"cannot read backup {source}: {exc}")

    repo = TradeRepository(cfg.store.path)
    result = merge_remote(repo.load(), restored)
    if result.new_count:
        _save(repo, result.store, events)
    JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout).restore(
        str(source), result.new_count, result.duplicate_count
    )
    click.echo(f"Restored {result.new_count} trades ({result.duplicate_count} already present).")


# ---------- tradelog health ----------


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check system health: config, instrument config, trade store.

    Exit code 0 = healthy, 1 = unhealthy.
    """
    checks: list[tuple[str, bool, str]] = []

    try:
        cfg = load_config(ctx.obj["config_path"])
        checks.append(("config", True, f"loaded (store={cfg.store.path})"))
    except Exception as e:
        checks.append(("config", False, str(e)))
        _print_health(checks)
        raise SystemExit(1)

    try:
        from config.instruments import load_instrument_config
        inst = load_instrument_config(overrides_path=cfg.instruments.overrides_path or None)
        checks.append(("instruments", True, f"validated ({len(inst.contracts)} contracts)"))
    except Exception as e:
        checks.append(("instruments", False, str(e)))

    try:
        from data.trade_repository import TradeRepository
        repo = TradeRepository(cfg.store.path)
        checks.append(("store", True, f"{repo.count()} trades in {repo.path}"))
    except Exception as e:
        checks.append(("store", False, str(e)))

    if cfg.remote.enabled:
        checks.append(("remote", True, f"{cfg.remote.kind} {cfg.remote.location}"))

    _print_health(checks)
    healthy = all(ok for _, ok, _ in checks)
    raise SystemExit(0 if healthy else 1)


def _print_health(checks: list[tuple[str, bool, str]]) -> None:
    for name, ok, detail in checks:
        status = "OK" if ok else "FAIL"
        click.echo(f"  [{status}] {name}: {detail}")
    healthy = all(ok for _, ok, _ in checks)
    click.echo(f"\nHealth: {'HEALTHY' if healthy else 'UNHEALTHY'}")


if __name__ == "__main__":
    cli()
