from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from indicator_sync.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from indicator_sync.db.tracker_store import (
    JsonTrackerStore,
    PostgresTrackerStore,
    TrackerIOError,
    TrackerStore,
)
from indicator_sync.excel.normalizer import normalize_file
from indicator_sync.excel.reader import ParseError
from indicator_sync.logging.init import log_summary, set_debug, setup_logging
from indicator_sync.models.config_models import DatabaseConfig, SyncConfig
from indicator_sync.services.file_tracker import prune_store
from indicator_sync.services.orchestrator import ProcessingError, run_sync, scan_source_files
from indicator_sync.services.summary import render_summary_line
from indicator_sync.services.upload import OutboxUploader

"""CLI entrypoint.

Flow:
- Load ``.env`` (connection settings) and the YAML config
- Open the tracker store (JSON document or PostgreSQL table)
- Run the sync (or ``--inspect-data`` / ``--prune``) and print the SUMMARY line
- Map the outcome onto the exit code contract (0 / 2 / 1)
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string, in priority order:

    1. ``DATABASE_URL`` / ``PGDSN`` environment variables (``.env`` included)
    2. ``database.dsn`` from the config
    3. individual ``PGHOST`` / ``PGPORT`` / ``PGUSER`` / ``PGPASSWORD`` /
       ``PGDATABASE`` variables, falling back to the ``database`` section
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def open_tracker_store(cfg: SyncConfig) -> Iterator[TrackerStore]:
    """Yield the configured tracker store (closing the DB connection afterwards)."""
    if cfg.tracker.backend != "postgres":
        yield JsonTrackerStore(Path(cfg.tracker.path))
        return

    try:
        conn = psycopg2.connect(resolve_dsn(cfg.database))
    except psycopg2.Error as e:
        raise TrackerIOError(f"cannot connect to tracker database: {e}") from e
    try:
        conn.autocommit = False
        store = PostgresTrackerStore(conn, cfg.tracker.table)
        store.ensure_table()
        yield store
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="indicator-sync",
        description="Reconcile indicator spreadsheets into reporting value sets",
    )
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data",
        action="store_true",
        help="Print detected profile, header mapping & first records per file then exit",
    )
    p.add_argument(
        "--prune",
        action="store_true",
        help="Drop tracking entries older than tracker.retention_days then exit",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse, match and assemble only (no upload, no tracker commit)",
    )
    return p.parse_args(argv)


def _inspect_data(cfg: SyncConfig) -> int:
    try:
        files = scan_source_files(Path(cfg.source_directory), cfg.file_extensions)
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no source files")
        return EXIT_SUCCESS_ALL
    for info in files:
        print(f"FILE: {info.name} size={info.size}")
        try:
            result = normalize_file(info.path or Path(cfg.source_directory) / info.name, cfg.parsing)
        except ParseError as e:
            print(f"  read_error: {e}")
            continue
        print(f"  profile={result.profile} records={len(result.records)} warnings={len(result.warnings)}")
        for sheet_name, hmap in result.header_maps.items():
            print(
                f"  SHEET: {sheet_name} header_row={hmap.header_row + 1} "
                f"detected={hmap.detected} columns={hmap.columns}"
            )
        for rec in result.records[:3]:
            print(f"    {rec.indicator!r} = {rec.value} (site={rec.site!r} row={rec.row_index})")
        for w in result.warnings[:5]:
            print(f"    warning {w.warning_type} sheet={w.sheet_name} row={w.row_index}: {w.message}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when argv is None; cli_main([]) must not see pytest's args
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    now = datetime.now(UTC)
    try:
        with open_tracker_store(cfg) as store:
            if args.prune:
                horizon = timedelta(days=cfg.tracker.retention_days)
                pruned = prune_store(store, now, horizon)
                log_summary(f"pruned={len(pruned.removed)} kept={len(pruned.kept)}")
                return EXIT_SUCCESS_ALL

            logger.info(f"Processing files from: {cfg.source_directory}")
            uploader = OutboxUploader(
                Path(cfg.output_directory), include_unmatched=cfg.report.submit_unmatched
            )
            result = run_sync(cfg, store, uploader, dry_run=args.dry_run, now=now)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except TrackerIOError as e:
        logger.error(f"tracker: {e}")
        return EXIT_FATAL

    if args.dry_run:
        logger.info("dry run: nothing uploaded or committed")

    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
