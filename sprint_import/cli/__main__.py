from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from sprint_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, load_config
from sprint_import.db.postgres_store import PostgresTaskStore
from sprint_import.db.store import InMemoryTaskStore, TaskStore
from sprint_import.excel.reader import WorkbookReadError, read_workbook
from sprint_import.logging.finding_log import FindingLogBuffer
from sprint_import.logging.init import log_summary, setup_logging
from sprint_import.models.finding import SYSTEM_COLUMN, Severity
from sprint_import.services.commit import CommitError
from sprint_import.services.orchestrator import ImportSession
from sprint_import.services.overlay import OverlayError
from sprint_import.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and config/import.yml
- Open the task store (PostgreSQL, or the in-memory mock store)
- Parse the spreadsheet against the store's roster, print findings + SUMMARY
- Apply --ignore flags, then commit in the chosen mode (unless --dry-run)
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_NOT_IMPORTED = 2


def _connect(cfg: ImportConfig):  # pragma: no cover (thin wrapper; tested via integration)
    """Open a psycopg2 connection in autocommit mode.

    Connection parameters, by priority:
        1. DATABASE_URL / PGDSN (whole DSN)
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. the config's database section
    The store draws its own BEGIN/COMMIT boundary per batch.
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", db_cfg.host or "localhost")
        port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
        user = os.getenv("PGUSER", db_cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", db_cfg.password or "")
        database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    conn.autocommit = True
    return conn


def _mock_store(cfg: ImportConfig) -> InMemoryTaskStore:
    return InMemoryTaskStore(members=cfg.roster)


def _store_label(store: TaskStore) -> str:
    return "memory" if isinstance(store, InMemoryTaskStore) else "postgres"


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over variables already in the environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Sprint spreadsheet -> task store importer")
    p.add_argument("file", type=Path, help="Spreadsheet (.xlsx, .xls or .csv); each sheet is a sprint")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config file (YAML)")
    p.add_argument(
        "--mode",
        choices=["append", "overwrite"],
        default="append",
        help="append to the existing tasks or replace them",
    )
    p.add_argument(
        "--ignore",
        type=int,
        action="append",
        default=[],
        metavar="ROW",
        help="Row index to leave out of the import (repeatable)",
    )
    p.add_argument("--dry-run", action="store_true", help="Parse and validate only, do not commit")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet headers & first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(path: Path) -> int:
    try:
        sheets = read_workbook(path)
    except WorkbookReadError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    for name, grid in sheets.items():
        headers = grid[0] if grid else []
        print(f"  SHEET: {name} rows={max(len(grid) - 1, 0)} headers={headers}")
        for row in grid[1:4]:
            print("    ", [v.isoformat() if hasattr(v, "isoformat") else v for v in row])
    return EXIT_SUCCESS


def _run(args: argparse.Namespace, cfg: ImportConfig, store: TaskStore, logger: logging.Logger) -> int:
    session = ImportSession(cfg)
    result = session.start_file(args.file, store.list_members())

    findings_log = FindingLogBuffer()
    findings_log.extend(result.findings)
    for f in result.findings:
        level = logging.ERROR if f.severity is Severity.ERROR else logging.WARNING
        logger.log(level, f"row={f.row} column={f.column} {f.message}")
    log_path = findings_log.flush()
    if log_path is not None:
        logger.info(f"findings written to {log_path}")

    if any(f.column == SYSTEM_COLUMN for f in result.findings):
        return EXIT_FATAL

    for member in result.unmatched_members:
        logger.warning(f"unmatched member '{member.first_name}' rows={list(member.rows)}")
    for member in result.ambiguous_members:
        names = ", ".join(m.name for m in member.candidates)
        logger.warning(f"ambiguous member '{member.first_name}' candidates=[{names}] rows={list(member.rows)}")

    try:
        # a repeated row stays ignored
        for row_index in dict.fromkeys(args.ignore):
            session.overlay.toggle_ignore(row_index)
    except OverlayError as e:
        logger.error(f"ignore: {e}")
        return EXIT_FATAL

    ignored = session.overlay.ignored
    log_summary(render_summary_line(result, session.effective_summary(), len(ignored)))

    if not session.is_importable():
        logger.error("nothing importable: every remaining row lacks project, demand or title")
        return EXIT_NOT_IMPORTED
    if args.dry_run:
        logger.info("dry run: nothing committed")
        return EXIT_SUCCESS

    try:
        committed = session.commit(store, args.mode)
    except CommitError as e:
        logger.error(f"commit: {e}")
        return EXIT_NOT_IMPORTED
    logger.info(
        f"imported {committed.applied_rows} tasks mode={committed.mode.value} "
        f"skipped_rows={list(committed.skipped_rows)} store={_store_label(store)}"
    )
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not pick up pytest's own argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        for h in logger.handlers:
            h.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    if args.inspect_data:
        return _inspect_data(args.file)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if not args.file.exists():
        logger.error(f"file not found: {args.file}")
        return EXIT_FATAL
    logger.info(f"Importing {args.file} mode={args.mode}")

    # DISABLE_DB_CONNECT=1 forces the in-memory store (tests, offline review)
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        return _run(args, cfg, _mock_store(cfg), logger)

    try:
        conn = _connect(cfg)
    except psycopg2.OperationalError as db_e:
        logger.warning(f"DB connection failed -> fallback to mock mode (in-memory store, nothing persisted): {db_e}")
        return _run(args, cfg, _mock_store(cfg), logger)

    try:
        with conn.cursor() as cur:
            logger.info("mode=live")
            return _run(args, cfg, PostgresTaskStore(cur), logger)
    finally:
        conn.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
