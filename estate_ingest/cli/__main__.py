from __future__ import annotations

import argparse
import os
import shutil
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, default_config, load_config
from ..db.store import MemoryRecordStore, PostgresRecordStore
from ..domains import DOMAINS, get_domain
from ..errors import CommitError, ImportBlockedError, ParseError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import DatabaseConfig, IngestConfig
from ..models.import_outcome import ImportOutcome
from ..services.importer import CancellationToken
from ..services.preview import render_preview
from ..services.progress import ProgressTracker
from ..services.session import IngestSession
from ..services.summary import render_batch_summary, render_import_summary

"""CLI entrypoint.

    estate-ingest [--config PATH] [--debug] validate FILE --domain D [--set ROW:FIELD=VALUE ...]
    estate-ingest [--config PATH] [--debug] import FILE --domain D [--set ...] [--dry-run]
    estate-ingest template --domain D [--output PATH]

``--set`` applies corrections through the same edit/save loop an operator
uses interactively; ROW is the line number shown in the preview.

Exit codes:
    0 success
    1 fatal (config, parse or database connection error)
    2 partial failure (some rows failed, or the import was interrupted)
    3 blocked by validation errors
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2
EXIT_BLOCKED = 3

SUMMARY_PREFIX = "SUMMARY "


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Connection string; environment variables win over the config file.

    DATABASE_URL / PGDSN are used as a whole DSN. Otherwise the individual
    PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE variables are read,
    falling back to the config's database section.
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
def _db_connection(cfg: IngestConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """psycopg2 connection + cursor; commits on success, rolls back on error."""
    conn = psycopg2.connect(_resolve_dsn(cfg.database))
    conn.autocommit = False
    cur = conn.cursor()
    try:
        yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so its connection settings take precedence over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_edit(text: str) -> tuple[int, str, str]:
    """``"12:totalAmount=5000"`` -> ``(12, "totalAmount", "5000")``."""
    target, sep, value = text.partition("=")
    line, colon, field = target.partition(":")
    if not sep or not colon or not field.strip():
        raise ValueError(f"invalid edit '{text}' (expected ROW:FIELD=VALUE)")
    try:
        row = int(line)
    except ValueError:
        raise ValueError(f"invalid edit '{text}': ROW must be a line number") from None
    return row, field.strip(), value


def _apply_edits(session: IngestSession, edits: list[tuple[int, str, str]]) -> None:
    """Apply corrections row by row through start_edit / update_field / save_edit."""
    batch = session.batch
    assert batch is not None
    index_by_line = {row.source_line: i for i, row in enumerate(batch.rows)}
    grouped: dict[int, list[tuple[str, str]]] = {}
    for line, field, value in edits:
        if line not in index_by_line:
            raise ValueError(f"no row at line {line}")
        grouped.setdefault(line, []).append((field, value))
    for line, changes in grouped.items():
        index = index_by_line[line]
        session.start_edit(index)
        for field, value in changes:
            session.update_field(index, field, value)
        session.save_edit(index)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="estate-ingest", description="Bulk sales / asset importer")
    p.add_argument("--config", type=Path, default=None, help=f"Config file (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    def add_batch_args(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("file", type=Path, help="CSV / text export / .xlsx workbook")
        sp.add_argument("--domain", required=True, choices=sorted(DOMAINS))
        sp.add_argument(
            "--set",
            dest="edits",
            action="append",
            default=[],
            metavar="ROW:FIELD=VALUE",
            help="Correct a field before validation summary/import (repeatable)",
        )
        sp.add_argument("--limit", type=int, default=None, help="Show at most N preview rows")

    validate = sub.add_parser("validate", help="Parse and validate a file, print the preview")
    add_batch_args(validate)

    imp = sub.add_parser("import", help="Validate, then import the rows")
    add_batch_args(imp)
    imp.add_argument("--dry-run", action="store_true", help="Import into an in-memory store")

    template = sub.add_parser("template", help="Write the CSV template for a domain")
    template.add_argument("--domain", required=True, choices=sorted(DOMAINS))
    template.add_argument("--output", type=Path, default=None)
    return p.parse_args(argv)


def _load_cfg(args: argparse.Namespace, logger) -> IngestConfig:
    if args.config is not None:
        return load_config(args.config)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    logger.debug("no %s, using built-in defaults", DEFAULT_CONFIG_PATH)
    return default_config()


def _log_summary_line(line: str) -> None:
    # log_summary adds the SUMMARY label itself
    log_summary(line[len(SUMMARY_PREFIX):] if line.startswith(SUMMARY_PREFIX) else line)


def _load_batch(args: argparse.Namespace, cfg: IngestConfig, logger) -> IngestSession | int:
    session = IngestSession(get_domain(args.domain), cfg)
    try:
        session.load_file(args.file)
    except ParseError as e:
        logger.error(f"parse: {e}")
        return EXIT_FATAL
    try:
        _apply_edits(session, [_parse_edit(t) for t in args.edits])
    except ValueError as e:
        logger.error(f"edit: {e}")
        return EXIT_FATAL
    if args.edits:
        session.revalidate_all()

    batch = session.batch
    assert batch is not None
    print(render_preview(batch, max_rows=args.limit))
    for f in batch.findings:
        if f.is_error:
            logger.error(f"row {f.row} {f.field}: {f.message}")
        else:
            logger.warning(f"row {f.row} {f.field}: {f.message}")
    _log_summary_line(render_batch_summary(batch))
    return session


def _cmd_validate(args: argparse.Namespace, cfg: IngestConfig, logger) -> int:
    session = _load_batch(args, cfg, logger)
    if isinstance(session, int):
        return session
    assert session.batch is not None
    return EXIT_BLOCKED if session.batch.has_errors else EXIT_SUCCESS


def _run_with_interrupt(session: IngestSession, store, error_log: ErrorLogBuffer) -> ImportOutcome:
    """Run the import; Ctrl-C stops it after the current row."""
    token = CancellationToken()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        assert session.batch is not None
        with ProgressTracker(session.batch.total) as progress:
            return session.run_import(store, cancel_token=token, progress=progress, error_log=error_log)
    finally:
        signal.signal(signal.SIGINT, previous)


def _cmd_import(args: argparse.Namespace, cfg: IngestConfig, logger) -> int:
    session = _load_batch(args, cfg, logger)
    if isinstance(session, int):
        return session
    try:
        session.confirm()
    except ImportBlockedError as e:
        logger.error(f"import blocked: {e}")
        return EXIT_BLOCKED

    domain = session.domain
    error_log = ErrorLogBuffer()
    # DISABLE_DB_CONNECT=1 forces the in-memory store (tests, demos)
    if args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.info("mode=dry-run (in-memory store)")
        store = MemoryRecordStore(domain.duplicate_key)
        outcome = _run_with_interrupt(session, store, error_log)
    else:
        table = domain.table(cfg)
        try:
            with _db_connection(cfg) as cur:
                logger.info(f"mode=live table={table}")
                store = PostgresRecordStore(cur, table, domain.duplicate_key)
                outcome = _run_with_interrupt(session, store, error_log)
        except (psycopg2.Error, CommitError) as e:
            logger.error(f"database: {e}")
            return EXIT_FATAL

    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"error log written: {log_path}")
    _log_summary_line(render_import_summary(outcome))
    if outcome.has_failures or outcome.cancelled:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS


def _cmd_template(args: argparse.Namespace, logger) -> int:
    domain = get_domain(args.domain)
    output = args.output or Path(domain.template_name)
    try:
        shutil.copyfile(domain.template_path, output)
    except OSError as e:
        logger.error(f"template: {e}")
        return EXIT_FATAL
    logger.info(f"template written: {output}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only None reads sys.argv; an empty list is a valid argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.command == "template":
        return _cmd_template(args, logger)

    try:
        cfg = _load_cfg(args, logger)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "validate":
        return _cmd_validate(args, cfg, logger)
    return _cmd_import(args, cfg, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
