from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..excel.reader import EmptyDatasetError, read_dataset
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..logging.init import log_summary, setup_logging
from ..services import admin
from ..services.columns import SchemaError, resolve_columns, username_column
from ..services.pipeline import ProcessingError, process_all
from ..services.summary import render_summary_line
from ..store.factory import Stores, build_stores

"""CLI entrypoint.

address-mapper [--config PATH] [--debug] <command>

  process INPUT... [--output-dir DIR] [--no-exclusions]
  mappings list | add ADDRESS COMPANY_ID COMPANY_NAME | remove ADDRESS
  exclusions list | add USERNAME | remove USERNAME
  inspect INPUT

Exit codes: 0 success, 1 fatal / rejected admin change, 2 some files failed.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env via python-dotenv; .env values win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="address-mapper", description="Address → company spreadsheet enrichment")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    proc = sub.add_parser("process", help="Enrich spreadsheets and drop excluded users")
    proc.add_argument("inputs", nargs="+", type=Path, help=".xlsx files or directories")
    proc.add_argument("--output-dir", type=Path, default=None, help="Override output_directory")
    proc.add_argument("--no-exclusions", action="store_true", help="Skip the exclusion filter")

    mappings = sub.add_parser("mappings", help="Manage address → company mappings")
    msub = mappings.add_subparsers(dest="action", required=True)
    msub.add_parser("list")
    m_add = msub.add_parser("add")
    m_add.add_argument("address")
    m_add.add_argument("company_id")
    m_add.add_argument("company_name")
    m_rm = msub.add_parser("remove")
    m_rm.add_argument("address")

    exclusions = sub.add_parser("exclusions", help="Manage excluded usernames")
    esub = exclusions.add_subparsers(dest="action", required=True)
    esub.add_parser("list")
    e_add = esub.add_parser("add")
    e_add.add_argument("username")
    e_rm = esub.add_parser("remove")
    e_rm.add_argument("username")

    inspect = sub.add_parser("inspect", help="Print detected columns and first rows")
    inspect.add_argument("input", type=Path)
    return p.parse_args(argv)


def _report_admin(logger, result: admin.AdminResult, table: str) -> int:
    if not result.success:
        logger.error(f"{table}: {result.message}")
        return EXIT_FATAL
    logger.info(f"{table}: {result.message} (total={result.total})")
    if result.warning is not None:
        logger.info(f"hint: {result.warning.suggestion}")
        buf = ErrorLogBuffer()
        buf.append(ErrorRecord.create("", table, -1, "PERSISTENCE_WARNING", result.warning.message))
        buf.flush()
    if result.commit_url:
        logger.debug(f"commit: {result.commit_url}")
    return EXIT_SUCCESS_ALL


def _run_mappings(args: argparse.Namespace, stores: Stores, logger) -> int:
    store = stores.address_mappings
    if args.action == "list":
        table = admin.list_mappings(store)
        for address, m in sorted(table.items()):
            print(f"{address}\t{m.company_id}\t{m.company_name}")
        logger.info(f"mappings: {len(table)} entries")
        return EXIT_SUCCESS_ALL
    if args.action == "add":
        result = admin.add_mapping(store, args.address, args.company_id, args.company_name)
    else:
        result = admin.remove_mapping(store, args.address)
    return _report_admin(logger, result, store.name)


def _run_exclusions(args: argparse.Namespace, stores: Stores, logger) -> int:
    store = stores.exclusions
    if args.action == "list":
        names = admin.list_exclusions(store)
        for name in names:
            print(name)
        logger.info(f"exclusions: {len(names)} entries")
        return EXIT_SUCCESS_ALL
    if args.action == "add":
        result = admin.add_exclusion(store, args.username)
    else:
        result = admin.remove_exclusion(store, args.username)
    return _report_admin(logger, result, store.name)


def _inspect_data(path: Path) -> int:
    if not path.exists():
        print(f"inspect: file not found: {path}")
        return EXIT_FATAL
    try:
        dataset = read_dataset(path)
    except EmptyDatasetError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name} rows={len(dataset)}")
    print(f"  columns={dataset.columns}")
    print(f"  username_column={username_column(dataset)!r}")
    try:
        resolved = resolve_columns(dataset)
        print(f"  address_column={resolved.address_column!r} customer_id_column={resolved.customer_id_column!r}")
    except SchemaError as e:
        print(f"  {e}")
    # datetime を含む行は isoformat で表示
    for r in dataset.rows[:3]:
        print("  row=", {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in r.items()})
    return EXIT_SUCCESS_ALL


def _run_process(args: argparse.Namespace, cfg, stores: Stores, logger) -> int:
    output_dir = args.output_dir or Path(cfg.output_directory)
    try:
        result = process_all(
            list(args.inputs),
            stores,
            output_dir,
            apply_exclusions=not args.no_exclusions,
        )
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    total_files = result.success_files + result.failed_files
    summary_line = render_summary_line(total_files, result)
    # log_summary が "SUMMARY " を付けるので除去
    log_summary(summary_line[len("SUMMARY "):])
    if result.customer_company_durable is False:
        logger.warning("customer→company updates were kept for this session only")

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] を渡されたときに sys.argv を読まないよう None のみ判定
    if argv is None:
        argv = sys.argv[1:]
    try:
        args = _parse_args(argv)
    except SystemExit as e:
        return int(e.code) if isinstance(e.code, int) else EXIT_FATAL

    if args.debug:
        logger = setup_logging(debug=True)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    if args.command == "inspect":
        return _inspect_data(args.input)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    stores = build_stores(cfg.persistence)

    if args.command == "process":
        return _run_process(args, cfg, stores, logger)
    if args.command == "mappings":
        return _run_mappings(args, stores, logger)
    return _run_exclusions(args, stores, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
