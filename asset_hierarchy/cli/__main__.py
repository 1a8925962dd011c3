from __future__ import annotations

import argparse
import logging
import sys
import zipfile
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, load_config
from ..logging.defect_log import DefectLogBuffer, records_from_result
from ..logging.init import log_summary, setup_logging
from ..models.validation_result import ValidationResult
from ..services.parser import AssetParseError
from ..services.repair import RepairSession
from ..services.summary import render_summary_line
from ..services.upload import UploadBlockedError, UploadClient, UploadError, submit_session
from ..tabular.reader import TableHeaderError, UnsupportedFileTypeError, read_table_file

"""CLI entrypoint.

Flow:
- Load config (config/import.yml unless --config)
- Read the source table, parse assets, validate
- Optionally auto-fix (orphan parents removed, cycles cut at their first row)
- Report defects (WARN lines + defect log) and a SUMMARY line
- Optionally write the repaired CSV and upload it (only when defect free)

Exit codes: 0 clean, 2 defects remain / upload refused or failed, 1 fatal.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_DEFECTS = 2

# 壊れた .xlsx は BadZipFile / ValueError (pandas)、文字コード不正も ValueError 系
_READ_ERRORS = (
    OSError,
    zipfile.BadZipFile,
    ValueError,
    TableHeaderError,
    UnsupportedFileTypeError,
)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env (override=True: .env の値で既存環境変数を上書き)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Asset hierarchy import validator / repairer")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to the YAML config")
    p.add_argument("--file", help="Source table (overrides source_file in the config)")
    p.add_argument("--auto-fix", action="store_true",
                   help="Remove orphan parent references and break every cycle")
    p.add_argument("--output", help="Write the repaired CSV to this path")
    p.add_argument("--upload", action="store_true", help="Upload the repaired CSV when no defects remain")
    p.add_argument("--inspect", action="store_true", help="Print headers, guessed mapping & first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect(cfg: ImportConfig, source: Path) -> int:
    try:
        table = read_table_file(source)
    except _READ_ERRORS as e:
        print(f"inspect: read_error: {e}")
        return EXIT_FATAL
    print(f"FILE: {source.name}")
    print(f"  headers={table.headers}")
    print(f"  mapping={cfg.mapping_for(table.headers)}")
    print(f"  data_rows={len(table.rows)}")
    for row in table.rows[:3]:
        print(f"    {row}")
    return EXIT_SUCCESS


def _log_defects(logger: logging.Logger, result: ValidationResult) -> None:
    for dup in result.duplicates:
        logger.warning(f"duplicate id '{dup.id}' on rows {dup.rows}")
    for group in result.orphan_groups:
        logger.warning(f"missing parent '{group.missing_parent_id}' referenced by rows {group.rows}")
    for cycle in result.cycles:
        logger.warning(f"{cycle.cycle_id} rows {cycle.rows}: {cycle.path_label}")
    for missing in result.missing_names:
        logger.warning(f"missing name on row {missing.row} (id '{missing.asset_id}')")


def _auto_fix(logger: logging.Logger, session: RepairSession) -> None:
    before = session.validation_result
    if before.orphan_groups:
        session.bulk_remove_all_orphan_parents()
        logger.info(f"auto-fix: removed parent reference from {before.orphan_count} orphan row(s)")
    cycles = session.validation_result.cycles
    if cycles:
        session.break_all_cycles()
        logger.info(f"auto-fix: broke {len(cycles)} cycle(s)")


def main(argv: list[str] | None = None) -> int:
    # NOTE: [] が渡された場合 (テストからの呼び出し) は sys.argv を読まない
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    source = Path(args.file or cfg.source_file)
    if args.inspect:
        return _inspect(cfg, source)

    defect_log = DefectLogBuffer()
    try:
        table = read_table_file(source)
    except _READ_ERRORS as e:
        logger.error(f"read: {e}")
        defect_log.append_file_error(source.name, "READ_ERROR", str(e))
        defect_log.flush()
        return EXIT_FATAL

    try:
        mapping = cfg.mapping_for(table.headers)
        if mapping is None:
            raise AssetParseError(f"no name column found in headers {table.headers}")
        session = RepairSession.from_table(
            table.headers, table.rows, mapping, source_lines=table.source_lines
        )
    except AssetParseError as e:
        logger.error(f"parse: {e}")
        defect_log.append_file_error(source.name, "PARSE_ERROR", str(e))
        defect_log.flush()
        return EXIT_FATAL

    logger.info(f"Validating {source.name}: {session.validation_result.total_assets} assets")

    if args.auto_fix:
        _auto_fix(logger, session)

    result = session.validation_result
    _log_defects(logger, result)
    defect_log.extend(records_from_result(source.name, result))
    log_path = defect_log.flush()
    if log_path is not None:
        logger.info(f"defect log: {log_path}")

    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if args.output:
        out = Path(args.output)
        out.write_text(session.get_modified_csv(sort_parents_first=cfg.sort_parents_first) + "\n",
                       encoding="utf-8")
        logger.info(f"wrote {len(session.active_assets)} rows to {out}")

    if args.upload:
        try:
            client = UploadClient(cfg.upload)
            receipt = submit_session(session, client, source.with_suffix(".csv").name,
                                     sort_parents_first=cfg.sort_parents_first)
            status = client.wait_for_completion(receipt.upload_id)
        except UploadBlockedError as e:
            logger.error(str(e))
            return EXIT_DEFECTS
        except UploadError as e:
            logger.error(f"upload: {e}")
            return EXIT_DEFECTS
        logger.info(f"upload {receipt.upload_id} finished status={status.value}")

    return EXIT_DEFECTS if result.has_errors else EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
