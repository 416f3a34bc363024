from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ..excel.reader import EmptyDatasetError, read_dataset
from ..excel.writer import output_path_for, write_dataset
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.dataset import TabularDataset
from ..models.excel_file import ExcelFile, FileStatus
from ..models.processing_result import FileStat, ProcessingResult
from ..store.factory import Stores
from .columns import ResolvedColumns, SchemaError, resolve_columns
from .enrichment import LIFESTYLE_STAGE_COLUMN, WORKER_STAGE, EnrichmentResult, enrich_and_accumulate
from .exclusion import FilterResult, exclude_filtered
from .progress import ProgressTracker

"""Pipeline orchestration.

For each input spreadsheet:
1. read the first sheet into a TabularDataset
2. resolve the address / customer-id columns (SchemaError aborts the file)
3. enrich rows from the address table, accumulating customer→company pairs
4. drop excluded usernames (optional)
5. write processed_<name>.xlsx

Files are independent: a failure is recorded in the error log and the run
continues with the next file.
"""

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".xlsx",)


class ProcessingError(Exception):
    """Fatal input problem that prevents the run from starting."""


@dataclass(frozen=True)
class PipelineOutput:
    dataset: TabularDataset
    columns: ResolvedColumns
    enrichment: EnrichmentResult
    filtered: FilterResult | None


def process_dataset(dataset: TabularDataset, stores: Stores, *, apply_exclusions: bool = True) -> PipelineOutput:
    """Run resolve → enrich → filter on an in-memory dataset.

    Raises:
        EmptyDatasetError, SchemaError: before any store is touched
    """
    columns = resolve_columns(dataset)
    enrichment = enrich_and_accumulate(
        dataset,
        columns.address_column,
        columns.customer_id_column,
        stores.address_mappings,
        stores.customer_companies,
    )
    filtered = None
    result = enrichment.dataset
    if apply_exclusions:
        filtered = exclude_filtered(result, stores.exclusions)
        result = filtered.dataset
    return PipelineOutput(dataset=result, columns=columns, enrichment=enrichment, filtered=filtered)


def matched_rows(dataset: TabularDataset) -> int:
    """Count output rows carrying a mapping (rows dropped by the exclusion filter are not counted)."""
    return sum(1 for r in dataset.rows if r.get(LIFESTYLE_STAGE_COLUMN) == WORKER_STAGE)


def collect_inputs(paths: list[Path]) -> list[Path]:
    """Expand directories (non-recursive) and validate explicit file paths."""
    files: list[Path] = []
    for p in paths:
        if not p.exists():
            raise ProcessingError(f"input not found: {p}")
        if p.is_dir():
            try:
                files.extend(sorted(c for c in p.iterdir() if c.is_file() and c.suffix in SUPPORTED_SUFFIXES))
            except OSError as e:
                raise ProcessingError(f"Error reading directory {p}: {e}") from e
        else:
            files.append(p)
    return files


def _failed(path: Path, start: datetime, error: str) -> ExcelFile:
    return ExcelFile(
        path=path,
        name=path.name,
        start_time=start,
        end_time=datetime.now(UTC),
        status=FileStatus.FAILED,
        error=error,
    )


def process_file(
    path: Path,
    stores: Stores,
    output_directory: Path,
    error_log: ErrorLogBuffer,
    *,
    apply_exclusions: bool = True,
) -> ExcelFile:
    start = datetime.now(UTC)
    try:
        dataset = read_dataset(path)
    except EmptyDatasetError as e:
        error_log.append(ErrorRecord.create(path.name, "", -1, "EMPTY_DATASET", str(e)))
        return _failed(path, start, str(e))
    except Exception as e:  # openpyxl / zipfile など読み込み系は一括でファイル失敗扱い
        error_log.append(ErrorRecord.create(path.name, "", -1, "READ_ERROR", str(e)))
        return _failed(path, start, f"could not read workbook: {e}")

    try:
        out = process_dataset(dataset, stores, apply_exclusions=apply_exclusions)
    except (SchemaError, EmptyDatasetError) as e:
        error_type = "MISSING_COLUMN" if isinstance(e, SchemaError) else "EMPTY_DATASET"
        error_log.append(ErrorRecord.create(path.name, "", -1, error_type, str(e)))
        return _failed(path, start, str(e))

    write_result = out.enrichment.write_result
    if write_result is not None and not write_result.durable:
        warning = write_result.warning
        error_log.append(ErrorRecord.create(
            path.name,
            stores.customer_companies.name,
            -1,
            "PERSISTENCE_WARNING",
            warning.message if warning else "not durable",
        ))

    output_path = output_path_for(path, output_directory)
    try:
        write_dataset(out.dataset, output_path)
    except OSError as e:
        error_log.append(ErrorRecord.create(path.name, "", -1, "WRITE_ERROR", str(e)))
        return _failed(path, start, f"could not write output: {e}")

    removed = out.filtered.removed_count if out.filtered else 0
    matched = matched_rows(out.dataset)
    unmatched = len(out.dataset) - matched
    logger.info(
        f"{path.name}: rows={len(out.dataset)} matched={matched} "
        f"unmatched={unmatched} excluded={removed} -> {output_path}"
    )
    return ExcelFile(
        path=path,
        name=path.name,
        start_time=start,
        end_time=datetime.now(UTC),
        status=FileStatus.SUCCESS,
        total_rows=len(out.dataset),
        matched_rows=matched,
        unmatched_rows=unmatched,
        removed_rows=removed,
        output_path=output_path,
        customer_company_durable=write_result.durable if write_result else None,
    )


def process_all(
    inputs: list[Path],
    stores: Stores,
    output_directory: Path,
    *,
    apply_exclusions: bool = True,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Process every input file and aggregate the results.

    Raises:
        ProcessingError: an input path does not exist
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    files = collect_inputs(inputs)

    file_stats: list[FileStat] = []
    results: list[ExcelFile] = []
    with ProgressTracker(len(files), description="Processing files") as progress:
        for path in files:
            progress.start_file(path)
            r = process_file(path, stores, output_directory, error_log, apply_exclusions=apply_exclusions)
            results.append(r)
            if r.status != FileStatus.SUCCESS:
                logger.error(f"{path.name}: {r.error}")
            succeeded = sum(1 for x in results if x.status == FileStatus.SUCCESS)
            progress.finish_file(success=succeeded, failed=len(results) - succeeded)
            elapsed = (r.end_time - r.start_time).total_seconds() if r.start_time and r.end_time else 0.0
            file_stats.append(FileStat(
                file_name=r.name,
                status=r.status.value,
                output_rows=r.total_rows,
                matched_rows=r.matched_rows,
                removed_rows=r.removed_rows,
                elapsed_seconds=elapsed,
                output_path=str(r.output_path) if r.output_path else None,
                error=r.error,
            ))

    try:
        flushed = error_log.flush()
        if flushed is not None:
            logger.info(f"error log written: {flushed}")
    except OSError as e:
        logger.warning(f"could not write error log: {e}")

    durabilities = [r.customer_company_durable for r in results if r.customer_company_durable is not None]
    end_time = datetime.now(UTC)
    ok_results = [r for r in results if r.status == FileStatus.SUCCESS]
    return ProcessingResult(
        success_files=len(ok_results),
        failed_files=len(results) - len(ok_results),
        total_rows=sum(r.total_rows for r in ok_results),
        matched_rows=sum(r.matched_rows for r in ok_results),
        unmatched_rows=sum(r.unmatched_rows for r in ok_results),
        removed_rows=sum(r.removed_rows for r in ok_results),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        customer_company_durable=all(durabilities) if durabilities else None,
        file_stats=file_stats,
    )
