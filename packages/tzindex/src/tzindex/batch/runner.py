"""Annotate Parquet coordinate tables with the containing time-zone id."""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import polars as pl
import pyarrow.parquet as pq

from tzindex.core.errors import InvalidCoordinate
from tzindex.engine import TimeZoneEngine

from .exceptions import err

logger = logging.getLogger(__name__)

TZID_COLUMN = "tzid"
REPORT_NAME = "run_report.json"


@dataclass(frozen=True)
class BatchLookupInputs:
    """User-supplied configuration for a batch lookup."""

    input_path: Path
    output_dir: Path
    lat_column: str = "lat_deg"
    lon_column: str = "lon_deg"
    chunk_size: int = 250_000
    resume: bool = False


@dataclass(frozen=True)
class BatchLookupResult:
    """Outcome of the batch lookup runner."""

    output_path: Path
    report_path: Path
    rows_total: int
    rows_matched: int
    distinct_tzids: int
    resumed: bool


class BatchLookupRunner:
    """Streams coordinate rows through a built engine."""

    def run(self, engine: TimeZoneEngine, config: BatchLookupInputs) -> BatchLookupResult:
        if config.chunk_size <= 0:
            raise err("E_BATCH_INVALID_CHUNK_SIZE", "chunk_size must be a positive integer")
        input_path = config.input_path.expanduser().resolve()
        output_dir = config.output_dir.expanduser().resolve()
        report_path = output_dir / REPORT_NAME
        logger.info("Batch lookup invoked (input=%s, output=%s)", input_path, output_dir)

        if output_dir.exists():
            if config.resume:
                if not report_path.exists():
                    raise err(
                        "E_BATCH_OUTPUT_INCOMPLETE",
                        f"output at '{output_dir}' has no {REPORT_NAME}; delete it and rerun",
                    )
                logger.info("Batch lookup resume detected (output=%s); skipping run", output_dir)
                return _resumed_result(output_dir, report_path)
            raise err(
                "E_BATCH_OUTPUT_EXISTS",
                f"output already exists at '{output_dir}'; use resume to skip or delete it first",
            )

        files = _input_files(input_path)
        staging_dir = output_dir.with_name(f".{output_dir.name}.tmp")
        if staging_dir.exists():
            shutil.rmtree(staging_dir)
        staging_dir.mkdir(parents=True)
        try:
            result = self._annotate(engine, config, files, input_path, staging_dir, output_dir)
        except Exception:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise
        staging_dir.replace(output_dir)
        logger.info(
            "Batch lookup completed (rows=%s, matched=%s, unmatched=%s, output=%s)",
            result.rows_total,
            result.rows_matched,
            result.rows_total - result.rows_matched,
            output_dir,
        )
        return BatchLookupResult(
            output_path=output_dir,
            report_path=report_path,
            rows_total=result.rows_total,
            rows_matched=result.rows_matched,
            distinct_tzids=result.distinct_tzids,
            resumed=False,
        )

    def _annotate(
        self,
        engine: TimeZoneEngine,
        config: BatchLookupInputs,
        files: list[Path],
        input_path: Path,
        staging_dir: Path,
        output_dir: Path,
    ) -> BatchLookupResult:
        """Write every part and the run report into ``staging_dir``."""
        report_path = staging_dir / REPORT_NAME

        total_rows = 0
        matched_rows = 0
        distinct_tzids: set[str] = set()
        part_idx = 0
        for file in files:
            file_rows = 0
            for batch in _iter_batches(file, config):
                tzids = self._assign_batch(batch, engine, config, first_row=total_rows)
                out_df = batch.with_columns(pl.Series(TZID_COLUMN, tzids, dtype=pl.Utf8))
                out_df.write_parquet(staging_dir / f"part-{part_idx:05d}.parquet", compression="zstd")
                part_idx += 1

                total_rows += batch.height
                file_rows += batch.height
                resolved = [tzid for tzid in tzids if tzid is not None]
                matched_rows += len(resolved)
                distinct_tzids.update(resolved)
            if file_rows > 0:
                logger.info("Batch lookup streamed %s rows from %s", file_rows, file.name)

        if total_rows == 0:
            raise err("E_BATCH_INPUT_EMPTY", f"input '{input_path}' contained zero rows")

        _write_run_report(
            report_path,
            input_path=input_path,
            output_dir=output_dir,
            total_rows=total_rows,
            matched_rows=matched_rows,
            distinct_tzids=len(distinct_tzids),
            source_sha256=engine.source_sha256,
        )
        return BatchLookupResult(
            output_path=staging_dir,
            report_path=report_path,
            rows_total=total_rows,
            rows_matched=matched_rows,
            distinct_tzids=len(distinct_tzids),
            resumed=False,
        )

    def _assign_batch(
        self,
        batch: pl.DataFrame,
        engine: TimeZoneEngine,
        config: BatchLookupInputs,
        *,
        first_row: int,
    ) -> list[str | None]:
        lats = batch[config.lat_column].to_list()
        lons = batch[config.lon_column].to_list()
        tzids: list[str | None] = []
        for offset, (lat, lon) in enumerate(zip(lats, lons)):
            if lat is None or lon is None:
                raise err(
                    "E_BATCH_NULL_COORDINATE",
                    f"row {first_row + offset} has a null latitude or longitude",
                )
            try:
                tzids.append(engine.query(float(lat), float(lon)))
            except InvalidCoordinate as exc:
                raise err("E_BATCH_COORDINATE_RANGE", f"row {first_row + offset}: {exc}") from exc
        return tzids


def _input_files(input_path: Path) -> list[Path]:
    if input_path.is_dir():
        files = sorted(input_path.rglob("*.parquet"))
    elif input_path.is_file():
        files = [input_path]
    else:
        raise err("E_BATCH_INPUT_MISSING", f"input '{input_path}' does not exist")
    if not files:
        raise err("E_BATCH_INPUT_EMPTY", f"input '{input_path}' contains no parquet files")
    return files


def _iter_batches(path: Path, config: BatchLookupInputs) -> Iterable[pl.DataFrame]:
    try:
        parquet_file = pq.ParquetFile(path)
    except Exception as exc:
        raise err("E_BATCH_INPUT_INVALID", f"unable to read parquet '{path}': {exc}") from exc

    names = set(parquet_file.schema_arrow.names)
    for column in (config.lat_column, config.lon_column):
        if column not in names:
            raise err("E_BATCH_INPUT_SHAPE", f"'{path.name}' is missing required column '{column}'")
    if TZID_COLUMN in names:
        raise err("E_BATCH_INPUT_SHAPE", f"'{path.name}' already has a '{TZID_COLUMN}' column")

    for record_batch in parquet_file.iter_batches(batch_size=config.chunk_size):
        frame = pl.from_arrow(record_batch)
        if frame.is_empty():
            continue
        yield frame


def _write_run_report(
    report_path: Path,
    *,
    input_path: Path,
    output_dir: Path,
    total_rows: int,
    matched_rows: int,
    distinct_tzids: int,
    source_sha256: str | None,
) -> None:
    payload = {
        "input_path": str(input_path),
        "output_path": str(output_dir),
        "rows_total": total_rows,
        "rows_matched": matched_rows,
        "rows_unmatched": total_rows - matched_rows,
        "distinct_tzids": distinct_tzids,
        "source_sha256": source_sha256,
        "generated_at_utc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
    }
    report_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _resumed_result(output_dir: Path, report_path: Path) -> BatchLookupResult:
    payload: dict = {}
    if report_path.exists():
        payload = json.loads(report_path.read_text(encoding="utf-8"))
    return BatchLookupResult(
        output_path=output_dir,
        report_path=report_path,
        rows_total=int(payload.get("rows_total", 0)),
        rows_matched=int(payload.get("rows_matched", 0)),
        distinct_tzids=int(payload.get("distinct_tzids", 0)),
        resumed=True,
    )


__all__ = ["BatchLookupInputs", "BatchLookupResult", "BatchLookupRunner"]
