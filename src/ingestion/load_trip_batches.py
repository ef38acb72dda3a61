"""
Batch ingestion of raw TLC trip records into one canonical in-memory table.
Each batch is read through a caller-supplied reader, projected onto the canonical schema and tagged with its season.
Any batch problem aborts the whole run; a partial dataset is never returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

import pandas as pd

from src.common.schema_map import missing_required_fields, normalize_trip_dataframe

LOGGER = logging.getLogger("ingestion")

BatchReader = Callable[[str], pd.DataFrame]


class IngestionError(RuntimeError):
    """Raised when a source batch is missing, empty, unreadable or lacks required fields."""

    def __init__(self, message: str, *, batch_id: str | None = None, reason: str = "read_failed") -> None:
        super().__init__(message)
        self.batch_id = batch_id
        self.reason = reason


def frame_batch_reader(frames: Mapping[str, pd.DataFrame]) -> BatchReader:
    """Build a reader over already-loaded frames keyed by batch id."""

    def _read(batch_id: str) -> pd.DataFrame:
        return frames[batch_id].copy()

    return _read


def read_trip_batch(batch_id: str, reader: BatchReader, *, season: str) -> pd.DataFrame:
    """Read one batch and normalize it, raising `IngestionError` on any batch-level defect."""

    try:
        raw = reader(batch_id)
    except (FileNotFoundError, KeyError) as exc:
        raise IngestionError(f"Batch not found: {batch_id}", batch_id=batch_id, reason="missing_batch") from exc
    except Exception as exc:
        raise IngestionError(f"Failed to read batch {batch_id}: {exc}", batch_id=batch_id, reason="read_failed") from exc

    if raw is None:
        raise IngestionError(f"Batch not found: {batch_id}", batch_id=batch_id, reason="missing_batch")
    if not isinstance(raw, pd.DataFrame):
        raise IngestionError(
            f"Batch {batch_id} reader returned {type(raw).__name__}, expected a DataFrame",
            batch_id=batch_id,
            reason="read_failed",
        )
    if raw.empty:
        raise IngestionError(f"Batch {batch_id} contains no rows", batch_id=batch_id, reason="empty_batch")

    missing = missing_required_fields(raw.columns)
    if missing:
        raise IngestionError(
            f"Batch {batch_id} is missing required fields: {missing}",
            batch_id=batch_id,
            reason="missing_required_fields",
        )

    try:
        normalized = normalize_trip_dataframe(raw, season=season, batch_id=batch_id)
    except (ValueError, TypeError) as exc:
        raise IngestionError(
            f"Batch {batch_id} could not be normalized: {exc}",
            batch_id=batch_id,
            reason="read_failed",
        ) from exc
    LOGGER.info("batch read batch_id=%s season=%s rows=%d", batch_id, season, len(normalized))
    return normalized


def ingest_trip_batches(
    season_batches: Mapping[str, Sequence[str]],
    reader: BatchReader,
    *,
    max_workers: int = 4,
) -> pd.DataFrame:
    """Read every batch of every season concurrently and concatenate in request order."""

    jobs = [(season, str(batch_id)) for season, batch_ids in season_batches.items() for batch_id in batch_ids]
    if not jobs:
        raise IngestionError("No batches requested for ingestion", reason="missing_batch")

    seen: set[str] = set()
    for _, batch_id in jobs:
        if batch_id in seen:
            raise IngestionError(
                f"Batch {batch_id} requested more than once",
                batch_id=batch_id,
                reason="duplicate_batch",
            )
        seen.add(batch_id)

    frames: list[pd.DataFrame | None] = [None] * len(jobs)
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(jobs)))) as pool:
        futures = {
            pool.submit(read_trip_batch, batch_id, reader, season=season): position
            for position, (season, batch_id) in enumerate(jobs)
        }
        for future in as_completed(futures):
            frames[futures[future]] = future.result()

    combined = pd.concat(frames, ignore_index=True)
    LOGGER.info("ingestion complete batches=%d rows=%d", len(jobs), len(combined))
    return combined
