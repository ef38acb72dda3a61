"""Shared helpers for the enrichment pipeline."""

from __future__ import annotations

import hashlib

import pandas as pd


def frame_checksum(frame: pd.DataFrame) -> str:
    """Return a SHA-256 over column names and row contents; index labels are ignored."""

    digest = hashlib.sha256()
    digest.update("|".join(str(column) for column in frame.columns).encode())
    if not frame.empty:
        row_hashes = pd.util.hash_pandas_object(frame, index=False)
        digest.update(row_hashes.to_numpy().tobytes())
    return digest.hexdigest()
