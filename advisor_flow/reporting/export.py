"""
Export helpers for recommendations and answered paths.

All functions write to disk and return the written ``Path``; parent
directories are created as needed.

``export_paths_parquet()`` writes one row per answered step across all
users (see ``DecisionPathRepository.all_entries()``) so option popularity
and drop-off per step can be analysed without touching the live store.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from advisor_flow.models.recommendation import FinalRecommendation

logger = logging.getLogger(__name__)

PATH_ENTRY_SCHEMA = pa.schema([
    pa.field("user_id", pa.string(), nullable=False),
    pa.field("advisor_id", pa.string(), nullable=False),
    pa.field("completed", pa.bool_(), nullable=False),
    pa.field("step", pa.int32(), nullable=False),
    pa.field("option_id", pa.string(), nullable=False),
    pa.field("value", pa.string(), nullable=False),
    pa.field("title", pa.string(), nullable=False),
    pa.field("selected_at", pa.string(), nullable=False),
])


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def export_recommendation_json(rec: FinalRecommendation, path: Path) -> Path:
    """Write a recommendation in its camelCase persisted shape."""
    return export_to_json(rec.to_record(), path)


def rows_to_table(rows: list[dict[str, Any]], schema: pa.Schema = PATH_ENTRY_SCHEMA) -> pa.Table:
    """Column-wise conversion of entry rows to a ``pa.Table``."""
    arrays = {
        field.name: pa.array([r.get(field.name) for r in rows], type=field.type)
        for field in schema
    }
    return pa.table(arrays, schema=schema)


def export_paths_parquet(rows: list[dict[str, Any]], output_dir: Path, name: str = "decision_paths") -> Path:
    """Write answered-path rows to ``<output_dir>/<name>.parquet`` (snappy).

    Args:
        rows:       Dicts with the ``PATH_ENTRY_SCHEMA`` columns.
        output_dir: Destination directory.
        name:       File stem.

    Returns:
        Path of the written file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{name}.parquet"
    pq.write_table(rows_to_table(rows), str(path), compression="snappy")
    logger.info("Path export written: %s (%d rows)", path, len(rows))
    return path
