"""
Export gait rows: CSV table (same columns as the on-screen table) and a JSON summary.
"""
from __future__ import annotations

import json
import logging
import math
import os
from datetime import datetime
from typing import Any, Iterable, Optional

from .metrics import GaitRow

logger = logging.getLogger(__name__)

CSV_HEADER = (
    "Step",
    "Step Time (ms)",
    "Step Length (m)",
    "Stride Time (ms)",
    "Stride Length (m)",
    "Stride Frequency (Hz)",
)


def _fmt(value: Optional[float]) -> str:
    if value is None:
        return ""
    v = float(value)
    if not math.isfinite(v):
        return ""
    if v.is_integer():
        return str(int(v))
    return repr(v)


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def rows_to_csv(rows: Iterable[GaitRow]) -> str:
    lines = [",".join(CSV_HEADER)]
    for r in rows:
        lines.append(",".join([
            _quote(r.label),
            _fmt(r.step_time_ms),
            _fmt(r.step_len_m),
            _fmt(r.stride_time_ms),
            _fmt(r.stride_len_m),
            _fmt(r.stride_freq_hz),
        ]))
    return "\n".join(lines)


def default_csv_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"treadmill_gait_{now.strftime('%Y-%m-%d-%H-%M-%S')}.csv"


def write_csv(rows: list[GaitRow], output_dir: str, filename: Optional[str] = None) -> Optional[str]:
    """Write rows to output_dir; returns the path, or None when there is nothing to export."""
    if not rows:
        logger.info("export: no rows, CSV skipped")
        return None
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename or default_csv_name())
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(rows_to_csv(rows))
    logger.info("export: %s rows -> %s", len(rows), path)
    return path


def _mean(values: list[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def summarize(rows: list[GaitRow], status: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Averages over the rows that carry each field, plus the engine status snapshot."""
    def _col(name: str) -> list[float]:
        return [getattr(r, name) for r in rows if getattr(r, name) is not None]

    return {
        "step_count": len(rows),
        "mean_step_time_ms": _mean(_col("step_time_ms")),
        "mean_step_len_m": _mean(_col("step_len_m")),
        "mean_stride_time_ms": _mean(_col("stride_time_ms")),
        "mean_stride_len_m": _mean(_col("stride_len_m")),
        "mean_stride_freq_hz": _mean(_col("stride_freq_hz")),
        "rows": [r.to_dict() for r in rows],
        "status": status,
    }


def write_summary(rows: list[GaitRow], output_dir: str, status: Optional[dict[str, Any]] = None) -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, "gait_summary.json")
    with open(path, "w") as f:
        json.dump(summarize(rows, status), f, indent=2)
    logger.info("export: summary -> %s", path)
    return path
