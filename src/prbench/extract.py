"""Convert raw benchmark runs into per-suite statistics tables.

Each suite becomes a :class:`pandas.DataFrame` with one row per case and
the columns ``name, time, memory, gctime, allocations``. Times are the
median of the recorded samples, as is GC time; memory and allocations are
taken as reported. Row order follows the run.
"""

from __future__ import annotations

import math
import statistics
from typing import Any

import pandas as pd

from prbench.errors import MalformedRunError
from prbench.logging import get_logger
from prbench.runs import BenchmarkRun

log = get_logger("extract")

STAT_COLUMNS = ("name", "time", "memory", "gctime", "allocations")
METRIC_COLUMNS = STAT_COLUMNS[1:]

# Raw sample key for each statistics column.
_SAMPLE_KEYS = {
    "time": "times",
    "memory": "memory",
    "gctime": "gctimes",
    "allocations": "allocs",
}


def _is_number(value: Any) -> bool:
    # bool is an int subclass; a stray true/false is never a measurement.
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _estimate(value: Any, *, suite: str, case: str, key: str) -> float:
    """Reduce a scalar or a list of samples to one number (the median)."""
    if _is_number(value):
        return float(value)
    if isinstance(value, list):
        if not value:
            raise MalformedRunError(f"{suite}/{case}: '{key}' has no samples")
        if not all(_is_number(v) for v in value):
            raise MalformedRunError(f"{suite}/{case}: '{key}' has non-numeric samples")
        return float(statistics.median(value))
    if value is None:
        raise MalformedRunError(f"{suite}/{case}: missing '{key}'")
    raise MalformedRunError(
        f"{suite}/{case}: '{key}' must be a number or a list of numbers, "
        f"got {type(value).__name__}"
    )


def case_row(suite: str, case: str, sample: Any) -> dict[str, Any]:
    """Build one statistics row from a raw case sample."""
    if not isinstance(sample, dict):
        raise MalformedRunError(
            f"{suite}/{case}: sample must be a mapping, got {type(sample).__name__}"
        )
    row: dict[str, Any] = {"name": case}
    for column, key in _SAMPLE_KEYS.items():
        row[column] = _estimate(sample.get(key), suite=suite, case=case, key=key)
    return row


def suite_frame(suite: str, cases: dict[str, Any]) -> pd.DataFrame:
    """Build the statistics table for one suite."""
    rows = [case_row(suite, case, sample) for case, sample in cases.items()]
    frame = pd.DataFrame(rows, columns=list(STAT_COLUMNS))
    return frame.astype({column: "float64" for column in METRIC_COLUMNS})


def extract(run: BenchmarkRun) -> dict[str, pd.DataFrame]:
    """Build one statistics table per suite of *run*.

    Raises:
        MalformedRunError: If any case lacks a numeric sample for time,
            memory, GC time or allocations.
    """
    stats: dict[str, pd.DataFrame] = {}
    for suite, cases in run.suites.items():
        stats[suite] = suite_frame(suite, cases)
        log.debug("Extracted %d cases from %s/%s", len(cases), run.name, suite)
    return stats
