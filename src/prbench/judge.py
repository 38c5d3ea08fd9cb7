"""Judge a benchmark run against a reference run.

For every case present in both runs, the ratio ``current / reference`` is
computed for each metric from the median estimates. Time and memory ratios
are classified against a tolerance: above ``1 + tol`` is a regression,
below ``1 - tol`` an improvement, anything else invariant.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import pandas as pd

from prbench.extract import METRIC_COLUMNS, extract
from prbench.logging import get_logger
from prbench.runs import BenchmarkRun

log = get_logger("judge")

IMPROVEMENT = "improvement"
REGRESSION = "regression"
INVARIANT = "invariant"

DEFAULT_TIME_TOLERANCE = 0.05
DEFAULT_MEMORY_TOLERANCE = 0.01


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


@dataclass
class CaseJudgement:
    """Comparison of one benchmark case between two runs."""

    name: str
    time_ratio: float
    memory_ratio: float
    gctime_ratio: float
    allocations_ratio: float
    time_verdict: str = INVARIANT
    memory_verdict: str = INVARIANT

    @property
    def regressed(self) -> bool:
        return REGRESSION in (self.time_verdict, self.memory_verdict)

    @property
    def improved(self) -> bool:
        return IMPROVEMENT in (self.time_verdict, self.memory_verdict) and not self.regressed


@dataclass
class Judgement:
    """Per-suite comparison of a current run against a reference run."""

    current_name: str
    reference_name: str
    time_tolerance: float = DEFAULT_TIME_TOLERANCE
    memory_tolerance: float = DEFAULT_MEMORY_TOLERANCE
    suites: dict[str, list[CaseJudgement]] = field(default_factory=dict)

    @property
    def regressions(self) -> list[tuple[str, CaseJudgement]]:
        """All regressed cases as ``(suite, case)`` pairs."""
        return [(s, c) for s, cases in self.suites.items() for c in cases if c.regressed]

    @property
    def improvements(self) -> list[tuple[str, CaseJudgement]]:
        """All improved cases as ``(suite, case)`` pairs."""
        return [(s, c) for s, cases in self.suites.items() for c in cases if c.improved]


# ---------------------------------------------------------------------------
# Judgement logic
# ---------------------------------------------------------------------------


def ratio(current: float, reference: float) -> float:
    """Return ``current / reference``; 0/0 is 1 and x/0 is infinite."""
    if reference == 0:
        return 1.0 if current == 0 else math.inf
    return current / reference


def verdict(value: float, tolerance: float) -> str:
    """Classify a ratio against a relative tolerance."""
    if value > 1 + tolerance:
        return REGRESSION
    if value < 1 - tolerance:
        return IMPROVEMENT
    return INVARIANT


def judge_frames(
    current: pd.DataFrame,
    reference: pd.DataFrame,
    *,
    time_tolerance: float = DEFAULT_TIME_TOLERANCE,
    memory_tolerance: float = DEFAULT_MEMORY_TOLERANCE,
) -> list[CaseJudgement]:
    """Judge the cases of one suite, in the current table's row order."""
    ref_rows = {row["name"]: row for row in reference.to_dict("records")}
    cases: list[CaseJudgement] = []
    for row in current.to_dict("records"):
        ref = ref_rows.get(row["name"])
        if ref is None:
            log.debug("Case %s has no reference counterpart, not judged", row["name"])
            continue
        time_r = ratio(row["time"], ref["time"])
        memory_r = ratio(row["memory"], ref["memory"])
        cases.append(
            CaseJudgement(
                name=row["name"],
                time_ratio=time_r,
                memory_ratio=memory_r,
                gctime_ratio=ratio(row["gctime"], ref["gctime"]),
                allocations_ratio=ratio(row["allocations"], ref["allocations"]),
                time_verdict=verdict(time_r, time_tolerance),
                memory_verdict=verdict(memory_r, memory_tolerance),
            )
        )
    return cases


def judge(
    current: BenchmarkRun,
    reference: BenchmarkRun,
    *,
    time_tolerance: float = DEFAULT_TIME_TOLERANCE,
    memory_tolerance: float = DEFAULT_MEMORY_TOLERANCE,
) -> Judgement:
    """Compare *current* against *reference*, suite by suite.

    Only suites and cases present in both runs are judged.

    Raises:
        MalformedRunError: If either run cannot be extracted.
    """
    current_stats = extract(current)
    reference_stats = extract(reference)

    judgement = Judgement(
        current_name=current.name,
        reference_name=reference.name,
        time_tolerance=time_tolerance,
        memory_tolerance=memory_tolerance,
    )
    for suite, frame in current_stats.items():
        ref_frame = reference_stats.get(suite)
        if ref_frame is None:
            log.info("Suite %s is new in %s, nothing to judge", suite, current.name)
            continue
        judgement.suites[suite] = judge_frames(
            frame,
            ref_frame,
            time_tolerance=time_tolerance,
            memory_tolerance=memory_tolerance,
        )

    log.info(
        "Judged %d suites: %d regressions, %d improvements",
        len(judgement.suites),
        len(judgement.regressions),
        len(judgement.improvements),
    )
    return judgement


def judgement_to_frames(judgement: Judgement) -> dict[str, pd.DataFrame]:
    """Tabulate the ratios of each judged suite.

    Columns are ``name, time, memory, gctime, allocations`` where every
    metric column holds the current/reference ratio.
    """
    frames: dict[str, pd.DataFrame] = {}
    for suite, cases in judgement.suites.items():
        rows = [
            {
                "name": c.name,
                "time": c.time_ratio,
                "memory": c.memory_ratio,
                "gctime": c.gctime_ratio,
                "allocations": c.allocations_ratio,
            }
            for c in cases
        ]
        frames[suite] = pd.DataFrame(rows, columns=["name", *METRIC_COLUMNS])
    return frames
