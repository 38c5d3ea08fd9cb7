"""Performance profiles of labeled benchmark statistics.

Given ``{label: CaseStatistics}`` for one suite, two kinds of figure are
produced:

* one plot per cost metric with the per-case cost of every label against
  the case index, cases named on the x axis;
* one combined figure holding a Dolan-Moré performance profile for each
  metric. For metric *m* and label *s* the ratio of case *p* is
  ``cost[p, s] / min_s cost[p, s]`` and the curve shows the fraction of
  cases whose ratio is at most τ, with τ on a log2 axis.

Every figure is written as SVG (for artifacts and the gist) and PNG (for
Markdown summaries). Output is deterministic for a given input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
from matplotlib.axes import Axes  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from prbench.logging import get_logger  # noqa: E402

log = get_logger("profiles")

DEFAULT_PREFIX = "this_commit_vs_reference"

# Fixed salt keeps SVG element ids stable between runs.
_RC_PARAMS = {
    "svg.hashsalt": "prbench",
    "axes.grid": True,
    "grid.alpha": 0.3,
    "grid.linestyle": "--",
    "legend.frameon": False,
}


# ---------------------------------------------------------------------------
# Cost metrics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CostMetric:
    """A named scalar cost extracted from a statistics table."""

    name: str
    label: str
    column: str
    bias: float = 0.0

    def values(self, frame: pd.DataFrame) -> np.ndarray:
        """Return the cost of every case, in row order."""
        return frame[self.column].to_numpy(dtype=float) + self.bias


# GC time is frequently zero; the bias keeps every cost strictly positive.
COST_METRICS: tuple[CostMetric, ...] = (
    CostMetric("time", "time", "time"),
    CostMetric("memory", "memory", "memory"),
    CostMetric("gctime", "gctime+1", "gctime", bias=1.0),
    CostMetric("allocations", "allocations", "allocations"),
)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class Profile:
    """A rendered figure saved as vector and raster images."""

    name: str
    svg: Path
    png: Path


@dataclass
class ProfileSet:
    """All profiles rendered for one suite."""

    suite: str
    per_metric: dict[str, Profile] = field(default_factory=dict)
    combined: Profile | None = None

    @property
    def svg_files(self) -> list[str]:
        """SVG file names, per-metric first and the combined profile last."""
        names = [p.svg.name for p in self.per_metric.values()]
        if self.combined is not None:
            names.append(self.combined.svg.name)
        return names


# ---------------------------------------------------------------------------
# Profile math
# ---------------------------------------------------------------------------


def performance_ratios(costs: np.ndarray) -> np.ndarray:
    """Return the performance ratios of a ``(cases, candidates)`` cost matrix.

    Each cost is divided by the best cost of its case. When the best cost
    is zero, candidates with zero cost get ratio 1 and the others ``inf``.
    """
    costs = np.asarray(costs, dtype=float)
    best = costs.min(axis=1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratios = costs / best
    zero_best = np.broadcast_to(best == 0, costs.shape)
    return np.where(zero_best, np.where(costs == 0, 1.0, np.inf), ratios)


def profile_curve(ratios: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return ``(taus, fractions)`` of one candidate's performance profile.

    ``fractions[i]`` is the share of all cases whose ratio is at most
    ``taus[i]``. Infinite ratios count in the denominator only.
    """
    ratios = np.asarray(ratios, dtype=float)
    n = len(ratios)
    finite = np.sort(ratios[np.isfinite(ratios)])
    if n == 0 or finite.size == 0:
        return np.array([1.0]), np.array([0.0])
    taus = np.unique(finite)
    fractions = np.searchsorted(finite, taus, side="right") / n
    return taus, fractions


def _cost_matrix(stats: dict[str, pd.DataFrame], metric: CostMetric) -> np.ndarray:
    return np.column_stack([metric.values(frame) for frame in stats.values()])


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------


def check_aligned(stats: dict[str, pd.DataFrame]) -> list[str]:
    """Return the shared case names of *stats*, in row order.

    Raises:
        ValueError: If *stats* is empty or the tables do not list the same
            cases in the same order.
    """
    if not stats:
        raise ValueError("No statistics to profile")
    frames = iter(stats.items())
    first_label, first = next(frames)
    names = [str(n) for n in first["name"]]
    for label, frame in frames:
        other = [str(n) for n in frame["name"]]
        if other != names:
            raise ValueError(
                f"Statistics for '{label}' are not aligned with '{first_label}'"
            )
    return names


def align_stats(stats: dict[str, pd.DataFrame]) -> dict[str, pd.DataFrame]:
    """Restrict every table to the cases common to all, in the first table's order."""
    if not stats:
        return {}
    common = set.intersection(*(set(frame["name"]) for frame in stats.values()))
    order = [n for n in next(iter(stats.values()))["name"] if n in common]
    aligned: dict[str, pd.DataFrame] = {}
    for label, frame in stats.items():
        aligned[label] = frame.set_index("name").loc[order].reset_index()
    return aligned


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def safe_name(text: str) -> str:
    """Make *text* usable as part of a file name."""
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", text).strip("_") or "suite"


def _save(fig: Figure, output_dir: Path, stem: str) -> Profile:
    svg = output_dir / f"{stem}.svg"
    png = output_dir / f"{stem}.png"
    fig.savefig(svg, format="svg", metadata={"Date": None})
    fig.savefig(png, format="png", dpi=150)
    plt.close(fig)
    log.debug("Saved %s.svg and %s.png", stem, stem)
    return Profile(name=stem, svg=svg, png=png)


def plot_metric(
    ax: Axes,
    stats: dict[str, pd.DataFrame],
    metric: CostMetric,
    names: list[str],
) -> None:
    """Plot the per-case cost of every label on *ax*."""
    x = np.arange(1, len(names) + 1)
    for label, frame in stats.items():
        ax.plot(x, metric.values(frame), linewidth=2, label=label)
    ax.set_title(metric.label)
    ax.set_xticks(x)
    ax.set_xticklabels(names, rotation=45, ha="right", fontsize=4)
    ax.legend()


def plot_profile(
    ax: Axes,
    labels: list[str],
    ratios: np.ndarray,
    title: str,
) -> None:
    """Plot the performance profile of each candidate column of *ratios*."""
    finite = ratios[np.isfinite(ratios)]
    tau_max = float(finite.max()) if finite.size else 1.0
    x_max = max(np.log2(tau_max) * 1.1, 1.0)
    for j, label in enumerate(labels):
        taus, fractions = profile_curve(ratios[:, j])
        x = np.append(np.log2(taus), x_max)
        y = np.append(fractions, fractions[-1])
        ax.step(x, y, where="post", linewidth=2, label=label)
    ax.set_title(title)
    ax.set_xlim(0, x_max)
    ax.set_ylim(0, 1.05)
    ax.set_xlabel("log2(τ)")
    ax.legend(loc="lower right")


def generate_profiles(
    stats: dict[str, pd.DataFrame],
    output_dir: Path,
    suite: str,
    *,
    prefix: str = DEFAULT_PREFIX,
    metrics: tuple[CostMetric, ...] = COST_METRICS,
) -> ProfileSet:
    """Render the per-metric plots and the combined profile for one suite.

    Args:
        stats: Statistics table per label, aligned by row position.
        output_dir: Directory receiving the SVG and PNG files.
        suite: Suite name, used in file names.
        prefix: File name prefix after ``profiles_``.
        metrics: Cost metrics to render.

    Returns:
        The saved profiles.

    Raises:
        ValueError: If the tables are not aligned.
    """
    names = check_aligned(stats)
    labels = list(stats)
    stem = f"profiles_{prefix}_{safe_name(suite)}"
    result = ProfileSet(suite=suite)

    with plt.rc_context(_RC_PARAMS):
        for metric in metrics:
            fig, ax = plt.subplots(figsize=(8, 5))
            plot_metric(ax, stats, metric, names)
            fig.tight_layout()
            result.per_metric[metric.name] = _save(fig, output_dir, f"{stem}_{metric.name}")

        ncols = 2
        nrows = (len(metrics) + ncols - 1) // ncols
        fig, axes = plt.subplots(nrows, ncols, figsize=(6 * ncols, 4.5 * nrows), squeeze=False)
        for ax, metric in zip(axes.flat, metrics):
            ratios = performance_ratios(_cost_matrix(stats, metric))
            plot_profile(ax, labels, ratios, metric.label)
        for ax in list(axes.flat)[len(metrics):]:
            ax.set_visible(False)
        fig.tight_layout()
        result.combined = _save(fig, output_dir, stem)

    log.info("Rendered %d profiles for suite %s", len(result.per_metric) + 1, suite)
    return result


