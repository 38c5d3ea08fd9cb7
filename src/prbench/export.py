"""Export benchmark runs and judgements as Markdown.

These are the full per-run reports (``<bn>.md``, ``reference.md``,
``judgement_<bn>.md``) and the tables embedded in the pull-request
summary. The layout is fixed.
"""

from __future__ import annotations

from prbench.extract import extract
from prbench.formatting import format_gc_fraction, format_memory, format_ratio, format_time
from prbench.judge import IMPROVEMENT, REGRESSION, CaseJudgement, Judgement
from prbench.runs import BenchmarkRun

_VERDICT_MARKS = {
    IMPROVEMENT: ":white_check_mark:",
    REGRESSION: ":x:",
}


def export_markdown(run: BenchmarkRun) -> str:
    """Export a benchmark run as a Markdown report.

    One table per suite with the median time, GC share, memory and
    allocation count of every case.
    """
    lines: list[str] = []

    lines.append(f"# Benchmark Report for *{run.name}*")
    lines.append("")
    if run.commit:
        lines.append(f"- **Commit:** `{run.commit}`")
        lines.append("")

    stats = extract(run)
    lines.append("## Results")
    lines.append("")
    for suite, frame in stats.items():
        lines.append(f"### {suite}")
        lines.append("")
        lines.append("| ID | time | GC time | memory | allocations |")
        lines.append("|---|---:|---:|---:|---:|")
        for row in frame.to_dict("records"):
            lines.append(
                f'| `["{suite}", "{row["name"]}"]` | {format_time(row["time"])} '
                f'({format_gc_fraction(row["gctime"], row["time"])} GC) | '
                f'{format_time(row["gctime"])} | {format_memory(row["memory"])} | '
                f'{int(row["allocations"])} |'
            )
        lines.append("")

    lines.append(f"*{run.n_cases} cases in {len(stats)} suites*")
    return "\n".join(lines)


def _ratio_cell(value: float, verdict: str | None = None) -> str:
    mark = _VERDICT_MARKS.get(verdict or "")
    text = format_ratio(value)
    return f"{text} {mark}" if mark else text


def _judgement_row(suite: str, case: CaseJudgement) -> str:
    return (
        f'| `["{suite}", "{case.name}"]` | '
        f"{_ratio_cell(case.time_ratio, case.time_verdict)} | "
        f"{_ratio_cell(case.memory_ratio, case.memory_verdict)} | "
        f"{_ratio_cell(case.gctime_ratio)} | "
        f"{_ratio_cell(case.allocations_ratio)} |"
    )


def export_judgement_markdown(judgement: Judgement) -> str:
    """Export a judgement as a Markdown report.

    Ratios are ``current / reference``; values below 1 mean the current
    state is cheaper.
    """
    lines: list[str] = []

    lines.append(
        f"# Benchmark Report for *{judgement.current_name}* "
        f"vs *{judgement.reference_name}*"
    )
    lines.append("")
    lines.append(f"- **Time tolerance:** {judgement.time_tolerance * 100:.2f}%")
    lines.append(f"- **Memory tolerance:** {judgement.memory_tolerance * 100:.2f}%")
    lines.append("")
    lines.append("A ratio greater than `1.0` denotes a possible regression (marked with :x:),")
    lines.append("while a ratio less than `1.0` denotes a possible improvement")
    lines.append("(marked with :white_check_mark:). Only significant results are marked.")
    lines.append("")

    lines.append("## Results")
    lines.append("")
    lines.append("| ID | time ratio | memory ratio | GC time ratio | allocations ratio |")
    lines.append("|---|---:|---:|---:|---:|")
    for suite, cases in judgement.suites.items():
        for case in cases:
            lines.append(_judgement_row(suite, case))
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    total = sum(len(cases) for cases in judgement.suites.values())
    lines.append(f"- Cases compared: {total}")
    lines.append(f"- Regressions: {len(judgement.regressions)}")
    lines.append(f"- Improvements: {len(judgement.improvements)}")

    return "\n".join(lines)
