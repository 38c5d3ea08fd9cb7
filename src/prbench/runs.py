"""Benchmark run data model and JSON wire format.

A benchmark command writes one JSON document per pass::

    {
      "name": "this_commit",
      "commit": "3f2a9c...",
      "suites": {
        "micro": {
          "foo": {"times": [1200, 1180, 1210], "gctimes": [0, 0, 0],
                  "memory": 4096, "allocs": 12},
          "bar": {"times": 2400, "gctimes": 35, "memory": 8192, "allocs": 20}
        }
      }
    }

``times`` and ``gctimes`` are nanoseconds and may be a single number or the
list of all samples; ``memory`` is bytes and ``allocs`` a count. Suite and
case order in the file is the order used everywhere downstream.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from prbench.errors import MalformedRunError

Sample = dict[str, Any]


@dataclass
class BenchmarkRun:
    """Raw output of executing the benchmark suite against one code state."""

    name: str
    suites: dict[str, dict[str, Sample]] = field(default_factory=dict)
    commit: str | None = None

    @property
    def n_cases(self) -> int:
        """Total number of cases across all suites."""
        return sum(len(cases) for cases in self.suites.values())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON wire format."""
        data: dict[str, Any] = {"name": self.name, "suites": self.suites}
        if self.commit is not None:
            data["commit"] = self.commit
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, name: str | None = None) -> BenchmarkRun:
        """Deserialize from the JSON wire format.

        Only the overall shape is checked here; per-sample numeric
        validation happens in :func:`prbench.extract.extract`.

        Raises:
            MalformedRunError: If ``suites`` is missing or not a mapping of
                mappings.
        """
        suites = data.get("suites")
        if not isinstance(suites, dict):
            raise MalformedRunError("Benchmark results have no 'suites' mapping")
        for suite_name, cases in suites.items():
            if not isinstance(cases, dict):
                raise MalformedRunError(
                    f"Suite '{suite_name}' must map case names to samples, "
                    f"got {type(cases).__name__}"
                )
        return cls(
            name=name or str(data.get("name", "")),
            suites=suites,
            commit=data.get("commit"),
        )


def load_run(path: Path, *, name: str | None = None) -> BenchmarkRun:
    """Load a benchmark run from a JSON results file.

    Raises:
        MalformedRunError: If the file is not valid JSON or has the wrong shape.
        OSError: If the file cannot be read.
    """
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedRunError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedRunError(
            f"Benchmark results in {path} must be a JSON object, got {type(data).__name__}"
        )
    return BenchmarkRun.from_dict(data, name=name)
