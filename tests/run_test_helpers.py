"""Shared test fixtures for benchmark pipeline tests."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from prbench.gist import GistHandle, GistPayload, PublishMode
from prbench.runs import BenchmarkRun


def make_sample(
    time: float | list[float],
    memory: float = 100,
    gctime: float | list[float] = 0,
    allocs: float = 1,
) -> dict[str, Any]:
    """Create one raw case sample in the JSON wire format."""
    return {"times": time, "memory": memory, "gctimes": gctime, "allocs": allocs}


def make_run(
    name: str = "this_commit",
    *,
    times: list[float] | None = None,
    memory: list[float] | None = None,
    gctime: list[float] | None = None,
    allocations: list[float] | None = None,
    cases: list[str] | None = None,
    suite: str = "micro",
    commit: str | None = None,
) -> BenchmarkRun:
    """Create a one-suite BenchmarkRun; defaults to the foo/bar scenario."""
    cases = cases or ["foo", "bar"]
    times = times or [10, 20]
    memory = memory or [100, 200]
    gctime = gctime if gctime is not None else [0, 5]
    allocations = allocations or [1, 2]
    samples = {
        case: make_sample(t, m, g, a)
        for case, t, m, g, a in zip(cases, times, memory, gctime, allocations)
    }
    return BenchmarkRun(name=name, suites={suite: samples}, commit=commit)


class FakeRepository:
    """VersionControl stand-in recording checkouts."""

    def __init__(self, *, is_repo: bool = True, commit: str = "abc123def") -> None:
        self.is_repo = is_repo
        self.commit = commit
        self.checkouts: list[str] = []

    def is_repository(self) -> bool:
        return self.is_repo

    def current_commit(self) -> str:
        return self.commit

    @contextmanager
    def checked_out(self, branch: str) -> Iterator[str]:
        self.checkouts.append(branch)
        yield f"{branch}-sha"


class FakePackages:
    """PackageSetup stand-in recording calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Path | None]] = []

    def develop(self, path: Path) -> None:
        self.calls.append(("develop", path))

    def activate(self, path: Path) -> None:
        self.calls.append(("activate", path))

    def instantiate(self) -> None:
        self.calls.append(("instantiate", None))


class FakeEngine:
    """BenchmarkEngine returning canned runs: the current run, then the reference."""

    def __init__(self, current: BenchmarkRun, reference: BenchmarkRun | None = None) -> None:
        self.current = current
        self.reference = reference
        self.calls: list[tuple[str, str | None]] = []

    def run(self, repo_name: str, branch: str | None = None) -> BenchmarkRun:
        self.calls.append((repo_name, branch))
        if branch is None:
            return self.current
        assert self.reference is not None, "reference benchmark not expected"
        return self.reference


class FakePublisher:
    """Publish callable recording payloads and returning a fixed handle."""

    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[GistPayload, PublishMode, str | None]] = []

    def __call__(
        self, payload: GistPayload, mode: PublishMode, token: str | None
    ) -> GistHandle:
        self.calls.append((payload, mode, token))
        if self.error is not None:
            raise self.error
        gist_id = mode.gist_id or "newgist42"
        return GistHandle(
            id=gist_id,
            html_url=f"https://gist.github.com/someone/{gist_id}",
            files=list(payload.files),
        )
