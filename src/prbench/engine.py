"""Run the benchmark suite of a repository.

The suite is an arbitrary shell command (``python benchmarks.py`` by
default) executed in the benchmark directory. It receives the path of the
results file in the ``PRBENCH_RESULTS`` environment variable and must
write a JSON document in the format described in :mod:`prbench.runs`.
A leading ``python`` in the command is replaced by the interpreter of the
prepared environment.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import tempfile
import time
from pathlib import Path

from prbench.environment import PackageManager
from prbench.errors import BenchmarkError
from prbench.logging import get_logger
from prbench.runs import BenchmarkRun, load_run
from prbench.vcs import GitRepository

log = get_logger("engine")

RESULTS_ENV = "PRBENCH_RESULTS"
DEFAULT_COMMAND = "python benchmarks.py"


def resolve_command(command: str, python: Path) -> str:
    """Point a leading ``python`` at *python*."""
    if command == "python" or command.startswith("python "):
        return f"{shlex.quote(str(python))}{command[len('python'):]}"
    return command


def run_benchmark_command(
    command: str,
    cwd: Path,
    results_path: Path,
    *,
    timeout: int,
) -> subprocess.CompletedProcess[str]:
    """Execute the benchmark command with the results path in its environment."""
    env = {**os.environ, RESULTS_ENV: str(results_path)}
    log.debug("Benchmark command (resolved): %s", command)
    return subprocess.run(
        command,
        shell=True,
        capture_output=True,
        text=True,
        cwd=str(cwd),
        timeout=timeout,
        env=env,
    )


class SubprocessBenchmarkEngine:
    """Benchmark engine running a shell command per pass."""

    def __init__(
        self,
        bmark_dir: Path,
        repository: GitRepository,
        packages: PackageManager,
        *,
        command: str = DEFAULT_COMMAND,
        timeout: int = 3600,
    ) -> None:
        self.bmark_dir = Path(bmark_dir)
        self.repository = repository
        self.packages = packages
        self.command = command
        self.timeout = timeout

    def run(self, repo_name: str, branch: str | None = None) -> BenchmarkRun:
        """Benchmark the working copy, or *branch* when given.

        Raises:
            BenchmarkError: If the command fails, times out or writes no results.
            MalformedRunError: If the results file has the wrong shape.
            SetupError: If *branch* cannot be checked out.
        """
        if branch is None:
            commit = self.repository.current_commit() if self.repository.is_repository() else None
            return self._run_once(repo_name, name=repo_name, commit=commit)
        with self.repository.checked_out(branch) as commit:
            return self._run_once(repo_name, name=branch, commit=commit)

    def _run_once(self, repo_name: str, *, name: str, commit: str | None) -> BenchmarkRun:
        command = resolve_command(self.command, self.packages.python)
        log.info("Benchmarking %s (%s)", repo_name, commit or name)
        with tempfile.TemporaryDirectory(prefix="prbench_") as tmp:
            results_path = Path(tmp) / "results.json"
            start = time.monotonic()
            try:
                proc = run_benchmark_command(
                    command, self.bmark_dir, results_path, timeout=self.timeout
                )
            except subprocess.TimeoutExpired as exc:
                raise BenchmarkError(
                    f"Benchmarks of {repo_name} timed out after {self.timeout}s"
                ) from exc
            duration = time.monotonic() - start
            if proc.returncode != 0:
                tail = (proc.stderr or proc.stdout).strip()[-500:]
                raise BenchmarkError(
                    f"Benchmark command exited with {proc.returncode}: {tail}"
                )
            if not results_path.exists():
                raise BenchmarkError(
                    f"Benchmark command did not write results to ${RESULTS_ENV}"
                )
            run = load_run(results_path, name=name)
        run.commit = commit
        log.info(
            "Benchmarked %d cases in %d suites (%.1fs)",
            run.n_cases,
            len(run.suites),
            duration,
        )
        return run
