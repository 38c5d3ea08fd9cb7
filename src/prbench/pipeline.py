"""The benchmark pipeline.

One invocation walks these stages in order::

    init → resolve_mode → setup_package → run_current
         → [run_reference → judge]            (comparison mode only)
         → extract_stats → generate_profiles → persist → publish → render → done

Comparison mode benchmarks the working copy and a reference branch and
judges one against the other; standalone mode benchmarks the current
release only. Any failure moves the pipeline to ``failed`` and propagates:
a partially completed comparison would be misleading, so nothing is
retried or recovered.

Every stage receives the :class:`RunContext` explicitly; the run name
seeds all output file names.
"""

from __future__ import annotations

import enum
import functools
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import pandas as pd

from prbench.config import BenchConfig
from prbench.engine import SubprocessBenchmarkEngine
from prbench.environment import PackageManager
from prbench.errors import PrbenchError
from prbench.export import export_judgement_markdown, export_markdown
from prbench.extract import extract
from prbench.gist import GistHandle, GistPayload, PublishMode, publish, token_from_env
from prbench.judge import Judgement, judge, judgement_to_frames
from prbench.logging import get_logger
from prbench.persist import save_judgement, save_stats, write_payload, write_report
from prbench.profiles import (
    DEFAULT_PREFIX,
    ProfileSet,
    align_stats,
    generate_profiles,
    safe_name,
)
from prbench.report import render, simple_report_sections
from prbench.runs import BenchmarkRun
from prbench.vcs import GitRepository

log = get_logger("pipeline")

CURRENT_LABEL = "this_commit"
REFERENCE_LABEL = "reference"


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------


class BenchmarkEngine(Protocol):
    """Runs the benchmark suite against one code state."""

    def run(self, repo_name: str, branch: str | None = None) -> BenchmarkRun:
        ...


class VersionControl(Protocol):
    """Inspects the working copy of the benchmarked package."""

    def is_repository(self) -> bool:
        ...

    def current_commit(self) -> str:
        ...

    def checked_out(self, branch: str) -> AbstractContextManager[str]:
        ...


class PackageSetup(Protocol):
    """Registers the package under test and installs dependencies."""

    def develop(self, path: Path) -> None:
        ...

    def activate(self, path: Path) -> None:
        ...

    def instantiate(self) -> None:
        ...


JudgeFn = Callable[[BenchmarkRun, BenchmarkRun], Judgement]
PublishFn = Callable[[GistPayload, PublishMode, str | None], GistHandle]


@dataclass
class Collaborators:
    """The external services a pipeline run calls into."""

    repository: VersionControl
    packages: PackageSetup
    engine: BenchmarkEngine
    judge: JudgeFn
    publish: PublishFn

    @classmethod
    def default(cls, repo_dir: Path, bmark_dir: Path, config: BenchConfig) -> Collaborators:
        """Git, pip, a subprocess benchmark engine and the GitHub gist API."""
        repository = GitRepository(repo_dir)
        packages = PackageManager(timeout=config.setup_timeout)
        engine = SubprocessBenchmarkEngine(
            bmark_dir,
            repository,
            packages,
            command=config.benchmark_command,
            timeout=config.benchmark_timeout,
        )
        return cls(
            repository=repository,
            packages=packages,
            engine=engine,
            judge=functools.partial(
                judge,
                time_tolerance=config.time_tolerance,
                memory_tolerance=config.memory_tolerance,
            ),
            publish=functools.partial(
                publish,
                api_url=config.api_url,
                timeout=config.publish_timeout,
            ),
        )


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------


class RunMode(enum.Enum):
    COMPARISON = "comparison"
    STANDALONE = "standalone"


class Stage(enum.Enum):
    INIT = "init"
    RESOLVE_MODE = "resolve_mode"
    SETUP_PACKAGE = "setup_package"
    RUN_CURRENT = "run_current"
    RUN_REFERENCE = "run_reference"
    JUDGE = "judge"
    EXTRACT_STATS = "extract_stats"
    GENERATE_PROFILES = "generate_profiles"
    PERSIST = "persist"
    PUBLISH = "publish"
    RENDER = "render"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RunContext:
    """Name, mode and output directory of one pipeline run."""

    run_name: str
    mode: RunMode
    output_dir: Path

    @property
    def comparison(self) -> bool:
        return self.mode is RunMode.COMPARISON

    def path(self, name: str) -> Path:
        return self.output_dir / name


@dataclass
class RunArtifacts:
    """Benchmark results of a run; reference and judgement only in comparison mode."""

    current: BenchmarkRun
    reference: BenchmarkRun | None = None
    judgement: Judgement | None = None


@dataclass
class PipelineResult:
    """Everything a completed pipeline run produced."""

    context: RunContext
    artifacts: RunArtifacts
    stats: dict[str, dict[str, pd.DataFrame]] = field(default_factory=dict)
    profiles: dict[str, ProfileSet] = field(default_factory=dict)
    payload: GistPayload | None = None
    gist: GistHandle | None = None
    report_path: Path | None = None


def resolve_mode(reference_branch: str | None, repository: VersionControl) -> RunMode:
    """Comparison mode needs both a reference branch and a git working copy."""
    if reference_branch and repository.is_repository():
        return RunMode.COMPARISON
    return RunMode.STANDALONE


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """Benchmark a repository, compare against a reference branch, publish a report."""

    def __init__(
        self,
        repo_name: str,
        bmark_dir: Path,
        *,
        reference_branch: str | None = "main",
        publish_mode: PublishMode | None = None,
        output_dir: Path | None = None,
        repo_dir: Path | None = None,
        config: BenchConfig | None = None,
        collaborators: Collaborators | None = None,
        token: str | None = None,
    ) -> None:
        self.repo_name = repo_name
        self.bmark_dir = Path(bmark_dir).resolve()
        self.repo_dir = Path(repo_dir).resolve() if repo_dir else self.bmark_dir.parent
        self.reference_branch = reference_branch
        self.publish_mode = publish_mode or PublishMode.create()
        self.output_dir = Path(output_dir) if output_dir else Path.cwd()
        self.config = config or BenchConfig()
        self.collaborators = collaborators or Collaborators.default(
            self.repo_dir, self.bmark_dir, self.config
        )
        self.token = token
        self.stage = Stage.INIT
        self.failed_stage: Stage | None = None

    @contextmanager
    def _stage(self, stage: Stage) -> Iterator[None]:
        self.stage = stage
        log.debug("Stage: %s", stage.value)
        try:
            yield
        except PrbenchError as exc:
            if exc.stage is None:
                exc.stage = stage.value
            self._fail(stage, exc)
            raise
        except Exception as exc:
            self._fail(stage, exc)
            raise

    def _fail(self, stage: Stage, exc: Exception) -> None:
        self.failed_stage = stage
        self.stage = Stage.FAILED
        log.error("Stage %s failed: %s", stage.value, exc)

    def run(self) -> PipelineResult:
        """Run every stage; raises on the first failure.

        Raises:
            PrbenchError: With ``stage`` set to the failing stage.
            OSError: If a local file cannot be written.
        """
        c = self.collaborators

        with self._stage(Stage.INIT):
            token = self.token
            if self.publish_mode.enabled and not token:
                token = token_from_env(self.config.token_env)
            self.output_dir.mkdir(parents=True, exist_ok=True)

        with self._stage(Stage.RESOLVE_MODE):
            mode = resolve_mode(self.reference_branch, c.repository)
            log.info("Benchmarking %s in %s mode", self.repo_name, mode.value)

        with self._stage(Stage.SETUP_PACKAGE):
            if mode is RunMode.COMPARISON:
                c.packages.develop(self.repo_dir)
            else:
                c.packages.activate(self.bmark_dir)
            c.packages.instantiate()
            if mode is RunMode.COMPARISON:
                run_name = c.repository.current_commit()
            else:
                run_name = self.repo_name.lower()
            ctx = RunContext(run_name=run_name, mode=mode, output_dir=self.output_dir)
            log.info("Run name: %s", ctx.run_name)

        with self._stage(Stage.RUN_CURRENT):
            artifacts = RunArtifacts(current=c.engine.run(self.repo_name))
            artifacts.current.name = CURRENT_LABEL
        result = PipelineResult(context=ctx, artifacts=artifacts)

        if ctx.comparison:
            assert self.reference_branch is not None
            with self._stage(Stage.RUN_REFERENCE):
                artifacts.reference = c.engine.run(self.repo_name, self.reference_branch)
                artifacts.reference.name = REFERENCE_LABEL
            with self._stage(Stage.JUDGE):
                artifacts.judgement = c.judge(artifacts.current, artifacts.reference)

        with self._stage(Stage.EXTRACT_STATS):
            result.stats = self._extract(artifacts)

        with self._stage(Stage.GENERATE_PROFILES):
            result.profiles = self._generate_profiles(ctx, result.stats)

        with self._stage(Stage.PERSIST):
            self._persist(ctx, artifacts, result.stats)
            result.payload = self._build_payload(ctx, result.profiles)
            write_payload(ctx.path(f"{ctx.run_name}.json"), result.payload)

        with self._stage(Stage.PUBLISH):
            if self.publish_mode.enabled:
                result.gist = c.publish(result.payload, self.publish_mode, token)
            else:
                log.info("Publishing disabled")

        with self._stage(Stage.RENDER):
            if ctx.comparison:
                result.report_path = self._render(ctx, result)

        self.stage = Stage.DONE
        log.info("Finished benchmarking %s", self.repo_name)
        return result

    # -- stages -------------------------------------------------------------

    def _extract(self, artifacts: RunArtifacts) -> dict[str, dict[str, pd.DataFrame]]:
        current = extract(artifacts.current)
        if artifacts.reference is None or artifacts.judgement is None:
            return {suite: {CURRENT_LABEL: frame} for suite, frame in current.items()}
        reference = extract(artifacts.reference)
        stats: dict[str, dict[str, pd.DataFrame]] = {}
        for suite in artifacts.judgement.suites:
            stats[suite] = align_stats(
                {CURRENT_LABEL: current[suite], REFERENCE_LABEL: reference[suite]}
            )
        return stats

    def _generate_profiles(
        self, ctx: RunContext, stats: dict[str, dict[str, pd.DataFrame]]
    ) -> dict[str, ProfileSet]:
        profiles: dict[str, ProfileSet] = {}
        if not ctx.comparison:
            return profiles
        for suite, suite_stats in stats.items():
            if len(next(iter(suite_stats.values()))) == 0:
                log.warning("Suite %s has no cases in common with the reference", suite)
                continue
            profiles[suite] = generate_profiles(
                suite_stats, ctx.output_dir, suite, prefix=DEFAULT_PREFIX
            )
        return profiles

    def _persist(
        self,
        ctx: RunContext,
        artifacts: RunArtifacts,
        stats: dict[str, dict[str, pd.DataFrame]],
    ) -> None:
        write_report(ctx.path(f"{ctx.run_name}.md"), export_markdown(artifacts.current))
        if artifacts.reference is None or artifacts.judgement is None:
            return
        write_report(ctx.path("reference.md"), export_markdown(artifacts.reference))
        write_report(
            ctx.path(f"judgement_{ctx.run_name}.md"),
            export_judgement_markdown(artifacts.judgement),
        )
        for suite, suite_stats in stats.items():
            snapshot = ctx.path(f"{ctx.run_name}_vs_reference_{safe_name(suite)}.pkl")
            save_stats(suite_stats, snapshot)
        save_judgement(
            judgement_to_frames(artifacts.judgement),
            ctx.path(f"{ctx.run_name}_vs_reference_judgement.pkl"),
        )

    def _build_payload(self, ctx: RunContext, profiles: dict[str, ProfileSet]) -> GistPayload:
        payload = GistPayload(
            description=self.config.gist_description(self.repo_name),
            public=self.config.public,
            gist_id=self.publish_mode.gist_id,
        )
        if ctx.comparison:
            for suite, profile_set in profiles.items():
                assert profile_set.combined is not None
                content = profile_set.combined.svg.read_text(encoding="utf-8")
                payload.add_file(f"{safe_name(suite)}.svg", content)
            if not payload.files:
                # GitHub rejects a gist without files.
                log.warning("No profiles rendered, publishing the judgement report instead")
                self._add_report(payload, ctx.path(f"judgement_{ctx.run_name}.md"))
        else:
            self._add_report(payload, ctx.path(f"{ctx.run_name}.md"))
        return payload

    @staticmethod
    def _add_report(payload: GistPayload, report: Path) -> None:
        payload.add_file(report.name, report.read_text(encoding="utf-8"))

    def _render(self, ctx: RunContext, result: PipelineResult) -> Path:
        gist_url = result.gist.html_url if result.gist else None
        files = result.payload.files if result.payload else {}
        images = [name for name in files if name.endswith(".svg")]
        text = render(simple_report_sections(result.artifacts, gist_url, images))
        path = ctx.path(f"{ctx.run_name}.md")
        write_report(path, text)
        log.info("Wrote summary report to %s", path)
        return path


def run_benchmarks(
    repo_name: str,
    bmark_dir: Path,
    *,
    reference_branch: str | None = "main",
    gist_url: str | None = None,
    publish: bool = True,
    **kwargs: object,
) -> PipelineResult:
    """Run the pipeline; update *gist_url* if given, else create a new gist.

    With ``publish=False`` nothing leaves the machine.
    """
    mode = PublishMode.from_gist_url(gist_url) if publish else PublishMode.none()
    pipeline = Pipeline(
        repo_name,
        bmark_dir,
        reference_branch=reference_branch,
        publish_mode=mode,
        **kwargs,  # type: ignore[arg-type]
    )
    return pipeline.run()
