"""Command-line interface for prbench.

Subcommands:
    prbench run            Benchmark a repository and publish the report
    prbench gist create    Create a gist from a saved payload file
    prbench gist update    Update a gist from a saved payload file
"""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import click

from prbench import __version__
from prbench.errors import PrbenchError
from prbench.logging import setup_logging


def _fail(exc: Exception, stage: str | None = None) -> NoReturn:
    where = f" ({stage})" if stage else ""
    click.echo(f"Error{where}: {exc}", err=True)
    raise SystemExit(1) from exc


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Benchmark a package against a reference branch and publish the results."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@click.argument("repo_name")
@click.argument("bmark_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--reference-branch",
    default="main",
    show_default=True,
    help="Branch to compare against.",
)
@click.option(
    "--gist",
    "gist_url",
    default=None,
    help="URL or id of an existing gist to update (default: create a new gist).",
)
@click.option("--no-publish", is_flag=True, help="Write local files only.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file.",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for reports, snapshots and profiles (default: current directory).",
)
@click.option("--command", "benchmark_command", default=None, help="Benchmark command.")
@click.option(
    "--timeout",
    "benchmark_timeout",
    type=int,
    default=None,
    help="Timeout per benchmark pass in seconds.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show errors.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also log at DEBUG level to this file.",
)
def run(  # noqa: PLR0913
    repo_name: str,
    bmark_dir: Path,
    reference_branch: str,
    gist_url: str | None,
    no_publish: bool,
    config_path: Path | None,
    output_dir: Path | None,
    benchmark_command: str | None,
    benchmark_timeout: int | None,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Benchmark REPO_NAME using the suite in BMARK_DIR.

    When the parent of BMARK_DIR is a git working copy, the current state
    is compared against --reference-branch; otherwise only the current
    state is benchmarked. The gist token is read from $GITHUB_AUTH unless
    the config file names another variable.

    \b
    Examples:
        # From a pull request, creating a new gist
        prbench run MyPackage ./benchmark

        # Update an existing gist, compare against 'develop'
        prbench run MyPackage ./benchmark --reference-branch develop \\
            --gist https://gist.github.com/someone/911c1e3b9d341d5c

        # Local run, nothing published
        prbench run MyPackage ./benchmark --no-publish -v
    """
    from prbench.config import config_from_mapping, load_config, validate_config
    from prbench.gist import PublishMode
    from prbench.pipeline import Pipeline

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    if no_publish and gist_url:
        raise click.UsageError("--gist and --no-publish are mutually exclusive.")

    try:
        data = load_config(config_path) if config_path else {}
        config = config_from_mapping(
            data,
            cli_overrides={
                "benchmark_command": benchmark_command,
                "benchmark_timeout": benchmark_timeout,
            },
        )
        publish_mode = PublishMode.none() if no_publish else PublishMode.from_gist_url(gist_url)
    except (ValueError, TypeError, OSError) as exc:
        _fail(exc, "config")

    errors = validate_config(config)
    if errors:
        for err in errors:
            click.echo(f"Config error: {err.field}: {err.message}", err=True)
        raise SystemExit(1)

    pipeline = Pipeline(
        repo_name,
        bmark_dir,
        reference_branch=reference_branch,
        publish_mode=publish_mode,
        output_dir=output_dir,
        config=config,
    )
    try:
        result = pipeline.run()
    except PrbenchError as exc:
        _fail(exc, exc.stage)
    except OSError as exc:
        _fail(exc, pipeline.failed_stage.value if pipeline.failed_stage else None)
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    click.echo(f"Run name: {result.context.run_name} ({result.context.mode.value} mode)")
    if result.gist is not None:
        click.echo(f"Gist: {result.gist.html_url}")
    if result.report_path is not None:
        click.echo(f"Report: {result.report_path}")


# ---------------------------------------------------------------------------
# gist
# ---------------------------------------------------------------------------


@main.group()
def gist() -> None:
    """Publish a previously written gist payload (``<run>.json``)."""


def _token(token_env: str) -> str:
    from prbench.gist import token_from_env

    try:
        return token_from_env(token_env)
    except PrbenchError as exc:
        _fail(exc, "publish")


@gist.command("create")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--token-env", default="GITHUB_AUTH", show_default=True)
def gist_create(payload_file: Path, token_env: str) -> None:
    """Create a new gist from PAYLOAD_FILE."""
    from prbench.gist import create_gist_from_json_file

    try:
        handle = create_gist_from_json_file(payload_file, _token(token_env))
    except (PrbenchError, ValueError, OSError) as exc:
        _fail(exc, "publish")
    click.echo(handle.html_url)


@gist.command("update")
@click.argument("gist_url")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--token-env", default="GITHUB_AUTH", show_default=True)
def gist_update(gist_url: str, payload_file: Path, token_env: str) -> None:
    """Update the gist GIST_URL (URL or id) with the files of PAYLOAD_FILE."""
    from prbench.gist import parse_gist_id, update_gist_from_json_file

    try:
        handle = update_gist_from_json_file(
            parse_gist_id(gist_url), payload_file, _token(token_env)
        )
    except (PrbenchError, ValueError, OSError) as exc:
        _fail(exc, "publish")
    click.echo(handle.html_url)
