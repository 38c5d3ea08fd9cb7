"""Pipeline configuration and YAML config file loading.

Handles:
- Loading a config file from YAML.
- Merging CLI options over file values.
- Validating the final configuration before any benchmark runs.

Example config file::

    benchmark_command: "python benchmarks.py --quick"
    benchmark_timeout: 1800
    time_tolerance: 0.05
    memory_tolerance: 0.01
    public: false
    description: "{repo} benchmarks"
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from prbench.engine import DEFAULT_COMMAND
from prbench.gist import DEFAULT_API_URL, DEFAULT_TIMEOUT, DEFAULT_TOKEN_ENV
from prbench.judge import DEFAULT_MEMORY_TOLERANCE, DEFAULT_TIME_TOLERANCE
from prbench.logging import get_logger

log = get_logger("config")


# ---------------------------------------------------------------------------
# BenchConfig
# ---------------------------------------------------------------------------


@dataclass
class BenchConfig:
    """Resolved configuration for one pipeline invocation."""

    # Benchmark execution
    benchmark_command: str = DEFAULT_COMMAND
    benchmark_timeout: int = 3600  # seconds per pass
    setup_timeout: int = 1800  # seconds per install step

    # Judgement
    time_tolerance: float = DEFAULT_TIME_TOLERANCE
    memory_tolerance: float = DEFAULT_MEMORY_TOLERANCE

    # Publishing
    token_env: str = DEFAULT_TOKEN_ENV
    api_url: str = DEFAULT_API_URL
    publish_timeout: float = DEFAULT_TIMEOUT
    public: bool = True
    description: str = "{repo} repository benchmark"

    def gist_description(self, repo_name: str) -> str:
        """The gist description for *repo_name*."""
        return self.description.format(repo=repo_name)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str


def validate_config(config: BenchConfig) -> list[ValidationError]:
    """Validate a configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not config.benchmark_command.strip():
        errors.append(ValidationError("benchmark_command", "Benchmark command cannot be empty."))

    for name in ("benchmark_timeout", "setup_timeout", "publish_timeout"):
        value = getattr(config, name)
        if value <= 0:
            errors.append(ValidationError(name, f"Timeout must be positive (got {value})."))

    for name in ("time_tolerance", "memory_tolerance"):
        value = getattr(config, name)
        if not 0 <= value < 1:
            errors.append(
                ValidationError(name, f"Tolerance must be in [0, 1) (got {value}).")
            )

    if not config.token_env:
        errors.append(ValidationError("token_env", "Token environment variable name is empty."))

    try:
        config.gist_description("repo")
    except (KeyError, IndexError, ValueError) as exc:
        errors.append(
            ValidationError("description", f"Invalid description template: {exc}")
        )

    return errors


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config(config_path: Path) -> dict[str, Any]:
    """Load a YAML config file.

    Returns:
        The parsed YAML as a dict.
    """
    try:
        import yaml
    except ImportError as exc:
        raise ImportError(
            "PyYAML is required for loading config files. Install it with: pip install pyyaml"
        ) from exc

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__}")
    return data


def config_from_mapping(
    data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> BenchConfig:
    """Build a BenchConfig from parsed YAML, with CLI values taking precedence.

    ``None`` CLI values mean "not given" and leave the file value in place.

    Raises:
        ValueError: On unknown keys.
    """
    known = {f.name for f in fields(BenchConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    merged = dict(data)
    for key, value in (cli_overrides or {}).items():
        if value is not None and key in known:
            merged[key] = value

    config = BenchConfig(**merged)
    log.debug("Configuration: %s", config)
    return config
