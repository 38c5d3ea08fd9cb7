"""Logging for prbench runs.

Each module logs through ``get_logger("<module>")``, so records carry names
such as ``prbench.pipeline`` or ``prbench.gist``. The pipeline logs every
stage transition at DEBUG and stage failures at ERROR. On CI the console
shows INFO progress (run name, mode, gist URL) while ``--log-file`` keeps
the full DEBUG trace, including the git, pip and benchmark commands run.
"""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "prbench"

_CONSOLE_FORMAT = "%(levelname)-8s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def console_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Console level for the CLI flags; ``--verbose`` wins over ``--quiet``."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Attach console and optional file handlers to the ``prbench`` logger.

    Calling it again replaces the handlers, so repeated CLI invocations in
    one process (as under ``CliRunner``) do not duplicate output.

    Args:
        verbose: Show stage transitions and subprocess commands.
        quiet: Only show warnings and errors.
        log_file: Also write every record, at DEBUG, to this file.

    Returns:
        The ``prbench`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(console_level(verbose=verbose, quiet=quiet))
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        trace = logging.FileHandler(log_file, encoding="utf-8")
        trace.setLevel(logging.DEBUG)
        trace.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(trace)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for one prbench module, e.g. ``get_logger("engine")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
