"""Local persistence of statistics, judgements, reports and gist payloads.

Every writer overwrites its target: re-running the same code state
produces the same file names, and the newest results win.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

from prbench.logging import get_logger

if TYPE_CHECKING:
    from prbench.gist import GistPayload

log = get_logger("persist")


def write_report(path: Path, text: str) -> None:
    """Write *text* to *path* so that readers never see a partial file.

    The content is written to a temporary file in the same directory
    which then replaces *path*.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    finally:
        Path(tmp_name).unlink(missing_ok=True)
    log.debug("Wrote %s (%d chars)", path, len(text))


def _write_pickle(path: Path, obj: Any) -> None:
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    try:
        pd.to_pickle(obj, tmp_name)
        os.replace(tmp_name, path)
    finally:
        Path(tmp_name).unlink(missing_ok=True)


def save_stats(stats: dict[str, pd.DataFrame], path: Path) -> None:
    """Save ``{label: statistics table}`` as a binary snapshot, overwriting *path*."""
    _write_pickle(path, {label: frame.copy() for label, frame in stats.items()})
    log.debug("Saved statistics for %s to %s", ", ".join(stats), path)


def save_judgement(frames: dict[str, pd.DataFrame], path: Path) -> None:
    """Save the per-suite judgement tables under the ``jstats`` key."""
    _write_pickle(path, {"jstats": frames})
    log.debug("Saved judgement for %d suites to %s", len(frames), path)


def load_snapshot(path: Path) -> dict[str, Any]:
    """Load a snapshot written by :func:`save_stats` or :func:`save_judgement`."""
    data = pd.read_pickle(path)
    if not isinstance(data, dict):
        raise ValueError(f"Snapshot {path} does not hold a mapping")
    return data


def write_payload(path: Path, payload: GistPayload) -> None:
    """Write the JSON description of a gist."""
    write_report(path, json.dumps(payload.to_dict(), indent=2) + "\n")
