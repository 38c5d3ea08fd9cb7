"""Prepare the Python environment the benchmarks run in.

Two setups are supported:

* **develop**: the package under test is installed in editable mode into
  the current interpreter, so switching branches in the working copy
  switches the code being benchmarked;
* **activate + instantiate**: the benchmark directory gets its own
  virtual environment and its declared requirements are installed there.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

from prbench.errors import SetupError
from prbench.logging import get_logger

log = get_logger("environment")

VENV_DIR_NAME = ".venv"
REQUIREMENTS_FILE = "requirements.txt"


def venv_python(venv_dir: Path) -> Path:
    """Path of the interpreter inside *venv_dir*."""
    if os.name == "nt":
        return venv_dir / "Scripts" / "python.exe"
    return venv_dir / "bin" / "python"


def _run(cmd: list[str], *, cwd: Path | None, timeout: int, what: str) -> None:
    log.debug("Running: %s", " ".join(cmd))
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            cwd=str(cwd) if cwd else None,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise SetupError(f"{what} timed out after {timeout}s") from exc
    except OSError as exc:
        raise SetupError(f"{what} failed: {exc}") from exc
    if proc.returncode != 0:
        tail = (proc.stderr or proc.stdout).strip()[-500:]
        raise SetupError(f"{what} failed (exit {proc.returncode}): {tail}")
    if proc.stdout.strip():
        log.debug("%s: %s", what, proc.stdout.strip()[-500:])


class PackageManager:
    """Install the package under test and the benchmark dependencies."""

    def __init__(self, python: Path | None = None, *, timeout: int = 1800) -> None:
        self.python = Path(python or sys.executable)
        self.timeout = timeout
        self.project: Path | None = None

    def develop(self, path: Path) -> None:
        """Install the package at *path* in editable mode."""
        path = Path(path).resolve()
        log.info("Installing %s in development mode", path)
        _run(
            [str(self.python), "-m", "pip", "install", "--quiet", "-e", str(path)],
            cwd=path,
            timeout=self.timeout,
            what=f"pip install -e {path}",
        )

    def activate(self, path: Path) -> None:
        """Use a virtual environment inside *path*, creating it if needed."""
        path = Path(path).resolve()
        venv_dir = path / VENV_DIR_NAME
        python = venv_python(venv_dir)
        if not python.exists():
            log.info("Creating virtual environment in %s", venv_dir)
            _run(
                [str(self.python), "-m", "venv", str(venv_dir)],
                cwd=path,
                timeout=self.timeout,
                what=f"venv creation in {venv_dir}",
            )
        else:
            log.debug("Reusing virtual environment %s", venv_dir)
        self.python = python
        self.project = path

    def instantiate(self) -> None:
        """Install the requirements declared by the active project."""
        if self.project is None:
            log.debug("No active project, nothing to instantiate")
            return
        requirements = self.project / REQUIREMENTS_FILE
        if not requirements.exists():
            log.info("No %s in %s, nothing to install", REQUIREMENTS_FILE, self.project)
            return
        log.info("Installing %s", requirements)
        _run(
            [str(self.python), "-m", "pip", "install", "--quiet", "-r", str(requirements)],
            cwd=self.project,
            timeout=self.timeout,
            what=f"pip install -r {requirements}",
        )
