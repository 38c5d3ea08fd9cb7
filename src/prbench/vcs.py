"""Git inspection and branch switching for the benchmarked repository."""

from __future__ import annotations

import subprocess
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path

from prbench.errors import SetupError
from prbench.logging import get_logger

log = get_logger("vcs")

_GIT_TIMEOUT = 120


def is_repository(path: Path) -> bool:
    """True if *path* is the root of a git working copy."""
    return (Path(path) / ".git").exists()


def _git(repo_dir: Path, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    log.debug("Running: git %s (in %s)", " ".join(args), repo_dir)
    try:
        return subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            cwd=str(repo_dir),
            timeout=_GIT_TIMEOUT,
            check=check,
        )
    except subprocess.CalledProcessError as exc:
        raise SetupError(f"git {' '.join(args)} failed: {exc.stderr.strip()[:200]}") from exc
    except (subprocess.TimeoutExpired, FileNotFoundError) as exc:
        raise SetupError(f"git {' '.join(args)} failed: {exc}") from exc


def current_commit(repo_dir: Path) -> str:
    """Return the full hash of HEAD."""
    return _git(repo_dir, "rev-parse", "HEAD").stdout.strip()


def current_ref(repo_dir: Path) -> str:
    """Return the checked-out branch name, or the commit hash when detached."""
    ref = _git(repo_dir, "rev-parse", "--abbrev-ref", "HEAD").stdout.strip()
    if ref == "HEAD":
        return current_commit(repo_dir)
    return ref


def is_dirty(repo_dir: Path) -> bool:
    """True if tracked files have uncommitted changes."""
    proc = _git(repo_dir, "status", "--porcelain", "--untracked-files=no")
    return bool(proc.stdout.strip())


def resolve_branch(repo_dir: Path, branch: str) -> str:
    """Return *branch*, or ``origin/<branch>`` when only the remote one exists.

    CI checkouts of pull requests often have no local reference branch.

    Raises:
        SetupError: If neither the local nor the remote branch exists.
    """
    for candidate in (branch, f"origin/{branch}"):
        proc = _git(repo_dir, "rev-parse", "--verify", "--quiet", candidate, check=False)
        if proc.returncode == 0:
            return candidate
    raise SetupError(f"Reference branch '{branch}' not found in {repo_dir}")


@contextmanager
def checked_out(repo_dir: Path, branch: str) -> Iterator[str]:
    """Check out *branch* for the duration of the block, then restore HEAD.

    Yields the commit hash of the checked-out branch.

    Raises:
        SetupError: If the working tree has uncommitted changes or the
            branch cannot be checked out.
    """
    if is_dirty(repo_dir):
        raise SetupError(
            f"Cannot switch {repo_dir} to '{branch}': the working tree has uncommitted changes"
        )
    original = current_ref(repo_dir)
    target = resolve_branch(repo_dir, branch)
    log.info("Checking out %s (was %s)", target, original)
    _git(repo_dir, "checkout", "--quiet", target)
    try:
        yield current_commit(repo_dir)
    finally:
        log.info("Restoring %s", original)
        _git(repo_dir, "checkout", "--quiet", original)


class GitRepository:
    """Git working copy of the package being benchmarked."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def is_repository(self) -> bool:
        return is_repository(self.root)

    def current_commit(self) -> str:
        return current_commit(self.root)

    def checked_out(self, branch: str) -> AbstractContextManager[str]:
        return checked_out(self.root, branch)
