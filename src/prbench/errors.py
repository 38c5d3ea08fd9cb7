"""Exception hierarchy for prbench.

Every failure aborts the pipeline. The orchestrator records the stage in
which an error was raised on the exception before re-raising it, so the
CLI can tell an environment problem (missing credential, missing
repository) from a remote-service problem.
"""

from __future__ import annotations


class PrbenchError(Exception):
    """Base class for all prbench errors."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class SetupError(PrbenchError):
    """Package registration or dependency resolution failed."""


class BenchmarkError(PrbenchError):
    """The benchmark command failed or produced no results."""


class MalformedRunError(PrbenchError):
    """A benchmark run lacks the numeric samples the extractor needs."""


class PublishError(PrbenchError):
    """Base class for gist publishing failures."""


class AuthenticationError(PublishError):
    """Credentials are missing or were rejected by the remote service."""


class NotFoundError(PublishError):
    """The gist to update does not exist."""


class RemoteServiceError(PublishError):
    """Any other failed response, connection error or timeout."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.status_code = status_code
