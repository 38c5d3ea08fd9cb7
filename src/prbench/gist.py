"""Publish benchmark reports to GitHub gists.

Gists are created with ``POST /gists`` or updated with
``PATCH /gists/{id}``. An update replaces files whose name matches a
payload file and adds the rest; files already in the gist are never
deleted. Failed requests are not retried.
"""

from __future__ import annotations

import enum
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests

from prbench import __version__
from prbench.errors import (
    AuthenticationError,
    NotFoundError,
    RemoteServiceError,
)
from prbench.logging import get_logger

log = get_logger("gist")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TOKEN_ENV = "GITHUB_AUTH"
DEFAULT_TIMEOUT = 30.0
_USER_AGENT = f"prbench/{__version__}"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------


class PublishKind(enum.Enum):
    NONE = "none"
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class PublishMode:
    """Whether and how a pipeline run publishes its report."""

    kind: PublishKind
    gist_id: str | None = None

    def __post_init__(self) -> None:
        if self.kind is PublishKind.UPDATE and not self.gist_id:
            raise ValueError("Update mode needs a gist id")
        if self.kind is not PublishKind.UPDATE and self.gist_id is not None:
            raise ValueError(f"{self.kind.value} mode does not take a gist id")

    @classmethod
    def none(cls) -> PublishMode:
        return cls(PublishKind.NONE)

    @classmethod
    def create(cls) -> PublishMode:
        return cls(PublishKind.CREATE)

    @classmethod
    def update(cls, gist_id: str) -> PublishMode:
        return cls(PublishKind.UPDATE, gist_id)

    @classmethod
    def from_gist_url(cls, url: str | None) -> PublishMode:
        """Update mode for a gist URL or bare id, create mode for ``None``."""
        if url is None:
            return cls.create()
        gist_id = parse_gist_id(url)
        if not gist_id:
            raise ValueError(f"Cannot find a gist id in {url!r}")
        return cls.update(gist_id)

    @property
    def enabled(self) -> bool:
        return self.kind is not PublishKind.NONE


@dataclass
class GistPayload:
    """Description, visibility and files of a gist."""

    description: str
    public: bool = True
    files: dict[str, dict[str, str]] = field(default_factory=dict)
    gist_id: str | None = None

    def add_file(self, name: str, content: str) -> None:
        self.files[name] = {"content": content}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON written next to the reports."""
        data: dict[str, Any] = {
            "description": self.description,
            "public": self.public,
            "files": self.files,
        }
        if self.gist_id is not None:
            data["gist_id"] = self.gist_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GistPayload:
        files = data.get("files", {})
        if not isinstance(files, dict):
            raise ValueError("Gist 'files' must be a mapping of file name to content")
        return cls(
            description=str(data.get("description", "")),
            public=bool(data.get("public", True)),
            files=files,
            gist_id=data.get("gist_id"),
        )


@dataclass
class GistHandle:
    """A published gist."""

    id: str
    html_url: str
    files: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_gist_id(url_or_id: str) -> str:
    """Return the id from ``https://gist.github.com/<user>/<id>`` or a bare id."""
    return url_or_id.strip().rstrip("/").split("/")[-1]


def token_from_env(env_var: str = DEFAULT_TOKEN_ENV) -> str:
    """Read the publishing token from the environment.

    Raises:
        AuthenticationError: If the variable is unset or empty.
    """
    token = os.environ.get(env_var, "").strip()
    if not token:
        raise AuthenticationError(
            f"No gist credentials: environment variable {env_var} is not set"
        )
    return token


def _headers(token: str) -> dict[str, str]:
    return {
        "Accept": "application/vnd.github+json",
        "Authorization": f"token {token}",
        "User-Agent": _USER_AGENT,
    }


def _check_response(resp: requests.Response, what: str) -> dict[str, Any]:
    if resp.status_code in (401, 403):
        raise AuthenticationError(
            f"GitHub rejected the credentials ({resp.status_code}) for {what}"
        )
    if resp.status_code == 404:
        raise NotFoundError(f"{what} not found (404)")
    if not 200 <= resp.status_code < 300:
        raise RemoteServiceError(
            f"GitHub returned {resp.status_code} for {what}: {resp.text[:200]}",
            status_code=resp.status_code,
        )
    try:
        data = resp.json()
    except (ValueError, requests.JSONDecodeError) as exc:
        raise RemoteServiceError(f"Invalid JSON response for {what}") from exc
    if not isinstance(data, dict):
        raise RemoteServiceError(f"Unexpected response body for {what}")
    return data


def _request(
    method: str,
    url: str,
    *,
    token: str,
    body: dict[str, Any],
    timeout: float,
    what: str,
) -> dict[str, Any]:
    log.debug("%s %s", method, url)
    try:
        resp = requests.request(method, url, json=body, headers=_headers(token), timeout=timeout)
    except requests.Timeout as exc:
        raise RemoteServiceError(f"Timed out after {timeout}s publishing {what}") from exc
    except requests.ConnectionError as exc:
        raise RemoteServiceError(f"Connection error publishing {what}: {exc}") from exc
    except requests.RequestException as exc:
        raise RemoteServiceError(f"Request error publishing {what}: {exc}") from exc
    return _check_response(resp, what)


def _handle(data: dict[str, Any]) -> GistHandle:
    gist_id = data.get("id")
    html_url = data.get("html_url")
    if not gist_id or not html_url:
        raise RemoteServiceError("GitHub response lacks the gist id or URL")
    return GistHandle(id=str(gist_id), html_url=str(html_url), files=list(data.get("files", {})))


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


def publish(
    payload: GistPayload,
    mode: PublishMode,
    token: str | None,
    *,
    api_url: str = DEFAULT_API_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> GistHandle:
    """Create or update a gist.

    Args:
        payload: Gist description and files. Must carry the mode's gist id
            in update mode and no id in create mode.
        mode: Create or update.
        token: GitHub token with the ``gist`` scope.
        api_url: GitHub API base URL.
        timeout: Request timeout in seconds.

    Returns:
        Handle with the gist id and public URL.

    Raises:
        ValueError: If the payload does not match the mode, has no files,
            or the mode is NONE.
        AuthenticationError: If *token* is missing or rejected.
        NotFoundError: If the gist to update does not exist.
        RemoteServiceError: On any other failure.
    """
    if mode.kind is PublishKind.NONE:
        raise ValueError("Publishing is disabled")
    if mode.kind is PublishKind.CREATE and payload.gist_id is not None:
        raise ValueError("A gist to create must not carry a gist id")
    if mode.kind is PublishKind.UPDATE and payload.gist_id != mode.gist_id:
        raise ValueError(f"Payload gist id {payload.gist_id!r} does not match {mode.gist_id!r}")
    if not payload.files:
        raise ValueError("A gist needs at least one file")
    if not token:
        raise AuthenticationError("No gist credentials supplied")

    body = {"description": payload.description, "files": payload.files}
    base = api_url.rstrip("/")
    if mode.kind is PublishKind.CREATE:
        body["public"] = payload.public
        data = _request(
            "POST",
            f"{base}/gists",
            token=token,
            body=body,
            timeout=timeout,
            what="new gist",
        )
        handle = _handle(data)
        log.info("Created gist %s", handle.html_url)
    else:
        data = _request(
            "PATCH",
            f"{base}/gists/{mode.gist_id}",
            token=token,
            body=body,
            timeout=timeout,
            what=f"gist {mode.gist_id}",
        )
        handle = _handle(data)
        log.info("Updated gist %s", handle.html_url)
    return handle


def load_payload(path: Path) -> GistPayload:
    """Read a gist payload written by :func:`prbench.persist.write_payload`."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Gist payload in {path} must be a JSON object")
    return GistPayload.from_dict(data)


def create_gist_from_json_file(path: Path, token: str | None, **kwargs: Any) -> GistHandle:
    """Create a new gist from a payload file. Any gist id in the file is ignored."""
    payload = load_payload(path)
    payload.gist_id = None
    return publish(payload, PublishMode.create(), token, **kwargs)


def update_gist_from_json_file(
    gist_id: str, path: Path, token: str | None, **kwargs: Any
) -> GistHandle:
    """Update gist *gist_id* with the files of a payload file."""
    payload = load_payload(path)
    payload.gist_id = gist_id
    return publish(payload, PublishMode.update(gist_id), token, **kwargs)
