"""
GitHub contents API helpers using httpx.

This module owns the shared `httpx.AsyncClient`. FastAPI creates it on startup
and closes it on shutdown (see `api/main.py`).

Used endpoints:
- GET /repos/{owner}/{repo}/contents/{path}?ref=...  -> {"content": b64, "sha": ...}
- PUT /repos/{owner}/{repo}/contents/{path}          -> {"content": {"sha": ...}, "commit": {...}}
- GET /repos/{owner}/{repo}/git/blobs/{sha}          -> files over 1 MB
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from . import settings

_client: httpx.AsyncClient | None = None


# GitHub failures are explicit and separable from other runtime errors.
class GitHubError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubNotFound(GitHubError):
    pass


class GitHubConflict(GitHubError):
    """
    The sha sent with a write no longer matches the file on the branch.
    """


@dataclass(frozen=True)
class RemoteFile:
    path: str
    content: bytes
    sha: str


def _headers() -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    token = settings.github_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def init_client(*, transport: httpx.AsyncBaseTransport | None = None) -> None:
    global _client
    if _client is not None:
        return None
    _client = httpx.AsyncClient(
        base_url=settings.github_api_url(),
        headers=_headers(),
        timeout=settings.github_timeout_s(),
        transport=transport,
    )


async def close_client() -> None:
    global _client
    if _client is None:
        return None
    await _client.aclose()
    _client = None


def client() -> httpx.AsyncClient:
    if _client is None:
        raise RuntimeError("GitHub client is not initialized. Call init_client() on startup.")
    return _client


def _contents_url(location: settings.RepoLocation, path: str) -> str:
    return f"/repos/{location.owner}/{location.repo}/contents/{quote(path.strip('/'))}"


def _snippet(resp: httpx.Response) -> str:
    # Avoid dumping huge bodies; include a small snippet.
    return resp.text[:300]


def _json_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise GitHubError(f"GitHub returned a non-JSON body: {_snippet(resp)}", status_code=resp.status_code) from e


def _decode_b64(raw: str) -> bytes:
    try:
        return base64.b64decode(raw or "", validate=False)
    except (binascii.Error, ValueError) as e:
        raise GitHubError("GitHub returned undecodable base64 content.") from e


async def _fetch_blob(location: settings.RepoLocation, sha: str) -> bytes:
    resp = await client().get(f"/repos/{location.owner}/{location.repo}/git/blobs/{sha}")
    if resp.status_code != 200:
        raise GitHubError(
            f"GitHub blob request failed: {resp.status_code} {_snippet(resp)}",
            status_code=resp.status_code,
        )
    data = _json_body(resp)
    if not isinstance(data, dict):
        raise GitHubError("GitHub blob response is not an object.")
    return _decode_b64(str(data.get("content") or ""))


async def get_file(location: settings.RepoLocation, path: str) -> RemoteFile:
    """
    Read a file and its blob sha from `location`.

    Raises `GitHubNotFound` on 404 and `GitHubError` for everything else.
    """
    try:
        resp = await client().get(_contents_url(location, path), params={"ref": location.branch})
    except httpx.HTTPError as e:
        raise GitHubError(f"GitHub request failed: {e}") from e

    if resp.status_code == 404:
        raise GitHubNotFound(f"{path} not found in {location.owner}/{location.repo}", status_code=404)
    if resp.status_code != 200:
        raise GitHubError(
            f"GitHub contents request failed: {resp.status_code} {_snippet(resp)}",
            status_code=resp.status_code,
        )

    data = _json_body(resp)
    if not isinstance(data, dict) or data.get("type", "file") != "file":
        raise GitHubError(f"{path} is not a file.")

    sha = str(data.get("sha") or "")
    if not sha:
        raise GitHubError("GitHub returned a file without a sha.")

    # Files over 1 MB come back with an empty body and encoding "none".
    if data.get("encoding") == "none" or (not data.get("content") and _size(data) > 0):
        try:
            content = await _fetch_blob(location, sha)
        except httpx.HTTPError as e:
            raise GitHubError(f"GitHub blob request failed: {e}") from e
    else:
        content = _decode_b64(str(data.get("content") or ""))

    return RemoteFile(path=path, content=content, sha=sha)


def _size(data: dict[str, Any]) -> int:
    try:
        return int(data.get("size") or 0)
    except (TypeError, ValueError):
        return 0


def _is_sha_complaint(resp: httpx.Response) -> bool:
    return resp.status_code == 422 and "sha" in resp.text.lower()


async def put_file(
    location: settings.RepoLocation,
    path: str,
    *,
    content: bytes,
    message: str,
    sha: str | None = None,
) -> str:
    """
    Create (`sha=None`) or update a file. Returns the new blob sha.

    A stale or missing sha raises `GitHubConflict`.
    """
    payload: dict[str, Any] = {
        "message": message,
        "content": base64.b64encode(content).decode("ascii"),
        "branch": location.branch,
    }
    if sha:
        payload["sha"] = sha

    try:
        resp = await client().put(_contents_url(location, path), json=payload)
    except httpx.HTTPError as e:
        raise GitHubError(f"GitHub request failed: {e}") from e

    if resp.status_code == 409 or _is_sha_complaint(resp):
        raise GitHubConflict(
            f"{path} changed on {location.branch} since it was read.",
            status_code=resp.status_code,
        )
    if resp.status_code not in (200, 201):
        raise GitHubError(
            f"GitHub write failed: {resp.status_code} {_snippet(resp)}",
            status_code=resp.status_code,
        )

    data = _json_body(resp)
    written = data.get("content") if isinstance(data, dict) else None
    new_sha = written.get("sha") if isinstance(written, dict) else None
    if not new_sha:
        raise GitHubError("GitHub write returned no content sha.")
    return str(new_sha)
