"""
Environment-driven settings.

Everything is read lazily (per call) so tests can tweak the environment with
monkeypatch without reloading modules.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_OWNER = "HashCookie"
DEFAULT_REPO = "Update"
DEFAULT_BRANCH = "main"
DEFAULT_WORDBOOK_PATH = "upload/words.json"
DEFAULT_DICTIONARY_PATH_TEMPLATE = "dictionary/dictionary_{letter}.json"
DEFAULT_UPLOAD_DIR = "upload"

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MiB


@dataclass(frozen=True)
class RepoLocation:
    owner: str
    repo: str
    branch: str


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def github_token() -> str:
    return os.environ.get("GITHUB_TOKEN", "").strip()


def github_api_url() -> str:
    return _env_str("GITHUB_API_URL", DEFAULT_GITHUB_API_URL).rstrip("/")


def github_timeout_s() -> float:
    return _env_float("GITHUB_TIMEOUT_S", 30.0)


def wordbook_location() -> RepoLocation:
    return RepoLocation(
        owner=_env_str("WORDBOOK_OWNER", DEFAULT_OWNER),
        repo=_env_str("WORDBOOK_REPO", DEFAULT_REPO),
        branch=_env_str("WORDBOOK_BRANCH", DEFAULT_BRANCH),
    )


def wordbook_path() -> str:
    return _env_str("WORDBOOK_PATH", DEFAULT_WORDBOOK_PATH).strip("/")


def dictionary_location() -> RepoLocation:
    # The dictionary usually lives next to the wordbook.
    fallback = wordbook_location()
    return RepoLocation(
        owner=_env_str("DICTIONARY_OWNER", fallback.owner),
        repo=_env_str("DICTIONARY_REPO", fallback.repo),
        branch=_env_str("DICTIONARY_BRANCH", fallback.branch),
    )


def dictionary_path_template() -> str:
    template = _env_str("DICTIONARY_PATH_TEMPLATE", DEFAULT_DICTIONARY_PATH_TEMPLATE)
    if "{letter}" not in template:
        return DEFAULT_DICTIONARY_PATH_TEMPLATE
    return template.strip("/")


def upload_dir() -> str:
    return _env_str("UPLOAD_DIR", DEFAULT_UPLOAD_DIR).strip("/")


def max_upload_bytes() -> int:
    value = _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    return value if value > 0 else DEFAULT_MAX_UPLOAD_BYTES


def dedup_mode() -> str:
    return _env_str("WORDBOOK_DEDUP_MODE", "name").lower()


def write_retries() -> int:
    return max(0, _env_int("WORDBOOK_WRITE_RETRIES", 0))


def cors_allow_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["http://localhost:5173", "http://127.0.0.1:5173"]


def collation_locale() -> str:
    return os.environ.get("WORDBOOK_COLLATION_LOCALE", "").strip()
