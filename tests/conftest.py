import base64
import hashlib
import json
from urllib.parse import unquote

import httpx
import pytest

from core import github

OWNER = "acme"
REPO = "words"
WORDBOOK_PATH = "data/words.json"


class FakeGitHub:
    """
    In-memory stand-in for the GitHub contents API.

    Files are keyed by "owner/repo/path"; each write gets a fresh sha and a
    write with a stale or missing sha is rejected like GitHub does.
    """

    def __init__(self) -> None:
        self.files: dict[str, tuple[bytes, str]] = {}
        self.get_failures: dict[str, int] = {}
        self.put_failures: dict[str, int] = {}
        self.requests: list[httpx.Request] = []
        self.commits: list[dict] = []
        # Callables run right before the next PUT (simulates another writer).
        self.before_put: list = []
        self._counter = 0

    def _next_sha(self, content: bytes) -> str:
        self._counter += 1
        return hashlib.sha1(str(self._counter).encode() + content).hexdigest()

    def seed(self, path: str, content, *, owner: str = OWNER, repo: str = REPO) -> str:
        if not isinstance(content, (bytes, str)):
            content = json.dumps(content, ensure_ascii=False)
        if isinstance(content, str):
            content = content.encode("utf-8")
        sha = self._next_sha(content)
        self.files[f"{owner}/{repo}/{path}"] = (content, sha)
        return sha

    def read(self, path: str, *, owner: str = OWNER, repo: str = REPO):
        content, _sha = self.files[f"{owner}/{repo}/{path}"]
        return json.loads(content.decode("utf-8"))

    def sha(self, path: str, *, owner: str = OWNER, repo: str = REPO) -> str:
        return self.files[f"{owner}/{repo}/{path}"][1]

    def gets(self, path: str) -> int:
        return sum(
            1
            for r in self.requests
            if r.method == "GET" and unquote(r.url.path).endswith("/contents/" + path)
        )

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = unquote(request.url.path).strip("/").split("/", 4)
        if len(parts) < 5 or parts[0] != "repos" or parts[3] != "contents":
            return httpx.Response(404, json={"message": "Not Found"})

        owner, repo, path = parts[1], parts[2], parts[4]
        key = f"{owner}/{repo}/{path}"

        if request.method == "GET":
            if path in self.get_failures:
                return httpx.Response(self.get_failures[path], json={"message": "boom"})
            if key not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            content, sha = self.files[key]
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "encoding": "base64",
                    "size": len(content),
                    "path": path,
                    "sha": sha,
                    "content": base64.encodebytes(content).decode("ascii"),
                },
            )

        if request.method == "PUT":
            while self.before_put:
                self.before_put.pop(0)(self)
            if path in self.put_failures:
                return httpx.Response(self.put_failures[path], json={"message": "boom"})

            body = json.loads(request.content)
            sent_sha = body.get("sha")
            current = self.files.get(key)
            if current is not None and not sent_sha:
                return httpx.Response(
                    422, json={"message": 'Invalid request.\n\n"sha" wasn\'t supplied.'}
                )
            if current is None and sent_sha:
                return httpx.Response(409, json={"message": "file does not exist"})
            if current is not None and sent_sha != current[1]:
                return httpx.Response(409, json={"message": f"{path} does not match {sent_sha}"})

            content = base64.b64decode(body["content"])
            new_sha = self._next_sha(content)
            self.files[key] = (content, new_sha)
            self.commits.append({"path": path, "message": body["message"], "branch": body.get("branch")})
            return httpx.Response(
                201 if current is None else 200,
                json={"content": {"path": path, "sha": new_sha}, "commit": {"message": body["message"]}},
            )

        return httpx.Response(405, json={"message": "Method Not Allowed"})


@pytest.fixture(autouse=True)
def wordbook_env(monkeypatch):
    monkeypatch.setenv("WORDBOOK_OWNER", OWNER)
    monkeypatch.setenv("WORDBOOK_REPO", REPO)
    monkeypatch.setenv("WORDBOOK_BRANCH", "main")
    monkeypatch.setenv("WORDBOOK_PATH", WORDBOOK_PATH)
    monkeypatch.setenv("DICTIONARY_PATH_TEMPLATE", "dictionary/dictionary_{letter}.json")
    for name in (
        "DICTIONARY_OWNER",
        "DICTIONARY_REPO",
        "DICTIONARY_BRANCH",
        "WORDBOOK_DEDUP_MODE",
        "WORDBOOK_WRITE_RETRIES",
        "MAX_UPLOAD_BYTES",
        "UPLOAD_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_github(monkeypatch):
    fake = FakeGitHub()
    client = httpx.AsyncClient(
        base_url="https://api.github.test",
        transport=httpx.MockTransport(fake.handle),
    )
    monkeypatch.setattr(github, "_client", client)
    return fake
