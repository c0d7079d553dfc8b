import asyncio
import base64

import httpx
import pytest

from core import github, settings
from wordbook import repository
from wordbook.errors import ConcurrentModificationError, StoreReadError, StoreWriteError
from wordbook.schemas import Entry

WORDBOOK_PATH = "data/words.json"


def test_read_missing_collection_is_empty_create_path(fake_github):
    stored = asyncio.run(repository.read_collection())
    assert stored.entries == []
    assert stored.sha is None


def test_read_existing_collection(fake_github):
    sha = fake_github.seed(WORDBOOK_PATH, [{"name": "apple", "trans": ["n. 苹果"]}])
    stored = asyncio.run(repository.read_collection())
    assert stored.sha == sha
    assert stored.entries == [Entry(name="apple", trans=["n. 苹果"])]


def test_read_failure_is_fatal(fake_github):
    fake_github.get_failures[WORDBOOK_PATH] = 500
    with pytest.raises(StoreReadError):
        asyncio.run(repository.read_collection())


def test_malformed_collection_is_a_read_error(fake_github):
    fake_github.seed(WORDBOOK_PATH, {"not": "a list"})
    with pytest.raises(StoreReadError):
        asyncio.run(repository.read_collection())


def test_write_creates_then_updates(fake_github):
    async def scenario():
        sha = await repository.write_collection([Entry(name="a", trans=["x"])], sha=None)
        return await repository.write_collection([Entry(name="b", trans=["y"])], sha=sha)

    new_sha = asyncio.run(scenario())
    assert fake_github.sha(WORDBOOK_PATH) == new_sha
    assert fake_github.read(WORDBOOK_PATH) == [{"name": "b", "trans": ["y"], "usphone": "", "ukphone": ""}]
    assert fake_github.commits[0]["branch"] == "main"


def test_stale_sha_is_concurrent_modification_and_store_unchanged(fake_github):
    t0 = fake_github.seed(WORDBOOK_PATH, [{"name": "a", "trans": ["x"]}])
    t1 = fake_github.seed(WORDBOOK_PATH, [{"name": "a", "trans": ["x"]}, {"name": "b", "trans": ["y"]}])
    before = fake_github.read(WORDBOOK_PATH)

    with pytest.raises(ConcurrentModificationError):
        asyncio.run(repository.write_collection([Entry(name="c", trans=["z"])], sha=t0))

    assert fake_github.sha(WORDBOOK_PATH) == t1
    assert fake_github.read(WORDBOOK_PATH) == before


def test_create_when_file_appeared_is_concurrent_modification(fake_github):
    fake_github.seed(WORDBOOK_PATH, [])
    with pytest.raises(ConcurrentModificationError):
        asyncio.run(repository.write_collection([Entry(name="c", trans=["z"])], sha=None))


def test_other_write_failures(fake_github):
    fake_github.put_failures[WORDBOOK_PATH] = 500
    with pytest.raises(StoreWriteError):
        asyncio.run(repository.write_collection([], sha=None))


def test_get_file_fetches_blob_for_large_files(monkeypatch):
    def handle(request):
        if "/git/blobs/" in request.url.path:
            return httpx.Response(200, json={"content": base64.b64encode(b"[]").decode(), "encoding": "base64"})
        return httpx.Response(
            200,
            json={"type": "file", "encoding": "none", "content": "", "size": 2_000_000, "sha": "abc"},
        )

    client = httpx.AsyncClient(base_url="https://api.github.test", transport=httpx.MockTransport(handle))
    monkeypatch.setattr(github, "_client", client)
    remote = asyncio.run(github.get_file(settings.wordbook_location(), WORDBOOK_PATH))
    assert remote.content == b"[]"
    assert remote.sha == "abc"


def test_archive_file_creates_then_replaces(fake_github):
    path, sha, created = asyncio.run(repository.archive_file("list.txt", b"apple\n"))
    assert (path, created) == ("upload/list.txt", True)

    path, sha2, created = asyncio.run(repository.archive_file("list.txt", b"banana\n"))
    assert created is False
    assert sha2 != sha
    assert fake_github.files["acme/words/upload/list.txt"][0] == b"banana\n"
    assert fake_github.commits[-1]["message"] == repository.ARCHIVE_COMMIT_MESSAGE


def _serve(monkeypatch, handle):
    client = httpx.AsyncClient(base_url="https://api.github.test", transport=httpx.MockTransport(handle))
    monkeypatch.setattr(github, "_client", client)


def test_non_json_read_body_is_a_read_error(monkeypatch):
    _serve(monkeypatch, lambda request: httpx.Response(200, text="<html>proxy error</html>"))
    with pytest.raises(StoreReadError):
        asyncio.run(repository.read_collection())


def test_list_read_body_is_a_read_error(monkeypatch):
    _serve(monkeypatch, lambda request: httpx.Response(200, json=[{"size": "big"}]))
    with pytest.raises(StoreReadError):
        asyncio.run(repository.read_collection())


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(201, text="<html>truncated"),
        httpx.Response(201, json=["not", "an", "object"]),
        httpx.Response(201, json={"content": None}),
    ],
)
def test_unreadable_write_response_is_a_write_error(monkeypatch, response):
    _serve(monkeypatch, lambda request: response)
    with pytest.raises(StoreWriteError):
        asyncio.run(repository.write_collection([Entry(name="a", trans=["x"])], sha=None))
