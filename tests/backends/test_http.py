"""Tests for the HTTP backend."""

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest

from folio_sync.backends.http import HttpBackend
from folio_sync.errors import BackendError, MalformedResponseError


class Recorder:
    """Captures requests and answers with a canned response."""

    def __init__(self, status: int = 200, body: object = None) -> None:
        self.status = status
        self.body = {"success": True} if body is None else body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_backend(recorder: Recorder) -> Callable[..., HttpBackend]:
    def factory(handler: Callable[[httpx.Request], httpx.Response] | None = None) -> HttpBackend:
        transport = httpx.MockTransport(handler or recorder)
        return HttpBackend(
            "http://folio.test/",
            token="secret",
            transport=transport,
            beacon_transport=transport,
        )

    return factory


def _run(coro: object) -> object:
    return asyncio.run(coro)


def test_base_url_required() -> None:
    """Test that an empty base URL is rejected."""
    with pytest.raises(ValueError, match="base URL required"):
        HttpBackend("")


def test_list_projects(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test fetching and parsing projects."""
    recorder.body = [{"id": "p-1", "title": "Demo", "notes": [], "commands": [], "links": []}]
    backend = make_backend()

    projects = _run(backend.list_projects())

    assert [p.title for p in projects] == ["Demo"]
    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/api/projects"
    assert request.headers["Authorization"] == "Bearer secret"


def test_list_projects_rejects_non_list(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that a non-list body is a malformed response."""
    recorder.body = {"projects": []}
    with pytest.raises(MalformedResponseError):
        _run(make_backend().list_projects())


def test_create_child_posts_client_id(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that child creation posts to the project's collection with the client id."""
    backend = make_backend()
    _run(backend.create("note", "p-1", {"id": "n-1", "tag": "Note", "content": ""}))

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/projects/p-1/notes"
    assert recorder.last_json["id"] == "n-1"


def test_create_project(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that projects are created on the top-level collection."""
    _run(make_backend().create("project", None, {"id": "p-9", "title": "New"}))
    assert recorder.requests[0].url.path == "/api/projects"


def test_update_child_sends_entity_key(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that child updates carry the <kind>_id key in the body."""
    _run(make_backend().update("command", "c-1", "p-1", {"command": "ls"}))

    request = recorder.requests[0]
    assert request.method == "PATCH"
    assert request.url.path == "/api/projects/p-1/commands"
    assert recorder.last_json == {"command_id": "c-1", "command": "ls"}


def test_update_project(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that project updates patch the project resource."""
    _run(make_backend().update("project", "p-1", "p-1", {"sort_order": 2}))

    assert recorder.requests[0].url.path == "/api/projects/p-1"
    assert recorder.last_json == {"sort_order": 2}


def test_delete_child_uses_query_param(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that child deletes pass the id as a query parameter."""
    _run(make_backend().delete("link", "l-1", "p-1"))

    request = recorder.requests[0]
    assert request.method == "DELETE"
    assert request.url.path == "/api/projects/p-1/links"
    assert request.url.params["link_id"] == "l-1"


def test_error_status_raises_backend_error(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that a non-success status surfaces the server's error message."""
    recorder.status = 500
    recorder.body = {"error": "permission denied"}

    with pytest.raises(BackendError, match="permission denied") as exc_info:
        _run(make_backend().update("note", "n-1", "p-1", {"content": "x"}))
    assert exc_info.value.status_code == 500


def test_network_error_raises_backend_error(make_backend: Callable[..., HttpBackend]) -> None:
    """Test that transport failures become BackendError."""

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendError, match="Network error"):
        _run(make_backend(unreachable).delete("note", "n-1", "p-1"))


def test_invalid_json_is_malformed(make_backend: Callable[..., HttpBackend]) -> None:
    """Test that a success status with a non-JSON body is malformed."""

    def garbage(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>")

    with pytest.raises(MalformedResponseError):
        _run(make_backend(garbage).create("note", "p-1", {"id": "n-1"}))


def test_child_call_requires_project_id(make_backend: Callable[..., HttpBackend]) -> None:
    """Test that child calls without a project id are refused."""
    with pytest.raises(ValueError, match="project id is required"):
        _run(make_backend().create("note", None, {"id": "n-1"}))


def test_beacon_patches_like_update(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that beacons send the same PATCH as a regular update, without a loop."""
    make_backend().send_beacon("note", "n-1", "p-1", {"content": "abc"})

    request = recorder.requests[0]
    assert request.method == "PATCH"
    assert request.url.path == "/api/projects/p-1/notes"
    assert recorder.last_json == {"note_id": "n-1", "content": "abc"}


def test_project_beacon(make_backend: Callable[..., HttpBackend], recorder: Recorder) -> None:
    """Test that project beacons patch the project resource with the fields only."""
    make_backend().send_beacon("project", "p-1", "p-1", {"title": "x"})

    request = recorder.requests[0]
    assert request.method == "PATCH"
    assert request.url.path == "/api/projects/p-1"
    assert recorder.last_json == {"title": "x"}


def test_beacon_network_error(make_backend: Callable[..., HttpBackend]) -> None:
    """Test that a failing beacon raises BackendError for the caller to log."""

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendError, match="Beacon failed"):
        make_backend(unreachable).send_beacon("note", "n-1", "p-1", {"content": "abc"})
