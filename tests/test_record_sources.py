"""
Tests for the record sources behind the editor session.

LocalRecordSource runs against a temporary SQLite store; HttpRecordSource is
exercised with httpx.MockTransport and end-to-end against the ASGI app.
"""

import json

import httpx
import pytest

from cloudcode.auth.service import create_user, issue_tokens
from cloudcode.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    FetchError,
    NotFoundError,
    PersistenceError,
    QuotaExceededError,
    RateLimitExceededError,
    ValidationError,
)
from cloudcode.services.code_editor.models import FileRecord, RecordType
from cloudcode.session import EditorSession, EditorWorkspace, HttpRecordSource, LocalRecordSource
from cloudcode.session.record_source import error_from_response


class TestLocalRecordSource:
    """Test the in-process SQLite source"""

    @pytest.mark.asyncio
    async def test_list_and_get(self, settings, user, project):
        source = LocalRecordSource(settings, user["id"])

        records = await source.list(project["id"])
        index = next(r for r in records if r.name == "index.html")
        fetched = await source.get(index.id)

        assert sorted(r.name for r in records) == ["index.html", "script.js", "styles.css"]
        assert '<script src="script.js">' in fetched.content

    @pytest.mark.asyncio
    async def test_create_update_delete(self, settings, user, project):
        source = LocalRecordSource(settings, user["id"])

        folder = await source.create(project["id"], "src", RecordType.FOLDER)
        created = await source.create(project["id"], "app.js", RecordType.FILE, content="1", parent_path="/src")
        updated = await source.update(created.id, content="2")
        renamed = await source.update(created.id, name="main.js")
        await source.delete(folder.id)

        assert created.parent_id == folder.id
        assert created.path == "/src/app.js"
        assert updated.size == 1
        assert renamed.path == "/src/main.js"
        with pytest.raises(NotFoundError):
            await source.get(created.id)

    @pytest.mark.asyncio
    async def test_duplicate_path_conflicts(self, settings, user, project):
        source = LocalRecordSource(settings, user["id"])

        with pytest.raises(ConflictError):
            await source.create(project["id"], "script.js", RecordType.FILE)

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, settings, db, user, project):
        """Another user's source cannot see or touch the project"""
        intruder = create_user(db, "intruder@example.com", "Intrud3rPass")
        source = LocalRecordSource(settings, intruder["id"])
        any_file = (await LocalRecordSource(settings, user["id"]).list(project["id"]))[0]

        with pytest.raises(NotFoundError):
            await source.list(project["id"])
        with pytest.raises(AuthorizationError):
            await source.get(any_file.id)

    @pytest.mark.asyncio
    async def test_storage_failure_maps_to_fetch_and_persistence_errors(self, settings, tmp_path):
        source = LocalRecordSource(settings, "u1", db_path=tmp_path / "missing" / "nope.db")

        with pytest.raises(FetchError):
            await source.get("f1")
        with pytest.raises(PersistenceError):
            await source.update("f1", content="x")

    @pytest.mark.asyncio
    async def test_drives_a_workspace(self, settings, user, project):
        """Edit and save a starter file through the full session stack"""
        workspace = EditorWorkspace(LocalRecordSource(settings, user["id"]), project["id"])
        await workspace.load()
        node = next(node for node in workspace.tree if node.name == "script.js")

        tab = await workspace.select(node)
        workspace.session.update_content(tab.id, "console.log('saved');")
        await workspace.session.save(tab.id)

        fetched = await workspace.source.get(node.id)
        assert fetched.content == "console.log('saved');"
        assert tab.is_dirty is False


def error_response(status_code, body=None, headers=None):
    return httpx.Response(status_code, json=body or {}, headers=headers)


class TestErrorFromResponse:
    """Test mapping API error bodies back to exceptions"""

    def test_status_mapping(self):
        cases = [
            (error_response(404, {"details": {"resource_type": "File", "id": "f1"}}), NotFoundError),
            (error_response(409, {"message": "exists"}), ConflictError),
            (error_response(400, {"message": "bad name"}), ValidationError),
            (error_response(401, {"message": "expired"}), AuthenticationError),
            (error_response(403, {"error_code": "AUTHORIZATION_ERROR"}), AuthorizationError),
            (error_response(403, {"error_code": "QUOTA_EXCEEDED", "details": {"limit": 100}}), QuotaExceededError),
            (error_response(429, headers={"Retry-After": "12"}), RateLimitExceededError),
            (error_response(500), PersistenceError),
        ]

        for response, expected in cases:
            assert isinstance(error_from_response(response, PersistenceError), expected)

    def test_non_json_body(self):
        response = httpx.Response(502, text="<html>bad gateway</html>")

        error = error_from_response(response, FetchError)

        assert isinstance(error, FetchError)
        assert error.details == {"status_code": 502}

    def test_retry_after_carried(self):
        error = error_from_response(error_response(429, headers={"Retry-After": "12"}), FetchError)
        assert error.details["retry_after_seconds"] == 12

    @pytest.mark.parametrize("value", ["Wed, 21 Oct 2026 07:28:00 GMT", "soon", ""])
    def test_unparseable_retry_after_defaults_to_one(self, value):
        error = error_from_response(error_response(429, headers={"Retry-After": value}), FetchError)

        assert isinstance(error, RateLimitExceededError)
        assert error.details["retry_after_seconds"] == 1


FILE_JSON = {
    "id": "f1",
    "project_id": "p1",
    "name": "a.js",
    "path": "/a.js",
    "type": "FILE",
    "extension": ".js",
    "size": 1,
    "parent_id": None,
}


class TestHttpRecordSourceMocked:
    """Test request shapes and error handling with a mock transport"""

    @pytest.mark.asyncio
    async def test_requests(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.method == "GET" and request.url.path == "/api/v1/files":
                return httpx.Response(200, json={"files": [FILE_JSON]})
            if request.method == "GET":
                return httpx.Response(200, json={"file": {**FILE_JSON, "content": "x"}})
            if request.method == "DELETE":
                return httpx.Response(200, json={"message": "File deleted"})
            return httpx.Response(200, json={"file": FILE_JSON})

        async with HttpRecordSource("http://api.test/", "tok", transport=httpx.MockTransport(handler)) as source:
            records = await source.list("p1")
            fetched = await source.get("f1")
            await source.update("f1", content="y")
            await source.create("p1", "b.js", RecordType.FILE, parent_path="/src")
            await source.delete("f1")

        assert records[0].name == "a.js"
        assert fetched.content == "x"
        assert all(request.headers["Authorization"] == "Bearer tok" for request in seen)
        assert seen[0].url.params["project_id"] == "p1"
        assert json.loads(seen[2].content) == {"content": "y"}
        assert json.loads(seen[3].content) == {
            "project_id": "p1", "name": "b.js", "type": "FILE", "parent_path": "/src",
        }
        assert [request.method for request in seen] == ["GET", "GET", "PATCH", "POST", "DELETE"]

    @pytest.mark.asyncio
    async def test_transport_errors(self):
        """Network failures become FetchError on reads and PersistenceError on writes"""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with HttpRecordSource("http://api.test", "tok", transport=httpx.MockTransport(handler)) as source:
            with pytest.raises(FetchError):
                await source.get("f1")
            with pytest.raises(PersistenceError):
                await source.update("f1", content="x")

    @pytest.mark.asyncio
    async def test_server_errors_mapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(404, json={"details": {"resource_type": "File", "id": "f1"}})
            return httpx.Response(500, json={"message": "boom"})

        async with HttpRecordSource("http://api.test", "tok", transport=httpx.MockTransport(handler)) as source:
            with pytest.raises(NotFoundError):
                await source.get("f1")
            with pytest.raises(PersistenceError):
                await source.update("f1", content="x")

    @pytest.mark.asyncio
    async def test_non_json_success_body(self):
        """A 200 HTML page (e.g. from a proxy) is a typed failure, not a decode error"""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>proxy</html>")

        async with HttpRecordSource("http://api.test", "tok", transport=httpx.MockTransport(handler)) as source:
            with pytest.raises(FetchError) as exc_info:
                await source.get("f1")
            with pytest.raises(PersistenceError):
                await source.update("f1", content="x")

        assert "Invalid JSON" in exc_info.value.details["reason"]

    @pytest.mark.asyncio
    async def test_malformed_payloads(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET" and request.url.path == "/api/v1/files":
                return httpx.Response(200, json={"items": []})
            if request.method == "GET":
                return httpx.Response(200, json=["not", "an", "object"])
            return httpx.Response(200, json={"file": {"id": "f1"}})

        async with HttpRecordSource("http://api.test", "tok", transport=httpx.MockTransport(handler)) as source:
            with pytest.raises(FetchError):
                await source.list("p1")
            with pytest.raises(FetchError):
                await source.get("f1")
            with pytest.raises(PersistenceError):
                await source.update("f1", content="x")

    @pytest.mark.asyncio
    async def test_session_open_reports_fetch_error(self):
        """A bad body surfaces through EditorSession.open_file as FetchError"""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>proxy</html>")

        async with HttpRecordSource("http://api.test", "tok", transport=httpx.MockTransport(handler)) as source:
            session = EditorSession(source)
            with pytest.raises(FetchError):
                await session.open_file(FileRecord.model_validate(FILE_JSON))

        assert session.tabs == []


class TestHttpRecordSourceAgainstApp:
    """End-to-end against the FastAPI app over ASGI"""

    @pytest.mark.asyncio
    async def test_workspace_over_http(self, app, settings, db, user, project):
        tokens = issue_tokens(db, settings, user)
        transport = httpx.ASGITransport(app=app)

        async with HttpRecordSource("http://testserver", tokens["access_token"], transport=transport) as source:
            workspace = EditorWorkspace(source, project["id"])
            await workspace.load()
            await workspace.create(None, "src", RecordType.FOLDER)
            created = await workspace.create("/src", "util.js", RecordType.FILE, content="export {}")

            tab = await workspace.select(created)
            workspace.session.update_content(tab.id, "export const x = 1;")
            await workspace.session.save(tab.id)
            fetched = await source.get(created.id)

            with pytest.raises(ConflictError):
                await workspace.create("/src", "util.js", RecordType.FILE)

        assert fetched.content == "export const x = 1;"
        assert [node.name for node in workspace.tree][0] == "src"
        assert [child.name for child in workspace.tree[0].children] == ["util.js"]
