"""
Shared pytest fixtures for Cloud Code tests.

Provides:
- Settings pointing at a per-test temporary data directory
- Database fixtures (schema initialized, user + project factories)
- API client fixtures (unauthenticated and authenticated)
- In-memory record source for editor session tests
"""

import sqlite3
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from cloudcode.app_factory import create_app
from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import NotFoundError, PersistenceError
from cloudcode.db import get_sqlite_connection, init_db
from cloudcode.services.code_editor.models import FileRecord, FileWithContent, RecordType

TEST_PASSWORD = "Sup3rSecret!"
TEST_EMAIL = "dev@example.com"


# ============================================================================
# Settings & Database Fixtures
# ============================================================================

@pytest.fixture
def settings(tmp_path: Path) -> CloudCodeSettings:
    """Isolated settings: temp data dir, fixed secrets, generous auth limits."""
    return CloudCodeSettings(
        environment="testing",
        data_dir=tmp_path / "data",
        jwt_secret_key="test-access-secret-0123456789abcdef0123",
        jwt_refresh_secret_key="test-refresh-secret-0123456789abcdef012",
        auth_rate_limit_max_requests=1000,
        rate_limit_max_requests=1000,
        openai_api_key="",
    )


@pytest.fixture
def db(settings: CloudCodeSettings) -> Generator[sqlite3.Connection, None, None]:
    """
    Connection to the test database with the schema in place.

    Yields:
        SQLite connection (closed after the test)
    """
    conn = get_sqlite_connection(settings.database_path)
    init_db(conn)
    yield conn
    conn.close()


@pytest.fixture
def user(db: sqlite3.Connection) -> Dict[str, Any]:
    from cloudcode.auth.service import create_user
    return create_user(db, TEST_EMAIL, TEST_PASSWORD, "Dev")


@pytest.fixture
def project(db: sqlite3.Connection, settings: CloudCodeSettings, user: Dict[str, Any]) -> Dict[str, Any]:
    """A javascript project with the three web starter files."""
    from cloudcode.services.projects.db_projects import create_project
    return create_project(db, settings, user["id"], "Demo")


# ============================================================================
# API Client Fixtures
# ============================================================================

@pytest.fixture
def app(settings: CloudCodeSettings):
    return create_app(settings)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan running (schema is created on startup)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def registered(client: TestClient) -> Dict[str, Any]:
    """
    Register the default user through the API.

    Cookies set by /register are cleared so tests choose their auth explicitly.
    """
    response = client.post("/api/v1/auth/register", json={
        "email": TEST_EMAIL,
        "password": TEST_PASSWORD,
        "name": "Dev",
    })
    assert response.status_code == 201, response.text
    client.cookies.clear()
    return response.json()


@pytest.fixture
def auth_headers(registered: Dict[str, Any]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {registered['access_token']}"}


@pytest.fixture
def welcome_project(client: TestClient, auth_headers: Dict[str, str]) -> Dict[str, Any]:
    response = client.get("/api/v1/projects", headers=auth_headers)
    assert response.status_code == 200
    return response.json()["projects"][0]


@pytest.fixture
def other_headers(client: TestClient, registered: Dict[str, Any]) -> Dict[str, str]:
    """Auth headers of a second account."""
    response = client.post("/api/v1/auth/register", json={"email": "other@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 201, response.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


# ============================================================================
# In-memory record source
# ============================================================================

class FakeRecordSource:
    """
    Dict-backed record source with switchable failures.

    Set fail_get / fail_update to an exception instance to make the next
    calls raise it. Calls are recorded in `calls`.
    """

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.files: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.fail_get: Optional[Exception] = None
        self.fail_update: Optional[Exception] = None
        self.gate = None
        for record in records or []:
            self.add(**record)

    def add(self, id: str, name: str, type: str = "FILE", parent_id: Optional[str] = None,
            content: Optional[str] = None, path: Optional[str] = None) -> Dict[str, Any]:
        record = {
            "id": id,
            "project_id": "p1",
            "name": name,
            "path": path or f"/{name}",
            "type": type,
            "extension": ("." + name.rsplit(".", 1)[1]) if "." in name and type == "FILE" else None,
            "parent_id": parent_id,
            "content": content if type == "FILE" else None,
        }
        self.files[id] = record
        return record

    def record(self, file_id: str) -> FileRecord:
        return FileRecord.model_validate(self.files[file_id])

    async def list(self, project_id: str) -> List[FileRecord]:
        self.calls.append(("list", project_id))
        return [FileRecord.model_validate(record) for record in self.files.values()]

    async def get(self, file_id: str) -> FileWithContent:
        self.calls.append(("get", file_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_get is not None:
            raise self.fail_get
        if file_id not in self.files:
            raise NotFoundError("File", file_id)
        return FileWithContent.model_validate(self.files[file_id])

    async def create(self, project_id: str, name: str, type: RecordType,
                     content: Optional[str] = None, parent_path: Optional[str] = None) -> FileRecord:
        self.calls.append(("create", name))
        parent = next(
            (r for r in self.files.values() if r["path"] == parent_path and r["type"] == "FOLDER"),
            None
        )
        new_id = f"n{len(self.files) + 1}"
        path = f"{parent_path.rstrip('/')}/{name}" if parent_path else f"/{name}"
        record = self.add(new_id, name, RecordType(type).value, parent_id=parent["id"] if parent else None,
                          content=content, path=path)
        return FileRecord.model_validate(record)

    async def update(self, file_id: str, name: Optional[str] = None,
                     content: Optional[str] = None) -> FileRecord:
        self.calls.append(("update", file_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_update is not None:
            raise self.fail_update
        if file_id not in self.files:
            raise NotFoundError("File", file_id)
        record = self.files[file_id]
        if name is not None:
            old_path = record["path"]
            new_path = old_path.rsplit("/", 1)[0] + "/" + name
            record["name"] = name
            record["path"] = new_path
            for other in self.files.values():
                if other["path"].startswith(old_path + "/"):
                    other["path"] = new_path + other["path"][len(old_path):]
        if content is not None:
            record["content"] = content
        return FileRecord.model_validate(record)

    async def delete(self, file_id: str) -> None:
        self.calls.append(("delete", file_id))
        if file_id not in self.files:
            raise PersistenceError("Failed to delete file")
        doomed = {file_id}
        changed = True
        while changed:
            changed = False
            for record in self.files.values():
                if record["parent_id"] in doomed and record["id"] not in doomed:
                    doomed.add(record["id"])
                    changed = True
        for record_id in doomed:
            del self.files[record_id]


@pytest.fixture
def make_source():
    """Factory for record sources with custom contents."""
    return FakeRecordSource


@pytest.fixture
def source() -> FakeRecordSource:
    """src/ (a.js, lib/ (util.js)), b.js, README.md"""
    return FakeRecordSource([
        {"id": "1", "name": "src", "type": "FOLDER"},
        {"id": "2", "name": "a.js", "parent_id": "1", "content": "let a = 1;", "path": "/src/a.js"},
        {"id": "3", "name": "b.js", "content": "let b = 2;"},
        {"id": "4", "name": "lib", "type": "FOLDER", "parent_id": "1", "path": "/src/lib"},
        {"id": "5", "name": "util.js", "parent_id": "4", "content": "x", "path": "/src/lib/util.js"},
        {"id": "6", "name": "README.md", "content": "# Demo"},
    ])
