"""
Record sources for the editor session.

A record source is the session's only view of storage: list a project's
records, fetch one with content, create, update, delete. Two implementations:

- LocalRecordSource: in-process, straight on the SQLite store, scoped to one user
- HttpRecordSource: httpx client against the /api/v1/files endpoints

Both raise the shared exception hierarchy, so the session behaves the same
whichever one it is given.
"""

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Type, Union

import httpx

from cloudcode.config import CloudCodeSettings
from cloudcode.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CloudCodeException,
    ConflictError,
    FetchError,
    NotFoundError,
    PersistenceError,
    QuotaExceededError,
    RateLimitExceededError,
    ValidationError,
)
from cloudcode.db.utils import get_sqlite_connection
from cloudcode.services.code_editor import db_files
from cloudcode.services.code_editor.models import FileRecord, FileWithContent, RecordType
from cloudcode.services.projects.db_projects import get_project_for_user

logger = logging.getLogger(__name__)


class RecordSource(Protocol):
    """Storage collaborator of EditorSession / EditorWorkspace"""

    async def list(self, project_id: str) -> List[FileRecord]:
        ...

    async def get(self, file_id: str) -> FileWithContent:
        ...

    async def create(
        self,
        project_id: str,
        name: str,
        type: RecordType,
        content: Optional[str] = None,
        parent_path: Optional[str] = None,
    ) -> FileRecord:
        ...

    async def update(
        self,
        file_id: str,
        name: Optional[str] = None,
        content: Optional[str] = None,
    ) -> FileRecord:
        ...

    async def delete(self, file_id: str) -> None:
        ...


# ============================================================================
# LOCAL (SQLite)
# ============================================================================

class LocalRecordSource:
    """Record source backed directly by the SQLite store"""

    def __init__(self, settings: CloudCodeSettings, user_id: str, db_path: Optional[Union[str, Path]] = None):
        self.settings = settings
        self.user_id = user_id
        self.db_path = db_path or settings.database_path

    async def _run(self, failure: Type[CloudCodeException], fn: Callable[[sqlite3.Connection], Any]) -> Any:
        def call():
            conn = get_sqlite_connection(self.db_path)
            try:
                return fn(conn)
            finally:
                conn.close()

        try:
            return await asyncio.to_thread(call)
        except sqlite3.Error as e:
            logger.error(f"Record store error: {e}")
            raise failure(details={"reason": str(e)})

    async def list(self, project_id: str) -> List[FileRecord]:
        def op(conn):
            get_project_for_user(conn, project_id, self.user_id)
            return db_files.list_files(conn, project_id)

        rows = await self._run(FetchError, op)
        return [FileRecord.model_validate(row) for row in rows]

    async def get(self, file_id: str) -> FileWithContent:
        row = await self._run(FetchError, lambda conn: db_files.get_file_for_user(conn, file_id, self.user_id))
        return FileWithContent.model_validate(row)

    async def create(
        self,
        project_id: str,
        name: str,
        type: RecordType,
        content: Optional[str] = None,
        parent_path: Optional[str] = None,
    ) -> FileRecord:
        def op(conn):
            get_project_for_user(conn, project_id, self.user_id)
            return db_files.create_file(
                conn, self.settings, project_id, name, type, parent_path=parent_path, content=content
            )

        return FileRecord.model_validate(await self._run(PersistenceError, op))

    async def update(
        self,
        file_id: str,
        name: Optional[str] = None,
        content: Optional[str] = None,
    ) -> FileRecord:
        def op(conn):
            record = db_files.get_file_for_user(conn, file_id, self.user_id)
            return db_files.update_file(conn, self.settings, record, name=name, content=content)

        return FileRecord.model_validate(await self._run(PersistenceError, op))

    async def delete(self, file_id: str) -> None:
        def op(conn):
            db_files.get_file_for_user(conn, file_id, self.user_id)
            db_files.delete_file(conn, file_id)

        await self._run(PersistenceError, op)


# ============================================================================
# HTTP
# ============================================================================

def _retry_after(response: httpx.Response) -> int:
    # Only the delay-seconds form is understood; HTTP dates fall back to 1.
    try:
        return max(int(response.headers.get("Retry-After", "1")), 1)
    except ValueError:
        return 1


def error_from_response(
    response: httpx.Response,
    failure: Type[CloudCodeException],
) -> CloudCodeException:
    """Rebuild the server-side exception from an error response"""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = str(body.get("message") or response.reason_phrase or "Request failed")
    code = body.get("error_code")
    details: Dict[str, Any] = body.get("details") or {}
    status = response.status_code

    if status == 404:
        return NotFoundError(details.get("resource_type", "File"), details.get("id"))
    if status == 409:
        return ConflictError(message, details=details)
    if status == 400:
        return ValidationError(message, details=details)
    if status == 401:
        return AuthenticationError(message, details=details)
    if status == 403:
        if code == "QUOTA_EXCEEDED":
            return QuotaExceededError(message, limit=details.get("limit", 0))
        return AuthorizationError(message, details=details)
    if status == 429:
        return RateLimitExceededError(_retry_after(response))
    return failure(message, details={"status_code": status})


def _parse_file(
    data: Dict[str, Any],
    model: Type[FileRecord],
    failure: Type[CloudCodeException],
) -> FileRecord:
    try:
        return model.model_validate(data["file"])
    except (KeyError, TypeError, ValueError) as e:
        raise failure(details={"reason": f"Malformed file record: {e}"})


class HttpRecordSource:
    """
    Record source speaking to a running Cloud Code API.

    Usage:
        async with HttpRecordSource("http://localhost:8000", token) as source:
            workspace = EditorWorkspace(source, project_id)
            await workspace.load()
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {access_token}"},
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "HttpRecordSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        failure: Type[CloudCodeException],
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise failure(details={"reason": str(e)})

        if response.is_error:
            raise error_from_response(response, failure)
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"{method} {url} returned a non-JSON body")
            raise failure(details={"reason": f"Invalid JSON response: {e}"})
        if not isinstance(data, dict):
            raise failure(details={"reason": "Unexpected response shape"})
        return data

    async def list(self, project_id: str) -> List[FileRecord]:
        data = await self._request(FetchError, "GET", "/api/v1/files", params={"project_id": project_id})
        try:
            return [FileRecord.model_validate(item) for item in data["files"]]
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(details={"reason": f"Malformed file list: {e}"})

    async def get(self, file_id: str) -> FileWithContent:
        data = await self._request(FetchError, "GET", f"/api/v1/files/{file_id}")
        return _parse_file(data, FileWithContent, FetchError)

    async def create(
        self,
        project_id: str,
        name: str,
        type: RecordType,
        content: Optional[str] = None,
        parent_path: Optional[str] = None,
    ) -> FileRecord:
        payload: Dict[str, Any] = {
            "project_id": project_id,
            "name": name,
            "type": RecordType(type).value,
        }
        if content is not None:
            payload["content"] = content
        if parent_path is not None:
            payload["parent_path"] = parent_path

        data = await self._request(PersistenceError, "POST", "/api/v1/files", json=payload)
        return _parse_file(data, FileRecord, PersistenceError)

    async def update(
        self,
        file_id: str,
        name: Optional[str] = None,
        content: Optional[str] = None,
    ) -> FileRecord:
        payload: Dict[str, Any] = {}
        if name is not None:
            payload["name"] = name
        if content is not None:
            payload["content"] = content

        data = await self._request(PersistenceError, "PATCH", f"/api/v1/files/{file_id}", json=payload)
        return _parse_file(data, FileRecord, PersistenceError)

    async def delete(self, file_id: str) -> None:
        await self._request(PersistenceError, "DELETE", f"/api/v1/files/{file_id}")
