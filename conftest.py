"""Pytest configuration and shared fixtures."""
import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient

from subsidy_portal.config import Settings
from subsidy_portal.dependencies import Services
from subsidy_portal.main import create_app
from subsidy_portal.services.errors import StorageError

FAKE_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    for key, expected in (filters or {}).items():
        if isinstance(expected, (list, tuple, set)):
            if row.get(key) not in expected:
                return False
        elif row.get(key) != expected:
            return False
    return True


class FakeStore:
    """In-memory stand-in for MongoStore with call recording and failure injection"""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.calls: List[tuple] = []
        self.failures = set()
        self.holds: List[tuple] = []
        self._counters: Dict[str, int] = {}
        self._clock = 0

    def fail_on(self, operation: str, table: Optional[str] = None):
        self.failures.add((operation, table))

    def hold(self, table: str, filters: Dict[str, Any]) -> asyncio.Event:
        """Block selects on table with exactly these filters until the event is set"""
        release = asyncio.Event()
        self.holds.append((table, filters, release))
        return release

    def calls_to(self, operation: str, table: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation and call[1] == table)

    async def _enter(self, operation: str, table: str, filters=None):
        self.calls.append((operation, table, copy.deepcopy(filters)))
        await asyncio.sleep(0)
        if (operation, table) in self.failures or (operation, None) in self.failures:
            raise StorageError(f"{operation} on {table} failed")

    async def next_id(self, table: str) -> int:
        existing = [row["id"] for row in self.tables.get(table, []) if isinstance(row.get("id"), int)]
        current = max([self._counters.get(table, 0), *existing])
        self._counters[table] = current + 1
        return current + 1

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        fields: Optional[Iterable[str]] = None
    ) -> List[Dict[str, Any]]:
        await self._enter("select", table, filters)
        for held_table, held_filters, release in self.holds:
            if held_table == table and held_filters == (filters or {}):
                await release.wait()
        rows = [row for row in self.tables.get(table, []) if _matches(row, filters)]
        if order_by:
            rows = sorted(
                rows,
                key=lambda row: (row.get(order_by) is not None, str(row.get(order_by) or "")),
                reverse=descending
            )
        if limit:
            rows = rows[:limit]
        if fields:
            names = list(fields)
            rows = [{name: row[name] for name in names if name in row} for row in rows]
        return copy.deepcopy(rows)

    async def select_one(self, table, filters=None, order_by=None, descending=False, fields=None):
        rows = await self.select(table, filters, order_by, descending, limit=1, fields=fields)
        return rows[0] if rows else None

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        await self._enter("insert", table)
        stored = []
        for row in rows:
            document = copy.deepcopy(row)
            if document.get("id") is None:
                document["id"] = await self.next_id(table)
            self._clock += 1
            document.setdefault("created_at", (FAKE_EPOCH + timedelta(seconds=self._clock)).isoformat())
            self.tables.setdefault(table, []).append(document)
            stored.append(copy.deepcopy(document))
        return stored

    async def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> int:
        await self._enter("update", table, filters)
        modified = 0
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(copy.deepcopy(values))
                modified += 1
        return modified

    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        await self._enter("delete", table, filters)
        kept = [row for row in self.tables.get(table, []) if not _matches(row, filters)]
        deleted = len(self.tables.get(table, [])) - len(kept)
        self.tables[table] = kept
        return deleted


class FakeObjectStore:
    """In-memory stand-in for GridFSObjectStore"""

    def __init__(self, public_base_url: str = "http://files.test/public"):
        self.public_base_url = public_base_url
        self.objects: Dict[tuple, bytes] = {}
        self.calls: List[tuple] = []
        self.failures = set()

    def fail_on(self, operation: str):
        self.failures.add(operation)

    async def _enter(self, operation: str, bucket: str, detail: Any = None):
        self.calls.append((operation, bucket, detail))
        await asyncio.sleep(0)
        if operation in self.failures:
            raise StorageError(f"{operation} failed")

    async def upload(self, bucket, path, content, content_type=None, upsert=False) -> str:
        await self._enter("upload", bucket, path)
        if (bucket, path) in self.objects and not upsert:
            raise StorageError(f"The resource already exists: {bucket}/{path}")
        self.objects[(bucket, path)] = content
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{path}"

    async def download(self, bucket: str, path: str) -> Optional[bytes]:
        await self._enter("download", bucket, path)
        return self.objects.get((bucket, path))

    async def remove(self, bucket: str, paths: List[str]) -> int:
        await self._enter("remove", bucket, list(paths))
        removed = 0
        for path in paths:
            if self.objects.pop((bucket, path), None) is not None:
                removed += 1
        return removed


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the local environment."""
    return Settings(
        mongodb_url="mongodb://localhost:27017",
        mongodb_db_name="subsidy_portal_test",
        public_storage_base_url="http://files.test/public",
        default_bucket="client-submissions",
        default_upload_directory="uploads",
        max_file_size=1024,
        default_logo="/assets/img/logo/defaultlogo.jpg",
        default_avatar="/assets/img/avatar/default.png",
        cors_origins="http://localhost:5173",
        log_level="WARNING",
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def services(store, object_store, settings) -> Services:
    return Services(store, object_store, settings)


@pytest.fixture
def test_client(services, settings) -> TestClient:
    """FastAPI test client wired to the in-memory stores.

    The lifespan is not entered, so no MongoDB connection is opened.
    """
    app = create_app(settings)
    app.state.services = services
    return TestClient(app)
