"""
Storage adapters: table-style queries over MongoDB collections and
path-addressed object storage over GridFS buckets
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError
from gridfs.errors import NoFile

from .errors import StorageError

logger = logging.getLogger(__name__)

COUNTERS_COLLECTION = "counters"


def build_query(filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Equality filters; list, tuple and set values match any member"""
    query: Dict[str, Any] = {}
    for key, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            query[key] = {"$in": list(value)}
        else:
            query[key] = value
    return query


class MongoStore:
    """Row-oriented access to collections (select, insert, update, delete)"""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.db = database

    async def next_id(self, table: str) -> int:
        """Allocate the next auto-increment identity for a collection"""
        counter = await self.db[COUNTERS_COLLECTION].find_one_and_update(
            {"_id": table},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return counter["seq"]

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        fields: Optional[Iterable[str]] = None
    ) -> List[Dict[str, Any]]:
        """Select rows matching the filters"""
        projection: Dict[str, int] = {"_id": 0}
        if fields:
            projection = {"_id": 0, **{name: 1 for name in fields}}
        try:
            cursor = self.db[table].find(build_query(filters), projection)
            if order_by:
                cursor = cursor.sort(order_by, DESCENDING if descending else ASCENDING)
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Failed to select from {table}: {e}")
            raise StorageError(f"Failed to read {table}: {e}") from e

    async def select_one(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        fields: Optional[Iterable[str]] = None
    ) -> Optional[Dict[str, Any]]:
        """First matching row or None"""
        rows = await self.select(table, filters, order_by, descending, limit=1, fields=fields)
        return rows[0] if rows else None

    async def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert rows and return them as stored"""
        try:
            stored = []
            for row in rows:
                document = dict(row)
                if document.get("id") is None:
                    document["id"] = await self.next_id(table)
                document.setdefault("created_at", datetime.now(timezone.utc))
                await self.db[table].insert_one(document)
                document.pop("_id", None)
                stored.append(document)
            logger.info(f"Inserted {len(stored)} row(s) into {table}")
            return stored
        except PyMongoError as e:
            logger.error(f"Failed to insert into {table}: {e}")
            raise StorageError(f"Failed to insert into {table}: {e}") from e

    async def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> int:
        """Update matching rows, returns the number of modified rows"""
        try:
            result = await self.db[table].update_many(build_query(filters), {"$set": values})
            return result.modified_count
        except PyMongoError as e:
            logger.error(f"Failed to update {table}: {e}")
            raise StorageError(f"Failed to update {table}: {e}") from e

    async def delete(self, table: str, filters: Dict[str, Any]) -> int:
        """Delete matching rows, returns the number of deleted rows"""
        try:
            result = await self.db[table].delete_many(build_query(filters))
            return result.deleted_count
        except PyMongoError as e:
            logger.error(f"Failed to delete from {table}: {e}")
            raise StorageError(f"Failed to delete from {table}: {e}") from e


class GridFSObjectStore:
    """Files addressed by (bucket, path); each bucket is a GridFS bucket"""

    def __init__(self, database: AsyncIOMotorDatabase, public_base_url: str):
        self.db = database
        self.public_base_url = public_base_url.rstrip("/")
        self._buckets: Dict[str, AsyncIOMotorGridFSBucket] = {}

    def _bucket(self, name: str) -> AsyncIOMotorGridFSBucket:
        if name not in self._buckets:
            self._buckets[name] = AsyncIOMotorGridFSBucket(self.db, bucket_name=name)
        return self._buckets[name]

    async def _file_ids(self, bucket: str, path: str) -> List[Any]:
        cursor = self._bucket(bucket).find({"filename": path})
        return [grid_out._id async for grid_out in cursor]

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False
    ) -> str:
        """Store bytes at path; an existing path fails unless upsert is set"""
        try:
            existing = await self._file_ids(bucket, path)
            if existing and not upsert:
                raise StorageError(f"The resource already exists: {bucket}/{path}")
            for file_id in existing:
                await self._bucket(bucket).delete(file_id)

            file_id = await self._bucket(bucket).upload_from_stream(
                path,
                content,
                metadata={"contentType": content_type or "application/octet-stream"}
            )
            logger.info(f"File stored in {bucket} at {path} with ID: {file_id}")
            return path
        except PyMongoError as e:
            logger.error(f"Failed to store file {bucket}/{path}: {e}")
            raise StorageError(f"Upload failed: {e}") from e

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{quote(bucket)}/{quote(path)}"

    async def download(self, bucket: str, path: str) -> Optional[bytes]:
        """Read the newest revision stored at path, None if missing"""
        try:
            grid_out = await self._bucket(bucket).open_download_stream_by_name(path)
            return await grid_out.read()
        except NoFile:
            return None
        except PyMongoError as e:
            logger.error(f"Failed to retrieve file {bucket}/{path}: {e}")
            raise StorageError(f"Download failed: {e}") from e

    async def remove(self, bucket: str, paths: List[str]) -> int:
        """Delete every revision stored at the given paths"""
        removed = 0
        try:
            for path in paths:
                for file_id in await self._file_ids(bucket, path):
                    await self._bucket(bucket).delete(file_id)
                    removed += 1
            logger.info(f"Removed {removed} file(s) from {bucket}")
            return removed
        except PyMongoError as e:
            logger.error(f"Failed to remove files from {bucket}: {e}")
            raise StorageError(f"Remove failed: {e}") from e
