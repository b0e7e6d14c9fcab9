"""
Document attachment pipeline: upload, record, list and delete client documents
"""
import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from ..config import Settings, settings as default_settings
from ..models.common import Identity
from ..models.submission import ClientDocument, STORAGE_PATH_KEY, UploadedFile
from ..utils.single_flight import InFlightCounter, SingleFlight
from .errors import DocumentError, InvalidInputError, StorageError
from .normalizer import coerce_identity
from .store import GridFSObjectStore, MongoStore

logger = logging.getLogger(__name__)

DOCUMENTS_TABLE = "client_documents"
DEFAULT_EXTENSION = "bin"


def split_extension(filename: str) -> Tuple[str, str]:
    """Base name and last dot segment; extension defaults to bin"""
    if "." not in filename:
        return filename, DEFAULT_EXTENSION
    base, extension = filename.rsplit(".", 1)
    return base, extension


def sanitize_segment(value: str) -> str:
    """Whitespace becomes underscore, anything outside [A-Za-z0-9._-] is dropped"""
    value = re.sub(r"\s+", "_", value)
    return re.sub(r"[^A-Za-z0-9._-]", "", value)


def build_storage_path(
    directory: str,
    submission_id: Identity,
    filename: str,
    timestamp_ms: Optional[int] = None,
    token: Optional[str] = None
) -> str:
    """
    Collision-resistant object path for an upload

    Args:
        directory: Top-level directory inside the bucket
        submission_id: Owning submission
        filename: Original file name
        timestamp_ms: Upload time in milliseconds (defaults to now)
        token: Random token (defaults to a fresh one)

    Returns:
        "<directory>/<submission>/<timestamp>-<token>-<safe name>.<extension>"
    """
    base, extension = split_extension(filename)
    safe_name = sanitize_segment(base) or "file"
    safe_extension = sanitize_segment(extension) or DEFAULT_EXTENSION
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    if token is None:
        token = uuid4().hex[:12]
    object_name = f"{timestamp_ms}-{token}-{safe_name}.{safe_extension}"
    return f"{directory.strip('/')}/{submission_id}/{object_name}"


def merge_extracted_data(extracted_data: Any, storage_path: str) -> Dict[str, Any]:
    merged = dict(extracted_data) if isinstance(extracted_data, dict) else {}
    merged[STORAGE_PATH_KEY] = storage_path
    return merged


class DocumentService:
    """Uploads documents for a submission and keeps a newest-first local cache"""

    def __init__(
        self,
        store: MongoStore,
        object_store: GridFSObjectStore,
        settings: Settings = default_settings
    ):
        self.store = store
        self.object_store = object_store
        self.settings = settings
        self._documents: List[ClientDocument] = []
        self._uploads = InFlightCounter()
        self._flight = SingleFlight()
        self._latest_key: Optional[str] = None

    @property
    def documents(self) -> Tuple[ClientDocument, ...]:
        return tuple(self._documents)

    @property
    def uploading(self) -> bool:
        return self._uploads.active

    @property
    def docs_loading(self) -> bool:
        return self._flight.any_busy

    def _validate(self, submission_id: Optional[Identity], file: Optional[UploadedFile]):
        if submission_id is None or submission_id == "":
            raise InvalidInputError("Missing submissionId")
        if file is None or not file.filename:
            raise InvalidInputError("Missing file")
        if len(file.content) > self.settings.max_file_size:
            raise InvalidInputError(
                f"File too large: {len(file.content)} bytes exceeds {self.settings.max_file_size}"
            )

    async def add_document(
        self,
        submission_id: Optional[Identity],
        doc_type: str,
        file: Optional[UploadedFile],
        extracted_data: Any = None,
        *,
        bucket: Optional[str] = None,
        directory: Optional[str] = None
    ) -> str:
        """
        Upload a file, record it against the submission and cache the record

        Raises:
            InvalidInputError: submission or file missing, before any I/O
            DocumentError: upload, URL resolution or record insert failed
        """
        with self._uploads:
            self._validate(submission_id, file)
            bucket = (bucket or self.settings.default_bucket).strip()
            directory = directory or self.settings.default_upload_directory
            storage_path = build_storage_path(directory, submission_id, file.filename)

            logger.debug(f"[storage] uploading to {bucket} {storage_path}")
            try:
                await self.object_store.upload(
                    bucket, storage_path, file.content, content_type=file.content_type, upsert=False
                )
            except StorageError as e:
                logger.error(f"[storage] upload failed: {e}")
                raise DocumentError(e.message or "Upload failed") from e

            payload = {
                "submission_id": coerce_identity(submission_id),
                "doc_type": doc_type,
                "file_url": self.object_store.public_url(bucket, storage_path),
                "extracted_data": merge_extracted_data(extracted_data, storage_path),
                "verified": False,
            }
            try:
                rows = await self.store.insert(DOCUMENTS_TABLE, [payload])
            except StorageError as e:
                await self._discard_upload(bucket, storage_path)
                raise DocumentError(f"Failed to record document: {e.message}") from e

            document = ClientDocument(**rows[0])
            self._documents.insert(0, document)
            logger.info(f"Document {document.id} attached to submission {submission_id}")
            return str(document.id)

    async def _discard_upload(self, bucket: str, storage_path: str):
        """Remove an uploaded object whose record could not be written"""
        try:
            await self.object_store.remove(bucket, [storage_path])
        except StorageError as e:
            logger.error(f"[storage] could not remove orphaned upload {bucket}/{storage_path}: {e}")

    async def fetch_documents(self, submission_id: Identity) -> List[ClientDocument]:
        """
        Load the submission's documents, newest first

        The cache holds the documents of the most recently requested
        submission; an older load finishing later does not replace it.
        """
        key = str(submission_id)
        self._latest_key = key
        return await self._flight.run(key, lambda: self._fetch(key, submission_id))

    async def _fetch(self, key: str, submission_id: Identity) -> List[ClientDocument]:
        try:
            rows = await self.store.select(
                DOCUMENTS_TABLE,
                {"submission_id": coerce_identity(submission_id)},
                order_by="created_at",
                descending=True
            )
        except StorageError as e:
            raise DocumentError(f"Failed to fetch documents: {e.message}") from e
        documents = [ClientDocument(**row) for row in rows]
        if key == self._latest_key:
            self._documents = documents
        return list(documents)

    def _cached(self, document_id: Identity) -> Optional[ClientDocument]:
        key = str(document_id)
        for document in self._documents:
            if str(document.id) == key:
                return document
        return None

    async def get_document(self, document_id: Identity) -> Optional[ClientDocument]:
        """Cached document, else the stored record; None if it does not exist"""
        cached = self._cached(document_id)
        if cached is not None:
            return cached
        return await self._load_document(document_id)

    async def _load_document(self, document_id: Identity) -> Optional[ClientDocument]:
        try:
            row = await self.store.select_one(DOCUMENTS_TABLE, {"id": coerce_identity(document_id)})
        except StorageError as e:
            raise DocumentError(f"Failed to read document: {e.message}") from e
        return ClientDocument(**row) if row else None

    async def delete_document(
        self,
        document: Union[ClientDocument, Identity],
        bucket: Optional[str] = None,
        storage_path: Optional[str] = None
    ):
        """
        Delete the stored object (when its path is known), then the record,
        then evict the cached entry
        """
        if isinstance(document, ClientDocument):
            known = document
            document_id = document.id
        else:
            document_id = document
            known = self._cached(document_id)
        if not storage_path and known is None:
            known = await self._load_document(document_id)
        if not storage_path and known is not None:
            storage_path = known.storage_path
        bucket = (bucket or self.settings.default_bucket).strip()

        if storage_path:
            try:
                await self.object_store.remove(bucket, [storage_path])
            except StorageError as e:
                raise DocumentError(f"Failed to remove stored file: {e.message}") from e
        else:
            logger.warning(f"Deleting document {document_id} without a storage path; stored file is left in place")

        try:
            await self.store.delete(DOCUMENTS_TABLE, {"id": coerce_identity(document_id)})
        except StorageError as e:
            raise DocumentError(f"Failed to delete document: {e.message}") from e

        key = str(document_id)
        self._documents = [cached for cached in self._documents if str(cached.id) != key]
        logger.info(f"Document {document_id} deleted")
