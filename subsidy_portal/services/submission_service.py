"""
Client submission workflow: at most one pending submission per (client, program)
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..models.common import Identity
from ..models.submission import ClientSubmission
from .errors import StorageError, SubmissionError
from .normalizer import coerce_identity
from .store import MongoStore

logger = logging.getLogger(__name__)

SUBMISSIONS_TABLE = "client_submissions"
PENDING = "pending"


class SubmissionService:
    """
    Creates or reuses pending submissions.

    Deduplication is best-effort: creates are serialized within this
    instance, but nothing at the storage layer stops another process from
    inserting a second pending row for the same pair.
    """

    def __init__(self, store: MongoStore):
        self.store = store
        self._create_lock = asyncio.Lock()

    @property
    def creating(self) -> bool:
        return self._create_lock.locked()

    def _pair_filter(self, client_id: Identity, program_id: Identity) -> Dict[str, Any]:
        return {
            "client_id": coerce_identity(client_id),
            "program_id": coerce_identity(program_id),
        }

    async def find_pending_submission(self, client_id: Identity, program_id: Identity) -> Optional[str]:
        """
        Identity of the newest pending submission for the pair

        Returns:
            Submission id as a string, or None when no pending row exists
        """
        filters = {**self._pair_filter(client_id, program_id), "status": PENDING}
        try:
            row = await self.store.select_one(
                SUBMISSIONS_TABLE, filters, order_by="created_at", descending=True, fields=["id", "status"]
            )
        except StorageError as e:
            logger.warning(f"Pending submission lookup failed for client {client_id}, program {program_id}: {e}")
            return None
        if not row or row.get("status") != PENDING or row.get("id") is None:
            return None
        return str(row["id"])

    async def _insert_pending(self, client_id: Identity, program_id: Identity) -> str:
        payload = {**self._pair_filter(client_id, program_id), "status": PENDING}
        try:
            rows = await self.store.insert(SUBMISSIONS_TABLE, [payload])
        except StorageError as e:
            raise SubmissionError(f"Failed to create submission: {e.message}") from e
        if not rows or rows[0].get("id") is None:
            raise SubmissionError("Failed to create submission: no row returned")
        submission_id = str(rows[0]["id"])
        logger.info(f"Submission {submission_id} created for client {client_id}, program {program_id}")
        return submission_id

    async def create_submission(self, client_id: Identity, program_id: Identity) -> str:
        """Insert a new pending submission and return its identity"""
        async with self._create_lock:
            return await self._insert_pending(client_id, program_id)

    async def ensure_pending_submission(self, client_id: Identity, program_id: Identity) -> Tuple[str, bool]:
        """
        Reuse the pending submission for the pair, creating one if none exists

        Returns:
            (submission id, whether it was created by this call)
        """
        async with self._create_lock:
            existing = await self.find_pending_submission(client_id, program_id)
            if existing is not None:
                return existing, False
            return await self._insert_pending(client_id, program_id), True

    async def get_submission(self, submission_id: Identity) -> Optional[ClientSubmission]:
        try:
            row = await self.store.select_one(SUBMISSIONS_TABLE, {"id": coerce_identity(submission_id)})
        except StorageError as e:
            logger.error(f"Failed to get submission {submission_id}: {e}")
            return None
        return ClientSubmission(**row) if row else None

    async def fetch_client_submissions(self, client_id: Identity) -> List[ClientSubmission]:
        """All submissions of a client, newest first"""
        try:
            rows = await self.store.select(
                SUBMISSIONS_TABLE,
                {"client_id": coerce_identity(client_id)},
                order_by="created_at",
                descending=True
            )
        except StorageError as e:
            logger.error(f"Failed to fetch submissions for client {client_id}: {e}")
            return []
        return [ClientSubmission(**row) for row in rows]
