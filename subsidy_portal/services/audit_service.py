"""
Audit service: best-effort record of user actions
"""
import logging
from typing import Literal, Optional

from .errors import StorageError
from .store import MongoStore

logger = logging.getLogger(__name__)

LOGS_TABLE = "logs"

UserRole = Literal["CLIENT", "ADMIN", "SUPER_ADMIN", "SYSTEM"]


class AuditService:
    """Writes role/action/details entries to the logs collection"""

    def __init__(self, store: MongoStore):
        self.store = store

    async def log_action(self, role: UserRole, action: str, details: str = "") -> Optional[dict]:
        """
        Record an action; failures are logged and never raised

        Returns:
            The stored entry, or None if it could not be written
        """
        try:
            rows = await self.store.insert(LOGS_TABLE, [{"role": role, "action": action, "details": details}])
        except StorageError as e:
            logger.error(f"Log failed: {e.message}")
            return None
        logger.info(f"[{role}] {action}{' | ' + details if details else ''}")
        return rows[0] if rows else None
