"""
User directory: platform users and their display name / avatar
"""
import logging
from typing import Any, List, Mapping, Optional

from ..config import Settings, settings as default_settings
from ..models.common import Identity
from ..models.user import PlatformUser, UserDisplay
from .errors import StorageError
from .normalizer import coerce_identity
from .store import MongoStore

logger = logging.getLogger(__name__)

USERS_TABLE = "users"

NAME_KEYS = ("full_name", "name", "display_name")
AVATAR_KEYS = ("avatar_url", "picture", "avatar")


def decode_user(row: Mapping[str, Any]) -> PlatformUser:
    metadata = row.get("user_metadata")
    return PlatformUser(
        id=row["id"],
        email=row.get("email"),
        role=row.get("role"),
        user_metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        created_at=row.get("created_at"),
    )


def _first_text(metadata: Mapping[str, Any], keys) -> Optional[str]:
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class UserDirectory:
    """Read access to users provided by the authentication collaborator"""

    def __init__(self, store: MongoStore, settings: Settings = default_settings):
        self.store = store
        self.settings = settings

    async def fetch_users(self) -> List[PlatformUser]:
        try:
            rows = await self.store.select(USERS_TABLE)
        except StorageError as e:
            logger.error(f"Error fetching users: {e}")
            return []
        users = [decode_user(row) for row in rows if row.get("id") is not None]
        logger.info(f"Fetched {len(users)} users")
        return users

    async def get_user(self, user_id: Identity) -> Optional[PlatformUser]:
        """Current-user lookup; None when unknown or storage is unavailable"""
        try:
            row = await self.store.select_one(USERS_TABLE, {"id": coerce_identity(user_id)})
        except StorageError as e:
            logger.error(f"Error fetching user {user_id}: {e}")
            return None
        if not row or row.get("id") is None:
            return None
        return decode_user(row)

    def display_for(self, user: PlatformUser) -> UserDisplay:
        """Name from metadata, else the email's local part; avatar from metadata, else the default"""
        name = _first_text(user.user_metadata, NAME_KEYS)
        if not name and user.email:
            name = user.email.split("@", 1)[0]
        avatar = _first_text(user.user_metadata, AVATAR_KEYS)
        return UserDisplay(
            user_id=user.id,
            display_name=name or "User",
            avatar_url=avatar or self.settings.default_avatar,
        )
