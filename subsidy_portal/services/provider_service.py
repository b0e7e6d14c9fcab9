"""
Provider directory: loads provider records and indexes them by identity
"""
import logging
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..config import Settings, settings as default_settings
from ..models.common import Identity
from ..models.provider import AccessProfile, Provider
from ..models.rule import ProviderSnapshot, UNKNOWN_PROVIDER_NAME
from ..utils.single_flight import SingleFlight
from .errors import StorageError
from .normalizer import as_identity, as_optional_string, as_string
from .store import MongoStore

logger = logging.getLogger(__name__)

PROVIDERS_TABLE = "providers"


def as_timestamp(value: Any) -> Any:
    return value if isinstance(value, (datetime, str)) else None


def build_snapshot(provider: Optional[Provider], default_logo: str) -> ProviderSnapshot:
    if provider is None:
        return ProviderSnapshot(agency_name=UNKNOWN_PROVIDER_NAME, logo=default_logo)
    return ProviderSnapshot(
        agency_name=provider.agency_name or UNKNOWN_PROVIDER_NAME,
        logo=provider.logo or default_logo,
        status=provider.status
    )


class ProviderDirectory:
    """Identity-keyed lookup of providers used for rule enrichment and access checks"""

    def __init__(self, store: MongoStore, settings: Settings = default_settings):
        self.store = store
        self.settings = settings
        self._providers: List[Provider] = []
        self._index: Dict[str, Provider] = {}
        self._flight = SingleFlight()
        self.last_error: Optional[str] = None

    @property
    def providers(self) -> Tuple[Provider, ...]:
        return tuple(self._providers)

    @property
    def index(self) -> Mapping[str, Provider]:
        return MappingProxyType(self._index)

    @property
    def loading(self) -> bool:
        return self._flight.any_busy

    @staticmethod
    def index_key(provider_id: Any) -> Optional[str]:
        if provider_id is None:
            return None
        return str(provider_id)

    def decode_provider(self, row: Mapping[str, Any]) -> Provider:
        """Decode a provider row; never raises, the logo falls back to the default"""
        return Provider(
            id=as_identity(row["id"]),
            agency_name=as_string(row.get("agency_name")),
            logo=as_optional_string(row.get("logo")) or self.settings.default_logo,
            status=as_string(row.get("status"), "pending") or "pending",
            is_super_admin=row.get("is_super_admin") is True,
            user_id=as_identity(row.get("user_id")),
            email=as_optional_string(row.get("email")),
            phone=as_optional_string(row.get("phone")),
            address=as_optional_string(row.get("address")),
            created_at=as_timestamp(row.get("created_at")),
        )

    async def load(self) -> List[Provider]:
        """Load all providers; concurrent callers share one fetch"""
        return await self._flight.run(PROVIDERS_TABLE, self._load)

    async def _load(self) -> List[Provider]:
        try:
            rows = await self.store.select(PROVIDERS_TABLE, order_by="created_at", descending=True)
        except StorageError as e:
            logger.error(f"Error fetching providers: {e}")
            self.last_error = e.message
            self._providers = []
            self._index = {}
            return []

        providers = [self.decode_provider(row) for row in rows if row.get("id") is not None]
        self._providers = providers
        self._index = {self.index_key(provider.id): provider for provider in providers}
        self.last_error = None
        logger.info(f"Loaded {len(providers)} providers")
        return list(providers)

    def get(self, provider_id: Any) -> Optional[Provider]:
        """Exact identity lookup against the loaded index"""
        key = self.index_key(provider_id)
        if key is None:
            return None
        return self._index.get(key)

    def snapshot(self, provider_id: Any) -> ProviderSnapshot:
        """Provider fields embedded in rule aggregates, Unknown Provider when absent"""
        return build_snapshot(self.get(provider_id), self.settings.default_logo)

    def _find_by_user(self, user_id: Identity) -> Optional[Provider]:
        key = str(user_id)
        for provider in self._providers:
            if provider.user_id is not None and str(provider.user_id) == key:
                return provider
        return None

    async def get_access_profile(self, user_id: Identity) -> Optional[AccessProfile]:
        """
        Approval status and super-admin flag for the provider account of a user

        Args:
            user_id: Authenticated user identity

        Returns:
            AccessProfile, or None when the user has no provider account
        """
        # Approval may change outside this process, so storage wins over the index
        try:
            row = await self.store.select_one(PROVIDERS_TABLE, {"user_id": user_id})
        except StorageError as e:
            logger.error(f"Error fetching provider for user {user_id}: {e}")
            provider = self._find_by_user(user_id)
        else:
            provider = self.decode_provider(row) if row and row.get("id") is not None else None

        if provider is None:
            return None

        return AccessProfile(
            user_id=user_id,
            provider_id=provider.id,
            status=provider.status,
            is_super_admin=provider.is_super_admin
        )

    async def is_approved_provider(self, user_id: Identity) -> bool:
        profile = await self.get_access_profile(user_id)
        return bool(profile and (profile.is_approved or profile.is_super_admin))

    async def is_super_admin(self, user_id: Identity) -> bool:
        profile = await self.get_access_profile(user_id)
        return bool(profile and profile.is_super_admin)
