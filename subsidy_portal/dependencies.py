"""
Composition root and FastAPI dependencies
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from .config import Settings
from .models.provider import AccessProfile
from .models.user import PlatformUser
from .services import (
    AuditService,
    DocumentService,
    GridFSObjectStore,
    MongoStore,
    ProgramService,
    ProviderDirectory,
    RulesService,
    SubmissionService,
    UserDirectory,
)


class Services:
    """One instance of every service, wired to the same storage"""

    def __init__(self, store: MongoStore, object_store: GridFSObjectStore, settings: Settings):
        self.settings = settings
        self.store = store
        self.object_store = object_store
        self.providers = ProviderDirectory(store, settings)
        self.rules = RulesService(store, self.providers, settings)
        self.programs = ProgramService(store)
        self.submissions = SubmissionService(store)
        self.documents = DocumentService(store, object_store, settings)
        self.audit = AuditService(store)
        self.users = UserDirectory(store, settings)

    @classmethod
    def from_database(cls, database: AsyncIOMotorDatabase, settings: Settings) -> "Services":
        return cls(
            MongoStore(database),
            GridFSObjectStore(database, settings.public_storage_base_url),
            settings
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    services: Services = Depends(get_services)
) -> Optional[PlatformUser]:
    """User identified by the X-User-Id header set by the auth gateway"""
    if not x_user_id:
        return None
    return await services.users.get_user(x_user_id)


async def require_user(user: Optional[PlatformUser] = Depends(get_current_user)) -> PlatformUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def get_access_profile(
    user: PlatformUser = Depends(require_user),
    services: Services = Depends(get_services)
) -> Optional[AccessProfile]:
    return await services.providers.get_access_profile(user.id)


async def require_approved_provider(
    profile: Optional[AccessProfile] = Depends(get_access_profile)
) -> AccessProfile:
    if profile is None or not (profile.is_approved or profile.is_super_admin):
        raise HTTPException(status_code=403, detail="Approved provider account required")
    return profile


async def require_super_admin(
    profile: Optional[AccessProfile] = Depends(get_access_profile)
) -> AccessProfile:
    if profile is None or not profile.is_super_admin:
        raise HTTPException(status_code=403, detail="Super administrator required")
    return profile
