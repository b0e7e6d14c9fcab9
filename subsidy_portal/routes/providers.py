"""
API routes for providers, access checks and users
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import Services, get_access_profile, get_services, require_super_admin, require_user
from ..models.provider import AccessProfile, Provider
from ..models.user import PlatformUser, UserDisplay

router = APIRouter(tags=["providers"])


@router.get("/providers", response_model=List[Provider])
async def get_providers(services: Services = Depends(get_services)):
    """
    Get all providers with their logo and approval status
    """
    return await services.providers.load()


@router.get("/providers/access", response_model=AccessProfile)
async def get_my_access(
    user: PlatformUser = Depends(require_user),
    profile=Depends(get_access_profile)
):
    """
    Approval status and super-admin flag of the current user's provider account
    """
    if profile is None:
        return AccessProfile(user_id=user.id, status="none")
    return profile


@router.get("/users", response_model=List[PlatformUser])
async def get_users(
    profile: AccessProfile = Depends(require_super_admin),
    services: Services = Depends(get_services)
):
    """
    Get all platform users
    """
    return await services.users.fetch_users()


@router.get("/users/me", response_model=UserDisplay)
async def get_my_display(
    user: PlatformUser = Depends(require_user),
    services: Services = Depends(get_services)
):
    """
    Display name and avatar of the current user
    """
    return services.users.display_for(user)


@router.get("/users/{user_id}/display", response_model=UserDisplay)
async def get_user_display(user_id: str, services: Services = Depends(get_services)):
    """
    Display name and avatar of any user
    """
    user = await services.users.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"User not found: {user_id}")
    return services.users.display_for(user)
