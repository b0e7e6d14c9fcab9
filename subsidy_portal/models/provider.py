"""
Pydantic models for providers and their access profile
"""
from datetime import datetime
from typing import Optional, Union
from pydantic import BaseModel, Field

from .common import Identity


class Provider(BaseModel):
    """Organization that authors programs and reviews submissions"""
    id: Identity = Field(..., description="Provider identity")
    agency_name: str = Field("", description="Display name")
    logo: Optional[str] = Field(None, description="Logo reference")
    status: str = Field("pending", description="pending, approved or rejected")
    is_super_admin: bool = Field(False, description="Platform super administrator flag")
    user_id: Optional[Identity] = Field(None, description="Auth user owning this provider account")
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[Union[datetime, str]] = None


class AccessProfile(BaseModel):
    """Inputs of the approved-provider / super-admin authorization predicate"""
    user_id: Identity
    provider_id: Optional[Identity] = None
    status: str = "pending"
    is_super_admin: bool = False

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"
