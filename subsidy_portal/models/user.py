"""
Pydantic models for platform users
"""
from datetime import datetime
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field

from .common import Identity


class PlatformUser(BaseModel):
    """User as returned by the authentication collaborator"""
    id: Identity
    email: Optional[str] = None
    role: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form profile metadata")
    created_at: Optional[Union[datetime, str]] = None


class UserDisplay(BaseModel):
    """Name and avatar to show for a user"""
    user_id: Identity
    display_name: str
    avatar_url: str
