"""
Pydantic models for client submissions and their documents
"""
from datetime import datetime
from typing import Any, Optional, Union
from pydantic import BaseModel, Field

from .common import Identity

STORAGE_PATH_KEY = "_storagePath"


class ClientSubmission(BaseModel):
    """Client application against one program"""
    id: Identity
    client_id: Identity
    program_id: Identity
    # Open string: providers may assign their own review statuses
    status: str = "pending"
    decision_tree_result: Optional[str] = None
    remarks: Optional[str] = None
    created_at: Optional[Union[datetime, str]] = None
    updated_at: Optional[Union[datetime, str]] = None


class ClientDocument(BaseModel):
    """Uploaded file plus its extracted data, attached to a submission"""
    id: Identity
    submission_id: Identity
    doc_type: str = ""
    file_url: str = ""
    extracted_data: Any = None
    verified: bool = False
    created_at: Optional[Union[datetime, str]] = None

    @property
    def storage_path(self) -> Optional[str]:
        if isinstance(self.extracted_data, dict):
            path = self.extracted_data.get(STORAGE_PATH_KEY)
            if isinstance(path, str) and path:
                return path
        return None


class UploadedFile(BaseModel):
    """File handed to the document pipeline"""
    filename: str = Field(..., description="Original file name")
    content: bytes = Field(b"", description="File bytes")
    content_type: Optional[str] = Field(None, description="MIME type")


class SubmissionRequest(BaseModel):
    """Request to open (or reuse) a pending submission"""
    client_id: Optional[Identity] = Field(None, description="Applicant identity, defaults to the current user")
    program_id: Identity = Field(..., description="Program applied for")
