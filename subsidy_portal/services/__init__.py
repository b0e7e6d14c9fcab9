"""
Services package for the Subsidy Portal
"""

from .store import MongoStore, GridFSObjectStore
from .provider_service import ProviderDirectory
from .rule_service import RulesService, assemble_rules
from .program_service import ProgramService
from .submission_service import SubmissionService
from .document_service import DocumentService, build_storage_path
from .audit_service import AuditService
from .user_service import UserDirectory
from .errors import (
    PortalError,
    StorageError,
    InvalidInputError,
    SubmissionError,
    DocumentError,
    ProgramError
)

__all__ = [
    "MongoStore",
    "GridFSObjectStore",
    "ProviderDirectory",
    "RulesService",
    "assemble_rules",
    "ProgramService",
    "SubmissionService",
    "DocumentService",
    "build_storage_path",
    "AuditService",
    "UserDirectory",
    "PortalError",
    "StorageError",
    "InvalidInputError",
    "SubmissionError",
    "DocumentError",
    "ProgramError"
]
