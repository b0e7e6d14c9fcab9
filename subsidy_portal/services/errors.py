"""
Exceptions raised by the portal services
"""


class PortalError(Exception):
    """Base class for operation failures surfaced to callers"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StorageError(PortalError):
    """Raised when a database or object storage call fails."""


class InvalidInputError(PortalError, ValueError):
    """Raised before any I/O when required inputs are missing."""


class SubmissionError(PortalError):
    """Raised when a client submission cannot be created."""


class DocumentError(PortalError):
    """Raised when a document cannot be uploaded, recorded or deleted."""


class ProgramError(PortalError):
    """Raised when a program or training result cannot be saved or removed."""
