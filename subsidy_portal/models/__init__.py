"""
Models package for the Subsidy Portal
"""

from .requirement import (
    RequirementDefinition,
    RuleItem,
    StructuredExtra,
    RawTextExtra
)

from .program import (
    Program,
    ProgramInput,
    TrainingResult,
    TrainingResultInput
)

from .provider import (
    Provider,
    AccessProfile
)

from .rule import (
    RuleAggregate,
    ProviderSnapshot
)

from .submission import (
    ClientSubmission,
    ClientDocument,
    UploadedFile,
    SubmissionRequest
)

from .user import (
    PlatformUser,
    UserDisplay
)

__all__ = [
    # Requirement models
    "RequirementDefinition",
    "RuleItem",
    "StructuredExtra",
    "RawTextExtra",

    # Program models
    "Program",
    "ProgramInput",
    "TrainingResult",
    "TrainingResultInput",

    # Provider and rule models
    "Provider",
    "AccessProfile",
    "RuleAggregate",
    "ProviderSnapshot",

    # Submission models
    "ClientSubmission",
    "ClientDocument",
    "UploadedFile",
    "SubmissionRequest",

    # User models
    "PlatformUser",
    "UserDisplay"
]
