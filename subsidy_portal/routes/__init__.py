"""
API routes for the Subsidy Portal
"""

from .rules import router as rules_router
from .programs import router as programs_router
from .submissions import router as submissions_router
from .providers import router as providers_router
from .storage import router as storage_router

__all__ = [
    "rules_router",
    "programs_router",
    "submissions_router",
    "providers_router",
    "storage_router"
]
