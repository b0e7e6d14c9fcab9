"""
Shared helpers for the portal models
"""
from datetime import datetime, timezone
from typing import Union

# Stored identities are either auto-increment integers or opaque strings
Identity = Union[int, str]


def get_current_utc_time():
    """Get current UTC time for default values"""
    return datetime.now(timezone.utc)
