"""
Shared infrastructure for the 40+ Pickleball backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- clock: Injectable time source

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .clock import Clock, utc_now
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    PickleballError,
    ValidationError,
    AuthenticationError,
    ExternalServiceError,
)

__all__ = [
    "Settings",
    "get_settings",
    "Clock",
    "utc_now",
    "get_supabase_client",
    "reset_client_cache",
    "PickleballError",
    "ValidationError",
    "AuthenticationError",
    "ExternalServiceError",
]
