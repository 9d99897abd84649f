"""
Clock abstraction for testable time handling.

Session expiry and refresh decisions depend on an injected Clock instead of
calling datetime.now() directly, so tests can move time forward explicitly.
"""

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning the current time as an aware datetime."""

    def __call__(self) -> datetime: ...


def utc_now() -> datetime:
    """Default clock, the current UTC time."""
    return datetime.now(timezone.utc)
