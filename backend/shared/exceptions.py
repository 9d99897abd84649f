"""
Error hierarchy shared by the 40+ Pickleball backend.

Feature modules subclass the three families below. Every error carries a
stable ``code`` that callers (the session controller, the HTTP layer) use
instead of the message, which is meant for people.
"""

from typing import Optional, Any


class PickleballError(Exception):
    """Root of the application's errors: a human message plus a stable code."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or type(self).__name__
        self.details = dict(details) if details else {}


class ValidationError(PickleballError):
    """Caller input was rejected before reaching any collaborator."""


class AuthenticationError(PickleballError):
    """Credentials are missing, wrong, or refused by the identity provider."""


class ExternalServiceError(PickleballError):
    """
    A backing service (identity provider, profile store) failed.

    The failing service's name is kept on the error and in ``details``.
    """

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details.setdefault("service", service)
