"""
Authentication module exceptions.

Collaborators (identity provider, profile store) raise these exceptions.
The session controller converts them into AuthActionResult values for the
UI, and API error handlers map their codes to HTTP responses.
"""

from typing import Optional

from shared.exceptions import (
    AuthenticationError,
    ExternalServiceError,
    ValidationError,
)


class ProviderUnavailableError(ExternalServiceError):
    """Raised when no identity provider is configured (degraded mode)."""

    def __init__(self, message: str = "Authentication is not available"):
        super().__init__(message, service="identity_provider", code="PROVIDER_UNAVAILABLE")


class ProviderError(ExternalServiceError):
    """Raised when the identity provider cannot be reached or fails unexpectedly."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(
            message,
            service="identity_provider",
            code="PROVIDER_ERROR",
            details={"status": status} if status is not None else None,
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when the provider rejects an email/password pair."""

    def __init__(self, message: str = "Invalid login credentials"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class ProviderRejectedError(AuthenticationError):
    """Raised when the provider refuses a request (unknown user, rate limit...)."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(
            message,
            code="PROVIDER_REJECTED",
            details={"reason": reason} if reason else None,
        )


class NotAuthenticatedError(AuthenticationError):
    """Raised when an action needs a signed-in user and there is none."""

    def __init__(self, message: str = "No authenticated user"):
        super().__init__(message, code="NOT_AUTHENTICATED")


class WeakPasswordError(ValidationError):
    """Raised when a new password does not meet the password policy."""

    def __init__(self, problems: list[str]):
        super().__init__(
            "Password does not meet the requirements: " + "; ".join(problems),
            code="WEAK_PASSWORD",
            details={"problems": problems},
        )


class ProfileStoreError(ExternalServiceError):
    """Raised when reading or writing a user profile fails."""

    def __init__(self, message: str, subject_id: Optional[str] = None):
        super().__init__(
            message,
            service="profile_store",
            code="PROFILE_STORE_ERROR",
            details={"subject_id": subject_id} if subject_id else None,
        )
