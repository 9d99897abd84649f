"""
Authentication module data models.

These models define the session state owned by the session controller and
the records it exchanges with its collaborators.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, EmailStr

from shared.exceptions import PickleballError


class UserRole(str, Enum):
    """Application roles stored on the profile record."""

    ORGANIZER = "organizer"
    ADMIN = "admin"


class AuthEventKind(str, Enum):
    """
    Provider-independent identity event kinds.

    Provider adapters map their own event names onto these values.
    """

    INITIAL_SESSION = "initial_session"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    # Forces password_set=False so the user lands on password setup
    PASSWORD_RECOVERY = "password_recovery"


class Subject(BaseModel):
    """The identity provider's principal for an authenticated user."""

    id: str = Field(..., description="Provider subject ID")
    email: Optional[str] = Field(None, description="Email registered with the provider")

    model_config = {"frozen": True}


class Session(BaseModel):
    """
    Provider-issued proof of authentication.

    Treated as opaque apart from its expiry and subject.
    """

    access_token: str = Field(..., repr=False)
    refresh_token: str = Field(default="", repr=False)
    expires_at: datetime = Field(..., description="Expiry instant (timezone aware)")
    subject: Optional[Subject] = Field(None, description="Authenticated principal")

    model_config = {"frozen": True}

    def time_remaining(self, now: datetime) -> timedelta:
        """Time left before expiry, never negative."""
        return max(timedelta(0), self.expires_at - now)


class Profile(BaseModel):
    """
    Application-level user record keyed by the provider subject.

    Stored in the `users` table; the controller only holds a read-only copy.
    """

    id: str = Field(..., description="Profile row ID")
    subject_id: str = Field(..., description="Provider subject ID (auth_id column)")
    email: EmailStr = Field(..., description="Email address")
    display_name: str = Field(..., description="Display name")
    role: UserRole = Field(default=UserRole.ORGANIZER, description="Application role")
    password_set: bool = Field(default=False, description="Whether the user chose a password")
    is_active: bool = Field(default=True, description="Whether the account is active")
    last_login: Optional[datetime] = Field(None, description="Last login time")
    created_at: Optional[datetime] = Field(None, description="Creation time")
    updated_at: Optional[datetime] = Field(None, description="Last update time")

    model_config = {"frozen": True}


class NewProfile(BaseModel):
    """Profile fields inserted right after a provider sign-up."""

    subject_id: str
    email: EmailStr
    display_name: str
    role: UserRole = UserRole.ORGANIZER
    password_set: bool = False


class AuthState(BaseModel):
    """
    Authoritative authentication state.

    Created once per controller with empty defaults and mutated in place.
    Only the session controller writes to it; consumers receive copies.
    """

    user: Optional[Profile] = None
    session: Optional[Session] = None
    loading: bool = False
    initialized: bool = False
    password_set: bool = False
    session_time_remaining: timedelta = timedelta(0)
    device_trusted: bool = False

    @property
    def is_authenticated(self) -> bool:
        """Signed in with a resolved profile."""
        return self.user is not None


class AuthActionResult(BaseModel):
    """Outcome of a controller action, carrying display text on failure."""

    error: Optional[str] = Field(None, description="Error message for inline display")
    code: Optional[str] = Field(None, description="Machine-readable error code")

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls) -> "AuthActionResult":
        return cls()

    @classmethod
    def from_error(cls, exc: PickleballError) -> "AuthActionResult":
        return cls(error=exc.message, code=exc.code)
