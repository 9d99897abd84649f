"""
Auth request and response models.

Responses never carry provider tokens; only the session expiry is exposed.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from modules.auth.guards import RouteAccess
from modules.auth.models import AuthState, UserRole


class SignInRequest(BaseModel):
    """Email/password sign-in."""

    email: EmailStr
    password: str = Field(..., min_length=1)
    remember_me: Optional[bool] = Field(None, description="Also update the remember-me flag")


class SignUpRequest(BaseModel):
    """Organizer registration."""

    email: EmailStr
    display_name: str = Field(..., min_length=1, max_length=100)


class MagicLinkRequest(BaseModel):
    """One-time sign-in link request."""

    email: EmailStr


class SetupPasswordRequest(BaseModel):
    """First password for an account created by sign-up or magic link."""

    password: str
    confirm_password: str
    display_name: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="after")
    def passwords_match(self) -> "SetupPasswordRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class RememberMeRequest(BaseModel):
    """Remember-me preference for this device."""

    remember: bool


class ProfileResponse(BaseModel):
    """Profile of the signed-in user."""

    id: str
    email: EmailStr
    display_name: str
    role: UserRole
    password_set: bool


class AuthStateResponse(BaseModel):
    """Snapshot of the authentication state."""

    user: Optional[ProfileResponse] = None
    signed_in: bool
    loading: bool
    initialized: bool
    password_set: bool
    session_expires_at: Optional[datetime] = None
    session_time_remaining_seconds: int
    device_trusted: bool
    degraded: bool

    @classmethod
    def from_state(cls, state: AuthState, degraded: bool) -> "AuthStateResponse":
        user = None
        if state.user is not None:
            user = ProfileResponse(
                id=state.user.id,
                email=state.user.email,
                display_name=state.user.display_name,
                role=state.user.role,
                password_set=state.user.password_set,
            )
        return cls(
            user=user,
            signed_in=state.session is not None,
            loading=state.loading,
            initialized=state.initialized,
            password_set=state.password_set,
            session_expires_at=state.session.expires_at if state.session else None,
            session_time_remaining_seconds=int(state.session_time_remaining.total_seconds()),
            device_trusted=state.device_trusted,
            degraded=degraded,
        )


class ActionResponse(BaseModel):
    """Successful action acknowledgement."""

    ok: bool = True
    message: Optional[str] = None


class RouteAccessResponse(BaseModel):
    """Route guard decision."""

    access: RouteAccess
    redirect_to: Optional[str] = None

