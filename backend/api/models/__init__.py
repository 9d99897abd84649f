"""API models package."""

from .auth import (
    SignInRequest,
    SignUpRequest,
    MagicLinkRequest,
    SetupPasswordRequest,
    RememberMeRequest,
    ProfileResponse,
    AuthStateResponse,
    ActionResponse,
    RouteAccessResponse,
)

__all__ = [
    "SignInRequest",
    "SignUpRequest",
    "MagicLinkRequest",
    "SetupPasswordRequest",
    "RememberMeRequest",
    "ProfileResponse",
    "AuthStateResponse",
    "ActionResponse",
    "RouteAccessResponse",
]
