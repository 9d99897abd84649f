"""
Authentication module.

Owns the session and identity state of the device: startup, provider event
reconciliation, expiry-driven refresh and the sign-in/sign-up/sign-out
actions.

Public API:
- SessionController: The single writer of AuthState
- IIdentityProvider, IProfileStore, IDeviceTrustStore: Collaborator interfaces
- AuthState, Profile, Session: State models
- Route guards: protected_route_access, public_route_access
- Auth exceptions: ProviderUnavailableError, InvalidCredentialsError, etc.
"""

from .interfaces import (
    IIdentityProvider,
    IProfileStore,
    IDeviceTrustStore,
    ISessionController,
)
from .models import (
    AuthActionResult,
    AuthEventKind,
    AuthState,
    NewProfile,
    Profile,
    Session,
    Subject,
    UserRole,
)
from .exceptions import (
    ProviderUnavailableError,
    ProviderError,
    InvalidCredentialsError,
    ProviderRejectedError,
    NotAuthenticatedError,
    WeakPasswordError,
    ProfileStoreError,
)
from .guards import RouteAccess, protected_route_access, public_route_access
from .service import SessionController, create_session_controller

__all__ = [
    # Interfaces
    "IIdentityProvider",
    "IProfileStore",
    "IDeviceTrustStore",
    "ISessionController",
    # Models
    "AuthActionResult",
    "AuthEventKind",
    "AuthState",
    "NewProfile",
    "Profile",
    "Session",
    "Subject",
    "UserRole",
    # Exceptions
    "ProviderUnavailableError",
    "ProviderError",
    "InvalidCredentialsError",
    "ProviderRejectedError",
    "NotAuthenticatedError",
    "WeakPasswordError",
    "ProfileStoreError",
    # Guards
    "RouteAccess",
    "protected_route_access",
    "public_route_access",
    # Controller
    "SessionController",
    "create_session_controller",
]
