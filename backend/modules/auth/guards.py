"""
Route guard decisions derived from the authentication state.

Protected pages (the organizer area) require a signed-in user who has set
a password. Public auth pages (login, password setup) send fully set-up
users to the dashboard instead.
"""

from enum import Enum
from typing import Optional

from .models import AuthState


class RouteAccess(str, Enum):
    """What a page should do for the current state."""

    WAIT = "wait"
    ALLOW = "allow"
    SIGN_IN = "sign_in"
    SETUP_PASSWORD = "setup_password"
    DASHBOARD = "dashboard"


LOGIN_PATH = "/login"
SETUP_PASSWORD_PATH = "/setup-password"
DASHBOARD_PATH = "/admin/dashboard"

_REDIRECTS: dict[RouteAccess, str] = {
    RouteAccess.SIGN_IN: LOGIN_PATH,
    RouteAccess.SETUP_PASSWORD: SETUP_PASSWORD_PATH,
    RouteAccess.DASHBOARD: DASHBOARD_PATH,
}


def _settling(state: AuthState) -> bool:
    return not state.initialized or state.loading


def protected_route_access(state: AuthState) -> RouteAccess:
    """Decide access to a page that requires a fully set-up account."""
    if _settling(state):
        return RouteAccess.WAIT
    if state.user is None:
        return RouteAccess.SIGN_IN
    # state.password_set, not user.password_set: a recovery event clears it
    if not state.password_set:
        return RouteAccess.SETUP_PASSWORD
    return RouteAccess.ALLOW


def public_route_access(state: AuthState) -> RouteAccess:
    """Decide access to the login and password setup pages."""
    if _settling(state):
        return RouteAccess.WAIT
    if state.user is not None and state.password_set:
        return RouteAccess.DASHBOARD
    return RouteAccess.ALLOW


def redirect_path(access: RouteAccess) -> Optional[str]:
    """Path to redirect to for a decision, or None when no redirect applies."""
    return _REDIRECTS.get(access)
