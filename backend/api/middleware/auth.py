"""
Route guard dependencies.

Translate the session controller's state into HTTP outcomes for pages
served behind this host:

- still initializing or busy: 503 with Retry-After
- not signed in: 401, redirect hint /login
- password not set up yet: 403, redirect hint /setup-password
"""

from fastapi import Depends, HTTPException, status

from modules.auth.guards import RouteAccess, protected_route_access, redirect_path
from modules.auth.models import Profile
from modules.auth.service import SessionController

from ..dependencies import get_session_controller


class GuardError(HTTPException):
    """Guard rejection with a redirect hint in the X-Redirect-To header."""

    def __init__(self, status_code: int, detail: str, access: RouteAccess):
        headers = {}
        path = redirect_path(access)
        if path:
            headers["X-Redirect-To"] = path
        if access is RouteAccess.WAIT:
            headers["Retry-After"] = "1"
        super().__init__(status_code=status_code, detail=detail, headers=headers or None)


async def require_ready_user(
    controller: SessionController = Depends(get_session_controller),
) -> Profile:
    """
    Dependency that requires a signed-in user who has set a password.

    Usage:
        @router.get("/protected")
        async def protected_route(user: Profile = Depends(require_ready_user)):
            return {"user_id": user.id}
    """
    state = controller.state
    access = protected_route_access(state)

    if access is RouteAccess.WAIT:
        raise GuardError(
            status.HTTP_503_SERVICE_UNAVAILABLE, "Checking authentication", access
        )
    if access is RouteAccess.SIGN_IN:
        raise GuardError(status.HTTP_401_UNAUTHORIZED, "Authentication required", access)
    if access is RouteAccess.SETUP_PASSWORD:
        raise GuardError(status.HTTP_403_FORBIDDEN, "Password setup required", access)
    return state.user

