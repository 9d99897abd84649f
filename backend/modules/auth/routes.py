"""
Auth API endpoints.

Expose the session controller of this host: a state snapshot, the actions
and the route guard decisions. Action failures become HTTP errors whose
detail is the provider's message, ready for inline display.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_session_controller
from api.models.auth import (
    ActionResponse,
    AuthStateResponse,
    MagicLinkRequest,
    RememberMeRequest,
    RouteAccessResponse,
    SetupPasswordRequest,
    SignInRequest,
    SignUpRequest,
)

from .guards import protected_route_access, public_route_access, redirect_path
from .models import AuthActionResult
from .service import SessionController

router = APIRouter()


_STATUS_BY_CODE: dict[str, int] = {
    "PROVIDER_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "NOT_AUTHENTICATED": status.HTTP_401_UNAUTHORIZED,
    "WEAK_PASSWORD": 422,
    "PROVIDER_ERROR": status.HTTP_502_BAD_GATEWAY,
}


def _raise_for_result(result: AuthActionResult) -> None:
    """Raise an HTTPException for a failed action result."""
    if result.ok:
        return
    raise HTTPException(
        status_code=_STATUS_BY_CODE.get(result.code or "", status.HTTP_400_BAD_REQUEST),
        detail=result.error,
        headers={"X-Error-Code": result.code} if result.code else None,
    )


@router.get("/state", response_model=AuthStateResponse)
async def get_auth_state(
    controller: SessionController = Depends(get_session_controller),
) -> AuthStateResponse:
    """Get the current authentication state (no tokens)."""
    return AuthStateResponse.from_state(controller.state, controller.degraded)


@router.post("/sign-in", response_model=ActionResponse)
async def sign_in(
    request: SignInRequest,
    controller: SessionController = Depends(get_session_controller),
) -> ActionResponse:
    """
    Sign in with email and password.

    The signed-in user shows up in /state once the provider confirms.
    """
    result = await controller.sign_in_with_password(request.email, request.password)
    _raise_for_result(result)
    if request.remember_me is not None:
        controller.set_remember_me(request.remember_me)
    return ActionResponse()


@router.post("/sign-up", response_model=ActionResponse, status_code=201)
async def sign_up(
    request: SignUpRequest,
    controller: SessionController = Depends(get_session_controller),
) -> ActionResponse:
    """Create an organizer account; a sign-in link is emailed."""
    result = await controller.sign_up_with_email(request.email, request.display_name)
    _raise_for_result(result)
    return ActionResponse(message="Check your email to finish setting up your account")


@router.post("/magic-link", response_model=ActionResponse)
async def magic_link(
    request: MagicLinkRequest,
    controller: SessionController = Depends(get_session_controller),
) -> ActionResponse:
    """Email a one-time sign-in link (existing accounts only)."""
    result = await controller.sign_in_with_magic_link(request.email)
    _raise_for_result(result)
    return ActionResponse(message="Check your email for a sign-in link")


@router.post("/setup-password", response_model=ActionResponse)
async def setup_password(
    request: SetupPasswordRequest,
    controller: SessionController = Depends(get_session_controller),
) -> ActionResponse:
    """Set the first password after following a sign-in link."""
    result = await controller.setup_password(request.password, request.display_name)
    _raise_for_result(result)
    return ActionResponse()


@router.post("/sign-out", response_model=ActionResponse)
async def sign_out(
    controller: SessionController = Depends(get_session_controller),
) -> ActionResponse:
    """
    Sign out.

    Local state is reset even when the provider call fails; the failure is
    reported in the message.
    """
    result = await controller.sign_out()
    return ActionResponse(ok=result.ok, message=result.error)


@router.post("/refresh", response_model=AuthStateResponse)
async def refresh(
    controller: SessionController = Depends(get_session_controller),
) -> AuthStateResponse:
    """Refresh the session (best effort) and return the resulting state."""
    await controller.refresh_session()
    return AuthStateResponse.from_state(controller.state, controller.degraded)


@router.put("/remember-me", response_model=AuthStateResponse)
async def remember_me(
    request: RememberMeRequest,
    controller: SessionController = Depends(get_session_controller),
) -> AuthStateResponse:
    """Update the remember-me flag for this device."""
    controller.set_remember_me(request.remember)
    return AuthStateResponse.from_state(controller.state, controller.degraded)


@router.get("/access/protected", response_model=RouteAccessResponse)
async def protected_access(
    controller: SessionController = Depends(get_session_controller),
) -> RouteAccessResponse:
    """Guard decision for organizer pages."""
    access = protected_route_access(controller.state)
    return RouteAccessResponse(access=access, redirect_to=redirect_path(access))


@router.get("/access/public", response_model=RouteAccessResponse)
async def public_access(
    controller: SessionController = Depends(get_session_controller),
) -> RouteAccessResponse:
    """Guard decision for the login and password setup pages."""
    access = public_route_access(controller.state)
    return RouteAccessResponse(access=access, redirect_to=redirect_path(access))
