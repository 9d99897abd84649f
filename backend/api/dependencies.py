"""
Dependency injection setup for FastAPI.

This module provides the "container" that holds the session controller for
this front-end host. The app lifespan builds and starts the controller; route
handlers receive it through get_session_controller().
"""

from typing import TYPE_CHECKING, Optional

from fastapi import HTTPException, status

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.service import SessionController


class ServiceContainer:
    """
    Container for service instances.

    The session controller needs an event loop to start, so it is installed
    by the app lifespan rather than created lazily.
    Use reset() to clear cached services for testing.
    """

    def __init__(self) -> None:
        self._session_controller: "Optional[SessionController]" = None

    @property
    def session_controller(self) -> "Optional[SessionController]":
        """Get the session controller, if one is installed."""
        return self._session_controller

    def install_session_controller(self, controller: "SessionController") -> None:
        """Install the controller created at startup."""
        self._session_controller = controller

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to install fresh
        controllers with different fake collaborators.
        """
        self._session_controller = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_session_controller() -> "SessionController":
    """FastAPI dependency for the session controller."""
    controller = get_container().session_controller
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication is starting up",
        )
    return controller
