"""
Authentication module interfaces.

The session controller depends on these protocols, not on Supabase. Tests
substitute fakes; production wires the Supabase adapters.

Failures are raised as exceptions from modules.auth.exceptions rather than
returned, and the controller turns them into AuthActionResult values.
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable

from .models import AuthActionResult, AuthEventKind, AuthState, NewProfile, Profile, Session, Subject


AuthEventCallback = Callable[[AuthEventKind, Optional[Session]], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class IIdentityProvider(Protocol):
    """
    Interface for the external identity provider.

    Implementations own the wire protocol and the provider's event taxonomy.
    """

    async def get_session(self) -> Optional[Session]:
        """
        Get the currently stored session, if any.

        Raises:
            ProviderError: If the provider cannot be reached
        """
        ...

    async def get_current_user(self) -> Optional[Subject]:
        """Get the subject of the current session, if any."""
        ...

    async def sign_in_with_password(self, email: str, password: str) -> None:
        """
        Sign in with email and password.

        Raises:
            InvalidCredentialsError: If the provider rejects the credentials
            ProviderError: On transport failure
        """
        ...

    async def sign_in_with_one_time_link(
        self,
        email: str,
        *,
        create_if_missing: bool,
        redirect_to: Optional[str] = None,
    ) -> None:
        """
        Email a one-time sign-in link.

        Args:
            email: Recipient address
            create_if_missing: Whether the provider may create a new identity
            redirect_to: Where the link should land after verification

        Raises:
            ProviderRejectedError: If the provider refuses (e.g. unknown user)
        """
        ...

    async def sign_up(
        self,
        email: str,
        placeholder_credential: str,
        attributes: dict[str, Any],
    ) -> Optional[Subject]:
        """
        Create a provider identity.

        Returns:
            The new subject, or None if the provider did not return one
        """
        ...

    async def update_credential(self, new_password: str) -> None:
        """Replace the signed-in user's password."""
        ...

    async def sign_out(self) -> None:
        """End the provider session."""
        ...

    async def refresh_session(self) -> Optional[Session]:
        """Exchange the refresh token for a new session."""
        ...

    def subscribe(self, callback: AuthEventCallback) -> Unsubscribe:
        """
        Register for identity events.

        The callback may be invoked from any thread.

        Returns:
            A function that cancels the subscription
        """
        ...


@runtime_checkable
class IProfileStore(Protocol):
    """Interface for reading and updating user profiles."""

    async def fetch_by_subject(self, subject_id: str) -> Optional[Profile]:
        """
        Get the profile linked to a provider subject.

        Returns:
            Profile if found, None otherwise

        Raises:
            ProfileStoreError: On transport or query failure
        """
        ...

    async def insert(self, profile: NewProfile) -> None:
        """Insert a new profile row."""
        ...

    async def update_by_subject(self, subject_id: str, fields: dict[str, Any]) -> None:
        """Update profile columns for a subject."""
        ...

    async def mark_password_set(self, subject_id: str) -> None:
        """Persist password_set=True for a subject."""
        ...


@runtime_checkable
class IDeviceTrustStore(Protocol):
    """Durable remember-me flag scoped to the local device."""

    def read(self) -> bool: ...

    def write(self, trusted: bool) -> None: ...

    def clear(self) -> None: ...


@runtime_checkable
class ISessionController(Protocol):
    """
    Interface exposed to consumers (API routes, route guards).

    Consumers read snapshots of the state and trigger actions.
    """

    @property
    def state(self) -> AuthState: ...

    @property
    def degraded(self) -> bool: ...

    async def sign_in_with_password(self, email: str, password: str) -> AuthActionResult: ...

    async def sign_up_with_email(self, email: str, display_name: str) -> AuthActionResult: ...

    async def sign_in_with_magic_link(self, email: str) -> AuthActionResult: ...

    async def setup_password(
        self,
        password: str,
        display_name: Optional[str] = None,
    ) -> AuthActionResult: ...

    async def sign_out(self) -> AuthActionResult: ...

    async def refresh_session(self) -> None: ...

    def set_remember_me(self, remember: bool) -> None: ...
