"""
Session controller implementation.

The controller is the single writer of AuthState. Four sources drive it:
the startup sequence, identity provider events, the expiry watch and user
actions. Every write is one synchronous block on the controller's event
loop, so no two completions can interleave partial updates.

Two counters keep late completions from rolling state backward:

- the lifecycle generation changes on dispose(); any completion dispatched
  under an older generation is dropped.
- identity writes (startup, provider events, sign-out reset, password
  setup) take a sequence number when they are dispatched. A write is
  dropped if a later one has already been applied. Supabase delivers
  events in order, but the profile lookup in between suspends, so their
  completions can finish out of order.
"""

import asyncio
import logging
import secrets
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional

from shared.clock import Clock, utc_now
from shared.config import Settings, get_settings
from shared.exceptions import PickleballError

from .device_trust import FileDeviceTrustStore, InMemoryDeviceTrustStore
from .exceptions import (
    NotAuthenticatedError,
    ProviderError,
    ProviderUnavailableError,
    WeakPasswordError,
)
from .expiry_watch import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_REFRESH_THRESHOLD,
    ExpiryWatch,
    in_refresh_window,
)
from .guards import SETUP_PASSWORD_PATH
from .interfaces import IDeviceTrustStore, IIdentityProvider, IProfileStore, Unsubscribe
from .models import (
    AuthActionResult,
    AuthEventKind,
    AuthState,
    NewProfile,
    Profile,
    Session,
    UserRole,
)
from .password_policy import check_password

logger = logging.getLogger(__name__)


def mask_email(email: str) -> str:
    """Mask the local part of an email address for logging."""
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


class SessionController:
    """
    Owns the authentication state of one device.

    Collaborators are injected. Passing provider=None selects degraded mode:
    the controller reports "signed out" and every action fails with
    ProviderUnavailableError without any I/O.

    Usage:
        async with SessionController(provider, profiles, trust) as controller:
            result = await controller.sign_in_with_password(email, password)
    """

    def __init__(
        self,
        provider: Optional[IIdentityProvider],
        profiles: Optional[IProfileStore],
        device_trust: IDeviceTrustStore,
        *,
        clock: Clock = utc_now,
        check_interval: timedelta = DEFAULT_CHECK_INTERVAL,
        refresh_threshold: timedelta = DEFAULT_REFRESH_THRESHOLD,
        magic_link_redirect: Optional[str] = None,
        placeholder_credential_bytes: int = 32,
    ):
        self._provider = provider
        self._profiles = profiles
        self._device_trust = device_trust
        self._clock = clock
        self._refresh_threshold = refresh_threshold
        self._magic_link_redirect = magic_link_redirect
        self._placeholder_credential_bytes = placeholder_credential_bytes

        self._state = AuthState()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started = False
        self._disposed = False
        self._generation = 0
        self._received = 0
        self._applied = 0
        self._refresh_in_flight = False
        self._unsubscribe: Optional[Unsubscribe] = None
        self._pending: set[asyncio.Task] = set()
        self._expiry_watch = ExpiryWatch(self._check_expiry, check_interval)

    # ------------------------------------------------------------------
    # Consumer surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> AuthState:
        """Snapshot of the current state."""
        return self._state.model_copy()

    @property
    def degraded(self) -> bool:
        """True when no identity provider is configured."""
        return self._provider is None

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def expiry_watch_running(self) -> bool:
        return self._expiry_watch.running

    async def __aenter__(self) -> "SessionController":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Run the one-time startup sequence and subscribe to provider events.

        Raises:
            RuntimeError: If the controller was already started or disposed
        """
        if self._disposed:
            raise RuntimeError("Session controller has been disposed")
        if self._started:
            raise RuntimeError("Session controller already started")
        self._started = True
        self._loop = asyncio.get_running_loop()
        generation = self._generation

        if self._provider is None:
            logger.warning("Running in degraded mode - identity provider not configured")
            self._write(
                generation,
                initialized=True,
                loading=False,
                device_trusted=self._read_device_trust(),
            )
            return

        self._write(generation, loading=True)
        ticket = self._next_ticket()
        try:
            session = await self._load_stored_session()
            user = await self._resolve_profile(session)
            self._commit(
                generation,
                ticket,
                user=user,
                session=session,
                password_set=user.password_set if user else False,
                session_time_remaining=self._remaining(session),
            )
        except Exception:
            logger.exception("Error initializing auth")
        finally:
            self._write(
                generation,
                loading=False,
                initialized=True,
                device_trusted=self._read_device_trust(),
            )

        if generation != self._generation:
            return
        self._sync_expiry_watch()
        self._unsubscribe = self._provider.subscribe(self._on_provider_event)
        logger.info(f"Auth initialized (signed in: {self._state.user is not None})")

    async def dispose(self) -> None:
        """
        Tear the controller down.

        Stops the expiry watch, releases the provider subscription exactly
        once, and drops every completion that arrives afterwards.
        """
        if self._disposed:
            return
        self._disposed = True
        self._generation += 1
        self._expiry_watch.stop()

        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            try:
                unsubscribe()
            except Exception as e:
                logger.warning(f"Error unsubscribing from auth events: {e}")
        logger.debug("Session controller disposed")

    async def settle(self) -> None:
        """Wait until queued event reconciliations and refreshes have finished."""
        await asyncio.sleep(0)
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
            await asyncio.sleep(0)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> AuthActionResult:
        """
        Sign in with email and password.

        Success is reflected in the state by the provider's sign-in event.
        """
        async def operation() -> None:
            await self._provider.sign_in_with_password(email, password)

        logger.info(f"Password sign-in requested for {mask_email(email)}")
        return await self._run_action("sign_in_with_password", operation)

    async def sign_up_with_email(self, email: str, display_name: str) -> AuthActionResult:
        """
        Create an organizer account.

        The identity is created with a random placeholder credential; the
        user picks a real password after following the emailed link. A
        failed profile insert is logged and does not fail the action.
        """
        async def operation() -> None:
            subject = await self._provider.sign_up(
                email,
                secrets.token_urlsafe(self._placeholder_credential_bytes),
                {"display_name": display_name},
            )
            if subject is None:
                logger.warning(
                    f"Provider returned no user for sign-up of {mask_email(email)}, "
                    "profile not created"
                )
                return
            await self._create_profile(subject.id, email, display_name)

        logger.info(f"Sign-up requested for {mask_email(email)}")
        return await self._run_action("sign_up_with_email", operation)

    async def sign_in_with_magic_link(self, email: str) -> AuthActionResult:
        """Email a one-time sign-in link to an existing user."""
        async def operation() -> None:
            await self._provider.sign_in_with_one_time_link(
                email,
                create_if_missing=False,
                redirect_to=self._magic_link_redirect,
            )

        logger.info(f"Magic link requested for {mask_email(email)}")
        return await self._run_action("sign_in_with_magic_link", operation)

    async def setup_password(
        self,
        password: str,
        display_name: Optional[str] = None,
    ) -> AuthActionResult:
        """
        Set the user's first real password.

        On success password_set flips to True right away instead of waiting
        for a provider event, since the profile flag is not visible to the
        provider's event stream. If the session went away meanwhile only the
        stored profile is updated.
        """
        if self._provider is None:
            return AuthActionResult.from_error(ProviderUnavailableError())

        check = check_password(password)
        if not check.ok:
            return AuthActionResult.from_error(WeakPasswordError(check.errors))

        generation = self._generation

        async def operation() -> None:
            subject_id = await self._current_subject_id()
            if subject_id is None:
                raise NotAuthenticatedError()

            await self._provider.update_credential(password)

            fields: dict[str, Any] = {"password_set": True}
            if display_name:
                fields["display_name"] = display_name
            await self._update_profile(subject_id, fields)

            user = self._state.user
            if self._state.session is None or user is None:
                # Signed out while the update was in flight
                logger.info("Password set with no session in state; local flag left as is")
                return
            self._commit(
                generation,
                self._next_ticket(),
                user=user.model_copy(update=fields),
                password_set=True,
            )

        return await self._run_action("setup_password", operation)

    async def sign_out(self) -> AuthActionResult:
        """
        Sign out and reset local state.

        The local reset always happens, even when the provider call fails or
        the caller is cancelled; the provider error is still returned.
        """
        generation = self._generation

        if self._provider is None:
            self._clear_device_trust()
            self._reset(generation)
            return AuthActionResult.from_error(ProviderUnavailableError())

        result = AuthActionResult.success()
        self._write(generation, loading=True)
        try:
            await self._provider.sign_out()
        except PickleballError as e:
            logger.warning(f"Error signing out: {e.message}")
            result = AuthActionResult.from_error(e)
        except Exception as e:
            logger.exception("Unexpected error signing out")
            result = AuthActionResult.from_error(ProviderError(str(e)))
        finally:
            self._clear_device_trust()
            self._reset(generation)
        return result

    async def refresh_session(self) -> None:
        """
        Refresh the provider session, best effort.

        Failures are logged and leave the state untouched. A refresh that is
        already in flight makes this call a no-op.
        """
        if self._provider is None:
            return
        if self._refresh_in_flight:
            logger.debug("Session refresh already in flight, skipping")
            return

        generation = self._generation
        baseline = self._received
        self._refresh_in_flight = True
        try:
            session = await self._provider.refresh_session()
        except Exception as e:
            logger.warning(f"Error refreshing session: {e}")
            return
        finally:
            self._refresh_in_flight = False

        if session is None:
            logger.warning("Session refresh returned no session")
            return
        if self._applied > baseline:
            logger.debug("Discarding refreshed session superseded by a newer update")
            return
        self._write(
            generation,
            session=session,
            session_time_remaining=self._remaining(session),
        )

    def set_remember_me(self, remember: bool) -> None:
        """Persist the remember-me choice and mirror it into the state."""
        if self._provider is None:
            logger.debug("Ignoring remember-me change in degraded mode")
            return

        try:
            if remember:
                self._device_trust.write(True)
            else:
                self._device_trust.clear()
        except OSError as e:
            logger.warning(f"Could not persist remember-me flag: {e}")
        self._write(self._generation, device_trusted=self._read_device_trust())

    # ------------------------------------------------------------------
    # Provider events
    # ------------------------------------------------------------------

    def _on_provider_event(self, kind: AuthEventKind, session: Optional[Session]) -> None:
        """Subscription callback; may run on any thread."""
        loop = self._loop
        if self._disposed or loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._dispatch_event, kind, session)

    def _dispatch_event(self, kind: AuthEventKind, session: Optional[Session]) -> None:
        if self._disposed:
            return
        ticket = self._next_ticket()
        logger.debug(f"Auth event #{ticket}: {kind.value}")
        self._spawn(self._reconcile(self._generation, ticket, kind, session))

    async def _reconcile(
        self,
        generation: int,
        ticket: int,
        kind: AuthEventKind,
        session: Optional[Session],
    ) -> None:
        user = await self._resolve_profile(session)

        password_set = user.password_set if user else False
        if kind is AuthEventKind.PASSWORD_RECOVERY:
            password_set = False

        applied = self._commit(
            generation,
            ticket,
            user=user,
            session=session,
            password_set=password_set,
            session_time_remaining=self._remaining(session),
            loading=False,
        )
        if applied:
            self._sync_expiry_watch()

    # ------------------------------------------------------------------
    # Expiry watch
    # ------------------------------------------------------------------

    async def _check_expiry(self) -> None:
        """One expiry watch tick."""
        session = self._state.session
        remaining = self._remaining(session)
        self._write(self._generation, session_time_remaining=remaining)

        if session is None or not in_refresh_window(remaining, self._refresh_threshold):
            return
        if self._refresh_in_flight:
            logger.debug("Refresh in flight, skipping expiry tick")
            return

        logger.info(f"Session expires in {remaining}, refreshing")
        self._spawn(self.refresh_session())

    def _sync_expiry_watch(self) -> None:
        if self._disposed:
            return
        if self._state.session is not None:
            self._expiry_watch.start()
        else:
            self._expiry_watch.stop()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _run_action(
        self,
        action: str,
        operation: Callable[[], Awaitable[None]],
    ) -> AuthActionResult:
        """Run an action with loading bookkeeping and error conversion."""
        if self._provider is None:
            return AuthActionResult.from_error(ProviderUnavailableError())

        generation = self._generation
        self._write(generation, loading=True)
        try:
            await operation()
            return AuthActionResult.success()
        except PickleballError as e:
            logger.info(f"{action} failed: {e.code}")
            return AuthActionResult.from_error(e)
        except Exception as e:
            logger.exception(f"Unexpected error in {action}")
            return AuthActionResult.from_error(ProviderError(str(e)))
        finally:
            self._write(generation, loading=False)

    async def _load_stored_session(self) -> Optional[Session]:
        try:
            return await self._provider.get_session()
        except Exception as e:
            logger.warning(f"Error getting session: {e}")
            return None

    async def _resolve_profile(self, session: Optional[Session]) -> Optional[Profile]:
        """Look up the profile for a session; any failure means no profile."""
        if session is None or session.subject is None or self._profiles is None:
            return None

        subject_id = session.subject.id
        try:
            profile = await self._profiles.fetch_by_subject(subject_id)
        except Exception as e:
            logger.warning(f"Error fetching user profile for {subject_id}: {e}")
            return None

        if profile is None:
            logger.warning(f"No user profile found for {subject_id}")
        return profile

    async def _create_profile(self, subject_id: str, email: str, display_name: str) -> None:
        if self._profiles is None:
            return
        try:
            await self._profiles.insert(NewProfile(
                subject_id=subject_id,
                email=email,
                display_name=display_name,
                role=UserRole.ORGANIZER,
                password_set=False,
            ))
        except Exception as e:
            # The identity exists either way; the profile can be repaired later
            logger.error(f"Error creating user profile for {subject_id}: {e}")

    async def _update_profile(self, subject_id: str, fields: dict[str, Any]) -> None:
        if self._profiles is None:
            return
        try:
            if set(fields) == {"password_set"}:
                await self._profiles.mark_password_set(subject_id)
            else:
                await self._profiles.update_by_subject(subject_id, fields)
        except Exception as e:
            logger.error(f"Error updating password_set flag for {subject_id}: {e}")

    async def _current_subject_id(self) -> Optional[str]:
        session = self._state.session
        if session is not None and session.subject is not None:
            return session.subject.id
        try:
            subject = await self._provider.get_current_user()
        except Exception as e:
            logger.warning(f"Error getting current user: {e}")
            return None
        return subject.id if subject else None

    def _reset(self, generation: int) -> None:
        """Return to the signed-out state, superseding pending event updates."""
        applied = self._commit(
            generation,
            self._next_ticket(),
            user=None,
            session=None,
            loading=False,
            initialized=True,
            password_set=False,
            session_time_remaining=timedelta(0),
            device_trusted=self._read_device_trust(),
        )
        if applied:
            self._expiry_watch.stop()

    def _remaining(self, session: Optional[Session]) -> timedelta:
        if session is None:
            return timedelta(0)
        return session.time_remaining(self._clock())

    def _read_device_trust(self) -> bool:
        try:
            return bool(self._device_trust.read())
        except Exception as e:
            logger.warning(f"Could not read remember-me flag: {e}")
            return False

    def _clear_device_trust(self) -> None:
        try:
            self._device_trust.clear()
        except OSError as e:
            logger.warning(f"Could not clear remember-me flag: {e}")

    def _next_ticket(self) -> int:
        self._received += 1
        return self._received

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _commit(self, generation: int, ticket: int, **fields: Any) -> bool:
        """Apply an identity write unless a later one has already landed."""
        if ticket < self._applied:
            logger.debug(f"Discarding stale auth update #{ticket} (latest #{self._applied})")
            return False
        if not self._write(generation, **fields):
            return False
        self._applied = ticket
        return True

    def _write(self, generation: int, **fields: Any) -> bool:
        """The only place AuthState is mutated."""
        if self._disposed or generation != self._generation:
            logger.debug("Discarding auth state write after teardown")
            return False
        for name, value in fields.items():
            setattr(self._state, name, value)
        return True


async def create_session_controller(settings: Optional[Settings] = None) -> SessionController:
    """
    Build a controller wired to Supabase, or a degraded one without credentials.

    The controller is returned unstarted.
    """
    settings = settings or get_settings()
    common: dict[str, Any] = {
        "check_interval": timedelta(seconds=settings.session_check_interval_seconds),
        "refresh_threshold": timedelta(seconds=settings.session_refresh_threshold_seconds),
        "magic_link_redirect": settings.frontend_url.rstrip("/") + SETUP_PASSWORD_PATH,
        "placeholder_credential_bytes": settings.placeholder_credential_bytes,
    }

    if not settings.auth_configured:
        logger.warning(
            "Supabase credentials not configured - authentication is unavailable"
        )
        # Remember-me stays off disk without a provider
        return SessionController(None, None, InMemoryDeviceTrustStore(), **common)

    # Local imports keep degraded mode free of a Supabase client
    from shared.database import get_supabase_client
    from .provider import SupabaseIdentityProvider
    from .repository import SupabaseProfileRepository

    client = await get_supabase_client()
    return SessionController(
        SupabaseIdentityProvider(client),
        SupabaseProfileRepository(client),
        FileDeviceTrustStore(settings.device_trust_path),
        **common,
    )
