"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import pytest

from api.dependencies import reset_container
from modules.auth.device_trust import InMemoryDeviceTrustStore
from modules.auth.models import AuthEventKind, Profile, Session, Subject
from modules.auth.repository import InMemoryProfileStore
from modules.auth.service import SessionController
from shared.config import get_settings
from shared.database import reset_client_cache


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the service container, settings and client caches around each test."""
    reset_container()
    get_settings.cache_clear()
    reset_client_cache()
    yield
    reset_container()
    get_settings.cache_clear()
    reset_client_cache()


# =============================================================================
# Auth fakes
# =============================================================================


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeIdentityProvider:
    """
    Scriptable identity provider.

    Set `errors[method]` to make a call raise, or `gates[method]` to an
    asyncio.Event to hold a call until the event is set. Every call is
    recorded in `calls`.
    """

    def __init__(self, session: Optional[Session] = None):
        self.session = session
        self.current_user: Optional[Subject] = session.subject if session else None
        self.refreshed_session: Optional[Session] = None
        self.sign_up_subject: Optional[Subject] = Subject(id="new-subject", email=None)
        self.errors: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, tuple, dict]] = []
        self.callback: Optional[Callable[[AuthEventKind, Optional[Session]], None]] = None
        self.unsubscribe_count = 0

    def called(self, name: str) -> list[tuple[tuple, dict]]:
        return [(args, kwargs) for call, args, kwargs in self.calls if call == name]

    async def _call(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        error = self.errors.get(name)
        if error is not None:
            raise error

    async def get_session(self) -> Optional[Session]:
        await self._call("get_session")
        return self.session

    async def get_current_user(self) -> Optional[Subject]:
        await self._call("get_current_user")
        return self.current_user

    async def sign_in_with_password(self, email: str, password: str) -> None:
        await self._call("sign_in_with_password", email, password)

    async def sign_in_with_one_time_link(
        self,
        email: str,
        *,
        create_if_missing: bool,
        redirect_to: Optional[str] = None,
    ) -> None:
        await self._call(
            "sign_in_with_one_time_link",
            email,
            create_if_missing=create_if_missing,
            redirect_to=redirect_to,
        )

    async def sign_up(
        self,
        email: str,
        placeholder_credential: str,
        attributes: dict[str, Any],
    ) -> Optional[Subject]:
        await self._call("sign_up", email, placeholder_credential, attributes)
        return self.sign_up_subject

    async def update_credential(self, new_password: str) -> None:
        await self._call("update_credential", new_password)

    async def sign_out(self) -> None:
        await self._call("sign_out")

    async def refresh_session(self) -> Optional[Session]:
        await self._call("refresh_session")
        return self.refreshed_session

    def subscribe(self, callback):
        self.callback = callback

        def unsubscribe() -> None:
            self.unsubscribe_count += 1

        return unsubscribe

    def emit(self, kind: AuthEventKind, session: Optional[Session] = None) -> None:
        """Deliver an identity event the way the provider would."""
        assert self.callback is not None, "controller is not subscribed"
        self.callback(kind, session)


class GatedProfileStore(InMemoryProfileStore):
    """In-memory profile store whose lookups can be held or failed per subject."""

    def __init__(self, profiles: Optional[list[Profile]] = None):
        super().__init__(profiles)
        self.fetch_gates: dict[str, asyncio.Event] = {}
        self.fetch_errors: dict[str, Exception] = {}
        self.write_error: Optional[Exception] = None

    async def fetch_by_subject(self, subject_id: str) -> Optional[Profile]:
        gate = self.fetch_gates.get(subject_id)
        if gate is not None:
            await gate.wait()
        if subject_id in self.fetch_errors:
            raise self.fetch_errors[subject_id]
        return await super().fetch_by_subject(subject_id)

    async def update_by_subject(self, subject_id: str, fields: dict[str, Any]) -> None:
        if self.write_error is not None:
            raise self.write_error
        await super().update_by_subject(subject_id, fields)


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed instant."""
    return FakeClock()


@pytest.fixture
def make_session(clock):
    """Factory for sessions expiring relative to the fake clock."""
    def _make(
        subject_id: str = "subject-123",
        expires_in: timedelta = timedelta(hours=2),
        email: str = "organizer@example.com",
        token: str = "access-token",
    ) -> Session:
        return Session(
            access_token=token,
            refresh_token="refresh-token",
            expires_at=clock() + expires_in,
            subject=Subject(id=subject_id, email=email),
        )
    return _make


@pytest.fixture
def make_profile():
    """Factory for stored profiles."""
    def _make(
        subject_id: str = "subject-123",
        password_set: bool = True,
        email: str = "organizer@example.com",
        display_name: str = "Pat Organizer",
    ) -> Profile:
        return Profile(
            id=f"profile-{subject_id}",
            subject_id=subject_id,
            email=email,
            display_name=display_name,
            password_set=password_set,
        )
    return _make


@pytest.fixture
def provider() -> FakeIdentityProvider:
    """Signed-out identity provider."""
    return FakeIdentityProvider()


@pytest.fixture
def profiles() -> GatedProfileStore:
    """Empty profile store."""
    return GatedProfileStore()


@pytest.fixture
def device_trust() -> InMemoryDeviceTrustStore:
    """Untrusted device."""
    return InMemoryDeviceTrustStore()


@pytest.fixture
def make_controller(provider, profiles, device_trust, clock):
    """Factory for controllers wired to the fakes; extra kwargs go to the constructor."""
    def _make(**kwargs: Any) -> SessionController:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("magic_link_redirect", "http://localhost:5173/setup-password")
        return SessionController(
            kwargs.pop("provider", provider),
            kwargs.pop("profiles", profiles),
            kwargs.pop("device_trust", device_trust),
            **kwargs,
        )
    return _make


@pytest.fixture
def signed_in(provider, profiles, make_session, make_profile):
    """
    Put a stored session and a matching profile in place.

    Call with password_set=False for a user who still has to pick a password.
    """
    def _sign_in(password_set: bool = True, expires_in: timedelta = timedelta(hours=2)) -> Session:
        session = make_session(expires_in=expires_in)
        provider.session = session
        provider.current_user = session.subject
        profiles._profiles[session.subject.id] = make_profile(password_set=password_set)
        return session
    return _sign_in
