"""
Supabase Auth adapter for the identity provider interface.

Everything Supabase-specific stays here: the auth event names, the session
payload shape and the auth error classes. The session controller only sees
AuthEventKind, Session and the module's exceptions.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from supabase import AsyncClient, AuthApiError, AuthError, AuthRetryableError

from shared.clock import Clock, utc_now
from .exceptions import (
    InvalidCredentialsError,
    ProviderError,
    ProviderRejectedError,
)
from .interfaces import AuthEventCallback, Unsubscribe
from .models import AuthEventKind, Session, Subject

logger = logging.getLogger(__name__)


SUPABASE_EVENT_KINDS: dict[str, AuthEventKind] = {
    "INITIAL_SESSION": AuthEventKind.INITIAL_SESSION,
    "SIGNED_IN": AuthEventKind.SIGNED_IN,
    "SIGNED_OUT": AuthEventKind.SIGNED_OUT,
    "TOKEN_REFRESHED": AuthEventKind.TOKEN_REFRESHED,
    "USER_UPDATED": AuthEventKind.USER_UPDATED,
    "USER_DELETED": AuthEventKind.USER_DELETED,
    "PASSWORD_RECOVERY": AuthEventKind.PASSWORD_RECOVERY,
}


def map_event_kind(event: Any) -> Optional[AuthEventKind]:
    """Map a Supabase auth event name to an AuthEventKind (None if unknown)."""
    name = getattr(event, "value", event)
    return SUPABASE_EVENT_KINDS.get(str(name))


def map_subject(raw_user: Any) -> Optional[Subject]:
    """Map a Supabase User to a Subject."""
    if raw_user is None or not getattr(raw_user, "id", None):
        return None
    return Subject(id=str(raw_user.id), email=getattr(raw_user, "email", None))


def map_session(raw: Any, clock: Clock = utc_now) -> Optional[Session]:
    """
    Map a Supabase Session to a Session.

    Supabase reports expires_at in epoch seconds; older payloads only carry
    expires_in, which is counted from now.
    """
    if raw is None:
        return None

    if getattr(raw, "expires_at", None):
        expires_at = datetime.fromtimestamp(raw.expires_at, tz=timezone.utc)
    else:
        expires_at = clock() + timedelta(seconds=getattr(raw, "expires_in", 0) or 0)

    return Session(
        access_token=raw.access_token,
        refresh_token=getattr(raw, "refresh_token", "") or "",
        expires_at=expires_at,
        subject=map_subject(getattr(raw, "user", None)),
    )


def _translate(e: AuthError, rejected: type = ProviderRejectedError) -> Exception:
    """Translate a Supabase auth error into a module exception."""
    if isinstance(e, AuthRetryableError):
        return ProviderError(e.message, status=getattr(e, "status", None))
    if isinstance(e, AuthApiError):
        if rejected is InvalidCredentialsError:
            return InvalidCredentialsError(e.message)
        return ProviderRejectedError(e.message, reason=getattr(e, "code", None))
    return ProviderError(e.message)


class SupabaseIdentityProvider:
    """
    Identity provider backed by Supabase Auth.

    Session persistence and token auto-refresh are handled by the Supabase
    client itself; this adapter only translates calls, payloads and errors.
    """

    def __init__(self, client: AsyncClient, clock: Clock = utc_now):
        self._client = client
        self._clock = clock

    async def get_session(self) -> Optional[Session]:
        try:
            raw = await self._client.auth.get_session()
        except AuthError as e:
            raise _translate(e) from e
        return map_session(raw, self._clock)

    async def get_current_user(self) -> Optional[Subject]:
        try:
            response = await self._client.auth.get_user()
        except AuthError as e:
            raise _translate(e) from e
        if response is None:
            return None
        return map_subject(response.user)

    async def sign_in_with_password(self, email: str, password: str) -> None:
        try:
            await self._client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except AuthError as e:
            raise _translate(e, rejected=InvalidCredentialsError) from e

    async def sign_in_with_one_time_link(
        self,
        email: str,
        *,
        create_if_missing: bool,
        redirect_to: Optional[str] = None,
    ) -> None:
        options: dict[str, Any] = {"should_create_user": create_if_missing}
        if redirect_to:
            options["email_redirect_to"] = redirect_to

        try:
            await self._client.auth.sign_in_with_otp({
                "email": email,
                "options": options,
            })
        except AuthError as e:
            raise _translate(e) from e

    async def sign_up(
        self,
        email: str,
        placeholder_credential: str,
        attributes: dict[str, Any],
    ) -> Optional[Subject]:
        try:
            response = await self._client.auth.sign_up({
                "email": email,
                "password": placeholder_credential,
                "options": {"data": attributes},
            })
        except AuthError as e:
            raise _translate(e) from e
        return map_subject(response.user)

    async def update_credential(self, new_password: str) -> None:
        try:
            await self._client.auth.update_user({"password": new_password})
        except AuthError as e:
            raise _translate(e) from e

    async def sign_out(self) -> None:
        try:
            await self._client.auth.sign_out()
        except AuthError as e:
            raise _translate(e) from e

    async def refresh_session(self) -> Optional[Session]:
        try:
            response = await self._client.auth.refresh_session()
        except AuthError as e:
            raise _translate(e) from e
        return map_session(response.session, self._clock)

    def subscribe(self, callback: AuthEventCallback) -> Unsubscribe:
        def forward(event: Any, raw_session: Any) -> None:
            kind = map_event_kind(event)
            if kind is None:
                logger.debug(f"Ignoring unsupported auth event: {event}")
                return
            callback(kind, map_session(raw_session, self._clock))

        subscription = self._client.auth.on_auth_state_change(forward)
        return subscription.unsubscribe
