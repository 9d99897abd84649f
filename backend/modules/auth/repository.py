"""
Profile storage.

SupabaseProfileRepository reads and writes the `users` table, keyed by the
provider subject in the `auth_id` column. InMemoryProfileStore keeps the
same contract in a dict for tests and local development.
"""

from datetime import datetime
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError

from shared.repository import BaseRepository
from .exceptions import ProfileStoreError
from .models import NewProfile, Profile, UserRole


USERS_TABLE = "users"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class SupabaseProfileRepository(BaseRepository[Profile]):
    """
    Repository for profile rows.

    All query failures surface as ProfileStoreError; a missing row is not
    an error and returns None.
    """

    async def fetch_by_subject(self, subject_id: str) -> Optional[Profile]:
        """Get the profile for a provider subject."""
        try:
            result = await (
                self._db.table(USERS_TABLE)
                .select("*")
                .eq("auth_id", subject_id)
                .limit(1)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            raise ProfileStoreError(f"Error fetching user profile: {e}", subject_id) from e

        if not result.data:
            return None
        return self._map_to_profile(result.data[0])

    async def insert(self, profile: NewProfile) -> None:
        """Insert a profile row for a freshly created identity."""
        try:
            await self._db.table(USERS_TABLE).insert({
                "auth_id": profile.subject_id,
                "email": profile.email,
                "display_name": profile.display_name,
                "role": profile.role.value,
                "password_set": profile.password_set,
            }).execute()
        except (APIError, httpx.HTTPError) as e:
            raise ProfileStoreError(
                f"Error creating user profile: {e}", profile.subject_id
            ) from e

    async def update_by_subject(self, subject_id: str, fields: dict[str, Any]) -> None:
        """Update columns of the profile linked to a subject."""
        try:
            await (
                self._db.table(USERS_TABLE)
                .update(fields)
                .eq("auth_id", subject_id)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            raise ProfileStoreError(f"Error updating user profile: {e}", subject_id) from e

    async def mark_password_set(self, subject_id: str) -> None:
        """Persist that the user has chosen a password."""
        await self.update_by_subject(subject_id, {"password_set": True})

    def _map_to_profile(self, row: dict[str, Any]) -> Profile:
        """Map a database row to a Profile model."""
        return Profile(
            id=row["id"],
            subject_id=row["auth_id"],
            email=row["email"],
            display_name=row["display_name"],
            role=UserRole(row.get("role") or UserRole.ORGANIZER.value),
            password_set=bool(row.get("password_set", False)),
            is_active=bool(row.get("is_active", True)),
            last_login=_parse_timestamp(row.get("last_login")),
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )


class InMemoryProfileStore:
    """
    Profile store backed by a dict.

    For testing and development. Use SupabaseProfileRepository in production.
    """

    def __init__(self, profiles: Optional[list[Profile]] = None):
        self._profiles: dict[str, Profile] = {
            p.subject_id: p for p in (profiles or [])
        }
        self._next_id = len(self._profiles) + 1

    async def fetch_by_subject(self, subject_id: str) -> Optional[Profile]:
        return self._profiles.get(subject_id)

    async def insert(self, profile: NewProfile) -> None:
        if profile.subject_id in self._profiles:
            raise ProfileStoreError("Profile already exists", profile.subject_id)
        self._profiles[profile.subject_id] = Profile(
            id=f"profile-{self._next_id}",
            subject_id=profile.subject_id,
            email=profile.email,
            display_name=profile.display_name,
            role=profile.role,
            password_set=profile.password_set,
        )
        self._next_id += 1

    async def update_by_subject(self, subject_id: str, fields: dict[str, Any]) -> None:
        current = self._profiles.get(subject_id)
        if current is None:
            raise ProfileStoreError("Profile not found", subject_id)
        self._profiles[subject_id] = current.model_copy(update=fields)

    async def mark_password_set(self, subject_id: str) -> None:
        await self.update_by_subject(subject_id, {"password_set": True})
