"""
Password requirements for organizer accounts.

Length and a digit are required; an uppercase letter and a special
character are only recommended and reported as warnings.
"""

import re

from pydantic import BaseModel, Field

MIN_PASSWORD_LENGTH = 8

_DIGIT = re.compile(r"[0-9]")
_UPPERCASE = re.compile(r"[A-Z]")
_SPECIAL = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


class PasswordCheck(BaseModel):
    """Result of checking a candidate password."""

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def check_password(password: str) -> PasswordCheck:
    """Check a candidate password against the policy."""
    check = PasswordCheck()

    if len(password) < MIN_PASSWORD_LENGTH:
        check.errors.append(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not _DIGIT.search(password):
        check.errors.append("Password must contain at least 1 number")

    if not _UPPERCASE.search(password):
        check.warnings.append("Password should contain at least 1 uppercase letter")
    if not _SPECIAL.search(password):
        check.warnings.append("Password should contain at least 1 special character")

    return check
