"""Tests for the password policy."""

from modules.auth.password_policy import MIN_PASSWORD_LENGTH, check_password


class TestCheckPassword:
    def test_strong_password(self):
        """A password meeting every rule has no errors or warnings."""
        check = check_password("Pickle8all!")
        assert check.ok is True
        assert check.errors == []
        assert check.warnings == []

    def test_too_short(self):
        """Passwords shorter than the minimum are rejected."""
        check = check_password("Ab1!")
        assert check.ok is False
        assert f"at least {MIN_PASSWORD_LENGTH} characters" in check.errors[0]

    def test_requires_digit(self):
        """A digit is required."""
        check = check_password("NoDigitsHere!")
        assert check.errors == ["Password must contain at least 1 number"]

    def test_only_ascii_digits_count(self):
        """Digits from other scripts do not satisfy the number rule."""
        check = check_password("Passwords٣٤!")
        assert check.ok is False
        assert check.errors == ["Password must contain at least 1 number"]

    def test_uppercase_and_special_are_recommendations(self):
        """Missing uppercase and special characters only warn."""
        check = check_password("pickleball1")
        assert check.ok is True
        assert check.warnings == [
            "Password should contain at least 1 uppercase letter",
            "Password should contain at least 1 special character",
        ]

    def test_reports_every_error(self):
        """All failing requirements are reported together."""
        check = check_password("abc")
        assert len(check.errors) == 2
