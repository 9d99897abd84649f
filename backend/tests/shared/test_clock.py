"""Tests for shared/clock.py."""

from datetime import timezone

from shared.clock import Clock, utc_now


class TestClock:
    def test_utc_now_is_timezone_aware(self):
        """The default clock should return aware UTC datetimes."""
        assert utc_now().tzinfo is timezone.utc

    def test_utc_now_satisfies_protocol(self):
        """utc_now should be usable wherever a Clock is expected."""
        assert isinstance(utc_now, Clock)
