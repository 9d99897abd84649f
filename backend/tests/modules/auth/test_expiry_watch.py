"""Tests for the session expiry watch and refresh."""

import asyncio
from datetime import timedelta

import pytest

from modules.auth.exceptions import ProviderError
from modules.auth.expiry_watch import ExpiryWatch, in_refresh_window
from modules.auth.models import AuthEventKind


FAST = timedelta(milliseconds=5)


async def wait_ticks(controller, count: int = 4) -> None:
    """Let a fast expiry watch tick a few times."""
    await asyncio.sleep(FAST.total_seconds() * count)
    await controller.settle()


class TestRefreshWindow:
    def test_inside_window(self):
        """A valid session expiring within the threshold should refresh."""
        assert in_refresh_window(timedelta(minutes=55), timedelta(hours=1)) is True

    def test_outside_window(self):
        """A session with more time than the threshold should not refresh."""
        assert in_refresh_window(timedelta(hours=2), timedelta(hours=1)) is False
        assert in_refresh_window(timedelta(hours=1), timedelta(hours=1)) is False

    def test_expired_session(self):
        """An already expired session is not refreshed by the watch."""
        assert in_refresh_window(timedelta(0), timedelta(hours=1)) is False


class TestExpiryWatch:
    @pytest.mark.asyncio
    async def test_ticks_until_stopped(self):
        """The watch runs its tick on every interval until stopped."""
        ticks = []

        async def tick():
            ticks.append(1)

        watch = ExpiryWatch(tick, FAST)
        watch.start()
        await asyncio.sleep(FAST.total_seconds() * 5)
        watch.stop()
        count = len(ticks)
        await asyncio.sleep(FAST.total_seconds() * 3)

        assert count >= 2
        assert len(ticks) == count
        assert watch.running is False

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        """Starting a running watch keeps the existing task."""
        async def tick():
            pass

        watch = ExpiryWatch(tick, FAST)
        watch.start()
        task = watch._task
        watch.start()

        assert watch._task is task
        watch.stop()

    @pytest.mark.asyncio
    async def test_tick_failure_keeps_running(self):
        """A failing tick is logged and the watch continues."""
        ticks = []

        async def tick():
            ticks.append(1)
            raise RuntimeError("boom")

        watch = ExpiryWatch(tick, FAST)
        watch.start()
        await asyncio.sleep(FAST.total_seconds() * 5)

        assert len(ticks) >= 2
        assert watch.running is True
        watch.stop()


class TestControllerExpiry:
    @pytest.mark.asyncio
    async def test_refreshes_inside_window(self, make_controller, provider, signed_in,
                                           make_session):
        """A session with 55 minutes left is refreshed by the watch."""
        signed_in(expires_in=timedelta(minutes=55))
        provider.refreshed_session = make_session(expires_in=timedelta(hours=2), token="fresh")

        async with make_controller(check_interval=FAST) as controller:
            assert controller.state.user is not None
            assert controller.state.password_set is True

            await wait_ticks(controller)

            assert len(provider.called("refresh_session")) == 1
            assert controller.state.session.access_token == "fresh"
            assert controller.state.session_time_remaining == timedelta(hours=2)

    @pytest.mark.asyncio
    async def test_no_refresh_outside_window(self, make_controller, provider, signed_in, clock):
        """Ticks only update the remaining time when expiry is far away."""
        signed_in(expires_in=timedelta(hours=2))

        async with make_controller(check_interval=FAST) as controller:
            clock.advance(timedelta(minutes=10))
            await wait_ticks(controller)

            assert provider.called("refresh_session") == []
            assert controller.state.session_time_remaining == timedelta(minutes=110)

    @pytest.mark.asyncio
    async def test_no_refresh_for_expired_session(self, make_controller, provider, signed_in,
                                                  clock):
        """An expired session is left to the provider."""
        signed_in(expires_in=timedelta(minutes=5))

        async with make_controller(check_interval=FAST) as controller:
            clock.advance(timedelta(minutes=10))
            await wait_ticks(controller)

            assert provider.called("refresh_session") == []
            assert controller.state.session_time_remaining == timedelta(0)

    @pytest.mark.asyncio
    async def test_tick_skipped_while_refresh_in_flight(self, make_controller, provider,
                                                        signed_in, make_session):
        """A slow refresh is not started again by later ticks."""
        signed_in(expires_in=timedelta(minutes=55))
        provider.refreshed_session = make_session(expires_in=timedelta(hours=2))
        provider.gates["refresh_session"] = asyncio.Event()

        async with make_controller(check_interval=FAST) as controller:
            await asyncio.sleep(FAST.total_seconds() * 6)
            assert len(provider.called("refresh_session")) == 1

            provider.gates["refresh_session"].set()
            await controller.settle()
            assert controller.state.session_time_remaining == timedelta(hours=2)

    @pytest.mark.asyncio
    async def test_watch_stops_on_sign_out_event(self, make_controller, provider, signed_in):
        """Clearing the session stops the watch."""
        signed_in()
        async with make_controller(check_interval=FAST) as controller:
            assert controller.expiry_watch_running is True

            provider.emit(AuthEventKind.SIGNED_OUT, None)
            await controller.settle()

            assert controller.expiry_watch_running is False


class TestRefreshSession:
    @pytest.mark.asyncio
    async def test_refresh_writes_session(self, make_controller, provider, signed_in,
                                          make_session):
        """A manual refresh replaces the session."""
        signed_in()
        provider.refreshed_session = make_session(expires_in=timedelta(hours=3), token="fresh")
        async with make_controller() as controller:
            await controller.refresh_session()

            assert controller.state.session.access_token == "fresh"
            assert controller.state.session_time_remaining == timedelta(hours=3)

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_state(self, make_controller, provider, signed_in):
        """A failed refresh is logged and changes nothing."""
        session = signed_in()
        provider.errors["refresh_session"] = ProviderError("network down")
        async with make_controller() as controller:
            before = controller.state

            await controller.refresh_session()

            assert controller.state == before
            assert controller.state.session == session

    @pytest.mark.asyncio
    async def test_refresh_without_session_keeps_state(self, make_controller, provider,
                                                       signed_in):
        """A refresh that returns nothing changes nothing."""
        session = signed_in()
        provider.refreshed_session = None
        async with make_controller() as controller:
            await controller.refresh_session()
            assert controller.state.session == session

    @pytest.mark.asyncio
    async def test_concurrent_refresh_is_skipped(self, make_controller, provider, signed_in,
                                                 make_session):
        """A second refresh while one is in flight is a no-op."""
        signed_in()
        provider.refreshed_session = make_session(token="fresh")
        provider.gates["refresh_session"] = asyncio.Event()
        async with make_controller() as controller:
            first = asyncio.create_task(controller.refresh_session())
            await asyncio.sleep(0)

            await controller.refresh_session()
            assert len(provider.called("refresh_session")) == 1

            provider.gates["refresh_session"].set()
            await first
            assert controller.state.session.access_token == "fresh"

    @pytest.mark.asyncio
    async def test_refresh_superseded_by_sign_out(self, make_controller, provider, signed_in,
                                                  make_session):
        """A refresh finishing after a sign-out event does not restore the session."""
        signed_in()
        provider.refreshed_session = make_session(token="fresh")
        provider.gates["refresh_session"] = asyncio.Event()
        async with make_controller() as controller:
            refresh = asyncio.create_task(controller.refresh_session())
            await asyncio.sleep(0)

            provider.emit(AuthEventKind.SIGNED_OUT, None)
            await controller.settle()

            provider.gates["refresh_session"].set()
            await refresh

            assert controller.state.session is None
            assert controller.state.user is None
