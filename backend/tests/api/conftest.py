"""Pytest fixtures for API tests."""

from contextlib import ExitStack
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from api.app import create_app


@pytest.fixture
def make_client():
    """
    Start the app around a given session controller.

    The lifespan starts the controller and installs it in the container,
    exactly as in production.
    """
    stack = ExitStack()

    def _make(controller) -> TestClient:
        stack.enter_context(
            patch("api.app.create_session_controller", AsyncMock(return_value=controller))
        )
        return stack.enter_context(TestClient(create_app()))

    yield _make
    stack.close()


@pytest.fixture
def client(make_client, make_controller):
    """App client backed by a controller wired to the fakes."""
    return make_client(make_controller())
