"""Pytest configuration for API tests."""

import pytest
from fastapi.testclient import TestClient

from dalmuti.main import create_app
from dalmuti.repositories.game_repository import InMemoryGameRepository
from dalmuti.services.game_service import GameService


@pytest.fixture
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def client():
    """Test client around an in-memory game service, without MongoDB or timers."""
    app = create_app(GameService(InMemoryGameRepository()))
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
