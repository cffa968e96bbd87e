"""Pytest configuration for service tests."""

import pytest

from dalmuti.repositories.game_repository import InMemoryGameRepository
from dalmuti.services.game_service import GameService


@pytest.fixture
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def repository():
    return InMemoryGameRepository()


@pytest.fixture
def service(repository):
    return GameService(repository)
