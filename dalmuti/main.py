"""FastAPI main application."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from dalmuti.api.routes import dalmuti_error_handler, request_validation_handler, router
from dalmuti.config import settings
from dalmuti.errors import DalmutiError
from dalmuti.repositories.game_repository import InMemoryGameRepository, MongoGameRepository
from dalmuti.services.game_service import GameService
from dalmuti.services.log_service import LogService
from dalmuti.services.phase_scheduler import PhaseScheduler

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup and shutdown events.

    Handles:
    - Database connection, with an in-memory fallback
    - The tax phase scheduler, resumed for stored rooms
    - Cleanup on shutdown
    """
    # Startup
    if getattr(app.state, "game_service", None) is not None:
        # Service injected up front (tests)
        yield
        return

    mongo_repository: MongoGameRepository | None = MongoGameRepository()
    try:
        await mongo_repository.connect()
    except (ConnectionError, TimeoutError, OSError, PyMongoError):
        logger.warning("MongoDB not available, keeping games in memory")
        mongo_repository = None

    scheduler = PhaseScheduler(settings.tax_phase_delay_seconds)
    game_service = GameService(
        repository=mongo_repository or InMemoryGameRepository(),
        scheduler=scheduler,
        log_service=LogService(),
    )
    app.state.game_service = game_service

    # Rooms left in the tax phase by a restart need their timer again
    if mongo_repository is not None:
        game_service.resume_phase_timers(await mongo_repository.find_active_games())

    yield

    # Shutdown
    await scheduler.shutdown()
    if mongo_repository is not None:
        await mongo_repository.disconnect()


def create_app(game_service: GameService | None = None) -> FastAPI:
    """Build the application, optionally around an existing game service."""
    application = FastAPI(
        title="Dalmuti API",
        description="Rules engine for Dalmuti rooms: roles, tax, revolutions and tricks",
        version="1.0.0",
        lifespan=lifespan,
    )
    application.state.game_service = game_service

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(DalmutiError, dalmuti_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.include_router(router)

    @application.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return application


app = create_app()


def main() -> None:
    """Run the application."""
    uvicorn.run(
        "dalmuti.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
