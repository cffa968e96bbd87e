"""Game repositories: MongoDB persistence and an in-memory fallback."""

import logging
from typing import Any, Protocol

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from dalmuti.config import settings
from dalmuti.errors import StorageError
from dalmuti.models.enums import Phase
from dalmuti.models.game import Game
from dalmuti.services.game_serializer import deserialize_game, serialize_game

logger = logging.getLogger(__name__)


class GameRepository(Protocol):
    """Storage boundary for games, keyed by room id."""

    async def find(self, room_id: str) -> Game | None: ...

    async def save(self, game: Game) -> bool: ...

    async def update(self, game: Game) -> bool: ...

    async def delete(self, room_id: str) -> bool: ...


class MongoGameRepository:
    """Repository for game persistence using MongoDB.

    Handles game CRUD operations with the async Motor driver. Every save
    stores the full game state so rooms survive a restart.
    """

    def __init__(self) -> None:
        """Initialize repository."""
        self.client: AsyncIOMotorClient[dict[str, Any]] | None = None
        self.db: AsyncIOMotorDatabase[dict[str, Any]] | None = None

    async def connect(self) -> None:
        """Connect to MongoDB and create indexes."""
        try:
            self.client = AsyncIOMotorClient(
                settings.mongodb_uri,
                serverSelectionTimeoutMS=2000,
            )
            self.db = self.client[settings.mongodb_database]

            await self.client.admin.command("ping")
            logger.info("Connected to MongoDB: %s", settings.mongodb_database)

            await self._create_indexes()

        except PyMongoError:
            logger.warning("MongoDB not available")
            raise

    async def _create_indexes(self) -> None:
        """Create indexes for finding rooms by phase and age."""
        if self.db is None:
            return

        try:
            await self.db.games.create_index("phase")
            await self.db.games.create_index([("phase", ASCENDING), ("updated_at", DESCENDING)])
            logger.info("MongoDB indexes created successfully")
        except PyMongoError:
            logger.exception("Error creating indexes")

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def save(self, game: Game) -> bool:
        """Save or update a game (upsert on the room id).

        Returns:
            True if successful
        """
        if self.db is None:
            return False

        try:
            result = await self.db.games.replace_one(
                {"_id": game.room_id},
                serialize_game(game),
                upsert=True,
            )
            success = result.acknowledged
        except PyMongoError:
            logger.exception("Error saving game %s", game.room_id)
            return False
        else:
            if success:
                logger.debug("Game %s saved to database", game.room_id)
            return success

    async def update(self, game: Game) -> bool:
        """Update existing game."""
        return await self.save(game)

    async def find(self, room_id: str) -> Game | None:
        """Find and restore a game by room id.

        Raises:
            StorageError: If MongoDB could not be queried
        """
        if self.db is None:
            return None

        try:
            result = await self.db.games.find_one({"_id": room_id})
        except PyMongoError as e:
            logger.exception("Error finding game %s", room_id)
            raise StorageError(f"Could not load game {room_id}") from e
        else:
            if result:
                return deserialize_game(result)
            return None

    async def find_active_games(self, limit: int = 100) -> list[Game]:
        """Find rooms whose game has not ended, most recently updated first."""
        if self.db is None:
            return []

        try:
            cursor = (
                self.db.games.find({"phase": {"$ne": Phase.GAME_END.value}})
                .sort("updated_at", DESCENDING)
                .limit(limit)
            )

            games = []
            async for doc in cursor:
                try:
                    games.append(deserialize_game(doc))
                except (KeyError, ValueError) as e:
                    logger.warning("Error deserializing game %s: %s", doc.get("_id"), e)

        except PyMongoError:
            logger.exception("Error finding active games")
            return []
        else:
            logger.info("Found %d active games in database", len(games))
            return games

    async def delete(self, room_id: str) -> bool:
        """Delete a game.

        Returns:
            True if a document was removed
        """
        if self.db is None:
            return False

        try:
            result = await self.db.games.delete_one({"_id": room_id})
        except PyMongoError as e:
            logger.exception("Error deleting game %s", room_id)
            raise StorageError(f"Could not delete game {room_id}") from e
        else:
            return result.deleted_count > 0


class InMemoryGameRepository:
    """Process-local repository, used in tests and when MongoDB is down.

    Games are stored as serialized documents, so callers never share a
    live aggregate through the repository.
    """

    def __init__(self) -> None:
        """Initialize repository."""
        self._documents: dict[str, dict[str, Any]] = {}

    async def find(self, room_id: str) -> Game | None:
        document = self._documents.get(room_id)
        if document is None:
            return None
        return deserialize_game(document)

    async def save(self, game: Game) -> bool:
        self._documents[game.room_id] = serialize_game(game)
        return True

    async def update(self, game: Game) -> bool:
        return await self.save(game)

    async def delete(self, room_id: str) -> bool:
        return self._documents.pop(room_id, None) is not None

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._documents
