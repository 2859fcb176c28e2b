from __future__ import annotations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from deploydeck.settings import Settings


logger = logging.getLogger("deploydeck.db")


class MongoDatabase:
    """Process-scoped MongoDB handle with explicit open/close."""

    def __init__(self, uri: str, db_name: str, *, server_selection_timeout_ms: int = 3000):
        self.uri = uri
        self.db_name = db_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client: Optional[AsyncIOMotorClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoDatabase":
        return cls(settings.mongodb_uri, settings.mongodb_db_name)

    def open(self) -> AsyncIOMotorDatabase:
        if self._client is None:
            self._client = AsyncIOMotorClient(
                self.uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                tz_aware=True,
            )
            logger.info("MongoDB client opened (db=%s)", self.db_name)
        return self._client[self.db_name]

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self._client is None:
            raise RuntimeError("MongoDB handle is not open; call open() first.")
        return self._client[self.db_name]

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("MongoDB ping failed: %s", exc)
            return False
        return True

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("MongoDB client closed")
