"""
MongoDB client for scanning and patching job documents.

Uses the PyMongo async API.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.cursor import AsyncCursor

from num_search_remediation.config import Settings

logger = structlog.get_logger(__name__)


class MongoStore:
    """Async MongoDB client for one collection."""

    def __init__(self, settings: Settings):
        """
        Initialize MongoDB client.

        Args:
            settings: Application settings with connection details
        """
        self.uri = settings.mongo_uri
        self.db_name = settings.db_name
        self.collection_name = settings.collection_name
        self.batch_size = settings.batch_size
        self.no_cursor_timeout = settings.no_cursor_timeout
        self._client: Optional[AsyncMongoClient] = None

    async def connect(self) -> None:
        """Create client and verify the server is reachable."""
        self._client = AsyncMongoClient(self.uri)
        await self._client.admin.command("ping")
        logger.info(
            "mongo_client_connected",
            db=self.db_name,
            collection=self.collection_name,
        )

    async def close(self) -> None:
        """Close client."""
        if self._client:
            await self._client.close()
            self._client = None
            logger.info("mongo_client_closed")

    @property
    def collection(self) -> AsyncCollection:
        """Get the target collection."""
        if not self._client:
            raise RuntimeError("MongoStore not connected")
        return self._client[self.db_name][self.collection_name]

    async def count_matching(self, criterion: dict) -> int:
        """
        Count documents matching a filter.

        Args:
            criterion: MongoDB filter

        Returns:
            Number of matching documents
        """
        return await self.collection.count_documents(criterion)

    @asynccontextmanager
    async def open_cursor(self, criterion: dict) -> AsyncIterator[AsyncCursor]:
        """
        Open a streaming cursor over documents matching a filter.

        The cursor is closed when the context exits, however it exits.

        Args:
            criterion: MongoDB filter

        Yields:
            Async cursor over matching documents
        """
        cursor = self.collection.find(
            criterion,
            no_cursor_timeout=self.no_cursor_timeout,
            batch_size=self.batch_size,
        )
        try:
            yield cursor
        finally:
            await cursor.close()
            logger.debug("mongo_cursor_closed")

    async def update_one(self, record_id: Any, pipeline: list) -> bool:
        """
        Apply an update pipeline to one document.

        Args:
            record_id: Document _id
            pipeline: Aggregation pipeline update

        Returns:
            True if the document was modified
        """
        result = await self.collection.update_one({"_id": record_id}, pipeline)
        return result.modified_count == 1
