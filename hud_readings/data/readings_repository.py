"""Repository for patient readings."""

import logging
from typing import List, Sequence

from pydantic import ValidationError
from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.errors import BulkWriteError, PyMongoError

from hud_readings.data.mongodb import MongoDBClient
from hud_readings.metrics import readings_inserted_total, readings_storage_latency_seconds
from hud_readings.models.readings import Reading
from hud_readings.utils.error_handling import StorageError
from hud_readings.utils.query_filters import ReadingsQuery

logger = logging.getLogger(__name__)

# Largest integer BSON can encode; skips past it cannot match any document
MAX_BSON_INT64 = 2 ** 63 - 1


class ReadingsRepository:
    """Repository for readings in MongoDB."""

    def __init__(self, collection: Collection):
        """
        Initialize the repository.

        Args:
            collection: The readings collection
        """
        self.collection = collection

    @classmethod
    def from_client(cls, db_client: MongoDBClient) -> "ReadingsRepository":
        return cls(db_client.readings)

    def find_readings(self, query: ReadingsQuery) -> List[Reading]:
        """
        Get one page of readings matching a query.

        Args:
            query: Filter and pagination built from the request

        Returns:
            List[Reading]: Matching readings in insertion order, possibly empty

        Raises:
            StorageError: If the query or iterating its cursor fails
        """
        if query.skip > MAX_BSON_INT64:
            return []

        try:
            with readings_storage_latency_seconds.labels(operation="find").time():
                cursor = self.collection.find(
                    query.filter,
                    skip=query.skip,
                    limit=query.limit,
                    batch_size=query.limit,
                    sort=[("_id", ASCENDING)],
                )
                documents = list(cursor)
        except PyMongoError as e:
            logger.error(f"Error querying readings: {e}")
            raise StorageError(str(e), operation="find") from e

        try:
            return [Reading.from_document(document) for document in documents]
        except ValidationError as e:
            logger.error(f"Stored reading does not match the reading schema: {e}")
            raise StorageError(f"Stored reading is malformed: {e}", operation="find") from e

    def insert_readings(self, readings: Sequence[Reading]) -> int:
        """
        Insert readings in a single unordered bulk write.

        A failure of any document fails the whole call; documents the server
        already accepted are not rolled back.

        Args:
            readings: Readings to store

        Returns:
            int: Number of inserted readings

        Raises:
            StorageError: If the bulk write fails, fully or partially
        """
        if not readings:
            return 0

        documents = [reading.to_document() for reading in readings]
        try:
            with readings_storage_latency_seconds.labels(operation="insert").time():
                result = self.collection.insert_many(documents, ordered=False)
        except BulkWriteError as e:
            accepted = e.details.get("nInserted", 0)
            logger.error(
                f"Bulk insert of readings partially failed: {e}",
                extra={"attempted": len(documents), "accepted": accepted},
            )
            raise StorageError(str(e), operation="insert") from e
        except PyMongoError as e:
            logger.error(f"Error inserting readings: {e}")
            raise StorageError(str(e), operation="insert") from e

        inserted = len(result.inserted_ids)
        readings_inserted_total.inc(inserted)
        return inserted

    def health_check(self) -> None:
        """
        Issue a ``ping`` against the database holding the collection.

        Raises:
            StorageError: If the database cannot be reached
        """
        try:
            self.collection.database.command("ping")
        except PyMongoError as e:
            logger.error(f"Database health check failed: {e}")
            raise StorageError(str(e), operation="ping") from e
        logger.info(
            "Connected to DB successfully.",
            extra={"database": self.collection.database.name},
        )
