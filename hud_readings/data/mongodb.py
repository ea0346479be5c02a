"""MongoDB connection utilities."""

import logging
from typing import Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from hud_readings.utils.config import Settings, mask_connection_string
from hud_readings.utils.error_handling import StorageError

logger = logging.getLogger(__name__)


class MongoDBClient:
    """
    MongoDB client wrapper owning the process-wide connection pool.

    One instance is created at startup and shared by every request; the
    underlying ``MongoClient`` is thread-safe.
    """

    def __init__(self, settings: Settings, client: Optional[MongoClient] = None):
        """
        Initialize the MongoDB client.

        Args:
            settings: Application settings
            client: Pre-built client, used instead of connecting with settings.connection_string
        """
        self.settings = settings
        self.client = client if client is not None else create_mongo_client(settings)

    @property
    def database(self) -> Database:
        return self.client[self.settings.database_name]

    def get_collection(self, name: str) -> Collection:
        return self.database[name]

    @property
    def readings(self) -> Collection:
        return self.get_collection(self.settings.readings_collection)

    def close(self) -> None:
        self.client.close()


def create_mongo_client(settings: Settings) -> MongoClient:
    """
    Create a ``MongoClient`` from settings. No network I/O happens until first use.

    Raises:
        StorageError: If the connection string cannot be parsed
    """
    logger.debug(
        "Creating MongoDB client",
        extra={"uri": mask_connection_string(settings.connection_string)},
    )
    try:
        return MongoClient(
            settings.connection_string,
            appname=settings.app_name,
            serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
            connectTimeoutMS=settings.mongo_connect_timeout_ms,
            socketTimeoutMS=settings.mongo_socket_timeout_ms,
        )
    except (PyMongoError, ValueError) as e:
        raise StorageError(str(e), operation="connect") from e
