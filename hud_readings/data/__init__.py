"""Data access and persistence layer."""

from hud_readings.data.mongodb import MongoDBClient, create_mongo_client
from hud_readings.data.readings_repository import ReadingsRepository

__all__ = [
    "MongoDBClient",
    "create_mongo_client",
    "ReadingsRepository",
]
