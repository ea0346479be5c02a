"""Global test fixtures and configuration."""

import os
import sys
from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

# Make sure the package directory is in the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Set up environment variables for testing
os.environ.setdefault("CONNECTION_STRING", "mongodb://localhost:27017")

from hud_readings.data.readings_repository import ReadingsRepository
from hud_readings.main import create_app
from hud_readings.models.readings import Measurement, PatientRef, Reading
from hud_readings.utils.config import Settings


def make_settings(**overrides) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    values = {
        "connection_string": "mongodb://localhost:27017",
        "api_username": None,
        "api_password": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def build_reading(
    reading_at: datetime,
    bluetooth_id: str = "abc",
    created_at: datetime = None,
) -> Reading:
    return Reading(
        reading_at=reading_at,
        data=[Measurement(service_id="s1", alias="heart-rate", value=72.5, confidence=0.9)],
        patient=PatientRef(bluetooth_id=bluetooth_id, alias="Bed 4", data={"ward": "B"}),
        created_at=created_at or datetime.now(timezone.utc),
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def settings_factory():
    """Build Settings with overrides, e.g. settings_factory(api_username="hud")."""
    return make_settings


@pytest.fixture
def make_reading():
    """Build a stored Reading for a given reading time and patient."""
    return build_reading


@pytest.fixture
def readings_collection():
    """In-memory stand-in for the readings collection."""
    client = mongomock.MongoClient()
    return client["cfa-hud"]["readings"]


@pytest.fixture
def repository(readings_collection):
    return ReadingsRepository(readings_collection)


@pytest.fixture
def app(settings, repository):
    return create_app(settings, repository)


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return TestClient(app)


@pytest.fixture
def new_reading_payload():
    """A single reading as posted by a headset."""
    return {
        "reading_at": "2024-01-01T00:00:00Z",
        "data": [{"service_id": "s1", "value": 1.5, "confidence": 0.9}],
        "patient": {"bluetooth_id": "abc"},
    }
