"""Tests for the main FastAPI application and process startup."""

import logging
import os
from unittest import mock

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from hud_readings import main as main_module
from hud_readings.main import connect_database, create_app, load_settings
from hud_readings.utils.config import Settings
from hud_readings.utils.error_handling import StartupFailure


@pytest.fixture
def auth_app(settings_factory, repository):
    settings = settings_factory(api_username="hud", api_password="s3cret")
    return create_app(settings, repository)


@pytest.fixture
def auth_client(auth_app):
    return TestClient(auth_app)


def test_status(client):
    response = client.get("/status")
    assert response.status_code == 200
    assert response.text == "Hi"


def test_request_id_generated_and_propagated(client):
    generated = client.get("/status")
    assert generated.headers["X-Request-ID"]

    propagated = client.get("/status", headers={"X-Request-ID": "req-42"})
    assert propagated.headers["X-Request-ID"] == "req-42"


def test_metrics_endpoint(client):
    client.get("/readings")
    response = client.get("/metrics/")
    assert response.status_code == 200
    assert b"readings_requests_total" in response.content


class TestBasicAuth:
    """Credentials are checked in front of every route."""

    def test_unauthenticated_mode_allows_requests_without_credentials(self, client):
        assert client.get("/readings").status_code == 200
        assert client.get("/status").status_code == 200

    def test_correct_credentials(self, auth_client):
        response = auth_client.get("/readings", auth=("hud", "s3cret"))
        assert response.status_code == 200

    @pytest.mark.parametrize("credentials", [("hud", "wrong"), ("other", "s3cret"), ("", "")])
    def test_wrong_credentials(self, auth_client, credentials):
        response = auth_client.get("/readings", auth=credentials)
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid Credentials"}
        assert response.headers["WWW-Authenticate"] == "Basic"

    def test_missing_header(self, auth_client):
        response = auth_client.get("/status")
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid Credentials"}

    def test_other_scheme_rejected(self, auth_client):
        response = auth_client.get("/status", headers={"Authorization": "Bearer abc"})
        assert response.status_code == 401

    def test_post_guarded(self, auth_client, readings_collection, new_reading_payload):
        response = auth_client.post("/readings", json={"readings": [new_reading_payload]})
        assert response.status_code == 401
        assert readings_collection.count_documents({}) == 0

    def test_only_username_configured_is_unauthenticated(self, settings_factory, repository):
        settings = settings_factory(api_username="hud")
        client = TestClient(create_app(settings, repository))
        assert client.get("/status").status_code == 200

    def test_unauthenticated_mode_is_logged(self, settings, repository, caplog):
        with caplog.at_level(logging.WARNING, logger="hud_readings.main"):
            create_app(settings, repository)
        assert any("unauthenticated" in r.getMessage() for r in caplog.records)


class TestStartup:
    """The service refuses to start without a reachable database."""

    def test_missing_connection_string(self):
        with mock.patch.dict(os.environ, {}, clear=True), \
             mock.patch.object(main_module, "get_settings", side_effect=lambda: Settings(_env_file=None)):
            with pytest.raises(StartupFailure) as exc_info:
                load_settings()
        assert "CONNECTION_STRING" in str(exc_info.value)

    def test_failed_ping(self, settings):
        mock_client = mock.MagicMock()
        mock_client.__getitem__.return_value.__getitem__.return_value.database.command.side_effect = (
            ServerSelectionTimeoutError("no servers")
        )
        with mock.patch("hud_readings.data.mongodb.create_mongo_client", return_value=mock_client):
            with pytest.raises(StartupFailure) as exc_info:
                connect_database(settings)
        assert "no servers" in str(exc_info.value)
        mock_client.close.assert_called_once()

    def test_successful_connection(self, settings):
        mock_client = mock.MagicMock()
        with mock.patch("hud_readings.data.mongodb.create_mongo_client", return_value=mock_client):
            db_client, repository = connect_database(settings)
        assert db_client.client is mock_client
        mock_client.__getitem__.assert_called_with(settings.database_name)

    def test_main_exits_without_serving_on_startup_failure(self):
        with mock.patch.object(main_module, "load_settings", side_effect=StartupFailure("No connection string")), \
             mock.patch.object(main_module, "setup_json_logging"), \
             mock.patch.object(main_module.uvicorn, "run") as mock_run:
            assert main_module.main() == 1
        mock_run.assert_not_called()

    def test_main_serves_after_health_check(self, settings, repository):
        with mock.patch.object(main_module, "load_settings", return_value=settings), \
             mock.patch.object(main_module, "setup_json_logging"), \
             mock.patch.object(main_module, "connect_database", return_value=(mock.MagicMock(), repository)), \
             mock.patch.object(main_module.uvicorn, "run") as mock_run:
            assert main_module.main() == 0
        _, kwargs = mock_run.call_args
        assert kwargs["host"] == settings.host
        assert kwargs["port"] == settings.port


class TestCors:
    """Cross-origin requests never carry credentials unless configured."""

    preflight_headers = {
        "Origin": "https://dashboard.example.com",
        "Access-Control-Request-Method": "GET",
    }

    def test_preflight_without_credentials_by_default(self, client):
        response = client.options("/readings", headers=self.preflight_headers)

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "access-control-allow-credentials" not in response.headers

    def test_credentials_allowed_for_explicit_origins(self, settings_factory, repository):
        settings = settings_factory(
            cors_origins=["https://dashboard.example.com"],
            cors_allow_credentials=True,
        )
        client = TestClient(create_app(settings, repository))

        response = client.options("/readings", headers=self.preflight_headers)

        assert response.headers["access-control-allow-origin"] == "https://dashboard.example.com"
        assert response.headers["access-control-allow-credentials"] == "true"
