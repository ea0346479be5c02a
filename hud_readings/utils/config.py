"""Configuration utilities for the HUD Readings API."""

import logging
import re
from functools import lru_cache
from typing import Any, List, Optional, Union

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hud_readings.auth.basic import BasicCredentials


class Settings(BaseSettings):
    """Application settings loaded from environment variables and an optional .env file."""

    # Service configuration
    log_level: str = Field("INFO", description="Logging level")
    log_output: str = Field("stdout", description="Log destination (stdout or file)")
    log_file_path: Optional[str] = Field(None, description="Log file path when log_output is 'file'")
    cors_origins: List[str] = Field(["*"], description="CORS allowed origins")
    cors_allow_credentials: bool = Field(
        False, description="Let browsers send credentials cross-origin; needs explicit origins"
    )
    host: str = Field("0.0.0.0", description="Interface the HTTP listener binds to")
    port: int = Field(8080, description="Port the HTTP listener binds to")

    # MongoDB configuration
    connection_string: str = Field(..., description="MongoDB connection URI")
    database_name: str = Field("cfa-hud", description="Database holding the readings collection")
    readings_collection: str = Field("readings", description="Collection for readings")
    app_name: str = Field("CFA HUD", description="Application name reported to the MongoDB server")
    mongo_server_selection_timeout_ms: int = Field(5000, description="Server selection timeout in milliseconds")
    mongo_connect_timeout_ms: int = Field(5000, description="Connection timeout in milliseconds")
    mongo_socket_timeout_ms: int = Field(10000, description="Socket read/write timeout in milliseconds")

    # Basic auth
    api_username: Optional[str] = Field(None, description="Username required by the API")
    api_password: Optional[SecretStr] = Field(None, description="Password required by the API")

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: List[str]) -> List[str]:
        """
        Validate CORS origins.

        Args:
            v: List of CORS origins

        Returns:
            List[str]: Validated list of CORS origins
        """
        if len(v) == 1 and v[0] == "*":
            return v

        # If we have a single comma-separated string, split it
        if len(v) == 1 and "," in v[0]:
            v = [origin.strip() for origin in v[0].split(",")]

        validated = []
        for origin in v:
            if not origin.startswith(("http://", "https://")):
                origin = f"https://{origin}"
            validated.append(origin)
        return validated

    @field_validator("connection_string")
    @classmethod
    def check_required_fields(cls, v: Union[str, None], info: Any) -> str:
        """
        Validate that required fields are not blank.

        Raises:
            ValueError: If the field is empty
        """
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} is required")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )

    @property
    def credentials(self) -> Optional[BasicCredentials]:
        """
        Expected API credentials.

        Returns:
            Optional[BasicCredentials]: The configured pair, or None when either
            the username or the password is missing (unauthenticated mode)
        """
        if self.api_username is None or self.api_password is None:
            return None
        return BasicCredentials(
            username=self.api_username,
            password=self.api_password.get_secret_value(),
        )


_URI_CREDENTIALS = re.compile(r"(?P<scheme>mongodb(?:\+srv)?://)[^@/]+@")


def mask_connection_string(uri: str) -> str:
    """Hide the user info part of a MongoDB URI so it can be logged."""
    return _URI_CREDENTIALS.sub(r"\g<scheme>***REDACTED***@", uri)


@lru_cache()
def get_settings() -> Settings:
    """
    Create and cache settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()
