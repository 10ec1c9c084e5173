"""
Centralized application configuration management.
Loads settings from environment variables and .env files.
"""
import os
import tomllib
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_version() -> str:
    """
    Get the service version from pyproject.toml.
    Falls back to environment variable SERVICE_VERSION if pyproject.toml is not found.
    """
    env_version = os.getenv("SERVICE_VERSION")
    if env_version:
        return env_version

    # src/monitor_bridge/core/config.py -> project root
    pyproject_path = Path(__file__).parent.parent.parent.parent / "pyproject.toml"

    try:
        with open(pyproject_path, "rb") as f:
            return tomllib.load(f).get("project", {}).get("version", "0.0.0")
    except (FileNotFoundError, KeyError):
        return "0.0.0"


class Settings(BaseSettings):
    """
    Monitor Bridge configuration loaded from environment variables.

    Defaults mirror the behaviour of the bridge when run without any
    environment: listen on port 3000, websocket-only Socket.IO transport
    with automatic reconnection and a 5 second acknowledgement deadline.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Service Settings ---
    SERVICE_NAME: str = "monitor-bridge"
    SERVICE_VERSION: str = get_version()
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # --- Environment ---
    DEBUG: bool = False
    IS_PROD: bool = False

    # --- CORS Settings ---
    CORS_ORIGINS: List[str] = ["*"]

    # --- Bridge timing ---
    # Default acknowledgement deadline for /emit when the request omits timeoutMs
    ACK_TIMEOUT_MS: int = 5000
    # Deadline for the server to acknowledge a login attempt
    LOGIN_TIMEOUT_MS: int = 5000
    # How long a fresh connection waits for a loginRequired challenge
    # before it is considered ready without authentication
    LOGIN_GRACE_MS: int = 500
    # Upper bound on the whole connect -> login -> ready handshake
    CONNECT_TIMEOUT_SECONDS: float = 10.0

    # --- Socket.IO client ---
    SOCKETIO_TRANSPORTS: List[str] = ["websocket"]
    SOCKETIO_RECONNECTION: bool = True
    SOCKETIO_RECONNECTION_ATTEMPTS: int = 0  # 0 = retry forever
    SOCKETIO_RECONNECTION_DELAY: float = 1.0  # seconds


# Global settings instance
settings = Settings()
