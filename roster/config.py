"""Roster service configuration.

Uses pydantic-settings to load from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class RosterSettings(BaseSettings):
    """Configuration for the local roster service."""

    # Durable key-value store (one <key>.json file per collection)
    data_dir: Path = Path(__file__).parent / "data" / "store"

    # Local HTTP / WebSocket surface
    host: str = "127.0.0.1"
    port: int = 8000
    ws_path: str = "/ws"
    cors_origins: list[str] = ["*"]

    # Optional front-end build served at "/"
    static_dir: Optional[Path] = None

    log_level: str = "INFO"

    model_config = {"env_prefix": "ROSTER_"}


def get_settings() -> RosterSettings:
    """Return a settings instance read from the environment."""
    return RosterSettings()
