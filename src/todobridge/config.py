"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with TODOBRIDGE_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: The bridge_* settings describe how to reach the pub/sub broker.
bridge_topic is the subscription pattern; its first path segment becomes
the base prefix for every command, response and event topic.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEFAULT_TOPIC_PREFIX = "blazor-net-app"


class Settings(BaseSettings):
    """All app configuration. Set via TODOBRIDGE_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./todobridge.db"
    seed_sample_data: bool = True

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = ["*"]

    # Notification hub
    ws_send_timeout_seconds: float = 5.0

    # Command bridge (Redis pub/sub)
    bridge_enabled: bool = True
    bridge_broker: str = "localhost"
    bridge_port: int = 6379
    bridge_client_id: str = ""  # auto-generated if empty
    bridge_topic: str = f"{DEFAULT_TOPIC_PREFIX}/#"
    bridge_reconnect_seconds: float = 5.0

    model_config = {"env_prefix": "TODOBRIDGE_"}

    @model_validator(mode="after")
    def validate_ranges(self):
        """Reject ports and timeouts that can never work."""
        for name in ("port", "bridge_port"):
            value = getattr(self, name)
            if not 0 < value < 65536:
                raise ValueError(f"TODOBRIDGE_{name.upper()} must be between 1 and 65535")
        for name in ("ws_send_timeout_seconds", "bridge_reconnect_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"TODOBRIDGE_{name.upper()} must be positive")
        return self


# Singleton — default for create_app() and the CLI
settings = Settings()
