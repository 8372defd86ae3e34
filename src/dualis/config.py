"""Client configuration loaded from environment variables.

All settings use the DUALIS_ prefix, e.g. DUALIS_CACHE_DIR=/tmp/dualis.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class DualisConfig(BaseSettings):
    """Client configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Portal settings (server-rendered HTML only, no API exists)
    base_url: str = Field(
        default="https://dualis.dhbw.de",
        description="Portal origin; all endpoints live below /scripts/mgrqispi.dll",
    )
    username: str = Field(default="", description="Portal username")
    password: str = Field(default="", description="Portal password")

    # Cache
    cache_dir: str = Field(
        default="data/cache",
        description="Directory for cached snapshots",
    )
    cache_ttl_hours: int = Field(
        default=24,
        description="Time-to-live of every cache kind, in hours",
    )

    # HTTP
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to every single request",
    )
    login_timeout_seconds: float = Field(
        default=90.0,
        description="Deadline for the whole login and redirect chain",
    )
    max_redirect_hops: int = Field(
        default=10,
        description="Maximum intermediate pages followed after login",
    )
    retry_attempts: int = Field(
        default=2,
        description="Attempts per request on network failures",
    )
    retry_wait_seconds: float = Field(
        default=2.0,
        description="Pause between network retries",
    )

    # Change detection
    watch_weeks: int = Field(
        default=4,
        description="Weeks (starting with the current one) checked for changes",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "DUALIS_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: DualisConfig | None = None


def get_config() -> DualisConfig:
    """Get the client configuration singleton.

    Returns:
        DualisConfig: Client configuration instance
    """
    global _config
    if _config is None:
        _config = DualisConfig()
    return _config
