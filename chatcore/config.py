"""
Configuration module for the realtime presence service.

This module uses Pydantic Settings to load and validate environment variables
for the realtime core (typing expiry, connection replacement policy), the
internal event endpoints, the HTTP server and CORS settings.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Everything is optional so the service starts with sensible defaults;
    the internal endpoints stay closed until INTERNAL_SHARED_SECRET is set.
    """

    # =========================================================================
    # Realtime Core
    # =========================================================================

    TYPING_TIMEOUT_SECONDS: float = Field(
        default=3.0,
        description="Seconds without a typing frame before stop-typing is broadcast",
        gt=0,
        le=60,
    )

    CLOSE_REPLACED_CONNECTIONS: bool = Field(
        default=False,
        description="Close the previous connection when a user identity is bound again",
    )

    STOP_TYPING_ON_DISCONNECT: bool = Field(
        default=False,
        description="Broadcast stop-typing when a closing connection still had a pending typing timer",
    )

    # =========================================================================
    # Internal Event Endpoints
    # =========================================================================

    INTERNAL_SHARED_SECRET: Optional[str] = Field(
        None,
        description="Shared secret for authenticating collaborator→realtime requests",
        min_length=32,
    )

    REALTIME_SERVICE_URL: str = Field(
        default="http://localhost:3003",
        description="Base URL other processes use to reach this service",
        min_length=1,
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    SERVER_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the realtime server",
    )

    SERVER_PORT: int = Field(
        default=3003,
        description="Port to bind the realtime server",
        ge=1,
        le=65535,
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # CORS Configuration
    # =========================================================================

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    # =========================================================================
    # Pydantic Settings Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def realtime_service_url_str(self) -> str:
        """Service URL without trailing slash (for HTTP client usage)."""
        return self.REALTIME_SERVICE_URL.rstrip("/")

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate that LOG_LEVEL is a standard logging level name.

        Raises:
            ValueError: If the level is not recognised
        """
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        level = v.strip().upper()
        if level not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return level


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle. Tests construct ``Settings`` directly
    and pass it to the application factory instead.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If environment variables are present but invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Optional[Settings] = None) -> dict:
    """
    Validate configuration settings and return a status report.

    Called during application startup; errors are logged, not raised.

    Example:
        >>> status = validate_configuration()
        >>> if not status["valid"]:
        ...     print(status["errors"])
    """
    settings = settings or get_settings()
    errors = []
    warnings = []

    if not settings.INTERNAL_SHARED_SECRET:
        warnings.append(
            "INTERNAL_SHARED_SECRET is not set (internal event endpoints will reject all requests)"
        )

    if settings.TYPING_TIMEOUT_SECONDS < 1:
        warnings.append(
            "TYPING_TIMEOUT_SECONDS is below one second (typing indicators will flicker)"
        )

    if "*" in settings.allowed_origins_list:
        warnings.append("ALLOWED_ORIGINS contains '*' (any origin may connect)")

    if not settings.REALTIME_SERVICE_URL.startswith(("http://", "https://")):
        errors.append("REALTIME_SERVICE_URL must start with http:// or https://")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "typing_timeout_seconds": settings.TYPING_TIMEOUT_SECONDS,
    }


if __name__ == "__main__":
    """
    Run this module directly to validate your .env configuration:
        python -m chatcore.config
    """
    config = get_settings()
    status = validate_configuration(config)

    print("=" * 80)
    print("REALTIME CONFIGURATION")
    print("=" * 80)
    print(f"  Typing timeout:        {config.TYPING_TIMEOUT_SECONDS}s")
    print(f"  Close replaced conns:  {config.CLOSE_REPLACED_CONNECTIONS}")
    print(f"  Stop typing on close:  {config.STOP_TYPING_ON_DISCONNECT}")
    print(f"  Internal secret set:   {bool(config.INTERNAL_SHARED_SECRET)}")
    print(f"  Listen:                {config.SERVER_HOST}:{config.SERVER_PORT}")

    for error in status["errors"]:
        print(f"  ✗ {error}")
    for warning in status["warnings"]:
        print(f"  ⚠ {warning}")
