"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import logging
import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from medsync.domain.matching import DEFAULT_TOLERANCE_RATIO
from medsync.domain.models import (
    DEFAULT_IMPORT_NOTE,
    DEFAULT_IMPORTED_FREQUENCY,
    DEFAULT_STORE_NAME,
)

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class SyncConfig(BaseModel):
    """Medication sync behaviour."""

    dosage_tolerance_ratio: float = Field(
        default=DEFAULT_TOLERANCE_RATIO,
        ge=0.0,
        le=1.0,
        description="Relative dosage difference still treated as the same treatment",
    )
    strict_fetch_errors: bool = Field(
        default=False, description="Raise on fetch failure instead of syncing against no records"
    )
    write_timeout_seconds: float | None = Field(
        default=None, gt=0.0, description="Timeout for a single write; unset waits indefinitely"
    )
    max_concurrent_writes: int = Field(
        default=10, gt=0, description="Maximum number of writes in flight at once"
    )
    store_name: str = Field(default=DEFAULT_STORE_NAME, description="Display name of the store")
    imported_frequency: str = Field(
        default=DEFAULT_IMPORTED_FREQUENCY, description="Frequency given to imported medications"
    )
    import_note: str = Field(
        default=DEFAULT_IMPORT_NOTE, description="Instructions text given to imported medications"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
    v = val.strip().lower()
    if v in {"dev", "development"}:
        return "development"
    if v in {"stage", "staging"}:
        return "staging"
    return "production"


def _level_to_literal(val: str) -> LogLevel:
    v = val.strip().upper()
    return cast(LogLevel, v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO")


def _parse_bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _parse_optional_float(val: str | None) -> float | None:
    if val is None or not val.strip():
        return None
    return float(val)


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    sync_config = SyncConfig(
        dosage_tolerance_ratio=float(
            os.getenv("DOSAGE_TOLERANCE_RATIO", str(DEFAULT_TOLERANCE_RATIO))
        ),
        strict_fetch_errors=_parse_bool(os.getenv("STRICT_FETCH_ERRORS"), False),
        write_timeout_seconds=_parse_optional_float(os.getenv("WRITE_TIMEOUT_SECONDS")),
        max_concurrent_writes=int(os.getenv("MAX_CONCURRENT_WRITES", "10")),
        store_name=os.getenv("HEALTH_STORE_NAME", DEFAULT_STORE_NAME),
        imported_frequency=os.getenv("IMPORTED_FREQUENCY", DEFAULT_IMPORTED_FREQUENCY),
        import_note=os.getenv("IMPORT_NOTE", DEFAULT_IMPORT_NOTE),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        sync=sync_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def configure_logging(config: LoggingConfig) -> None:
    """Apply the configured level and renderer to structlog."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))
    logging.getLogger().setLevel(getattr(logging, config.level))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nSYNC CONFIGURATION")
    print(f"Health Store: {config.sync.store_name}")
    print(f"Dosage Tolerance: {config.sync.dosage_tolerance_ratio:.0%}")
    print(f"Strict Fetch Errors: {config.sync.strict_fetch_errors}")
    print(f"Write Timeout: {config.sync.write_timeout_seconds or 'none'}")
    print(f"Max Concurrent Writes: {config.sync.max_concurrent_writes}")


if __name__ == "__main__":
    print_config_summary()
