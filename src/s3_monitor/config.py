# src/s3_monitor/config.py

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_APP_ID = "s3-monitor-lambda"
DEFAULT_EVENT_SCHEMA = (
    "iglu:com.amazon.aws.lambda/s3_notification_event/jsonschema/1-0-0"
)


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration loaded from environment variables."""

    # --- Required Variables ---
    service_name: str
    environment: str

    # --- Optional Variables with Defaults ---
    log_level: str
    app_id: str
    tracker_namespace: str
    event_schema: str
    timeout_guard_threshold_seconds: int

    # --- Collector Transport Configuration ---
    collector_timeout_seconds: float
    emitter_buffer_size: int
    emitter_max_workers: int
    base64_encode: bool

    # --- Derived Properties ---
    @property
    def timeout_guard_threshold_ms(self) -> int:
        return self.timeout_guard_threshold_seconds * 1000

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        """
        Loads configuration from environment variables, performing validation and type casting.
        Fails fast with a ConfigurationError if anything is invalid.
        """
        try:
            # --- Handle required string variables ---
            service_name = os.environ["SERVICE_NAME"]
            environment = os.environ["ENVIRONMENT"]

            # --- Handle special-case variables like log level ---
            log_level = os.getenv("LOG_LEVEL", "INFO").upper()
            allowed_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
            if log_level not in allowed_log_levels:
                raise ValueError(
                    f"LOG_LEVEL must be one of {allowed_log_levels}, not '{log_level}'"
                )

            # --- Handle event identity variables ---
            app_id = os.getenv("APP_ID", DEFAULT_APP_ID).strip()
            if not app_id:
                raise ValueError("APP_ID must not be empty.")

            tracker_namespace = os.getenv("TRACKER_NAMESPACE", "").strip() or app_id

            event_schema = os.getenv("EVENT_SCHEMA", DEFAULT_EVENT_SCHEMA).strip()
            if not event_schema.startswith("iglu:"):
                raise ValueError(
                    f"EVENT_SCHEMA must be an iglu: schema URI, not '{event_schema}'"
                )

            timeout_guard_threshold_seconds = int(
                os.getenv("TIMEOUT_GUARD_THRESHOLD_SECONDS", "2")
            )
            if timeout_guard_threshold_seconds <= 0:
                raise ValueError(
                    "TIMEOUT_GUARD_THRESHOLD_SECONDS must be a positive integer."
                )

            # --- Handle collector transport configuration ---
            collector_timeout_seconds = float(
                os.getenv("COLLECTOR_TIMEOUT_SECONDS", "5")
            )
            if collector_timeout_seconds <= 0:
                raise ValueError("COLLECTOR_TIMEOUT_SECONDS must be positive.")

            emitter_buffer_size = int(os.getenv("EMITTER_BUFFER_SIZE", "0"))
            if emitter_buffer_size < 0:
                raise ValueError("EMITTER_BUFFER_SIZE must be a non-negative integer.")

            emitter_max_workers = int(os.getenv("EMITTER_MAX_WORKERS", "1"))
            if emitter_max_workers <= 0:
                raise ValueError("EMITTER_MAX_WORKERS must be a positive integer.")

            base64_encode = os.getenv("BASE64_ENCODE", "true").lower() in (
                "true",
                "1",
                "yes",
                "on",
            )

        except KeyError as e:
            raise ConfigurationError(
                f"Missing required environment variable: {e.args[0]}"
            ) from e
        except (ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid value for an environment variable: {e}"
            ) from e

        return cls(
            service_name=service_name,
            environment=environment,
            log_level=log_level,
            app_id=app_id,
            tracker_namespace=tracker_namespace,
            event_schema=event_schema,
            timeout_guard_threshold_seconds=timeout_guard_threshold_seconds,
            collector_timeout_seconds=collector_timeout_seconds,
            emitter_buffer_size=emitter_buffer_size,
            emitter_max_workers=emitter_max_workers,
            base64_encode=base64_encode,
        )


# --- Singleton Factory Function (Lazy-loaded and Cached) ---
@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """
    Loads the application configuration from environment variables.
    The result is cached using lru_cache, so the environment is only read once
    on the first call. This avoids import-time side effects.
    """
    logger.info("Loading application configuration from environment...")
    return AppConfig.load_from_env()
