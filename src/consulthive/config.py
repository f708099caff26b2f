"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces credential presence in production mode.

IMPORTANT: This module has ZERO imports from the ``consulthive`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    api_port: int = 8000

    # -- Persistence -----------------------------------------------------------
    database_path: Path = Path("data/consulthive.db")
    db_busy_timeout_seconds: float = 5.0

    # -- Marketplace defaults --------------------------------------------------
    default_currency: str = "EUR"
    default_duration_minutes: int = 60
    default_page_size: int = 20
    max_page_size: int = 50

    # -- Drafting / Anthropic --------------------------------------------------
    anthropic_api_key: SecretStr = SecretStr("")
    drafting_model: str = "claude-sonnet-4-5-20250929"
    drafting_max_attempts: int = 3

    # -- Payments (secrets) ----------------------------------------------------
    payment_webhook_secret: SecretStr = SecretStr("")

    # -- Observability ---------------------------------------------------------
    sentry_dsn: str = ""


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Log only the structured errors list -- never the full exception
        # which may contain raw SecretStr values.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce credential presence at startup.

    In **production** mode (``settings.production is True``), the application
    exits with a clear error block if any required credential is missing.

    In **development** mode, each missing credential is logged as a warning
    but the application continues to start (drafting operations then fail
    with ``AI_ERROR`` and the payment webhook rejects every call).

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.anthropic_api_key.get_secret_value():
        errors.append("ANTHROPIC_API_KEY is empty or not set")

    if not settings.payment_webhook_secret.get_secret_value():
        errors.append("PAYMENT_WEBHOOK_SECRET is empty or not set")

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
