"""
Application configuration classes.

Each class represents a deployment environment. The factory function
``create_app`` in ``app/__init__.py`` selects the appropriate config
based on the FLASK_ENV environment variable.

The local database (users, audit trail, save history) defaults to
SQLite; point ``DATABASE_URL`` at any SQLAlchemy URL in production.
Org override records live in the hosted data service configured by
the ``ORG_STORE_*`` settings.
"""

import logging
import os

# Module-level logger for startup warnings emitted by config classes.
_logger = logging.getLogger(__name__)

# Sentinel for detecting an unset SECRET_KEY in production.
_DEFAULT_SECRET_KEY = "dev-secret-change-me"


class BaseConfig:
    """
    Shared configuration values inherited by all environments.

    Secrets and connection strings are loaded from environment variables
    so they never appear in source control.
    """

    # -- Flask core --------------------------------------------------------
    SECRET_KEY: str = os.environ.get("SECRET_KEY", _DEFAULT_SECRET_KEY)

    # -- Session cookie hardening ------------------------------------------
    SESSION_COOKIE_HTTPONLY: bool = True
    SESSION_COOKIE_SAMESITE: str = "Lax"
    # ProductionConfig overrides this to True (requires HTTPS).
    SESSION_COOKIE_SECURE: bool = False
    PERMANENT_SESSION_LIFETIME: int = int(
        os.environ.get("PERMANENT_SESSION_LIFETIME", "3600")
    )

    # -- SQLAlchemy --------------------------------------------------------
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL", "sqlite:///orgboard-dev.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ECHO: bool = False

    # -- Org store (hosted data service) -----------------------------------
    # Empty URL means the store is not configured: edits stay local.
    ORG_STORE_URL: str = os.environ.get("ORG_STORE_URL", "")
    ORG_STORE_API_KEY: str = os.environ.get("ORG_STORE_API_KEY", "")
    ORG_STORE_TABLE: str = os.environ.get("ORG_STORE_TABLE", "org_metadata")

    # Maximum concurrent upserts when saving the whole tree.
    ORG_STORE_MAX_CONCURRENT_REQUESTS: int = int(
        os.environ.get("ORG_STORE_MAX_CONCURRENT_REQUESTS", "5")
    )
    ORG_STORE_TIMEOUT: float = float(os.environ.get("ORG_STORE_TIMEOUT", "10"))

    # Force offline behaviour (no fetch, no persistence) even when the
    # store is configured.
    ORG_OFFLINE_MODE: bool = (
        os.environ.get("ORG_OFFLINE_MODE", "false").lower() == "true"
    )

    # -- Dev login guard ---------------------------------------------------
    # Dev-login routes are disabled unless this is explicitly enabled.
    DEV_LOGIN_ENABLED: bool = (
        os.environ.get("DEV_LOGIN_ENABLED", "false").lower() == "true"
    )

    # -- Logging -----------------------------------------------------------
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # =====================================================================
    # Production validation helpers
    # =====================================================================

    @classmethod
    def validate_production_secrets(cls, app_config: dict) -> None:
        """
        Verify that all required secrets are set for production.

        Called by ``create_app()`` when ``config_name == 'production'``.
        Raises ``RuntimeError`` for hard requirements and logs warnings
        for soft requirements.

        Args:
            app_config: The ``app.config`` dict after loading the
                        config class.

        Raises:
            RuntimeError: If any critical secret is missing or still
                          set to its insecure default value.
        """
        errors: list[str] = []

        if app_config.get("SECRET_KEY") == _DEFAULT_SECRET_KEY:
            errors.append(
                "SECRET_KEY is still the insecure default. "
                "Generate one with: python -c "
                '"import secrets; print(secrets.token_hex(32))"'
            )

        store_url = app_config.get("ORG_STORE_URL", "")
        if store_url and not store_url.startswith("https://"):
            errors.append(
                f"ORG_STORE_URL ({store_url}) must use HTTPS in production "
                "so the service key is not sent in the clear."
            )

        if app_config.get("DEV_LOGIN_ENABLED"):
            errors.append("DEV_LOGIN_ENABLED must be false in production.")

        if errors:
            combined = "\n  - ".join(errors)
            raise RuntimeError(f"Production configuration errors:\n  - {combined}")

        # The app still serves the default tree without a store, but
        # nothing administrators change will survive a restart.
        if not store_url:
            _logger.warning(
                "ORG_STORE_URL is not set — org structure edits will not "
                "be persisted. Set it in .env for production."
            )
        elif not app_config.get("ORG_STORE_API_KEY"):
            _logger.warning(
                "ORG_STORE_API_KEY is not set — the data service will "
                "likely reject reads and writes."
            )

        if app_config.get("LOG_LEVEL", "").upper() == "DEBUG":
            _logger.warning(
                "LOG_LEVEL=DEBUG is not recommended in production — "
                "request headers and SQL may appear in logs."
            )


class DevelopmentConfig(BaseConfig):
    """Development environment: verbose logging, dev login enabled."""

    DEBUG: bool = True
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG")
    DEV_LOGIN_ENABLED: bool = (
        os.environ.get("DEV_LOGIN_ENABLED", "true").lower() == "true"
    )


class TestingConfig(BaseConfig):
    """
    Testing environment: in-memory SQLite, no data service.

    WTF_CSRF_ENABLED is disabled so JSON requests in tests don't need
    CSRF tokens. Dev login is enabled for test convenience.
    """

    TESTING: bool = True
    WTF_CSRF_ENABLED: bool = False

    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "TEST_DATABASE_URL", "sqlite:///:memory:"
    )
    LOG_LEVEL: str = "DEBUG"

    # Tests inject a fake store explicitly.
    ORG_STORE_URL: str = ""
    ORG_STORE_API_KEY: str = ""
    ORG_OFFLINE_MODE: bool = False

    DEV_LOGIN_ENABLED: bool = True


class ProductionConfig(BaseConfig):
    """
    Production environment: strict settings, no debug output.

    The application factory calls ``validate_production_secrets()`` at
    startup and will refuse to launch if critical values are missing.
    """

    DEBUG: bool = False
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "WARNING")
    SESSION_COOKIE_SECURE: bool = True
    DEV_LOGIN_ENABLED: bool = False


# Lookup dict used by the application factory.
config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
