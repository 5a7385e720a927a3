"""
Member Sync - Configuration Management

Centralized configuration for environment variables, CORS, and the
spreadsheet integration. This module ensures:
- No hardcoded secrets
- Sheet read/write strategies are chosen by configuration
- Production refuses to start with an incomplete configuration
"""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import logging

logger = logging.getLogger(__name__)


READ_STRATEGIES = ("public_csv", "api")
WRITE_STRATEGIES = ("automation", "direct")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==================== ENVIRONMENT ====================
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production"
    )
    DEBUG: bool = Field(default=False)

    # ==================== DATABASE ====================
    DATABASE_URL: str = Field(
        default="",
        description="PostgreSQL connection URL, e.g. postgresql+asyncpg://..."
    )

    # ==================== AUTHENTICATION ====================
    JWT_SECRET_KEY: str = Field(
        default="",
        description="Secret key for signing member access tokens"
    )
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    JWT_ALGORITHM: str = Field(default="HS256")

    # ==================== CORS ====================
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed origins, or '*'"
    )

    # ==================== SPREADSHEET ====================
    SPREADSHEET_ID: str = Field(default="", description="Google spreadsheet identifier")
    SHEET_NAME: str = Field(default="Sheet1", description="Worksheet (tab) holding member rows")
    SHEET_GID: str = Field(default="", description="Tab gid for the public CSV export")
    SHEETS_READ_STRATEGY: str = Field(
        default="public_csv",
        description="public_csv (unauthenticated export) or api (service account)"
    )
    SHEETS_WRITE_STRATEGY: str = Field(
        default="automation",
        description="automation (webhook) or direct (cell updates via the API)"
    )
    SHEETS_AUTOMATION_URL: str = Field(default="", description="Automation webhook receiving row updates")
    SHEETS_ATOMIC_WRITES: bool = Field(
        default=False,
        description="Send direct cell updates as one batchUpdate request"
    )
    SHEETS_TOKEN_CACHE: bool = Field(
        default=False,
        description="Reuse minted access tokens until shortly before expiry"
    )
    SHEETS_HTTP_TIMEOUT: float = Field(default=30.0)

    # ==================== SERVICE ACCOUNT ====================
    GOOGLE_SERVICE_ACCOUNT_JSON: str = Field(default="", description="Service account bundle as a JSON string")
    GOOGLE_SERVICE_ACCOUNT_FILE: str = Field(default="", description="Path to a service account JSON file")
    GOOGLE_CLIENT_EMAIL: str = Field(default="")
    GOOGLE_PRIVATE_KEY: str = Field(default="")
    GOOGLE_TOKEN_URI: str = Field(default="https://oauth2.googleapis.com/token")

    # ==================== OBSERVABILITY ====================
    SENTRY_DSN: str = Field(default="")
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )

    # ==================== API ====================
    API_TITLE: str = Field(default="Member Sheet Sync API")
    API_VERSION: str = Field(default="1.0.0")

    # ==================== COMPUTED PROPERTIES ====================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def debug_enabled(self) -> bool:
        """Enable debug in development or when explicitly set"""
        return self.DEBUG or self.is_development

    @property
    def cors_origins_list(self) -> List[str]:
        if not self.CORS_ORIGINS or self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def has_service_account(self) -> bool:
        return bool(
            self.GOOGLE_SERVICE_ACCOUNT_JSON
            or self.GOOGLE_SERVICE_ACCOUNT_FILE
            or (self.GOOGLE_CLIENT_EMAIL and self.GOOGLE_PRIVATE_KEY)
        )

    @property
    def needs_service_account(self) -> bool:
        return self.SHEETS_READ_STRATEGY == "api" or self.SHEETS_WRITE_STRATEGY == "direct"

    def validate_sheets_config(self) -> List[str]:
        """Return configuration errors for the spreadsheet integration."""
        errors = []

        if self.SHEETS_READ_STRATEGY not in READ_STRATEGIES:
            errors.append(
                f"SHEETS_READ_STRATEGY must be one of {', '.join(READ_STRATEGIES)}"
            )
        if self.SHEETS_WRITE_STRATEGY not in WRITE_STRATEGIES:
            errors.append(
                f"SHEETS_WRITE_STRATEGY must be one of {', '.join(WRITE_STRATEGIES)}"
            )
        if not self.SPREADSHEET_ID:
            errors.append("SPREADSHEET_ID is required")
        if self.SHEETS_WRITE_STRATEGY == "automation" and not self.SHEETS_AUTOMATION_URL:
            errors.append("SHEETS_AUTOMATION_URL is required for the automation write strategy")
        if self.needs_service_account and not self.has_service_account:
            errors.append("Service account credentials are required for the api/direct strategies")

        return errors

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration for production deployment.
        Returns list of validation errors.
        """
        errors = []

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required")

        if not self.JWT_SECRET_KEY:
            errors.append("JWT_SECRET_KEY is required")
        elif len(self.JWT_SECRET_KEY) < 32:
            errors.append("JWT_SECRET_KEY should be at least 32 characters")

        if self.is_production and self.DEBUG:
            errors.append("DEBUG should be False in production")

        return errors

    def get_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        raise ValueError("No database configuration found. Set DATABASE_URL.")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once and cached for the application lifetime.
    """
    settings = Settings()

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Sheets strategies: read={settings.SHEETS_READ_STRATEGY} write={settings.SHEETS_WRITE_STRATEGY}")

    if settings.is_production:
        errors = settings.validate_production_config()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ValueError(f"Production configuration invalid: {', '.join(errors)}")

    return settings


# ==================== CORS CONFIGURATION ====================

def get_cors_config() -> dict:
    """
    Get CORS middleware configuration.

    The member dashboard calls the API from a browser on another origin,
    so every response carries permissive CORS headers.
    """
    settings = get_settings()

    return {
        "allow_origins": settings.cors_origins_list,
        "allow_credentials": False,
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": [
            "authorization",
            "x-client-info",
            "apikey",
            "content-type",
        ],
        "expose_headers": ["X-Request-ID"],
        "max_age": 600,
    }


# ==================== ENVIRONMENT VALIDATION ====================

def validate_environment() -> dict:
    """
    Validate all required environment variables.

    Returns a status dict with validation results.
    """
    settings = get_settings()

    status = {
        "valid": True,
        "environment": settings.ENVIRONMENT,
        "errors": [],
        "warnings": [],
        "variables": {}
    }

    required_vars = [
        ("DATABASE_URL", settings.DATABASE_URL),
        ("JWT_SECRET_KEY", settings.JWT_SECRET_KEY),
        ("SPREADSHEET_ID", settings.SPREADSHEET_ID),
    ]

    for name, value in required_vars:
        if not value:
            status["errors"].append(f"{name} is not set")
            status["valid"] = False
        else:
            status["variables"][name] = "✓ Set"

    for error in settings.validate_sheets_config():
        if error not in status["errors"] and not error.startswith("SPREADSHEET_ID"):
            status["errors"].append(error)
            status["valid"] = False

    if not settings.SENTRY_DSN:
        status["warnings"].append("Error tracking disabled")
        status["variables"]["SENTRY_DSN"] = "⚠ Not set"
    else:
        status["variables"]["SENTRY_DSN"] = "✓ Set"

    if settings.SHEETS_WRITE_STRATEGY == "direct" and not settings.SHEETS_ATOMIC_WRITES:
        status["warnings"].append(
            "Direct cell writes are not atomic; a failed update can leave a row partially written"
        )

    if settings.is_production:
        errors = settings.validate_production_config()
        if errors:
            status["errors"].extend(errors)
            status["valid"] = False

    return status
