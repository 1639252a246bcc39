"""Application configuration loaded from environment variables.

Settings for the database connection and the passwordless login rules
(code lifetime, attempt limit). Uses pydantic-settings for validation
and .env file support.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "passwordless_dev_password"  # nosec B105

# 15 minutes
_DEFAULT_CODE_LIFETIME_MS = 900_000
_DEFAULT_MAX_CODE_INPUT_ATTEMPTS = 5


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "passwordless"
    database_user: str = "passwordless_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Full SQLAlchemy URL; takes precedence over the individual fields when set
    database_url_override: str = ""

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Passwordless login
    # Lifetime of an issued code in milliseconds. Expiry is checked at read time.
    passwordless_code_lifetime_ms: int = _DEFAULT_CODE_LIFETIME_MS
    # Failed user-input-code attempts after which the device is destroyed
    passwordless_max_code_input_attempts: int = _DEFAULT_MAX_CODE_INPUT_ATTEMPTS

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        if self.database_url_override:
            return self.database_url_override.replace("+asyncpg", "").replace(
                "+aiosqlite", ""
            )
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate login rules and production security requirements.

        Checks:
        - Code lifetime must be positive (all environments)
        - Max code input attempts must be positive (all environments)
        - Database password must not be the default in production
        """
        if self.passwordless_code_lifetime_ms <= 0:
            msg = (
                "PASSWORDLESS_CODE_LIFETIME_MS must be positive. "
                f"Got: {self.passwordless_code_lifetime_ms}"
            )
            raise ValueError(msg)
        if self.passwordless_max_code_input_attempts <= 0:
            msg = (
                "PASSWORDLESS_MAX_CODE_INPUT_ATTEMPTS must be positive. "
                f"Got: {self.passwordless_max_code_input_attempts}"
            )
            raise ValueError(msg)

        if (
            self.environment == "production"
            and not self.database_url_override
            and self.database_password == _INSECURE_DEFAULT_PASSWORD
        ):
            msg = (
                "Cannot use default database password in production. "
                "Set DATABASE_PASSWORD environment variable to a secure value."
            )
            raise ValueError(msg)

        return self


settings = Settings()
