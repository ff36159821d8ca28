"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-only-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=0, validation_alias="DB_MAX_OVERFLOW")

    # Development mode - allows the placeholder JWT secret
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    # Token signing. Issuer/audience are shared by access and refresh tokens.
    jwt_secret: str = Field(default=DEV_JWT_SECRET, validation_alias="JWT_SECRET")
    jwt_access_expire_minutes: int = Field(
        default=15, validation_alias="JWT_ACCESS_EXPIRE_MINUTES",
    )
    jwt_refresh_expire_days: int = Field(
        default=7, validation_alias="JWT_REFRESH_EXPIRE_DAYS",
    )
    jwt_issuer: str = Field(default="bookmark-manager", validation_alias="JWT_ISSUER")
    jwt_audience: str = Field(
        default="bookmark-manager-client", validation_alias="JWT_AUDIENCE",
    )

    # Password hashing work factor (log2 rounds)
    bcrypt_rounds: int = Field(default=12, validation_alias="BCRYPT_ROUNDS")

    # Metadata fetching
    metadata_fetch_timeout: float = Field(
        default=10.0, validation_alias="METADATA_FETCH_TIMEOUT",
    )

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Field length limits
    max_url_length: int = Field(default=2048, validation_alias="MAX_URL_LENGTH")
    max_title_length: int = Field(default=500, validation_alias="MAX_TITLE_LENGTH")
    max_description_length: int = Field(
        default=2000, validation_alias="MAX_DESCRIPTION_LENGTH",
    )
    max_folder_length: int = Field(default=100, validation_alias="MAX_FOLDER_LENGTH")
    max_tag_length: int = Field(default=50, validation_alias="MAX_TAG_LENGTH")

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """
        Refuse to start with the placeholder signing secret outside DEV_MODE.

        Anyone who knows the placeholder could mint valid tokens for any user.
        """
        if self.dev_mode:
            return self
        if not self.jwt_secret or self.jwt_secret == DEV_JWT_SECRET:
            raise ValueError(
                "JWT_SECRET must be set to a private value when DEV_MODE is disabled.",
            )
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
