"""
Centralized Configuration Management

All environment variables are defined here using Pydantic Settings.
This provides validation, type safety, and documentation in one place.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (or .env).

    To use in your code:
        from config import settings
        db_url = settings.DB_URL
    """

    # Database Configuration
    DB_URL: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    DB_NAME: str = Field(default="sqyping_dev", description="Database name")

    # Club / Federation
    CLUB_CODE: str = Field(default="08781477", description="Federation club number")
    CLUB_NAME: str = Field(default="SQY PING", description="Club name as printed in team labels")
    FEDERATION_API_URL: str = Field(
        default="http://localhost:8090", description="Base URL of the federation JSON gateway"
    )
    FEDERATION_API_KEY: str = Field(default="", description="API key for the federation gateway")
    FEDERATION_TIMEOUT_SEC: int = Field(default=60, description="Federation request timeout")

    # Sync tuning
    SYNC_ENRICHMENT_CONCURRENCY: int = Field(
        default=50, description="Concurrent player-detail requests during player sync"
    )
    SYNC_READ_CONCURRENCY: int = Field(
        default=4, description="Concurrent batched reads during match sync"
    )
    SYNC_READ_BATCH_SIZE: int = Field(default=100, description="Documents per batched read")
    SYNC_WRITE_BATCH_SIZE: int = Field(default=500, description="Operations per bulk write")

    # Competition rules
    DAY_TWO_RULE_JOURNEE: int = Field(
        default=2, description="Match day on which the carry-over rule applies"
    )

    # Application Settings
    DEBUG_LEVEL: int = Field(default=0, description="Debug verbosity level (0-3)")
    ENVIRONMENT: str = Field(
        default="development", description="Environment: development, staging, production"
    )

    # CORS Configuration
    CORS_ORIGINS: str | list[str] = Field(
        default="*", description="Comma-separated list of allowed CORS origins"
    )

    @field_validator("DEBUG_LEVEL")
    @classmethod
    def validate_debug_level(cls, v):
        if v not in [0, 1, 2, 3]:
            raise ValueError("DEBUG_LEVEL must be 0, 1, 2, or 3")
        return v

    @field_validator("SYNC_WRITE_BATCH_SIZE")
    @classmethod
    def validate_write_batch_size(cls, v):
        if v < 1 or v > 500:
            raise ValueError("SYNC_WRITE_BATCH_SIZE must be between 1 and 500")
        return v

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse comma-separated CORS origins into a list"""
        if isinstance(v, list):
            return v
        if v == "*":
            return ["*"]
        return [origin.strip() for origin in v.split(",")]

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Singleton instance - import this throughout your application
settings = Settings()
