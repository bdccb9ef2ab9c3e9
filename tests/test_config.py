"""Test configuration settings"""
from pydantic_settings import SettingsConfigDict

from config import Settings


class TestSettings(Settings):
    """Override settings for testing environment"""

    DB_URL: str = "mongodb://localhost:27017"
    DB_NAME: str = "sqyping_test"
    CLUB_NAME: str = "SQY PING"
    FEDERATION_API_URL: str = "http://federation.test"
    DEBUG_LEVEL: int = 0  # Suppress debug output in tests
    ENVIRONMENT: str = "test"

    model_config = SettingsConfigDict(
        # conftest.py sets environment variables; no .env is read here
        case_sensitive=True,
        extra="ignore",
    )
