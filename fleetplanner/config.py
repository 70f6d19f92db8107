"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os


class Config:
    """Base configuration class with common settings."""

    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-change-me"

    # Pickle file backing the document store (data.pkl when unset); PERSIST=False keeps it in memory
    DATA_PATH = os.environ.get("FLEET_DATA_PATH") or None
    PERSIST = True

    # Civil-date zone used for "today" and for aware datetimes
    TIMEZONE = os.environ.get("FLEET_TIMEZONE", "Europe/London")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        if not os.environ.get("SECRET_KEY"):
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if not os.environ.get("FLEET_DATA_PATH"):
            raise ValueError("FLEET_DATA_PATH environment variable must be set in production")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    PERSIST = False
    DATA_PATH = None
    SECRET_KEY = "test-secret-key"


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "test": TestConfig,
    "default": DevelopmentConfig,
}
