"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class LendingBookConfig(BaseSettings):
    """Lending book configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LENDING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Database configuration
    database_url: str = "sqlite:///lending_book.db"  # memory:// for tests

    # Business rules configuration
    not_paying_months_threshold: int = 3
    delinquency_epsilon: str = "0.01"  # Pending profit below this is float noise
    amount_precision: int = 2  # Decimal places for display rounding

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    @property
    def epsilon(self) -> Decimal:
        """Delinquency epsilon as Decimal"""
        return Decimal(self.delinquency_epsilon)


# Global configuration instance
config = LendingBookConfig()


def get_config() -> LendingBookConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LendingBookConfig:
    """Reload configuration from environment"""
    global config
    config = LendingBookConfig()
    return config
