"""
Configuration management using environment variables.
Handles database, token and logging settings with proper validation and defaults.
"""

from datetime import timedelta
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class CatalogConfig(BaseSettings):
    """
    Configuration class for the catalog service.
    Uses pydantic BaseSettings for environment variable management.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from .env
    )

    # MongoDB Configuration
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "library_catalog"

    # Token Configuration
    token_ttl_minutes: int = 30
    token_bytes: int = 16

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = "logs/catalog.log"

    # Development
    debug: bool = False

    @field_validator('token_ttl_minutes')
    @classmethod
    def validate_token_ttl(cls, v):
        """Ensure token lifetime is reasonable."""
        if v < 1 or v > 1440:
            raise ValueError('token_ttl_minutes must be between 1 and 1440')
        return v

    @field_validator('token_bytes')
    @classmethod
    def validate_token_bytes(cls, v):
        """Tokens carry at least 128 bits of entropy."""
        if v < 16 or v > 64:
            raise ValueError('token_bytes must be between 16 and 64')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_token_ttl(self) -> timedelta:
        """Get token lifetime as a timedelta."""
        return timedelta(minutes=self.token_ttl_minutes)


# Global configuration instance
config = CatalogConfig()
