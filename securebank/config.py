"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class SecureBankConfig(BaseSettings):
    """SecureBank core configuration"""

    # Database configuration
    database_url: str = "sqlite:///securebank.db"  # Default SQLite
    use_in_memory_storage: bool = False

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Session configuration
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    session_cookie_name: str = "session"
    session_max_age_seconds: int = 604800  # 7 days

    # Password / secret hashing (scrypt cost parameters)
    scrypt_n: int = 16384
    scrypt_r: int = 8
    scrypt_p: int = 1

    # Business rules configuration
    minimum_age_years: int = 18
    account_number_max_attempts: int = 100

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    class Config:
        env_prefix = "SECUREBANK_"
        env_file = ".env"
        case_sensitive = False

    @property
    def sqlite_path(self) -> str:
        """Filesystem path for sqlite:/// URLs"""
        prefix = "sqlite:///"
        if self.database_url.startswith(prefix):
            return self.database_url[len(prefix):] or ":memory:"
        raise ValueError(f"Unsupported database URL: {self.database_url}")


# Global configuration instance
config = SecureBankConfig()


def get_config() -> SecureBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> SecureBankConfig:
    """Reload configuration from environment"""
    global config
    config = SecureBankConfig()
    return config
