"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class LedgerConfig(BaseSettings):
    """Vanstra ledger store configuration"""

    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    storage_path: str = "vanstra_ledger.db"
    storage_key: str = "vanstraLedgerState"
    users_key: str = "vanstraUsers"  # Optional user registry slot

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Demo session credentials
    demo_email: str = "alexander.mitchell@email.com"
    demo_password: str = "password123"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Business rules configuration
    default_currency: str = "EUR"
    transaction_page_size: int = 50
    deposit_clearance_days: int = 2

    # Remote backend (configuration only, nothing connects to it)
    backend_url: str = ""
    backend_key: str = ""

    class Config:
        env_prefix = "VANSTRA_"
        env_file = ".env"
        case_sensitive = False

    @property
    def backend_configured(self) -> bool:
        """True when both backend endpoint and access key are set"""
        return bool(self.backend_url and self.backend_key)


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
