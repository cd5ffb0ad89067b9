"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class FinanceCoreConfig(BaseSettings):
    """Finance core configuration"""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_CORE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Money
    default_currency: str = "USD"  # Report currency when no loan sets one

    # Loan dashboard
    upcoming_window_days: int = 7
    dashboard_list_limit: int = 5  # Rows shown per dashboard list

    # Rent dashboard
    rent_upcoming_window_days: int = 30
    agreement_expiry_window_days: int = 60
    late_fee_daily_rate: Decimal = Decimal("0.01")  # Of rent, per day overdue
    late_fee_cap_rate: Decimal = Decimal("0.10")  # Of rent, maximum
    trend_months: int = 6

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout


# Global configuration instance
config = FinanceCoreConfig()


def get_config() -> FinanceCoreConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> FinanceCoreConfig:
    """Reload configuration from environment"""
    global config
    config = FinanceCoreConfig()
    return config
