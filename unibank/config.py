"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class UniBankConfig(BaseSettings):
    """UniBank record store configuration"""

    # Storage configuration
    data_dir: str = "data"
    customers_file: str = "customers.txt"
    accounts_file: str = "accounts.txt"
    auth_file: str = "auth.txt"
    counters_file: str = "counters.txt"
    transactions_file: str = "transactions.txt"
    audit_log_file: str = "savings_audit.log"

    # Business rules configuration
    default_interest_rate: str = "0.05"  # Annual, savings accounts
    default_maintenance_fee: str = "10.00"  # Monthly, current accounts
    initial_customer_id: int = 1000
    initial_account_number: int = 10000

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    class Config:
        env_prefix = "UNIBANK_"
        env_file = ".env"
        case_sensitive = False

    @property
    def interest_rate(self) -> Decimal:
        return Decimal(self.default_interest_rate)

    @property
    def maintenance_fee(self) -> Decimal:
        return Decimal(self.default_maintenance_fee)

    @property
    def audit_log_path(self) -> Path:
        return Path(self.data_dir) / self.audit_log_file


# Global configuration instance
config = UniBankConfig()


def get_config() -> UniBankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> UniBankConfig:
    """Reload configuration from environment"""
    global config
    config = UniBankConfig()
    return config
