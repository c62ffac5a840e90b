"""
Configuration settings for the Unit Ledger Backend.

This module handles application configuration using Pydantic settings.
"""

from datetime import date
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Unit Ledger Backend"
    api_version: str = "v1"
    debug: bool = True
    log_level: str = "INFO"

    # Database Configuration
    database_url: str = "sqlite+aiosqlite:///./unit_ledger.db"
    db_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Chart of accounts: band used when auto-numbering expense categories
    expense_code_start: int = 5001
    expense_code_end: int = 5999
    expense_code_reserved: int = 5099  # "Other Expenses"
    seed_default_accounts_on_startup: bool = True

    # Current term window (normally owned by the term service)
    current_term_start: Optional[date] = None
    current_term_end: Optional[date] = None
    term_cache_ttl_seconds: int = 300

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
