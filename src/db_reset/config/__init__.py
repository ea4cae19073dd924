"""Configuration management: profiles, reset settings, TOML loading.

Usage:
    >>> from db_reset.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from db_reset.config.loader import load_db_config
from db_reset.config.models import DatabaseConfig, DatabaseProfile, ResetSettings

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile", "ResetSettings"]
