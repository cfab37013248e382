"""Configuration module for the ledger posting engine."""

from ledger_posting.config.logging import configure_logging
from ledger_posting.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging"]
