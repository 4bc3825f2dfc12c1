"""Batch quote calculator configuration.

This package contains:
- settings: Environment variables and configuration
- errors: Custom exceptions and error codes
"""

from config.settings import settings, Settings
from config.errors import QuoteCalcError, ErrorCode

__all__ = [
    "settings",
    "Settings",
    "QuoteCalcError",
    "ErrorCode",
]
