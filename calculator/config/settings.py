"""Batch quote calculator configuration settings.

Loads configuration from environment variables with sensible defaults.
A local .env file is honoured for development.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for source locations, state directory and feature flags
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    """Read a boolean environment flag."""
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: str) -> float:
    """Read a numeric environment variable; unparseable values become NaN and fail validate()."""
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return float("nan")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Tabular sources (local path or http(s) URL)
    machines_source: str = field(default_factory=lambda: os.getenv("MACHINES_SOURCE", "data/machines_demo.csv"))
    job_fields_source: str = field(default_factory=lambda: os.getenv("JOB_FIELDS_SOURCE", "data/job_fields_demo.csv"))
    source_timeout_seconds: float = field(default_factory=lambda: _env_float("SOURCE_TIMEOUT_SECONDS", "10"))

    # Persistence
    state_dir: str = field(default_factory=lambda: os.getenv("STATE_DIR", ".quote_state"))
    storage_version: str = field(default_factory=lambda: os.getenv("STORAGE_VERSION", "v5"))
    no_persist: bool = field(default_factory=lambda: _env_flag("NO_PERSIST"))

    # Display
    currency_symbol: str = field(default_factory=lambda: os.getenv("CURRENCY_SYMBOL", "₱"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def storage_key(self) -> str:
        """Versioned snapshot key; bump STORAGE_VERSION when the snapshot shape changes."""
        return f"batch_calc_mvp_{self.storage_version}"

    def validate(self) -> None:
        """Validate settings values.

        Raises:
            ValueError: If a setting is out of range.
        """
        if not self.source_timeout_seconds > 0:
            raise ValueError("SOURCE_TIMEOUT_SECONDS must be a positive number")
        if not self.storage_version.strip():
            raise ValueError("STORAGE_VERSION must not be empty")


# Singleton settings instance
settings = Settings()
