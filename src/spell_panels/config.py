"""Configuration helpers and Settings container.

This module provides a frozen `Settings` dataclass with the aggregation
defaults and `get_settings`, which reads `SPELL_PANELS_*` overrides from the
environment (a `.env` file in the project root is loaded first).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

from spell_panels.errors import ConfigError

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

ENV_PREFIX = "SPELL_PANELS_"
EPOCH_YEAR = 1970


@dataclass(frozen=True)
class Settings:
    """Container for aggregation configuration.

    Attributes:
        horizon_year: Latest calendar year a spell may be expanded into.
        chunk_size: Number of spells processed per batch.
        min_diversity_cell_size: Employer-years with fewer yearly
            observations are dropped from the diversity table.
        decimal_precision: Default rounding for means, deviations and shares.
        skip_invalid_records: Skip spells raising `DataError` instead of
            aborting the run.
        workers: Number of dask partitions used for partitioned runs
            (1 means a plain sequential run).
    """
    horizon_year: int = 2024
    chunk_size: int = 500_000
    min_diversity_cell_size: int = 10
    decimal_precision: int = 4
    skip_invalid_records: bool = False
    workers: int = 1

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ConfigError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.horizon_year < EPOCH_YEAR:
            raise ConfigError(
                f"horizon_year must be >= {EPOCH_YEAR}, got {self.horizon_year}"
            )
        if self.min_diversity_cell_size < 1:
            raise ConfigError(
                "min_diversity_cell_size must be >= 1, "
                f"got {self.min_diversity_cell_size}"
            )
        if self.decimal_precision < 0:
            raise ConfigError(
                f"decimal_precision must be >= 0, got {self.decimal_precision}"
            )
        if self.workers < 1:
            raise ConfigError(f"workers must be >= 1, got {self.workers}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name, "").strip()
    if not raw:
        return default
    try:
        return int(raw.replace("_", ""))
    except ValueError:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(ENV_PREFIX + name, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def get_settings() -> Settings:
    """Read environment overrides and return a frozen `Settings` object.

    Raises:
        ConfigError: if a variable cannot be parsed or is out of range.
    """
    defaults = Settings()
    return Settings(
        horizon_year=_env_int("HORIZON_YEAR", defaults.horizon_year),
        chunk_size=_env_int("CHUNK_SIZE", defaults.chunk_size),
        min_diversity_cell_size=_env_int(
            "MIN_DIVERSITY_CELL_SIZE", defaults.min_diversity_cell_size
        ),
        decimal_precision=_env_int("DECIMAL_PRECISION", defaults.decimal_precision),
        skip_invalid_records=_env_bool(
            "SKIP_INVALID_RECORDS", defaults.skip_invalid_records
        ),
        workers=_env_int("WORKERS", defaults.workers),
    )
