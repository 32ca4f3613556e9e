"""
Centralized settings and path configuration for the price list engine.
"""
import logging
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

ENV_PREFIX = "PRICELIST_"


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists() or (parent / 'data' / 'price_lists.csv').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _env(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path
    data_dir: Path

    # Optional Excel workbook holding all three tables as sheets
    workbook: Optional[Path] = None

    # Precedence: "desc" means a larger priority wins, "asc" means 0 is highest
    priority_order: str = "desc"
    default_currency: str = "EUR"

    # Caching layer
    cache_ttl_seconds: float = 300.0
    cache_date_bucket: str = "day"

    log_level: str = "INFO"

    @property
    def price_lists_csv(self) -> Path:
        return self.data_dir / 'price_lists.csv'

    @property
    def entries_csv(self) -> Path:
        return self.data_dir / 'price_list_entries.csv'

    @property
    def assignments_csv(self) -> Path:
        return self.data_dir / 'partner_assignments.csv'

    @property
    def higher_priority_wins(self) -> bool:
        return self.priority_order == "desc"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and PRICELIST_* overrides."""
        root = project_root or get_project_root()

        data_dir = Path(_env('DATA_DIR')) if _env('DATA_DIR') else root / 'data'
        workbook = Path(_env('WORKBOOK')) if _env('WORKBOOK') else None

        priority_order = (_env('PRIORITY_ORDER') or 'desc').lower()
        if priority_order not in ('desc', 'asc'):
            raise ValueError(
                f"{ENV_PREFIX}PRIORITY_ORDER must be 'desc' or 'asc', got '{priority_order}'"
            )

        cache_date_bucket = (_env('CACHE_DATE_BUCKET') or 'day').lower()
        if cache_date_bucket not in ('day', 'exact'):
            raise ValueError(
                f"{ENV_PREFIX}CACHE_DATE_BUCKET must be 'day' or 'exact', got '{cache_date_bucket}'"
            )

        return cls(
            project_root=root,
            data_dir=data_dir,
            workbook=workbook,
            priority_order=priority_order,
            default_currency=_env('DEFAULT_CURRENCY') or 'EUR',
            cache_ttl_seconds=float(_env('CACHE_TTL_SECONDS') or 300),
            cache_date_bucket=cache_date_bucket,
            log_level=(_env('LOG_LEVEL') or 'INFO').upper(),
        )


def configure_logging(level: Optional[str] = None):
    """Basic console logging for scripts and the API."""
    level = level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Forget the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
