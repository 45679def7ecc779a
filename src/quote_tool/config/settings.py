"""
Centralized settings and path configuration for the quote tool.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path
    data_dir: Path

    # Flat-file stores
    products_csv: Path
    quotes_csv: Path
    company_csv: Path
    counters_json: Path

    log_level: str = "INFO"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        data_dir = os.getenv("QUOTE_TOOL_DATA_DIR")
        data_dir = Path(data_dir) if data_dir else root / 'data'

        return cls.for_data_dir(
            data_dir,
            project_root=root,
            log_level=os.getenv("QUOTE_TOOL_LOG_LEVEL", "INFO").upper(),
        )

    @classmethod
    def for_data_dir(cls, data_dir: Path, project_root: Optional[Path] = None,
                     log_level: str = "INFO") -> 'Settings':
        """Build settings whose stores all live under ``data_dir``."""
        data_dir = Path(data_dir)
        return cls(
            project_root=project_root or get_project_root(),
            data_dir=data_dir,
            products_csv=data_dir / 'products.csv',
            quotes_csv=data_dir / 'quotes.csv',
            company_csv=data_dir / 'quote_config.csv',
            counters_json=data_dir / 'counters.json',
            log_level=log_level,
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
    """Forget the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
