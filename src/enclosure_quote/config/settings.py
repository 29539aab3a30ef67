"""
Centralized settings and path configuration for the quote tool.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

PACKAGE_DIR = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to the working directory (installed package)
    return Path.cwd()


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Reference data: a directory of CSVs, optionally overridden by a workbook
    data_dir: Path
    reference_workbook: Optional[Path] = None

    # Quote store
    quotes_dir: Optional[Path] = None

    # Price matrix integrity report
    build_report: Optional[Path] = None

    # Quotes
    quote_prefix: str = 'ALU'
    default_validity_months: int = 3
    default_transport_rate: float = 19

    log_level: str = 'INFO'

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        data_dir = Path(os.environ.get(
            'ENCLOSURE_QUOTE_DATA_DIR', PACKAGE_DIR / 'data' / 'reference'
        ))
        workbook = os.environ.get('ENCLOSURE_QUOTE_WORKBOOK')
        quotes_dir = Path(os.environ.get(
            'ENCLOSURE_QUOTE_QUOTES_DIR', root / 'var' / 'quotes'
        ))

        return cls(
            project_root=root,
            data_dir=data_dir,
            reference_workbook=Path(workbook) if workbook else None,
            quotes_dir=quotes_dir,
            build_report=root / 'var' / 'reports' / 'price_report.json',
            quote_prefix=os.environ.get('ENCLOSURE_QUOTE_PREFIX', 'ALU'),
            log_level=os.environ.get('ENCLOSURE_QUOTE_LOG_LEVEL', 'INFO'),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
