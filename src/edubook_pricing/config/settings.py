"""
Centralized settings and path configuration for the book pricing tool.
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
    
    # Persistence collaborator: "json" (files under data_dir) or "memory"
    store_backend: str = "json"
    log_level: str = "INFO"
    
    # Setup form defaults
    default_class: str = "12"
    default_course: str = "Science"
    textbook_discount: float = 10.0
    textbook_tax: float = 5.0
    notebook_discount: float = 15.0
    notebook_tax: float = 5.0
    
    # Display only
    currency: str = "INR"
    
    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()
        
        data_dir = os.getenv("EDUBOOK_DATA_DIR")
        
        return cls(
            project_root=root,
            data_dir=Path(data_dir) if data_dir else root / 'data',
            store_backend=os.getenv("EDUBOOK_STORE", "json").strip().lower(),
            log_level=os.getenv("EDUBOOK_LOG_LEVEL", "INFO").upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
