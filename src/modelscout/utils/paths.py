"""Project path helpers for modelscout."""

from __future__ import annotations

from pathlib import Path


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from start directory to find project root.

    Project root is identified by the presence of a .modelscout/ directory.
    """
    current = (start or Path.cwd()).resolve()
    for directory in [current, *current.parents]:
        if (directory / ".modelscout").is_dir():
            return directory
    return None


def get_user_dir() -> Path:
    """Get the user-level ~/.modelscout directory path."""
    return Path.home() / ".modelscout"


def get_user_settings_path() -> Path:
    """Get user-level settings.json path."""
    return get_user_dir() / "settings.json"


def get_project_settings_path(project_root: Path) -> Path:
    """Get project-level settings.json path."""
    return project_root / ".modelscout" / "settings.json"


def get_default_model_dir() -> Path:
    """Default cache directory for downloaded model assets."""
    return get_user_dir() / "models"


def get_default_embeddings_dir() -> Path:
    """Default directory for embedding stores."""
    return get_user_dir() / "embeddings"
