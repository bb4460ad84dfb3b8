"""modelscout configuration management.

Loads and merges settings from user and project-level settings.json files,
then applies MODELSCOUT_* environment overrides.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from modelscout.utils.paths import (
    get_default_embeddings_dir,
    get_default_model_dir,
    get_project_settings_path,
    get_user_settings_path,
)

logger = logging.getLogger(__name__)


DEFAULT_MODEL_NAME = "Xenova/all-MiniLM-L6-v2"
DEFAULT_MODEL_BASE_URL = "https://huggingface.co/{model}/resolve/main"

DEFAULT_SETTINGS: dict[str, Any] = {
    "model_name": DEFAULT_MODEL_NAME,
    "model_base_url": DEFAULT_MODEL_BASE_URL,
    "model_dir": None,
    "embeddings_dir": None,
    "corpus_base_url": None,
    "docs_corpus": "docs",
    "definitions_path": None,
    "max_sequence_length": 512,
    "max_input_chars_per_word": 200,
    "batch_size": 32,
    "download_timeout": 60.0,
    "log_level": "WARNING",
}

# Environment variable -> (settings key, converter)
ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "MODELSCOUT_MODEL_NAME": ("model_name", str),
    "MODELSCOUT_MODEL_BASE_URL": ("model_base_url", str),
    "MODELSCOUT_MODEL_DIR": ("model_dir", str),
    "MODELSCOUT_EMBEDDINGS_DIR": ("embeddings_dir", str),
    "MODELSCOUT_CORPUS_BASE_URL": ("corpus_base_url", str),
    "MODELSCOUT_DEFINITIONS_PATH": ("definitions_path", str),
    "MODELSCOUT_MAX_SEQUENCE_LENGTH": ("max_sequence_length", int),
    "MODELSCOUT_BATCH_SIZE": ("batch_size", int),
    "MODELSCOUT_DOWNLOAD_TIMEOUT": ("download_timeout", float),
    "MODELSCOUT_LOG_LEVEL": ("log_level", str),
}


@dataclass
class ModelScoutSettings:
    """Merged modelscout settings."""

    model_name: str = DEFAULT_MODEL_NAME
    model_base_url: str = DEFAULT_MODEL_BASE_URL
    model_dir: Path = field(default_factory=get_default_model_dir)
    embeddings_dir: Path = field(default_factory=get_default_embeddings_dir)
    corpus_base_url: str | None = None
    docs_corpus: str = "docs"
    definitions_path: Path | None = None
    max_sequence_length: int = 512
    max_input_chars_per_word: int = 200
    batch_size: int = 32
    download_timeout: float = 60.0
    log_level: str = "WARNING"

    @property
    def resolved_model_base_url(self) -> str:
        return self.model_base_url.format(model=self.model_name).rstrip("/")

    def to_dict(self) -> dict[str, Any]:
        return {
            "model_name": self.model_name,
            "model_base_url": self.model_base_url,
            "model_dir": str(self.model_dir),
            "embeddings_dir": str(self.embeddings_dir),
            "corpus_base_url": self.corpus_base_url,
            "docs_corpus": self.docs_corpus,
            "definitions_path": str(self.definitions_path) if self.definitions_path else None,
            "max_sequence_length": self.max_sequence_length,
            "max_input_chars_per_word": self.max_input_chars_per_word,
            "batch_size": self.batch_size,
            "download_timeout": self.download_timeout,
            "log_level": self.log_level,
        }


def load_json_file(path: Path) -> dict[str, Any]:
    """Load a JSON file, returning empty dict if not found or invalid."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        logger.warning("Ignoring unreadable settings file %s", path)
        return {}
    return data if isinstance(data, dict) else {}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base, returning new dict.

    - Dicts are recursively merged
    - Lists are replaced (not appended)
    - Scalars are replaced
    """
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def apply_env_overrides(merged: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Apply MODELSCOUT_* environment variables on top of merged settings."""
    env = os.environ if environ is None else environ
    result = dict(merged)
    for var, (key, convert) in ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            result[key] = convert(raw)
        except ValueError:
            logger.warning("Ignoring invalid value for %s: %r", var, raw)
    return result


def load_settings(
    project_root: Path | None = None,
    environ: dict[str, str] | None = None,
) -> ModelScoutSettings:
    """Load and merge settings from user + project levels.

    Precedence: environment overrides project settings override user
    settings override defaults.
    """
    merged = dict(DEFAULT_SETTINGS)

    # User-level settings (lower precedence)
    user_settings = load_json_file(get_user_settings_path())
    if user_settings:
        merged = deep_merge(merged, user_settings)

    # Project-level settings (higher precedence)
    if project_root is not None:
        project_settings = load_json_file(get_project_settings_path(project_root))
        if project_settings:
            merged = deep_merge(merged, project_settings)

    merged = apply_env_overrides(merged, environ)

    definitions_path = merged.get("definitions_path")
    return ModelScoutSettings(
        model_name=merged["model_name"],
        model_base_url=merged["model_base_url"],
        model_dir=Path(merged["model_dir"]) if merged.get("model_dir") else get_default_model_dir(),
        embeddings_dir=(
            Path(merged["embeddings_dir"]) if merged.get("embeddings_dir") else get_default_embeddings_dir()
        ),
        corpus_base_url=merged.get("corpus_base_url"),
        docs_corpus=merged.get("docs_corpus", "docs"),
        definitions_path=Path(definitions_path) if definitions_path else None,
        max_sequence_length=merged.get("max_sequence_length", 512),
        max_input_chars_per_word=merged.get("max_input_chars_per_word", 200),
        batch_size=merged.get("batch_size", 32),
        download_timeout=merged.get("download_timeout", 60.0),
        log_level=merged.get("log_level", "WARNING"),
    )


def save_settings(settings: ModelScoutSettings, path: Path) -> None:
    """Save settings to a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(settings.to_dict(), indent=2) + "\n",
        encoding="utf-8",
    )


def validate_settings(settings: ModelScoutSettings) -> list[str]:
    """Validate settings, returning list of error messages (empty if valid)."""
    errors = []

    if not settings.model_name:
        errors.append("model_name is required")

    if not isinstance(settings.max_sequence_length, int) or settings.max_sequence_length < 3:
        errors.append("max_sequence_length must be an integer of at least 3")

    if not isinstance(settings.max_input_chars_per_word, int) or settings.max_input_chars_per_word < 1:
        errors.append("max_input_chars_per_word must be a positive integer")

    if not isinstance(settings.batch_size, int) or settings.batch_size < 1:
        errors.append("batch_size must be a positive integer")

    if not isinstance(settings.download_timeout, (int, float)) or settings.download_timeout <= 0:
        errors.append("download_timeout must be a positive number")

    if logging.getLevelName(str(settings.log_level).upper()) not in (
        logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL,
    ):
        errors.append("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")

    return errors


def configure_logging(level: str) -> None:
    """Configure root logging for CLI and server entry points."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
