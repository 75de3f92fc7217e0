"""Configuration management using Pydantic Settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Dict, List, Literal, Optional

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


CONFIG_FILENAME = ".skillpack.yaml"

DEFAULT_FRONTMATTER_KEYS = [
    "name",
    "description",
    "license",
    "allowed-tools",
    "metadata",
    "version",
]


class Settings(BaseSettings):
    """
    skillpack settings.

    Precedence, lowest to highest: field defaults, the bundle's
    .skillpack.yaml, SKILLPACK_* environment variables, explicit kwargs.
    """

    model_config = SettingsConfigDict(
        env_prefix="SKILLPACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    log_format: Literal["json", "console"] = "console"

    # Linting
    strict: bool = False
    min_description_length: int = 20
    max_description_length: int = 1024
    allowed_frontmatter_keys: List[str] = list(DEFAULT_FRONTMATTER_KEYS)
    require_readme: bool = True
    require_fence_language: bool = True


def load_file_config(root: Path) -> Dict[str, Any]:
    """Read overrides from `<root>/.skillpack.yaml`; empty when absent."""
    config_path = root / CONFIG_FILENAME
    if not config_path.is_file():
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{config_path}: invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    return {k.replace("-", "_"): v for k, v in data.items()}


class _FileBackedSettings(Settings):
    """Settings whose lowest-priority source is a YAML mapping."""

    file_values: ClassVar[Dict[str, Any]] = {}

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        file_values = dict(cls.file_values)

        def yaml_settings() -> Dict[str, Any]:
            return file_values

        return (init_settings, env_settings, dotenv_settings, yaml_settings)


def settings_for_root(root: Optional[Path], **overrides: Any) -> Settings:
    """Build settings for a bundle root, honouring its .skillpack.yaml."""
    values = load_file_config(Path(root)) if root else {}
    if not values:
        return Settings(**overrides)

    class BundleSettings(_FileBackedSettings):
        file_values: ClassVar[Dict[str, Any]] = values

    try:
        return BundleSettings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"{Path(root) / CONFIG_FILENAME}: {e}") from e


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
