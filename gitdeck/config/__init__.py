"""Configuration management for gitdeck."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from gitdeck.errors import InvalidConfigError

from .settings import Settings

# Singleton instance
_settings: Optional[Settings] = None
# Custom config file chosen on the command line, kept for fresh reloads
_config_path: Optional[Path] = None

# Default config directory
CONFIG_DIR = Path.home() / ".gitdeck"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

SECTIONS = ("network", "git", "workspace", "github", "storage")


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${ENV_VAR} syntax in strings."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value if value else None
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    return value


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_file(path: Path) -> dict:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f)
        return content if content else {}


def _drop_none(value: Any) -> Any:
    """Remove keys whose value expanded to None so model defaults apply."""
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    return value


def _transform_config_to_settings(config: dict) -> dict:
    """Transform YAML config structure to Settings model structure."""
    settings_dict = {}
    for section in SECTIONS:
        if isinstance(config.get(section), dict):
            settings_dict[section] = _drop_none(config[section])
    return settings_dict


def ensure_config_dir() -> None:
    """Ensure the config directory exists."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def create_default_config() -> None:
    """Create a default config file if it doesn't exist."""
    ensure_config_dir()
    if not CONFIG_FILE.exists():
        defaults = DEFAULTS_FILE.read_text(encoding="utf-8")
        CONFIG_FILE.write_text(defaults, encoding="utf-8")


def load_settings(config_path: Optional[Path] = None, force_reload: bool = False) -> Settings:
    """
    Load settings from the bundled defaults, the user config file and the environment.

    The user file overrides the defaults key by key, with ${VAR} references
    expanded. Section values from the files take precedence over
    GITDECK_<SECTION>__<KEY> variables, which only fill keys the files leave
    out. GITHUB_TOKEN and GH_TOKEN are read separately and win over
    github.token in the file.

    Args:
        config_path: Optional path to a custom config file. Remembered for
            later reloads.
        force_reload: Force reload even if settings are cached

    Returns:
        Settings instance

    Raises:
        InvalidConfigError: If a configured value fails validation.
    """
    global _settings, _config_path

    if config_path is not None:
        _config_path = config_path

    if _settings is not None and not force_reload:
        return _settings

    defaults = _load_yaml_file(DEFAULTS_FILE)
    user_config = _load_yaml_file(_config_path or CONFIG_FILE)

    merged = _deep_merge(defaults, user_config)
    expanded = _expand_env_vars(merged)
    settings_dict = _transform_config_to_settings(expanded)

    # Create Settings instance (this also reads from environment variables)
    try:
        _settings = Settings(**settings_dict)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise InvalidConfigError(field, first.get("input"), first["msg"]) from e

    return _settings


def get_settings() -> Settings:
    """Get the current settings instance, loading if necessary."""
    if _settings is None:
        return load_settings()
    return _settings


def fresh_settings() -> Settings:
    """Re-read configuration from disk and environment.

    Retry knobs may change between operations, so the invocation layer calls
    this once per operation instead of holding on to a Settings instance.
    """
    return load_settings(force_reload=True)


def reset_settings() -> None:
    """Reset the settings singleton (useful for testing)."""
    global _settings, _config_path
    _settings = None
    _config_path = None


__all__ = [
    "Settings",
    "get_settings",
    "load_settings",
    "fresh_settings",
    "reset_settings",
    "ensure_config_dir",
    "create_default_config",
    "CONFIG_DIR",
    "CONFIG_FILE",
]
