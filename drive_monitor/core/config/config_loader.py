"""Configuration loader with YAML and environment variable support."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import SecretStr, ValidationError

from drive_monitor.constants import CaptchaConfig
from drive_monitor.core.exceptions import ConfigurationError

from .config_models import AppConfig

USERNAME_ENV = "DRIVE_MONITOR_USERNAME"
PASSWORD_ENV = "DRIVE_MONITOR_PASSWORD"

# Sensitive configuration keys to mask in logs
SENSITIVE_CONFIG_KEYS: frozenset[str] = frozenset({
    "password",
    "secret",
    "token",
    "api_key",
    "encryption_key",
})

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def default_config_locations() -> List[Path]:
    """Locations searched, in order, when no explicit config path is given."""
    return [
        Path("config") / "config.yaml",
        Path("configs") / "config.yaml",
        Path.home() / ".drive-monitor" / "config.yaml",
    ]


def load_env_variables(env_file: Optional[Union[str, Path]] = None) -> None:
    """Load environment variables from a .env file."""
    env_path = Path(env_file) if env_file else Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)
        logger.debug(f"Loaded environment variables from {env_path}")


def substitute_env_vars(value: Any) -> Any:
    """
    Recursively substitute ``${VAR}`` references in configuration values.

    Unset variables are replaced with an empty string.
    """
    if isinstance(value, str):
        for match in _ENV_PATTERN.findall(value):
            env_value = os.getenv(match)
            if env_value is None:
                logger.debug(f"Environment variable '{match}' not set, using empty string")
                env_value = ""
            value = value.replace(f"${{{match}}}", env_value)
        return value
    if isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def _safe_config_summary(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of the config dict with sensitive values masked for logging."""
    safe_config: Dict[str, Any] = {}
    for key, value in config.items():
        if any(pattern in str(key).lower() for pattern in SENSITIVE_CONFIG_KEYS):
            safe_config[key] = "[REDACTED]"
        elif isinstance(value, dict):
            safe_config[key] = _safe_config_summary(value)
        elif isinstance(value, list):
            safe_config[key] = [
                _safe_config_summary(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            safe_config[key] = value
    return safe_config


def find_config_file(
    config_path: Optional[Union[str, Path]] = None,
    search_paths: Optional[Iterable[Path]] = None,
) -> Path:
    """
    Resolve the configuration file to load.

    Args:
        config_path: Explicit path; must exist when given
        search_paths: Candidate locations used when no explicit path is given

    Returns:
        Path of an existing configuration file

    Raises:
        ConfigurationError: If no configuration file is found
    """
    if config_path:
        path = Path(config_path).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Config file not found: {path}")
        return path

    candidates = list(search_paths) if search_paths is not None else default_config_locations()
    for candidate in candidates:
        if candidate.expanduser().is_file():
            return candidate.expanduser()

    tried = ", ".join(str(c) for c in candidates)
    raise ConfigurationError(f"No config file found. Tried: {tried}")


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file with environment variable substitution.

    Args:
        config_path: Path to YAML configuration file (searched when omitted)

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file is missing or is not valid YAML
    """
    load_env_variables()
    config_file = find_config_file(config_path)
    logger.info(f"Loading config from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e

    if config_data is None:
        config_data = {}
    if not isinstance(config_data, dict):
        raise ConfigurationError(f"Config root must be a mapping: {config_file}")

    config: Dict[str, Any] = substitute_env_vars(config_data)
    logger.debug(f"Config loaded: {_safe_config_summary(config)}")
    return config


def apply_env_overrides(settings: AppConfig) -> AppConfig:
    """Fill credentials and the solver API key from the environment when set."""
    username = os.getenv(USERNAME_ENV)
    if username:
        settings.auth.username = username
    password = os.getenv(PASSWORD_ENV)
    if password:
        settings.auth.password = SecretStr(password)
    if not settings.captcha_solver.api_key.get_secret_value():
        api_key = os.getenv(CaptchaConfig.API_KEY_ENV)
        if api_key:
            settings.captcha_solver.api_key = SecretStr(api_key)
    return settings


def load_settings(config_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load, validate and return typed application settings.

    Raises:
        ConfigurationError: If the file is missing or fails validation
    """
    raw = load_config(config_path)
    try:
        settings = AppConfig.from_dict(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    return apply_env_overrides(settings)
