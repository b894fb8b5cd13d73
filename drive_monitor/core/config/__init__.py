"""Configuration loading and validation."""

from .config_loader import find_config_file, load_config, load_settings
from .config_models import (
    AppConfig,
    AuthConfig,
    CaptchaSolverConfig,
    EmailSettings,
    LoggingConfig,
    MonitorConfig,
    ProgramConfig,
    SmtpConfig,
)

__all__ = [
    "AppConfig",
    "AuthConfig",
    "CaptchaSolverConfig",
    "EmailSettings",
    "LoggingConfig",
    "MonitorConfig",
    "ProgramConfig",
    "SmtpConfig",
    "find_config_file",
    "load_config",
    "load_settings",
]
