"""Pydantic configuration models."""

from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from drive_monitor.constants import CaptchaConfig, Intervals, Site, Timeouts

DEFAULT_STATE_DIR = Path.home() / ".drive-monitor" / "browser-state"


class AuthConfig(BaseModel):
    """Driving center account."""

    username: str = Field(default="")
    password: SecretStr = Field(default=SecretStr(""))

    @property
    def is_complete(self) -> bool:
        return bool(self.username and self.password.get_secret_value())


class MonitorConfig(BaseModel):
    """Polling behaviour and target site locations."""

    interval: int = Field(
        default=Intervals.CHECK_DEFAULT, ge=Intervals.CHECK_MIN, le=Intervals.CHECK_MAX
    )
    headless: bool = Field(default=True)
    base_url: str = Field(default=Site.BASE_URL)
    identity_provider_host: str = Field(default=Site.IDENTITY_PROVIDER_HOST)
    reservation_path: str = Field(default=Site.RESERVATION_PATH)
    login_path: str = Field(default=Site.LOGIN_PATH)
    state_dir: Path = Field(default=DEFAULT_STATE_DIR)

    @field_validator("base_url")
    @classmethod
    def validate_https(cls, v: str) -> str:
        """Ensure URL is HTTPS and has valid structure."""
        if not v.startswith("https://"):
            raise ValueError("monitor.base_url must use HTTPS")
        if not urlparse(v).netloc:
            raise ValueError("monitor.base_url must have a valid domain")
        return v.rstrip("/")

    @property
    def protected_host(self) -> str:
        return urlparse(self.base_url).netloc

    @property
    def reservation_url(self) -> str:
        return f"{self.base_url}{self.reservation_path}"

    @property
    def login_url(self) -> str:
        return f"{self.base_url}{self.login_path}"


class ProgramConfig(BaseModel):
    """A program to monitor."""

    name: str = Field(min_length=1)
    keywords: List[str] = Field(default_factory=list)


class SmtpConfig(BaseModel):
    """SMTP server settings."""

    host: str = Field(default="smtp.gmail.com")
    port: int = Field(default=587, ge=1, le=65535)
    username: str = Field(default="")
    password: SecretStr = Field(default=SecretStr(""))
    use_tls: bool = Field(default=True)


class EmailSettings(BaseModel):
    """Email notification settings."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = Field(default=True)
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
    sender: str = Field(default="", alias="from")
    to: List[str] = Field(default_factory=list)
    subject: str = Field(default="BMW 드라이빙 센터 예약 알림 (Reservation Alert)")

    @field_validator("to", mode="before")
    @classmethod
    def split_recipients(cls, v: Any) -> Any:
        """Accept a single address or a comma separated string."""
        if isinstance(v, str):
            return [addr.strip() for addr in v.split(",") if addr.strip()]
        return v


class CaptchaSolverConfig(BaseModel):
    """Captcha solver configuration."""

    service: str = Field(default=CaptchaConfig.SERVICE_2CAPTCHA)
    api_key: SecretStr = Field(default=SecretStr(""))
    manual_timeout: float = Field(default=Timeouts.CAPTCHA_INTERACTIVE_SECONDS, gt=0)
    post_login_timeout: float = Field(default=Timeouts.CAPTCHA_POST_LOGIN_SECONDS, gt=0)

    @field_validator("service")
    @classmethod
    def validate_service(cls, v: str) -> str:
        """Validate captcha service."""
        valid_services = [CaptchaConfig.SERVICE_2CAPTCHA]
        if v not in valid_services:
            raise ValueError(f'service must be: {", ".join(valid_services)}')
        return v

    @property
    def automated(self) -> bool:
        return bool(self.api_key.get_secret_value())


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    json_format: bool = Field(default=False, alias="json")
    directory: str = Field(default="logs")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v


class AppConfig(BaseModel):
    """Complete application configuration."""

    auth: AuthConfig = Field(default_factory=AuthConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    programs: List[ProgramConfig] = Field(default_factory=list)
    email: EmailSettings = Field(default_factory=EmailSettings)
    captcha_solver: CaptchaSolverConfig = Field(default_factory=CaptchaSolverConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def check_unique_programs(self) -> "AppConfig":
        """Reject duplicate program names."""
        names = [program.name for program in self.programs]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate program names: {', '.join(duplicates)}")
        return self

    @property
    def program_names(self) -> List[str]:
        return [program.name for program in self.programs]

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AppConfig":
        """Create from a raw configuration dictionary."""
        return cls.model_validate(data or {})
