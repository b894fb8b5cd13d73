"""Base notification types: sink ABC and channel configuration."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from drive_monitor.core.config.config_models import EmailSettings


@dataclass
class EmailConfig:
    """Email notification configuration."""

    enabled: bool = False
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    sender: Optional[str] = None
    recipients: List[str] = field(default_factory=list)
    subject: str = "BMW 드라이빙 센터 예약 알림 (Reservation Alert)"

    def __repr__(self) -> str:
        """Return repr with masked password."""
        masked_password = "'***'" if self.password else "None"
        return (
            f"EmailConfig(enabled={self.enabled}, smtp_server={self.smtp_server!r}, "
            f"smtp_port={self.smtp_port}, username={self.username!r}, "
            f"password={masked_password}, sender={self.sender!r}, "
            f"recipients={self.recipients!r})"
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.smtp_server and self.sender and self.recipients)

    @classmethod
    def from_settings(cls, settings: EmailSettings) -> "EmailConfig":
        """Build from the validated ``email`` config section."""
        password = settings.smtp.password.get_secret_value()
        return cls(
            enabled=settings.enabled,
            smtp_server=settings.smtp.host,
            smtp_port=settings.smtp.port,
            username=settings.smtp.username or None,
            password=password or None,
            use_tls=settings.smtp.use_tls,
            sender=settings.sender or settings.smtp.username or None,
            recipients=list(settings.to),
            subject=settings.subject,
        )


class NotificationSink(ABC):
    """Delivers availability and CAPTCHA alerts to the operator."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get sink name."""
        pass

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Check if sink is enabled."""
        pass

    @abstractmethod
    async def send_availability(self, programs: Sequence[str], checked_at: datetime) -> None:
        """
        Announce newly reservable programs.

        Raises:
            NotificationError: If delivery failed
        """
        pass

    @abstractmethod
    async def send_captcha_alert(self, detected_at: datetime, page_url: str = "") -> None:
        """
        Tell the operator a challenge needs attention.

        Raises:
            NotificationError: If delivery failed
        """
        pass
