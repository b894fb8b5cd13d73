"""Account credentials."""

from dataclasses import dataclass

from drive_monitor.utils.masking import mask_username


@dataclass(frozen=True)
class Credentials:
    """Driving center login. Never logged in cleartext."""

    username: str
    password: str

    def __repr__(self) -> str:
        """Return repr with masked fields."""
        return f"Credentials(username='{mask_username(self.username)}', password='***')"

    def __str__(self) -> str:
        return self.__repr__()

    @property
    def masked_username(self) -> str:
        return mask_username(self.username)
