"""Durable storage for the browser session-state blob."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"


class SessionStore:
    """
    Persist the session blob as JSON, encrypted with Fernet when ENCRYPTION_KEY is set.

    The blob holds authentication cookies, so it is written with owner-only
    permissions even when unencrypted.
    """

    FILE_NAME = "storage_state.json"

    def __init__(self, state_dir: Union[str, Path], encryption_key: Optional[str] = None):
        self.state_file = Path(state_dir).expanduser() / self.FILE_NAME
        self._fernet = self._init_fernet(encryption_key or os.getenv(ENCRYPTION_KEY_ENV))

    @staticmethod
    def _init_fernet(encryption_key: Optional[str]) -> Optional[Fernet]:
        """Initialize Fernet encryption if a key is available."""
        if not encryption_key:
            logger.warning(
                f"{ENCRYPTION_KEY_ENV} not set - session state will NOT be encrypted. "
                f"Set {ENCRYPTION_KEY_ENV} for secure session storage."
            )
            return None
        try:
            return Fernet(encryption_key.encode())
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to initialize Fernet encryption: {e}")
            return None

    @property
    def encrypted(self) -> bool:
        return self._fernet is not None

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Load the saved session blob.

        Returns:
            The blob, or None if nothing usable is stored
        """
        if not self.state_file.exists():
            return None

        try:
            raw_data = self.state_file.read_bytes()
            if self._fernet:
                try:
                    raw_data = self._fernet.decrypt(raw_data)
                except InvalidToken:
                    logger.warning(
                        "Session state is not encrypted with the current key, ignoring it"
                    )
                    return None
            blob = json.loads(raw_data.decode("utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load session state: {e}")
            return None

        if not isinstance(blob, dict):
            logger.warning("Session state has unexpected format, ignoring it")
            return None

        logger.debug(f"Session state loaded from {self.state_file}")
        return blob

    def save(self, blob: Dict[str, Any]) -> None:
        """
        Write the session blob.

        Raises:
            OSError: If the file cannot be written
        """
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(blob, ensure_ascii=False).encode("utf-8")
        if self._fernet:
            data = self._fernet.encrypt(data)

        tmp_file = self.state_file.with_suffix(".tmp")
        tmp_file.write_bytes(data)
        os.chmod(tmp_file, 0o600)
        tmp_file.replace(self.state_file)
        logger.debug(
            f"Session state saved ({'encrypted' if self._fernet else 'unencrypted'}): "
            f"{self.state_file}"
        )
