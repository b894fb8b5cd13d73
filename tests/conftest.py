"""Pytest configuration and common fixtures."""

import sys
import warnings
from pathlib import Path

from cryptography.fernet import Fernet

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from typing import Any, Dict

import pytest
from loguru import logger


def pytest_configure(config):
    """Configure pytest environment before tests run."""
    # Suppress async mock warnings
    warnings.filterwarnings("ignore", message="coroutine.*was never awaited")


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Isolate every test from the developer's environment."""
    monkeypatch.setenv("ENCRYPTION_KEY", Fernet.generate_key().decode())
    for var in ("DRIVE_MONITOR_USERNAME", "DRIVE_MONITOR_PASSWORD", "TWOCAPTCHA_API_KEY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def captured_logs():
    """Collect loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def config() -> Dict[str, Any]:
    """Raw configuration dictionary as loaded from YAML."""
    return {
        "auth": {"username": "driver@example.com", "password": "s3cret-pass"},
        "monitor": {"interval": 60, "headless": True},
        "programs": [
            {"name": "M Core"},
            {"name": "BEV Core", "keywords": ["BEV 코어"]},
        ],
        "email": {
            "enabled": True,
            "smtp": {
                "host": "smtp.example.com",
                "port": 587,
                "username": "alerts@example.com",
                "password": "smtp-pass",
            },
            "from": "alerts@example.com",
            "to": ["driver@example.com"],
        },
        "captcha_solver": {"service": "2captcha", "api_key": ""},
    }
