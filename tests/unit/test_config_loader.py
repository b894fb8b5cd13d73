"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from drive_monitor.core.config import AppConfig, find_config_file, load_config, load_settings
from drive_monitor.core.config.config_loader import _safe_config_summary, substitute_env_vars
from drive_monitor.core.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep a developer's .env and config/ out of these tests."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="config.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
        return path

    return _write


class TestLoadConfig:
    """Raw YAML loading."""

    def test_loads_yaml(self, write_config, config):
        path = write_config(config)

        loaded = load_config(path)

        assert loaded["auth"]["username"] == "driver@example.com"
        assert loaded["programs"][1]["keywords"] == ["BEV 코어"]

    def test_substitutes_environment_variables(self, write_config, config, monkeypatch):
        monkeypatch.setenv("BMW_PASSWORD", "from-env")
        config["auth"]["password"] = "${BMW_PASSWORD}"
        path = write_config(config)

        assert load_config(path)["auth"]["password"] == "from-env"

    def test_unset_variable_becomes_empty(self, write_config, config):
        config["captcha_solver"]["api_key"] = "${UNSET_CAPTCHA_KEY_FOR_TEST}"
        path = write_config(config)

        assert load_config(path)["captcha_solver"]["api_key"] == ""

    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(tmp_path / "missing.yaml")

        assert "not found" in exc_info.value.message

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("auth: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == {}

    def test_secrets_not_logged(self, write_config, config, captured_logs):
        load_config(write_config(config))

        assert captured_logs
        assert not any("s3cret-pass" in m or "smtp-pass" in m for m in captured_logs)


class TestFindConfigFile:
    """Search order."""

    def test_first_existing_candidate_wins(self, tmp_path):
        first = tmp_path / "a.yaml"
        second = tmp_path / "b.yaml"
        second.write_text("{}")

        assert find_config_file(search_paths=[first, second]) == second

        first.write_text("{}")
        assert find_config_file(search_paths=[first, second]) == first

    def test_default_locations_relative_to_cwd(self, tmp_path):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text("{}")

        assert find_config_file() == Path("config") / "config.yaml"

    def test_nothing_found(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            find_config_file(search_paths=[tmp_path / "nope.yaml"])

        assert "nope.yaml" in exc_info.value.message


class TestSubstituteEnvVars:
    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "mail.example.com")

        result = substitute_env_vars(
            {"smtp": {"host": "${SMTP_HOST}"}, "to": ["${SMTP_HOST}"], "port": 25}
        )

        assert result == {
            "smtp": {"host": "mail.example.com"},
            "to": ["mail.example.com"],
            "port": 25,
        }


def test_safe_config_summary_masks_secrets(config):
    summary = _safe_config_summary(config)

    assert summary["auth"]["password"] == "[REDACTED]"
    assert summary["email"]["smtp"]["password"] == "[REDACTED]"
    assert summary["captcha_solver"]["api_key"] == "[REDACTED]"
    assert summary["auth"]["username"] == "driver@example.com"


class TestLoadSettings:
    """Typed settings and environment overrides."""

    def test_typed_settings(self, write_config, config):
        settings = load_settings(write_config(config))

        assert isinstance(settings, AppConfig)
        assert settings.monitor.interval == 60
        assert settings.program_names == ["M Core", "BEV Core"]
        assert settings.auth.password.get_secret_value() == "s3cret-pass"
        assert settings.email.sender == "alerts@example.com"
        assert settings.captcha_solver.automated is False

    def test_credentials_from_environment(self, write_config, config, monkeypatch):
        monkeypatch.setenv("DRIVE_MONITOR_USERNAME", "env-user@example.com")
        monkeypatch.setenv("DRIVE_MONITOR_PASSWORD", "env-pass")

        settings = load_settings(write_config(config))

        assert settings.auth.username == "env-user@example.com"
        assert settings.auth.password.get_secret_value() == "env-pass"

    def test_api_key_from_environment(self, write_config, config, monkeypatch):
        monkeypatch.setenv("TWOCAPTCHA_API_KEY", "env-api-key")

        settings = load_settings(write_config(config))

        assert settings.captcha_solver.automated is True
        assert settings.captcha_solver.api_key.get_secret_value() == "env-api-key"

    def test_configured_api_key_wins(self, write_config, config, monkeypatch):
        monkeypatch.setenv("TWOCAPTCHA_API_KEY", "env-api-key")
        config["captcha_solver"]["api_key"] = "file-api-key"

        settings = load_settings(write_config(config))

        assert settings.captcha_solver.api_key.get_secret_value() == "file-api-key"

    @pytest.mark.parametrize("interval", [5, 3601])
    def test_interval_out_of_range(self, write_config, config, interval):
        config["monitor"]["interval"] = interval

        with pytest.raises(ConfigurationError):
            load_settings(write_config(config))

    def test_duplicate_programs_rejected(self, write_config, config):
        config["programs"].append({"name": "M Core"})

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(write_config(config))

        assert "M Core" in exc_info.value.message

    def test_plain_http_base_url_rejected(self, write_config, config):
        config["monitor"]["base_url"] = "http://driving-center.bmw.co.kr"

        with pytest.raises(ConfigurationError):
            load_settings(write_config(config))

    def test_recipients_from_comma_string(self, write_config, config):
        config["email"]["to"] = "a@example.com, b@example.com"

        settings = load_settings(write_config(config))

        assert settings.email.to == ["a@example.com", "b@example.com"]

    def test_unknown_captcha_service_rejected(self, write_config, config):
        config["captcha_solver"]["service"] = "anticaptcha"

        with pytest.raises(ConfigurationError):
            load_settings(write_config(config))

    def test_solvecaptcha_service_not_supported(self, write_config, config):
        config["captcha_solver"]["service"] = "solvecaptcha"

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(write_config(config))

        assert "2captcha" in exc_info.value.message

    def test_defaults(self):
        settings = AppConfig.from_dict(None)

        assert settings.monitor.interval == 300
        assert settings.monitor.headless is True
        assert settings.monitor.reservation_url == (
            "https://driving-center.bmw.co.kr/orders/programs/products/view"
        )
        assert settings.auth.is_complete is False
        assert settings.logging.level == "INFO"

    def test_json_logging_alias(self):
        settings = AppConfig.from_dict({"logging": {"level": "debug", "json": True}})

        assert settings.logging.level == "DEBUG"
        assert settings.logging.json_format is True
