from pathlib import Path

import pytest

from houston.configuration.app_configuration import DEFAULT_BACKEND_URL, AppConfig

CONFIG_TEXT = """
backend:
  url: "http://backend.internal:4000/"
  event_timeout_seconds: 7
rules_fetch:
  max_retries: 5
  delay_seconds: 0.5
  timeout_seconds: 3
api:
  host: "127.0.0.1"
  port: 8080
moderation:
  report_error_history: 50
  spam_sweep_probability: 0
  spam_sweep_ceiling_seconds: 120
"""


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("BACKEND_API_URL", "INTERNAL_API_KEY", "API_PORT"):
        monkeypatch.delenv(name, raising=False)


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_path.write_text(CONFIG_TEXT, encoding="utf-8")

    config = AppConfig(config_path)

    assert config.backend_url == "http://backend.internal:4000"
    assert config.backend_event_timeout_seconds == pytest.approx(7)
    assert config.rules_fetch_max_retries == 5
    assert config.rules_fetch_delay_seconds == pytest.approx(0.5)
    assert config.rules_fetch_timeout_seconds == pytest.approx(3)
    assert config.api_host == "127.0.0.1"
    assert config.api_port == 8080
    assert config.report_error_history == 50
    assert config.spam_sweep_probability == 0
    assert config.spam_sweep_ceiling_seconds == pytest.approx(120)
    assert config.get("api") == {"host": "127.0.0.1", "port": 8080}


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.backend_url == DEFAULT_BACKEND_URL
    assert config.rules_fetch_max_retries == 3
    assert config.rules_fetch_delay_seconds == pytest.approx(2.0)
    assert config.rules_fetch_timeout_seconds == pytest.approx(5.0)
    assert config.api_port == 3000
    assert config.report_error_history == 20
    assert config.spam_sweep_probability == pytest.approx(0.01)
    assert config.internal_api_key == ""


def test_app_config_non_mapping_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


def test_invalid_number_falls_back(config_path: Path) -> None:
    config_path.write_text("rules_fetch:\n  max_retries: lots\n", encoding="utf-8")

    assert AppConfig(config_path).rules_fetch_max_retries == 3


def test_environment_overrides(config_path: Path, monkeypatch) -> None:
    config_path.write_text(CONFIG_TEXT, encoding="utf-8")
    monkeypatch.setenv("BACKEND_API_URL", "https://prod.example.com/")
    monkeypatch.setenv("API_PORT", "9999")
    monkeypatch.setenv("INTERNAL_API_KEY", "k3y")

    config = AppConfig(config_path)

    assert config.backend_url == "https://prod.example.com"
    assert config.api_port == 9999
    assert config.internal_api_key == "k3y"


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("api:\n  port: 1\n", encoding="utf-8")
    config = AppConfig(config_path)
    config_path.write_text("api:\n  port: 2\n", encoding="utf-8")

    config.reload()

    assert config.api_port == 2
