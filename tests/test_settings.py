"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from config.settings import AppConfig, get_default_config, get_template_config

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_PATH", "ADMIN_PIN", "LOG_LEVEL", "PORT"):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = AppConfig()

    assert config.scoring.points_to_win == 11
    assert config.scoring.win_margin == 2
    assert config.database.path == "tournaments.db"
    assert config.system.log_level == "INFO"


def test_load_partial_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"admin": {"pin": "9876"}, "system": {"port": 9000}}))

    config = AppConfig.load_from_file(config_path)

    assert config.admin.pin == "9876"
    assert config.system.port == 9000
    assert config.scoring.points_to_win == 11


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        AppConfig.load_from_file(tmp_path / "absent.json")


def test_unknown_section(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"brackets": {}}))

    with pytest.raises(ValueError):
        AppConfig.load_from_file(config_path)


def test_invalid_log_level(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"system": {"log_level": "LOUD"}}))

    with pytest.raises(ValidationError):
        AppConfig.load_from_file(config_path)


def test_blank_pin_rejected() -> None:
    with pytest.raises(ValidationError):
        AppConfig(admin={"pin": "  "})


def test_default_config_is_created_from_template(tmp_path: Path) -> None:
    config_path = tmp_path / "tournament_config.json"

    config = get_default_config(config_path)

    assert config_path.exists()
    assert config.model_dump() == get_template_config().model_dump()


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("ADMIN_PIN", "2468")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("PORT", "8123")

    config = get_default_config(tmp_path / "tournament_config.json")

    assert config.database.path == str(tmp_path / "env.db")
    assert config.admin.pin == "2468"
    assert config.system.log_level == "DEBUG"
    assert config.system.port == 8123


def test_save_to_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.yaml"

    get_template_config().save_to_file(config_path)

    data = yaml.safe_load(config_path.read_text())
    assert data["scoring"] == {"points_to_win": 11, "win_margin": 2}
