"""Configuration settings and data models."""

import json
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator


DEFAULT_ADMIN_PIN = "0000"


class DatabaseConfig(BaseModel):
    """SQLite storage configuration."""

    path: str = Field(default="tournaments.db", description="SQLite database file")


class ScoringConfig(BaseModel):
    """Table tennis game rules."""

    points_to_win: int = Field(default=11, ge=1, description="Points needed to win a game")
    win_margin: int = Field(default=2, ge=1, description="Required lead over the opponent")


class AdminConfig(BaseModel):
    """Admin access for mutating endpoints."""

    pin: str = Field(
        default=DEFAULT_ADMIN_PIN, description="PIN expected in the X-Admin-Pin header"
    )

    @field_validator("pin")
    @classmethod
    def validate_pin(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Admin PIN cannot be empty")
        return v.strip()


class SystemConfig(BaseModel):
    """System-wide configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    host: str = Field(default="0.0.0.0", description="Web server bind address")
    port: int = Field(default=8000, description="Web server port")


class AppConfig(BaseModel):
    """Complete application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a JSON object")

        unknown_sections = set(data) - set(cls.model_fields)
        if unknown_sections:
            raise ValueError(f"Unknown config sections: {sorted(unknown_sections)}")

        return cls(**data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(),
                f,
                default_flow_style=False,
                indent=2,
            )

    def with_env_overrides(self) -> "AppConfig":
        """Return a copy with DATABASE_PATH, ADMIN_PIN, LOG_LEVEL and PORT applied."""
        data = self.model_dump()

        if os.environ.get("DATABASE_PATH"):
            data["database"]["path"] = os.environ["DATABASE_PATH"]
        if os.environ.get("ADMIN_PIN"):
            data["admin"]["pin"] = os.environ["ADMIN_PIN"]
        if os.environ.get("LOG_LEVEL"):
            data["system"]["log_level"] = os.environ["LOG_LEVEL"].upper()
        if os.environ.get("PORT"):
            data["system"]["port"] = int(os.environ["PORT"])

        return AppConfig(**data)


def get_default_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from tournament_config.json, creating it if needed."""
    config_path = config_path or Path("tournament_config.json")
    if not config_path.exists():
        template_config = get_template_config()
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(template_config.model_dump(), f, indent=2)
    return AppConfig.load_from_file(config_path).with_env_overrides()


def get_template_config() -> AppConfig:
    """Get template configuration for config file generation."""
    return AppConfig(
        database=DatabaseConfig(path="tournaments.db"),
        scoring=ScoringConfig(points_to_win=11, win_margin=2),
        admin=AdminConfig(pin=DEFAULT_ADMIN_PIN),  # Change before exposing the server
        system=SystemConfig(log_level="INFO", host="0.0.0.0", port=8000),
    )
