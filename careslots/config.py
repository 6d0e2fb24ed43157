"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.join_window import DEFAULT_LEAD_MINUTES, JoinWindowGate
from .domain.slot_generator import (
    DEFAULT_HORIZON_DAYS,
    DEFAULT_MAX_DATES,
    DEFAULT_SUB_SLOT_MINUTES,
    SlotGenerator,
)


class SchedulingConfig(BaseModel):
    """Slot generation settings."""
    horizon_days: int = DEFAULT_HORIZON_DAYS
    sub_slot_minutes: int = DEFAULT_SUB_SLOT_MINUTES
    max_dates: int = DEFAULT_MAX_DATES

    @field_validator("horizon_days")
    @classmethod
    def validate_horizon(cls, value: int) -> int:
        """Keep the horizon within a year."""
        if not 1 <= value <= 365:
            raise ValueError(f"horizon_days must be between 1 and 365, got {value}")
        return value

    @field_validator("sub_slot_minutes")
    @classmethod
    def validate_sub_slot(cls, value: int) -> int:
        """Sub-slots have to tile an hour evenly."""
        if value <= 0 or 60 % value:
            raise ValueError(f"sub_slot_minutes must divide 60, got {value}")
        return value

    @field_validator("max_dates")
    @classmethod
    def validate_max_dates(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_dates must be at least 1")
        return value


class JoinWindowConfig(BaseModel):
    """How early and how late a participant may join a call."""
    lead_minutes: int = DEFAULT_LEAD_MINUTES
    trail_minutes: int

    @field_validator("lead_minutes", "trail_minutes")
    @classmethod
    def validate_minutes(cls, value: int) -> int:
        """Validate the offset is not negative."""
        if value < 0:
            raise ValueError(f"Minutes must not be negative, got {value}")
        return value


class BackendConfig(BaseModel):
    """Hosted backend connection settings."""
    url: str = ""
    api_key: str = ""
    access_token: Optional[str] = None

    def is_configured(self) -> bool:
        return bool(self.url and self.api_key)


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    join_window: JoinWindowConfig
    backend: BackendConfig = Field(default_factory=BackendConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def build_slot_generator(self) -> SlotGenerator:
        return SlotGenerator(
            horizon_days=self.scheduling.horizon_days,
            sub_slot_minutes=self.scheduling.sub_slot_minutes,
        )

    def build_join_gate(self) -> JoinWindowGate:
        return JoinWindowGate(
            lead_minutes=self.join_window.lead_minutes,
            trail_minutes=self.join_window.trail_minutes,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
