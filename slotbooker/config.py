"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import Dict

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "SLOTBOOKER_CONFIG"


def _default_service_durations() -> Dict[str, int]:
    return {
        "Haircut": 20,
        "Beard Trim": 10,
        "Haircut & Beard Trim": 30,
    }


class BookingConfig(BaseModel):
    """Slot granularity, horizon fallback and calendar event lengths."""
    slot_minutes: int = 30
    default_window_days: int = 14
    default_duration_minutes: int = 30
    service_durations: Dict[str, int] = Field(default_factory=_default_service_durations)

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        """Slots must tile a day evenly."""
        if value <= 0 or (24 * 60) % value != 0:
            raise ValueError(f"slot_minutes must be a positive divisor of 1440, got {value}")
        return value

    @field_validator("default_window_days", "default_duration_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("service_durations")
    @classmethod
    def validate_durations(cls, value: Dict[str, int]) -> Dict[str, int]:
        """Ensure every mapped service lasts a positive number of minutes."""
        invalid = sorted(name for name, minutes in value.items() if minutes <= 0)
        if invalid:
            raise ValueError(f"Service durations must be positive: {', '.join(invalid)}")
        return value

    def duration_for(self, service: str) -> int:
        """Event length in minutes for a service, with a fixed fallback."""
        return self.service_durations.get(service, self.default_duration_minutes)


class GraphConfig(BaseModel):
    """Microsoft Graph app registration used for mail and calendar."""
    client_id: str
    tenant_id: str
    client_secret: str = ""  # Empty: read from the OS keyring
    mailbox: str  # Calendar owner
    sender: str = ""  # Defaults to mailbox

    def get_authority_url(self) -> str:
        """Get the formatted authority URL."""
        return f"https://login.microsoftonline.com/{self.tenant_id}"

    def sender_address(self) -> str:
        return self.sender or self.mailbox


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    database_url: str = "sqlite:///slotbooker.db"
    admin_email: str = ""
    business_name: str = "our shop"
    booking: BookingConfig = Field(default_factory=BookingConfig)
    graph: GraphConfig | None = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject unknown IANA timezone names early."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

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
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    # Look for config.yaml in current directory
    config_path = Path.cwd() / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
