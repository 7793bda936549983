"""Configuration management for the live rotation loop."""

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class RotatorConfig(BaseModel):
    """Main rotator configuration."""

    # Remote member API
    base_url: str = Field(default="https://livekenceng.com", description="Member API base URL")
    member_email: Optional[str] = Field(default=None, description="Member account email")
    member_password: Optional[str] = Field(default=None, description="Member account password")

    # Rotation target
    account_id: Optional[int] = Field(default=None, description="Shop account whose live session is driven")
    niche_id: Optional[int] = Field(default=None, description="Niche whose product sets are rotated")

    # Loop timing and failure policy
    delay_seconds: float = Field(default=60.0, description="Seconds between ticks")
    escalation_threshold: int = Field(default=3, description="Consecutive validation failures before stopping")
    validation_status_codes: List[int] = Field(
        default=[400, 422],
        description="HTTP status codes treated as escalating validation failures"
    )
    auth_mismatch_status_codes: List[int] = Field(
        default=[401],
        description="HTTP status codes that may signal a device mismatch"
    )
    auth_mismatch_marker: str = Field(
        default="machine",
        description="Text in the error body that marks a device mismatch"
    )

    # Timeout configuration
    connect_timeout: float = Field(default=5.0, description="HTTP connect timeout in seconds")
    read_timeout: float = Field(default=30.0, description="HTTP read timeout in seconds")
    write_timeout: float = Field(default=5.0, description="HTTP write timeout in seconds")
    pool_timeout: float = Field(default=5.0, description="HTTP pool timeout in seconds")

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level")

    # Output configuration
    report_directory: str = Field(default="out", description="Output directory for run reports")
    report_filename: str = Field(default="run_report.json", description="Run report JSON filename")

    @field_validator('base_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f"URL must start with http:// or https://, got: {v}")
        return v.rstrip('/')

    @field_validator('delay_seconds')
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Validate delay is positive."""
        if v <= 0:
            raise ValueError(f"delay_seconds must be positive, got: {v}")
        return v

    @field_validator('escalation_threshold')
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"escalation_threshold must be at least 1, got: {v}")
        return v

    @property
    def report_path(self) -> Path:
        """Get full run report path."""
        return Path(self.report_directory) / self.report_filename

    @classmethod
    def from_env(cls) -> "RotatorConfig":
        """Create configuration with environment variable overrides."""
        config = cls()

        env_mappings = {
            "LIVEROTATOR_BASE_URL": "base_url",
            "LIVEROTATOR_EMAIL": "member_email",
            "LIVEROTATOR_PASSWORD": "member_password",
            "LIVEROTATOR_ACCOUNT_ID": "account_id",
            "LIVEROTATOR_NICHE_ID": "niche_id",
            "LIVEROTATOR_DELAY": "delay_seconds",
            "LIVEROTATOR_ESCALATION_THRESHOLD": "escalation_threshold",
            "LIVEROTATOR_LOG_LEVEL": "log_level",
            "LIVEROTATOR_CONNECT_TIMEOUT": "connect_timeout",
            "LIVEROTATOR_READ_TIMEOUT": "read_timeout",
        }

        for env_var, field_name in env_mappings.items():
            if env_var in os.environ:
                value = os.environ[env_var]
                field_info = cls.model_fields[field_name]
                if field_info.annotation in (int, Optional[int]):
                    setattr(config, field_name, int(value))
                elif field_info.annotation == float:
                    setattr(config, field_name, float(value))
                else:
                    setattr(config, field_name, value)

        return config


class ConfigManager:
    """Manages configuration loading with override precedence."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path("config/config.yaml")
        self._config: Optional[RotatorConfig] = None

    def load_config(self, cli_overrides: Optional[Dict] = None) -> RotatorConfig:
        """
        Load configuration with override precedence: CLI > ENV > YAML.

        Args:
            cli_overrides: Optional dictionary of CLI flag overrides

        Returns:
            Fully merged RotatorConfig instance

        Raises:
            ValueError: If configuration validation fails
        """
        config_dict = {}

        if self.config_file.exists():
            with open(self.config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    config_dict.update(yaml_config)

        base_config = RotatorConfig(**config_dict)

        env_config = RotatorConfig.from_env()

        merged_dict = base_config.model_dump()
        env_dict = env_config.model_dump()

        # Only override with env values that differ from defaults
        default_dict = RotatorConfig().model_dump()
        for key, value in env_dict.items():
            if value != default_dict[key]:
                merged_dict[key] = value

        if cli_overrides:
            cli_overrides = {k: v for k, v in cli_overrides.items() if v is not None}
            merged_dict.update(cli_overrides)

        self._config = RotatorConfig(**merged_dict)
        return self._config

    @property
    def config(self) -> RotatorConfig:
        """Get the loaded configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config
