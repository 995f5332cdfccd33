"""Configuration management for termdesk.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from termdesk.shell.filesystem import normalize_path
from termdesk.shell.state import ShellProfile

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/termdesk.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    idle_timeout: float = Field(
        default=300.0, gt=0, description="Seconds of silence before a stream is closed"
    )
    send_timeout: float = Field(
        default=5.0, gt=0, description="Upper bound for one outbound delivery"
    )


class ShellConfig(BaseModel):
    user: str = Field(default="termdesk-user")
    hostname: str = Field(default="termdesk-server")
    home: str = Field(default="/home/termdesk")
    max_command_length: int = Field(default=500, gt=0)

    @field_validator("home")
    @classmethod
    def _absolute_home(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("home must be an absolute path")
        home = normalize_path(value)
        if home == "/":
            raise ValueError("home cannot be the root directory")
        return home

    def profile(self) -> ShellProfile:
        return ShellProfile(user=self.user, hostname=self.hostname, home=self.home)


class PresenceConfig(BaseModel):
    stale_after: float = Field(default=30.0, gt=0)
    sweep_interval: float = Field(default=10.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the termdesk server.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "TERMDESK_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    presence: PresenceConfig = Field(default_factory=PresenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Values present in the YAML file take precedence over TERMDESK_*
    variables; the unprefixed HOST and PORT variables override both.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply hosting-platform HOST/PORT variables to the server section."""
    host = os.environ.get("HOST", "")
    port = os.environ.get("PORT", "")
    if not host and not port:
        return

    server = yaml_data.setdefault("server", {})
    if host:
        server["host"] = host
    if port:
        server["port"] = port
