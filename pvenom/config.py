"""
Configuration and exit codes for pvenom.
"""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Optional

import platformdirs

from .errors import ConfigError
from .models import Credentials

log = logging.getLogger(__name__)

EXAMPLE_CONFIG = """\
[pvenom]
host = pve.example.lan
user = root@pam
password = your-password
verify_ssl = true
allow_http = true
"""


class ExitCode(Enum):
    """Standard exit codes for CLI operations."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_INPUT = 2
    NOT_FOUND = 3
    PERMISSION_DENIED = 4
    TIMEOUT = 5
    SERVER_ERROR = 6


@dataclass
class Config:
    """Connection settings for one controller."""

    host: str
    password: str = field(default="", repr=False)
    port: int = 8006
    user: str = "root@pam"
    verify_ssl: bool = True
    ca_cert_path: Optional[str] = None
    allow_http: bool = True
    connect_timeout: int = 10
    read_timeout: int = 30
    profile: str = "default"

    @staticmethod
    def _parse_bool(value: Optional[str], default: bool = True) -> bool:
        if value is None or value == "":
            return default
        return value.strip().lower() in ("1", "true", "yes", "y", "on")

    @staticmethod
    def _parse_int(key: str, value: str) -> int:
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None

    @classmethod
    def _get_config_path(cls, profile: str = "default") -> Path:
        """Get the configuration file path following XDG standards."""
        config_dir = Path(platformdirs.user_config_dir("pvenom"))
        return config_dir / (f"config.{profile}.ini" if profile != "default" else "config.ini")

    @classmethod
    def _load_config_file(cls, config_path: Path) -> configparser.ConfigParser:
        config = configparser.ConfigParser()
        if config_path.exists():
            try:
                config.read(config_path)
            except configparser.Error as e:
                raise ConfigError(f"Failed to read config file {config_path}: {e}") from e
            log.debug("Loaded config from: %s", config_path)
        return config

    @classmethod
    def from_env(cls, profile: str = "default", **overrides) -> "Config":
        """Load configuration from the config file and environment variables.

        Priority order (highest to lowest):
        1. Explicit overrides (CLI flags); None values are ignored
        2. Environment variables (PVENOM_*)
        3. Config file in XDG config directory (~/.config/pvenom/config.ini)
        4. Default values
        """
        config_path = cls._get_config_path(profile)
        config = cls._load_config_file(config_path)

        section = profile if config.has_section(profile) else "pvenom"
        if not config.has_section(section):
            section = "DEFAULT"

        def get_value(key: str, default: str = "") -> str:
            env_value = os.getenv(f"PVENOM_{key}")
            if env_value:
                return env_value
            if config.has_option(section, key.lower()):
                return config.get(section, key.lower())
            return default

        settings = cls(
            host=get_value("HOST"),
            password=get_value("PASSWORD"),
            port=cls._parse_int("port", get_value("PORT", "8006")),
            user=get_value("USER", "root@pam"),
            verify_ssl=cls._parse_bool(get_value("VERIFY_SSL", "true")),
            ca_cert_path=get_value("CA_CERT_PATH") or None,
            allow_http=cls._parse_bool(get_value("ALLOW_HTTP", "true")),
            connect_timeout=cls._parse_int("connect_timeout", get_value("CONNECT_TIMEOUT", "10")),
            read_timeout=cls._parse_int("read_timeout", get_value("READ_TIMEOUT", "30")),
            profile=profile,
        )
        settings = replace(settings, **{k: v for k, v in overrides.items() if v is not None})

        missing = [name for name in ("host", "password") if not getattr(settings, name)]
        if missing:
            raise ConfigError(
                f"Missing {', '.join(missing)}: pass them as flags, set PVENOM_HOST / PVENOM_PASSWORD, "
                f"or create {config_path} like:\n{EXAMPLE_CONFIG}"
            )
        return settings

    @property
    def timeout(self):
        return (self.connect_timeout, self.read_timeout)

    def credentials(self) -> Credentials:
        return Credentials(controller_host=self.host, username=self.user, password=self.password)
