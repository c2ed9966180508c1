"""Configuration management with validation.

All settings come from environment variables (optionally overridden by the
CLI) and are validated once at load time so that a bad value fails before
any billable Azure resource is created.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class AuthMode(str, Enum):
    """Supported authentication flows."""

    INTERACTIVE = "interactive"
    CLIENT_SECRET = "client-secret"


class LogFormat(str, Enum):
    """Console log output formats."""

    TEXT = "text"
    JSON = "json"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_RESOURCE_GROUP_LOCATION = "eastus"

DEFAULT_OPERATION_TIMEOUT_SECONDS = 1800
MIN_OPERATION_TIMEOUT_SECONDS = 60
MAX_OPERATION_TIMEOUT_SECONDS = 7200

DEFAULT_CERT_TIMEOUT_SECONDS = 120
MAX_CERT_TIMEOUT_SECONDS = 900

DEFAULT_CERT_SCRIPT = "createCert.ps1"
DEFAULT_CERT_SHELL = "pwsh"

MAX_SCENARIO_FILE_SIZE_BYTES = 256 * 1024  # 256KB max scenario file
MAX_RESOURCE_GROUP_NAME_LENGTH = 90

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Input validation patterns
VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
VALID_LOCATION_PATTERN = r"^[a-z]{2,}[a-z0-9]*$"


@dataclass(frozen=True)
class Config:
    """Sample configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing halfway through
    provisioning.
    """

    # Azure identity
    subscription_id: str | None = None
    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    tenant_id: str | None = None
    auth_mode: AuthMode = AuthMode.INTERACTIVE

    # Placement
    resource_group_location: str = DEFAULT_RESOURCE_GROUP_LOCATION
    scenario_file: Path | None = None

    # Certificate generation
    cert_script: Path = field(default_factory=lambda: Path(DEFAULT_CERT_SCRIPT))
    cert_shell: str = DEFAULT_CERT_SHELL
    work_dir: Path = field(default_factory=Path.cwd)
    cert_timeout_seconds: int = DEFAULT_CERT_TIMEOUT_SECONDS

    # Timing
    operation_timeout_seconds: int = DEFAULT_OPERATION_TIMEOUT_SECONDS

    # Logging
    log_format: LogFormat = LogFormat.TEXT
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if self.subscription_id and not re.match(
            VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()
        ):
            errors.append(f"SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        if self.auth_mode == AuthMode.CLIENT_SECRET:
            missing = [
                name
                for name, value in (
                    ("CLIENT_ID", self.client_id),
                    ("CLIENT_SECRET", self.client_secret),
                    ("TENANT_ID", self.tenant_id),
                )
                if not value
            ]
            if missing:
                errors.append(f"AUTH_MODE=client-secret requires {', '.join(missing)}")

        if not self.resource_group_location:
            errors.append("RESOURCE_GROUP_LOCATION is required")
        elif not re.match(VALID_LOCATION_PATTERN, self.resource_group_location.lower()):
            errors.append(
                "RESOURCE_GROUP_LOCATION must be a valid Azure region: "
                f"{self.resource_group_location}"
            )

        if self.scenario_file is not None and not self.scenario_file.is_file():
            errors.append(f"Scenario file does not exist: {self.scenario_file}")

        if not self.work_dir.is_dir():
            errors.append(f"Work directory does not exist: {self.work_dir}")

        if not self.cert_shell:
            errors.append("CERT_SHELL must not be empty")

        if not (
            MIN_OPERATION_TIMEOUT_SECONDS
            <= self.operation_timeout_seconds
            <= MAX_OPERATION_TIMEOUT_SECONDS
        ):
            errors.append(
                f"OPERATION_TIMEOUT must be between {MIN_OPERATION_TIMEOUT_SECONDS} "
                f"and {MAX_OPERATION_TIMEOUT_SECONDS} seconds"
            )

        if not (1 <= self.cert_timeout_seconds <= MAX_CERT_TIMEOUT_SECONDS):
            errors.append(f"CERT_TIMEOUT must be between 1 and {MAX_CERT_TIMEOUT_SECONDS} seconds")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def cert_script_path(self) -> Path:
        """Certificate script resolved against the work directory."""
        if self.cert_script.is_absolute():
            return self.cert_script
        return self.work_dir / self.cert_script

    @classmethod
    def from_env(cls, **overrides: object) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            SUBSCRIPTION_ID: Target subscription (default: first enabled subscription)
            CLIENT_ID, CLIENT_SECRET, TENANT_ID: Service principal credentials
            AUTH_MODE: interactive or client-secret (default: interactive)
            RESOURCE_GROUP_LOCATION: Region of the resource group (default: eastus)
            SCENARIO_FILE: Optional YAML scenario overriding the built-in defaults
            CERT_SCRIPT: Certificate generation script (default: createCert.ps1)
            CERT_SHELL: Shell used to run the script (default: pwsh)
            WORK_DIR: Directory for the script and the PFX output (default: cwd)
            CERT_TIMEOUT: Seconds allowed for certificate generation (default: 120)
            OPERATION_TIMEOUT: Seconds allowed per Azure operation (default: 1800)
            LOG_FORMAT: text or json (default: text)
            LOG_LEVEL: Root log level (default: INFO)

        Args:
            **overrides: Field values that take precedence over the environment.
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_enum(key: str, enum_cls: type[Enum], default: Enum) -> Enum:
            value = os.environ.get(key)
            if not value:
                return default
            try:
                return enum_cls(value.lower())
            except ValueError as e:
                valid = [m.value for m in enum_cls]
                raise ConfigurationError(f"{key} must be one of {valid}: {value}") from e

        def get_path(key: str) -> Path | None:
            value = os.environ.get(key)
            return Path(value) if value else None

        values: dict[str, object] = {
            "subscription_id": os.environ.get("SUBSCRIPTION_ID") or None,
            "client_id": os.environ.get("CLIENT_ID") or None,
            "client_secret": os.environ.get("CLIENT_SECRET") or None,
            "tenant_id": os.environ.get("TENANT_ID") or None,
            "auth_mode": get_enum("AUTH_MODE", AuthMode, AuthMode.INTERACTIVE),
            "resource_group_location": os.environ.get(
                "RESOURCE_GROUP_LOCATION", DEFAULT_RESOURCE_GROUP_LOCATION
            ),
            "scenario_file": get_path("SCENARIO_FILE"),
            "cert_script": Path(os.environ.get("CERT_SCRIPT", DEFAULT_CERT_SCRIPT)),
            "cert_shell": os.environ.get("CERT_SHELL", DEFAULT_CERT_SHELL),
            "work_dir": get_path("WORK_DIR") or Path.cwd(),
            "cert_timeout_seconds": get_int("CERT_TIMEOUT", DEFAULT_CERT_TIMEOUT_SECONDS),
            "operation_timeout_seconds": get_int(
                "OPERATION_TIMEOUT", DEFAULT_OPERATION_TIMEOUT_SECONDS
            ),
            "log_format": get_enum("LOG_FORMAT", LogFormat, LogFormat.TEXT),
            "log_level": os.environ.get("LOG_LEVEL", "INFO"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**values)  # type: ignore[arg-type]
