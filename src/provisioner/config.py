"""Configuration management with validation.

Timeouts and polling bounds are validated at construction time so that an
invalid provider configuration fails before any remote call is made.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


class BackendFlavor(str, Enum):
    """Remote API flavors exposing equivalent resources."""

    CLASSIC = "classic"
    VPC = "vpc"


class UnexpectedStatePolicy(str, Enum):
    """How the state waiter treats a refresh label it does not recognize."""

    PENDING = "pending"
    ERROR = "error"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_API_URL = "https://ncloud.apigw.ntruss.com"
DEFAULT_REGION = "KR"
DEFAULT_REGION_NO = "1"

DEFAULT_CREATE_TIMEOUT_SECONDS = 3600
DEFAULT_UPDATE_TIMEOUT_SECONDS = 3600
DEFAULT_DELETE_TIMEOUT_SECONDS = 300
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 24 * 3600

DEFAULT_POLL_MIN_INTERVAL_SECONDS = 3.0
DEFAULT_POLL_DELAY_SECONDS = 2.0
DEFAULT_POLL_MAX_INTERVAL_SECONDS = 10.0

DEFAULT_HTTP_TIMEOUT_SECONDS = 30

# Spec file limits
MAX_SPEC_FILE_SIZE_BYTES = 64 * 1024

# Repository name bounds enforced by the remote service
MIN_REPOSITORY_NAME_LENGTH = 1
MAX_REPOSITORY_NAME_LENGTH = 100

VALID_REGION_PATTERN = r"^[A-Z]{2,}(-[A-Z0-9]+)?$"


@dataclass(frozen=True)
class ProviderConfig:
    """Provider configuration loaded from environment variables.

    Built once per provider session and read-only thereafter. All fields are
    validated at construction time; invalid configurations raise
    ConfigurationError immediately rather than failing mid-operation.
    """

    api_url: str = DEFAULT_API_URL
    region: str = DEFAULT_REGION
    region_no: str = DEFAULT_REGION_NO
    flavor: BackendFlavor = BackendFlavor.VPC
    api_key: str | None = None

    # Per-operation timeouts
    create_timeout_seconds: int = DEFAULT_CREATE_TIMEOUT_SECONDS
    update_timeout_seconds: int = DEFAULT_UPDATE_TIMEOUT_SECONDS
    delete_timeout_seconds: int = DEFAULT_DELETE_TIMEOUT_SECONDS

    # Polling
    poll_min_interval_seconds: float = DEFAULT_POLL_MIN_INTERVAL_SECONDS
    poll_delay_seconds: float = DEFAULT_POLL_DELAY_SECONDS
    poll_max_interval_seconds: float = DEFAULT_POLL_MAX_INTERVAL_SECONDS
    unexpected_state_policy: UnexpectedStatePolicy = UnexpectedStatePolicy.PENDING

    http_timeout_seconds: int = DEFAULT_HTTP_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        import re

        errors: list[str] = []

        if not self.api_url:
            errors.append("NCLOUD_API_URL is required")
        elif not self.api_url.startswith(("https://", "http://")):
            errors.append(f"NCLOUD_API_URL must be an http(s) URL: {self.api_url}")

        if not self.region:
            errors.append("NCLOUD_REGION is required")
        elif not re.match(VALID_REGION_PATTERN, self.region):
            errors.append(f"NCLOUD_REGION must match pattern {VALID_REGION_PATTERN}: {self.region}")

        if self.flavor == BackendFlavor.CLASSIC and not self.region_no.isdigit():
            errors.append(
                f"NCLOUD_REGION_NO must be numeric for the classic backend: {self.region_no}"
            )

        for name, value in (
            ("CREATE_TIMEOUT", self.create_timeout_seconds),
            ("UPDATE_TIMEOUT", self.update_timeout_seconds),
            ("DELETE_TIMEOUT", self.delete_timeout_seconds),
        ):
            if not (MIN_TIMEOUT_SECONDS <= value <= MAX_TIMEOUT_SECONDS):
                errors.append(
                    f"{name} must be between {MIN_TIMEOUT_SECONDS} "
                    f"and {MAX_TIMEOUT_SECONDS} seconds"
                )

        if self.poll_min_interval_seconds <= 0:
            errors.append("POLL_MIN_INTERVAL must be positive")
        if self.poll_delay_seconds < 0:
            errors.append("POLL_DELAY cannot be negative")
        if self.poll_max_interval_seconds < self.poll_min_interval_seconds:
            errors.append("POLL_MAX_INTERVAL cannot be lower than POLL_MIN_INTERVAL")

        if self.http_timeout_seconds < 1:
            errors.append("HTTP_TIMEOUT must be at least 1 second")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @classmethod
    def from_env(cls) -> ProviderConfig:
        """Load configuration from environment variables.

        Environment Variables:
            NCLOUD_API_URL: Base URL of the API gateway
            NCLOUD_REGION: Region code (default: KR)
            NCLOUD_REGION_NO: Numeric region used by the classic backend (default: 1)
            NCLOUD_SUPPORT_VPC: If "true", use the VPC backend (default: true)
            NCLOUD_API_KEY: API key sent with every request (optional)
            CREATE_TIMEOUT: Create wait bound in seconds (default: 3600)
            UPDATE_TIMEOUT: Update wait bound in seconds (default: 3600)
            DELETE_TIMEOUT: Delete wait bound in seconds (default: 300)
            POLL_MIN_INTERVAL: Minimum seconds between polls (default: 3)
            POLL_DELAY: Seconds to wait before the first poll (default: 2)
            POLL_MAX_INTERVAL: Backoff ceiling in seconds (default: 10)
            UNEXPECTED_STATE_POLICY: "pending" or "error" (default: pending)
            HTTP_TIMEOUT: Per-request timeout in seconds (default: 30)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_float(key: str, default: float) -> float:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return float(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be a number: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        def get_policy(value: str | None) -> UnexpectedStatePolicy:
            if not value:
                return UnexpectedStatePolicy.PENDING
            try:
                return UnexpectedStatePolicy(value.lower())
            except ValueError as e:
                valid = [p.value for p in UnexpectedStatePolicy]
                raise ConfigurationError(
                    f"UNEXPECTED_STATE_POLICY must be one of {valid}: {value}"
                ) from e

        support_vpc = get_bool("NCLOUD_SUPPORT_VPC", True)

        return cls(
            api_url=os.environ.get("NCLOUD_API_URL", DEFAULT_API_URL),
            region=os.environ.get("NCLOUD_REGION", DEFAULT_REGION),
            region_no=os.environ.get("NCLOUD_REGION_NO", DEFAULT_REGION_NO),
            flavor=BackendFlavor.VPC if support_vpc else BackendFlavor.CLASSIC,
            api_key=os.environ.get("NCLOUD_API_KEY") or None,
            create_timeout_seconds=get_int("CREATE_TIMEOUT", DEFAULT_CREATE_TIMEOUT_SECONDS),
            update_timeout_seconds=get_int("UPDATE_TIMEOUT", DEFAULT_UPDATE_TIMEOUT_SECONDS),
            delete_timeout_seconds=get_int("DELETE_TIMEOUT", DEFAULT_DELETE_TIMEOUT_SECONDS),
            poll_min_interval_seconds=get_float(
                "POLL_MIN_INTERVAL", DEFAULT_POLL_MIN_INTERVAL_SECONDS
            ),
            poll_delay_seconds=get_float("POLL_DELAY", DEFAULT_POLL_DELAY_SECONDS),
            poll_max_interval_seconds=get_float(
                "POLL_MAX_INTERVAL", DEFAULT_POLL_MAX_INTERVAL_SECONDS
            ),
            unexpected_state_policy=get_policy(os.environ.get("UNEXPECTED_STATE_POLICY")),
            http_timeout_seconds=get_int("HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS),
        )
