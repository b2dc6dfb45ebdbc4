"""
Runtime settings for the bootstrap Lambda functions.

Defaults come from environment variables set by the CDK constructs;
custom resource properties override them per invocation.
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .initializer import DEFAULT_ADMIN_DATABASE, DEFAULT_EXTENSIONS, DEFAULT_SECONDARY_DATABASE
from .postgres import DEFAULT_CONNECT_TIMEOUT_SECONDS
from .readiness import DEFAULT_MAX_WAIT_SECONDS, DEFAULT_MIN_DELAY_SECONDS


def _number(value: Any, name: str, cast=float, positive: bool = False):
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")

    if number < 0:
        raise ValueError(f"{name} must not be negative, got {value!r}")
    # libpq treats connect_timeout=0 as "wait forever"
    if positive and number == 0:
        raise ValueError(f"{name} must be greater than 0, got {value!r}")
    return number


def _extensions(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    extensions = tuple(item.strip() for item in value if item and item.strip())
    if not extensions:
        raise ValueError("Extensions must name at least one extension")
    return extensions


@dataclass(frozen=True)
class RuntimeSettings:
    log_level: str = "INFO"
    admin_database: str = DEFAULT_ADMIN_DATABASE
    secondary_database: str = DEFAULT_SECONDARY_DATABASE
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SECONDS
    readiness_min_delay: float = DEFAULT_MIN_DELAY_SECONDS
    readiness_max_wait: float = DEFAULT_MAX_WAIT_SECONDS

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "RuntimeSettings":
        """Load settings from LOG_LEVEL, DB_* and READINESS_* environment variables."""
        environ = os.environ if environ is None else environ

        return cls(
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
            admin_database=environ.get("DB_ADMIN_DATABASE", DEFAULT_ADMIN_DATABASE),
            connect_timeout=_number(
                environ.get("DB_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT_SECONDS),
                "DB_CONNECT_TIMEOUT",
                int,
                positive=True,
            ),
            readiness_min_delay=_number(
                environ.get("READINESS_MIN_DELAY", DEFAULT_MIN_DELAY_SECONDS), "READINESS_MIN_DELAY"
            ),
            readiness_max_wait=_number(
                environ.get("READINESS_MAX_WAIT", DEFAULT_MAX_WAIT_SECONDS), "READINESS_MAX_WAIT"
            ),
        )

    def with_properties(self, properties: Dict[str, Any]) -> "RuntimeSettings":
        """
        Apply custom resource property overrides.

        Args:
            properties: CloudFormation ResourceProperties

        Returns:
            New settings instance
        """
        overrides = {}

        if properties.get("SecondaryDatabaseName"):
            overrides["secondary_database"] = properties["SecondaryDatabaseName"]
        if properties.get("Extensions"):
            overrides["extensions"] = _extensions(properties["Extensions"])
        if properties.get("ConnectTimeoutSeconds") is not None:
            overrides["connect_timeout"] = _number(
                properties["ConnectTimeoutSeconds"], "ConnectTimeoutSeconds", int, positive=True
            )
        if properties.get("ReadinessDelaySeconds") is not None:
            overrides["readiness_min_delay"] = _number(properties["ReadinessDelaySeconds"], "ReadinessDelaySeconds")

        return replace(self, **overrides)
