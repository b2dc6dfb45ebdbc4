"""
Stack configuration read from CDK context.

Values can be set in cdk.json or on the command line, e.g.
``cdk deploy -c scalesToZero=true -c createBastion=true``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from constructs import Node


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes")


def _list(value: Any, default: Tuple[str, ...], separator: Optional[str] = ",") -> Tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        # -c on the command line always yields a string
        if value.strip().startswith("["):
            value = json.loads(value)
        else:
            value = value.split(separator) if separator else [value]
    return tuple(str(item).strip() for item in value if str(item).strip())


@dataclass(frozen=True)
class StackConfig:
    account: str = "123456789012"
    region: str = "us-east-1"
    environment: str = "dev"
    scales_to_zero: bool = False
    create_bastion: bool = False
    primary_database_name: str = "main"
    secondary_database_name: str = "pgvector"
    extensions: Tuple[str, ...] = ("vector", "uuid-ossp")
    readiness_delay_seconds: int = 60
    connect_timeout_seconds: int = 10
    post_init_statements: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_context(cls, node: Node) -> "StackConfig":
        """
        Build the configuration from CDK context values.

        Args:
            node: Construct node (usually ``app.node``)

        Returns:
            Stack configuration
        """
        def get(key: str, default: Optional[Any] = None) -> Any:
            value = node.try_get_context(key)
            return default if value is None else value

        defaults = cls()
        config = cls(
            account=get("account", defaults.account),
            region=get("region", defaults.region),
            environment=get("environment", defaults.environment),
            scales_to_zero=_flag(get("scalesToZero"), defaults.scales_to_zero),
            create_bastion=_flag(get("createBastion"), defaults.create_bastion),
            secondary_database_name=get("secondaryDatabaseName", defaults.secondary_database_name),
            extensions=_list(get("extensions"), defaults.extensions),
            readiness_delay_seconds=int(get("readinessDelaySeconds", defaults.readiness_delay_seconds)),
            connect_timeout_seconds=int(get("connectTimeoutSeconds", defaults.connect_timeout_seconds)),
            post_init_statements=_list(get("postInitStatements"), (), separator=None),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if not self.extensions:
            raise ValueError("At least one extension must be configured")
        if self.readiness_delay_seconds < 0 or self.connect_timeout_seconds <= 0:
            raise ValueError("readinessDelaySeconds must be >= 0 and connectTimeoutSeconds > 0")
        if self.secondary_database_name == self.primary_database_name:
            raise ValueError("The secondary database must differ from the primary database")
