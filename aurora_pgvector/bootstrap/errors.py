"""
Errors raised by the database bootstrap runtime.

Every failure of the Create/Update path surfaces as one of these so the
custom resource provider reports the lifecycle event as FAILED.
"""

from typing import Any, List, Optional


class BootstrapError(Exception):
    """Base class for database bootstrap failures."""


class ConnectivityError(BootstrapError):
    """The administrative interface could not be reached within the connect timeout."""

    def __init__(self, host: str, port: int, database: str, message: str) -> None:
        super().__init__(f"Cannot connect to {host}:{port}/{database}: {message}")
        self.host = host
        self.port = port
        self.database = database


class StatementError(BootstrapError):
    """An administrative statement was rejected by the database."""

    def __init__(self, step_name: str, database: str, message: str) -> None:
        super().__init__(f"{step_name} failed on database '{database}': {message}")
        self.step_name = step_name
        self.database = database
        self.diagnostic = message


class SequenceDefinitionError(BootstrapError):
    """An initialization plan or its execution violated step ordering."""


class ReadinessTimeoutError(BootstrapError):
    """The cluster did not become queryable before the readiness deadline."""


class StepFailedError(BootstrapError):
    """A step failed; no later step of the sequence was started."""

    def __init__(self, step: Any, cause: BaseException, completed: Optional[List[Any]] = None) -> None:
        super().__init__(f"Step {step.sequence_index} ({step.name}) failed: {cause}")
        self.step = step
        self.cause = cause
        self.completed = completed or []


class InitializationFailedError(BootstrapError):
    """Create/Update initialization failed. Carries the Failed outcome."""

    def __init__(self, outcome: Any) -> None:
        super().__init__(outcome.detail.get("Error", "Database initialization failed"))
        self.outcome = outcome
