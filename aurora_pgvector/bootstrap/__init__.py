"""
Database bootstrap runtime.

Runs inside the custom resource Lambda functions. It must not import
aws_cdk: only boto3 and psycopg2 are available there.
"""

from .errors import (
    BootstrapError,
    ConnectivityError,
    InitializationFailedError,
    ReadinessTimeoutError,
    SequenceDefinitionError,
    StatementError,
    StepFailedError,
)
from .initializer import IdempotentInitializer
from .models import (
    ClusterEndpoint,
    InitializationOutcome,
    InitializationPlan,
    InitializationStep,
    OutcomeStatus,
    RequestType,
    WriterActiveMarker,
)
from .readiness import ReadinessGate
from .sequencer import StepSequencer

__all__ = [
    "BootstrapError",
    "ClusterEndpoint",
    "ConnectivityError",
    "IdempotentInitializer",
    "InitializationFailedError",
    "InitializationOutcome",
    "InitializationPlan",
    "InitializationStep",
    "OutcomeStatus",
    "ReadinessGate",
    "ReadinessTimeoutError",
    "RequestType",
    "SequenceDefinitionError",
    "StatementError",
    "StepFailedError",
    "StepSequencer",
    "WriterActiveMarker",
]
