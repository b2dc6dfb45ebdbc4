"""
Data model for the database bootstrap runtime.

Contains the lifecycle request types, initialization steps and plans,
the cluster endpoint contract and the outcome reported back to
CloudFormation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Tuple

from .errors import SequenceDefinitionError


class RequestType(Enum):
    """CloudFormation custom resource lifecycle events."""
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


class OutcomeStatus(Enum):
    """Result of one initializer invocation."""
    SUCCESS = "Success"
    FAILED = "Failed"
    SKIPPED = "Skipped"


@dataclass(frozen=True)
class InitializationStep:
    """
    One administrative command of an initialization plan.

    If ``guard`` is set it is run first; a returned row means the
    postcondition already holds and ``statement`` is not issued.
    """
    sequence_index: int
    name: str
    statement: Any
    target_database: str
    guard: Optional[Any] = None
    guard_params: Tuple[Any, ...] = ()


class InitializationPlan:
    """
    Immutable, ordered list of initialization steps.

    Step ``k`` implicitly depends on step ``k - 1``; step ``0`` depends on
    the readiness gate.
    """

    def __init__(self, steps: Sequence[InitializationStep] = ()) -> None:
        steps = tuple(steps)
        for position, step in enumerate(steps):
            if step.sequence_index != position:
                raise SequenceDefinitionError(
                    f"Step '{step.name}' has sequence index {step.sequence_index}, expected {position}"
                )
        self._steps = steps

    @classmethod
    def from_definitions(cls, definitions: Iterable[Dict[str, Any]]) -> "InitializationPlan":
        """
        Build a plan, assigning sequence indices from list position.

        Args:
            definitions: Dicts with ``name``, ``statement``, ``target_database``
                and optionally ``guard`` and ``guard_params``

        Returns:
            The initialization plan
        """
        steps = []
        for index, definition in enumerate(definitions):
            steps.append(InitializationStep(
                sequence_index=index,
                name=definition["name"],
                statement=definition["statement"],
                target_database=definition["target_database"],
                guard=definition.get("guard"),
                guard_params=tuple(definition.get("guard_params", ())),
            ))
        return cls(steps)

    def __iter__(self) -> Iterator[InitializationStep]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __getitem__(self, index: int) -> InitializationStep:
        return self._steps[index]


@dataclass(frozen=True)
class ClusterEndpoint:
    """Network address of the administrative interface and the secret holding its credentials."""
    host: str
    port: int
    credential_ref: str

    @classmethod
    def from_properties(cls, properties: Dict[str, Any]) -> "ClusterEndpoint":
        """
        Read the endpoint from custom resource properties.

        Args:
            properties: CloudFormation ResourceProperties

        Returns:
            Cluster endpoint
        """
        host = properties.get("DatabaseHost")
        credential_ref = properties.get("CredentialsSecretArn")

        if not host or not credential_ref:
            raise ValueError("DatabaseHost and CredentialsSecretArn are required")

        return cls(
            host=host,
            port=int(properties.get("DatabasePort", 5432)),
            credential_ref=credential_ref,
        )


@dataclass(frozen=True)
class WriterActiveMarker:
    """Epoch time at which the cluster's writer instance was reported active."""
    activated_at: float


@dataclass(frozen=True)
class ProceedSignal:
    """Emitted once by the readiness gate."""
    marker: WriterActiveMarker
    ready_at: float
    probe_attempts: int = 0


@dataclass(frozen=True)
class ExecutionRecord:
    """Durable record of one executed step. ``applied`` is False when the guard short-circuited it."""
    step: InitializationStep
    started_at: float
    finished_at: float
    applied: bool


@dataclass
class SequenceResult:
    records: list = field(default_factory=list)

    @property
    def applied_steps(self) -> list:
        return [record.step.name for record in self.records if record.applied]

    @property
    def skipped_steps(self) -> list:
        return [record.step.name for record in self.records if not record.applied]


@dataclass
class InitializationOutcome:
    """Produced once per initializer invocation."""
    status: OutcomeStatus
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_response(self, physical_resource_id: str) -> Dict[str, Any]:
        """
        Render the provider framework response.

        CloudFormation attributes must be strings, so list values are
        joined with commas.

        Args:
            physical_resource_id: Physical ID of the custom resource

        Returns:
            Dict with PhysicalResourceId and Data
        """
        data = {"Status": self.status.value}
        for key, value in self.detail.items():
            if isinstance(value, (list, tuple)):
                data[key] = ",".join(str(item) for item in value)
            else:
                data[key] = str(value)

        return {
            "PhysicalResourceId": physical_resource_id,
            "Data": data,
        }
