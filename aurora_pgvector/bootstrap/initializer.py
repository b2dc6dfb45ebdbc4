"""
Idempotent Initializer

Lifecycle-aware unit that ensures the secondary database exists and that
the required extensions are installed in it.

- Create and Update are handled identically and are safe to re-run: every
  step checks its postcondition before acting.
- Delete is a no-op. Database objects created here are never dropped on
  stack deletion because they hold user data.

A failure after the database has been created leaves it in place; the next
invocation finds it, skips the creation and retries the extensions.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional

from psycopg2 import sql

from .credentials import get_database_credentials
from .errors import InitializationFailedError, StatementError
from .models import (
    ClusterEndpoint,
    InitializationOutcome,
    InitializationPlan,
    OutcomeStatus,
    RequestType,
    WriterActiveMarker,
)
from .postgres import DEFAULT_CONNECT_TIMEOUT_SECONDS, PostgresSubstrate
from .readiness import ReadinessGate
from .sequencer import StepSequencer

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_DATABASE = "postgres"
DEFAULT_SECONDARY_DATABASE = "pgvector"
DEFAULT_EXTENSIONS = ("vector", "uuid-ossp")

DATABASE_EXISTS_SQL = "SELECT 1 FROM pg_database WHERE datname = %s"
EXTENSION_EXISTS_SQL = "SELECT 1 FROM pg_extension WHERE extname = %s"
INSTALLED_EXTENSIONS_SQL = "SELECT extname FROM pg_extension WHERE extname IN %s"


class IdempotentInitializer:
    """
    Ensures the secondary database and its extensions exist.

    Args:
        endpoint: Cluster endpoint and credential reference. Not needed
            for Delete.
        credentials_provider: Resolves the credential reference to a
            username/password dict
        connect: psycopg2-compatible connect function
        admin_database: Database used for the existence check and CREATE DATABASE
        secondary_database: Database to create
        extensions: Extensions to install in the secondary database
        connect_timeout: Connect timeout in seconds for every connection
        gate: Optional readiness gate awaited before the first statement
        marker: Writer-active marker the gate waits on
    """

    def __init__(
        self,
        endpoint: Optional[ClusterEndpoint],
        credentials_provider: Callable[[str], Dict[str, str]] = get_database_credentials,
        connect: Optional[Callable[..., Any]] = None,
        admin_database: str = DEFAULT_ADMIN_DATABASE,
        secondary_database: str = DEFAULT_SECONDARY_DATABASE,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        gate: Optional[ReadinessGate] = None,
        marker: Optional[WriterActiveMarker] = None,
    ) -> None:
        self.endpoint = endpoint
        self.credentials_provider = credentials_provider
        self.connect = connect
        self.admin_database = admin_database
        self.secondary_database = secondary_database
        self.extensions = tuple(extensions)
        self.connect_timeout = connect_timeout
        self.gate = gate
        self.marker = marker

        if not self.extensions:
            raise ValueError("At least one extension is required")
        if connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be greater than 0, got {connect_timeout!r}")

    def build_plan(self) -> InitializationPlan:
        """Return the ordered ensure-database, ensure-extensions plan."""
        definitions = [{
            "name": f"create database {self.secondary_database}",
            "statement": sql.SQL("CREATE DATABASE {}").format(sql.Identifier(self.secondary_database)),
            "target_database": self.admin_database,
            "guard": DATABASE_EXISTS_SQL,
            "guard_params": (self.secondary_database,),
        }]

        for extension in self.extensions:
            definitions.append({
                "name": f"create extension {extension}",
                "statement": sql.SQL("CREATE EXTENSION IF NOT EXISTS {}").format(sql.Identifier(extension)),
                "target_database": self.secondary_database,
                "guard": EXTENSION_EXISTS_SQL,
                "guard_params": (extension,),
            })

        return InitializationPlan.from_definitions(definitions)

    def handle(self, request_type: RequestType) -> InitializationOutcome:
        """
        Handle one lifecycle event.

        Args:
            request_type: Create, Update or Delete

        Returns:
            Success outcome for Create/Update, Skipped for Delete

        Raises:
            InitializationFailedError: If Create/Update fails
        """
        if request_type is RequestType.DELETE:
            logger.info("Processing delete request - preserving database and extensions")
            return InitializationOutcome(
                status=OutcomeStatus.SKIPPED,
                detail={"Message": "Delete completed - database and extensions preserved"},
            )

        if request_type in (RequestType.CREATE, RequestType.UPDATE):
            logger.info(f"Processing {request_type.value} request")
            return self._ensure_initialized()

        raise ValueError(f"Unknown request type: {request_type}")

    def _ensure_initialized(self) -> InitializationOutcome:
        try:
            credentials = self.credentials_provider(self.endpoint.credential_ref)
            substrate = PostgresSubstrate(
                self.endpoint,
                credentials,
                connect=self.connect,
                connect_timeout=self.connect_timeout,
            )

            sequencer = StepSequencer(substrate, gate=self.gate, marker=self.marker)
            result = sequencer.execute(self.build_plan())

            confirmed = self._verify_extensions(substrate)

        except Exception as e:
            error_msg = f"Database initialization failed: {str(e)}"
            logger.error(error_msg, exc_info=True)
            raise InitializationFailedError(
                InitializationOutcome(status=OutcomeStatus.FAILED, detail={"Error": error_msg})
            ) from e

        database_created = result.records[0].applied
        logger.info(f"Installed extensions: {confirmed}")

        return InitializationOutcome(
            status=OutcomeStatus.SUCCESS,
            detail={
                "Database": self.secondary_database,
                "DatabaseCreated": str(database_created).lower(),
                "Extensions": confirmed,
                "AppliedSteps": result.applied_steps,
            },
        )

    def _verify_extensions(self, substrate: PostgresSubstrate) -> list:
        rows = substrate.query(self.secondary_database, INSTALLED_EXTENSIONS_SQL, (self.extensions,))
        confirmed = sorted(row[0] for row in rows)

        missing = sorted(set(self.extensions) - set(confirmed))
        if missing:
            raise StatementError(
                "extension verification",
                self.secondary_database,
                f"extensions not present after installation: {', '.join(missing)}",
            )

        return confirmed
