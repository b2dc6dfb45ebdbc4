"""
PostgreSQL execution substrate.

Executes initialization steps over the PostgreSQL wire protocol with
psycopg2. Every step gets its own connection, opened against the step's
target database and closed before the step returns, so no connection is
shared between steps or invocations.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import psycopg2

from .errors import ConnectivityError, StatementError
from .models import ClusterEndpoint, InitializationStep

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT_SECONDS = 10


class PostgresSubstrate:
    """Runs guarded administrative statements in autocommit mode."""

    def __init__(
        self,
        endpoint: ClusterEndpoint,
        credentials: Dict[str, str],
        connect: Optional[Callable[..., Any]] = None,
        connect_timeout: int = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        sslmode: str = "require",
    ) -> None:
        if connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be greater than 0, got {connect_timeout!r}")

        self.endpoint = endpoint
        self.credentials = credentials
        self.connect_timeout = connect_timeout
        self.sslmode = sslmode
        self._connect = connect or psycopg2.connect

    def open(self, database: str):
        """
        Open an autocommit connection to a database of the cluster.

        CREATE DATABASE cannot run inside a transaction block, hence autocommit.

        Args:
            database: Database name

        Returns:
            psycopg2 connection
        """
        logger.info(f"Connecting to database at {self.endpoint.host}:{self.endpoint.port}/{database}")

        try:
            connection = self._connect(
                host=self.endpoint.host,
                port=self.endpoint.port,
                dbname=database,
                user=self.credentials["username"],
                password=self.credentials["password"],
                connect_timeout=self.connect_timeout,
                sslmode=self.sslmode,
            )
        except psycopg2.OperationalError as e:
            raise ConnectivityError(self.endpoint.host, self.endpoint.port, database, str(e).strip()) from e

        connection.autocommit = True
        return connection

    def execute(self, step: InitializationStep) -> bool:
        """
        Execute one step.

        Args:
            step: Initialization step

        Returns:
            True if the statement was issued, False if the guard found
            the postcondition already satisfied
        """
        connection = self.open(step.target_database)

        try:
            with connection.cursor() as cursor:
                if step.guard is not None:
                    cursor.execute(step.guard, step.guard_params)
                    if cursor.fetchone():
                        logger.info(f"{step.name}: already satisfied")
                        return False

                cursor.execute(step.statement)
                logger.info(f"{step.name}: applied")
                return True

        except psycopg2.Error as e:
            raise StatementError(step.name, step.target_database, _diagnostic(e)) from e
        finally:
            connection.close()

    def query(self, database: str, sql: Any, params: tuple = ()) -> List[tuple]:
        """
        Run a read-only catalog query on a fresh connection.

        Args:
            database: Database name
            sql: Query text
            params: Query parameters

        Returns:
            All result rows
        """
        connection = self.open(database)

        try:
            with connection.cursor() as cursor:
                cursor.execute(sql, params)
                return cursor.fetchall()

        except psycopg2.Error as e:
            raise StatementError("catalog query", database, _diagnostic(e)) from e
        finally:
            connection.close()


def _diagnostic(error: Exception) -> str:
    return (getattr(error, "pgerror", None) or str(error)).strip()
