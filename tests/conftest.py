"""
Shared pytest fixtures.

FakeCluster stands in for the PostgreSQL administrative interface: it keeps
a catalog of databases and installed extensions, answers the catalog
queries the initializer issues and records every connection and statement,
so tests run without a live Aurora cluster.
"""
import psycopg2
import pytest
from psycopg2 import errors, sql

from aurora_pgvector.bootstrap.models import ClusterEndpoint


def render(query) -> str:
    """Render a str or psycopg2.sql.Composable without a live connection."""
    if isinstance(query, str):
        return query
    if isinstance(query, sql.Composed):
        return "".join(render(part) for part in query.seq)
    if isinstance(query, sql.SQL):
        return query.string
    if isinstance(query, sql.Identifier):
        return ".".join(f'"{name}"' for name in query.strings)
    raise TypeError(f"Cannot render {query!r}")


class FakeCursor:
    def __init__(self, connection):
        self.connection = connection
        self.rows = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        cluster = self.connection.cluster
        database = self.connection.database
        text = render(query)
        cluster.executed.append((database, text))
        self.rows = []

        if text.startswith("SELECT 1 FROM pg_database"):
            self.rows = [(1,)] if params[0] in cluster.databases else []
        elif text.startswith("SELECT 1 FROM pg_extension"):
            self.rows = [(1,)] if params[0] in cluster.installed(database) else []
        elif text.startswith("SELECT extname FROM pg_extension"):
            self.rows = [(name,) for name in sorted(cluster.installed(database)) if name in params[0]]
        elif text.startswith("CREATE DATABASE"):
            if not self.connection.autocommit:
                raise psycopg2.InternalError("CREATE DATABASE cannot run inside a transaction block")
            name = text.split('"')[1]
            if name in cluster.databases:
                raise psycopg2.ProgrammingError(f'database "{name}" already exists')
            cluster.databases.add(name)
            cluster.mutations.append(text)
        elif text.startswith("CREATE EXTENSION IF NOT EXISTS"):
            name = text.split('"')[1]
            if name in cluster.rejected_extensions:
                raise errors.UndefinedFile(f'extension "{name}" is not available')
            if name not in cluster.installed(database):
                cluster.extensions.setdefault(database, set()).add(name)
                cluster.mutations.append(text)
        else:
            raise psycopg2.ProgrammingError(f"unexpected statement: {text}")

    def fetchone(self):
        return self.rows[0] if self.rows else None

    def fetchall(self):
        return list(self.rows)


class FakeConnection:
    def __init__(self, cluster, database):
        self.cluster = cluster
        self.database = database
        self.autocommit = False
        self.closed = False

    def cursor(self):
        if self.closed:
            raise psycopg2.InterfaceError("connection already closed")
        return FakeCursor(self)

    def close(self):
        self.closed = True


class FakeCluster:
    def __init__(self, databases=("postgres", "main"), extensions=None, rejected_extensions=()):
        self.databases = set(databases)
        self.extensions = {name: set(values) for name, values in (extensions or {}).items()}
        self.rejected_extensions = set(rejected_extensions)
        self.unreachable = False
        self.connect_calls = []
        self.connections = []
        self.executed = []
        self.mutations = []

    def installed(self, database):
        return self.extensions.get(database, set())

    def connect(self, **kwargs):
        self.connect_calls.append(kwargs)
        if self.unreachable:
            raise psycopg2.OperationalError("connection to server timed out\n")
        if kwargs["dbname"] not in self.databases:
            raise psycopg2.OperationalError(f'FATAL:  database "{kwargs["dbname"]}" does not exist')

        connection = FakeConnection(self, kwargs["dbname"])
        self.connections.append(connection)
        return connection


class FakeClock:
    """Clock whose sleep advances time instead of blocking."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeSecretsClient:
    def __init__(self, secret_string='{"username": "postgres", "password": "s3cret"}'):
        self.secret_string = secret_string
        self.requests = []

    def get_secret_value(self, SecretId):
        self.requests.append(SecretId)
        return {"SecretString": self.secret_string}


SECRET_ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:db-credentials"


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def endpoint():
    return ClusterEndpoint(host="cluster.example.internal", port=5432, credential_ref=SECRET_ARN)


@pytest.fixture
def credentials_provider():
    calls = []

    def provider(secret_arn):
        calls.append(secret_arn)
        return {"username": "postgres", "password": "s3cret"}

    provider.calls = calls
    return provider


@pytest.fixture
def clock():
    return FakeClock()
