"""
Tests for the idempotent database initializer.

Scenarios run against FakeCluster, which behaves like the PostgreSQL
catalog: CREATE DATABASE fails if the database exists and
CREATE EXTENSION IF NOT EXISTS is a no-op for installed extensions.
"""
import pytest

from aurora_pgvector.bootstrap.errors import InitializationFailedError
from aurora_pgvector.bootstrap.initializer import IdempotentInitializer
from aurora_pgvector.bootstrap.models import OutcomeStatus, RequestType, WriterActiveMarker
from aurora_pgvector.bootstrap.readiness import ReadinessGate

from conftest import FakeCluster


def _initializer(cluster, endpoint, credentials_provider, **kwargs):
    return IdempotentInitializer(endpoint, credentials_provider=credentials_provider, connect=cluster.connect, **kwargs)


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------

def test_plan_creates_database_before_extensions(cluster, endpoint, credentials_provider):
    plan = _initializer(cluster, endpoint, credentials_provider).build_plan()

    assert [step.name for step in plan] == [
        "create database pgvector",
        "create extension vector",
        "create extension uuid-ossp",
    ]
    assert plan[0].target_database == "postgres"
    assert all(step.target_database == "pgvector" for step in list(plan)[1:])


def test_requires_an_extension(endpoint):
    with pytest.raises(ValueError):
        IdempotentInitializer(endpoint, extensions=())


# ---------------------------------------------------------------------------
# Create / Update
# ---------------------------------------------------------------------------

def test_create_on_fresh_cluster(cluster, endpoint, credentials_provider):
    outcome = _initializer(cluster, endpoint, credentials_provider).handle(RequestType.CREATE)

    assert outcome.status is OutcomeStatus.SUCCESS
    assert "pgvector" in cluster.databases
    assert cluster.installed("pgvector") == {"vector", "uuid-ossp"}
    assert outcome.detail["DatabaseCreated"] == "true"
    assert outcome.detail["Extensions"] == ["uuid-ossp", "vector"]
    assert credentials_provider.calls == [endpoint.credential_ref]


def test_create_when_database_already_exists(endpoint, credentials_provider):
    cluster = FakeCluster(databases=("postgres", "main", "pgvector"))

    outcome = _initializer(cluster, endpoint, credentials_provider).handle(RequestType.CREATE)

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.detail["DatabaseCreated"] == "false"
    assert not any(text.startswith("CREATE DATABASE") for text in cluster.mutations)
    assert cluster.installed("pgvector") == {"vector", "uuid-ossp"}


def test_update_when_fully_initialized_changes_nothing(endpoint, credentials_provider):
    cluster = FakeCluster(
        databases=("postgres", "main", "pgvector"),
        extensions={"pgvector": {"vector", "uuid-ossp"}},
    )

    outcome = _initializer(cluster, endpoint, credentials_provider).handle(RequestType.UPDATE)

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.detail["AppliedSteps"] == []
    assert cluster.mutations == []


def test_running_twice_is_idempotent(cluster, endpoint, credentials_provider):
    initializer = _initializer(cluster, endpoint, credentials_provider)

    initializer.handle(RequestType.CREATE)
    mutations = list(cluster.mutations)
    databases = set(cluster.databases)

    outcome = initializer.handle(RequestType.UPDATE)

    assert outcome.status is OutcomeStatus.SUCCESS
    assert cluster.mutations == mutations
    assert cluster.databases == databases


def test_partial_state_installs_only_missing_extension(endpoint, credentials_provider):
    cluster = FakeCluster(
        databases=("postgres", "main", "pgvector"),
        extensions={"pgvector": {"vector"}},
    )

    outcome = _initializer(cluster, endpoint, credentials_provider).handle(RequestType.UPDATE)

    assert outcome.detail["AppliedSteps"] == ["create extension uuid-ossp"]
    assert cluster.mutations == ['CREATE EXTENSION IF NOT EXISTS "uuid-ossp"']


def test_extensions_installed_in_secondary_database_only(cluster, endpoint, credentials_provider):
    _initializer(cluster, endpoint, credentials_provider).handle(RequestType.CREATE)

    assert cluster.installed("postgres") == set()
    assert cluster.installed("main") == set()


def test_custom_database_and_extensions(cluster, endpoint, credentials_provider):
    initializer = _initializer(
        cluster, endpoint, credentials_provider, secondary_database="vectors", extensions=("vector",)
    )

    outcome = initializer.handle(RequestType.CREATE)

    assert outcome.detail["Database"] == "vectors"
    assert cluster.installed("vectors") == {"vector"}


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_unreachable_cluster_fails(cluster, endpoint, credentials_provider):
    cluster.unreachable = True

    with pytest.raises(InitializationFailedError) as excinfo:
        _initializer(cluster, endpoint, credentials_provider).handle(RequestType.CREATE)

    outcome = excinfo.value.outcome
    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.detail["Error"].startswith("Database initialization failed:")
    assert "Cannot connect to cluster.example.internal:5432/postgres" in outcome.detail["Error"]


def test_extension_failure_keeps_database_and_stops(endpoint, credentials_provider):
    cluster = FakeCluster(rejected_extensions={"vector"})

    with pytest.raises(InitializationFailedError) as excinfo:
        _initializer(cluster, endpoint, credentials_provider).handle(RequestType.CREATE)

    assert "pgvector" in cluster.databases
    assert cluster.installed("pgvector") == set()
    assert "create extension vector" in str(excinfo.value)


def test_retry_after_failure_completes(endpoint, credentials_provider):
    cluster = FakeCluster(rejected_extensions={"vector"})
    initializer = _initializer(cluster, endpoint, credentials_provider)

    with pytest.raises(InitializationFailedError):
        initializer.handle(RequestType.CREATE)

    cluster.rejected_extensions.clear()
    outcome = initializer.handle(RequestType.CREATE)

    assert outcome.detail["DatabaseCreated"] == "false"
    assert cluster.installed("pgvector") == {"vector", "uuid-ossp"}


def test_credentials_failure_fails(cluster, endpoint):
    def provider(secret_arn):
        raise KeyError("password")

    with pytest.raises(InitializationFailedError):
        _initializer(cluster, endpoint, provider).handle(RequestType.CREATE)

    assert cluster.connect_calls == []


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def test_delete_is_skipped_without_connecting(cluster, credentials_provider):
    initializer = IdempotentInitializer(None, credentials_provider=credentials_provider, connect=cluster.connect)

    outcome = initializer.handle(RequestType.DELETE)

    assert outcome.status is OutcomeStatus.SKIPPED
    assert cluster.connect_calls == []
    assert credentials_provider.calls == []


def test_delete_preserves_existing_objects(endpoint, credentials_provider):
    cluster = FakeCluster(databases=("postgres", "main", "pgvector"), extensions={"pgvector": {"vector"}})

    _initializer(cluster, endpoint, credentials_provider).handle(RequestType.DELETE)

    assert "pgvector" in cluster.databases
    assert cluster.installed("pgvector") == {"vector"}


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

def test_no_connection_before_gate_fires(cluster, endpoint, credentials_provider, clock):
    marker = WriterActiveMarker(activated_at=clock.now)
    connected_at = []

    def connect(**kwargs):
        connected_at.append(clock())
        return cluster.connect(**kwargs)

    initializer = IdempotentInitializer(
        endpoint,
        credentials_provider=credentials_provider,
        connect=connect,
        gate=ReadinessGate(min_delay=60, clock=clock, sleep=clock.sleep),
        marker=marker,
    )

    initializer.handle(RequestType.CREATE)

    assert connected_at
    assert min(connected_at) - marker.activated_at >= 60


def test_requires_a_bounded_connect_timeout(endpoint):
    with pytest.raises(ValueError):
        IdempotentInitializer(endpoint, connect_timeout=0)
