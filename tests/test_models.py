"""
Tests for the bootstrap data model.
"""
import pytest

from aurora_pgvector.bootstrap.errors import SequenceDefinitionError
from aurora_pgvector.bootstrap.models import (
    ClusterEndpoint,
    InitializationOutcome,
    InitializationPlan,
    InitializationStep,
    OutcomeStatus,
)


def _step(index, name="step"):
    return InitializationStep(sequence_index=index, name=name, statement="SELECT 1", target_database="postgres")


# ---------------------------------------------------------------------------
# InitializationPlan
# ---------------------------------------------------------------------------

def test_plan_accepts_contiguous_indices():
    plan = InitializationPlan([_step(0, "a"), _step(1, "b"), _step(2, "c")])

    assert len(plan) == 3
    assert [step.name for step in plan] == ["a", "b", "c"]
    assert plan[1].name == "b"


def test_plan_rejects_index_gap():
    with pytest.raises(SequenceDefinitionError):
        InitializationPlan([_step(0), _step(2)])


def test_plan_rejects_duplicate_index():
    with pytest.raises(SequenceDefinitionError):
        InitializationPlan([_step(0), _step(0)])


def test_plan_from_definitions_assigns_indices_in_order():
    plan = InitializationPlan.from_definitions([
        {"name": "first", "statement": "CREATE DATABASE x", "target_database": "postgres",
         "guard": "SELECT 1", "guard_params": ["x"]},
        {"name": "second", "statement": "CREATE EXTENSION y", "target_database": "x"},
    ])

    assert [step.sequence_index for step in plan] == [0, 1]
    assert plan[0].guard_params == ("x",)
    assert plan[1].guard is None


def test_empty_plan_is_valid():
    assert len(InitializationPlan()) == 0


# ---------------------------------------------------------------------------
# ClusterEndpoint
# ---------------------------------------------------------------------------

def test_endpoint_from_properties_casts_port():
    endpoint = ClusterEndpoint.from_properties({
        "DatabaseHost": "db.internal",
        "DatabasePort": "5433",
        "CredentialsSecretArn": "arn:secret",
    })

    assert endpoint == ClusterEndpoint(host="db.internal", port=5433, credential_ref="arn:secret")


def test_endpoint_port_defaults_to_5432():
    endpoint = ClusterEndpoint.from_properties({"DatabaseHost": "db.internal", "CredentialsSecretArn": "arn:secret"})
    assert endpoint.port == 5432


@pytest.mark.parametrize("properties", [
    {"CredentialsSecretArn": "arn:secret"},
    {"DatabaseHost": "db.internal"},
    {"DatabaseHost": "", "CredentialsSecretArn": "arn:secret"},
])
def test_endpoint_requires_host_and_secret(properties):
    with pytest.raises(ValueError):
        ClusterEndpoint.from_properties(properties)


# ---------------------------------------------------------------------------
# InitializationOutcome
# ---------------------------------------------------------------------------

def test_outcome_response_stringifies_data():
    outcome = InitializationOutcome(
        status=OutcomeStatus.SUCCESS,
        detail={"Database": "pgvector", "Extensions": ["uuid-ossp", "vector"], "Count": 2},
    )

    response = outcome.to_response("pgvector-init")

    assert response == {
        "PhysicalResourceId": "pgvector-init",
        "Data": {
            "Status": "Success",
            "Database": "pgvector",
            "Extensions": "uuid-ossp,vector",
            "Count": "2",
        },
    }


def test_skipped_outcome_response():
    response = InitializationOutcome(status=OutcomeStatus.SKIPPED).to_response("id")
    assert response["Data"] == {"Status": "Skipped"}
