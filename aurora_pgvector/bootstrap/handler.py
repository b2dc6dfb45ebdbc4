"""
Custom resource handlers for database initialization.

These functions are invoked by the CDK custom resource provider framework:

- ``gate_on_event`` / ``gate_is_complete`` back the readiness gate resource.
  The gate resource depends on the cluster's writer instance, so its Create
  event marks the moment the writer became active. The provider then polls
  ``gate_is_complete`` until the settling delay has passed and the Data API
  answers.
- ``on_event`` backs the initializer resource, which depends on the gate.

Handlers return ``{PhysicalResourceId, Data}`` and raise on failure; the
provider framework reports the result to CloudFormation.
"""

import json
import logging
import time
from typing import Any, Dict

from .data_api import DataApiProbe
from .initializer import IdempotentInitializer
from .models import ClusterEndpoint, RequestType, WriterActiveMarker
from .readiness import ReadinessGate
from .settings import RuntimeSettings

settings = RuntimeSettings.from_environment()

# Configure logging
logger = logging.getLogger()
logger.setLevel(settings.log_level)

GATE_PHYSICAL_RESOURCE_ID = "readiness-gate"


def parse_request_type(event: Dict[str, Any]) -> RequestType:
    """Return the lifecycle event of a custom resource request."""
    try:
        return RequestType(event["RequestType"])
    except (KeyError, ValueError):
        raise ValueError(f"Unknown request type: {event.get('RequestType')}")


def on_event(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lifecycle handler of the initializer custom resource.

    Args:
        event: CloudFormation custom resource event
        context: Lambda context object

    Returns:
        Provider framework response with PhysicalResourceId and Data
    """
    logger.info(f"Received event: {json.dumps(event, default=str)}")

    request_type = parse_request_type(event)

    # Delete must succeed even when the properties that failed a Create come back
    if request_type is RequestType.DELETE:
        physical_resource_id = event.get("PhysicalResourceId") or f"{settings.secondary_database}-init"
        return IdempotentInitializer(None).handle(request_type).to_response(physical_resource_id)

    properties = event.get("ResourceProperties", {})
    run_settings = settings.with_properties(properties)

    # Keep the physical ID stable so an Update never triggers a replacement Delete
    physical_resource_id = event.get("PhysicalResourceId") or f"{run_settings.secondary_database}-init"

    initializer = IdempotentInitializer(
        ClusterEndpoint.from_properties(properties),
        admin_database=run_settings.admin_database,
        secondary_database=run_settings.secondary_database,
        extensions=run_settings.extensions,
        connect_timeout=run_settings.connect_timeout,
    )

    outcome = initializer.handle(request_type)
    response = outcome.to_response(physical_resource_id)

    logger.info(f"Initialization outcome: {json.dumps(response)}")
    return response


def gate_on_event(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lifecycle handler of the readiness gate resource.

    Only Create records a writer-active marker; the gate fires once per
    cluster lifetime, so Update and Delete complete immediately.
    """
    logger.info(f"Received gate event: {json.dumps(event, default=str)}")

    request_type = parse_request_type(event)
    physical_resource_id = event.get("PhysicalResourceId") or GATE_PHYSICAL_RESOURCE_ID

    if request_type is RequestType.CREATE:
        activated_at = time.time()
        logger.info(f"Writer instance reported active at {activated_at:.0f}")
        return {
            "PhysicalResourceId": physical_resource_id,
            "Data": {"WriterActiveAt": str(activated_at)},
        }

    return {"PhysicalResourceId": physical_resource_id}


def gate_is_complete(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Completion check of the readiness gate resource.

    Args:
        event: Gate event merged with the gate_on_event response
        context: Lambda context object

    Returns:
        ``{"IsComplete": bool}`` plus ReadyAt once the gate fires
    """
    request_type = parse_request_type(event)
    if request_type is not RequestType.CREATE:
        return {"IsComplete": True}

    properties = event.get("ResourceProperties", {})
    run_settings = settings.with_properties(properties)
    marker = WriterActiveMarker(activated_at=float(event["Data"]["WriterActiveAt"]))

    gate = ReadinessGate(
        min_delay=run_settings.readiness_min_delay,
        max_wait=run_settings.readiness_max_wait,
        probe=DataApiProbe(
            resource_arn=properties["ClusterArn"],
            secret_arn=properties["CredentialsSecretArn"],
            database=properties.get("DatabaseName"),
        ),
    )

    if not gate.poll(marker):
        return {"IsComplete": False}

    return {
        "IsComplete": True,
        "Data": {"ReadyAt": str(time.time())},
    }
