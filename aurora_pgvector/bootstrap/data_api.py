"""
RDS Data API readiness probe.

When the Data API is called immediately after the writer instance is
created, it answers with "HttpEndpoint is not enabled for resource ...".
A serverless cluster that scaled to zero answers with
DatabaseResumingException while it wakes up. Both are reported as
"not ready yet"; any other error is raised.
"""

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

TRANSIENT_ERROR_CODES = {
    "DatabaseResumingException",
    "DatabaseUnavailableException",
}


def is_not_ready_error(error: ClientError) -> bool:
    """Return True if a Data API error means the cluster is still coming up."""
    code = error.response.get("Error", {}).get("Code", "")
    message = error.response.get("Error", {}).get("Message", "")

    if code in TRANSIENT_ERROR_CODES:
        return True

    return code == "BadRequestException" and "HttpEndpoint is not enabled" in message


class DataApiProbe:
    """Callable probe running ``SELECT 1`` through the RDS Data API."""

    def __init__(
        self,
        resource_arn: str,
        secret_arn: str,
        database: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.resource_arn = resource_arn
        self.secret_arn = secret_arn
        self.database = database
        self.client = client or boto3.client("rds-data")

    def __call__(self) -> bool:
        parameters = {
            "resourceArn": self.resource_arn,
            "secretArn": self.secret_arn,
            "sql": "SELECT 1",
        }
        if self.database:
            parameters["database"] = self.database

        try:
            self.client.execute_statement(**parameters)
        except ClientError as e:
            if is_not_ready_error(e):
                logger.info(f"Data API not ready: {e.response['Error'].get('Message', '')}")
                return False
            raise

        return True
