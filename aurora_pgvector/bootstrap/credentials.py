"""
Database credential lookup in AWS Secrets Manager.
"""

import json
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

_secrets_client = None


def _get_secrets_client():
    global _secrets_client
    if _secrets_client is None:
        _secrets_client = boto3.client('secretsmanager')
    return _secrets_client


def get_database_credentials(secret_arn: str, client: Optional[Any] = None) -> Dict[str, str]:
    """
    Retrieve database credentials from AWS Secrets Manager.

    Args:
        secret_arn: ARN of the secret containing database credentials
        client: Secrets Manager client (defaults to a cached boto3 client)

    Returns:
        Dictionary containing username and password
    """
    client = client or _get_secrets_client()

    try:
        logger.info(f"Retrieving credentials from secret: {secret_arn}")

        response = client.get_secret_value(SecretId=secret_arn)
        secret_data = json.loads(response['SecretString'])

        return {
            'username': secret_data['username'],
            'password': secret_data['password']
        }

    except ClientError as e:
        logger.error(f"Error retrieving database credentials: {str(e)}")
        raise
    except (KeyError, json.JSONDecodeError) as e:
        logger.error(f"Error parsing database credentials: {str(e)}")
        raise
