"""
AWS Secrets Manager utility for fetching Aura API credentials
"""

import json
from typing import TYPE_CHECKING

import boto3

if TYPE_CHECKING:
    from .logger import LogSink

from .types import Credentials

REQUIRED_SECRET_FIELDS = ("clientId", "clientSecret", "tenantId")


def get_credentials_from_secrets_manager(logger: "LogSink", secret_arn: str) -> Credentials:
    """
    Fetches Aura credentials from AWS Secrets Manager.
    The secret should be a JSON object with clientId, clientSecret and tenantId fields.
    """
    try:
        region = _extract_region_from_secret_arn(secret_arn)
        client = boto3.client("secretsmanager", region_name=region)

        response = client.get_secret_value(SecretId=secret_arn)

        if "SecretString" not in response or not response["SecretString"]:
            raise ValueError("secret value is empty or not a string")

        secret_value = json.loads(response["SecretString"])

        if not isinstance(secret_value, dict):
            raise ValueError("secret must be a JSON object")

        missing = [field for field in REQUIRED_SECRET_FIELDS if field not in secret_value]
        if missing:
            raise ValueError(f"secret is missing fields: {', '.join(missing)}")

        # Reject numeric/other types and empty strings
        for field in REQUIRED_SECRET_FIELDS:
            value = secret_value[field]
            if not isinstance(value, str) or value == "":
                raise ValueError(f"secret field {field} must be a non-empty string")

        logger.debugf("Successfully retrieved Aura credentials from Secrets Manager")

        return Credentials(
            client_id=secret_value["clientId"],
            client_secret=secret_value["clientSecret"],
            tenant_id=secret_value["tenantId"],
        )

    except Exception as e:
        error_message = str(e)
        logger.errorf("Failed to retrieve credentials from Secrets Manager: %v", error_message)
        raise ValueError(
            f"failed to retrieve Aura credentials from Secrets Manager: {error_message}"
        ) from e


def _extract_region_from_secret_arn(arn: str) -> str:
    """
    Extracts AWS region from Secrets Manager ARN.
    Format: arn:PARTITION:secretsmanager:REGION:ACCOUNT:secret:NAME
    """
    parts = arn.split(":")
    if (
        len(parts) < 7
        or parts[0] != "arn"
        or not parts[1].startswith("aws")
        or parts[2] != "secretsmanager"
        or not parts[3]
    ):
        raise ValueError(f"invalid Secrets Manager ARN format: {arn}")
    return parts[3]
