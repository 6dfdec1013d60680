"""
boto3 client helpers shared by the SimpleDB and S3 stores.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import StoreError

if TYPE_CHECKING:
    from ..config import AWSConfig


def get_client(service: str, aws_config: AWSConfig):
    """
    Create a boto3 client with configuration.

    Args:
        service: boto3 service name ("sdb" or "s3")
        aws_config: AWS configuration

    Returns:
        boto3 client

    Raises:
        StoreError: If client creation fails
    """
    try:
        kwargs = {
            "region_name": aws_config.region,
            "config": BotoConfig(
                connect_timeout=aws_config.connect_timeout,
                read_timeout=aws_config.read_timeout,
                retries={"max_attempts": aws_config.max_retries},
            ),
        }

        if aws_config.has_credentials:
            kwargs["aws_access_key_id"] = aws_config.access_key_id
            kwargs["aws_secret_access_key"] = aws_config.secret_access_key
            if aws_config.session_token:
                kwargs["aws_session_token"] = aws_config.session_token

        return boto3.client(service, **kwargs)

    except (BotoCoreError, ClientError, ValueError) as e:
        raise StoreError(f"Failed to create {service} client: {e}", service=service)


def error_code(error: Exception) -> str:
    """AWS error code of a ClientError, "" for anything else."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


def store_error(error: Exception, service: str, operation: str) -> StoreError:
    """Translate a boto3 failure into a StoreError."""
    code = error_code(error)
    message = f"{service} {operation} failed: {code or type(error).__name__}: {error}"
    # Access and validation problems do not go away on retry
    recoverable = code not in ("AccessDenied", "InvalidClientTokenId", "InvalidParameterValue",
                               "NoSuchDomain", "NoSuchBucket", "InvalidBucketName")
    return StoreError(message, service=service, operation=operation, recoverable=recoverable)
