"""
AWS S3 blob store.
"""

from __future__ import annotations

from typing import Iterator, List

from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import BlobNotFoundError
from ..logger import get_logger
from ..utils.aws import error_code, store_error
from .repository import BlobStore

logger = get_logger(__name__)

# DeleteObjects accepts at most 1000 keys per call
MAX_KEYS_PER_DELETE = 1000

_BOTO_ERRORS = (BotoCoreError, ClientError)


class S3BlobStore(BlobStore):
    """Blob store backed by a boto3 ``s3`` client. Bodies are UTF-8 text."""

    def __init__(self, client, region: str = "us-east-1"):
        self.client = client
        self.region = region

    def list_buckets(self) -> List[str]:
        try:
            response = self.client.list_buckets()
        except _BOTO_ERRORS as e:
            raise store_error(e, "s3", "list_buckets")
        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    def create_bucket(self, bucket: str) -> None:
        kwargs = {"Bucket": bucket}
        # us-east-1 rejects an explicit location constraint
        if self.region and self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.client.create_bucket(**kwargs)
        except _BOTO_ERRORS as e:
            raise store_error(e, "s3", "create_bucket")
        logger.debug(f"Created S3 bucket {bucket}")

    def delete_bucket(self, bucket: str) -> None:
        try:
            versions = []
            paginator = self.client.get_paginator("list_object_versions")
            for page in paginator.paginate(Bucket=bucket):
                for entry in page.get("Versions", []) + page.get("DeleteMarkers", []):
                    versions.append({"Key": entry["Key"], "VersionId": entry["VersionId"]})

            for start in range(0, len(versions), MAX_KEYS_PER_DELETE):
                self.client.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": versions[start:start + MAX_KEYS_PER_DELETE], "Quiet": True},
                )
            self.client.delete_bucket(Bucket=bucket)
        except _BOTO_ERRORS as e:
            raise store_error(e, "s3", "delete_bucket")
        logger.debug(f"Deleted S3 bucket {bucket} ({len(versions)} object versions)")

    def put_object(self, bucket: str, key: str, body: str, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body.encode("utf-8"),
                ContentType=content_type,
            )
        except _BOTO_ERRORS as e:
            raise store_error(e, "s3", "put_object")

    def get_object(self, bucket: str, key: str) -> str:
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read().decode("utf-8")
        except _BOTO_ERRORS as e:
            if error_code(e) in ("NoSuchKey", "404"):
                raise BlobNotFoundError(bucket, key)
            raise store_error(e, "s3", "get_object")

    def delete_object(self, bucket: str, key: str) -> None:
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
        except _BOTO_ERRORS as e:
            raise store_error(e, "s3", "delete_object")

    def list_objects(self, bucket: str) -> Iterator[str]:
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket):
                for obj in page.get("Contents", []):
                    yield obj["Key"]
        except _BOTO_ERRORS as e:
            raise store_error(e, "s3", "list_objects")

    def create_folder(self, bucket: str, name: str) -> None:
        try:
            self.client.put_object(
                Bucket=bucket,
                Key=f"{name}/",
                Body=name.encode("utf-8"),
                ServerSideEncryption="AES256",
            )
        except _BOTO_ERRORS as e:
            raise store_error(e, "s3", "create_folder")
