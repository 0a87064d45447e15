"""AWS S3 implementation of the ObjectStore blueprint."""

from __future__ import annotations

import boto3
from typing import BinaryIO, NoReturn
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError

from blobjack.base.exceptions import (
    StorageError,
    ContainerNotFoundError,
    ContainerAlreadyExistsError,
    ObjectNotFoundError,
    AccessDeniedError,
    ThrottledError,
    StoreTimeoutError,
)
from blobjack.base import ObjectStoreBlueprint
from blobjack.base.config import AWSConfig
from blobjack.base.models import ObjectData, ObjectInfo

_ERROR_MAP = {
    "NoSuchBucket": ContainerNotFoundError,
    "NoSuchKey": ObjectNotFoundError,
    "404": ObjectNotFoundError,
    "NotFound": ObjectNotFoundError,
    "BucketAlreadyExists": ContainerAlreadyExistsError,
    "BucketAlreadyOwnedByYou": ContainerAlreadyExistsError,
    "AccessDenied": AccessDeniedError,
    "403": AccessDeniedError,
    "SlowDown": ThrottledError,
    "Throttling": ThrottledError,
    "ThrottlingException": ThrottledError,
    "RequestLimitExceeded": ThrottledError,
    "503": ThrottledError,
    "RequestTimeout": StoreTimeoutError,
}

_IDEMPOTENCY_METADATA_KEY = "idempotency-token"


def _handle_client_error(e: Exception, message: str) -> NoReturn:
    """Raise a mapped exception or a generic StorageError."""
    if isinstance(e, ClientError):
        exc_class = _ERROR_MAP.get(e.response.get("Error", {}).get("Code", ""))
    elif isinstance(e, (ConnectTimeoutError, ReadTimeoutError)):
        exc_class = StoreTimeoutError
    else:
        exc_class = None
    raise (exc_class or StorageError)(message) from e


class S3ObjectStore(ObjectStoreBlueprint):
    """AWS S3 implementation for object store operations.

    Containers map to S3 buckets. S3 has no idempotency keys, so the token
    is only recorded as object metadata and retried writes are
    last-write-wins.

    Attributes:
        client: boto3 S3 client for interacting with the AWS S3 API.
        region: AWS region name.
    """

    def __init__(self, config: AWSConfig) -> None:
        """Initialize the AWS S3 client.

        Args:
            config: AWS configuration object containing credentials and region.
                   Expected attributes:
                   - aws_access_key_id: AWS access key ID
                   - aws_secret_access_key: AWS secret access key
                   - region_name: AWS region name (e.g., 'us-east-1')
                   - endpoint_url: Optional custom endpoint
                   - connect_timeout / read_timeout: Optional socket timeouts
        """
        timeouts = {
            name: value
            for name, value in (
                ("connect_timeout", config.connect_timeout),
                ("read_timeout", config.read_timeout),
            )
            if value is not None
        }
        self.client = boto3.client(
            "s3",
            aws_access_key_id=config.aws_access_key_id,
            aws_secret_access_key=config.aws_secret_access_key,
            region_name=config.region_name,
            endpoint_url=config.endpoint_url,
            config=BotoConfig(**timeouts),
        )
        self.region = config.region_name
        self._account_id = config.account_id

    @property
    def account_id(self) -> str:
        return self._account_id

    # --- Container operations ---

    def create_container(self, container_name: str) -> None:
        """Create a new S3 bucket.

        Raises:
            ContainerAlreadyExistsError: If the bucket already exists.
            StorageError: If creation fails for any other reason.
        """
        try:
            create_config = {}
            if self.region and self.region != "us-east-1":
                create_config["CreateBucketConfiguration"] = {
                    "LocationConstraint": self.region
                }
            self.client.create_bucket(Bucket=container_name, **create_config)
        except (ClientError, BotoCoreError) as e:
            _handle_client_error(e, f"Failed to create bucket '{container_name}'.")

    def delete_container(self, container_name: str) -> None:
        """Delete an S3 bucket. The bucket must be empty.

        Raises:
            ContainerNotFoundError: If the bucket does not exist.
            StorageError: If deletion fails for any other reason.
        """
        try:
            self.client.delete_bucket(Bucket=container_name)
        except (ClientError, BotoCoreError) as e:
            _handle_client_error(e, f"Failed to delete bucket '{container_name}'.")

    def container_exists(self, container_name: str) -> bool:
        try:
            self.client.head_bucket(Bucket=container_name)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchBucket", "NotFound"):
                return False
            _handle_client_error(e, f"Failed to check bucket '{container_name}'.")
        except BotoCoreError as e:
            _handle_client_error(e, f"Failed to check bucket '{container_name}'.")

    # --- Object operations ---

    def put_object(
        self,
        container_name: str,
        key: str,
        data: BinaryIO,
        content_type: str | None = None,
        idempotency_token: str | None = None,
        timeout: float | None = None,
    ) -> ObjectInfo:
        """Upload a stream to an S3 object.

        Raises:
            ContainerNotFoundError: If the bucket does not exist.
            StorageError: If upload fails for any other reason.
        """
        params: dict = {"Bucket": container_name, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        if idempotency_token:
            params["Metadata"] = {_IDEMPOTENCY_METADATA_KEY: idempotency_token}
        try:
            response = self.client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            _handle_client_error(e, f"Failed to upload '{key}' to '{container_name}'.")
        return ObjectInfo(key=key, content_type=content_type, etag=response.get("ETag"))

    def get_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> ObjectData:
        """Open an S3 object for streaming.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            ContainerNotFoundError: If the bucket does not exist.
        """
        try:
            response = self.client.get_object(Bucket=container_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            _handle_client_error(e, f"Failed to get '{key}' from '{container_name}'.")
        info = ObjectInfo(
            key=key,
            size=response.get("ContentLength"),
            content_type=response.get("ContentType"),
            etag=response.get("ETag"),
        )
        return ObjectData(info=info, body=response["Body"])

    def delete_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> None:
        try:
            self.client.delete_object(Bucket=container_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            _handle_client_error(e, f"Failed to delete '{key}' from '{container_name}'.")

    def list_objects(
        self, container_name: str, prefix: str = "", timeout: float | None = None
    ) -> list[ObjectInfo]:
        """List objects in an S3 bucket, optionally filtered by prefix.

        Handles pagination automatically to return all matching keys.
        """
        try:
            objects: list[ObjectInfo] = []
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=container_name, Prefix=prefix):
                objects.extend(
                    ObjectInfo(key=obj["Key"], size=obj.get("Size"), etag=obj.get("ETag"))
                    for obj in page.get("Contents", [])
                )
            return objects
        except (ClientError, BotoCoreError) as e:
            _handle_client_error(e, f"Failed to list objects in '{container_name}'.")

    def close(self) -> None:
        self.client.close()
