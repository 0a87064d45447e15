"""GCP Cloud Storage implementation of the ObjectStore blueprint."""

from __future__ import annotations

import io
from typing import BinaryIO, NoReturn

from google.cloud import storage as gcs
from google.api_core import exceptions as gcp_exceptions
from google.cloud.exceptions import GoogleCloudError

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
from blobjack.base.config import GCPConfig
from blobjack.base.models import ObjectData, ObjectInfo

_IDEMPOTENCY_METADATA_KEY = "idempotency-token"


def _handle_error(e: Exception, message: str) -> NoReturn:
    """Raise a mapped exception or a generic StorageError."""
    if isinstance(e, gcp_exceptions.NotFound):
        if "bucket" in str(e).lower():
            raise ContainerNotFoundError(message) from e
        raise ObjectNotFoundError(message) from e
    if isinstance(e, gcp_exceptions.Conflict):
        raise ContainerAlreadyExistsError(message) from e
    if isinstance(e, (gcp_exceptions.Forbidden, gcp_exceptions.Unauthorized)):
        raise AccessDeniedError(message) from e
    if isinstance(e, (gcp_exceptions.TooManyRequests, gcp_exceptions.ServiceUnavailable)):
        raise ThrottledError(message) from e
    if isinstance(e, (gcp_exceptions.DeadlineExceeded, gcp_exceptions.GatewayTimeout)):
        raise StoreTimeoutError(message) from e
    raise StorageError(message) from e


def _info(blob: gcs.Blob) -> ObjectInfo:
    return ObjectInfo(
        key=blob.name, size=blob.size, content_type=blob.content_type, etag=blob.etag
    )


class GCSObjectStore(ObjectStoreBlueprint):
    """GCP Cloud Storage implementation for object store operations.

    Containers map to GCS buckets.
    """

    def __init__(self, config: GCPConfig):
        """Initialize the GCP Cloud Storage client.

        Args:
            config: GCP configuration with project_id and optional credentials.
        """
        self.client = gcs.Client(
            project=config.project_id,
            credentials=config.credentials,
        )
        self._account_id = config.account_id

    @property
    def account_id(self) -> str:
        return self._account_id

    def create_container(self, container_name: str) -> None:
        """Create a new GCS bucket."""
        try:
            self.client.create_bucket(container_name)
        except GoogleCloudError as e:
            _handle_error(e, f"Failed to create bucket '{container_name}'.")

    def delete_container(self, container_name: str) -> None:
        """Delete a GCS bucket. Must be empty."""
        try:
            bucket = self.client.get_bucket(container_name)
            bucket.delete()
        except gcp_exceptions.NotFound as e:
            raise ContainerNotFoundError(f"Bucket '{container_name}' does not exist.") from e
        except GoogleCloudError as e:
            _handle_error(e, f"Failed to delete bucket '{container_name}'.")

    def container_exists(self, container_name: str) -> bool:
        try:
            return self.client.bucket(container_name).exists()
        except GoogleCloudError as e:
            _handle_error(e, f"Failed to check bucket '{container_name}'.")

    def put_object(
        self,
        container_name: str,
        key: str,
        data: BinaryIO,
        content_type: str | None = None,
        idempotency_token: str | None = None,
        timeout: float | None = None,
    ) -> ObjectInfo:
        """Upload a stream to GCS."""
        kwargs: dict = {"content_type": content_type}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            blob = self.client.bucket(container_name).blob(key)
            if idempotency_token:
                blob.metadata = {_IDEMPOTENCY_METADATA_KEY: idempotency_token}
            blob.upload_from_file(data, **kwargs)
        except GoogleCloudError as e:
            _handle_error(e, f"Failed to upload '{key}' to '{container_name}'.")
        return _info(blob)

    def get_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> ObjectData:
        """Download a GCS object into memory."""
        kwargs: dict = {} if timeout is None else {"timeout": timeout}
        try:
            blob = self.client.bucket(container_name).get_blob(key, **kwargs)
            if blob is None:
                raise ObjectNotFoundError(f"Object '{key}' not found in '{container_name}'.")
            body = blob.download_as_bytes(**kwargs)
        except GoogleCloudError as e:
            _handle_error(e, f"Failed to get '{key}' from '{container_name}'.")
        return ObjectData(info=_info(blob), body=io.BytesIO(body))

    def delete_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> None:
        """Delete an object from GCS."""
        kwargs: dict = {} if timeout is None else {"timeout": timeout}
        try:
            self.client.bucket(container_name).blob(key).delete(**kwargs)
        except GoogleCloudError as e:
            _handle_error(e, f"Failed to delete '{key}' from '{container_name}'.")

    def list_objects(
        self, container_name: str, prefix: str = "", timeout: float | None = None
    ) -> list[ObjectInfo]:
        """List objects in a GCS bucket, optionally filtered by prefix."""
        kwargs: dict = {} if timeout is None else {"timeout": timeout}
        try:
            blobs = self.client.list_blobs(container_name, prefix=prefix or None, **kwargs)
            return [_info(blob) for blob in blobs]
        except GoogleCloudError as e:
            _handle_error(e, f"Failed to list objects in '{container_name}'.")

    def close(self) -> None:
        self.client.close()
