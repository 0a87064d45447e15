"""Azure Blob Storage implementation of the ObjectStore blueprint."""

from __future__ import annotations

import io
import math
from typing import BinaryIO, NoReturn

from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceResponseError,
)
from azure.storage.blob import BlobServiceClient, ContentSettings

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
from blobjack.base.config import AzureConfig
from blobjack.base.models import ObjectData, ObjectInfo

_IDEMPOTENCY_METADATA_KEY = "idempotency_token"

_STATUS_MAP = {
    403: AccessDeniedError,
    408: StoreTimeoutError,
    429: ThrottledError,
    500: StorageError,
    503: ThrottledError,
    504: StoreTimeoutError,
}


def _handle_error(e: AzureError, message: str) -> NoReturn:
    """Raise a mapped exception or a generic StorageError."""
    if isinstance(e, ResourceNotFoundError):
        if getattr(e, "error_code", None) == "ContainerNotFound":
            raise ContainerNotFoundError(message) from e
        raise ObjectNotFoundError(message) from e
    if isinstance(e, ResourceExistsError):
        raise ContainerAlreadyExistsError(message) from e
    if isinstance(e, ClientAuthenticationError):
        raise AccessDeniedError(message) from e
    if isinstance(e, HttpResponseError):
        raise _STATUS_MAP.get(e.status_code or 0, StorageError)(message) from e
    if isinstance(e, ServiceResponseError):
        raise StoreTimeoutError(message) from e
    raise StorageError(message) from e


def _server_timeout(timeout: float | None) -> dict:
    # The service takes whole seconds.
    return {} if timeout is None else {"timeout": max(1, math.ceil(timeout))}


class AzureObjectStore(ObjectStoreBlueprint):
    """Azure Blob Storage implementation for object store operations.

    Azure has no idempotency keys for uploads, so the token is stored as
    blob metadata and retried writes are last-write-wins.

    Attributes:
        service: The account-level ``BlobServiceClient``.
    """

    def __init__(self, config: AzureConfig) -> None:
        """Initialize the Azure blob service client.

        Args:
            config: Azure configuration with a connection string, or an
                account name with an optional shared key.
        """
        if config.connection_string:
            self.service = BlobServiceClient.from_connection_string(config.connection_string)
        else:
            self.service = BlobServiceClient(
                account_url=config.account_url, credential=config.account_key
            )
        self._account_id = config.account_id

    @property
    def account_id(self) -> str:
        return self._account_id

    # --- Container operations ---

    def create_container(self, container_name: str) -> None:
        try:
            self.service.create_container(container_name)
        except AzureError as e:
            _handle_error(e, f"Failed to create container '{container_name}'.")

    def delete_container(self, container_name: str) -> None:
        try:
            self.service.delete_container(container_name)
        except ResourceNotFoundError as e:
            raise ContainerNotFoundError(f"Container '{container_name}' does not exist.") from e
        except AzureError as e:
            _handle_error(e, f"Failed to delete container '{container_name}'.")

    def container_exists(self, container_name: str) -> bool:
        try:
            return self.service.get_container_client(container_name).exists()
        except AzureError as e:
            _handle_error(e, f"Failed to check container '{container_name}'.")

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
        """Upload a stream as a block blob, overwriting any existing blob."""
        kwargs: dict = _server_timeout(timeout)
        if content_type:
            kwargs["content_settings"] = ContentSettings(content_type=content_type)
        if idempotency_token:
            kwargs["metadata"] = {_IDEMPOTENCY_METADATA_KEY: idempotency_token}
        try:
            blob = self.service.get_blob_client(container=container_name, blob=key)
            response = blob.upload_blob(data, overwrite=True, **kwargs)
        except AzureError as e:
            _handle_error(e, f"Failed to upload '{key}' to '{container_name}'.")
        return ObjectInfo(key=key, content_type=content_type, etag=response.get("etag"))

    def get_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> ObjectData:
        try:
            blob = self.service.get_blob_client(container=container_name, blob=key)
            downloader = blob.download_blob(**_server_timeout(timeout))
            body = downloader.readall()
        except AzureError as e:
            _handle_error(e, f"Failed to get '{key}' from '{container_name}'.")
        props = downloader.properties
        info = ObjectInfo(
            key=key,
            size=props.size,
            content_type=props.content_settings.content_type,
            etag=props.etag,
        )
        return ObjectData(info=info, body=io.BytesIO(body))

    def delete_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> None:
        try:
            blob = self.service.get_blob_client(container=container_name, blob=key)
            blob.delete_blob(**_server_timeout(timeout))
        except AzureError as e:
            _handle_error(e, f"Failed to delete '{key}' from '{container_name}'.")

    def list_objects(
        self, container_name: str, prefix: str = "", timeout: float | None = None
    ) -> list[ObjectInfo]:
        try:
            container = self.service.get_container_client(container_name)
            return [
                ObjectInfo(
                    key=props.name,
                    size=props.size,
                    content_type=props.content_settings.content_type,
                    etag=props.etag,
                )
                for props in container.list_blobs(
                    name_starts_with=prefix or None, **_server_timeout(timeout)
                )
            ]
        except AzureError as e:
            _handle_error(e, f"Failed to list objects in '{container_name}'.")

    def close(self) -> None:
        self.service.close()

