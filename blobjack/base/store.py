"""Object store blueprint."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO

from .models import ObjectData, ObjectInfo


class ObjectStoreBlueprint(ABC):
    """Abstract interface for a provider's blob transport.

    Defines container lifecycle plus object put/get/delete/list.
    Maps to AWS S3, GCP Cloud Storage, Azure Blob Storage and the
    in-memory store. Every call may be slow and may fail; adapters raise
    the :class:`~blobjack.base.exceptions.StorageError` family.
    """

    @property
    @abstractmethod
    def account_id(self) -> str:
        """Identifier of the account this store is authenticated against."""

    # --- Container operations ---

    @abstractmethod
    def create_container(self, container_name: str) -> None:
        """Create a new container.

        Args:
            container_name: Container (bucket) name.

        Raises:
            ContainerAlreadyExistsError: If the container already exists.
        """

    @abstractmethod
    def delete_container(self, container_name: str) -> None:
        """Delete a container.

        Args:
            container_name: Container (bucket) name.

        Raises:
            ContainerNotFoundError: If the container does not exist.
        """

    @abstractmethod
    def container_exists(self, container_name: str) -> bool:
        """Return whether the container exists."""

    # --- Object operations ---

    @abstractmethod
    def put_object(
        self,
        container_name: str,
        key: str,
        data: BinaryIO,
        content_type: str | None = None,
        idempotency_token: str | None = None,
        timeout: float | None = None,
    ) -> ObjectInfo:
        """Write an object, replacing any existing one.

        Args:
            container_name: Target container.
            key: Destination object key.
            data: Readable binary stream positioned at the payload start.
            content_type: Optional MIME type stored with the object.
            idempotency_token: Token identifying this logical write; stores
                that support idempotency keys use it to drop duplicates.
            timeout: Optional per-call timeout in seconds.

        Returns:
            Metadata of the stored object.
        """

    @abstractmethod
    def get_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> ObjectData:
        """Open an object for reading.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    def delete_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> None:
        """Delete an object."""

    @abstractmethod
    def list_objects(
        self, container_name: str, prefix: str = "", timeout: float | None = None
    ) -> list[ObjectInfo]:
        """List every object whose key starts with *prefix* (no delimiter)."""

    def close(self) -> None:
        """Release transport resources. Default: nothing to release."""
