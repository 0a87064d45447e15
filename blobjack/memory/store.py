"""In-process implementation of the ObjectStore blueprint.

Objects live in a :class:`MemoryBackend`, one per account name for the
whole process, so every store opened for the same account sees the same
containers. Unlike the cloud providers it honours idempotency tokens: a
repeated Put with an already-applied token is dropped.
"""

from __future__ import annotations

import hashlib
import io
import threading
from collections import OrderedDict
from typing import BinaryIO

from blobjack.base import ObjectStoreBlueprint
from blobjack.base.config import MemoryConfig
from blobjack.base.exceptions import (
    ContainerAlreadyExistsError,
    ContainerNotFoundError,
    ObjectNotFoundError,
)
from blobjack.base.models import ObjectData, ObjectInfo

_DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_TOKEN_LIMIT = 10_000


class _Container:
    __slots__ = ("objects", "tokens", "token_limit")

    def __init__(self, token_limit: int) -> None:
        self.objects: dict[str, tuple[bytes, ObjectInfo]] = {}
        # Most recently applied idempotency tokens, oldest first.
        self.tokens: OrderedDict[str, ObjectInfo] = OrderedDict()
        self.token_limit = token_limit

    def remember(self, token: str, info: ObjectInfo) -> None:
        self.tokens[token] = info
        while len(self.tokens) > self.token_limit:
            self.tokens.popitem(last=False)


class MemoryBackend:
    """Thread-safe container/object table shared by memory stores.

    Each container remembers up to *token_limit* applied idempotency
    tokens; a retry older than that window is applied again.
    """

    _accounts: dict[str, MemoryBackend] = {}
    _accounts_lock = threading.Lock()

    def __init__(self, token_limit: int = DEFAULT_TOKEN_LIMIT) -> None:
        self.containers: dict[str, _Container] = {}
        self.lock = threading.Lock()
        self.token_limit = token_limit

    @classmethod
    def for_account(cls, account_id: str) -> MemoryBackend:
        with cls._accounts_lock:
            if account_id not in cls._accounts:
                cls._accounts[account_id] = cls()
            return cls._accounts[account_id]

    @classmethod
    def reset(cls) -> None:
        """Forget every account's data."""
        with cls._accounts_lock:
            cls._accounts.clear()

    def container(self, name: str) -> _Container:
        """Return a container; call with ``lock`` held."""
        try:
            return self.containers[name]
        except KeyError:
            raise ContainerNotFoundError(f"Container '{name}' does not exist.") from None


class MemoryObjectStore(ObjectStoreBlueprint):
    """Dictionary-backed object store.

    Attributes:
        backend: Table holding this account's containers.
    """

    def __init__(self, config: MemoryConfig | None = None, backend: MemoryBackend | None = None) -> None:
        config = config or MemoryConfig()
        self._account_id = config.account_id
        self.backend = backend or MemoryBackend.for_account(config.account_id)

    @property
    def account_id(self) -> str:
        return self._account_id

    # --- Container operations ---

    def create_container(self, container_name: str) -> None:
        with self.backend.lock:
            if container_name in self.backend.containers:
                raise ContainerAlreadyExistsError(
                    f"Container '{container_name}' already exists."
                )
            self.backend.containers[container_name] = _Container(self.backend.token_limit)

    def delete_container(self, container_name: str) -> None:
        with self.backend.lock:
            self.backend.container(container_name)
            del self.backend.containers[container_name]

    def container_exists(self, container_name: str) -> bool:
        with self.backend.lock:
            return container_name in self.backend.containers

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
        body = data.read()
        info = ObjectInfo(
            key=key,
            size=len(body),
            content_type=content_type or _DEFAULT_CONTENT_TYPE,
            etag=hashlib.md5(body, usedforsecurity=False).hexdigest(),
        )
        with self.backend.lock:
            container = self.backend.container(container_name)
            if idempotency_token and idempotency_token in container.tokens:
                return container.tokens[idempotency_token]
            container.objects[key] = (body, info)
            if idempotency_token:
                container.remember(idempotency_token, info)
        return info

    def get_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> ObjectData:
        with self.backend.lock:
            container = self.backend.container(container_name)
            try:
                body, info = container.objects[key]
            except KeyError:
                raise ObjectNotFoundError(
                    f"Object '{key}' not found in '{container_name}'."
                ) from None
        return ObjectData(info=info, body=io.BytesIO(body))

    def delete_object(
        self, container_name: str, key: str, timeout: float | None = None
    ) -> None:
        with self.backend.lock:
            self.backend.container(container_name).objects.pop(key, None)

    def list_objects(
        self, container_name: str, prefix: str = "", timeout: float | None = None
    ) -> list[ObjectInfo]:
        with self.backend.lock:
            container = self.backend.container(container_name)
            return [
                info
                for key, (_, info) in sorted(container.objects.items())
                if key.startswith(prefix)
            ]
