"""
Top-level operations: the entry point most callers want.

:class:`Orchestrator` validates each request, leases a session for the
target container, and dispatches to the transfer pipeline or the
container lifecycle. Every operation runs under a child of the
orchestrator's root cancellation token, so :meth:`Orchestrator.cancel`
stops everything in flight.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import BinaryIO, Iterable, Iterator, Sequence

from blobjack.base.cancellation import CancellationToken
from blobjack.base.config import CoreConfig
from blobjack.base.exceptions import ValidationError
from blobjack.base.models import (
    LifecycleOutcome,
    ListingNode,
    Success,
    TransferRequest,
    TransferResult,
)
from blobjack.base.store import ObjectStoreBlueprint
from blobjack.core.key_index import walk
from blobjack.core.lifecycle import ContainerLifecycle
from blobjack.core.pipeline import TransferPipeline
from blobjack.core.session import Session, SessionManager

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


def _require(value: str, what: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{what} must not be empty")
    return value


class Orchestrator:
    """Container and blob operations against one account.

    Args:
        sessions: Session manager used to lease per-container sessions.
        account_id: Account every lease is taken against.
        config: Core tunables; defaults to :class:`CoreConfig()`.
        pipeline: Transfer pipeline; built from *config* when omitted.
        lifecycle: Container lifecycle policy; optimistic when omitted.
    """

    def __init__(
        self,
        sessions: SessionManager,
        account_id: str,
        config: CoreConfig | None = None,
        pipeline: TransferPipeline | None = None,
        lifecycle: ContainerLifecycle | None = None,
    ) -> None:
        self.config = config or CoreConfig()
        self.account_id = account_id
        self._sessions = sessions
        self._pipeline = pipeline or TransferPipeline(
            self.config.max_concurrency, self.config.retry
        )
        self._lifecycle = lifecycle or ContainerLifecycle()
        self._root = CancellationToken()
        self._lock = threading.Lock()

    @classmethod
    def for_store(
        cls, store: ObjectStoreBlueprint, config: CoreConfig | None = None
    ) -> Orchestrator:
        """Build an orchestrator whose sessions all share one store client."""
        config = config or CoreConfig()
        sessions = SessionManager(
            lambda account, container: store, config.session_grace_period, close_stores=False
        )
        return cls(sessions, store.account_id, config)

    @classmethod
    def for_provider(
        cls, provider: str, provider_config: dict, config: CoreConfig | None = None
    ) -> Orchestrator:
        """Build an orchestrator that opens a fresh provider client per session.

        Raises:
            ValueError: If the provider is unknown.
            pydantic.ValidationError: If *provider_config* is invalid.
        """
        from blobjack.factory import store_connector

        config = config or CoreConfig()
        connector, account_id = store_connector(provider, provider_config)
        return cls(SessionManager(connector, config.session_grace_period), account_id, config)

    # --- Plumbing ---

    @contextmanager
    def _operation(self, container_name: str) -> Iterator[tuple[Session, CancellationToken]]:
        _require(container_name, "container name")
        with self._lock:
            token = self._root.child(self.config.operation_timeout)
        try:
            with self._sessions.acquire(self.account_id, container_name) as session:
                yield session, token
        finally:
            token.detach()

    def _run_one(self, container_name: str, request: TransferRequest) -> Success:
        with self._operation(container_name) as (session, token):
            result = self._pipeline.execute(session, request, token)
        if not isinstance(result, Success):
            raise result.to_error()
        return result

    def _run_batch(
        self, container_name: str, requests: Sequence[TransferRequest]
    ) -> list[TransferResult]:
        with self._operation(container_name) as (session, token):
            return self._pipeline.submit(session, requests, token)

    def cancel(self) -> None:
        """Cancel every operation currently in flight.

        Operations started afterwards run normally.
        """
        with self._lock:
            root, self._root = self._root, CancellationToken()
        root.cancel()

    def close(self) -> None:
        self._sessions.close()

    def __enter__(self) -> Orchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # --- Containers ---

    def create_container(self, container_name: str) -> LifecycleOutcome:
        with self._operation(container_name) as (session, _):
            return self._lifecycle.create(session)

    def delete_container(self, container_name: str) -> LifecycleOutcome:
        with self._operation(container_name) as (session, _):
            return self._lifecycle.delete(session)

    # --- Blobs ---

    def write(
        self,
        container_name: str,
        key: str,
        value: str | bytes | BinaryIO,
        content_type: str | None = None,
    ) -> Success:
        """Write one blob. ``str`` values are stored as UTF-8 text.

        Raises:
            ValidationError: If the key is empty.
            TransferError: If the write fails for good.
        """
        _require(key, "blob key")
        if isinstance(value, str):
            value = value.encode("utf-8")
            content_type = content_type or TEXT_CONTENT_TYPE
        return self._run_one(container_name, TransferRequest.put(key, value, content_type))

    def read(self, container_name: str, key: str) -> Success:
        """Read one blob; the body is in ``result.payload``."""
        _require(key, "blob key")
        return self._run_one(container_name, TransferRequest.get(key))

    def delete(self, container_name: str, key: str) -> Success:
        _require(key, "blob key")
        return self._run_one(container_name, TransferRequest.delete(key))

    def write_many(
        self,
        container_name: str,
        items: Iterable[tuple[str, str | bytes]],
        content_type: str | None = None,
    ) -> list[TransferResult]:
        """Write several blobs concurrently; results follow input order."""
        requests = []
        for key, value in items:
            _require(key, "blob key")
            item_type = content_type
            if isinstance(value, str):
                value = value.encode("utf-8")
                item_type = item_type or TEXT_CONTENT_TYPE
            requests.append(TransferRequest.put(key, value, item_type))
        return self._run_batch(container_name, requests)

    def read_many(self, container_name: str, keys: Iterable[str]) -> list[TransferResult]:
        requests = [TransferRequest.get(_require(key, "blob key")) for key in keys]
        return self._run_batch(container_name, requests)

    def delete_many(self, container_name: str, keys: Iterable[str]) -> list[TransferResult]:
        requests = [TransferRequest.delete(_require(key, "blob key")) for key in keys]
        return self._run_batch(container_name, requests)

    # --- Listing ---

    def list(
        self,
        container_name: str,
        prefix: str = "",
        delimiter: str | None = None,
        max_depth: int | None = None,
    ) -> list[tuple[int, ListingNode]]:
        """Walk the virtual hierarchy under *prefix*.

        Returns:
            ``(depth, node)`` pairs in display order.

        Raises:
            DepthExceeded: If the hierarchy is deeper than the cap.
            TransferError: If an enumeration fails for good.
        """
        delimiter = self.config.delimiter if delimiter is None else delimiter
        max_depth = self.config.max_list_depth if max_depth is None else max_depth
        with self._operation(container_name) as (session, token):
            return list(
                walk(
                    lambda level: self._pipeline.enumerate_keys(session, level, token),
                    prefix,
                    delimiter,
                    max_depth,
                )
            )
