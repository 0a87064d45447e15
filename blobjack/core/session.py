"""
Reference-counted sessions, one per (account, container).

Replaces a process-wide client cache: sessions are built lazily on the
first :meth:`SessionManager.acquire`, shared by every concurrent lease,
and closed once the last lease is released and the grace period passes
without another acquire.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import BinaryIO, Callable

from blobjack.base.exceptions import SessionError
from blobjack.base.logger import bj_logger
from blobjack.base.models import ObjectData, ObjectInfo
from blobjack.base.store import ObjectStoreBlueprint

Connector = Callable[[str, str], ObjectStoreBlueprint]
SessionKey = tuple[str, str]


class Session:
    """An authenticated channel to one container.

    Thin binding of an :class:`ObjectStoreBlueprint` to a container name.
    The transport's own connection pool is the only thing that mutates
    underneath it.
    """

    def __init__(
        self,
        store: ObjectStoreBlueprint,
        account_id: str,
        container_name: str,
        owns_store: bool = True,
    ) -> None:
        self.store = store
        self.account_id = account_id
        self.container_name = container_name
        self._owns_store = owns_store
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise SessionError(
                f"Session for '{self.account_id}/{self.container_name}' is closed."
            )

    def create_container(self) -> None:
        self._check_open()
        self.store.create_container(self.container_name)

    def delete_container(self) -> None:
        self._check_open()
        self.store.delete_container(self.container_name)

    def container_exists(self) -> bool:
        self._check_open()
        return self.store.container_exists(self.container_name)

    def put(
        self,
        key: str,
        data: BinaryIO,
        content_type: str | None = None,
        idempotency_token: str | None = None,
        timeout: float | None = None,
    ) -> ObjectInfo:
        self._check_open()
        return self.store.put_object(
            self.container_name, key, data, content_type, idempotency_token, timeout
        )

    def get(self, key: str, timeout: float | None = None) -> ObjectData:
        self._check_open()
        return self.store.get_object(self.container_name, key, timeout)

    def delete(self, key: str, timeout: float | None = None) -> None:
        self._check_open()
        self.store.delete_object(self.container_name, key, timeout)

    def list(self, prefix: str = "", timeout: float | None = None) -> list[ObjectInfo]:
        self._check_open()
        return self.store.list_objects(self.container_name, prefix, timeout)

    def close(self) -> None:
        self._closed = True
        if self._owns_store:
            self.store.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Session {self.account_id}/{self.container_name} {state}>"


class Lease:
    """A caller's hold on a shared :class:`Session`.

    Release exactly once, either explicitly or by leaving a ``with`` block.
    """

    def __init__(self, manager: SessionManager, key: SessionKey, session: Session) -> None:
        self._manager = manager
        self.key = key
        self.session = session
        self.released = False

    def release(self) -> None:
        self._manager.release(self)

    def __enter__(self) -> Session:
        return self.session

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class _Entry:
    __slots__ = ("ready", "session", "refcount", "timer")

    def __init__(self) -> None:
        self.ready: Future[Session] = Future()
        self.session: Session | None = None
        self.refcount = 0
        self.timer: threading.Timer | None = None


class SessionManager:
    """Thread-safe owner of every live :class:`Session`.

    Args:
        connector: Callable(account_id, container_name) that performs the
            handshake and returns a connected store.
        grace_period: Seconds an unreferenced session stays open so a quick
            re-acquire reuses it. ``0`` closes immediately.
        close_stores: Close the store when its session is torn down. Turn
            off when the connector hands out one shared store.
    """

    def __init__(
        self, connector: Connector, grace_period: float = 2.0, close_stores: bool = True
    ) -> None:
        self._connector = connector
        self._grace_period = grace_period
        self._close_stores = close_stores
        self._entries: dict[SessionKey, _Entry] = {}
        self._lock = threading.Lock()

    def acquire(self, account_id: str, container_name: str) -> Lease:
        """Lease the session for a container, building it if needed.

        Only the first caller performs the handshake; concurrent callers
        wait for it and share the result.

        Raises:
            SessionError: If construction fails. The failure is not cached.
        """
        key = (account_id, container_name)
        with self._lock:
            entry = self._entries.get(key)
            builder = entry is None
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.refcount += 1
            if entry.timer is not None:
                entry.timer.cancel()
                entry.timer = None

        if builder:
            self._build(key, entry)
        return Lease(self, key, entry.ready.result())

    def _build(self, key: SessionKey, entry: _Entry) -> None:
        account_id, container_name = key
        bj_logger.debug("Opening session", container=container_name, operation="connect")
        try:
            store = self._connector(account_id, container_name)
        except Exception as e:
            with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
            bj_logger.error(
                f"Session construction failed: {e}",
                container=container_name,
                operation="connect",
            )
            error = SessionError(
                f"Failed to open session for '{account_id}/{container_name}': {e}"
            )
            error.__cause__ = e
            entry.ready.set_exception(error)
            return
        session = Session(store, account_id, container_name, owns_store=self._close_stores)
        with self._lock:
            entry.session = session
        entry.ready.set_result(session)

    def release(self, lease: Lease) -> None:
        """Return a lease. Releasing the same lease twice raises SessionError."""
        to_close: Session | None = None
        with self._lock:
            if lease.released:
                raise SessionError(f"Lease for '{'/'.join(lease.key)}' already released.")
            lease.released = True
            entry = self._entries.get(lease.key)
            if entry is None or entry.session is not lease.session:
                return
            entry.refcount -= 1
            if entry.refcount > 0:
                return
            if self._grace_period <= 0:
                del self._entries[lease.key]
                to_close = lease.session
            else:
                timer = threading.Timer(self._grace_period, self._expire, (lease.key, entry))
                timer.daemon = True
                entry.timer = timer
                timer.start()
        if to_close is not None:
            self._close(to_close)

    def _expire(self, key: SessionKey, entry: _Entry) -> None:
        with self._lock:
            if self._entries.get(key) is not entry or entry.refcount > 0:
                return
            del self._entries[key]
            entry.timer = None
        self._close(entry.session)

    def _close(self, session: Session) -> None:
        bj_logger.debug("Closing session", container=session.container_name, operation="close")
        session.close()

    def active_sessions(self) -> list[SessionKey]:
        """Keys of sessions currently open or being built."""
        with self._lock:
            return list(self._entries)

    def refcount(self, account_id: str, container_name: str) -> int:
        with self._lock:
            entry = self._entries.get((account_id, container_name))
            return entry.refcount if entry else 0

    def close(self) -> None:
        """Close every session immediately, ignoring grace periods."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            for entry in entries:
                if entry.timer is not None:
                    entry.timer.cancel()
        for entry in entries:
            if entry.session is not None:
                self._close(entry.session)
