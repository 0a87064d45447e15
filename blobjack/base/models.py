"""
Value types shared by the store adapters and the core.

All of them are frozen dataclasses; a request or result never changes
after construction.
"""

from __future__ import annotations

import hashlib
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Union

from .exceptions import TransferError, TransferKind, ValidationError


# ── Objects ───────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ObjectInfo:
    """Metadata for a single stored object."""

    key: str
    size: int | None = None
    content_type: str | None = None
    etag: str | None = None


@dataclass(frozen=True)
class ObjectData:
    """An open object: metadata plus a readable binary body."""

    info: ObjectInfo
    body: BinaryIO


# ── Listing ───────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Leaf:
    """A single object at the current listing level."""

    key: str
    size: int | None = None
    content_type: str | None = None

    @property
    def sort_key(self) -> str:
        return self.key


@dataclass(frozen=True)
class Group:
    """A virtual directory: every key under ``prefix`` one level deeper."""

    prefix: str

    @property
    def sort_key(self) -> str:
        return self.prefix

    @property
    def key(self) -> str:
        return self.prefix


ListingNode = Union[Leaf, Group]


# ── Containers ────────────────────────────────────────────────────────
class LifecycleOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    DELETED = "deleted"
    ALREADY_ABSENT = "already_absent"

    @property
    def changed(self) -> bool:
        """Whether the call actually transitioned the container."""
        return self in (LifecycleOutcome.CREATED, LifecycleOutcome.DELETED)


# ── Transfers ─────────────────────────────────────────────────────────
class TransferOp(str, Enum):
    PUT = "put"
    GET = "get"
    DELETE = "delete"


@dataclass(frozen=True)
class TransferRequest:
    """One Put, Get or Delete against a container.

    Build instances with :meth:`put`, :meth:`get` or :meth:`delete`.
    ``deadline`` is an absolute :func:`time.monotonic` value; ``nonce``
    makes the idempotency token unique per logical request while keeping
    it stable across retries.
    """

    op: TransferOp
    key: str
    payload: bytes | BinaryIO | None = None
    content_type: str | None = None
    deadline: float | None = None
    nonce: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        if not self.key:
            raise ValidationError(f"{self.op.value} request requires a non-empty key")
        if self.op is TransferOp.PUT and self.payload is None:
            raise ValidationError(f"put request for '{self.key}' requires a payload")

    @classmethod
    def put(
        cls,
        key: str,
        payload: bytes | BinaryIO,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> TransferRequest:
        return cls(TransferOp.PUT, key, payload, content_type, _deadline(timeout))

    @classmethod
    def get(cls, key: str, timeout: float | None = None) -> TransferRequest:
        return cls(TransferOp.GET, key, deadline=_deadline(timeout))

    @classmethod
    def delete(cls, key: str, timeout: float | None = None) -> TransferRequest:
        return cls(TransferOp.DELETE, key, deadline=_deadline(timeout))

    @property
    def idempotency_token(self) -> str:
        raw = f"{self.op.value}\x00{self.key}\x00{self.nonce}"
        return hashlib.sha256(raw.encode()).hexdigest()[:32]

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None without one."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()


def _deadline(timeout: float | None) -> float | None:
    return None if timeout is None else time.monotonic() + timeout


@dataclass(frozen=True)
class Success:
    """A completed transfer. ``payload`` holds the body of a Get."""

    bytes_transferred: int = 0
    metadata: ObjectInfo | None = None
    payload: bytes | None = None
    attempts: int = 1

    ok = True


@dataclass(frozen=True)
class Failure:
    """A transfer that ended without success.

    ``retryable`` keeps the classification of the last error, so an
    exhausted retryable failure still reports ``retryable=True``.
    """

    kind: TransferKind
    retryable: bool
    attempts: int = 0
    message: str = ""

    ok = False

    def to_error(self) -> TransferError:
        return TransferError(
            self.kind, self.message, retryable=self.retryable, attempts=self.attempts
        )


TransferResult = Union[Success, Failure]


def describe(result: TransferResult) -> dict[str, Any]:
    """Flatten a result into a plain dict for logs and JSON output."""
    if isinstance(result, Success):
        return {
            "ok": True,
            "bytes": result.bytes_transferred,
            "attempts": result.attempts,
            "key": result.metadata.key if result.metadata else None,
        }
    return {
        "ok": False,
        "kind": result.kind.value,
        "retryable": result.retryable,
        "attempts": result.attempts,
        "message": result.message,
    }
