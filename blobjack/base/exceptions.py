"""
Blobjack exception hierarchy.

Every error raised by the library inherits from :class:`BlobjackError`.
Storage adapters raise the :class:`StorageError` family; the core
components raise the typed errors below, which the CLI maps to a
message and a non-zero exit code.
"""

from __future__ import annotations

from enum import Enum


# ── Base ──────────────────────────────────────────────────────────────
class BlobjackError(Exception):
    """Root exception for all Blobjack errors."""


class ValidationError(BlobjackError):
    """Bad or missing input. Never retried."""


class SessionError(BlobjackError):
    """Session construction failed, or a session/lease was misused."""


class LifecycleError(BlobjackError):
    """A container create/delete failed for a reason other than idempotency."""


class DepthExceeded(BlobjackError):
    """Hierarchical listing descended past the configured depth cap."""

    def __init__(self, prefix: str, max_depth: int) -> None:
        super().__init__(
            f"Listing depth exceeded {max_depth} levels at prefix '{prefix}'."
        )
        self.prefix = prefix
        self.max_depth = max_depth


# ── Transfers ─────────────────────────────────────────────────────────
class TransferKind(str, Enum):
    """Failure classification for a transfer attempt."""

    NOT_FOUND = "NotFound"
    ACCESS_DENIED = "AccessDenied"
    THROTTLED = "Throttled"
    TIMEOUT = "Timeout"
    CANCELLED = "Cancelled"
    UNKNOWN = "Unknown"

    @property
    def default_retryable(self) -> bool:
        return self in (TransferKind.THROTTLED, TransferKind.TIMEOUT, TransferKind.UNKNOWN)


class TransferError(BlobjackError):
    """A transfer ended in a final failure."""

    def __init__(
        self,
        kind: TransferKind,
        message: str,
        *,
        retryable: bool = False,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.retryable = retryable
        self.attempts = attempts


# ── Storage (raised by ObjectStore adapters) ──────────────────────────
class StorageError(BlobjackError):
    """Base exception for object store operations."""


class ContainerNotFoundError(StorageError):
    """Container not found."""


class ContainerAlreadyExistsError(StorageError):
    """Container already exists."""


class ObjectNotFoundError(StorageError):
    """Object not found."""


class AccessDeniedError(StorageError):
    """Credentials lack permission for the operation."""


class ThrottledError(StorageError):
    """The service asked the client to slow down."""


class StoreTimeoutError(StorageError):
    """The service or the per-attempt timer gave up waiting."""
