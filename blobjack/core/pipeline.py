"""
Bounded-concurrency transfer pipeline.

Runs Put/Get/Delete requests against a :class:`Session` on a thread pool,
retrying retryable failures with exponential backoff. A batch always
yields one result per request, index-aligned with the input, no matter
how many items fail or in which order they finish.

Each attempt runs to completion on the worker that owns the request, so
at most ``max_concurrency`` store calls are in flight per batch. The
per-attempt timeout is handed to the transport, which enforces it.
"""

from __future__ import annotations

import io
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Any, BinaryIO, Callable, Sequence

from blobjack.base.cancellation import CancellationToken
from blobjack.base.exceptions import (
    AccessDeniedError,
    ContainerNotFoundError,
    ObjectNotFoundError,
    StoreTimeoutError,
    ThrottledError,
    TransferError,
    TransferKind,
)
from blobjack.base.logger import bj_logger
from blobjack.base.models import (
    Failure,
    ObjectInfo,
    Success,
    TransferOp,
    TransferRequest,
    TransferResult,
    describe,
)
from blobjack.base.retry import RetryPolicy

from .session import Session

DEFAULT_MAX_CONCURRENCY = 8

_ERROR_KINDS: tuple[tuple[tuple[type[BaseException], ...], TransferKind], ...] = (
    ((ObjectNotFoundError, ContainerNotFoundError), TransferKind.NOT_FOUND),
    ((AccessDeniedError, PermissionError), TransferKind.ACCESS_DENIED),
    ((ThrottledError,), TransferKind.THROTTLED),
    ((StoreTimeoutError, TimeoutError), TransferKind.TIMEOUT),
)


class _NotRewindable(Exception):
    """A Put payload stream cannot be replayed for a retry."""


def classify(exc: BaseException) -> tuple[TransferKind, bool]:
    """Map an exception from a store call to ``(kind, retryable)``."""
    if isinstance(exc, _NotRewindable):
        return TransferKind.UNKNOWN, False
    for types, kind in _ERROR_KINDS:
        if isinstance(exc, types):
            return kind, kind.default_retryable
    return TransferKind.UNKNOWN, TransferKind.UNKNOWN.default_retryable


class TransferPipeline:
    """Executes transfer requests with bounded parallelism and retries.

    Args:
        max_concurrency: Default number of requests in flight per batch.
        retry_policy: Backoff settings; defaults to :class:`RetryPolicy()`.
        rng: Random source for backoff jitter.
    """

    def __init__(
        self,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        retry_policy: RetryPolicy | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self.retry_policy = retry_policy or RetryPolicy()
        self._rng = rng or random.Random()

    # --- Batches ---

    def submit(
        self,
        session: Session,
        requests: Sequence[TransferRequest],
        token: CancellationToken | None = None,
        max_concurrency: int | None = None,
    ) -> list[TransferResult]:
        """Run a batch and return one result per request, in input order.

        A failing request never aborts the batch. After *token* is
        cancelled no new attempt starts; unfinished requests are reported
        as ``Failure(Cancelled)``.
        """
        if not requests:
            return []
        token = token or CancellationToken()
        workers = min(max_concurrency or self.max_concurrency, len(requests))
        results: list[TransferResult | None] = [None] * len(requests)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="blobjack") as pool:
            futures = {
                pool.submit(self.execute, session, request, token): index
                for index, request in enumerate(requests)
            }
            for future, index in futures.items():
                results[index] = future.result()

        failed = sum(1 for result in results if result is not None and not result.ok)
        bj_logger.debug(
            f"Batch of {len(requests)} finished with {failed} failure(s)",
            container=session.container_name,
            operation="submit",
        )
        return results  # type: ignore[return-value]

    # --- Single requests ---

    def execute(
        self,
        session: Session,
        request: TransferRequest,
        token: CancellationToken | None = None,
    ) -> TransferResult:
        """Run one request with retries in the calling thread."""
        token = token or CancellationToken()
        payload = _Payload(request.payload) if request.op is TransferOp.PUT else None
        result = self._with_retry(
            lambda timeout: self._attempt(session, request, payload, timeout),
            token,
            request,
            session.container_name,
        )
        if isinstance(result, Failure):
            return result
        bj_logger.debug(
            f"{request.op.value} succeeded: {describe(result)}",
            container=session.container_name,
            operation=request.op.value,
            key=request.key,
        )
        return result

    def enumerate_keys(
        self,
        session: Session,
        prefix: str = "",
        token: CancellationToken | None = None,
    ) -> list[ObjectInfo]:
        """List every key under *prefix*, retrying like any other request.

        Raises:
            TransferError: When the listing fails for good.
        """
        token = token or CancellationToken()
        outcome = self._with_retry(
            lambda timeout: session.list(prefix, timeout),
            token,
            None,
            session.container_name,
            operation="list",
            key=prefix,
        )
        if isinstance(outcome, Failure):
            raise outcome.to_error()
        return outcome

    # --- Internals ---

    def _with_retry(
        self,
        call: Callable[[float | None], Any],
        token: CancellationToken,
        request: TransferRequest | None,
        container: str,
        operation: str | None = None,
        key: str | None = None,
    ) -> Any:
        policy = self.retry_policy
        operation = operation or (request.op.value if request else None)
        key = key if request is None else request.key
        attempt = 0
        while True:
            if token.cancelled:
                return Failure(TransferKind.CANCELLED, False, attempt, "Operation cancelled")
            timeout = self._attempt_timeout(token, request)
            if timeout is not None and timeout <= 0:
                return Failure(
                    TransferKind.TIMEOUT, False, attempt, f"Deadline passed before attempt {attempt + 1}"
                )

            attempt += 1
            try:
                outcome = call(timeout)
            except Exception as e:
                kind, retryable = classify(e)
                message = str(e) or type(e).__name__
            else:
                if isinstance(outcome, Success):
                    return Success(
                        outcome.bytes_transferred, outcome.metadata, outcome.payload, attempt
                    )
                return outcome

            if token.cancelled:
                return Failure(TransferKind.CANCELLED, False, attempt, f"Operation cancelled after: {message}")
            if not retryable:
                bj_logger.debug(
                    f"Non-retryable {kind.value}: {message}",
                    container=container, operation=operation, key=key, attempt=attempt,
                )
                return Failure(kind, False, attempt, message)
            if not policy.should_retry(attempt):
                bj_logger.error(
                    f"All {attempt} attempts failed ({kind.value}): {message}",
                    container=container, operation=operation, key=key, attempt=attempt,
                )
                return Failure(kind, True, attempt, message)

            delay = policy.delay_for(attempt, self._rng)
            bj_logger.warning(
                f"Attempt {attempt}/{policy.max_attempts} failed ({kind.value}: {message}), "
                f"retrying in {delay:.2f}s",
                container=container, operation=operation, key=key, attempt=attempt,
            )
            if token.wait(delay):
                return Failure(TransferKind.CANCELLED, False, attempt, "Operation cancelled during backoff")

    def _attempt_timeout(
        self, token: CancellationToken, request: TransferRequest | None
    ) -> float | None:
        candidates = [self.retry_policy.attempt_timeout]
        if request is not None:
            candidates.append(request.remaining())
        candidates.append(token.remaining())
        bounded = [c for c in candidates if c is not None]
        return min(bounded) if bounded else None

    def _attempt(
        self,
        session: Session,
        request: TransferRequest,
        payload: _Payload | None,
        timeout: float | None,
    ) -> Success:
        if payload is not None:
            info = session.put(
                request.key, payload.open(), request.content_type, request.idempotency_token, timeout
            )
            size = payload.size if payload.size >= 0 else (info.size or 0)
            return Success(size, info)
        if request.op is TransferOp.GET:
            obj = session.get(request.key, timeout)
            try:
                body = obj.body.read()
            finally:
                close = getattr(obj.body, "close", None)
                if close is not None:
                    close()
            return Success(len(body), obj.info, body)
        session.delete(request.key, timeout)
        return Success(0, ObjectInfo(key=request.key))


class _Payload:
    """Replays a Put payload for every attempt of one request.

    Bytes get a fresh buffer per attempt; seekable streams are rewound to
    where they stood before the first attempt. ``size`` is -1 when it
    cannot be known up front.
    """

    def __init__(self, payload: bytes | BinaryIO | None) -> None:
        self._data: bytes | None = None
        self._stream: BinaryIO | None = None
        self._start: int | None = None
        self._opened = False
        if isinstance(payload, (bytes, bytearray, memoryview)):
            self._data = bytes(payload)
            self.size = len(self._data)
            return
        self._stream = payload
        self.size = -1
        if payload is not None and payload.seekable():
            self._start = payload.tell()
            self.size = payload.seek(0, io.SEEK_END) - self._start
            payload.seek(self._start)

    def open(self) -> BinaryIO:
        if self._data is not None:
            return io.BytesIO(self._data)
        assert self._stream is not None
        if self._opened:
            if self._start is None:
                raise _NotRewindable("Payload stream is not seekable and cannot be retried")
            self._stream.seek(self._start)
        self._opened = True
        return self._stream
