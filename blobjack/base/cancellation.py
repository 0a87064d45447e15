"""
Cooperative cancellation tokens.

A token is cancelled explicitly with :meth:`CancellationToken.cancel`,
implicitly when its deadline passes, or when any ancestor is cancelled.
Workers poll :attr:`CancellationToken.cancelled` before starting new work
and use :meth:`CancellationToken.wait` in place of :func:`time.sleep`.
"""

from __future__ import annotations

import threading
import time


class CancellationToken:
    """Thread-safe cancellation signal with an optional deadline."""

    def __init__(
        self, timeout: float | None = None, parent: CancellationToken | None = None
    ) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: list[CancellationToken] = []
        self._parent = parent
        self.deadline = None if timeout is None else time.monotonic() + timeout
        if parent is not None:
            parent._adopt(self)

    def child(self, timeout: float | None = None) -> CancellationToken:
        """Return a token cancelled together with this one."""
        return CancellationToken(timeout, parent=self)

    def _adopt(self, child: CancellationToken) -> None:
        with self._lock:
            self._children.append(child)
            cancelled = self._event.is_set()
        if cancelled:
            child.cancel()

    def detach(self) -> None:
        """Stop tracking this token in its parent once the work is done."""
        if self._parent is not None:
            with self._parent._lock:
                if self in self._parent._children:
                    self._parent._children.remove(self)

    def cancel(self) -> None:
        with self._lock:
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel()

    def remaining(self) -> float | None:
        """Seconds left before the nearest deadline in the chain."""
        remaining = None if self.deadline is None else self.deadline - time.monotonic()
        if self._parent is not None:
            inherited = self._parent.remaining()
            if inherited is not None and (remaining is None or inherited < remaining):
                remaining = inherited
        return remaining

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def wait(self, seconds: float) -> bool:
        """Sleep up to *seconds*; return True if cancelled in the meantime."""
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(max(remaining, 0))
            return True
        return self._event.wait(seconds) or self.cancelled
