"""
OutputBus — thread-safe, in-process fan-out of live CLI output.

Every line produced by an install or init run is published here,
tagged with its operation and stream.  Observers subscribe with a
handler and an optional filter; each subscription returns a token
that must be released when the observer goes away (use it as a
context manager to release on every exit path).

Delivery model
──────────────
- Handlers receive lines published while they are subscribed.  There
  is no replay: history lives in the session's per-operation logs.
- Lines of one operation arrive in publish order.  Nothing is
  guaranteed across different operations or sessions.
- A handler that raises is logged and skipped; the publisher and the
  other handlers never see the error.

Thread safety model
───────────────────
``_lock`` protects ``_seq`` and ``_subscriptions``.  Handlers are
called outside the lock so a handler may subscribe, release, or
publish without deadlocking.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from types import TracebackType

from specops.core.models.openspec import OperationKind, OutputLine, OutputStream

logger = logging.getLogger(__name__)

OutputHandler = Callable[[OutputLine], None]


class Subscription:
    """Token returned by :meth:`OutputBus.subscribe`.

    Releasing is idempotent.
    """

    def __init__(
        self,
        bus: OutputBus,
        handler: OutputHandler,
        *,
        operation: OperationKind | None = None,
        stream: OutputStream | None = None,
        target: str | None = None,
    ) -> None:
        self._bus = bus
        self.handler = handler
        self.operation = operation
        self.stream = stream
        self.target = target
        self.active = True

    def matches(self, line: OutputLine) -> bool:
        """Whether *line* passes this subscription's filter."""
        if self.operation is not None and line.operation != self.operation:
            return False
        if self.stream is not None and line.stream != self.stream:
            return False
        if self.target is not None and line.target != self.target:
            return False
        return True

    def release(self) -> None:
        """Stop receiving lines."""
        if self.active:
            self._bus._remove(self)
            self.active = False

    def __enter__(self) -> Subscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class OutputBus:
    """Fan-out of :class:`OutputLine` to every matching subscriber."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq: int = 0
        self._subscriptions: list[Subscription] = []

    # ── Properties ──────────────────────────────────────────────

    @property
    def seq(self) -> int:
        """Number of lines published so far."""
        with self._lock:
            return self._seq

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # ── Subscribing ─────────────────────────────────────────────

    def subscribe(
        self,
        handler: OutputHandler,
        *,
        operation: OperationKind | None = None,
        stream: OutputStream | None = None,
        target: str | None = None,
    ) -> Subscription:
        """Register *handler* for lines matching the given filter.

        ``None`` for a filter field means "any".
        """
        subscription = Subscription(
            self, handler, operation=operation, stream=stream, target=target,
        )
        with self._lock:
            self._subscriptions.append(subscription)
            count = len(self._subscriptions)
        logger.debug(
            "Output subscriber added (operation=%s, stream=%s, subscribers=%d)",
            operation or "*", stream or "*", count,
        )
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
            count = len(self._subscriptions)
        logger.debug("Output subscriber released (subscribers=%d)", count)

    # ── Publishing ──────────────────────────────────────────────

    def publish(self, line: OutputLine) -> int:
        """Deliver *line* to every current matching subscriber.

        Returns:
            Number of handlers that received the line.
        """
        with self._lock:
            self._seq += 1
            targets = [s for s in self._subscriptions if s.matches(line)]

        delivered = 0
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.handler(line)
                delivered += 1
            except Exception:
                logger.exception(
                    "Output handler failed for %s/%s line", line.operation, line.stream,
                )
        return delivered


# ── Module-level singleton ──────────────────────────────────────

output_bus = OutputBus()
"""The process-wide output bus.

Import and use::

    from specops.core.services.openspec.output_bus import output_bus
    with output_bus.subscribe(print_line, operation=OperationKind.INSTALL):
        ...
"""
