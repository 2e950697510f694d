"""
Single-fulfillment Future/Promise pair.

A Promise is the write side and settles exactly once: with a value, with an
error, or by delegating to another Future. A Future is the read side.

Usage:
    promise = Promise()
    promise.future.on_complete(print).on_error(log_error)
    ...
    promise.complete(value)

    # already settled, nothing scheduled
    Future.with_value(42).on_complete(print)   # prints immediately

Listeners run synchronously, in subscription order, on whatever thread
settles the promise. Subscribing to a settled future calls the listener
right away. Nothing here is scheduled or threaded; deferral is the job of
whoever holds the Promise (see async_loader.AsyncLoader).
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class FutureState(Enum):
    PENDING = "pending"
    COMPLETE = "complete"
    ERROR = "error"


class Future(Generic[T]):
    """Read side of an asynchronous result."""

    def __init__(self) -> None:
        self._state = FutureState.PENDING
        self._value: Optional[T] = None
        self._error: Any = None
        self._complete_listeners: List[Callable[[T], None]] = []
        self._error_listeners: List[Callable[[Any], None]] = []
        self._progress_listeners: List[Callable[[int, int], None]] = []

    # ------------------------------------------------------------------
    # Constructors for already-settled results
    # ------------------------------------------------------------------

    @classmethod
    def with_value(cls, value: T) -> "Future[T]":
        future: Future[T] = cls()
        future._settle_value(value)
        return future

    @classmethod
    def with_error(cls, error: Any) -> "Future[Any]":
        future: Future[Any] = cls()
        future._settle_error(error)
        return future

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> FutureState:
        return self._state

    @property
    def is_complete(self) -> bool:
        return self._state is FutureState.COMPLETE

    @property
    def is_error(self) -> bool:
        return self._state is FutureState.ERROR

    @property
    def is_pending(self) -> bool:
        return self._state is FutureState.PENDING

    @property
    def value(self) -> Optional[T]:
        return self._value

    @property
    def error(self) -> Any:
        return self._error

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def on_complete(self, fn: Callable[[T], None]) -> "Future[T]":
        if self._state is FutureState.COMPLETE:
            _invoke(fn, self._value)
        elif self._state is FutureState.PENDING:
            self._complete_listeners.append(fn)
        return self

    def on_error(self, fn: Callable[[Any], None]) -> "Future[T]":
        if self._state is FutureState.ERROR:
            _invoke(fn, self._error)
        elif self._state is FutureState.PENDING:
            self._error_listeners.append(fn)
        return self

    def on_progress(self, fn: Callable[[int, int], None]) -> "Future[T]":
        if self._state is FutureState.PENDING:
            self._progress_listeners.append(fn)
        return self

    def then(self, fn: Callable[[T], "Future[U]"]) -> "Future[U]":
        """Chain a continuation that itself returns a Future."""
        promise: Promise[U] = Promise()

        def _next(value: T) -> None:
            try:
                nxt = fn(value)
            except Exception as e:
                promise.error(e)
                return
            promise.complete_with(nxt)

        self.on_complete(_next)
        self.on_error(promise.error)
        return promise.future

    # ------------------------------------------------------------------
    # Settlement (Promise only)
    # ------------------------------------------------------------------

    def _settle_value(self, value: T) -> bool:
        if self._state is not FutureState.PENDING:
            return False
        self._state = FutureState.COMPLETE
        self._value = value
        listeners = self._complete_listeners
        self._reset_listeners()
        for fn in listeners:
            _invoke(fn, value)
        return True

    def _settle_error(self, error: Any) -> bool:
        if self._state is not FutureState.PENDING:
            return False
        self._state = FutureState.ERROR
        self._error = error
        listeners = self._error_listeners
        self._reset_listeners()
        for fn in listeners:
            _invoke(fn, error)
        return True

    def _report_progress(self, loaded: int, total: int) -> None:
        if self._state is not FutureState.PENDING:
            return
        for fn in list(self._progress_listeners):
            _invoke(fn, loaded, total)

    def _reset_listeners(self) -> None:
        self._complete_listeners = []
        self._error_listeners = []
        self._progress_listeners = []

    def __repr__(self) -> str:
        if self._state is FutureState.COMPLETE:
            return f"<Future complete value={self._value!r}>"
        if self._state is FutureState.ERROR:
            return f"<Future error={self._error!r}>"
        return "<Future pending>"


class Promise(Generic[T]):
    """Write side of a Future. The first terminal call wins; the rest are no-ops."""

    def __init__(self) -> None:
        self.future: Future[T] = Future()
        self._resolved = False

    @property
    def is_complete(self) -> bool:
        return self.future.is_complete

    @property
    def is_error(self) -> bool:
        return self.future.is_error

    @property
    def is_resolved(self) -> bool:
        """True once any terminal action was taken, including delegation."""
        return self._resolved

    def complete(self, value: T) -> "Promise[T]":
        if not self._resolved:
            self._resolved = True
            self.future._settle_value(value)
        return self

    def error(self, error: Any) -> "Promise[T]":
        if not self._resolved:
            self._resolved = True
            self.future._settle_error(error)
        return self

    def complete_with(self, other: Future[T]) -> "Promise[T]":
        """Settle with whatever ``other`` eventually settles with."""
        if other is self.future:
            raise ValueError("a promise cannot delegate to its own future")
        if not self._resolved:
            self._resolved = True
            other.on_progress(self.future._report_progress)
            other.on_complete(self.future._settle_value)
            other.on_error(self.future._settle_error)
        return self

    def progress(self, loaded: int, total: int) -> "Promise[T]":
        if not self._resolved:
            self.future._report_progress(loaded, total)
        return self


def _invoke(fn: Callable[..., Any], *args: Any) -> None:
    try:
        fn(*args)
    except Exception as e:
        # a broken listener must not starve the ones after it
        logger.error(f"Error in future listener {fn!r}: {e}", exc_info=True)
