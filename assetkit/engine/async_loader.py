"""
Async Loader - deferred completion for library fetches.

Features:
- Background IO/decoding on a thread pool (max_workers > 0)
- Inline cooperative mode (max_workers == 0) for deterministic runs and tests
- Completion is always delivered from dispatch(), on the caller's thread
- Load progress tracking
"""
from __future__ import annotations

import threading
import time
import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import Future as PoolFuture
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Callable, Deque, Optional, Set, Tuple

from .futures import Future, Promise

logger = logging.getLogger(__name__)


@dataclass
class LoadProgress:
    """Load progress."""
    total: int = 0
    completed: int = 0
    failed: int = 0
    in_progress: int = 0

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0
        return (self.completed / self.total) * 100.0

    @property
    def is_complete(self) -> bool:
        return self.completed + self.failed >= self.total


class AsyncLoader:
    """
    Runs blocking fetch jobs and hands their results back through Futures.

    Usage:
        loader = AsyncLoader(max_workers=2)
        loader.submit(read_file, "bg/night.png").on_complete(show)

        # once per frame, on the main thread
        loader.dispatch()

        loader.shutdown()

    Promises are only ever settled inside dispatch(), so every listener runs
    on the thread that pumps the loader even when jobs ran on the pool.
    """

    def __init__(self, max_workers: int = 0) -> None:
        self._max_workers = max(0, int(max_workers))
        self._executor: Optional[ThreadPoolExecutor] = None
        if self._max_workers > 0:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="assetkit-loader"
            )
        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)

        # inline jobs waiting for dispatch()
        self._inline: Deque[Tuple[Promise, Callable[..., Any], Tuple[Any, ...], str]] = deque()
        # pool results waiting for dispatch()
        self._results: "Queue[Tuple[Promise, PoolFuture, str]]" = Queue()
        self._running: Set[PoolFuture] = set()

        self._total_requested = 0
        self._completed = 0
        self._failed = 0
        self._pending = 0
        self._shutdown = False

    @property
    def threaded(self) -> bool:
        return self._executor is not None

    def submit(self, fn: Callable[..., Any], *args: Any, label: str = "") -> Future[Any]:
        """Queue ``fn(*args)``; the returned Future settles during dispatch()."""
        promise: Promise[Any] = Promise()
        if self._shutdown:
            promise.error(RuntimeError("loader has been shut down"))
            return promise.future

        label = label or getattr(fn, "__name__", "job")
        with self._lock:
            self._total_requested += 1
            self._pending += 1
            if self._executor is None:
                self._inline.append((promise, fn, args, label))
                return promise.future
            pool_future = self._executor.submit(fn, *args)
            self._running.add(pool_future)

        def _on_done(f: PoolFuture) -> None:
            # queue first, so wait_all() never returns ahead of the result
            self._results.put((promise, f, label))
            with self._idle:
                self._running.discard(f)
                self._idle.notify_all()

        pool_future.add_done_callback(_on_done)
        return promise.future

    def dispatch(self, max_items: Optional[int] = None) -> int:
        """Settle finished jobs on the calling thread. Returns how many settled."""
        settled = 0
        while max_items is None or settled < max_items:
            item = self._next_inline()
            if item is not None:
                promise, fn, args, label = item
                try:
                    value = fn(*args)
                except Exception as e:
                    self._finish(promise, label, error=e)
                else:
                    self._finish(promise, label, value=value)
                settled += 1
                continue
            try:
                promise, pool_future, label = self._results.get_nowait()
            except Empty:
                break
            exc = pool_future.exception()
            if exc is not None:
                self._finish(promise, label, error=exc)
            else:
                self._finish(promise, label, value=pool_future.result())
            settled += 1
        return settled

    def _next_inline(self):
        with self._lock:
            if self._inline:
                return self._inline.popleft()
        return None

    def _finish(self, promise: Promise, label: str, *, value: Any = None, error: Optional[BaseException] = None) -> None:
        with self._lock:
            self._pending -= 1
            if error is None:
                self._completed += 1
            else:
                self._failed += 1
        if error is None:
            promise.complete(value)
        else:
            logger.warning(f"Failed to load {label}: {error}")
            promise.error(error)

    def wait_all(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every pool job has finished running.

        Results still need a dispatch() to be delivered. Inline jobs run only
        inside dispatch(), so in inline mode this returns immediately.

        Returns:
            True if nothing is still running, False on timeout
        """
        with self._idle:
            return self._idle.wait_for(lambda: not self._running, timeout)

    def run_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Pump dispatch() until nothing is pending. Handy for tools and tests."""
        deadline = None if timeout is None else time.time() + timeout
        while True:
            self.dispatch()
            if self.pending == 0:
                return True
            remaining = None if deadline is None else deadline - time.time()
            if remaining is not None and remaining <= 0:
                return False
            self.wait_all(0.05 if remaining is None else min(0.05, remaining))

    @property
    def pending(self) -> int:
        with self._lock:
            return self._pending

    def get_progress(self) -> LoadProgress:
        with self._lock:
            return LoadProgress(
                total=self._total_requested,
                completed=self._completed,
                failed=self._failed,
                in_progress=self._pending,
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release the pool."""
        self._shutdown = True
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
