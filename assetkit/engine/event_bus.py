"""
Change notification for libraries and the registry.

A ChangeEvent is a zero-argument pub/sub channel:

- add(fn): register a callback (ignored if already registered)
- remove(fn): remove callback
- dispatch(): call every listener in registration order
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ChangeEvent:
    """Ordered listener list, de-duplicated by identity."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._dispatch_count = 0

    def add(self, fn: Listener) -> Callable[[], None]:
        """Subscribe. Returns an unsubscribe function."""
        if not self.has(fn):
            self._listeners.append(fn)

        def unsubscribe() -> None:
            self.remove(fn)
        return unsubscribe

    def remove(self, fn: Listener) -> None:
        for i, existing in enumerate(self._listeners):
            if existing is fn or existing == fn:
                del self._listeners[i]
                return

    def has(self, fn: Listener) -> bool:
        # bound methods compare equal but are new objects on every access
        return any(existing is fn or existing == fn for existing in self._listeners)

    def dispatch(self) -> None:
        self._dispatch_count += 1
        # listeners may unsubscribe themselves (or unload a library) mid-dispatch
        for fn in list(self._listeners):
            try:
                fn()
            except Exception as e:
                logger.error(f"Error in change listener {fn!r}: {e}", exc_info=True)

    def __len__(self) -> int:
        return len(self._listeners)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "listeners": len(self._listeners),
            "dispatches": self._dispatch_count,
        }

    def clear(self) -> None:
        self._listeners.clear()
