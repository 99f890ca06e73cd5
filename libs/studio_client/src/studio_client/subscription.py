"""Explicit subscription handles returned by every `subscribe`/`on_change` call."""

from __future__ import annotations

from collections.abc import Callable


class Subscription:
    """Handle that stops one delivery registration.

    `unsubscribe()` is idempotent; only the first call runs the dispose
    callback.
    """

    def __init__(self, dispose: Callable[[], None]) -> None:
        self._dispose = dispose
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._dispose()
