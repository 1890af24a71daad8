"""Cancelable debounced callbacks driven by an asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

__all__ = ["DeferredAction"]

LOGGER = logging.getLogger(__name__)


class DeferredAction:
    """Run ``callback`` once ``delay`` seconds after the most recent :meth:`schedule`.

    Rescheduling cancels the pending timer and starts the delay from zero, so
    cancelled runs never accumulate. Without an event loop (headless use) the
    action stays pending until :meth:`flush` runs it.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        delay: float,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        name: str = "deferred",
    ) -> None:
        self._callback = callback
        self._delay = max(0.0, float(delay))
        self._loop = loop
        self._name = name
        self._handle: asyncio.TimerHandle | None = None
        self._pending = False
        self._closed = False

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._pending

    def schedule(self) -> None:
        if self._closed:
            return
        self._cancel_handle()
        self._pending = True
        loop = self._resolve_loop()
        if loop is None:
            return
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending run; return ``True`` when something was pending."""

        was_pending = self._pending
        self._cancel_handle()
        self._pending = False
        return was_pending

    def flush(self) -> bool:
        """Run a pending action immediately; return ``True`` when it ran."""

        if not self._pending:
            return False
        self._cancel_handle()
        self._fire()
        return True

    def close(self) -> None:
        """Cancel any pending run and refuse future scheduling."""

        if self.cancel():
            LOGGER.debug("Cancelled pending %s action on close", self._name)
        self._closed = True

    def _fire(self) -> None:
        self._handle = None
        self._pending = False
        self._callback()

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _resolve_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None
