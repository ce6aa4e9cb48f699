"""Turns tree mutations and hover signals into scans and cleanups."""

import asyncio
import logging
from typing import Callable, Optional

from bs4 import Tag

from .dom import HOVER_TARGET, closest
from .host import HostDocument, Subscription
from .models import MutationBatch

logger = logging.getLogger(__name__)

RESCAN_DELAY = 0.1  # Lets the host finish its own rendering first
HOVER_RESCAN_DELAY = 0.15


class ChangeWatcher:
    """Schedules delayed rescans on additions and runs cleanup on removals.

    Rescans are idempotent, so overlapping timers are harmless. Cleanup
    runs synchronously inside the mutation callback.
    """

    def __init__(
        self,
        document: HostDocument,
        rescan: Callable[[], object],
        cleanup: Callable[[], object],
        rescan_delay: float = RESCAN_DELAY,
        hover_delay: float = HOVER_RESCAN_DELAY,
    ) -> None:
        self.document = document
        self.rescan = rescan
        self.cleanup = cleanup
        self.rescan_delay = rescan_delay
        self.hover_delay = hover_delay
        self._subscriptions: list[Subscription] = []
        self._timers: set[asyncio.TimerHandle] = set()

    @property
    def running(self) -> bool:
        return bool(self._subscriptions)

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not fired yet."""
        return len(self._timers)

    def start(self) -> None:
        if self.running:
            return
        self._subscriptions = [
            self.document.observe(self.handle_mutations),
            self.document.on_pointer_over(self.handle_pointer_over),
        ]

    def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.disconnect()
        self._subscriptions = []
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

    def handle_mutations(self, batch: MutationBatch) -> None:
        if batch.added:
            self.schedule(self.rescan_delay)
        if batch.removed:
            self.cleanup()

    def handle_pointer_over(self, target: Tag) -> None:
        if closest(target, HOVER_TARGET) is not None:
            self.schedule(self.hover_delay)

    def schedule(self, delay: float, callback: Optional[Callable[[], object]] = None) -> asyncio.TimerHandle:
        """Run ``callback`` (default: the rescan) after ``delay`` seconds."""
        callback = callback or self.rescan
        loop = asyncio.get_running_loop()
        timer: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._timers.discard(timer)
            callback()

        timer = loop.call_later(delay, fire)
        self._timers.add(timer)
        return timer
