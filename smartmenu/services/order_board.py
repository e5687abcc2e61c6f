"""
Order Board Sync

The kitchen board polls for new and updated orders. Instead of re-sending
the whole list every time, each snapshot gets a version hash over the
(id, status) pairs; clients and watchers only act when it changes.
"""

import asyncio
import hashlib
import logging
from typing import Awaitable, Callable, Iterable, Optional

from smartmenu.models import Order

logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[], Awaitable[list[Order]]]
ChangeListener = Callable[[str, list[Order]], Awaitable[None]]


def board_version(orders: Iterable[Order]) -> str:
    """Stable short hash of the board state; order of the list matters."""
    digest = hashlib.sha256()
    for order in orders:
        status = getattr(order.status, "value", order.status)
        digest.update(f"{order.id}:{status};".encode("utf-8"))
    return digest.hexdigest()[:16]


class OrderBoardWatcher:
    """
    Periodic snapshot comparison with change notification.

    Usage:
        watcher = OrderBoardWatcher(fetch_orders)
        watcher.subscribe(on_board_changed)
        await watcher.run(interval=2.0, stop_event=stop)
    """

    def __init__(self, fetch: SnapshotFetcher):
        self._fetch = fetch
        self._listeners: list[ChangeListener] = []
        self.version: Optional[str] = None
        self.orders: list[Order] = []

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    async def poll_once(self) -> bool:
        """Re-read the board; notify listeners and return True if it changed."""
        orders = await self._fetch()
        version = board_version(orders)
        if version == self.version:
            return False

        logger.debug(f"Order board changed: {self.version} -> {version} ({len(orders)} orders)")
        self.version = version
        self.orders = orders
        for listener in self._listeners:
            await listener(version, orders)
        return True

    async def run(self, interval: float, stop_event: asyncio.Event) -> None:
        """Poll every ``interval`` seconds until ``stop_event`` is set."""
        while not stop_event.is_set():
            await self.poll_once()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
