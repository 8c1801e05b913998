from __future__ import annotations

import asyncio
import logging
from typing import Protocol, Sequence

from app.core.metrics import metrics

logger = logging.getLogger(__name__)


class Sweepable(Protocol):
    def sweep(self) -> int: ...

    def __len__(self) -> int: ...


class PeriodicSweeper:
    """Evicts expired entries from the shared maps on a fixed interval."""

    def __init__(self, interval_sec: float, targets: Sequence[tuple[str, Sweepable]]) -> None:
        self.interval_sec = interval_sec
        self._targets = list(targets)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> dict[str, int]:
        removed: dict[str, int] = {}
        for name, target in self._targets:
            try:
                removed[name] = target.sweep()
            except Exception:
                logger.exception("sweep failed target=%s", name)
                removed[name] = 0
                continue
            metrics.gauge("chat_store_entries", len(target), {"store": name})
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            removed = self.sweep_once()
            if any(removed.values()):
                logger.info("sweep removed=%s", removed)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
