"""Background worker running the scheduled sweeps."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..config import settings
from ..providers.base import ObjectKind
from .orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


class SyncWorker:
    """One loop per object kind: sweep once at start, then every interval."""

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        *,
        kinds: list[ObjectKind] | None = None,
        interval_seconds: float | None = None,
        run_on_startup: bool | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.kinds = kinds if kinds is not None else [ObjectKind(k) for k in settings.sync_object_kinds_list]
        self.interval_seconds = interval_seconds if interval_seconds is not None else settings.sync_interval_seconds
        self.run_on_startup = settings.sync_run_on_startup if run_on_startup is None else run_on_startup
        self._tasks: list[asyncio.Task] = []
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        if self._tasks:
            return
        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(self._run_loop(kind), name=f"sync-worker-{kind.value}")
            for kind in self.kinds
        ]

    async def stop(self) -> None:
        if not self._tasks:
            return
        self._stop_event.set()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

    async def _run_loop(self, kind: ObjectKind) -> None:
        if not self.run_on_startup:
            await asyncio.sleep(self.interval_seconds)
        while not self._stop_event.is_set():
            try:
                await self.orchestrator.sweep(kind, stop_event=self._stop_event)
            except asyncio.CancelledError:
                raise
            except Exception:  # pragma: no cover
                logger.exception("Sync sweep for %s failed", kind.value)

            await asyncio.sleep(self.interval_seconds)
