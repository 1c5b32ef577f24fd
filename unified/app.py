"""FastAPI application hosting the unified sync service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .database import async_session_factory, create_tables
from .providers.registry import build_registry
from .services.reconciler import Reconciler
from .services.webhook_svc import WebhookNotifier
from .sync.orchestrator import SyncOrchestrator
from .sync.worker import SyncWorker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Auto-create tables for SQLite (local dev); other backends are provisioned separately
    if "sqlite" in settings.database_url:
        await create_tables()

    registry = build_registry(settings)
    notifier = WebhookNotifier(settings)
    orchestrator = SyncOrchestrator(
        registry,
        async_session_factory,
        reconciler=Reconciler(),
        notifier=notifier,
        max_concurrency=settings.sync_max_concurrency,
    )
    worker = SyncWorker(orchestrator)

    app.state.registry = registry
    app.state.notifier = notifier
    app.state.orchestrator = orchestrator
    app.state.sync_worker = worker

    if settings.sync_enabled:
        worker.start()
        logger.info("Sync worker started for %s", ", ".join(k.value for k in worker.kinds))
    try:
        yield
    finally:
        await worker.stop()
        await notifier.drain()


app = FastAPI(title=settings.app_title, lifespan=lifespan)

from .routers import health  # noqa: E402

app.include_router(health.router)
