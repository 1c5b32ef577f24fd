"""Health and readiness checks for the unified sync service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return {"status": "healthy", "service": "unified"}


@router.get("/ready")
async def readiness_check(request: Request, db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    registry = getattr(request.app.state, "registry", None)
    worker = getattr(request.app.state, "sync_worker", None)
    return {
        "status": "ready",
        "service": "unified",
        "providers": len(registry) if registry is not None else 0,
        "sync_worker": bool(worker and worker.running),
    }
