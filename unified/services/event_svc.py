"""SyncEvent service - append-only audit trail."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.event import SyncEvent

STATUS_SUCCESS = "success"
STATUS_FAIL = "fail"


async def log_event(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    type: str,
    status: str,
    method: str,
    url: str,
    provider: str,
    direction: str = "0",
    details_json: dict | None = None,
) -> SyncEvent:
    event = SyncEvent(
        tenant_id=tenant_id,
        type=type,
        status=status,
        method=method,
        url=url,
        provider=provider,
        direction=direction,
        details_json=details_json,
        timestamp=datetime.now(timezone.utc),
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


async def list_events(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    type: str | None = None,
    provider: str | None = None,
    limit: int = 50,
) -> list[SyncEvent]:
    stmt = select(SyncEvent).where(SyncEvent.tenant_id == tenant_id)
    if type:
        stmt = stmt.where(SyncEvent.type == type)
    if provider:
        stmt = stmt.where(SyncEvent.provider == provider)
    stmt = stmt.order_by(SyncEvent.timestamp.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
