"""Raw provider payload upsert and lookup."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.remote_data import RemoteData


async def upsert_remote_data(
    db: AsyncSession,
    *,
    owner_id: uuid.UUID,
    payload: Any,
) -> None:
    """Overwrite the cached payload for a record.

    No commit is performed here; callers commit with the record.
    """
    if not isinstance(payload, (dict, list)):
        return

    stmt = select(RemoteData).where(RemoteData.owner_id == owner_id)
    existing = (await db.execute(stmt)).scalar_one_or_none()
    now = datetime.now(timezone.utc)

    if existing:
        existing.payload_json = payload
        existing.captured_at = now
        return

    db.add(RemoteData(owner_id=owner_id, format="json", payload_json=payload, captured_at=now))


async def get_remote_data(db: AsyncSession, owner_id: uuid.UUID) -> Any:
    stmt = select(RemoteData.payload_json).where(RemoteData.owner_id == owner_id)
    return (await db.execute(stmt)).scalar_one_or_none()
