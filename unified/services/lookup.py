"""Canonical <-> provider id resolution backed by the unified store."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.company import Company
from ..models.ticketing import Ticket
from ..models.user import User

_MODELS = {
    "user": User,
    "company": Company,
    "ticket": Ticket,
}


class StoreLookup:
    """Resolves ids for one ``(tenant, provider)`` scope."""

    def __init__(self, db: AsyncSession, tenant_id: uuid.UUID, provider: str) -> None:
        self.db = db
        self.tenant_id = tenant_id
        self.provider = provider

    async def canonical_id(self, kind: str, remote_id: Any) -> uuid.UUID | None:
        model = _MODELS.get(kind)
        if model is None or remote_id in (None, ""):
            return None
        stmt = select(model.id).where(
            model.tenant_id == self.tenant_id,
            model.remote_platform == self.provider,
            model.remote_id == str(remote_id),
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def remote_id(self, kind: str, canonical_id: uuid.UUID | None) -> str | None:
        model = _MODELS.get(kind)
        if model is None or canonical_id is None:
            return None
        stmt = select(model.remote_id).where(
            model.id == canonical_id,
            model.tenant_id == self.tenant_id,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()
