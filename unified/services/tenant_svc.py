"""Tenant and connection lookups."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError
from ..models.tenant import Connection, Tenant


async def get_tenant(db: AsyncSession, tenant_id: uuid.UUID) -> Tenant:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError(f"Tenant {tenant_id} not found", tenant_id=tenant_id)
    return tenant


async def list_active_tenants(db: AsyncSession) -> list[Tenant]:
    stmt = select(Tenant).where(Tenant.is_active.is_(True)).order_by(Tenant.created_at)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_connection(
    db: AsyncSession, tenant_id: uuid.UUID, provider_slug: str
) -> Connection | None:
    stmt = select(Connection).where(
        Connection.tenant_id == tenant_id,
        Connection.provider_slug == provider_slug,
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def create_connection(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    provider_slug: str,
    access_token: str,
    vertical: str = "crm",
    account_url: str | None = None,
) -> Connection:
    """Create or refresh a tenant's connection to a provider."""
    conn = await get_connection(db, tenant_id, provider_slug)
    if conn:
        conn.access_token = access_token
        conn.account_url = account_url
        conn.vertical = vertical
        conn.status = "valid"
    else:
        conn = Connection(
            tenant_id=tenant_id,
            provider_slug=provider_slug,
            vertical=vertical,
            access_token=access_token,
            account_url=account_url,
        )
        db.add(conn)
    await db.commit()
    await db.refresh(conn)
    return conn
