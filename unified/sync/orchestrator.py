"""Scheduled pull sweeps: every active tenant x every provider for one kind."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings
from ..errors import UnifiedError
from ..models.tenant import Connection
from ..models.ticketing import Ticket
from ..providers.base import ObjectKind, Provider
from ..providers.registry import ProviderBinding, ProviderRegistry
from ..schemas.sync import SyncResult
from ..schemas.unified import FieldMapping
from ..services.event_svc import STATUS_FAIL, STATUS_SUCCESS, log_event
from ..services.field_mapping_svc import get_custom_field_mappings
from ..services.lookup import StoreLookup
from ..services.reconciler import Reconciler
from ..services.record_svc import get_one
from ..services.tenant_svc import get_connection, list_active_tenants
from ..services.webhook_svc import WebhookNotifier

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Runs sweeps. Each ``(tenant, provider)`` pair gets its own session and
    its failure is contained to that pair."""

    def __init__(
        self,
        registry: ProviderRegistry,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        reconciler: Reconciler | None = None,
        notifier: WebhookNotifier | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self.registry = registry
        self.session_factory = session_factory
        self.reconciler = reconciler or Reconciler()
        self.notifier = notifier
        self.max_concurrency = max(1, max_concurrency or settings.sync_max_concurrency)

    async def sweep(
        self,
        kind: ObjectKind | str,
        *,
        stop_event: asyncio.Event | None = None,
    ) -> SyncResult:
        kind = ObjectKind(kind)
        async with self.session_factory() as db:
            tenants = [(t.id, t.project_id) for t in await list_active_tenants(db)]

        providers = self.registry.sync_providers(kind)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(tenant_id: uuid.UUID, project_id: str | None, provider: Provider) -> SyncResult:
            async with semaphore:
                if stop_event is not None and stop_event.is_set():
                    return SyncResult()
                try:
                    return await self.sync_pair(kind, tenant_id, provider, project_id=project_id)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.exception("Sync of %s for tenant %s on %s failed", kind.value, tenant_id, provider.value)
                    failed = SyncResult(errors=[f"{provider.value}: {exc}"])
                    await self._record_failure(kind, tenant_id, provider, failed)
                    return failed

        results = await asyncio.gather(
            *(run(tid, pid, provider) for tid, pid in tenants for provider in providers)
        )

        total = SyncResult()
        for result in results:
            total.merge(result)
        logger.info(
            "Sweep %s: %d tenants, created=%d updated=%d errors=%d",
            kind.value, len(tenants), total.created, total.updated, total.failed,
        )
        return total

    async def sync_pair(
        self,
        kind: ObjectKind,
        tenant_id: uuid.UUID,
        provider: Provider,
        *,
        project_id: str | None = None,
    ) -> SyncResult:
        """Pull, unify and reconcile one provider's records for one tenant.

        Failures stay inside the pair: they are counted in the result and the
        pair's ``pulled`` event is recorded with status ``fail``.
        """
        result = SyncResult()
        binding = self.registry.get(kind, provider)

        async with self.session_factory() as db:
            connection = await get_connection(db, tenant_id, provider.value)
            if connection is None:
                return result

            try:
                await self._sync_records(db, binding, kind, tenant_id, provider, connection, result)
            except asyncio.CancelledError:
                raise
            except UnifiedError as e:
                await db.rollback()
                logger.warning("Pull failed: %s", e)
                result.errors.append(str(e))
            except Exception as e:
                await db.rollback()
                logger.exception("Sync of %s for tenant %s on %s aborted", kind.value, tenant_id, provider.value)
                result.errors.append(f"{provider.value}: {e}")

            event_id = await self._record_event(db, kind, tenant_id, provider, result)
            await self._notify(db, kind, tenant_id, project_id, event_id, result)

        return result

    async def _sync_records(
        self,
        db: AsyncSession,
        binding: ProviderBinding,
        kind: ObjectKind,
        tenant_id: uuid.UUID,
        provider: Provider,
        connection: Connection,
        result: SyncResult,
    ) -> None:
        mappings = await get_custom_field_mappings(db, tenant_id, provider.value, kind.value)
        lookup = StoreLookup(db, tenant_id, provider.value)
        batches = await self._pull(db, binding, kind, tenant_id, provider, connection, mappings)

        for raws, ticket_id in batches:
            for raw in raws:
                try:
                    candidate = await binding.mapper.unify(raw, mappings, lookup)
                    if ticket_id is not None:
                        candidate.ticket_id = ticket_id
                    outcome = await self.reconciler.reconcile(
                        db,
                        kind=kind,
                        tenant_id=tenant_id,
                        provider=provider.value,
                        candidate=candidate,
                        raw=raw,
                        origin_id=binding.mapper.origin_id(raw),
                    )
                except asyncio.CancelledError:
                    raise
                except (UnifiedError, ValueError) as e:
                    logger.warning("Skipping %s record from %s: %s", kind.value, provider.value, e)
                    result.errors.append(str(e))
                    continue
                except Exception as e:
                    await db.rollback()
                    logger.exception("Unexpected failure on %s record from %s", kind.value, provider.value)
                    result.errors.append(f"{provider.value}: {e}")
                    continue

                if outcome.created:
                    result.created += 1
                else:
                    result.updated += 1
                result.record_ids.append(outcome.id)

    async def _pull(
        self,
        db: AsyncSession,
        binding: ProviderBinding,
        kind: ObjectKind,
        tenant_id: uuid.UUID,
        provider: Provider,
        connection: Connection,
        mappings: list[FieldMapping],
    ) -> list[tuple[list[Any], uuid.UUID | None]]:
        """Raw record batches, each with the canonical parent ticket id if any."""
        extra = [m.remote_id for m in mappings]
        if kind is not ObjectKind.COMMENT:
            resp = await binding.adapter.pull(connection, extra)
            return [(resp.data or [], None)]

        # Comments are listed per ticket.
        stmt = select(Ticket).where(
            Ticket.tenant_id == tenant_id,
            Ticket.remote_platform == provider.value,
            Ticket.remote_id.is_not(None),
        )
        tickets = (await db.execute(stmt)).scalars().all()
        batches = []
        for ticket in tickets:
            resp = await binding.adapter.pull(connection, extra, parent_remote_id=ticket.remote_id)
            batches.append((resp.data or [], ticket.id))
        return batches

    async def _record_event(
        self,
        db: AsyncSession,
        kind: ObjectKind,
        tenant_id: uuid.UUID,
        provider: Provider,
        result: SyncResult,
    ) -> uuid.UUID:
        event = await log_event(
            db,
            tenant_id,
            type=kind.event_type("pulled"),
            status=STATUS_FAIL if result.errors else STATUS_SUCCESS,
            method="PULL",
            url=f"/{kind.vertical}/{kind.plural}",
            provider=provider.value,
            details_json={
                "created": result.created,
                "updated": result.updated,
                "errors": result.errors[:20],
            },
        )
        return event.id

    async def _record_failure(
        self,
        kind: ObjectKind,
        tenant_id: uuid.UUID,
        provider: Provider,
        result: SyncResult,
    ) -> None:
        """Record a failed ``pulled`` event for a pair that died outside its own session."""
        try:
            async with self.session_factory() as db:
                await self._record_event(db, kind, tenant_id, provider, result)
        except SQLAlchemyError:
            logger.exception("Could not record failed %s sync for tenant %s", kind.value, tenant_id)

    async def _notify(
        self,
        db: AsyncSession,
        kind: ObjectKind,
        tenant_id: uuid.UUID,
        project_id: str | None,
        event_id: uuid.UUID,
        result: SyncResult,
    ) -> None:
        if self.notifier is None or not self.notifier.enabled or not result.record_ids:
            return
        records = [await get_one(db, kind, rid) for rid in result.record_ids]
        self.notifier.notify(
            records,
            kind.event_type("pulled"),
            tenant_id,
            event_id,
            project_id=project_id,
        )
