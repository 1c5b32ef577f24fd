"""Write path: canonical input -> provider -> canonical store.

``add_record`` validates the input, converts it to the provider payload, pushes
it, converts the provider's created record back, reconciles it and records a
``<vertical>.<kind>.push`` event before announcing ``<vertical>.<kind>.created``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError, UnifiedError, ValidationError
from ..providers.base import ObjectKind
from ..providers.registry import ProviderRegistry
from ..schemas.unified import UnifiedInput, UnifiedOutput
from .event_svc import STATUS_FAIL, STATUS_SUCCESS, log_event
from .field_mapping_svc import get_custom_field_mappings
from .lookup import StoreLookup
from .reconciler import Reconciler
from .record_svc import coerce_input, get_one, validate_references
from .tenant_svc import get_connection, get_tenant
from .webhook_svc import WebhookNotifier

logger = logging.getLogger(__name__)


async def add_record(
    db: AsyncSession,
    registry: ProviderRegistry,
    kind: ObjectKind | str,
    tenant_id: uuid.UUID,
    provider: str,
    data: UnifiedInput | dict[str, Any],
    *,
    reconciler: Reconciler | None = None,
    notifier: WebhookNotifier | None = None,
    include_raw: bool = False,
) -> UnifiedOutput:
    kind = ObjectKind(kind)
    tenant = await get_tenant(db, tenant_id)
    binding = registry.get(kind, provider)
    source = coerce_input(kind, data)
    await validate_references(db, kind, tenant_id, source)

    connection = await get_connection(db, tenant_id, provider)
    if connection is None:
        raise NotFoundError(
            f"No {provider} connection for tenant",
            provider=provider,
            object_kind=kind.value,
            tenant_id=tenant_id,
        )

    lookup = StoreLookup(db, tenant_id, provider)
    mappings = await get_custom_field_mappings(db, tenant_id, provider, kind.value)

    parent_remote_id = None
    if kind is ObjectKind.COMMENT:
        parent_remote_id = await lookup.remote_id("ticket", source.ticket_id)
        if not parent_remote_id:
            raise ValidationError(
                "Comments need a ticket_id synced from the same provider",
                provider=provider,
                object_kind=kind.value,
                tenant_id=tenant_id,
            )

    payload = await binding.mapper.desunify(source, mappings, lookup)
    url = f"/{kind.vertical}/{kind.plural}"
    event_type = kind.event_type("push")

    # Push, unify and store are audited as one step.
    try:
        resp = await binding.adapter.push(payload, connection, parent_remote_id=parent_remote_id)
        unified = await binding.mapper.unify(resp.data, mappings, lookup)
        if kind is ObjectKind.COMMENT and unified.ticket_id is None:
            unified.ticket_id = source.ticket_id

        outcome = await (reconciler or Reconciler()).reconcile(
            db,
            kind=kind,
            tenant_id=tenant_id,
            provider=provider,
            candidate=unified,
            raw=resp.data,
            origin_id=binding.mapper.origin_id(resp.data),
        )
    except UnifiedError as e:
        await log_event(
            db, tenant_id, type=event_type, status=STATUS_FAIL, method="POST", url=url,
            provider=provider, direction="1", details_json=e.context(),
        )
        raise

    event = await log_event(
        db,
        tenant_id,
        type=event_type,
        status=STATUS_SUCCESS if resp.status_code == 201 else STATUS_FAIL,
        method="POST",
        url=url,
        provider=provider,
        direction="1",
        details_json={"record_id": str(outcome.id), "message": resp.message},
    )
    logger.info("Pushed %s %s to %s (remote id %s)", kind.value, outcome.id, provider,
                binding.mapper.origin_id(resp.data))

    result = await get_one(db, kind, outcome.id, include_raw=include_raw)
    if notifier:
        notifier.notify(
            [result],
            kind.event_type("created"),
            tenant_id,
            event.id,
            project_id=tenant.project_id,
        )
    return result


async def batch_add_records(
    db: AsyncSession,
    registry: ProviderRegistry,
    kind: ObjectKind | str,
    tenant_id: uuid.UUID,
    provider: str,
    items: list[UnifiedInput | dict[str, Any]],
    *,
    reconciler: Reconciler | None = None,
    notifier: WebhookNotifier | None = None,
    include_raw: bool = False,
) -> list[UnifiedOutput]:
    """Push each item in order; the first failure stops the batch and propagates."""
    reconciler = reconciler or Reconciler()
    results: list[UnifiedOutput] = []
    for item in items:
        results.append(
            await add_record(
                db, registry, kind, tenant_id, provider, item,
                reconciler=reconciler, notifier=notifier, include_raw=include_raw,
            )
        )
    return results
