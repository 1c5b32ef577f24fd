"""Reconcile unified records into the canonical store.

A record is identified only by its ``(remote_id, remote_platform, tenant_id)``
triple. Reconciling the same provider record any number of times yields one
canonical row whose generated id never changes.

Updates are sparse: only fields that are present (not None, not "") in the
incoming record are written, so a provider that omits a field never clears
what is stored. Sub-collections are paired with stored rows by position;
extra incoming rows are created and extra stored rows are kept.

Each record is one unit of work: base row, sub-collections, custom fields and
raw payload commit together or not at all.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import MissingOriginIdError, PersistenceError
from ..models.company import Company
from ..models.contact_info import Address, EmailAddress, PhoneNumber
from ..models.note import Note
from ..models.ticketing import Comment
from ..models.user import User
from ..providers.base import ObjectKind
from ..schemas.unified import UnifiedInput
from .custom_fields import CustomFields
from .normalize import normalize_addresses, normalize_emails, normalize_phones
from .raw_store import upsert_remote_data

logger = logging.getLogger(__name__)

MODELS: dict[ObjectKind, type] = {
    ObjectKind.COMPANY: Company,
    ObjectKind.NOTE: Note,
    ObjectKind.USER: User,
    ObjectKind.COMMENT: Comment,
}

SCALAR_FIELDS: dict[ObjectKind, tuple[str, ...]] = {
    ObjectKind.COMPANY: ("name", "industry", "number_of_employees", "user_id"),
    ObjectKind.NOTE: ("content", "company_id", "user_id"),
    ObjectKind.USER: ("name", "email"),
    ObjectKind.COMMENT: ("body", "html_body", "is_private", "creator_type", "ticket_id", "user_id"),
}

# (schema attribute, row model, normalizer)
SUB_COLLECTIONS: dict[ObjectKind, tuple[tuple[str, type, Any], ...]] = {
    ObjectKind.COMPANY: (
        ("email_addresses", EmailAddress, normalize_emails),
        ("phone_numbers", PhoneNumber, normalize_phones),
        ("addresses", Address, normalize_addresses),
    ),
}


def is_present(value: Any) -> bool:
    return value is not None and value != ""


def present_fields(kind: ObjectKind, source: UnifiedInput) -> dict[str, Any]:
    """Scalar fields of ``source`` that a sparse patch would write."""
    values: dict[str, Any] = {}
    for name in SCALAR_FIELDS[kind]:
        value = getattr(source, name, None)
        if is_present(value):
            values[name] = value
    return values


@dataclass
class ReconcileOutcome:
    id: uuid.UUID
    created: bool


class Reconciler:
    """Idempotent upsert of unified records, serialized per identity triple."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[tuple, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: tuple) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def reconcile(
        self,
        db: AsyncSession,
        *,
        kind: ObjectKind,
        tenant_id: uuid.UUID,
        provider: str,
        candidate: UnifiedInput,
        raw: Any,
        origin_id: str | None,
    ) -> ReconcileOutcome:
        """Create or sparsely update the record for one provider record and commit."""
        if not origin_id:
            raise MissingOriginIdError(
                "Provider record has no native id",
                provider=provider,
                object_kind=kind.value,
                tenant_id=tenant_id,
            )

        lock = self._lock_for((kind.value, origin_id, provider, tenant_id))
        async with lock:
            try:
                outcome = await self._write(db, kind, tenant_id, provider, candidate, raw, origin_id)
                await db.commit()
                return outcome
            except IntegrityError:
                await db.rollback()
                # Another writer created the triple first; apply ours as an update.
                logger.info("Identity race on %s %s/%s; retrying as update", kind.value, provider, origin_id)
            except SQLAlchemyError as e:
                await db.rollback()
                raise PersistenceError(
                    f"Failed to store {kind.value} {origin_id}: {e}",
                    provider=provider,
                    object_kind=kind.value,
                    tenant_id=tenant_id,
                ) from e
            except (Exception, asyncio.CancelledError):
                await db.rollback()
                raise

            try:
                outcome = await self._write(db, kind, tenant_id, provider, candidate, raw, origin_id)
                await db.commit()
                return outcome
            except SQLAlchemyError as e:
                await db.rollback()
                raise PersistenceError(
                    f"Failed to store {kind.value} {origin_id}: {e}",
                    provider=provider,
                    object_kind=kind.value,
                    tenant_id=tenant_id,
                ) from e
            except (Exception, asyncio.CancelledError):
                await db.rollback()
                raise

    async def _write(
        self,
        db: AsyncSession,
        kind: ObjectKind,
        tenant_id: uuid.UUID,
        provider: str,
        candidate: UnifiedInput,
        raw: Any,
        origin_id: str,
    ) -> ReconcileOutcome:
        model = MODELS[kind]
        stmt = select(model).where(
            model.tenant_id == tenant_id,
            model.remote_platform == provider,
            model.remote_id == origin_id,
        )
        record = (await db.execute(stmt)).scalar_one_or_none()
        fields = present_fields(kind, candidate)
        now = datetime.now(timezone.utc)

        if record:
            for name, value in fields.items():
                setattr(record, name, value)
            record.last_synced_at = now
            created = False
        else:
            record = model(
                id=uuid.uuid4(),
                tenant_id=tenant_id,
                remote_id=origin_id,
                remote_platform=provider,
                last_synced_at=now,
                **fields,
            )
            db.add(record)
            await db.flush()
            created = True

        await sync_sub_collections(db, kind, record.id, candidate)
        await CustomFields.from_field_mappings(candidate.field_mappings).persist(
            db,
            owner_id=record.id,
            owner_type=kind.value,
            tenant_id=tenant_id,
            provider=provider,
            object_kind=kind.value,
        )
        await upsert_remote_data(db, owner_id=record.id, payload=raw)
        await db.flush()
        return ReconcileOutcome(id=record.id, created=created)


async def sync_sub_collections(
    db: AsyncSession,
    kind: ObjectKind,
    owner_id: uuid.UUID,
    source: UnifiedInput,
) -> None:
    """Pair incoming rows with stored rows by position. No commit."""
    for attr, model, normalize in SUB_COLLECTIONS.get(kind, ()):
        items = normalize(getattr(source, attr, None) or [])
        if not items:
            continue

        stmt = select(model).where(model.owner_id == owner_id).order_by(model.position)
        existing = list((await db.execute(stmt)).scalars().all())

        for position, item in enumerate(items):
            values = item.model_dump()
            if position < len(existing):
                row = existing[position]
                for name, value in values.items():
                    if is_present(value):
                        setattr(row, name, value)
            else:
                db.add(model(owner_id=owner_id, owner_type=kind.value, position=position, **values))
