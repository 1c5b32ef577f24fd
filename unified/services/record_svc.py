"""Read and update canonical records."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError, PersistenceError, ValidationError
from ..models.company import Company
from ..models.ticketing import Ticket
from ..models.user import User
from ..providers.base import ObjectKind
from ..schemas.unified import (
    AddressSchema,
    EmailAddressSchema,
    PhoneNumberSchema,
    UnifiedCommentInput,
    UnifiedCommentOutput,
    UnifiedCompanyInput,
    UnifiedCompanyOutput,
    UnifiedInput,
    UnifiedNoteInput,
    UnifiedNoteOutput,
    UnifiedOutput,
    UnifiedUserInput,
    UnifiedUserOutput,
)
from .custom_fields import CustomFields
from .event_svc import STATUS_SUCCESS, log_event
from .raw_store import get_remote_data
from .reconciler import MODELS, SCALAR_FIELDS, SUB_COLLECTIONS, present_fields, sync_sub_collections

INPUT_SCHEMAS: dict[ObjectKind, type[UnifiedInput]] = {
    ObjectKind.COMPANY: UnifiedCompanyInput,
    ObjectKind.NOTE: UnifiedNoteInput,
    ObjectKind.USER: UnifiedUserInput,
    ObjectKind.COMMENT: UnifiedCommentInput,
}

OUTPUT_SCHEMAS: dict[ObjectKind, type[UnifiedOutput]] = {
    ObjectKind.COMPANY: UnifiedCompanyOutput,
    ObjectKind.NOTE: UnifiedNoteOutput,
    ObjectKind.USER: UnifiedUserOutput,
    ObjectKind.COMMENT: UnifiedCommentOutput,
}

_SUB_SCHEMAS = {
    "email_addresses": EmailAddressSchema,
    "phone_numbers": PhoneNumberSchema,
    "addresses": AddressSchema,
}

# Canonical reference fields and the table the referenced id must exist in.
REFERENCE_FIELDS: dict[str, type] = {
    "user_id": User,
    "company_id": Company,
    "ticket_id": Ticket,
}


def coerce_input(kind: ObjectKind, data: UnifiedInput | dict[str, Any]) -> UnifiedInput:
    schema = INPUT_SCHEMAS[kind]
    if isinstance(data, schema):
        return data
    if isinstance(data, UnifiedInput):
        data = data.model_dump()
    return schema.model_validate(data)


async def validate_references(
    db: AsyncSession,
    kind: ObjectKind,
    tenant_id: uuid.UUID,
    source: UnifiedInput,
) -> None:
    """Every canonical id the input points at must exist in the same tenant."""
    for name in SCALAR_FIELDS[kind]:
        model = REFERENCE_FIELDS.get(name)
        value = getattr(source, name, None)
        if model is None or value is None:
            continue
        row = await db.get(model, value)
        if row is None or row.tenant_id != tenant_id:
            raise ValidationError(
                f"{name} {value} does not exist",
                object_kind=kind.value,
                tenant_id=tenant_id,
            )


async def serialize_record(
    db: AsyncSession,
    kind: ObjectKind,
    record: Any,
    *,
    include_raw: bool = False,
) -> UnifiedOutput:
    data: dict[str, Any] = {name: getattr(record, name) for name in SCALAR_FIELDS[kind]}

    for attr, model, _ in SUB_COLLECTIONS.get(kind, ()):
        stmt = select(model).where(model.owner_id == record.id).order_by(model.position)
        rows = (await db.execute(stmt)).scalars().all()
        schema = _SUB_SCHEMAS[attr]
        data[attr] = [schema.model_validate(row, from_attributes=True) for row in rows]

    custom = await CustomFields.load(db, record.id)
    output = OUTPUT_SCHEMAS[kind](
        id=record.id,
        remote_id=record.remote_id,
        remote_platform=record.remote_platform,
        field_mappings=custom.as_field_mappings(),
        **data,
    )
    if include_raw:
        output.remote_data = await get_remote_data(db, record.id)
    return output


async def get_one(
    db: AsyncSession,
    kind: ObjectKind | str,
    record_id: uuid.UUID,
    *,
    include_raw: bool = False,
) -> UnifiedOutput:
    kind = ObjectKind(kind)
    record = await db.get(MODELS[kind], record_id)
    if record is None:
        raise NotFoundError(f"{kind.value} {record_id} not found", object_kind=kind.value)
    return await serialize_record(db, kind, record, include_raw=include_raw)


async def get_many(
    db: AsyncSession,
    kind: ObjectKind | str,
    tenant_id: uuid.UUID,
    provider: str,
    *,
    include_raw: bool = False,
) -> list[UnifiedOutput]:
    """All records a provider contributed for a tenant; logs a ``pulled`` event."""
    kind = ObjectKind(kind)
    model = MODELS[kind]
    stmt = (
        select(model)
        .where(model.tenant_id == tenant_id, model.remote_platform == provider)
        .order_by(model.created_at, model.remote_id)
    )
    records = (await db.execute(stmt)).scalars().all()
    outputs = [await serialize_record(db, kind, r, include_raw=include_raw) for r in records]

    await log_event(
        db,
        tenant_id,
        type=kind.event_type("pulled"),
        status=STATUS_SUCCESS,
        method="GET",
        url=f"/{kind.vertical}/{kind.plural}",
        provider=provider,
        details_json={"count": len(outputs)},
    )
    return outputs


async def update_record(
    db: AsyncSession,
    kind: ObjectKind | str,
    record_id: uuid.UUID,
    data: UnifiedInput | dict[str, Any],
) -> UnifiedOutput:
    """Sparse patch of a stored record; nothing is sent to the provider.

    Present scalar fields overwrite, sub-collections pair by position and
    custom fields are written against the record's own provider scope.
    """
    kind = ObjectKind(kind)
    record = await db.get(MODELS[kind], record_id)
    if record is None:
        raise NotFoundError(f"{kind.value} {record_id} not found", object_kind=kind.value)

    source = coerce_input(kind, data)
    await validate_references(db, kind, record.tenant_id, source)

    tenant_id, provider = record.tenant_id, record.remote_platform
    try:
        for name, value in present_fields(kind, source).items():
            setattr(record, name, value)
        await sync_sub_collections(db, kind, record.id, source)
        if provider:
            await CustomFields.from_field_mappings(source.field_mappings).persist(
                db,
                owner_id=record.id,
                owner_type=kind.value,
                tenant_id=tenant_id,
                provider=provider,
                object_kind=kind.value,
            )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError(
            f"Failed to update {kind.value} {record_id}: {e}",
            provider=provider,
            object_kind=kind.value,
            tenant_id=tenant_id,
        ) from e
    except (Exception, asyncio.CancelledError):
        await db.rollback()
        raise
    return await serialize_record(db, kind, record)
