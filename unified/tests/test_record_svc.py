"""Read path and explicit updates."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import event, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from unified.errors import NotFoundError, PersistenceError, ValidationError
from unified.models import Company, SyncEvent, Tenant
from unified.providers.base import ObjectKind
from unified.schemas.unified import AddressSchema, UnifiedCompanyOutput, UnifiedNoteOutput
from unified.services.field_mapping_svc import define_field
from unified.services.reconciler import Reconciler
from unified.services.record_svc import get_many, get_one, update_record

RAW = {
    "id": "hs-1",
    "properties": {"name": "Acme", "industry": "Tech", "tier__c": "gold"},
    "archived": False,
}


async def _seed_company(db: AsyncSession, tenant: Tenant, raw=RAW, origin_id="hs-1"):
    await define_field(db, tenant.id, slug="tier", provider_slug="hubspot",
                       object_kind="company", remote_id="tier__c")
    outcome = await Reconciler().reconcile(
        db,
        kind=ObjectKind.COMPANY,
        tenant_id=tenant.id,
        provider="hubspot",
        candidate=UnifiedCompanyOutput(
            name="Acme",
            industry="Tech",
            addresses=[AddressSchema(city="Springfield", address_type="primary")],
            field_mappings=[{"tier": "gold"}],
        ),
        raw=raw,
        origin_id=origin_id,
    )
    return outcome.id


@pytest.mark.asyncio
async def test_get_one_assembles_record(db: AsyncSession, tenant: Tenant):
    record_id = await _seed_company(db, tenant)

    out = await get_one(db, ObjectKind.COMPANY, record_id)

    assert out.id == record_id
    assert out.name == "Acme"
    assert out.remote_id == "hs-1"
    assert out.remote_platform == "hubspot"
    assert out.field_mappings == [{"tier": "gold"}]
    assert out.addresses[0].city == "Springfield"
    assert out.remote_data is None
    assert "remote_data" not in out.to_wire()


@pytest.mark.asyncio
async def test_include_raw_returns_last_reconciled_payload(db: AsyncSession, tenant: Tenant):
    record_id = await _seed_company(db, tenant)

    out = await get_one(db, "company", record_id, include_raw=True)

    assert out.remote_data == RAW
    assert out.to_wire()["remote_data"] == RAW


@pytest.mark.asyncio
async def test_get_one_unknown_id(db: AsyncSession):
    with pytest.raises(NotFoundError):
        await get_one(db, ObjectKind.NOTE, uuid.uuid4())


@pytest.mark.asyncio
async def test_get_many_logs_pulled_event(db: AsyncSession, tenant: Tenant):
    await _seed_company(db, tenant)
    await _seed_company(db, tenant, raw={"id": "hs-2"}, origin_id="hs-2")

    records = await get_many(db, ObjectKind.COMPANY, tenant.id, "hubspot")
    assert {r.remote_id for r in records} == {"hs-1", "hs-2"}
    assert await get_many(db, ObjectKind.COMPANY, tenant.id, "pipedrive") == []

    events = (await db.execute(select(SyncEvent))).scalars().all()
    assert [e.type for e in events] == ["crm.company.pulled", "crm.company.pulled"]
    assert sorted(e.details_json["count"] for e in events) == [0, 2]


@pytest.mark.asyncio
async def test_update_record_is_sparse(db: AsyncSession, tenant: Tenant):
    record_id = await _seed_company(db, tenant)

    out = await update_record(db, ObjectKind.COMPANY, record_id,
                              {"industry": "Fintech", "field_mappings": [{"tier": "platinum"}]})

    assert out.name == "Acme"
    assert out.industry == "Fintech"
    assert out.field_mappings == [{"tier": "platinum"}]


@pytest.mark.asyncio
async def test_update_record_rejects_unknown_reference(db: AsyncSession, tenant: Tenant):
    record_id = await _seed_company(db, tenant)

    with pytest.raises(ValidationError):
        await update_record(db, "company", record_id, {"user_id": str(uuid.uuid4())})


@pytest.mark.asyncio
async def test_note_reads_back_company_reference(db: AsyncSession, tenant: Tenant):
    company_id = await _seed_company(db, tenant)
    outcome = await Reconciler().reconcile(
        db,
        kind=ObjectKind.NOTE,
        tenant_id=tenant.id,
        provider="hubspot",
        candidate=UnifiedNoteOutput(content="Kickoff", company_id=company_id),
        raw={"id": "n-1"},
        origin_id="n-1",
    )

    note = await get_one(db, ObjectKind.NOTE, outcome.id)
    assert note.content == "Kickoff"
    assert note.company_id == company_id


@pytest.mark.asyncio
async def test_failed_update_rolls_back_every_change(db: AsyncSession, tenant: Tenant):
    record_id = await _seed_company(db, tenant)

    def fail_on_explode(session, flush_context, instances):
        if any(isinstance(o, Company) and o.industry == "Explode" for o in session.dirty):
            raise OperationalError("UPDATE crm_company", {}, Exception("disk I/O error"))

    event.listen(db.sync_session, "before_flush", fail_on_explode)
    try:
        with pytest.raises(PersistenceError) as exc:
            await update_record(db, ObjectKind.COMPANY, record_id, {
                "industry": "Explode",
                "addresses": [{"city": "Shelbyville"}, {"city": "Capital City"}],
                "field_mappings": [{"tier": "platinum"}],
            })
    finally:
        event.remove(db.sync_session, "before_flush", fail_on_explode)

    assert exc.value.provider == "hubspot"
    out = await get_one(db, ObjectKind.COMPANY, record_id)
    assert out.industry == "Tech"
    assert [a.city for a in out.addresses] == ["Springfield"]
    assert out.field_mappings == [{"tier": "gold"}]
