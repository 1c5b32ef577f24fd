"""Reconciliation: identity, sparse patch, EAV and raw payload persistence."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from unified.errors import MissingOriginIdError, PersistenceError
from unified.models import AttributeValue, Company, EmailAddress, RemoteData, Tenant
from unified.providers.base import ObjectKind
from unified.schemas.unified import EmailAddressSchema, UnifiedCompanyOutput
from unified.services.field_mapping_svc import define_field
from unified.services.reconciler import Reconciler
from unified.tests.fakes import make_tenant


async def _reconcile(db, tenant, candidate, raw, origin_id="hs-1", reconciler=None):
    return await (reconciler or Reconciler()).reconcile(
        db,
        kind=ObjectKind.COMPANY,
        tenant_id=tenant.id,
        provider="hubspot",
        candidate=candidate,
        raw=raw,
        origin_id=origin_id,
    )


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_same_record_twice_yields_one_canonical_row(db: AsyncSession, tenant: Tenant):
    candidate = UnifiedCompanyOutput(name="Acme", industry="Tech")
    raw = {"id": "hs-1", "properties": {"name": "Acme", "industry": "Tech"}}

    first = await _reconcile(db, tenant, candidate, raw)
    second = await _reconcile(db, tenant, candidate, raw)

    assert first.created is True
    assert second.created is False
    assert first.id == second.id
    assert await _count(db, Company) == 1


@pytest.mark.asyncio
async def test_only_changed_scalar_is_written(db: AsyncSession, tenant: Tenant):
    first = await _reconcile(db, tenant, UnifiedCompanyOutput(name="Acme", industry="Tech",
                                                               number_of_employees=10), {"id": "hs-1"})
    await _reconcile(db, tenant, UnifiedCompanyOutput(name="Acme Corp"), {"id": "hs-1"})

    company = await db.get(Company, first.id)
    await db.refresh(company)
    assert company.name == "Acme Corp"
    assert company.industry == "Tech"
    assert company.number_of_employees == 10
    assert company.remote_id == "hs-1"
    assert company.remote_platform == "hubspot"


@pytest.mark.asyncio
async def test_empty_strings_do_not_clear_stored_values(db: AsyncSession, tenant: Tenant):
    first = await _reconcile(db, tenant, UnifiedCompanyOutput(name="Acme", industry="Tech"), {"id": "hs-1"})
    await _reconcile(db, tenant, UnifiedCompanyOutput(name="Acme", industry=""), {"id": "hs-1"})

    company = await db.get(Company, first.id)
    await db.refresh(company)
    assert company.industry == "Tech"


@pytest.mark.asyncio
async def test_distinct_remote_ids_are_distinct_records(db: AsyncSession, tenant: Tenant):
    a = await _reconcile(db, tenant, UnifiedCompanyOutput(name="A"), {"id": "1"}, origin_id="1")
    b = await _reconcile(db, tenant, UnifiedCompanyOutput(name="B"), {"id": "2"}, origin_id="2")

    assert a.id != b.id
    assert await _count(db, Company) == 2


@pytest.mark.asyncio
async def test_missing_origin_id_is_rejected_without_writing(db: AsyncSession, tenant: Tenant):
    with pytest.raises(MissingOriginIdError) as exc:
        await _reconcile(db, tenant, UnifiedCompanyOutput(name="Ghost"), {"name": "Ghost"}, origin_id=None)

    assert exc.value.provider == "hubspot"
    assert exc.value.object_kind == "company"
    assert await _count(db, Company) == 0


@pytest.mark.asyncio
async def test_unknown_custom_field_is_dropped(db: AsyncSession, tenant: Tenant):
    await define_field(db, tenant.id, slug="tier", provider_slug="hubspot",
                       object_kind="company", remote_id="tier__c")
    candidate = UnifiedCompanyOutput(name="Acme", field_mappings=[{"tier": "gold"}, {"nope": "x"}])

    await _reconcile(db, tenant, candidate, {"id": "hs-1"})

    assert (await db.execute(select(AttributeValue.data))).scalars().all() == ["gold"]


@pytest.mark.asyncio
async def test_sub_collections_pair_by_position(db: AsyncSession, tenant: Tenant):
    first = await _reconcile(db, tenant, UnifiedCompanyOutput(
        name="Acme",
        email_addresses=[
            EmailAddressSchema(email_address="Sales@Acme.test ", email_address_type="work"),
            EmailAddressSchema(email_address="billing@acme.test", email_address_type="billing"),
        ],
    ), {"id": "hs-1"})

    await _reconcile(db, tenant, UnifiedCompanyOutput(
        email_addresses=[EmailAddressSchema(email_address="hello@acme.test")],
    ), {"id": "hs-1"})

    rows = (await db.execute(
        select(EmailAddress).where(EmailAddress.owner_id == first.id).order_by(EmailAddress.position)
    )).scalars().all()
    assert [r.email_address for r in rows] == ["hello@acme.test", "billing@acme.test"]
    assert [r.position for r in rows] == [0, 1]


@pytest.mark.asyncio
async def test_raw_payload_is_overwritten(db: AsyncSession, tenant: Tenant):
    first = await _reconcile(db, tenant, UnifiedCompanyOutput(name="Acme"), {"id": "hs-1", "v": 1})
    await _reconcile(db, tenant, UnifiedCompanyOutput(name="Acme"), {"id": "hs-1", "v": 2})

    rows = (await db.execute(select(RemoteData).where(RemoteData.owner_id == first.id))).scalars().all()
    assert len(rows) == 1
    assert rows[0].payload_json == {"id": "hs-1", "v": 2}


@pytest.mark.asyncio
async def test_concurrent_reconciles_of_one_identity_create_once(db: AsyncSession, tenant: Tenant):
    reconciler = Reconciler()
    outcomes = await asyncio.gather(*(
        _reconcile(db, tenant, UnifiedCompanyOutput(name=f"Acme {i}"), {"id": "hs-1"}, reconciler=reconciler)
        for i in range(3)
    ))

    assert len({o.id for o in outcomes}) == 1
    assert sum(o.created for o in outcomes) == 1
    assert await _count(db, Company) == 1


class RacingSession(AsyncSession):
    """Runs ``before_first_flush`` right before this session's first flush."""

    before_first_flush = None

    async def flush(self, objects=None):
        hook, self.before_first_flush = self.before_first_flush, None
        if hook is not None:
            await hook()
        await super().flush(objects)


@pytest.mark.asyncio
async def test_lost_create_race_is_retried_as_update(file_engine):
    plain = async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
    racing = async_sessionmaker(file_engine, class_=RacingSession, expire_on_commit=False)
    async with plain() as other:
        tenant_id = (await make_tenant(other)).id

    async def rival_creates_the_same_triple():
        async with plain() as other:
            other.add(Company(tenant_id=tenant_id, name="Rival", remote_id="hs-1", remote_platform="hubspot"))
            await other.commit()

    async with racing() as db:
        db.before_first_flush = rival_creates_the_same_triple
        outcome = await Reconciler().reconcile(
            db,
            kind=ObjectKind.COMPANY,
            tenant_id=tenant_id,
            provider="hubspot",
            candidate=UnifiedCompanyOutput(name="Acme"),
            raw={"id": "hs-1"},
            origin_id="hs-1",
        )

    assert outcome.created is False
    async with plain() as other:
        rows = (await other.execute(select(Company))).scalars().all()
        raw = (await other.execute(select(RemoteData))).scalars().all()
    assert [(r.id, r.name) for r in rows] == [(outcome.id, "Acme")]
    assert [r.owner_id for r in raw] == [outcome.id]


@pytest.mark.asyncio
async def test_store_failure_raises_persistence_error_and_rolls_back(db: AsyncSession, tenant: Tenant):
    tenant_id = tenant.id

    def fail_on_broken(session, flush_context, instances):
        if any(isinstance(o, Company) and o.name == "Broken" for o in session.new):
            raise OperationalError("INSERT INTO crm_company", {}, Exception("disk I/O error"))

    event.listen(db.sync_session, "before_flush", fail_on_broken)
    try:
        with pytest.raises(PersistenceError) as exc:
            await Reconciler().reconcile(
                db,
                kind=ObjectKind.COMPANY,
                tenant_id=tenant_id,
                provider="hubspot",
                candidate=UnifiedCompanyOutput(name="Broken"),
                raw={"id": "hs-9"},
                origin_id="hs-9",
            )
    finally:
        event.remove(db.sync_session, "before_flush", fail_on_broken)

    assert exc.value.provider == "hubspot"
    assert exc.value.tenant_id == str(tenant_id)
    assert await _count(db, Company) == 0
    assert await _count(db, RemoteData) == 0
