"""Mapper conversions: canonical -> provider payload -> canonical."""

from __future__ import annotations

import uuid

import pytest

from unified.errors import ValidationError
from unified.providers.base import collect_custom_fields
from unified.providers.freshsales import FreshsalesCompanyMapper, FreshsalesNoteMapper
from unified.providers.front import FrontCommentMapper
from unified.providers.hubspot import HubspotCompanyMapper, HubspotNoteMapper, HubspotUserMapper
from unified.providers.pipedrive import PipedriveCompanyMapper, PipedriveNoteMapper, PipedriveUserMapper
from unified.providers.zendesk import ZendeskCommentMapper
from unified.providers.zoho import ZohoCompanyMapper, ZohoNoteMapper
from unified.schemas.unified import (
    AddressSchema,
    FieldMapping,
    PhoneNumberSchema,
    UnifiedCommentInput,
    UnifiedCompanyInput,
    UnifiedNoteInput,
    UnifiedUserInput,
)
from unified.tests.fakes import DictLookup

OWNER = uuid.uuid4()
COMPANY = uuid.uuid4()
TIER = [FieldMapping(slug="tier", remote_id="tier__c")]


def _lookup() -> DictLookup:
    return DictLookup({"user": {"55": OWNER}, "company": {"77": COMPANY}})


# ── Companies ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_hubspot_company_round_trip():
    mapper = HubspotCompanyMapper()
    source = UnifiedCompanyInput(
        name="Acme",
        industry="Tech",
        number_of_employees=50,
        user_id=OWNER,
        phone_numbers=[PhoneNumberSchema(phone_number="+15550100", phone_type="primary")],
        addresses=[AddressSchema(street_1="1 Main St", city="Springfield", state="IL",
                                 postal_code="62701", country="US", address_type="primary")],
        field_mappings=[{"tier": "gold"}],
    )

    payload = await mapper.desunify(source, TIER, _lookup())
    assert payload["numberofemployees"] == "50"
    assert payload["hubspot_owner_id"] == "55"
    assert payload["zip"] == "62701"
    assert payload["tier__c"] == "gold"

    out = await mapper.unify({"id": "901", "properties": payload}, TIER, _lookup())
    assert out.name == "Acme"
    assert out.industry == "Tech"
    assert out.number_of_employees == 50
    assert out.user_id == OWNER
    assert out.phone_numbers == source.phone_numbers
    assert out.addresses == source.addresses
    assert out.field_mappings == [{"tier": "gold"}]


@pytest.mark.asyncio
async def test_hubspot_company_drops_emails_on_desunify():
    source = UnifiedCompanyInput(name="Acme", email_addresses=[{"email_address": "hi@acme.test"}])
    payload = await HubspotCompanyMapper().desunify(source)
    assert "hi@acme.test" not in payload.values()
    assert payload == {"name": "Acme"}


@pytest.mark.asyncio
async def test_pipedrive_company_round_trip():
    mapper = PipedriveCompanyMapper()
    mappings = [FieldMapping(slug="tier", remote_id="9f1c2a_tier")]
    source = UnifiedCompanyInput(
        name="Acme",
        user_id=OWNER,
        addresses=[AddressSchema(street_1="1 Main St", address_type="primary")],
        field_mappings=[{"tier": "gold"}],
    )

    payload = await mapper.desunify(source, mappings, _lookup())
    assert payload == {"name": "Acme", "address": "1 Main St", "owner_id": 55, "9f1c2a_tier": "gold"}

    out = await mapper.unify({"id": 7, **payload}, mappings, _lookup())
    assert out.name == "Acme"
    assert out.user_id == OWNER
    assert out.addresses == source.addresses
    assert out.field_mappings == [{"tier": "gold"}]


@pytest.mark.asyncio
async def test_pipedrive_company_loses_unsupported_fields():
    payload = await PipedriveCompanyMapper().desunify(
        UnifiedCompanyInput(name="Acme", industry="Tech", number_of_employees=3)
    )
    assert payload == {"name": "Acme"}


@pytest.mark.asyncio
async def test_zoho_company_round_trip():
    mapper = ZohoCompanyMapper()
    source = UnifiedCompanyInput(
        name="Acme",
        industry="Tech",
        number_of_employees=12,
        user_id=OWNER,
        phone_numbers=[PhoneNumberSchema(phone_number="+15550100", phone_type="primary")],
        addresses=[AddressSchema(street_1="1 Main St", city="Springfield", country="US",
                                 address_type="billing")],
        field_mappings=[{"tier": "gold"}],
    )

    payload = await mapper.desunify(source, TIER, _lookup())
    assert payload["Account_Name"] == "Acme"
    assert payload["Owner"] == {"id": "55"}

    out = await mapper.unify({"id": "3000001", **payload}, TIER, _lookup())
    assert out.name == "Acme"
    assert out.industry == "Tech"
    assert out.number_of_employees == 12
    assert out.user_id == OWNER
    assert out.phone_numbers == source.phone_numbers
    assert out.addresses == source.addresses
    assert out.field_mappings == [{"tier": "gold"}]


@pytest.mark.asyncio
async def test_freshsales_company_round_trip_with_nested_custom_fields():
    mapper = FreshsalesCompanyMapper()
    mappings = [FieldMapping(slug="tier", remote_id="cf_tier")]
    source = UnifiedCompanyInput(
        name="Acme",
        industry="Tech",
        number_of_employees=8,
        user_id=OWNER,
        field_mappings=[{"tier": "gold"}],
    )

    payload = await mapper.desunify(source, mappings, _lookup())
    assert payload["industry_type"] == {"name": "Tech"}
    assert payload["custom_field"] == {"cf_tier": "gold"}
    assert "cf_tier" not in payload

    out = await mapper.unify({"id": 41, **payload}, mappings, _lookup())
    assert (out.name, out.industry, out.number_of_employees) == ("Acme", "Tech", 8)
    assert out.user_id == OWNER
    assert out.field_mappings == [{"tier": "gold"}]


# ── Notes ───────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_hubspot_note_round_trip_through_associations():
    mapper = HubspotNoteMapper()
    source = UnifiedNoteInput(content="Called the CFO", company_id=COMPANY, user_id=OWNER)

    payload = await mapper.desunify(source, [], _lookup())
    assert payload["associations"] == {"companies": ["77"]}
    assert payload["hs_timestamp"]

    properties = {k: v for k, v in payload.items() if k != "associations"}
    raw = {
        "id": "n-1",
        "properties": properties,
        "associations": {"companies": {"results": [{"id": "77", "type": "note_to_company"}]}},
    }
    out = await mapper.unify(raw, [], _lookup())
    assert out.content == "Called the CFO"
    assert out.company_id == COMPANY
    assert out.user_id == OWNER


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "mapper, raw_id",
    [(PipedriveNoteMapper(), 5), (ZohoNoteMapper(), "z-5"), (FreshsalesNoteMapper(), 5)],
)
async def test_note_round_trip(mapper, raw_id):
    source = UnifiedNoteInput(content="Renewal next quarter", company_id=COMPANY)

    payload = await mapper.desunify(source, [], _lookup())
    out = await mapper.unify({"id": raw_id, **payload}, [], _lookup())

    assert out.content == "Renewal next quarter"
    assert out.company_id == COMPANY


# ── Users ───────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_hubspot_owner_unifies_full_name():
    out = await HubspotUserMapper().unify(
        {"id": "55", "firstName": "Jane", "lastName": "Doe", "email": "jane@acme.test"}
    )
    assert out.name == "Jane Doe"
    assert out.email == "jane@acme.test"


@pytest.mark.asyncio
async def test_users_cannot_be_desunified():
    with pytest.raises(ValidationError):
        await PipedriveUserMapper().desunify(UnifiedUserInput(name="Jane"))


# ── Comments ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_zendesk_comment_round_trip_inverts_visibility():
    mapper = ZendeskCommentMapper()
    source = UnifiedCommentInput(body="We are on it", is_private=True, user_id=OWNER)

    payload = await mapper.desunify(source, [], _lookup())
    assert payload == {"body": "We are on it", "public": False, "author_id": 55}

    out = await mapper.unify({"id": 1, "type": "Comment", **payload}, [], _lookup())
    assert out.body == "We are on it"
    assert out.is_private is True
    assert out.user_id == OWNER
    assert out.creator_type == "user"


@pytest.mark.asyncio
async def test_zendesk_comment_prefers_html_body():
    payload = await ZendeskCommentMapper().desunify(
        UnifiedCommentInput(body="plain", html_body="<p>rich</p>", is_private=False)
    )
    assert payload == {"html_body": "<p>rich</p>", "public": True}


@pytest.mark.asyncio
async def test_front_comment_round_trip():
    mapper = FrontCommentMapper()
    lookup = DictLookup({"user": {"tea_1": OWNER}})

    payload = await mapper.desunify(UnifiedCommentInput(body="Internal note", user_id=OWNER), [], lookup)
    assert payload == {"body": "Internal note", "author_id": "tea_1"}

    out = await mapper.unify({"id": "com_1", "body": "Internal note", "author": {"id": "tea_1"}}, [], lookup)
    assert out.body == "Internal note"
    assert out.is_private is True
    assert out.user_id == OWNER


# ── Custom fields and shape ─────────────────────────────────────────────────


def test_later_mapping_wins_on_shared_property():
    mappings = [
        FieldMapping(slug="first_slug", remote_id="shared"),
        FieldMapping(slug="second_slug", remote_id="shared"),
    ]
    assert collect_custom_fields({"shared": "v"}, mappings) == [{"second_slug": "v"}]


@pytest.mark.asyncio
async def test_unmapped_properties_are_dropped():
    out = await HubspotCompanyMapper().unify(
        {"id": "1", "properties": {"name": "Acme", "hs_unmapped": "x"}}, TIER
    )
    assert out.field_mappings == []


@pytest.mark.asyncio
async def test_sequence_in_sequence_out():
    records = [{"id": "1", "properties": {"name": "A"}}, {"id": "2", "properties": {"name": "B"}}]
    out = await HubspotCompanyMapper().unify(records)
    assert [c.name for c in out] == ["A", "B"]


def test_origin_id_extraction():
    mapper = HubspotCompanyMapper()
    assert mapper.origin_id({"id": 12}) == "12"
    assert mapper.origin_id({"properties": {"name": "no id"}}) is None
    assert mapper.origin_id({"id": ""}) is None
