"""HubSpot: companies, notes and owners (users)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..errors import ValidationError
from ..models.tenant import Connection
from ..schemas.sync import AdapterResponse
from ..schemas.unified import (
    AddressSchema,
    FieldMapping,
    PhoneNumberSchema,
    UnifiedCompanyInput,
    UnifiedCompanyOutput,
    UnifiedNoteInput,
    UnifiedNoteOutput,
    UnifiedUserOutput,
)
from .base import (
    Mapper,
    ObjectKind,
    Provider,
    RemoteIdLookup,
    apply_custom_fields,
    as_int,
    collect_custom_fields,
    resolve_canonical,
    resolve_remote,
)
from .http import HttpAdapter

COMPANY_PROPERTIES = (
    "name",
    "industry",
    "numberofemployees",
    "phone",
    "address",
    "city",
    "state",
    "zip",
    "country",
    "hubspot_owner_id",
)
NOTE_PROPERTIES = ("hs_note_body", "hs_timestamp", "hubspot_owner_id")

# HubSpot address property -> canonical address field
_ADDRESS_MAP: dict[str, str] = {
    "address": "street_1",
    "city": "city",
    "state": "state",
    "zip": "postal_code",
    "country": "country",
}


def _properties(mapper: Mapper, source: dict[str, Any]) -> dict[str, Any]:
    props = source.get("properties") or {}
    if not isinstance(props, dict):
        raise mapper.malformed("HubSpot record properties is not an object")
    return props


class HubspotCompanyMapper(Mapper[UnifiedCompanyInput, UnifiedCompanyOutput]):
    """Emails are not a HubSpot company property and are lost on desunify."""

    provider = Provider.HUBSPOT
    kind = ObjectKind.COMPANY

    async def desunify(
        self,
        source: UnifiedCompanyInput,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if source.name is not None:
            result["name"] = source.name
        if source.industry is not None:
            result["industry"] = source.industry
        if source.number_of_employees is not None:
            result["numberofemployees"] = str(source.number_of_employees)
        if source.phone_numbers:
            result["phone"] = source.phone_numbers[0].phone_number
        if source.addresses:
            address = source.addresses[0]
            for hs_key, local_key in _ADDRESS_MAP.items():
                value = getattr(address, local_key)
                if value is not None:
                    result[hs_key] = value

        owner_id = await resolve_remote(lookup, "user", source.user_id)
        if owner_id:
            result["hubspot_owner_id"] = owner_id

        return apply_custom_fields(result, source.field_mappings, field_mappings or [])

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedCompanyOutput:
        props = _properties(self, source)

        phones = []
        if props.get("phone"):
            phones.append(PhoneNumberSchema(phone_number=props["phone"], phone_type="primary"))

        addresses = []
        address_fields = {
            local_key: props.get(hs_key)
            for hs_key, local_key in _ADDRESS_MAP.items()
            if props.get(hs_key)
        }
        if address_fields:
            addresses.append(AddressSchema(address_type="primary", **address_fields))

        return UnifiedCompanyOutput(
            name=props.get("name"),
            industry=props.get("industry"),
            number_of_employees=as_int(props.get("numberofemployees")),
            user_id=await resolve_canonical(lookup, "user", props.get("hubspot_owner_id")),
            phone_numbers=phones,
            addresses=addresses,
            field_mappings=collect_custom_fields(props, field_mappings),
        )


class HubspotNoteMapper(Mapper[UnifiedNoteInput, UnifiedNoteOutput]):
    provider = Provider.HUBSPOT
    kind = ObjectKind.NOTE

    async def desunify(
        self,
        source: UnifiedNoteInput,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {
            "hs_note_body": source.content,
            # HubSpot requires a timestamp on every engagement.
            "hs_timestamp": datetime.now(timezone.utc).isoformat(),
        }
        owner_id = await resolve_remote(lookup, "user", source.user_id)
        if owner_id:
            result["hubspot_owner_id"] = owner_id
        company_id = await resolve_remote(lookup, "company", source.company_id)
        if company_id:
            result["associations"] = {"companies": [company_id]}
        return apply_custom_fields(result, source.field_mappings, field_mappings or [])

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedNoteOutput:
        props = _properties(self, source)

        company_remote_id = None
        associations = source.get("associations") or {}
        companies = associations.get("companies") if isinstance(associations, dict) else None
        if isinstance(companies, dict):
            results = companies.get("results") or []
            if results and isinstance(results[0], dict):
                company_remote_id = results[0].get("id")
        elif isinstance(companies, list) and companies:
            company_remote_id = companies[0]

        return UnifiedNoteOutput(
            content=props.get("hs_note_body"),
            company_id=await resolve_canonical(lookup, "company", company_remote_id),
            user_id=await resolve_canonical(lookup, "user", props.get("hubspot_owner_id")),
            field_mappings=collect_custom_fields(props, field_mappings),
        )


class HubspotUserMapper(Mapper[Any, UnifiedUserOutput]):
    provider = Provider.HUBSPOT
    kind = ObjectKind.USER

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedUserOutput:
        parts = [p for p in (source.get("firstName"), source.get("lastName")) if p]
        return UnifiedUserOutput(
            name=" ".join(parts) or None,
            email=source.get("email"),
            field_mappings=collect_custom_fields(source, field_mappings),
        )


# ── Adapters ────────────────────────────────────────────────────────────────


class HubspotObjectAdapter(HttpAdapter):
    """CRM v3 objects API (companies, notes)."""

    provider = Provider.HUBSPOT

    def __init__(
        self,
        kind: ObjectKind,
        object_type: str,
        properties: tuple[str, ...],
        base_url: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url, **kwargs)
        self.kind = kind
        self.object_type = object_type
        self.properties = properties

    async def push(
        self,
        payload: dict[str, Any],
        connection: Connection,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        properties = dict(payload)
        body: dict[str, Any] = {}
        associations = properties.pop("associations", None)
        body["properties"] = properties
        if associations:
            body["associations"] = [
                {
                    "to": {"id": company_id},
                    "types": [{"associationCategory": "HUBSPOT_DEFINED", "associationTypeId": 190}],
                }
                for company_id in associations.get("companies", [])
            ]

        data = await self._request(
            "POST", f"/crm/v3/objects/{self.object_type}", connection, json=body
        )
        return AdapterResponse(
            data=self._record(data, None, connection),
            status_code=201,
            message=f"Hubspot {self.kind.value} created",
        )

    async def pull(
        self,
        connection: Connection,
        extra_properties: list[str] | None = None,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        names = list(self.properties) + [p for p in (extra_properties or []) if p not in self.properties]
        params: list[tuple[str, str]] = [("properties", name) for name in names]
        if self.kind is ObjectKind.NOTE:
            params.append(("associations", "companies"))

        data = await self._request(
            "GET", f"/crm/v3/objects/{self.object_type}", connection, params=params
        )
        return AdapterResponse(
            data=self._items(data, "results", connection),
            status_code=200,
            message=f"Hubspot {self.kind.value}s retrieved",
        )


class HubspotOwnerAdapter(HttpAdapter):
    """Owners are read-only; they are the users of a HubSpot portal."""

    provider = Provider.HUBSPOT
    kind = ObjectKind.USER

    async def push(
        self,
        payload: dict[str, Any],
        connection: Connection,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        raise ValidationError(
            "Hubspot owners cannot be created through the API",
            provider=self.provider.value,
            object_kind=self.kind.value,
            tenant_id=connection.tenant_id,
        )

    async def pull(
        self,
        connection: Connection,
        extra_properties: list[str] | None = None,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        data = await self._request("GET", "/crm/v3/owners", connection)
        return AdapterResponse(
            data=self._items(data, "results", connection),
            status_code=200,
            message="Hubspot users retrieved",
        )
