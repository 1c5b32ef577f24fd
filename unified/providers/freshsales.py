"""Freshsales: sales accounts (companies) and notes.

Custom fields are nested under ``custom_field`` on both reads and writes.
"""

from __future__ import annotations

from typing import Any

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

_ADDRESS_MAP: dict[str, str] = {
    "address": "street_1",
    "city": "city",
    "state": "state",
    "zipcode": "postal_code",
    "country": "country",
}


class FreshsalesCompanyMapper(Mapper[UnifiedCompanyInput, UnifiedCompanyOutput]):
    provider = Provider.FRESHSALES
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
        if source.number_of_employees is not None:
            result["number_of_employees"] = source.number_of_employees
        if source.industry is not None:
            result["industry_type"] = {"name": source.industry}
        if source.phone_numbers:
            result["phone"] = source.phone_numbers[0].phone_number
        if source.addresses:
            address = source.addresses[0]
            for fs_key, local_key in _ADDRESS_MAP.items():
                value = getattr(address, local_key)
                if value is not None:
                    result[fs_key] = value

        owner_id = await resolve_remote(lookup, "user", source.user_id)
        if owner_id:
            result["owner_id"] = as_int(owner_id) or owner_id

        custom = apply_custom_fields({}, source.field_mappings, field_mappings or [])
        if custom:
            result["custom_field"] = custom
        return result

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedCompanyOutput:
        phones = []
        if source.get("phone"):
            phones.append(PhoneNumberSchema(phone_number=source["phone"], phone_type="primary"))

        address_fields = {
            local_key: source[fs_key]
            for fs_key, local_key in _ADDRESS_MAP.items()
            if source.get(fs_key)
        }
        addresses = [AddressSchema(address_type="primary", **address_fields)] if address_fields else []

        industry = source.get("industry_type")
        if isinstance(industry, dict):
            industry = industry.get("name")

        return UnifiedCompanyOutput(
            name=source.get("name"),
            industry=industry,
            number_of_employees=as_int(source.get("number_of_employees")),
            user_id=await resolve_canonical(lookup, "user", source.get("owner_id")),
            phone_numbers=phones,
            addresses=addresses,
            field_mappings=collect_custom_fields(source.get("custom_field"), field_mappings),
        )


class FreshsalesNoteMapper(Mapper[UnifiedNoteInput, UnifiedNoteOutput]):
    provider = Provider.FRESHSALES
    kind = ObjectKind.NOTE

    async def desunify(
        self,
        source: UnifiedNoteInput,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {"description": source.content}
        account_id = await resolve_remote(lookup, "company", source.company_id)
        if account_id:
            result["targetable_type"] = "SalesAccount"
            result["targetable_id"] = as_int(account_id) or account_id
        custom = apply_custom_fields({}, source.field_mappings, field_mappings or [])
        if custom:
            result["custom_field"] = custom
        return result

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedNoteOutput:
        company_remote_id = None
        if source.get("targetable_type") == "SalesAccount":
            company_remote_id = source.get("targetable_id")
        return UnifiedNoteOutput(
            content=source.get("description"),
            company_id=await resolve_canonical(lookup, "company", company_remote_id),
            user_id=await resolve_canonical(lookup, "user", source.get("creater_id")),
            field_mappings=collect_custom_fields(source.get("custom_field"), field_mappings),
        )


class FreshsalesAdapter(HttpAdapter):
    """Freshsales REST API; records are wrapped under a singular/plural key."""

    provider = Provider.FRESHSALES
    auth_scheme = "Token token="

    def __init__(
        self,
        kind: ObjectKind,
        resource: str,
        record_key: str,
        list_key: str,
        base_url: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url, **kwargs)
        self.kind = kind
        self.resource = resource
        self.record_key = record_key
        self.list_key = list_key

    def _headers(self, connection: Connection) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"{self.auth_scheme}{connection.access_token}",
        }

    async def push(
        self,
        payload: dict[str, Any],
        connection: Connection,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        data = await self._request(
            "POST", f"/api/{self.resource}", connection, json={self.record_key: payload}
        )
        return AdapterResponse(
            data=self._record(data, self.record_key, connection),
            status_code=201,
            message=f"Freshsales {self.kind.value} created",
        )

    async def pull(
        self,
        connection: Connection,
        extra_properties: list[str] | None = None,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        data = await self._request("GET", f"/api/{self.resource}", connection)
        return AdapterResponse(
            data=self._items(data, self.list_key, connection),
            status_code=200,
            message=f"Freshsales {self.kind.value}s retrieved",
        )
