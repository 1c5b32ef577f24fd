"""Zoho CRM: Accounts (companies) and Notes."""

from __future__ import annotations

from typing import Any

from ..errors import UpstreamError
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
    nested_id,
    resolve_canonical,
    resolve_remote,
)
from .http import HttpAdapter

ACCOUNT_FIELDS = (
    "Account_Name",
    "Industry",
    "Employees",
    "Phone",
    "Billing_Street",
    "Billing_City",
    "Billing_State",
    "Billing_Code",
    "Billing_Country",
    "Owner",
)
NOTE_FIELDS = ("Note_Title", "Note_Content", "Parent_Id", "Owner")

_BILLING_MAP: dict[str, str] = {
    "Billing_Street": "street_1",
    "Billing_City": "city",
    "Billing_State": "state",
    "Billing_Code": "postal_code",
    "Billing_Country": "country",
}


class ZohoCompanyMapper(Mapper[UnifiedCompanyInput, UnifiedCompanyOutput]):
    provider = Provider.ZOHO
    kind = ObjectKind.COMPANY

    async def desunify(
        self,
        source: UnifiedCompanyInput,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if source.name is not None:
            result["Account_Name"] = source.name
        if source.industry is not None:
            result["Industry"] = source.industry
        if source.number_of_employees is not None:
            result["Employees"] = source.number_of_employees
        if source.phone_numbers:
            result["Phone"] = source.phone_numbers[0].phone_number
        if source.addresses:
            address = source.addresses[0]
            for zoho_key, local_key in _BILLING_MAP.items():
                value = getattr(address, local_key)
                if value is not None:
                    result[zoho_key] = value

        owner_id = await resolve_remote(lookup, "user", source.user_id)
        if owner_id:
            result["Owner"] = {"id": owner_id}
        return apply_custom_fields(result, source.field_mappings, field_mappings or [])

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedCompanyOutput:
        phones = []
        if source.get("Phone"):
            phones.append(PhoneNumberSchema(phone_number=source["Phone"], phone_type="primary"))

        billing = {
            local_key: source[zoho_key]
            for zoho_key, local_key in _BILLING_MAP.items()
            if source.get(zoho_key)
        }
        addresses = [AddressSchema(address_type="billing", **billing)] if billing else []

        return UnifiedCompanyOutput(
            name=source.get("Account_Name"),
            industry=source.get("Industry"),
            number_of_employees=as_int(source.get("Employees")),
            user_id=await resolve_canonical(lookup, "user", nested_id(source.get("Owner"))),
            phone_numbers=phones,
            addresses=addresses,
            field_mappings=collect_custom_fields(source, field_mappings),
        )


class ZohoNoteMapper(Mapper[UnifiedNoteInput, UnifiedNoteOutput]):
    provider = Provider.ZOHO
    kind = ObjectKind.NOTE

    async def desunify(
        self,
        source: UnifiedNoteInput,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {"Note_Content": source.content}
        account_id = await resolve_remote(lookup, "company", source.company_id)
        if account_id:
            result["Parent_Id"] = {"id": account_id}
            result["se_module"] = "Accounts"
        owner_id = await resolve_remote(lookup, "user", source.user_id)
        if owner_id:
            result["Owner"] = {"id": owner_id}
        return apply_custom_fields(result, source.field_mappings, field_mappings or [])

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedNoteOutput:
        return UnifiedNoteOutput(
            content=source.get("Note_Content"),
            company_id=await resolve_canonical(lookup, "company", nested_id(source.get("Parent_Id"))),
            user_id=await resolve_canonical(lookup, "user", nested_id(source.get("Owner"))),
            field_mappings=collect_custom_fields(source, field_mappings),
        )


class ZohoAdapter(HttpAdapter):
    """Zoho CRM v5 modules API. Writes are wrapped as ``{"data": [record]}``."""

    provider = Provider.ZOHO
    auth_scheme = "Zoho-oauthtoken"

    def __init__(
        self,
        kind: ObjectKind,
        module: str,
        fields: tuple[str, ...],
        base_url: str,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url, **kwargs)
        self.kind = kind
        self.module = module
        self.fields = fields

    async def push(
        self,
        payload: dict[str, Any],
        connection: Connection,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        data = await self._request(
            "POST", f"/crm/v5/{self.module}", connection, json={"data": [payload]}
        )
        results = self._items(data, "data", connection)
        details = results[0].get("details") if results else None
        if not isinstance(details, dict) or not details.get("id"):
            raise self._error(
                f"{self.label} create response has no record id",
                connection,
                reason=UpstreamError.MALFORMED,
            )
        # Zoho only echoes the new id back; the created record is the payload plus that id.
        return AdapterResponse(
            data={**payload, "id": details["id"]},
            status_code=201,
            message=f"Zoho {self.kind.value} created",
        )

    async def pull(
        self,
        connection: Connection,
        extra_properties: list[str] | None = None,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        names = list(self.fields) + [p for p in (extra_properties or []) if p not in self.fields]
        data = await self._request(
            "GET", f"/crm/v5/{self.module}", connection, params={"fields": ",".join(names)}
        )
        return AdapterResponse(
            data=self._items(data, "data", connection),
            status_code=200,
            message=f"Zoho {self.kind.value}s retrieved",
        )
