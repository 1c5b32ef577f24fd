"""Pipedrive: organizations (companies), notes and users.

Pipedrive custom fields live at the top level of a record under hashed keys,
so custom-field collection reads the raw record itself.
"""

from __future__ import annotations

from typing import Any

from ..errors import ValidationError
from ..models.tenant import Connection
from ..schemas.sync import AdapterResponse
from ..schemas.unified import (
    AddressSchema,
    FieldMapping,
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
    nested_id,
    resolve_canonical,
    resolve_remote,
)
from .http import HttpAdapter


class PipedriveCompanyMapper(Mapper[UnifiedCompanyInput, UnifiedCompanyOutput]):
    """Organizations carry a single free-form address; industry, headcount,
    emails and phones have no native field and are lost on desunify."""

    provider = Provider.PIPEDRIVE
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
        if source.addresses and source.addresses[0].street_1:
            result["address"] = source.addresses[0].street_1
        owner_id = await resolve_remote(lookup, "user", source.user_id)
        if owner_id:
            result["owner_id"] = as_int(owner_id) or owner_id
        return apply_custom_fields(result, source.field_mappings, field_mappings or [])

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedCompanyOutput:
        addresses = []
        if source.get("address"):
            addresses.append(
                AddressSchema(
                    street_1=source.get("address"),
                    city=source.get("address_locality"),
                    state=source.get("address_admin_area_level_1"),
                    postal_code=source.get("address_postal_code"),
                    country=source.get("address_country"),
                    address_type="primary",
                )
            )

        owner = nested_id(source.get("owner_id"))
        return UnifiedCompanyOutput(
            name=source.get("name"),
            user_id=await resolve_canonical(lookup, "user", owner),
            addresses=addresses,
            field_mappings=collect_custom_fields(source, field_mappings),
        )


class PipedriveNoteMapper(Mapper[UnifiedNoteInput, UnifiedNoteOutput]):
    provider = Provider.PIPEDRIVE
    kind = ObjectKind.NOTE

    async def desunify(
        self,
        source: UnifiedNoteInput,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {"content": source.content}
        org_id = await resolve_remote(lookup, "company", source.company_id)
        if org_id:
            result["org_id"] = as_int(org_id) or org_id
        user_id = await resolve_remote(lookup, "user", source.user_id)
        if user_id:
            result["user_id"] = as_int(user_id) or user_id
        return apply_custom_fields(result, source.field_mappings, field_mappings or [])

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedNoteOutput:
        return UnifiedNoteOutput(
            content=source.get("content"),
            company_id=await resolve_canonical(lookup, "company", nested_id(source.get("org_id"))),
            user_id=await resolve_canonical(lookup, "user", nested_id(source.get("user_id"))),
            field_mappings=collect_custom_fields(source, field_mappings),
        )


class PipedriveUserMapper(Mapper[Any, UnifiedUserOutput]):
    provider = Provider.PIPEDRIVE
    kind = ObjectKind.USER

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedUserOutput:
        return UnifiedUserOutput(
            name=source.get("name"),
            email=source.get("email"),
            field_mappings=collect_custom_fields(source, field_mappings),
        )


# ── Adapters ────────────────────────────────────────────────────────────────


class PipedriveAdapter(HttpAdapter):
    """v1 REST API; authenticates with an ``api_token`` query parameter."""

    provider = Provider.PIPEDRIVE

    def __init__(self, kind: ObjectKind, resource: str, base_url: str, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)
        self.kind = kind
        self.resource = resource

    def _headers(self, connection: Connection) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _auth_params(self, connection: Connection) -> dict[str, str]:
        return {"api_token": connection.access_token}

    async def push(
        self,
        payload: dict[str, Any],
        connection: Connection,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        if self.kind is ObjectKind.USER:
            raise ValidationError(
                "Pipedrive users cannot be created through the API",
                provider=self.provider.value,
                object_kind=self.kind.value,
                tenant_id=connection.tenant_id,
            )
        data = await self._request("POST", f"/{self.resource}", connection, json=payload)
        return AdapterResponse(
            data=self._record(data, "data", connection),
            status_code=201,
            message=f"Pipedrive {self.kind.value} created",
        )

    async def pull(
        self,
        connection: Connection,
        extra_properties: list[str] | None = None,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        data = await self._request("GET", f"/{self.resource}", connection)
        return AdapterResponse(
            data=self._items(data, "data", connection),
            status_code=200,
            message=f"Pipedrive {self.kind.value}s retrieved",
        )
