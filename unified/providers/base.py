"""Provider contracts: object kinds, provider ids, mapper and adapter interfaces.

Every provider implements, per object kind it supports:

- a **mapper** converting canonical input to a provider payload (``desunify``)
  and provider payloads back to canonical output (``unify``);
- an **adapter** doing the actual push/pull against the provider API.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Iterable, Protocol, TypeVar, overload

from ..errors import UpstreamError, ValidationError
from ..schemas.sync import AdapterResponse
from ..schemas.unified import FieldMapping, UnifiedInput, UnifiedOutput

if TYPE_CHECKING:
    from ..models.tenant import Connection


class ObjectKind(str, Enum):
    COMPANY = "company"
    NOTE = "note"
    USER = "user"
    COMMENT = "comment"

    @property
    def vertical(self) -> str:
        return "ticketing" if self is ObjectKind.COMMENT else "crm"

    @property
    def plural(self) -> str:
        return "companies" if self is ObjectKind.COMPANY else f"{self.value}s"

    def event_type(self, action: str) -> str:
        """e.g. ``crm.company.created`` / ``ticketing.comment.pulled``."""
        return f"{self.vertical}.{self.value}.{action}"


class Provider(str, Enum):
    HUBSPOT = "hubspot"
    PIPEDRIVE = "pipedrive"
    ZOHO = "zoho"
    FRESHSALES = "freshsales"
    ZENDESK = "zendesk"
    FRONT = "front"


CRM_PROVIDERS: tuple[Provider, ...] = (
    Provider.HUBSPOT,
    Provider.PIPEDRIVE,
    Provider.ZOHO,
    Provider.FRESHSALES,
)
TICKETING_PROVIDERS: tuple[Provider, ...] = (Provider.ZENDESK, Provider.FRONT)


def providers_for(kind: ObjectKind) -> tuple[Provider, ...]:
    return TICKETING_PROVIDERS if kind.vertical == "ticketing" else CRM_PROVIDERS


class RemoteIdLookup(Protocol):
    """Resolves ids between the canonical store and one provider.

    Bound to a single (tenant, provider) scope by whoever constructs it.
    """

    async def canonical_id(self, kind: str, remote_id: Any) -> uuid.UUID | None: ...

    async def remote_id(self, kind: str, canonical_id: uuid.UUID | None) -> str | None: ...


InputT = TypeVar("InputT", bound=UnifiedInput)
OutputT = TypeVar("OutputT", bound=UnifiedOutput)


# ── Custom field helpers ────────────────────────────────────────────────────


def apply_custom_fields(
    payload: dict[str, Any],
    entries: Iterable[dict[str, Any]],
    mappings: Iterable[FieldMapping],
) -> dict[str, Any]:
    """Write canonical custom-field values under their provider property names."""
    values: dict[str, Any] = {}
    for entry in entries or []:
        values.update(entry)
    for mapping in mappings or []:
        if mapping.slug in values and values[mapping.slug] is not None:
            payload[mapping.remote_id] = values[mapping.slug]
    return payload


def collect_custom_fields(
    properties: dict[str, Any] | None,
    mappings: Iterable[FieldMapping],
) -> list[dict[str, Any]]:
    """Copy mapped provider properties into ``[{slug: value}]`` entries.

    Properties without a mapping are dropped. Two mappings on the same
    provider property collapse into one entry: the later mapping wins.
    """
    if not properties:
        return []
    by_property: dict[str, dict[str, Any]] = {}
    for mapping in mappings or []:
        if mapping.remote_id in properties:
            by_property[mapping.remote_id] = {mapping.slug: properties[mapping.remote_id]}
    return list(by_property.values())


def as_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def nested_id(value: Any) -> Any:
    """Providers embed references either as scalars or as ``{"id": ...}`` objects."""
    if isinstance(value, dict):
        return value.get("id")
    return value


# ── Mapper ──────────────────────────────────────────────────────────────────


class Mapper(ABC, Generic[InputT, OutputT]):
    provider: Provider
    kind: ObjectKind

    async def desunify(
        self,
        source: InputT,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        raise ValidationError(
            f"{self.kind.value} records cannot be written to {self.provider.value}",
            provider=self.provider.value,
            object_kind=self.kind.value,
        )

    @overload
    async def unify(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping] | None = ...,
        lookup: RemoteIdLookup | None = ...,
    ) -> OutputT: ...

    @overload
    async def unify(
        self,
        source: list[dict[str, Any]],
        field_mappings: list[FieldMapping] | None = ...,
        lookup: RemoteIdLookup | None = ...,
    ) -> list[OutputT]: ...

    async def unify(self, source, field_mappings=None, lookup=None):
        """One record in, one out; a sequence in, a sequence out."""
        mappings = list(field_mappings or [])
        if isinstance(source, (list, tuple)):
            return [await self.unify_one(self._checked(item), mappings, lookup) for item in source]
        return await self.unify_one(self._checked(source), mappings, lookup)

    def malformed(self, message: str) -> UpstreamError:
        return UpstreamError(
            message,
            reason=UpstreamError.MALFORMED,
            provider=self.provider.value,
            object_kind=self.kind.value,
        )

    def _checked(self, raw: Any) -> dict[str, Any]:
        if not isinstance(raw, dict):
            raise self.malformed(f"Expected a {self.kind.value} record object, got {type(raw).__name__}")
        return raw

    @abstractmethod
    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> OutputT:
        ...

    def origin_id(self, raw: Any) -> str | None:
        """Provider-native identifier of a raw record, or None when absent."""
        if not isinstance(raw, dict):
            return None
        value = raw.get("id")
        if value is None or value == "":
            return None
        return str(value)


async def resolve_canonical(lookup: RemoteIdLookup | None, kind: str, remote_id: Any) -> uuid.UUID | None:
    if lookup is None or remote_id in (None, ""):
        return None
    return await lookup.canonical_id(kind, remote_id)


async def resolve_remote(lookup: RemoteIdLookup | None, kind: str, canonical_id: uuid.UUID | None) -> str | None:
    if lookup is None or canonical_id is None:
        return None
    return await lookup.remote_id(kind, canonical_id)


# ── Adapter ─────────────────────────────────────────────────────────────────


class Adapter(ABC):
    """Push/pull contract implemented by each provider client."""

    provider: Provider
    kind: ObjectKind

    @abstractmethod
    async def push(
        self,
        payload: dict[str, Any],
        connection: "Connection",
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        """Create the record upstream; ``data`` is the provider's created record."""
        ...

    @abstractmethod
    async def pull(
        self,
        connection: "Connection",
        extra_properties: list[str] | None = None,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        """Fetch records; ``data`` is a list of raw provider records."""
        ...
