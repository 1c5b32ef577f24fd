"""Provider registry: ``(object kind, provider) -> (adapter, mapper)``.

The table is built once, explicitly, by :func:`build_registry`. Nothing
registers itself on import or construction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import UnifiedSettings, settings as default_settings
from ..errors import UnknownProviderError
from .base import Adapter, Mapper, ObjectKind, Provider, providers_for
from .freshsales import FreshsalesAdapter, FreshsalesCompanyMapper, FreshsalesNoteMapper
from .front import FrontCommentAdapter, FrontCommentMapper
from .hubspot import (
    COMPANY_PROPERTIES,
    NOTE_PROPERTIES,
    HubspotCompanyMapper,
    HubspotNoteMapper,
    HubspotObjectAdapter,
    HubspotOwnerAdapter,
    HubspotUserMapper,
)
from .pipedrive import (
    PipedriveAdapter,
    PipedriveCompanyMapper,
    PipedriveNoteMapper,
    PipedriveUserMapper,
)
from .zendesk import ZendeskCommentAdapter, ZendeskCommentMapper
from .zoho import ACCOUNT_FIELDS, NOTE_FIELDS, ZohoAdapter, ZohoCompanyMapper, ZohoNoteMapper

logger = logging.getLogger(__name__)

# Pairs the scheduled sweeps never visit even if something is registered.
SYNC_EXCLUSIONS: dict[ObjectKind, frozenset[Provider]] = {
    ObjectKind.USER: frozenset({Provider.ZOHO, Provider.FRESHSALES}),
}


@dataclass(frozen=True)
class ProviderBinding:
    adapter: Adapter
    mapper: Mapper


class ProviderRegistry:
    def __init__(self) -> None:
        self._bindings: dict[tuple[ObjectKind, Provider], ProviderBinding] = {}

    def register(self, kind: ObjectKind, provider: Provider, binding: ProviderBinding) -> None:
        """Bind a pair; registering the same pair again replaces the binding."""
        key = (ObjectKind(kind), Provider(provider))
        if key in self._bindings:
            logger.info("Replacing %s binding for %s", key[0].value, key[1].value)
        self._bindings[key] = binding

    def get(self, kind: ObjectKind | str, provider: Provider | str) -> ProviderBinding:
        try:
            key = (ObjectKind(kind), Provider(provider))
        except ValueError as e:
            raise UnknownProviderError(
                f"Unknown provider or object kind: {provider}/{kind}",
                provider=str(provider),
                object_kind=str(kind),
            ) from e
        binding = self._bindings.get(key)
        if binding is None:
            raise UnknownProviderError(
                f"No adapter registered for {key[0].value} on {key[1].value}",
                provider=key[1].value,
                object_kind=key[0].value,
            )
        return binding

    def providers(self, kind: ObjectKind) -> list[Provider]:
        """Registered providers for ``kind``, in declaration order."""
        return [p for p in providers_for(kind) if (kind, p) in self._bindings]

    def sync_providers(self, kind: ObjectKind) -> list[Provider]:
        excluded = SYNC_EXCLUSIONS.get(kind, frozenset())
        return [p for p in self.providers(kind) if p not in excluded]

    def __contains__(self, key: tuple[ObjectKind, Provider]) -> bool:
        return key in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)


def build_registry(
    config: UnifiedSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderRegistry:
    """Build the full provider table for every supported (kind, provider) pair."""
    cfg = config or default_settings
    urls = cfg.provider_base_urls
    http: dict[str, Any] = {"timeout_seconds": cfg.provider_timeout_seconds, "transport": transport}

    registry = ProviderRegistry()
    table: list[tuple[ObjectKind, Provider, Adapter, Mapper]] = [
        # HubSpot
        (ObjectKind.COMPANY, Provider.HUBSPOT,
         HubspotObjectAdapter(ObjectKind.COMPANY, "companies", COMPANY_PROPERTIES, urls["hubspot"], **http),
         HubspotCompanyMapper()),
        (ObjectKind.NOTE, Provider.HUBSPOT,
         HubspotObjectAdapter(ObjectKind.NOTE, "notes", NOTE_PROPERTIES, urls["hubspot"], **http),
         HubspotNoteMapper()),
        (ObjectKind.USER, Provider.HUBSPOT,
         HubspotOwnerAdapter(urls["hubspot"], **http),
         HubspotUserMapper()),
        # Pipedrive
        (ObjectKind.COMPANY, Provider.PIPEDRIVE,
         PipedriveAdapter(ObjectKind.COMPANY, "organizations", urls["pipedrive"], **http),
         PipedriveCompanyMapper()),
        (ObjectKind.NOTE, Provider.PIPEDRIVE,
         PipedriveAdapter(ObjectKind.NOTE, "notes", urls["pipedrive"], **http),
         PipedriveNoteMapper()),
        (ObjectKind.USER, Provider.PIPEDRIVE,
         PipedriveAdapter(ObjectKind.USER, "users", urls["pipedrive"], **http),
         PipedriveUserMapper()),
        # Zoho
        (ObjectKind.COMPANY, Provider.ZOHO,
         ZohoAdapter(ObjectKind.COMPANY, "Accounts", ACCOUNT_FIELDS, urls["zoho"], **http),
         ZohoCompanyMapper()),
        (ObjectKind.NOTE, Provider.ZOHO,
         ZohoAdapter(ObjectKind.NOTE, "Notes", NOTE_FIELDS, urls["zoho"], **http),
         ZohoNoteMapper()),
        # Freshsales
        (ObjectKind.COMPANY, Provider.FRESHSALES,
         FreshsalesAdapter(ObjectKind.COMPANY, "sales_accounts", "sales_account", "sales_accounts",
                           urls["freshsales"], **http),
         FreshsalesCompanyMapper()),
        (ObjectKind.NOTE, Provider.FRESHSALES,
         FreshsalesAdapter(ObjectKind.NOTE, "notes", "note", "notes", urls["freshsales"], **http),
         FreshsalesNoteMapper()),
        # Ticketing
        (ObjectKind.COMMENT, Provider.ZENDESK,
         ZendeskCommentAdapter(urls["zendesk"], **http),
         ZendeskCommentMapper()),
        (ObjectKind.COMMENT, Provider.FRONT,
         FrontCommentAdapter(urls["front"], **http),
         FrontCommentMapper()),
    ]
    for kind, provider, adapter, mapper in table:
        registry.register(kind, provider, ProviderBinding(adapter=adapter, mapper=mapper))

    logger.info("Provider registry built with %d bindings", len(registry))
    return registry
