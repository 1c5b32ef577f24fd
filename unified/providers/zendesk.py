"""Zendesk: ticket comments."""

from __future__ import annotations

from typing import Any

from ..errors import UpstreamError
from ..models.tenant import Connection
from ..schemas.sync import AdapterResponse
from ..schemas.unified import FieldMapping, UnifiedCommentInput, UnifiedCommentOutput
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


class ZendeskCommentMapper(Mapper[UnifiedCommentInput, UnifiedCommentOutput]):
    """Zendesk exposes visibility as ``public``, the inverse of ``is_private``."""

    provider = Provider.ZENDESK
    kind = ObjectKind.COMMENT

    async def desunify(
        self,
        source: UnifiedCommentInput,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if source.html_body:
            result["html_body"] = source.html_body
        else:
            result["body"] = source.body
        result["public"] = not bool(source.is_private)

        author_id = await resolve_remote(lookup, "user", source.user_id)
        if author_id:
            result["author_id"] = as_int(author_id) or author_id
        return apply_custom_fields(result, source.field_mappings, field_mappings or [])

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedCommentOutput:
        public = source.get("public")
        author_id = source.get("author_id")
        user_id = await resolve_canonical(lookup, "user", author_id)
        return UnifiedCommentOutput(
            body=source.get("body") or source.get("plain_body"),
            html_body=source.get("html_body"),
            is_private=None if public is None else not public,
            creator_type="user" if user_id else ("contact" if author_id else None),
            user_id=user_id,
            field_mappings=collect_custom_fields(source, field_mappings),
        )


class ZendeskCommentAdapter(HttpAdapter):
    """Comments hang off a ticket; creating one is a ticket update."""

    provider = Provider.ZENDESK
    kind = ObjectKind.COMMENT

    async def push(
        self,
        payload: dict[str, Any],
        connection: Connection,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        ticket_id = self._require_parent(parent_remote_id, connection)
        data = await self._request(
            "PUT",
            f"/api/v2/tickets/{ticket_id}.json",
            connection,
            json={"ticket": {"comment": payload}},
        )

        # The created comment only appears as an event on the ticket audit.
        audit = data.get("audit") if isinstance(data, dict) else None
        events = audit.get("events") if isinstance(audit, dict) else None
        for event in events or []:
            if isinstance(event, dict) and event.get("type") == "Comment":
                return AdapterResponse(
                    data=event, status_code=201, message="Zendesk comment created"
                )
        raise self._error(
            f"{self.label} update response has no comment event",
            connection,
            reason=UpstreamError.MALFORMED,
        )

    async def pull(
        self,
        connection: Connection,
        extra_properties: list[str] | None = None,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        ticket_id = self._require_parent(parent_remote_id, connection)
        data = await self._request(
            "GET", f"/api/v2/tickets/{ticket_id}/comments.json", connection
        )
        return AdapterResponse(
            data=self._items(data, "comments", connection),
            status_code=200,
            message="Zendesk comments retrieved",
        )
