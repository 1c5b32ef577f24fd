"""Front: conversation comments.

Front comments are internal discussion, so they are always private.
"""

from __future__ import annotations

from typing import Any

from ..models.tenant import Connection
from ..schemas.sync import AdapterResponse
from ..schemas.unified import FieldMapping, UnifiedCommentInput, UnifiedCommentOutput
from .base import (
    Mapper,
    ObjectKind,
    Provider,
    RemoteIdLookup,
    apply_custom_fields,
    collect_custom_fields,
    nested_id,
    resolve_canonical,
    resolve_remote,
)
from .http import HttpAdapter


class FrontCommentMapper(Mapper[UnifiedCommentInput, UnifiedCommentOutput]):
    provider = Provider.FRONT
    kind = ObjectKind.COMMENT

    async def desunify(
        self,
        source: UnifiedCommentInput,
        field_mappings: list[FieldMapping] | None = None,
        lookup: RemoteIdLookup | None = None,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {"body": source.body or source.html_body}
        author_id = await resolve_remote(lookup, "user", source.user_id)
        if author_id:
            result["author_id"] = author_id
        return apply_custom_fields(result, source.field_mappings, field_mappings or [])

    async def unify_one(
        self,
        source: dict[str, Any],
        field_mappings: list[FieldMapping],
        lookup: RemoteIdLookup | None,
    ) -> UnifiedCommentOutput:
        user_id = await resolve_canonical(lookup, "user", nested_id(source.get("author")))
        return UnifiedCommentOutput(
            body=source.get("body"),
            is_private=True,
            creator_type="user" if user_id else None,
            user_id=user_id,
            field_mappings=collect_custom_fields(source, field_mappings),
        )


class FrontCommentAdapter(HttpAdapter):
    provider = Provider.FRONT
    kind = ObjectKind.COMMENT

    async def push(
        self,
        payload: dict[str, Any],
        connection: Connection,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        conversation_id = self._require_parent(parent_remote_id, connection)
        data = await self._request(
            "POST", f"/conversations/{conversation_id}/comments", connection, json=payload
        )
        return AdapterResponse(
            data=self._record(data, None, connection),
            status_code=201,
            message="Front comment created",
        )

    async def pull(
        self,
        connection: Connection,
        extra_properties: list[str] | None = None,
        *,
        parent_remote_id: str | None = None,
    ) -> AdapterResponse:
        conversation_id = self._require_parent(parent_remote_id, connection)
        data = await self._request(
            "GET", f"/conversations/{conversation_id}/comments", connection
        )
        return AdapterResponse(
            data=self._items(data, "_results", connection),
            status_code=200,
            message="Front comments retrieved",
        )
