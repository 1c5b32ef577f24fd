"""httpx-backed adapter base shared by the concrete provider clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import UpstreamError, ValidationError
from ..models.tenant import Connection
from .base import Adapter

logger = logging.getLogger(__name__)


def _reason_for_status(status_code: int) -> str:
    if status_code in (401, 403):
        return UpstreamError.AUTH
    if status_code == 429:
        return UpstreamError.RATE_LIMIT
    if status_code in (408, 504):
        return UpstreamError.TIMEOUT
    return UpstreamError.UNKNOWN


class HttpAdapter(Adapter):
    """Adapter talking JSON over HTTPS with a bearer token from the connection."""

    auth_scheme = "Bearer"

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def label(self) -> str:
        return f"{self.provider.value.capitalize()} {self.kind.value}"

    def _headers(self, connection: Connection) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"{self.auth_scheme} {connection.access_token}",
        }

    def _auth_params(self, connection: Connection) -> dict[str, str]:
        return {}

    def _url(self, connection: Connection, path: str) -> str:
        base = (connection.account_url or self.base_url).rstrip("/")
        return f"{base}{path}"

    def _error(self, message: str, connection: Connection, **kwargs: Any) -> UpstreamError:
        return UpstreamError(
            message,
            provider=self.provider.value,
            object_kind=self.kind.value,
            tenant_id=connection.tenant_id,
            **kwargs,
        )

    async def _request(
        self,
        method: str,
        path: str,
        connection: Connection,
        *,
        params: Any = None,
        json: Any = None,
    ) -> Any:
        query: list[tuple[str, str]] = list(self._auth_params(connection).items())
        if isinstance(params, dict):
            query.extend((k, str(v)) for k, v in params.items())
        elif params:
            query.extend(params)

        url = self._url(connection, path)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            ) as client:
                resp = await client.request(
                    method,
                    url,
                    headers=self._headers(connection),
                    params=query or None,
                    json=json,
                )
                resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise self._error(f"{self.label} request timed out", connection,
                              reason=UpstreamError.TIMEOUT) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise self._error(
                f"{self.label} request failed ({status})",
                connection,
                reason=_reason_for_status(status),
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            raise self._error(f"{self.label} request failed: {e}", connection) from e

        logger.debug("%s %s -> %s", method, path, resp.status_code)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise self._error(f"{self.label} returned non-JSON body", connection,
                              reason=UpstreamError.MALFORMED,
                              status_code=resp.status_code) from e

    def _items(self, body: Any, key: str, connection: Connection) -> list[dict]:
        """Extract the record list under ``key``; anything else is malformed."""
        raw = body.get(key) if isinstance(body, dict) else None
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise self._error(f"{self.label} response has no '{key}' list", connection,
                              reason=UpstreamError.MALFORMED)
        return [item for item in raw if isinstance(item, dict)]

    def _record(self, body: Any, key: str | None, connection: Connection) -> dict:
        raw = body.get(key) if key and isinstance(body, dict) else body
        if not isinstance(raw, dict):
            raise self._error(f"{self.label} response has no record", connection,
                              reason=UpstreamError.MALFORMED)
        return raw

    def _require_parent(self, parent_remote_id: str | None, connection: Connection) -> str:
        if not parent_remote_id:
            raise ValidationError(
                f"{self.label} requires a parent record id",
                provider=self.provider.value,
                object_kind=self.kind.value,
                tenant_id=connection.tenant_id,
            )
        return parent_remote_id
