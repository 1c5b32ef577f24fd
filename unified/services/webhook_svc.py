"""Outbound webhook notifications.

Deliveries are fire-and-forget: :meth:`WebhookNotifier.notify` schedules a
background task and returns immediately. Delivery failures are logged and
never reach the caller.

When a signing secret is configured each request carries::

    X-Webhook-Timestamp: <unix seconds>
    X-Webhook-Signature: sha256=<hex HMAC-SHA256 of "<timestamp>.<body>">
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

import httpx

from ..config import UnifiedSettings, settings as default_settings

logger = logging.getLogger(__name__)


def sign_payload(secret: str, timestamp: int, body: str) -> str:
    message = f"{timestamp}.{body}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _serialize(record: Any) -> Any:
    if hasattr(record, "to_wire"):
        return record.to_wire()
    if hasattr(record, "model_dump"):
        return record.model_dump(mode="json")
    return record


class WebhookNotifier:
    def __init__(
        self,
        config: UnifiedSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or default_settings
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.config.webhook_enabled and bool(self.config.webhook_urls_list)

    def build_payload(
        self,
        records: Iterable[Any],
        event_type: str,
        event_id: uuid.UUID | str | None = None,
    ) -> dict[str, Any]:
        return {
            "id_event": str(event_id) if event_id else None,
            "type": event_type,
            "data": [_serialize(r) for r in records],
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

    def notify(
        self,
        records: Iterable[Any],
        event_type: str,
        tenant_id: uuid.UUID | str,
        event_id: uuid.UUID | str | None = None,
        *,
        project_id: str | None = None,
    ) -> asyncio.Task | None:
        """Schedule delivery and return immediately."""
        if not self.enabled:
            return None

        payload = self.build_payload(records, event_type, event_id)
        payload["tenant_id"] = str(tenant_id)
        if project_id:
            payload["project_id"] = project_id

        task = asyncio.create_task(self.deliver(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def deliver(self, payload: dict[str, Any]) -> int:
        """POST ``payload`` to every configured endpoint; returns how many accepted it."""
        body = json.dumps(payload, default=str)
        headers = {"Content-Type": "application/json"}
        secret = self.config.webhook_signing_secret.strip()
        if secret:
            timestamp = int(time.time())
            headers["X-Webhook-Timestamp"] = str(timestamp)
            headers["X-Webhook-Signature"] = f"sha256={sign_payload(secret, timestamp, body)}"

        delivered = 0
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.webhook_timeout_seconds),
            transport=self._transport,
        ) as client:
            for url in self.config.webhook_urls_list:
                try:
                    resp = await client.post(url, content=body, headers=headers)
                    resp.raise_for_status()
                    delivered += 1
                except httpx.HTTPError:
                    logger.exception("Webhook delivery of %s to %s failed", payload.get("type"), url)
        return delivered

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used on shutdown)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
