"""Sync schemas: adapter responses and per-unit results."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel


class AdapterResponse(BaseModel):
    """What every provider adapter returns from push/pull."""

    data: Any = None
    status_code: int = 200
    message: str = ""


class SyncResult(BaseModel):
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = []
    record_ids: list[uuid.UUID] = []

    @property
    def failed(self) -> int:
        return len(self.errors)

    def merge(self, other: "SyncResult") -> None:
        self.created += other.created
        self.updated += other.updated
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        self.record_ids.extend(other.record_ids)
