"""Error taxonomy shared by the write path, the read path and the sweeps.

Every error carries the provider / object kind / tenant it happened under so
that a caller can retry or report without re-deriving the context.
"""

from __future__ import annotations

import uuid
from typing import Any


class UnifiedError(Exception):
    """Base class for every categorized failure."""

    category = "error"

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        object_kind: str | None = None,
        tenant_id: uuid.UUID | str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.object_kind = object_kind
        self.tenant_id = str(tenant_id) if tenant_id is not None else None

    def context(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "message": self.message,
            "provider": self.provider,
            "object_kind": self.object_kind,
            "tenant_id": self.tenant_id,
        }

    def __str__(self) -> str:
        parts = [f"{k}={v}" for k, v in (
            ("provider", self.provider),
            ("kind", self.object_kind),
            ("tenant", self.tenant_id),
        ) if v]
        suffix = f" ({', '.join(parts)})" if parts else ""
        return f"{self.message}{suffix}"


class NotFoundError(UnifiedError):
    """Unknown tenant, or a record that does not exist."""

    category = "not_found"


class ValidationError(UnifiedError):
    """Input refers to something that does not exist or lacks required data."""

    category = "validation"


class MissingOriginIdError(ValidationError):
    """A provider record came back without its native identifier."""


class UnknownProviderError(NotFoundError):
    """No adapter is registered for a (kind, provider) pair."""


class UpstreamError(UnifiedError):
    """Adapter / network failure talking to a provider."""

    category = "upstream"

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    UNKNOWN = "unknown"

    def __init__(
        self,
        message: str,
        *,
        reason: str = UNKNOWN,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason
        self.status_code = status_code

    def context(self) -> dict[str, Any]:
        ctx = super().context()
        ctx["reason"] = self.reason
        ctx["status_code"] = self.status_code
        return ctx


class PersistenceError(UnifiedError):
    """The store rejected a write."""

    category = "persistence"
