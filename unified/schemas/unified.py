"""Canonical (unified) input/output shapes for every object kind.

Outputs serialize to the stable wire shape::

    {id, <kind scalars>, field_mappings: [{slug: value}, ...], <sub-collections>, remote_data?}
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict


class FieldMapping(BaseModel):
    """A tenant custom field as seen by mappers: canonical slug <-> provider property."""

    model_config = ConfigDict(frozen=True)

    slug: str
    remote_id: str


class EmailAddressSchema(BaseModel):
    email_address: str
    email_address_type: str | None = None


class PhoneNumberSchema(BaseModel):
    phone_number: str
    phone_type: str | None = None


class AddressSchema(BaseModel):
    street_1: str | None = None
    street_2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    address_type: str | None = None


class UnifiedInput(BaseModel):
    field_mappings: list[dict[str, Any]] = []

    def custom_field(self, slug: str) -> Any:
        for entry in self.field_mappings:
            if slug in entry:
                return entry[slug]
        return None


class UnifiedOutput(UnifiedInput):
    id: uuid.UUID | None = None
    remote_id: str | None = None
    remote_platform: str | None = None
    remote_data: Any = None

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        if self.remote_data is None:
            data.pop("remote_data", None)
        return data


# ── CRM: company ────────────────────────────────────────────────────────────


class UnifiedCompanyInput(UnifiedInput):
    name: str | None = None
    industry: str | None = None
    number_of_employees: int | None = None
    user_id: uuid.UUID | None = None
    email_addresses: list[EmailAddressSchema] = []
    phone_numbers: list[PhoneNumberSchema] = []
    addresses: list[AddressSchema] = []


class UnifiedCompanyOutput(UnifiedOutput, UnifiedCompanyInput):
    pass


# ── CRM: note ───────────────────────────────────────────────────────────────


class UnifiedNoteInput(UnifiedInput):
    content: str | None = None
    company_id: uuid.UUID | None = None
    user_id: uuid.UUID | None = None


class UnifiedNoteOutput(UnifiedOutput, UnifiedNoteInput):
    pass


# ── CRM: user (read-only upstream) ──────────────────────────────────────────


class UnifiedUserInput(UnifiedInput):
    name: str | None = None
    email: str | None = None


class UnifiedUserOutput(UnifiedOutput, UnifiedUserInput):
    pass


# ── Ticketing: comment ──────────────────────────────────────────────────────


class UnifiedCommentInput(UnifiedInput):
    body: str | None = None
    html_body: str | None = None
    is_private: bool | None = None
    creator_type: str | None = None
    ticket_id: uuid.UUID | None = None
    user_id: uuid.UUID | None = None


class UnifiedCommentOutput(UnifiedOutput, UnifiedCommentInput):
    pass
