"""Clean up contact sub-collections before they are persisted."""

from __future__ import annotations

import re

from ..schemas.unified import AddressSchema, EmailAddressSchema, PhoneNumberSchema

_PHONE_JUNK = re.compile(r"[^\d+]")
_ADDRESS_FIELDS = ("street_1", "street_2", "city", "state", "postal_code", "country")


def normalize_emails(emails: list[EmailAddressSchema]) -> list[EmailAddressSchema]:
    out: list[EmailAddressSchema] = []
    for item in emails or []:
        value = (item.email_address or "").strip().lower()
        if not value:
            continue
        out.append(
            EmailAddressSchema(
                email_address=value,
                email_address_type=(item.email_address_type or "work").lower(),
            )
        )
    return out


def normalize_phones(phones: list[PhoneNumberSchema]) -> list[PhoneNumberSchema]:
    out: list[PhoneNumberSchema] = []
    for item in phones or []:
        value = _PHONE_JUNK.sub("", item.phone_number or "")
        if not value.strip("+"):
            continue
        out.append(
            PhoneNumberSchema(
                phone_number=value,
                phone_type=(item.phone_type or "work").lower(),
            )
        )
    return out


def normalize_addresses(addresses: list[AddressSchema]) -> list[AddressSchema]:
    out: list[AddressSchema] = []
    for item in addresses or []:
        fields = {}
        for name in _ADDRESS_FIELDS:
            value = getattr(item, name)
            if isinstance(value, str):
                value = value.strip() or None
            fields[name] = value
        if not any(fields.values()):
            continue
        out.append(AddressSchema(address_type=(item.address_type or "primary").lower(), **fields))
    return out
