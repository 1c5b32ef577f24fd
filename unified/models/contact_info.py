"""Multi-valued sub-collections owned by canonical records.

Rows point at their owner polymorphically (``owner_type`` + ``owner_id``) and
keep a ``position`` so pairwise-by-index reconciliation is stable.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin


class OwnedRowMixin:
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    owner_type: Mapped[str] = mapped_column(String(50))  # company, ...
    position: Mapped[int] = mapped_column(Integer, default=0)


class EmailAddress(UUIDMixin, TimestampMixin, OwnedRowMixin, Base):
    __tablename__ = "email_address"
    __table_args__ = (Index("ix_email_owner_position", "owner_id", "position"),)

    email_address: Mapped[str] = mapped_column(String(255))
    email_address_type: Mapped[str | None] = mapped_column(String(50), default=None)


class PhoneNumber(UUIDMixin, TimestampMixin, OwnedRowMixin, Base):
    __tablename__ = "phone_number"
    __table_args__ = (Index("ix_phone_owner_position", "owner_id", "position"),)

    phone_number: Mapped[str] = mapped_column(String(50))
    phone_type: Mapped[str | None] = mapped_column(String(50), default=None)


class Address(UUIDMixin, TimestampMixin, OwnedRowMixin, Base):
    __tablename__ = "address"
    __table_args__ = (Index("ix_address_owner_position", "owner_id", "position"),)

    street_1: Mapped[str | None] = mapped_column(String(255), default=None)
    street_2: Mapped[str | None] = mapped_column(String(255), default=None)
    city: Mapped[str | None] = mapped_column(String(100), default=None)
    state: Mapped[str | None] = mapped_column(String(100), default=None)
    postal_code: Mapped[str | None] = mapped_column(String(20), default=None)
    country: Mapped[str | None] = mapped_column(String(100), default=None)
    address_type: Mapped[str | None] = mapped_column(String(50), default=None)
