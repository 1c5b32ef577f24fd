"""Ticketing vertical: tickets (reference only) and their comments."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin


class Ticket(UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin, Base):
    """Parent of comments; comments resolve the provider ticket id through it."""

    __tablename__ = "tcg_ticket"

    name: Mapped[str | None] = mapped_column(String(255), default=None)
    status: Mapped[str | None] = mapped_column(String(50), default=None)

    def __repr__(self) -> str:
        return f"<Ticket {self.name!r}>"


class Comment(UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin, Base):
    __tablename__ = "tcg_comment"

    body: Mapped[str | None] = mapped_column(Text, default=None)
    html_body: Mapped[str | None] = mapped_column(Text, default=None)
    is_private: Mapped[bool | None] = mapped_column(Boolean, default=None)
    creator_type: Mapped[str | None] = mapped_column(String(20), default=None)  # user, contact
    ticket_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tcg_ticket.id", ondelete="CASCADE"), default=None, index=True
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("crm_user.id", ondelete="SET NULL"), default=None
    )

    def __repr__(self) -> str:
        return f"<Comment ticket={self.ticket_id}>"
