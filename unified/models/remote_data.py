"""Raw provider payload preservation.

One row per canonical record holding the verbatim payload last seen from the
provider; every sync overwrites it wholesale.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin


class RemoteData(UUIDMixin, Base):
    __tablename__ = "remote_data"

    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, index=True)
    format: Mapped[str] = mapped_column(String(20), default="json")
    payload_json: Mapped[dict | list] = mapped_column(JSON)
    captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
