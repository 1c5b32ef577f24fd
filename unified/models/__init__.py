"""Unified models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin, RemoteSyncMixin
from .tenant import Tenant, Connection
from .user import User
from .company import Company
from .note import Note
from .ticketing import Ticket, Comment
from .contact_info import EmailAddress, PhoneNumber, Address
from .field_mapping import Attribute, Entity, AttributeValue
from .remote_data import RemoteData
from .event import SyncEvent

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "TenantMixin",
    "RemoteSyncMixin",
    "Tenant",
    "Connection",
    "User",
    "Company",
    "Note",
    "Ticket",
    "Comment",
    "EmailAddress",
    "PhoneNumber",
    "Address",
    "Attribute",
    "Entity",
    "AttributeValue",
    "RemoteData",
    "SyncEvent",
]
