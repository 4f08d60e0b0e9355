"""
models.py
----------
Defines the PostgreSQL tables for the write service using SQLAlchemy ORM.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Boolean, DateTime, Index

from helpconnect.models import HelpRequest
from .session import Base


def _new_id():
    return str(uuid.uuid4())


def _utc_now():
    return datetime.now(timezone.utc)


def _iso(value):
    # SQLite hands datetimes back without tzinfo; everything we write is UTC
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class HelpRequestRow(Base):
    """
    Represents the help_requests table.

    Columns:
        id              - uuid string assigned on insert
        user_id         - owner of the request
        urgency_level   - low / medium / high
        status          - open / in_progress / completed / cancelled
        location        - free text address (optional)
        geo_location    - POINT(<lon> <lat>) derived from location (optional)
        location_hidden - when true, location is not shown to other users
    """
    __tablename__ = "help_requests"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(64), nullable=False)
    urgency_level = Column(String(16), nullable=False)
    location = Column(Text, nullable=True)
    geo_location = Column(Text, nullable=True)
    location_hidden = Column(Boolean, nullable=False, default=False)
    status = Column(String(16), nullable=False, default="open")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now)

    __table_args__ = (
        Index("idx_help_requests_created_at", "created_at"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "urgency_level": self.urgency_level,
            "location": self.location,
            "geo_location": self.geo_location,
            "location_hidden": bool(self.location_hidden),
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def to_entity(self) -> HelpRequest:
        return HelpRequest(**self.to_dict())

    def __repr__(self):
        return f"<HelpRequestRow(id={self.id}, status={self.status})>"
