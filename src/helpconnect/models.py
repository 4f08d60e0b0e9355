"""
models.py
----------
The help request entity shared by the write and read services.

A HelpRequest is only ever built from data that already passed
helpconnect.validation (or came from our own store), so its fields can be trusted.
"""

import re
from dataclasses import dataclass, asdict, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RequestStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


URGENCY_VALUES = [level.value for level in UrgencyLevel]
STATUS_VALUES = [status.value for status in RequestStatus]

# The feed filter accepts every status plus "all"
ALL_STATUSES = "all"

CATEGORIES = [
    "General Help",
    "Transportation",
    "Shopping",
    "Household",
    "Childcare",
    "Pet Care",
    "Medical",
    "Other",
]

URGENCY_LABELS = {
    "low": "Low - Can wait a few days",
    "medium": "Medium - Within 24 hours",
    "high": "High - Immediate assistance needed",
}

STATUS_LABELS = {
    "open": "Open",
    "in_progress": "In Progress",
    "completed": "Completed",
    "cancelled": "Cancelled",
}

_POINT_PATTERN = re.compile(r"^\s*POINT\s*\(\s*(-?[\d.]+)\s+(-?[\d.]+)\s*\)\s*$", re.IGNORECASE)


def utc_now_iso() -> str:
    """Timestamp used for created_at / updated_at."""
    return datetime.now(timezone.utc).isoformat()


def format_point(lat: float, lon: float) -> str:
    """Encode coordinates the way the store keeps them: POINT(<lon> <lat>)."""
    return f"POINT({lon} {lat})"


def parse_point(point: Optional[str]) -> Optional[Tuple[float, float]]:
    """Decode a POINT(<lon> <lat>) string into (lat, lon). Returns None if it can't."""
    if not point:
        return None
    match = _POINT_PATTERN.match(point)
    if not match:
        return None
    lon, lat = float(match.group(1)), float(match.group(2))
    return lat, lon


@dataclass(frozen=True)
class HelpRequest:
    """
    A community help request.

    Fields mirror the help_requests table. Timestamps are ISO-8601 strings,
    geo_location is a POINT(<lon> <lat>) string or None.
    """

    id: str
    user_id: str
    title: str
    description: str
    category: str
    urgency_level: str
    status: str
    created_at: str
    updated_at: str
    location: Optional[str] = None
    geo_location: Optional[str] = None
    location_hidden: bool = False

    def is_owner(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id == self.user_id

    def display_location(self, viewer_id: Optional[str] = None) -> Optional[str]:
        """The location text a viewer may see, or None if there is none or it is hidden."""
        if not self.location:
            return None
        if self.location_hidden and not self.is_owner(viewer_id):
            return None
        return self.location

    def coordinates(self) -> Optional[Tuple[float, float]]:
        return parse_point(self.geo_location)

    def with_changes(self, **changes) -> "HelpRequest":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)

    def to_public_dict(self, viewer_id: Optional[str] = None) -> dict:
        """
        Projection sent to a viewer. When the location is hidden from this viewer,
        the location text and the point are left out entirely.
        """
        data = self.to_dict()
        data["urgency_label"] = URGENCY_LABELS.get(self.urgency_level, self.urgency_level)
        data["status_label"] = STATUS_LABELS.get(self.status, self.status)
        data["is_owner"] = self.is_owner(viewer_id)

        location = self.display_location(viewer_id)
        if location is None:
            data.pop("location")
            data.pop("geo_location")
            data["coordinates"] = None
        else:
            coords = self.coordinates()
            data["coordinates"] = {"lat": coords[0], "lon": coords[1]} if coords else None
        return data
