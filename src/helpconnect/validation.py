"""
validation.py
This code decides whether an untrusted record (a live change event, a form
payload, anything that did not come out of our own store) is a help request.

Everything that enters the feed goes through validate_and_convert() first, so the
rest of the code never has to check types again.
"""

from collections.abc import Mapping
from enum import Enum
import logging

from jsonschema import validate, ValidationError

from helpconnect.errors import InvalidRequestData
from helpconnect.models import HelpRequest, URGENCY_VALUES, STATUS_VALUES

logger = logging.getLogger(__name__)

_NON_EMPTY_STRING = {"type": "string", "minLength": 1}
_STRING_OR_NULL = {"type": ["string", "null"]}

# A help request is an object with these fields (extra keys are ignored)
REQUEST_SCHEMA = {
    "type": "object",
    "properties": {
        "id": _NON_EMPTY_STRING,
        "user_id": _NON_EMPTY_STRING,
        "title": _NON_EMPTY_STRING,
        "description": _NON_EMPTY_STRING,
        "category": _NON_EMPTY_STRING,
        "urgency_level": {"enum": URGENCY_VALUES},
        "status": {"enum": STATUS_VALUES},
        "location": _STRING_OR_NULL,
        "geo_location": _STRING_OR_NULL,
        # JSON Schema booleans are strict: 1, "true" or "yes" do not pass
        "location_hidden": {"type": "boolean"},
        "created_at": _NON_EMPTY_STRING,
        "updated_at": _NON_EMPTY_STRING,
    },
    "required": [
        "id",
        "user_id",
        "title",
        "description",
        "category",
        "urgency_level",
        "status",
        "location_hidden",
        "created_at",
        "updated_at",
    ],
}

_ENUM_FIELDS = ("urgency_level", "status")


def _coerce_enum(value):
    """Enum fields are compared as strings, since payloads are not typed."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def check_request(record) -> HelpRequest:
    """
    Turn a record into a HelpRequest or raise InvalidRequestData.
    The record itself is never modified.
    """
    if not isinstance(record, Mapping):
        raise InvalidRequestData(f"Expected an object, got {type(record).__name__}")

    candidate = dict(record)
    for field in _ENUM_FIELDS:
        if field in candidate:
            candidate[field] = _coerce_enum(candidate[field])

    try:
        validate(instance=candidate, schema=REQUEST_SCHEMA)
    except ValidationError as error:
        raise InvalidRequestData(error.message) from error

    return HelpRequest(
        id=candidate["id"],
        user_id=candidate["user_id"],
        title=candidate["title"],
        description=candidate["description"],
        category=candidate["category"],
        urgency_level=candidate["urgency_level"],
        status=candidate["status"],
        location=candidate.get("location"),
        geo_location=candidate.get("geo_location"),
        location_hidden=candidate["location_hidden"],
        created_at=candidate["created_at"],
        updated_at=candidate["updated_at"],
    )


def validate_and_convert(record):
    """Return a HelpRequest, or None if the record is not a valid help request."""
    try:
        return check_request(record)
    except InvalidRequestData as error:
        logger.debug(f"Rejected help request record: {error}")
        return None


def is_valid_request(record) -> bool:
    if isinstance(record, HelpRequest):
        record = record.to_dict()
    return validate_and_convert(record) is not None
