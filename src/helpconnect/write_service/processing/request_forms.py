"""
request_forms.py
Handles the "new help request" and "edit help request" forms.

Both follow the same steps:
    1. Read and check the form fields (urgency, status and category must be
       one of the allowed values, nothing is silently defaulted).
    2. Turn the location into coordinates, unless it is empty or hidden. If that
       fails the submission is blocked with a message the user can act on.
    3. Write to the store.
Every failure ends up in SubmissionResult.error; nothing here raises to the caller.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from helpconnect.errors import GeocodingError, NotOwnerError, RemoteWriteError
from helpconnect.models import (
    CATEGORIES,
    HelpRequest,
    RequestStatus,
    STATUS_VALUES,
    URGENCY_VALUES,
    format_point,
    utc_now_iso,
)
from helpconnect.write_service.ingestion.geocoder import geocode_address

logger = logging.getLogger(__name__)

GEO_ERROR = "Could not find coordinates for the provided location. Please check the address."
ACCESS_DENIED_ERROR = "You do not have permission to edit this request."
CREATE_FAILED_ERROR = "There was an error creating your help request. Please try again."
UPDATE_FAILED_ERROR = "There was an error updating your help request. Please try again."


class FormError(ValueError):
    """A form field is missing or has a value we do not accept."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field


@dataclass
class SubmissionResult:
    ok: bool
    request: Optional[HelpRequest] = None
    error: Optional[str] = None
    field: Optional[str] = None
    # True when the store could not be written (as opposed to a problem with the form)
    remote_failure: bool = False


def _text(form, name):
    value = form.get(name)
    if value is None:
        return ""
    return str(value).strip()


def _is_checked(form, name):
    # HTML checkboxes post "true"; JSON bodies may send a real boolean
    value = form.get(name)
    return value is True or (isinstance(value, str) and value.lower() == "true")


def read_form(form) -> dict:
    """Pull the help request fields out of a form (or JSON body) and check them."""
    title = _text(form, "title")
    if not title:
        raise FormError("Title is required", "title")

    description = _text(form, "description")
    if not description:
        raise FormError("Description is required", "description")

    category = _text(form, "category")
    if category not in CATEGORIES:
        raise FormError("Invalid category", "category")

    urgency_level = _text(form, "urgency_level")
    if urgency_level not in URGENCY_VALUES:
        raise FormError("Invalid urgency level", "urgency_level")

    location = _text(form, "location") or None

    return {
        "title": title,
        "description": description,
        "category": category,
        "urgency_level": urgency_level,
        "location": location,
        "location_hidden": _is_checked(form, "location_hidden"),
    }


class RequestFormProcessor:
    """
    Example usage:
        forms = RequestFormProcessor(store)
        result = forms.submit_new(request.form, user_id)
        if not result.ok:
            show(result.error)
    """

    def __init__(self, store, geocoder: Optional[Callable] = None, on_change: Optional[Callable] = None,
                 clock=utc_now_iso):
        self.store = store
        self.geocoder = geocoder or geocode_address
        self.on_change = on_change
        self.clock = clock

    def _resolve_location(self, location, location_hidden):
        """Return the POINT for a visible location, or None if there is nothing to look up."""
        if not location or location_hidden:
            return None
        coordinates = self.geocoder(location)
        if not coordinates:
            raise GeocodingError(GEO_ERROR)
        return format_point(coordinates["lat"], coordinates["lon"])

    def submit_new(self, form, user_id) -> SubmissionResult:
        """Create a new help request owned by user_id. Its status always starts as open."""
        if not user_id:
            return SubmissionResult(ok=False, error="You must be logged in to create a request")

        try:
            fields = read_form(form)
            geo_location = self._resolve_location(fields["location"], fields["location_hidden"])
        except FormError as error:
            return SubmissionResult(ok=False, error=str(error), field=error.field)
        except GeocodingError as error:
            logger.warning(f"Geocoding failed for new request location {fields['location']!r}")
            return SubmissionResult(ok=False, error=str(error), field="location")

        now = self.clock()
        data = dict(fields, user_id=user_id, status=RequestStatus.OPEN.value,
                    geo_location=geo_location, created_at=now, updated_at=now)

        try:
            created = self.store.insert(data)
        except RemoteWriteError as error:
            logger.error(f"Error creating request: {error}")
            return SubmissionResult(ok=False, error=CREATE_FAILED_ERROR, remote_failure=True)

        return SubmissionResult(ok=True, request=created)

    def submit_edit(self, initial: HelpRequest, form, acting_user_id) -> SubmissionResult:
        """Save the owner's changes to an existing help request. Status is not edited here."""
        try:
            if not initial.is_owner(acting_user_id):
                raise NotOwnerError(ACCESS_DENIED_ERROR)

            fields = read_form(form)

            if initial.status not in STATUS_VALUES:
                raise FormError("Invalid request status", "status")

            geo_location = self._edited_geo_location(initial, fields)
        except NotOwnerError as error:
            logger.warning(f"User {acting_user_id} tried to edit help request {initial.id}")
            return SubmissionResult(ok=False, error=str(error))
        except FormError as error:
            return SubmissionResult(ok=False, error=str(error), field=error.field)
        except GeocodingError as error:
            logger.warning(f"Geocoding failed for edited location {fields['location']!r}")
            return SubmissionResult(ok=False, error=str(error), field="location")

        changes = dict(fields, status=initial.status, geo_location=geo_location, updated_at=self.clock())

        try:
            self.store.update(initial.id, changes)
        except RemoteWriteError as error:
            logger.error(f"Error updating request: {error}")
            return SubmissionResult(ok=False, error=UPDATE_FAILED_ERROR, remote_failure=True)

        updated = initial.with_changes(**changes)
        if self.on_change is not None:
            self.on_change(updated)
        return SubmissionResult(ok=True, request=updated)

    def _edited_geo_location(self, initial, fields):
        location, hidden = fields["location"], fields["location_hidden"]
        if not location or hidden:
            return None
        # Same address as before: keep the old point instead of asking the geocoder again
        if location == initial.location and initial.geo_location:
            return initial.geo_location
        return self._resolve_location(location, hidden)
