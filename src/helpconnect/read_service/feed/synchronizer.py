"""
synchronizer.py
----------------
Keeps the list of help requests a viewer sees in step with the store.

The feed starts from a snapshot (already trusted, it comes from our own store)
and then folds in INSERT / UPDATE / DELETE change events from the live channel.
Change events are untrusted and go through helpconnect.validation first.

Order: new inserts are put at the front (newest activity first). Updates and
local mutations replace the request with the same id in place. The last change
applied for an id wins, no timestamps are compared.
"""

import logging
import threading
from typing import Iterable, List, Optional

from helpconnect import config
from helpconnect.models import HelpRequest, ALL_STATUSES, STATUS_VALUES
from helpconnect.validation import validate_and_convert, is_valid_request

logger = logging.getLogger(__name__)

INVALID_INSERT_ERROR = "Received invalid request data"
INVALID_FILTER_ERROR = "Invalid status filter"
FEED_UNAVAILABLE_ERROR = "Live updates are unavailable"


class FeedSynchronizer:
    """
    Owns the in-memory feed for one view.

    Example usage:
        feed = FeedSynchronizer()
        feed.initialize(store.fetch_recent())
        feed.handle_event({"eventType": "INSERT", "new": {...}})
        feed.set_status_filter("open")
        feed.visible_requests()
    """

    def __init__(self, strict_inserts: Optional[bool] = None, max_size: Optional[int] = None):
        self._requests: List[HelpRequest] = []
        self._lock = threading.RLock()
        self.status_filter = ALL_STATUSES
        self.error: Optional[str] = None
        self.closed = False
        self.strict_inserts = config.FEED_STRICT_INSERTS if strict_inserts is None else strict_inserts
        # Oldest entries fall off the end once the feed is this long
        self.max_size = config.FEED_MAX_LIMIT if max_size is None else max_size

    # --- state ---

    def initialize(self, snapshot: Iterable[HelpRequest]) -> None:
        """Replace the whole feed with a snapshot from the store."""
        with self._lock:
            if self.closed:
                return
            self._requests = list(snapshot)
            logger.info(f"Feed initialized with {len(self._requests)} help requests")

    @property
    def requests(self) -> List[HelpRequest]:
        """Every request in the feed, ignoring the status filter."""
        with self._lock:
            return list(self._requests)

    def __len__(self):
        with self._lock:
            return len(self._requests)

    def get(self, request_id: str) -> Optional[HelpRequest]:
        with self._lock:
            for request in self._requests:
                if request.id == request_id:
                    return request
        return None

    # --- live channel events ---

    def on_insert_event(self, raw_record) -> bool:
        """Put a newly created request at the front of the feed."""
        request = validate_and_convert(raw_record)
        if request is None:
            logger.error(f"Invalid request data received: {raw_record}")
            if self.strict_inserts:
                self.report_error(INVALID_INSERT_ERROR)
            return False

        with self._lock:
            if self.closed:
                return False
            # A repeated insert for a known id is treated like an update
            if any(existing.id == request.id for existing in self._requests):
                self._replace(request)
            else:
                self._requests.insert(0, request)
                if self.max_size:
                    del self._requests[self.max_size:]
        return True

    def on_update_event(self, raw_record) -> bool:
        """Replace the request with the same id, keeping its position."""
        request = validate_and_convert(raw_record)
        if request is None:
            logger.error(f"Invalid request update received: {raw_record}")
            return False

        with self._lock:
            if self.closed:
                return False
            return self._replace(request)

    def on_delete_event(self, raw_record) -> bool:
        """Drop the request whose id is in the payload. Only the id is looked at."""
        request_id = raw_record.get("id") if isinstance(raw_record, dict) else None
        if not isinstance(request_id, str):
            logger.warning(f"Ignoring delete event without an id: {raw_record}")
            return False

        with self._lock:
            if self.closed:
                return False
            before = len(self._requests)
            self._requests = [r for r in self._requests if r.id != request_id]
            return len(self._requests) != before

    def handle_event(self, payload) -> bool:
        """
        Dispatch a change event from the live channel.

        payload looks like:
            {"eventType": "INSERT" | "UPDATE" | "DELETE", "new": {...}, "old": {...}}
        """
        if not isinstance(payload, dict):
            logger.warning(f"Ignoring change event that is not an object: {payload}")
            return False

        event_type = str(payload.get("eventType", "")).upper()
        if event_type == "INSERT":
            return self.on_insert_event(payload.get("new"))
        if event_type == "UPDATE":
            return self.on_update_event(payload.get("new"))
        if event_type == "DELETE":
            return self.on_delete_event(payload.get("old") or {})

        logger.warning(f"Ignoring unknown change event type: {event_type!r}")
        return False

    # --- local changes ---

    def apply_local_mutation(self, updated: HelpRequest) -> bool:
        """
        Show a confirmed write right away instead of waiting for its change event.
        Applying the same request twice gives the same feed.
        """
        if not is_valid_request(updated):
            logger.error(f"Invalid request update: {updated}")
            return False

        with self._lock:
            if self.closed:
                return False
            return self._replace(updated)

    def _replace(self, request: HelpRequest) -> bool:
        for index, existing in enumerate(self._requests):
            if existing.id == request.id:
                self._requests[index] = request
                return True
        return False

    # --- view ---

    def set_status_filter(self, status_filter) -> bool:
        """Change which requests visible_requests() returns. The feed itself is untouched."""
        status_filter = str(status_filter)
        if status_filter != ALL_STATUSES and status_filter not in STATUS_VALUES:
            logger.warning(f"{INVALID_FILTER_ERROR}: {status_filter!r}")
            return False
        self.status_filter = status_filter
        return True

    def visible_requests(self, status_filter: Optional[str] = None) -> List[HelpRequest]:
        """The feed filtered by status (the current filter unless one is given)."""
        status_filter = self.status_filter if status_filter is None else status_filter
        requests = self.requests
        if status_filter == ALL_STATUSES:
            return requests
        return [r for r in requests if r.status == status_filter]

    def report_error(self, message: str) -> None:
        """Put the feed in its error state, unless the view is already gone."""
        with self._lock:
            if not self.closed:
                self.error = message

    def clear_error(self) -> None:
        with self._lock:
            self.error = None

    def close(self) -> None:
        """The view is gone. Later events and mutations are ignored."""
        with self._lock:
            self.closed = True
