"""
store.py
---------
The remote store for help requests: bulk reads for the feed snapshot, inserts,
and partial updates keyed by id. All database errors come out as RemoteWriteError.

After every committed write the optional on_change callback gets a change event
(see helpconnect.write_service.processing.change_publisher).
"""

import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from helpconnect import config
from helpconnect.errors import RemoteWriteError
from helpconnect.models import HelpRequest
from .models import HelpRequestRow
from .session import SessionLocal

logger = logging.getLogger(__name__)

# Columns a partial update may touch (id, user_id and created_at never change)
UPDATABLE_FIELDS = {
    "title",
    "description",
    "category",
    "urgency_level",
    "location",
    "geo_location",
    "location_hidden",
    "status",
    "updated_at",
}

INSERTABLE_FIELDS = UPDATABLE_FIELDS | {"user_id", "created_at"}

_TIMESTAMP_FIELDS = ("created_at", "updated_at")


def retry_database_operation(func, max_retries=3, delay=0.5):
    """
    Retry database operations on failure
    func: function to retry
    max_retries: maximum number of retry attempts
    delay: seconds to wait between retries
    """
    for attempt in range(max_retries):
        try:
            return func()
        except SQLAlchemyError as e:
            if attempt == max_retries - 1:
                raise
            logger.warning(f"Database error (attempt {attempt + 1}/{max_retries}): {e}")
            time.sleep(delay)


def _to_columns(fields: dict, allowed: set) -> dict:
    unknown = set(fields) - allowed
    if unknown:
        raise RemoteWriteError(f"Cannot write fields: {', '.join(sorted(unknown))}")

    values = dict(fields)
    for name in _TIMESTAMP_FIELDS:
        if isinstance(values.get(name), str):
            values[name] = datetime.fromisoformat(values[name])
    return values


class RequestStore:
    """
    Example usage:
        store = RequestStore(on_change=publisher.publish_change)
        created = store.insert({...})
        store.update(created.id, {"status": "completed", "updated_at": "..."})
    """

    def __init__(self, session_factory=None, on_change: Optional[Callable] = None,
                 max_retries: int = 3, retry_delay: float = 0.5):
        self.session_factory = session_factory or SessionLocal
        self.on_change = on_change
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def _retry(self, func):
        return retry_database_operation(func, max_retries=self.max_retries, delay=self.retry_delay)

    def _notify(self, event_type, new=None, old=None):
        if self.on_change is None:
            return
        try:
            self.on_change(event_type, new=new, old=old)
        except Exception as e:
            # The write is already committed; a failed notification must not undo it
            logger.error(f"Failed to publish {event_type} change event: {e}")

    # --- reads ---

    def fetch_recent(self, limit: Optional[int] = None, status: Optional[str] = None) -> List[HelpRequest]:
        """Newest requests first (by created_at), capped at limit."""
        limit = config.FEED_SNAPSHOT_LIMIT if limit is None else limit
        limit = max(1, min(limit, config.FEED_MAX_LIMIT))

        def query():
            with self.session_factory() as session:
                stmt = select(HelpRequestRow)
                if status:
                    stmt = stmt.where(HelpRequestRow.status == status)
                stmt = stmt.order_by(HelpRequestRow.created_at.desc()).limit(limit)
                return [row.to_entity() for row in session.scalars(stmt)]

        try:
            return self._retry(query)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching help requests: {e}")
            raise RemoteWriteError("Could not load help requests") from e

    def get(self, request_id: str) -> Optional[HelpRequest]:
        def query():
            with self.session_factory() as session:
                row = session.get(HelpRequestRow, request_id)
                return row.to_entity() if row is not None else None

        try:
            return self._retry(query)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching help request {request_id}: {e}")
            raise RemoteWriteError("Could not load the help request") from e

    # --- writes ---

    def insert(self, fields: dict) -> HelpRequest:
        """Insert a full request. The store assigns the id."""
        values = _to_columns(fields, INSERTABLE_FIELDS)

        def write():
            with self.session_factory() as session:
                row = HelpRequestRow(**values)
                session.add(row)
                try:
                    session.commit()
                except SQLAlchemyError:
                    session.rollback()
                    raise
                return row.to_entity()

        try:
            created = self._retry(write)
        except SQLAlchemyError as e:
            logger.error(f"Error creating help request: {e}")
            raise RemoteWriteError("Could not save the help request") from e

        logger.info(f"Created help request {created.id}")
        self._notify("INSERT", new=created.to_dict())
        return created

    def update(self, request_id: str, fields: dict) -> None:
        """Apply a partial update to one request. Nothing is echoed back."""
        values = _to_columns(fields, UPDATABLE_FIELDS)

        def write():
            with self.session_factory() as session:
                row = session.get(HelpRequestRow, request_id)
                if row is None:
                    return None
                for name, value in values.items():
                    setattr(row, name, value)
                try:
                    session.commit()
                except SQLAlchemyError:
                    session.rollback()
                    raise
                return row.to_dict()

        try:
            updated = self._retry(write)
        except SQLAlchemyError as e:
            logger.error(f"Error updating help request {request_id}: {e}")
            raise RemoteWriteError("Could not update the help request") from e

        if updated is None:
            raise RemoteWriteError(f"No help request with id {request_id}")

        logger.info(f"Updated help request {request_id}: {sorted(values)}")
        self._notify("UPDATE", new=updated)

    def ping(self) -> None:
        """Lightweight DB health check. Raises on error."""
        with self.session_factory() as session:
            session.execute(text("SELECT 1"))
