"""
mutation_gateway.py
Status and urgency changes for one help request, made by its owner.

The gateway keeps the value it is currently showing (self.request). A change is
written to the store first; only when the write succeeds does the shown value
change, and the new request is handed to on_change (normally
FeedSynchronizer.apply_local_mutation) so the feed shows the same thing.
"""
import logging
from typing import Callable, Optional

from helpconnect.errors import RemoteWriteError
from helpconnect.models import HelpRequest, RequestStatus, UrgencyLevel, utc_now_iso

logger = logging.getLogger(__name__)


class MutationGateway:
    """
    Example usage:
        gateway = MutationGateway(request, store, on_change=feed.apply_local_mutation)
        if not gateway.change_status("completed", acting_user_id=user_id):
            show(gateway.error)
    """

    def __init__(self, request: HelpRequest, store, on_change: Optional[Callable] = None, clock=utc_now_iso):
        self.request = request
        self.store = store
        self.on_change = on_change
        self.clock = clock
        self.is_loading = False
        self.error: Optional[str] = None
        # True when the last failure came from the store, not from the value
        self.remote_failure = False

    def is_owner(self, acting_user_id) -> bool:
        return self.request.is_owner(acting_user_id)

    def change_status(self, new_status, acting_user_id) -> bool:
        try:
            value = RequestStatus(_enum_value(new_status)).value
        except ValueError:
            return self._reject("Invalid request status", new_status)
        return self._apply("status", value, acting_user_id, "status")

    def change_urgency(self, new_urgency, acting_user_id) -> bool:
        try:
            value = UrgencyLevel(_enum_value(new_urgency)).value
        except ValueError:
            return self._reject("Invalid urgency level", new_urgency)
        return self._apply("urgency_level", value, acting_user_id, "urgency level")

    def _reject(self, message, value) -> bool:
        logger.error(f"{message}: {value!r}")
        self.error = message
        self.remote_failure = False
        return False

    def _apply(self, field, value, acting_user_id, label) -> bool:
        # Non-owners should never see the control; if they reach it anyway nothing happens
        if not self.is_owner(acting_user_id):
            logger.warning(f"User {acting_user_id} tried to change {field} of help request {self.request.id}")
            return False

        if getattr(self.request, field) == value:
            return False

        self.error = None
        self.remote_failure = False
        self.is_loading = True
        updated_at = self.clock()
        try:
            self.store.update(self.request.id, {field: value, "updated_at": updated_at})
        except RemoteWriteError as error:
            logger.error(f"Error updating {label}: {error}")
            self.error = f"Failed to update {label}"
            self.remote_failure = True
            return False
        finally:
            self.is_loading = False

        self.request = self.request.with_changes(**{field: value, "updated_at": updated_at})
        logger.info(f"{label.capitalize()} of help request {self.request.id} updated to {value}")

        if self.on_change is not None:
            self.on_change(self.request)
        return True


def _enum_value(value):
    return value.value if isinstance(value, (RequestStatus, UrgencyLevel)) else str(value)
