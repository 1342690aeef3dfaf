from enum import Enum
from typing import Optional

from sharedminds.core.database import StorageClient
from sharedminds.domains.auth.models import Profile
from sharedminds.shared.exceptions import InvalidDataError

from .adapters.base import ShareAdapter
from .adapters.calendar_event import CalendarEventShareAdapter
from .adapters.guardrails_project import GuardrailsProjectShareAdapter
from .adapters.tracker import TrackerShareAdapter
from .adapters.trip import TripShareAdapter


class ShareableEntityType(str, Enum):
    """Entity types the sharing surface can manage."""

    CALENDAR_EVENT = "calendar_event"
    TRIP = "trip"
    GUARDRAILS_PROJECT = "guardrails_project"
    TRACKER = "tracker"


ADAPTERS: dict[ShareableEntityType, type[ShareAdapter]] = {
    ShareableEntityType.CALENDAR_EVENT: CalendarEventShareAdapter,
    ShareableEntityType.TRIP: TripShareAdapter,
    ShareableEntityType.GUARDRAILS_PROJECT: GuardrailsProjectShareAdapter,
    ShareableEntityType.TRACKER: TrackerShareAdapter,
}


class ShareAdapterFactory:
    """Factory for creating entity-specific share adapters."""

    def __init__(self, db: StorageClient):
        self.db = db

    def get_adapter(
        self, entity_type: str, entity_id: str, actor: Optional[Profile] = None
    ) -> ShareAdapter:
        try:
            key = ShareableEntityType(entity_type)
        except ValueError:
            raise InvalidDataError(f"Unsupported shareable entity type: {entity_type}")
        return ADAPTERS[key](self.db, entity_id, actor)
