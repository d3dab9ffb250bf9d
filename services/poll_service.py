"""Poll workflows: create an event, vote, and save settings."""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Any, Dict, Optional

from models.entities import EventData, Participant, Person, VotingSettings
from services.availability import people_from_participants
from services.bulk_selection import SelectionEngine
from services.clock import Clock, SystemClock
from services.date_key import (
    TimezoneLike,
    date_key_to_instant,
    format_iso_instant,
    instant_to_date_key,
    sort_date_keys,
)
from services.draft_store import DraftStore, SettingsStore
from services.errors import ReadOnlySettingsError, SettingsValidationError, ValidationError
from services.event_api_client import EventAPIClient
from services.session_storage import SessionStorage
from services.settings_mapping import settings_from_event, settings_to_dto
from services.settings_reconciler import (
    SettingsReconciler,
    default_settings,
    settings_to_document_dict,
)
from services.validation import validate_settings_document

logger = logging.getLogger(__name__)


@dataclass
class VotingSession:
    """Everything the voting page needs for one event."""
    event: EventData
    candidate_dates: frozenset[str]
    key_by_id: dict[int, str]
    id_by_key: dict[str, int]
    people: list[Person]
    settings: VotingSettings

    @property
    def sorted_candidate_dates(self) -> list[str]:
        return sort_date_keys(self.candidate_dates)

    def selection_engine(self) -> SelectionEngine:
        """Toggles restricted to this event's candidate dates."""
        return SelectionEngine(self.candidate_dates)

    def carry_over_selection(
        self,
        previous: Optional["VotingSession"],
        selected: AbstractSet[str]
    ) -> frozenset[str]:
        """
        Selection to keep after this session replaces ``previous``.

        Reloading the same event keeps the dates that are still candidates;
        switching to another event starts from an empty selection.
        """
        if previous is None or previous.event.id != self.event.id:
            return frozenset()
        return frozenset(selected) & self.candidate_dates


def is_settings_read_only(event_id: Optional[str], settings: VotingSettings) -> bool:
    """Settings of an existing event are locked when it disallows changes."""
    return event_id is not None and not settings.allow_setting_changes


class PollService:
    """Coordinates the event API, session storage and the local date logic."""

    def __init__(
        self,
        api_client: EventAPIClient,
        storage: SessionStorage,
        clock: Optional[Clock] = None,
        tz: TimezoneLike = None
    ):
        self.api = api_client
        self.clock = clock or SystemClock()
        self.tz = tz
        self.settings_store = SettingsStore(storage, self.clock, tz)
        self.draft_store = DraftStore(storage)

    def default_settings(self) -> VotingSettings:
        return default_settings(self.clock, self.tz)

    def create_event(
        self,
        title: str,
        selected_dates: AbstractSet[str],
        settings: VotingSettings
    ) -> str:
        """
        Create an event from the creation calendar.

        Args:
            title: Event title, surrounding whitespace is dropped
            selected_dates: Date keys proposed as candidate dates
            settings: Settings to create the event with

        Returns:
            The new event ID

        Raises:
            ValidationError: Blank title, no dates, or invalid settings
            TransportError: The API call failed
        """
        title = title.strip()
        if not title:
            raise ValidationError("Enter an event title")
        if not selected_dates:
            raise ValidationError("Select at least one candidate date")

        validate_settings_document(settings_to_document_dict(settings), self.clock, self.tz)

        candidate_dates = sorted(
            format_iso_instant(date_key_to_instant(key, tz=self.tz))
            for key in selected_dates
        )
        event_id = self.api.create_event(title, candidate_dates, settings_to_dto(settings, self.tz))
        logger.info("Created event %s with %d candidate dates", event_id, len(candidate_dates))

        # next event starts from a blank draft and default settings
        self.draft_store.clear()
        self.settings_store.clear()
        return event_id

    def load_voting_session(self, event_id: str) -> VotingSession:
        """
        Fetch an event and build the voting view of it.

        The event's settings are also stored under ``votingSettings_{eventId}``.

        Raises:
            TransportError: The API call failed
        """
        event = self.api.get_event(event_id)

        settings = settings_from_event(event, self.default_settings(), self.tz)
        self.settings_store.save(event_id, settings)

        key_by_id = {
            candidate.id: instant_to_date_key(candidate.date_time, self.tz)
            for candidate in event.candidate_dates
        }
        id_by_key = {key: candidate_id for candidate_id, key in key_by_id.items()}
        if len(id_by_key) < len(key_by_id):
            logger.warning("Event %s has several candidate dates on the same day", event_id)

        return VotingSession(
            event=event,
            candidate_dates=frozenset(key_by_id.values()),
            key_by_id=key_by_id,
            id_by_key=id_by_key,
            people=people_from_participants(event.participants, key_by_id),
            settings=settings
        )

    def submit_availability(
        self,
        session: VotingSession,
        name: str,
        selected_dates: AbstractSet[str]
    ) -> Participant:
        """
        Register a participant's answers.

        Every candidate date is sent either as available (selected) or as
        unavailable. An empty selection is allowed.

        Raises:
            ValidationError: Blank name
            TransportError: The API call failed
        """
        name = name.strip()
        if not name:
            raise ValidationError("Enter your name")

        available = []
        unavailable = []
        for key in session.sorted_candidate_dates:
            candidate_id = session.id_by_key.get(key)
            if candidate_id is None:
                continue
            if key in selected_dates:
                available.append({"id": candidate_id})
            else:
                unavailable.append({"id": candidate_id})

        payload = {
            "event_id": session.event.id,
            # placeholder id, the API assigns the real one
            "participant_id": int(self.clock.now().timestamp() * 1000),
            "name": name,
            "available_candidate_dates": available,
            "unavailable_candidate_dates": unavailable,
        }
        participant = self.api.add_participant(session.event.id, payload)
        logger.info(
            "Registered %s for event %s (%d available, %d unavailable)",
            name, session.event.id, len(available), len(unavailable)
        )
        return participant

    def load_settings(self, event_id: Optional[str] = None) -> VotingSettings:
        return self.settings_store.load(event_id)

    def new_reconciler(self, event_id: Optional[str] = None) -> SettingsReconciler:
        """Settings editor state starting from the stored settings."""
        return SettingsReconciler(self.load_settings(event_id), self.clock, self.tz)

    def save_settings(
        self,
        reconciler: SettingsReconciler,
        event_id: Optional[str] = None,
        initial_settings: Optional[VotingSettings] = None
    ) -> Dict[str, Any]:
        """
        Save the editor's settings to session storage and, for an existing
        event, to the API.

        Args:
            reconciler: Settings editor state
            event_id: Event whose settings are edited, None while creating
            initial_settings: Settings the editor was opened with; loaded from
                storage when omitted

        Returns:
            The settings DTO that was (or would be) sent to the API

        Raises:
            SettingsValidationError: Pending document error or deadline not in the future
            ReadOnlySettingsError: The event disallows setting changes
            TransportError: The API call failed
        """
        if reconciler.has_error:
            raise SettingsValidationError(f"Fix the settings document first: {reconciler.error}")

        if event_id is not None:
            initial = initial_settings or self.settings_store.load(event_id)
            if is_settings_read_only(event_id, initial):
                raise ReadOnlySettingsError("This event does not allow its settings to be changed")

        settings = reconciler.prepare_save()
        dto = settings_to_dto(settings, self.tz)

        self.settings_store.save(event_id, settings)
        if event_id is not None:
            self.api.update_settings(event_id, dto)
            logger.info("Updated settings of event %s", event_id)
        return dto

    def rss_feed_url(self, event_id: str) -> str:
        return self.api.rss_feed_url(event_id)
