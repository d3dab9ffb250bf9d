"""Settings and event drafts kept in session storage.

Stored values are a convenience: any failure to read or write them is logged
and the caller gets default settings or no draft.
"""

import json
import logging
from datetime import date
from typing import Optional

from models.entities import EventDraft, VotingSettings
from services.clock import Clock, SystemClock
from services.date_key import TimezoneLike
from services.errors import SettingsValidationError, StorageError
from services.session_storage import SessionStorage
from services.settings_reconciler import (
    default_settings,
    parse_settings_document,
    settings_to_document,
)

logger = logging.getLogger(__name__)

SETTINGS_KEY = "votingSettings"
DRAFT_KEY = "eventDraft"


def settings_storage_key(event_id: Optional[str]) -> str:
    """``votingSettings_{eventId}`` for an existing event, else ``votingSettings``."""
    return f"{SETTINGS_KEY}_{event_id}" if event_id else SETTINGS_KEY


class SettingsStore:
    """Per-event and global VotingSettings in session storage."""

    def __init__(
        self,
        storage: SessionStorage,
        clock: Optional[Clock] = None,
        tz: TimezoneLike = None
    ):
        self.storage = storage
        self.clock = clock or SystemClock()
        self.tz = tz

    def load(self, event_id: Optional[str] = None) -> VotingSettings:
        """Stored settings, or defaults when missing or unreadable."""
        defaults = default_settings(self.clock, self.tz)
        key = settings_storage_key(event_id)
        try:
            text = self.storage.get(key)
            if text:
                # a stored deadline may have passed since it was saved
                return parse_settings_document(
                    text,
                    defaults,
                    self.clock,
                    self.tz,
                    require_future_deadline=False
                )
        except (StorageError, SettingsValidationError) as e:
            logger.warning("Could not load settings from %s, using defaults: %s", key, e)
        return defaults

    def save(self, event_id: Optional[str], settings: VotingSettings) -> bool:
        key = settings_storage_key(event_id)
        try:
            self.storage.set(key, settings_to_document(settings))
            return True
        except StorageError as e:
            logger.warning("Could not save settings to %s: %s", key, e)
            return False

    def clear(self, event_id: Optional[str] = None):
        key = settings_storage_key(event_id)
        try:
            self.storage.remove(key)
        except StorageError as e:
            logger.warning("Could not remove settings %s: %s", key, e)


class DraftStore:
    """The in-progress event (title, selected dates, displayed month)."""

    def __init__(self, storage: SessionStorage):
        self.storage = storage

    def load(self) -> Optional[EventDraft]:
        try:
            text = self.storage.get(DRAFT_KEY)
            if not text:
                return None
            data = json.loads(text)
            return EventDraft(
                event_title=str(data["eventTitle"]),
                selected_dates=frozenset(data["selectedDates"]),
                current_date=date.fromisoformat(data["currentDate"][:10])
            )
        except (StorageError, ValueError, KeyError, TypeError) as e:
            logger.warning("Could not load event draft: %s", e)
            return None

    def save(self, draft: EventDraft) -> bool:
        payload = {
            "eventTitle": draft.event_title,
            "selectedDates": sorted(draft.selected_dates),
            "currentDate": draft.current_date.isoformat(),
        }
        try:
            self.storage.set(DRAFT_KEY, json.dumps(payload, ensure_ascii=False))
            return True
        except StorageError as e:
            logger.warning("Could not save event draft: %s", e)
            return False

    def clear(self):
        try:
            self.storage.remove(DRAFT_KEY)
        except StorageError as e:
            logger.warning("Could not remove event draft: %s", e)
