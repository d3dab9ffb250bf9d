"""Keeps the settings form and the JSON settings document in sync."""

import json
import logging
from dataclasses import replace
from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from models.entities import AutoDecisionSettings, DeadlineSettings, RssSettings, VotingSettings
from services.clock import Clock, SystemClock
from services.date_key import (
    TimezoneLike,
    local_today,
    normalize_date_format,
    normalize_time_format,
)
from services.errors import SettingsValidationError
from services.validation import validate_settings_document

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_DAYS = 7
DEFAULT_DEADLINE_TIME = "23:59"
DEFAULT_THRESHOLD = 3

# Form field paths accepted by SettingsReconciler.set_field
FIELD_PATHS = {
    "allow_setting_changes": (None, "allow_setting_changes"),
    "deadline.enable": ("deadline", "enable"),
    "deadline.date": ("deadline", "date"),
    "deadline.time": ("deadline", "time"),
    "auto_decision.enable": ("auto_decision", "enable"),
    "auto_decision.threshold": ("auto_decision", "threshold"),
    "rss.enable": ("rss", "enable"),
}


def default_settings(clock: Optional[Clock] = None, tz: TimezoneLike = None) -> VotingSettings:
    """Deadline a week from today at 23:59, auto-decision at 3, RSS off."""
    deadline_date = local_today(clock or SystemClock(), tz) + timedelta(days=DEFAULT_DEADLINE_DAYS)
    return VotingSettings(
        allow_setting_changes=True,
        deadline=DeadlineSettings(
            enable=True,
            date=deadline_date.strftime("%Y-%m-%d"),
            time=DEFAULT_DEADLINE_TIME
        ),
        auto_decision=AutoDecisionSettings(enable=True, threshold=DEFAULT_THRESHOLD),
        rss=RssSettings(enable=False)
    )


def settings_to_document_dict(settings: VotingSettings) -> dict[str, Any]:
    return {
        "allowSettingChanges": settings.allow_setting_changes,
        "deadline": {
            "enable": settings.deadline.enable,
            "date": settings.deadline.date,
            "time": settings.deadline.time,
        },
        "autoDecision": {
            "enable": settings.auto_decision.enable,
            "threshold": settings.auto_decision.threshold,
        },
        "rss": {
            "enable": settings.rss.enable,
        },
    }


def settings_to_document(settings: VotingSettings) -> str:
    """Serialize with two-space indentation."""
    return json.dumps(settings_to_document_dict(settings), indent=2, ensure_ascii=False)


def settings_from_document_dict(data: dict[str, Any], fallback: VotingSettings) -> VotingSettings:
    """
    Build settings from an already validated document.

    Deadline date/time are zero-padded. When the deadline is disabled and
    its date or time is not a string, the fallback value is kept.
    """
    deadline = data["deadline"]
    deadline_date = deadline.get("date")
    deadline_time = deadline.get("time")

    return VotingSettings(
        allow_setting_changes=data["allowSettingChanges"],
        deadline=DeadlineSettings(
            enable=deadline["enable"],
            date=normalize_date_format(deadline_date) if isinstance(deadline_date, str) else fallback.deadline.date,
            time=normalize_time_format(deadline_time) if isinstance(deadline_time, str) else fallback.deadline.time
        ),
        auto_decision=AutoDecisionSettings(
            enable=data["autoDecision"]["enable"],
            threshold=data["autoDecision"]["threshold"]
        ),
        rss=RssSettings(enable=data["rss"]["enable"])
    )


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def parse_settings_document(
    text: str,
    fallback: VotingSettings,
    clock: Optional[Clock] = None,
    tz: TimezoneLike = None,
    require_future_deadline: bool = True
) -> VotingSettings:
    """
    Parse and validate a settings document.

    Raises:
        SettingsValidationError: Invalid JSON or a failing field
    """
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise SettingsValidationError(f"Invalid JSON: {e}") from e

    validate_settings_document(data, clock, tz, require_future_deadline)
    return settings_from_document_dict(data, fallback)


class SyncState(Enum):
    SYNCED = "synced"    # document was regenerated from the form
    EDITING = "editing"  # document is being typed into


class SettingsReconciler:
    """
    Two views of one VotingSettings value: the form and the JSON document.

    While synced, every form change regenerates the document. Typing into the
    document switches to editing; each keystroke is parsed and validated and,
    if valid, pushed back into the form. An invalid document leaves the form
    untouched and records an error. Leaving the editor re-formats the document
    unless an error is pending.
    """

    def __init__(
        self,
        settings: VotingSettings,
        clock: Optional[Clock] = None,
        tz: TimezoneLike = None
    ):
        self.clock = clock or SystemClock()
        self.tz = tz
        self.settings = settings
        self.document = settings_to_document(settings)
        self.state = SyncState.SYNCED
        self.error: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def is_editing(self) -> bool:
        return self.state is SyncState.EDITING

    def set_field(self, path: str, value: Any):
        """Change one form field, e.g. ``set_field("deadline.date", "2025-07-01")``."""
        if path not in FIELD_PATHS:
            raise KeyError(f"Unknown settings field: {path}")

        group, attribute = FIELD_PATHS[path]
        if group is None:
            self.settings = replace(self.settings, **{attribute: value})
        else:
            section = replace(getattr(self.settings, group), **{attribute: value})
            self.settings = replace(self.settings, **{group: section})

        if self.state is SyncState.SYNCED:
            self._regenerate_document()

    def update(self, settings: VotingSettings):
        """Replace the whole form value."""
        self.settings = settings
        if self.state is SyncState.SYNCED:
            self._regenerate_document()

    def edit_document(self, text: str) -> bool:
        """
        Apply a keystroke in the JSON editor.

        Returns:
            True if the document was valid and the form was updated
        """
        self.document = text
        self.state = SyncState.EDITING

        try:
            parsed = parse_settings_document(text, self.settings, self.clock, self.tz)
        except SettingsValidationError as e:
            self.error = str(e)
            logger.debug("Settings document rejected: %s", self.error)
            return False

        self.settings = parsed
        self.error = None
        return True

    def blur_document(self) -> bool:
        """
        Leave the JSON editor.

        Returns:
            True if the document was re-formatted and the state is synced again
        """
        if self.has_error:
            return False
        self.state = SyncState.SYNCED
        self._regenerate_document()
        return True

    def reset(self, defaults: Optional[VotingSettings] = None):
        """Go back to the default settings, dropping any pending error."""
        self.settings = defaults or default_settings(self.clock, self.tz)
        self.state = SyncState.SYNCED
        self._regenerate_document()

    def prepare_save(self) -> VotingSettings:
        """
        Settings ready to be saved.

        Raises:
            SettingsValidationError: A document error is pending, a form field is
                invalid, or the enabled deadline is not in the future
        """
        if self.has_error:
            raise SettingsValidationError(f"Settings document has errors: {self.error}")
        validate_settings_document(settings_to_document_dict(self.settings), self.clock, self.tz)
        return self.settings

    def _regenerate_document(self):
        self.document = settings_to_document(self.settings)
        self.error = None
