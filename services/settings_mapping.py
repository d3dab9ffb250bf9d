"""Conversion between VotingSettings and the API's flattened settings fields.

Inside the app a missing auto-decision threshold is ``None``. The API uses
``0`` for it, so ``None`` is written as ``0`` and ``0`` is read back as
``None`` here and nowhere else.
"""

from typing import Any, Dict, Optional

from models.entities import (
    AutoDecisionSettings,
    DeadlineSettings,
    EventData,
    RssSettings,
    VotingSettings,
)
from services.date_key import (
    TimezoneLike,
    date_time_to_iso,
    instant_to_date_string,
    instant_to_time_string,
)

NO_THRESHOLD = 0


def threshold_to_api(threshold: Optional[int]) -> int:
    return NO_THRESHOLD if threshold is None else threshold


def threshold_from_api(threshold: Optional[int]) -> Optional[int]:
    if threshold is None or threshold == NO_THRESHOLD:
        return None
    return threshold


def settings_to_dto(settings: VotingSettings, tz: TimezoneLike = None) -> Dict[str, Any]:
    """
    Settings payload for create/update calls.

    The deadline is sent as an ISO instant when enabled and as an empty
    string otherwise.
    """
    deadline = ""
    if settings.deadline.enable:
        deadline = date_time_to_iso(settings.deadline.date, settings.deadline.time, tz)

    return {
        "allow_setting_changes": settings.allow_setting_changes,
        "deadline_enable": settings.deadline.enable,
        "deadline": deadline,
        "auto_decision_enable": settings.auto_decision.enable,
        "auto_decision_threshold": threshold_to_api(settings.auto_decision.threshold),
        "rss_enabled": settings.rss.enable,
    }


def settings_from_event(
    event: EventData,
    defaults: VotingSettings,
    tz: TimezoneLike = None
) -> VotingSettings:
    """
    Settings of a fetched event.

    Without a deadline the date/time fields keep the defaults so the form
    has something to show when the deadline is switched on.
    """
    if event.deadline is not None:
        deadline = DeadlineSettings(
            enable=True,
            date=instant_to_date_string(event.deadline, tz),
            time=instant_to_time_string(event.deadline, tz)
        )
    else:
        deadline = DeadlineSettings(
            enable=False,
            date=defaults.deadline.date,
            time=defaults.deadline.time
        )

    return VotingSettings(
        allow_setting_changes=event.allow_setting_changes,
        deadline=deadline,
        auto_decision=AutoDecisionSettings(
            enable=event.auto_decision_enable,
            threshold=threshold_from_api(event.auto_decision_threshold)
        ),
        rss=RssSettings(enable=event.rss_enabled)
    )
