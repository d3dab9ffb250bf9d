"""Domain models for the scheduling poll."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Optional, Union


@dataclass(frozen=True)
class EmptyCell:
    """Leading placeholder before day 1 of a month."""
    position: int


@dataclass(frozen=True)
class DayCell:
    """One calendar day inside a month grid."""
    position: int
    day: int
    date_key: str


CalendarCell = Union[EmptyCell, DayCell]


@dataclass
class CandidateDate:
    """A date proposed by the organizer as a poll option."""
    id: int
    event_id: str
    date_time: datetime  # absolute instant (UTC)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Response:
    """A participant's answer for a single candidate date."""
    id: int
    participant_id: int
    candidate_date_id: int
    status: Literal["available", "maybe", "unavailable"]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Participant:
    """Someone who answered the poll."""
    id: int
    event_id: str
    name: str
    responses: list[Response] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class EventData:
    """An event as returned by the remote API, settings flattened."""
    id: str
    title: str
    candidate_dates: list[CandidateDate]
    participants: list[Participant]
    allow_setting_changes: bool
    deadline: Optional[datetime]
    auto_decision_enable: bool
    auto_decision_threshold: Optional[int]
    rss_enabled: bool
    description: Optional[str] = None
    creator_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Person:
    """Display projection of a participant."""
    id: str
    name: str
    availability: frozenset[str]


@dataclass
class DeadlineSettings:
    enable: bool
    date: str  # YYYY-MM-DD, local wall clock
    time: str  # HH:mm, local wall clock


@dataclass
class AutoDecisionSettings:
    enable: bool
    threshold: Optional[int]  # None means no threshold


@dataclass
class RssSettings:
    enable: bool


@dataclass
class VotingSettings:
    """Poll settings shared by the settings form and the JSON editor."""
    allow_setting_changes: bool
    deadline: DeadlineSettings
    auto_decision: AutoDecisionSettings
    rss: RssSettings


@dataclass
class EventDraft:
    """In-progress event creation kept in session storage."""
    event_title: str
    selected_dates: frozenset[str]
    current_date: date


@dataclass
class DateAvailability:
    """Availability count for one candidate date."""
    date_key: str
    label: str
    count: int
    intensity: float
    highlight: Optional[Literal["strong", "light"]] = None
