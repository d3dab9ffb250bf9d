"""Group availability per candidate date."""

from typing import AbstractSet, Iterable, Mapping

from models.entities import DateAvailability, Participant, Person
from services.date_key import format_date_label, sort_date_keys

STRONG_HIGHLIGHT = 1.0
LIGHT_HIGHLIGHT = 0.8


def people_from_participants(
    participants: Iterable[Participant],
    key_by_id: Mapping[int, str]
) -> list[Person]:
    """
    Display projection of participants, newest first.

    Only ``available`` responses count; responses for unknown candidate
    dates are ignored.
    """
    people = []
    for participant in reversed(list(participants)):
        availability = frozenset(
            key_by_id[response.candidate_date_id]
            for response in participant.responses
            if response.status == "available" and response.candidate_date_id in key_by_id
        )
        people.append(Person(id=str(participant.id), name=participant.name, availability=availability))
    return people


def summarize_availability(
    candidate_dates: Iterable[str],
    people: list[Person],
    selected: AbstractSet[str]
) -> list[DateAvailability]:
    """
    Count available people per candidate date.

    The unsaved selection of the person currently voting counts as one more
    row, so the maximum per date is ``len(people) + 1``.
    """
    max_count = len(people) + 1
    summary = []
    for key in sort_date_keys(candidate_dates):
        count = sum(1 for person in people if key in person.availability)
        if key in selected:
            count += 1

        intensity = count / max_count
        if intensity >= STRONG_HIGHLIGHT:
            highlight = "strong"
        elif intensity >= LIGHT_HIGHLIGHT:
            highlight = "light"
        else:
            highlight = None

        summary.append(DateAvailability(
            date_key=key,
            label=format_date_label(key),
            count=count,
            intensity=intensity,
            highlight=highlight
        ))
    return summary
