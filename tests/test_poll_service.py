"""Tests for the create, vote and save-settings workflows."""

import json
from dataclasses import replace
from datetime import date

import pytest

from models.entities import EventDraft
from services.errors import ReadOnlySettingsError, SettingsValidationError, TransportError, ValidationError


@pytest.fixture
def event_id(poll_service):
    return poll_service.create_event("Team dinner", {"2025-6-20", "2025-6-3"}, poll_service.default_settings())


def test_create_event_sends_sorted_candidate_instants(poll_service, fake_api):
    event_id = poll_service.create_event("  Team dinner ", {"2025-6-20", "2025-6-3"}, poll_service.default_settings())

    assert event_id == "1"
    _, _, body = fake_api.calls("POST")[0]
    assert body["title"] == "Team dinner"
    # 19:00 in Tokyo
    assert body["candidate_dates"] == ["2025-06-03T10:00:00.000Z", "2025-06-20T10:00:00.000Z"]
    assert body["settings"]["deadline"] == "2025-06-17T14:59:00.000Z"


def test_create_event_clears_draft_and_settings(poll_service, storage):
    poll_service.draft_store.save(EventDraft("Team dinner", frozenset({"2025-6-3"}), date(2025, 6, 1)))
    poll_service.settings_store.save(None, poll_service.default_settings())

    poll_service.create_event("Team dinner", {"2025-6-3"}, poll_service.default_settings())

    assert storage.get("eventDraft") is None
    assert storage.get("votingSettings") is None


@pytest.mark.parametrize("title, dates, message", [
    ("   ", {"2025-6-3"}, "Enter an event title"),
    ("Team dinner", set(), "Select at least one candidate date"),
])
def test_create_event_requires_title_and_dates(poll_service, fake_api, title, dates, message):
    with pytest.raises(ValidationError, match=message):
        poll_service.create_event(title, dates, poll_service.default_settings())
    assert fake_api.requests == []


def test_create_event_rejects_past_deadline(poll_service, fake_api):
    settings = poll_service.default_settings()
    settings = replace(settings, deadline=replace(settings.deadline, date="2025-06-09"))
    with pytest.raises(SettingsValidationError, match="deadline must be a future date and time"):
        poll_service.create_event("Team dinner", {"2025-6-3"}, settings)
    assert fake_api.requests == []


def test_create_event_keeps_draft_on_failure(poll_service, fake_api, storage):
    poll_service.draft_store.save(EventDraft("Team dinner", frozenset({"2025-6-3"}), date(2025, 6, 1)))
    fake_api.fail_status = 503
    with pytest.raises(TransportError):
        poll_service.create_event("Team dinner", {"2025-6-3"}, poll_service.default_settings())
    assert storage.get("eventDraft") is not None


def test_load_voting_session(poll_service, event_id, storage):
    session = poll_service.load_voting_session(event_id)

    assert session.event.title == "Team dinner"
    assert session.candidate_dates == {"2025-6-3", "2025-6-20"}
    assert session.sorted_candidate_dates == ["2025-6-3", "2025-6-20"]
    assert session.id_by_key == {"2025-6-3": 10, "2025-6-20": 11}
    assert session.people == []
    assert session.settings == poll_service.default_settings()
    assert json.loads(storage.get(f"votingSettings_{event_id}"))["deadline"]["date"] == "2025-06-17"


def test_voting_selection_is_gated(poll_service, event_id):
    session = poll_service.load_voting_session(event_id)
    engine = session.selection_engine()
    assert engine.toggle_single(frozenset(), "2025-6-4") == frozenset()
    assert engine.toggle_single(frozenset(), "2025-6-3") == {"2025-6-3"}


def test_submit_availability(poll_service, fake_api, event_id, clock):
    session = poll_service.load_voting_session(event_id)
    participant = poll_service.submit_availability(session, " Aki ", {"2025-6-20"})

    method, path, body = fake_api.requests[-1]
    assert (method, path) == ("POST", f"/api/v1/events/{event_id}/participant")
    assert body == {
        "event_id": event_id,
        "participant_id": int(clock.now().timestamp() * 1000),
        "name": "Aki",
        "available_candidate_dates": [{"id": 11}],
        "unavailable_candidate_dates": [{"id": 10}],
    }
    assert participant.name == "Aki"


def test_submit_without_any_date(poll_service, fake_api, event_id):
    session = poll_service.load_voting_session(event_id)
    poll_service.submit_availability(session, "Aki", frozenset())
    _, _, body = fake_api.requests[-1]
    assert body["available_candidate_dates"] == []
    assert body["unavailable_candidate_dates"] == [{"id": 10}, {"id": 11}]


def test_submit_requires_name(poll_service, fake_api, event_id):
    session = poll_service.load_voting_session(event_id)
    sent = len(fake_api.requests)
    with pytest.raises(ValidationError, match="Enter your name"):
        poll_service.submit_availability(session, "  ", {"2025-6-3"})
    assert len(fake_api.requests) == sent


def test_participants_shown_newest_first(poll_service, event_id):
    session = poll_service.load_voting_session(event_id)
    poll_service.submit_availability(session, "Aki", {"2025-6-3"})
    poll_service.submit_availability(session, "Ben", {"2025-6-3", "2025-6-20"})

    session = poll_service.load_voting_session(event_id)
    assert [person.name for person in session.people] == ["Ben", "Aki"]
    assert session.people[1].availability == {"2025-6-3"}


def test_save_settings_for_event(poll_service, fake_api, event_id, storage):
    reconciler = poll_service.new_reconciler(event_id)
    reconciler.set_field("rss.enable", True)
    reconciler.set_field("auto_decision.threshold", None)

    dto = poll_service.save_settings(reconciler, event_id)

    method, path, body = fake_api.requests[-1]
    assert (method, path) == ("PUT", f"/api/v1/events/{event_id}/settings")
    assert body == dto
    assert dto["rss_enabled"] is True
    assert dto["auto_decision_threshold"] == 0
    assert json.loads(storage.get(f"votingSettings_{event_id}"))["rss"]["enable"] is True

    session = poll_service.load_voting_session(event_id)
    assert session.settings.auto_decision.threshold is None


def test_save_settings_while_creating_stays_local(poll_service, fake_api, storage):
    reconciler = poll_service.new_reconciler()
    reconciler.set_field("deadline.enable", False)

    poll_service.save_settings(reconciler)

    assert fake_api.requests == []
    assert poll_service.load_settings().deadline.enable is False


def test_save_rejects_past_deadline_without_calling_api(poll_service, fake_api, event_id):
    reconciler = poll_service.new_reconciler(event_id)
    reconciler.set_field("deadline.date", "2025-06-10")
    reconciler.set_field("deadline.time", "11:59")
    sent = len(fake_api.requests)

    with pytest.raises(SettingsValidationError, match="deadline must be a future date and time"):
        poll_service.save_settings(reconciler, event_id)
    assert len(fake_api.requests) == sent


def test_save_rejects_pending_document_error(poll_service, fake_api, event_id):
    reconciler = poll_service.new_reconciler(event_id)
    reconciler.edit_document("{")
    sent = len(fake_api.requests)

    with pytest.raises(SettingsValidationError):
        poll_service.save_settings(reconciler, event_id)
    assert len(fake_api.requests) == sent


def test_read_only_event_settings(poll_service, fake_api):
    settings = replace(poll_service.default_settings(), allow_setting_changes=False)
    event_id = poll_service.create_event("Locked", {"2025-6-3"}, settings)
    poll_service.load_voting_session(event_id)

    reconciler = poll_service.new_reconciler(event_id)
    reconciler.set_field("rss.enable", True)
    sent = len(fake_api.requests)

    with pytest.raises(ReadOnlySettingsError):
        poll_service.save_settings(reconciler, event_id)
    assert len(fake_api.requests) == sent


def test_settings_unlocked_by_the_edit_still_read_only(poll_service, fake_api):
    settings = replace(poll_service.default_settings(), allow_setting_changes=False)
    event_id = poll_service.create_event("Locked", {"2025-6-3"}, settings)
    poll_service.load_voting_session(event_id)

    reconciler = poll_service.new_reconciler(event_id)
    initial = reconciler.settings
    reconciler.set_field("allow_setting_changes", True)

    with pytest.raises(ReadOnlySettingsError):
        poll_service.save_settings(reconciler, event_id, initial)


def test_rss_feed_url(poll_service):
    assert poll_service.rss_feed_url("abc") == "http://poll.test/api/v1/rss/abc/feed"


def test_switching_events_drops_the_previous_selection(poll_service):
    first_id = poll_service.create_event("Team dinner", {"2025-6-3", "2025-6-20"}, poll_service.default_settings())
    second_id = poll_service.create_event("Lunch", {"2025-6-3", "2025-6-21"}, poll_service.default_settings())
    first = poll_service.load_voting_session(first_id)
    second = poll_service.load_voting_session(second_id)

    assert second.carry_over_selection(first, {"2025-6-3"}) == frozenset()
    assert first.carry_over_selection(None, {"2025-6-3"}) == frozenset()


def test_reloading_an_event_keeps_the_selection(poll_service, event_id):
    before = poll_service.load_voting_session(event_id)
    after = poll_service.load_voting_session(event_id)
    assert after.carry_over_selection(before, {"2025-6-3", "2025-6-4"}) == {"2025-6-3"}
