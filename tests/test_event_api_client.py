"""Tests for the event API client against a mock transport."""

from datetime import datetime

import httpx
import pytest
import pytz

from services.errors import TransportError
from services.event_api_client import EventAPIClient

SETTINGS_DTO = {
    "allow_setting_changes": True,
    "deadline_enable": True,
    "deadline": "2025-06-17T14:59:00.000Z",
    "auto_decision_enable": True,
    "auto_decision_threshold": 3,
    "rss_enabled": False,
}


def client_for(handler):
    return EventAPIClient(base_url="http://poll.test", timeout=5, transport=httpx.MockTransport(handler))


def test_create_event(api_client, fake_api):
    event_id = api_client.create_event("Team dinner", ["2025-06-20T10:00:00.000Z"], SETTINGS_DTO)
    assert event_id == "1"

    method, path, body = fake_api.requests[0]
    assert (method, path) == ("POST", "/api/v1/events")
    assert body == {
        "title": "Team dinner",
        "candidate_dates": ["2025-06-20T10:00:00.000Z"],
        "settings": SETTINGS_DTO,
    }


def test_get_event_maps_payload(api_client):
    event_id = api_client.create_event("Team dinner", ["2025-06-20T10:00:00.000Z"], SETTINGS_DTO)
    candidate_id = api_client.get_event(event_id).candidate_dates[0].id
    api_client.add_participant(event_id, {
        "participant_id": 1,
        "name": "Aki",
        "available_candidate_dates": [{"id": candidate_id}],
        "unavailable_candidate_dates": [],
    })

    event = api_client.get_event(event_id)
    assert event.title == "Team dinner"
    assert event.candidate_dates[0].date_time == datetime(2025, 6, 20, 10, 0, tzinfo=pytz.UTC)
    assert event.deadline == datetime(2025, 6, 17, 14, 59, tzinfo=pytz.UTC)
    assert event.auto_decision_threshold == 3
    assert event.participants[0].name == "Aki"
    assert event.participants[0].responses[0].status == "available"


def test_event_without_deadline(api_client):
    event_id = api_client.create_event("Lunch", [], dict(SETTINGS_DTO, deadline_enable=False, deadline=""))
    assert api_client.get_event(event_id).deadline is None


def test_update_settings(api_client, fake_api):
    event_id = api_client.create_event("Lunch", [], SETTINGS_DTO)
    api_client.update_settings(event_id, dict(SETTINGS_DTO, rss_enabled=True))

    method, path, body = fake_api.requests[-1]
    assert (method, path) == ("PUT", f"/api/v1/events/{event_id}/settings")
    assert body["rss_enabled"] is True
    assert api_client.get_event(event_id).rss_enabled is True


def test_empty_body_is_accepted():
    client = client_for(lambda request: httpx.Response(204))
    assert client.update_settings("abc", SETTINGS_DTO) == {}


def test_missing_event_raises_with_status(api_client):
    with pytest.raises(TransportError) as excinfo:
        api_client.get_event("missing")
    assert excinfo.value.status_code == 404


def test_server_error(api_client, fake_api):
    fake_api.fail_status = 500
    with pytest.raises(TransportError) as excinfo:
        api_client.create_event("Lunch", [], SETTINGS_DTO)
    assert excinfo.value.status_code == 500


def test_connection_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as excinfo:
        client_for(refuse).get_event("abc")
    assert excinfo.value.status_code is None


def test_invalid_json_body():
    client = client_for(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(TransportError, match="Invalid JSON"):
        client.get_event("abc")


def test_malformed_event_payload():
    client = client_for(lambda request: httpx.Response(200, json={"title": "no id"}))
    with pytest.raises(TransportError, match="Unexpected event payload"):
        client.get_event("abc")


def test_rss_feed_url():
    client = EventAPIClient(base_url="http://poll.test/")
    assert client.rss_feed_url("abc") == "http://poll.test/api/v1/rss/abc/feed"


def test_configuration_from_environment(monkeypatch):
    monkeypatch.setenv("POLL_API_BASE_URL", "https://polls.example.com")
    monkeypatch.setenv("POLL_API_TIMEOUT", "12.5")
    client = EventAPIClient()
    assert client.base_url == "https://polls.example.com"
    assert client.timeout == 12.5


def test_configuration_defaults(monkeypatch):
    monkeypatch.delenv("POLL_API_BASE_URL", raising=False)
    monkeypatch.delenv("POLL_API_TIMEOUT", raising=False)
    client = EventAPIClient()
    assert client.base_url == "http://127.0.0.1:3000"
    assert client.timeout == 30.0
