"""
Pytest configuration and shared fixtures.
"""

import json
from datetime import datetime

import httpx
import pytest
import pytz

from services.clock import FixedClock
from services.event_api_client import EventAPIClient
from services.poll_service import PollService
from services.session_storage import InMemorySessionStorage

TEST_TIMEZONE = "Asia/Tokyo"
BASE_URL = "http://poll.test"


class FakeEventAPI:
    """In-memory stand-in for the event API, served through httpx.MockTransport."""

    def __init__(self):
        self.events = {}
        self.requests = []
        self.fail_status = None
        self._next_event_id = 1
        self._next_candidate_id = 10
        self._next_participant_id = 100
        self._next_response_id = 1000

    def calls(self, method=None):
        return [r for r in self.requests if method is None or r[0] == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))

        if self.fail_status:
            return httpx.Response(self.fail_status, json={"error": "failure"})

        parts = request.url.path.strip("/").split("/")
        if parts[:3] != ["api", "v1", "events"]:
            return httpx.Response(404, json={"error": "not found"})

        if request.method == "POST" and len(parts) == 3:
            return httpx.Response(201, json=self._create(body))

        event = self.events.get(parts[3]) if len(parts) > 3 else None
        if event is None:
            return httpx.Response(404, json={"error": "event not found"})

        if request.method == "GET" and len(parts) == 4:
            return httpx.Response(200, json=event)
        if request.method == "PUT" and parts[4:] == ["settings"]:
            self._apply_settings(event, body)
            return httpx.Response(200, json={"message": "settings updated"})
        if request.method == "POST" and parts[4:] == ["participant"]:
            return httpx.Response(201, json=self._add_participant(event, body))
        return httpx.Response(405, json={"error": "method not allowed"})

    def _create(self, body):
        event_id = str(self._next_event_id)
        self._next_event_id += 1

        candidate_dates = []
        for date_time in body["candidate_dates"]:
            candidate_dates.append({
                "id": self._next_candidate_id,
                "event_id": event_id,
                "date_time": date_time,
            })
            self._next_candidate_id += 1

        event = {
            "id": event_id,
            "title": body["title"],
            "candidate_dates": candidate_dates,
            "participants": [],
        }
        self._apply_settings(event, body["settings"])
        self.events[event_id] = event
        return {"id": event_id}

    def _apply_settings(self, event, settings):
        event["allow_setting_changes"] = settings["allow_setting_changes"]
        event["deadline"] = settings["deadline"] or None
        event["auto_decision_enable"] = settings["auto_decision_enable"]
        event["auto_decision_threshold"] = settings["auto_decision_threshold"]
        event["rss_enabled"] = settings["rss_enabled"]

    def _add_participant(self, event, body):
        participant_id = self._next_participant_id
        self._next_participant_id += 1

        responses = []
        for status, key in (("available", "available_candidate_dates"),
                            ("unavailable", "unavailable_candidate_dates")):
            for candidate in body[key]:
                responses.append({
                    "id": self._next_response_id,
                    "participant_id": participant_id,
                    "candidate_date_id": candidate["id"],
                    "status": status,
                })
                self._next_response_id += 1

        participant = {
            "id": participant_id,
            "event_id": event["id"],
            "name": body["name"],
            "responses": responses,
        }
        event["participants"].append(participant)
        return participant


@pytest.fixture
def tz():
    """Local timezone used by the tests (UTC+9, no DST)."""
    return TEST_TIMEZONE


@pytest.fixture
def clock():
    """2025-06-10 12:00 in Tokyo."""
    return FixedClock(datetime(2025, 6, 10, 3, 0, tzinfo=pytz.UTC))


@pytest.fixture
def storage():
    return InMemorySessionStorage()


@pytest.fixture
def fake_api():
    return FakeEventAPI()


@pytest.fixture
def api_client(fake_api):
    return EventAPIClient(base_url=BASE_URL, timeout=5, transport=httpx.MockTransport(fake_api.handler))


@pytest.fixture
def poll_service(api_client, storage, clock, tz):
    return PollService(api_client, storage, clock, tz)
