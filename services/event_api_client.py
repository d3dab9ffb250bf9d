"""Remote event API client service."""

import json
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from models.entities import CandidateDate, EventData, Participant, Response
from services.date_key import parse_iso_instant
from services.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:3000"
DEFAULT_TIMEOUT = 30.0


class EventAPIClient:
    """Client for the scheduling poll event API."""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: httpx.BaseTransport = None
    ):
        """
        Initialize event API client.

        Args:
            base_url: Base URL of the API (defaults to env var POLL_API_BASE_URL)
            timeout: Request timeout in seconds (defaults to env var POLL_API_TIMEOUT)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self.base_url = (base_url or os.getenv("POLL_API_BASE_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.timeout = timeout if timeout is not None else float(
            os.getenv("POLL_API_TIMEOUT", str(DEFAULT_TIMEOUT))
        )
        self.transport = transport

    def _get_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send a request and decode the JSON body.

        Raises:
            TransportError: On connection failure, non-2xx status or a non-JSON body
        """
        url = f"{self.base_url}{endpoint}"

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(
                    method,
                    url,
                    json=payload,
                    headers=self._get_headers()
                )
                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error("%s %s returned HTTP %s", method, url, status_code)
            raise TransportError(f"HTTP error: {status_code}", status_code=status_code) from e
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise TransportError(f"Request failed: {e}") from e
        except json.JSONDecodeError as e:
            logger.error("%s %s returned invalid JSON", method, url)
            raise TransportError("Invalid JSON in API response") from e

    def create_event(
        self,
        title: str,
        candidate_dates: List[str],
        settings: Dict[str, Any]
    ) -> str:
        """
        Create an event.

        Args:
            title: Event title
            candidate_dates: Candidate instants as ISO strings
            settings: Settings DTO (see settings_mapping.settings_to_dto)

        Returns:
            The new event ID
        """
        result = self._request("POST", "/api/v1/events", {
            "title": title,
            "candidate_dates": candidate_dates,
            "settings": settings
        })
        return str(result["id"])

    def get_event(self, event_id: str) -> EventData:
        """Fetch an event with its candidate dates, participants and settings."""
        result = self._request("GET", f"/api/v1/events/{event_id}")
        return self._map_event(result)

    def update_settings(self, event_id: str, settings: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an event's settings. Returns the API acknowledgement."""
        return self._request("PUT", f"/api/v1/events/{event_id}/settings", settings) or {}

    def add_participant(self, event_id: str, data: Dict[str, Any]) -> Participant:
        """
        Register a participant and their answers.

        Args:
            event_id: Event ID
            data: Payload with participant_id, name, available_candidate_dates
                and unavailable_candidate_dates (lists of {"id": ...})
        """
        result = self._request("POST", f"/api/v1/events/{event_id}/participant", data)
        return self._map_participant(result)

    def rss_feed_url(self, event_id: str) -> str:
        return f"{self.base_url}/api/v1/rss/{event_id}/feed"

    def _map_candidate_date(self, data: Dict[str, Any]) -> CandidateDate:
        return CandidateDate(
            id=int(data["id"]),
            event_id=str(data.get("event_id", "")),
            date_time=parse_iso_instant(data["date_time"]),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at")
        )

    def _map_response(self, data: Dict[str, Any]) -> Response:
        return Response(
            id=int(data["id"]),
            participant_id=int(data["participant_id"]),
            candidate_date_id=int(data["candidate_date_id"]),
            status=data.get("status", "unavailable"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at")
        )

    def _map_participant(self, data: Dict[str, Any]) -> Participant:
        return Participant(
            id=int(data["id"]),
            event_id=str(data.get("event_id", "")),
            name=data.get("name", ""),
            responses=[self._map_response(r) for r in data.get("responses") or []],
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at")
        )

    def _map_event(self, data: Dict[str, Any]) -> EventData:
        """Map an API event payload to EventData."""
        try:
            deadline = data.get("deadline")
            return EventData(
                id=str(data["id"]),
                title=data.get("title", ""),
                description=data.get("description"),
                creator_name=data.get("creator_name"),
                candidate_dates=[self._map_candidate_date(cd) for cd in data.get("candidate_dates") or []],
                participants=[self._map_participant(p) for p in data.get("participants") or []],
                allow_setting_changes=bool(data.get("allow_setting_changes", True)),
                deadline=parse_iso_instant(deadline) if deadline else None,
                auto_decision_enable=bool(data.get("auto_decision_enable", False)),
                auto_decision_threshold=data.get("auto_decision_threshold"),
                rss_enabled=bool(data.get("rss_enabled") or False),
                created_at=data.get("created_at"),
                updated_at=data.get("updated_at")
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Unexpected event payload: %s", e)
            raise TransportError(f"Unexpected event payload: {e}") from e
