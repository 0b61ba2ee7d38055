"""Issue tracker (Jira REST v3) client.

Usage:
    client = TrackerClient(tracker_config, relay_url="http://127.0.0.1:6904")
    client.test_connection()
    created = client.create_issue(ticket)     # {"id": ..., "key": "WEB-12", "self": ...}
    client.ticket_url(created["key"])

With ``relay_url`` every call is posted to ``<relay_url>/proxy``; without
it the request is forwarded in-process by the same code the relay uses.
"""

import base64
from dataclasses import dataclass
from typing import Any

import requests

from a11y_report.models import TrackerConfig
from a11y_report.relay import BODILESS_STATUSES, send
from a11y_report.tickets import TicketData

DEFAULT_ISSUE_TYPES = [
    {"id": "10001", "name": "Bug"},
    {"id": "10002", "name": "Task"},
    {"id": "10003", "name": "Story"},
]

DEFAULT_PRIORITIES = [
    {"id": "1", "name": "Highest"},
    {"id": "2", "name": "High"},
    {"id": "3", "name": "Medium"},
    {"id": "4", "name": "Low"},
    {"id": "5", "name": "Lowest"},
]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class TrackerClientError(Exception):
    """Base exception for all client errors."""


class AuthenticationError(TrackerClientError):
    """Raised on HTTP 401 (invalid token or e-mail)."""


class NotFoundError(TrackerClientError):
    """Raised on HTTP 404 (unknown project, issue or resource)."""


class NetworkError(TrackerClientError):
    """Raised when the relay or tracker cannot be reached."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

@dataclass
class RelayResponse:
    ok: bool
    status: int
    status_text: str
    data: Any


class TrackerClient:
    """Thin wrapper around the tracker REST API, optionally through the relay."""

    def __init__(
        self,
        config: TrackerConfig,
        relay_url: str | None = None,
        timeout: int = 30,
    ) -> None:
        if not config.is_complete:
            raise TrackerClientError(
                "Tracker configuration is incomplete: base URL, user e-mail and API token are required."
            )
        self._config = config
        self._relay_url = relay_url.rstrip("/") if relay_url else None
        self._timeout = timeout
        self._session = requests.Session()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def api_url(self) -> str:
        return f"{self._config.base_url.rstrip('/')}/rest/api/3"

    def ticket_url(self, key: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/browse/{key}"

    def test_connection(self) -> bool:
        """Return True when the credentials are accepted."""
        try:
            return self._call("GET", "/myself").ok
        except NetworkError:
            return False

    def get_projects(self) -> list[dict]:
        response = self._call("GET", "/project/search")
        self._raise_for_status(response, "Failed to fetch projects")
        data = self._expect(response, dict, "Failed to fetch projects")
        return data.get("values") or []

    def get_issue_types(self, project_key: str) -> list[dict]:
        """Issue types for *project_key*; falls back to Bug/Task/Story."""
        response = self._call(
            "GET", f"/issue/createmeta?projectKeys={project_key}&expand=projects.issuetypes"
        )
        if not response.ok:
            return list(DEFAULT_ISSUE_TYPES)
        data = self._expect(response, dict, "Failed to fetch issue types")
        projects = data.get("projects") or []
        if not projects or not isinstance(projects[0], dict):
            return []
        return projects[0].get("issuetypes") or []

    def get_priorities(self) -> list[dict]:
        response = self._call("GET", "/priority")
        if not response.ok:
            return list(DEFAULT_PRIORITIES)
        return self._expect(response, list, "Failed to fetch priorities")

    def create_issue(self, ticket: TicketData) -> dict:
        """Create a ticket and return ``{"id", "key", "self"}``.

        Raises:
            AuthenticationError: HTTP 401
            NotFoundError:       HTTP 404
            TrackerClientError:  any other failure, with the tracker's message
                                 or a success response that is not a ticket
            NetworkError:        relay or tracker unreachable
        """
        response = self._call("POST", "/issue", body=ticket.to_request_body())
        self._raise_for_status(response, "Failed to create ticket")
        created = self._expect(response, dict, "Failed to create ticket")
        if not isinstance(created.get("key"), str):
            raise TrackerClientError("Failed to create ticket: the tracker did not return a ticket key")
        return created

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _headers(self, with_body: bool) -> dict[str, str]:
        raw = f"{self._config.user_email}:{self._config.api_token}".encode("utf-8")
        headers = {
            "Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}",
            "Accept": "application/json",
        }
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _call(self, method: str, endpoint: str, body: Any = None) -> RelayResponse:
        url = f"{self.api_url}{endpoint}"
        headers = self._headers(with_body=body is not None)

        if self._relay_url is None:
            payload = self._send_direct(url, method, headers, body)
        else:
            payload = self._post_to_relay(url, method, headers, body)

        return RelayResponse(
            ok=bool(payload.get("ok")),
            status=payload.get("status", 500),
            status_text=payload.get("statusText", ""),
            data=payload.get("data"),
        )

    def _send_direct(self, url: str, method: str, headers: dict, body: Any) -> dict:
        try:
            _, payload = send(url, method, headers, body,
                              timeout=self._timeout, session=self._session)
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"Request timed out after {self._timeout}s while contacting '{url}'"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(
                f"Unable to reach tracker at '{self._config.base_url}'"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise TrackerClientError(f"Request to '{url}' failed: {exc}") from exc
        return payload

    def _post_to_relay(self, url: str, method: str, headers: dict, body: Any) -> dict:
        proxy_url = f"{self._relay_url}/proxy"
        try:
            response = self._session.post(
                proxy_url,
                json={"url": url, "method": method, "headers": headers, "body": body},
                timeout=self._timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"Request timed out after {self._timeout}s while contacting '{proxy_url}'"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(f"Unable to reach relay at '{self._relay_url}'") from exc

        if response.status_code in BODILESS_STATUSES and not response.content:
            return {
                "ok": 200 <= response.status_code < 300,
                "status": response.status_code,
                "statusText": response.reason or "",
                "data": None,
            }
        try:
            payload = response.json()
        except ValueError as exc:
            raise TrackerClientError(
                f"Relay returned a non-JSON response ({response.status_code}): {response.text[:200]}"
            ) from exc
        if not isinstance(payload, dict) or "status" not in payload:
            raise TrackerClientError(f"Relay error ({response.status_code}): {payload}")
        return payload

    @staticmethod
    def _raise_for_status(response: RelayResponse, action: str) -> None:
        if response.ok:
            return
        if response.status == 401:
            raise AuthenticationError(
                "Authentication failed: check the user e-mail and API token."
            )
        if response.status == 404:
            raise NotFoundError(f"{action}: resource not found")
        raise TrackerClientError(f"{action}: {_error_message(response)}")

    @staticmethod
    def _expect(response: RelayResponse, kind: type, action: str) -> Any:
        """Return the response data, or raise when it is not a JSON *kind*.

        A 2xx answer with an HTML or plain-text body usually means the base
        URL points at something other than the tracker API.
        """
        if isinstance(response.data, kind):
            return response.data
        preview = str(response.data)[:200] if response.data is not None else "empty body"
        raise TrackerClientError(
            f"{action}: unexpected response from tracker (HTTP {response.status}): {preview}"
        )


def _error_message(response: RelayResponse) -> str:
    data = response.data
    if isinstance(data, dict):
        messages = data.get("errorMessages") or []
        if messages:
            return ", ".join(str(m) for m in messages)
        errors = data.get("errors") or {}
        if errors:
            return ", ".join(str(v) for v in errors.values())
        if data.get("error"):
            return str(data["error"])
    return response.status_text or f"HTTP {response.status}"
