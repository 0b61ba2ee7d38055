"""Data models for accessibility reports.

Contains the dataclasses that make up a report and their JSON helpers:
    - Priority        (Low / Medium / Blocker)
    - SortBy          (page / criteria / priority)
    - TrackerConfig   (issue tracker credentials attached to a report)
    - Issue
    - Report

``to_dict()`` / ``from_dict()`` speak the persisted document format, which
uses camelCase keys (``criterionNumber``, ``createdAt``, ...).
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Priority(IntEnum):
    LOW = 1
    MEDIUM = 2
    BLOCKER = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        """Accept 1-3, or a label such as "blocker" (case-insensitive)."""
        if isinstance(value, Priority):
            return value
        if isinstance(value, str) and not value.strip().isdigit():
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown priority '{value}'") from None
        return cls(int(value))


class SortBy(str, Enum):
    PAGE = "page"
    CRITERIA = "criteria"
    PRIORITY = "priority"


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def utc_now() -> str:
    """Current time as an ISO-8601 UTC string, e.g. 2026-02-23T10:00:00.000Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp; returns None when it cannot be read.

    Naive values are assumed to be UTC.
    """
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Tracker config
# ---------------------------------------------------------------------------

@dataclass
class TrackerConfig:
    base_url: str = ""
    api_token: str = ""
    user_email: str = ""
    project_key: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.base_url and self.api_token and self.user_email)

    def to_dict(self, include_token: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {"baseUrl": self.base_url}
        if include_token:
            data["apiToken"] = self.api_token
        data["userEmail"] = self.user_email
        if self.project_key is not None:
            data["projectKey"] = self.project_key
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackerConfig":
        return cls(
            base_url=str(data.get("baseUrl") or ""),
            api_token=str(data.get("apiToken") or ""),
            user_email=str(data.get("userEmail") or ""),
            project_key=data.get("projectKey"),
        )


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------

# Persisted key -> attribute name, in document order
_ISSUE_FIELDS = (
    ("id", "id"),
    ("page", "page"),
    ("criterionNumber", "criterion_number"),
    ("title", "title"),
    ("description", "description"),
    ("location", "location"),
    ("screenshot", "screenshot"),
    ("notes", "notes"),
    ("priority", "priority"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
    ("trackerTicketUrl", "tracker_ticket_url"),
    ("trackerTicketKey", "tracker_ticket_key"),
    ("needsReview", "needs_review"),
)

_OPTIONAL_ISSUE_KEYS = {
    "screenshot", "trackerTicketUrl", "trackerTicketKey", "needsReview",
}

_TEXT_ISSUE_KEYS = {
    "id", "page", "criterionNumber", "title", "description", "location",
    "notes", "createdAt", "updatedAt",
}

_OPTIONAL_TEXT_ISSUE_KEYS = {"screenshot", "trackerTicketUrl", "trackerTicketKey"}

# Documents written before the tracker was generalised
_LEGACY_KEYS = {
    "jiraTicketUrl": "trackerTicketUrl",
    "jiraTicketKey": "trackerTicketKey",
    "jiraConfig":    "trackerConfig",
}


@dataclass
class Issue:
    id: str
    page: str
    criterion_number: str
    title: str
    description: str = ""
    location: str = ""
    screenshot: str | None = None
    notes: str = ""
    priority: Priority = Priority.LOW
    created_at: str = ""
    updated_at: str = ""
    tracker_ticket_url: str | None = None
    tracker_ticket_key: str | None = None
    needs_review: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)
    # Persisted key -> (stored value, coerced value) for fields read leniently
    coerced: dict[str, tuple[Any, Any]] = field(default_factory=dict, repr=False, compare=False)

    #: Fields that callers may set through add/update
    EDITABLE = (
        "page", "criterion_number", "title", "description", "location",
        "screenshot", "notes", "priority", "tracker_ticket_url",
        "tracker_ticket_key", "needs_review",
    )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for key, attr in _ISSUE_FIELDS:
            value = getattr(self, attr)
            if key in _OPTIONAL_ISSUE_KEYS and value is None:
                continue
            if key in self.coerced:
                stored, coerced = self.coerced[key]
                if value == coerced:
                    data[key] = stored
                    continue
            if key == "priority":
                value = int(value)
            data[key] = value
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Issue":
        """Build an Issue from a persisted dict.

        Issue-level shape is not validated: missing text fields default to
        empty strings, null or non-string text becomes a string, and keys we
        do not know about are kept in ``extra``. Values that had to be
        coerced are written back as stored until the field is edited.
        """
        data = _rename_legacy(data)
        known = {key for key, _ in _ISSUE_FIELDS}
        kwargs: dict[str, Any] = {}
        coerced: dict[str, tuple[Any, Any]] = {}
        for key, attr in _ISSUE_FIELDS:
            if key not in data:
                continue
            value = data[key]
            if key in _TEXT_ISSUE_KEYS:
                converted = _coerce_text(value)
            elif key in _OPTIONAL_TEXT_ISSUE_KEYS and value is not None:
                converted = _coerce_text(value)
            elif key == "priority":
                converted = _coerce_priority(value)
            else:
                converted = value
            if converted != value:
                coerced[key] = (value, converted)
            kwargs[attr] = converted
        kwargs.setdefault("id", "")
        kwargs.setdefault("page", "")
        kwargs.setdefault("criterion_number", "")
        kwargs.setdefault("title", "")
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs, extra=extra, coerced=coerced)

    def with_changes(self, **changes: Any) -> "Issue":
        edited = {key for key, attr in _ISSUE_FIELDS if attr in changes}
        coerced = {k: v for k, v in self.coerced.items() if k not in edited}
        return replace(self, **changes, coerced=coerced)


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        logger.warning("Unexpected %s in issue text field, reading it as empty",
                       type(value).__name__)
        return ""
    return str(value)


def _coerce_priority(value: Any) -> Priority:
    try:
        return Priority.parse(value)
    except (TypeError, ValueError):
        logger.warning("Unknown priority %r, falling back to Low", value)
        return Priority.LOW


def _rename_legacy(data: dict[str, Any]) -> dict[str, Any]:
    if not any(key in data for key in _LEGACY_KEYS):
        return data
    renamed = dict(data)
    for old, new in _LEGACY_KEYS.items():
        if old in renamed:
            value = renamed.pop(old)
            renamed.setdefault(new, value)
    return renamed


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass
class Report:
    id: str
    name: str
    pages: list[str] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    tracker_config: TrackerConfig | None = None
    # Issue entries that are not objects, as (position, stored value)
    unparsed_issues: list[tuple[int, Any]] = field(default_factory=list, repr=False)
    # Report-level keys we do not know about, and a trackerConfig we cannot read
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    def get_issue(self, issue_id: str) -> Issue | None:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None

    def to_dict(self, include_credentials: bool = True) -> dict[str, Any]:
        entries: list[Any] = [issue.to_dict() for issue in self.issues]
        for position, value in self.unparsed_issues:
            entries.insert(min(position, len(entries)), value)
        data: dict[str, Any] = {
            "id":        self.id,
            "name":      self.name,
            "pages":     list(self.pages),
            "issues":    entries,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.tracker_config is not None:
            data["trackerConfig"] = self.tracker_config.to_dict(include_token=include_credentials)
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Report":
        """Build a Report from a persisted dict.

        Entries of ``issues`` that are not objects cannot be displayed; they
        are kept aside with their position and written back in place.
        """
        data = _rename_legacy(data)
        issues: list[Issue] = []
        unparsed: list[tuple[int, Any]] = []
        for position, entry in enumerate(data.get("issues") or []):
            if isinstance(entry, dict):
                issues.append(Issue.from_dict(entry))
            else:
                logger.warning("Keeping unreadable issue entry %d (%s) as stored",
                               position, type(entry).__name__)
                unparsed.append((position, entry))

        known = {"id", "name", "pages", "issues", "createdAt", "updatedAt", "trackerConfig"}
        extra = {k: v for k, v in data.items() if k not in known}
        raw_config = data.get("trackerConfig")
        tracker_config = None
        if isinstance(raw_config, dict):
            tracker_config = TrackerConfig.from_dict(raw_config)
        elif "trackerConfig" in data:
            extra["trackerConfig"] = raw_config

        return cls(
            id=data["id"],
            name=data["name"],
            pages=list(data.get("pages") or []),
            issues=issues,
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            tracker_config=tracker_config,
            unparsed_issues=unparsed,
            extra=extra,
        )
