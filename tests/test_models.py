"""Tests for a11y_report/models.py"""

from datetime import datetime, timezone

import pytest

from a11y_report.models import (
    Issue,
    Priority,
    Report,
    TrackerConfig,
    parse_timestamp,
    utc_now,
)


def make_issue_dict(**overrides) -> dict:
    data = {
        "id": "issue-1",
        "page": "Home",
        "criterionNumber": "1.4.3",
        "title": "Low contrast button",
        "description": "Grey on grey",
        "location": "header .cta",
        "notes": "Darken the text",
        "priority": 2,
        "createdAt": "2026-02-23T10:00:00.000Z",
        "updatedAt": "2026-02-23T10:00:00.000Z",
    }
    data.update(overrides)
    return data


# ---------------------------------------------------------------------------
# Priority
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value, expected", [
    (1, Priority.LOW),
    ("2", Priority.MEDIUM),
    ("blocker", Priority.BLOCKER),
    ("Medium", Priority.MEDIUM),
    (Priority.LOW, Priority.LOW),
])
def test_priority_parse(value, expected):
    assert Priority.parse(value) is expected


def test_priority_parse_unknown_raises():
    with pytest.raises(ValueError):
        Priority.parse("urgent")
    with pytest.raises(ValueError):
        Priority.parse(7)


def test_priority_label():
    assert Priority.BLOCKER.label == "Blocker"


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def test_utc_now_format():
    value = utc_now()
    assert value.endswith("Z")
    assert parse_timestamp(value).tzinfo is not None


def test_parse_timestamp_variants():
    expected = datetime(2026, 2, 23, 10, 0, tzinfo=timezone.utc)
    assert parse_timestamp("2026-02-23T10:00:00.000Z") == expected
    assert parse_timestamp("2026-02-23T10:00:00") == expected
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------

def test_issue_from_dict_round_trip():
    data = make_issue_dict()
    issue = Issue.from_dict(data)
    assert issue.criterion_number == "1.4.3"
    assert issue.priority is Priority.MEDIUM
    assert issue.to_dict() == data


def test_issue_to_dict_omits_unset_optional_fields():
    data = Issue.from_dict(make_issue_dict()).to_dict()
    assert "screenshot" not in data
    assert "trackerTicketKey" not in data
    assert "needsReview" not in data


def test_issue_keeps_unknown_keys():
    issue = Issue.from_dict(make_issue_dict(customField="kept"))
    assert issue.extra == {"customField": "kept"}
    assert issue.to_dict()["customField"] == "kept"


def test_issue_missing_fields_get_defaults():
    issue = Issue.from_dict({"id": "x"})
    assert issue.page == ""
    assert issue.title == ""
    assert issue.priority is Priority.LOW


def test_issue_unknown_priority_falls_back_to_low():
    issue = Issue.from_dict(make_issue_dict(priority=9))
    assert issue.priority is Priority.LOW


def test_issue_legacy_ticket_keys_are_renamed():
    issue = Issue.from_dict(make_issue_dict(
        jiraTicketKey="WEB-12",
        jiraTicketUrl="https://acme.atlassian.net/browse/WEB-12",
    ))
    assert issue.tracker_ticket_key == "WEB-12"
    assert issue.tracker_ticket_url.endswith("/browse/WEB-12")
    assert issue.extra == {}


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

def test_report_round_trip_with_tracker_config():
    data = {
        "id": "r1",
        "name": "Audit",
        "pages": ["Home"],
        "issues": [make_issue_dict()],
        "createdAt": "2026-02-23T10:00:00.000Z",
        "updatedAt": "2026-02-23T10:00:00.000Z",
        "trackerConfig": {
            "baseUrl": "https://acme.atlassian.net",
            "apiToken": "secret",
            "userEmail": "me@example.com",
        },
    }
    report = Report.from_dict(data)
    assert report.tracker_config.is_complete
    assert report.to_dict() == data


def test_report_to_dict_without_credentials_drops_token():
    report = Report(
        id="r1", name="Audit",
        tracker_config=TrackerConfig("https://acme.atlassian.net", "secret", "me@example.com"),
    )
    config = report.to_dict(include_credentials=False)["trackerConfig"]
    assert "apiToken" not in config
    assert config["userEmail"] == "me@example.com"


def test_report_legacy_jira_config():
    report = Report.from_dict({
        "id": "r1", "name": "Audit", "pages": [], "issues": [],
        "createdAt": "", "updatedAt": "",
        "jiraConfig": {"baseUrl": "https://acme.atlassian.net", "apiToken": "t", "userEmail": "e"},
    })
    assert report.tracker_config.base_url == "https://acme.atlassian.net"


def test_report_get_issue():
    report = Report.from_dict({
        "id": "r1", "name": "Audit", "pages": ["Home"], "issues": [make_issue_dict()],
        "createdAt": "", "updatedAt": "",
    })
    assert report.get_issue("issue-1").title == "Low contrast button"
    assert report.get_issue("missing") is None


# ---------------------------------------------------------------------------
# Malformed documents
# ---------------------------------------------------------------------------

def test_issue_null_text_fields_read_as_empty_strings():
    issue = Issue.from_dict(make_issue_dict(page=None, criterionNumber=None, title=None, notes=None))
    assert issue.page == ""
    assert issue.criterion_number == ""
    assert issue.title == ""
    assert issue.notes == ""


def test_issue_non_string_text_fields_are_stringified():
    issue = Issue.from_dict(make_issue_dict(page=404, criterionNumber=1.1, screenshot=7))
    assert issue.page == "404"
    assert issue.criterion_number == "1.1"
    assert issue.screenshot == "7"


def test_issue_coerced_values_are_written_back_as_stored():
    data = make_issue_dict(page=None, criterionNumber=143, priority="urgent")
    issue = Issue.from_dict(data)
    assert issue.priority is Priority.LOW
    assert issue.to_dict() == data


def test_issue_edited_field_is_written_as_edited():
    issue = Issue.from_dict(make_issue_dict(page=None, title=None))
    data = issue.with_changes(page="Cart").to_dict()
    assert data["page"] == "Cart"
    assert data["title"] is None


def test_report_keeps_non_object_issue_entries_in_place():
    data = {
        "id": "r1", "name": "Audit", "pages": ["Home"],
        "issues": ["legacy-string-issue", make_issue_dict(), None, 42],
        "createdAt": "", "updatedAt": "",
    }
    report = Report.from_dict(data)
    assert [i.id for i in report.issues] == ["issue-1"]
    assert report.unparsed_issues == [(0, "legacy-string-issue"), (2, None), (3, 42)]
    assert report.to_dict() == data


def test_report_keeps_unknown_keys_and_unreadable_tracker_config():
    data = {
        "id": "r1", "name": "Audit", "pages": [], "issues": [],
        "createdAt": "", "updatedAt": "",
        "trackerConfig": "see wiki",
        "auditor": {"name": "Sam"},
    }
    report = Report.from_dict(data)
    assert report.tracker_config is None
    assert report.extra == {"trackerConfig": "see wiki", "auditor": {"name": "Sam"}}
    assert report.to_dict() == data


def test_report_null_tracker_config_is_written_back():
    data = {"id": "r1", "name": "Audit", "pages": [], "issues": [],
            "createdAt": "", "updatedAt": "", "trackerConfig": None}
    assert Report.from_dict(data).to_dict() == data


def test_report_configured_tracker_replaces_unreadable_one():
    report = Report.from_dict({
        "id": "r1", "name": "Audit", "pages": [], "issues": [],
        "createdAt": "", "updatedAt": "", "trackerConfig": ["bad"],
    })
    report.tracker_config = TrackerConfig("https://acme.atlassian.net", "t", "e")
    assert report.to_dict()["trackerConfig"]["baseUrl"] == "https://acme.atlassian.net"
