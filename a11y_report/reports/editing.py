"""Report editing operations.

Every function is pure: it takes a Report and returns a new Report value,
leaving its input untouched.

Functions:
    create_report(name)                          -> Report
    add_issue(report, **fields)                  -> Report
    update_issue(report, issue_id, **changes)    -> Report
    duplicate_issue(report, issue_id)            -> Report
    delete_issue(report, issue_id)               -> Report
    merge_reports(first, second, name)           -> Report
    validate_report(data)                        -> bool
    load_report(text) / read_report(path)        -> Report
    dump_report(report)                          -> str
"""

import json
import re
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any

from a11y_report.models import (
    Issue,
    Priority,
    Report,
    TrackerConfig,
    new_id,
    parse_timestamp,
    utc_now,
)


class ReportError(Exception):
    """Raised when a report document is malformed or an edit is invalid."""


# ---------------------------------------------------------------------------
# Creation and issue edits
# ---------------------------------------------------------------------------

def create_report(name: str) -> Report:
    now = utc_now()
    return Report(id=new_id(), name=name, created_at=now, updated_at=now)


def add_issue(report: Report, **fields: Any) -> Report:
    """Append a new issue; ``id`` and timestamps are assigned here.

    Required fields: page, criterion_number, title.
    """
    _check_editable(fields)
    missing = [f for f in ("page", "criterion_number", "title") if not fields.get(f)]
    if missing:
        raise ReportError(f"Missing required issue field(s): {', '.join(missing)}")
    if "priority" in fields:
        fields["priority"] = Priority.parse(fields["priority"])

    now = utc_now()
    issue = Issue(id=new_id(), created_at=now, updated_at=now, **fields)
    pages = report.pages if issue.page in report.pages else [*report.pages, issue.page]
    return replace(report, pages=pages, issues=[*report.issues, issue], updated_at=now)


def update_issue(report: Report, issue_id: str, **changes: Any) -> Report:
    """Merge *changes* into one issue and refresh its ``updated_at``.

    An unknown *issue_id* leaves the issues untouched. Pages that are no
    longer referenced are kept; only ``delete_issue`` prunes them.
    """
    _check_editable(changes)
    if "priority" in changes:
        changes["priority"] = Priority.parse(changes["priority"])

    now = utc_now()
    old = report.get_issue(issue_id)
    issues = [
        issue.with_changes(**changes, updated_at=now) if issue.id == issue_id else issue
        for issue in report.issues
    ]

    pages = report.pages
    new_page = changes.get("page")
    if new_page and old is not None and old.page != new_page and new_page not in pages:
        pages = [*pages, new_page]

    return replace(report, pages=pages, issues=issues, updated_at=now)


def duplicate_issue(report: Report, issue_id: str) -> Report:
    """Copy an issue's content under a new id, without its ticket reference."""
    source = report.get_issue(issue_id)
    if source is None:
        raise ReportError(f"Issue '{issue_id}' not found")
    fields = {attr: getattr(source, attr) for attr in Issue.EDITABLE}
    fields.pop("tracker_ticket_url")
    fields.pop("tracker_ticket_key")
    return add_issue(report, **fields)


def delete_issue(report: Report, issue_id: str) -> Report:
    """Remove an issue and prune pages that no issue references any more."""
    issues = [issue for issue in report.issues if issue.id != issue_id]
    used = {issue.page for issue in issues}
    pages = [page for page in report.pages if page in used]
    return replace(report, pages=pages, issues=issues, updated_at=utc_now())


def _check_editable(fields: dict[str, Any]) -> None:
    unknown = sorted(set(fields) - set(Issue.EDITABLE))
    if unknown:
        raise ReportError(f"Field(s) cannot be edited: {', '.join(unknown)}")


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def merge_reports(first: Report, second: Report, name: str) -> Report:
    """Combine two reports into a new one called *name*.

    Issues sharing an id are resolved by keeping the copy whose
    ``updated_at`` is strictly later; on an exact tie (or when either
    timestamp cannot be read) the copy from *first* is kept. Pages are the
    union of both page lists plus every page a surviving issue references.

    The tracker config comes from whichever report has a complete one,
    checking *first* before *second*; failing that, any config present.
    """
    merged: dict[str, Issue] = {}
    for issue in first.issues:
        merged[issue.id] = issue
    for issue in second.issues:
        existing = merged.get(issue.id)
        if existing is None or _is_newer(issue, existing):
            merged[issue.id] = issue

    issues = list(merged.values())
    pages = list(dict.fromkeys([*first.pages, *second.pages, *(i.page for i in issues)]))

    now = utc_now()
    return Report(
        id=new_id(),
        name=name,
        pages=pages,
        issues=issues,
        created_at=now,
        updated_at=now,
        tracker_config=_pick_tracker_config(first.tracker_config, second.tracker_config),
        unparsed_issues=_unparsed_after(first, second, len(issues)),
    )


def _unparsed_after(first: Report, second: Report, parsed: int) -> list[tuple[int, Any]]:
    """Keep both reports' unreadable issue entries; those of *second* go last."""
    offset = parsed + len(first.unparsed_issues)
    return [
        *first.unparsed_issues,
        *((offset + position, value) for position, value in second.unparsed_issues),
    ]


def _is_newer(candidate: Issue, existing: Issue) -> bool:
    candidate_at = parse_timestamp(candidate.updated_at)
    existing_at = parse_timestamp(existing.updated_at)
    if candidate_at is None or existing_at is None:
        return False
    return candidate_at > existing_at


def _pick_tracker_config(
    first: TrackerConfig | None,
    second: TrackerConfig | None,
) -> TrackerConfig | None:
    for config in (first, second):
        if config is not None and config.is_complete:
            return config
    return first or second


# ---------------------------------------------------------------------------
# Persisted document
# ---------------------------------------------------------------------------

def validate_report(data: Any) -> bool:
    """Structural check only; issue contents are not inspected."""
    if not isinstance(data, dict):
        return False
    return (
        isinstance(data.get("id"), str)
        and isinstance(data.get("name"), str)
        and isinstance(data.get("pages"), list)
        and isinstance(data.get("issues"), list)
        and isinstance(data.get("createdAt"), str)
        and isinstance(data.get("updatedAt"), str)
    )


def load_report(text: str) -> Report:
    """Parse a report document.

    Raises:
        ReportError: invalid JSON or a document that fails validate_report().
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ReportError(f"Report is not valid JSON: {exc}") from exc
    if not validate_report(data):
        raise ReportError("Invalid report format")
    return Report.from_dict(data)


def read_report(path: str | Path) -> Report:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ReportError(f"Unable to read '{path}': {exc}") from exc
    return load_report(text)


def dump_report(report: Report, include_credentials: bool = True) -> str:
    """Serialize a report; without credentials the tracker API token is dropped."""
    return json.dumps(report.to_dict(include_credentials=include_credentials),
                      indent=2, ensure_ascii=False)


def report_filename(name: str, extension: str, when: datetime | None = None) -> str:
    """Return e.g. ``home_page_audit_20260223-101500.json``."""
    when = when or datetime.now()
    stem = re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE).lower()
    return f"{stem}_{when.strftime('%Y%m%d-%H%M%S')}.{extension}"
