"""Conversion of accessibility issues into tracker tickets.

Functions:
    map_priority(priority)                                   -> str
    issue_to_ticket(issue, project_key, parent_epic_key)     -> TicketData
    file_ticket(report, issue_id, client, project_key, ...)  -> (Report, key)

Filing is not deduplicated: filing the same issue twice creates two tickets.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from a11y_report.models import Issue, Priority, Report
from a11y_report.reports.editing import ReportError, update_issue
from a11y_report.wcag import get_criterion

if TYPE_CHECKING:
    from a11y_report.client import TrackerClient

logger = logging.getLogger(__name__)

_TRACKER_PRIORITY = {
    Priority.BLOCKER: "Highest",
    Priority.MEDIUM:  "High",
    Priority.LOW:     "Medium",
}


@dataclass
class TicketData:
    project_key: str
    summary: str
    description: str
    issue_type: str = "Bug"
    priority: str | None = None
    labels: list[str] = field(default_factory=list)
    parent_epic_key: str | None = None

    def to_request_body(self) -> dict[str, Any]:
        """Body for ``POST /rest/api/3/issue`` (description in Atlassian document format)."""
        fields: dict[str, Any] = {
            "project": {"key": self.project_key},
            "summary": self.summary,
            "description": {
                "type": "doc",
                "version": 1,
                "content": [
                    {
                        "type": "paragraph",
                        "content": [{"type": "text", "text": self.description}],
                    }
                ],
            },
            "issuetype": {"name": self.issue_type},
        }
        if self.priority:
            fields["priority"] = {"name": self.priority}
        if self.labels:
            fields["labels"] = list(self.labels)
        if self.parent_epic_key:
            fields["parent"] = {"key": self.parent_epic_key}
        return {"fields": fields}


def map_priority(priority: Priority) -> str:
    return _TRACKER_PRIORITY.get(priority, "Medium")


def issue_to_ticket(
    issue: Issue,
    project_key: str,
    parent_epic_key: str | None = None,
    issue_type: str = "Bug",
) -> TicketData:
    lines = []
    criterion = get_criterion(issue.criterion_number)
    if criterion:
        lines.append(
            f"WCAG Criterion: {criterion.number} - {criterion.title} (Level {criterion.level})"
        )
    lines.append(f"Priority: {issue.priority.label}")
    lines.append(f"Page: {issue.page}")
    if issue.location:
        lines.append(f"Location: {issue.location}")
    if issue.description:
        lines += ["", "Description:", issue.description]
    if issue.notes:
        lines += ["", "Notes and Solutions:", issue.notes]

    return TicketData(
        project_key=project_key,
        summary=f"[A11y] {issue.title}",
        description="\n".join(lines),
        issue_type=issue_type,
        priority=map_priority(issue.priority),
        labels=["accessibility", "wcag"],
        parent_epic_key=parent_epic_key,
    )


def file_ticket(
    report: Report,
    issue_id: str,
    client: "TrackerClient",
    project_key: str,
    parent_epic_key: str | None = None,
    issue_type: str = "Bug",
) -> tuple[Report, str]:
    """Create a ticket for one issue and record its key and URL on the issue.

    Tracker errors propagate unchanged and leave *report* untouched.
    """
    issue = report.get_issue(issue_id)
    if issue is None:
        raise ReportError(f"Issue '{issue_id}' not found")

    ticket = issue_to_ticket(issue, project_key, parent_epic_key, issue_type)
    created = client.create_issue(ticket)
    key = created["key"]
    logger.info("Filed issue %s as %s", issue_id, key)

    updated = update_issue(
        report,
        issue_id,
        tracker_ticket_key=key,
        tracker_ticket_url=client.ticket_url(key),
    )
    return updated, key
