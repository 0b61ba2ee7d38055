"""Plain-text rendering of a single issue, for pasting into other tools."""

from a11y_report.models import Issue
from a11y_report.wcag import get_criterion


def format_issue_text(issue: Issue) -> str:
    criterion = get_criterion(issue.criterion_number)
    if criterion:
        criterion_text = f"{criterion.number} - {criterion.title} ({criterion.level})"
    else:
        criterion_text = issue.criterion_number

    parts = [
        f"Title: {issue.title}",
        f"Priority: {issue.priority.label}",
        f"Page: {issue.page}",
        f"WCAG Criterion: {criterion_text}",
        f"Description:\n{issue.description}",
        f"Location: {issue.location}",
    ]
    if issue.screenshot:
        parts.append(f"Screenshot: {issue.screenshot}")
    parts.append(f"Notes and Solutions:\n{issue.notes}")
    return "\n\n".join(parts)
