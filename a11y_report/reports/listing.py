"""Display ordering and filtering of a report's issues.

Nothing here mutates the report; each call returns a new list.
"""

from collections.abc import Iterable

from a11y_report.models import Issue, Report, SortBy


def sort_issues(issues: Iterable[Issue], sort_by: SortBy | str) -> list[Issue]:
    """Order issues for display.

    page      -> page name, lexical
    criteria  -> criterion number, lexical
    priority  -> highest priority first
    """
    sort_by = SortBy(sort_by)
    if sort_by is SortBy.PAGE:
        return sorted(issues, key=lambda i: i.page)
    if sort_by is SortBy.CRITERIA:
        return sorted(issues, key=lambda i: i.criterion_number)
    return sorted(issues, key=lambda i: int(i.priority), reverse=True)


def filter_issues(issues: Iterable[Issue], needs_review: bool = False) -> list[Issue]:
    """Keep only issues still awaiting review when *needs_review* is set."""
    if not needs_review:
        return list(issues)
    return [issue for issue in issues if issue.needs_review]


def display_issues(
    report: Report,
    sort_by: SortBy | str = SortBy.PRIORITY,
    needs_review: bool = False,
) -> list[Issue]:
    return sort_issues(filter_issues(report.issues, needs_review), sort_by)
