"""Tests for a11y_report/reports/listing.py"""

from a11y_report.models import Issue, Priority, Report, SortBy
from a11y_report.reports.listing import display_issues, filter_issues, sort_issues


def make_issue(issue_id, page="Home", criterion="1.1.1", priority=Priority.LOW, **kw) -> Issue:
    return Issue(id=issue_id, page=page, criterion_number=criterion,
                 title=issue_id, priority=priority, **kw)


ISSUES = [
    make_issue("a", page="Contact", criterion="1.4.3", priority=Priority.LOW),
    make_issue("b", page="About", criterion="1.1.1", priority=Priority.BLOCKER),
    make_issue("c", page="Home", criterion="2.4.4", priority=Priority.MEDIUM),
    make_issue("d", page="About", criterion="1.4.10", priority=Priority.BLOCKER),
]


def ids(issues) -> list[str]:
    return [i.id for i in issues]


# ---------------------------------------------------------------------------
# sort_issues()
# ---------------------------------------------------------------------------

def test_sort_by_page():
    assert ids(sort_issues(ISSUES, SortBy.PAGE)) == ["b", "d", "a", "c"]


def test_sort_by_criteria_is_lexical():
    # "1.4.10" sorts before "1.4.3" as plain text
    assert ids(sort_issues(ISSUES, "criteria")) == ["b", "d", "a", "c"]


def test_sort_by_priority_highest_first_and_stable():
    assert ids(sort_issues(ISSUES, SortBy.PRIORITY)) == ["b", "d", "c", "a"]


def test_sort_does_not_mutate_input():
    issues = list(ISSUES)
    sort_issues(issues, SortBy.PAGE)
    assert issues == ISSUES


# ---------------------------------------------------------------------------
# filter_issues() / display_issues()
# ---------------------------------------------------------------------------

def test_filter_needs_review():
    issues = [make_issue("x", needs_review=True), make_issue("y", needs_review=False),
              make_issue("z")]
    assert ids(filter_issues(issues, needs_review=True)) == ["x"]
    assert ids(filter_issues(issues)) == ["x", "y", "z"]


def test_display_issues_defaults_to_priority():
    report = Report(id="r", name="Audit", issues=list(ISSUES))
    assert ids(display_issues(report)) == ["b", "d", "c", "a"]
