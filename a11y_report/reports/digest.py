"""Periodic digest of the issues recorded in a report.

Functions:
    week_range(week_offset, now)                -> (start, end)
    filter_by_date_range(issues, start, end)    -> list[Issue]
    weekly_issues(issues, week_offset, now)     -> list[Issue]
    count_by_priority(issues)                   -> dict
    criteria_percentages(issues)                -> dict
    percentage_change(current, previous)        -> dict
    summarize_since(report, start, now)         -> dict
    generate_digest(report, start, now)         -> str   (Markdown)
    criteria_summaries(report)                  -> str

Weeks start on Sunday at 00:00 local time. Naive datetimes passed in are
treated as local time; issue timestamps are compared by their creation date.
"""

import math
from collections.abc import Iterable
from datetime import datetime, time, timedelta

from a11y_report.models import Issue, Priority, Report, parse_timestamp
from a11y_report.wcag import get_criterion, natural_key


def _local(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now().astimezone()
    return value.astimezone()


def _js_round(value: float) -> int:
    """Round half up, so 12.5 -> 13 rather than banker's 12."""
    return math.floor(value + 0.5)


# ---------------------------------------------------------------------------
# Date ranges
# ---------------------------------------------------------------------------

def week_range(week_offset: int = 0, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return (Sunday 00:00, Saturday 23:59:59.999) of a week.

    ``week_offset`` 0 is the current week, -1 the previous one, and so on.
    Both bounds carry the local UTC offset in force on their own date, which
    differs from ``now``'s when the week spans a daylight-saving change.
    """
    now = _local(now)
    days_since_sunday = (now.weekday() + 1) % 7
    sunday = now.date() - timedelta(days=days_since_sunday) + timedelta(weeks=week_offset)
    start = datetime.combine(sunday, time()).astimezone()
    end = datetime.combine(sunday + timedelta(days=6), time(23, 59, 59, 999000)).astimezone()
    return start, end


def filter_by_date_range(issues: Iterable[Issue], start: datetime, end: datetime) -> list[Issue]:
    """Issues created within [start, end]; unreadable timestamps are skipped."""
    start, end = _local(start), _local(end)
    selected = []
    for issue in issues:
        created = parse_timestamp(issue.created_at)
        if created is not None and start <= created <= end:
            selected.append(issue)
    return selected


def weekly_issues(issues: Iterable[Issue], week_offset: int = 0,
                  now: datetime | None = None) -> list[Issue]:
    start, end = week_range(week_offset, now)
    return filter_by_date_range(issues, start, end)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def count_by_priority(issues: Iterable[Issue]) -> dict[str, int]:
    counts = {"blocker": 0, "medium": 0, "low": 0}
    for issue in issues:
        if issue.priority == Priority.BLOCKER:
            counts["blocker"] += 1
        elif issue.priority == Priority.MEDIUM:
            counts["medium"] += 1
        elif issue.priority == Priority.LOW:
            counts["low"] += 1
    return counts


def criteria_percentages(issues: list[Issue]) -> dict[str, dict]:
    """Share of issues per criterion, keyed by criterion number.

    Each value is ``{"count": int, "percentage": int, "name": str}``;
    percentages are rounded individually and may not add up to 100.
    """
    total = len(issues)
    if total == 0:
        return {}

    counts: dict[str, int] = {}
    for issue in issues:
        counts[issue.criterion_number] = counts.get(issue.criterion_number, 0) + 1

    result = {}
    for number, count in counts.items():
        criterion = get_criterion(number)
        result[number] = {
            "count":      count,
            "percentage": _js_round(count / total * 100),
            "name":       criterion.title if criterion else "",
        }
    return result


def percentage_change(current: int, previous: int) -> dict:
    if previous == 0:
        return {"direction": "up" if current > 0 else "same", "percentage": 100}

    change = current - previous
    percentage = _js_round(abs(change) / previous * 100)
    if change > 0:
        return {"direction": "up", "percentage": percentage}
    if change < 0:
        return {"direction": "down", "percentage": percentage}
    return {"direction": "same", "percentage": 0}


def summarize_since(report: Report, start: datetime, now: datetime | None = None) -> dict:
    """Count of issues created since *start* plus their priority breakdown."""
    issues = filter_by_date_range(report.issues, start, _local(now))
    return {
        "report":      report.name,
        "since":       _local(start).isoformat(),
        "count":       len(issues),
        "by_priority": count_by_priority(issues),
        "by_criteria": criteria_percentages(issues),
    }


# ---------------------------------------------------------------------------
# Text output
# ---------------------------------------------------------------------------

def _join_with_and(parts: list[str]) -> str:
    if len(parts) <= 1:
        return "".join(parts)
    if len(parts) == 2:
        return f"{parts[0]} and {parts[1]}"
    return f"{', '.join(parts[:-1])}, and {parts[-1]}"


def generate_digest(report: Report, start: datetime, now: datetime | None = None) -> str:
    """Markdown digest of the issues created between *start* and now."""
    start = _local(start)
    issues = filter_by_date_range(report.issues, start, _local(now))
    since = f"{start.month}/{start.day}/{start.year}"

    text = f"# {report.name} Weekly Report\n\n"
    if not issues:
        return text + f"Since {since}: no issues found.\n"

    priorities = count_by_priority(issues)
    text += (f"Since {since}, a total of **{len(issues)}** issues were found "
             f"in the following criteria")

    breakdown = []
    if priorities["blocker"]:
        breakdown.append(f"{priorities['blocker']} are blockers")
    if priorities["medium"]:
        breakdown.append(f"{priorities['medium']} are medium priority")
    if priorities["low"]:
        breakdown.append(f"{priorities['low']} are low priority")
    if breakdown:
        text += f" (of which {_join_with_and(breakdown)})"
    text += "\n\n"

    percentages = criteria_percentages(issues)
    for number in sorted(percentages, key=natural_key):
        data = percentages[number]
        text += f"- **{number}** {data['name']} - {data['percentage']}%\n"
    return text


def criteria_summaries(report: Report) -> str:
    """One paragraph per criterion describing where its issues were found.

    Example::

        1.4.3 Contrast (Minimum)
        In the Home page, Low contrast button in header. Grey footer text.
    """
    by_criterion: dict[str, list[Issue]] = {}
    for issue in report.issues:
        by_criterion.setdefault(issue.criterion_number, []).append(issue)

    summaries = []
    for number in sorted(by_criterion, key=natural_key):
        criterion = get_criterion(number)
        name = criterion.title if criterion else ""

        by_page: dict[str, list[Issue]] = {}
        for issue in by_criterion[number]:
            by_page.setdefault(issue.page, []).append(issue)

        page_texts = []
        for page, issues in by_page.items():
            described = [f"{i.title} in {i.location}" if i.location else i.title for i in issues]
            page_texts.append(f"In the {page} page, {'. '.join(described)}")

        summaries.append(f"{number} {name}\n" + ". ".join(page_texts) + ".")
    return "\n\n".join(summaries)
