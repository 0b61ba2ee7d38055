"""Self-contained HTML export.

The document has no external references: styles are inlined and
screenshots are embedded as data URLs, so it can be opened offline.
"""

import html

from a11y_report.models import Issue, Report, SortBy, parse_timestamp
from a11y_report.reports.listing import sort_issues
from a11y_report.wcag import get_criterion

_CSS = """
* { margin: 0; padding: 0; box-sizing: border-box; }
body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
    line-height: 1.6; color: #212529; background-color: #fff;
    padding: 2rem; max-width: 1200px; margin: 0 auto;
}
header { margin-bottom: 2rem; padding-bottom: 1rem; border-bottom: 2px solid #dee2e6; }
h1 { font-size: 2rem; margin-bottom: 0.5rem; color: #1a1a1a; }
.meta-info { color: #6c757d; font-size: 0.9rem; }
h2 {
    font-size: 1.5rem; margin-top: 2rem; margin-bottom: 1rem; color: #1a1a1a;
    padding-bottom: 0.5rem; border-bottom: 1px solid #dee2e6;
}
h3 { font-size: 1.2rem; margin-bottom: 0.75rem; color: #2c3e50; }
.page-section { margin-bottom: 3rem; }
.issue-item {
    background: #f8f9fa; border: 1px solid #dee2e6; border-radius: 8px;
    padding: 1.5rem; margin-bottom: 1.5rem;
}
.field { margin-bottom: 1rem; }
.field:last-child { margin-bottom: 0; }
.field strong { color: #495057; display: block; margin-bottom: 0.25rem; }
.field p { white-space: pre-wrap; margin: 4px 0 0 0; }
.field img { max-width: 100%; height: auto; border: 1px solid #dee2e6; border-radius: 4px; margin-top: 8px; }
.field.meta {
    margin-top: 1rem; padding-top: 1rem; border-top: 1px solid #dee2e6;
    display: flex; gap: 1rem; flex-wrap: wrap;
}
.field.meta small { color: #6c757d; }
.priority { display: inline-block; padding: 0.25rem 0.75rem; font-size: 0.875rem; font-weight: 600; border-radius: 12px; }
.priority-1 { background-color: #d1ecf1; color: #0c5460; }
.priority-2 { background-color: #fff3cd; color: #856404; }
.priority-3 { background-color: #f8d7da; color: #721c24; }
.ticket-link {
    display: inline-block; padding: 0.25rem 0.5rem; background-color: #0052cc; color: #ffffff;
    text-decoration: none; border-radius: 4px; font-size: 0.875rem; font-weight: 500;
}
@media print {
    body { padding: 1rem; }
    .issue-item { page-break-inside: avoid; }
}
"""


def _esc(value) -> str:
    return html.escape(str(value or ""))


def _format_time(value: str) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return _esc(value)
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M")


def _render_criterion(number: str) -> str:
    criterion = get_criterion(number)
    if criterion is None:
        return _esc(number)
    return _esc(f"{criterion.number} - {criterion.title} (Level {criterion.level})")


def _render_issue(issue: Issue) -> str:
    screenshot = ""
    if issue.screenshot:
        screenshot = f"""
            <div class="field">
                <strong>Screenshot:</strong>
                <img src="{_esc(issue.screenshot)}" alt="{_esc(issue.location)}" />
            </div>"""

    ticket = ""
    if issue.tracker_ticket_url and issue.tracker_ticket_key:
        ticket = f"""
            <div class="field">
                <strong>Tracker Ticket:</strong>
                <a href="{_esc(issue.tracker_ticket_url)}" target="_blank" rel="noopener noreferrer" class="ticket-link">{_esc(issue.tracker_ticket_key)}</a>
            </div>"""

    return f"""
        <div class="issue-item">
            <h3>{_esc(issue.title)}</h3>
            <div class="field">
                <strong>Priority:</strong> <span class="priority priority-{int(issue.priority)}">{issue.priority.label}</span>
            </div>
            <div class="field">
                <strong>WCAG Criterion:</strong> {_render_criterion(issue.criterion_number)}
            </div>
            <div class="field">
                <strong>Description:</strong>
                <p>{_esc(issue.description)}</p>
            </div>
            <div class="field">
                <strong>Location:</strong> {_esc(issue.location)}
            </div>{screenshot}
            <div class="field">
                <strong>Notes and Solutions:</strong>
                <p>{_esc(issue.notes)}</p>
            </div>{ticket}
            <div class="field meta">
                <small>Created: {_format_time(issue.created_at)}</small>
                <small>Updated: {_format_time(issue.updated_at)}</small>
            </div>
        </div>"""


def generate_html(report: Report, sort_by: SortBy | str = SortBy.PRIORITY) -> str:
    """Render *report* as a standalone HTML document, one section per page."""
    sections = []
    for page in report.pages:
        issues = sort_issues((i for i in report.issues if i.page == page), sort_by)
        items = "".join(_render_issue(issue) for issue in issues)
        sections.append(f"""
    <section class="page-section">
        <h2>Page: {_esc(page)}</h2>{items}
    </section>""")

    body = "".join(sections)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Accessibility Report - {_esc(report.name)}</title>
    <style>{_CSS}</style>
</head>
<body>
    <header>
        <h1>Accessibility Report: {_esc(report.name)}</h1>
        <div class="meta-info">
            <p>Created: {_format_time(report.created_at)}</p>
            <p>Updated: {_format_time(report.updated_at)}</p>
            <p><strong>{len(report.issues)} issues found</strong></p>
        </div>
    </header>
    <main>{body}
    </main>
</body>
</html>
"""
