"""Import of axe-core scan results.

Accepts either the message envelope written by the browser snippet::

    {"type": "AXE_SCAN_RESULTS", "url": ..., "pageTitle": ..., "results": {...}}

or a bare axe result object with a ``violations`` list. Each violation
that carries a WCAG criterion tag becomes one issue flagged
``needs_review``; the rest (best-practice rules) are skipped.
"""

import json
import logging
from pathlib import Path
from typing import Any

from a11y_report.models import Priority, Report
from a11y_report.parsing import extract_criterion
from a11y_report.reports.editing import ReportError, add_issue

logger = logging.getLogger(__name__)

_IMPACT_PRIORITY = {
    "critical": Priority.BLOCKER,
    "serious":  Priority.MEDIUM,
    "moderate": Priority.LOW,
    "minor":    Priority.LOW,
}


def read_scan(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ReportError(f"Unable to read '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ReportError(f"Scan file is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ReportError("Scan file must contain a JSON object")
    return data


def _violation_location(violation: dict[str, Any]) -> str:
    targets = []
    for node in violation.get("nodes") or []:
        target = node.get("target") or []
        targets.append(" ".join(str(t) for t in target))
    return ", ".join(t for t in targets if t)


def _violation_description(violation: dict[str, Any]) -> str:
    lines = [violation.get("description", "")]
    for node in violation.get("nodes") or []:
        summary = node.get("failureSummary")
        if summary:
            lines.append(summary)
    return "\n\n".join(line for line in lines if line)


def import_scan(report: Report, scan: dict[str, Any], page: str | None = None) -> Report:
    """Add one issue per WCAG violation found in *scan*.

    *page* overrides the page name, which otherwise comes from the scanned
    page title or URL.
    """
    results = scan.get("results", scan)
    violations = results.get("violations") if isinstance(results, dict) else None
    if not isinstance(violations, list):
        raise ReportError("Scan has no 'violations' list")

    page = page or scan.get("pageTitle") or scan.get("url") or results.get("url")
    if not page:
        raise ReportError("Scan does not name a page; pass one explicitly")

    skipped = 0
    for violation in violations:
        criterion = extract_criterion(violation.get("tags") or [])
        if criterion is None:
            skipped += 1
            continue
        report = add_issue(
            report,
            page=page,
            criterion_number=criterion,
            title=violation.get("help") or violation.get("id", "Untitled violation"),
            description=_violation_description(violation),
            location=_violation_location(violation),
            notes=violation.get("helpUrl", ""),
            priority=_IMPACT_PRIORITY.get(violation.get("impact"), Priority.LOW),
            needs_review=True,
        )

    if skipped:
        logger.info("Skipped %d violation(s) without a WCAG criterion tag", skipped)
    return report
