"""Tests for a11y_report/reports/axe.py"""

import json

import pytest

from a11y_report.models import Priority
from a11y_report.reports.axe import import_scan, read_scan
from a11y_report.reports.editing import ReportError, create_report


def make_violation(rule_id, tags, impact="serious", nodes=None) -> dict:
    return {
        "id": rule_id,
        "impact": impact,
        "tags": tags,
        "description": f"{rule_id} description",
        "help": f"{rule_id} help",
        "helpUrl": f"https://dequeuniversity.com/rules/axe/4.8/{rule_id}",
        "nodes": nodes if nodes is not None else [
            {"target": ["#main", "img.logo"], "failureSummary": "Fix any of the following"},
        ],
    }


SCAN = {
    "type": "AXE_SCAN_RESULTS",
    "url": "https://shop.example.com/",
    "pageTitle": "Shop home",
    "results": {
        "violations": [
            make_violation("image-alt", ["cat.text-alternatives", "wcag2a", "wcag111"], "critical"),
            make_violation("color-contrast", ["wcag2aa", "wcag143"], "serious"),
            make_violation("region", ["cat.keyboard", "best-practice"], "moderate"),
        ],
    },
}


# ---------------------------------------------------------------------------
# import_scan()
# ---------------------------------------------------------------------------

def test_import_creates_issue_per_wcag_violation():
    report = import_scan(create_report("Audit"), SCAN)
    assert [i.criterion_number for i in report.issues] == ["1.1.1", "1.4.3"]
    assert report.pages == ["Shop home"]


def test_imported_issues_need_review():
    report = import_scan(create_report("Audit"), SCAN)
    assert all(i.needs_review is True for i in report.issues)


def test_imported_issue_fields():
    issue = import_scan(create_report("Audit"), SCAN).issues[0]
    assert issue.title == "image-alt help"
    assert issue.priority is Priority.BLOCKER
    assert issue.location == "#main img.logo"
    assert issue.description == "image-alt description\n\nFix any of the following"
    assert issue.notes.endswith("/image-alt")


def test_impact_maps_to_priority():
    report = import_scan(create_report("Audit"), SCAN)
    assert [i.priority for i in report.issues] == [Priority.BLOCKER, Priority.MEDIUM]


def test_page_override():
    report = import_scan(create_report("Audit"), SCAN, page="Landing")
    assert {i.page for i in report.issues} == {"Landing"}


def test_bare_results_use_url():
    bare = {"url": "https://shop.example.com/cart", "violations": SCAN["results"]["violations"]}
    report = import_scan(create_report("Audit"), bare)
    assert report.pages == ["https://shop.example.com/cart"]


def test_multiple_nodes_join_targets():
    violation = make_violation("label", ["wcag412"], nodes=[
        {"target": ["#email"]}, {"target": ["#phone"]},
    ])
    report = import_scan(create_report("Audit"), {"pageTitle": "Form", "violations": [violation]})
    assert report.issues[0].location == "#email, #phone"


def test_missing_violations_raises():
    with pytest.raises(ReportError, match="violations"):
        import_scan(create_report("Audit"), {"pageTitle": "x", "results": {}})


def test_missing_page_raises():
    with pytest.raises(ReportError, match="page"):
        import_scan(create_report("Audit"), {"violations": []})


# ---------------------------------------------------------------------------
# read_scan()
# ---------------------------------------------------------------------------

def test_read_scan(tmp_path):
    path = tmp_path / "scan.json"
    path.write_text(json.dumps(SCAN), encoding="utf-8")
    assert read_scan(path)["pageTitle"] == "Shop home"


def test_read_scan_invalid_json(tmp_path):
    path = tmp_path / "scan.json"
    path.write_text("[not json", encoding="utf-8")
    with pytest.raises(ReportError, match="not valid JSON"):
        read_scan(path)


def test_read_scan_requires_object(tmp_path):
    path = tmp_path / "scan.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ReportError, match="JSON object"):
        read_scan(path)
