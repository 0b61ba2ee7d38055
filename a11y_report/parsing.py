"""Small parsers for scanner tags and issue-tracker targets.

Usage:
    extract_criterion(["cat.color", "wcag2aa", "wcag143"])   # "1.4.3"
    parse_tracker_target("https://acme.atlassian.net/browse/WEB-12")
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlsplit

# wcag + principle digit + guideline digit + criterion (1-2 digits).
# Level tags such as "wcag2aa" or "wcag21aa" carry letters and never match.
_CRITERION_TAG = re.compile(r"^wcag(\d)(\d)(\d{1,2})$", re.IGNORECASE)

_BOARD_PATH   = re.compile(r"/projects/([A-Z][A-Z0-9]+)/boards/(\d+)", re.IGNORECASE)
_BROWSE_PATH  = re.compile(r"/browse/([A-Z][A-Z0-9]+-\d+)", re.IGNORECASE)
_PROJECT_PATH = re.compile(r"/projects/([A-Z][A-Z0-9]+)", re.IGNORECASE)
_BARE_KEY     = re.compile(r"^([A-Z][A-Z0-9]+)$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Scanner tags
# ---------------------------------------------------------------------------

def extract_criterion(tags: Iterable[str]) -> str | None:
    """Return the dotted WCAG criterion of the first criterion tag, or None."""
    for tag in tags:
        match = _CRITERION_TAG.match(tag.strip())
        if match:
            return ".".join(match.groups())
    return None


# ---------------------------------------------------------------------------
# Tracker targets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackerTarget:
    kind: str                   # "project" | "board" | "epic"
    project_key: str
    label: str
    board_id: str | None = None
    epic_key: str | None = None
    issue_key: str | None = None

    def to_dict(self) -> dict:
        return {
            "kind":        self.kind,
            "project_key": self.project_key,
            "board_id":    self.board_id,
            "epic_key":    self.epic_key,
            "issue_key":   self.issue_key,
            "label":       self.label,
        }


def parse_tracker_target(value: str) -> TrackerTarget | None:
    """Classify a tracker URL or bare project key.

    Recognised shapes:
        https://acme.atlassian.net/jira/software/c/projects/WEB/boards/12
        https://acme.atlassian.net/browse/WEB-123
        https://acme.atlassian.net/projects/WEB
        WEB

    Returns None when nothing matches.
    """
    text = value.strip()
    parts = urlsplit(text)

    if parts.scheme and parts.netloc:
        path = parts.path

        board = _BOARD_PATH.search(path)
        if board:
            project_key, board_id = board.groups()
            return TrackerTarget(
                kind="board",
                project_key=project_key,
                board_id=board_id,
                label=f"Board {board_id} (Project {project_key})",
            )

        browse = _BROWSE_PATH.search(path)
        if browse:
            issue_key = browse.group(1)
            project_key = issue_key.split("-")[0]
            # Could be any issue type; the tracker only tells us on lookup
            return TrackerTarget(
                kind="epic",
                project_key=project_key,
                epic_key=issue_key,
                issue_key=issue_key,
                label=f"Epic/Issue {issue_key} (Project {project_key})",
            )

        project = _PROJECT_PATH.search(path)
        if project:
            project_key = project.group(1)
            return TrackerTarget(kind="project", project_key=project_key,
                                 label=f"Project {project_key}")
        return None

    bare = _BARE_KEY.match(text)
    if bare:
        project_key = bare.group(1)
        return TrackerTarget(kind="project", project_key=project_key,
                             label=f"Project {project_key}")
    return None
