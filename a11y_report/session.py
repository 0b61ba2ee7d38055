"""Editing session: current report value plus a swappable save effect.

Usage:
    session = EditSession(repository)                       # saves synchronously
    session.apply(add_issue, page="Home", criterion_number="1.1.1", title="...")

    with BackgroundSaver(repository) as saver:              # fire-and-forget
        session = EditSession(repository, saver=saver)
        ...

The transform runs first and always replaces the current value; the save
effect runs afterwards and a failing save is only logged.
"""

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from a11y_report.models import Report
from a11y_report.reports.editing import ReportError
from a11y_report.store import ReportRepository, StoreError

logger = logging.getLogger(__name__)

Saver = Callable[[Report], None]


class NoReportError(ReportError):
    """Raised when an edit needs a current report and none is loaded."""


class ImmediateSaver:
    """Write the report before returning; failures are logged, not raised."""

    def __init__(self, repository: ReportRepository) -> None:
        self._repository = repository

    def __call__(self, report: Report) -> None:
        try:
            self._repository.save_current_report(report)
        except StoreError as exc:
            logger.error("Error saving report: %s", exc)


class BackgroundSaver:
    """Queue writes on a single worker thread and return immediately.

    Writes are applied in submission order. ``close()`` waits for pending
    writes to finish.
    """

    def __init__(self, repository: ReportRepository) -> None:
        self._repository = repository
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="report-save")

    def __call__(self, report: Report) -> None:
        future = self._executor.submit(self._repository.save_current_report, report)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Error saving report: %s", exc)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "BackgroundSaver":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class EditSession:
    def __init__(self, repository: ReportRepository, saver: Saver | None = None) -> None:
        self.repository = repository
        self.report: Report | None = repository.load_current_report()
        self._save = saver or ImmediateSaver(repository)

    def require_report(self) -> Report:
        if self.report is None:
            raise NoReportError("No current report. Create one with `a11y-report new NAME`.")
        return self.report

    def replace(self, report: Report) -> Report:
        """Make *report* the current report and save it."""
        self.report = report
        self._save(report)
        return report

    def apply(self, transform: Callable[..., Report], *args: Any, **kwargs: Any) -> Report:
        """Run ``transform(current_report, *args, **kwargs)`` and save the result."""
        return self.replace(transform(self.require_report(), *args, **kwargs))

    def clear(self) -> None:
        self.report = None
        try:
            self.repository.delete_current_report()
        except StoreError as exc:
            logger.error("Error deleting report: %s", exc)
