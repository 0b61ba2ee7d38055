"""CLI entry point: command definitions using Click.

Commands:
    init            Generate a template config file
    new             Start a new current report
    show / list     Inspect the current report and its issues
    add / update / duplicate / delete / copy
                    Edit single issues
    import          Replace the current report with a report document
    import-scan     Add issues from an axe-core scan result
    export-json     Write the portable report document
    export-html     Write a self-contained HTML report
    merge           Merge two report documents
    digest          Markdown digest of issues created since a date
    summaries       Per-criterion summaries grouped by page
    sort-preference Show or set the default sort order
    parse-target    Classify a tracker URL or project key
    tracker-test    Check the tracker credentials
    file-ticket     File one issue as a tracker ticket
    reset           Delete the current report
    relay           Run the tracker relay server
"""

import functools
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click

from a11y_report import __version__
from a11y_report.models import Priority, SortBy


# ---------------------------------------------------------------------------
# Helpers shared by all commands
# ---------------------------------------------------------------------------

def _load_config(ctx: click.Context):
    """Load the config once per invocation. Exits on error."""
    from a11y_report.config import ConfigError, load

    obj = ctx.obj
    if "config" not in obj:
        try:
            obj["config"] = load(obj["config_path"])
        except ConfigError as exc:
            click.echo(f"Configuration error: {exc}", err=True)
            sys.exit(1)
    return obj["config"]


def _make_session(ctx: click.Context):
    """Return an EditSession over the configured store."""
    from a11y_report.session import EditSession
    from a11y_report.store import FileStore, ReportRepository

    config = _load_config(ctx)
    if ctx.obj["verbose"]:
        click.echo(f"[verbose] Using store at '{config.store_path}'", err=True)
    return EditSession(ReportRepository(FileStore(config.store_path)))


def _resolve_sort(ctx: click.Context, session, sort: str | None) -> SortBy:
    """--sort option, then the stored preference, then the config default."""
    if sort:
        return SortBy(sort)
    return session.repository.load_sort_preference() or _load_config(ctx).sort_by


def _emit_json(data: Any, ctx: click.Context) -> None:
    """Write JSON to stdout or to the file specified by --output."""
    indent = 2 if ctx.obj["pretty"] else None
    _emit_text(json.dumps(data, indent=indent, ensure_ascii=False), ctx)


def _emit_text(text: str, ctx: click.Context) -> None:
    output_path: str | None = ctx.obj["output_path"]
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Written to '{output_path}'", err=True)
    else:
        click.echo(text)


def _write_export(ctx: click.Context, text: str, default_name: str, directory: str) -> None:
    """Exports always go to a file: --output, or a timestamped name in *directory*."""
    path = Path(ctx.obj["output_path"] or Path(directory) / default_name)
    path.write_text(text, encoding="utf-8")
    click.echo(f"Report written to '{path}'", err=True)


def _handle_errors(func):
    """Decorator that turns expected failures into a message and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from a11y_report.client import (
            AuthenticationError,
            NetworkError,
            NotFoundError,
            TrackerClientError,
        )
        from a11y_report.reports.editing import ReportError
        from a11y_report.screenshots import ScreenshotError

        try:
            return func(*args, **kwargs)
        except ReportError as exc:
            click.echo(f"Report error: {exc}", err=True)
            sys.exit(1)
        except ScreenshotError as exc:
            click.echo(f"Screenshot error: {exc}", err=True)
            sys.exit(1)
        except AuthenticationError as exc:
            click.echo(f"Authentication error: {exc}", err=True)
            sys.exit(1)
        except NotFoundError as exc:
            click.echo(f"Not found: {exc}", err=True)
            sys.exit(1)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
            sys.exit(1)
        except TrackerClientError as exc:
            click.echo(f"Tracker error: {exc}", err=True)
            sys.exit(1)

    return wrapper


def _issue_fields(**options: Any) -> dict[str, Any]:
    """Drop options that were not given on the command line."""
    from a11y_report.screenshots import load_screenshot

    fields = {k: v for k, v in options.items() if v is not None}
    screenshot = fields.pop("screenshot_path", None)
    if screenshot:
        fields["screenshot"] = load_screenshot(screenshot)
    return fields


_PRIORITY_CHOICE = click.Choice(["1", "2", "3", "low", "medium", "blocker"], case_sensitive=False)
_SORT_CHOICE = click.Choice([s.value for s in SortBy])


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default="a11y-config.yaml", show_default=True,
              help="Path to the configuration file.")
@click.option("--output", "output_path", default=None,
              help="Write output to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print JSON output.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="a11y-report")
@click.pass_context
def cli(ctx: click.Context, config_path: str, output_path: str | None,
        pretty: bool, verbose: bool) -> None:
    """Record WCAG accessibility issues, then export them or file them as tickets."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["output_path"] = output_path
    ctx.obj["pretty"] = pretty
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="a11y-config.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template a11y-config.yaml file."""
    from a11y_report.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your store location and tracker credentials.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Report lifecycle
# ---------------------------------------------------------------------------

@cli.command("new")
@click.argument("name")
@click.pass_context
@_handle_errors
def new_command(ctx: click.Context, name: str) -> None:
    """Start a new, empty report called NAME (replaces the current one)."""
    from a11y_report.reports.editing import create_report

    session = _make_session(ctx)
    report = session.replace(create_report(name))
    click.echo(f"Created report '{report.name}' ({report.id}).")


@cli.command("show")
@click.pass_context
@_handle_errors
def show_command(ctx: click.Context) -> None:
    """Summary of the current report."""
    report = _make_session(ctx).require_report()
    _emit_json({
        "id":           report.id,
        "name":         report.name,
        "pages":        report.pages,
        "issue_count":  len(report.issues),
        "created_at":   report.created_at,
        "updated_at":   report.updated_at,
        "tracker":      report.tracker_config.to_dict(include_token=False)
                        if report.tracker_config else None,
    }, ctx)


@cli.command("reset")
@click.confirmation_option(prompt="Delete the current report?")
@click.pass_context
def reset_command(ctx: click.Context) -> None:
    """Delete the current report from the store."""
    _make_session(ctx).clear()
    click.echo("Current report deleted.")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
@_handle_errors
def import_command(ctx: click.Context, path: str) -> None:
    """Load the report document at PATH as the current report."""
    from a11y_report.reports.editing import read_report

    report = read_report(path)
    _make_session(ctx).replace(report)
    click.echo(f"Loaded report '{report.name}' with {len(report.issues)} issue(s).")


@cli.command("import-scan")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--page", default=None, help="Page name (defaults to the scanned page title or URL).")
@click.pass_context
@_handle_errors
def import_scan_command(ctx: click.Context, path: str, page: str | None) -> None:
    """Add issues from an axe-core scan result at PATH, flagged for review."""
    from a11y_report.reports.axe import import_scan, read_scan

    session = _make_session(ctx)
    before = len(session.require_report().issues)
    report = session.apply(import_scan, read_scan(path), page=page)
    click.echo(f"Imported {len(report.issues) - before} issue(s) for review.")


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------

@cli.command("list")
@click.option("--sort", type=_SORT_CHOICE, default=None,
              help="Sort order (defaults to the saved preference).")
@click.option("--needs-review", is_flag=True, default=False,
              help="Only issues imported from a scan and not yet reviewed.")
@click.pass_context
@_handle_errors
def list_command(ctx: click.Context, sort: str | None, needs_review: bool) -> None:
    """List the issues of the current report."""
    from a11y_report.reports.listing import display_issues

    session = _make_session(ctx)
    sort_by = _resolve_sort(ctx, session, sort)
    issues = display_issues(session.require_report(), sort_by, needs_review)
    _emit_json([issue.to_dict() for issue in issues], ctx)


def _issue_options(required: bool):
    """Shared options of `add` and `update`."""
    def decorator(func):
        options = [
            click.option("--page", required=required, help="Page the issue was found on."),
            click.option("--criterion", "criterion_number", required=required,
                         help="WCAG criterion number, e.g. 1.4.3."),
            click.option("--title", required=required, help="Short issue title."),
            click.option("--description", default=None),
            click.option("--location", default=None, help="Where on the page, e.g. a selector."),
            click.option("--notes", default=None, help="Remediation notes."),
            click.option("--priority", type=_PRIORITY_CHOICE, default=None),
            click.option("--screenshot", "screenshot_path",
                         type=click.Path(exists=True, dir_okay=False), default=None,
                         help="Image file to embed."),
        ]
        for option in reversed(options):
            func = option(func)
        return func
    return decorator


@cli.command("add")
@_issue_options(required=True)
@click.pass_context
@_handle_errors
def add_command(ctx: click.Context, **options: Any) -> None:
    """Record a new issue in the current report."""
    from a11y_report.reports.editing import add_issue

    fields = _issue_fields(**options)
    fields.setdefault("priority", Priority.LOW)
    report = _make_session(ctx).apply(add_issue, **fields)
    click.echo(report.issues[-1].id)


@cli.command("update")
@click.argument("issue_id")
@_issue_options(required=False)
@click.option("--reviewed", is_flag=True, default=False,
              help="Clear the needs-review flag.")
@click.pass_context
@_handle_errors
def update_command(ctx: click.Context, issue_id: str, reviewed: bool, **options: Any) -> None:
    """Change fields of issue ISSUE_ID."""
    from a11y_report.reports.editing import ReportError, update_issue

    session = _make_session(ctx)
    if session.require_report().get_issue(issue_id) is None:
        raise ReportError(f"Issue '{issue_id}' not found")
    fields = _issue_fields(**options)
    if reviewed:
        fields["needs_review"] = False
    if not fields:
        click.echo("Nothing to update.", err=True)
        return
    session.apply(update_issue, issue_id, **fields)
    click.echo(f"Updated {issue_id}.")


@cli.command("duplicate")
@click.argument("issue_id")
@click.pass_context
@_handle_errors
def duplicate_command(ctx: click.Context, issue_id: str) -> None:
    """Copy issue ISSUE_ID under a new id."""
    from a11y_report.reports.editing import duplicate_issue

    report = _make_session(ctx).apply(duplicate_issue, issue_id)
    click.echo(report.issues[-1].id)


@cli.command("delete")
@click.argument("issue_id")
@click.pass_context
@_handle_errors
def delete_command(ctx: click.Context, issue_id: str) -> None:
    """Remove issue ISSUE_ID."""
    from a11y_report.reports.editing import ReportError, delete_issue

    session = _make_session(ctx)
    if session.require_report().get_issue(issue_id) is None:
        raise ReportError(f"Issue '{issue_id}' not found")
    session.apply(delete_issue, issue_id)
    click.echo(f"Deleted {issue_id}.")


@cli.command("copy")
@click.argument("issue_id")
@click.pass_context
@_handle_errors
def copy_command(ctx: click.Context, issue_id: str) -> None:
    """Print issue ISSUE_ID as plain text."""
    from a11y_report.reports.editing import ReportError
    from a11y_report.reports.text import format_issue_text

    issue = _make_session(ctx).require_report().get_issue(issue_id)
    if issue is None:
        raise ReportError(f"Issue '{issue_id}' not found")
    _emit_text(format_issue_text(issue), ctx)


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

@cli.command("export-json")
@click.option("--no-credentials", is_flag=True, default=False,
              help="Leave the tracker API token out of the document.")
@click.option("--dir", "directory", default=".", show_default=True,
              type=click.Path(file_okay=False), help="Directory for the exported file.")
@click.pass_context
@_handle_errors
def export_json_command(ctx: click.Context, no_credentials: bool, directory: str) -> None:
    """Write the current report as a portable JSON document."""
    from a11y_report.reports.editing import dump_report, report_filename

    report = _make_session(ctx).require_report()
    if report.tracker_config and not no_credentials:
        click.echo("Warning: the exported file contains tracker credentials.", err=True)
    text = dump_report(report, include_credentials=not no_credentials)
    _write_export(ctx, text, report_filename(report.name, "json"), directory)


@cli.command("export-html")
@click.option("--sort", type=_SORT_CHOICE, default=None,
              help="Sort order (defaults to the saved preference).")
@click.option("--dir", "directory", default=".", show_default=True,
              type=click.Path(file_okay=False), help="Directory for the exported file.")
@click.pass_context
@_handle_errors
def export_html_command(ctx: click.Context, sort: str | None, directory: str) -> None:
    """Write the current report as a self-contained HTML document."""
    from a11y_report.reports.editing import report_filename
    from a11y_report.reports.html import generate_html

    session = _make_session(ctx)
    report = session.require_report()
    text = generate_html(report, _resolve_sort(ctx, session, sort))
    _write_export(ctx, text, report_filename(report.name, "html"), directory)


@cli.command("merge")
@click.argument("first", type=click.Path(exists=True, dir_okay=False))
@click.argument("second", type=click.Path(exists=True, dir_okay=False))
@click.argument("name")
@click.option("--load", "make_current", is_flag=True, default=False,
              help="Also make the merged report the current report.")
@click.pass_context
@_handle_errors
def merge_command(ctx: click.Context, first: str, second: str, name: str,
                  make_current: bool) -> None:
    """Merge report documents FIRST and SECOND into a new report NAME."""
    from a11y_report.reports.editing import dump_report, merge_reports, read_report

    merged = merge_reports(read_report(first), read_report(second), name)
    if make_current:
        _make_session(ctx).replace(merged)
    _emit_text(dump_report(merged), ctx)


@cli.command("digest")
@click.option("--since", required=True, type=click.DateTime(formats=["%Y-%m-%d"]),
              help="Start date, YYYY-MM-DD.")
@click.option("--json", "as_json", is_flag=True, default=False,
              help="Emit counts as JSON instead of Markdown.")
@click.pass_context
@_handle_errors
def digest_command(ctx: click.Context, since, as_json: bool) -> None:
    """Digest of issues created since a date."""
    from a11y_report.reports.digest import generate_digest, summarize_since

    report = _make_session(ctx).require_report()
    if as_json:
        _emit_json(summarize_since(report, since), ctx)
    else:
        _emit_text(generate_digest(report, since), ctx)


@cli.command("summaries")
@click.pass_context
@_handle_errors
def summaries_command(ctx: click.Context) -> None:
    """Per-criterion summaries of where issues were found."""
    from a11y_report.reports.digest import criteria_summaries

    _emit_text(criteria_summaries(_make_session(ctx).require_report()), ctx)


@cli.command("sort-preference")
@click.argument("value", type=_SORT_CHOICE, required=False)
@click.pass_context
def sort_preference_command(ctx: click.Context, value: str | None) -> None:
    """Show the default sort order, or set it to VALUE."""
    from a11y_report.store import StoreError

    session = _make_session(ctx)
    if value is None:
        click.echo(_resolve_sort(ctx, session, None).value)
        return
    try:
        session.repository.save_sort_preference(value)
    except StoreError as exc:
        logging.getLogger(__name__).error("Error saving sort preference: %s", exc)
    click.echo(f"Sort preference set to '{value}'.")


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

def _make_client(ctx: click.Context, report=None):
    from a11y_report.client import TrackerClient

    config = _load_config(ctx)
    tracker = config.tracker_config(report)
    if ctx.obj["verbose"]:
        via = f"relay {config.relay_url}" if config.relay_url else "direct"
        click.echo(f"[verbose] Connecting to {tracker.base_url} ({via})", err=True)
    return tracker, TrackerClient(tracker, relay_url=config.relay_url or None)


@cli.command("parse-target")
@click.argument("value")
@click.pass_context
def parse_target_command(ctx: click.Context, value: str) -> None:
    """Classify a tracker URL or bare project key."""
    from a11y_report.parsing import parse_tracker_target

    target = parse_tracker_target(value)
    if target is None:
        click.echo(f"Unrecognized tracker target: '{value}'", err=True)
        sys.exit(1)
    _emit_json(target.to_dict(), ctx)


@cli.command("tracker-test")
@click.pass_context
@_handle_errors
def tracker_test_command(ctx: click.Context) -> None:
    """Check that the tracker accepts the configured credentials."""
    session = _make_session(ctx)
    _, client = _make_client(ctx, session.report)
    if not client.test_connection():
        click.echo("Connection failed.", err=True)
        sys.exit(1)
    click.echo("Connection OK.")


@cli.command("file-ticket")
@click.argument("issue_id")
@click.option("--target", default=None,
              help="Project key, project/board URL or epic URL (defaults to the configured project).")
@click.option("--issue-type", default="Bug", show_default=True)
@click.pass_context
@_handle_errors
def file_ticket_command(ctx: click.Context, issue_id: str, target: str | None,
                        issue_type: str) -> None:
    """File issue ISSUE_ID as a tracker ticket."""
    from a11y_report.parsing import parse_tracker_target
    from a11y_report.reports.editing import ReportError
    from a11y_report.tickets import file_ticket

    session = _make_session(ctx)
    report = session.require_report()
    tracker, client = _make_client(ctx, report)

    project_key, epic_key = tracker.project_key, None
    if target:
        parsed = parse_tracker_target(target)
        if parsed is None:
            raise ReportError(f"Unrecognized tracker target: '{target}'")
        project_key, epic_key = parsed.project_key, parsed.epic_key
    if not project_key:
        raise ReportError("No project key: pass --target or set tracker.project_key")

    updated, key = file_ticket(report, issue_id, client, project_key,
                               parent_epic_key=epic_key, issue_type=issue_type)
    session.replace(updated)
    click.echo(f"Created {key}: {client.ticket_url(key)}")


# ---------------------------------------------------------------------------
# relay
# ---------------------------------------------------------------------------

@cli.command("relay")
@click.option("--host", default=None, help="Bind address (defaults to relay.host).")
@click.option("--port", type=int, default=None, envvar="PORT",
              help="Port (defaults to relay.port, or $PORT).")
@click.pass_context
def relay_command(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the pass-through relay used to reach the tracker from a browser."""
    import uvicorn

    from a11y_report.config import DEFAULT_HOST, DEFAULT_PORT, ConfigError, load
    from a11y_report.relay import create_app

    try:
        config = load(ctx.obj["config_path"])
        host = host or config.relay_host
        port = port or config.relay_port
    except ConfigError:
        host = host or DEFAULT_HOST
        port = port or DEFAULT_PORT

    click.echo(f"Tracker relay running on http://{host}:{port}", err=True)
    uvicorn.run(create_app(), host=host, port=port,
                log_level="debug" if ctx.obj["verbose"] else "info")
