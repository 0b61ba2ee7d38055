"""Configuration loading and validation.

Usage:
    config = load("a11y-config.yaml")          # raises ConfigError on bad config
    tracker = config.tracker_config(report)    # merged tracker credentials
    generate_template("a11y-config.yaml")      # writes example file to disk
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from a11y_report.models import Report, SortBy, TrackerConfig

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6904


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass
class Config:
    store_path: str = ".a11y-report"
    relay_url: str = ""
    relay_host: str = DEFAULT_HOST
    relay_port: int = DEFAULT_PORT
    sort_by: SortBy = SortBy.PRIORITY
    tracker: TrackerConfig = field(default_factory=TrackerConfig)

    def tracker_config(self, report: Report | None = None) -> TrackerConfig:
        """Tracker credentials, configured values first, then the report's.

        Each field is taken from the configuration when set there, otherwise
        from the config embedded in *report*.
        """
        embedded = report.tracker_config if report and report.tracker_config else TrackerConfig()
        return TrackerConfig(
            base_url=self.tracker.base_url or embedded.base_url,
            api_token=self.tracker.api_token or embedded.api_token,
            user_email=self.tracker.user_email or embedded.user_email,
            project_key=self.tracker.project_key or embedded.project_key,
        )


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str = "a11y-config.yaml") -> Config:
    """Load and validate configuration from a YAML file.

    Environment variables A11Y_TRACKER_URL, A11Y_TRACKER_EMAIL,
    A11Y_TRACKER_TOKEN and A11Y_RELAY_URL override file values.

    Raises:
        ConfigError: if the file is missing, malformed, or holds invalid values.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(
            f"Config file not found: '{config_path}'\n"
            "Run `a11y-report init` to generate a template."
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{config_path}': {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{config_path}' must be a YAML mapping at the top level.")

    store    = _section(raw, "store")
    relay    = _section(raw, "relay")
    tracker  = _section(raw, "tracker")
    defaults = _section(raw, "defaults")

    tracker_config = TrackerConfig(
        base_url=_text(os.environ.get("A11Y_TRACKER_URL") or tracker.get("base_url")),
        api_token=_text(os.environ.get("A11Y_TRACKER_TOKEN") or tracker.get("api_token")),
        user_email=_text(os.environ.get("A11Y_TRACKER_EMAIL") or tracker.get("user_email")),
        project_key=_text(tracker.get("project_key")) or None,
    )

    errors: list[str] = []

    sort_by = _text(defaults.get("sort_by")) or SortBy.PRIORITY.value
    try:
        sort_by = SortBy(sort_by)
    except ValueError:
        choices = ", ".join(s.value for s in SortBy)
        errors.append(f"  - 'defaults.sort_by' must be one of: {choices}")

    port = relay.get("port", DEFAULT_PORT)
    if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
        errors.append("  - 'relay.port' must be an integer between 1 and 65535")

    store_path = _text(store.get("path")) or ".a11y-report"

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))

    return Config(
        store_path=store_path,
        relay_url=_text(os.environ.get("A11Y_RELAY_URL") or relay.get("url")),
        relay_host=_text(relay.get("host")) or DEFAULT_HOST,
        relay_port=port,
        sort_by=sort_by,
        tracker=tracker_config,
    )


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping.")
    return value


def _text(value) -> str:
    return "" if value is None else str(value).strip()


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
store:
  path: ".a11y-report"            # Directory holding the current report

relay:
  url: ""                         # e.g. http://127.0.0.1:6904 - empty sends tracker calls directly
  host: "127.0.0.1"
  port: 6904

tracker:
  base_url: ""                    # e.g. https://your-company.atlassian.net
  user_email: ""
  api_token: ""                   # Or set A11Y_TRACKER_TOKEN
  project_key: ""

defaults:
  sort_by: "priority"             # page | criteria | priority
"""


def generate_template(output_path: str = "a11y-config.yaml") -> None:
    """Write a template a11y-config.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting secrets).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
