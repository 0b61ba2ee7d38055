"""Tests for a11y_report/config.py"""

import textwrap
from pathlib import Path

import pytest

from a11y_report.config import (
    DEFAULT_PORT,
    Config,
    ConfigError,
    generate_template,
    load,
)
from a11y_report.models import Report, SortBy, TrackerConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def write_config(tmp_path: Path, content: str) -> Path:
    p = tmp_path / "a11y-config.yaml"
    p.write_text(textwrap.dedent(content), encoding="utf-8")
    return p


VALID_YAML = """\
    store:
      path: "/tmp/a11y-store"
    relay:
      url: "http://127.0.0.1:6904"
      port: 7000
    tracker:
      base_url: "https://acme.atlassian.net"
      user_email: "me@example.com"
      api_token: "tok"
      project_key: "WEB"
    defaults:
      sort_by: "page"
    """


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("A11Y_TRACKER_URL", "A11Y_TRACKER_TOKEN", "A11Y_TRACKER_EMAIL", "A11Y_RELAY_URL"):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# load(): happy path
# ---------------------------------------------------------------------------

def test_load_valid_config(tmp_path):
    config = load(str(write_config(tmp_path, VALID_YAML)))
    assert config.store_path == "/tmp/a11y-store"
    assert config.relay_url == "http://127.0.0.1:6904"
    assert config.relay_port == 7000
    assert config.sort_by is SortBy.PAGE
    assert config.tracker == TrackerConfig(
        "https://acme.atlassian.net", "tok", "me@example.com", "WEB"
    )


def test_load_empty_file_uses_defaults(tmp_path):
    config = load(str(write_config(tmp_path, "")))
    assert config.store_path == ".a11y-report"
    assert config.relay_url == ""
    assert config.relay_port == DEFAULT_PORT
    assert config.sort_by is SortBy.PRIORITY
    assert not config.tracker.is_complete


# ---------------------------------------------------------------------------
# load(): errors
# ---------------------------------------------------------------------------

def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load(str(tmp_path / "no-such-file.yaml"))


def test_load_malformed_yaml(tmp_path):
    p = write_config(tmp_path, "tracker: [unclosed\n")
    with pytest.raises(ConfigError, match="Failed to parse"):
        load(str(p))


def test_load_top_level_list(tmp_path):
    with pytest.raises(ConfigError, match="mapping"):
        load(str(write_config(tmp_path, "- a\n- b\n")))


def test_load_section_not_mapping(tmp_path):
    with pytest.raises(ConfigError, match="'tracker' must be a mapping"):
        load(str(write_config(tmp_path, "tracker: yes\n")))


def test_load_invalid_values_are_collected(tmp_path):
    p = write_config(tmp_path, """\
        relay:
          port: "eighty"
        defaults:
          sort_by: "severity"
        """)
    with pytest.raises(ConfigError) as exc_info:
        load(str(p))
    message = str(exc_info.value)
    assert "defaults.sort_by" in message
    assert "relay.port" in message


def test_load_port_out_of_range(tmp_path):
    with pytest.raises(ConfigError, match="relay.port"):
        load(str(write_config(tmp_path, "relay:\n  port: 70000\n")))


# ---------------------------------------------------------------------------
# load(): environment variable overrides
# ---------------------------------------------------------------------------

def test_env_overrides_tracker_values(tmp_path, monkeypatch):
    p = write_config(tmp_path, VALID_YAML)
    monkeypatch.setenv("A11Y_TRACKER_URL", "https://other.atlassian.net")
    monkeypatch.setenv("A11Y_TRACKER_TOKEN", "env-token")
    config = load(str(p))
    assert config.tracker.base_url == "https://other.atlassian.net"
    assert config.tracker.api_token == "env-token"
    assert config.tracker.user_email == "me@example.com"


def test_env_vars_can_supply_missing_fields(tmp_path, monkeypatch):
    p = write_config(tmp_path, "defaults:\n  sort_by: criteria\n")
    monkeypatch.setenv("A11Y_TRACKER_URL", "https://acme.atlassian.net")
    monkeypatch.setenv("A11Y_TRACKER_EMAIL", "me@example.com")
    monkeypatch.setenv("A11Y_TRACKER_TOKEN", "tok")
    monkeypatch.setenv("A11Y_RELAY_URL", "http://localhost:6904")
    config = load(str(p))
    assert config.tracker.is_complete
    assert config.relay_url == "http://localhost:6904"


# ---------------------------------------------------------------------------
# tracker_config()
# ---------------------------------------------------------------------------

def test_tracker_config_prefers_configured_values():
    config = Config(tracker=TrackerConfig(api_token="from-config"))
    report = Report(id="r", name="Audit", tracker_config=TrackerConfig(
        "https://acme.atlassian.net", "from-report", "me@example.com", "WEB"
    ))
    merged = config.tracker_config(report)
    assert merged.api_token == "from-config"
    assert merged.base_url == "https://acme.atlassian.net"
    assert merged.project_key == "WEB"


def test_tracker_config_without_report():
    config = Config(tracker=TrackerConfig("https://acme.atlassian.net", "tok", "me@example.com"))
    assert config.tracker_config().is_complete


# ---------------------------------------------------------------------------
# generate_template()
# ---------------------------------------------------------------------------

def test_generate_template_creates_loadable_file(tmp_path):
    out = tmp_path / "a11y-config.yaml"
    generate_template(str(out))
    content = out.read_text()
    assert "tracker:" in content
    assert "relay:" in content
    config = load(str(out))
    assert config.relay_port == DEFAULT_PORT


def test_generate_template_refuses_to_overwrite(tmp_path):
    out = tmp_path / "a11y-config.yaml"
    out.write_text("existing content")
    with pytest.raises(ConfigError, match="already exists"):
        generate_template(str(out))
