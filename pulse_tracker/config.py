"""
Configuration management for PulseTracker.

Settings are loaded from (lowest to highest priority):
1. Built-in defaults
2. pyproject.toml ``[tool.pulse-tracker]``
3. .pulse-tracker.toml ``[tool.pulse-tracker]`` (local config)
4. Environment variables (a ``.env`` file is honoured)
5. Explicit overrides (CLI options)

The result is an immutable ``Settings`` object that callers pass around
explicitly; nothing in the package reads configuration from module state.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, NamedTuple

from dotenv import load_dotenv

from pulse_tracker.models import Member

# Load environment variables
load_dotenv()

LOCAL_CONFIG_NAME = ".pulse-tracker.toml"
TOOL_KEY = "pulse-tracker"

THRESHOLD_UNITS = ("hours", "seconds")

DEFAULT_WINDOW_DAYS = 30
DEFAULT_REQUEST_TIMEOUT = 30.0


class GitHubSettings(NamedTuple):
    token: str | None = None
    owner: str | None = None
    repos: tuple[str, ...] = ()


class ClickUpSettings(NamedTuple):
    token: str | None = None
    list_ids: tuple[str, ...] = ()


class SlackSettings(NamedTuple):
    webhook_url: str | None = None


class AlertSettings(NamedTuple):
    """Stagnation detector and team alert configuration."""

    threshold_value: float = 24
    threshold_unit: str = "hours"
    check_interval_value: float = 30
    alerts_enabled: bool = False
    health_threshold: int = 50

    @property
    def threshold_seconds(self) -> float:
        if self.threshold_unit == "seconds":
            return self.threshold_value
        return self.threshold_value * 60 * 60

    @property
    def check_interval_seconds(self) -> float:
        """Poll interval: seconds in seconds mode, minutes in hours mode."""
        if self.threshold_unit == "seconds":
            return self.check_interval_value
        return self.check_interval_value * 60


class Settings(NamedTuple):
    github: GitHubSettings = GitHubSettings()
    clickup: ClickUpSettings = ClickUpSettings()
    slack: SlackSettings = SlackSettings()
    alerts: AlertSettings = AlertSettings()
    team: tuple[Member, ...] = ()
    window_days: int = DEFAULT_WINDOW_DAYS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    verify_ssl: bool = True
    verbose: bool = False


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def _tool_section(config: dict) -> dict:
    return config.get("tool", {}).get(TOOL_KEY, {})


def load_file_config(root: Path) -> dict[str, Any]:
    """
    Merge the ``[tool.pulse-tracker]`` tables from both config files.

    Tables from .pulse-tracker.toml override pyproject.toml key by key.
    """
    merged: dict[str, Any] = {}
    for path in (root / "pyproject.toml", root / LOCAL_CONFIG_NAME):
        section = _tool_section(load_config_file(path))
        for key, value in section.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
    return merged


def _split_list(value: str | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    if value:
        try:
            return float(value)
        except ValueError:
            pass
    return None


def _env_bool(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_team(entries: Any) -> tuple[Member, ...]:
    members = []
    for entry in entries or []:
        if isinstance(entry, str):
            members.append(Member(name=entry, github_login=entry))
        elif isinstance(entry, dict) and entry.get("name"):
            clickup_id = entry.get("clickup_id")
            members.append(
                Member(
                    name=entry["name"],
                    github_login=entry.get("github_login"),
                    clickup_id=str(clickup_id) if clickup_id is not None else None,
                    role=entry.get("role"),
                )
            )
        else:
            raise ValueError(f"Team entries need at least a name, got {entry!r}.")
    return tuple(members)


def validate_alert_settings(alerts: AlertSettings) -> AlertSettings:
    """
    Check detector settings.

    Raises:
        ValueError: If the unit is unknown or a duration is not positive.
    """
    if alerts.threshold_unit not in THRESHOLD_UNITS:
        raise ValueError(
            f"Unknown threshold unit '{alerts.threshold_unit}'. "
            f"Available: {', '.join(THRESHOLD_UNITS)}"
        )
    if alerts.threshold_value <= 0:
        raise ValueError("Stagnation threshold must be greater than 0.")
    if alerts.check_interval_value <= 0:
        raise ValueError("Check interval must be greater than 0.")
    return alerts


def load_settings(
    root: Path | None = None, overrides: dict[str, Any] | None = None
) -> Settings:
    """
    Build the Settings object.

    Args:
        root: Directory holding the config files (default: current directory).
        overrides: Highest-priority values, keyed by AlertSettings or
            top-level Settings field name.

    Returns:
        Validated Settings.

    Raises:
        ValueError: If a config file is unreadable or a value is invalid.
    """
    root = root or Path.cwd()
    config = load_file_config(root)

    github_cfg = config.get("github", {})
    clickup_cfg = config.get("clickup", {})
    slack_cfg = config.get("slack", {})
    alerts_cfg = config.get("alerts", {})

    github = GitHubSettings(
        token=os.getenv("GITHUB_TOKEN") or None,
        owner=os.getenv("GITHUB_OWNER") or github_cfg.get("owner"),
        repos=_split_list(os.getenv("GITHUB_REPOS")) or tuple(github_cfg.get("repos", ())),
    )
    clickup = ClickUpSettings(
        token=os.getenv("CLICKUP_TOKEN") or None,
        list_ids=_split_list(os.getenv("CLICKUP_LIST_IDS"))
        or tuple(str(i) for i in clickup_cfg.get("list_ids", ())),
    )
    slack = SlackSettings(
        webhook_url=os.getenv("SLACK_WEBHOOK_URL") or slack_cfg.get("webhook_url"),
    )

    alert_values = {
        key: alerts_cfg[key] for key in AlertSettings._fields if key in alerts_cfg
    }
    env_alerts = {
        "threshold_value": _env_float("PULSE_TRACKER_THRESHOLD"),
        "threshold_unit": os.getenv("PULSE_TRACKER_THRESHOLD_UNIT") or None,
        "check_interval_value": _env_float("PULSE_TRACKER_CHECK_INTERVAL"),
        "alerts_enabled": _env_bool("PULSE_TRACKER_ALERTS_ENABLED"),
    }
    alert_values.update({k: v for k, v in env_alerts.items() if v is not None})

    top_values: dict[str, Any] = {
        key: config[key]
        for key in ("window_days", "request_timeout", "verify_ssl", "verbose")
        if key in config
    }
    window_days = _env_float("PULSE_TRACKER_WINDOW_DAYS")
    if window_days is not None:
        top_values["window_days"] = int(window_days)
    request_timeout = _env_float("PULSE_TRACKER_REQUEST_TIMEOUT")
    if request_timeout is not None:
        top_values["request_timeout"] = request_timeout

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key in AlertSettings._fields:
            alert_values[key] = value
        elif key in Settings._fields:
            top_values[key] = value
        else:
            raise ValueError(f"Unknown setting '{key}'.")

    alerts = validate_alert_settings(AlertSettings(**alert_values))
    settings = Settings(
        github=github,
        clickup=clickup,
        slack=slack,
        alerts=alerts,
        team=_parse_team(config.get("team")),
        **top_values,
    )
    if settings.window_days <= 0:
        raise ValueError("window_days must be greater than 0.")
    if settings.request_timeout <= 0:
        raise ValueError("request_timeout must be greater than 0.")
    return settings
