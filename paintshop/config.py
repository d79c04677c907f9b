"""
Paint shop configuration loading.

Loads settings from YAML with environment variable expansion.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_URGENCY_WINDOW_HOURS = 48
DEFAULT_POLL_INTERVAL_S = 3


@dataclass
class Settings:
    """
    Resolved runtime settings.

    Attributes:
        data_dir: Directory holding order files, counters and notifications
        employees_file: YAML file with the employee directory
        urgency_window_hours: Hours before delivery at which an order is urgent
        poll_interval_s: Refresh cadence for boards polling the counters
        webhook_url: Optional URL that receives assignment notifications
        webhook_timeout_s: Timeout for webhook deliveries
    """
    data_dir: Path
    employees_file: Path
    urgency_window_hours: int = DEFAULT_URGENCY_WINDOW_HOURS
    poll_interval_s: int = DEFAULT_POLL_INTERVAL_S
    webhook_url: str | None = None
    webhook_timeout_s: int = 10


def expand_env_vars(value: Any) -> Any:
    """
    Recursively expand ${VAR} environment variables in config values.

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with env vars expanded
    """
    if isinstance(value, str):
        # Match ${VAR} or $VAR patterns
        pattern = r'\$\{([^}]+)\}|\$([A-Z_][A-Z0-9_]*)'

        def replace(match):
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, "")

        return re.sub(pattern, replace, value)

    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]

    return value


def _default_config_path() -> Path:
    env_path = os.environ.get("PAINTSHOP_CONFIG")
    if env_path:
        return Path(env_path)
    # paintshop/config.py -> project root is ../..
    project_root = Path(__file__).parent.parent
    return project_root / "config" / "paintshop.yaml"


def load_config(config_path: str | Path | None = None) -> dict:
    """
    Load raw configuration from a YAML file.

    Looks for config in this order:
    1. Explicitly provided path
    2. PAINTSHOP_CONFIG environment variable
    3. config/paintshop.yaml relative to project root
    4. Returns minimal default config

    Environment variables in the format ${VAR} are expanded.
    """
    config_path = Path(config_path) if config_path is not None else _default_config_path()

    if not config_path.exists():
        return {
            "paintshop": {
                "data_dir": os.environ.get("PAINTSHOP_DATA_DIR", "data"),
                "employees_file": os.environ.get("PAINTSHOP_EMPLOYEES", "config/employees.yaml"),
            }
        }

    with open(config_path) as f:
        config = yaml.safe_load(f) or {}

    return expand_env_vars(config)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Build Settings from the loaded configuration.

    Raises:
        ValueError: If the configuration is missing the 'paintshop' section
            or holds non-positive intervals
    """
    config = load_config(config_path)
    if "paintshop" not in config:
        raise ValueError("Configuration file missing 'paintshop' section")

    section = config["paintshop"] or {}
    notifications = section.get("notifications") or {}

    urgency_window = int(section.get("urgency_window_hours", DEFAULT_URGENCY_WINDOW_HOURS))
    poll_interval = int(section.get("poll_interval_s", DEFAULT_POLL_INTERVAL_S))
    if urgency_window <= 0:
        raise ValueError("urgency_window_hours must be positive")
    if poll_interval <= 0:
        raise ValueError("poll_interval_s must be positive")

    return Settings(
        data_dir=Path(section.get("data_dir") or "data"),
        employees_file=Path(section.get("employees_file") or "config/employees.yaml"),
        urgency_window_hours=urgency_window,
        poll_interval_s=poll_interval,
        webhook_url=notifications.get("webhook_url") or None,
        webhook_timeout_s=int(notifications.get("timeout_s", 10)),
    )
