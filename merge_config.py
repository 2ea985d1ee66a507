"""Configuration for the merge resolver, stored as JSON."""

import json
import os
from pathlib import Path

from merge_models import ResolutionMode

CONFIG_FILE = Path.home() / ".config" / "git-merge-resolver" / "config.json"

DEFAULT_CONFIG = {
    "theme": "gruvbox",
    "default_mode": "block",
    "marker_ours": None,      # None: use the current branch name
    "marker_theirs": None,    # None: use the merged branch name
    "log_dir": str(Path.home() / ".cache" / "git-merge-resolver"),
    "log_level": "INFO",
    "result_height": 20,
    "commit_message": "Merge conflicts resolved",
}


def config_path() -> Path:
    """Config file location, overridable through GIT_MERGE_RESOLVER_CONFIG."""
    override = os.environ.get("GIT_MERGE_RESOLVER_CONFIG")
    return Path(override).expanduser() if override else CONFIG_FILE


def load_config() -> dict:
    """Load config from file, falling back to defaults for anything missing."""
    config = dict(DEFAULT_CONFIG)
    path = config_path()
    if path.exists():
        try:
            stored = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError):
            return config
        if isinstance(stored, dict):
            config.update(stored)
    return config


def save_config(config: dict):
    """Save config to file."""
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config, indent=2))


def get_theme() -> str:
    return load_config().get("theme") or DEFAULT_CONFIG["theme"]


def get_default_mode() -> ResolutionMode:
    """Initial resolution mode for text files."""
    value = str(load_config().get("default_mode", "block")).lower()
    try:
        return ResolutionMode(value)
    except ValueError:
        return ResolutionMode.BLOCK


def get_log_dir() -> Path:
    return Path(load_config().get("log_dir") or DEFAULT_CONFIG["log_dir"]).expanduser()


def get_log_level() -> str:
    return str(load_config().get("log_level") or "INFO").upper()


def get_result_height() -> int:
    try:
        return max(1, int(load_config().get("result_height", 20)))
    except (TypeError, ValueError):
        return DEFAULT_CONFIG["result_height"]


def get_marker_labels() -> tuple:
    """Configured (ours, theirs) marker labels; either may be None."""
    config = load_config()
    return config.get("marker_ours"), config.get("marker_theirs")


def get_commit_message() -> str:
    return load_config().get("commit_message") or DEFAULT_CONFIG["commit_message"]
