"""User preferences for agent-gcpcredentials.

Stored as JSON in the XDG config directory:
~/.config/agent-gcpcredentials/preferences.json
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "agent-gcpcredentials"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"

CONFIG_PATH_KEY = "config_path"


def get_all_preferences() -> Dict[str, Any]:
    """Return all stored preferences; an unreadable file counts as empty."""
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        data = json.loads(PREFERENCES_FILE.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Ignoring unreadable preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return data


def _write(preferences: Dict[str, Any]) -> None:
    PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
    PREFERENCES_FILE.write_text(json.dumps(preferences, indent=2))


def get_preference(key: str) -> Optional[str]:
    return get_all_preferences().get(key)


def set_preference(key: str, value: str) -> None:
    preferences = get_all_preferences()
    preferences[key] = value
    _write(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove a preference. Missing keys are ignored."""
    preferences = get_all_preferences()
    if preferences.pop(key, None) is None:
        logger.debug(f"Preference '{key}' not set, nothing to clear")
        return
    _write(preferences)
    logger.info(f"Preference '{key}' cleared")
