"""
UI preferences (lyrics mode) persisted in preferences.json next to the
other app data, so the choice survives reloads and restarts.
"""
import os
from typing import Any, Dict

from app_paths import get_project_root_for_data
from data_files import load_json, save_json_atomic

PREFERENCES_FILENAME = "preferences.json"
LYRICS_MODE = "lyrics_mode"

DEFAULT_PREFERENCES = {
    LYRICS_MODE: False,
}


def preferences_path() -> str:
    return os.path.join(get_project_root_for_data(__file__), PREFERENCES_FILENAME)


def load_preferences() -> Dict:
    data = load_json(preferences_path(), {})
    out = dict(DEFAULT_PREFERENCES)
    if isinstance(data, dict):
        out.update(data)
    return out


def save_preferences(prefs: Dict) -> None:
    """Merge into the stored preferences."""
    if not prefs:
        return
    existing = load_preferences()
    existing.update(prefs)
    save_json_atomic(preferences_path(), existing)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def get_lyrics_mode() -> bool:
    return _as_bool(load_preferences().get(LYRICS_MODE))


def set_lyrics_mode(value: Any) -> bool:
    enabled = _as_bool(value)
    save_preferences({LYRICS_MODE: enabled})
    return enabled
