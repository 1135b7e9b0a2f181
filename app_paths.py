"""
Where Singalong keeps its writable files: config.json, spotify_tokens.json
(OAuth tokens + pending PKCE verifier) and preferences.json.

Order of precedence:
  1. SINGALONG_DATA_DIR, if set (tests, containers, multiple profiles).
  2. ~/Library/Application Support/Singalong/ when running as a frozen
     desktop bundle, whose own directory is read-only.
  3. The source checkout, next to the module asking.
"""
import os
import sys

APP_NAME = "Singalong"
DATA_DIR_ENV = "SINGALONG_DATA_DIR"


def is_frozen() -> bool:
    return getattr(sys, "frozen", False)


def get_app_support_dir() -> str:
    """Per-user data dir for the bundled desktop app; '' when running from source."""
    if not is_frozen():
        return ""
    path = os.path.join(os.path.expanduser("~/Library/Application Support"), APP_NAME)
    os.makedirs(path, exist_ok=True)
    return path


def get_project_root_for_data(module_file: str) -> str:
    """
    Directory holding config, tokens and preferences. Pass the caller's
    __file__; it is only used for source checkouts.
    """
    override = os.environ.get(DATA_DIR_ENV, "").strip()
    if override:
        os.makedirs(override, exist_ok=True)
        return override
    return get_app_support_dir() or os.path.dirname(os.path.abspath(module_file))
