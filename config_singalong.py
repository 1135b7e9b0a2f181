"""
Configuration for Singalong.
Stored in config.json (data dir). Secrets and deployment settings can also
come from the environment or a .env file, which win over config.json.
"""
import os
import json
from typing import Dict, Any

from dotenv import load_dotenv

from app_paths import get_project_root_for_data

CONFIG_FILENAME = "config.json"

SPOTIFY_SCOPE = (
    "user-read-private user-read-email user-read-playback-state "
    "user-modify-playback-state user-read-currently-playing "
    "user-library-modify user-library-read"
)

DEFAULT_CONFIG = {
    "spotify_client_id": "",
    # Redirect URI registered with Spotify is hosted_url + "/auth".
    "hosted_url": "http://127.0.0.1:5002",
    "spotify_scope": SPOTIFY_SCOPE,
    # Session cookie of a logged-in open.spotify.com user; only needed for
    # /api/spotify/lyrics/<track_id>.
    "sp_dc": "",
    "lrclib_base_url": "https://lrclib.net",
    # When /api/get misses, try /api/search and fuzzy-pick a candidate.
    "lrclib_search_fallback": True,
    "lrclib_match_threshold": 80,
    # False keeps the historical behaviour: [mm:ss.xx] adds xx as milliseconds.
    "lyrics_hundredths_as_centiseconds": False,
    "http_timeout": 15,
    "server_port": 5002,
}

# config key -> environment variables checked in order
ENV_OVERRIDES = {
    "spotify_client_id": ("SPOTIFY_CLIENT_ID", "PUBLIC_SPOTIFY_CLIENT_ID"),
    "hosted_url": ("HOSTED_URL", "PUBLIC_HOSTED_URL"),
    "sp_dc": ("SP_DC",),
    "lrclib_base_url": ("LRCLIB_BASE_URL",),
    "server_port": ("SINGALONG_PORT",),
}


def _config_path() -> str:
    return os.path.join(get_project_root_for_data(__file__), CONFIG_FILENAME)


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    load_dotenv()
    out = dict(config)
    for key, names in ENV_OVERRIDES.items():
        for name in names:
            value = os.environ.get(name, "").strip()
            if value:
                out[key] = int(value) if key == "server_port" else value
                break
    return out


def load_config() -> dict:
    path = _config_path()
    out = dict(DEFAULT_CONFIG)
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                out.update(json.load(f))
        except (json.JSONDecodeError, IOError):
            pass
    return _apply_env_overrides(out)


def save_config(config: dict) -> None:
    """Persist config.json. Secrets are left out so they stay in the environment."""
    path = _config_path()
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    data = {k: v for k, v in config.items() if k != "sp_dc"}
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def get_hosted_url(config: dict) -> str:
    return (config.get("hosted_url") or DEFAULT_CONFIG["hosted_url"]).rstrip("/")


def get_redirect_uri(config: dict) -> str:
    return get_hosted_url(config) + "/auth"
