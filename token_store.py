"""
Persistent key-value storage for the Spotify token state.
Keys: access_token, refresh_token, expires_at (epoch ms), code_verifier.
Last writer wins; no schema version.
"""
import os
import threading
from typing import Dict, Optional

from app_paths import get_project_root_for_data
from data_files import load_json, save_json_atomic

TOKENS_FILENAME = "spotify_tokens.json"

ACCESS_TOKEN = "access_token"
REFRESH_TOKEN = "refresh_token"
EXPIRES_AT = "expires_at"
CODE_VERIFIER = "code_verifier"


class TokenStore:
    """Interface the token manager depends on."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def clear(self, key: Optional[str] = None) -> None:
        """Remove one key, or every key when key is None."""
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._data.clear()
        else:
            self._data.pop(key, None)


def default_tokens_path() -> str:
    return os.path.join(get_project_root_for_data(__file__), TOKENS_FILENAME)


class JsonFileTokenStore(TokenStore):
    """Flat JSON object on disk. Reads hit the file each time so several
    processes (server + desktop launcher) see the same state."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or default_tokens_path()
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        data = load_json(self.path, {})
        return data if isinstance(data, dict) else {}

    def _save_atomic(self, data: Dict[str, str]) -> None:
        save_json_atomic(self.path, data)

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = str(value)
            self._save_atomic(data)

    def clear(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                data = {}
            else:
                data = self._load()
                if key not in data:
                    return
                data.pop(key)
            self._save_atomic(data)
