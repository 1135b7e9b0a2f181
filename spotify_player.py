"""
Spotify Web API playback and library calls, authorised through TokenManager.
"""
import logging
from typing import Dict, Optional

import requests

from errors import UnexpectedStatusError
from spotify_auth import TokenManager
from time_format import format_length

API_URL = "https://api.spotify.com/v1"


class SpotifyPlayer:
    def __init__(self, token_manager: TokenManager, session: Optional[requests.Session] = None, timeout: float = 15):
        self.tokens = token_manager
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, ok=(200,), error: str = "Spotify request failed", **kwargs):
        token = self.tokens.get_valid_access_token()
        resp = self.session.request(
            method,
            API_URL + path,
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout,
            **kwargs,
        )
        if resp.status_code not in ok:
            logging.warning("Spotify %s %s returned %d", method, path, resp.status_code)
            raise UnexpectedStatusError(error, resp.status_code)
        return resp

    def get_playback_state(self) -> Optional[Dict]:
        """Current playback, or None when no device is active (204)."""
        resp = self._request("GET", "/me/player", ok=(200, 204), error="Failed to get playback state")
        if resp.status_code == 204 or not resp.content:
            return None
        state = resp.json()
        item = state.get("item") or {}
        if state.get("progress_ms") is not None:
            state["progress_display"] = format_length(state["progress_ms"])
        if item.get("duration_ms") is not None:
            state["duration_display"] = format_length(item["duration_ms"])
        return state

    def start_playback(self) -> None:
        self._request("PUT", "/me/player/play", ok=(200, 204), error="Failed to start playback")

    def pause_playback(self) -> None:
        self._request("PUT", "/me/player/pause", ok=(200, 204), error="Failed to pause playback")

    def skip_to_next(self) -> None:
        self._request("POST", "/me/player/next", ok=(200, 204), error="Failed to skip to next track")

    def skip_to_previous(self) -> None:
        self._request("POST", "/me/player/previous", ok=(200, 204), error="Failed to skip to previous track")

    def is_track_saved(self, track_id: str) -> bool:
        resp = self._request("GET", "/me/tracks/contains", params={"ids": track_id},
                             error="Failed to get track saved state")
        body = resp.json()
        return bool(body[0]) if body else False

    def like_track(self, track_id: str) -> bool:
        self._request("PUT", "/me/tracks", params={"ids": track_id}, error="Failed to like track")
        return True

    def unlike_track(self, track_id: str) -> bool:
        self._request("DELETE", "/me/tracks", params={"ids": track_id}, error="Failed to unlike track")
        return True
