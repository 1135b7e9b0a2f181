"""
Lyrics sources.

- LRCLIB (lrclib.net): GET /api/get by exact metadata; on a miss, optionally
  GET /api/search and fuzzy-pick the closest candidate (rapidfuzz, same
  artist|title token_sort_ratio matching used for library compare).
- Spotify's internal color-lyrics endpoint, reached with a web-player token
  minted from a logged-in user's sp_dc cookie.
"""
import logging
import re
from typing import Dict, List, Optional

import requests
from rapidfuzz import fuzz, process

from errors import ConfigError, UnexpectedStatusError
from lyrics_parser import LyricLine, parse_synced_lyrics

LRCLIB_USER_AGENT = "Singalong/1.0 (https://github.com/singalong/singalong)"

# Accept search candidates whose length is within this many seconds.
DURATION_TOLERANCE_S = 2

SPOTIFY_TOKEN_URL = "https://open.spotify.com/get_access_token?reason=transport&productType=web_player"
SPOTIFY_LYRICS_URL = "https://spclient.wg.spotify.com/color-lyrics/v2/track/{track_id}"
SPOTIFY_USER_AGENT = "Spotify/121000760 Win32/0 (PC laptop)"


def _norm(s: str) -> str:
    s = (s or "").lower().strip()
    s = re.sub(r"\s*\((?:feat|ft)\.?[^)]*\)", "", s)
    s = re.sub(r"\s*-\s*(?:remaster(?:ed)?|\d{4} remaster).*$", "", s)
    return re.sub(r"\s+", " ", s)


def _match_key(artist: str, title: str) -> str:
    return f"{_norm(artist)}|{_norm(title)}"


def _format_duration(duration_s: float) -> str:
    return str(int(duration_s)) if float(duration_s).is_integer() else str(duration_s)


class LrcLibClient:
    def __init__(self, base_url: str = "https://lrclib.net", session: Optional[requests.Session] = None, timeout: float = 15):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        # Sent per request; the session is shared with the Spotify clients.
        self.headers = {"User-Agent": LRCLIB_USER_AGENT}
        self.timeout = timeout

    def get_lyrics(self, track_name: str, artist_name: str, album_name: str, duration_s: float) -> Optional[Dict]:
        """LRCLIB record for exact metadata, or None on 404."""
        params = {
            "track_name": track_name,
            "artist_name": artist_name,
            "album_name": album_name,
            "duration": _format_duration(duration_s),
        }
        r = self.session.get(f"{self.base_url}/api/get", params=params, headers=self.headers,
                             timeout=self.timeout)
        if r.status_code == 404:
            return None
        if r.status_code != 200:
            logging.warning("LRCLIB /api/get returned %d: %s", r.status_code, r.text[:200])
            raise UnexpectedStatusError("Failed to get lyrics", r.status_code)
        return r.json()

    def search(self, track_name: str, artist_name: str) -> List[Dict]:
        params = {"track_name": track_name, "artist_name": artist_name}
        r = self.session.get(f"{self.base_url}/api/search", params=params, headers=self.headers,
                             timeout=self.timeout)
        if r.status_code != 200:
            logging.warning("LRCLIB /api/search returned %d: %s", r.status_code, r.text[:200])
            raise UnexpectedStatusError("Failed to search lyrics", r.status_code)
        data = r.json()
        return data if isinstance(data, list) else []

    def best_candidate(self, candidates: List[Dict], track_name: str, artist_name: str,
                       duration_s: float, threshold: float = 80) -> Optional[Dict]:
        """Closest synced candidate within DURATION_TOLERANCE_S, or None below threshold."""
        usable = [
            c for c in candidates
            if c.get("syncedLyrics")
            and abs(float(c.get("duration") or 0) - duration_s) <= DURATION_TOLERANCE_S
        ]
        if not usable:
            return None
        keys = [_match_key(c.get("artistName", ""), c.get("trackName", "")) for c in usable]
        result = process.extractOne(
            _match_key(artist_name, track_name),
            keys,
            scorer=fuzz.token_sort_ratio,
            score_cutoff=threshold,
        )
        if result is None:
            return None
        _best, _score, idx = result
        return usable[idx]

    def find_lyrics(self, track_name: str, artist_name: str, album_name: str, duration_s: float,
                    search_fallback: bool = True, threshold: float = 80) -> Optional[Dict]:
        record = self.get_lyrics(track_name, artist_name, album_name, duration_s)
        if record is not None or not search_fallback:
            return record
        logging.info("LRCLIB: no exact match for %s - %s, searching", artist_name, track_name)
        return self.best_candidate(
            self.search(track_name, artist_name), track_name, artist_name, duration_s, threshold
        )


def lrclib_record_to_lines(record: Dict, fraction_scale: int = 1) -> List[Optional[LyricLine]]:
    """Instrumental and plain-only records have no syncedLyrics: empty list."""
    return parse_synced_lyrics(record.get("syncedLyrics") or "", fraction_scale)


class SpotifyLyricsClient:
    """Reads lyrics from Spotify's web-player backend using the sp_dc cookie."""

    def __init__(self, sp_dc: str, session: Optional[requests.Session] = None, timeout: float = 15):
        self.sp_dc = (sp_dc or "").strip()
        self.session = session or requests.Session()
        self.timeout = timeout

    def get_access_token(self) -> str:
        if not self.sp_dc:
            raise ConfigError("sp_dc cookie is not configured (set SP_DC)")
        headers = {
            "referer": "https://open.spotify.com/",
            "origin": "https://open.spotify.com/",
            "accept": "application/json",
            "accept-language": "en",
            "app-platform": "WebPlayer",
            "sec-ch-ua-mobile": "?0",
            "user-agent": SPOTIFY_USER_AGENT,
            "sec-fetch-dest": "empty",
            "sec-fetch-mode": "cors",
            "sec-fetch-site": "same-origin",
            "spotify-app-version": "1.1.54.35.ge9dace1d",
            "cookie": f"sp_dc={self.sp_dc}",
        }
        r = self.session.get(SPOTIFY_TOKEN_URL, headers=headers, timeout=self.timeout)
        if r.status_code != 200:
            logging.warning("Spotify web-player token returned %d", r.status_code)
            raise UnexpectedStatusError("Failed to get access token", r.status_code)
        return r.json()["accessToken"]

    def get_lyrics(self, track_id: str) -> Optional[List[LyricLine]]:
        """Lines for the track, or None when Spotify has no lyrics for it."""
        token = self.get_access_token()
        headers = {
            "referer": "https://open.spotify.com/",
            "origin": "https://open.spotify.com/",
            "accept": "application/json",
            "user-agent": SPOTIFY_USER_AGENT,
            "app-platform": "WebPlayer",
            "authorization": f"Bearer {token}",
        }
        r = self.session.get(SPOTIFY_LYRICS_URL.format(track_id=track_id), headers=headers, timeout=self.timeout)
        if r.status_code == 404:
            return None
        if r.status_code != 200:
            logging.warning("Spotify color-lyrics returned %d for %s", r.status_code, track_id)
            raise UnexpectedStatusError("Failed to get lyrics", r.status_code)
        lines = (r.json().get("lyrics") or {}).get("lines") or []
        # startTimeMs comes back as a string
        return [
            LyricLine(start_time_ms=int(line.get("startTimeMs") or 0), words=(line.get("words") or "").strip())
            for line in lines
        ]
