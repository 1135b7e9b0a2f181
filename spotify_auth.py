"""
Spotify OAuth 2.0 authorization code flow with PKCE, and the access-token
lifecycle on top of it.

Flow: begin_authorization() -> user approves on accounts.spotify.com ->
Spotify redirects to <hosted_url>/auth?code=... -> complete_authorization().
After that get_valid_access_token() hands out a usable token, refreshing it
20s before expiry.
"""
import base64
import hashlib
import logging
import secrets
import threading
import time
from typing import Callable, Optional
from urllib.parse import urlencode, urlparse, parse_qs

import requests

from config_singalong import get_redirect_uri, SPOTIFY_SCOPE
from errors import (
    ConfigError,
    MissingCodeError,
    MissingVerifierError,
    RefreshFailedError,
    TokenExchangeError,
)
from token_store import TokenStore, ACCESS_TOKEN, REFRESH_TOKEN, EXPIRES_AT, CODE_VERIFIER

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"

VERIFIER_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
VERIFIER_LENGTH = 64

# Refresh this long before the recorded expiry so a token can't run out in flight.
EXPIRY_BUFFER_MS = 20 * 1000


def generate_code_verifier(length: int = VERIFIER_LENGTH) -> str:
    return "".join(secrets.choice(VERIFIER_ALPHABET) for _ in range(length))


def base64url_encode(data: bytes) -> str:
    """Standard base64 with + -> -, / -> _ and the = padding stripped."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def code_challenge(verifier: str) -> str:
    return base64url_encode(hashlib.sha256(verifier.encode("utf-8")).digest())


class TokenManager:
    def __init__(
        self,
        store: TokenStore,
        config: dict,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.config = config
        self.session = session or requests.Session()
        self.clock = clock
        self.timeout = config.get("http_timeout", 15)
        self._refresh_lock = threading.Lock()

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _client_id(self) -> str:
        client_id = (self.config.get("spotify_client_id") or "").strip()
        if not client_id:
            raise ConfigError("spotify_client_id is not configured (set SPOTIFY_CLIENT_ID)")
        return client_id

    @staticmethod
    def _token_body(resp) -> Optional[dict]:
        """JSON body of a 200 token response, or None when it carries no access token."""
        try:
            body = resp.json()
        except ValueError:
            return None
        if not isinstance(body, dict) or not body.get("access_token"):
            return None
        return body

    def _persist_tokens(self, body: dict) -> str:
        access_token = body["access_token"]
        expires_at = self._now_ms() + int(body.get("expires_in", 3600)) * 1000
        self.store.set(ACCESS_TOKEN, access_token)
        self.store.set(EXPIRES_AT, str(expires_at))
        # Spotify may rotate the refresh token; keep the old one when it doesn't.
        if body.get("refresh_token"):
            self.store.set(REFRESH_TOKEN, body["refresh_token"])
        return access_token

    # --- authorization ---

    def begin_authorization(self) -> str:
        """Store a fresh PKCE verifier and return the Spotify authorize URL."""
        client_id = self._client_id()
        verifier = generate_code_verifier()
        self.store.set(CODE_VERIFIER, verifier)
        params = {
            "response_type": "code",
            "client_id": client_id,
            "scope": self.config.get("spotify_scope") or SPOTIFY_SCOPE,
            "code_challenge_method": "S256",
            "code_challenge": code_challenge(verifier),
            "redirect_uri": get_redirect_uri(self.config),
        }
        return AUTHORIZE_URL + "?" + urlencode(params)

    def complete_authorization(self, callback_url: str) -> None:
        query = parse_qs(urlparse(callback_url).query)
        code = (query.get("code") or [""])[0]
        if not code:
            if query.get("error"):
                logging.warning("Spotify authorization denied: %s", query["error"][0])
            raise MissingCodeError()
        verifier = self.store.get(CODE_VERIFIER)
        if not verifier:
            raise MissingVerifierError()

        resp = self.session.post(TOKEN_URL, data={
            "client_id": self._client_id(),
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": get_redirect_uri(self.config),
            "code_verifier": verifier,
        }, timeout=self.timeout)
        if resp.status_code != 200:
            logging.warning("Spotify token exchange returned %d", resp.status_code)
            raise TokenExchangeError(resp.status_code)

        body = self._token_body(resp)
        if body is None:
            logging.warning("Spotify token exchange returned no access token")
            raise TokenExchangeError(resp.status_code)
        self._persist_tokens(body)
        self.store.clear(CODE_VERIFIER)
        logging.info("Spotify authorization completed")

    # --- token lifecycle ---

    def _needs_refresh(self) -> bool:
        access_token = self.store.get(ACCESS_TOKEN)
        try:
            expires_at = int(float(self.store.get(EXPIRES_AT) or 0))
        except ValueError:
            expires_at = 0
        return not access_token or not expires_at or self._now_ms() > expires_at - EXPIRY_BUFFER_MS

    def refresh_tokens(self) -> str:
        refresh_token = self.store.get(REFRESH_TOKEN)
        if not refresh_token:
            raise RefreshFailedError("No refresh token found in storage")

        resp = self.session.post(TOKEN_URL, data={
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._client_id(),
        }, timeout=self.timeout)
        if resp.status_code != 200:
            logging.warning("Spotify token refresh returned %d", resp.status_code)
            raise RefreshFailedError()

        body = self._token_body(resp)
        if body is None:
            logging.warning("Spotify token refresh returned no access token")
            raise RefreshFailedError()
        logging.info("Spotify access token refreshed")
        return self._persist_tokens(body)

    def get_valid_access_token(self) -> str:
        """
        Return an access token that is good for at least EXPIRY_BUFFER_MS.
        Raises RefreshFailedError when there is nothing to refresh with or
        Spotify rejects the refresh; the caller should send the user to /login.
        """
        if not self._needs_refresh():
            return self.store.get(ACCESS_TOKEN)
        with self._refresh_lock:
            # Another request may have refreshed while we waited.
            if not self._needs_refresh():
                return self.store.get(ACCESS_TOKEN)
            return self.refresh_tokens()

    def is_logged_in(self) -> bool:
        return bool(self.store.get(ACCESS_TOKEN))

    def logout(self) -> None:
        self.store.clear()
