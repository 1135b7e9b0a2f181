"""Tests for PKCE helpers and TokenManager."""
import threading
import time
from urllib.parse import urlparse, parse_qs

import pytest

from conftest import FakeResponse
from errors import ConfigError, MissingCodeError, MissingVerifierError, RefreshFailedError, TokenExchangeError
from spotify_auth import (
    AUTHORIZE_URL,
    TOKEN_URL,
    VERIFIER_ALPHABET,
    TokenManager,
    base64url_encode,
    code_challenge,
    generate_code_verifier,
)
from token_store import ACCESS_TOKEN, REFRESH_TOKEN, EXPIRES_AT, CODE_VERIFIER


@pytest.fixture
def manager(store, config, session, clock):
    return TokenManager(store, config, session=session, clock=clock)


def _now_ms(clock):
    return int(clock.now * 1000)


def test_code_challenge_rfc7636_vector():
    """RFC 7636 appendix B."""
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_base64url_has_no_padding_or_std_chars():
    assert base64url_encode(b"\xfb\xff") == "-_8"
    assert base64url_encode(b"a") == "YQ"


def test_generate_code_verifier():
    v = generate_code_verifier()
    assert len(v) == 64
    assert set(v) <= set(VERIFIER_ALPHABET)
    assert generate_code_verifier() != v


def test_begin_authorization_builds_url_and_stores_verifier(manager, store):
    url = manager.begin_authorization()
    assert url.startswith(AUTHORIZE_URL + "?")
    params = {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}
    verifier = store.get(CODE_VERIFIER)
    assert verifier and len(verifier) == 64
    assert params["response_type"] == "code"
    assert params["client_id"] == "client-123"
    assert params["code_challenge_method"] == "S256"
    assert params["code_challenge"] == code_challenge(verifier)
    assert params["redirect_uri"] == "http://127.0.0.1:5002/auth"
    assert "user-modify-playback-state" in params["scope"]


def test_begin_authorization_requires_client_id(store, config, session):
    config["spotify_client_id"] = ""
    with pytest.raises(ConfigError):
        TokenManager(store, config, session=session).begin_authorization()


def test_complete_authorization_missing_code(manager, store):
    store.set(CODE_VERIFIER, "v")
    with pytest.raises(MissingCodeError):
        manager.complete_authorization("http://127.0.0.1:5002/auth?error=access_denied")


def test_complete_authorization_missing_verifier(manager):
    with pytest.raises(MissingVerifierError):
        manager.complete_authorization("http://127.0.0.1:5002/auth?code=abc")


def test_complete_authorization_exchanges_code(manager, store, session, clock, fake_response):
    store.set(CODE_VERIFIER, "verifier-xyz")
    session.queue(fake_response(200, {"access_token": "at-1", "refresh_token": "rt-1", "expires_in": 3600}))

    manager.complete_authorization("http://127.0.0.1:5002/auth?code=abc&state=s")

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == TOKEN_URL
    assert call["data"] == {
        "client_id": "client-123",
        "grant_type": "authorization_code",
        "code": "abc",
        "redirect_uri": "http://127.0.0.1:5002/auth",
        "code_verifier": "verifier-xyz",
    }
    assert store.get(ACCESS_TOKEN) == "at-1"
    assert store.get(REFRESH_TOKEN) == "rt-1"
    assert int(store.get(EXPIRES_AT)) == _now_ms(clock) + 3600 * 1000
    assert store.get(CODE_VERIFIER) is None
    assert manager.is_logged_in()


def test_complete_authorization_rejected(manager, store, session, fake_response):
    store.set(CODE_VERIFIER, "v")
    session.queue(fake_response(400, {"error": "invalid_grant"}))
    with pytest.raises(TokenExchangeError) as exc_info:
        manager.complete_authorization("http://x/auth?code=abc")
    assert exc_info.value.status_code == 400
    assert store.get(ACCESS_TOKEN) is None


def test_valid_token_returned_without_network(manager, store, session, clock):
    store.set(ACCESS_TOKEN, "at-1")
    store.set(EXPIRES_AT, str(_now_ms(clock) + 60_000))
    assert manager.get_valid_access_token() == "at-1"
    assert session.calls == []


def test_token_inside_buffer_is_refreshed(manager, store, session, clock, fake_response):
    store.set(ACCESS_TOKEN, "old")
    store.set(REFRESH_TOKEN, "rt-1")
    store.set(EXPIRES_AT, str(_now_ms(clock) + 19_000))
    session.queue(fake_response(200, {"access_token": "new", "refresh_token": "rt-2", "expires_in": 3600}))

    assert manager.get_valid_access_token() == "new"
    assert session.calls[0]["data"] == {
        "grant_type": "refresh_token",
        "refresh_token": "rt-1",
        "client_id": "client-123",
    }
    assert store.get(REFRESH_TOKEN) == "rt-2"
    assert int(store.get(EXPIRES_AT)) == _now_ms(clock) + 3600 * 1000


def test_refresh_keeps_refresh_token_when_not_rotated(manager, store, session, fake_response):
    store.set(REFRESH_TOKEN, "rt-1")
    session.queue(fake_response(200, {"access_token": "new", "expires_in": 3600}))
    assert manager.get_valid_access_token() == "new"
    assert store.get(REFRESH_TOKEN) == "rt-1"


def test_missing_expiry_forces_refresh(manager, store, session, fake_response):
    store.set(ACCESS_TOKEN, "at-1")
    store.set(REFRESH_TOKEN, "rt-1")
    session.queue(fake_response(200, {"access_token": "at-2", "expires_in": 3600}))
    assert manager.get_valid_access_token() == "at-2"


def test_never_returns_expired_token(manager, store, session, clock, fake_response):
    store.set(ACCESS_TOKEN, "expired")
    store.set(REFRESH_TOKEN, "rt-1")
    store.set(EXPIRES_AT, str(_now_ms(clock) - 1))
    session.queue(fake_response(500, text="boom"))
    with pytest.raises(RefreshFailedError):
        manager.get_valid_access_token()
    # nothing is cleared on failure
    assert store.get(ACCESS_TOKEN) == "expired"
    assert store.get(REFRESH_TOKEN) == "rt-1"


def test_refresh_fails_without_refresh_token(manager, session):
    with pytest.raises(RefreshFailedError):
        manager.get_valid_access_token()
    assert session.calls == []


def test_logout_clears_store(manager, store):
    store.set(ACCESS_TOKEN, "a")
    store.set(REFRESH_TOKEN, "r")
    manager.logout()
    assert not manager.is_logged_in()
    assert store.get(REFRESH_TOKEN) is None


def test_concurrent_callers_share_one_refresh(store, config, clock, fake_response):
    """Threads that all see a missing token trigger a single refresh."""
    class SlowTokenSession:
        def __init__(self):
            self.posts = []

        def post(self, url, **kwargs):
            self.posts.append(url)
            time.sleep(0.05)
            return fake_response(200, {"access_token": "fresh", "expires_in": 3600})

    slow = SlowTokenSession()
    store.set(REFRESH_TOKEN, "rt-1")
    manager = TokenManager(store, config, session=slow, clock=clock)
    start = threading.Barrier(8)
    results = []

    def worker():
        start.wait()
        results.append(manager.get_valid_access_token())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["fresh"] * 8
    assert slow.posts == [TOKEN_URL]


@pytest.mark.parametrize("bad", [
    FakeResponse(200, text="<html>oops</html>"),
    FakeResponse(200, {"token_type": "Bearer"}),
])
def test_refresh_without_access_token_in_body(manager, store, session, bad):
    store.set(REFRESH_TOKEN, "rt-1")
    session.queue(bad)
    with pytest.raises(RefreshFailedError):
        manager.get_valid_access_token()
    assert store.get(ACCESS_TOKEN) is None


@pytest.mark.parametrize("bad", [
    FakeResponse(200, text="not json"),
    FakeResponse(200, {"refresh_token": "rt"}),
])
def test_exchange_without_access_token_in_body(manager, store, session, bad):
    store.set(CODE_VERIFIER, "v")
    session.queue(bad)
    with pytest.raises(TokenExchangeError):
        manager.complete_authorization("http://x/auth?code=abc")
    assert store.get(ACCESS_TOKEN) is None
    assert store.get(CODE_VERIFIER) == "v"
