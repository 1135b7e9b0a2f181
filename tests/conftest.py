"""Pytest fixtures for Singalong tests."""
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from token_store import MemoryTokenStore


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data
        self.text = text
        self.content = b"" if json_data is None and not text else b"x"

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json


class FakeSession:
    """Stands in for requests.Session: hands out queued responses in order and records calls."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.headers = {}

    def queue(self, *responses):
        self.responses.extend(responses)

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError("unexpected HTTP call: %s %s" % (method, url))
        return self.responses.pop(0)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Keep config/tokens/preferences of every test in its own directory."""
    path = tmp_path / "data"
    monkeypatch.setenv("SINGALONG_DATA_DIR", str(path))
    for name in ("SPOTIFY_CLIENT_ID", "PUBLIC_SPOTIFY_CLIENT_ID", "HOSTED_URL",
                 "PUBLIC_HOSTED_URL", "SP_DC", "LRCLIB_BASE_URL", "SINGALONG_PORT"):
        monkeypatch.delenv(name, raising=False)
    return path


@pytest.fixture
def config():
    return {
        "spotify_client_id": "client-123",
        "hosted_url": "http://127.0.0.1:5002",
        "sp_dc": "cookie-abc",
        "lrclib_base_url": "https://lrclib.test",
        "lrclib_search_fallback": True,
        "lrclib_match_threshold": 80,
        "lyrics_hundredths_as_centiseconds": False,
        "http_timeout": 5,
        "server_port": 5002,
    }


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def fake_response():
    return FakeResponse
