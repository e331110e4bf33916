import json

import pytest

from nowplaying.config import CALLBACK_URL, SCOPES
from nowplaying.tools.slack import SlackPresence
from nowplaying.tools.spotify import SpotifyAuth
from nowplaying.tools.token_store import TokenStore

TOKEN_BODY = {
    "access_token": "at-1",
    "token_type": "Bearer",
    "expires_in": 3600,
    "refresh_token": "rt-1",
}


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._body = body
        self.text = "" if body is None else json.dumps(body)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class FakeHTTP:
    """Stands in for requests.Session: queued responses out, recorded calls in."""

    def __init__(self, default=None):
        self.queued = {"get": [], "post": []}
        self.calls = []
        self.default = default

    def queue(self, method, *responses):
        self.queued[method].extend(responses)

    def _respond(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        if self.queued[method]:
            result = self.queued[method].pop(0)
        elif self.default is not None:
            result = self.default
        else:
            raise AssertionError(f"unexpected {method.upper()} {url}")
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, url, **kwargs):
        return self._respond("get", url, kwargs)

    def post(self, url, **kwargs):
        return self._respond("post", url, kwargs)

    def calls_for(self, method):
        return [c for c in self.calls if c[0] == method]


@pytest.fixture
def store(tmp_path):
    return TokenStore(str(tmp_path / "spotify_token.json"))


@pytest.fixture
def spotify_http():
    return FakeHTTP()


@pytest.fixture
def slack_http():
    return FakeHTTP(default=FakeResponse(200, {"ok": True}))


@pytest.fixture
def auth(store, spotify_http):
    return SpotifyAuth("client-id", "client-secret", CALLBACK_URL, SCOPES, store, http=spotify_http)


@pytest.fixture
def presence(slack_http):
    return SlackPresence("xoxp-test", http=slack_http)


@pytest.fixture(autouse=True)
def opened_urls(monkeypatch):
    urls = []
    monkeypatch.setattr("nowplaying.tools.spotify.webbrowser.open", urls.append)
    return urls
