import os

os.environ["APP_ENV"] = "test"
os.environ["SESSION_BACKEND"] = "memory"
os.environ.setdefault("SESSION_SECRET", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import requests

from riot_auth_server import AuthTokens


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, headers=None, cookies=None):
        self.status_code = status_code
        self._json = json_data
        self.headers = headers or {}
        self.cookies = requests.cookies.cookiejar_from_dict(cookies or {})

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class Clock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_tokens(puuid="puuid-aaaa-1111", region="na", **overrides):
    fields = dict(
        access_token=f"access-{puuid}",
        id_token=f"id-{puuid}",
        entitlements_token=f"ent-{puuid}",
        puuid=puuid,
        region=region,
        game_name="Player",
        tag_line="NA1",
        country="usa",
    )
    fields.update(overrides)
    return AuthTokens(**fields)


@pytest.fixture
def clock():
    return Clock()
