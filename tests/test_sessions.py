import pytest

from conftest import make_tokens
from riot_auth_server import AuthResult
from sessions import (TOKEN_HARD_EXPIRY, TOKEN_REFRESH_AGE, MemorySessionStore,
                      SessionProvider, filter_essential_cookies)

MINUTE = 60


class FakeReauth:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def __call__(self, riot_cookies):
        self.calls.append(riot_cookies)
        return self.result


@pytest.fixture
def store(clock):
    return MemorySessionStore(clock=clock)


def _provider(store, clock, result=None):
    reauth = FakeReauth(result or AuthResult(error="refresh failed"))
    return SessionProvider(store, reauth=reauth, clock=clock), reauth


def test_fresh_session_is_returned_without_refresh(store, clock):
    provider, reauth = _provider(store, clock)
    sid = provider.create_session(make_tokens(), "ssid=s1")
    clock.advance(10 * MINUTE)

    session = provider.get_session_with_refresh(sid)

    assert session.access_token == "access-puuid-aaaa-1111"
    assert reauth.calls == []


def test_stale_session_is_refreshed_in_place(store, clock):
    fresh = make_tokens(access_token="new-access", entitlements_token="new-ent")
    provider, reauth = _provider(store, clock, AuthResult(tokens=fresh, riot_cookies="ssid=s1; clid=c2"))
    sid = provider.create_session(make_tokens(), "ssid=s1; clid=c1")
    clock.advance(TOKEN_REFRESH_AGE + MINUTE)

    session = provider.get_session_with_refresh(sid)

    assert reauth.calls == ["ssid=s1; clid=c1"]
    assert session.access_token == "new-access"
    assert session.created_at == clock.now
    assert session.expires_at > clock.now
    stored = provider.get_session(sid)
    assert stored.access_token == "new-access"
    assert stored.riot_cookies == "ssid=s1; clid=c2"


def test_failed_refresh_before_hard_expiry_keeps_old_bundle(store, clock):
    provider, _ = _provider(store, clock)
    sid = provider.create_session(make_tokens(), "ssid=s1")
    clock.advance(TOKEN_REFRESH_AGE + MINUTE)

    session = provider.get_session_with_refresh(sid)

    assert session.access_token == "access-puuid-aaaa-1111"
    assert session.expires_at > clock.now


def test_failed_refresh_after_hard_expiry_deletes_session(store, clock):
    provider, _ = _provider(store, clock)
    sid = provider.create_session(make_tokens(), "ssid=s1")
    clock.advance(TOKEN_HARD_EXPIRY + MINUTE)

    assert provider.get_session_with_refresh(sid) is None
    assert store.get(sid) is None


def test_session_without_riot_cookies_dies_at_hard_expiry(store, clock):
    provider, reauth = _provider(store, clock)
    sid = provider.create_session(make_tokens(), None)

    clock.advance(TOKEN_REFRESH_AGE + MINUTE)
    assert provider.get_session_with_refresh(sid) is not None

    clock.advance(TOKEN_HARD_EXPIRY)
    assert provider.get_session_with_refresh(sid) is None
    assert reauth.calls == []


def test_refresh_for_a_different_account_is_rejected(store, clock):
    provider, _ = _provider(store, clock, AuthResult(tokens=make_tokens(puuid="someone-else")))
    sid = provider.create_session(make_tokens(), "ssid=s1")
    clock.advance(TOKEN_HARD_EXPIRY + MINUTE)

    assert provider.get_session_with_refresh(sid) is None


def test_unknown_session_id(store, clock):
    provider, _ = _provider(store, clock)
    assert provider.get_session_with_refresh("nope") is None
    assert provider.get_session_with_refresh(None) is None


def test_only_essential_cookies_are_stored(store, clock):
    provider, _ = _provider(store, clock)
    sid = provider.create_session(make_tokens(), "ssid=s1; _ga=junk; tdid=t1")
    assert provider.get_session(sid).riot_cookies == "ssid=s1; tdid=t1"
    assert filter_essential_cookies("_ga=junk") is None


def test_memory_store_cleanup(store, clock):
    store.save("short", {"x": 1}, max_age=60)
    store.save("long", {"x": 2}, max_age=3600)
    clock.advance(120)

    assert store.cleanup_expired() == 1
    assert store.get("short") is None
    assert store.get("long") == {"x": 2}
