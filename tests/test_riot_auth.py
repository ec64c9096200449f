import urllib.parse

import riot_auth_server as rauth
from conftest import FakeResponse
from schemas import UserInfo

REDIRECT = ("https://playvalorant.com/opt_in#access_token=AT123&scope=openid"
            "&id_token=IT456&token_type=Bearer&expires_in=3600")


def test_extract_tokens_from_uri():
    assert rauth.extract_tokens_from_uri(REDIRECT) == {"access_token": "AT123", "id_token": "IT456"}


def test_extract_tokens_requires_both_tokens():
    assert rauth.extract_tokens_from_uri("https://playvalorant.com/opt_in#access_token=AT123") is None
    assert rauth.extract_tokens_from_uri("https://playvalorant.com/opt_in") is None
    assert rauth.extract_tokens_from_uri(None) is None


def test_build_login_url_targets_web_client():
    url = rauth.build_login_url()
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(url).query)
    assert url.startswith(rauth.RIOT_AUTHORIZE_URL)
    assert query["client_id"] == ["play-valorant-web-prod"]
    assert query["response_type"] == ["token id_token"]
    assert query["nonce"][0]


def test_determine_region_prefers_affinity():
    assert rauth.determine_region(UserInfo(sub="p", country="usa", affinity={"pp": "ap", "live": "eu"})) == "ap"
    assert rauth.determine_region(UserInfo(sub="p", affinity={"live": "eu"})) == "eu"
    assert rauth.determine_region(UserInfo(sub="p", affinity={"other": "kr"})) == "kr"


def test_determine_region_from_country():
    assert rauth.determine_region(UserInfo(sub="p", country="deu")) == "eu"
    assert rauth.determine_region(UserInfo(sub="p", country="BR")) == "br"
    assert rauth.determine_region(UserInfo(sub="p", country="chl")) == "latam"
    assert rauth.determine_region(UserInfo(sub="p", country="zz")) == "na"
    assert rauth.determine_region(UserInfo(sub="p")) == "na"


def test_merge_cookies_new_values_win():
    merged = rauth.merge_cookies("ssid=old; clid=c1", ["ssid=new; Path=/; HttpOnly", "tdid=t1"])
    assert merged == "ssid=new; clid=c1; tdid=t1"


def test_essential_cookie_string_drops_tracking_cookies():
    named = rauth.extract_named_cookies("ssid=s1; _ga=x; clid=c1; csid=cs; tdid=t1; asid=a")
    assert named["ssid"] == "s1"
    assert "_ga" not in named
    assert rauth.build_essential_cookie_string(named) == "ssid=s1; clid=c1; csid=cs; tdid=t1"


def test_refresh_without_ssid_fails_fast(monkeypatch):
    def boom(*args, **kwargs):
        raise AssertionError("no request expected")
    monkeypatch.setattr(rauth.requests, "get", boom)
    result = rauth.refresh_tokens_with_cookies("clid=c1")
    assert not result.ok
    assert "SSID" in result.error


def test_refresh_redirected_to_login_is_expired(monkeypatch):
    monkeypatch.setattr(rauth.requests, "get", lambda *a, **kw: FakeResponse(
        303, headers={"Location": "https://authenticate.riotgames.com/login?foo=bar"}))
    result = rauth.refresh_tokens_with_cookies("ssid=s1")
    assert not result.ok
    assert "expired" in result.error.lower()


def test_refresh_network_error_is_a_result(monkeypatch):
    def fail(*args, **kwargs):
        raise rauth.requests.ConnectionError("down")
    monkeypatch.setattr(rauth.requests, "get", fail)
    result = rauth.refresh_tokens_with_cookies("ssid=s1")
    assert not result.ok


def test_refresh_success_preserves_original_ssid(monkeypatch):
    def fake_get(url, **kwargs):
        if url == rauth.RIOT_AUTHORIZE_URL:
            assert kwargs["allow_redirects"] is False
            assert kwargs["headers"]["Cookie"] == "ssid=orig; clid=c1; tdid=t1"
            return FakeResponse(303, headers={"Location": REDIRECT},
                                cookies={"ssid": "short-lived", "clid": "c2", "__cf": "x"})
        assert url == rauth.RIOT_USERINFO_URL
        return FakeResponse(200, {
            "sub": "puuid-1",
            "country": "usa",
            "acct": {"game_name": "Tenz", "tag_line": "NA1"},
            "affinity": {"pp": "na"},
        })

    def fake_post(url, **kwargs):
        assert url == rauth.RIOT_ENTITLEMENTS_URL
        assert kwargs["headers"]["Authorization"] == "Bearer AT123"
        return FakeResponse(200, {"entitlements_token": "ENT"})

    monkeypatch.setattr(rauth.requests, "get", fake_get)
    monkeypatch.setattr(rauth.requests, "post", fake_post)

    result = rauth.refresh_tokens_with_cookies("ssid=orig; clid=c1; tdid=t1")

    assert result.ok
    assert result.tokens.access_token == "AT123"
    assert result.tokens.entitlements_token == "ENT"
    assert result.tokens.puuid == "puuid-1"
    assert result.tokens.region == "na"
    assert result.tokens.game_name == "Tenz"
    assert result.riot_cookies == "ssid=orig; clid=c2; tdid=t1"


def test_url_login_fails_when_entitlements_rejected(monkeypatch):
    monkeypatch.setattr(rauth.requests, "post", lambda *a, **kw: FakeResponse(401))
    result = rauth.complete_auth_with_url(REDIRECT)
    assert not result.ok
    assert result.error == "Failed to get entitlements token"


USERINFO = {"sub": "puuid-cred", "country": "deu", "acct": {"game_name": "Boaster", "tag_line": "EU1"}}


def _fake_riot(monkeypatch, put_responses):
    """Wire the authorization, entitlements and userinfo endpoints."""
    puts = []

    def fake_post(url, **kwargs):
        if url == rauth.RIOT_AUTH_API_URL:
            assert kwargs["json"]["client_id"] == rauth.CLIENT_ID
            return FakeResponse(200, {"type": "auth"}, cookies={"asid": "a1", "clid": "c1"})
        assert url == rauth.RIOT_ENTITLEMENTS_URL
        return FakeResponse(200, {"entitlements_token": "ENT"})

    def fake_put(url, **kwargs):
        assert url == rauth.RIOT_AUTH_API_URL
        puts.append(kwargs)
        return put_responses.pop(0)

    monkeypatch.setattr(rauth.requests, "post", fake_post)
    monkeypatch.setattr(rauth.requests, "put", fake_put)
    monkeypatch.setattr(rauth.requests, "get", lambda url, **kw: FakeResponse(200, USERINFO))
    return puts


def _redirect_response(**cookies):
    return FakeResponse(200, {"type": "response", "response": {
        "mode": "fragment", "parameters": {"uri": REDIRECT}}}, cookies=cookies)


def test_credential_login_success(monkeypatch):
    puts = _fake_riot(monkeypatch, [_redirect_response(ssid="s-new", tdid="t1")])

    result = rauth.authenticate_with_credentials("boaster", "hunter2")

    assert result.ok
    assert not result.requires_mfa
    assert result.tokens.puuid == "puuid-cred"
    assert result.tokens.region == "eu"
    assert result.riot_cookies == "ssid=s-new; clid=c1; tdid=t1"
    assert puts[0]["json"] == {"type": "auth", "username": "boaster", "password": "hunter2", "remember": True}
    assert "asid=a1" in puts[0]["headers"]["Cookie"]


def test_credential_login_bad_password(monkeypatch):
    _fake_riot(monkeypatch, [FakeResponse(200, {"type": "auth", "error": "auth_failure"})])

    result = rauth.authenticate_with_credentials("boaster", "wrong")

    assert not result.ok
    assert not result.requires_mfa
    assert result.error == "Invalid username or password"


def test_credential_login_then_mfa(monkeypatch):
    challenge = FakeResponse(200, {"type": "multifactor", "multifactor": {
        "email": "b*****@mail.com", "method": "email", "methods": ["email"], "multiFactorCodeLength": 6}})
    puts = _fake_riot(monkeypatch, [challenge, _redirect_response(ssid="s-mfa")])

    pending = rauth.authenticate_with_credentials("boaster", "hunter2")

    assert not pending.ok
    assert pending.requires_mfa
    assert pending.multifactor["method"] == "email"
    assert "clid=c1" in pending.riot_cookies

    result = rauth.submit_mfa("123456", pending.riot_cookies)

    assert result.ok
    assert result.tokens.game_name == "Boaster"
    assert puts[1]["json"] == {"type": "multifactor", "code": "123456", "rememberDevice": True}
    assert puts[1]["headers"]["Cookie"] == pending.riot_cookies
    assert result.riot_cookies.startswith("ssid=s-mfa")


def test_submit_mfa_without_auth_session():
    result = rauth.submit_mfa("123456", "")
    assert not result.ok
    assert not result.requires_mfa


def test_credential_login_network_error(monkeypatch):
    def fail(*args, **kwargs):
        raise rauth.requests.ConnectionError("down")
    monkeypatch.setattr(rauth.requests, "post", fail)

    result = rauth.authenticate_with_credentials("boaster", "hunter2")

    assert not result.ok
    assert "down" in result.error
