import pytest

import profile_service as ps
from caches import ProfileCache
from conftest import make_tokens
from riot_store import RiotApiError
from schemas import HenrikAccount
from sessions import Session


@pytest.fixture
def session():
    return Session.from_tokens(make_tokens(puuid="puuid-profile"), None, 0)


def _fail_loadout(session):
    raise RiotApiError("HTTP 404 on every shard")


HENRIK_ACCOUNT = HenrikAccount.model_validate({
    "puuid": "puuid-profile", "region": "na", "account_level": 212, "name": "Player", "tag": "NA1",
    "card": {"small": "s", "large": "l", "wide": "w", "id": "card-1"},
    "last_update": "now", "last_update_raw": 1700000000,
})


def test_henrik_only_profile_is_not_partial(session, monkeypatch):
    monkeypatch.setattr(ps.rs, "get_player_loadout", _fail_loadout)
    monkeypatch.setattr(ps.henrik_api, "get_account", lambda *a: HENRIK_ACCOUNT)
    monkeypatch.setattr(ps.henrik_api, "get_mmr", lambda *a: None)
    cache = ProfileCache()

    profile = ps.get_profile(session, cache)

    assert profile["partial"] is False
    assert profile["henrikAccountLevel"] == 212
    assert profile["playerCardId"] is None
    assert cache.get("puuid-profile")["henrikAccountLevel"] == 212


def test_loadout_is_hydrated_from_catalog(session, monkeypatch):
    monkeypatch.setattr(ps.rs, "get_player_loadout", lambda s: {"Identity": {
        "PlayerCardID": "card-1", "PlayerTitleID": "title-1", "AccountLevel": 80}})
    monkeypatch.setattr(ps.vapi, "get_player_card", lambda uuid: {"smallArt": "sa", "wideArt": "wa"})
    monkeypatch.setattr(ps.vapi, "get_player_title", lambda uuid: {"titleText": "Radiant Saint"})
    monkeypatch.setattr(ps.henrik_api, "get_account", lambda *a: None)
    monkeypatch.setattr(ps.henrik_api, "get_mmr", lambda *a: None)

    profile = ps.get_profile(session, ProfileCache())

    assert profile["accountLevel"] == 80
    assert profile["playerCardWideArt"] == "wa"
    assert profile["playerTitleText"] == "Radiant Saint"
    assert profile["partial"] is False


def test_total_failure_falls_back_to_cache(session, monkeypatch):
    monkeypatch.setattr(ps.rs, "get_player_loadout", _fail_loadout)
    monkeypatch.setattr(ps.henrik_api, "get_account", lambda *a: None)
    monkeypatch.setattr(ps.henrik_api, "get_mmr", lambda *a: None)
    cache = ProfileCache()

    profile = ps.get_profile(session, cache)
    assert profile["partial"] is True
    assert profile["fromCache"] is False

    cache.set("puuid-profile", {"henrikAccountLevel": 200, "partial": False, "fromCache": False})
    profile = ps.get_profile(session, cache)
    assert profile == {"henrikAccountLevel": 200, "partial": False, "fromCache": True}
