"""
Player profile: card, title and level from the Riot loadout, level and rank
from Henrik.

Each source may fail independently. The profile is marked partial when
neither the loadout nor the Henrik account came back; in that case the last
complete profile for the player is served from cache if there is one.
"""

import logging
import time

import henrik_api
import riot_store as rs
import valorant_api as vapi
from riot_store import RiotApiError
from schemas import PlayerLoadout, parse_with_log

log = logging.getLogger(__name__)


def _loadout(session):
    try:
        raw = rs.get_player_loadout(session)
    except RiotApiError as e:
        log.warning("Riot loadout fetch failed: %s", e)
        return None
    parsed = parse_with_log(PlayerLoadout, raw, "PlayerLoadout")
    return parsed.value if parsed.ok else None


def get_profile(session, cache, henrik_api_key=""):
    loadout = _loadout(session)
    account = henrik_api.get_account(session.puuid, session.region, henrik_api_key)
    mmr = henrik_api.get_mmr(session.puuid, session.region, henrik_api_key)

    identity = loadout.Identity if loadout else None
    card = vapi.get_player_card(identity.PlayerCardID) if identity else None
    title = vapi.get_player_title(identity.PlayerTitleID) if identity else None

    profile = {
        "playerCardId": identity.PlayerCardID if identity else None,
        "playerTitleId": identity.PlayerTitleID if identity else None,
        "accountLevel": identity.AccountLevel if identity else None,
        "hideAccountLevel": identity.HideAccountLevel if identity else None,
        "playerCardSmallArt": (card or {}).get("smallArt"),
        "playerCardWideArt": (card or {}).get("wideArt"),
        "playerCardLargeArt": (card or {}).get("largeArt"),
        "playerTitleText": (title or {}).get("titleText"),
        "henrikAccountLevel": account.account_level if account else None,
        "competitiveTier": mmr.currenttier if mmr else None,
        "competitiveTierName": mmr.currenttier_patched if mmr else None,
        "competitiveTierIcon": mmr.images.get("large") if mmr else None,
        "rankingInTier": mmr.ranking_in_tier if mmr else None,
        "mmrChangeToLastGame": mmr.mmr_change_to_last_game if mmr else None,
        "fromCache": False,
        "partial": loadout is None and account is None,
        "cachedAt": time.time(),
    }

    if not profile["partial"]:
        cache.set(session.puuid, profile)
        log.info("Profile fetched for %s", session.puuid[:8])
        return profile

    stale = cache.get(session.puuid)
    if stale:
        log.warning("All profile sources failed, returning cached profile for %s", session.puuid[:8])
        return dict(stale, fromCache=True)

    log.warning("All profile sources failed and nothing cached for %s", session.puuid[:8])
    return profile
