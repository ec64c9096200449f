"""Owned weapon skins: live entitlements fetch, hydration, write-through cache."""

import logging

import riot_store as rs
import valorant_api as vapi
from hydration import CatalogSnapshot, build_inventory
from riot_store import FetchResult, RiotApiError
from schemas import EntitlementsResponse, parse_with_log

log = logging.getLogger(__name__)


def get_owned_skins(session, cache):
    """Fetch and hydrate the player's skins.

    Returns a FetchResult; any network, HTTP, or validation failure is an
    error result. Every success overwrites the cache entry for the player.
    """
    try:
        raw = rs.get_entitlements(session, rs.ITEM_TYPE_SKIN)
    except RiotApiError as e:
        log.warning("Entitlements fetch failed for %s: %s", session.puuid[:8], e)
        return FetchResult(error=str(e))

    parsed = parse_with_log(EntitlementsResponse, raw, "EntitlementsResponse")
    if not parsed.ok:
        return FetchResult(error="Invalid entitlements response")

    try:
        snapshot = CatalogSnapshot.load()
    except vapi.CatalogError as e:
        log.warning("Catalog unavailable for inventory hydration: %s", e)
        return FetchResult(error=str(e))

    data = build_inventory(parsed.value, snapshot)
    cache.set(session.puuid, data)
    log.info("Hydrated %d skins across %d weapon types", data["totalCount"], len(data["weaponCategories"]))
    return FetchResult(data=data)
