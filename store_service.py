"""Daily store: storefront + wallet fetch, hydration, rotation-scoped cache."""

import logging
import time

import riot_store as rs
import valorant_api as vapi
from hydration import CatalogSnapshot, build_store
from riot_store import FetchResult, RiotApiError
from schemas import RiotStorefront, RiotWallet, parse_with_log

log = logging.getLogger(__name__)


def fetch_store(session, cache, now=None):
    """Fetch and hydrate the player's store.

    Returns a FetchResult. On success the hydrated store is cached until the
    daily rotation expires.
    """
    now = time.time() if now is None else now
    try:
        raw_storefront = rs.get_storefront(session)
        raw_wallet = rs.get_wallet(session)
    except RiotApiError as e:
        log.warning("Store fetch failed for %s: %s", session.puuid[:8], e)
        return FetchResult(error=str(e))

    storefront = parse_with_log(RiotStorefront, raw_storefront, "RiotStorefront")
    if not storefront.ok:
        return FetchResult(error="Invalid storefront response")
    # A bad wallet only blanks the balances
    wallet = parse_with_log(RiotWallet, raw_wallet, "RiotWallet")

    try:
        snapshot = CatalogSnapshot.load()
    except vapi.CatalogError as e:
        log.warning("Catalog unavailable for store hydration: %s", e)
        return FetchResult(error=str(e))

    data = build_store(storefront.value, wallet.value if wallet.ok else None, snapshot, now)
    rotation_ends = now + storefront.value.SkinsPanelLayout.SingleItemOffersRemainingDurationInSeconds
    cache.set(session.puuid, data, expires_at=rotation_ends)
    return FetchResult(data=data)
