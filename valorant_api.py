"""
valorant-api.com client for static game assets (skins, tiers, bundles, cards).

Static data changes only on patch days, so every lookup is cached in memory
for 24 hours. When a refresh fails, an expired entry is still served; only a
cold cache with a failing upstream raises CatalogError.
"""

import logging
import threading
import time

import requests

from schemas import CatalogResponse, parse_with_log

log = logging.getLogger(__name__)

VALORANT_API_BASE = "https://valorant-api.com/v1"
CACHE_TTL = 24 * 60 * 60  # 24 hours

# Non-skin bundle items are looked up one by one
ITEM_ENDPOINTS = ("buddies/levels", "buddies", "playercards", "sprays", "playertitles", "flex")

_cache = {}  # path -> (data, fetched_at)
_lock = threading.Lock()


class CatalogError(Exception):
    pass


def _fetch(path):
    """GET a catalog path and return its ``data`` field.

    Raises CatalogError on network, HTTP, or envelope failure.
    """
    try:
        resp = requests.get(f"{VALORANT_API_BASE}/{path}", timeout=15)
    except requests.RequestException as e:
        raise CatalogError(f"valorant-api.com /{path} failed: {e}")
    if not resp.ok:
        raise CatalogError(f"valorant-api.com /{path} returned HTTP {resp.status_code}")
    try:
        body = resp.json()
    except ValueError as e:
        raise CatalogError(f"valorant-api.com /{path} returned invalid JSON: {e}")
    parsed = parse_with_log(CatalogResponse, body, f"Catalog /{path}")
    if not parsed.ok or parsed.value.status != 200 or parsed.value.data is None:
        raise CatalogError(f"valorant-api.com /{path} returned an error envelope")
    return parsed.value.data


def _cached(path):
    now = time.time()
    with _lock:
        entry = _cache.get(path)
    if entry and now - entry[1] < CACHE_TTL:
        return entry[0]
    try:
        data = _fetch(path)
    except CatalogError as e:
        if entry:
            log.warning("%s; using expired cache", e)
            return entry[0]
        raise
    with _lock:
        _cache[path] = (data, now)
    return data


def _cached_or_none(path):
    try:
        return _cached(path)
    except CatalogError as e:
        log.warning("%s", e)
        return None


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

def get_weapon_skins():
    """All weapon skins with their levels and chromas. Raises CatalogError."""
    return _cached("weapons/skins")


def get_content_tiers():
    """All content tiers (Select, Deluxe, ...). Raises CatalogError."""
    return _cached("contenttiers")


# ---------------------------------------------------------------------------
# Single-item lookups (None when unknown or unreachable)
# ---------------------------------------------------------------------------

def get_bundle(uuid):
    return _cached_or_none(f"bundles/{uuid}")


def get_skin_level(uuid):
    return _cached_or_none(f"weapons/skinlevels/{uuid}")


def get_item_asset(endpoint, uuid):
    return _cached_or_none(f"{endpoint}/{uuid}")


def get_player_card(uuid):
    if not uuid:
        return None
    return _cached_or_none(f"playercards/{uuid}")


def get_player_title(uuid):
    if not uuid:
        return None
    return _cached_or_none(f"playertitles/{uuid}")

