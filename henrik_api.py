"""
Henrik Dev API client (api.henrikdev.xyz): account level and competitive rank.

Unofficial and rate limited, so results are cached for five minutes and a
stale entry is served when a live call fails. Never raises.
"""

import logging
import threading
import time

import requests

from schemas import HenrikAccount, HenrikMMRCurrentData, parse_with_log

log = logging.getLogger(__name__)

HENRIK_API_BASE = "https://api.henrikdev.xyz"
CACHE_TTL = 5 * 60

_account_cache = {}  # puuid -> (HenrikAccount, fetched_at)
_mmr_cache = {}      # puuid -> (HenrikMMRCurrentData, fetched_at)
_lock = threading.Lock()


def _headers(api_key):
    if not api_key:
        log.warning("HENRIK_API_KEY not set, Henrik API calls will likely return 401")
        return {}
    return {"Authorization": api_key}


def _cached_fetch(cache, puuid, url, api_key, extract, model, label):
    with _lock:
        cached = cache.get(puuid)
    if cached and time.time() - cached[1] < CACHE_TTL:
        return cached[0]
    stale = cached[0] if cached else None

    try:
        resp = requests.get(url, headers=_headers(api_key), timeout=10)
        if not resp.ok:
            log.warning("Henrik %s fetch returned HTTP %d for %s", label, resp.status_code, puuid[:8])
            return stale
        body = extract(resp.json())
    except (requests.RequestException, ValueError, KeyError, TypeError) as e:
        log.error("Henrik %s fetch failed for %s: %s", label, puuid[:8], e)
        return stale

    parsed = parse_with_log(model, body, f"Henrik{label.title()}")
    if not parsed.ok:
        return stale
    with _lock:
        cache[puuid] = (parsed.value, time.time())
    return parsed.value


def get_account(puuid, region, api_key=""):
    """HenrikAccount for the player, or None."""
    return _cached_fetch(
        _account_cache, puuid,
        f"{HENRIK_API_BASE}/valorant/v2/by-puuid/account/{region}/{puuid}",
        api_key, lambda body: body["data"], HenrikAccount, "account")


def get_mmr(puuid, region, api_key=""):
    """HenrikMMRCurrentData for the player, or None."""
    return _cached_fetch(
        _mmr_cache, puuid,
        f"{HENRIK_API_BASE}/valorant/v2/by-puuid/mmr/{region}/{puuid}",
        api_key, lambda body: body["data"]["current_data"], HenrikMMRCurrentData, "mmr")

