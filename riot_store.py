"""
Riot PD (player data) client: storefront, wallet, entitlements, loadout.

Every call needs the access token, the entitlements JWT, a client platform blob
and the current client version. Riot's shard assignment does not always match
the region we resolved at login, so requests walk a fallback list of shards
and remember which one answered for each player.
"""

import base64
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

import requests

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION_URL = "https://valorant-api.com/v1/version"
FALLBACK_CLIENT_VERSION = "release-09.06-shipping-20-2635846"
VERSION_CACHE_TTL = 3600  # 1 hour
VERSION_ATTEMPTS = 3

CLIENT_PLATFORM = base64.b64encode(json.dumps({
    "platformType": "PC",
    "platformOS": "Windows",
    "platformOSVersion": "10.0.19045.1.256.64bit",
    "platformChipset": "Unknown",
}).encode()).decode()

CURRENCY_VP = "85ad13f7-3d1b-5128-9eb2-7cd8ee0b5741"
CURRENCY_RP = "e59aa87c-4cbf-517a-5983-6e81511be9b7"
CURRENCY_KC = "85ca954a-41f2-ce94-9b45-8ca3dd39a00d"

ITEM_TYPE_SKIN = "e7c63390-eda7-46e0-bb7a-a6abdacd2433"
ITEM_TYPE_BUDDY = "dd3bf334-87f3-40bd-b043-682a57a8dc3a"
ITEM_TYPE_CARD = "3f296c07-64c3-494c-923b-fe692a4fa1bd"
ITEM_TYPE_SPRAY = "d5f120f8-ff8c-4571-a619-6040a92ab903"
ITEM_TYPE_TITLE = "de7caa6b-adf7-4588-bbd1-143831e786c6"
ITEM_TYPE_FLEX = "03a572de-4234-31ed-d344-ababa488f981"

_SHARDS = {
    "na": "na",
    "latam": "latam",
    "br": "br",
    "ap": "ap", "as": "ap", "ind": "ap", "jp": "ap", "oce": "ap",
    "eu": "eu", "ru": "eu", "tr": "eu",
    "kr": "kr",
}
FALLBACK_SHARDS = ("na", "eu", "ap", "kr")
# Statuses that mean "wrong shard", not "broken request"
_SHARD_MISS_STATUSES = (403, 404, 405)

_version_cache = {"version": None, "fetched_at": 0.0}
_version_lock = threading.Lock()

_shard_memo = {}  # puuid -> shard that last answered
_shard_lock = threading.Lock()


class RiotApiError(Exception):
    """A PD call failed in a way that switching shards will not fix."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


@dataclass
class FetchResult:
    """Outcome of an upstream fetch: ``data`` on success, ``error`` otherwise."""
    data: Any = None
    error: str = ""

    @property
    def ok(self):
        return not self.error


# ---------------------------------------------------------------------------
# Client version + shard helpers
# ---------------------------------------------------------------------------

def get_client_version():
    """Current Riot client version, cached for an hour.

    Falls back to a pinned release string when valorant-api.com is unreachable.
    """
    now = time.time()
    with _version_lock:
        if _version_cache["version"] and now - _version_cache["fetched_at"] < VERSION_CACHE_TTL:
            return _version_cache["version"]

    for attempt in range(1, VERSION_ATTEMPTS + 1):
        try:
            resp = requests.get(VERSION_URL, timeout=5)
            resp.raise_for_status()
            version = (resp.json().get("data") or {}).get("riotClientVersion")
            if version:
                with _version_lock:
                    _version_cache["version"] = version
                    _version_cache["fetched_at"] = time.time()
                return version
        except (requests.RequestException, ValueError) as e:
            log.warning("Client version fetch attempt %d/%d failed: %s", attempt, VERSION_ATTEMPTS, e)
        if attempt < VERSION_ATTEMPTS:
            time.sleep(1)

    log.warning("Using fallback client version %s", FALLBACK_CLIENT_VERSION)
    return FALLBACK_CLIENT_VERSION


def get_shard(region):
    return _SHARDS.get((region or "").lower(), "na")


def get_pd_url(region):
    return f"https://pd.{get_shard(region)}.a.pvp.net"


def _shard_order(puuid, region):
    with _shard_lock:
        first = _shard_memo.get(puuid) or get_shard(region)
    order = [first]
    for shard in FALLBACK_SHARDS:
        if shard not in order:
            order.append(shard)
    return order


def _headers(session):
    return {
        "Authorization": f"Bearer {session.access_token}",
        "X-Riot-Entitlements-JWT": session.entitlements_token,
        "X-Riot-ClientPlatform": CLIENT_PLATFORM,
        "X-Riot-ClientVersion": get_client_version(),
        "Content-Type": "application/json",
    }


def fetch_with_shard_fallback(session, path, method="GET"):
    """Call a PD endpoint, walking shards until one answers.

    Returns the decoded JSON. Raises RiotApiError when every shard misses or a
    shard answers with a real error.
    """
    headers = _headers(session)
    last_error = None
    for shard in _shard_order(session.puuid, session.region):
        url = get_pd_url(shard) + path
        try:
            if method == "POST":
                resp = requests.post(url, headers=headers, data="{}", timeout=30)
            else:
                resp = requests.get(url, headers=headers, timeout=30)
        except requests.RequestException as e:
            log.warning("PD %s on shard %s failed: %s", path, shard, e)
            last_error = str(e)
            continue

        if resp.status_code in _SHARD_MISS_STATUSES:
            log.debug("PD %s on shard %s returned %d, trying next shard", path, shard, resp.status_code)
            last_error = f"HTTP {resp.status_code} on shard {shard}"
            continue
        if not resp.ok:
            raise RiotApiError(f"PD {path} returned HTTP {resp.status_code}", status=resp.status_code)

        with _shard_lock:
            if _shard_memo.get(session.puuid) != shard:
                log.info("Discovered shard %s for %s", shard, session.puuid[:8])
            _shard_memo[session.puuid] = shard
        try:
            return resp.json()
        except ValueError as e:
            raise RiotApiError(f"PD {path} returned invalid JSON: {e}", status=resp.status_code)

    raise RiotApiError(f"All shards failed for {path}: {last_error}")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

def get_storefront(session):
    return fetch_with_shard_fallback(session, f"/store/v3/storefront/{session.puuid}", method="POST")


def get_wallet(session):
    return fetch_with_shard_fallback(session, f"/store/v1/wallet/{session.puuid}")


def get_entitlements(session, item_type=ITEM_TYPE_SKIN):
    return fetch_with_shard_fallback(session, f"/store/v1/entitlements/{session.puuid}/{item_type}")


def get_player_loadout(session):
    return fetch_with_shard_fallback(session, f"/personalization/v2/players/{session.puuid}/playerloadout")


def reset_caches():
    """Forget the client version and discovered shards."""
    with _version_lock:
        _version_cache["version"] = None
        _version_cache["fetched_at"] = 0.0
    with _shard_lock:
        _shard_memo.clear()
