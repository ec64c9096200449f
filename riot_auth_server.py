"""
Riot auth helpers for ValStore Live.

Handles the sign-in paths the server supports:
  1. Pasted redirect URL → access_token + id_token read from the URL fragment
  2. Pasted Riot cookies → SSID re-auth against auth.riotgames.com/authorize
  3. Username + password (+ MFA code) → /api/v1/authorization PUTs

All paths finish the same way:
  access_token → entitlements token → userinfo (puuid, Riot ID, shard) → region

The long-lived "remember me" ssid cookie is what lets a session be refreshed
later without credentials, so every re-auth keeps the ORIGINAL ssid rather than
the short-lived one Riot sets on the redirect response.
"""

import logging
import secrets
import urllib.parse
from dataclasses import dataclass
from typing import Optional

import requests

from schemas import AuthorizationResponse, EntitlementsTokenResponse, UserInfo, parse_with_log

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Riot auth endpoints
# ---------------------------------------------------------------------------

RIOT_AUTHORIZE_URL = "https://auth.riotgames.com/authorize"
RIOT_AUTH_API_URL = "https://auth.riotgames.com/api/v1/authorization"
RIOT_ENTITLEMENTS_URL = "https://entitlements.auth.riotgames.com/api/token/v1"
RIOT_USERINFO_URL = "https://auth.riotgames.com/userinfo"
RIOT_LOGIN_PAGE = "authenticate.riotgames.com/login"

CLIENT_ID = "play-valorant-web-prod"
REDIRECT_URI = "https://playvalorant.com/opt_in"
AUTH_SCOPE = "account openid"

# Riot Client user agent; browser UAs trigger captcha far more often.
RIOT_CLIENT_UA = "RiotGamesApi/24.11.0.4602 rso-auth (Windows;10;;Professional, x64) riot_client/0"

ESSENTIAL_COOKIES = ("ssid", "clid", "csid", "tdid")


@dataclass
class AuthTokens:
    access_token: str
    id_token: Optional[str]
    entitlements_token: str
    puuid: str
    region: str
    game_name: Optional[str] = None
    tag_line: Optional[str] = None
    country: Optional[str] = None


@dataclass
class AuthResult:
    """Outcome of a login or re-auth attempt. ``tokens`` is None on failure.

    A credential login that needs a second factor carries ``multifactor``
    (the challenge Riot described) and the Riot cookies the code must be
    submitted with.
    """
    tokens: Optional[AuthTokens] = None
    riot_cookies: str = ""
    error: str = ""
    multifactor: Optional[dict] = None

    @property
    def ok(self):
        return self.tokens is not None

    @property
    def requires_mfa(self):
        return self.multifactor is not None


# ---------------------------------------------------------------------------
# OAuth redirect helpers
# ---------------------------------------------------------------------------

def build_login_url():
    """Build the Riot authorize URL the user opens in a browser.

    After signing in, Riot redirects to playvalorant.com with the tokens in the
    URL fragment; the user pastes that URL back to POST /api/auth.
    """
    params = {
        "client_id": CLIENT_ID,
        "redirect_uri": REDIRECT_URI,
        "response_type": "token id_token",
        "nonce": secrets.token_hex(16),
        "scope": AUTH_SCOPE,
    }
    return RIOT_AUTHORIZE_URL + "?" + urllib.parse.urlencode(params)


def extract_tokens_from_uri(uri):
    """Read access_token and id_token from a redirect URI fragment.

    Returns dict with keys: access_token, id_token. None if either is missing.
    """
    if not isinstance(uri, str):
        return None
    fragment = urllib.parse.urlsplit(uri).fragment
    params = urllib.parse.parse_qs(fragment)
    access_token = params.get("access_token", [""])[0]
    id_token = params.get("id_token", [""])[0]
    if not access_token or not id_token:
        return None
    return {"access_token": access_token, "id_token": id_token}


# ---------------------------------------------------------------------------
# Token chain
# ---------------------------------------------------------------------------

def get_entitlements_token(access_token):
    """Exchange an access token for an entitlements JWT. None on failure."""
    try:
        resp = requests.post(RIOT_ENTITLEMENTS_URL, json={}, headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
        }, timeout=30)
        if not resp.ok:
            log.warning("Entitlements token request returned HTTP %d", resp.status_code)
            return None
        parsed = parse_with_log(EntitlementsTokenResponse, resp.json(), "EntitlementsTokenResponse")
    except (requests.RequestException, ValueError) as e:
        log.warning("Entitlements token request failed: %s", e)
        return None
    return parsed.value.entitlements_token if parsed.ok else None


def get_user_info(access_token):
    """Fetch the userinfo claims (puuid in ``sub``). None on failure."""
    try:
        resp = requests.get(RIOT_USERINFO_URL, headers={
            "Authorization": f"Bearer {access_token}",
        }, timeout=30)
        if not resp.ok:
            log.warning("Userinfo request returned HTTP %d", resp.status_code)
            return None
        parsed = parse_with_log(UserInfo, resp.json(), "UserInfo")
    except (requests.RequestException, ValueError) as e:
        log.warning("Userinfo request failed: %s", e)
        return None
    return parsed.value if parsed.ok else None


_COUNTRY_TO_REGION = {
    # North America
    "US": "na", "USA": "na", "CA": "na", "CAN": "na", "MX": "na", "MEX": "na",
    # Europe
    "GB": "eu", "GBR": "eu", "DE": "eu", "DEU": "eu", "FR": "eu", "FRA": "eu",
    "IT": "eu", "ITA": "eu", "ES": "eu", "ESP": "eu", "RU": "eu", "RUS": "eu",
    "TR": "eu", "TUR": "eu", "PL": "eu", "POL": "eu", "NL": "eu", "NLD": "eu",
    "SE": "eu", "SWE": "eu", "NO": "eu", "NOR": "eu", "DK": "eu", "DNK": "eu",
    "FI": "eu", "FIN": "eu", "UA": "eu", "UKR": "eu",
    # Asia Pacific
    "JP": "ap", "JPN": "ap", "KR": "kr", "KOR": "kr", "CN": "ap", "CHN": "ap",
    "TW": "ap", "TWN": "ap", "HK": "ap", "HKG": "ap", "SG": "ap", "SGP": "ap",
    "TH": "ap", "THA": "ap", "VN": "ap", "VNM": "ap", "ID": "ap", "IDN": "ap",
    "MY": "ap", "MYS": "ap", "PH": "ap", "PHL": "ap", "IN": "ap", "IND": "ap",
    "AU": "ap", "AUS": "ap", "NZ": "ap", "NZL": "ap",
    # Latin America
    "BR": "br", "BRA": "br", "AR": "latam", "ARG": "latam", "CL": "latam",
    "CHL": "latam", "CO": "latam", "COL": "latam", "PE": "latam", "PER": "latam",
}


def determine_region(user_info):
    """Resolve the PD shard for a player.

    The affinity claim carries the real shard assignment ("pp" first, then
    "live"); the country table is only a fallback. Unknown → "na".
    """
    affinity = user_info.affinity or {}
    shard = affinity.get("pp") or affinity.get("live") or next(iter(affinity.values()), "")
    if shard:
        log.info("Using affinity shard: %s", shard)
        return shard

    country = (user_info.country or "").upper()
    region = _COUNTRY_TO_REGION.get(country)
    if region:
        log.info("Mapped country %s to region %s", country, region)
        return region

    log.warning("Unknown country code: %s, defaulting to 'na'", country or "(none)")
    return "na"


# ---------------------------------------------------------------------------
# Riot cookie utilities
# ---------------------------------------------------------------------------

def merge_cookies(existing, set_cookie_pairs):
    """Merge ``name=value`` pairs into a cookie header string; new values win."""
    merged = {}
    for pair in (existing or "").split("; "):
        name, sep, _ = pair.partition("=")
        if sep and name:
            merged[name] = pair
    for header in set_cookie_pairs:
        pair = header.split(";")[0].strip()
        name, sep, _ = pair.partition("=")
        if sep and name:
            merged[name] = pair
    return "; ".join(merged.values())


def extract_named_cookies(cookie_string):
    """Pick the ssid/clid/csid/tdid values out of a raw cookie string."""
    named = {"raw": cookie_string or ""}
    for pair in (cookie_string or "").split("; "):
        name, sep, value = pair.partition("=")
        name = name.strip()
        if sep and name in ESSENTIAL_COOKIES:
            named[name] = value
    return named


def build_essential_cookie_string(named):
    """Rebuild a cookie string holding only the essential Riot cookies.

    Keeps stored sessions small; repeated refreshes otherwise accumulate
    tracking cookies.
    """
    return "; ".join(f"{name}={named[name]}" for name in ESSENTIAL_COOKIES if named.get(name))


def _response_cookie_pairs(resp):
    return [f"{c.name}={c.value}" for c in resp.cookies]


# ---------------------------------------------------------------------------
# Login + re-auth
# ---------------------------------------------------------------------------

def _complete_auth(uri, original_named, response_cookies):
    """Finish a login from a redirect URI carrying tokens."""
    tokens = extract_tokens_from_uri(uri)
    if not tokens:
        return AuthResult(error="Failed to extract tokens from redirect URI")

    entitlements_token = get_entitlements_token(tokens["access_token"])
    if not entitlements_token:
        return AuthResult(error="Failed to get entitlements token")

    user_info = get_user_info(tokens["access_token"])
    if not user_info:
        return AuthResult(error="Failed to get user info")

    riot_cookies = ""
    if response_cookies:
        named = extract_named_cookies(response_cookies)
        if original_named.get("ssid"):
            named["ssid"] = original_named["ssid"]
        riot_cookies = build_essential_cookie_string(named)

    acct = user_info.acct
    return AuthResult(
        tokens=AuthTokens(
            access_token=tokens["access_token"],
            id_token=tokens["id_token"],
            entitlements_token=entitlements_token,
            puuid=user_info.sub,
            region=determine_region(user_info),
            game_name=acct.game_name if acct else None,
            tag_line=acct.tag_line if acct else None,
            country=user_info.country,
        ),
        riot_cookies=riot_cookies,
    )


def complete_auth_with_url(url):
    """Login with a pasted playvalorant.com redirect URL.

    No Riot cookies come with this path, so the resulting session cannot be
    refreshed and lasts until the access token expires.
    """
    return _complete_auth(url, {}, "")


def refresh_tokens_with_cookies(riot_cookies):
    """Get fresh tokens from stored Riot cookies (SSID re-auth).

    GET /authorize with the cookies and no redirect following: a 3xx whose
    Location carries access_token is success; a redirect to the login page
    means the ssid is dead. Never raises.
    """
    named = extract_named_cookies(riot_cookies)
    if not named.get("ssid"):
        return AuthResult(error="No SSID cookie available for re-auth, full login required")

    log.info("SSID re-auth: %s", ", ".join(
        f"{name}={'present' if named.get(name) else 'missing'}" for name in ESSENTIAL_COOKIES))

    params = {
        "client_id": CLIENT_ID,
        "redirect_uri": REDIRECT_URI,
        "response_type": "token id_token",
        "nonce": secrets.token_hex(16),
        "scope": AUTH_SCOPE,
    }
    try:
        resp = requests.get(RIOT_AUTHORIZE_URL, params=params, headers={
            "Cookie": riot_cookies,
            "User-Agent": RIOT_CLIENT_UA,
        }, allow_redirects=False, timeout=30)
    except requests.RequestException as e:
        log.warning("SSID re-auth request failed: %s", e)
        return AuthResult(error=str(e))

    merged = merge_cookies(riot_cookies, _response_cookie_pairs(resp))

    if resp.status_code in (301, 302, 303):
        location = resp.headers.get("Location", "")
        if "access_token" in location:
            result = _complete_auth(location, named, merged)
            if result.ok:
                log.info("SSID re-auth successful (preserved original ssid)")
            return result
        if RIOT_LOGIN_PAGE in location:
            log.warning("GET /authorize redirected to login page, session expired")
            return AuthResult(error="Session expired (redirected to login)")
        log.warning("GET /authorize redirected to unexpected location: %s",
                    location.split("#")[0] or "(no location)")
    else:
        log.warning("GET /authorize returned status %d (expected 302/303)", resp.status_code)

    return AuthResult(error=f"SSID re-auth failed with status {resp.status_code}")


# ---------------------------------------------------------------------------
# Credential login + MFA
# ---------------------------------------------------------------------------

_AUTH_ERRORS = {
    "auth_failure": "Invalid username or password",
    "rate_limited": "Too many login attempts, try again later",
    "multifactor_attempt_failed": "Invalid multi-factor code",
}


def _authorization_request(method, body, riot_cookies):
    """POST or PUT /api/v1/authorization. Returns (response, merged cookie string)."""
    headers = {"Content-Type": "application/json", "User-Agent": RIOT_CLIENT_UA}
    if riot_cookies:
        headers["Cookie"] = riot_cookies
    send = requests.post if method == "POST" else requests.put
    resp = send(RIOT_AUTH_API_URL, json=body, headers=headers, timeout=30)
    return resp, merge_cookies(riot_cookies, _response_cookie_pairs(resp))


def _finish_authorization(resp, riot_cookies, step):
    if not resp.ok:
        log.warning("%s returned HTTP %d", step, resp.status_code)
        return AuthResult(error=f"{step} failed with status {resp.status_code}")
    try:
        body = resp.json()
    except ValueError:
        return AuthResult(error=f"{step} returned invalid JSON")
    parsed = parse_with_log(AuthorizationResponse, body, "AuthorizationResponse")
    if not parsed.ok:
        return AuthResult(error=f"Unexpected {step} response")

    data = parsed.value
    if data.type == "multifactor":
        challenge = data.multifactor.model_dump() if data.multifactor else {}
        log.info("Riot requested a %s code", challenge.get("method") or "multi-factor")
        return AuthResult(error="Multi-factor code required", riot_cookies=riot_cookies,
                          multifactor=challenge)
    if data.error:
        log.warning("%s rejected: %s", step, data.error)
        return AuthResult(error=_AUTH_ERRORS.get(data.error, f"Riot rejected the login ({data.error})"))

    uri = data.response.parameters.uri if data.response and data.response.parameters else None
    if not uri:
        return AuthResult(error="No redirect URI received in response")
    return _complete_auth(uri, {}, riot_cookies)


def authenticate_with_credentials(username, password):
    """Login with a Riot username and password.

    Opens an auth session (POST), then submits the credentials (PUT) with the
    session cookies. A result with ``requires_mfa`` set means the code has to
    go to submit_mfa() together with ``riot_cookies``. Never raises.
    """
    try:
        resp, cookies = _authorization_request("POST", {
            "client_id": CLIENT_ID,
            "nonce": secrets.token_hex(16),
            "redirect_uri": REDIRECT_URI,
            "response_type": "token id_token",
            "scope": AUTH_SCOPE,
        }, "")
        if not resp.ok:
            return AuthResult(error=f"Failed to initialize auth session: HTTP {resp.status_code}")
        if not cookies:
            return AuthResult(error="No session cookie received from auth initialization")

        resp, cookies = _authorization_request("PUT", {
            "type": "auth",
            "username": username,
            "password": password,
            "remember": True,
        }, cookies)
    except requests.RequestException as e:
        log.warning("Credential login request failed: %s", e)
        return AuthResult(error=str(e))
    return _finish_authorization(resp, cookies, "Login")


def submit_mfa(code, riot_cookies):
    """Finish a credential login with the multi-factor code. Never raises."""
    if not riot_cookies:
        return AuthResult(error="Missing auth session for multi-factor code")
    try:
        resp, cookies = _authorization_request("PUT", {
            "type": "multifactor",
            "code": code,
            "rememberDevice": True,
        }, riot_cookies)
    except requests.RequestException as e:
        log.warning("MFA submission request failed: %s", e)
        return AuthResult(error=str(e))
    return _finish_authorization(resp, cookies, "MFA submission")
