"""
Server-side Riot sessions.

The browser only ever holds an opaque session id (encrypted in the
``valorant_session`` cookie). The credential bundle itself (access token,
entitlements JWT, essential Riot cookies) lives in PostgreSQL, or in process
memory for development and tests.

Riot access tokens last about an hour. Once a token is older than 55 minutes
the provider re-auths with the stored ssid cookie and rewrites the same
session row; a bundle past 65 minutes that cannot be refreshed is deleted.
"""

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Optional

import psycopg2.extras

import riot_auth_server as rauth
from schemas import StoredSession, parse_with_log

log = logging.getLogger(__name__)

SESSION_MAX_AGE = 60 * 60 * 24 * 30      # 30 days
TOKEN_REFRESH_AGE = 55 * 60              # refresh after 55 minutes
TOKEN_HARD_EXPIRY = 65 * 60              # unusable after 65 minutes


def filter_essential_cookies(riot_cookies):
    if not riot_cookies:
        return None
    kept = [pair for pair in riot_cookies.split("; ")
            if pair.split("=")[0].strip() in rauth.ESSENTIAL_COOKIES]
    return "; ".join(kept) or None


@dataclass
class Session:
    access_token: str
    entitlements_token: str
    puuid: str
    region: str
    created_at: float
    id_token: Optional[str] = None
    game_name: Optional[str] = None
    tag_line: Optional[str] = None
    country: Optional[str] = None
    riot_cookies: Optional[str] = None

    @classmethod
    def from_tokens(cls, tokens, riot_cookies, created_at):
        return cls(
            access_token=tokens.access_token,
            entitlements_token=tokens.entitlements_token,
            puuid=tokens.puuid,
            region=tokens.region,
            created_at=created_at,
            id_token=tokens.id_token,
            game_name=tokens.game_name,
            tag_line=tokens.tag_line,
            country=tokens.country,
            riot_cookies=filter_essential_cookies(riot_cookies),
        )

    @classmethod
    def from_dict(cls, data):
        """Rebuild from a stored dict. None if the row no longer validates."""
        parsed = parse_with_log(StoredSession, data, "StoredSession")
        if not parsed.ok:
            return None
        v = parsed.value
        return cls(
            access_token=v.accessToken,
            entitlements_token=v.entitlementsToken,
            puuid=v.puuid,
            region=v.region,
            created_at=v.createdAt,
            id_token=v.idToken,
            game_name=v.gameName,
            tag_line=v.tagLine,
            country=v.country,
            riot_cookies=v.riotCookies,
        )

    def to_dict(self):
        return {
            "accessToken": self.access_token,
            "idToken": self.id_token,
            "entitlementsToken": self.entitlements_token,
            "puuid": self.puuid,
            "region": self.region,
            "gameName": self.game_name,
            "tagLine": self.tag_line,
            "country": self.country,
            "riotCookies": self.riot_cookies,
            "createdAt": self.created_at,
        }

    @property
    def expires_at(self):
        return self.created_at + TOKEN_HARD_EXPIRY


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class MemorySessionStore:
    """Sessions in a dict. Lost on restart; used for development and tests."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._rows = {}  # session_id -> (data, expires_at)
        self._lock = threading.Lock()

    def save(self, session_id, data, max_age=SESSION_MAX_AGE):
        with self._lock:
            self._rows[session_id] = (json.loads(json.dumps(data)), self._clock() + max_age)

    def get(self, session_id):
        with self._lock:
            row = self._rows.get(session_id)
            if row is None:
                return None
            if self._clock() > row[1]:
                del self._rows[session_id]
                return None
            return row[0]

    def delete(self, session_id):
        with self._lock:
            self._rows.pop(session_id, None)

    def cleanup_expired(self):
        now = self._clock()
        with self._lock:
            expired = [sid for sid, (_, exp) in self._rows.items() if now > exp]
            for sid in expired:
                del self._rows[sid]
        return len(expired)


class PostgresSessionStore:
    """Sessions in the ``sessions`` table. ``connect`` returns a new psycopg2 connection."""

    def __init__(self, connect):
        self._connect = connect

    def save(self, session_id, data, max_age=SESSION_MAX_AGE):
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("""
                INSERT INTO sessions (id, data, expires_at)
                VALUES (%s, %s, NOW() + make_interval(secs => %s))
                ON CONFLICT (id) DO UPDATE SET data = EXCLUDED.data, expires_at = EXCLUDED.expires_at
            """, (session_id, psycopg2.extras.Json(data), max_age))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get(self, session_id):
        conn = self._connect()
        try:
            cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            cur.execute("SELECT data FROM sessions WHERE id = %s AND expires_at > NOW()", (session_id,))
            row = cur.fetchone()
            return row["data"] if row else None
        finally:
            conn.close()

    def delete(self, session_id):
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM sessions WHERE id = %s", (session_id,))
            conn.commit()
        finally:
            conn.close()

    def cleanup_expired(self):
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM sessions WHERE expires_at < NOW()")
            deleted = cur.rowcount
            conn.commit()
            return deleted
        finally:
            conn.close()


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class SessionProvider:
    """Creates sessions and hands out usable ones, refreshing stale tokens."""

    def __init__(self, store, reauth=None, clock=time.time):
        self.store = store
        self._reauth = reauth or rauth.refresh_tokens_with_cookies
        self._clock = clock

    def create_session(self, tokens, riot_cookies=None):
        """Store a fresh bundle for ``tokens``; returns the new session id."""
        session = Session.from_tokens(tokens, riot_cookies, self._clock())
        session_id = str(uuid.uuid4())
        self.store.save(session_id, session.to_dict())
        log.debug("Created new session %s", session_id)
        return session_id

    def get_session(self, session_id):
        if not session_id:
            return None
        data = self.store.get(session_id)
        if data is None:
            log.warning("Session %s not found in store (expired/deleted)", session_id)
            return None
        return Session.from_dict(data)

    def delete_session(self, session_id):
        if session_id:
            log.debug("Deleting session %s", session_id)
            self.store.delete(session_id)

    def _expire_or_keep(self, session_id, session, age):
        if age >= TOKEN_HARD_EXPIRY:
            self.store.delete(session_id)
            return None
        return session

    def get_session_with_refresh(self, session_id):
        """A usable session for ``session_id``, or None.

        Tokens older than 55 minutes are refreshed with the stored Riot
        cookies and written back under the same id. A failed refresh keeps
        the old bundle until its hard expiry, then deletes it.
        """
        session = self.get_session(session_id)
        if session is None:
            return None

        age = self._clock() - session.created_at
        if age <= TOKEN_REFRESH_AGE:
            return session

        log.info("Access token likely expired (age: %dmin), attempting SSID refresh", round(age / 60))

        if not session.riot_cookies:
            log.warning("No stored Riot cookies for token refresh")
            return self._expire_or_keep(session_id, session, age)

        result = self._reauth(session.riot_cookies)
        if not result.ok:
            log.warning("Token refresh failed: %s", result.error)
            return self._expire_or_keep(session_id, session, age)
        if result.tokens.puuid != session.puuid:
            log.warning("Token refresh returned a different account, discarding")
            return self._expire_or_keep(session_id, session, age)

        fresh = Session.from_tokens(result.tokens, result.riot_cookies or session.riot_cookies, self._clock())
        self.store.save(session_id, fresh.to_dict())
        log.info("Session refreshed successfully (in-place update)")
        return fresh
