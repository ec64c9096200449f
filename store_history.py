"""
Store rotation history: one recorded daily shop per player per UTC day.

Rotations are logged whenever a live store is served, so the history grows
as the player keeps visiting. Duplicate logs for the same day are ignored.
"""

import logging
import threading
from collections import Counter
from datetime import datetime, timedelta, timezone

import psycopg2.extras

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


def _today(now=None):
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%d")


class MemoryHistoryStore:
    def __init__(self):
        self._rows = []
        self._lock = threading.Lock()

    def add(self, rotation):
        """Insert unless (puuid, date) exists. Returns True when inserted."""
        with self._lock:
            for row in self._rows:
                if row["puuid"] == rotation["puuid"] and row["date"] == rotation["date"]:
                    return False
            self._rows.append(rotation)
            return True

    def for_player(self, puuid):
        with self._lock:
            return [dict(r) for r in self._rows if r["puuid"] == puuid]

    def delete_before(self, cutoff, puuid=None):
        with self._lock:
            before = len(self._rows)
            self._rows = [r for r in self._rows
                          if not (r["date"] < cutoff and puuid in (None, r["puuid"]))]
            return before - len(self._rows)


class PostgresHistoryStore:
    """``store_rotations`` table; ``connect`` returns a new psycopg2 connection."""

    def __init__(self, connect):
        self._connect = connect

    def add(self, rotation):
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("""
                INSERT INTO store_rotations (puuid, date, timestamp, game_name, tag_line, items, expires_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (puuid, date) DO NOTHING
            """, (rotation["puuid"], rotation["date"], rotation["timestamp"], rotation.get("gameName"),
                  rotation.get("tagLine"), psycopg2.extras.Json(rotation["items"]), rotation["expiresAt"]))
            inserted = cur.rowcount == 1
            conn.commit()
            return inserted
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def for_player(self, puuid):
        conn = self._connect()
        try:
            cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            cur.execute("""
                SELECT puuid, date, timestamp, game_name, tag_line, items, expires_at
                FROM store_rotations WHERE puuid = %s
            """, (puuid,))
            return [{
                "puuid": r["puuid"], "date": r["date"], "timestamp": r["timestamp"],
                "gameName": r["game_name"], "tagLine": r["tag_line"],
                "items": r["items"], "expiresAt": r["expires_at"],
            } for r in cur.fetchall()]
        finally:
            conn.close()

    def delete_before(self, cutoff, puuid=None):
        conn = self._connect()
        try:
            cur = conn.cursor()
            if puuid is None:
                cur.execute("DELETE FROM store_rotations WHERE date < %s", (cutoff,))
            else:
                cur.execute("DELETE FROM store_rotations WHERE puuid = %s AND date < %s", (puuid, cutoff))
            deleted = cur.rowcount
            conn.commit()
            return deleted
        finally:
            conn.close()


def log_store_rotation(store, puuid, items, expires_at, account=None, now=None):
    """Record today's rotation for ``puuid``. Returns False if already logged."""
    now = now or datetime.now(timezone.utc)
    rotation = {
        "puuid": puuid,
        "date": _today(now),
        "timestamp": now.timestamp(),
        "gameName": (account or {}).get("gameName"),
        "tagLine": (account or {}).get("tagLine"),
        "items": [{
            "uuid": item["uuid"],
            "displayName": item["displayName"],
            "cost": item.get("cost", 0),
            "tierName": item.get("tierName"),
            "tierColor": item.get("tierColor"),
        } for item in items],
        "expiresAt": expires_at,
    }
    inserted = store.add(rotation)
    if inserted:
        log.info("Logged store rotation %s for %s", rotation["date"], puuid[:8])
    return inserted


def get_store_history(store, puuid, start_date=None, end_date=None, limit=DEFAULT_LIMIT):
    """Rotations for ``puuid`` newest first, optionally within [start, end] (YYYY-MM-DD)."""
    rows = store.for_player(puuid)
    if start_date:
        rows = [r for r in rows if r["date"] >= start_date]
    if end_date:
        rows = [r for r in rows if r["date"] <= end_date]
    rows.sort(key=lambda r: r["date"], reverse=True)
    return rows[:limit]


def get_history_stats(store, puuid):
    rows = store.for_player(puuid)
    counts = Counter()
    names = {}
    total_cost = 0
    for row in rows:
        for item in row["items"]:
            counts[item["uuid"]] += 1
            names.setdefault(item["uuid"], item["displayName"])
            total_cost += item.get("cost") or 0

    most_offered = {"uuid": "", "displayName": "N/A", "count": 0}
    if counts:
        uuid, count = counts.most_common(1)[0]
        most_offered = {"uuid": uuid, "displayName": names[uuid], "count": count}

    return {
        "totalRotationsSeen": len(rows),
        "uniqueSkinsOffered": len(counts),
        "mostOfferedSkin": most_offered,
        "mostOfferedSkins": [{"uuid": u, "displayName": names[u], "count": c}
                             for u, c in counts.most_common(5)],
        "averageDailyCost": total_cost / len(rows) if rows else 0,
    }


def prune_old_history(store, keep_days=90, puuid=None, now=None):
    """Drop rotations older than ``keep_days`` (for one player, or everyone)."""
    now = now or datetime.now(timezone.utc)
    return store.delete_before(_today(now - timedelta(days=keep_days)), puuid)
