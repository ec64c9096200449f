"""
Per-account wishlist of weapon skins.

Each player (puuid) has an isolated list, newest first, capped at
WISHLIST_MAX_ITEMS. Adding a skin that is already listed is a no-op.
"""

import logging
import threading
from datetime import datetime, timezone

import psycopg2.extras

log = logging.getLogger(__name__)

WISHLIST_MAX_ITEMS = 50


class WishlistFullError(Exception):
    pass


class MemoryWishlistStore:
    def __init__(self):
        self._items = {}  # puuid -> [item, ...] newest first
        self._lock = threading.Lock()

    def items(self, puuid):
        with self._lock:
            return [dict(i) for i in self._items.get(puuid, [])]

    def add(self, puuid, item, max_items):
        """Prepend unless listed. Returns False for duplicates, raises when full."""
        with self._lock:
            current = self._items.setdefault(puuid, [])
            if any(i["skinUuid"] == item["skinUuid"] for i in current):
                return False
            if len(current) >= max_items:
                raise WishlistFullError(f"Wishlist full. Maximum {max_items} items allowed.")
            current.insert(0, dict(item))
            return True

    def remove(self, puuid, skin_uuid):
        with self._lock:
            current = self._items.get(puuid, [])
            kept = [i for i in current if i["skinUuid"] != skin_uuid]
            if kept:
                self._items[puuid] = kept
            else:
                self._items.pop(puuid, None)
            return len(current) - len(kept)


class PostgresWishlistStore:
    """``wishlist`` table; ``connect`` returns a new psycopg2 connection."""

    def __init__(self, connect):
        self._connect = connect

    def items(self, puuid):
        conn = self._connect()
        try:
            cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            cur.execute("""
                SELECT skin_uuid, display_name, display_icon, tier_color, added_at
                FROM wishlist WHERE puuid = %s ORDER BY id DESC
            """, (puuid,))
            return [{
                "skinUuid": r["skin_uuid"], "displayName": r["display_name"],
                "displayIcon": r["display_icon"], "tierColor": r["tier_color"],
                "addedAt": r["added_at"],
            } for r in cur.fetchall()]
        finally:
            conn.close()

    def add(self, puuid, item, max_items):
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM wishlist WHERE puuid = %s", (puuid,))
            count = cur.fetchone()[0]
            cur.execute("SELECT 1 FROM wishlist WHERE puuid = %s AND skin_uuid = %s",
                        (puuid, item["skinUuid"]))
            if cur.fetchone():
                return False
            if count >= max_items:
                raise WishlistFullError(f"Wishlist full. Maximum {max_items} items allowed.")
            cur.execute("""
                INSERT INTO wishlist (puuid, skin_uuid, display_name, display_icon, tier_color, added_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (puuid, skin_uuid) DO NOTHING
            """, (puuid, item["skinUuid"], item["displayName"], item["displayIcon"],
                  item["tierColor"], item["addedAt"]))
            inserted = cur.rowcount == 1
            conn.commit()
            return inserted
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def remove(self, puuid, skin_uuid):
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM wishlist WHERE puuid = %s AND skin_uuid = %s", (puuid, skin_uuid))
            deleted = cur.rowcount
            conn.commit()
            return deleted
        finally:
            conn.close()


def _summary(items):
    return {"items": items, "count": len(items)}


def get_wishlist(store, puuid):
    return _summary(store.items(puuid))


def add_to_wishlist(store, puuid, item, now=None):
    """Add ``item`` (skinUuid, displayName, displayIcon, tierColor[, addedAt]).

    Returns the updated wishlist. Raises WishlistFullError at the cap.
    """
    item = dict(item)
    if not item.get("addedAt"):
        now = now or datetime.now(timezone.utc)
        item["addedAt"] = now.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    if store.add(puuid, item, WISHLIST_MAX_ITEMS):
        log.info("Added %s to wishlist for %s", item["displayName"], puuid[:8])
    return get_wishlist(store, puuid)


def remove_from_wishlist(store, puuid, skin_uuid):
    if store.remove(puuid, skin_uuid):
        log.info("Removed %s from wishlist for %s", skin_uuid, puuid[:8])
    return get_wishlist(store, puuid)


def check_wishlist_in_store(store, puuid, store_item_uuids):
    """Which wishlisted skins are in the given daily offers (case-insensitive)."""
    offered = {u.lower() for u in store_item_uuids}
    return [{
        "skinUuid": item["skinUuid"],
        "displayName": item["displayName"],
        "isInStore": item["skinUuid"].lower() in offered,
    } for item in store.items(puuid)]
