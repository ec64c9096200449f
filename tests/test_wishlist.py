from datetime import datetime, timezone

import pytest

import wishlist as wl


def _item(uuid, name="Skin"):
    return {"skinUuid": uuid, "displayName": name, "displayIcon": f"{uuid}.png", "tierColor": "#5A9FE2"}


def test_newest_first_and_deduplicated():
    store = wl.MemoryWishlistStore()
    wl.add_to_wishlist(store, "p1", _item("a"))
    wl.add_to_wishlist(store, "p1", _item("b"))
    data = wl.add_to_wishlist(store, "p1", _item("a"))

    assert data["count"] == 2
    assert [i["skinUuid"] for i in data["items"]] == ["b", "a"]


def test_added_at_is_filled_in():
    store = wl.MemoryWishlistStore()
    now = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)

    data = wl.add_to_wishlist(store, "p1", _item("a"), now=now)
    assert data["items"][0]["addedAt"] == "2026-03-01T09:30:00.000Z"

    data = wl.add_to_wishlist(store, "p1", dict(_item("b"), addedAt="2025-01-01T00:00:00.000Z"))
    assert data["items"][0]["addedAt"] == "2025-01-01T00:00:00.000Z"


def test_accounts_are_isolated():
    store = wl.MemoryWishlistStore()
    wl.add_to_wishlist(store, "p1", _item("a"))

    assert wl.get_wishlist(store, "p2") == {"items": [], "count": 0}
    assert wl.remove_from_wishlist(store, "p2", "a") == {"items": [], "count": 0}
    assert wl.get_wishlist(store, "p1")["count"] == 1


def test_cap(monkeypatch):
    monkeypatch.setattr(wl, "WISHLIST_MAX_ITEMS", 2)
    store = wl.MemoryWishlistStore()
    wl.add_to_wishlist(store, "p1", _item("a"))
    wl.add_to_wishlist(store, "p1", _item("b"))

    # re-adding a listed skin at the cap is still a no-op
    assert wl.add_to_wishlist(store, "p1", _item("a"))["count"] == 2
    with pytest.raises(wl.WishlistFullError):
        wl.add_to_wishlist(store, "p1", _item("c"))


def test_remove():
    store = wl.MemoryWishlistStore()
    wl.add_to_wishlist(store, "p1", _item("a"))
    wl.add_to_wishlist(store, "p1", _item("b"))

    data = wl.remove_from_wishlist(store, "p1", "a")

    assert [i["skinUuid"] for i in data["items"]] == ["b"]


def test_check_wishlist_in_store_ignores_case():
    store = wl.MemoryWishlistStore()
    wl.add_to_wishlist(store, "p1", _item("Prime-Vandal", "Prime Vandal"))
    wl.add_to_wishlist(store, "p1", _item("ion-sheriff", "Ion Sheriff"))

    matches = wl.check_wishlist_in_store(store, "p1", ["PRIME-VANDAL", "other"])

    assert {m["displayName"]: m["isInStore"] for m in matches} == {"Prime Vandal": True, "Ion Sheriff": False}
