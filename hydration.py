"""
Turn Riot's ID-only payloads into display-ready records.

Riot's storefront and entitlements responses only carry UUIDs (offer IDs,
skin level IDs, bundle data asset IDs). Everything a player actually sees
(names, icons, videos, edition colours) comes from the valorant-api.com
catalog, matched here.
"""

import logging
from datetime import datetime, timezone

import riot_store as rs
import valorant_api as vapi

log = logging.getLogger(__name__)

TIER_COLORS = {
    "Select Edition": "#5A9FE2",
    "Deluxe Edition": "#00C7B7",
    "Premium Edition": "#D1548D",
    "Exclusive Edition": "#F0B232",
    "Ultra Edition": "#EFEB65",
}
DEFAULT_TIER_COLOR = "#71717A"

EDITION_ORDER = ["Select Edition", "Deluxe Edition", "Premium Edition", "Exclusive Edition", "Ultra Edition"]

ITEM_TYPE_NAMES = {
    rs.ITEM_TYPE_SKIN: "Skin",
    rs.ITEM_TYPE_BUDDY: "Buddy",
    rs.ITEM_TYPE_CARD: "Player Card",
    rs.ITEM_TYPE_SPRAY: "Spray",
    rs.ITEM_TYPE_TITLE: "Title",
    rs.ITEM_TYPE_FLEX: "Flex",
}

ITEM_TYPE_ENDPOINTS = {
    rs.ITEM_TYPE_BUDDY: "buddies/levels",
    rs.ITEM_TYPE_CARD: "playercards",
    rs.ITEM_TYPE_SPRAY: "sprays",
    rs.ITEM_TYPE_TITLE: "playertitles",
    rs.ITEM_TYPE_FLEX: "flex",
}


def expires_at(now, seconds):
    """ISO-8601 UTC timestamp ``seconds`` after ``now`` (epoch seconds)."""
    return datetime.fromtimestamp(now + (seconds or 0), timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Catalog snapshot
# ---------------------------------------------------------------------------

class CatalogSnapshot:
    """Skins and tiers indexed by every UUID Riot may hand us.

    Storefront offers reference parent skins, entitlements reference skin
    levels, and some bundles reference chromas, so all three point at the
    parent skin.
    """

    def __init__(self, skins, tiers):
        self.skins = skins or []
        self.tiers = {(t.get("uuid") or "").lower(): t for t in tiers or []}
        self._index = {}
        for skin in self.skins:
            self._index[(skin.get("uuid") or "").lower()] = skin
            for level in skin.get("levels") or []:
                self._index.setdefault((level.get("uuid") or "").lower(), skin)
            for chroma in skin.get("chromas") or []:
                self._index.setdefault((chroma.get("uuid") or "").lower(), skin)

    @classmethod
    def load(cls):
        """Build from the cached catalog. Raises valorant_api.CatalogError."""
        return cls(vapi.get_weapon_skins(), vapi.get_content_tiers())

    def find_skin(self, uuid):
        return self._index.get((uuid or "").lower())

    def find_tier(self, uuid):
        if not uuid:
            return None
        return self.tiers.get(uuid.lower())


def tier_color(tier):
    if not tier:
        return DEFAULT_TIER_COLOR
    name = tier.get("displayName") or ""
    if name in TIER_COLORS:
        return TIER_COLORS[name]
    highlight = tier.get("highlightColor") or ""
    return f"#{highlight[:6]}" if highlight else DEFAULT_TIER_COLOR


def extract_weapon_name(skin_name):
    """'Prime Vandal' -> 'Vandal'; any knife skin -> 'Melee'."""
    if "melee" in skin_name.lower():
        return "Melee"
    parts = skin_name.split()
    return parts[-1] if parts else skin_name


def skin_video(skin):
    """Highest level's streamed video, if any level has one."""
    for level in reversed(skin.get("levels") or []):
        if level.get("streamedVideo"):
            return level["streamedVideo"]
    return None


def skin_icon(skin):
    levels = skin.get("levels") or []
    if levels and levels[0].get("displayIcon"):
        return levels[0]["displayIcon"]
    return skin.get("displayIcon") or ""


def skin_record(skin, snapshot):
    tier = snapshot.find_tier(skin.get("contentTierUuid"))
    return {
        "uuid": skin.get("uuid"),
        "displayName": skin.get("displayName") or "",
        "displayIcon": skin_icon(skin),
        "streamedVideo": skin_video(skin),
        "wallpaper": skin.get("wallpaper"),
        "tierUuid": tier.get("uuid") if tier else None,
        "tierName": tier.get("displayName") if tier else None,
        "tierColor": tier_color(tier),
        "chromaCount": len(skin.get("chromas") or []),
        "levelCount": len(skin.get("levels") or []),
        "assetPath": skin.get("assetPath") or "",
    }


def _skin_reward(offer):
    for reward in offer.get("Rewards") or []:
        if reward.get("ItemTypeID") == rs.ITEM_TYPE_SKIN:
            return reward.get("ItemID")
    return None


# ---------------------------------------------------------------------------
# Storefront
# ---------------------------------------------------------------------------

def hydrate_daily_items(storefront, snapshot):
    """Daily offers in Riot's order. Skins missing from the catalog become placeholders."""
    layout = storefront.SkinsPanelLayout
    offers = {o.get("OfferID"): o for o in layout.SingleItemStoreOffers}
    items = []
    for offer_id in layout.SingleItemOffers:
        offer = offers.get(offer_id)
        if not offer:
            continue
        skin_uuid = _skin_reward(offer)
        if not skin_uuid:
            continue
        cost = (offer.get("Cost") or {}).get(rs.CURRENCY_VP, 0)
        skin = snapshot.find_skin(skin_uuid)
        if not skin:
            log.warning("Daily offer skin %s not in catalog", skin_uuid)
            items.append({
                "uuid": skin_uuid, "displayName": "Unknown Skin", "displayIcon": "",
                "streamedVideo": None, "wallpaper": None, "tierUuid": None, "tierName": None,
                "tierColor": DEFAULT_TIER_COLOR, "chromaCount": 0, "levelCount": 0,
                "assetPath": "", "cost": cost, "currencyId": rs.CURRENCY_VP,
            })
            continue
        record = skin_record(skin, snapshot)
        record["cost"] = cost
        record["currencyId"] = rs.CURRENCY_VP
        items.append(record)
    return items


def hydrate_night_market(storefront, snapshot, now):
    """Night market offers, or None when it isn't running."""
    bonus = storefront.BonusStore
    if not bonus or not bonus.BonusStoreOffers:
        return None

    items = []
    for bonus_offer in bonus.BonusStoreOffers:
        offer = bonus_offer.get("Offer") or {}
        skin_uuid = _skin_reward(offer)
        skin = snapshot.find_skin(skin_uuid) if skin_uuid else None
        if not skin:
            continue
        record = skin_record(skin, snapshot)
        record.update({
            "basePrice": (offer.get("Cost") or {}).get(rs.CURRENCY_VP, 0),
            "discountedPrice": (bonus_offer.get("DiscountCosts") or {}).get(rs.CURRENCY_VP, 0),
            "discountPercent": bonus_offer.get("DiscountPercent", 0),
            "currencyId": rs.CURRENCY_VP,
            "isSeen": bool(bonus_offer.get("IsSeen", False)),
        })
        items.append(record)

    if not items:
        return None
    return {"items": items, "expiresAt": expires_at(now, bonus.BonusStoreRemainingDurationInSeconds)}


def _hydrate_bundle_item(item, snapshot):
    inner = item.get("Item") or {}
    type_id = inner.get("ItemTypeID")
    item_id = inner.get("ItemID")
    type_name = ITEM_TYPE_NAMES.get(type_id, "Unknown")

    display_name = f"New {type_name}" if type_name != "Unknown" else "Unknown Item"
    display_icon = ""
    tier = None

    if type_id == rs.ITEM_TYPE_SKIN:
        skin = snapshot.find_skin(item_id)
        if skin:
            tier = snapshot.find_tier(skin.get("contentTierUuid"))
            display_name = skin.get("displayName") or display_name
            display_icon = skin_icon(skin)
        else:
            # Skins from a brand-new bundle can be missing from the bulk list
            level = vapi.get_skin_level(item_id)
            if level:
                display_name = level.get("displayName") or display_name
                display_icon = level.get("displayIcon") or ""
    else:
        endpoint = ITEM_TYPE_ENDPOINTS.get(type_id)
        if not endpoint:
            log.warning("Unknown bundle item type %s for %s, trying every endpoint", type_id, item_id)
        for ep in ([endpoint] if endpoint else vapi.ITEM_ENDPOINTS):
            asset = vapi.get_item_asset(ep, item_id)
            if asset:
                display_name = asset.get("displayName") or display_name
                display_icon = (asset.get("displayIcon") or asset.get("largeArt")
                                or asset.get("wideArt") or "")
                break

    return {
        "uuid": item_id,
        "displayName": display_name,
        "displayIcon": display_icon,
        "basePrice": item.get("BasePrice", 0),
        "discountedPrice": item.get("DiscountedPrice", 0),
        "discountPercent": item.get("DiscountPercent", 0),
        "currencyId": item.get("CurrencyID"),
        "tierUuid": tier.get("uuid") if tier else None,
        "tierName": tier.get("displayName") if tier else None,
        "tierColor": tier_color(tier),
        "isPromoItem": bool(item.get("IsPromoItem", False)),
        "itemType": type_name,
    }


def _bundle_name(metadata, items):
    if metadata and metadata.get("displayName"):
        return metadata["displayName"]
    for item in items:
        if item["itemType"] == "Skin" and item["displayName"] != "New Skin":
            parts = item["displayName"].split(" ")
            if len(parts) > 1:
                return " ".join(parts[:-1]) + " Bundle"
            break
    return "Featured Bundle"


def hydrate_bundle(raw, snapshot, now):
    """One featured bundle, or None when it has no items."""
    metadata = vapi.get_bundle(raw.get("DataAssetID"))
    if not metadata:
        log.warning("Bundle %s not found in valorant-api.com, using fallback display data",
                    raw.get("DataAssetID"))
    items = [_hydrate_bundle_item(item, snapshot) for item in raw.get("Items") or []]
    if not items:
        return None

    base_total = (raw.get("TotalBaseCost") or {}).get(rs.CURRENCY_VP)
    if base_total is None:
        base_total = sum(i["basePrice"] for i in items)
    discounted_total = (raw.get("TotalDiscountedCost") or {}).get(rs.CURRENCY_VP)
    if discounted_total is None:
        discounted_total = sum(i["discountedPrice"] for i in items)

    remaining = raw.get("DurationRemainingInSeconds", 0)
    return {
        "bundleUuid": raw.get("ID"),
        "dataAssetID": raw.get("DataAssetID"),
        "displayName": _bundle_name(metadata, items),
        "displayIcon": (metadata or {}).get("displayIcon"),
        "displayIcon2": (metadata or {}).get("displayIcon2"),
        "items": items,
        "totalBasePrice": base_total,
        "totalDiscountedPrice": discounted_total,
        "durationRemainingInSeconds": remaining,
        "expiresAt": expires_at(now, remaining),
        "wholesaleOnly": bool(raw.get("WholesaleOnly", False)),
    }


def hydrate_bundles(storefront, snapshot, now):
    """Every active featured bundle; falls back to the singular Bundle field."""
    featured = storefront.FeaturedBundle
    raw_bundles = featured.Bundles or ([featured.Bundle] if featured.Bundle else [])
    bundles = []
    for raw in raw_bundles:
        hydrated = hydrate_bundle(raw, snapshot, now)
        if hydrated:
            bundles.append(hydrated)
    return bundles


def hydrate_wallet(wallet):
    balances = wallet.Balances if wallet else {}
    return {
        "vp": balances.get(rs.CURRENCY_VP, 0),
        "rp": balances.get(rs.CURRENCY_RP, 0),
        "kc": balances.get(rs.CURRENCY_KC, 0),
    }


def build_store(storefront, wallet, snapshot, now):
    """Full store payload: daily offers, bundles, night market, wallet."""
    bundles = hydrate_bundles(storefront, snapshot, now)
    return {
        "items": hydrate_daily_items(storefront, snapshot),
        "expiresAt": expires_at(now, storefront.SkinsPanelLayout.SingleItemOffersRemainingDurationInSeconds),
        "wallet": hydrate_wallet(wallet),
        "nightMarket": hydrate_night_market(storefront, snapshot, now),
        "bundles": bundles,
        "bundle": bundles[0] if bundles else None,
    }


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

def owned_skin_ids(entitlements):
    """Weapon-skin item IDs from either entitlements payload shape."""
    if entitlements.EntitlementsByTypes is not None:
        for group in entitlements.EntitlementsByTypes:
            if group.ItemTypeID == rs.ITEM_TYPE_SKIN:
                return [e.ItemID for e in group.Entitlements]
        return []
    return [e.ItemID for e in entitlements.Entitlements or []]


def build_inventory(entitlements, snapshot):
    """Hydrated owned-skin collection.

    Entitlements reference skin LEVELS, so several IDs can map to the same
    parent skin; each parent skin appears once.
    """
    skins = []
    seen = set()
    weapons = set()
    editions = {}  # tier name -> colour

    for item_id in owned_skin_ids(entitlements):
        skin = snapshot.find_skin(item_id)
        if not skin:
            log.warning("Skin not found in catalog: %s", item_id)
            continue
        key = (skin.get("uuid") or "").lower()
        if key in seen:
            continue
        seen.add(key)

        record = skin_record(skin, snapshot)
        record["weaponName"] = extract_weapon_name(record["displayName"])
        weapons.add(record["weaponName"])
        if record["tierName"]:
            editions[record["tierName"]] = record["tierColor"]
        skins.append(record)

    skins.sort(key=lambda s: (s["weaponName"], s["displayName"]))

    edition_categories = [{"name": n, "color": editions[n]} for n in EDITION_ORDER if n in editions]
    edition_categories += [{"name": n, "color": c} for n, c in editions.items() if n not in EDITION_ORDER]

    return {
        "skins": skins,
        "totalCount": len(skins),
        "weaponCategories": sorted(weapons),
        "editionCategories": edition_categories,
    }
