"""
Validation models for every JSON payload ValStore Live receives from outside.

Riot, valorant-api.com and Henrik payloads are validated here before any code
reads them. parse_with_log() never raises: a payload that fails validation
comes back as a failed ParseResult carrying the pydantic issue list, and the
caller decides how to degrade (omit a field, fall back to a cache, 401).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass
class ParseResult:
    """Either a validated value or the list of validation issues."""
    value: Any = None
    issues: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self):
        return not self.issues


def parse_with_log(model, data, schema_name):
    """Validate ``data`` against ``model``; log and return issues on failure."""
    try:
        value = model.model_validate(data)
    except ValidationError as e:
        issues = e.errors(include_url=False)
        log.warning("[%s] validation failed: %s", schema_name, issues)
        return ParseResult(issues=issues)
    return ParseResult(value=value)


class _Passthrough(BaseModel):
    model_config = ConfigDict(extra="allow")


# ---------------------------------------------------------------------------
# Stored session
# ---------------------------------------------------------------------------

class StoredSession(_Passthrough):
    accessToken: str
    idToken: Optional[str] = None
    entitlementsToken: str
    puuid: str
    region: str
    gameName: Optional[str] = None
    tagLine: Optional[str] = None
    country: Optional[str] = None
    riotCookies: Optional[str] = None
    createdAt: float


# ---------------------------------------------------------------------------
# Riot auth
# ---------------------------------------------------------------------------

class EntitlementsTokenResponse(_Passthrough):
    entitlements_token: str


class RiotAccountInfo(_Passthrough):
    game_name: Optional[str] = None
    tag_line: Optional[str] = None


class UserInfo(_Passthrough):
    sub: str
    country: Optional[str] = None
    acct: Optional[RiotAccountInfo] = None
    affinity: Optional[Dict[str, str]] = None


class AuthorizationParameters(_Passthrough):
    uri: Optional[str] = None


class AuthorizationRedirect(_Passthrough):
    mode: Optional[str] = None
    parameters: Optional[AuthorizationParameters] = None


class MultifactorInfo(_Passthrough):
    email: Optional[str] = None
    method: Optional[str] = None
    methods: List[str] = []
    multiFactorCodeLength: Optional[int] = None


class AuthorizationResponse(_Passthrough):
    """PUT /api/v1/authorization: "response", "multifactor" or "auth" (with error)."""
    type: str
    response: Optional[AuthorizationRedirect] = None
    multifactor: Optional[MultifactorInfo] = None
    error: Optional[str] = None
    country: Optional[str] = None


# ---------------------------------------------------------------------------
# Riot PD (storefront, wallet, entitlements, loadout)
# ---------------------------------------------------------------------------

class FeaturedBundleData(_Passthrough):
    Bundle: Optional[Dict[str, Any]] = None
    Bundles: List[Dict[str, Any]] = []
    BundleRemainingDurationInSeconds: int = 0


class SkinsPanelLayoutData(_Passthrough):
    SingleItemOffers: List[str]
    SingleItemOffersRemainingDurationInSeconds: int
    SingleItemStoreOffers: List[Dict[str, Any]] = []


class BonusStoreData(_Passthrough):
    BonusStoreOffers: List[Dict[str, Any]] = []
    BonusStoreRemainingDurationInSeconds: int = 0


class RiotStorefront(_Passthrough):
    FeaturedBundle: FeaturedBundleData
    SkinsPanelLayout: SkinsPanelLayoutData
    BonusStore: Optional[BonusStoreData] = None


class RiotWallet(_Passthrough):
    Balances: Dict[str, int]


class Entitlement(_Passthrough):
    ItemID: str
    TypeID: Optional[str] = None


class EntitlementsByType(_Passthrough):
    ItemTypeID: str
    Entitlements: List[Entitlement] = []


class EntitlementsResponse(_Passthrough):
    EntitlementsByTypes: Optional[List[EntitlementsByType]] = None
    Entitlements: Optional[List[Entitlement]] = None


class LoadoutIdentity(_Passthrough):
    PlayerCardID: Optional[str] = None
    PlayerTitleID: Optional[str] = None
    AccountLevel: Optional[int] = None
    HideAccountLevel: bool = False


class PlayerLoadout(_Passthrough):
    Identity: LoadoutIdentity


# ---------------------------------------------------------------------------
# valorant-api.com
# ---------------------------------------------------------------------------

class CatalogResponse(_Passthrough):
    status: int
    data: Any = None


# ---------------------------------------------------------------------------
# Henrik API
# ---------------------------------------------------------------------------

class HenrikCard(_Passthrough):
    small: str
    large: str
    wide: str
    id: str


class HenrikAccount(_Passthrough):
    puuid: str
    region: str
    account_level: int
    name: str
    tag: str
    card: HenrikCard
    last_update: str
    last_update_raw: int


class HenrikMMRCurrentData(_Passthrough):
    currenttier: int
    currenttier_patched: str
    images: Dict[str, Optional[str]] = {}
    ranking_in_tier: int
    mmr_change_to_last_game: int
    elo: int


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class WishlistItem(BaseModel):
    skinUuid: str = Field(min_length=1)
    displayName: str = Field(min_length=1)
    displayIcon: str = Field(min_length=1)
    tierColor: str = Field(min_length=1)
    addedAt: Optional[str] = None
