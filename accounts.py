"""
Multi-account registry.

A browser can keep up to five Riot accounts signed in and switch between them
without re-authenticating. The registry is a puuid-keyed dict of entries plus
a separate active selection, round-tripped through the Fernet-encrypted
``valorant_accounts`` cookie. Each entry points at its own server-side session.

Nothing here touches Flask: the server loads a registry per request, the
functions below mutate it and mark it dirty, and the response hook writes it
back.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, Optional

from cryptography.fernet import InvalidToken

log = logging.getLogger(__name__)

MAX_ACCOUNTS = 5
ACCOUNTS_MAX_AGE = 60 * 60 * 24 * 30  # 30 days


@dataclass
class AccountEntry:
    puuid: str
    region: str
    session_id: str
    game_name: Optional[str] = None
    tag_line: Optional[str] = None
    added_at: float = 0.0

    def public(self):
        return {
            "puuid": self.puuid,
            "region": self.region,
            "gameName": self.game_name,
            "tagLine": self.tag_line,
        }


@dataclass
class AccountRegistry:
    accounts: Dict[str, AccountEntry] = field(default_factory=dict)
    active_puuid: str = ""
    dirty: bool = False

    def active_entry(self):
        if not self.active_puuid:
            return None
        return self.accounts.get(self.active_puuid)

    def active_session_id(self):
        entry = self.active_entry()
        return entry.session_id if entry else None


def _short(puuid):
    return puuid[:8]


# ---------------------------------------------------------------------------
# Cookie round-trip
# ---------------------------------------------------------------------------

def load_registry(fernet, token, ttl=ACCOUNTS_MAX_AGE):
    """Decrypt a registry cookie. Any bad or expired token yields an empty registry."""
    if not token:
        return AccountRegistry()
    try:
        payload = json.loads(fernet.decrypt(token.encode(), ttl=ttl))
        accounts = {}
        for raw in payload.get("accounts", []):
            entry = AccountEntry(**raw)
            accounts[entry.puuid] = entry
    except (InvalidToken, ValueError, TypeError, AttributeError) as e:
        log.warning("Failed to load accounts registry: %s", type(e).__name__)
        return AccountRegistry()

    active = payload.get("activePuuid") or ""
    if active not in accounts:
        active = ""
    return AccountRegistry(accounts=accounts, active_puuid=active)


def dump_registry(fernet, registry):
    payload = {
        "accounts": [asdict(e) for e in registry.accounts.values()],
        "activePuuid": registry.active_puuid,
    }
    return fernet.encrypt(json.dumps(payload).encode()).decode()


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def add_account(registry, entry, provider=None):
    """Upsert ``entry`` and make it active.

    Re-adding a known puuid keeps its original added_at. When the registry is
    full, the oldest account is evicted and its session deleted.
    """
    existing = registry.accounts.get(entry.puuid)
    if existing:
        if provider and existing.session_id != entry.session_id:
            provider.delete_session(existing.session_id)
        entry.added_at = existing.added_at
        registry.accounts[entry.puuid] = entry
        log.info("Updated existing account %s", _short(entry.puuid))
    else:
        if not entry.added_at:
            entry.added_at = time.time()
        while len(registry.accounts) >= MAX_ACCOUNTS:
            oldest = min(registry.accounts.values(), key=lambda e: e.added_at)
            del registry.accounts[oldest.puuid]
            if provider:
                provider.delete_session(oldest.session_id)
            log.info("Removed oldest account %s (max accounts reached)", _short(oldest.puuid))
        registry.accounts[entry.puuid] = entry
        log.info("Added new account %s", _short(entry.puuid))

    registry.active_puuid = entry.puuid
    registry.dirty = True
    log.info("Account %s is now active (total: %d)", _short(entry.puuid), len(registry.accounts))


def switch_account(registry, puuid, provider):
    """Make ``puuid`` the active account.

    Returns False, leaving the active account unchanged, when the account is
    not in the registry or its session can no longer be used or refreshed.
    """
    entry = registry.accounts.get(puuid)
    if not entry:
        log.error("Account %s not found in registry", _short(puuid))
        return False

    if provider.get_session_with_refresh(entry.session_id) is None:
        log.error("Session not found for account %s", _short(puuid))
        return False

    registry.active_puuid = puuid
    registry.dirty = True
    log.info("Switched to account %s", _short(puuid))
    return True


def remove_account(registry, puuid, provider=None):
    """Drop ``puuid`` and its session. Returns the removed entry or None.

    Removing the active account activates the first remaining one, or clears
    the selection when none are left.
    """
    entry = registry.accounts.pop(puuid, None)
    if entry is None:
        log.warning("Account %s not found in registry", _short(puuid))
        return None

    if provider:
        provider.delete_session(entry.session_id)
    log.info("Removed account %s", _short(puuid))

    if registry.active_puuid == puuid:
        registry.active_puuid = next(iter(registry.accounts), "")
        if registry.active_puuid:
            log.info("Switched to next account %s", _short(registry.active_puuid))
        else:
            log.info("No accounts remaining, cleared all sessions")
    registry.dirty = True
    return entry


def get_active_account(registry):
    """Public fields of the active account, or None."""
    entry = registry.active_entry()
    return entry.public() if entry else None


def list_accounts(registry):
    return [dict(e.public(), isActive=e.puuid == registry.active_puuid, addedAt=e.added_at)
            for e in registry.accounts.values()]
