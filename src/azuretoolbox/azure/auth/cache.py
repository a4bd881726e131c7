"""msal token caches shared per (client, tenant, cache mode).

Memory caches live for the lifetime of the process. Disk caches are
serialized to ``<config_dir>/azuretoolbox/`` after every change. Refresh
on expiry is left to msal.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import msal

from .config import CacheMode

logger = logging.getLogger(__name__)

CACHE_SUBDIR = "azuretoolbox"

_caches: dict[tuple[str, str, CacheMode, str], msal.SerializableTokenCache] = {}


class PersistentTokenCache(msal.SerializableTokenCache):
    """A serializable msal cache backed by a JSON file."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path
        if path.exists():
            try:
                self.deserialize(path.read_text(encoding="utf-8"))
            except ValueError:
                logger.warning("Ignoring unreadable token cache at %s", path)

    def save(self) -> None:
        """Write the cache to disk if msal changed it."""
        if not self.has_state_changed:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # created owner-only, the file holds refresh tokens
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        if os.name != "nt":
            os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(self.serialize())
        self.has_state_changed = False
        logger.debug("Token cache written to %s", self.path)


def cache_path(config_dir: Path, client_id: str, tenant_id: str) -> Path:
    return config_dir / CACHE_SUBDIR / f"token_cache_{client_id}_{tenant_id}.json"


def get_token_cache(
    mode: CacheMode | str,
    client_id: str,
    tenant_id: str,
    config_dir: Path,
) -> msal.SerializableTokenCache:
    """Return the shared token cache for a client/tenant pair."""
    mode = CacheMode(mode)
    location = str(config_dir) if mode is CacheMode.DISK else ""
    key = (client_id, tenant_id, mode, location)
    cache = _caches.get(key)
    if cache is None:
        if mode is CacheMode.DISK:
            cache = PersistentTokenCache(cache_path(config_dir, client_id, tenant_id))
        else:
            cache = msal.SerializableTokenCache()
        _caches[key] = cache
    return cache


def persist(cache: msal.TokenCache) -> None:
    """Flush a cache to disk when it is file-backed."""
    if isinstance(cache, PersistentTokenCache):
        cache.save()


def clear_token_caches() -> None:
    """Forget every in-process cache (files on disk are kept)."""
    _caches.clear()
