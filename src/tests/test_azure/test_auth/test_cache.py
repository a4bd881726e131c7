from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import msal
import pytest

from azuretoolbox.azure.auth import cache as cache_module
from azuretoolbox.azure.auth.cache import (
    PersistentTokenCache,
    cache_path,
    get_token_cache,
    persist,
)
from azuretoolbox.azure.auth.config import CacheMode


def test_get_token_cache__shared_per_client_and_tenant(tmp_path: Path) -> None:
    first = get_token_cache("memory", "client", "tenant", tmp_path)
    again = get_token_cache(CacheMode.MEMORY, "client", "tenant", tmp_path)
    other = get_token_cache("memory", "client", "other-tenant", tmp_path)

    assert first is again
    assert first is not other
    assert type(first) is msal.SerializableTokenCache


def test_get_token_cache__disk_mode_is_file_backed(tmp_path: Path) -> None:
    cache = get_token_cache("disk", "client", "tenant", tmp_path)
    assert isinstance(cache, PersistentTokenCache)
    assert cache.path == tmp_path / "azuretoolbox" / "token_cache_client_tenant.json"
    assert cache.path == cache_path(tmp_path, "client", "tenant")


@pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
def test_persist__writes_private_file_only_when_changed(tmp_path: Path) -> None:
    cache = PersistentTokenCache(cache_path(tmp_path, "c", "t"))

    persist(cache)
    assert not cache.path.exists()

    cache.has_state_changed = True
    persist(cache)
    assert cache.path.exists()
    assert stat.S_IMODE(cache.path.stat().st_mode) == 0o600
    assert isinstance(json.loads(cache.path.read_text()), dict)
    assert cache.has_state_changed is False


def test_persistent_cache__ignores_unreadable_file(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = cache_path(tmp_path, "c", "t")
    path.parent.mkdir(parents=True)
    path.write_text("not json")

    cache = PersistentTokenCache(path)

    assert cache.find(msal.TokenCache.CredentialType.ACCESS_TOKEN) == []
    assert "Ignoring unreadable token cache" in caplog.text


@pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
def test_persist__file_private_before_tokens_written(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = cache_path(tmp_path, "c", "t")
    path.parent.mkdir(parents=True)
    path.write_text("{}")
    path.chmod(0o644)
    modes: list[int] = []
    real_fdopen = os.fdopen

    def _fdopen(fd, *args, **kwargs):
        modes.append(stat.S_IMODE(os.fstat(fd).st_mode))
        return real_fdopen(fd, *args, **kwargs)

    monkeypatch.setattr(cache_module.os, "fdopen", _fdopen)
    cache = PersistentTokenCache(path)
    cache.has_state_changed = True
    old_umask = os.umask(0)
    try:
        persist(cache)
    finally:
        os.umask(old_umask)

    assert modes == [0o600]
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
