from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Iterator

import msal
import pytest

from azuretoolbox.azure.auth.cache import clear_token_caches
from azuretoolbox.azure.auth.config import AuthConfig


@pytest.fixture(autouse=True)
def clear_azure_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Remove AZURE_* vars to prevent cross-test leakage.

    The token cache directory is pointed at ``tmp_path`` and sessions are
    treated as non-interactive unless a test says otherwise.

    Yields:
        Iterator[None]: Context manager semantics for pytest.
    """
    to_clear = [k for k in os.environ.keys() if k.upper().startswith("AZURE_")]
    for k in to_clear:
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("AZURE_CONFIG_DIR", str(tmp_path / ".azure"))
    monkeypatch.setenv("AZURE_INTERACTIVE", "false")
    yield


@pytest.fixture(autouse=True)
def fresh_token_caches() -> Iterator[None]:
    clear_token_caches()
    yield
    clear_token_caches()


@pytest.fixture()
def batch_config(tmp_path: Path) -> AuthConfig:
    return AuthConfig(config_dir=tmp_path / ".azure", interactive=False)


@pytest.fixture()
def interactive_config(tmp_path: Path) -> AuthConfig:
    return AuthConfig(config_dir=tmp_path / ".azure", interactive=True)


@pytest.fixture()
def fake_az(tmp_path: Path) -> Callable[[str], Path]:
    """Return a factory writing shell scripts that stand in for ``az``.

    Every invocation appends its arguments to ``calls.log`` next to the
    script before running ``body``.
    """
    if os.name == "nt":
        pytest.skip("shell script stand-ins need a POSIX shell")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(body: str, name: str = "az") -> Path:
        script = bin_dir / name
        script.write_text(
            '#!/bin/sh\necho "$@" >> "$(dirname "$0")/calls.log"\n' + body,
            encoding="utf-8",
        )
        script.chmod(0o755)
        return script

    return _make


@pytest.fixture()
def fake_confidential_app(monkeypatch: pytest.MonkeyPatch) -> type:
    """Replace ``msal.ConfidentialClientApplication`` with a recorder.

    Returns:
        type: The fake class. ``instances`` lists every app built and
        ``result`` is what ``acquire_token_for_client`` returns.
    """

    class FakeConfidentialApp:
        instances: list["FakeConfidentialApp"] = []
        result: Any = {
            "access_token": "app-token",
            "token_type": "Bearer",
            "expires_in": 3600,
        }
        error: BaseException | None = None

        def __init__(self, client_id: str, client_credential: str, authority: str, token_cache):
            self.client_id = client_id
            self.client_credential = client_credential
            self.authority = authority
            self.token_cache = token_cache
            self.requested: list[list[str]] = []
            type(self).instances.append(self)

        def acquire_token_for_client(self, scopes: list[str]) -> Any:
            self.requested.append(list(scopes))
            if type(self).error is not None:
                raise type(self).error
            return dict(type(self).result)

    monkeypatch.setattr(msal, "ConfidentialClientApplication", FakeConfidentialApp)
    return FakeConfidentialApp


@pytest.fixture()
def fake_public_app(monkeypatch: pytest.MonkeyPatch) -> type:
    """Replace ``msal.PublicClientApplication`` with a scripted fake."""

    class FakePublicApp:
        instances: list["FakePublicApp"] = []
        accounts: list[dict[str, Any]] = []
        silent_result: Any = None
        flow: dict[str, Any] = {
            "user_code": "ABCD1234",
            "message": "To sign in, open https://microsoft.com/devicelogin and enter ABCD1234",
            "expires_at": 9999999999,
        }
        result: Any = {
            "access_token": "user-token",
            "token_type": "Bearer",
            "expires_in": 3600,
            "refresh_token": "refresh",
        }
        device_flow: Callable[..., Any] | None = None

        def __init__(self, client_id: str, authority: str, token_cache):
            self.client_id = client_id
            self.authority = authority
            self.token_cache = token_cache
            self.calls: list[tuple[str, Any]] = []
            type(self).instances.append(self)

        def get_accounts(self) -> list[dict[str, Any]]:
            return list(type(self).accounts)

        def acquire_token_silent(self, scopes, account):
            self.calls.append(("silent", list(scopes)))
            return type(self).silent_result

        def initiate_device_flow(self, scopes):
            self.calls.append(("initiate", list(scopes)))
            return dict(type(self).flow)

        def acquire_token_by_device_flow(self, flow, exit_condition):
            self.calls.append(("device", flow["user_code"]))
            if type(self).device_flow is not None:
                return type(self).device_flow(flow, exit_condition)
            return dict(type(self).result)

        def acquire_token_interactive(self, scopes, prompt=None, port=None, timeout=None):
            self.calls.append(("interactive", {"scopes": list(scopes), "prompt": prompt, "port": port}))
            return dict(type(self).result)

    monkeypatch.setattr(msal, "PublicClientApplication", FakePublicApp)
    return FakePublicApp
