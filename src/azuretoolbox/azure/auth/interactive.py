"""User-facing OAuth flows: device code and authorization code.

Both flows go through ``msal.PublicClientApplication`` and share its token
cache, so a user who signed in once is served silently afterwards until
the refresh token expires.
"""

from __future__ import annotations

import logging
import random
import socket
import sys
import time
from abc import abstractmethod
from typing import Any, ClassVar, Sequence
from urllib.parse import urlsplit, urlunsplit

import msal
import requests

from .base import Credential
from .cache import get_token_cache, persist
from .config import AuthConfig, CacheMode
from .endpoints import authority_url
from .endpoints import oauth_url as build_oauth_url
from .errors import AuthenticationError, AuthenticationInterrupted, NonInteractiveSessionError
from .scopes import RESERVED_SCOPES
from .session import is_interactive_session
from .token import Token

logger = logging.getLogger(__name__)


def is_port_available(port: int, host: str = "127.0.0.1", timeout: float = 1.0) -> bool:
    """Return True if nothing accepts connections on ``host:port``."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return False
    except OSError:
        return True


def random_port(
    min_port: int = 10000, max_port: int = 49151, host: str = "127.0.0.1", attempts: int = 20
) -> int:
    """Pick a free port in ``[min_port, max_port]`` by probing random candidates."""
    min_port = max(1, min_port)
    max_port = min(max_port, 65535)
    ports = range(min_port, max_port + 1)
    candidates = random.sample(ports, max(0, min(attempts, len(ports))))
    for port in candidates:
        if is_port_available(port, host):
            return port
    raise AuthenticationError("Cannot find an available port.")


def default_redirect_uri(redirect_uri: str = "http://localhost") -> str:
    """Return ``redirect_uri`` with a free port filled in when it has none.

    >>> default_redirect_uri("http://localhost:8080/callback")
    'http://localhost:8080/callback'
    """
    parts = urlsplit(redirect_uri)
    if parts.port is not None:
        return redirect_uri
    netloc = f"{parts.hostname or 'localhost'}:{random_port()}"
    return urlunsplit((parts.scheme or "http", netloc, parts.path or "/", parts.query, ""))


class InteractiveCredential(Credential):
    """Base class for flows that need a person at the keyboard.

    Construction fails with :class:`NonInteractiveSessionError` when no
    terminal is attached (see :func:`~.session.is_interactive_session`).
    Refresh tokens are kept by default (``offline=True``).
    """

    interactive: ClassVar[bool] = True
    endpoint: ClassVar[str] = "authorize"

    def __init__(
        self,
        scope: str | Sequence[str] | None = None,
        tenant_id: str | None = None,
        client_id: str | None = None,
        use_cache: CacheMode | str = CacheMode.DISK,
        offline: bool = True,
        config: AuthConfig | None = None,
    ) -> None:
        self._app: msal.PublicClientApplication | None = None
        super().__init__(
            scope=scope,
            tenant_id=tenant_id,
            client_id=client_id,
            use_cache=use_cache,
            offline=offline,
            config=config,
        )
        if not is_interactive_session(self.config):
            raise NonInteractiveSessionError(
                f"{type(self).__name__} requires an interactive session"
            )

    @property
    def oauth_url(self) -> str:
        return build_oauth_url(self.endpoint, self.tenant_id, self.config.authority_host)

    def _application(self) -> msal.PublicClientApplication:
        if self._app is None:
            self._app = msal.PublicClientApplication(
                client_id=self.client_id,
                authority=authority_url(self.tenant_id, self.config.authority_host),
                token_cache=get_token_cache(
                    self.use_cache, self.client_id, self.tenant_id, self.config.config_dir
                ),
            )
        return self._app

    def _acquire_silent(
        self, app: msal.PublicClientApplication, scopes: list[str]
    ) -> dict[str, Any] | None:
        for account in app.get_accounts():
            result = app.acquire_token_silent(scopes, account=account)
            if result and "access_token" in result:
                logger.debug("Token for %s served from the token cache", account.get("username"))
                return result
        return None

    @abstractmethod
    def _acquire_interactive(
        self, app: msal.PublicClientApplication, scopes: list[str], reauth: bool
    ) -> dict[str, Any]:
        """Run the user-facing flow and return the msal result."""

    def _request_token(self, scopes: list[str], reauth: bool = False) -> Token:
        # msal adds the reserved scopes itself and rejects them when passed
        scopes = [s for s in scopes if s not in RESERVED_SCOPES]
        name = type(self).__name__
        app = self._application()

        result = None if reauth else self._acquire_silent(app, scopes)
        if result is None:
            try:
                result = self._acquire_interactive(app, scopes, reauth)
            except KeyboardInterrupt:
                raise AuthenticationInterrupted() from None
            except (ValueError, requests.RequestException) as exc:
                raise AuthenticationError(f"{name} failed: {exc}") from exc

        if not result or "access_token" not in result:
            result = result or {}
            raise AuthenticationError(
                f"{name} failed: {result.get('error')}: {result.get('error_description')}"
            )
        persist(app.token_cache)
        return Token.from_msal(result, offline=self.offline)


class DeviceCodeCredential(InteractiveCredential):
    """OAuth 2.0 device authorization grant.

    The user opens the verification URL on any device and enters the code
    that is printed to stderr. Polling stops when the user approves or
    denies, when the code expires, or after ``timeout`` seconds.
    """

    endpoint: ClassVar[str] = "devicecode"

    def __init__(
        self,
        scope: str | Sequence[str] | None = None,
        tenant_id: str | None = None,
        client_id: str | None = None,
        use_cache: CacheMode | str = CacheMode.DISK,
        offline: bool = True,
        timeout: float | None = None,
        config: AuthConfig | None = None,
    ) -> None:
        self.timeout = timeout
        super().__init__(
            scope=scope,
            tenant_id=tenant_id,
            client_id=client_id,
            use_cache=use_cache,
            offline=offline,
            config=config,
        )

    def _acquire_interactive(
        self, app: msal.PublicClientApplication, scopes: list[str], reauth: bool
    ) -> dict[str, Any]:
        flow = app.initiate_device_flow(scopes=scopes)
        if "user_code" not in flow:
            raise AuthenticationError(
                "Could not start device code flow: "
                f"{flow.get('error')}: {flow.get('error_description')}"
            )

        logger.info("Waiting for device code %s to be entered", flow["user_code"])
        print(flow["message"], file=sys.stderr, flush=True)

        deadline = time.time() + self.timeout if self.timeout is not None else None

        def _exit_condition(flow: dict[str, Any]) -> bool:
            now = time.time()
            if deadline is not None and now > deadline:
                return True
            return flow.get("expires_at", 0) < now

        result = app.acquire_token_by_device_flow(flow, exit_condition=_exit_condition)
        if "access_token" not in result and deadline is not None and time.time() > deadline:
            raise AuthenticationError(
                f"Device code authentication timed out after {self.timeout:g} seconds"
            )
        return result


class AuthCodeCredential(InteractiveCredential):
    """OAuth 2.0 authorization code grant with PKCE via a local redirect.

    A browser is opened on the authorize endpoint and msal listens on the
    redirect URI's port for the response. Without an explicit port a free
    one is picked at construction.

    Args:
        redirect_uri: Loopback redirect URI. Defaults to
            ``AZURE_REDIRECT_URI`` or ``http://localhost``.
        timeout: Seconds to wait for the browser round-trip.
    """

    endpoint: ClassVar[str] = "authorize"

    def __init__(
        self,
        scope: str | Sequence[str] | None = None,
        tenant_id: str | None = None,
        client_id: str | None = None,
        use_cache: CacheMode | str = CacheMode.DISK,
        offline: bool = True,
        redirect_uri: str | None = None,
        timeout: float | None = None,
        config: AuthConfig | None = None,
    ) -> None:
        self.timeout = timeout
        super().__init__(
            scope=scope,
            tenant_id=tenant_id,
            client_id=client_id,
            use_cache=use_cache,
            offline=offline,
            config=config,
        )
        self.redirect_uri = default_redirect_uri(
            redirect_uri if redirect_uri is not None else self.config.redirect_uri
        )

    def _acquire_interactive(
        self, app: msal.PublicClientApplication, scopes: list[str], reauth: bool
    ) -> dict[str, Any]:
        logger.info("Waiting for browser sign-in on %s", self.redirect_uri)
        print("Complete the sign-in in your browser.", file=sys.stderr, flush=True)
        return app.acquire_token_interactive(
            scopes,
            prompt=msal.Prompt.LOGIN if reauth else None,
            port=urlsplit(self.redirect_uri).port,
            timeout=self.timeout,
        )
