from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Sequence, TypeVar

from requests.auth import AuthBase

from .config import AuthConfig, CacheMode
from .scopes import ARM_DEFAULT_SCOPE, split_scopes, validate_scope, validate_tenant_id
from .token import Token

logger = logging.getLogger(__name__)

R = TypeVar("R")


class Credential(AuthBase, ABC):
    """Base class for every token source.

    Subclasses implement :meth:`_request_token`. This class resolves the
    common parameters, validates them, memoises the last unexpired token
    per scope and attaches it to outgoing requests. Credentials are also
    ``requests`` auth handlers: ``requests.get(url, auth=credential)``.

    Args:
        scope: OAuth scope (or list of scopes). Defaults to the Azure
            Resource Manager ``.default`` scope.
        tenant_id: Directory ID. Defaults to ``AuthConfig.tenant_id``.
        client_id: Application ID. Defaults to ``AuthConfig.client_id``.
        use_cache: ``"disk"`` or ``"memory"`` token cache.
        offline: Keep refresh tokens on returned :class:`Token` objects.
        config: Environment-derived defaults. Read from the environment
            when omitted.
    """

    interactive: ClassVar[bool] = False

    def __init__(
        self,
        scope: str | Sequence[str] | None = None,
        tenant_id: str | None = None,
        client_id: str | None = None,
        use_cache: CacheMode | str = CacheMode.DISK,
        offline: bool = False,
        config: AuthConfig | None = None,
    ) -> None:
        self.config = config if config is not None else AuthConfig()
        self.scope = scope if scope is not None else ARM_DEFAULT_SCOPE
        self.tenant_id = tenant_id if tenant_id is not None else self.config.tenant_id
        self.client_id = client_id if client_id is not None else self.config.client_id
        self.use_cache = CacheMode(use_cache)
        self.offline = offline
        self._tokens: dict[tuple[str, ...], Token] = {}
        self.validate()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(tenant_id={self.tenant_id!r}, "
            f"client_id={self.client_id!r}, scope={self.scope!r})"
        )

    def validate(self) -> None:
        """Check tenant and scope syntax.

        Raises:
            ValidationError: If either value is malformed.
        """
        validate_tenant_id(self.tenant_id)
        validate_scope(self.scope)

    def is_interactive(self) -> bool:
        return self.interactive

    def get_token(
        self, scope: str | Sequence[str] | None = None, reauth: bool = False
    ) -> Token:
        """Return a bearer token, reusing the last one while it is valid.

        Args:
            scope: Overrides the credential's scope for this call.
            reauth: Skip every cached token and authenticate again.

        Raises:
            ValidationError: If ``scope`` is malformed.
            AuthenticationError: If no token could be acquired.
        """
        scope = scope if scope is not None else self.scope
        validate_scope(scope)
        key = tuple(split_scopes(scope))

        cached = self._tokens.get(key)
        if cached is not None and not reauth and not cached.is_expired():
            return cached

        token = self._request_token(list(key), reauth=reauth)
        self._tokens[key] = token
        logger.debug("%s acquired a token expiring at %s", type(self).__name__, token.expires_at)
        return token

    @abstractmethod
    def _request_token(self, scopes: list[str], reauth: bool = False) -> Token:
        """Acquire a fresh token from the underlying source."""

    def req_auth(self, request: R, scope: str | Sequence[str] | None = None) -> R:
        """Set ``Authorization: Bearer <token>`` on ``request``."""
        token = self.get_token(scope)
        request.headers["Authorization"] = token.authorization
        return request

    def __call__(self, request: R) -> R:
        return self.req_auth(request)
