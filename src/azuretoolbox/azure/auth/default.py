from __future__ import annotations

import logging
from typing import Sequence, TypeVar

from requests.auth import AuthBase

from .chain import CredentialChain, as_chain
from .config import AuthConfig, CacheMode
from .interfaces import TokenProvider
from .resolver import get_credential_provider
from .scopes import validate_scope, validate_tenant_id
from .token import Token

logger = logging.getLogger(__name__)

R = TypeVar("R")


class DefaultCredential(AuthBase):
    """A credential that picks its real implementation on first use.

    The chain is resolved once, the first time a token is needed, and the
    winning credential is reused afterwards so its token cache is kept.

    Args:
        scope: OAuth scope passed to every candidate.
        tenant_id: Directory ID passed to every candidate.
        client_id: Application ID passed to every candidate.
        client_secret: Secret for the client-secret candidate.
        use_cache: ``"disk"`` or ``"memory"``.
        offline: Keep refresh tokens.
        chain: Candidates to try; defaults to ``default_credential_chain()``.
        config: Environment-derived defaults.
        verbose: Log resolution progress at INFO.

    Example:
        >>> credential = DefaultCredential(scope=GRAPH_DEFAULT_SCOPE)
        >>> requests.get("https://graph.microsoft.com/v1.0/me", auth=credential)
    """

    def __init__(
        self,
        scope: str | Sequence[str] | None = None,
        tenant_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        use_cache: CacheMode | str | None = None,
        offline: bool | None = None,
        chain: CredentialChain | None = None,
        config: AuthConfig | None = None,
        verbose: bool = False,
    ) -> None:
        self.scope = scope
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.use_cache = use_cache
        self.offline = offline
        self.chain = as_chain(chain)
        self.config = config
        self.verbose = verbose
        self._provider: TokenProvider | None = None
        self.validate()

    def __repr__(self) -> str:
        return f"DefaultCredential(chain={self.chain!r}, provider={self._provider!r})"

    def validate(self) -> None:
        """Check the explicitly given tenant and scope."""
        if self.tenant_id is not None:
            validate_tenant_id(self.tenant_id)
        if self.scope is not None:
            validate_scope(self.scope)

    @property
    def provider(self) -> TokenProvider:
        """The resolved credential. Resolves the chain on first access."""
        if self._provider is None:
            self._provider = get_credential_provider(
                scope=self.scope,
                tenant_id=self.tenant_id,
                client_id=self.client_id,
                client_secret=self.client_secret,
                use_cache=self.use_cache,
                offline=self.offline,
                chain=self.chain,
                config=self.config,
                verbose=self.verbose,
            )
            logger.debug("DefaultCredential resolved to %r", self._provider)
        return self._provider

    def is_interactive(self) -> bool:
        return self.provider.is_interactive()

    def get_token(
        self, scope: str | Sequence[str] | None = None, reauth: bool = False
    ) -> Token:
        return self.provider.get_token(scope, reauth=reauth)

    def req_auth(self, request: R, scope: str | Sequence[str] | None = None) -> R:
        return self.provider.req_auth(request, scope)

    def __call__(self, request: R) -> R:
        return self.req_auth(request)
