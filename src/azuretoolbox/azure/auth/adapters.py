from __future__ import annotations

import logging
from typing import Any

from azure.core.credentials import AccessToken, AccessTokenInfo, TokenRequestOptions

from .interfaces import TokenProvider

logger = logging.getLogger(__name__)


class TokenCredentialAdapter:
    """Expose a :class:`TokenProvider` as an azure-core ``TokenCredential``.

    Lets any credential of this package be handed to Azure SDK clients:

        >>> client = SecretClient(vault_url, credential=TokenCredentialAdapter(cred))

    ``claims``, ``tenant_id`` and ``enable_cae`` are accepted for protocol
    compatibility and ignored; the wrapped provider's tenant is used.
    """

    def __init__(self, provider: TokenProvider) -> None:
        self.provider = provider

    def __repr__(self) -> str:
        return f"TokenCredentialAdapter({self.provider!r})"

    def _token(self, scopes: tuple[str, ...]):
        if not scopes:
            return self.provider.get_token()
        return self.provider.get_token(scopes[0] if len(scopes) == 1 else list(scopes))

    def get_token(
        self,
        *scopes: str,
        claims: str | None = None,
        tenant_id: str | None = None,
        enable_cae: bool = False,
        **kwargs: Any,
    ) -> AccessToken:
        if tenant_id is not None:
            logger.debug("Ignoring tenant_id=%s requested by the Azure SDK", tenant_id)
        return self._token(scopes).as_access_token()

    def get_token_info(
        self, *scopes: str, options: TokenRequestOptions | None = None
    ) -> AccessTokenInfo:
        token = self._token(scopes)
        return AccessTokenInfo(
            token.access_token,
            int(token.expires_at.timestamp()),
            token_type=token.token_type,
        )

    def close(self) -> None:
        pass

    def __enter__(self) -> "TokenCredentialAdapter":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def as_token_credential(provider: TokenProvider) -> TokenCredentialAdapter:
    return TokenCredentialAdapter(provider)
