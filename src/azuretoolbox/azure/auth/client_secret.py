from __future__ import annotations

import logging
from typing import Sequence

import msal
import requests

from .base import Credential
from .cache import get_token_cache, persist
from .config import AuthConfig, CacheMode
from .endpoints import authority_url, oauth_url
from .errors import AuthenticationError, ValidationError
from .token import Token

logger = logging.getLogger(__name__)


class ClientSecretCredential(Credential):
    """Authenticate an application with a client ID and secret.

    Performs the OAuth 2.0 client-credentials grant against
    ``https://<host>/<tenant>/oauth2/v2.0/token``. Failures are not
    retried here.

    Args:
        tenant_id: Directory ID. Defaults to ``AZURE_TENANT_ID``.
        client_id: Application ID. Defaults to ``AZURE_CLIENT_ID``.
        client_secret: Application secret. Defaults to
            ``AZURE_CLIENT_SECRET``; required.
        scope: OAuth scope, usually ``<resource>/.default``.
        use_cache: ``"disk"`` or ``"memory"``.
        offline: Accepted for symmetry; the grant returns no refresh token.
        config: Environment-derived defaults.

    Raises:
        ValidationError: If the secret is missing or empty, or the tenant or
            scope is malformed.
    """

    def __init__(
        self,
        tenant_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        scope: str | Sequence[str] | None = None,
        use_cache: CacheMode | str = CacheMode.DISK,
        offline: bool = False,
        config: AuthConfig | None = None,
    ) -> None:
        config = config if config is not None else AuthConfig()
        if client_secret is None and config.client_secret is not None:
            client_secret = config.client_secret.get_secret_value()
        self.client_secret = client_secret
        self._app: msal.ConfidentialClientApplication | None = None
        super().__init__(
            scope=scope,
            tenant_id=tenant_id,
            client_id=client_id,
            use_cache=use_cache,
            offline=offline,
            config=config,
        )

    @property
    def token_url(self) -> str:
        return oauth_url("token", self.tenant_id, self.config.authority_host)

    def validate(self) -> None:
        if not isinstance(self.client_secret, str) or not self.client_secret.strip():
            raise ValidationError(
                "client_secret cannot be None or empty; "
                "pass client_secret or set AZURE_CLIENT_SECRET"
            )
        super().validate()

    def _application(self) -> msal.ConfidentialClientApplication:
        if self._app is None:
            self._app = msal.ConfidentialClientApplication(
                client_id=self.client_id,
                client_credential=self.client_secret,
                authority=authority_url(self.tenant_id, self.config.authority_host),
                token_cache=get_token_cache(
                    self.use_cache, self.client_id, self.tenant_id, self.config.config_dir
                ),
            )
        return self._app

    def _request_token(self, scopes: list[str], reauth: bool = False) -> Token:
        logger.debug("Requesting client credentials token from %s", self.token_url)
        try:
            app = self._application()
            # msal answers from its cache before calling the token endpoint
            result = app.acquire_token_for_client(scopes=scopes)
        except (ValueError, requests.RequestException) as exc:
            # msal raises ValueError for unknown tenants/authorities
            raise AuthenticationError(f"Client secret authentication failed: {exc}") from exc

        if "access_token" not in result:
            raise AuthenticationError(
                f"Client secret authentication failed: {result.get('error')}: "
                f"{result.get('error_description')}"
            )
        persist(app.token_cache)
        return Token.from_msal(result, offline=self.offline)
