"""Walk a credential chain and return the first entry that yields a token."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence, TypeVar

from .chain import CredentialChain, as_chain
from .config import AuthConfig, CacheMode
from .errors import AllCredentialsFailedError, ResolutionError
from .interfaces import TokenProvider
from .session import is_interactive_session
from .token import Token

logger = logging.getLogger(__name__)

R = TypeVar("R")

NON_INTERACTIVE_MESSAGE = "Credential requires interactive session"
INTERRUPTED_MESSAGE = "Authentication interrupted by user"


def _is_valid_token(token: object) -> bool:
    access_token = getattr(token, "access_token", None)
    return isinstance(access_token, str) and bool(access_token)


def find_credential(
    chain: CredentialChain | None = None,
    params: Mapping[str, Any] | None = None,
    config: AuthConfig | None = None,
    verbose: bool = False,
) -> TokenProvider:
    """Return the first credential of ``chain`` that acquires a token.

    Entries are tried strictly in order. A failing entry, whether it fails
    to build, needs a terminal that is not there, or fails to fetch a
    token, is recorded and the next one is tried.

    Args:
        chain: Candidates. ``None`` means :func:`default_credential_chain`.
        params: Ambient constructor arguments, matched by name.
        config: Environment-derived defaults shared by every candidate.
        verbose: Log progress at INFO instead of DEBUG.

    Raises:
        InvalidCredentialChainError: If ``chain`` is not a chain.
        AllCredentialsFailedError: If every candidate failed.
    """
    chain = as_chain(chain)
    config = config if config is not None else AuthConfig()
    logger.debug("Effective configuration:\n%s", "\n".join(config.describe()))

    params = {**(params or {}), "config": config}
    level = logging.INFO if verbose else logging.DEBUG
    errors: list[ResolutionError] = []

    for spec in chain:
        logger.log(level, "Trying credential %s", spec.name)
        try:
            if spec.is_interactive() and not is_interactive_session(config):
                message = NON_INTERACTIVE_MESSAGE
            else:
                credential = spec.build(params)
                token = credential.get_token()
                if _is_valid_token(token):
                    logger.info("Authenticated with %s", spec.name)
                    return credential
                message = "Credential returned a malformed token"
        except KeyboardInterrupt:
            message = INTERRUPTED_MESSAGE
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or type(exc).__name__

        logger.log(level, "Credential %s failed: %s", spec.name, message)
        errors.append(ResolutionError(spec.name, message))

    raise AllCredentialsFailedError(errors)


def get_credential_provider(
    scope: str | Sequence[str] | None = None,
    tenant_id: str | None = None,
    client_id: str | None = None,
    client_secret: str | None = None,
    use_cache: CacheMode | str | None = None,
    offline: bool | None = None,
    chain: CredentialChain | None = None,
    config: AuthConfig | None = None,
    verbose: bool = False,
) -> TokenProvider:
    """Resolve a working credential from keyword arguments.

    Arguments left as ``None`` fall back to the environment (through
    ``config``) and then to each credential's own default.
    """
    params = {
        "scope": scope,
        "tenant_id": tenant_id,
        "client_id": client_id,
        "client_secret": client_secret,
        "use_cache": use_cache,
        "offline": offline,
    }
    return find_credential(chain, params, config=config, verbose=verbose)


def get_token(scope: str | Sequence[str] | None = None, **kwargs: Any) -> Token:
    """Resolve a credential and return a token from it.

    Accepts the keyword arguments of :func:`get_credential_provider`.
    """
    return get_credential_provider(scope=scope, **kwargs).get_token()


def get_token_provider(
    scope: str | Sequence[str] | None = None, **kwargs: Any
) -> Callable[..., Token]:
    """Resolve a credential now and return a zero-argument token getter."""
    provider = get_credential_provider(scope=scope, **kwargs)

    def _token_provider(reauth: bool = False) -> Token:
        return provider.get_token(reauth=reauth)

    return _token_provider


def get_request_authorizer(
    scope: str | Sequence[str] | None = None, **kwargs: Any
) -> Callable[[R], R]:
    """Return a function that sets the ``Authorization`` header on a request."""
    return get_credential_provider(scope=scope, **kwargs).req_auth


def get_credential_auth(
    scope: str | Sequence[str] | None = None, **kwargs: Any
) -> Callable[[], dict[str, str]]:
    """Return a function producing ``{"Authorization": "Bearer ..."}``."""
    provider = get_credential_provider(scope=scope, **kwargs)

    def _auth_headers() -> dict[str, str]:
        return {"Authorization": provider.get_token().authorization}

    return _auth_headers
