from typing import Final, Literal

from .config import DEFAULT_AUTHORITY_HOST, DEFAULT_TENANT_ID

Endpoint = Literal["authorize", "token", "devicecode"]

ENDPOINTS: Final[tuple[str, ...]] = ("authorize", "token", "devicecode")


def authority_url(
    tenant_id: str = DEFAULT_TENANT_ID, host: str = DEFAULT_AUTHORITY_HOST
) -> str:
    """Return the msal authority ``https://<host>/<tenant>``."""
    return f"https://{host}/{tenant_id}"


def oauth_url(
    endpoint: Endpoint,
    tenant_id: str = DEFAULT_TENANT_ID,
    host: str = DEFAULT_AUTHORITY_HOST,
) -> str:
    """Return a tenant-specific OAuth 2.0 v2 endpoint URL.

    Args:
        endpoint: ``authorize``, ``token`` or ``devicecode``.
        tenant_id: Directory to authenticate against.
        host: Authority host without scheme.

    Raises:
        ValueError: If ``endpoint`` is unknown.
    """
    if endpoint not in ENDPOINTS:
        raise ValueError(f"Unknown OAuth endpoint {endpoint!r}; expected one of {ENDPOINTS}")
    return f"{authority_url(tenant_id, host)}/oauth2/v2.0/{endpoint}"


def oauth_urls(
    tenant_id: str = DEFAULT_TENANT_ID, host: str = DEFAULT_AUTHORITY_HOST
) -> dict[str, str]:
    return {name: oauth_url(name, tenant_id, host) for name in ENDPOINTS}
