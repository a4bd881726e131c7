import re
from typing import Final, Sequence
from urllib.parse import urlparse

from .errors import ValidationError

ARM_DEFAULT_SCOPE: Final[str] = "https://management.azure.com/.default"
GRAPH_DEFAULT_SCOPE: Final[str] = "https://graph.microsoft.com/.default"
STORAGE_DEFAULT_SCOPE: Final[str] = "https://storage.azure.com/.default"
KEY_VAULT_DEFAULT_SCOPE: Final[str] = "https://vault.azure.net/.default"

RESOURCE_SCOPES: Final[dict[str, str]] = {
    "azure_arm": ARM_DEFAULT_SCOPE,
    "azure_graph": GRAPH_DEFAULT_SCOPE,
    "azure_storage": STORAGE_DEFAULT_SCOPE,
    "azure_key_vault": KEY_VAULT_DEFAULT_SCOPE,
}

# Scopes msal adds on its own and refuses to receive from callers.
RESERVED_SCOPES: Final[frozenset[str]] = frozenset(
    {"openid", "profile", "offline_access"}
)

_TENANT_RE = re.compile(r"^[A-Za-z0-9.\-]+$")
_SCOPE_RE = re.compile(r"^[A-Za-z0-9_.:/~\-]+$")


def default_scope(resource: str = "azure_arm") -> str:
    """Return the ``.default`` scope of a well-known Azure resource.

    Args:
        resource: One of ``azure_arm``, ``azure_graph``, ``azure_storage``
            or ``azure_key_vault``.

    Raises:
        ValueError: If ``resource`` is unknown.
    """
    try:
        return RESOURCE_SCOPES[resource]
    except KeyError:
        raise ValueError(
            f"Unknown resource {resource!r}; expected one of {sorted(RESOURCE_SCOPES)}"
        ) from None


def authority_from_url(site_url: str) -> str:
    """Return the URL authority (scheme + host).

    Args:
        site_url: Absolute URL (e.g., "https://management.azure.com/subscriptions").

    Returns:
        The "<scheme>://<host>" portion of the URL.

    Raises:
        ValueError: If ``site_url`` is not absolute or lacks a host.
    """
    parsed = urlparse(site_url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError("site_url must be an absolute URL")
    return f"{parsed.scheme}://{parsed.netloc}"


def scope_from_url(site_url: str) -> str:
    return f"{authority_from_url(site_url)}/.default"


def get_scope_resource(scope: str | Sequence[str]) -> str | None:
    """Return the resource URL of a single HTTP(S) scope, else ``None``.

    ``"https://graph.microsoft.com/.default"`` gives
    ``"https://graph.microsoft.com"``. Plain scopes such as ``openid`` and
    lists with more than one HTTP scope give ``None``.
    """
    candidates = [scope] if isinstance(scope, str) else list(scope)
    http_scopes = [s for s in candidates if s.startswith(("http://", "https://"))]
    if len(http_scopes) != 1:
        return None
    return authority_from_url(http_scopes[0])


def split_scopes(scope: str | Sequence[str]) -> list[str]:
    """Normalize a scope argument to a list of scope strings."""
    if isinstance(scope, str):
        return [scope]
    return list(scope)


def validate_tenant_id(tenant_id: object) -> bool:
    """Check that ``tenant_id`` only holds alphanumerics, dots and hyphens.

    Raises:
        ValidationError: If the value is not a string or contains other
            characters (spaces, slashes, ``@``, underscores...).
    """
    if not isinstance(tenant_id, str):
        raise ValidationError("tenant_id must be a single string")
    if not _TENANT_RE.fullmatch(tenant_id):
        raise ValidationError(f"tenant_id {tenant_id!r} is not valid")
    return True


def validate_scope(scope: object) -> bool:
    """Check OAuth scope syntax for a scope string or a list of them.

    Raises:
        ValidationError: If the value is not a string or list of strings, or
            any scope contains whitespace or characters outside the scope
            token alphabet.
    """
    if isinstance(scope, str):
        items = [scope]
    elif isinstance(scope, (list, tuple)) and scope and all(
        isinstance(s, str) for s in scope
    ):
        items = list(scope)
    else:
        raise ValidationError("scope must be a string or a list of strings")

    invalid = [s for s in items if not _SCOPE_RE.fullmatch(s)]
    if invalid:
        raise ValidationError(f"scope {', '.join(map(repr, invalid))} is not valid")
    return True
