from __future__ import annotations

from typing import Sequence

from .azure_cli import AzureCLICredential
from .client_secret import ClientSecretCredential
from .config import AuthConfig, Strategy
from .default import DefaultCredential
from .errors import ValidationError
from .interactive import AuthCodeCredential, DeviceCodeCredential
from .interfaces import TokenProvider


def _check_strategy(cfg: AuthConfig) -> None:
    """Validate required fields for the selected strategy."""
    if cfg.strategy is Strategy.CLIENT_SECRET and not cfg.client_secret:
        raise ValidationError(
            "client_secret strategy requires tenant_id, client_id and client_secret."
        )
    # DEFAULT, CLI, AUTH_CODE and DEVICE_CODE are validated by the credentials.


def get_credential(
    config: AuthConfig | None = None, scope: str | Sequence[str] | None = None
) -> TokenProvider:
    """Construct a credential based on :class:`AuthConfig`.

    Args:
        config: Auth configuration. If ``None``, it is read from the
            environment and ``AZURE_AUTH_STRATEGY`` decides.
        scope: OAuth scope for the credential. Defaults to the Azure
            Resource Manager scope.

    Returns:
        A concrete credential. The ``default`` strategy returns a
        :class:`DefaultCredential` that resolves the default chain lazily.

    Raises:
        ValidationError: If the configuration lacks a field the strategy
            needs.
    """
    cfg = config or AuthConfig()
    _check_strategy(cfg)

    match cfg.strategy:
        case Strategy.CLIENT_SECRET:
            return ClientSecretCredential(scope=scope, config=cfg)
        case Strategy.CLI:
            return AzureCLICredential(scope=scope, config=cfg)
        case Strategy.AUTH_CODE:
            return AuthCodeCredential(scope=scope, config=cfg)
        case Strategy.DEVICE_CODE:
            return DeviceCodeCredential(scope=scope, config=cfg)
        case _:
            return DefaultCredential(scope=scope, config=cfg)
