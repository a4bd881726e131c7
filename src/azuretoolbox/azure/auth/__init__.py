"""Credential resolution for Azure REST APIs.

Public API:
- get_credential_provider(), find_credential() → first working credential
- get_token(), get_token_provider(), get_request_authorizer(),
  get_credential_auth() (convenience front-ends)
- DefaultCredential (lazily resolved credential)
- ClientSecretCredential, AzureCLICredential, AuthCodeCredential,
  DeviceCodeCredential
- credential_chain(), default_credential_chain(), CredentialSpec
- get_credential() → credential for the configured strategy
- AuthConfig (settings), Strategy, CacheMode
- Token, TokenProvider, TokenCredentialAdapter
- default_scope(), GRAPH_DEFAULT_SCOPE, ARM_DEFAULT_SCOPE (scope helpers)
"""

from .adapters import TokenCredentialAdapter, as_token_credential
from .azure_cli import AzureCLICredential
from .base import Credential
from .chain import (
    CredentialChain,
    CredentialSpec,
    credential_chain,
    default_credential_chain,
    new_instance,
)
from .client_secret import ClientSecretCredential
from .config import AuthConfig, CacheMode, Strategy
from .default import DefaultCredential
from .endpoints import oauth_url, oauth_urls
from .errors import (
    AllCredentialsFailedError,
    AuthenticationError,
    AuthenticationInterrupted,
    AzureAuthError,
    CliEmptyOutputError,
    CliError,
    CliExecutionError,
    CliInvalidResponseError,
    CliNotFoundError,
    CliNotLoggedInError,
    CliParseError,
    CliTimeoutError,
    CredentialChainEmptyError,
    CredentialChainError,
    InvalidCredentialChainError,
    NonInteractiveSessionError,
    ResolutionError,
    ValidationError,
)
from .factory import get_credential
from .interactive import AuthCodeCredential, DeviceCodeCredential, InteractiveCredential
from .interfaces import TokenProvider
from .resolver import (
    find_credential,
    get_credential_auth,
    get_credential_provider,
    get_request_authorizer,
    get_token,
    get_token_provider,
)
from .scopes import (
    ARM_DEFAULT_SCOPE,
    GRAPH_DEFAULT_SCOPE,
    authority_from_url,
    default_scope,
    scope_from_url,
    validate_scope,
    validate_tenant_id,
)
from .session import is_interactive_session
from .token import Token

__all__ = [
    "AuthConfig",
    "CacheMode",
    "Strategy",
    "get_credential",
    "Credential",
    "InteractiveCredential",
    "ClientSecretCredential",
    "AzureCLICredential",
    "AuthCodeCredential",
    "DeviceCodeCredential",
    "DefaultCredential",
    "CredentialChain",
    "CredentialSpec",
    "credential_chain",
    "default_credential_chain",
    "new_instance",
    "find_credential",
    "get_credential_provider",
    "get_token",
    "get_token_provider",
    "get_request_authorizer",
    "get_credential_auth",
    "Token",
    "TokenProvider",
    "TokenCredentialAdapter",
    "as_token_credential",
    "is_interactive_session",
    "oauth_url",
    "oauth_urls",
    "ARM_DEFAULT_SCOPE",
    "GRAPH_DEFAULT_SCOPE",
    "default_scope",
    "scope_from_url",
    "authority_from_url",
    "validate_scope",
    "validate_tenant_id",
    "AzureAuthError",
    "ValidationError",
    "CredentialChainError",
    "CredentialChainEmptyError",
    "InvalidCredentialChainError",
    "AuthenticationError",
    "AuthenticationInterrupted",
    "NonInteractiveSessionError",
    "AllCredentialsFailedError",
    "ResolutionError",
    "CliError",
    "CliNotFoundError",
    "CliNotLoggedInError",
    "CliExecutionError",
    "CliTimeoutError",
    "CliEmptyOutputError",
    "CliInvalidResponseError",
    "CliParseError",
]
