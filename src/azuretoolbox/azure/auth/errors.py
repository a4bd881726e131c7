"""Exception taxonomy for credential resolution.

Calling code is expected to pattern-match on these classes, so they form
part of the public API:

- ``ValidationError``: malformed tenant, scope or secret (construction time).
- ``CredentialChainError``: the chain itself is malformed.
- ``AuthenticationError``: a credential could not produce a token.
- ``Cli*Error``: failures of the Azure CLI process backend.
- ``AllCredentialsFailedError``: every entry of a chain failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence


class AzureAuthError(Exception):
    """Base class for all credential-layer errors."""


class ValidationError(AzureAuthError, ValueError):
    """Raised when a credential argument is malformed or missing."""


class CredentialChainError(AzureAuthError, ValueError):
    """Raised when a credential chain is malformed."""


class CredentialChainEmptyError(CredentialChainError):
    """Raised when a credential chain is built without entries."""

    def __init__(self) -> None:
        super().__init__(
            "Credential chain cannot be empty. "
            "Provide at least one credential class or instance, "
            "or use default_credential_chain() for a pre-configured chain."
        )


class InvalidCredentialChainError(CredentialChainError):
    """Raised when a chain (or one of its entries) has the wrong type."""


class AuthenticationError(AzureAuthError):
    """Raised when a credential fails to acquire a token."""


class NonInteractiveSessionError(AuthenticationError):
    """Raised when an interactive flow is attempted in a batch session."""


class AuthenticationInterrupted(AuthenticationError):
    """Raised when the user cancels an interactive flow."""

    def __init__(self, message: str = "Authentication interrupted by user") -> None:
        super().__init__(message)


class CliError(AuthenticationError):
    """Base class for Azure CLI backend failures."""


class CliNotFoundError(CliError):
    """Raised when the CLI executable cannot be resolved on PATH."""

    def __init__(self, executable: str) -> None:
        self.executable = executable
        super().__init__(
            f"Azure CLI not found on PATH ({executable!r}). "
            "Install it from https://learn.microsoft.com/cli/azure/install-azure-cli "
            "or make sure the executable is on your PATH."
        )


class CliNotLoggedInError(CliError):
    """Raised when the CLI has no active account."""

    def __init__(self) -> None:
        super().__init__(
            "User is not logged in to Azure CLI. "
            "Call login() on the credential or run 'az login' in your terminal."
        )


class CliExecutionError(CliError):
    """Raised when a CLI command exits with a non-zero status."""

    def __init__(self, exit_code: int, output: str) -> None:
        self.exit_code = exit_code
        self.output = output
        super().__init__(
            f"Azure CLI command failed (exit code {exit_code}): {output.strip()}"
        )


class CliTimeoutError(CliError, TimeoutError):
    """Raised when a CLI command exceeds its process timeout."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Azure CLI command timed out after {timeout:g} seconds")


class CliEmptyOutputError(CliError):
    """Raised when a CLI command succeeds but prints nothing."""

    def __init__(self) -> None:
        super().__init__(
            "Azure CLI returned empty output. Ensure you are logged in with 'az login'"
        )


class CliInvalidResponseError(CliError):
    """Raised when CLI output lacks required fields."""

    def __init__(self, missing_fields: Sequence[str] = (), message: str | None = None):
        self.missing_fields = list(missing_fields)
        if message is None:
            message = "Azure CLI response missing required fields: " + ", ".join(
                self.missing_fields
            )
        super().__init__(message)


class CliParseError(CliInvalidResponseError):
    """Raised when CLI output is not valid JSON."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Failed to parse Azure CLI output as JSON: {reason}"
        )


@dataclass(frozen=True)
class ResolutionError:
    """Why one chain entry failed to authenticate."""

    name: str
    message: str


class AllCredentialsFailedError(AuthenticationError):
    """Raised when no entry of a credential chain produced a token.

    Attributes:
        errors: One record per attempted entry, in chain order.
    """

    def __init__(self, errors: Iterable[ResolutionError]) -> None:
        self.errors = list(errors)
        lines = ["All authentication methods in the chain failed!"]
        for err in self.errors:
            lines.append(f"  {err.name}: {err.message}")
        super().__init__("\n".join(lines))

    @property
    def names(self) -> list[str]:
        """Names of the attempted entries, in chain order."""
        return [err.name for err in self.errors]
