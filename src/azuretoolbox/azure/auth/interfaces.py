from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

from .token import Token

R = TypeVar("R")


@runtime_checkable
class TokenProvider(Protocol):
    """Anything that can produce bearer tokens and authorize requests.

    Implemented by every :class:`~.base.Credential` variant and by
    :class:`~.default.DefaultCredential`.
    """

    def get_token(self, scope: str | None = None, reauth: bool = False) -> Token:
        """Return a token for ``scope`` (or the provider's own scope)."""
        raise NotImplementedError

    def req_auth(self, request: R, scope: str | None = None) -> R:
        """Attach an ``Authorization`` header to ``request`` and return it."""
        raise NotImplementedError

    def is_interactive(self) -> bool:
        """Return True if acquiring a token may prompt the user."""
        raise NotImplementedError
