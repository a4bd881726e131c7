from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from azure.core.credentials import AccessToken


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Token:
    """An OAuth 2.0 bearer token.

    ``expires_at`` is always timezone-aware (UTC). The token values are
    left out of ``repr`` so tokens can be logged safely.
    """

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    expires_at: datetime = field(default_factory=_utcnow)
    refresh_token: str | None = field(default=None, repr=False)
    scope: str | None = None

    def is_expired(self, leeway: float = 60.0) -> bool:
        """Return True if the token expires within ``leeway`` seconds."""
        return _utcnow() + timedelta(seconds=leeway) >= self.expires_at

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` header."""
        return f"Bearer {self.access_token}"

    def as_access_token(self) -> AccessToken:
        """Convert to the azure-core ``AccessToken`` tuple."""
        return AccessToken(self.access_token, int(self.expires_at.timestamp()))

    @classmethod
    def from_msal(cls, result: Mapping[str, Any], *, offline: bool = True) -> "Token":
        """Build a token from an msal ``acquire_token_*`` result.

        Args:
            result: Successful msal result containing ``access_token``.
            offline: Keep the refresh token, if msal returned one.
        """
        expires_in = int(result.get("expires_in", 3600))
        return cls(
            access_token=result["access_token"],
            token_type=result.get("token_type", "Bearer"),
            expires_at=_utcnow() + timedelta(seconds=expires_in),
            refresh_token=result.get("refresh_token") if offline else None,
            scope=result.get("scope"),
        )

    @classmethod
    def from_cli(cls, payload: Mapping[str, Any]) -> "Token":
        """Build a token from ``az account get-access-token`` output.

        ``expires_on`` (POSIX seconds, newer CLI versions) is preferred
        over ``expiresOn`` (local time, ``YYYY-MM-DD HH:MM:SS.ffffff``).
        """
        if payload.get("expires_on") not in (None, ""):
            expires_at = datetime.fromtimestamp(int(payload["expires_on"]), timezone.utc)
        else:
            expires_at = datetime.fromisoformat(str(payload["expiresOn"]))
            if expires_at.tzinfo is None:
                # naive values are local time
                expires_at = expires_at.astimezone()
            expires_at = expires_at.astimezone(timezone.utc)
        return cls(
            access_token=payload["accessToken"],
            token_type=payload["tokenType"],
            expires_at=expires_at,
        )
