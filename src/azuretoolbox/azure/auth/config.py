from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Final
from urllib.parse import urlparse

from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    ValidationInfo,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

# Public client ID of the Azure CLI, usable for interactive flows without
# registering an application.
DEFAULT_CLIENT_ID: Final[str] = "04b07795-8ddb-461a-bbee-02f9e1bf7b46"
DEFAULT_TENANT_ID: Final[str] = "common"
DEFAULT_AUTHORITY_HOST: Final[str] = "login.microsoftonline.com"
DEFAULT_REDIRECT_URI: Final[str] = "http://localhost"


def default_config_dir() -> Path:
    """Return the platform default Azure configuration directory."""
    if os.name == "nt" and os.environ.get("USERPROFILE"):
        return Path(os.environ["USERPROFILE"]) / ".azure"
    return Path.home() / ".azure"


class Strategy(str, Enum):
    """Supported authentication strategies."""

    DEFAULT = "default"
    CLIENT_SECRET = "client_secret"
    CLI = "cli"
    AUTH_CODE = "auth_code"
    DEVICE_CODE = "device_code"


class CacheMode(str, Enum):
    """Where acquired tokens are cached."""

    DISK = "disk"
    MEMORY = "memory"


class AuthConfig(BaseSettings):
    """Configuration defaults for constructing Azure credentials.

    Values are read once from the environment when the model is created.
    Explicit constructor arguments to a credential always win over these
    values, and these values win over the library constants.

    Environment variables:
        - AZURE_AUTH_STRATEGY
        - AZURE_TENANT_ID (fallback: ``common``)
        - AZURE_CLIENT_ID (fallback: the Azure CLI public client ID)
        - AZURE_CLIENT_SECRET
        - AZURE_AUTHORITY_HOST (fallback: ``login.microsoftonline.com``)
        - AZURE_CONFIG_DIR (fallback: ``~/.azure``)
        - AZURE_REDIRECT_URI (fallback: ``http://localhost``)
        - AZURE_INTERACTIVE (fallback: detect from the terminal)
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )

    # The field name is listed in each AliasChoices so that keyword
    # construction (AuthConfig(tenant_id=...)) keeps working next to the
    # environment alias.

    strategy: Strategy = Field(
        default=Strategy.DEFAULT,
        validation_alias=AliasChoices("strategy", "AZURE_AUTH_STRATEGY"),
    )
    tenant_id: str = Field(
        default=DEFAULT_TENANT_ID,
        validation_alias=AliasChoices("tenant_id", "AZURE_TENANT_ID"),
    )
    client_id: str = Field(
        default=DEFAULT_CLIENT_ID,
        validation_alias=AliasChoices("client_id", "AZURE_CLIENT_ID"),
    )
    client_secret: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("client_secret", "AZURE_CLIENT_SECRET"),
    )
    authority_host: str = Field(
        default=DEFAULT_AUTHORITY_HOST,
        validation_alias=AliasChoices("authority_host", "AZURE_AUTHORITY_HOST"),
    )
    config_dir: Path = Field(
        default_factory=default_config_dir,
        validation_alias=AliasChoices("config_dir", "AZURE_CONFIG_DIR"),
    )
    redirect_uri: str = Field(
        default=DEFAULT_REDIRECT_URI,
        validation_alias=AliasChoices("redirect_uri", "AZURE_REDIRECT_URI"),
    )
    interactive: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("interactive", "AZURE_INTERACTIVE"),
    )

    @field_validator(
        "tenant_id",
        "client_id",
        "authority_host",
        "redirect_uri",
        "config_dir",
        mode="before",
    )
    @classmethod
    def _blank_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        """Treat empty values as unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].get_default(
                call_default_factory=True
            )
        return v

    @field_validator("client_secret", "interactive", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("authority_host")
    @classmethod
    def _strip_scheme(cls, v: str) -> str:
        """Accept ``https://login.example`` as well as ``login.example``."""
        if "://" in v:
            v = urlparse(v).netloc
        return v.strip("/")

    @field_validator("config_dir")
    @classmethod
    def _expand_user(cls, v: Path) -> Path:
        return v.expanduser()

    def describe(self) -> list[str]:
        """Return a redacted summary of the effective configuration."""

        def _mark(value: str, default: str) -> str:
            return f"{value} (default)" if value == default else value

        if self.client_secret is None:
            secret = "not set"
        else:
            secret = "REDACTED"
        return [
            f"AZURE_TENANT_ID: {_mark(self.tenant_id, DEFAULT_TENANT_ID)}",
            f"AZURE_CLIENT_ID: {_mark(self.client_id, DEFAULT_CLIENT_ID)}",
            f"AZURE_CLIENT_SECRET: {secret}",
            f"AZURE_AUTHORITY_HOST: {_mark(self.authority_host, DEFAULT_AUTHORITY_HOST)}",
            f"AZURE_CONFIG_DIR: {self.config_dir}",
        ]
