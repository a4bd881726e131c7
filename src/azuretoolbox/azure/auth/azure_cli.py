from __future__ import annotations

import json
import logging
import re
import subprocess
import sys
import tempfile
import webbrowser
from typing import Any, Final, Sequence

from .base import Credential
from .config import DEFAULT_TENANT_ID, AuthConfig
from .errors import (
    AuthenticationInterrupted,
    CliError,
    CliExecutionError,
    CliInvalidResponseError,
    CliNotLoggedInError,
    NonInteractiveSessionError,
)
from .process import find_executable, run_json, run_process, watch_stderr
from .scopes import split_scopes, validate_scope, validate_tenant_id
from .session import is_interactive_session
from .token import Token

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE: Final[str] = "az"
DEFAULT_PROCESS_TIMEOUT: Final[float] = 10.0
DEFAULT_LOGIN_TIMEOUT: Final[float] = 900.0
DEVICE_LOGIN_URL: Final[str] = "https://microsoft.com/devicelogin"
DEVICE_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"enter the code ([A-Z0-9]+) to authenticate"
)
REQUIRED_TOKEN_FIELDS: Final[tuple[str, ...]] = ("accessToken", "tokenType", "expiresOn")


def az_cli_get_token(
    scope: str | Sequence[str],
    tenant_id: str | None = None,
    timeout: float = DEFAULT_PROCESS_TIMEOUT,
    executable: str = DEFAULT_EXECUTABLE,
) -> Token:
    """Fetch a token with ``az account get-access-token``.

    Raises:
        CliNotFoundError: The executable is not on PATH.
        CliTimeoutError: The command ran longer than ``timeout`` seconds.
        CliExecutionError: The command exited with a non-zero status.
        CliEmptyOutputError: The command printed nothing.
        CliInvalidResponseError: The JSON lacks a required field.
    """
    az = find_executable(executable)
    validate_scope(scope)
    args = [az, "account", "get-access-token", "--output", "json", "--scope"]
    args.extend(split_scopes(scope))
    if tenant_id is not None:
        validate_tenant_id(tenant_id)
        args.extend(["--tenant", tenant_id])

    payload = run_json(args, timeout)
    if not isinstance(payload, dict):
        raise CliInvalidResponseError(
            message="Azure CLI returned JSON that is not an object"
        )
    missing = [name for name in REQUIRED_TOKEN_FIELDS if name not in payload]
    if missing:
        raise CliInvalidResponseError(missing)

    try:
        return Token.from_cli(payload)
    except (TypeError, ValueError) as exc:
        raise CliInvalidResponseError(
            message=f"Azure CLI returned an invalid expiry: {exc}"
        ) from exc


def az_cli_account_show(
    timeout: float = DEFAULT_PROCESS_TIMEOUT, executable: str = DEFAULT_EXECUTABLE
) -> dict[str, Any]:
    """Return the active account as reported by ``az account show``."""
    az = find_executable(executable)
    return run_json([az, "account", "show", "--output", "json"], timeout)


def az_cli_is_login(
    timeout: float = DEFAULT_PROCESS_TIMEOUT, executable: str = DEFAULT_EXECUTABLE
) -> bool:
    try:
        az_cli_account_show(timeout=timeout, executable=executable)
    except CliError as exc:
        logger.debug("Azure CLI login probe failed: %s", exc)
        return False
    return True


def az_cli_login(
    tenant_id: str | None = None,
    open_browser: bool = True,
    timeout: float | None = DEFAULT_LOGIN_TIMEOUT,
    executable: str = DEFAULT_EXECUTABLE,
    config: AuthConfig | None = None,
) -> Any:
    """Log in with ``az login --use-device-code``.

    The device code is scraped from the CLI's stderr, shown to the user and,
    when ``open_browser`` is set, the device login page is opened. Opening
    the browser is best effort.

    Returns:
        The parsed JSON the CLI prints on success (the list of
        subscriptions), or ``None`` if it printed nothing parsable.

    Raises:
        NonInteractiveSessionError: Outside an interactive session.
        AuthenticationInterrupted: The user pressed Ctrl-C.
        CliTimeoutError: Login did not finish within ``timeout`` seconds.
        CliExecutionError: The CLI exited with a non-zero status.
    """
    if not is_interactive_session(config):
        raise NonInteractiveSessionError(
            "Azure CLI login requires an interactive session"
        )

    az = find_executable(executable)
    args = [az, "login", "--use-device-code", "--output", "json"]
    if tenant_id is not None:
        validate_tenant_id(tenant_id)
        args.extend(["--tenant", tenant_id])

    def _announce(match: re.Match[str]) -> None:
        code = match.group(1)
        logger.info("Found device code %s", code)
        print(
            f"To sign in, open {DEVICE_LOGIN_URL} and enter the code {code}",
            file=sys.stderr,
            flush=True,
        )
        if not open_browser:
            return
        try:
            opened = webbrowser.open(DEVICE_LOGIN_URL)
        except webbrowser.Error as exc:
            logger.warning("Could not open a browser (%s). Please open the URL manually.", exc)
            return
        if not opened:
            logger.warning("Could not open a browser. Please open the URL manually.")

    logger.info("Starting Azure CLI login process...")
    # stdout goes to a file so a large subscription list cannot fill the pipe
    with tempfile.TemporaryFile(mode="w+", encoding="utf-8") as out, subprocess.Popen(
        args, stdout=out, stderr=subprocess.PIPE, text=True
    ) as process:
        try:
            lines = watch_stderr(process, DEVICE_CODE_PATTERN, _announce, timeout)
        except KeyboardInterrupt:
            process.terminate()
            process.wait()
            raise AuthenticationInterrupted() from None

        if process.returncode != 0:
            raise CliExecutionError(process.returncode, "\n".join(lines))

        out.seek(0)
        text = out.read()

    logger.info("Azure CLI login completed successfully")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def az_cli_logout(
    timeout: float = DEFAULT_PROCESS_TIMEOUT, executable: str = DEFAULT_EXECUTABLE
) -> None:
    """Run ``az logout``. Failures are logged, not raised."""
    az = find_executable(executable)
    logger.info("Logging out from Azure CLI...")
    try:
        result = run_process([az, "logout"], timeout)
    except CliError as exc:
        logger.warning("Azure CLI logout failed: %s", exc)
        return
    if result.returncode != 0:
        logger.warning(
            "Azure CLI logout failed (exit code %s): %s", result.returncode, result.output
        )
    else:
        logger.info("Successfully logged out from Azure CLI")


class AzureCLICredential(Credential):
    """Borrow tokens from a logged-in Azure CLI.

    Args:
        scope: OAuth scope.
        tenant_id: Tenant to request the token for. The CLI's own default
            tenant is used when this resolves to ``common``.
        process_timeout: Seconds before a CLI call is killed.
        login_timeout: Seconds :meth:`login` waits for the user to finish
            the device code flow.
        login_on_missing: Run :meth:`login` during construction when the
            CLI has no active account.
        open_browser: Open the device login page during :meth:`login`.
        executable: Name or path of the ``az`` executable.
        config: Environment-derived defaults.
    """

    def __init__(
        self,
        scope: str | Sequence[str] | None = None,
        tenant_id: str | None = None,
        process_timeout: float | None = None,
        login_timeout: float | None = DEFAULT_LOGIN_TIMEOUT,
        login_on_missing: bool = False,
        open_browser: bool = True,
        executable: str = DEFAULT_EXECUTABLE,
        config: AuthConfig | None = None,
    ) -> None:
        self.process_timeout = (
            process_timeout if process_timeout is not None else DEFAULT_PROCESS_TIMEOUT
        )
        self.login_timeout = login_timeout
        self.login_on_missing = login_on_missing
        self.open_browser = open_browser
        self.executable = executable
        super().__init__(scope=scope, tenant_id=tenant_id, config=config)

        if login_on_missing and not self.is_login():
            logger.info("User is not logged in to Azure CLI")
            self.login()

    @property
    def cli_tenant(self) -> str | None:
        """Tenant passed to ``--tenant``, or None for the CLI default."""
        return None if self.tenant_id == DEFAULT_TENANT_ID else self.tenant_id

    def _request_token(self, scopes: list[str], reauth: bool = False) -> Token:
        find_executable(self.executable)
        if not self.is_login():
            raise CliNotLoggedInError()
        return az_cli_get_token(
            scopes,
            tenant_id=self.cli_tenant,
            timeout=self.process_timeout,
            executable=self.executable,
        )

    def account_show(self, timeout: float | None = None) -> dict[str, Any]:
        return az_cli_account_show(
            timeout=timeout if timeout is not None else self.process_timeout,
            executable=self.executable,
        )

    def is_login(self) -> bool:
        """Return True if ``az account show`` succeeds."""
        return az_cli_is_login(timeout=self.process_timeout, executable=self.executable)

    def login(self, tenant_id: str | None = None) -> Any:
        return az_cli_login(
            tenant_id=tenant_id if tenant_id is not None else self.cli_tenant,
            open_browser=self.open_browser,
            timeout=self.login_timeout,
            executable=self.executable,
            config=self.config,
        )

    def logout(self) -> None:
        az_cli_logout(timeout=self.process_timeout, executable=self.executable)
