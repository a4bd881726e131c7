from __future__ import annotations

import logging
import time
import webbrowser
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest
import requests

from azuretoolbox.azure.auth.azure_cli import AzureCLICredential, az_cli_login
from azuretoolbox.azure.auth.config import AuthConfig
from azuretoolbox.azure.auth.errors import (
    CliEmptyOutputError,
    CliExecutionError,
    CliInvalidResponseError,
    CliNotFoundError,
    CliNotLoggedInError,
    CliParseError,
    CliTimeoutError,
    NonInteractiveSessionError,
)
from azuretoolbox.azure.auth.scopes import ARM_DEFAULT_SCOPE
from credential_doubles import az_calls

ACCOUNT = """{"id": "sub-1", "user": {"name": "me@contoso.com"}}"""
TOKEN = (
    '{"accessToken": "cli-token", "tokenType": "Bearer", '
    '"expiresOn": "2099-01-01 00:00:00.000000", "expires_on": 4070908800}'
)


def _az_script(get_token: str, account_show: str = f"echo '{ACCOUNT}'") -> str:
    return f"""
case "$1 $2" in
  "account show") {account_show} ;;
  "account get-access-token") {get_token} ;;
  "logout "*) echo "logged out" ;;
  *) echo "unexpected: $*" >&2; exit 2 ;;
esac
"""


@pytest.fixture()
def logged_in_az(fake_az: Callable[..., Path]) -> Path:
    return fake_az(_az_script(f"echo '{TOKEN}'"))


def test_get_token__parses_cli_output(logged_in_az: Path) -> None:
    cred = AzureCLICredential(executable=str(logged_in_az))

    token = cred.get_token()

    assert token.access_token == "cli-token"
    assert token.token_type == "Bearer"
    assert token.expires_at == datetime(2099, 1, 1, tzinfo=timezone.utc)
    assert not cred.is_interactive()
    assert f"account get-access-token --output json --scope {ARM_DEFAULT_SCOPE}" in az_calls(
        logged_in_az
    )


def test_get_token__tenant_passed_unless_common(logged_in_az: Path) -> None:
    AzureCLICredential(executable=str(logged_in_az)).get_token()
    AzureCLICredential(tenant_id="contoso.onmicrosoft.com", executable=str(logged_in_az)).get_token()

    token_calls = [c for c in az_calls(logged_in_az) if "get-access-token" in c]
    assert "--tenant" not in token_calls[0]
    assert token_calls[1].endswith("--tenant contoso.onmicrosoft.com")


def test_req_auth__reuses_token(logged_in_az: Path) -> None:
    cred = AzureCLICredential(executable=str(logged_in_az))

    for _ in range(3):
        request = cred.req_auth(requests.Request("GET", "https://management.azure.com/"))
        assert request.headers["Authorization"] == "Bearer cli-token"

    assert sum("get-access-token" in c for c in az_calls(logged_in_az)) == 1


def test_missing_executable__not_found() -> None:
    cred = AzureCLICredential(executable="az-not-installed-anywhere")
    with pytest.raises(CliNotFoundError, match="Azure CLI not found"):
        cred.get_token()


def test_not_logged_in__raises_with_hint(fake_az: Callable[..., Path]) -> None:
    az = fake_az(_az_script(f"echo '{TOKEN}'", account_show="echo 'Please run az login' >&2; exit 1"))
    with pytest.raises(CliNotLoggedInError, match="login"):
        AzureCLICredential(executable=str(az)).get_token()
    assert not any("get-access-token" in c for c in az_calls(az))


def test_timeout__killed_within_process_timeout(fake_az: Callable[..., Path]) -> None:
    az = fake_az(_az_script("exec sleep 5"))
    cred = AzureCLICredential(process_timeout=1, executable=str(az))

    started = time.monotonic()
    with pytest.raises(CliTimeoutError):
        cred.get_token()
    assert time.monotonic() - started < 3


def test_exit_code_124__is_a_timeout(fake_az: Callable[..., Path]) -> None:
    az = fake_az(_az_script("exit 124"))
    with pytest.raises(CliTimeoutError):
        AzureCLICredential(executable=str(az)).get_token()


def test_non_zero_exit__execution_error(fake_az: Callable[..., Path]) -> None:
    az = fake_az(_az_script("echo 'ERROR: AADSTS70043 expired' >&2; exit 1"))
    with pytest.raises(CliExecutionError, match="AADSTS70043") as excinfo:
        AzureCLICredential(executable=str(az)).get_token()
    assert excinfo.value.exit_code == 1


def test_missing_access_token__invalid_response(fake_az: Callable[..., Path]) -> None:
    az = fake_az(
        _az_script("""echo '{"tokenType": "Bearer", "expiresOn": "2099-01-01 00:00:00.000000"}'""")
    )
    with pytest.raises(CliInvalidResponseError) as excinfo:
        AzureCLICredential(executable=str(az)).get_token()
    assert excinfo.value.missing_fields == ["accessToken"]
    assert "accessToken" in str(excinfo.value)


def test_empty_and_unparsable_output(fake_az: Callable[..., Path]) -> None:
    empty = fake_az(_az_script("true"), name="az-empty")
    garbage = fake_az(_az_script("echo 'not json'"), name="az-garbage")

    with pytest.raises(CliEmptyOutputError):
        AzureCLICredential(executable=str(empty)).get_token()
    with pytest.raises(CliParseError):
        AzureCLICredential(executable=str(garbage)).get_token()


def test_account_show_and_is_login(logged_in_az: Path, fake_az: Callable[..., Path]) -> None:
    cred = AzureCLICredential(executable=str(logged_in_az))
    assert cred.is_login() is True
    assert cred.account_show()["id"] == "sub-1"

    logged_out = fake_az(_az_script("true", account_show="exit 1"), name="az-out")
    assert AzureCLICredential(executable=str(logged_out)).is_login() is False


def test_logout__failure_only_warns(
    fake_az: Callable[..., Path], caplog: pytest.LogCaptureFixture
) -> None:
    az = fake_az('[ "$1" = "logout" ] && { echo "no account" >&2; exit 1; }\n')
    with caplog.at_level(logging.WARNING):
        AzureCLICredential(executable=str(az)).logout()
    assert "Azure CLI logout failed" in caplog.text


def test_login__requires_interactive_session(logged_in_az: Path, batch_config: AuthConfig) -> None:
    cred = AzureCLICredential(executable=str(logged_in_az), config=batch_config)
    with pytest.raises(NonInteractiveSessionError):
        cred.login()


LOGIN_SCRIPT = """
if [ "$1" = "login" ]; then
  echo "To sign in, use a web browser to open the page https://microsoft.com/devicelogin and enter the code ABCD1234 to authenticate." >&2
  echo '[{"id": "sub-1", "isDefault": true}]'
  exit 0
fi
exit 2
"""


def test_login__announces_device_code_and_returns_subscriptions(
    fake_az: Callable[..., Path],
    interactive_config: AuthConfig,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    opened: list[str] = []
    monkeypatch.setattr(webbrowser, "open", lambda url: opened.append(url) or True)
    az = fake_az(LOGIN_SCRIPT)

    result = az_cli_login(
        tenant_id="contoso.onmicrosoft.com", executable=str(az), config=interactive_config
    )

    assert result == [{"id": "sub-1", "isDefault": True}]
    assert "ABCD1234" in capsys.readouterr().err
    assert opened == ["https://microsoft.com/devicelogin"]
    assert az_calls(az) == [
        "login --use-device-code --output json --tenant contoso.onmicrosoft.com"
    ]


def test_login__browser_is_optional(
    fake_az: Callable[..., Path],
    interactive_config: AuthConfig,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(webbrowser, "open", lambda url: pytest.fail("browser opened"))
    az = fake_az(LOGIN_SCRIPT)
    cred = AzureCLICredential(executable=str(az), open_browser=False, config=interactive_config)
    assert cred.login() == [{"id": "sub-1", "isDefault": True}]


def test_login__failure_raises_execution_error(
    fake_az: Callable[..., Path], interactive_config: AuthConfig
) -> None:
    az = fake_az('echo "ERROR: login cancelled" >&2\nexit 1\n')
    with pytest.raises(CliExecutionError, match="login cancelled"):
        az_cli_login(executable=str(az), config=interactive_config)


def test_login__bounded_by_login_timeout(
    fake_az: Callable[..., Path], interactive_config: AuthConfig
) -> None:
    az = fake_az("exec sleep 5\n")
    cred = AzureCLICredential(
        executable=str(az), login_timeout=1, open_browser=False, config=interactive_config
    )
    assert cred.login_timeout == 1

    start = time.monotonic()
    with pytest.raises(CliTimeoutError):
        cred.login()
    assert time.monotonic() - start < 4


def test_login_on_missing__logs_in_at_construction(
    fake_az: Callable[..., Path], interactive_config: AuthConfig
) -> None:
    az = fake_az(
        """
case "$1 $2" in
  "account show") exit 1 ;;
  "login "*) echo "enter the code QWER5678 to authenticate" >&2; echo '[]' ;;
esac
"""
    )
    AzureCLICredential(
        executable=str(az), login_on_missing=True, open_browser=False, config=interactive_config
    )
    assert any(call.startswith("login --use-device-code") for call in az_calls(az))
