from __future__ import annotations

import io
import sys

import pytest

from azuretoolbox.azure.auth.config import AuthConfig
from azuretoolbox.azure.auth.session import is_interactive_session


class _Tty(io.StringIO):
    def isatty(self) -> bool:
        return True


def test_config_override__wins_over_terminal_detection(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "stdin", _Tty())
    monkeypatch.setattr(sys, "stdout", _Tty())

    assert is_interactive_session(AuthConfig(interactive=False)) is False
    assert is_interactive_session(AuthConfig(interactive=True)) is True


def test_detection__needs_both_streams_on_a_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "stdin", _Tty())
    monkeypatch.setattr(sys, "stdout", _Tty())
    assert is_interactive_session() is True

    monkeypatch.setattr(sys, "stdout", io.StringIO())
    assert is_interactive_session() is False


def test_detection__closed_stream_is_not_interactive(monkeypatch: pytest.MonkeyPatch) -> None:
    closed = io.StringIO()
    closed.close()
    monkeypatch.setattr(sys, "stdin", closed)
    assert is_interactive_session() is False
