from __future__ import annotations

import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import AuthConfig


def is_interactive_session(config: "AuthConfig | None" = None) -> bool:
    """Return True if a user can answer prompts in this process.

    ``AuthConfig.interactive`` (``AZURE_INTERACTIVE``) overrides the
    detection. Otherwise both stdin and stdout must be attached to a
    terminal.
    """
    if config is not None and config.interactive is not None:
        return config.interactive
    try:
        return sys.stdin.isatty() and sys.stdout.isatty()
    except (AttributeError, ValueError):
        # stdin/stdout replaced or closed
        return False
