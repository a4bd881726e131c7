"""Subprocess execution for CLI-backed credentials.

Every OS-level failure is normalized into the ``Cli*`` error classes:
timeouts (hard kill, or exit status 124) become ``CliTimeoutError``,
other non-zero exits ``CliExecutionError`` with the combined output.
"""

from __future__ import annotations

import json
import logging
import queue
import re
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .errors import (
    CliEmptyOutputError,
    CliExecutionError,
    CliNotFoundError,
    CliParseError,
    CliTimeoutError,
)

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True)
class ProcessResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stdout and stderr joined, as shown in error messages."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


def find_executable(executable: str) -> str:
    """Resolve ``executable`` on PATH.

    Raises:
        CliNotFoundError: If it cannot be found.
    """
    path = shutil.which(executable)
    if path is None:
        raise CliNotFoundError(executable)
    return path


def run_process(args: Sequence[str], timeout: float | None = None) -> ProcessResult:
    """Run a command to completion, killing it after ``timeout`` seconds."""
    logger.debug("Running %s", " ".join(args))
    try:
        completed = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        raise CliTimeoutError(timeout) from None
    except FileNotFoundError:
        raise CliNotFoundError(args[0]) from None
    except OSError as exc:
        raise CliExecutionError(-1, str(exc)) from exc
    return ProcessResult(
        args=tuple(args),
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def check_result(result: ProcessResult, timeout: float | None) -> ProcessResult:
    """Raise for a failed command; return ``result`` unchanged otherwise."""
    if result.returncode == TIMEOUT_EXIT_CODE:
        raise CliTimeoutError(timeout if timeout is not None else 0)
    if result.returncode != 0:
        raise CliExecutionError(result.returncode, result.output)
    return result


def parse_json_output(result: ProcessResult) -> Any:
    output = result.stdout.strip()
    if not output:
        raise CliEmptyOutputError()
    try:
        return json.loads(output)
    except json.JSONDecodeError as exc:
        raise CliParseError(str(exc)) from exc


def run_json(args: Sequence[str], timeout: float | None = None) -> Any:
    """Run a command that prints JSON on stdout and return the parsed value."""
    result = check_result(run_process(args, timeout), timeout)
    return parse_json_output(result)


def watch_stderr(
    process: subprocess.Popen,
    pattern: re.Pattern[str],
    on_match: Callable[[re.Match[str]], None],
    timeout: float | None = None,
    poll_interval: float = 0.1,
) -> list[str]:
    """Stream a running process's stderr until it exits.

    Lines are read on a daemon thread and handed to this thread through a
    queue, so the wait can be bounded and interrupted. ``on_match`` is
    called once, for the first match of ``pattern`` (a match may span two
    consecutive lines when the CLI wraps its output).

    Returns:
        Every stderr line, without trailing newlines.

    Raises:
        CliTimeoutError: If the process is still running after ``timeout``
            seconds; the process is killed first.
    """
    lines: queue.Queue[str | None] = queue.Queue()

    def _reader() -> None:
        assert process.stderr is not None
        for line in process.stderr:
            lines.put(line)
        lines.put(None)

    threading.Thread(target=_reader, name="stderr-reader", daemon=True).start()

    deadline = time.monotonic() + timeout if timeout is not None else None
    seen: list[str] = []
    matched = False

    def _expired() -> bool:
        return deadline is not None and time.monotonic() > deadline

    while True:
        if _expired():
            process.kill()
            process.wait()
            raise CliTimeoutError(timeout)
        try:
            line = lines.get(timeout=poll_interval)
        except queue.Empty:
            continue
        if line is None:
            break
        seen.append(line.rstrip("\r\n"))
        logger.debug("stderr: %s", seen[-1])
        if not matched:
            match = pattern.search(" ".join(seen[-2:]))
            if match:
                matched = True
                on_match(match)

    remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
    try:
        process.wait(timeout=remaining)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
        raise CliTimeoutError(timeout) from None
    return seen
