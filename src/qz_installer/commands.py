"""Subprocess helpers shared by the platform backends."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Sequence

logger = logging.getLogger(__name__)

_SUBPROCESS_TIMEOUT = 30


def run_command(
    cmd: Sequence[str],
    *,
    timeout: float | None = _SUBPROCESS_TIMEOUT,
    capture: bool = True,
) -> subprocess.CompletedProcess[str] | None:
    """Run *cmd* and return the completed process.

    Interactive commands (anything that may prompt for a password) should
    pass ``capture=False`` and ``timeout=None`` so the prompt reaches the
    operator's terminal.

    Returns:
        The completed process, or None if the executable is missing, the
        command timed out, or the OS refused to start it.
    """
    argv = [str(part) for part in cmd]
    logger.debug("Running: %s", shlex.join(argv))
    try:
        return subprocess.run(
            argv,
            capture_output=capture,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        logger.debug("%s not found", argv[0])
        return None
    except subprocess.TimeoutExpired:
        logger.error("%s timed out after %ss", argv[0], timeout)
        return None
    except OSError as exc:
        logger.error("Failed to run %s: %s", argv[0], exc)
        return None


def command_succeeds(cmd: Sequence[str], *, timeout: float | None = _SUBPROCESS_TIMEOUT) -> bool:
    """Return True if *cmd* ran and exited with status 0."""
    result = run_command(cmd, timeout=timeout)
    return result is not None and result.returncode == 0


def spawn_detached(cmd: Sequence[str]) -> bool:
    """Start *cmd* in the background, detached from this process.

    Returns:
        True if the process was spawned.
    """
    argv = [str(part) for part in cmd]
    kwargs: dict[str, object] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
    }
    if os.name == "nt":
        kwargs["creationflags"] = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        kwargs["start_new_session"] = True

    try:
        proc = subprocess.Popen(argv, **kwargs)  # type: ignore[call-overload]
    except OSError as exc:
        logger.error("Failed to launch %s: %s", argv[0], exc)
        return False
    logger.info("Launched %s (PID %s)", argv[0], proc.pid)
    return True
