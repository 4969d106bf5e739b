"""
External command helpers (ssh, scp, oc, podman, openshift-install).
"""

import logging
import shlex
import shutil
import subprocess
from pathlib import Path

from ocp_provision.exceptions import ToolError

logger = logging.getLogger(__name__)


def require_tool(name: str, hint: str | None = None) -> str:
    """Return the path to name or raise ToolError."""
    path = shutil.which(name)
    if path is None:
        raise ToolError(
            f"Required command not found: {name}", hint or f"Install {name} and retry."
        )
    return path


def run(
    cmd: list[str],
    capture: bool = False,
    input_text: str | None = None,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess:
    """
    Run a command without raising on a non-zero exit.

    Args:
        cmd: Argument list
        capture: Capture stdout/stderr as text instead of inheriting the terminal
        input_text: Text to feed on stdin
        cwd: Working directory
        timeout: Seconds before the command is killed

    Returns:
        The CompletedProcess; callers inspect returncode
    """
    logger.debug("Running: %s", shlex.join(cmd))
    try:
        return subprocess.run(
            cmd,
            capture_output=capture,
            text=True,
            input=input_text,
            cwd=cwd,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise ToolError(
            f"Required command not found: {cmd[0]}", f"Install {cmd[0]} and retry."
        ) from e
    except subprocess.TimeoutExpired as e:
        raise ToolError(f"{cmd[0]} timed out after {timeout}s") from e
