"""Run external tools with a timeout."""

import subprocess
from typing import Optional

from .exceptions import ExternalToolError
from .logging_config import get_logger

logger = get_logger(__name__)


def run_command(cmd: list[str], timeout: int, cwd: Optional[str] = None) -> str:
    """Run ``cmd`` and return its stdout.

    Raises:
        ExternalToolError: The tool is missing, times out or exits non-zero
    """
    tool = cmd[0]
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, cwd=cwd)
    except FileNotFoundError:
        raise ExternalToolError(tool, "executable not found")
    except subprocess.TimeoutExpired:
        raise ExternalToolError(tool, f"timed out after {timeout}s")
    if proc.returncode != 0:
        tail = (proc.stderr or proc.stdout or "").strip().splitlines()[-5:]
        raise ExternalToolError(tool, " | ".join(tail) or "non-zero exit", proc.returncode)
    return proc.stdout
