"""Errors raised by external tools (git, mvn)."""

from typing import Optional

from .base import DepHistoryError


class ExternalToolError(DepHistoryError):
    """Raised when a checkout or build-tool invocation fails or times out."""

    def __init__(self, tool: str, reason: str, returncode: Optional[int] = None):
        details = {"tool": tool, "reason": reason}
        if returncode is not None:
            details["returncode"] = str(returncode)
        super().__init__(f"{tool} failed", details=details)
        self.tool = tool
        self.reason = reason
        self.returncode = returncode
