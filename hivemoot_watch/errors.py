"""Error types surfaced to the CLI."""

from enum import Enum


class ErrorCode(Enum):
    """Machine-readable error codes."""

    GH_NOT_AUTHENTICATED = "GH_NOT_AUTHENTICATED"
    RATE_LIMITED = "RATE_LIMITED"
    GH_ERROR = "GH_ERROR"
    INVALID_KEY = "INVALID_KEY"
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    INVALID_CONFIG = "INVALID_CONFIG"


class WatchError(Exception):
    """Fatal error carrying an error code and a process exit status."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.GH_ERROR, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.code = code
        self.exit_code = exit_code

    def __str__(self) -> str:
        return self.message
