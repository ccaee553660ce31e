"""
Custom exceptions for the YouTube live chat client.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Failure classification shared by exceptions and status messages."""

    NO_VIDEO_ID = "NoVideoId"
    TOKENS_NOT_FOUND = "TokensNotFound"
    NETWORK_ERROR = "NetworkError"
    MALFORMED_RESPONSE = "MalformedResponse"
    UNEXPECTED = "Unexpected"


class YtChatError(Exception):
    """Base exception for all live chat errors."""

    kind: ErrorKind = ErrorKind.UNEXPECTED


class NoVideoIdError(YtChatError, ValueError):
    """URL does not match any known video identifier pattern."""

    kind = ErrorKind.NO_VIDEO_ID


class TokensNotFoundError(YtChatError):
    """Neither HTML page yielded usable session tokens."""

    kind = ErrorKind.TOKENS_NOT_FOUND

    def __init__(self, message: str, diagnostics: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or {}


class NetworkError(YtChatError):
    """Transport-level failure or non-2xx response."""

    kind = ErrorKind.NETWORK_ERROR


class MalformedResponseError(YtChatError):
    """Chat-fetch body is not JSON or lacks the expected root shape."""

    kind = ErrorKind.MALFORMED_RESPONSE
