"""
YouTube live chat acquisition: token bootstrap, polling and parsing.
"""

from ytchat.chat.client import YouTubeLiveChatClient, parse_messages, parse_next_continuation
from ytchat.chat.models import ChatMessage, Failure, PollResult, Session, TickOutcome, STATUS_AUTHOR
from ytchat.chat.http import bootstrap, extract_video_id
from ytchat.chat.tokens import extract_tokens, merge_tokens
from ytchat.chat.throttle import ErrorThrottle
from ytchat.chat.exceptions import (
    ErrorKind,
    YtChatError,
    NoVideoIdError,
    TokensNotFoundError,
    NetworkError,
    MalformedResponseError,
)

__all__ = [
    "YouTubeLiveChatClient",
    "parse_messages",
    "parse_next_continuation",
    "ChatMessage",
    "Failure",
    "PollResult",
    "Session",
    "TickOutcome",
    "STATUS_AUTHOR",
    "bootstrap",
    "extract_video_id",
    "extract_tokens",
    "merge_tokens",
    "ErrorThrottle",
    "ErrorKind",
    "YtChatError",
    "NoVideoIdError",
    "TokensNotFoundError",
    "NetworkError",
    "MalformedResponseError",
]
