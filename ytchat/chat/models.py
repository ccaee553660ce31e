"""
Message and session models for YouTube live chat.
"""

from dataclasses import dataclass
from typing import Optional

from ytchat.chat.exceptions import ErrorKind, YtChatError

# Reserved author for synthesized lifecycle and error lines
STATUS_AUTHOR = "YTCHAT"

FINGERPRINT_SEPARATOR = "|"


@dataclass(frozen=True)
class ChatMessage:
    """Represents a chat message."""
    author: str
    text: str

    @classmethod
    def create(cls, author: Optional[str], text: Optional[str]) -> Optional["ChatMessage"]:
        """
        Build a chat message from raw author/text values.

        Args:
            author: Display name, may be None or padded
            text: Message body, may be None or padded

        Returns:
            ChatMessage instance or None if either field is blank after trimming
        """
        author = (author or "").strip()
        text = (text or "").strip()
        if not author or not text:
            return None
        return cls(author=author, text=text)

    @classmethod
    def status(cls, text: str) -> "ChatMessage":
        """Build a status message under the reserved author."""
        return cls(author=STATUS_AUTHOR, text=text)

    @property
    def fingerprint(self) -> str:
        return f"{self.author}{FINGERPRINT_SEPARATOR}{self.text}"

    @property
    def is_status(self) -> bool:
        return self.author == STATUS_AUTHOR


@dataclass
class Session:
    """
    Session tokens needed to call the chat-fetch endpoint.

    All fields stay None until token extraction fills them. The session
    is ready once api_key and continuation are both present.
    """
    api_key: Optional[str] = None
    client_version: Optional[str] = None
    continuation: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return bool(self.api_key) and bool(self.continuation)

    def reset(self) -> None:
        """Clear every token."""
        self.api_key = None
        self.client_version = None
        self.continuation = None

    def advance(self, continuation: Optional[str]) -> bool:
        """
        Replace the cursor with the one issued by the last poll.

        Args:
            continuation: Next cursor, or None/blank to keep the current one

        Returns:
            True if the cursor changed
        """
        if not continuation or not continuation.strip():
            return False
        changed = continuation != self.continuation
        self.continuation = continuation
        return changed


@dataclass(frozen=True)
class PollResult:
    """Messages and next cursor returned by one chat-fetch call."""
    messages: tuple = ()
    continuation: Optional[str] = None


@dataclass(frozen=True)
class Failure:
    """Tagged failure of a single tick."""
    kind: ErrorKind
    message: str = ""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Failure":
        kind = exc.kind if isinstance(exc, YtChatError) else ErrorKind.UNEXPECTED
        message = str(exc).strip()
        if kind is ErrorKind.UNEXPECTED:
            message = f"{type(exc).__name__}: {message}" if message else type(exc).__name__
        return cls(kind=kind, message=message)

    @property
    def signature(self) -> str:
        return f"{self.kind.value}{FINGERPRINT_SEPARATOR}{self.message}"


@dataclass(frozen=True)
class TickOutcome:
    """Result of one init-or-poll step: either messages or a failure."""
    messages: tuple = ()
    failure: Optional[Failure] = None
    skipped: bool = False
    initialized: bool = False

    @property
    def ok(self) -> bool:
        return self.failure is None
