"""
YouTube live chat client: one cookie-carrying HTTP session per chat session.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ytchat.chat.exceptions import MalformedResponseError
from ytchat.chat.http import bootstrap, chat_endpoint, post_json
from ytchat.chat.jsonpath import deep_get_dict, deep_get_list, deep_get_str
from ytchat.chat.models import ChatMessage, PollResult, Session

logger = logging.getLogger(__name__)

CLIENT_NAME = "WEB"
UNKNOWN_AUTHOR = "unknown"

# Checked in this order for every entry of the continuations array
CONTINUATION_KINDS = (
    "timedContinuationData",
    "invalidationContinuationData",
    "reloadContinuationData",
)


def _concat_runs(runs: Optional[List[Any]]) -> str:
    if not runs:
        return ""
    parts = []
    for run in runs:
        if isinstance(run, dict):
            text = run.get("text")
            if isinstance(text, str):
                parts.append(text)
    return "".join(parts)


def parse_messages(root: Dict[str, Any]) -> List[ChatMessage]:
    """
    Pull plain text chat messages out of a get_live_chat response.

    Actions that aren't text-message additions, or that miss expected
    fields, are skipped.

    Args:
        root: Parsed response body

    Returns:
        Messages in response order
    """
    actions = deep_get_list(root, "continuationContents", "liveChatContinuation", "actions")
    if actions is None:
        return []

    messages = []
    for action in actions:
        renderer = deep_get_dict(action, "addChatItemAction", "item", "liveChatTextMessageRenderer")
        if renderer is None:
            continue

        author = deep_get_str(renderer, "authorName", "simpleText")
        if author is None or not author.strip():
            author = UNKNOWN_AUTHOR

        text = _concat_runs(deep_get_list(renderer, "message", "runs"))
        message = ChatMessage.create(author, text)
        if message is None:
            continue
        messages.append(message)

    return messages


def parse_next_continuation(root: Dict[str, Any]) -> Optional[str]:
    """
    Find the cursor for the next poll.

    Returns:
        First continuation found across the continuations array, or None
    """
    continuations = deep_get_list(
        root, "continuationContents", "liveChatContinuation", "continuations"
    )
    if continuations is None:
        return None

    for entry in continuations:
        for kind in CONTINUATION_KINDS:
            value = deep_get_str(entry, kind, "continuation")
            if value is not None:
                return value
    return None


def build_request_body(session: Session) -> Dict[str, Any]:
    return {
        "context": {
            "client": {
                "clientName": CLIENT_NAME,
                "clientVersion": session.client_version,
            }
        },
        "continuation": session.continuation,
    }


class YouTubeLiveChatClient:
    """
    Fetches live chat through the InnerTube web endpoints.

    Holds one aiohttp session whose cookie jar accepts every cookie, so
    cookies set by the HTML pages are replayed on the chat-fetch calls.
    Create a new client for every chat session.
    """

    def __init__(
        self,
        connect_timeout: float = 10.0,
        request_timeout: float = 15.0,
    ):
        """
        Initialize client.

        Args:
            connect_timeout: Connection timeout in seconds
            request_timeout: Per-request timeout in seconds
        """
        self._timeout = aiohttp.ClientTimeout(total=request_timeout, connect=connect_timeout)
        self._http: Optional[aiohttp.ClientSession] = None

    def _session(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                timeout=self._timeout,
                cookie_jar=aiohttp.CookieJar(unsafe=True),
            )
        return self._http

    async def init_from_url(self, stream_url: str) -> Session:
        """
        Resolve the stream URL into session tokens.

        Raises:
            NoVideoIdError, TokensNotFoundError, NetworkError
        """
        return await bootstrap(self._session(), stream_url)

    async def fetch_chat(self, session: Session) -> str:
        """POST one chat-fetch request and return the raw body."""
        return await post_json(
            self._session(), chat_endpoint(session.api_key), build_request_body(session)
        )

    async def poll(self, session: Session) -> PollResult:
        """
        Exchange the current cursor for new messages and the next cursor.

        Args:
            session: Session to poll with; not modified

        Returns:
            PollResult; its continuation is None when the response carried
            none and the caller should keep the previous cursor

        Raises:
            NetworkError: On transport failures or non-2xx responses
            MalformedResponseError: If the body isn't a JSON object
        """
        if not session.is_ready:
            return PollResult(messages=(), continuation=session.continuation)

        raw = await self.fetch_chat(session)

        try:
            root = json.loads(raw)
        except (json.JSONDecodeError, ValueError, RecursionError) as e:
            raise MalformedResponseError(f"Chat response is not JSON: {e}") from e

        if not isinstance(root, dict):
            raise MalformedResponseError(
                f"Chat response root is {type(root).__name__}, expected object"
            )

        messages = parse_messages(root)
        continuation = parse_next_continuation(root)
        if continuation is None:
            logger.debug("No continuation in response, keeping current cursor")

        logger.debug(f"Polled {len(messages)} messages")
        return PollResult(messages=tuple(messages), continuation=continuation)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._http is not None and not self._http.closed:
            await self._http.close()
        self._http = None

    async def __aenter__(self) -> "YouTubeLiveChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._http is None or self._http.closed
