"""
HTTP helpers for resolving a stream URL into live chat session tokens.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, quote, urlsplit

import aiohttp

from ytchat.chat.exceptions import NetworkError, NoVideoIdError, TokensNotFoundError
from ytchat.chat.models import Session
from ytchat.chat.tokens import merge_tokens, snippet

logger = logging.getLogger(__name__)

YOUTUBE_ORIGIN = "https://www.youtube.com"
CHAT_ENDPOINT = f"{YOUTUBE_ORIGIN}/youtubei/v1/live_chat/get_live_chat"

# Used when neither page exposes a client version
DEFAULT_CLIENT_VERSION = "2.20250101.00.00"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class FetchedPage:
    """Status, final URL and body of an HTML fetch."""
    status: int
    url: str
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def usable_body(self) -> str:
        """Body to extract tokens from; non-2xx responses count as empty."""
        return self.body if self.ok else ""


def extract_video_id(url: Optional[str]) -> Optional[str]:
    """
    Extract the video ID from a YouTube URL.

    Checked in order:
      https://youtu.be/VIDEO_ID
      https://www.youtube.com/watch?v=VIDEO_ID
      https://www.youtube.com/live/VIDEO_ID

    Args:
        url: Stream or watch URL

    Returns:
        The video ID, or None if no pattern matches
    """
    if not url or not url.strip():
        return None

    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None

    host = (parts.hostname or "").lower()
    segments = [s for s in parts.path.split("/") if s]

    if "youtu.be" in host and segments:
        return segments[0]

    v = parse_qs(parts.query).get("v")
    if v and v[0].strip():
        return v[0].strip()

    for i, segment in enumerate(segments[:-1]):
        if segment == "live":
            return segments[i + 1]

    return None


def popout_url(video_id: str) -> str:
    return f"{YOUTUBE_ORIGIN}/live_chat?is_popout=1&v={quote(video_id, safe='')}"


def watch_url(video_id: str) -> str:
    return f"{YOUTUBE_ORIGIN}/watch?v={quote(video_id, safe='')}"


def chat_endpoint(api_key: str) -> str:
    return f"{CHAT_ENDPOINT}?key={quote(api_key, safe='')}"


def html_headers(video_id: str) -> Dict[str, str]:
    return {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Origin": YOUTUBE_ORIGIN,
        "Referer": watch_url(video_id),
    }


def json_headers() -> Dict[str, str]:
    return {
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
        "Accept-Language": "en-US,en;q=0.9",
        "Origin": YOUTUBE_ORIGIN,
        "Referer": f"{YOUTUBE_ORIGIN}/",
        "Content-Type": "application/json",
    }


async def fetch_html(http: aiohttp.ClientSession, url: str, video_id: str) -> FetchedPage:
    """
    GET an HTML page with browser-like headers.

    Args:
        http: Session carrying the cookie jar for this chat session
        url: Page to fetch
        video_id: Used for the Referer header

    Returns:
        FetchedPage with the status, final URL and body

    Raises:
        NetworkError: On timeouts and connection failures
    """
    try:
        async with http.get(url, headers=html_headers(video_id)) as response:
            body = await response.text(errors="replace")
            page = FetchedPage(status=response.status, url=str(response.url), body=body)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise NetworkError(f"GET {url} failed: {str(e) or type(e).__name__}") from e

    if not page.ok:
        logger.warning(f"GET {url} returned HTTP {page.status}")
    else:
        logger.debug(f"GET {url} -> {page.status} ({len(page.body)} chars)")
    return page


async def post_json(http: aiohttp.ClientSession, url: str, payload: Dict[str, Any]) -> str:
    """
    POST a JSON body and return the raw response text.

    Raises:
        NetworkError: On timeouts, connection failures and non-2xx responses
    """
    try:
        async with http.post(url, data=json.dumps(payload), headers=json_headers()) as response:
            text = await response.text(errors="replace")
            status = response.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise NetworkError(f"POST to chat endpoint failed: {str(e) or type(e).__name__}") from e

    if not 200 <= status < 300:
        raise NetworkError(f"Chat endpoint returned HTTP {status}")
    return text


async def bootstrap(http: aiohttp.ClientSession, stream_url: str) -> Session:
    """
    Resolve a stream URL into a ready session.

    The popout chat page is tried first; if it doesn't yield tokens the
    watch page is fetched and whatever the popout provided is kept.

    Args:
        http: Session carrying the cookie jar for this chat session
        stream_url: Human-supplied stream or watch URL

    Returns:
        Ready Session with a client version filled in

    Raises:
        NoVideoIdError: If the URL has no recognizable video ID
        TokensNotFoundError: If neither page yields api key and continuation
        NetworkError: If a page cannot be fetched
    """
    video_id = extract_video_id(stream_url)
    if not video_id:
        raise NoVideoIdError(f"Could not extract video ID from URL: {stream_url}")

    logger.info(f"Bootstrapping live chat for video {video_id}")

    popout = await fetch_html(http, popout_url(video_id), video_id)
    session = merge_tokens(popout.usable_body)

    if not session.is_ready:
        logger.info("Popout page had no usable tokens, trying watch page")
        watch = await fetch_html(http, watch_url(video_id), video_id)
        session = merge_tokens(watch.usable_body, session)

        if not session.is_ready:
            diagnostics = {
                "popout_status": popout.status,
                "popout_url": popout.url,
                "watch_status": watch.status,
                "watch_url": watch.url,
                "snippet": snippet(watch.body),
            }
            raise TokensNotFoundError(
                "Could not extract live chat tokens. "
                + " ".join(f"{k}={v}" for k, v in diagnostics.items()),
                diagnostics=diagnostics,
            )

    if not session.client_version:
        logger.debug(f"No client version found, using {DEFAULT_CLIENT_VERSION}")
        session.client_version = DEFAULT_CLIENT_VERSION

    logger.info(f"Got live chat tokens for video {video_id}")
    return session
