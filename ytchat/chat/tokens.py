"""
Session token extraction from server-rendered YouTube HTML.

Every function here is pure: it reads the page text and returns new
values without touching the network or shared state.
"""

import json
import logging
import re
from dataclasses import replace
from typing import Any, Dict, Iterator, Optional

from ytchat.chat.jsonpath import find_first
from ytchat.chat.models import Session

logger = logging.getLogger(__name__)

# Embedded InnerTube configuration
YTCFG_RE = re.compile(r"ytcfg\.set\((\{.*?\})\);", re.DOTALL)

# Pages that don't use the canonical ytcfg.set format
API_KEY_FLEX_RE = re.compile(r'INNERTUBE_API_KEY"?\s*[:=]\s*"([^"]+)"')
CLIENT_VERSION_FLEX_RE = re.compile(
    r'INNERTUBE_(?:CLIENT_VERSION|CONTEXT_CLIENT_VERSION)"?\s*[:=]\s*"([^"]+)"'
)

LIVE_CHAT_CONTINUATION_RE = re.compile(
    r'"liveChatContinuation".*?"continuation"\s*:\s*"([^"]+)"', re.DOTALL
)

YT_INITIAL_DATA_RE = re.compile(
    r"""(?:window\s*\[\s*["']ytInitialData["']\s*\]|ytInitialData)\s*=\s*(\{.*?\});""",
    re.DOTALL,
)

SNIPPET_LIMIT = 220


def _balanced_object(text: str, start: int) -> Optional[str]:
    """Return the brace-balanced object literal starting at ``start``."""
    depth = 0
    in_str = False
    quote = ""
    esc = False
    for k in range(start, len(text)):
        c = text[k]
        if in_str:
            if esc:
                esc = False
            elif c == "\\":
                esc = True
            elif c == quote:
                in_str = False
            continue
        if c in ('"', "'"):
            in_str = True
            quote = c
        elif c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return text[start:k + 1]
    return None


def _iter_json_blobs(pattern: re.Pattern, html: str) -> Iterator[Dict[str, Any]]:
    """
    Yield every match of ``pattern`` that parses to a JSON object.

    The non-greedy patterns stop at the first closing sequence, which can
    truncate an object containing that sequence inside a string; such
    candidates are re-read with a brace-balanced scan.
    """
    for match in pattern.finditer(html):
        candidates = [match.group(1)]
        balanced = _balanced_object(html, match.start(1))
        if balanced and balanced != match.group(1):
            candidates.append(balanced)

        for candidate in candidates:
            try:
                data = json.loads(candidate)
            except (json.JSONDecodeError, ValueError, RecursionError) as e:
                logger.debug(f"Skipping unparseable blob at offset {match.start(1)}: {e}")
                continue
            if isinstance(data, dict):
                yield data
                break


def _find1(pattern: re.Pattern, html: str) -> Optional[str]:
    match = pattern.search(html)
    if not match:
        return None
    value = match.group(1)
    return value if value.strip() else None


def _string_field(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        value = str(value)
        return value if value.strip() else None
    return None


def merge_tokens(html: Optional[str], base: Optional[Session] = None) -> Session:
    """
    Fill the empty fields of a session from an HTML page.

    Fields already present in ``base`` are kept as they are; ``base``
    itself is never modified.

    Args:
        html: Raw page body
        base: Partially filled session from an earlier page, if any

    Returns:
        A new Session with whatever tokens could be recovered
    """
    session = replace(base) if base is not None else Session()
    if not html or not html.strip():
        return session

    # 1) Embedded config blob
    if session.api_key is None or session.client_version is None:
        for cfg in _iter_json_blobs(YTCFG_RE, html):
            if session.api_key is None:
                session.api_key = _string_field(cfg, "INNERTUBE_API_KEY")
            if session.client_version is None:
                session.client_version = (
                    _string_field(cfg, "INNERTUBE_CONTEXT_CLIENT_VERSION")
                    or _string_field(cfg, "INNERTUBE_CLIENT_VERSION")
                )
            if session.api_key is not None and session.client_version is not None:
                break

    # 2) Permissive patterns against the raw page
    if session.api_key is None:
        session.api_key = _find1(API_KEY_FLEX_RE, html)
    if session.client_version is None:
        session.client_version = _find1(CLIENT_VERSION_FLEX_RE, html)

    # 3) Continuation near liveChatContinuation, then inside ytInitialData
    if session.continuation is None:
        session.continuation = _find1(LIVE_CHAT_CONTINUATION_RE, html)

    if session.continuation is None:
        for initial_data in _iter_json_blobs(YT_INITIAL_DATA_RE, html):
            session.continuation = find_first(initial_data, "continuation")
            if session.continuation is not None:
                break

    return session


def extract_tokens(html: Optional[str]) -> Optional[Session]:
    """
    Recover session tokens from a page.

    Returns:
        A ready Session, or None when api key or continuation is missing
    """
    session = merge_tokens(html)
    return session if session.is_ready else None


def snippet(html: Optional[str], limit: int = SNIPPET_LIMIT) -> str:
    """Single-line, bounded excerpt of a page body for diagnostics."""
    if not html:
        return ""
    one_line = html.replace("\n", " ").replace("\r", " ")
    if len(one_line) > limit:
        return one_line[:limit] + "..."
    return one_line
