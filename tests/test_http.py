"""Tests for video ID extraction, page fetches and session bootstrap."""

import asyncio
import socket

import pytest
import pytest_asyncio
from aiohttp import web

from ytchat.chat import http as chat_http
from ytchat.chat.client import YouTubeLiveChatClient
from ytchat.chat.exceptions import NetworkError, NoVideoIdError, TokensNotFoundError
from ytchat.chat.http import (
    DEFAULT_CLIENT_VERSION,
    FetchedPage,
    bootstrap,
    chat_endpoint,
    extract_video_id,
    fetch_html,
    html_headers,
    popout_url,
    post_json,
    watch_url,
)

READY_PAGE = (
    '<script>ytcfg.set({"INNERTUBE_API_KEY": "AIzaKey", '
    '"INNERTUBE_CONTEXT_CLIENT_VERSION": "2.1"});</script>'
    '<script>{"liveChatContinuation": {"continuation": "CONT0"}}</script>'
)
KEY_ONLY_PAGE = '<script>ytcfg.set({"INNERTUBE_API_KEY": "AIzaPopout"});</script>'
CONT_ONLY_PAGE = '<script>var ytInitialData = {"x": [{"continuation": "WATCH_CONT"}]};</script>'
EMPTY_PAGE = "<html><body>consent wall</body></html>"


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=ABC123",
        "https://youtu.be/ABC123",
        "https://www.youtube.com/live/ABC123",
        "https://youtu.be/ABC123?t=42",
        "https://m.youtube.com/watch?feature=share&v=ABC123",
        "https://www.youtube.com/live/ABC123?si=xyz",
        "  https://www.youtube.com/watch?v=ABC123  ",
    ],
)
def test_extract_video_id(url):
    """Test supported URL shapes resolve to the same ID."""
    assert extract_video_id(url) == "ABC123"


@pytest.mark.parametrize(
    "url",
    ["https://example.com/", "", None, "https://www.youtube.com/live/", "https://[::1"],
)
def test_extract_video_id_no_match(url):
    """Test URLs without an ID."""
    assert extract_video_id(url) is None


def test_short_link_wins_over_query():
    """Test the short-link path is preferred over a v parameter."""
    assert extract_video_id("https://youtu.be/SHORT?v=QUERY") == "SHORT"


def test_urls_and_headers():
    """Test endpoint URLs and browser headers."""
    assert popout_url("ABC123") == "https://www.youtube.com/live_chat?is_popout=1&v=ABC123"
    assert watch_url("a/b") == "https://www.youtube.com/watch?v=a%2Fb"
    assert chat_endpoint("KEY").endswith("/youtubei/v1/live_chat/get_live_chat?key=KEY")

    headers = html_headers("ABC123")
    assert headers["Referer"] == "https://www.youtube.com/watch?v=ABC123"
    assert "Mozilla/5.0" in headers["User-Agent"]
    assert headers["Accept"].startswith("text/html")


def test_fetched_page_non_2xx_is_empty():
    """Test non-2xx bodies are not used for extraction."""
    assert FetchedPage(200, "u", "body").usable_body == "body"
    assert FetchedPage(429, "u", "body").usable_body == ""


@pytest.fixture
def pages(monkeypatch):
    """Replace fetch_html with a lookup table keyed by URL."""
    table = {}
    calls = []

    async def fake_fetch(http, url, video_id):
        calls.append(url)
        status, body = table[url]
        return FetchedPage(status=status, url=url, body=body)

    monkeypatch.setattr(chat_http, "fetch_html", fake_fetch)
    return table, calls


@pytest.mark.asyncio
async def test_bootstrap_popout_is_enough(pages):
    """Test the watch page is not fetched when the popout yields tokens."""
    table, calls = pages
    table[popout_url("ABC123")] = (200, READY_PAGE)

    session = await bootstrap(None, "https://youtu.be/ABC123")

    assert calls == [popout_url("ABC123")]
    assert session.api_key == "AIzaKey"
    assert session.client_version == "2.1"
    assert session.continuation == "CONT0"


@pytest.mark.asyncio
async def test_bootstrap_falls_back_to_watch_page(pages):
    """Test the watch page is tried after an unusable popout."""
    table, calls = pages
    table[popout_url("ABC123")] = (200, EMPTY_PAGE)
    table[watch_url("ABC123")] = (200, READY_PAGE)

    session = await bootstrap(None, "https://www.youtube.com/watch?v=ABC123")

    assert calls == [popout_url("ABC123"), watch_url("ABC123")]
    assert session.is_ready


@pytest.mark.asyncio
async def test_bootstrap_merges_partial_tokens(pages):
    """Test tokens found on the popout carry over to the watch attempt."""
    table, _ = pages
    table[popout_url("ABC123")] = (200, KEY_ONLY_PAGE)
    table[watch_url("ABC123")] = (200, CONT_ONLY_PAGE)

    session = await bootstrap(None, "https://www.youtube.com/live/ABC123")

    assert session.api_key == "AIzaPopout"
    assert session.continuation == "WATCH_CONT"
    assert session.client_version == DEFAULT_CLIENT_VERSION


@pytest.mark.asyncio
async def test_bootstrap_ignores_error_status_body(pages):
    """Test a non-2xx popout is treated as empty even if it has tokens."""
    table, calls = pages
    table[popout_url("ABC123")] = (503, READY_PAGE)
    table[watch_url("ABC123")] = (200, READY_PAGE)

    await bootstrap(None, "https://youtu.be/ABC123")

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_bootstrap_tokens_not_found(pages):
    """Test both pages failing raises with diagnostics."""
    table, calls = pages
    table[popout_url("ABC123")] = (200, EMPTY_PAGE)
    table[watch_url("ABC123")] = (403, EMPTY_PAGE)

    with pytest.raises(TokensNotFoundError) as exc_info:
        await bootstrap(None, "https://youtu.be/ABC123")

    diagnostics = exc_info.value.diagnostics
    assert diagnostics["popout_status"] == 200
    assert diagnostics["watch_status"] == 403
    assert diagnostics["watch_url"] == watch_url("ABC123")
    assert diagnostics["snippet"] == EMPTY_PAGE
    assert "watch_status=403" in str(exc_info.value)
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_bootstrap_no_video_id(pages):
    """Test a non-YouTube URL fails before any fetch."""
    _, calls = pages

    with pytest.raises(NoVideoIdError):
        await bootstrap(None, "https://example.com/")

    assert calls == []


VISITOR_COOKIE = "VISITOR_INFO1_LIVE"


@pytest_asyncio.fixture
async def local_server():
    """Serve a page that sets a cookie and a chat endpoint that records requests."""
    seen = []

    async def page(request):
        seen.append(("GET", dict(request.headers), dict(request.cookies)))
        status = int(request.query.get("status", "200"))
        response = web.Response(text="<html>page body</html>", status=status)
        response.set_cookie(VISITOR_COOKIE, "visitor-123")
        return response

    async def chat(request):
        seen.append(("POST", dict(request.headers), dict(request.cookies)))
        if request.query.get("status"):
            return web.Response(text="forbidden", status=int(request.query["status"]))
        return web.Response(text=await request.text(), content_type="application/json")

    async def slow(request):
        await asyncio.sleep(1)
        return web.Response(text="too late")

    app = web.Application()
    app.router.add_get("/page", page)
    app.router.add_post("/chat", chat)
    app.router.add_get("/slow", slow)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    try:
        yield f"http://{host}:{port}", seen
    finally:
        await runner.cleanup()


def _closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_fetch_html_sends_browser_headers(local_server):
    """Test the page fetch carries the browser User-Agent and watch-page Referer."""
    base, seen = local_server
    async with YouTubeLiveChatClient() as client:
        page = await fetch_html(client._session(), f"{base}/page", "ABC123")

    assert page.ok
    assert page.status == 200
    assert page.body == "<html>page body</html>"
    assert page.url == f"{base}/page"

    _, headers, _ = seen[0]
    assert headers["User-Agent"] == html_headers("ABC123")["User-Agent"]
    assert headers["Referer"] == "https://www.youtube.com/watch?v=ABC123"
    assert headers["Accept"].startswith("text/html")


@pytest.mark.asyncio
async def test_fetch_html_non_2xx_returns_page(local_server):
    """Test an error status is returned as a page rather than raised."""
    base, _ = local_server
    async with YouTubeLiveChatClient() as client:
        page = await fetch_html(client._session(), f"{base}/page?status=429", "ABC123")

    assert page.status == 429
    assert not page.ok
    assert page.usable_body == ""


@pytest.mark.asyncio
async def test_cookie_from_page_is_replayed_on_chat_post(local_server):
    """Test a cookie set by the HTML page is sent with the chat-fetch POST."""
    base, seen = local_server
    async with YouTubeLiveChatClient() as client:
        http = client._session()
        await fetch_html(http, f"{base}/page", "ABC123")
        body = await post_json(http, f"{base}/chat", {"continuation": "CUR"})

    assert body == '{"continuation": "CUR"}'

    method, headers, cookies = seen[1]
    assert method == "POST"
    assert cookies == {VISITOR_COOKIE: "visitor-123"}
    assert headers["Content-Type"] == "application/json"
    assert headers["Origin"] == "https://www.youtube.com"


@pytest.mark.asyncio
async def test_post_json_non_2xx_raises(local_server):
    """Test a rejected chat fetch surfaces as NetworkError."""
    base, _ = local_server
    async with YouTubeLiveChatClient() as client:
        with pytest.raises(NetworkError, match="HTTP 403"):
            await post_json(client._session(), f"{base}/chat?status=403", {})


@pytest.mark.asyncio
async def test_connection_refused_is_network_error():
    """Test transport failures on both requests surface as NetworkError."""
    base = f"http://127.0.0.1:{_closed_port()}"
    async with YouTubeLiveChatClient(connect_timeout=2.0, request_timeout=2.0) as client:
        with pytest.raises(NetworkError):
            await fetch_html(client._session(), f"{base}/page", "ABC123")
        with pytest.raises(NetworkError):
            await post_json(client._session(), f"{base}/chat", {})


@pytest.mark.asyncio
async def test_timeout_is_network_error(local_server):
    """Test a request exceeding the client timeout surfaces as NetworkError."""
    base, _ = local_server
    async with YouTubeLiveChatClient(connect_timeout=0.2, request_timeout=0.2) as client:
        with pytest.raises(NetworkError):
            await fetch_html(client._session(), f"{base}/slow", "ABC123")
