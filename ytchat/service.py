"""Chat scraper service: bootstraps once, then polls forever on a background worker."""

import asyncio
import concurrent.futures
import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, List, Optional

from ytchat.chat import (
    ChatMessage,
    ErrorThrottle,
    Failure,
    Session,
    TickOutcome,
    TokensNotFoundError,
    YouTubeLiveChatClient,
    YtChatError,
)
from ytchat.models import Config

logger = logging.getLogger(__name__)

WORKER_NAME = "ytchat-scraper"
SHUTDOWN_TIMEOUT_SEC = 5.0

RESTART_TEXT = "Restarting live chat fetch..."
CONNECTED_TEXT = "Connected. Polling chat..."


class ChatScraperService:
    """
    Harvests live chat for one URL at a time into an unbounded queue.

    The public start/restart/shutdown methods are synchronous and
    thread-safe; all state changes happen on a single daemon thread that
    runs a private event loop, so ticks never overlap.

    Consumers read ``incoming`` from any thread with ``popleft()`` (or
    ``drain()``); the service is the only writer.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        client_factory: Optional[Callable[[], YouTubeLiveChatClient]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize service.

        Args:
            config: Settings; defaults are used when omitted
            client_factory: Builds a fresh chat client for every restart
            clock: Monotonic time source used for error throttling
        """
        self.config = config or Config()
        self._client_factory = client_factory or self._default_client

        self.incoming: Deque[ChatMessage] = deque()

        self._session = Session()
        self._throttle = ErrorThrottle(
            window=self.config.error_window_sec,
            backoff_factor=self.config.error_backoff_factor,
            max_window=self.config.max_error_window_sec,
            clock=clock,
        )
        self._last_fingerprint: Optional[str] = None
        self._url = ""
        self._initialized = False

        self._client: Optional[YouTubeLiveChatClient] = None
        self._task: Optional[asyncio.Task] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._shut_down = False

        # Statistics
        self._total_polls = 0
        self._total_errors = 0
        self._total_messages = 0

    def _default_client(self) -> YouTubeLiveChatClient:
        return YouTubeLiveChatClient(
            connect_timeout=self.config.connect_timeout_sec,
            request_timeout=self.config.request_timeout_sec,
        )

    # ------------------------------------------------------------------
    # Worker thread
    # ------------------------------------------------------------------

    def _ensure_worker(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(
                target=self._run_loop, args=(self._loop,), name=WORKER_NAME, daemon=True
            )
            self._thread.start()
            logger.debug(f"Started {WORKER_NAME} worker thread")
        return self._loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            loop.close()

    def _check_caller(self) -> None:
        if self._thread is not None and threading.current_thread() is self._thread:
            raise RuntimeError("Use the async methods from inside the worker loop")

    # ------------------------------------------------------------------
    # Public synchronous API
    # ------------------------------------------------------------------

    def start(self, url: str) -> None:
        """Start fetching chat for a URL."""
        self.restart(url)

    def restart(self, url: str) -> None:
        """
        Stop the current schedule and start over with a new URL.

        Blocks until the previous tick has been cancelled and the new
        schedule is armed.

        Raises:
            RuntimeError: If the service has been shut down
        """
        self._check_caller()
        with self._lock:
            if self._shut_down:
                raise RuntimeError("Service has been shut down")
            loop = self._ensure_worker()
            future = asyncio.run_coroutine_threadsafe(self.restart_async(url), loop)
        future.result()

    def shutdown(self) -> None:
        """Cancel the schedule and stop the worker thread. Safe to call twice."""
        self._check_caller()
        with self._lock:
            if self._shut_down:
                return
            self._shut_down = True
            loop, thread = self._loop, self._thread

        if loop is None:
            return

        logger.info("Shutting down chat scraper...")
        future = asyncio.run_coroutine_threadsafe(self.stop_async(), loop)
        try:
            future.result(timeout=SHUTDOWN_TIMEOUT_SEC)
        except concurrent.futures.TimeoutError:
            logger.warning("Timed out waiting for the current tick to stop")

        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=SHUTDOWN_TIMEOUT_SEC)
        logger.info("Chat scraper stopped")

    def drain(self, limit: Optional[int] = None) -> List[ChatMessage]:
        """Pop up to ``limit`` queued messages in FIFO order."""
        drained = []
        while limit is None or len(drained) < limit:
            try:
                drained.append(self.incoming.popleft())
            except IndexError:
                break
        return drained

    # ------------------------------------------------------------------
    # Async core, runs on the worker loop
    # ------------------------------------------------------------------

    def reset(self, url: Optional[str]) -> None:
        """Return every piece of state to a freshly constructed service for ``url``."""
        self.incoming.clear()
        self._url = (url or "").strip()
        self._initialized = False
        self._session.reset()
        self._last_fingerprint = None
        self._throttle.reset()
        self._total_polls = 0
        self._total_errors = 0
        self._total_messages = 0
        self._enqueue(ChatMessage.status(RESTART_TEXT))

    async def restart_async(self, url: str) -> None:
        await self.stop_async()
        self.reset(url)
        self._client = self._client_factory()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Chat scraper armed for {self._url or '<no url>'}")

    async def stop_async(self) -> None:
        """Cancel the running schedule and close the HTTP client."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        client, self._client = self._client, None
        if client is not None:
            await client.close()

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.config.poll_interval_sec

        while True:
            started = loop.time()
            await self.tick()
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, interval - elapsed))

    async def tick(self) -> TickOutcome:
        """
        Run one init-or-poll step.

        Never raises except for cancellation; failures come back as a
        TickOutcome carrying a Failure.
        """
        if not self._url:
            return TickOutcome(skipped=True)

        if self._client is None:
            self._client = self._client_factory()

        connected = False
        try:
            if not self._initialized:
                self._session = await self._client.init_from_url(self._url)
                self._initialized = True
                connected = True
                self._enqueue(ChatMessage.status(CONNECTED_TEXT))

            result = await self._client.poll(self._session)

        except asyncio.CancelledError:
            raise
        except YtChatError as e:
            logger.error(f"{e.kind.value}: {e}")
            if isinstance(e, TokensNotFoundError):
                logger.debug(f"Token diagnostics: {e.diagnostics}")
            return self._handle_failure(e, connected)
        except Exception as e:
            logger.error(f"Unexpected error during tick: {e}", exc_info=True)
            return self._handle_failure(e, connected)

        self._total_polls += 1
        if self._session.advance(result.continuation):
            logger.debug("Advanced continuation")

        delivered = []
        for message in result.messages:
            fingerprint = message.fingerprint
            if fingerprint == self._last_fingerprint:
                continue
            self._last_fingerprint = fingerprint
            self._enqueue(message)
            delivered.append(message)

        self._total_messages += len(delivered)
        return TickOutcome(messages=tuple(delivered), initialized=connected)

    def _handle_failure(self, exc: BaseException, connected: bool) -> TickOutcome:
        failure = Failure.from_exception(exc)
        self._total_errors += 1

        if self._throttle.should_report(failure.signature):
            self._enqueue(ChatMessage.status(f"Error: {failure.kind.value}"))
            if failure.message:
                self._enqueue(ChatMessage.status(failure.message))

        return TickOutcome(failure=failure, initialized=connected)

    def _enqueue(self, message: ChatMessage) -> None:
        self.incoming.append(message)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def session(self) -> Session:
        return self._session

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def total_polls(self) -> int:
        return self._total_polls

    @property
    def total_errors(self) -> int:
        return self._total_errors

    @property
    def total_messages(self) -> int:
        return self._total_messages
