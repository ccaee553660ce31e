"""Consumer-side retention for the chat queue."""

import logging
from collections import deque
from typing import Deque, List

from ytchat.chat.models import ChatMessage

logger = logging.getLogger(__name__)


class ChatFeed:
    """
    Keeps the newest chat entries for a display surface.

    Each pull() drains a bounded batch from the producer queue so a burst
    of messages is spread over several frames.
    """

    def __init__(self, max_entries: int = 30, batch_size: int = 25):
        self.max_entries = max_entries
        self.batch_size = batch_size
        self._entries: Deque[ChatMessage] = deque(maxlen=max_entries)

    def pull(self, queue: Deque[ChatMessage]) -> List[ChatMessage]:
        """
        Move up to batch_size messages from the queue into the feed.

        Args:
            queue: Producer queue, consumed from the left

        Returns:
            The messages accepted by this call, oldest first
        """
        accepted = []
        for _ in range(self.batch_size):
            try:
                raw = queue.popleft()
            except IndexError:
                break

            message = ChatMessage.create(raw.author, raw.text)
            if message is None:
                logger.debug(f"Dropping blank chat entry: {raw!r}")
                continue

            self._entries.append(message)
            accepted.append(message)

        return accepted

    @property
    def entries(self) -> List[ChatMessage]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
