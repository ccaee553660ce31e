"""Configuration management."""

import logging
from pathlib import Path
from typing import Callable, List, Optional
from urllib.parse import urlsplit

import yaml

from ytchat.models import Config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")


class InvalidUrlError(ValueError):
    """Chat URL rejected by validation."""
    pass


def is_valid_url(url: Optional[str]) -> bool:
    """Check that a URL is non-empty, http(s) and syntactically valid."""
    if url is None:
        return False
    url = url.strip()
    if not url:
        return False
    if not (url.startswith("http://") or url.startswith("https://")):
        return False
    if any(c.isspace() for c in url):
        return False
    try:
        parts = urlsplit(url)
        # Accessing port validates the netloc
        parts.port
    except ValueError:
        return False
    return bool(parts.netloc)


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        # Return default config
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return Config(**(data or {}))


def save_config(config: Config, config_path: Optional[Path] = None) -> None:
    """Write configuration to YAML file."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.safe_dump(config.model_dump(), f, sort_keys=False)


class ConfigStore:
    """
    Persists the chat URL and notifies subscribers when it changes.

    Only URLs that pass is_valid_url() are ever handed to subscribers.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
        self._config = load_config(self.path)
        self._mtime = self._stat()
        self._listeners: List[Callable[[str], None]] = []

    def _stat(self) -> Optional[float]:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    @property
    def config(self) -> Config:
        return self._config

    @property
    def chat_url(self) -> str:
        return self._config.chat_url

    def subscribe(self, callback: Callable[[str], None]) -> None:
        """Register a callback receiving the new URL on every accepted change."""
        self._listeners.append(callback)

    def _notify(self, url: str) -> None:
        for callback in self._listeners:
            try:
                callback(url)
            except Exception as e:
                logger.error(f"Error in config listener: {e}", exc_info=True)

    def set_chat_url(self, url: str) -> bool:
        """
        Validate, persist and broadcast a new chat URL.

        Args:
            url: New stream or watch URL

        Returns:
            True if the URL changed, False if it was already current

        Raises:
            InvalidUrlError: If the URL fails validation
        """
        if not is_valid_url(url):
            raise InvalidUrlError(f"Invalid chat URL: {url!r}")

        url = url.strip()
        if url == self._config.chat_url:
            return False

        self._config = self._config.model_copy(update={"chat_url": url})
        save_config(self._config, self.path)
        self._mtime = self._stat()

        logger.info(f"Chat URL changed to {url}")
        self._notify(url)
        return True

    def reload(self) -> bool:
        """
        Re-read the config file.

        Returns:
            True if an accepted URL change was broadcast
        """
        try:
            fresh = load_config(self.path)
        except (yaml.YAMLError, ValueError) as e:
            logger.warning(f"Ignoring unreadable config {self.path}: {e}")
            return False

        previous = self._config.chat_url
        if fresh.chat_url == previous:
            self._config = fresh
            return False

        if not is_valid_url(fresh.chat_url):
            logger.warning(f"Ignoring invalid chat URL in {self.path}: {fresh.chat_url!r}")
            self._config = fresh.model_copy(update={"chat_url": previous})
            return False

        self._config = fresh
        logger.info(f"Chat URL changed to {fresh.chat_url}")
        self._notify(fresh.chat_url)
        return True

    def poll_changes(self) -> bool:
        """Reload if the config file was modified since the last check."""
        mtime = self._stat()
        if mtime == self._mtime:
            return False
        self._mtime = mtime
        return self.reload()
