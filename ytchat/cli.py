"""Command-line interface for ytchat."""

import asyncio
import logging
import sys
import time
from pathlib import Path

import click

from ytchat import __version__
from ytchat.chat import ChatMessage, YouTubeLiveChatClient, YtChatError, extract_video_id
from ytchat.config import ConfigStore, InvalidUrlError, is_valid_url
from ytchat.feed import ChatFeed
from ytchat.service import ChatScraperService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

CONFIG_CHECK_INTERVAL_SEC = 1.0

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="config.yaml",
    help="Path to config YAML file",
)


def _echo_message(message: ChatMessage) -> None:
    if message.is_status:
        click.echo(click.style(f"[{message.author}] {message.text}", fg="yellow"))
    else:
        click.echo(f"{click.style(message.author, fg='cyan', bold=True)}: {message.text}")


def _mask(value: str) -> str:
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:6]}...{value[-2:]}"


@click.group()
@click.version_option(version=__version__)
def cli():
    """ytchat - Live chat harvester for YouTube streams."""
    pass


@cli.command()
@config_option
@click.option("--url", default=None, help="Chat URL to use (saved to the config file)")
@click.option(
    "--refresh",
    type=float,
    default=0.25,
    show_default=True,
    help="Seconds between feed refreshes",
)
def run(config_path: Path, url: str, refresh: float):
    """Fetch live chat continuously and print it as it arrives."""
    store = ConfigStore(config_path)

    if url is not None:
        try:
            store.set_chat_url(url)
        except InvalidUrlError as e:
            raise click.BadParameter(str(e), param_hint="--url")

    cfg = store.config
    logging.getLogger().setLevel(cfg.log_level)

    if not is_valid_url(store.chat_url):
        logger.error(
            f"No valid chat URL configured in {config_path}. "
            "Use 'ytchat set-url URL' or pass --url."
        )
        sys.exit(1)

    service = ChatScraperService(config=cfg)
    feed = ChatFeed(max_entries=cfg.feed_max_entries, batch_size=cfg.feed_batch_size)

    # Re-bootstrap on every accepted URL change
    store.subscribe(service.restart)

    logger.info(f"Starting live chat fetch for {store.chat_url}")
    service.start(store.chat_url)

    last_check = time.monotonic()
    try:
        while True:
            for message in feed.pull(service.incoming):
                _echo_message(message)

            now = time.monotonic()
            if now - last_check >= CONFIG_CHECK_INTERVAL_SEC:
                store.poll_changes()
                last_check = now

            time.sleep(refresh)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, stopping")
    finally:
        service.shutdown()


@cli.command("set-url")
@click.argument("url")
@config_option
def set_url(url: str, config_path: Path):
    """Validate a chat URL and save it to the config file."""
    store = ConfigStore(config_path)
    try:
        changed = store.set_chat_url(url)
    except InvalidUrlError as e:
        raise click.BadParameter(str(e), param_hint="URL")

    if changed:
        click.echo(f"Saved chat URL to {config_path}")
    else:
        click.echo("Chat URL unchanged")


@cli.command("video-id")
@click.argument("url")
def video_id(url: str):
    """Print the video ID extracted from a stream URL."""
    vid = extract_video_id(url)
    if not vid:
        click.echo(f"Could not extract video ID from URL: {url}", err=True)
        sys.exit(1)
    click.echo(vid)


@cli.command()
@click.argument("url")
def probe(url: str):
    """Bootstrap session tokens once and print them."""

    async def _probe():
        async with YouTubeLiveChatClient() as client:
            return await client.init_from_url(url)

    try:
        session = asyncio.run(_probe())
    except YtChatError as e:
        click.echo(f"Error: {e.kind.value}", err=True)
        click.echo(str(e), err=True)
        sys.exit(1)

    click.echo(f"API key:        {_mask(session.api_key)}")
    click.echo(f"Client version: {session.client_version}")
    click.echo(f"Continuation:   {session.continuation}")


if __name__ == "__main__":
    cli()
