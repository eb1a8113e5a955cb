"""CLI handling for peerclip.

This module provides the command-line interface for peerclip, handling
argument parsing via click, logging configuration, and dispatching to the
server, client, one-shot sender and key helpers.

Usage:
    peerclip [--verbose] serve [--host HOST] [--port PORT] --password KEY
    peerclip [--verbose] connect --host HOST [--port PORT] --password KEY
    peerclip [--verbose] send --host HOST [--port PORT] --password KEY TEXT
    peerclip genkey [--segments N] [--length N]
    peerclip service-uuid KEY
"""

import asyncio
import sys

import click

from peerclip.config import DEFAULT_PORT
from peerclip.main_logging import configure_logging
from peerclip.protocol_constants import ContentType

CONTENT_TYPE_NAMES = {
    "text": ContentType.PLAIN_TEXT,
    "rtf": ContentType.RTF_TEXT,
    "png": ContentType.PNG_IMAGE,
    "jpeg": ContentType.JPEG_IMAGE,
    "pdf": ContentType.PDF_DOCUMENT,
    "html": ContentType.HTML_CONTENT,
}

password_option = click.option(
    "--password",
    required=True,
    envvar="PEERCLIP_PASSWORD",
    help="Shared pairing key (or set PEERCLIP_PASSWORD)",
)
port_option = click.option(
    "--port",
    default=DEFAULT_PORT,
    show_default=True,
    type=click.IntRange(1, 65535),
    help="TCP port",
)


def _echo_received(data: bytes, content_type: ContentType) -> None:
    """Print received clipboard content to stdout."""
    if content_type in (ContentType.PLAIN_TEXT, ContentType.HTML_CONTENT):
        click.echo(data.decode("utf-8", errors="replace"))
    else:
        click.echo(f"<{len(data)} bytes of {content_type.name}>")


def _make_state(password: str):
    """Build sync state with a stdout-echoing in-memory clipboard."""
    from peerclip.collaborators import MemoryClipboard
    from peerclip.session import create_session
    from peerclip.sync_state import SyncState

    try:
        session = create_session(password)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--password") from e
    return SyncState(session=session, clipboard=MemoryClipboard(on_write=_echo_received))


@click.group()
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable DEBUG-level logging",
)
def main(verbose: bool) -> None:
    """Encrypted clipboard transfer between peers."""
    configure_logging(verbose)


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Address to bind")
@port_option
@password_option
def serve(host: str, port: int, password: str) -> None:
    """Accept peers and print clipboard content they send."""
    from peerclip.server import run_server

    state = _make_state(password)
    try:
        asyncio.run(run_server(state, host, port))
    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.option("--host", required=True, help="Server address")
@port_option
@password_option
def connect(host: str, port: int, password: str) -> None:
    """Stay connected to a server and print content it sends."""
    from peerclip.client import run_client

    asyncio.run(run_client(_make_state(password), host, port))


@main.command()
@click.option("--host", required=True, help="Peer address")
@port_option
@password_option
@click.option(
    "--type",
    "type_name",
    type=click.Choice(sorted(CONTENT_TYPE_NAMES)),
    default="text",
    show_default=True,
    help="Content type of the payload",
)
@click.option(
    "--file",
    "path",
    type=click.Path(exists=True, dir_okay=False),
    help="Send the contents of a file instead of TEXT",
)
@click.argument("text", required=False)
def send(host: str, port: int, password: str, type_name: str, path: str, text: str) -> None:
    """Send TEXT (or a file) to a peer once."""
    from peerclip.client_retry import send_once

    if path is not None:
        with open(path, "rb") as f:
            data = f.read()
    elif text is not None:
        data = text.encode("utf-8")
    else:
        raise click.UsageError("Either TEXT or --file must be given")

    state = _make_state(password)
    try:
        ok = asyncio.run(
            send_once(state.session, host, port, CONTENT_TYPE_NAMES[type_name], data)
        )
    except ConnectionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if not ok:
        click.echo("Error: failed to encode payload", err=True)
        sys.exit(1)


@main.command()
@click.option("--segments", default=3, show_default=True, type=click.IntRange(0, 16))
@click.option("--length", default=4, show_default=True, type=click.IntRange(1, 32))
def genkey(segments: int, length: int) -> None:
    """Print a new random pairing key."""
    from peerclip.identity import generate_formatted_key

    click.echo(generate_formatted_key(segments, length))


@main.command("service-uuid")
@click.argument("key")
def service_uuid(key: str) -> None:
    """Print the BLE service UUID derived from KEY."""
    from peerclip.identity import uuid_from_string

    click.echo(str(uuid_from_string(key)))
