"""
Command-Line Interface for the LacyLights harness.

Provides commands for capturing Art-Net output, injecting test packets,
and poking the GraphQL server by hand while writing contract tests.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

from lacylights_harness import __version__

logger = structlog.get_logger()


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to configuration file",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, config: Optional[str]) -> None:
    """
    LacyLights Harness - contract testing for a lighting-control server

    Drives the server over GraphQL and captures the Art-Net DMX frames it
    transmits.
    """
    from lacylights_harness.core.config import load_settings

    ctx.ensure_object(dict)

    # Configure logging
    log_level = "DEBUG" if debug else "INFO"
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level)
        ),
    )

    settings = load_settings(Path(config) if config else None)
    settings.debug = debug

    ctx.obj["debug"] = debug
    ctx.obj["settings"] = settings


@cli.command()
@click.option("--host", default=None, help="Local address to listen on")
@click.option("--port", "-p", type=int, default=None, help="UDP port to listen on")
@click.option("--duration", "-d", default=2.0, help="Capture duration in seconds")
@click.option("--universe", "-u", type=int, default=None, help="Only report this wire universe (0-indexed)")
@click.pass_context
def capture(
    ctx: click.Context,
    host: Optional[str],
    port: Optional[int],
    duration: float,
    universe: Optional[int],
) -> None:
    """Capture Art-Net frames and summarise the latest frame per universe."""
    from lacylights_harness.core.exceptions import ArtNetBindError
    from lacylights_harness.dmx.receiver import ArtNetReceiver

    config = ctx.obj["settings"].artnet
    if host is not None:
        config.listen_host = host
    if port is not None:
        config.listen_port = port

    receiver = ArtNetReceiver(config)
    click.echo(f"Capturing on {config.listen_host or '0.0.0.0'}:{config.listen_port} for {duration}s...")

    try:
        frames = receiver.capture_frames(duration)
    except ArtNetBindError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    if universe is not None:
        frames = [f for f in frames if f.universe == universe]

    click.echo(f"Captured {len(frames)} frames")

    latest = {}
    for frame in frames:
        latest[frame.universe] = frame

    for u in sorted(latest):
        frame = latest[u]
        active = [(i + 1, v) for i, v in enumerate(frame.channels) if v]
        click.echo(f"Universe {u} (API {u + 1}) seq={frame.sequence}: {len(active)} active channels")
        for channel, value in active:
            click.echo(f"  ch {channel:3d} = {value}")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Destination address")
@click.option("--port", "-p", type=int, default=None, help="Destination UDP port")
@click.option("--universe", "-u", type=int, default=0, help="Wire universe (0-indexed)")
@click.option("--channel", "-c", type=int, required=True, help="DMX channel (1-512)")
@click.option("--value", "-v", type=int, required=True, help="Value (0-255)")
@click.option("--sequence", type=int, default=None, help="Art-Net sequence byte (default: auto)")
@click.pass_context
def send(
    ctx: click.Context,
    host: str,
    port: Optional[int],
    universe: int,
    channel: int,
    value: int,
    sequence: Optional[int],
) -> None:
    """Send a single ArtDMX packet with one channel set."""
    from lacylights_harness.dmx.artnet import ArtNetTransmitter
    from lacylights_harness.dmx.universe import (
        DMX_CHANNEL_COUNT,
        is_valid_dmx_channel,
        is_valid_dmx_value,
    )

    if not is_valid_dmx_channel(channel):
        click.echo("Error: Channel must be 1-512", err=True)
        sys.exit(1)

    if not is_valid_dmx_value(value):
        click.echo("Error: Value must be 0-255", err=True)
        sys.exit(1)

    if port is None:
        port = ctx.obj["settings"].artnet.listen_port

    data = bytearray(DMX_CHANNEL_COUNT)
    data[channel - 1] = value

    with ArtNetTransmitter(host, port) as transmitter:
        transmitter.send_dmx(universe, bytes(data), sequence=sequence)

    click.echo(f"Sent universe {universe} channel {channel} = {value} to {host}:{port}")


@cli.command()
@click.argument("query_text")
@click.option("--variables", default=None, help="Variables as a JSON object")
@click.pass_context
def query(ctx: click.Context, query_text: str, variables: Optional[str]) -> None:
    """Run a GraphQL query or mutation and print the data as JSON."""
    from lacylights_harness.core.exceptions import GraphQLError
    from lacylights_harness.graphql.client import GraphQLClient

    try:
        parsed = json.loads(variables) if variables else None
    except json.JSONDecodeError as e:
        click.echo(f"Error: invalid --variables JSON: {e}", err=True)
        sys.exit(1)

    client = GraphQLClient(ctx.obj["settings"].graphql)
    try:
        data = client.execute_raw(query_text, parsed)
    except GraphQLError as e:
        click.echo(f"Error: {e.message}", err=True)
        if ctx.obj["debug"]:
            raise
        sys.exit(1)
    finally:
        client.close()

    click.echo(json.dumps(data, indent=2))


@cli.command()
@click.option("--duration", "-d", default=5.0, help="Watch duration in seconds")
@click.option("--universe", "-u", type=int, default=None, help="API universe (1-indexed)")
@click.pass_context
def watch_dmx(ctx: click.Context, duration: float, universe: Optional[int]) -> None:
    """Collect dmxOutputChanged subscription messages and summarise them."""
    from lacylights_harness.core.exceptions import SubscriptionError
    from lacylights_harness.graphql.subscriptions import (
        DMX_OUTPUT_SUBSCRIPTION,
        SubscriptionClient,
        parse_dmx_output_message,
    )

    variables = {"universe": universe} if universe is not None else None
    client = SubscriptionClient(ctx.obj["settings"].graphql)

    click.echo(f"Watching {client.endpoint} for {duration}s...")

    try:
        client.connect()
        payloads = client.collect_messages(DMX_OUTPUT_SUBSCRIPTION, variables, duration)
        updates = [parse_dmx_output_message(p) for p in payloads]
    except SubscriptionError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    finally:
        client.close()

    click.echo(f"Received {len(updates)} updates")
    for update in updates:
        active = sum(1 for v in update.channels if v)
        click.echo(f"  universe {update.universe}: {active} active channels")


def main() -> None:
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
