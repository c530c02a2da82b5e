"""
Command-Line Interface for dmxlink.

Provides commands for running a link, testing single channels and
inspecting encoded packets.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

import click
import structlog

from dmxlink import __version__


def _load_settings(ctx: click.Context):
    from dmxlink.core.config import Settings

    if ctx.obj["config_path"]:
        return Settings.from_yaml(ctx.obj["config_path"])
    return Settings()


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
    dmxlink - DMX512 over Ethernet

    Streams DMX universes to ArtNet and sACN nodes over UDP.
    """
    ctx.ensure_object(dict)

    # Configure logging
    log_level = "DEBUG" if debug else "INFO"
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level)
        ),
    )

    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.option("--duration", "-d", type=float, default=None, help="Stop after N seconds")
@click.pass_context
def run(ctx: click.Context, duration: Optional[float]) -> None:
    """Run the configured link, sending an idle universe."""
    from dmxlink.dmx.universe import UniverseBuffer
    from dmxlink.link import DmxBridge, LinkRunner, LoggingStatusSink

    settings = _load_settings(ctx)
    settings.debug = ctx.obj["debug"]

    click.echo(f"dmxlink v{__version__}")
    click.echo("=" * 50)
    click.echo(f"Protocol: {settings.link.protocol}")
    click.echo(f"Universe: {settings.link.universe}")
    click.echo(f"Receivers: {settings.link.address or '(none)'}")
    click.echo()

    bridge = DmxBridge(settings.link, UniverseBuffer(), timing=settings.timing, status_sink=LoggingStatusSink())
    if not bridge.configured:
        click.echo(f"Error: {bridge.config_error.message}", err=True)
        sys.exit(1)

    runner = LinkRunner(bridge, settings.timing.refresh_rate_hz)
    click.echo("Press Ctrl+C to stop.")
    try:
        runner.start()
        start_time = time.monotonic()
        while runner.running:
            if duration is not None and time.monotonic() - start_time >= duration:
                break
            time.sleep(0.1)
    except KeyboardInterrupt:
        click.echo("\nShutting down...")
    finally:
        runner.stop()

    if runner.fatal_error is not None:
        click.echo(f"Error: {runner.fatal_error.message}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--channel", "-c", type=int, required=True, help="DMX channel (1-512)")
@click.option("--value", "-v", type=int, required=True, help="Value (0-255)")
@click.option("--address", "-a", default=None, help="Receiver list (overrides config)")
@click.pass_context
def dmx_test(ctx: click.Context, channel: int, value: int, address: Optional[str]) -> None:
    """Test DMX output by setting a single channel."""
    from dmxlink.dmx.universe import UniverseBuffer, is_valid_dmx_channel
    from dmxlink.link import DmxBridge, LinkRunner, LoggingStatusSink

    if not is_valid_dmx_channel(channel):
        click.echo("Error: Channel must be 1-512", err=True)
        sys.exit(1)

    if not 0 <= value <= 255:
        click.echo("Error: Value must be 0-255", err=True)
        sys.exit(1)

    settings = _load_settings(ctx)
    link_config = settings.link
    if address is not None:
        link_config = link_config.model_copy(update={"address": address})

    buffer = UniverseBuffer()
    bridge = DmxBridge(link_config, buffer, timing=settings.timing, status_sink=LoggingStatusSink())
    if not bridge.configured:
        click.echo(f"Error: {bridge.config_error.message}", err=True)
        sys.exit(1)

    runner = LinkRunner(bridge, settings.timing.refresh_rate_hz)
    click.echo(f"Setting channel {channel} to {value}...")

    try:
        runner.start()
        buffer.set_channel(channel, value)
        click.echo("Press Ctrl+C to stop and blackout.")

        while runner.running:
            time.sleep(1)

    except KeyboardInterrupt:
        click.echo("\nBlacking out...")
    finally:
        buffer.blackout()
        # Let the blackout frame go out before closing.
        time.sleep(0.1)
        runner.stop()


@cli.command()
@click.option("--universe", "-u", type=int, required=True, help="Universe id")
@click.option("--sequence", "-s", type=int, default=0, help="Sequence number (0-255)")
@click.option(
    "--protocol",
    type=click.Choice(["artnet", "sacn"]),
    default="artnet",
    help="Packet format",
)
@click.argument("values", nargs=-1, type=click.IntRange(0, 255))
def encode(universe: int, sequence: int, protocol: str, values: Tuple[int, ...]) -> None:
    """Print the packet for VALUES (channel 1 onwards) as hex."""
    from dmxlink.core.config import LinkConfig
    from dmxlink.core.exceptions import DmxLinkError
    from dmxlink.link.bridge import create_codec

    try:
        codec = create_codec(LinkConfig(protocol=protocol))
        codec.validate_universe(universe)
        packet = codec.encode(universe, sequence, bytes(values))
    except DmxLinkError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    click.echo(f"{codec.name} universe={universe} sequence={sequence & 0xFF} length={len(packet)}")
    for offset in range(0, len(packet), 16):
        chunk = packet[offset:offset + 16]
        click.echo(f"{offset:04x}  {chunk.hex(' ')}")


def main() -> None:
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
