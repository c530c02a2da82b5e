"""
DMX-over-Ethernet bridge: applies a LinkConfig to a codec, session and
scheduler.

Configuration problems (empty or malformed receiver list, unknown host name,
universe out of range, bad local address) are reported as CONFIGURATION_ERROR.
The bridge then stays offline without a socket until ``update_configuration``
is called with a valid config.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

import structlog

from dmxlink.core.config import LinkConfig, TimingConfig
from dmxlink.core.exceptions import ConfigError
from dmxlink.core.state import LinkHealth, StatusDetail
from dmxlink.dmx.address import AddressNode, Resolver, parse_address_list, resolve_ipv4, resolve_node
from dmxlink.dmx.artnet import ArtNetCodec
from dmxlink.dmx.codec import PacketCodec
from dmxlink.dmx.sacn import SacnCodec
from dmxlink.dmx.universe import ChannelBuffer
from dmxlink.link.scheduler import TransmissionScheduler, monotonic_ms
from dmxlink.link.session import LinkSession, SocketFactory, TimerFactory, udp_socket
from dmxlink.link.status import LinkStatus, StatusKind, StatusSink, report

logger = structlog.get_logger()


def create_codec(config: LinkConfig) -> PacketCodec:
    """Codec for the configured protocol."""
    if config.protocol == "artnet":
        return ArtNetCodec()
    if config.protocol == "sacn":
        return SacnCodec(source_name=config.source_name, priority=config.priority)
    raise ConfigError(f"Unknown protocol: {config.protocol}")


class DmxBridge:
    """One configured link driven by an external tick source."""

    def __init__(
        self,
        config: LinkConfig,
        buffer: ChannelBuffer,
        timing: Optional[TimingConfig] = None,
        status_sink: Optional[StatusSink] = None,
        name: str = "dmx",
        socket_factory: SocketFactory = udp_socket,
        timer_factory: TimerFactory = threading.Timer,
        clock: Callable[[], int] = monotonic_ms,
        resolver: Resolver = resolve_ipv4,
    ):
        self.buffer = buffer
        self.timing = timing or TimingConfig()
        self.status_sink = status_sink
        self.name = name
        self._socket_factory = socket_factory
        self._timer_factory = timer_factory
        self._clock = clock
        self._resolver = resolver
        self._lock = threading.Lock()

        self.config = config
        self.codec: Optional[PacketCodec] = None
        self.session: Optional[LinkSession] = None
        self.scheduler: Optional[TransmissionScheduler] = None
        self.config_error: Optional[ConfigError] = None

        self.update_configuration(config)

    @property
    def configured(self) -> bool:
        return self.scheduler is not None

    @property
    def health(self) -> LinkHealth:
        if self.session is None:
            return LinkHealth.OFFLINE if self.config_error else LinkHealth.UNINITIALIZED
        return self.session.health

    def update_configuration(self, config: LinkConfig) -> bool:
        """
        Apply a new configuration, replacing socket and receivers wholesale.

        Returns:
            True when the configuration was accepted
        """
        with self._lock:
            return self._apply(config)

    def _apply(self, config: LinkConfig) -> bool:
        self._teardown()
        self.config = config
        self.config_error = None

        try:
            codec = create_codec(config)
            universe = codec.validate_universe(config.universe)
            receivers = parse_address_list(config.address, codec.default_port, self._resolver)
            local_node = None
            if config.local_address.strip():
                local_node = resolve_node(
                    AddressNode.from_string(config.local_address, 0), self._resolver
                )
        except ConfigError as e:
            self.config_error = e
            logger.warning("Configuration rejected", link=self.name, error=e.message)
            report(
                self.status_sink,
                self.name,
                LinkStatus(StatusKind.CONFIGURATION_ERROR, StatusDetail.CONFIGURATION_ERROR, e.message),
            )
            return False

        logger.debug(
            "Using receivers",
            link=self.name,
            protocol=codec.name,
            receivers=[str(r) for r in receivers],
            sender=str(local_node or "*"),
            refresh_always=config.refresh_always,
        )

        self.codec = codec
        self.session = LinkSession(
            receivers,
            local_node=local_node,
            retry_interval_s=config.retry_interval_s,
            broadcast=config.broadcast,
            status_sink=self.status_sink,
            name=self.name,
            socket_factory=self._socket_factory,
            timer_factory=self._timer_factory,
        )
        self.scheduler = TransmissionScheduler(
            self.session,
            codec,
            self.buffer,
            universe,
            timing=self.timing,
            refresh_always=config.refresh_always,
            sequencing=config.sequencing,
            clock=self._clock,
        )
        report(self.status_sink, self.name, LinkStatus(StatusKind.UNKNOWN))
        logger.info("Updated configuration", link=self.name, protocol=codec.name, universe=universe)
        return True

    def tick(self, now: Optional[int] = None) -> bool:
        """One scheduling step; does nothing while misconfigured."""
        with self._lock:
            if self.scheduler is None:
                return False
            return self.scheduler.tick(now)

    def _teardown(self) -> None:
        if self.session is not None:
            self.session.dispose()
        self.session = None
        self.scheduler = None
        self.codec = None

    def dispose(self) -> None:
        """Close the socket and stop retries."""
        with self._lock:
            self._teardown()
        logger.debug("Disposed bridge", link=self.name)

    def get_stats(self) -> dict:
        stats: dict = {
            "name": self.name,
            "configured": self.configured,
            "health": self.health.value,
            "config_error": self.config_error.message if self.config_error else None,
        }
        if self.session is not None:
            stats["session"] = self.session.get_stats()
        if self.scheduler is not None:
            stats["scheduler"] = self.scheduler.get_stats()
        return stats
