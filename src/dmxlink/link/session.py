"""
Link Session: UDP socket lifecycle for one DMX-over-Ethernet link.

Owns the socket, the receiver list and the link health. Opening a link binds
the socket and probes the first receiver with a real packet; failures are
retried on a cancellable timer instead of sleeping in the caller's thread.
"""

from __future__ import annotations

import socket
import threading
from typing import Callable, Optional, Sequence

import structlog

from dmxlink.core.exceptions import AddressError, LinkError, SocketOpenError, SocketSendError
from dmxlink.core.state import LinkHealth, LinkState, StatusDetail
from dmxlink.dmx.address import AddressNode
from dmxlink.link.status import LinkStatus, StatusSink, report

logger = structlog.get_logger()

ProbeFactory = Callable[[], bytes]
SocketFactory = Callable[[], socket.socket]
TimerFactory = Callable[..., threading.Timer]


def udp_socket() -> socket.socket:
    return socket.socket(socket.AF_INET, socket.SOCK_DGRAM)


class LinkSession:
    """
    Socket, receivers and health of one link.

    Binding policy for ``local_node``:
    - None: OS-chosen address and port, recorded in ``sender_node``
    - host only (port 0): OS-chosen port on that host
    - host and port: bind exactly there

    All socket access goes through one re-entrant lock, so ``close()`` from
    another thread is safe while a send is in flight; the retry timer only
    takes the lock for the open attempt itself.
    """

    def __init__(
        self,
        receivers: Sequence[AddressNode],
        local_node: Optional[AddressNode] = None,
        retry_interval_s: float = 5.0,
        broadcast: bool = True,
        status_sink: Optional[StatusSink] = None,
        name: str = "link",
        socket_factory: SocketFactory = udp_socket,
        timer_factory: TimerFactory = threading.Timer,
    ):
        if not receivers:
            raise AddressError("", "Could not initialize sender (address not set)")
        for receiver in receivers:
            if not receiver.resolved:
                raise AddressError(str(receiver), "receiver needs a host and a port")

        self.receivers = tuple(receivers)
        self.local_node = local_node
        self.sender_node: Optional[AddressNode] = None
        self.retry_interval_s = retry_interval_s
        self.broadcast = broadcast
        self.status_sink = status_sink
        self.name = name

        self._socket_factory = socket_factory
        self._timer_factory = timer_factory
        self._socket: Optional[socket.socket] = None
        self._lock = threading.RLock()
        self._state = LinkState()
        self._retry_timer: Optional[threading.Timer] = None
        self._disposed = False

        # Stats
        self.open_count = 0
        self.open_failures = 0
        self.packets_sent = 0
        self.send_errors = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def health(self) -> LinkHealth:
        return self._state.health

    @property
    def online(self) -> bool:
        return self._state.online

    @property
    def socket_open(self) -> bool:
        return self._socket is not None

    @property
    def retry_pending(self) -> bool:
        return self._retry_timer is not None

    def _set_state(
        self,
        health: LinkHealth,
        detail: StatusDetail = StatusDetail.NONE,
        message: Optional[str] = None,
    ) -> None:
        new_state = LinkState(health, detail, message)
        if new_state == self._state:
            return
        logger.debug(
            "Link health changed",
            link=self.name,
            old=self._state.health.value,
            new=health.value,
            detail=detail.value,
        )
        self._state = new_state
        if health is not LinkHealth.CONNECTING:
            report(self.status_sink, self.name, LinkStatus.from_state(new_state))

    # ------------------------------------------------------------------
    # Open / close
    # ------------------------------------------------------------------

    def open(self, probe_factory: ProbeFactory) -> bool:
        """
        Bind the socket and probe the first receiver.

        Returns True when the link is ONLINE. On failure the socket is torn
        down, the link goes OFFLINE and a retry is scheduled after
        ``retry_interval_s``; calls made while that retry is pending return
        False without touching the socket.
        """
        with self._lock:
            if self._disposed:
                return False
            if self.online:
                return True
            if self._retry_timer is not None:
                return False

            self._set_state(LinkHealth.CONNECTING)
            try:
                self._create_socket()
                self._check_connection(probe_factory())
            except (OSError, LinkError) as e:
                self.open_failures += 1
                logger.warning(
                    "Could not open socket",
                    link=self.name,
                    sender=str(self.local_node or "*"),
                    error=str(e),
                )
                self._teardown()
                self._set_state(
                    LinkHealth.OFFLINE,
                    StatusDetail.COMMUNICATION_ERROR,
                    "opening UDP socket failed",
                )
                self._schedule_retry(probe_factory)
                return False
            except Exception:
                self._teardown()
                self._set_state(LinkHealth.OFFLINE, StatusDetail.BRIDGE_OFFLINE)
                raise

            self.open_count += 1
            logger.info("Opened socket", link=self.name, sender=str(self.sender_node))
            self._set_state(LinkHealth.ONLINE)
            return True

    def _create_socket(self) -> None:
        sock = self._socket_factory()
        local = self.local_node
        try:
            if self.broadcast:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind(local.as_tuple() if local is not None else ("0.0.0.0", 0))
            self.sender_node = AddressNode.from_socket(sock)
        except OSError as e:
            sock.close()
            raise SocketOpenError(str(local) if local is not None else None, str(e))
        self._socket = sock

    def _check_connection(self, packet: bytes) -> None:
        receiver = self.receivers[0]
        logger.debug("Checking connection", link=self.name, receiver=str(receiver))
        try:
            self._socket.sendto(packet, receiver.as_tuple())
        except OSError as e:
            raise SocketSendError(str(receiver), str(e))
        self.packets_sent += 1
        logger.debug("Connection check succeeded", link=self.name, receiver=str(receiver))

    def _schedule_retry(self, probe_factory: ProbeFactory) -> None:
        if self._disposed:
            return
        logger.debug(
            "Waiting until next connection retry",
            link=self.name,
            seconds=self.retry_interval_s,
        )
        timer = self._timer_factory(self.retry_interval_s, self._retry, args=(probe_factory,))
        timer.daemon = True
        self._retry_timer = timer
        timer.start()

    def _retry(self, probe_factory: ProbeFactory) -> None:
        with self._lock:
            if self._retry_timer is None or self._disposed:
                return
            self._retry_timer = None
            self.open(probe_factory)

    def _cancel_retry(self) -> None:
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    def _teardown(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError as e:
                logger.warning("Error closing socket", link=self.name, error=str(e))
            self._socket = None

    def close(
        self,
        detail: StatusDetail = StatusDetail.COMMUNICATION_ERROR,
        message: str = "UDP socket closed",
    ) -> None:
        """Close the socket (idempotent) and mark the link OFFLINE."""
        with self._lock:
            if self._socket is not None:
                logger.debug("Closing socket", link=self.name, sender=str(self.sender_node))
                self._teardown()
            else:
                logger.debug("Socket was already closed", link=self.name)
            self._set_state(LinkHealth.OFFLINE, detail, message)

    def dispose(self) -> None:
        """Close for good: cancel retries and refuse further opens."""
        with self._lock:
            self._disposed = True
            self._cancel_retry()
            self.close(StatusDetail.BRIDGE_OFFLINE, "link disposed")

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send(self, packet: bytes) -> int:
        """
        Send one packet to every receiver.

        A socket error closes the socket and marks the link OFFLINE; the
        remaining receivers of this call are skipped. Returns the number of
        receivers the packet was handed to.
        """
        delivered = 0
        with self._lock:
            if self._socket is None:
                logger.error("Socket is closed", link=self.name)
                if self._state.health is not LinkHealth.OFFLINE:
                    self._set_state(LinkHealth.OFFLINE, StatusDetail.BRIDGE_OFFLINE, "socket closed")
                return 0

            for receiver in self.receivers:
                if self._socket is None:
                    logger.debug("Skipping receiver, socket closed", link=self.name, receiver=str(receiver))
                    continue
                try:
                    self._socket.sendto(packet, receiver.as_tuple())
                except OSError as e:
                    self.send_errors += 1
                    logger.debug(
                        "Could not send",
                        link=self.name,
                        receiver=str(receiver),
                        error=str(e),
                    )
                    self.close(StatusDetail.COMMUNICATION_ERROR, "could not send DMX data")
                    continue

                delivered += 1
                self.packets_sent += 1
                if self._state.health is LinkHealth.OFFLINE:
                    logger.debug("Link back from OFFLINE to ONLINE", link=self.name)
                    self._set_state(LinkHealth.ONLINE)
        return delivered

    def get_stats(self) -> dict:
        """Get socket statistics."""
        return {
            "health": self._state.health.value,
            "sender": str(self.sender_node) if self.sender_node else None,
            "receivers": [str(r) for r in self.receivers],
            "open_count": self.open_count,
            "open_failures": self.open_failures,
            "packets_sent": self.packets_sent,
            "send_errors": self.send_errors,
            "retry_pending": self.retry_pending,
        }
