"""
Status reporting for links.

The host platform only sees a small vocabulary: ONLINE, OFFLINE with a
reason, UNKNOWN (configured, not yet connected) and CONFIGURATION_ERROR.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import structlog

from dmxlink.core.state import LinkHealth, LinkState, StatusDetail

logger = structlog.get_logger()


class StatusKind(Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"
    CONFIGURATION_ERROR = "configuration_error"


@dataclass(frozen=True)
class LinkStatus:
    """One status report for a link."""

    kind: StatusKind
    detail: StatusDetail = StatusDetail.NONE
    message: Optional[str] = None

    @classmethod
    def from_state(cls, state: LinkState) -> "LinkStatus":
        if state.health is LinkHealth.ONLINE:
            return cls(StatusKind.ONLINE)
        if state.health is LinkHealth.OFFLINE:
            if state.detail is StatusDetail.CONFIGURATION_ERROR:
                return cls(StatusKind.CONFIGURATION_ERROR, state.detail, state.message)
            return cls(StatusKind.OFFLINE, state.detail, state.message)
        return cls(StatusKind.UNKNOWN, state.detail, state.message)


class StatusSink(Protocol):
    """Receiver of link status reports. Must not block."""

    def update_status(self, name: str, status: LinkStatus) -> None:
        ...


class LoggingStatusSink:
    """Status sink that logs every report and remembers the latest one."""

    def __init__(self) -> None:
        self.latest: dict[str, LinkStatus] = {}

    def update_status(self, name: str, status: LinkStatus) -> None:
        self.latest[name] = status
        if status.kind in (StatusKind.ONLINE, StatusKind.UNKNOWN):
            logger.info("Link status", link=name, status=status.kind.value)
        else:
            logger.warning(
                "Link status",
                link=name,
                status=status.kind.value,
                detail=status.detail.value,
                reason=status.message,
            )


def report(sink: Optional[StatusSink], name: str, status: LinkStatus) -> None:
    """Deliver a status report; sink failures are logged, never raised."""
    if sink is None:
        return
    try:
        sink.update_status(name, status)
    except Exception as e:
        logger.error("Status sink failed", link=name, error=str(e))
