"""
Link State Definitions for dmxlink.

Health of a link and the per-link timing state used by the transmission
scheduler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LinkHealth(Enum):
    """Health of one link, drives both sending and status reporting."""

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    ONLINE = "online"
    OFFLINE = "offline"


class StatusDetail(Enum):
    """Reason attached to an OFFLINE link."""

    NONE = "none"
    COMMUNICATION_ERROR = "communication_error"
    CONFIGURATION_ERROR = "configuration_error"
    BRIDGE_OFFLINE = "bridge_offline"


@dataclass(frozen=True)
class LinkState:
    """Health plus the reason it was entered."""

    health: LinkHealth = LinkHealth.UNINITIALIZED
    detail: StatusDetail = StatusDetail.NONE
    message: Optional[str] = None

    @property
    def online(self) -> bool:
        return self.health is LinkHealth.ONLINE


@dataclass
class SendTimingState:
    """
    Send cadence bookkeeping for one link.

    ``last_send_ms`` is None until the first packet after a (re)open, which
    makes that first tick count as a change.
    """

    last_send_ms: Optional[int] = None
    repeat_counter: int = 0
    packets_sent: int = 0

    def reset(self) -> None:
        self.last_send_ms = None
        self.repeat_counter = 0
