"""
Configuration Management for dmxlink.

Uses Pydantic Settings for type-safe configuration with environment
variable support and YAML file loading.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings
import yaml


class LinkConfig(BaseModel):
    """One DMX-over-Ethernet link (one universe, one socket)."""
    protocol: Literal["artnet", "sacn"] = "artnet"
    address: str = ""  # "host[:port]" entries, comma/space separated
    local_address: str = ""  # "" = OS-chosen ephemeral endpoint
    universe: int = 1
    refresh_mode: Literal["standard", "always"] = "standard"
    retry_interval_s: float = Field(default=5.0, gt=0)
    sequencing: bool = True
    broadcast: bool = True  # SO_BROADCAST on the sending socket

    # sACN only
    source_name: str = "dmxlink"
    priority: int = Field(default=100, ge=0, le=200)

    @property
    def refresh_always(self) -> bool:
        return self.refresh_mode == "always"


class TimingConfig(BaseModel):
    """Send cadence policy shared by all protocols."""
    refresh_rate_hz: float = Field(default=40.0, gt=0)
    heartbeat_interval_ms: int = Field(default=800, gt=0)
    repeat_count: int = Field(default=3, ge=0)


class Settings(BaseSettings):
    """
    Main application settings.

    Can be configured via:
    - Environment variables (prefixed with DMXLINK_)
    - YAML config file
    - Direct instantiation
    """

    link: LinkConfig = Field(default_factory=LinkConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)

    # Debug
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_prefix = "DMXLINK_"
        env_nested_delimiter = "__"

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))

    def to_yaml(self, path: Path) -> None:
        """Save settings to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)
