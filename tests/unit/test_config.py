from pathlib import Path

import pytest
from pydantic import ValidationError

from dmxlink.core.config import LinkConfig, Settings, TimingConfig


def test_timing_defaults() -> None:
    timing = TimingConfig()
    assert timing.heartbeat_interval_ms == 800
    assert timing.repeat_count == 3
    assert timing.refresh_rate_hz == 40.0


def test_link_defaults() -> None:
    link = LinkConfig()
    assert link.protocol == "artnet"
    assert link.address == ""
    assert link.refresh_always is False
    assert link.retry_interval_s == 5.0
    assert LinkConfig(refresh_mode="always").refresh_always is True


def test_link_config_rejects_unknown_values() -> None:
    with pytest.raises(ValidationError):
        LinkConfig(protocol="kinet")
    with pytest.raises(ValidationError):
        LinkConfig(refresh_mode="sometimes")
    with pytest.raises(ValidationError):
        LinkConfig(retry_interval_s=0)


def test_settings_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "link:\n"
        "  address: '10.0.0.1, 10.0.0.2:6455'\n"
        "  universe: 3\n"
        "  refresh_mode: always\n"
        "timing:\n"
        "  heartbeat_interval_ms: 500\n",
        encoding="utf-8",
    )

    settings = Settings.from_yaml(path)

    assert settings.link.address == "10.0.0.1, 10.0.0.2:6455"
    assert settings.link.universe == 3
    assert settings.link.refresh_always is True
    assert settings.timing.heartbeat_interval_ms == 500
    assert settings.timing.repeat_count == 3


def test_settings_yaml_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "out.yaml"
    Settings(link=LinkConfig(address="10.1.1.1", protocol="sacn")).to_yaml(path)

    loaded = Settings.from_yaml(path)

    assert loaded.link.address == "10.1.1.1"
    assert loaded.link.protocol == "sacn"


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert Settings.from_yaml(path).link == LinkConfig()


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DMXLINK_LINK__ADDRESS", "10.0.0.255")
    monkeypatch.setenv("DMXLINK_TIMING__REPEAT_COUNT", "5")

    settings = Settings()

    assert settings.link.address == "10.0.0.255"
    assert settings.timing.repeat_count == 5
