"""Persistent client settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from holodash_link.commands import FAN_COMMANDS
from holodash_link.models import RECV_FRAME_BYTES
from holodash_renderer.geometry import FRAME_VERTEX_COUNT


CONFIG_VERSION = 2


@dataclass
class NetworkConfig:
    port: int = 9001
    bind_host: str = "0.0.0.0"
    broadcast_override: str | None = None
    recv_frame_bytes: int = RECV_FRAME_BYTES


@dataclass
class LoopConfig:
    tick_hz: int = 60
    heartbeat_ticks: int = 60


@dataclass
class RenderConfig:
    vertex_capacity: int = 2000
    power_history: int = 50
    sprite_frames: int = 5
    theme: str = "Holo Night"


@dataclass
class ControlConfig:
    initial_mode: int = 3


@dataclass
class HostConfig:
    push_interval_ms: int = 100
    client_timeout_s: float = 10.0


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7
    max_events: int = 1000


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    network: NetworkConfig = field(default_factory=NetworkConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    control: ControlConfig = field(default_factory=ControlConfig)
    host: HostConfig = field(default_factory=HostConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


DEFAULT_CONFIG = AppConfig()


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "HoloDash"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "HoloDash"
    return Path.home() / ".config" / "holodash"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    if not isinstance(raw, dict):
        return defaults
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_network(cfg: AppConfig) -> None:
    port = int(cfg.network.port)
    cfg.network.port = port if 1 <= port <= 65535 else NetworkConfig.port
    cfg.network.recv_frame_bytes = max(64, min(RECV_FRAME_BYTES, int(cfg.network.recv_frame_bytes)))
    if not cfg.network.broadcast_override:
        cfg.network.broadcast_override = None


def _normalize_loop(cfg: AppConfig) -> None:
    cfg.loop.tick_hz = max(1, min(240, int(cfg.loop.tick_hz)))
    cfg.loop.heartbeat_ticks = max(1, int(cfg.loop.heartbeat_ticks))


def _normalize_render(cfg: AppConfig) -> None:
    cfg.render.vertex_capacity = max(FRAME_VERTEX_COUNT, int(cfg.render.vertex_capacity))
    cfg.render.power_history = max(2, int(cfg.render.power_history))
    cfg.render.sprite_frames = max(1, int(cfg.render.sprite_frames))


def _normalize_control(cfg: AppConfig) -> None:
    if int(cfg.control.initial_mode) not in FAN_COMMANDS:
        cfg.control.initial_mode = ControlConfig.initial_mode
    cfg.control.initial_mode = int(cfg.control.initial_mode)


def _normalize_host(cfg: AppConfig) -> None:
    cfg.host.push_interval_ms = max(10, int(cfg.host.push_interval_ms))
    cfg.host.client_timeout_s = float(max(1.0, cfg.host.client_timeout_s))


def _normalize_diagnostics(cfg: AppConfig) -> None:
    cfg.diagnostics.keep_log_files = max(2, int(cfg.diagnostics.keep_log_files))
    cfg.diagnostics.max_events = max(10, int(cfg.diagnostics.max_events))


def _migrate(raw: dict[str, Any]) -> dict[str, Any]:
    version = int(raw.get("config_version", 1))
    data = dict(raw)

    if version < 2:
        # v1 kept port/bind_host at the top level and had no host section.
        network = dict(data.get("network", {}) or {})
        for key in ("port", "bind_host"):
            if key in data:
                network.setdefault(key, data.pop(key))
        data["network"] = network
        data.setdefault("host", {})
        data["config_version"] = 2

    return data


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    data = _migrate(raw)
    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        network=_merge(NetworkConfig, data.get("network", {})),
        loop=_merge(LoopConfig, data.get("loop", {})),
        render=_merge(RenderConfig, data.get("render", {})),
        control=_merge(ControlConfig, data.get("control", {})),
        host=_merge(HostConfig, data.get("host", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )

    _normalize_network(cfg)
    _normalize_loop(cfg)
    _normalize_render(cfg)
    _normalize_control(cfg)
    _normalize_host(cfg)
    _normalize_diagnostics(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
