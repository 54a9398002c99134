"""Typed telemetry models."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Best known host status. Defaults stand in until a status report says otherwise."""

    cpu_usage: float = 25.0
    memory_usage: float = 45.0
    swap_usage: float = 10.0
    cpu_temp: float = 42.0
    gpu_temp: float = 48.0
    power_watts: float = 15.0
    cpu_freq_mhz: int = 2400
    fan_rpm: int = 1200
    uptime_seconds: int = 0
    hostname: str = "CONNECTING..."
    os_name: str = "UNKNOWN"
    cpu_model: str = "GENERIC CPU"
    cpu_cores: int = 8
    battery_level: int = -1
    battery_status: str = "UNKNOWN"
    memory_total_mb: int = 16384
    memory_used_mb: int = 8192
    connected: bool = False


SNAPSHOT_FIELDS = frozenset(f.name for f in fields(TelemetrySnapshot))

# Field name -> freshly extracted value, only for keys present in a message.
TelemetryUpdate = Dict[str, Any]
