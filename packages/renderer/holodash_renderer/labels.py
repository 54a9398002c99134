"""Text and overlay values derived from a telemetry snapshot.

These are the strings and polylines a device renderer paints next to the 3D
scene.  Nothing here draws; see :mod:`holodash_renderer.preview` for a raster
consumer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

POWER_TRACE_MAX_WATTS = 50.0
POWER_TRACE_ORIGIN_X = 15.0
POWER_TRACE_STEP_X = 3.5
POWER_TRACE_BASELINE_Y = 85.0
POWER_TRACE_HEIGHT = 55.0
LOW_BATTERY_PERCENT = 20

MODE_LABELS = ("TURBO", "SILENT", "CUSTOM", "CONFIG")
STATUS_CONNECTED = "CONNECTED // UDP:9001"
STATUS_SEARCHING = "SEARCHING..."


@dataclass(frozen=True)
class BatteryLabel:
    text: str
    tag: str
    low: bool


def format_uptime(seconds: int) -> str:
    seconds = max(int(seconds), 0)
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"UPTIME: {h:02d}:{m:02d}:{s:02d}"


def display_hostname(hostname: str) -> str:
    head, sep, _ = hostname.partition(".local")
    return head if sep else hostname


def header_text(snapshot: Any) -> str:
    return f"{display_hostname(snapshot.hostname)}  {snapshot.os_name}"


def header_scale(text: str) -> float:
    # Shrinks long host/OS strings to fit the header strip.
    if len(text) > 35:
        return 0.32
    if len(text) > 25:
        return 0.38
    return 0.45


def percent_label(value: float) -> str:
    return f"{value:.0f}%"


def memory_label(snapshot: Any) -> str:
    if snapshot.memory_total_mb > 0:
        return f"{snapshot.memory_used_mb / 1024.0:.0f}/{snapshot.memory_total_mb / 1024.0:.0f}G"
    return percent_label(snapshot.memory_usage)


def clock_label(cpu_freq_mhz: int) -> str:
    return f"{cpu_freq_mhz / 1000.0:.1f} GHz"


def power_label(power_watts: float) -> str:
    return f"{power_watts:.1f}W"


def battery_label(level: int, status: str) -> BatteryLabel:
    if level < 0:
        return BatteryLabel(text="N/A", tag="", low=False)

    on_power = False
    tag = ""
    if "Charging" in status:
        tag, on_power = "CHG", True
    elif "Discharging" in status:
        tag = "BAT"
    elif "Full" in status:
        tag, on_power = "FULL", True
    elif "AC Attached" in status:
        tag, on_power = "AC", True
    return BatteryLabel(text=f"{level}%", tag=tag, low=level < LOW_BATTERY_PERCENT and not on_power)


def status_line(connected: bool) -> str:
    return STATUS_CONNECTED if connected else STATUS_SEARCHING


def power_trace(samples: Sequence[float], frame: int) -> list[tuple[float, float]]:
    """Polyline points for the power graph, oldest sample first.

    Samples below 1 W are replaced by a small moving wave so an idle or
    disconnected host still shows motion.
    """
    points: list[tuple[float, float]] = []
    for i, value in enumerate(samples):
        if value < 1:
            value = 10 + 5 * math.sin((i + frame) * 0.1)
        x = POWER_TRACE_ORIGIN_X + i * POWER_TRACE_STEP_X
        y = POWER_TRACE_BASELINE_Y - (value / POWER_TRACE_MAX_WATTS) * POWER_TRACE_HEIGHT
        points.append((x, y))
    return points


def mode_label(mode: int) -> str:
    if 0 <= mode < len(MODE_LABELS):
        return MODE_LABELS[mode]
    return "?"
