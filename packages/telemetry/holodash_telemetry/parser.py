"""Tolerant key-table parser for `{...}` status reports.

Status reports look like JSON but are never decoded as JSON: a truncated or
garbled datagram must still yield every field that survived.  Each recognized
key is located independently by its exact textual pattern; a key that is not
found leaves the corresponding snapshot field untouched.

Numeric literals follow C ``strtof``/``atoi`` prefix rules: leading
whitespace is skipped, the longest valid prefix is used, and no valid prefix
yields zero.  ``"cpu_temp":null`` therefore reads as ``0.0``.  Floats that
overflow to infinity and integers past the interpreter's digit limit also
read as zero; other integers saturate to the 32-bit range.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable

from .models import TelemetryUpdate

STATUS_SENTINEL = "{"

_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")

INT_MAX = 2**31 - 1
INT_MIN = -(2**31)


def parse_float_prefix(text: str, start: int = 0) -> float:
    match = _FLOAT_PREFIX.match(text, start)
    if not match:
        return 0.0
    value = float(match.group(1))
    # Out-of-range literals such as 1e999 count as unparseable.
    return value if math.isfinite(value) else 0.0


def parse_int_prefix(text: str, start: int = 0) -> int:
    match = _INT_PREFIX.match(text, start)
    if not match:
        return 0
    try:
        value = int(match.group(1))
    except ValueError:
        # Longer than the interpreter's int/str conversion limit.
        return 0
    return max(INT_MIN, min(INT_MAX, value))


def parse_string_value(text: str, start: int, capacity: int) -> str:
    """Characters up to the closing quote, truncated to ``capacity - 1``."""
    end = text.find('"', start)
    raw = text[start:] if end < 0 else text[start:end]
    return raw[: max(capacity - 1, 0)]


@dataclass(frozen=True)
class FieldSpec:
    key: str
    field: str
    pattern: str
    read: Callable[[str, int], object]


def _float(key: str, field: str, scale: float = 1.0) -> FieldSpec:
    if scale == 1.0:
        reader = parse_float_prefix
    else:
        reader = lambda text, start: parse_float_prefix(text, start) * scale  # noqa: E731
    return FieldSpec(key=key, field=field, pattern=f'"{key}":', read=reader)


def _int(key: str, field: str, pattern: str | None = None) -> FieldSpec:
    return FieldSpec(key=key, field=field, pattern=pattern or f'"{key}":', read=parse_int_prefix)


def _string(key: str, field: str, capacity: int) -> FieldSpec:
    return FieldSpec(
        key=key,
        field=field,
        pattern=f'"{key}":"',
        read=lambda text, start: parse_string_value(text, start, capacity),
    )


HOSTNAME_CAPACITY = 64
OS_NAME_CAPACITY = 64
CPU_MODEL_CAPACITY = 64
BATTERY_STATUS_CAPACITY = 32
POWER_SCORE_SCALE = 1.0 / 100000.0

FIELD_TABLE: tuple[FieldSpec, ...] = (
    _float("cpu_usage", "cpu_usage"),
    _float("cpu_temp", "cpu_temp"),
    _float("gpu_temp", "gpu_temp"),
    _float("memory_usage", "memory_usage"),
    _int("memory_total", "memory_total_mb"),
    _int("memory_used", "memory_used_mb"),
    _float("swap_usage", "swap_usage"),
    _float("power_score", "power_watts", scale=POWER_SCORE_SCALE),
    _int("fan_speeds", "fan_rpm", pattern='"fan_speeds":['),
    _int("cpu_frequency_mhz", "cpu_freq_mhz"),
    _string("hostname", "hostname", HOSTNAME_CAPACITY),
    _string("os_name", "os_name", OS_NAME_CAPACITY),
    _string("cpu_model", "cpu_model", CPU_MODEL_CAPACITY),
    _string("battery_status", "battery_status", BATTERY_STATUS_CAPACITY),
    _int("cpu_cores", "cpu_cores"),
    _int("battery_percentage", "battery_level"),
    _int("uptime_secs", "uptime_seconds"),
)


def is_status_payload(payload: bytes) -> bool:
    return payload[:1] == STATUS_SENTINEL.encode("ascii")


class TelemetryParser:
    """Turn raw status bytes into a partial :data:`TelemetryUpdate`."""

    def __init__(self, table: tuple[FieldSpec, ...] = FIELD_TABLE) -> None:
        self.table = table

    def parse(self, payload: bytes) -> TelemetryUpdate:
        if not is_status_payload(payload):
            return {}
        text = payload.split(b"\x00", 1)[0].decode("utf-8", errors="ignore")
        return self.parse_text(text)

    def parse_text(self, text: str) -> TelemetryUpdate:
        update: TelemetryUpdate = {}
        for spec in self.table:
            at = text.find(spec.pattern)
            if at < 0:
                continue
            update[spec.field] = spec.read(text, at + len(spec.pattern))
        return update
