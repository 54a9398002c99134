"""Single published snapshot plus the rolling power trace."""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping

from .models import SNAPSHOT_FIELDS, TelemetrySnapshot


POWER_HISTORY_SIZE = 50


class PowerHistory:
    """Fixed-capacity ring; the cursor always points at the oldest sample."""

    def __init__(self, capacity: int = POWER_HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError("PowerHistory capacity must be >= 1")
        self.capacity = capacity
        self._samples = [0.0] * capacity
        self.cursor = 0
        self.total_samples = 0

    def append(self, value: float) -> None:
        self._samples[self.cursor] = float(value)
        self.cursor = (self.cursor + 1) % self.capacity
        self.total_samples += 1

    def raw(self) -> tuple[float, ...]:
        """Storage order, index 0 first."""
        return tuple(self._samples)

    def ordered(self) -> tuple[float, ...]:
        """Oldest to newest."""
        return tuple(self._samples[self.cursor :] + self._samples[: self.cursor])

    def latest(self) -> float:
        return self._samples[(self.cursor - 1) % self.capacity]

    def __len__(self) -> int:
        return self.capacity


class SnapshotStore:
    def __init__(
        self,
        initial: TelemetrySnapshot | None = None,
        history_size: int = POWER_HISTORY_SIZE,
    ) -> None:
        self._snapshot = initial or TelemetrySnapshot()
        self.power_history = PowerHistory(history_size)
        self.merges = 0

    @property
    def snapshot(self) -> TelemetrySnapshot:
        return self._snapshot

    def merge(self, update: Mapping[str, object]) -> TelemetrySnapshot:
        """Overwrite only the fields present in ``update``; publish in one assignment."""
        unknown = set(update) - SNAPSHOT_FIELDS
        if unknown:
            raise KeyError(f"Unknown snapshot fields: {sorted(unknown)}")
        if update:
            self._snapshot = replace(self._snapshot, **update)
            self.merges += 1
        return self._snapshot

    def set_connected(self, connected: bool) -> None:
        if self._snapshot.connected != connected:
            self._snapshot = replace(self._snapshot, connected=connected)

    def sample_power(self) -> None:
        self.power_history.append(self._snapshot.power_watts)
