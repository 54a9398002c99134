"""Per-frame animation clocks and the double-buffered geometry pipeline."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from .geometry import VERTEX_STRIDE, GaugeSource, build_scene
from .models import CommittedFrame, ThemeConfig

logger = logging.getLogger("holodash.renderer")

DEFAULT_CAPACITY = 2000
SPRITE_FRAMES = 5
REFERENCE_RPM = 3000.0


class GeometryCapacityError(ValueError):
    """Raised when a frame's geometry would not fit a buffer."""


@dataclass
class AnimationClocks:
    """Fan rotation (radians, unbounded) and sprite phase (unreduced)."""

    fan_angle: float = 0.0
    cat_frame: float = 0.0

    def advance(self, fan_rpm: float, cpu_usage: float) -> None:
        fan_rpm = fan_rpm if math.isfinite(fan_rpm) else 0.0
        cpu_usage = cpu_usage if math.isfinite(cpu_usage) else 0.0
        rpm_factor = fan_rpm / REFERENCE_RPM if fan_rpm > 0 else 0.5
        self.fan_angle -= 0.005 + rpm_factor * 0.08
        self.cat_frame += 0.05 + (cpu_usage / 100.0) * 0.5

    def sprite_index(self, frames: int = SPRITE_FRAMES) -> int:
        return int(self.cat_frame) % frames


class GeometryBuffer:
    """Fixed-capacity vertex storage. Sealing marks it read-only until the next write."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._data = np.zeros((capacity, VERTEX_STRIDE), dtype=np.float32)
        self._data.flags.writeable = False
        self.vertex_count = 0
        self.generation = 0

    def begin_write(self) -> np.ndarray:
        self._data.flags.writeable = True
        return self._data

    def seal(self, vertex_count: int, generation: int) -> None:
        self.vertex_count = vertex_count
        self.generation = generation
        self._data.flags.writeable = False

    @property
    def sealed(self) -> bool:
        return not self._data.flags.writeable

    def view(self) -> CommittedFrame:
        return CommittedFrame(
            vertices=self._data[: self.vertex_count],
            vertex_count=self.vertex_count,
            generation=self.generation,
        )


class FrameGeometryPipeline:
    """Builds each frame into the idle buffer and publishes it with one index swap.

    Readers only ever see the buffer at :attr:`active_index`, which always holds
    a complete, sealed frame.  Writes target the other buffer.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        theme: ThemeConfig | None = None,
        sprite_frames: int = SPRITE_FRAMES,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._buffers = (GeometryBuffer(capacity), GeometryBuffer(capacity))
        self._active = 0
        self._generation = 0
        self._released = False
        self.theme = theme
        self.clocks = AnimationClocks()
        self.sprite_frames = max(1, int(sprite_frames))

    @property
    def capacity(self) -> int:
        return self._buffers[0].capacity

    @property
    def active_index(self) -> int:
        return self._active

    @property
    def generation(self) -> int:
        return self._generation

    def active_frame(self) -> CommittedFrame:
        return self._buffers[self._active].view()

    def tick(self, fan_rpm: float, cpu_usage: float) -> None:
        self.clocks.advance(fan_rpm, cpu_usage)

    def sprite_index(self) -> int:
        return self.clocks.sprite_index(self.sprite_frames)

    def build(self, source: GaugeSource) -> CommittedFrame:
        if self._released:
            raise RuntimeError("pipeline has been released")
        vertices = build_scene(source, self.clocks.fan_angle, self.theme)
        count = len(vertices)
        if count > self.capacity:
            raise GeometryCapacityError(f"frame needs {count} vertices, buffer holds {self.capacity}")

        target_index = 1 - self._active
        target = self._buffers[target_index]
        storage = target.begin_write()
        storage[:count] = vertices
        self._generation += 1
        target.seal(count, self._generation)
        self._active = target_index
        return target.view()

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._buffers[0].seal(0, self._buffers[0].generation)
        self._buffers[1].seal(0, self._buffers[1].generation)
        logger.debug(
            "geometry buffers released after %s frames",
            self._generation,
            extra={"event": "geometry_release", "generation": self._generation},
        )

    @property
    def released(self) -> bool:
        return self._released
