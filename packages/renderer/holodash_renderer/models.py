"""Typed renderer models."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class ThemeConfig:
    name: str
    background: str
    panel: str
    cpu_bar: str
    memory_bar: str
    swap_bar: str
    accent: str
    accent_alt: str
    text_primary: str
    text_warning: str


@dataclass(frozen=True)
class CommittedFrame:
    """Read-only view of the active geometry buffer as of one commit."""

    vertices: np.ndarray
    vertex_count: int
    generation: int

    @property
    def positions(self) -> np.ndarray:
        return self.vertices[:, 0:3]

    @property
    def colors(self) -> np.ndarray:
        return self.vertices[:, 3:7]
