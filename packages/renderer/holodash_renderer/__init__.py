"""Scene geometry, double-buffered frame pipeline and dashboard labels for HoloDash."""

from .geometry import FRAME_VERTEX_COUNT, VERTEX_STRIDE, build_scene
from .labels import BatteryLabel, battery_label, format_uptime, power_trace, status_line
from .models import CommittedFrame, ThemeConfig
from .pipeline import (
    AnimationClocks,
    FrameGeometryPipeline,
    GeometryBuffer,
    GeometryCapacityError,
)
from .themes import DEFAULT_THEME_NAME, get_theme, list_themes

try:  # pragma: no cover - optional at import time for test environments
    from .preview import PreviewRenderer
except Exception:  # pragma: no cover
    PreviewRenderer = None  # type: ignore[assignment]

__all__ = [
    "AnimationClocks",
    "BatteryLabel",
    "CommittedFrame",
    "DEFAULT_THEME_NAME",
    "FRAME_VERTEX_COUNT",
    "FrameGeometryPipeline",
    "GeometryBuffer",
    "GeometryCapacityError",
    "ThemeConfig",
    "VERTEX_STRIDE",
    "battery_label",
    "build_scene",
    "format_uptime",
    "get_theme",
    "list_themes",
    "power_trace",
    "status_line",
]

if PreviewRenderer is not None:
    __all__.append("PreviewRenderer")
