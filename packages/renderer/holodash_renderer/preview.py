"""Pillow preview of a committed frame plus the dashboard overlays.

The scene is projected orthographically back onto the 400x240 top screen and
triangles are painted back to front.  The 320x240 bottom screen carries the
power trace, clock, battery and mode panels.  This is a reference consumer for
inspection and docs, not the device renderer.
"""

from __future__ import annotations

import base64
from io import BytesIO
from typing import Any, Sequence

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from . import labels
from .geometry import SCENE_SCALE, SCREEN_CENTER
from .models import CommittedFrame, ThemeConfig
from .themes import get_theme, hex_to_rgb

TOP_SIZE = (400, 240)
BOTTOM_SIZE = (320, 240)


class PreviewRenderer:
    """Draws both screens into one RGB image (top above bottom)."""

    def __init__(self, theme_name: str | None = None) -> None:
        self.theme: ThemeConfig = get_theme(theme_name)
        self.width = TOP_SIZE[0]
        self.height = TOP_SIZE[1] + BOTTOM_SIZE[1]

    def render_image(
        self,
        frame: CommittedFrame,
        snapshot: Any,
        power_samples: Sequence[float] = (),
        frame_number: int = 0,
        mode: int = 3,
    ) -> Image.Image:
        theme = self.theme
        image = Image.new("RGB", (self.width, self.height), hex_to_rgb(theme.background))
        draw = ImageDraw.Draw(image)

        self._draw_scene(draw, frame)
        self._draw_top_labels(draw, snapshot)
        bottom_x = (self.width - BOTTOM_SIZE[0]) // 2
        bottom_y = TOP_SIZE[1]
        self._draw_bottom(draw, bottom_x, bottom_y, snapshot, power_samples, frame_number, mode)
        return image

    def save_png(self, path, frame: CommittedFrame, snapshot: Any, **kwargs: Any) -> None:
        self.render_image(frame, snapshot, **kwargs).save(path, format="PNG")

    def preview_data_url(self, frame: CommittedFrame, snapshot: Any, **kwargs: Any) -> str:
        image = self.render_image(frame, snapshot, **kwargs)
        buf = BytesIO()
        image.save(buf, format="PNG")
        b64 = base64.b64encode(buf.getvalue()).decode("ascii")
        return f"data:image/png;base64,{b64}"

    def _font(self, size: int):
        try:
            return ImageFont.truetype("DejaVuSansMono.ttf", size)
        except OSError:
            return ImageFont.load_default()

    @staticmethod
    def project(positions: np.ndarray) -> np.ndarray:
        cx, cy = SCREEN_CENTER
        out = np.empty((len(positions), 2), dtype=np.float64)
        out[:, 0] = cx + positions[:, 0] / SCENE_SCALE
        out[:, 1] = cy - positions[:, 1] / SCENE_SCALE
        return out

    def _draw_scene(self, draw: ImageDraw.ImageDraw, frame: CommittedFrame) -> None:
        count = frame.vertex_count - frame.vertex_count % 3
        if count == 0:
            return
        tris = frame.vertices[:count].reshape(-1, 3, 7)
        depth = tris[:, :, 2].mean(axis=1)
        for index in np.argsort(depth, kind="stable"):
            tri = tris[index]
            points = [tuple(p) for p in self.project(tri[:, 0:3])]
            rgb = np.clip(tri[:, 3:6].mean(axis=0), 0.0, 1.0)
            fill = tuple(int(round(c * 255)) for c in rgb)
            draw.polygon(points, fill=fill)

    def _draw_top_labels(self, draw: ImageDraw.ImageDraw, snapshot: Any) -> None:
        theme = self.theme
        header = labels.header_text(snapshot)
        size = int(round(labels.header_scale(header) * 30))
        draw.text((18, 12), header, font=self._font(size), fill=theme.accent)
        draw.text((245, 14), labels.format_uptime(snapshot.uptime_seconds), font=self._font(11), fill=theme.swap_bar)

        small = self._font(12)
        values = self._font(10)
        rows = (
            (25, "CPU", theme.cpu_bar, labels.percent_label(snapshot.cpu_usage)),
            (70, "RAM", theme.memory_bar, labels.memory_label(snapshot)),
            (115, "SWAP", theme.swap_bar, labels.percent_label(snapshot.swap_usage)),
        )
        for x, title, color, value in rows:
            draw.text((x, 195), title, font=small, fill=color)
            draw.text((x - 3, 208), value, font=values, fill=theme.text_primary)
        draw.text((300, 214), f"{snapshot.fan_rpm} RPM", font=values, fill=theme.text_primary)

    def _draw_bottom(
        self,
        draw: ImageDraw.ImageDraw,
        ox: int,
        oy: int,
        snapshot: Any,
        power_samples: Sequence[float],
        frame_number: int,
        mode: int,
    ) -> None:
        theme = self.theme
        font = self._font(10)
        big = self._font(14)

        draw.rectangle((ox + 8, oy + 8, ox + 203, oy + 96), fill=theme.panel)
        draw.rectangle((ox + 8, oy + 8, ox + 203, oy + 10), fill=theme.accent)
        draw.text((ox + 12, oy + 12), "POWER CONSUMPTION (W)", font=font, fill=theme.accent)
        draw.text((ox + 150, oy + 12), labels.power_label(snapshot.power_watts), font=font, fill=theme.cpu_bar)
        trace = [(ox + x, oy + y) for x, y in labels.power_trace(power_samples, frame_number)]
        if len(trace) > 1:
            draw.line(trace, fill=theme.accent, width=2)

        draw.rectangle((ox + 212, oy + 8, ox + 312, oy + 50), fill=theme.panel)
        draw.text((ox + 216, oy + 12), "CORE CLOCK", font=font, fill=theme.text_primary)
        draw.text((ox + 218, oy + 28), labels.clock_label(snapshot.cpu_freq_mhz), font=big, fill=theme.accent)

        draw.rectangle((ox + 212, oy + 54, ox + 312, oy + 96), fill=theme.panel)
        draw.text((ox + 216, oy + 58), "HOST BATTERY", font=font, fill=theme.text_primary)
        battery = labels.battery_label(snapshot.battery_level, snapshot.battery_status)
        color = theme.text_warning if battery.low else theme.cpu_bar
        if snapshot.battery_level < 0:
            color = theme.text_primary
        draw.text((ox + 218, oy + 74), battery.text, font=big, fill=color)
        draw.text((ox + 270, oy + 78), battery.tag, font=font, fill=theme.text_primary)

        for i, title in enumerate(labels.MODE_LABELS):
            bx = ox + 10 + i * 77
            selected = i == mode
            border = theme.accent if selected else theme.swap_bar
            draw.rectangle((bx, oy + 108, bx + 72, oy + 160), fill=theme.panel, outline=border, width=2)
            draw.text((bx + 12, oy + 128), title, font=font, fill=theme.text_primary)

        draw.rectangle((ox, oy + 218, ox + 320, oy + 240), fill=theme.panel)
        dot = theme.cpu_bar if snapshot.connected else theme.accent_alt
        draw.ellipse((ox + 10, oy + 225, ox + 18, oy + 233), fill=dot)
        draw.text((ox + 24, oy + 223), labels.status_line(snapshot.connected), font=font, fill=theme.text_primary)
