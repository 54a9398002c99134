"""Pure scene geometry: gauge prisms, fan hub and twisted fan blades.

Every builder returns a float32 array of shape ``(n, 7)`` holding
``x, y, z, r, g, b, a`` per vertex, three vertices per triangle.  Scene space
is derived from a 400x240 screen layout: screen pixels are shifted to the
screen center and scaled by :data:`SCENE_SCALE`, with Y pointing up.
"""

from __future__ import annotations

import math
from typing import Protocol, Sequence

import numpy as np

from .models import ThemeConfig
from .themes import get_theme, hex_to_rgba

VERTEX_STRIDE = 7
Color = tuple[float, float, float, float]

SCENE_SCALE = 0.012
SCREEN_CENTER = (200.0, 120.0)

# Gauges
BAR_WIDTH_PX = 35.0
BAR_MAX_HEIGHT_PX = 140.0
BAR_BASE_Y_PX = 190.0
BAR_DEPTH = 20.0 * SCENE_SCALE
BAR_SLOTS_PX = (20.0, 65.0, 110.0)
FACE_SHADE = 0.6
PRISM_VERTICES = 36

# Fan hub
FAN_CENTER_PX = (332.0, 190.0)
FAN_SCALE = SCENE_SCALE * 0.3
HUB_SIDES = 16
HUB_RADIUS = 16.0 * FAN_SCALE
HUB_DEPTH = 20.0 * FAN_SCALE
INNER_HUB_RADIUS = 6.0 * FAN_SCALE
INNER_CAP_LIFT = 0.01
HUB_CAP_COLOR: Color = (0.4, 0.4, 0.5, 1.0)
HUB_SIDE_COLOR: Color = (0.3, 0.3, 0.4, 1.0)
INNER_CAP_COLOR: Color = (0.0, 0.5, 0.8, 1.0)

# Fan blades
BLADE_COUNT = 3
BLADE_SEGMENTS = 8
BLADE_LENGTH = 1.0
BLADE_ROOT_WIDTH = 0.15
BLADE_TIP_WIDTH = 0.5
BLADE_TWIST_ROOT = math.radians(60.0)
BLADE_TWIST_TIP = math.radians(15.0)
BLADE_CURVE = 0.15
BLADE_SCALE = 50.0 * FAN_SCALE
BLADE_CLEARANCE = 0.02
BLADE_ROOT_COLOR = (180 / 255.0, 190 / 255.0, 210 / 255.0)
BLADE_TIP_COLOR = (250 / 255.0, 252 / 255.0, 255 / 255.0)
BLADE_GLOW = np.array([0.2, 0.8, 1.0])

# Lighting
LIGHT_DIRECTION = np.array([0.4, 0.6, 0.7])
AMBIENT = 0.4
DIFFUSE = 0.6
LIGHT_TILT_X = math.radians(-25.0)
LIGHT_TILT_Y = math.radians(15.0)

# Whole-fan viewing tilt
CLUSTER_TILT_X = math.radians(-35.0)
CLUSTER_TILT_Y = math.radians(15.0)

GAUGE_VERTICES = len(BAR_SLOTS_PX) * PRISM_VERTICES
HUB_VERTICES = HUB_SIDES * 9 + HUB_SIDES * 3
BLADE_VERTICES = BLADE_SEGMENTS * 6
FRAME_VERTEX_COUNT = GAUGE_VERTICES + HUB_VERTICES + BLADE_COUNT * BLADE_VERTICES


class GaugeSource(Protocol):
    cpu_usage: float
    memory_usage: float
    swap_usage: float


def to_scene(sx: float, sy: float) -> tuple[float, float]:
    cx, cy = SCREEN_CENTER
    return (sx - cx) * SCENE_SCALE, (cy - sy) * SCENE_SCALE


def rotate_x(y, z, angle: float):
    c, s = math.cos(angle), math.sin(angle)
    return y * c - z * s, y * s + z * c


def rotate_y(x, z, angle: float):
    c, s = math.cos(angle), math.sin(angle)
    return x * c + z * s, -x * s + z * c


def rotate_z(x, y, angle: float):
    c, s = math.cos(angle), math.sin(angle)
    return x * c - y * s, x * s + y * c


def _rows(vertices: Sequence[tuple[float, float, float]], color: Color) -> list[tuple[float, ...]]:
    return [v + color for v in vertices]


def prism(x: float, y: float, z: float, w: float, h: float, d: float, color: Color) -> np.ndarray:
    """Axis-aligned box as 6 faces; front and top keep full color, the rest are shaded."""
    r, g, b, a = color
    dim: Color = (r * FACE_SHADE, g * FACE_SHADE, b * FACE_SHADE, a)
    x1, y1, z1 = x + w, y + h, z + d
    rows: list[tuple[float, ...]] = []
    # front
    rows += _rows([(x, y, z1), (x1, y, z1), (x1, y1, z1), (x, y, z1), (x1, y1, z1), (x, y1, z1)], color)
    # back
    rows += _rows([(x1, y, z), (x, y, z), (x, y1, z), (x1, y, z), (x, y1, z), (x1, y1, z)], dim)
    # left
    rows += _rows([(x, y, z), (x, y, z1), (x, y1, z1), (x, y, z), (x, y1, z1), (x, y1, z)], dim)
    # right
    rows += _rows([(x1, y, z1), (x1, y, z), (x1, y1, z), (x1, y, z1), (x1, y1, z), (x1, y1, z1)], dim)
    # top
    rows += _rows([(x, y1, z1), (x1, y1, z1), (x1, y1, z), (x, y1, z1), (x1, y1, z), (x, y1, z)], color)
    # bottom
    rows += _rows([(x, y, z), (x1, y, z), (x1, y, z1), (x, y, z), (x1, y, z1), (x, y, z1)], dim)
    return np.asarray(rows, dtype=np.float32)


def gauge_height(percent: float) -> float:
    """Bar height in screen pixels for a 0..100 percentage, clamped to the bar slot."""
    height = BAR_MAX_HEIGHT_PX * (float(percent) / 100.0)
    return min(max(height, 0.0), BAR_MAX_HEIGHT_PX)


def build_gauges(source: GaugeSource, theme: ThemeConfig | None = None) -> np.ndarray:
    theme = theme or get_theme(None)
    slots = (
        (source.cpu_usage, hex_to_rgba(theme.cpu_bar)),
        (source.memory_usage, hex_to_rgba(theme.memory_bar)),
        (source.swap_usage, hex_to_rgba(theme.swap_bar)),
    )
    _, base_y = to_scene(0.0, BAR_BASE_Y_PX)
    width = BAR_WIDTH_PX * SCENE_SCALE
    parts = []
    for slot_x, (percent, color) in zip(BAR_SLOTS_PX, slots):
        x, _ = to_scene(slot_x, 0.0)
        parts.append(prism(x, base_y, 0.0, width, gauge_height(percent) * SCENE_SCALE, BAR_DEPTH, color))
    return np.concatenate(parts)


def fan_center() -> tuple[float, float, float]:
    x, y = to_scene(*FAN_CENTER_PX)
    return x, y, 0.0


def build_hub(center: tuple[float, float, float] | None = None) -> np.ndarray:
    """16-sided cylinder (front cap + side walls) and a small inner cap."""
    fx, fy, fz = center or fan_center()
    front = fz + HUB_DEPTH / 2
    back = fz - HUB_DEPTH / 2
    rows: list[tuple[float, ...]] = []
    for i in range(HUB_SIDES):
        a1 = i * 2.0 * math.pi / HUB_SIDES
        a2 = (i + 1) * 2.0 * math.pi / HUB_SIDES
        x1, y1 = fx + math.cos(a1) * HUB_RADIUS, fy + math.sin(a1) * HUB_RADIUS
        x2, y2 = fx + math.cos(a2) * HUB_RADIUS, fy + math.sin(a2) * HUB_RADIUS
        rows += _rows([(x1, y1, front), (x2, y2, front), (fx, fy, front)], HUB_CAP_COLOR)
        rows += _rows(
            [(x1, y1, front), (x2, y2, front), (x2, y2, back), (x1, y1, front), (x2, y2, back), (x1, y1, back)],
            HUB_SIDE_COLOR,
        )

    inner = front + INNER_CAP_LIFT
    for i in range(HUB_SIDES):
        a1 = i * 2.0 * math.pi / HUB_SIDES
        a2 = (i + 1) * 2.0 * math.pi / HUB_SIDES
        rows += _rows(
            [
                (fx + math.cos(a1) * INNER_HUB_RADIUS, fy + math.sin(a1) * INNER_HUB_RADIUS, inner),
                (fx + math.cos(a2) * INNER_HUB_RADIUS, fy + math.sin(a2) * INNER_HUB_RADIUS, inner),
                (fx, fy, inner),
            ],
            INNER_CAP_COLOR,
        )
    return np.asarray(rows, dtype=np.float32)


def blade_width(t: float) -> float:
    """Ramp from the root to 80% of the tip width, then a sine swell out to the tip."""
    if t < 0.2:
        return BLADE_ROOT_WIDTH + (BLADE_TIP_WIDTH * 0.8 - BLADE_ROOT_WIDTH) * (t / 0.2)
    t2 = (t - 0.2) / 0.8
    return BLADE_TIP_WIDTH * (0.4 + 0.6 * math.sin(t2 * math.pi))


def face_normal(a, b, c) -> tuple[float, float, float]:
    ax, ay, az = b[0] - a[0], b[1] - a[1], b[2] - a[2]
    bx, by, bz = c[0] - a[0], c[1] - a[1], c[2] - a[2]
    nx = ay * bz - az * by
    ny = az * bx - ax * bz
    nz = ax * by - ay * bx
    length = math.sqrt(nx * nx + ny * ny + nz * nz)
    if length > 0:
        nx, ny, nz = nx / length, ny / length, nz / length
    return nx, ny, nz


def _blade_edge(t: float) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    half = blade_width(t) / 2
    angle = BLADE_TWIST_ROOT + (BLADE_TWIST_TIP - BLADE_TWIST_ROOT) * t
    bend = BLADE_CURVE * t * t
    x = t * BLADE_LENGTH
    top_y, top_z = rotate_x(half, 0.0, angle)
    bot_y, bot_z = rotate_x(-half, 0.0, angle)
    return (x, top_y, top_z + bend), (x, bot_y, bot_z + bend)


def build_blade_profile() -> np.ndarray:
    """One blade in local space: ``(48, 6)`` rows of position + face normal."""
    rows: list[tuple[float, ...]] = []
    prev_top, prev_bot = _blade_edge(0.0)
    for i in range(1, BLADE_SEGMENTS + 1):
        t = i / BLADE_SEGMENTS
        top, bot = _blade_edge(t)
        normal = face_normal(prev_top, prev_bot, bot)
        for p in (prev_top, prev_bot, bot, prev_top, bot, top):
            rows.append(p + normal)
        prev_top, prev_bot = top, bot
    profile = np.asarray(rows, dtype=np.float64)
    profile.flags.writeable = False
    return profile


BLADE_PROFILE = build_blade_profile()


def shading(normals: np.ndarray) -> np.ndarray:
    """Ambient + clamped diffuse against :data:`LIGHT_DIRECTION`, per normal row."""
    normals = np.asarray(normals, dtype=np.float64)
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    safe = np.where(lengths > 0.001, lengths, 1.0)
    unit = normals / safe
    dot = np.clip(unit @ LIGHT_DIRECTION, 0.0, None)
    return AMBIENT + dot * DIFFUSE


def build_blades(
    fan_angle: float,
    center: tuple[float, float, float] | None = None,
    profile: np.ndarray = BLADE_PROFILE,
    count: int = BLADE_COUNT,
) -> np.ndarray:
    fx, fy, fz = center or fan_center()
    local = profile[:, 0:3] * BLADE_SCALE
    normals = profile[:, 3:6]
    t = profile[:, 0] / BLADE_LENGTH
    root = np.array(BLADE_ROOT_COLOR)
    tip = np.array(BLADE_TIP_COLOR)
    base = root + (tip - root) * t[:, None]
    glow = (0.2 * np.sin(t * math.pi))[:, None] * BLADE_GLOW
    lift = HUB_DEPTH / 2 + BLADE_CLEARANCE

    parts = []
    for i in range(count):
        angle = fan_angle + i * (2.0 * math.pi / count)
        rx, ry = rotate_z(local[:, 0], local[:, 1], angle)
        nx, ny = rotate_z(normals[:, 0], normals[:, 1], angle)
        nz = normals[:, 2]
        ny, nz = rotate_x(ny, nz, LIGHT_TILT_X)
        nx, nz = rotate_y(nx, nz, LIGHT_TILT_Y)
        shade = shading(np.column_stack((nx, ny, nz)))[:, None]

        out = np.empty((len(profile), VERTEX_STRIDE), dtype=np.float32)
        out[:, 0] = fx + rx
        out[:, 1] = fy + ry
        out[:, 2] = fz + local[:, 2] + lift
        out[:, 3:6] = base * shade + glow
        out[:, 6] = 1.0
        parts.append(out)
    return np.concatenate(parts)


def tilt_cluster(
    vertices: np.ndarray,
    center: tuple[float, float, float] | None = None,
    tilt_x: float = CLUSTER_TILT_X,
    tilt_y: float = CLUSTER_TILT_Y,
) -> np.ndarray:
    """Rotate positions about X then Y around ``center``, in place."""
    fx, fy, fz = center or fan_center()
    rel_x = vertices[:, 0] - fx
    rel_y = vertices[:, 1] - fy
    rel_z = vertices[:, 2] - fz
    rel_y, rel_z = rotate_x(rel_y, rel_z, tilt_x)
    rel_x, rel_z = rotate_y(rel_x, rel_z, tilt_y)
    vertices[:, 0] = fx + rel_x
    vertices[:, 1] = fy + rel_y
    vertices[:, 2] = fz + rel_z
    return vertices


def build_fan(fan_angle: float) -> np.ndarray:
    center = fan_center()
    cluster = np.concatenate((build_hub(center), build_blades(fan_angle, center)))
    return tilt_cluster(cluster, center)


def build_scene(source: GaugeSource, fan_angle: float, theme: ThemeConfig | None = None) -> np.ndarray:
    return np.concatenate((build_gauges(source, theme), build_fan(fan_angle)))
