"""Built-in dashboard palettes."""

from __future__ import annotations

from .models import ThemeConfig

DEFAULT_THEME_NAME = "Holo Night"

THEMES: dict[str, ThemeConfig] = {
    "Holo Night": ThemeConfig(
        name="Holo Night",
        background="#101020",
        panel="#202040",
        cpu_bar="#00FF88",
        memory_bar="#00F5FF",
        swap_bar="#9D4EDD",
        accent="#00F5FF",
        accent_alt="#FF6B35",
        text_primary="#E0E0FF",
        text_warning="#FF4040",
    ),
    "Amber Console": ThemeConfig(
        name="Amber Console",
        background="#1A140E",
        panel="#362315",
        cpu_bar="#FFB347",
        memory_bar="#FFD166",
        swap_bar="#E3CFA8",
        accent="#FFB347",
        accent_alt="#FF6B35",
        text_primary="#FFF7E8",
        text_warning="#FF4040",
    ),
}


def list_themes() -> list[str]:
    return sorted(THEMES.keys())


def get_theme(name: str | None) -> ThemeConfig:
    if not name:
        return THEMES[DEFAULT_THEME_NAME]
    return THEMES.get(name, THEMES[DEFAULT_THEME_NAME])


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    return tuple(int(value[i : i + 2], 16) for i in (1, 3, 5))  # type: ignore[return-value]


def hex_to_rgba(value: str, alpha: float = 1.0) -> tuple[float, float, float, float]:
    r, g, b = hex_to_rgb(value)
    return (r / 255.0, g / 255.0, b / 255.0, alpha)
