"""Готовые пресеты цветокоррекции.

Пресет полностью перезаписывает цветовые поля `FilterState`; масштаб, резкость
и явные размеры не трогает. Исключение — `none`: это полный сброс коррекции.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from enhancer.models.errors import ValidationError
from enhancer.models.filter_state import FilterState


@dataclass(frozen=True)
class Preset:
    name: str
    title: str
    brightness: Optional[float]  # None — не менять
    contrast: float
    saturation: float
    tone: Optional[str] = None
    resets_all: bool = False


PRESETS: Dict[str, Preset] = {
    "none": Preset("none", "Без фильтра", 1.0, 1.0, 1.0, resets_all=True),
    "vintage": Preset("vintage", "Винтаж", 1.1, 1.2, 0.8),
    "blackwhite": Preset("blackwhite", "Ч/Б", None, 1.2, 0.0),
    "sepia": Preset("sepia", "Сепия", 1.1, 1.1, 0.6, tone="sepia"),
    "vibrant": Preset("vibrant", "Яркий", 1.1, 1.3, 1.4),
}


def preset_names() -> Tuple[str, ...]:
    return tuple(PRESETS)


def get_preset(name: str) -> Preset:
    try:
        return PRESETS[name]
    except KeyError:
        raise ValidationError(f"Неизвестный пресет: {name}", field="preset", value=name) from None


def apply_preset(state: FilterState, name: str) -> FilterState:
    """Возвращает новое состояние с параметрами пресета."""
    preset = get_preset(name)
    if preset.resets_all:
        return state.reset()
    brightness = state.brightness if preset.brightness is None else preset.brightness
    return replace(
        state,
        brightness=brightness,
        contrast=preset.contrast,
        saturation=preset.saturation,
        tone=preset.tone,
    )
