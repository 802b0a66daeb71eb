"""Переходы состояния параметров: `apply(state, command) -> FilterState`.

Функция чистая: при ошибке валидации бросает `ValidationError`, исходное
состояние при этом остаётся прежним (оно неизменяемое).
"""
from __future__ import annotations

import math
from dataclasses import replace
from typing import Any

from enhancer.models.errors import ValidationError
from enhancer.models.filter_state import (
    FILTER_KEYS,
    ApplyPreset,
    Command,
    FilterState,
    OutputFormat,
    ResetFilters,
    SetCustomDimensions,
    SetFilter,
    SetOutput,
)
from enhancer.services import preset_service
from enhancer.services.dimension_service import validate_dimension


def _as_number(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"Параметр {key} должен быть числом", field=key, value=value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Параметр {key} должен быть числом", field=key, value=value) from None
    if not math.isfinite(number):
        raise ValidationError(f"Параметр {key} должен быть конечным числом", field=key, value=value)
    return number


def validate_filter(key: str, value: Any) -> float:
    """Проверяет значение параметра и возвращает его как float."""
    if key not in FILTER_KEYS:
        raise ValidationError(f"Неизвестный параметр: {key}", field="key", value=key)
    number = _as_number(key, value)
    if key == "scale" and number <= 0:
        raise ValidationError("Масштаб должен быть больше нуля", field=key, value=value)
    if key in ("brightness", "contrast", "saturation") and number < 0:
        raise ValidationError(f"Параметр {key} не может быть отрицательным", field=key, value=value)
    if key == "sharpness" and not 0.0 <= number <= 1.0:
        raise ValidationError("Резкость должна быть в диапазоне [0, 1]", field=key, value=value)
    if key == "quality" and not 0.0 < number <= 1.0:
        raise ValidationError("Качество должно быть в диапазоне (0, 1]", field=key, value=value)
    return number


def apply(state: FilterState, command: Command) -> FilterState:
    if isinstance(command, SetFilter):
        return replace(state, **{command.key: validate_filter(command.key, command.value)})
    if isinstance(command, ApplyPreset):
        return preset_service.apply_preset(state, command.name)
    if isinstance(command, SetCustomDimensions):
        width = validate_dimension(command.width, "width")
        height = validate_dimension(command.height, "height")
        return replace(state, custom_width=width, custom_height=height)
    if isinstance(command, SetOutput):
        changes = {}
        if command.format is not None:
            changes["format"] = OutputFormat.parse(command.format)
        if command.quality is not None:
            changes["quality"] = validate_filter("quality", command.quality)
        return replace(state, **changes)
    if isinstance(command, ResetFilters):
        return state.reset()
    raise TypeError(f"unknown command: {command!r}")
