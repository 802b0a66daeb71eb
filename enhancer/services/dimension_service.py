"""Расчёт размеров с сохранением пропорций.

Все функции чистые: на вход размеры источника и параметры, на выход (ширина, высота).
Округление «половина вверх», как у `Math.round` в браузере, а не банковское.
"""
from __future__ import annotations

import math
from typing import Optional, Tuple

from enhancer import config
from enhancer.models.errors import ValidationError

Dims = Tuple[int, int]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _at_least_one(width: int, height: int) -> Dims:
    return max(1, width), max(1, height)


def _check_source(src_w: int, src_h: int) -> None:
    if src_w <= 0 or src_h <= 0:
        raise ValidationError(f"Некорректный размер источника: {src_w}×{src_h}", field="source", value=(src_w, src_h))


def scaled_dims(src_w: int, src_h: int, scale: float) -> Dims:
    """(round(W·s), round(H·s))."""
    _check_source(src_w, src_h)
    if scale <= 0:
        raise ValidationError("Масштаб должен быть больше нуля", field="scale", value=scale)
    return _at_least_one(round_half_up(src_w * scale), round_half_up(src_h * scale))


def capped_dims(src_w: int, src_h: int, max_dim: int) -> Dims:
    """Вписывает размеры в квадрат max_dim×max_dim; никогда не увеличивает."""
    _check_source(src_w, src_h)
    ratio = min(max_dim / src_w, max_dim / src_h, 1.0)
    return _at_least_one(round_half_up(src_w * ratio), round_half_up(src_h * ratio))


def custom_dims(src_w: int, src_h: int, custom_w: Optional[int] = None, custom_h: Optional[int] = None) -> Dims:
    """Явные размеры; недостающую сторону считаем по пропорциям источника."""
    _check_source(src_w, src_h)
    if custom_w is not None and custom_h is not None:
        return custom_w, custom_h
    if custom_w is not None:
        return custom_w, max(1, round_half_up(custom_w * src_h / src_w))
    if custom_h is not None:
        return max(1, round_half_up(custom_h * src_w / src_h)), custom_h
    return scaled_dims(src_w, src_h, 1.0)


def target_dims(src_w: int, src_h: int, scale: float,
                custom_w: Optional[int] = None, custom_h: Optional[int] = None) -> Dims:
    """Размер поверхности отрисовки: явные размеры, если заданы, иначе масштаб."""
    if custom_w is not None or custom_h is not None:
        return custom_dims(src_w, src_h, custom_w, custom_h)
    return scaled_dims(src_w, src_h, scale)


def validate_dimension(value: Optional[int], name: str) -> Optional[int]:
    """Проверяет явный размер: None допустим, иначе целое >= MIN_CUSTOM_DIMENSION."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Размер «{name}» должен быть целым числом", field=name, value=value)
    if value < config.MIN_CUSTOM_DIMENSION:
        raise ValidationError(
            f"Размеры должны быть не меньше {config.MIN_CUSTOM_DIMENSION}px", field=name, value=value
        )
    return value
