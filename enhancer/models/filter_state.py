"""Параметры обработки, команды их изменения и снимок задания отрисовки.

Принципы:
- SRP: только данные; переходы состояний реализует `services.filter_service`.
- Чистый код: `FilterState` неизменяемый, каждое изменение даёт новый объект.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple, Union

from enhancer import config
from enhancer.models.errors import ValidationError


_FORMAT_ALIASES = {"jpg": "jpeg", "jpe": "jpeg"}


class OutputFormat(str, Enum):
    """Поддерживаемые форматы вывода."""
    JPEG = "jpeg"
    WEBP = "webp"
    PNG = "png"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        if self is OutputFormat.PDF:
            return "application/pdf"
        return f"image/{self.value}"

    @property
    def lossy(self) -> bool:
        return self in (OutputFormat.JPEG, OutputFormat.WEBP)

    @property
    def is_document(self) -> bool:
        return self is OutputFormat.PDF

    @classmethod
    def parse(cls, value: Union[str, "OutputFormat"]) -> "OutputFormat":
        """Разбирает имя формата; псевдонимы (`jpg`) приводятся к каноническому."""
        if isinstance(value, OutputFormat):
            return value
        name = str(value).strip().lower()
        name = _FORMAT_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise ValidationError(f"Неподдерживаемый формат: {value}", field="format", value=value) from None


COLOR_KEYS = ("brightness", "contrast", "saturation")
FILTER_KEYS = ("scale",) + COLOR_KEYS + ("sharpness", "quality")


@dataclass(frozen=True)
class FilterState:
    """Полный набор пользовательских параметров одного прохода отрисовки.

    Fields:
        scale: Масштаб (> 0).
        brightness, contrast, saturation: >= 0, 1.0 — без изменений.
        sharpness: Сила резкости в [0, 1].
        quality: Качество сжатия в (0, 1].
        format: Формат вывода.
        custom_width, custom_height: Явные размеры (>= 10) или None.
        tone: Тональное преобразование после цветокоррекции ("sepia") или None.
    """
    scale: float = 1.0
    brightness: float = 1.0
    contrast: float = 1.0
    saturation: float = 1.0
    sharpness: float = 0.0
    quality: float = config.DEFAULT_QUALITY
    format: OutputFormat = OutputFormat.parse(config.DEFAULT_FORMAT)
    custom_width: Optional[int] = None
    custom_height: Optional[int] = None
    tone: Optional[str] = None

    def reset(self) -> "FilterState":
        """Сбрасывает параметры коррекции, не трогая формат, качество и явные размеры."""
        return replace(self, scale=1.0, brightness=1.0, contrast=1.0, saturation=1.0,
                       sharpness=0.0, tone=None)

    @property
    def has_custom_dimensions(self) -> bool:
        return self.custom_width is not None or self.custom_height is not None

    @property
    def needs_sharpening(self) -> bool:
        return self.sharpness > 0


# ---- Команды ----
@dataclass(frozen=True)
class SetFilter:
    key: str
    value: float


@dataclass(frozen=True)
class ApplyPreset:
    name: str


@dataclass(frozen=True)
class SetCustomDimensions:
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class SetOutput:
    format: Optional[Union[str, OutputFormat]] = None
    quality: Optional[float] = None


@dataclass(frozen=True)
class ResetFilters:
    pass


Command = Union[SetFilter, ApplyPreset, SetCustomDimensions, SetOutput, ResetFilters]


@dataclass(frozen=True)
class EnhancementJob:
    """Снимок параметров и целевых размеров для одного прохода отрисовки."""
    state: FilterState
    width: int
    height: int
    generation: int

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height
