"""Сессия обработки: владеет исходным изображением, параметрами и поверхностью отрисовки.

SOLID:
- SRP: сессия хранит состояние и решает, что перерисовать; расчёты — в сервисах.
- DIP: таймеры приходят извне (`Clock`), сервисы можно подменить.
Инварианты:
- Размер поверхности всегда вычисляется из размеров источника и параметров.
- Текущим считается только последнее задание отрисовки; старые отбрасываются.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from enhancer.models.errors import EnhancerError, NoImageError
from enhancer.models.filter_state import (
    ApplyPreset,
    Command,
    EnhancementJob,
    FilterState,
    OutputFormat,
    ResetFilters,
    SetCustomDimensions,
    SetFilter,
    SetOutput,
)
from enhancer.models.image_model import EncodedOutput, RenderSurface, SourceImage
from enhancer.services import filter_service
from enhancer.services.dimension_service import target_dims
from enhancer.services.encode_service import EncodeService
from enhancer.services.image_service import ImageService
from enhancer.services.process_service import ProcessService
from enhancer.services.render_scheduler import Clock, RenderScheduler

logger = logging.getLogger(__name__)

# Параметры, не влияющие на картинку: перерисовка не нужна
_NON_VISUAL_KEYS = ("quality",)


class EnhancerSession:
    """Публичные операции ядра для слоя UI.

    Без `clock` перерисовка не планируется: вызывающий сам вызывает `render()`.
    С `clock` изменения склеиваются планировщиком, а результат приходит в `on_render`.
    """
    def __init__(
        self,
        clock: Optional[Clock] = None,
        image_service: Optional[ImageService] = None,
        process_service: Optional[ProcessService] = None,
        encode_service: Optional[EncodeService] = None,
        on_render: Optional[Callable[[RenderSurface], None]] = None,
        on_error: Optional[Callable[[EnhancerError], None]] = None,
    ) -> None:
        self._images = image_service or ImageService()
        self._process = process_service or ProcessService()
        self._encoder = encode_service or EncodeService()
        self.on_render = on_render
        self.on_error = on_error

        self._state = FilterState()
        self._source: Optional[SourceImage] = None
        self._surface: Optional[RenderSurface] = None
        self._job: Optional[EnhancementJob] = None
        self._generation = 0
        self._enhanced_generation = -1

        self._scheduler: Optional[RenderScheduler] = None
        if clock is not None:
            self._scheduler = RenderScheduler(clock, self._on_frame, self._on_idle)

    # ---- Состояние ----
    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def source(self) -> Optional[SourceImage]:
        return self._source

    @property
    def surface(self) -> Optional[RenderSurface]:
        return self._surface

    @property
    def current_job(self) -> Optional[EnhancementJob]:
        return self._job

    @property
    def scheduler(self) -> Optional[RenderScheduler]:
        return self._scheduler

    def target_size(self) -> Tuple[int, int]:
        """Размер поверхности для текущих параметров."""
        if self._source is None:
            raise NoImageError("target_size")
        s = self._state
        return target_dims(self._source.width, self._source.height, s.scale, s.custom_width, s.custom_height)

    # ---- Команды ----
    def dispatch(self, command: Command) -> FilterState:
        """Применяет команду; при ошибке валидации состояние не меняется."""
        self._state = filter_service.apply(self._state, command)
        return self._state

    def load(self, source: Union[str, Path, SourceImage]) -> SourceImage:
        """Загружает новое изображение и заменяет текущее.

        Пока загрузка не удалась, прежнее изображение и задачи остаются нетронутыми.
        """
        image = source if isinstance(source, SourceImage) else self._images.load(source)
        self._replace_source(image)
        self._state = replace(self._state, custom_width=None, custom_height=None)
        logger.info("source replaced: %s (%dx%d)", image.origin, image.width, image.height)
        self._schedule(immediate=True)
        return image

    def set_filter(self, key: str, value: float) -> FilterState:
        state = self.dispatch(SetFilter(key, value))
        if key not in _NON_VISUAL_KEYS:
            self._schedule(immediate=False)
        return state

    def apply_preset(self, name: str) -> FilterState:
        state = self.dispatch(ApplyPreset(name))
        logger.info("preset %s applied", name)
        self._schedule(immediate=True)
        return state

    def set_custom_dimensions(self, width: Optional[int] = None, height: Optional[int] = None) -> FilterState:
        state = self.dispatch(SetCustomDimensions(width, height))
        self._schedule(immediate=True)
        return state

    def set_output(self, output_format: Union[str, OutputFormat, None] = None,
                   quality: Optional[float] = None) -> FilterState:
        return self.dispatch(SetOutput(output_format, quality))

    def reset(self) -> FilterState:
        state = self.dispatch(ResetFilters())
        self._schedule(immediate=True)
        return state

    # ---- Отрисовка ----
    def render(self, sharpen: bool = True) -> RenderSurface:
        """Синхронная отрисовка по текущим параметрам (+ резкость, если нужна)."""
        surface = self._render_base()
        if sharpen and self._job is not None and self._job.state.needs_sharpening:
            surface = self.enhance() or surface
        return surface

    def enhance(self) -> Optional[RenderSurface]:
        """Проход резкости для текущей поверхности; повторно не применяется."""
        if self._surface is None or self._job is None:
            return None
        if self._surface.generation != self._job.generation or self._enhanced_generation == self._job.generation:
            return None
        strength = self._job.state.sharpness
        if strength <= 0:
            return None
        self._surface = self._process.enhance(self._surface, strength)
        self._enhanced_generation = self._job.generation
        self._notify()
        return self._surface

    def flush(self) -> Optional[RenderSurface]:
        """Выполняет отложенную работу немедленно, чтобы поверхность соответствовала параметрам."""
        if self._source is None:
            return None
        if self._scheduler is not None:
            self._scheduler.cancel_all()
        if not self._surface_is_current():
            return self.render()
        # no-op when sharpening is not needed or was already applied
        self.enhance()
        return self._surface

    # ---- Вывод ----
    def encode(self, output_format: Union[str, OutputFormat, None] = None,
               quality: Optional[float] = None) -> EncodedOutput:
        """Кодирует текущий результат; состояние сессии при ошибке не меняется."""
        if self._source is None:
            raise NoImageError("encode")
        fmt = OutputFormat.parse(output_format) if output_format is not None else self._state.format
        q = quality if quality is not None else self._state.quality
        surface = self.flush()
        return self._encoder.encode(surface, fmt, q)

    def save(self, output: EncodedOutput, target: Union[str, Path]) -> Path:
        """Записывает результат `encode()` в файл; при ошибке записи — `EncodeError`."""
        return self._encoder.save(output, target)

    def close(self) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel_all()
        if self._source is not None:
            self._source.release()
        self._source = None
        self._surface = None
        self._job = None

    # ---- Internals ----
    def _replace_source(self, image: SourceImage) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel_all()
        previous = self._source
        self._source = image
        self._surface = None
        self._job = None
        if previous is not None and previous is not image:
            previous.release()

    def _surface_is_current(self) -> bool:
        """Последняя отрисовка сделана по текущим визуальным параметрам и размерам."""
        job = self._job
        if self._surface is None or job is None or self._surface.generation != job.generation:
            return False
        if job.size != self.target_size():
            return False
        # quality and format only matter for encoding
        return replace(job.state, quality=self._state.quality, format=self._state.format) == self._state

    def _schedule(self, immediate: bool) -> None:
        if self._scheduler is None or self._source is None:
            return
        if immediate:
            self._scheduler.request_immediate()
        else:
            self._scheduler.request()

    def _snapshot(self) -> EnhancementJob:
        self._generation += 1
        width, height = self.target_size()
        return EnhancementJob(state=self._state, width=width, height=height, generation=self._generation)

    def _render_base(self) -> RenderSurface:
        if self._source is None:
            raise NoImageError("render")
        job = self._snapshot()
        surface = self._process.render(self._source, job)
        self._job = job
        self._surface = surface
        self._notify()
        return surface

    def _notify(self) -> None:
        if self.on_render is not None and self._surface is not None:
            self.on_render(self._surface)

    def _on_frame(self) -> bool:
        if self._source is None:
            return False
        try:
            self._render_base()
        except EnhancerError as exc:
            self._report(exc)
            return False
        return self._job is not None and self._job.state.needs_sharpening

    def _on_idle(self) -> None:
        try:
            self.enhance()
        except EnhancerError as exc:
            self._report(exc)

    def _report(self, exc: EnhancerError) -> None:
        logger.error("scheduled pass failed: %s", exc.message)
        if self.on_error is not None:
            self.on_error(exc)
