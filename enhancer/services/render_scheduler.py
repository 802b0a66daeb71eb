"""Планировщик перерисовки: склеивает серии изменений в одну отрисовку.

Состояния: IDLE → PENDING_DEBOUNCE → PENDING_FRAME → RENDERING → IDLE.
- Любое изменение параметров перезапускает окно тишины (debounce).
- По истечении окна запрашивается кадр; новое изменение до кадра отменяет его.
- Одновременно выполняется не больше одной отрисовки.
- Резкость — отдельный проход «по простою» с ограниченным ожиданием; если его
  опередила новая отрисовка, проход просто отбрасывается (без очереди и повторов).

Принципы:
- DIP: планировщик зависит от абстрактных часов `Clock`; реализация на цикле
  событий Tk — `enhancer.ui.tk_clock.TkClock`, в тестах используются ручные часы.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional

from enhancer import config

logger = logging.getLogger(__name__)


class TaskHandle:
    """Токен отмены отложенной задачи."""
    def __init__(self, name: str = "") -> None:
        self.name = name
        self.cancelled = False
        self.fired = False
        self._on_cancel: List[Callable[[], None]] = []

    @property
    def pending(self) -> bool:
        return not self.cancelled and not self.fired

    def on_cancel(self, fn: Callable[[], None]) -> None:
        self._on_cancel.append(fn)

    def cancel(self) -> bool:
        """Отменяет задачу; возвращает True, если она ещё не успела выполниться."""
        if not self.pending:
            return False
        self.cancelled = True
        for fn in self._on_cancel:
            fn()
        return True

    def __repr__(self) -> str:
        status = "cancelled" if self.cancelled else "fired" if self.fired else "pending"
        return f"TaskHandle({self.name!r}, {status})"


class Clock(ABC):
    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None], name: str = "") -> TaskHandle:
        """Выполнить `callback` через `delay_ms` миллисекунд."""

    @abstractmethod
    def call_when_idle(self, callback: Callable[[], None], timeout_ms: int, name: str = "") -> TaskHandle:
        """Выполнить `callback` при простое цикла событий, но не позже `timeout_ms`."""


class SchedulerState(Enum):
    IDLE = "idle"
    PENDING_DEBOUNCE = "pending_debounce"
    PENDING_FRAME = "pending_frame"
    RENDERING = "rendering"


class RenderScheduler:
    """Два уровня задач: базовая отрисовка (обязательна) и проход улучшения (по возможности).

    Args:
        clock: Источник таймеров.
        on_render: Базовая отрисовка по текущему состоянию; возвращает True,
            если после неё нужен проход резкости.
        on_enhance: Проход резкости поверх последней отрисовки.
    """
    def __init__(
        self,
        clock: Clock,
        on_render: Callable[[], bool],
        on_enhance: Callable[[], None],
        debounce_ms: int = config.DEBOUNCE_MS,
        frame_ms: int = config.FRAME_INTERVAL_MS,
        idle_timeout_ms: int = config.IDLE_TIMEOUT_MS,
    ) -> None:
        self._clock = clock
        self._on_render = on_render
        self._on_enhance = on_enhance
        self._debounce_ms = debounce_ms
        self._frame_ms = frame_ms
        self._idle_timeout_ms = idle_timeout_ms

        self._state = SchedulerState.IDLE
        self._debounce: Optional[TaskHandle] = None
        self._frame: Optional[TaskHandle] = None
        self._idle: Optional[TaskHandle] = None

        self.render_count = 0
        self.enhance_count = 0
        self.dropped_count = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def enhancement_pending(self) -> bool:
        return self._idle is not None and self._idle.pending

    # ---- Public API ----
    def request(self) -> None:
        """Изменение параметров: перезапуск окна тишины."""
        self._cancel_base()
        self._state = SchedulerState.PENDING_DEBOUNCE
        self._debounce = self._clock.call_later(self._debounce_ms, self._on_debounce_expired, name="debounce")

    def request_immediate(self) -> None:
        """Отрисовка в ближайший кадр без окна тишины (загрузка, пресет, сброс)."""
        self._cancel_base()
        self._request_frame()

    def cancel_all(self) -> None:
        """Отменяет все отложенные задачи (например, при загрузке нового изображения)."""
        self._cancel_base()
        self._drop_enhancement("cancelled")
        self._state = SchedulerState.IDLE

    # ---- Internals ----
    def _cancel_base(self) -> None:
        for handle in (self._debounce, self._frame):
            if handle is not None:
                handle.cancel()
        self._debounce = None
        self._frame = None

    def _drop_enhancement(self, reason: str) -> None:
        if self._idle is not None and self._idle.cancel():
            self.dropped_count += 1
            logger.debug("enhancement pass dropped (%s)", reason)
        self._idle = None

    def _request_frame(self) -> None:
        self._state = SchedulerState.PENDING_FRAME
        self._frame = self._clock.call_later(self._frame_ms, self._on_frame, name="frame")

    def _on_debounce_expired(self) -> None:
        self._debounce = None
        self._request_frame()

    def _on_frame(self) -> None:
        self._frame = None
        self._drop_enhancement("superseded")
        self._state = SchedulerState.RENDERING
        try:
            needs_enhance = self._on_render()
        finally:
            # a request() issued from inside the render keeps its own state
            if self._state is SchedulerState.RENDERING:
                self._state = SchedulerState.IDLE
        self.render_count += 1
        if needs_enhance:
            self._idle = self._clock.call_when_idle(self._on_idle, self._idle_timeout_ms, name="enhance")

    def _on_idle(self) -> None:
        self._idle = None
        self.enhance_count += 1
        self._on_enhance()
