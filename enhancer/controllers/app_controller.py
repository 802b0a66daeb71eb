"""Контроллер приложения: связывает UI с сессией обработки.

SOLID:
- SRP: класс переводит события UI в операции `EnhancerSession` и показывает результат.
- DIP: вся логика обработки и планирования инкапсулирована в сессии и сервисах.
Clean Code:
- Обработчики компактны; ошибки ядра показываются в строке состояния.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from tkinter import TclError, filedialog
from typing import Optional

import customtkinter as ctk

from enhancer.controllers.session import EnhancerSession
from enhancer.models.errors import EnhancerError
from enhancer.models.filter_state import OutputFormat
from enhancer.models.image_model import RenderSurface
from enhancer.ui.bottom_bar import BottomBar
from enhancer.ui.image_viewer import ImageViewer
from enhancer.ui.sidebar import Sidebar
from enhancer.ui.tk_clock import TkClock

logger = logging.getLogger(__name__)


@dataclass
class AppController:
    """Связывает элементы UI с прикладной логикой.

    Ответственности:
    - Бинд событий (UI -> контроллер).
    - Загрузка изображений и изменение параметров через `EnhancerSession`.
    - Отображение результата, размеров и ошибок.
    - Сохранение закодированного результата на диск.
    """
    viewer: ImageViewer
    sidebar: Sidebar
    bottom: BottomBar
    window: ctk.CTk

    _session: Optional[EnhancerSession] = field(default=None, init=False)

    def bind_events(self) -> None:
        """Создаёт сессию и регистрирует обработчики событий между UI-компонентами."""
        self._session = EnhancerSession(
            clock=TkClock(self.window),
            on_render=self._handle_render,
            on_error=self._show_error,
        )
        self.window.protocol("WM_DELETE_WINDOW", self._handle_close)
        self.window.bind("<Control-o>", lambda _e: self._handle_open_file())
        self.window.bind("<Control-s>", lambda _e: self._handle_save())
        self.window.bind("<Control-r>", lambda _e: self._handle_reset())

        self.sidebar.on_load_url = self._handle_load_url
        self.sidebar.on_open_file = self._handle_open_file
        self.sidebar.on_filter_change = self._handle_filter_change
        self.sidebar.on_preset = self._handle_preset
        self.sidebar.on_apply_dimensions = self._handle_apply_dimensions
        self.sidebar.on_format_change = self._handle_format_change
        self.sidebar.on_quality_change = self._handle_quality_change
        self.sidebar.on_reset = self._handle_reset
        self.sidebar.on_save = self._handle_save

        self.viewer.on_zoom_change = self.bottom.set_zoom_percent
        self.bottom.on_zoom_change = self._handle_zoom_change
        self.bottom.on_zoom_fit = self._handle_zoom_fit
        self.bottom.on_compare_mode_change = self.viewer.set_compare_mode
        self.bottom.on_wipe_change = self.viewer.set_wipe_percent

    @property
    def session(self) -> EnhancerSession:
        if self._session is None:
            raise RuntimeError("bind_events() was not called")
        return self._session

    def open_source(self, source: str | Path) -> None:
        """Загружает изображение по URL или пути (например, из командной строки)."""
        self._load(source)

    # ---- Handlers ----
    def _handle_load_url(self, url: str) -> None:
        self._load(url)

    def _handle_open_file(self) -> None:
        try:
            file_path = filedialog.askopenfilename(
                title="Выберите изображение",
                filetypes=(
                    ("Images", "*.png *.jpg *.jpeg *.bmp *.gif *.tiff *.webp"),
                    ("All files", "*.*"),
                ),
            )
        except TclError:
            # dialog cannot open
            return
        if file_path:
            self._load(Path(file_path))

    def _handle_filter_change(self, key: str, value: float) -> None:
        try:
            self.session.set_filter(key, value)
        except EnhancerError as exc:
            self._show_error(exc)

    def _handle_preset(self, name: str) -> None:
        try:
            state = self.session.apply_preset(name)
        except EnhancerError as exc:
            self._show_error(exc)
            return
        self.sidebar.set_filter_values(state)

    def _handle_apply_dimensions(self, width: Optional[int], height: Optional[int]) -> None:
        try:
            state = self.session.set_custom_dimensions(width, height)
        except EnhancerError as exc:
            self._show_error(exc)
            return
        if self.session.source is not None:
            self.sidebar.set_dimension_inputs(*self.session.target_size())
        logger.debug("custom dimensions %s x %s", state.custom_width, state.custom_height)

    def _handle_format_change(self, fmt: OutputFormat) -> None:
        self.session.set_output(output_format=fmt)

    def _handle_quality_change(self, quality: float) -> None:
        try:
            self.session.set_output(quality=quality)
        except EnhancerError as exc:
            self._show_error(exc)

    def _handle_reset(self) -> None:
        state = self.session.reset()
        self.sidebar.set_filter_values(state)

    def _handle_save(self) -> None:
        try:
            output = self.session.encode()
        except EnhancerError as exc:
            self._show_error(exc)
            return
        try:
            target = filedialog.asksaveasfilename(
                title="Сохранить изображение",
                initialfile=output.filename,
                defaultextension=Path(output.filename).suffix,
            )
        except TclError:
            return
        if not target:
            return
        try:
            self.session.save(output, target)
        except EnhancerError as exc:
            self._show_error(exc)
            return
        self.bottom.set_status(f"Сохранено: {target} ({output.size_bytes // 1024} КБ)")

    def _handle_zoom_change(self, zoom_percent: int) -> None:
        self.viewer.set_zoom_percent(zoom_percent)
        self.bottom.set_zoom_percent(zoom_percent)

    def _handle_zoom_fit(self) -> None:
        self.viewer.set_zoom_to_fit()
        self.bottom.set_zoom_percent(self.viewer.get_zoom_percent())

    def _handle_close(self) -> None:
        self.session.close()
        self.window.destroy()

    # ---- Helpers ----
    def _load(self, source: str | Path) -> None:
        self.bottom.set_status("Загрузка…")
        self.window.update_idletasks()
        try:
            image = self.session.load(source)
        except EnhancerError as exc:
            self._show_error(exc)
            return
        self.viewer.set_source(image.image)
        self.sidebar.set_source_info(image)
        self.bottom.set_sizes((image.width, image.height), None)
        self.sidebar.set_filter_values(self.session.state)
        self.bottom.set_zoom_percent(self.viewer.get_zoom_percent())
        self.bottom.set_status("Изображение загружено")
        self.window.title(f"Image Enhancer: {Path(image.origin).name or image.origin}")

    def _handle_render(self, surface: RenderSurface) -> None:
        self.viewer.set_result(surface.image)
        self.sidebar.set_result_size(surface.width, surface.height)
        source = self.session.source
        self.bottom.set_sizes((source.width, source.height) if source is not None else None, surface.size)

    def _show_error(self, exc: EnhancerError) -> None:
        logger.warning("%s: %s", exc.error_code, exc.message)
        self.bottom.set_status(f"Ошибка: {exc.message}", error=True)
