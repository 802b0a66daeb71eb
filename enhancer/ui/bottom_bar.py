"""Нижняя панель: строка состояния и управление просмотром."""
from __future__ import annotations

from typing import Callable, Optional, Tuple

import customtkinter as ctk

_ZOOM_CHOICES = ("По окну", "25%", "50%", "100%", "200%", "400%")
_COMPARE_MODES = ("Нет", "Шторка", "2-up")
_ERROR_COLOR = "#d9534f"


class BottomBar(ctk.CTkFrame):
    """Слева — сообщения и размеры «исходник → результат», справа — масштаб и сравнение."""
    def __init__(self, master: ctk.CTk, **kwargs) -> None:
        super().__init__(master, height=64, **kwargs)

        self.on_zoom_change: Optional[Callable[[int], None]] = None
        self.on_zoom_fit: Optional[Callable[[], None]] = None
        self.on_compare_mode_change: Optional[Callable[[str], None]] = None
        self.on_wipe_change: Optional[Callable[[int], None]] = None

        self.grid_columnconfigure(0, weight=1)

        # Состояние
        status = ctk.CTkFrame(self, fg_color="transparent")
        status.grid(row=0, column=0, padx=10, pady=8, sticky="ew")
        status.grid_columnconfigure(0, weight=1)
        self._message = ctk.StringVar(value="Загрузите изображение по URL или из файла")
        self._message_label = ctk.CTkLabel(status, textvariable=self._message, anchor="w")
        self._message_label.grid(row=0, column=0, sticky="ew")
        self._sizes = ctk.StringVar(value="")
        ctk.CTkLabel(status, textvariable=self._sizes, anchor="w", text_color="gray55").grid(
            row=1, column=0, sticky="ew"
        )
        self._message_color = self._message_label.cget("text_color")

        # Просмотр
        view = ctk.CTkFrame(self, fg_color="transparent")
        view.grid(row=0, column=1, padx=(6, 10), pady=8, sticky="e")

        self._zoom_menu = ctk.CTkOptionMenu(view, values=list(_ZOOM_CHOICES), width=96, command=self._on_zoom_choice)
        self._zoom_menu.set("100%")
        self._zoom_menu.grid(row=0, column=0, padx=(0, 6))
        self._zoom_slider = ctk.CTkSlider(view, from_=10, to=400, number_of_steps=390, width=160,
                                          command=self._on_zoom_slider)
        self._zoom_slider.set(100)
        self._zoom_slider.grid(row=0, column=1, padx=6)

        self._compare = ctk.CTkSegmentedButton(view, values=list(_COMPARE_MODES), command=self._on_compare)
        self._compare.set("Нет")
        self._compare.grid(row=0, column=2, padx=6)
        self._wipe_slider = ctk.CTkSlider(view, from_=0, to=100, number_of_steps=100, width=100,
                                          command=lambda v: self._emit(self.on_wipe_change, int(round(v))))
        self._wipe_slider.set(50)

    # ---- Public API ----
    def set_zoom_percent(self, percent: int) -> None:
        self._zoom_slider.set(percent)
        self._zoom_menu.set(f"{percent}%")

    def set_status(self, text: str, error: bool = False) -> None:
        self._message.set(text)
        self._message_label.configure(text_color=_ERROR_COLOR if error else self._message_color)

    def set_sizes(self, source: Optional[Tuple[int, int]], result: Optional[Tuple[int, int]]) -> None:
        parts = []
        if source is not None:
            parts.append(f"{source[0]}×{source[1]}")
        if result is not None:
            parts.append(f"{result[0]}×{result[1]}")
        self._sizes.set(" → ".join(parts))

    # ---- Events ----
    def _emit(self, callback: Optional[Callable[..., None]], *args) -> None:
        if callback:
            callback(*args)

    def _on_zoom_slider(self, value: float) -> None:
        percent = int(round(value))
        self._zoom_menu.set(f"{percent}%")
        self._emit(self.on_zoom_change, percent)

    def _on_zoom_choice(self, choice: str) -> None:
        if choice == _ZOOM_CHOICES[0]:
            self._emit(self.on_zoom_fit)
        else:
            self._emit(self.on_zoom_change, int(choice.rstrip("%")))

    def _on_compare(self, mode: str) -> None:
        if mode == "Шторка":
            self._wipe_slider.grid(row=0, column=3, padx=(6, 0))
        else:
            self._wipe_slider.grid_remove()
        self._emit(self.on_compare_mode_change, mode)
