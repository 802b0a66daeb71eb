"""Боковая панель: источник, параметры коррекции, пресеты, размеры и вывод.

Принципы:
- SRP: управляет только UI параметров, не содержит алгоритмов.
- ISP: выдаёт значения через компактные методы `get_*`, события через `on_*`.
"""
from __future__ import annotations

import random
from typing import Callable, Dict, Optional, Tuple

import customtkinter as ctk

from enhancer import config
from enhancer.models.filter_state import FilterState, OutputFormat
from enhancer.models.image_model import SourceImage
from enhancer.services.dimension_service import custom_dims
from enhancer.services.preset_service import PRESETS

# key -> (подпись, от, до, шагов, формат значения)
_SLIDERS: Dict[str, Tuple[str, float, float, int, Callable[[float], str]]] = {
    "scale": ("Масштаб", 0.1, 3.0, 29, lambda v: f"{v:.1f}x"),
    "brightness": ("Яркость", 0.0, 2.0, 200, lambda v: f"{round(v * 100)}%"),
    "contrast": ("Контраст", 0.0, 2.0, 200, lambda v: f"{round(v * 100)}%"),
    "saturation": ("Насыщенность", 0.0, 2.0, 200, lambda v: f"{round(v * 100)}%"),
    "sharpness": ("Резкость", 0.0, 1.0, 100, lambda v: f"{round(v * 100)}%"),
}

_FORMAT_LABELS = {"JPEG": OutputFormat.JPEG, "PNG": OutputFormat.PNG, "WEBP": OutputFormat.WEBP, "PDF": OutputFormat.PDF}


def _parse_dimension(text: str) -> Optional[int]:
    text = text.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class Sidebar(ctk.CTkScrollableFrame):
    """Панель инструментов с блоками: источник, коррекция, пресеты, размер, вывод."""
    def __init__(self, master: ctk.CTk, **kwargs) -> None:
        super().__init__(master, width=300, **kwargs)

        self.grid_columnconfigure(0, weight=1)

        # Callbacks
        self.on_load_url: Optional[Callable[[str], None]] = None
        self.on_open_file: Optional[Callable[[], None]] = None
        self.on_filter_change: Optional[Callable[[str, float], None]] = None
        self.on_preset: Optional[Callable[[str], None]] = None
        self.on_apply_dimensions: Optional[Callable[[Optional[int], Optional[int]], None]] = None
        self.on_format_change: Optional[Callable[[OutputFormat], None]] = None
        self.on_quality_change: Optional[Callable[[float], None]] = None
        self.on_reset: Optional[Callable[[], None]] = None
        self.on_save: Optional[Callable[[], None]] = None

        self._source_size: Optional[Tuple[int, int]] = None
        row = 0

        # Источник
        row = self._section_title("Источник", row)
        self._url_entry = ctk.CTkEntry(self, placeholder_text="https://…/image.jpg")
        self._url_entry.grid(row=row, column=0, padx=8, pady=(0, 4), sticky="ew")
        self._url_entry.bind("<Return>", lambda _e: self._emit_load_url())
        row += 1
        self._load_btn = ctk.CTkButton(self, text="Загрузить по URL", command=self._emit_load_url)
        self._load_btn.grid(row=row, column=0, padx=8, pady=(0, 4), sticky="ew")
        row += 1
        self._open_btn = ctk.CTkButton(self, text="Открыть файл…", command=self._emit_open_file)
        self._open_btn.grid(row=row, column=0, padx=8, pady=(0, 4), sticky="ew")
        row += 1
        self._sample_btn = ctk.CTkButton(self, text="Пример изображения", fg_color="transparent",
                                         border_width=1, command=self._fill_sample_url)
        self._sample_btn.grid(row=row, column=0, padx=8, pady=(0, 4), sticky="ew")
        row += 1

        self._source_val = ctk.StringVar(value="—")
        self._result_val = ctk.StringVar(value="—")
        ctk.CTkLabel(self, textvariable=self._source_val, anchor="w", justify="left", wraplength=270).grid(
            row=row, column=0, padx=8, pady=(0, 2), sticky="ew"
        )
        row += 1
        ctk.CTkLabel(self, textvariable=self._result_val, anchor="w", justify="left").grid(
            row=row, column=0, padx=8, pady=(0, 8), sticky="ew"
        )
        row += 1

        # Коррекция
        row = self._section_title("Коррекция", row)
        self._sliders: Dict[str, ctk.CTkSlider] = {}
        self._slider_vals: Dict[str, ctk.StringVar] = {}
        for key, (label, lo, hi, steps, fmt) in _SLIDERS.items():
            row = self._add_slider(key, label, lo, hi, steps, fmt, row)

        # Пресеты
        row = self._section_title("Пресеты", row)
        self._preset_titles = {preset.title: name for name, preset in PRESETS.items()}
        self._preset_buttons = ctk.CTkSegmentedButton(
            self, values=list(self._preset_titles), command=self._on_preset_click
        )
        self._preset_buttons.grid(row=row, column=0, padx=8, pady=(0, 8), sticky="ew")
        row += 1

        # Размер
        row = self._section_title("Размер", row)
        dims = ctk.CTkFrame(self, fg_color="transparent")
        dims.grid(row=row, column=0, padx=8, pady=(0, 4), sticky="ew")
        dims.grid_columnconfigure((0, 2), weight=1)
        self._width_entry = ctk.CTkEntry(dims, placeholder_text="Ширина", width=80)
        self._width_entry.grid(row=0, column=0, sticky="ew")
        ctk.CTkLabel(dims, text="×", width=16).grid(row=0, column=1)
        self._height_entry = ctk.CTkEntry(dims, placeholder_text="Высота", width=80)
        self._height_entry.grid(row=0, column=2, sticky="ew")
        self._width_entry.bind("<FocusOut>", lambda _e: self._complete_dimension("width"))
        self._height_entry.bind("<FocusOut>", lambda _e: self._complete_dimension("height"))
        row += 1
        self._apply_dims_btn = ctk.CTkButton(self, text="Применить размер", command=self._emit_apply_dimensions)
        self._apply_dims_btn.grid(row=row, column=0, padx=8, pady=(0, 8), sticky="ew")
        row += 1

        # Вывод
        row = self._section_title("Сохранение", row)
        self._format_menu = ctk.CTkOptionMenu(self, values=list(_FORMAT_LABELS), command=self._on_format_select)
        self._format_menu.set("JPEG")
        self._format_menu.grid(row=row, column=0, padx=8, pady=(0, 4), sticky="ew")
        row += 1
        self._quality_frame = ctk.CTkFrame(self, fg_color="transparent")
        self._quality_frame.grid(row=row, column=0, padx=8, pady=(0, 4), sticky="ew")
        self._quality_frame.grid_columnconfigure(1, weight=1)
        self._quality_row = row
        ctk.CTkLabel(self._quality_frame, text="Качество").grid(row=0, column=0, padx=(0, 6), sticky="w")
        self._quality_val = ctk.StringVar(value="85%")
        self._quality_slider = ctk.CTkSlider(
            self._quality_frame, from_=1, to=100, number_of_steps=99, command=self._on_quality_slider
        )
        self._quality_slider.set(85)
        self._quality_slider.grid(row=0, column=1, sticky="ew")
        ctk.CTkLabel(self._quality_frame, textvariable=self._quality_val, width=44, anchor="e").grid(
            row=0, column=2, padx=(6, 0), sticky="e"
        )
        row += 1

        self._reset_btn = ctk.CTkButton(self, text="Сбросить", fg_color="gray40", command=self._emit_reset)
        self._reset_btn.grid(row=row, column=0, padx=8, pady=(8, 4), sticky="ew")
        row += 1
        self._save_btn = ctk.CTkButton(self, text="Сохранить…", command=self._emit_save)
        self._save_btn.grid(row=row, column=0, padx=8, pady=(0, 8), sticky="ew")

    # ---- Layout helpers ----
    def _section_title(self, text: str, row: int) -> int:
        label = ctk.CTkLabel(self, text=text, font=ctk.CTkFont(size=16, weight="bold"))
        label.grid(row=row, column=0, padx=8, pady=(8, 4), sticky="w")
        return row + 1

    def _add_slider(self, key: str, label: str, lo: float, hi: float, steps: int,
                    fmt: Callable[[float], str], row: int) -> int:
        frame = ctk.CTkFrame(self, fg_color="transparent")
        frame.grid(row=row, column=0, padx=8, pady=(0, 4), sticky="ew")
        frame.grid_columnconfigure(0, weight=1)
        value = ctk.StringVar(value=fmt(1.0 if key != "sharpness" else 0.0))
        ctk.CTkLabel(frame, text=label, anchor="w").grid(row=0, column=0, sticky="w")
        ctk.CTkLabel(frame, textvariable=value, anchor="e", width=48).grid(row=0, column=1, sticky="e")
        slider = ctk.CTkSlider(frame, from_=lo, to=hi, number_of_steps=steps,
                               command=lambda v, k=key: self._on_slider(k, v))
        slider.set(1.0 if key != "sharpness" else 0.0)
        slider.grid(row=1, column=0, columnspan=2, sticky="ew")
        self._sliders[key] = slider
        self._slider_vals[key] = value
        return row + 1

    # ---- Public API ----
    def get_url(self) -> str:
        return self._url_entry.get().strip()

    def set_source_info(self, source: SourceImage) -> None:
        """Показывает размеры исходника и подставляет их как подсказки в поля размера."""
        self._source_val.set(f"Оригинал: {source.width} × {source.height} px")
        self._source_size = (source.width, source.height)
        self.set_dimension_inputs(None, None)
        self._width_entry.configure(placeholder_text=str(source.width))
        self._height_entry.configure(placeholder_text=str(source.height))

    def set_result_size(self, width: int, height: int) -> None:
        self._result_val.set(f"Результат: {width} × {height} px")

    def set_filter_values(self, state: FilterState) -> None:
        """Синхронизирует слайдеры с состоянием (без генерации событий)."""
        for key, slider in self._sliders.items():
            value = float(getattr(state, key))
            slider.set(value)
            self._slider_vals[key].set(_SLIDERS[key][4](value))
        self._quality_slider.set(round(state.quality * 100))
        self._quality_val.set(f"{round(state.quality * 100)}%")

    def get_dimension_inputs(self) -> Tuple[Optional[int], Optional[int]]:
        return _parse_dimension(self._width_entry.get()), _parse_dimension(self._height_entry.get())

    def set_dimension_inputs(self, width: Optional[int], height: Optional[int]) -> None:
        for entry, value in ((self._width_entry, width), (self._height_entry, height)):
            entry.delete(0, "end")
            if value is not None:
                entry.insert(0, str(value))

    # ---- Events ----
    def _emit_load_url(self) -> None:
        if self.on_load_url:
            self.on_load_url(self.get_url())

    def _fill_sample_url(self) -> None:
        self._url_entry.delete(0, "end")
        self._url_entry.insert(0, random.choice(config.SAMPLE_IMAGE_URLS))

    def _emit_open_file(self) -> None:
        if self.on_open_file:
            self.on_open_file()

    def _on_slider(self, key: str, value: float) -> None:
        value = round(float(value), 1 if key == "scale" else 2)
        self._slider_vals[key].set(_SLIDERS[key][4](value))
        if self.on_filter_change:
            self.on_filter_change(key, value)

    def _on_preset_click(self, title: str) -> None:
        if self.on_preset:
            self.on_preset(self._preset_titles[title])

    def _complete_dimension(self, changed: str) -> None:
        """Дополняет пустую вторую сторону по пропорциям исходника."""
        if self._source_size is None:
            return
        width, height = self.get_dimension_inputs()
        if changed == "width" and width is not None and width >= 1 and not self._height_entry.get().strip():
            _, height = custom_dims(*self._source_size, custom_w=width)
            self._height_entry.insert(0, str(height))
        elif changed == "height" and height is not None and height >= 1 and not self._width_entry.get().strip():
            width, _ = custom_dims(*self._source_size, custom_h=height)
            self._width_entry.insert(0, str(width))

    def _emit_apply_dimensions(self) -> None:
        if self.on_apply_dimensions:
            width, height = self.get_dimension_inputs()
            self.on_apply_dimensions(width, height)

    def _on_format_select(self, label: str) -> None:
        fmt = _FORMAT_LABELS[label]
        # для PDF качество не используется
        if fmt.is_document:
            self._quality_frame.grid_remove()
        else:
            self._quality_frame.grid(row=self._quality_row, column=0, padx=8, pady=(0, 4), sticky="ew")
        if self.on_format_change:
            self.on_format_change(fmt)

    def _on_quality_slider(self, value: float) -> None:
        percent = int(round(value))
        self._quality_val.set(f"{percent}%")
        if self.on_quality_change:
            self.on_quality_change(percent / 100)

    def _emit_reset(self) -> None:
        self._preset_buttons.set(PRESETS["none"].title)
        if self.on_reset:
            self.on_reset()

    def _emit_save(self) -> None:
        if self.on_save:
            self.on_save()
