"""Виджет просмотра: результат обработки, сравнение «до/после», масштаб и панорамирование.

Принципы:
- SRP: отвечает только за представление и интеракции с изображением.
- Размер содержимого задаёт результат (он может отличаться от исходника по
  масштабу); «до» подгоняется под тот же прямоугольник.
"""
from __future__ import annotations

from typing import Callable, List, Optional, Tuple

import customtkinter as ctk
import tkinter as tk
from PIL import Image, ImageTk

_MIN_ZOOM, _MAX_ZOOM = 0.1, 4.0
_GAP = 16


class ImageViewer(ctk.CTkFrame):
    """Канва с режимами: только результат, «шторка» и side-by-side."""
    def __init__(self, master: ctk.CTk | tk.Misc, **kwargs) -> None:
        super().__init__(master, **kwargs)
        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=1)

        self._canvas = tk.Canvas(self, highlightthickness=0, bg=self._get_canvas_bg())
        self._canvas.grid(row=0, column=0, sticky="nsew")

        self._before: Optional[Image.Image] = None
        self._after: Optional[Image.Image] = None
        # keep references, otherwise Tk drops the images
        self._tk_images: List[ImageTk.PhotoImage] = []

        self._scale_factor: float = 1.0
        self._top_left: Optional[Tuple[int, int]] = None
        self._pan_origin: Optional[Tuple[int, int, int, int]] = None

        self.on_zoom_change: Optional[Callable[[int], None]] = None

        # compare modes: "off" | "wipe" | "side_by_side"
        self._compare_mode: str = "off"
        self._wipe_ratio: float = 0.5
        self._hold_before: bool = False

        self._canvas.bind("<Configure>", lambda _e: self._redraw())
        self._canvas.bind("<MouseWheel>", self._on_mouse_wheel)      # Windows/macOS
        self._canvas.bind("<Button-4>", self._on_mouse_wheel_linux)  # Linux scroll up
        self._canvas.bind("<Button-5>", self._on_mouse_wheel_linux)  # Linux scroll down
        self._canvas.bind("<ButtonPress-1>", self._on_pan_start)
        self._canvas.bind("<B1-Motion>", self._on_pan_move)
        self._canvas.bind("<ButtonRelease-1>", lambda _e: setattr(self, "_pan_origin", None))
        # Hold space to preview "before"
        self._canvas.bind("<KeyPress-space>", lambda _e: self._set_hold_before(True))
        self._canvas.bind("<KeyRelease-space>", lambda _e: self._set_hold_before(False))

    # ---- Public API ----
    def set_source(self, image: Image.Image) -> None:
        """Новый исходник: сбрасывает результат и масштаб «по размеру окна»."""
        self._before = image
        self._after = None
        self._scale_factor = self._fit_scale()
        self._top_left = None
        self._redraw()

    def set_result(self, image: Optional[Image.Image]) -> None:
        """Обновляет результат; позиция и масштаб сохраняются."""
        self._after = image
        self._redraw()

    def set_zoom_to_fit(self) -> None:
        self._scale_factor = self._fit_scale()
        self._top_left = None
        self._redraw()

    def set_zoom_percent(self, zoom_percent: int) -> None:
        """Устанавливает масштаб в процентах (10–400%)."""
        self._scale_factor = max(_MIN_ZOOM, min(_MAX_ZOOM, zoom_percent / 100.0))
        self._redraw()

    def get_zoom_percent(self) -> int:
        return int(round(self._scale_factor * 100))

    def set_compare_mode(self, mode: str) -> None:
        """Режим сравнения: 'Нет' | 'Шторка' | '2-up'."""
        mapping = {"Нет": "off", "Шторка": "wipe", "2-up": "side_by_side"}
        self._compare_mode = mapping.get(mode, "off")
        self._top_left = None
        self._redraw()

    def set_wipe_percent(self, percent: int) -> None:
        self._wipe_ratio = max(0.0, min(1.0, percent / 100.0))
        if self._compare_mode == "wipe":
            self._redraw()

    # ---- Internals ----
    def _content_image(self) -> Optional[Image.Image]:
        return self._after if self._after is not None else self._before

    def _fit_scale(self) -> float:
        content = self._content_image()
        if content is None:
            return 1.0
        canvas_w = max(1, int(self._canvas.winfo_width()))
        canvas_h = max(1, int(self._canvas.winfo_height()))
        img_w, img_h = content.size
        return max(_MIN_ZOOM, min(_MAX_ZOOM, min(canvas_w / img_w, canvas_h / img_h)))

    def _clamp_top_left(self, content_w: int, content_h: int) -> Tuple[int, int]:
        canvas_w = int(self._canvas.winfo_width())
        canvas_h = int(self._canvas.winfo_height())
        centered = ((canvas_w - content_w) // 2, (canvas_h - content_h) // 2)
        if self._top_left is None:
            x = centered[0] if content_w <= canvas_w else 0
            y = centered[1] if content_h <= canvas_h else 0
            return x, y
        x, y = self._top_left
        x = centered[0] if content_w <= canvas_w else max(canvas_w - content_w, min(0, x))
        y = centered[1] if content_h <= canvas_h else max(canvas_h - content_h, min(0, y))
        return x, y

    def _redraw(self) -> None:
        self._canvas.delete("all")
        self._tk_images.clear()
        content = self._content_image()
        if content is None or self._before is None:
            return

        w = max(1, int(content.size[0] * self._scale_factor))
        h = max(1, int(content.size[1] * self._scale_factor))
        before = self._before.resize((w, h), Image.Resampling.LANCZOS)
        after = self._after.resize((w, h), Image.Resampling.LANCZOS) if self._after is not None else None
        shown_after = after if (after is not None and not self._hold_before) else before

        two_up = self._compare_mode == "side_by_side" and after is not None
        content_w = w * 2 + _GAP if two_up else w
        self._top_left = self._clamp_top_left(content_w, h)
        ox, oy = self._top_left

        if self._compare_mode == "wipe" and after is not None:
            split = int(round(w * self._wipe_ratio))
            self._place(before.crop((0, 0, split, h)), ox, oy)
            self._place(shown_after.crop((split, 0, w, h)), ox + split, oy)
        elif two_up:
            self._place(before, ox, oy)
            self._place(shown_after, ox + w + _GAP, oy)
        else:
            self._place(shown_after, ox, oy)

    def _place(self, image: Image.Image, x: int, y: int) -> None:
        if image.size[0] == 0 or image.size[1] == 0:
            return
        tk_image = ImageTk.PhotoImage(image)
        self._tk_images.append(tk_image)
        self._canvas.create_image(x, y, image=tk_image, anchor="nw")

    def _get_canvas_bg(self) -> str:
        return "#1f1f1f" if ctk.get_appearance_mode().lower() == "dark" else "#f2f2f2"

    def _set_hold_before(self, active: bool) -> None:
        if self._compare_mode in ("off", "wipe") and self._hold_before != active:
            self._hold_before = active
            self._redraw()

    # ---- Mouse wheel zoom ----
    def _on_mouse_wheel(self, event: tk.Event) -> None:
        if event.delta:
            self._zoom_at_point(event.x, event.y, 1.1 if event.delta > 0 else 1.0 / 1.1)

    def _on_mouse_wheel_linux(self, event: tk.Event) -> None:
        # On X11, Button-4 is up, Button-5 is down
        self._zoom_at_point(event.x, event.y, 1.1 if getattr(event, "num", None) == 4 else 1.0 / 1.1)

    def _zoom_at_point(self, cx: int, cy: int, factor: float) -> None:
        if self._top_left is None or self._content_image() is None:
            return
        old_scale = self._scale_factor
        new_scale = max(_MIN_ZOOM, min(_MAX_ZOOM, old_scale * factor))
        if abs(new_scale - old_scale) < 1e-6:
            return
        # keep the image point under the cursor in place
        ox, oy = self._top_left
        ix, iy = (cx - ox) / old_scale, (cy - oy) / old_scale
        self._scale_factor = new_scale
        self._top_left = (int(round(cx - ix * new_scale)), int(round(cy - iy * new_scale)))
        self._redraw()
        if self.on_zoom_change:
            self.on_zoom_change(self.get_zoom_percent())

    # ---- Panning ----
    def _on_pan_start(self, event: tk.Event) -> None:
        if self._top_left is None:
            return
        self._canvas.focus_set()
        self._pan_origin = (event.x, event.y, *self._top_left)

    def _on_pan_move(self, event: tk.Event) -> None:
        if self._pan_origin is None:
            return
        sx, sy, ox, oy = self._pan_origin
        self._top_left = (ox + event.x - sx, oy + event.y - sy)
        self._redraw()
