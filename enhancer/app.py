from __future__ import annotations

from typing import Optional

import customtkinter as ctk

from enhancer.controllers.app_controller import AppController
from enhancer.ui.bottom_bar import BottomBar
from enhancer.ui.image_viewer import ImageViewer
from enhancer.ui.sidebar import Sidebar

APP_TITLE = "Image Enhancer"


class ImageEnhancerApp(ctk.CTk):
    """Главное окно: просмотр слева, параметры справа, состояние снизу.

    `initial_source` (URL или путь) загружается сразу после появления окна.
    """
    def __init__(self, initial_source: Optional[str] = None) -> None:
        super().__init__()
        ctk.set_appearance_mode("system")
        ctk.set_default_color_theme("blue")

        self.title(APP_TITLE)
        self.minsize(1100, 680)

        self.grid_columnconfigure(0, weight=1)
        self.grid_columnconfigure(1, weight=0)
        self.grid_rowconfigure(0, weight=1)

        viewer = ImageViewer(self)
        viewer.grid(row=0, column=0, sticky="nsew", padx=(12, 6), pady=(12, 6))
        sidebar = Sidebar(self)
        sidebar.grid(row=0, column=1, sticky="ns", padx=(6, 12), pady=(12, 6))
        bottom = BottomBar(self)
        bottom.grid(row=1, column=0, columnspan=2, sticky="ew", padx=12, pady=(0, 12))

        self.controller = AppController(viewer=viewer, sidebar=sidebar, bottom=bottom, window=self)
        self.controller.bind_events()

        if initial_source:
            self.after_idle(lambda: self.controller.open_source(initial_source))
