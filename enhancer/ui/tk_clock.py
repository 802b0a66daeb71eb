from __future__ import annotations

import tkinter as tk
from tkinter import TclError
from typing import Callable

from enhancer.services.render_scheduler import Clock, TaskHandle


class TkClock(Clock):
    """Часы планировщика на основе `after` / `after_idle` виджета Tk."""
    def __init__(self, widget: tk.Misc) -> None:
        self._widget = widget

    def _cancel_after(self, after_id: str) -> None:
        try:
            self._widget.after_cancel(after_id)
        except TclError:
            # widget already destroyed
            pass

    def _wrap(self, handle: TaskHandle, callback: Callable[[], None]) -> Callable[[], None]:
        def fire() -> None:
            if not handle.pending:
                return
            handle.fired = True
            callback()
        return fire

    def call_later(self, delay_ms: int, callback: Callable[[], None], name: str = "") -> TaskHandle:
        handle = TaskHandle(name)
        after_id = self._widget.after(delay_ms, self._wrap(handle, callback))
        handle.on_cancel(lambda: self._cancel_after(after_id))
        return handle

    def call_when_idle(self, callback: Callable[[], None], timeout_ms: int, name: str = "") -> TaskHandle:
        # whichever of idle / timeout comes first wins; the wrapper ignores the second
        handle = TaskHandle(name)
        fire = self._wrap(handle, callback)
        after_ids = [self._widget.after_idle(fire), self._widget.after(timeout_ms, fire)]

        def cancel_all() -> None:
            for after_id in after_ids:
                self._cancel_after(after_id)

        handle.on_cancel(cancel_all)
        return handle
