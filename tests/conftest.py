"""Общие фикстуры: синтетические изображения, ручные часы, заглушка HTTP."""
import io
from typing import Callable, Dict, List, Tuple

import numpy as np
import pytest
from PIL import Image

from enhancer.models.image_model import SourceImage
from enhancer.services.render_scheduler import Clock, TaskHandle


class ManualClock(Clock):
    """Часы, которые идут только по `advance()`; простой наступает по `run_idle()`."""
    def __init__(self) -> None:
        self.now = 0
        self._seq = 0
        self._timers: List[Tuple[int, int, TaskHandle, Callable[[], None]]] = []
        self._idle: List[Tuple[TaskHandle, Callable[[], None]]] = []

    def _fire(self, handle: TaskHandle, callback: Callable[[], None]) -> None:
        if handle.pending:
            handle.fired = True
            callback()

    def call_later(self, delay_ms, callback, name=""):
        handle = TaskHandle(name)
        self._seq += 1
        self._timers.append((self.now + delay_ms, self._seq, handle, callback))
        return handle

    def call_when_idle(self, callback, timeout_ms, name=""):
        handle = TaskHandle(name)
        self._idle.append((handle, callback))
        self._seq += 1
        self._timers.append((self.now + timeout_ms, self._seq, handle, callback))
        return handle

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [t for t in self._timers if t[0] <= target and t[2].pending]
            if not due:
                break
            timer = min(due, key=lambda t: (t[0], t[1]))
            self._timers.remove(timer)
            self.now = timer[0]
            self._fire(timer[2], timer[3])
        self._timers = [t for t in self._timers if t[2].pending]
        self.now = target

    def run_idle(self) -> None:
        idle, self._idle = self._idle, []
        for handle, callback in idle:
            self._fire(handle, callback)

    @property
    def pending(self) -> List[TaskHandle]:
        handles = {id(t[2]): t[2] for t in self._timers if t[2].pending}
        handles.update({id(h): h for h, _ in self._idle if h.pending})
        return list(handles.values())


class StubResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"", content_type: str = "image/png") -> None:
        self.status_code = status_code
        self.content = content
        self.headers = {"Content-Type": content_type}


class StubHttp:
    """Заменяет `requests.Session`: отвечает по заранее заданной таблице URL."""
    def __init__(self, responses: Dict[str, object]) -> None:
        self.headers: Dict[str, str] = {}
        self.responses = responses
        self.calls: List[str] = []

    def get(self, url, timeout=None):
        self.calls.append(url)
        result = self.responses.get(url, StubResponse(404))
        if isinstance(result, Exception):
            raise result
        return result


def make_gradient(width: int = 64, height: int = 48) -> Image.Image:
    xs = np.linspace(0, 255, width, dtype=np.float64)
    ys = np.linspace(0, 255, height, dtype=np.float64)
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[:, :, 0] = xs[None, :].astype(np.uint8)
    arr[:, :, 1] = ys[:, None].astype(np.uint8)
    arr[:, :, 2] = 128
    arr[:, :, 3] = 255
    return Image.fromarray(arr)


def png_bytes(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def gradient() -> Image.Image:
    return make_gradient()


@pytest.fixture
def random_rgba() -> np.ndarray:
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(20, 30, 4), dtype=np.uint8)


@pytest.fixture
def source_800x600() -> SourceImage:
    return SourceImage.from_pil(make_gradient(800, 600), origin="memory://800x600")
