"""Модели данных для изображений.

Принципы:
- SRP: только структуры данных и владение ресурсами, без логики обработки.
- Чистый код: неизменяемость (`frozen=True`) там, где объект не должен меняться.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class SourceHandle:
    """Явный ресурс, стоящий за исходным изображением (временные файлы, буферы).

    Освобождается детерминированно при замене изображения; повторный
    `release()` ничего не делает.
    """
    def __init__(self, paths: Optional[List[Path]] = None) -> None:
        self._paths: List[Path] = list(paths or [])
        self._finalizers: List[Callable[[], None]] = []
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    def add_path(self, path: Path) -> None:
        self._paths.append(Path(path))

    def add_finalizer(self, fn: Callable[[], None]) -> None:
        self._finalizers.append(fn)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        for path in self._paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("could not remove temporary file %s: %s", path, exc)
        for fn in self._finalizers:
            fn()
        logger.debug("released source handle (%d file(s))", len(self._paths))

    def __enter__(self) -> "SourceHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


@dataclass(frozen=True)
class SourceImage:
    """Неизменяемое декодированное исходное изображение.

    Fields:
        image: Изображение PIL в режиме RGBA.
        width: Ширина, px.
        height: Высота, px.
        origin: URL или путь к файлу.
        mime_type: MIME-тип источника, если известен.
        size_bytes: Размер закодированных данных, если известен.
        handle: Ресурсы, которые нужно освободить вместе с изображением.
    """
    image: Image.Image
    width: int
    height: int
    origin: str
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    handle: Optional[SourceHandle] = field(default=None, compare=False)

    @classmethod
    def from_pil(cls, image: Image.Image, origin: str, mime_type: Optional[str] = None,
                 size_bytes: Optional[int] = None, handle: Optional[SourceHandle] = None) -> "SourceImage":
        # convert() always returns a copy, so the caller may close `image`
        rgba = image.convert("RGBA")
        width, height = rgba.size
        return cls(image=rgba, width=width, height=height, origin=origin,
                   mime_type=mime_type, size_bytes=size_bytes, handle=handle)

    def release(self) -> None:
        if self.handle is not None:
            self.handle.release()
        self.image.close()


@dataclass(frozen=True)
class RenderSurface:
    """Результат одного прохода отрисовки (RGBA, целиком заменяется каждым проходом)."""
    image: Image.Image
    generation: int = 0

    @property
    def width(self) -> int:
        return self.image.size[0]

    @property
    def height(self) -> int:
        return self.image.size[1]

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    def to_array(self) -> np.ndarray:
        """Возвращает копию пикселей, массив (H, W, 4) uint8."""
        return np.array(self.image, dtype=np.uint8)

    @classmethod
    def from_array(cls, arr: np.ndarray, generation: int = 0) -> "RenderSurface":
        return cls(image=Image.fromarray(np.ascontiguousarray(arr, dtype=np.uint8)),
                   generation=generation)


@dataclass(frozen=True)
class EncodedOutput:
    """Закодированный результат: байты, формат и предлагаемое имя файла."""
    data: bytes
    format: str
    mime_type: str
    filename: str

    @property
    def size_bytes(self) -> int:
        return len(self.data)
