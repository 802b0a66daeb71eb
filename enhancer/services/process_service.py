from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from PIL import Image

from enhancer.models.errors import ValidationError
from enhancer.models.filter_state import EnhancementJob
from enhancer.models.image_model import RenderSurface, SourceImage

logger = logging.getLogger(__name__)

# Коэффициенты яркости для матрицы насыщенности (как у CSS saturate()).
_LUMA_R, _LUMA_G, _LUMA_B = 0.213, 0.715, 0.072

_SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float64,
)


@dataclass(frozen=True, eq=False)
class ColorAdjustment:
    """Описание цветокоррекции: упорядоченные аффинные матрицы 3×4 (яркость, контраст, насыщенность)."""
    brightness: float
    contrast: float
    saturation: float
    matrices: Tuple[np.ndarray, ...]

    @property
    def is_identity(self) -> bool:
        return self.brightness == 1.0 and self.contrast == 1.0 and self.saturation == 1.0

    def describe(self) -> str:
        return f"brightness({self.brightness}) contrast({self.contrast}) saturate({self.saturation})"


class ProcessService:
    # ---------- Вспомогательные функции ----------
    def _brightness_matrix(self, b: float) -> np.ndarray:
        m = np.zeros((3, 4), dtype=np.float64)
        m[:, :3] = np.eye(3) * b
        return m

    def _contrast_matrix(self, c: float) -> np.ndarray:
        """v' = (v - 128)·c + 128."""
        m = np.zeros((3, 4), dtype=np.float64)
        m[:, :3] = np.eye(3) * c
        m[:, 3] = 128.0 * (1.0 - c)
        return m

    def _saturation_matrix(self, s: float) -> np.ndarray:
        """Смесь «серой» матрицы и единичной: s=0 — оттенки серого, s=1 — ровно единичная."""
        gray = np.tile(np.array([_LUMA_R, _LUMA_G, _LUMA_B], dtype=np.float64), (3, 1))
        m = np.zeros((3, 4), dtype=np.float64)
        m[:, :3] = (1.0 - s) * gray + s * np.eye(3)
        return m

    def _to_uint8(self, arr: np.ndarray) -> np.ndarray:
        """Округление к ближайшему (половины к чётному) с насыщением в [0, 255]."""
        return np.clip(np.rint(arr), 0, 255).astype(np.uint8)

    # ---------- 1) Цветокоррекция ----------
    def build_adjustment(self, brightness: float, contrast: float, saturation: float) -> ColorAdjustment:
        """
        Собирает цепочку brightness → contrast → saturate.
        Порядок фиксирован: от него зависит результат.
        """
        for name, value in (("brightness", brightness), ("contrast", contrast), ("saturation", saturation)):
            if value < 0:
                raise ValidationError(f"Параметр {name} не может быть отрицательным", field=name, value=value)
        matrices = (
            self._brightness_matrix(brightness),
            self._contrast_matrix(contrast),
            self._saturation_matrix(saturation),
        )
        return ColorAdjustment(brightness, contrast, saturation, matrices)

    def apply_adjustment(self, rgba: np.ndarray, adjustment: ColorAdjustment) -> np.ndarray:
        """
        Применяет цепочку матриц ко всему буферу сразу (векторно, без цикла по пикселям).
        После каждого шага значения ограничиваются [0..255]; альфа не меняется.
        """
        out = rgba.copy()
        if adjustment.is_identity:
            return out
        rgb = rgba[:, :, :3].astype(np.float64)
        for m in adjustment.matrices:
            rgb = np.clip(rgb @ m[:, :3].T + m[:, 3], 0.0, 255.0)
        out[:, :, :3] = self._to_uint8(rgb)
        return out

    def composite(self, image: Image.Image, size: Tuple[int, int], adjustment: ColorAdjustment) -> np.ndarray:
        """
        Масштабирует источник до `size` (Lanczos) и применяет цветокоррекцию одним проходом.
        Возвращает массив (H, W, 4) uint8.
        """
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        if rgba.size != tuple(size):
            rgba = rgba.resize(tuple(size), Image.Resampling.LANCZOS)
        arr = np.array(rgba, dtype=np.uint8)
        return self.apply_adjustment(arr, adjustment)

    # ---------- 2) Резкость (нерезкое маскирование 3×3) ----------
    def sharpen_kernel(self, strength: float) -> np.ndarray:
        s = float(strength)
        return np.array(
            [
                [0.0, -s, 0.0],
                [-s, 1.0 + 4.0 * s, -s],
                [0.0, -s, 0.0],
            ],
            dtype=np.float64,
        )

    def sharpen(self, rgba: np.ndarray, strength: float) -> np.ndarray:
        """
        Свёртка ядром `sharpen_kernel(strength)` по каналам R, G, B.
        - Внутренние пиксели: out = clamp(Σ k·src, 0, 255).
        - Граничные строки/столбцы и альфа копируются без изменений.
        - Читаем только из неизменяемого снимка входа, поэтому результат
          не зависит от порядка обхода.
        """
        if not 0.0 <= strength <= 1.0:
            raise ValidationError("Резкость должна быть в диапазоне [0, 1]", field="sharpness", value=strength)
        out = rgba.copy()
        h, w = rgba.shape[:2]
        if strength == 0 or h < 3 or w < 3:
            return out

        kernel = self.sharpen_kernel(strength)
        src = rgba[:, :, :3].astype(np.float64)
        src.setflags(write=False)

        # Векторизованная свёртка через сдвиги
        acc = np.zeros((h - 2, w - 2, 3), dtype=np.float64)
        for ky in range(3):
            for kx in range(3):
                weight = kernel[ky, kx]
                if weight == 0.0:
                    continue
                acc += weight * src[ky:ky + h - 2, kx:kx + w - 2]

        out[1:-1, 1:-1, :3] = self._to_uint8(acc)
        return out

    # ---------- 3) Сепия ----------
    def apply_sepia(self, rgba: np.ndarray) -> np.ndarray:
        """Тонирование сепией по RGB, альфа без изменений."""
        out = rgba.copy()
        rgb = rgba[:, :, :3].astype(np.float64)
        out[:, :, :3] = self._to_uint8(rgb @ _SEPIA_MATRIX.T)
        return out

    # ---------- Проходы отрисовки ----------
    def render(self, source: SourceImage, job: EnhancementJob) -> RenderSurface:
        """Базовый проход: масштаб + цветокоррекция (+ тон). Резкость — отдельным проходом."""
        state = job.state
        adjustment = self.build_adjustment(state.brightness, state.contrast, state.saturation)
        arr = self.composite(source.image, job.size, adjustment)
        if state.tone == "sepia":
            arr = self.apply_sepia(arr)
        logger.debug("render #%d %dx%d filter=%s tone=%s", job.generation, job.width, job.height,
                     adjustment.describe(), state.tone)
        return RenderSurface.from_array(arr, generation=job.generation)

    def enhance(self, surface: RenderSurface, strength: float) -> RenderSurface:
        """Проход резкости поверх готовой поверхности."""
        if strength <= 0:
            return surface
        arr = self.sharpen(surface.to_array(), strength)
        logger.debug("sharpen #%d strength=%.2f", surface.generation, strength)
        return RenderSurface.from_array(arr, generation=surface.generation)
