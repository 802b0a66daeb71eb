"""Сохранение поверхности отрисовки в байты выбранного формата.

Принципы:
- SRP: только сериализация; состояние сессии не меняется, поэтому после
  `EncodeError` можно повторить попытку или выбрать другой формат.
"""
from __future__ import annotations

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from PIL import Image
from reportlab.lib.pagesizes import landscape, portrait
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from enhancer import config
from enhancer.models.errors import EncodeError, ValidationError
from enhancer.models.filter_state import OutputFormat
from enhancer.models.image_model import EncodedOutput, RenderSurface

logger = logging.getLogger(__name__)


def pdf_orientation(width: int, height: int) -> str:
    return "landscape" if width > height else "portrait"


class EncodeService:
    def build_filename(self, output_format: OutputFormat, now: Optional[datetime] = None) -> str:
        """`image-<миллисекунды epoch>.<каноническое расширение>`."""
        moment = now or datetime.now()
        millis = int(moment.timestamp() * 1000)
        return f"{config.FILENAME_PREFIX}-{millis}.{output_format.extension}"

    def _quality_to_pil(self, quality: float) -> int:
        return max(1, min(100, int(round(quality * 100))))

    def _flatten(self, image: Image.Image) -> Image.Image:
        """RGBA → RGB поверх чёрного фона (как у canvas при экспорте в JPEG)."""
        if image.mode == "RGB":
            return image
        rgba = image.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
        return Image.alpha_composite(background, rgba).convert("RGB")

    def _encode_raster(self, image: Image.Image, output_format: OutputFormat, quality: float) -> bytes:
        buf = io.BytesIO()
        if output_format is OutputFormat.JPEG:
            self._flatten(image).save(buf, format="JPEG", quality=self._quality_to_pil(quality))
        elif output_format is OutputFormat.WEBP:
            image.save(buf, format="WEBP", quality=self._quality_to_pil(quality))
        else:
            image.save(buf, format="PNG")
        return buf.getvalue()

    def _encode_pdf(self, image: Image.Image) -> bytes:
        """
        Одна страница ровно по размеру поверхности (1 px = 1 pt), ориентация по
        соотношению сторон, изображение занимает всю страницу.
        """
        width, height = image.size
        page = landscape((width, height)) if pdf_orientation(width, height) == "landscape" else portrait((width, height))

        jpeg = io.BytesIO()
        self._flatten(image).save(jpeg, format="JPEG", quality=self._quality_to_pil(config.PDF_IMAGE_QUALITY))
        jpeg.seek(0)

        buf = io.BytesIO()
        pdf = canvas.Canvas(buf, pagesize=page)
        pdf.drawImage(ImageReader(jpeg), 0, 0, width=width, height=height)
        pdf.showPage()
        pdf.save()
        return buf.getvalue()

    def encode(
        self,
        surface: RenderSurface,
        output_format: Union[str, OutputFormat],
        quality: float = config.DEFAULT_QUALITY,
        now: Optional[datetime] = None,
    ) -> EncodedOutput:
        """Кодирует поверхность; качество учитывается только для форматов с потерями.

        Raises:
            ValidationError: неизвестный формат или качество вне (0, 1].
            EncodeError: сбой сериализации.
        """
        fmt = OutputFormat.parse(output_format)
        if fmt.lossy and not 0.0 < quality <= 1.0:
            raise ValidationError("Качество должно быть в диапазоне (0, 1]", field="quality", value=quality)
        try:
            if fmt.is_document:
                data = self._encode_pdf(surface.image)
            else:
                data = self._encode_raster(surface.image, fmt, quality)
        except Exception as exc:
            logger.error("encode to %s failed: %s", fmt.value, exc)
            raise EncodeError(fmt.value, str(exc)) from exc

        output = EncodedOutput(
            data=data,
            format=fmt.value,
            mime_type=fmt.mime_type,
            filename=self.build_filename(fmt, now),
        )
        logger.info("encoded %dx%d as %s (%d bytes)", surface.width, surface.height, fmt.value, output.size_bytes)
        return output

    def save(self, output: EncodedOutput, target: Union[str, Path]) -> Path:
        """Записывает закодированный результат на диск.

        Raises:
            EncodeError: файл не удалось записать (нет каталога, нет прав, диск заполнен).
        """
        path = Path(target)
        try:
            path.write_bytes(output.data)
        except OSError as exc:
            logger.error("writing %s failed: %s", path, exc)
            raise EncodeError(output.format, str(exc)) from exc
        logger.info("saved %s (%d bytes)", path, output.size_bytes)
        return path
