"""Получение исходных изображений: по URL и из локальных файлов.

Принципы:
- SRP: класс отвечает только за загрузку, предобработку и упаковку в `SourceImage`.
- OCP: новые источники добавляются отдельными методами.
- Сетевой путь: одна резервная попытка через прокси, затем `LoadError`.
"""
from __future__ import annotations

import io
import logging
import mimetypes
import re
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import urlparse

import requests
from PIL import Image, UnidentifiedImageError

from enhancer import config
from enhancer.models.errors import LoadError, ValidationError
from enhancer.models.image_model import SourceHandle, SourceImage
from enhancer.services.dimension_service import capped_dims

logger = logging.getLogger(__name__)

_URL_EXTENSION_RE = re.compile(
    r"\.(" + "|".join(config.SUPPORTED_URL_EXTENSIONS) + r")(\?.*)?$", re.IGNORECASE
)

# MIME-тип источника → формат перекодирования загруженного файла
_RECOMPRESS_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}
_DEFAULT_RECOMPRESS = ("JPEG", "image/jpeg")


class ImageService:
    def __init__(
        self,
        http: Optional[requests.Session] = None,
        proxy_prefix: str = config.PROXY_PREFIX,
        timeout: float = config.HTTP_TIMEOUT,
        max_dimension: int = config.MAX_UPLOAD_DIMENSION,
    ) -> None:
        self._http = http or requests.Session()
        self._http.headers.update(config.HTTP_HEADERS)
        self._proxy_prefix = proxy_prefix
        self._timeout = timeout
        self._max_dimension = max_dimension

    # ---------- Проверки ----------
    def is_url(self, source: Union[str, Path]) -> bool:
        return isinstance(source, str) and urlparse(source).scheme.lower() in ("http", "https")

    def is_valid_image_url(self, url: str) -> bool:
        """URL с http(s), хостом и расширением изображения (допускается query-строка)."""
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            return False
        return bool(_URL_EXTENSION_RE.search(url))

    # ---------- Загрузка ----------
    def load(self, source: Union[str, Path]) -> SourceImage:
        """Загружает изображение по URL или из файла."""
        if self.is_url(source):
            return self.load_url(str(source))
        return self.load_file(source)

    def load_url(self, url: str) -> SourceImage:
        """Загружает изображение по URL.

        Raises:
            ValidationError: пустой или некорректный URL.
            LoadError: основной запрос и единственная резервная попытка не удались.
        """
        url = (url or "").strip()
        if not url:
            raise ValidationError("Введите URL изображения", field="url", value=url)
        if not self.is_valid_image_url(url):
            raise ValidationError(
                "Введите корректный URL изображения (.jpg, .jpeg, .png, .gif, .bmp, .webp или .svg)",
                field="url",
                value=url,
            )

        try:
            return self._fetch_image(url, origin=url)
        except LoadError as primary:
            logger.warning("loading %s failed (%s), trying fallback", url, primary.kind)
            fallback_url = f"{self._proxy_prefix}{url}"
            try:
                return self._fetch_image(fallback_url, origin=url)
            except LoadError as fallback:
                # the primary reason is usually the more useful one for the user
                kind = primary.kind if primary.kind in ("forbidden", "cors") else fallback.kind
                logger.error("fallback for %s failed (%s)", url, fallback.kind)
                raise LoadError(url, kind, fallback.details.get("reason")) from fallback

    def _fetch_image(self, url: str, origin: str) -> SourceImage:
        try:
            response = self._http.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            kind = "cors" if "cors" in str(exc).lower() or "cross-origin" in str(exc).lower() else "network"
            raise LoadError(url, kind, str(exc)) from exc

        if response.status_code == 403:
            raise LoadError(url, "forbidden", "HTTP 403")
        if response.status_code >= 400:
            raise LoadError(url, "network", f"HTTP {response.status_code}")

        data = response.content
        mime_type = (response.headers.get("Content-Type") or "").split(";")[0].strip() or None
        image = self._decode(data, url)
        source = SourceImage.from_pil(image, origin=origin, mime_type=mime_type, size_bytes=len(data))
        logger.info("loaded %s (%dx%d, %d bytes)", origin, source.width, source.height, len(data))
        return source

    def _decode(self, data: bytes, origin: str) -> Image.Image:
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                return img.convert("RGBA")
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
            raise LoadError(origin, "format", str(exc)) from exc

    def load_file(self, file_path: Union[str, Path]) -> SourceImage:
        """Загружает локальный файл через предобработку (уменьшение + перекодирование).

        Raises:
            ValidationError: файла нет или это не изображение.
        """
        path = Path(file_path)
        if not path.exists() or not path.is_file():
            raise ValidationError(f"Файл не найден: {path}", field="path", value=str(path))
        guessed, _ = mimetypes.guess_type(path.name)
        if guessed is not None and not guessed.startswith("image/"):
            raise ValidationError(
                "Выберите файл изображения (JPEG, PNG, GIF и т. п.)", field="path", value=str(path)
            )

        try:
            with Image.open(path) as img:
                img.load()
                mime_type = Image.MIME.get(img.format or "", guessed)
                image = img.convert("RGBA")
        except Image.DecompressionBombError as exc:
            raise ValidationError(
                "Изображение слишком большое для обработки", field="path", value=str(path)
            ) from exc
        except (UnidentifiedImageError, OSError) as exc:
            raise ValidationError(
                "Выберите файл изображения (JPEG, PNG, GIF и т. п.)", field="path", value=str(path)
            ) from exc

        data, out_mime, handle = self.preprocess_upload(image, mime_type)
        try:
            with Image.open(handle.paths[0]) as recompressed:
                recompressed.load()
                source = SourceImage.from_pil(recompressed, origin=str(path), mime_type=out_mime,
                                              size_bytes=len(data), handle=handle)
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
            handle.release()
            raise LoadError(str(path), "format", str(exc)) from exc
        finally:
            image.close()
        logger.info("loaded %s (%dx%d, %d bytes after preprocessing)", path, source.width, source.height, len(data))
        return source

    # ---------- Предобработка загруженных файлов ----------
    def recompress_format(self, mime_type: Optional[str]) -> Tuple[str, str]:
        """(формат Pillow, MIME) для перекодирования; по умолчанию JPEG."""
        if mime_type in _RECOMPRESS_FORMATS:
            return _RECOMPRESS_FORMATS[mime_type], mime_type
        return _DEFAULT_RECOMPRESS

    def preprocess_upload(self, image: Image.Image, mime_type: Optional[str]) -> Tuple[bytes, str, SourceHandle]:
        """
        Уменьшает изображение до `max_dimension` по большей стороне (без увеличения)
        и перекодирует с качеством UPLOAD_QUALITY. Результат пишется во временный
        файл, которым владеет возвращаемый `SourceHandle`.
        """
        width, height = capped_dims(image.width, image.height, self._max_dimension)
        resized = image
        if (width, height) != image.size:
            resized = image.resize((width, height), Image.Resampling.LANCZOS)

        pil_format, out_mime = self.recompress_format(mime_type)
        buf = io.BytesIO()
        if pil_format == "JPEG":
            rgba = resized.convert("RGBA")
            flat = Image.alpha_composite(Image.new("RGBA", rgba.size, (0, 0, 0, 255)), rgba).convert("RGB")
            flat.save(buf, format="JPEG", quality=int(round(config.UPLOAD_QUALITY * 100)))
        elif pil_format == "WEBP":
            resized.save(buf, format="WEBP", quality=int(round(config.UPLOAD_QUALITY * 100)))
        else:
            resized.save(buf, format=pil_format)
        data = buf.getvalue()

        suffix = mimetypes.guess_extension(out_mime) or ".img"
        with tempfile.NamedTemporaryFile(prefix="enhancer-", suffix=suffix, delete=False) as tmp:
            tmp.write(data)
        handle = SourceHandle([Path(tmp.name)])
        logger.debug("preprocessed upload %dx%d -> %dx%d %s (%d bytes)",
                     image.width, image.height, width, height, out_mime, len(data))
        return data, out_mime, handle
