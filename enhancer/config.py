"""Централизованная конфигурация приложения.

Все константы конвейера живут здесь; часть из них можно переопределить
переменными окружения.
"""
import os

# Загрузка / предобработка
MAX_UPLOAD_DIMENSION = int(os.environ.get("ENHANCER_MAX_UPLOAD_DIMENSION", "2000"))
UPLOAD_QUALITY = 0.85
SUPPORTED_URL_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "bmp", "webp", "svg")

# Сеть
HTTP_TIMEOUT = float(os.environ.get("ENHANCER_HTTP_TIMEOUT", "15"))
PROXY_PREFIX = os.environ.get("ENHANCER_PROXY_PREFIX", "https://cors-anywhere.herokuapp.com/")
HTTP_HEADERS = {"User-Agent": "ImageEnhancer/1.0"}

# Примеры изображений для кнопки «Пример изображения»
SAMPLE_IMAGE_URLS = (
    "https://image2url.com/images/1757062180458-8d521f5c-c59f-47e9-8a52-380892d534de.png",
    "https://image.aipassportphotos.com/upload/identification/blur/photo-enhance-compare-1.webp",
    "https://image2url.com/images/1757059082173-23735a08-08b8-4eed-a852-130db4521395.png",
)

# Размеры
MIN_CUSTOM_DIMENSION = 10

# Планировщик перерисовки (миллисекунды)
DEBOUNCE_MS = 100
FRAME_INTERVAL_MS = 16
IDLE_TIMEOUT_MS = 100

# Вывод
DEFAULT_QUALITY = 0.85
DEFAULT_FORMAT = "jpeg"
FILENAME_PREFIX = "image"
PDF_IMAGE_QUALITY = 0.9

# Логирование
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
