"""Иерархия ошибок конвейера.

- `ValidationError` — некорректный ввод, отклоняется синхронно, состояние не меняется.
- `LoadError` — источник недоступен после единственной резервной попытки.
- `EncodeError` — сбой сериализации; состояние сохраняется для повтора.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class EnhancerError(Exception):
    """Базовая ошибка приложения."""
    def __init__(self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ValidationError(EnhancerError):
    """Ввод отклонён до изменения состояния."""
    def __init__(self, message: str, field: Optional[str] = None, value: Any = None) -> None:
        details: Dict[str, Any] = {}
        if field is not None:
            details["field"] = field
            details["value"] = value
        super().__init__(message=message, error_code="VALIDATION_FAILED", details=details)


class NoImageError(ValidationError):
    """Операция требует загруженного изображения."""
    def __init__(self, operation: str) -> None:
        super().__init__(f"Нет загруженного изображения для операции «{operation}»")
        self.error_code = "NO_IMAGE"
        self.details = {"operation": operation}


class LoadError(EnhancerError):
    """Изображение не удалось получить или декодировать.

    `kind`: "network" | "cors" | "forbidden" | "format".
    """
    def __init__(self, source: str, kind: str, reason: Optional[str] = None) -> None:
        message = "Не удалось загрузить изображение. "
        if kind == "forbidden":
            message += "Сервер запрещает доступ к этому изображению. "
        elif kind == "cors":
            message += "Сервер блокирует кросс-доменные запросы. "
        elif kind == "format":
            message += "Файл не распознан как изображение. "
        message += "Попробуйте другое изображение или сайт."
        super().__init__(
            message=message,
            error_code="LOAD_FAILED",
            details={"source": source, "kind": kind, "reason": reason},
        )
        self.kind = kind


class EncodeError(EnhancerError):
    """Сбой сериализации результата."""
    def __init__(self, output_format: str, reason: Optional[str] = None) -> None:
        super().__init__(
            message=f"Ошибка сохранения в формате {output_format.upper()}: {reason or 'неизвестная ошибка'}",
            error_code="ENCODE_FAILED",
            details={"format": output_format, "reason": reason},
        )
