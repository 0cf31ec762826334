"""Иерархия ошибок загрузки, записи и жизненного цикла движка поворота."""
from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    IO = "io"
    FORMAT = "format"
    UNSUPPORTED = "unsupported"
    STATE = "state"


class RotationError(Exception):
    """Базовая ошибка пакета; `kind` различает категорию сбоя."""

    kind: ErrorKind = ErrorKind.STATE


class PixmapIOError(RotationError, OSError):
    """Файл не удалось открыть на чтение или запись."""

    kind = ErrorKind.IO


class PixmapFormatError(RotationError, ValueError):
    """Неверная сигнатура или повреждённый заголовок/растр."""

    kind = ErrorKind.FORMAT


class UnsupportedFormatError(PixmapFormatError):
    """Формат распознан, но не поддерживается (например, P5 в оттенках серого)."""

    kind = ErrorKind.UNSUPPORTED


class EngineStateError(RotationError, RuntimeError):
    kind = ErrorKind.STATE
