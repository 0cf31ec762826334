"""Чтение и запись бинарного цветного PPM (сигнатура P6).

Формат:
- 2 байта сигнатуры: `P6` (цвет). `P5` (оттенки серого) распознаётся, но
  отклоняется как неподдерживаемый.
- Три десятичных числа ASCII: ширина, высота, максимальное значение цвета.
  Разделители — пробел, табуляция, `\\n`, `\\r`; `#` открывает комментарий
  до конца строки, комментарий допустим между любыми двумя токенами.
- Ровно один разделитель после максимального значения, затем
  `width * height` троек байт R, G, B построчно, сверху вниз.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

import numpy as np

from imgrotate.constants import (
    COMMENT_CHAR,
    HEADER_WHITESPACE,
    P5_MAGIC,
    P6_MAGIC,
    RGB_DEPTH,
    RGB_MAX_COLOR,
)
from imgrotate.errors import PixmapFormatError, PixmapIOError, UnsupportedFormatError

logger = logging.getLogger(__name__)

_NEWLINES = b"\n\r"


@dataclass(frozen=True)
class PixmapData:
    """Результат разбора файла: заголовок и растр формы (height, width, 3)."""
    width: int
    height: int
    max_color: int
    depth: int
    pixels: np.ndarray


class _HeaderReader:
    """Посимвольный разбор заголовка с учётом комментариев."""

    def __init__(self, data: bytes, offset: int, path: Path) -> None:
        self._data = data
        self._pos = offset
        self._path = path

    @property
    def position(self) -> int:
        return self._pos

    def _next_char(self) -> bytes:
        # Комментарий поглощается целиком, наружу уходит завершающий перевод строки
        if self._pos >= len(self._data):
            raise PixmapFormatError(f"Заголовок обрезан: {self._path}")
        ch = self._data[self._pos:self._pos + 1]
        self._pos += 1
        if ch == COMMENT_CHAR:
            while True:
                if self._pos >= len(self._data):
                    raise PixmapFormatError(f"Заголовок обрезан внутри комментария: {self._path}")
                ch = self._data[self._pos:self._pos + 1]
                self._pos += 1
                if ch in _NEWLINES:
                    break
        return ch

    def read_int(self, field: str) -> int:
        ch = self._next_char()
        while ch in HEADER_WHITESPACE:
            ch = self._next_char()
        if not ch.isdigit():
            raise PixmapFormatError(
                f"Ожидалось число ({field}), получено {ch!r}: {self._path}"
            )
        value = 0
        while ch.isdigit():
            value = value * 10 + int(ch)
            ch = self._next_char()
        if ch not in HEADER_WHITESPACE:
            raise PixmapFormatError(
                f"Недопустимый символ {ch!r} после поля {field}: {self._path}"
            )
        return value


def check_magic(magic: bytes, path: Path) -> None:
    """Проверяет сигнатуру; P5 отклоняется отдельной ошибкой."""
    if magic == P5_MAGIC:
        raise UnsupportedFormatError(
            f"Оттенки серого (P5) не поддерживаются: {path}"
        )
    if magic != P6_MAGIC:
        raise PixmapFormatError(f"Неверная сигнатура файла {magic!r}: {path}")


def read_pixmap(file_path: str | Path) -> PixmapData:
    """Загружает цветной PPM целиком.

    Args:
        file_path: Путь до файла.

    Returns:
        `PixmapData` с растром `uint8` формы (height, width, 3).

    Raises:
        PixmapIOError: если файл не удалось открыть.
        UnsupportedFormatError: для сигнатуры P5 или max color больше 255.
        PixmapFormatError: для любой другой сигнатуры, испорченного
            заголовка или неполного растра.
    """
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise PixmapIOError(f"Не удаётся открыть файл: {path}") from exc

    check_magic(data[:2], path)

    reader = _HeaderReader(data, 2, path)
    width = reader.read_int("width")
    height = reader.read_int("height")
    max_color = reader.read_int("max color")
    if width == 0 or height == 0:
        raise PixmapFormatError(f"Нулевой размер изображения {width}x{height}: {path}")
    if max_color == 0:
        raise PixmapFormatError(f"Нулевое максимальное значение цвета: {path}")
    if max_color > RGB_MAX_COLOR:
        # 16-битные отсчёты заняли бы по 2 байта на канал
        raise UnsupportedFormatError(
            f"Поддерживаются только 8-битные каналы, max color {max_color}: {path}"
        )

    start = reader.position
    expected = width * height * RGB_DEPTH
    raster = data[start:start + expected]
    if len(raster) < expected:
        raise PixmapFormatError(
            f"Растр обрезан: ожидалось {expected} байт, получено {len(raster)}: {path}"
        )

    pixels = np.frombuffer(raster, dtype=np.uint8).reshape(height, width, RGB_DEPTH).copy()
    logger.debug("Read %s: %dx%d, max color %d", path, width, height, max_color)
    return PixmapData(width=width, height=height, max_color=max_color, depth=RGB_DEPTH, pixels=pixels)


def encode_header(width: int, height: int, max_color: int) -> bytes:
    return P6_MAGIC + f"\n{width} {height}\n{max_color}\n".encode("ascii")


def write_pixmap(
    file_path: str | Path,
    size: Tuple[int, int],
    max_color: int,
    depth: int,
    pixels: np.ndarray,
) -> None:
    """Записывает растр в файл P6.

    Raises:
        UnsupportedFormatError: если глубина цвета не равна 3.
        PixmapIOError: если файл нельзя открыть на запись.
    """
    path = Path(file_path)
    if depth != RGB_DEPTH:
        raise UnsupportedFormatError(f"Запись поддерживается только для RGB, глубина {depth}: {path}")
    width, height = size
    raster = np.ascontiguousarray(pixels, dtype=np.uint8).reshape(height, width, RGB_DEPTH)
    try:
        with path.open("wb") as out:
            out.write(encode_header(width, height, max_color))
            out.write(raster.tobytes())
    except OSError as exc:
        raise PixmapIOError(f"Не удаётся записать файл: {path}") from exc
    logger.debug("Wrote %s: %dx%d", path, width, height)
