"""Хранилище пикселей RGB для исходного и результирующего изображений.

Принципы:
- SRP: класс владеет растром и является единственным способом его читать,
  изменять и сохранять.
- Растр — один непрерывный `numpy.ndarray` формы (height, width, 3), `uint8`,
  адресация `(x=столбец, y=строка)`.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np

from imgrotate.constants import RGB_DEPTH, RGB_MAX_COLOR
from imgrotate.errors import EngineStateError, RotationError
from imgrotate.models.image_model import BLACK, Coord, Pixel
from imgrotate.utils.pixmap import read_pixmap, write_pixmap

logger = logging.getLogger(__name__)

PixelSource = Union[np.ndarray, bytes, bytearray, memoryview, Iterable[Iterable[int]]]


class PixelBuffer:
    """Изображение RGB: размеры, глубина цвета, максимум канала и растр.

    Буфер создаётся одним из трёх способов: из файла (`load_from_file` /
    `from_file`), из готового набора пикселей (`create_from_buffer` /
    `from_buffer`) или как чёрный холст (`create_blank` / `blank`).
    После `release()` буфер непригоден, повторный `release()` безопасен.
    """

    def __init__(self) -> None:
        self._pixels: Optional[np.ndarray] = None
        self._width = 0
        self._height = 0
        self._depth = 0
        self._max_color = 0
        self._half_width = 0.0
        self._half_height = 0.0

    # ---------- Конструирование ----------
    @classmethod
    def from_file(cls, file_path: str | Path) -> "PixelBuffer":
        """Загружает P6-файл.

        Raises:
            PixmapIOError, PixmapFormatError, UnsupportedFormatError: см. `read_pixmap`.
        """
        data = read_pixmap(file_path)
        buffer = cls()
        buffer._assign(data.pixels, data.depth, data.max_color)
        return buffer

    @classmethod
    def from_buffer(
        cls,
        width: int,
        height: int,
        depth: int,
        pixels: PixelSource,
        max_color: int = RGB_MAX_COLOR,
    ) -> "PixelBuffer":
        buffer = cls()
        buffer.create_from_buffer(width, height, depth, pixels, max_color)
        return buffer

    @classmethod
    def blank(cls, width: int, height: int, depth: int = RGB_DEPTH) -> "PixelBuffer":
        buffer = cls()
        buffer.create_blank(width, height, depth)
        return buffer

    def load_from_file(self, file_path: str | Path) -> bool:
        """Загружает файл в этот буфер; при ошибке пишет диагностику и возвращает False.

        Неудачная загрузка оставляет буфер непригодным (без частично
        заполненного растра).
        """
        try:
            data = read_pixmap(file_path)
        except RotationError as exc:
            logger.error("%s", exc)
            self.release()
            return False
        self._assign(data.pixels, data.depth, data.max_color)
        return True

    def create_from_buffer(
        self,
        width: int,
        height: int,
        depth: int,
        pixels: PixelSource,
        max_color: int = RGB_MAX_COLOR,
    ) -> None:
        """Копирует `width * height` пикселей из плоской последовательности.

        Принимает массив numpy, байтовую строку длины `width * height * 3`
        или последовательность троек `(r, g, b)`. Ссылка на источник не
        сохраняется. `max_color` попадает в заголовок при сохранении.
        """
        _check_size(width, height)
        if isinstance(pixels, (bytes, bytearray, memoryview)):
            flat = np.frombuffer(pixels, dtype=np.uint8)
        else:
            flat = np.asarray(pixels, dtype=np.uint8)
        expected = width * height * RGB_DEPTH
        if flat.size != expected:
            raise ValueError(
                f"Число значений {flat.size} не совпадает с размером {width}x{height}x{RGB_DEPTH}"
            )
        self._assign(flat.reshape(height, width, RGB_DEPTH).copy(), depth, max_color)

    def create_blank(self, width: int, height: int, depth: int = RGB_DEPTH) -> None:
        _check_size(width, height)
        self._assign(np.zeros((height, width, RGB_DEPTH), dtype=np.uint8), depth, RGB_MAX_COLOR)

    def _assign(self, pixels: np.ndarray, depth: int, max_color: int) -> None:
        self._pixels = pixels
        self._height, self._width = pixels.shape[:2]
        self._depth = depth
        self._max_color = max_color
        self._half_width = self._width / 2.0
        self._half_height = self._height / 2.0

    # ---------- Метаданные ----------
    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def max_color(self) -> int:
        return self._max_color

    @property
    def half_width(self) -> float:
        return self._half_width

    @property
    def half_height(self) -> float:
        return self._half_height

    @property
    def megapixels(self) -> float:
        return self._width * self._height / 1_000_000.0

    @property
    def is_released(self) -> bool:
        return self._pixels is None

    # ---------- Доступ к пикселям ----------
    def get(self, x: int, y: int) -> Pixel:
        """Пиксель в столбце `x`, строке `y`; вне изображения — чёрный."""
        pixels = self._require_pixels()
        if x < 0 or y < 0 or x >= self._width or y >= self._height:
            return BLACK
        r, g, b = pixels[y, x]
        return Pixel(int(r), int(g), int(b))

    def set(self, x: int, y: int, pixel: Iterable[int]) -> None:
        """Записывает пиксель; координаты вне изображения игнорируются."""
        pixels = self._require_pixels()
        if x < 0 or y < 0 or x >= self._width or y >= self._height:
            return
        pixels[y, x] = tuple(pixel)

    def contains_point(self, point: Coord) -> bool:
        """Лежит ли точка строго внутри `(-w/2, w/2) x (-h/2, h/2)`."""
        return (
            -self._half_width < point.x < self._half_width
            and -self._half_height < point.y < self._half_height
        )

    def contains_points(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Векторная версия `contains_point` для массивов координат."""
        return (
            (xs > -self._half_width) & (xs < self._half_width)
            & (ys > -self._half_height) & (ys < self._half_height)
        )

    def view(self) -> np.ndarray:
        """Растр только для чтения, без копирования."""
        pixels = self._require_pixels().view()
        pixels.flags.writeable = False
        return pixels

    def to_array(self) -> np.ndarray:
        return self._require_pixels().copy()

    # ---------- Сохранение и освобождение ----------
    def serialize(self, file_path: str | Path) -> None:
        """Сохраняет буфер в P6.

        Raises:
            UnsupportedFormatError: если глубина не 3.
            PixmapIOError: если файл нельзя открыть на запись.
        """
        pixels = self._require_pixels()
        write_pixmap(file_path, (self._width, self._height), self._max_color, self._depth, pixels)

    def save(self, file_path: str | Path) -> bool:
        try:
            self.serialize(file_path)
        except RotationError as exc:
            logger.error("%s", exc)
            return False
        return True

    def release(self) -> None:
        self._pixels = None

    def _require_pixels(self) -> np.ndarray:
        if self._pixels is None:
            raise EngineStateError("Буфер не инициализирован или уже освобождён")
        return self._pixels

    def __repr__(self) -> str:
        state = "released" if self.is_released else f"{self._width}x{self._height}"
        return f"PixelBuffer({state}, depth={self._depth}, max_color={self._max_color})"


def _check_size(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Размеры изображения должны быть положительными: {width}x{height}")
