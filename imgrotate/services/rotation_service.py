"""Поворот изображения на произвольный угол обратным отображением.

Шаги:
1. Размер результата — по габаритам повёрнутых углов исходного холста.
2. Для каждого пикселя результата — обратный поворот в систему исходника.
3. Точка вне исходника даёт чёрный цвет; иначе берутся четыре соседа и
   смешиваются билинейно.

Все вычисления шага 2–3 векторизованы: каждый пиксель результата зависит
только от исходного растра и угла, поэтому порядок обхода не важен.
"""
from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional, Tuple

import numpy as np

from imgrotate.errors import RotationError
from imgrotate.models.image_model import BLACK, Coord, Pixel
from imgrotate.models.pixel_buffer import PixelBuffer
from imgrotate.utils.geometry import (
    bilinear_filter,
    bilinear_filter_array,
    bounding_extent,
    normalize_angle,
    reverse_angle,
    rotate_point,
    rotate_xy,
    round_half_up,
)

logger = logging.getLogger(__name__)


class EngineState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    DONE = "done"
    RELEASED = "released"


class Corners(NamedTuple):
    """Углы холста в центрированной системе (+y вверх)."""
    upper_left: Coord
    upper_right: Coord
    lower_left: Coord
    lower_right: Coord

    @classmethod
    def of_size(cls, half_width: float, half_height: float) -> "Corners":
        return cls(
            upper_left=Coord(-half_width, half_height),
            upper_right=Coord(half_width, half_height),
            lower_left=Coord(-half_width, -half_height),
            lower_right=Coord(half_width, -half_height),
        )

    def rotated(self, angle: int) -> "Corners":
        return Corners(*(rotate_point(corner, angle) for corner in self))


class RotationEngine:
    """Оркестрация поворота: `init` → `run` → `finish`.

    Движок единолично владеет исходным и результирующим буферами и
    освобождает оба в `finish()` независимо от успеха записи. Вызовы не по
    порядку (например, `run` до `init`) не падают: пишется диагностика,
    вызов ничего не делает.
    """

    def __init__(self) -> None:
        self._source = PixelBuffer()
        self._destination = PixelBuffer()
        self._source_path: Optional[Path] = None
        self._dest_path: Optional[Path] = None
        self._angle = 0
        self._corners: Optional[Corners] = None
        self._rotated_corners: Optional[Corners] = None
        self._state = EngineState.UNINITIALIZED

    # ---------- Жизненный цикл ----------
    def init(self, source_path: str | Path, dest_path: str | Path, angle: int) -> bool:
        """Загружает исходник и готовит углы холста.

        Returns:
            False, если исходный файл не загрузился; состояние движка при
            этом не меняется.
        """
        angle = normalize_angle(angle)
        logger.info("Trying to open image file %s", source_path)
        source = PixelBuffer()
        if not source.load_from_file(source_path):
            return False

        self._release_buffers()
        self._source = source
        self._source_path = Path(source_path)
        self._dest_path = Path(dest_path)
        self._angle = angle
        self._corners = Corners.of_size(source.half_width, source.half_height)
        self._rotated_corners = None
        self._state = EngineState.INITIALIZED
        return True

    def run(self) -> None:
        """Вычисляет повёрнутое изображение; до `init` — только диагностика."""
        if self._state not in (EngineState.INITIALIZED, EngineState.DONE):
            logger.error("Kernel called without initialization (state: %s)", self._state.value)
            return

        self._rotated_corners = self._corners.rotated(self._angle)
        target_w = bounding_extent(corner.x for corner in self._rotated_corners)
        target_h = bounding_extent(corner.y for corner in self._rotated_corners)

        self._destination.release()
        self._destination = self._resample(target_w, target_h)
        self._state = EngineState.DONE
        logger.info(
            "Rotated %dx%d by %d° into %dx%d",
            self._source.width, self._source.height, self._angle, target_w, target_h,
        )

    def finish(self) -> bool:
        """Записывает результат и освобождает оба буфера.

        Returns:
            True, если результат записан. Освобождение выполняется всегда.
        """
        written = False
        if self._state is not EngineState.DONE:
            logger.error("No rotation output to write (state: %s)", self._state.value)
        else:
            try:
                self._destination.serialize(self._dest_path)
                written = True
            except RotationError as exc:
                logger.error("Could not write rotation output: %s", exc)
        self._release_buffers()
        self._state = EngineState.RELEASED
        return written

    def describe_state(self) -> str:
        width, height = self._source.width, self._source.height
        return "\n".join(
            (
                "_____ Kernel State _____",
                f"Width: {width}\t Height: {height}",
                f"Pixels: {width * height / 1_000_000.0:.2f}M\t Angle: {self._angle}°",
                f"Source file: {self._source_path}\t Dest. File: {self._dest_path}",
            )
        )

    # ---------- Выборка ----------
    def sample(self, origin: Coord) -> Pixel:
        """Цвет исходника в точке центрированной системы (скалярный путь).

        Точка переводится в индексы растра с центрами пикселей в целых
        значениях; берутся соседи (x0, y0), (x0, y0+1), (x0+1, y0),
        (x0+1, y0+1) и смешиваются билинейно.
        """
        source = self._source
        if not source.contains_point(origin):
            return BLACK
        col, row = self._to_raster(origin.x, origin.y)
        x0 = int(np.floor(col))
        y0 = int(np.floor(row))
        x_weight = round_half_up(col - x0)
        y_weight = round_half_up(row - y0)
        return bilinear_filter(
            source.get(x0, y0),
            source.get(x0, y0 + 1),
            source.get(x0 + 1, y0),
            source.get(x0 + 1, y0 + 1),
            x_weight,
            y_weight,
        )

    def _to_raster(self, x, y):
        # +y вверх в центрированной системе, строки растра растут вниз
        col = x + self._source.half_width - 0.5
        row = self._source.half_height - y - 0.5
        return col, row

    def _resample(self, target_w: int, target_h: int) -> PixelBuffer:
        source = self._source
        cols, rows = np.meshgrid(np.arange(target_w, dtype=np.float64), np.arange(target_h, dtype=np.float64))
        cur_x = -target_w / 2.0 + cols + 0.5
        cur_y = target_h / 2.0 - rows - 0.5
        origin_x, origin_y = rotate_xy(cur_x, cur_y, reverse_angle(self._angle))

        inside = source.contains_points(origin_x, origin_y)
        col, row = self._to_raster(origin_x[inside], origin_y[inside])
        x0 = np.floor(col)
        y0 = np.floor(row)
        x_weight = round_half_up(col - x0)
        y_weight = round_half_up(row - y0)
        x0 = x0.astype(np.intp)
        y0 = y0.astype(np.intp)

        pixels = source.view()
        blended = bilinear_filter_array(
            _gather(pixels, x0, y0),
            _gather(pixels, x0, y0 + 1),
            _gather(pixels, x0 + 1, y0),
            _gather(pixels, x0 + 1, y0 + 1),
            x_weight,
            y_weight,
        )

        out = np.zeros((target_h, target_w, 3), dtype=np.uint8)
        out[inside] = blended
        return PixelBuffer.from_buffer(target_w, target_h, source.depth, out, source.max_color)

    # ---------- Свойства ----------
    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def angle(self) -> int:
        return self._angle

    @property
    def source(self) -> PixelBuffer:
        return self._source

    @property
    def destination(self) -> PixelBuffer:
        return self._destination

    @property
    def corners(self) -> Optional[Corners]:
        return self._corners

    @property
    def rotated_corners(self) -> Optional[Corners]:
        return self._rotated_corners

    @property
    def target_size(self) -> Optional[Tuple[int, int]]:
        if self._state is not EngineState.DONE:
            return None
        return self._destination.width, self._destination.height

    def _release_buffers(self) -> None:
        self._source.release()
        self._destination.release()


def _gather(pixels: np.ndarray, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Векторный `PixelBuffer.get`: соседи вне растра дают чёрный."""
    height, width = pixels.shape[:2]
    valid = (xs >= 0) & (ys >= 0) & (xs < width) & (ys < height)
    out = np.zeros((xs.shape[0], 3), dtype=np.uint8)
    out[valid] = pixels[ys[valid], xs[valid]]
    return out
