"""Геометрия поворота и билинейное смешивание цветов.

Функции принимают как скаляры, так и массивы numpy там, где это отмечено:
сервис поворота использует векторные версии, тесты сверяют их со скалярными.
"""
from __future__ import annotations

import math
from typing import Iterable, Tuple, Union

import numpy as np

from imgrotate.constants import PRECISION
from imgrotate.models.image_model import Coord, Pixel

Number = Union[float, np.ndarray]


def normalize_angle(angle: int) -> int:
    """Приводит угол к [0, 360); отрицательные углы — поворот по часовой стрелке."""
    return int(angle) % 360


def reverse_angle(angle: int) -> int:
    """Угол обратного отображения: `(360 - angle) mod 360`."""
    return (360 - normalize_angle(angle)) % 360


def rotation_terms(angle: int) -> Tuple[float, float]:
    rad = math.radians(angle)
    return math.cos(rad), math.sin(rad)


def rotate_xy(x: Number, y: Number, angle: int) -> Tuple[Number, Number]:
    """Поворот против часовой стрелки: x' = x·cos − y·sin, y' = x·sin + y·cos."""
    cos_a, sin_a = rotation_terms(angle)
    return x * cos_a - y * sin_a, x * sin_a + y * cos_a


def rotate_point(point: Coord, angle: int) -> Coord:
    x, y = rotate_xy(point.x, point.y, angle)
    return Coord(float(x), float(y))


def round_half_up(value: Number, digits: int = PRECISION) -> Number:
    """Округление `floor(v * 10^d + 0.5) / 10^d` (скаляр или массив)."""
    scale = 10.0 ** digits
    if isinstance(value, np.ndarray):
        return np.floor(value * scale + 0.5) / scale
    return math.floor(value * scale + 0.5) / scale


def bounding_extent(values: Iterable[float]) -> int:
    """Размер холста по одной оси: отбрасывание дробной части от `max - min`.

    Разность сначала округляется до `PRECISION` знаков, чтобы погрешность
    `cos(90°) != 0` не превращала 4.0 в 3.
    """
    seq = list(values)
    return int(round_half_up(max(seq) - min(seq)))


def interpolate_linear(a: Iterable[int], b: Iterable[int], weight: float) -> Pixel:
    """Покомпонентно `a·(1−w) + b·w`, дробная часть отбрасывается."""
    return Pixel(*(_mix(ca, cb, weight) for ca, cb in zip(a, b)))


def _mix(a: int, b: int, weight: float) -> int:
    # a + (b - a)·w == a·(1−w) + b·w, но точно даёт a при a == b
    return int(a + (b - a) * weight)


def bilinear_filter(
    top_left: Iterable[int],
    bottom_left: Iterable[int],
    top_right: Iterable[int],
    bottom_right: Iterable[int],
    x_weight: float,
    y_weight: float,
) -> Pixel:
    """Двухэтапная билинейная фильтрация.

    Сначала по горизонтали внутри верхней и нижней пар (вес `x_weight`),
    затем по вертикали между полученными цветами (вес `y_weight`).
    """
    upper = interpolate_linear(top_left, top_right, x_weight)
    lower = interpolate_linear(bottom_left, bottom_right, x_weight)
    return interpolate_linear(upper, lower, y_weight)


def interpolate_linear_array(a: np.ndarray, b: np.ndarray, weight: np.ndarray) -> np.ndarray:
    """Векторная версия `interpolate_linear` для массивов (N, 3) и весов (N,)."""
    a_f = a.astype(np.float64)
    mixed = a_f + (b.astype(np.float64) - a_f) * weight[:, None]
    return np.trunc(mixed).astype(np.uint8)


def bilinear_filter_array(
    top_left: np.ndarray,
    bottom_left: np.ndarray,
    top_right: np.ndarray,
    bottom_right: np.ndarray,
    x_weight: np.ndarray,
    y_weight: np.ndarray,
) -> np.ndarray:
    upper = interpolate_linear_array(top_left, top_right, x_weight)
    lower = interpolate_linear_array(bottom_left, bottom_right, x_weight)
    return interpolate_linear_array(upper, lower, y_weight)
