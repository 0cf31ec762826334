"""Модели данных: цвет пикселя и точка в центрированной системе координат.

Принципы:
- SRP: только структуры данных, без логики обработки.
- Чистый код: неизменяемость для предсказуемости.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple


class Pixel(NamedTuple):
    """Цвет RGB, каналы 0..255. Сравнивается с обычным кортежем `(r, g, b)`."""
    r: int
    g: int
    b: int


BLACK = Pixel(0, 0, 0)


@dataclass(frozen=True)
class Coord:
    """Точка в центрированной системе: начало в центре изображения, +x вправо, +y вверх.

    Fields:
        x: Горизонтальное смещение от центра.
        y: Вертикальное смещение от центра.
    """
    x: float
    y: float
