"""Контроллер CLI: связывает разобранные аргументы, движок поворота и вывод.

SOLID:
- SRP: класс управляет последовательностью шагов и замером времени, без
  логики обработки изображений.
- DIP: движок передаётся извне; по умолчанию создаётся `RotationEngine`.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from imgrotate.constants import BANNER
from imgrotate.services.rotation_service import RotationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotationArgs:
    """Параметры запуска.

    Fields:
        source: Путь к исходному P6-файлу.
        destination: Путь для результата.
        angle: Угол в градусах, уже приведённый к [0, 360).
    """
    source: Path
    destination: Path
    angle: int


@dataclass
class RotationController:
    """Выполняет один запуск: баннер, `init`, отчёт, замер `run`, `finish`."""
    args: RotationArgs
    engine: RotationEngine = field(default_factory=RotationEngine)
    echo: Callable[[str], None] = print
    clock: Callable[[], float] = time.perf_counter

    def execute(self) -> int:
        """Возвращает код завершения процесса: 0 при успехе, 1 если исходник не загрузился."""
        self.echo(BANNER)
        if not self.engine.init(self.args.source, self.args.destination, self.args.angle):
            logger.error("Initialization failed for %s", self.args.source)
            return 1

        self.echo(self.engine.describe_state())

        start = self.clock()
        self.engine.run()
        elapsed = self.clock() - start

        self.engine.finish()
        self.echo(format_elapsed(elapsed))
        return 0


def format_elapsed(seconds: float) -> str:
    return f"Result: {seconds:.3f}s"
