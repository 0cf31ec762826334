"""Точка входа: `imgrotate <infile> <outfile> <angle>`."""
from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Optional, Sequence

from imgrotate.constants import PROG_NAME
from imgrotate.controllers.rotation_controller import RotationArgs, RotationController
from imgrotate.utils.geometry import normalize_angle

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_NEGATIVE_TOKEN = re.compile(r"-\d")


def parse_angle(text: str) -> int:
    """Разбор угла по правилам `atoi`: ведущее целое или 0, затем mod 360.

    "45" -> 45, "45deg" -> 45, "-90" -> 270, "abc" -> 0.
    """
    match = _LEADING_INT.match(text)
    if match is None:
        return 0
    return normalize_angle(int(match.group(1)))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG_NAME,
        description="Rotate a P6 color pixmap by an arbitrary angle (counter-clockwise, degrees).",
    )
    parser.add_argument("infile", type=Path, help="source P6 image")
    parser.add_argument("outfile", type=Path, help="destination P6 image")
    parser.add_argument("angle", help="rotation angle in degrees, reduced mod 360")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Разбирает аргументы; при неверном количестве печатает usage и выходит с кодом 2."""
    argv = sys.argv[1:] if argv is None else list(argv)
    return build_parser().parse_args(_separate_options(argv))


def _separate_options(argv: list[str]) -> list[str]:
    """Ставит позиционные аргументы после `--`, если среди них есть `-9x`-подобный угол.

    argparse принимает за отрицательное число только чистое `-90`; `-9x`
    он счёл бы неизвестной опцией.
    """
    if "--" in argv or not any(_NEGATIVE_TOKEN.match(arg) for arg in argv):
        return argv
    options = [arg for arg in argv if arg.startswith("-") and not _NEGATIVE_TOKEN.match(arg)]
    positionals = [arg for arg in argv if not arg.startswith("-") or _NEGATIVE_TOKEN.match(arg)]
    return options + ["--"] + positionals


def to_rotation_args(namespace: argparse.Namespace) -> RotationArgs:
    return RotationArgs(
        source=namespace.infile,
        destination=namespace.outfile,
        angle=parse_angle(namespace.angle),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Разбирает аргументы и запускает поворот."""
    namespace = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if namespace.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    controller = RotationController(args=to_rotation_args(namespace))
    return controller.execute()


if __name__ == "__main__":
    sys.exit(main())
