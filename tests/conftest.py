"""
Shared fixtures for imgrotate tests.

Provides synthetic P6 files written into the pytest temp directory.
"""
import numpy as np
import pytest


def p6_bytes(pixels, header=None):
    """Encode an (H, W, 3) uint8 array as P6; `header` overrides the text header."""
    pixels = np.asarray(pixels, dtype=np.uint8)
    height, width = pixels.shape[:2]
    if header is None:
        header = f"P6\n{width} {height}\n255\n".encode("ascii")
    return header + pixels.tobytes()


@pytest.fixture
def write_ppm(tmp_path):
    """Factory: write_ppm(name, pixels, header=None) -> Path"""
    def _write(name, pixels, header=None):
        path = tmp_path / name
        path.write_bytes(p6_bytes(pixels, header))
        return path
    return _write


@pytest.fixture
def white_2x2(write_ppm):
    return write_ppm("white.ppm", np.full((2, 2, 3), 255, dtype=np.uint8))


@pytest.fixture
def gradient_pixels():
    """Deterministic 5x7 (H x W) image with distinct channel values."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(5, 7, 3), dtype=np.uint8)
