"""
Tests for RotationEngine.

Verifies:
- Destination canvas sizing from rotated corners
- Identity and quarter-turn rotations are exact
- Angle normalization (angle and angle + 360k give identical output)
- Vectorized resampling agrees with the scalar per-pixel sample
- Lifecycle misuse is a logged no-op; buffers are always released
"""
import math

import numpy as np
import pytest

from imgrotate.models.image_model import BLACK, Coord, Pixel
from imgrotate.models.pixel_buffer import PixelBuffer
from imgrotate.services.rotation_service import Corners, EngineState, RotationEngine
from imgrotate.utils.geometry import reverse_angle, rotate_point


def rotate_array(write_ppm, tmp_path, pixels, angle):
    """Run the engine on `pixels` and return the destination raster."""
    src = write_ppm(f"src_{angle}.ppm", pixels)
    engine = RotationEngine()
    assert engine.init(src, tmp_path / f"dst_{angle}.ppm", angle)
    engine.run()
    result = engine.destination.to_array()
    engine.finish()
    return result


# ══════════════════════════════════════════════════════════════════════════
# Canvas sizing
# ══════════════════════════════════════════════════════════════════════════

class TestTargetSize:

    @pytest.mark.parametrize("width,height,angle,expected", [
        (4, 4, 0, (4, 4)),
        (4, 4, 90, (4, 4)),
        (4, 4, 180, (4, 4)),
        (4, 4, 45, (5, 5)),
        (7, 5, 90, (5, 7)),
        (7, 5, 270, (5, 7)),
        (6, 4, 30, (7, 6)),
        (2, 2, 0, (2, 2)),
        (2, 2, 360, (2, 2)),
    ])
    def test_sizes(self, write_ppm, tmp_path, width, height, angle, expected):
        src = write_ppm("s.ppm", np.zeros((height, width, 3), dtype=np.uint8))
        engine = RotationEngine()
        assert engine.init(src, tmp_path / "d.ppm", angle)
        engine.run()
        assert engine.target_size == expected

    @pytest.mark.parametrize("angle", [10, 45, 60, 100, 135, 200, 333])
    def test_matches_bounding_box_formula(self, write_ppm, tmp_path, angle):
        width, height = 9, 6
        src = write_ppm("s.ppm", np.zeros((height, width, 3), dtype=np.uint8))
        engine = RotationEngine()
        engine.init(src, tmp_path / "d.ppm", angle)
        engine.run()
        rad = math.radians(angle)
        cos_a, sin_a = abs(math.cos(rad)), abs(math.sin(rad))
        expected_w = int(width * cos_a + height * sin_a + 1e-9)
        expected_h = int(width * sin_a + height * cos_a + 1e-9)
        assert engine.target_size == (expected_w, expected_h)

    def test_corners(self, write_ppm, tmp_path):
        src = write_ppm("s.ppm", np.zeros((4, 4, 3), dtype=np.uint8))
        engine = RotationEngine()
        engine.init(src, tmp_path / "d.ppm", 90)
        assert engine.corners == Corners.of_size(2.0, 2.0)
        assert engine.corners.upper_left == Coord(-2.0, 2.0)
        assert engine.rotated_corners is None
        engine.run()
        ul = engine.rotated_corners.upper_left
        assert ul.x == pytest.approx(-2.0)
        assert ul.y == pytest.approx(-2.0)


# ══════════════════════════════════════════════════════════════════════════
# Pixel content
# ══════════════════════════════════════════════════════════════════════════

class TestResampling:

    @pytest.mark.parametrize("angle", [0, 360, 720])
    def test_identity(self, write_ppm, tmp_path, gradient_pixels, angle):
        result = rotate_array(write_ppm, tmp_path, gradient_pixels, angle)
        assert np.array_equal(result, gradient_pixels)

    @pytest.mark.parametrize("angle,turns", [(90, 1), (180, 2), (270, 3), (-90, 3)])
    def test_quarter_turns(self, write_ppm, tmp_path, gradient_pixels, angle, turns):
        result = rotate_array(write_ppm, tmp_path, gradient_pixels, angle)
        assert np.array_equal(result, np.rot90(gradient_pixels, turns))

    def test_angle_normalization_is_idempotent(self, write_ppm, tmp_path, gradient_pixels):
        base = rotate_array(write_ppm, tmp_path, gradient_pixels, 30)
        for angle in (390, 750, -330):
            assert np.array_equal(rotate_array(write_ppm, tmp_path, gradient_pixels, angle), base)

    def test_outside_source_is_black(self, write_ppm, tmp_path):
        white = np.full((4, 4, 3), 255, dtype=np.uint8)
        result = rotate_array(write_ppm, tmp_path, white, 45)
        assert result.shape == (5, 5, 3)
        for y, x in ((0, 0), (0, 4), (4, 0), (4, 4)):
            assert result[y, x].tolist() == [0, 0, 0]
        assert result[2, 2].tolist() == [255, 255, 255]

    def test_vectorized_matches_scalar_sample(self, write_ppm, tmp_path, gradient_pixels):
        angle = 33
        src = write_ppm("s.ppm", gradient_pixels)
        engine = RotationEngine()
        engine.init(src, tmp_path / "d.ppm", angle)
        engine.run()
        target_w, target_h = engine.target_size
        result = engine.destination.to_array()
        for i in range(target_h):
            for j in range(target_w):
                cur = Coord(-target_w / 2.0 + j + 0.5, target_h / 2.0 - i - 0.5)
                expected = engine.sample(rotate_point(cur, reverse_angle(angle)))
                assert tuple(result[i, j]) == expected, (i, j)


class TestSample:

    @pytest.fixture
    def engine(self, write_ppm, tmp_path):
        pixels = np.array([
            [[255, 0, 0], [0, 0, 255]],
            [[0, 255, 0], [255, 255, 0]],
        ], dtype=np.uint8)
        engine = RotationEngine()
        engine.init(write_ppm("quad.ppm", pixels), tmp_path / "d.ppm", 0)
        return engine

    def test_center_blends_two_stage(self, engine):
        assert engine.sample(Coord(0.0, 0.0)) == Pixel(127, 127, 63)

    def test_pixel_center_is_exact(self, engine):
        assert engine.sample(Coord(-0.5, 0.5)) == (255, 0, 0)
        assert engine.sample(Coord(0.5, -0.5)) == (255, 255, 0)

    @pytest.mark.parametrize("point", [Coord(1.0, 0.0), Coord(0.0, -1.0), Coord(5.0, 5.0)])
    def test_outside_is_black(self, engine, point):
        assert engine.sample(point) == BLACK


# ══════════════════════════════════════════════════════════════════════════
# Lifecycle
# ══════════════════════════════════════════════════════════════════════════

class TestLifecycle:

    def test_initial_state(self):
        engine = RotationEngine()
        assert engine.state is EngineState.UNINITIALIZED
        assert engine.target_size is None

    def test_init_normalizes_angle(self, white_2x2, tmp_path):
        engine = RotationEngine()
        assert engine.init(white_2x2, tmp_path / "d.ppm", 450)
        assert engine.angle == 90
        assert engine.state is EngineState.INITIALIZED

    def test_run_before_init_is_noop(self, caplog):
        engine = RotationEngine()
        engine.run()
        assert engine.state is EngineState.UNINITIALIZED
        assert engine.destination.is_released
        assert "without initialization" in caplog.text

    def test_finish_before_run_skips_write(self, white_2x2, tmp_path, caplog):
        out = tmp_path / "d.ppm"
        engine = RotationEngine()
        engine.init(white_2x2, out, 0)
        assert engine.finish() is False
        assert not out.exists()
        assert engine.source.is_released
        assert engine.state is EngineState.RELEASED
        assert "No rotation output" in caplog.text

    def test_run_after_finish_is_noop(self, white_2x2, tmp_path, caplog):
        engine = RotationEngine()
        engine.init(white_2x2, tmp_path / "d.ppm", 0)
        engine.run()
        engine.finish()
        engine.run()
        assert engine.state is EngineState.RELEASED
        assert "without initialization" in caplog.text

    @pytest.mark.parametrize("content", [b"P5\n2 2\n255\n" + bytes(4), b"XX\n2 2\n255\n" + bytes(12)])
    def test_init_rejects_bad_source(self, tmp_path, content):
        src = tmp_path / "bad.ppm"
        src.write_bytes(content)
        engine = RotationEngine()
        assert engine.init(src, tmp_path / "d.ppm", 0) is False
        assert engine.state is EngineState.UNINITIALIZED

    def test_failed_init_keeps_previous_source(self, white_2x2, tmp_path):
        engine = RotationEngine()
        engine.init(white_2x2, tmp_path / "d.ppm", 15)
        assert engine.init(tmp_path / "missing.ppm", tmp_path / "x.ppm", 0) is False
        assert engine.state is EngineState.INITIALIZED
        assert engine.angle == 15
        assert not engine.source.is_released

    def test_write_failure_still_releases(self, white_2x2, tmp_path, caplog):
        engine = RotationEngine()
        engine.init(white_2x2, tmp_path / "missing_dir" / "d.ppm", 0)
        engine.run()
        assert engine.finish() is False
        assert engine.source.is_released
        assert engine.destination.is_released
        assert "Could not write" in caplog.text

    def test_finish_twice_is_safe(self, white_2x2, tmp_path):
        engine = RotationEngine()
        engine.init(white_2x2, tmp_path / "d.ppm", 0)
        engine.run()
        assert engine.finish() is True
        assert engine.finish() is False

    def test_describe_state(self, write_ppm, tmp_path, gradient_pixels):
        src = write_ppm("g.ppm", gradient_pixels)
        out = tmp_path / "out.ppm"
        engine = RotationEngine()
        engine.init(src, out, 30)
        text = engine.describe_state()
        assert "Width: 7\t Height: 5" in text
        assert "Pixels: 0.00M\t Angle: 30°" in text
        assert str(src) in text and str(out) in text


# ══════════════════════════════════════════════════════════════════════════
# End to end
# ══════════════════════════════════════════════════════════════════════════

class TestEndToEnd:

    def test_white_2x2_identity(self, white_2x2, tmp_path):
        out = tmp_path / "out.ppm"
        engine = RotationEngine()
        assert engine.init(white_2x2, out, 0)
        engine.run()
        assert engine.finish() is True
        assert out.read_bytes() == b"P6\n2 2\n255\n" + b"\xff" * 12

    def test_max_color_is_carried_to_output(self, write_ppm, tmp_path):
        pixels = np.full((2, 2, 3), 100, dtype=np.uint8)
        src = write_ppm("max100.ppm", pixels, b"P6\n2 2\n100\n")
        out = tmp_path / "out.ppm"
        engine = RotationEngine()
        engine.init(src, out, 0)
        engine.run()
        assert engine.destination.max_color == 100
        engine.finish()
        assert out.read_bytes() == src.read_bytes()

    def test_round_trip_preserves_pixels(self, write_ppm, tmp_path, gradient_pixels):
        header = b"P6\n# with a comment\n7 5\n255\n"
        src = write_ppm("commented.ppm", gradient_pixels, header)
        out = tmp_path / "out.ppm"
        engine = RotationEngine()
        engine.init(src, out, 0)
        engine.run()
        engine.finish()
        reloaded = PixelBuffer.from_file(out)
        assert (reloaded.width, reloaded.height) == (7, 5)
        assert np.array_equal(reloaded.to_array(), gradient_pixels)
