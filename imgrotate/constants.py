"""Константы формата PPM и параметры поворота."""

RGB_DEPTH = 3
RGB_MAX_COLOR = 255

# Число знаков после запятой для весов билинейной фильтрации
PRECISION = 3

P6_MAGIC = b"P6"
P5_MAGIC = b"P5"

HEADER_WHITESPACE = b" \t\n\r"
COMMENT_CHAR = b"#"

PROG_NAME = "imgrotate"
BANNER = "--- IMAGE ROTATION BENCHMARK v0.1 ---"
