import numpy as np
import pytest

from marker_pipeline.mp_types import Frame


def _paint_frame(width=640, height=480, squares=(), background=255, fill=0):
    """RGBA canvas with filled squares given as (x0, y0, side)."""
    img = np.full((height, width, 4), background, dtype=np.uint8)
    img[:, :, 3] = 255
    for x0, y0, side in squares:
        img[y0:y0 + side, x0:x0 + side, :3] = fill
    return img


@pytest.fixture
def paint_frame():
    return _paint_frame


@pytest.fixture
def make_frame():
    def _make(width=640, height=480, squares=(), idx=1, **kwargs):
        return Frame(idx, "2026-01-01T00:00:00", _paint_frame(width, height, squares, **kwargs))

    return _make


@pytest.fixture
def demo_squares():
    # 80 px tag around (200, 200) and 70 px tag around (450, 280)
    return ((160, 160, 80), (415, 245, 70))
