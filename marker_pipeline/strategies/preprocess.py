from abc import ABC, abstractmethod

import numpy as np

from ..errors import MalformedFrameError
from ..mp_types import Frame, IntensityFrame

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def rgba_to_intensity(buffer, width: int, height: int) -> IntensityFrame:
    """
    Reduce an RGB(A) pixel buffer to single-channel luma.

    Each sample is round(0.299 R + 0.587 G + 0.114 B), rounding half up.
    ``buffer`` may be raw bytes or an ndarray; its size decides whether it
    holds 4 or 3 channels per pixel.
    """
    if width <= 0 or height <= 0:
        raise MalformedFrameError(f"Frame dimensions must be positive, got {width}x{height}")

    pixels = np.asarray(buffer if isinstance(buffer, np.ndarray) else bytearray(buffer))
    pixels = pixels.astype(np.uint8, copy=False).reshape(-1)
    count = width * height
    if pixels.size == count * 4:
        channels = 4
    elif pixels.size == count * 3:
        channels = 3
    else:
        raise MalformedFrameError(
            f"Buffer holds {pixels.size} bytes, expected {count * 4} (RGBA) "
            f"or {count * 3} (RGB) for {width}x{height}"
        )

    rgb = pixels.reshape(height, width, channels)[:, :, :3].astype(np.float64)
    luma = np.floor(rgb @ LUMA_WEIGHTS + 0.5)
    data = np.clip(luma, 0, 255).astype(np.uint8)
    data.setflags(write=False)
    return IntensityFrame(width, height, data)


class PreprocessStrategy(ABC):
    @abstractmethod
    def apply(self, f: Frame) -> IntensityFrame: ...


class LumaReduce(PreprocessStrategy):
    def apply(self, f: Frame) -> IntensityFrame:
        image = f.image
        if image is None or getattr(image, "ndim", 0) != 3:
            raise MalformedFrameError(f"Frame #{f.idx} is not an HxWxC pixel array")
        return rgba_to_intensity(image, f.width, f.height)
