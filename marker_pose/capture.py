import math
import re
import time
from abc import ABC, abstractmethod
from typing import Any

import cv2
import numpy as np

from marker_pipeline.mp_types import Frame


class BaseCapture(ABC):
    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def next_frame(self) -> Frame | None: ...

    @abstractmethod
    def stop(self) -> None: ...


class USBOpenCVCapture(BaseCapture):
    def __init__(self, device: int | str, fps: int, width: int, height: int):
        self.device = device
        self.fps = fps
        self.width = width
        self.height = height
        self.cap: Any = None
        self.idx = 0

    def start(self) -> None:
        if isinstance(self.device, int):
            self.cap = cv2.VideoCapture(self.device)
        else:
            dev_str = str(self.device)
            match = re.match(r"^/dev/video(\d+)$", dev_str)
            if match:
                self.cap = cv2.VideoCapture(int(match.group(1)))
            else:
                self.cap = cv2.VideoCapture(dev_str)

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open camera: {self.device}")

    def next_frame(self) -> Frame | None:
        ok, img = self.cap.read()
        if not ok:
            return None
        self.idx += 1
        ts = time.strftime("%Y-%m-%dT%H:%M:%S")
        return Frame(self.idx, ts, cv2.cvtColor(img, cv2.COLOR_BGR2RGBA))

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()


# (center_x, center_y, side) on a 640x480 canvas
DEMO_TAGS = ((200, 200, 80), (450, 280, 70))


class SyntheticCapture(BaseCapture):
    """Dry-run source: two dark demo tags drifting on a white canvas."""

    def __init__(self, fps: int, width: int = 640, height: int = 480, animate: bool = True):
        self.fps = fps
        self.width = width
        self.height = height
        self.animate = animate
        self.idx = 0
        self._last = 0.0

    def start(self) -> None:
        self._last = time.time()

    def render(self, idx: int) -> np.ndarray:
        img = np.full((self.height, self.width, 4), 255, dtype=np.uint8)
        sx = self.width / 640.0
        sy = self.height / 480.0
        t = idx / float(self.fps or 15)
        for k, (cx, cy, side) in enumerate(DEMO_TAGS):
            if self.animate:
                cx += math.sin(t * (0.5 + 0.2 * k)) * 40
                cy += math.cos(t * (0.3 + 0.1 * k)) * 30
            half = side * min(sx, sy) / 2.0
            x0, y0 = int(round(cx * sx - half)), int(round(cy * sy - half))
            x1, y1 = int(round(cx * sx + half)) - 1, int(round(cy * sy + half)) - 1
            cv2.rectangle(img, (x0, y0), (x1, y1), (0, 0, 0, 255), thickness=-1)
        return img

    def next_frame(self) -> Frame | None:
        now = time.time()
        if self.fps > 0:
            wait = max(0.0, (1.0 / self.fps) - (now - self._last))
            if wait > 0:
                time.sleep(wait)
        self._last = time.time()
        self.idx += 1
        ts = time.strftime("%Y-%m-%dT%H:%M:%S")
        return Frame(self.idx, ts, self.render(self.idx))

    def stop(self) -> None:
        return None
