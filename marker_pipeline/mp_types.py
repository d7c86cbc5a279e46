from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from .errors import ConfigurationError, MalformedFrameError

IDENTITY_POLICIES = ("position", "codebook")


@dataclass
class Frame:
    idx: int
    ts_iso: str
    image: Any  # (H, W, 4) RGBA ndarray

    def _shape(self) -> tuple:
        shape = getattr(self.image, "shape", ())
        if len(shape) < 2:
            raise MalformedFrameError(f"Frame #{self.idx} has no 2D pixel layout")
        return shape

    @property
    def width(self) -> int:
        return int(self._shape()[1])

    @property
    def height(self) -> int:
        return int(self._shape()[0])


@dataclass(frozen=True)
class IntensityFrame:
    width: int
    height: int
    data: Any  # (H, W) uint8 ndarray, read-only

    def at(self, x: int, y: int) -> int:
        return int(self.data[y, x])


@dataclass(frozen=True)
class BoundingBox:
    min_x: int
    max_x: int
    min_y: int
    max_y: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x

    @property
    def height(self) -> int:
        return self.max_y - self.min_y

    @property
    def center(self) -> tuple[float, float]:
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def corners(self) -> np.ndarray:
        """Top-left, top-right, bottom-right, bottom-left."""
        return np.array(
            [
                [self.min_x, self.min_y],
                [self.max_x, self.min_y],
                [self.max_x, self.max_y],
                [self.min_x, self.max_y],
            ],
            dtype=np.float64,
        )

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y


@dataclass(frozen=True)
class Candidate:
    box: BoundingBox
    corners: Any  # (4, 2) ndarray
    center: tuple[float, float]
    seed: tuple[int, int]

    @classmethod
    def from_box(cls, box: BoundingBox, seed: tuple[int, int]) -> "Candidate":
        return cls(box, box.corners(), box.center, seed)


@dataclass(frozen=True)
class EulerAngles:
    """Intrinsic ZYX angles in radians.

    ``singular`` marks angles recovered at gimbal lock, where ``rz`` is
    pinned to zero and carries no information.
    """

    rx: float
    ry: float
    rz: float
    singular: bool = False

    def as_array(self) -> np.ndarray:
        return np.array([self.rx, self.ry, self.rz], dtype=np.float64)

    def degrees(self) -> tuple[float, float, float]:
        return (math.degrees(self.rx), math.degrees(self.ry), math.degrees(self.rz))


@dataclass
class Pose:
    translation: Any  # (3,) meters
    rotation: EulerAngles

    def __post_init__(self):
        self.translation = np.asarray(self.translation, dtype=np.float64).reshape(3)


@dataclass
class Detection:
    tag_id: int
    corners: Any  # (4, 2) ndarray, TL/TR/BR/BL
    center: tuple[float, float]
    pose: Optional[Pose] = None


@dataclass(frozen=True)
class CameraModel:
    fx: float
    fy: float
    cx: float
    cy: float
    width: int = 0
    height: int = 0

    @classmethod
    def from_frame_size(cls, width: int, height: int) -> "CameraModel":
        # rough pinhole estimate, no calibration
        return cls(
            fx=width * 0.8,
            fy=width * 0.8,
            cx=width / 2.0,
            cy=height / 2.0,
            width=int(width),
            height=int(height),
        )

    def size_matches(self, width: int, height: int) -> bool:
        return self.width == width and self.height == height


@dataclass(frozen=True)
class DetectorConfig:
    family: str = "tag36h11"
    tag_size_m: float = 0.05
    decimate: int = 2
    blur: float = 0.0
    refine_edges: bool = True
    identity_policy: str = "position"

    def validate(self) -> "DetectorConfig":
        if self.tag_size_m <= 0:
            raise ConfigurationError(f"tag_size_m must be positive, got {self.tag_size_m}")
        if self.decimate < 1:
            raise ConfigurationError(f"decimate must be >= 1, got {self.decimate}")
        if self.blur < 0:
            raise ConfigurationError(f"blur must be >= 0, got {self.blur}")
        if self.identity_policy not in IDENTITY_POLICIES:
            raise ConfigurationError(f"Unknown identity policy: {self.identity_policy!r}")
        return self


@dataclass
class RelativePose:
    translation: Any  # (3,) in tag-1 frame for the matrix strategy
    rotation_matrix: Any  # (3, 3)
    rotation: EulerAngles
    distance: float
    strategy: str = "matrix"
    tag_ids: tuple[int, int] = field(default=(0, 1))

    def rotation_degrees(self) -> tuple[float, float, float]:
        return self.rotation.degrees()
