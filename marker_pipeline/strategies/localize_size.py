import math

import numpy as np

from ..mp_types import CameraModel, EulerAngles, Pose


class ApparentSizeLocalize:
    """
    Pinhole pose from the apparent length of a tag's top edge.

    Only four degrees of freedom are estimated: translation plus yaw from
    the top edge direction. Roll and pitch are always zero. ``camera.fx``
    serves as the single focal length for both axes.
    """

    def __init__(self, tag_size_m: float):
        self.L = tag_size_m

    def estimate(self, corners, camera: CameraModel) -> Pose:
        pts = np.asarray(corners, dtype=np.float64).reshape(4, 2)
        center_x, center_y = pts.mean(axis=0)

        dx, dy = pts[1] - pts[0]
        pixel_size = math.hypot(dx, dy)
        if pixel_size == 0:
            raise ValueError("Degenerate corners: top edge has zero length")

        f = camera.fx
        distance = (self.L * f) / pixel_size
        x = (center_x - camera.cx) * distance / f
        y = (center_y - camera.cy) * distance / f

        yaw = math.atan2(dy, dx)
        return Pose(np.array([x, y, distance]), EulerAngles(0.0, 0.0, yaw))
