"""Rotation algebra and relative pose between two tag poses."""

import math
from enum import Enum
from typing import Iterable, Optional

import numpy as np

from marker_pipeline.mp_types import Detection, EulerAngles, Pose, RelativePose

SINGULAR_EPS = 1e-6


class RelativePoseStrategy(str, Enum):
    MATRIX = "matrix"
    EULER_DIFFERENCE = "euler_difference"


def euler_to_matrix(angles: EulerAngles) -> np.ndarray:
    """
    Convert intrinsic ZYX Euler angles to a 3x3 rotation matrix.

    R = Rz(rz) @ Ry(ry) @ Rx(rx), the composition inverted by
    ``matrix_to_euler``.
    """
    cx, sx = math.cos(angles.rx), math.sin(angles.rx)
    cy, sy = math.cos(angles.ry), math.sin(angles.ry)
    cz, sz = math.cos(angles.rz), math.sin(angles.rz)

    return np.array([
        [cz * cy, cz * sy * sx - sz * cx, cz * sy * cx + sz * sx],
        [sz * cy, sz * sy * sx + cz * cx, sz * sy * cx - cz * sx],
        [-sy,     cy * sx,                cy * cx],
    ])


def matrix_to_euler(R: np.ndarray) -> EulerAngles:
    """
    Convert a rotation matrix back to ZYX Euler angles.

    At gimbal lock (sy < 1e-6) yaw cannot be recovered: rz is reported as 0
    and the result is flagged ``singular``.

    Args:
        R: 3x3 rotation matrix

    Returns:
        EulerAngles in radians
    """
    R = np.asarray(R, dtype=np.float64)
    sy = math.sqrt(R[0, 0] ** 2 + R[1, 0] ** 2)

    if sy >= SINGULAR_EPS:
        rx = math.atan2(R[2, 1], R[2, 2])
        ry = math.atan2(-R[2, 0], sy)
        rz = math.atan2(R[1, 0], R[0, 0])
        return EulerAngles(rx, ry, rz)

    rx = math.atan2(-R[1, 2], R[1, 1])
    ry = math.atan2(-R[2, 0], sy)
    return EulerAngles(rx, ry, 0.0, singular=True)


def compute_relative_pose(pose1: Pose, pose2: Pose) -> RelativePose:
    """
    Pose of tag 2 expressed in tag 1's frame.

    Given:
        R1, t1: pose of tag 1 in camera frame
        R2, t2: pose of tag 2 in camera frame

    Compute:
        R_rel = R2 @ R1^T
        t_rel = R1^T @ (t2 - t1)

    The returned distance is |t2 - t1| measured in the camera frame.
    """
    R1 = euler_to_matrix(pose1.rotation)
    R2 = euler_to_matrix(pose2.rotation)
    R1_T = R1.T

    t_diff = pose2.translation - pose1.translation
    R_rel = R2 @ R1_T
    t_rel = R1_T @ t_diff

    return RelativePose(
        translation=t_rel,
        rotation_matrix=R_rel,
        rotation=matrix_to_euler(R_rel),
        distance=float(np.linalg.norm(t_diff)),
        strategy=RelativePoseStrategy.MATRIX.value,
    )


def euler_difference_pose(pose1: Pose, pose2: Pose) -> RelativePose:
    """
    Per-component difference of the two poses, no rotation algebra.

    Only agrees with ``compute_relative_pose`` when both rotations are zero.
    Translation stays in the camera frame.
    """
    t_diff = pose2.translation - pose1.translation
    d = pose2.rotation.as_array() - pose1.rotation.as_array()
    rotation = EulerAngles(float(d[0]), float(d[1]), float(d[2]))

    return RelativePose(
        translation=t_diff,
        rotation_matrix=euler_to_matrix(rotation),
        rotation=rotation,
        distance=float(np.linalg.norm(t_diff)),
        strategy=RelativePoseStrategy.EULER_DIFFERENCE.value,
    )


def relative_pose(
    pose1: Pose,
    pose2: Pose,
    strategy: RelativePoseStrategy = RelativePoseStrategy.MATRIX,
) -> RelativePose:
    strategy = RelativePoseStrategy(strategy)
    if strategy is RelativePoseStrategy.EULER_DIFFERENCE:
        return euler_difference_pose(pose1, pose2)
    return compute_relative_pose(pose1, pose2)


def relative_summary(
    detections: Iterable[Detection],
    tag1_id: int,
    tag2_id: int,
    strategy: RelativePoseStrategy = RelativePoseStrategy.MATRIX,
) -> Optional[RelativePose]:
    by_id = {d.tag_id: d for d in detections}
    tag1 = by_id.get(tag1_id)
    tag2 = by_id.get(tag2_id)
    if tag1 is None or tag2 is None or tag1.pose is None or tag2.pose is None:
        return None

    rel = relative_pose(tag1.pose, tag2.pose, strategy)
    rel.tag_ids = (tag1_id, tag2_id)
    return rel
