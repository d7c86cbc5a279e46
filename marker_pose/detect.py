import logging
from typing import Any, NamedTuple, Optional

from marker_pipeline.errors import ConfigurationError
from marker_pipeline.factory import StrategyFactory
from marker_pipeline.mp_types import CameraModel, DetectorConfig, Detection, Frame

logger = logging.getLogger(__name__)


class DetectorState(NamedTuple):
    config: DetectorConfig
    pre: Any
    loc: Any
    ident: Any
    est: Any


def build_detector(config: Optional[DetectorConfig]) -> DetectorState:
    if config is None:
        raise ConfigurationError("No detector config supplied")
    pre, loc, ident, est = StrategyFactory.from_config(config)
    return DetectorState(config, pre, loc, ident, est)


def detect_markers(
    frame: Frame,
    detector_state: Optional[DetectorState],
    camera: Optional[CameraModel],
) -> list[Detection]:
    """
    Run one detection cycle: reduce, locate, identify, estimate pose.

    Identities are unique per cycle; when two candidates resolve to the same
    tag the later one in scan order replaces the earlier one.
    """
    if detector_state is None:
        raise ConfigurationError("Detector not built; call build_detector first")
    if camera is None:
        raise ConfigurationError("No camera model for this frame size")

    intensity = detector_state.pre.apply(frame)
    candidates = detector_state.loc.locate(intensity)

    found: dict[int, Detection] = {}
    for cand in candidates:
        tag_id = detector_state.ident.resolve(cand, intensity.width, intensity.height)
        if tag_id is None:
            continue
        pose = detector_state.est.estimate(cand.corners, camera)
        found[tag_id] = Detection(tag_id, cand.corners, cand.center, pose)

    logger.debug(
        "frame=%d candidates=%d detections=%d", frame.idx, len(candidates), len(found)
    )
    return list(found.values())
