from __future__ import annotations

import time
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from marker_pipeline.errors import MalformedFrameError
from marker_pipeline.mp_types import CameraModel
from marker_pipeline.services.storage import SessionStorage

from .capture import BaseCapture, SyntheticCapture, USBOpenCVCapture
from .config import MarkerPoseConfig
from .detect import build_detector, detect_markers
from .logging_utils import session_log, setup_logger
from .output import CsvOutput, OutputSink
from .transforms import relative_summary


@dataclass
class SessionSummary:
    session_path: str
    frames_processed: int
    csv_path: str
    relative_csv_path: str
    log_path: str
    avg_fps: float
    errors: int
    relative_poses: int


class MarkerPoseWorker:
    def __init__(
        self,
        config: MarkerPoseConfig,
        logger=None,
        outputs: Optional[list[OutputSink]] = None,
        capture: Optional[BaseCapture] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.camera_name, config.log_level)
        self.outputs = outputs if outputs is not None else [CsvOutput()]
        self.capture = capture
        self.camera: Optional[CameraModel] = None
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def _build_capture(self) -> BaseCapture:
        if self.capture is not None:
            return self.capture
        if self.config.dry_run:
            return SyntheticCapture(self.config.fps, self.config.width, self.config.height)
        return USBOpenCVCapture(
            self.config.device,
            self.config.fps,
            self.config.width,
            self.config.height,
        )

    def _camera_for(self, width: int, height: int) -> CameraModel:
        if self.camera is None or not self.camera.size_matches(width, height):
            self.camera = CameraModel.from_frame_size(width, height)
            self.logger.info(
                "camera model %dx%d: fx=%.1f fy=%.1f cx=%.1f cy=%.1f",
                width, height,
                self.camera.fx, self.camera.fy, self.camera.cx, self.camera.cy,
            )
        return self.camera

    def run(self) -> SessionSummary:
        storage = SessionStorage(self.config.session_root, name=f"{self.config.camera_name}_session")
        session_path = storage.begin()
        storage.write_manifest(self.config.as_dict())

        log_file = str(Path(storage.logs_dir) / "session.log")
        t0 = time.time()
        frames = 0
        errors = 0
        relative_count = 0

        with session_log(self.logger, self.config.camera_name, log_file):
            cap: Optional[BaseCapture] = None
            try:
                for out in self.outputs:
                    out.open(Path(storage.session_dir))

                self.logger.info("session started: %s", session_path)
                self.logger.info("config: %s", self.config.as_dict())

                cap = self._build_capture()
                cap.start()
                t0 = time.time()

                while True:
                    if self._stop_event.is_set():
                        break
                    if self.config.duration_sec and (time.time() - t0) >= self.config.duration_sec:
                        break
                    if self.config.max_frames and frames >= self.config.max_frames:
                        break

                    f = cap.next_frame()
                    if f is None:
                        errors += 1
                        continue

                    # fresh snapshot per cycle; config may be swapped between cycles
                    cfg = self.config
                    detector_state = build_detector(cfg.detector_config())
                    strategy = cfg.relative_pose_strategy()

                    try:
                        camera = self._camera_for(f.width, f.height)
                        dets = detect_markers(f, detector_state, camera)
                    except MalformedFrameError as e:
                        errors += 1
                        self.logger.warning("frame=%d dropped: %s", f.idx, e)
                        continue

                    image_path = storage.save_frame(f) if cfg.save_frames else None
                    ts_unix = time.time()

                    for det in dets:
                        for out in self.outputs:
                            out.write_detection(ts_unix, f.idx, det, image_path)

                    rel = relative_summary(dets, cfg.tag1_id, cfg.tag2_id, strategy)
                    if rel is not None:
                        relative_count += 1
                        rx, ry, rz = rel.rotation_degrees()
                        self.logger.debug(
                            "frame=%d tags %d->%d distance=%.3f m rot=(%.1f, %.1f, %.1f) deg%s",
                            f.idx, cfg.tag1_id, cfg.tag2_id, rel.distance, rx, ry, rz,
                            " singular" if rel.rotation.singular else "",
                        )
                        for out in self.outputs:
                            out.write_relative(ts_unix, f.idx, rel)

                    self.logger.info("frame=%d dets=%d ids=%s", f.idx, len(dets), [d.tag_id for d in dets])
                    frames += 1

            finally:
                if cap is not None:
                    cap.stop()
                for out in self.outputs:
                    out.close()

                avg = frames / max(1e-6, (time.time() - t0))
                self.logger.info(
                    "summary frames=%d avg_fps=%.2f errors=%d relative=%d",
                    frames, avg, errors, relative_count,
                )

        return SessionSummary(
            str(session_path),
            frames,
            str(Path(storage.session_dir) / "detections.csv"),
            str(Path(storage.session_dir) / "relative_pose.csv"),
            log_file,
            avg,
            errors,
            relative_count,
        )
