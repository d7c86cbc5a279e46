import csv
import dataclasses
import logging
from pathlib import Path

import numpy as np
import pytest

from marker_pipeline.errors import ConfigurationError
from marker_pipeline.mp_types import Frame
from marker_pose.capture import SyntheticCapture
from marker_pose.config import MarkerPoseConfig
from marker_pose.output import NullOutput
from marker_pose.worker import MarkerPoseWorker


class ListCapture:
    """Capture stub replaying a fixed list of frames (None = failed read)."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def next_frame(self):
        if not self.frames:
            return None
        return self.frames.pop(0)

    def stop(self) -> None:
        self.stopped = True


def _read_csv(path):
    with open(path, newline="", encoding="utf-8") as fp:
        return list(csv.DictReader(fp))


def _config(tmp_path, **kwargs):
    base = dict(
        camera_name="testcam",
        session_root=str(tmp_path),
        duration_sec=10.0,
        max_frames=1,
    )
    base.update(kwargs)
    return MarkerPoseConfig(**base)


def test_worker_dry_run_creates_session(tmp_path: Path):
    cfg = _config(tmp_path, dry_run=True, max_frames=2, fps=0)
    summary = MarkerPoseWorker(cfg).run()

    assert summary.frames_processed == 2
    assert summary.errors == 0
    assert Path(summary.session_path).exists()
    assert Path(summary.csv_path).exists()
    assert Path(summary.relative_csv_path).exists()
    assert Path(summary.log_path).exists()
    assert (Path(summary.session_path) / "config.json").exists()


def test_worker_reports_relative_pose(tmp_path: Path, make_frame, demo_squares):
    capture = ListCapture([make_frame(squares=demo_squares)])
    summary = MarkerPoseWorker(_config(tmp_path), capture=capture).run()

    assert capture.started and capture.stopped
    assert summary.relative_poses == 1

    dets = _read_csv(summary.csv_path)
    assert sorted(int(r["tag_id"]) for r in dets) == [0, 1]

    rel = _read_csv(summary.relative_csv_path)
    assert len(rel) == 1
    assert rel[0]["tag1_id"] == "0" and rel[0]["tag2_id"] == "1"
    assert rel[0]["strategy"] == "matrix"
    assert float(rel[0]["distance_m"]) > 0
    assert float(rel[0]["rz_deg"]) == pytest.approx(0.0)


def test_worker_skips_relative_when_target_missing(tmp_path: Path, make_frame):
    capture = ListCapture([make_frame(squares=[(160, 160, 80)])])
    summary = MarkerPoseWorker(_config(tmp_path), capture=capture).run()

    assert summary.relative_poses == 0
    assert _read_csv(summary.relative_csv_path) == []
    assert len(_read_csv(summary.csv_path)) == 1


def test_worker_counts_bad_frames_and_continues(tmp_path: Path, make_frame):
    bad = Frame(1, "ts", np.zeros(7, dtype=np.uint8))
    capture = ListCapture([None, bad, make_frame(idx=3)])
    summary = MarkerPoseWorker(_config(tmp_path), capture=capture).run()

    assert summary.errors == 2
    assert summary.frames_processed == 1


def test_worker_recomputes_camera_on_resize(tmp_path: Path, make_frame):
    capture = ListCapture([make_frame(), make_frame(width=320, height=240, idx=2)])
    worker = MarkerPoseWorker(_config(tmp_path, max_frames=2), capture=capture)
    worker.run()

    assert worker.camera.size_matches(320, 240)
    assert worker.camera.fx == pytest.approx(256.0)


def test_worker_uses_selected_strategy(tmp_path: Path, make_frame, demo_squares):
    capture = ListCapture([make_frame(squares=demo_squares)])
    cfg = _config(tmp_path, relative_strategy="euler_difference")
    summary = MarkerPoseWorker(cfg, capture=capture).run()

    rel = _read_csv(summary.relative_csv_path)
    assert rel[0]["strategy"] == "euler_difference"


def test_worker_config_error_propagates(tmp_path: Path, make_frame):
    capture = ListCapture([make_frame()])
    cfg = _config(tmp_path, tag_size_m=0.0)
    worker = MarkerPoseWorker(cfg, outputs=[NullOutput()], capture=capture)

    with pytest.raises(ConfigurationError):
        worker.run()
    assert capture.stopped


def test_worker_saves_frames_when_enabled(tmp_path: Path, make_frame):
    capture = ListCapture([make_frame(squares=[(160, 160, 80)])])
    summary = MarkerPoseWorker(_config(tmp_path, save_frames=True), capture=capture).run()

    rows = _read_csv(summary.csv_path)
    assert rows[0]["image_path"].endswith("f000001.jpg")
    assert Path(rows[0]["image_path"]).exists()


def test_synthetic_capture_draws_demo_tags():
    cap = SyntheticCapture(fps=0, animate=False)
    cap.start()
    frame = cap.next_frame()

    assert frame.image.shape == (480, 640, 4)
    assert frame.image[200, 200, :3].tolist() == [0, 0, 0]
    assert frame.image[280, 450, :3].tolist() == [0, 0, 0]
    assert frame.image[10, 10, :3].tolist() == [255, 255, 255]
    assert frame.image[160:240, 160:240, 0].max() == 0
    assert frame.image[159, 200, 0] == 255


class FailingCapture(ListCapture):
    def start(self) -> None:
        raise RuntimeError("Failed to open camera: 9")


class SwappingCapture(ListCapture):
    """Replaces the worker's config right before handing out frame 2."""

    def __init__(self, frames, worker_ref, new_config):
        super().__init__(frames)
        self.worker_ref = worker_ref
        self.new_config = new_config

    def next_frame(self):
        frame = super().next_frame()
        if frame is not None and frame.idx == 2:
            self.worker_ref[0].config = self.new_config
        return frame


def _file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, logging.FileHandler)]


def test_worker_cleans_up_when_capture_fails_to_start(tmp_path: Path, make_frame):
    capture = FailingCapture([])
    worker = MarkerPoseWorker(_config(tmp_path), capture=capture)

    with pytest.raises(RuntimeError, match="Failed to open camera"):
        worker.run()

    assert _file_handlers(worker.logger) == []
    assert capture.stopped
    assert worker.outputs[0]._writer is None
    assert worker.outputs[0]._rel_writer is None

    # a second session in the same process does not log into the first one
    logs = list(tmp_path.glob("testcam_session_*/logs/session.log"))
    assert len(logs) == 1
    before = logs[0].read_text(encoding="utf-8")
    MarkerPoseWorker(_config(tmp_path / "next"), capture=ListCapture([make_frame()])).run()
    assert logs[0].read_text(encoding="utf-8") == before


def test_worker_rejects_unknown_relative_strategy(tmp_path: Path, make_frame):
    capture = ListCapture([make_frame()])
    cfg = _config(tmp_path, relative_strategy="average")
    worker = MarkerPoseWorker(cfg, outputs=[NullOutput()], capture=capture)

    with pytest.raises(ConfigurationError, match="average"):
        worker.run()
    assert capture.stopped
    assert _file_handlers(worker.logger) == []


def test_worker_rereads_config_each_cycle(tmp_path: Path, make_frame, demo_squares):
    cfg = _config(tmp_path, max_frames=2)
    swapped = dataclasses.replace(cfg, tag_size_m=cfg.tag_size_m * 2, relative_strategy="euler_difference")
    worker_ref = []
    capture = SwappingCapture(
        [make_frame(squares=demo_squares, idx=1), make_frame(squares=demo_squares, idx=2)],
        worker_ref,
        swapped,
    )
    worker = MarkerPoseWorker(cfg, capture=capture)
    worker_ref.append(worker)
    summary = worker.run()

    assert summary.frames_processed == 2
    rel = _read_csv(summary.relative_csv_path)
    assert [(r["frame_idx"], r["strategy"]) for r in rel] == [("1", "matrix"), ("2", "euler_difference")]

    z = {(r["frame_idx"], r["tag_id"]): float(r["tvec_z"]) for r in _read_csv(summary.csv_path)}
    for tag in ("0", "1"):
        assert z[("2", tag)] == pytest.approx(2 * z[("1", tag)])
