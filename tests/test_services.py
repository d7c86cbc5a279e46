import json
import math
from pathlib import Path

import numpy as np

from marker_pipeline.mp_types import Detection, EulerAngles, Frame, Pose, RelativePose
from marker_pipeline.services.csv_writer import DetectionCsvWriter, RelativePoseCsvWriter
from marker_pipeline.services.storage import SessionStorage


def test_session_storage_creates_dirs_and_manifest(tmp_path):
    """SessionStorage should create directories, save frames, and emit config."""
    storage = SessionStorage(tmp_path, name="demo")
    session_dir = Path(storage.begin())
    assert (session_dir / "frames").exists()
    assert (session_dir / "logs").exists()

    frame = Frame(1, "ts", np.full((8, 8, 4), 255, dtype=np.uint8))
    path = storage.save_frame(frame)
    assert path.endswith("f000001.jpg")
    assert Path(path).stat().st_size > 0
    assert storage.last_path == path

    storage.write_manifest({"name": "demo"})
    manifest = json.loads((session_dir / "config.json").read_text())
    assert manifest["name"] == "demo"


def test_detection_writer_rows(tmp_path):
    csv_path = tmp_path / "detections.csv"
    writer = DetectionCsvWriter(str(csv_path))
    writer.open()
    pose = Pose([0.1, 0.2, 0.3], EulerAngles(0.0, 0.0, 0.5))
    writer.append(1.234567, 4, Detection(0, np.zeros((4, 2)), (10.0, 20.0), pose), "/tmp/img.jpg")
    writer.append(2.0, 5, Detection(1, np.zeros((4, 2)), (1.0, 2.0), None))
    writer.close()

    lines = csv_path.read_text().strip().splitlines()
    assert lines[0].startswith("recorded_at,frame_idx,tag_id")
    first = lines[1].split(",")
    assert first[:3] == ["1.234567", "4", "0"]
    assert float(first[10]) == 0.5
    assert first[-1] == "/tmp/img.jpg"
    second = lines[2].split(",")
    assert math.isnan(float(second[5]))
    assert second[-1] == ""


def test_relative_writer_rows(tmp_path):
    csv_path = tmp_path / "relative_pose.csv"
    writer = RelativePoseCsvWriter(str(csv_path))
    writer.open()
    rel = RelativePose(
        translation=np.array([0.5, 0.0, 0.0]),
        rotation_matrix=np.eye(3),
        rotation=EulerAngles(0.0, math.pi / 2, 0.0, singular=True),
        distance=0.5,
        tag_ids=(0, 1),
    )
    writer.append(3.0, 7, rel)
    writer.close()

    header, row = [line.split(",") for line in csv_path.read_text().strip().splitlines()]
    record = dict(zip(header, row))
    assert record["distance_m"] == "0.500000"
    assert float(record["ry_deg"]) == 90.0
    assert record["singular"] == "1"
    assert record["strategy"] == "matrix"
