import csv

import numpy as np


def _vec3(vec):
    if vec is None:
        return [float("nan")] * 3
    a = np.array(vec, dtype=np.float64).reshape(-1).tolist()
    if len(a) < 3:
        a += [float("nan")] * (3 - len(a))
    return a[:3]


class CsvWriter:
    HEADER: list[str] = []

    def __init__(self, csv_path: str):
        self.csv_path = csv_path
        self._opened = False
        self._fh = None
        self._w = None

    def open(self):
        self._fh = open(self.csv_path, "w", newline="")
        self._w = csv.writer(self._fh)
        self._w.writerow(self.HEADER)
        self._opened = True

    def _write(self, row):
        self._w.writerow(row)

    def close(self):
        if self._opened and self._fh:
            self._fh.close()
            self._opened = False
            self._fh = None
            self._w = None


class DetectionCsvWriter(CsvWriter):
    HEADER = [
        "recorded_at",
        "frame_idx", "tag_id",
        "center_x", "center_y",
        "tvec_x", "tvec_y", "tvec_z",
        "rx", "ry", "rz",
        "image_path",
    ]

    @staticmethod
    def to_row(ts_unix, frame_idx, det, img_path):
        pose = det.pose
        t = _vec3(pose.translation if pose is not None else None)
        r = _vec3(pose.rotation.as_array() if pose is not None else None)
        return [
            f"{ts_unix:.6f}",
            frame_idx, det.tag_id,
            float(det.center[0]), float(det.center[1]),
            *t, *r,
            img_path if img_path is not None else "",
        ]

    def append(self, ts_unix, frame_idx, det, img_path=None):
        self._write(self.to_row(ts_unix, frame_idx, det, img_path))


class RelativePoseCsvWriter(CsvWriter):
    HEADER = [
        "recorded_at",
        "frame_idx", "tag1_id", "tag2_id",
        "distance_m",
        "tvec_x", "tvec_y", "tvec_z",
        "rx_deg", "ry_deg", "rz_deg",
        "singular", "strategy",
    ]

    @staticmethod
    def to_row(ts_unix, frame_idx, rel):
        return [
            f"{ts_unix:.6f}",
            frame_idx, rel.tag_ids[0], rel.tag_ids[1],
            f"{rel.distance:.6f}",
            *_vec3(rel.translation),
            *rel.rotation_degrees(),
            int(rel.rotation.singular), rel.strategy,
        ]

    def append(self, ts_unix, frame_idx, rel):
        self._write(self.to_row(ts_unix, frame_idx, rel))
