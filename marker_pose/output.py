from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from marker_pipeline.mp_types import Detection, RelativePose
from marker_pipeline.services.csv_writer import DetectionCsvWriter, RelativePoseCsvWriter


class OutputSink(ABC):
    @abstractmethod
    def open(self, session_dir: Path) -> None: ...

    @abstractmethod
    def write_detection(
        self,
        ts_unix: float,
        frame_idx: int,
        detection: Detection,
        image_path: Optional[str],
    ) -> None: ...

    @abstractmethod
    def write_relative(self, ts_unix: float, frame_idx: int, relative: RelativePose) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class CsvOutput(OutputSink):
    def __init__(
        self,
        filename: str = "detections.csv",
        relative_filename: str = "relative_pose.csv",
    ):
        self.filename = filename
        self.relative_filename = relative_filename
        self._writer: Optional[DetectionCsvWriter] = None
        self._rel_writer: Optional[RelativePoseCsvWriter] = None

    def open(self, session_dir: Path) -> None:
        self._writer = DetectionCsvWriter(str(session_dir / self.filename))
        self._writer.open()
        self._rel_writer = RelativePoseCsvWriter(str(session_dir / self.relative_filename))
        self._rel_writer.open()

    def write_detection(
        self,
        ts_unix: float,
        frame_idx: int,
        detection: Detection,
        image_path: Optional[str],
    ) -> None:
        if self._writer is None:
            return
        self._writer.append(ts_unix, frame_idx, detection, image_path)

    def write_relative(self, ts_unix: float, frame_idx: int, relative: RelativePose) -> None:
        if self._rel_writer is None:
            return
        self._rel_writer.append(ts_unix, frame_idx, relative)

    def close(self) -> None:
        for writer in (self._writer, self._rel_writer):
            if writer is not None:
                writer.close()
        self._writer = None
        self._rel_writer = None


class NullOutput(OutputSink):
    def open(self, session_dir: Path) -> None:
        return None

    def write_detection(
        self,
        ts_unix: float,
        frame_idx: int,
        detection: Detection,
        image_path: Optional[str],
    ) -> None:
        return None

    def write_relative(self, ts_unix: float, frame_idx: int, relative: RelativePose) -> None:
        return None

    def close(self) -> None:
        return None
