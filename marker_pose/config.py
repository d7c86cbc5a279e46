from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Optional

import yaml

from marker_pipeline.errors import ConfigurationError
from marker_pipeline.mp_types import DetectorConfig

from .transforms import RelativePoseStrategy

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class MarkerPoseConfig:
    camera_name: str = "cam"
    device: int | str = 0
    fps: int = 15
    width: int = 640
    height: int = 480
    session_root: str = "data/sessions"
    duration_sec: float = 30.0
    max_frames: Optional[int] = None
    dry_run: bool = False
    save_frames: bool = False
    # detector snapshot fields
    tag_family: str = "tag36h11"
    tag_size_m: float = 0.05
    decimate: int = 2
    blur: float = 0.0
    refine_edges: bool = True
    identity_policy: str = "position"
    # relative pose targets
    tag1_id: int = 0
    tag2_id: int = 1
    relative_strategy: str = "matrix"
    log_level: str = "INFO"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "MarkerPoseConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self

    def detector_config(self) -> DetectorConfig:
        return DetectorConfig(
            family=self.tag_family,
            tag_size_m=float(self.tag_size_m),
            decimate=int(self.decimate),
            blur=float(self.blur),
            refine_edges=bool(self.refine_edges),
            identity_policy=self.identity_policy,
        )

    def relative_pose_strategy(self) -> RelativePoseStrategy:
        try:
            return RelativePoseStrategy(self.relative_strategy)
        except ValueError as e:
            raise ConfigurationError(f"Unknown relative strategy: {self.relative_strategy!r}") from e

    def validate(self) -> "MarkerPoseConfig":
        self.detector_config().validate()
        self.relative_pose_strategy()
        return self


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE:
            return True
        if token in _FALSE:
            return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def load_config(path: str | Path) -> MarkerPoseConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = MarkerPoseConfig()
    cfg.camera_name = str(raw.get("camera_name", cfg.camera_name))
    cfg.device = raw.get("device", cfg.device)
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.width = int(raw.get("width", cfg.width))
    cfg.height = int(raw.get("height", cfg.height))
    cfg.session_root = str(raw.get("session_root", cfg.session_root))
    cfg.duration_sec = float(raw.get("duration_sec", cfg.duration_sec))
    cfg.max_frames = _optional_int(raw.get("max_frames", cfg.max_frames))
    cfg.dry_run = _as_bool(raw.get("dry_run", cfg.dry_run), "dry_run")
    cfg.save_frames = _as_bool(raw.get("save_frames", cfg.save_frames), "save_frames")

    # detector settings may be flat or nested under "detector"
    det_raw = raw.get("detector")
    if det_raw is None:
        det_raw = raw
    elif not isinstance(det_raw, dict):
        raise ValueError("detector must be a mapping")
    cfg.tag_family = str(det_raw.get("tag_family", cfg.tag_family))
    cfg.tag_size_m = float(det_raw.get("tag_size_m", cfg.tag_size_m))
    cfg.decimate = int(det_raw.get("decimate", cfg.decimate))
    cfg.blur = float(det_raw.get("blur", cfg.blur))
    cfg.refine_edges = _as_bool(det_raw.get("refine_edges", cfg.refine_edges), "refine_edges")
    cfg.identity_policy = str(det_raw.get("identity_policy", cfg.identity_policy))

    cfg.tag1_id = int(raw.get("tag1_id", cfg.tag1_id))
    cfg.tag2_id = int(raw.get("tag2_id", cfg.tag2_id))
    cfg.relative_strategy = str(raw.get("relative_strategy", cfg.relative_strategy))
    cfg.log_level = str(raw.get("log_level", cfg.log_level)).upper()

    return cfg.validate()
