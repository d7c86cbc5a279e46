"""Fiducial tag detection worker with relative pose between two tags."""

from .config import MarkerPoseConfig
from .worker import MarkerPoseWorker

__all__ = ["MarkerPoseConfig", "MarkerPoseWorker"]
