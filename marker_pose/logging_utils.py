import logging
from contextlib import contextmanager
from typing import Iterator

LOG_FORMAT = "%(asctime)s %(levelname)s [%(camera)s] %(message)s"


class CameraNameFilter(logging.Filter):
    """Stamps every record with the camera it came from."""

    def __init__(self, camera_name: str):
        super().__init__()
        self.camera_name = camera_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.camera = self.camera_name
        return True


def _camera_handler(handler: logging.Handler, camera_name: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CameraNameFilter(camera_name))
    return handler


def setup_logger(camera_name: str, level: int | str = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"marker_pose.{camera_name}")
    logger.setLevel(level)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        logger.addHandler(_camera_handler(logging.StreamHandler(), camera_name))

    return logger


def add_file_handler(
    logger: logging.Logger, camera_name: str, log_path: str
) -> logging.FileHandler:
    handler = _camera_handler(logging.FileHandler(log_path), camera_name)
    logger.addHandler(handler)
    return handler


@contextmanager
def session_log(logger: logging.Logger, camera_name: str, log_path: str) -> Iterator[logging.FileHandler]:
    """Mirror ``logger`` into ``log_path`` for the duration of one session.

    The handler is detached and closed on exit, including when the session
    fails before its first frame.
    """
    handler = add_file_handler(logger, camera_name, log_path)
    try:
        yield handler
    finally:
        logger.removeHandler(handler)
        handler.close()
